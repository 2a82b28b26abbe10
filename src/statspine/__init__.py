"""
Stat-Spine - Daily entity statistics and saved-series sampling.

Subpackages:
- statspine.core: Shared primitives (settings, logging, errors, connections)
- statspine.stats: Per-product time-series collection and regeneration
- statspine.series: Scheduled sampling of saved queries
- statspine.jobs: The once-per-day batch job tying the pieces together
"""

__version__ = "0.1.0"
