"""Command-line interface (``statspine``)."""

from statspine.cli.app import app

__all__ = ["app"]
