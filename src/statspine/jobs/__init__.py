"""Batch entry points."""

from statspine.jobs.daily import DailyJob, DailyRunReport, clean_graphs, run_collection

__all__ = ["DailyJob", "DailyRunReport", "clean_graphs", "run_collection"]
