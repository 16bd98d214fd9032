"""Reporting package."""

from fintrack.reports.aggregator import ReportAggregator

__all__ = ["ReportAggregator"]
