"""Snapshot reporting: holder statistics and the JSON report documents."""
from .documents import build_excluded_report, build_filtered_report, rank_holders
from .stats import compute_holder_statistics, format_balance
from .writer import ReportWriter

__all__ = [
    'ReportWriter',
    'build_excluded_report',
    'build_filtered_report',
    'compute_holder_statistics',
    'format_balance',
    'rank_holders',
]
