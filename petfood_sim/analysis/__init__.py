"""Analysis module - Batch statistics and result export."""

from .metrics import BatchStatistics, StatsAccumulator, SegmentSummary, RankedSignal, export_results_csv

__all__ = [
    "BatchStatistics",
    "StatsAccumulator",
    "SegmentSummary",
    "RankedSignal",
    "export_results_csv",
]
