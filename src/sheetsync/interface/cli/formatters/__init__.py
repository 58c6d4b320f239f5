from .result_formatters import AutoSyncFormatter, SourceFormatter, SyncSummaryFormatter

__all__ = ["AutoSyncFormatter", "SourceFormatter", "SyncSummaryFormatter"]
