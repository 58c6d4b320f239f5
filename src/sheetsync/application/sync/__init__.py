"""
Sync engine.

Leaves first: schema_mapper, classifier, codec, identity; then the pull and
push operations and the service that wraps them in a lock and error boundary.
"""

from .auto_sync import AutoSyncReport, run_auto_sync
from .schema_mapper import SchemaMapper, normalize_header, resolve_field
from .service import SyncOrchestrator

__all__ = [
    "AutoSyncReport",
    "SchemaMapper",
    "SyncOrchestrator",
    "normalize_header",
    "resolve_field",
    "run_auto_sync",
]
