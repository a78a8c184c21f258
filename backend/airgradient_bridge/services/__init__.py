"""
Services Package
================

These are the "workers" that do the actual work.

- LastValueCache: Holds the latest reading in memory
- BackupStore: Keeps a copy of it on disk
- ReadingBridge: Ingest + render, built on the two above
"""

from .last_value_cache import LastValueCache, ReadWriteLock
from .backup_store import BackupStore
from .exposition import CONTENT_TYPE, render_metrics
from .bridge import ReadingBridge, parse_instance_id, substitute_invalid

__all__ = [
    "LastValueCache",
    "ReadWriteLock",
    "BackupStore",
    "CONTENT_TYPE",
    "render_metrics",
    "ReadingBridge",
    "parse_instance_id",
    "substitute_invalid",
]
