"""
Adapters connecting the pipeline to record sources and sync targets.
"""
from tracksync.adapters.base import SourceAdapter, SyncTarget

__all__ = ['SourceAdapter', 'SyncTarget']
