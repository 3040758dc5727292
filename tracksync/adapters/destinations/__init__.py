"""Sync targets receiving reconciliation writes"""

from tracksync.adapters.destinations.memory_store import InMemoryStore

__all__ = [
    'InMemoryStore',
]
