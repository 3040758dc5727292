"""
Source adapters for extracting shipment records.
"""
from tracksync.adapters.sources.csv_source import CSVSource

__all__ = [
    'CSVSource',
]
