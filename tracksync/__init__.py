"""
tracksync: import reconciliation pipeline for shipment records
"""
__version__ = "0.1.0"
