"""
Enricher transformers package
"""
from .carrier_enricher import CarrierEnricher

__all__ = ['CarrierEnricher']
