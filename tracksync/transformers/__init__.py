"""
Transformers for record correction, mapping and enrichment.
"""
from tracksync.transformers.base_transformer import Transformer, TransformerStats

__all__ = [
    'Transformer',
    'TransformerStats',
]
