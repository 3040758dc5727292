"""
Pipeline orchestration module

Provides the ImportPipeline class running the import stages.
"""
from tracksync.orchestration.pipeline import ImportPipeline
from tracksync.orchestration.pipeline_core import apply_transformers, collect_stats

__all__ = [
    'ImportPipeline',
    'apply_transformers',
    'collect_stats',
]
