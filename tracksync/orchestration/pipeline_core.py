"""
Shared pipeline core functions
"""
from typing import Any, Dict, List

from tracksync.transformers.base_transformer import Transformer
from tracksync.common.models import Record
from tracksync.common.logging import get_logger


def apply_transformers(
    records: List[Record],
    transformers: List[Transformer],
    logger=None
) -> List[Record]:
    """
    Apply transformers with setup/cleanup lifecycle

    Args:
        records: List of records to transform
        transformers: List of transformers to apply in order
        logger: Optional logger for debug output

    Returns:
        Transformed records
    """
    if logger is None:
        logger = get_logger("PipelineCore")

    if not transformers:
        logger.debug("No transformers to apply")
        return records

    for transformer in transformers:
        if hasattr(transformer, 'setup'):
            transformer.setup()

    for transformer in transformers:
        transformer_name = transformer.__class__.__name__
        logger.info(f"Applying transformer: {transformer_name}")

        records = transformer.transform_batch(records)

        logger.info(f"After {transformer_name}: {len(records)} records remain")

    for transformer in transformers:
        if hasattr(transformer, 'cleanup'):
            transformer.cleanup()

    return records


def collect_stats(transformers: List[Transformer]) -> Dict[str, Dict[str, Any]]:
    """
    Statistics of every transformer, keyed by class name

    A transformer class used twice is suffixed with its position.
    """
    stats: Dict[str, Dict[str, Any]] = {}
    for i, transformer in enumerate(transformers):
        name = transformer.__class__.__name__
        if name in stats:
            name = f"{name}_{i}"
        stats[name] = transformer.get_stats()
    return stats
