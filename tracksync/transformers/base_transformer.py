"""
Base transformer interface
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from tracksync.common.models import Record
from tracksync.common.exceptions import TransformError
from tracksync.common.logging import get_logger


@dataclass
class TransformerStats:
    """Statistics for transformer execution"""
    records_processed: int = 0
    records_filtered: int = 0
    records_modified: int = 0
    errors: int = 0


class Transformer(ABC):
    """Abstract base class for all record stages (correction, mapping, enrichment)"""

    # Written to record.metadata.stage after a successful transform
    stage_name: str = "transform"

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize transformer

        Args:
            config: Transformer-specific configuration
                - error_handling: 'fail' re-raises TransformError, anything
                  else drops the failing record and counts it
        """
        self.config = config or {}
        self.stats = TransformerStats()
        self.logger = get_logger(self.__class__.__name__)

    @abstractmethod
    def transform(self, record: Record) -> Optional[Record]:
        """
        Transform a single record

        Args:
            record: Input record

        Returns:
            Optional[Record]: Transformed record, or None if record should be filtered

        Raises:
            TransformError: If transformation fails
        """
        pass

    def transform_batch(self, records: List[Record]) -> List[Record]:
        """
        Transform a batch of records

        Args:
            records: Input records

        Returns:
            List[Record]: Transformed records, in input order
        """
        result = []
        for record in records:
            try:
                transformed = self.transform(record)
                if transformed is not None:
                    transformed.metadata.stage = self.stage_name
                    transformed.transformed_at = datetime.now()
                    result.append(transformed)
                    self.stats.records_processed += 1
                else:
                    self.stats.records_filtered += 1
            except TransformError as e:
                self.stats.errors += 1
                self.logger.error(f"Transform error: {e}")
                if self.config.get('error_handling') == 'fail':
                    raise

        return result

    def get_stats(self) -> Dict[str, Any]:
        """
        Get transformation statistics

        Returns:
            Dict: Statistics (records processed, filtered, errors, etc.)
        """
        return {
            'records_processed': self.stats.records_processed,
            'records_filtered': self.stats.records_filtered,
            'records_modified': self.stats.records_modified,
            'errors': self.stats.errors
        }

    def reset_stats(self) -> None:
        """Reset statistics"""
        self.stats = TransformerStats()
