"""
Field Mapper Transformer

Renames source columns (CSV headers, marketplace payload keys) to the
canonical field names understood by the rest of the pipeline.
"""
from typing import Dict, Optional, Set

from tracksync.transformers.base_transformer import Transformer
from tracksync.common.models import FieldType, Record
from tracksync.common.exceptions import TransformError


class FieldMapper(Transformer):
    """
    Transformer that maps source columns onto canonical fields

    Columns absent from a record are written as empty strings so that every
    mapped record carries the same canonical keys. Unmapped columns are
    dropped unless keep_unmapped is set.
    """

    stage_name = "map"

    def __init__(
        self,
        mapping: Dict[str, str],
        keep_unmapped: bool = False,
        **kwargs
    ):
        """
        Initialize field mapper

        Args:
            mapping: source column -> canonical field name
            keep_unmapped: Carry columns missing from mapping through unchanged
            **kwargs: Additional configuration

        Example:
            FieldMapper({"Codigo Rastreio": "tracking_code", "E-mail": "customer_email"})
        """
        if not mapping:
            raise ValueError("Field mapping must not be empty")

        targets = list(mapping.values())
        duplicates = {name for name in targets if targets.count(name) > 1}
        if duplicates:
            raise ValueError(f"Several columns map to the same field: {', '.join(sorted(duplicates))}")

        super().__init__({
            'mapping': dict(mapping),
            'keep_unmapped': keep_unmapped,
            **kwargs
        })

        self.mapping = dict(mapping)
        self.keep_unmapped = keep_unmapped

        # Statistics
        self._missing_columns: Set[str] = set()

    def setup(self):
        """Log mapping and flag canonical names with no semantic type"""
        self.logger.info(f"Mapping {len(self.mapping)} columns")
        for column, field_name in self.mapping.items():
            if FieldType.from_field_name(field_name) is FieldType.GENERIC:
                self.logger.debug(f"Column {column} maps to untyped field {field_name}")

    @property
    def canonical_mapping(self) -> Dict[str, str]:
        """Identity mapping over the canonical field names (for quality analysis after mapping)"""
        return {name: name for name in self.mapping.values()}

    def transform(self, record: Record) -> Optional[Record]:
        """
        Rename mapped columns

        Args:
            record: Input record

        Returns:
            Record whose data is keyed by canonical field names
        """
        try:
            mapped = {}
            for column, field_name in self.mapping.items():
                if column not in record.data:
                    self._missing_columns.add(column)
                value = record.data.get(column)
                mapped[field_name] = "" if value is None else value

            if self.keep_unmapped:
                for column, value in record.data.items():
                    if column not in self.mapping and column not in mapped:
                        mapped[column] = value

            if mapped != record.data:
                self.stats.records_modified += 1
            record.data = mapped
            return record

        except Exception as e:
            self.stats.errors += 1
            raise TransformError(f"Error in FieldMapper: {e}")

    def cleanup(self):
        """Log source columns that were never found"""
        if self._missing_columns:
            self.logger.warning(
                f"Columns missing from some records: {', '.join(sorted(self._missing_columns))}"
            )

    def get_stats(self) -> dict:
        base_stats = super().get_stats()
        base_stats['missing_columns'] = sorted(self._missing_columns)
        return base_stats
