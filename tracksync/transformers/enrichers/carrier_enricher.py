"""
Carrier Enricher Transformer

Classifies each record's tracking code and stamps the detected carrier onto
the record, so downstream reconciliation and persistence know who ships it.
"""
from typing import Optional

from tracksync.carriers.classifier import CarrierClassifier
from tracksync.transformers.base_transformer import Transformer
from tracksync.common.models import Record
from tracksync.common.exceptions import TransformError


class CarrierEnricher(Transformer):
    """
    Transformer that adds carrier information to records

    Adds:
    - data[carrier_field]: id of the best carrier ("" when unknown)
    - metadata.custom['carrier']: id, name, confidence, prefix hit and the
      ids of every ranked candidate (None when unknown)
    """

    stage_name = "classify"

    def __init__(
        self,
        classifier: Optional[CarrierClassifier] = None,
        tracking_field: str = "tracking_code",
        carrier_field: str = "carrier",
        overwrite: bool = False,
        **kwargs
    ):
        """
        Initialize carrier enricher

        Args:
            classifier: Classifier to use (default: built-in carrier registry)
            tracking_field: Field holding the tracking code
            carrier_field: Field receiving the carrier id
            overwrite: Replace a carrier already present in the record
            **kwargs: Additional configuration
        """
        super().__init__({
            'tracking_field': tracking_field,
            'carrier_field': carrier_field,
            'overwrite': overwrite,
            **kwargs
        })

        self.classifier = classifier or CarrierClassifier()
        self.tracking_field = tracking_field
        self.carrier_field = carrier_field
        self.overwrite = overwrite

        self.classified = 0
        self.unclassified = 0

    def transform(self, record: Record) -> Optional[Record]:
        """
        Classify the record's tracking code

        Args:
            record: Input record

        Returns:
            Record with carrier information added
        """
        try:
            existing = record.data.get(self.carrier_field)
            if existing and not self.overwrite:
                self.classified += 1
                return record

            candidates = self.classifier.classify(record.data.get(self.tracking_field) or "")
            best = candidates.best

            if best is None:
                self.unclassified += 1
                record.data[self.carrier_field] = ""
                record.metadata.custom['carrier'] = None
                self.logger.debug(f"No carrier for tracking code {candidates.code!r}")
                return record

            self.classified += 1
            record.data[self.carrier_field] = best.carrier_id
            record.metadata.custom['carrier'] = {
                'id': best.carrier_id,
                'name': best.pattern.name,
                'confidence': best.confidence,
                'prefix_hit': best.prefix_hit,
                'candidates': candidates.carrier_ids,
            }
            self.stats.records_modified += 1
            return record

        except Exception as e:
            self.stats.errors += 1
            raise TransformError(f"Error in CarrierEnricher: {e}")

    def cleanup(self):
        """Log classification summary"""
        self.logger.info(
            f"Classified {self.classified} records, {self.unclassified} with unknown carrier"
        )

    def get_stats(self) -> dict:
        base_stats = super().get_stats()
        base_stats.update({
            'classified': self.classified,
            'unclassified': self.unclassified,
        })
        return base_stats
