"""
Import pipeline orchestrator

Runs an import batch through the four stages in a fixed order:
map/correct -> analyze -> classify -> reconcile (and optionally apply).
"""
import time
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from tracksync.adapters.base import SourceAdapter, SyncTarget
from tracksync.carriers.classifier import CarrierClassifier
from tracksync.transformers.base_transformer import Transformer
from tracksync.transformers.cleaners.corrections import CorrectionEngine, RuleSet
from tracksync.transformers.cleaners.field_mapper import FieldMapper
from tracksync.transformers.enrichers.carrier_enricher import CarrierEnricher
from tracksync.transformers.validators.quality_analyzer import DataQualityAnalyzer, QualityThresholds
from tracksync.sync.apply import apply_sync_operations
from tracksync.sync.models import IncrementalImportConfig
from tracksync.sync.reconciler import IncrementalReconciler, build_sync_operations
from tracksync.common.config import Config
from tracksync.common.models import FieldType, PipelineError, PipelineResult, Record
from tracksync.common.exceptions import PipelineError as PipelineException
from tracksync.common.logging import get_logger
from tracksync.orchestration.pipeline_core import apply_transformers, collect_stats


class ImportPipeline:
    """
    Pipeline that imports shipment records into an existing store

    Example:
        result = (ImportPipeline("nuvemshop_import")
            .extract(CSVSource("orders.csv"))
            .map_fields({"Codigo": "tracking_code", "E-mail": "customer_email"})
            .correct()
            .analyze()
            .classify()
            .reconcile(store, apply=True)
            .run())
    """

    def __init__(self, pipeline_id: Optional[str] = None, config: Optional[Config] = None):
        """
        Initialize pipeline

        Args:
            pipeline_id: Optional pipeline identifier
            config: Configuration supplying quality thresholds and the
                reconciliation policy when a stage is added without one
        """
        self.pipeline_id = pipeline_id or f"import_{int(time.time())}"
        self.config = config
        self.logger = get_logger("ImportPipeline")

        self._source: Optional[SourceAdapter] = None
        self._rows: Optional[List[Dict[str, Any]]] = None
        self._transformers: List[Transformer] = []
        self._mapper: Optional[FieldMapper] = None
        self._corrector: Optional[CorrectionEngine] = None
        self._analyzer: Optional[DataQualityAnalyzer] = None
        self._analysis_mapping: Optional[Dict[str, str]] = None
        self._enricher: Optional[CarrierEnricher] = None
        self._existing: Optional[Union[Sequence[Mapping[str, Any]], SyncTarget]] = None
        self._reconciler: Optional[IncrementalReconciler] = None
        self._apply = False

        self.result: Optional[PipelineResult] = None

    def extract(self, source: SourceAdapter) -> 'ImportPipeline':
        """
        Set the record source

        Args:
            source: Source adapter

        Returns:
            self for chaining
        """
        self._source = source
        self._rows = None
        self.logger.info(f"Source set: {source.__class__.__name__}")
        return self

    def with_records(self, rows: Iterable[Mapping[str, Any]]) -> 'ImportPipeline':
        """Use in-memory rows (e.g. a marketplace API payload) as the source"""
        self._rows = [dict(row) for row in rows]
        self._source = None
        self.logger.info(f"Source set: {len(self._rows)} in-memory records")
        return self

    def map_fields(self, mapping: Dict[str, str], keep_unmapped: bool = False) -> 'ImportPipeline':
        """Rename source columns to canonical fields"""
        self._mapper = FieldMapper(mapping, keep_unmapped=keep_unmapped)
        self.logger.info(f"Field mapping set: {len(mapping)} columns")
        return self

    def correct(
        self,
        rules: Optional[RuleSet] = None,
        fields: Optional[List[str]] = None
    ) -> 'ImportPipeline':
        """Apply correction rules (default: built-in rules) after field mapping"""
        self._corrector = CorrectionEngine(rules=rules, fields=fields)
        self.logger.info("Corrections enabled")
        return self

    def _correction_stages(self) -> List[Transformer]:
        """Mapper, then corrector, then custom transformers"""
        stages: List[Transformer] = []
        if self._mapper is not None:
            stages.append(self._mapper)
        if self._corrector is not None:
            stages.append(self._corrector)
        return stages + self._transformers

    def transform(self, transformer: Transformer) -> 'ImportPipeline':
        """
        Add a transformer that runs after mapping and corrections, before
        quality analysis

        Args:
            transformer: Transformer to add

        Returns:
            self for chaining
        """
        self._transformers.append(transformer)
        self.logger.info(f"Transformer added: {transformer.__class__.__name__}")
        return self

    def analyze(
        self,
        thresholds: Optional[QualityThresholds] = None,
        field_mapping: Optional[Dict[str, str]] = None
    ) -> 'ImportPipeline':
        """
        Score the batch quality

        Args:
            thresholds: Quality thresholds (default: from config, then built-in)
            field_mapping: column -> field mapping to analyze (default: the
                canonical fields produced by map_fields, or every record
                key that names a known field type)
        """
        if thresholds is None and self.config is not None:
            thresholds = QualityThresholds.from_config(self.config)
        self._analyzer = DataQualityAnalyzer(thresholds)
        self._analysis_mapping = field_mapping
        return self

    def classify(self, classifier: Optional[CarrierClassifier] = None) -> 'ImportPipeline':
        """Detect the carrier of every record"""
        self._enricher = CarrierEnricher(classifier=classifier)
        return self

    def reconcile(
        self,
        existing: Union[Sequence[Mapping[str, Any]], SyncTarget],
        config: Optional[IncrementalImportConfig] = None,
        apply: bool = False
    ) -> 'ImportPipeline':
        """
        Diff the batch against existing records

        Args:
            existing: Existing rows, or a SyncTarget to read them from
            config: Reconciliation policy (default: from config, then built-in)
            apply: Execute the resulting plan against existing (SyncTarget only)
        """
        if apply and not isinstance(existing, SyncTarget):
            raise ValueError("apply=True needs a SyncTarget to write to")

        if config is None and self.config is not None:
            config = IncrementalImportConfig.from_config(self.config)
        self._existing = existing
        self._reconciler = IncrementalReconciler(config)
        self._apply = apply
        return self

    def _extract(self) -> List[Record]:
        if self._rows is not None:
            return [
                Record.from_dict(row, source_id=self.pipeline_id, record_id=f"row_{i}")
                for i, row in enumerate(self._rows, start=1)
            ]

        with self._source as source:
            return list(source.read())

    def _quality_mapping(self, records: List[Record]) -> Dict[str, str]:
        if self._analysis_mapping is not None:
            return self._analysis_mapping
        if self._mapper is not None:
            return self._mapper.canonical_mapping

        names: Dict[str, str] = {}
        for record in records:
            for name in record.data:
                if FieldType.from_field_name(name) is not FieldType.GENERIC:
                    names[name] = name
        return names

    def run(self) -> PipelineResult:
        """
        Execute the pipeline

        Returns:
            PipelineResult

        Raises:
            PipelineException: If no records are configured or a stage fails
        """
        if self._source is None and self._rows is None:
            raise PipelineException("No records configured. Call extract() or with_records() first.")

        self.logger.info(f"Starting import pipeline: {self.pipeline_id}")
        result = PipelineResult(success=False, start_time=datetime.now())
        stage = "extract"

        try:
            started = time.time()
            records = self._extract()
            for record in records:
                record.metadata.pipeline_id = self.pipeline_id
            result.records_extracted = len(records)
            result.stage_durations['extract'] = time.time() - started
            self.logger.info(f"Extracted {result.records_extracted} records")

            stage = "correct"
            started = time.time()
            records = apply_transformers(records, self._correction_stages(), self.logger)
            if self._corrector is not None:
                result.correction = self._corrector.last_analysis
                result.records_corrected = self._corrector.stats.records_modified
            result.stage_durations['correct'] = time.time() - started

            if self._analyzer is not None:
                stage = "analyze"
                started = time.time()
                result.quality = self._analyzer.analyze(records, self._quality_mapping(records))
                result.stage_durations['analyze'] = time.time() - started

            if self._enricher is not None:
                stage = "classify"
                started = time.time()
                records = apply_transformers(records, [self._enricher], self.logger)
                result.records_classified = self._enricher.classified
                result.records_unclassified = self._enricher.unclassified
                result.stage_durations['classify'] = time.time() - started

            if self._reconciler is not None:
                stage = "reconcile"
                started = time.time()
                if isinstance(self._existing, SyncTarget):
                    with self._existing as target:
                        existing = target.read_all()
                        reconciliation = self._reconciler.reconcile(records, existing)
                        if self._apply and reconciliation.success:
                            operations = build_sync_operations(reconciliation)
                            result.applied = apply_sync_operations(operations, target)
                else:
                    reconciliation = self._reconciler.reconcile(records, list(self._existing))
                result.reconciliation = reconciliation
                result.stage_durations['reconcile'] = time.time() - started

                for message in reconciliation.errors:
                    result.errors.append(PipelineError(
                        stage="reconcile",
                        error_type="ReconciliationError",
                        message=message
                    ))

            result.records = records
            result.success = not result.errors and (result.applied is None or result.applied.success)
            result.end_time = datetime.now()
            result.duration_seconds = (result.end_time - result.start_time).total_seconds()

            self.logger.info(
                f"Pipeline completed in {result.duration_seconds:.2f}s: "
                f"{result.records_extracted} extracted, {result.records_corrected} corrected, "
                f"{result.records_classified} classified"
            )

        except Exception as e:
            result.success = False
            result.end_time = datetime.now()
            result.duration_seconds = (result.end_time - result.start_time).total_seconds()
            result.errors.append(PipelineError(
                stage=stage,
                error_type=type(e).__name__,
                message=str(e),
                timestamp=datetime.now(),
                retryable=False
            ))

            self.logger.error(f"Pipeline failed during {stage}: {e}")
            raise PipelineException(f"Pipeline execution failed during {stage}: {e}") from e

        finally:
            self.result = result

        return result

    def get_stats(self) -> dict:
        """
        Get pipeline statistics

        Returns:
            dict: Pipeline statistics
        """
        if not self.result:
            return {}

        transformers = self._correction_stages()
        if self._enricher is not None:
            transformers.append(self._enricher)

        return {
            'pipeline_id': self.pipeline_id,
            'success': self.result.success,
            'records_extracted': self.result.records_extracted,
            'records_corrected': self.result.records_corrected,
            'records_classified': self.result.records_classified,
            'records_unclassified': self.result.records_unclassified,
            'duration_seconds': self.result.duration_seconds,
            'stage_durations': dict(self.result.stage_durations),
            'transformers': collect_stats(transformers),
        }
