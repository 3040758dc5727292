"""
Incremental Reconciler

Diffs an incoming batch against the records already persisted, keyed by a
hash of the configured key fields, and decides for every identity whether
it is new, modified, deleted or unchanged. Modified records are resolved by
the configured conflict policy; anything needing a human goes to the
conflict list instead of the plan.
"""
import hashlib
import json
from dataclasses import asdict, replace
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd

from tracksync.common.exceptions import ReconciliationError
from tracksync.common.logging import get_logger
from tracksync.common.models import Record
from tracksync.sync.models import (
    ConfigValidation,
    ConflictResolution,
    ConflictType,
    ImportStrategy,
    IncrementalImportConfig,
    IncrementalImportResult,
    OperationType,
    Resolution,
    SyncDirection,
    SyncOperation,
    SyncRecord,
)

# Bookkeeping fields never compared between source and target
TIMESTAMP_FIELDS = ('created_at', 'updated_at')

_EPOCH = pd.Timestamp(0, tz="UTC")

ConfigLike = Union[IncrementalImportConfig, Mapping[str, Any], None]


def generate_record_id(record: Mapping[str, Any], key_fields: Sequence[str]) -> str:
    """
    Stable identity of a record

    BLAKE2b-128 over the JSON list of stringified, stripped key-field values
    (missing or None values count as ""), hex encoded.

    Args:
        record: Record data
        key_fields: Fields identifying the record, in order

    Returns:
        32-character hex id
    """
    values = [
        "" if record.get(name) is None else str(record.get(name)).strip()
        for name in key_fields
    ]
    canonical = json.dumps(values, ensure_ascii=False)
    return hashlib.blake2b(canonical.encode("utf-8"), digest_size=16).hexdigest()


def validate_config(config: IncrementalImportConfig) -> ConfigValidation:
    """Check the policy before a reconciliation pass"""
    errors = []

    if isinstance(config.key_fields, str):
        errors.append(f"Key fields must be a list of field names, got {config.key_fields!r}")
    elif not config.key_fields:
        errors.append("At least one key field must be defined")

    checks = (
        (ImportStrategy, config.strategy, "Invalid import strategy"),
        (ConflictResolution, config.conflict_resolution, "Invalid conflict resolution"),
        (SyncDirection, config.sync_direction, "Invalid sync direction"),
    )
    for enum_type, value, message in checks:
        try:
            enum_type(value)
        except ValueError:
            errors.append(f"{message}: {value!r}")

    return ConfigValidation(is_valid=not errors, errors=errors)


def _as_config(config: ConfigLike) -> IncrementalImportConfig:
    if config is None:
        return IncrementalImportConfig()
    if isinstance(config, IncrementalImportConfig):
        return config
    return IncrementalImportConfig(**{**asdict(IncrementalImportConfig()), **dict(config)})


def _as_data(record: Any) -> Dict[str, Any]:
    return record.data if isinstance(record, Record) else dict(record)


def _as_text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _timestamp(record: Mapping[str, Any]) -> pd.Timestamp:
    """updated_at, falling back to created_at; epoch when missing or unparseable"""
    value = record.get('updated_at') or record.get('created_at')
    if not value:
        return _EPOCH
    try:
        parsed = pd.to_datetime(value, utc=True, errors="coerce")
    except (TypeError, ValueError, OverflowError):
        return _EPOCH
    return _EPOCH if pd.isna(parsed) else parsed


class IncrementalReconciler:
    """
    Reconciles source batches against existing records

    Example:
        reconciler = IncrementalReconciler(IncrementalImportConfig(
            conflict_resolution="source_wins",
            key_fields=["tracking_code"],
        ))
        result = reconciler.reconcile(incoming_rows, existing_rows)
    """

    def __init__(self, config: ConfigLike = None):
        """
        Initialize reconciler

        Args:
            config: Policy, or a mapping of overrides on the default policy
        """
        self.config = config
        self.logger = get_logger(self.__class__.__name__)

    def compare(
        self,
        source: Mapping[str, Any],
        target: Mapping[str, Any],
        key_fields: Sequence[str]
    ) -> List[str]:
        """
        Source fields whose trimmed text differs on the target side

        Key fields and timestamp bookkeeping fields are ignored.
        """
        changed = []
        for name, value in source.items():
            if name in key_fields or name in TIMESTAMP_FIELDS:
                continue
            if _as_text(value) != _as_text(target.get(name)):
                changed.append(name)
        return changed

    def resolve(
        self,
        source: Mapping[str, Any],
        target: Mapping[str, Any],
        policy: ConflictResolution
    ) -> Dict[str, Any]:
        """
        Merged record for an automatic resolution policy

        Raises:
            ReconciliationError: For the manual policy
        """
        if policy is ConflictResolution.SOURCE_WINS:
            return {**target, **source}
        if policy is ConflictResolution.TARGET_WINS:
            return dict(target)
        if policy is ConflictResolution.NEWER_WINS:
            if _timestamp(source) > _timestamp(target):
                return {**target, **source}
            return dict(target)
        raise ReconciliationError(f"Policy {policy.value} cannot be resolved automatically")

    def reconcile(
        self,
        source: Sequence[Any],
        target: Sequence[Any]
    ) -> IncrementalImportResult:
        """
        Diff and resolve a source batch against the target records

        Never raises: configuration problems and unexpected failures are
        reported in result.errors, with every source record counted as
        skipped.

        Args:
            source: Incoming rows or Records
            target: Existing rows or Records

        Returns:
            IncrementalImportResult
        """
        try:
            config = _as_config(self.config)
            validation = validate_config(config)
            if not validation.is_valid:
                raise ReconciliationError("; ".join(validation.errors))
            return self._reconcile(source, target, config)

        except ReconciliationError as e:
            self.logger.error(f"Reconciliation rejected: {e}")
            return self._failed(source, f"Reconciliation rejected: {e}")
        except Exception as e:
            self.logger.exception(f"Reconciliation failed: {e}")
            return self._failed(source, f"Reconciliation failed: {e}")

    @staticmethod
    def _failed(source: Sequence[Any], message: str) -> IncrementalImportResult:
        result = IncrementalImportResult(errors=[message])
        result.summary.total_records = len(source)
        result.summary.skipped_records = len(source)
        return result

    def _reconcile(
        self,
        source: Sequence[Any],
        target: Sequence[Any],
        config: IncrementalImportConfig
    ) -> IncrementalImportResult:
        strategy = ImportStrategy(config.strategy)
        policy = ConflictResolution(config.conflict_resolution)
        direction = SyncDirection(config.sync_direction)
        key_fields = list(config.key_fields)

        # Later duplicates of the same identity win
        target_map: Dict[str, Dict[str, Any]] = {}
        for record in target:
            data = _as_data(record)
            target_map[generate_record_id(data, key_fields)] = data

        source_map: Dict[str, Dict[str, Any]] = {}
        for record in source:
            data = _as_data(record)
            source_map[generate_record_id(data, key_fields)] = data

        result = IncrementalImportResult()
        summary = result.summary
        summary.total_records = len(source)

        for record_id, source_data in source_map.items():
            target_data = target_map.get(record_id)

            if target_data is None:
                sync_record = SyncRecord(
                    id=record_id,
                    source_data=source_data,
                    target_data={},
                    conflict_type=ConflictType.NEW,
                )
                result.records.append(sync_record)

                if strategy is ImportStrategy.REPLACE:
                    summary.skipped_records += 1
                else:
                    result.applied_changes.append(replace(
                        sync_record,
                        resolution=Resolution.SOURCE,
                        resolved_data=dict(source_data),
                    ))
                    summary.new_records += 1
                continue

            changed_fields = self.compare(source_data, target_data, key_fields)
            if not changed_fields:
                summary.unchanged_records += 1
                summary.skipped_records += 1
                continue

            sync_record = SyncRecord(
                id=record_id,
                source_data=source_data,
                target_data=target_data,
                conflict_type=ConflictType.MODIFIED,
                changed_fields=changed_fields,
            )
            result.records.append(sync_record)

            if policy is ConflictResolution.MANUAL:
                result.conflicts.append(replace(sync_record, source_values=dict(source_data)))
                summary.conflicted_records += 1
            else:
                result.applied_changes.append(replace(
                    sync_record,
                    resolution=Resolution.MERGED,
                    resolved_data=self.resolve(source_data, target_data, policy),
                ))
                summary.updated_records += 1

        if strategy is ImportStrategy.MERGE:
            for record_id, target_data in target_map.items():
                if record_id in source_map:
                    continue

                sync_record = SyncRecord(
                    id=record_id,
                    source_data={},
                    target_data=target_data,
                    conflict_type=ConflictType.DELETED,
                )
                result.records.append(sync_record)
                summary.deleted_records += 1

                if direction is SyncDirection.BIDIRECTIONAL:
                    result.conflicts.append(sync_record)
                    summary.conflicted_records += 1
                else:
                    summary.skipped_records += 1

        self.logger.info(
            f"Reconciled {summary.total_records} source records: "
            f"{summary.new_records} new, {summary.updated_records} updated, "
            f"{summary.conflicted_records} conflicts, {summary.skipped_records} skipped"
        )
        return result


def reconcile(
    source: Sequence[Any],
    target: Sequence[Any],
    config: ConfigLike = None
) -> IncrementalImportResult:
    """Diff and resolve source against target with the given policy"""
    return IncrementalReconciler(config).reconcile(source, target)


def resolve_manual_conflict(
    record: SyncRecord,
    resolution: Union[Resolution, str],
    data: Optional[Mapping[str, Any]] = None
) -> SyncRecord:
    """
    Record an operator decision on a conflict

    Args:
        record: Unresolved SyncRecord from result.conflicts
        resolution: source, target, merged or skip
        data: Field values chosen by the operator (required for merged)

    Returns:
        New SyncRecord carrying the resolution and the data to persist

    Raises:
        ValueError: If the record is already resolved, or merged lacks data
    """
    if record.resolution is not None:
        raise ValueError(f"Record {record.id} is already resolved as {record.resolution.value}")

    resolution = Resolution(resolution)
    if resolution is Resolution.SOURCE:
        if record.conflict_type is ConflictType.DELETED:
            resolved = {}
        else:
            resolved = {**record.target_data, **record.source_data}
    elif resolution is Resolution.TARGET:
        resolved = dict(record.target_data)
    elif resolution is Resolution.MERGED:
        if data is None:
            raise ValueError("A merged resolution needs the chosen field values")
        resolved = {**record.target_data, **data}
    else:
        resolved = None

    return replace(
        record,
        resolution=resolution,
        resolved_data=resolved,
        last_modified=datetime.now()
    )


def build_sync_operations(
    result: IncrementalImportResult,
    resolved_conflicts: Iterable[SyncRecord] = ()
) -> List[SyncOperation]:
    """
    Turn resolved diff entries into concrete writes

    - new records resolved to source: insert
    - modified records whose resolved data differs from the target: update
    - deletions resolved to source: delete

    Unresolved conflicts are never turned into operations.

    Args:
        result: Reconciliation result (applied_changes are used)
        resolved_conflicts: Conflicts resolved with resolve_manual_conflict

    Returns:
        Operations in plan order
    """
    operations = []
    for record in list(result.applied_changes) + list(resolved_conflicts):
        if record.resolution is None or record.resolution in (Resolution.SKIP, Resolution.TARGET):
            continue

        if record.conflict_type is ConflictType.NEW:
            operations.append(SyncOperation(
                type=OperationType.INSERT,
                record_id=record.id,
                data=dict(record.resolved_data or record.source_data),
            ))
        elif record.conflict_type is ConflictType.DELETED:
            if record.resolution is Resolution.SOURCE:
                operations.append(SyncOperation(
                    type=OperationType.DELETE,
                    record_id=record.id,
                    data=dict(record.target_data),
                ))
        elif record.resolved_data is not None and record.resolved_data != record.target_data:
            operations.append(SyncOperation(
                type=OperationType.UPDATE,
                record_id=record.id,
                data=dict(record.resolved_data),
            ))

    return operations
