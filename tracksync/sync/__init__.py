"""
Incremental reconciliation of imported records against existing ones.
"""
from tracksync.sync.apply import apply_sync_operations
from tracksync.sync.models import (
    ApplyResult,
    ConfigValidation,
    ConflictResolution,
    ConflictType,
    ImportStrategy,
    ImportSummary,
    IncrementalImportConfig,
    IncrementalImportResult,
    OperationType,
    Resolution,
    SyncDirection,
    SyncOperation,
    SyncRecord,
)
from tracksync.sync.reconciler import (
    IncrementalReconciler,
    build_sync_operations,
    generate_record_id,
    reconcile,
    resolve_manual_conflict,
    validate_config,
)

__all__ = [
    'ApplyResult',
    'ConfigValidation',
    'ConflictResolution',
    'ConflictType',
    'ImportStrategy',
    'ImportSummary',
    'IncrementalImportConfig',
    'IncrementalImportResult',
    'IncrementalReconciler',
    'OperationType',
    'Resolution',
    'SyncDirection',
    'SyncOperation',
    'SyncRecord',
    'apply_sync_operations',
    'build_sync_operations',
    'generate_record_id',
    'reconcile',
    'resolve_manual_conflict',
    'validate_config',
]
