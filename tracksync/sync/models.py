"""
Data models for incremental reconciliation
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from tracksync.common.config import Config


class ImportStrategy(str, Enum):
    """How a source batch is applied to the existing records"""
    MERGE = "merge"
    REPLACE = "replace"
    APPEND = "append"


class ConflictResolution(str, Enum):
    """Policy for records present on both sides with different values"""
    NEWER_WINS = "newer_wins"
    SOURCE_WINS = "source_wins"
    TARGET_WINS = "target_wins"
    MANUAL = "manual"


class SyncDirection(str, Enum):
    UNIDIRECTIONAL = "unidirectional"
    BIDIRECTIONAL = "bidirectional"


class ConflictType(str, Enum):
    NEW = "new"
    MODIFIED = "modified"
    DELETED = "deleted"
    CONFLICT = "conflict"


class Resolution(str, Enum):
    SOURCE = "source"
    TARGET = "target"
    MERGED = "merged"
    SKIP = "skip"


class OperationType(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


@dataclass
class IncrementalImportConfig:
    """Reconciliation policy"""
    strategy: str = ImportStrategy.MERGE.value
    conflict_resolution: str = ConflictResolution.NEWER_WINS.value
    key_fields: List[str] = field(default_factory=lambda: ["tracking_code"])
    sync_direction: str = SyncDirection.UNIDIRECTIONAL.value

    @classmethod
    def from_config(cls, config: Config) -> 'IncrementalImportConfig':
        """Load the policy from reconcile.* (missing keys keep defaults)"""
        defaults = cls()
        return cls(
            strategy=config.get('reconcile.strategy', defaults.strategy),
            conflict_resolution=config.get('reconcile.conflict_resolution', defaults.conflict_resolution),
            key_fields=config.get_list('reconcile.key_fields', defaults.key_fields),
            sync_direction=config.get('reconcile.sync_direction', defaults.sync_direction),
        )


@dataclass
class ConfigValidation:
    is_valid: bool
    errors: List[str] = field(default_factory=list)


@dataclass
class SyncRecord:
    """Diff entry for one record identity"""
    id: str
    source_data: Dict[str, Any]
    target_data: Dict[str, Any]
    conflict_type: ConflictType
    resolution: Optional[Resolution] = None
    last_modified: datetime = field(default_factory=datetime.now)

    # Manual review
    changed_fields: List[str] = field(default_factory=list)
    source_values: Dict[str, Any] = field(default_factory=dict)

    # Record to persist once resolved
    resolved_data: Optional[Dict[str, Any]] = None


@dataclass
class ImportSummary:
    """Counts of one reconciliation pass"""
    total_records: int = 0
    new_records: int = 0
    updated_records: int = 0
    deleted_records: int = 0
    conflicted_records: int = 0
    skipped_records: int = 0
    unchanged_records: int = 0


@dataclass
class IncrementalImportResult:
    """Outcome of one reconciliation pass"""
    summary: ImportSummary = field(default_factory=ImportSummary)
    records: List[SyncRecord] = field(default_factory=list)
    conflicts: List[SyncRecord] = field(default_factory=list)
    applied_changes: List[SyncRecord] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


@dataclass
class SyncOperation:
    """Concrete write against the sync target"""
    type: OperationType
    record_id: str
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class ApplyResult:
    success: bool
    errors: List[str] = field(default_factory=list)
    applied: int = 0
