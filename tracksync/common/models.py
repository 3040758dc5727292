"""
Data models shared across the tracksync pipeline
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class FieldType(Enum):
    """Semantic field types understood by the correction and quality stages"""
    TRACKING_CODE = "tracking_code"
    CUSTOMER_NAME = "customer_name"
    CUSTOMER_EMAIL = "customer_email"
    CUSTOMER_PHONE = "customer_phone"
    ORDER_VALUE = "order_value"
    DELIVERY_ZIPCODE = "delivery_zipcode"
    ORDER_DATE = "order_date"
    ESTIMATED_DELIVERY = "estimated_delivery"
    ORDER_NUMBER = "order_number"
    GENERIC = "generic"

    @classmethod
    def from_field_name(cls, name: str) -> 'FieldType':
        """Map a canonical field name to its type, GENERIC when unknown"""
        try:
            return cls(name)
        except ValueError:
            return cls.GENERIC


# Identity fields every imported shipment must carry
MANDATORY_FIELDS = (
    FieldType.TRACKING_CODE,
    FieldType.CUSTOMER_NAME,
    FieldType.CUSTOMER_EMAIL,
)

# Fields whose duplicates indicate the same shipment imported twice
IDENTITY_FIELDS = (
    FieldType.TRACKING_CODE,
    FieldType.ORDER_NUMBER,
)


@dataclass
class RecordMetadata:
    """Metadata associated with a record"""

    # Source information
    source_type: str  # 'csv', 'memory', 'marketplace', etc.
    source_id: str    # File path, marketplace name, etc.

    # Record identification
    record_id: Optional[str] = None

    # Lineage tracking
    pipeline_id: str = ""
    stage: str = ""  # 'extract', 'correct', 'classify', ...

    # Stage annotations (corrections, carrier confidence, ...)
    custom: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Record:
    """Standardized record format for pipeline data flow"""

    # Primary data payload
    data: Dict[str, Any]

    # Metadata about the record
    metadata: RecordMetadata

    # Processing timestamps
    extracted_at: Optional[datetime] = None
    transformed_at: Optional[datetime] = None

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        source_type: str = "memory",
        source_id: str = "",
        record_id: Optional[str] = None
    ) -> 'Record':
        """Wrap a plain key-value row into a Record"""
        return cls(
            data=dict(data),
            metadata=RecordMetadata(
                source_type=source_type,
                source_id=source_id,
                record_id=record_id,
                stage="extract"
            ),
            extracted_at=datetime.now()
        )


@dataclass
class PipelineError:
    """Error information"""
    stage: str  # 'extract', 'correct', 'analyze', 'classify', 'reconcile'
    error_type: str
    message: str
    record_id: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)
    retryable: bool = False


@dataclass
class PipelineResult:
    """Result of one import pipeline run"""

    # Success/failure
    success: bool

    # Statistics
    records_extracted: int = 0
    records_corrected: int = 0
    records_classified: int = 0
    records_unclassified: int = 0

    # Timing
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration_seconds: float = 0.0

    # Stage timings
    stage_durations: Dict[str, float] = field(default_factory=dict)

    # Stage outputs
    records: List[Record] = field(default_factory=list)
    correction: Optional[Any] = None       # SmartCorrectionAnalysis
    quality: Optional[Any] = None          # DataQualityReport
    reconciliation: Optional[Any] = None   # IncrementalImportResult
    applied: Optional[Any] = None          # ApplyResult

    # Errors
    errors: List[PipelineError] = field(default_factory=list)
