"""
Carrier detection from tracking codes.
"""
from tracksync.carriers.classifier import (
    CarrierCandidate,
    CarrierClassifier,
    RankedCandidates,
    TrackingValidationResult,
    classify,
    detect,
    validate_tracking_code,
)
from tracksync.carriers.patterns import (
    CARRIER_PATTERNS,
    TrackingPattern,
    build_prefix_index,
    get_carrier_by_id,
    get_carriers_by_country,
    get_patterns_by_prefix,
)

__all__ = [
    'CARRIER_PATTERNS',
    'CarrierCandidate',
    'CarrierClassifier',
    'RankedCandidates',
    'TrackingPattern',
    'TrackingValidationResult',
    'build_prefix_index',
    'classify',
    'detect',
    'get_carrier_by_id',
    'get_carriers_by_country',
    'get_patterns_by_prefix',
    'validate_tracking_code',
]
