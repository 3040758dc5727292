"""
Cleaner transformers package
"""
from .field_mapper import FieldMapper
from .corrections import (
    CorrectionEngine,
    CorrectionResult,
    CorrectionRule,
    DEFAULT_CORRECTION_RULES,
    Literal,
    RuleSet,
    SmartCorrectionAnalysis,
    Transform,
    analyze_and_correct,
    correct,
)

__all__ = [
    'CorrectionEngine',
    'CorrectionResult',
    'CorrectionRule',
    'DEFAULT_CORRECTION_RULES',
    'FieldMapper',
    'Literal',
    'RuleSet',
    'SmartCorrectionAnalysis',
    'Transform',
    'analyze_and_correct',
    'correct',
]
