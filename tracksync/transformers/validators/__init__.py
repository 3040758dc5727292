"""
Validator package
"""
from .quality_analyzer import (
    DataQualityAnalyzer,
    DataQualityReport,
    FieldQualityAnalysis,
    QualityMetric,
    QualityThresholds,
    analyze_quality,
)

__all__ = [
    'DataQualityAnalyzer',
    'DataQualityReport',
    'FieldQualityAnalysis',
    'QualityMetric',
    'QualityThresholds',
    'analyze_quality',
]
