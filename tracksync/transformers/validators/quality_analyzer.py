"""
Data Quality Analyzer

Scores a mapped import batch before it is persisted. Every mapped column is
measured on four axes (0-100):

- Completeness: share of non-empty values
- Validity: share of non-empty values matching the field's format
- Consistency: penalty for mixing formatting styles within the column
- Uniqueness: share of distinct non-empty values

The field score is completeness * 0.3 + validity * 0.4 + consistency * 0.2 +
uniqueness * 0.1, and the batch score is the mean of field scores weighted 2
for mandatory identity fields and 1 otherwise.
"""
import re
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from tracksync.common.config import Config
from tracksync.common.logging import get_logger
from tracksync.common.models import IDENTITY_FIELDS, MANDATORY_FIELDS, FieldType, Record

logger = get_logger("DataQualityAnalyzer")

OVERALL_METRIC_NAME = "Qualidade Geral dos Dados"
OVERALL_METRIC_WEIGHT = 3
LOW_OVERALL_SCORE = 70

FIELD_SCORE_WEIGHTS = {
    'completeness': 0.3,
    'validity': 0.4,
    'consistency': 0.2,
    'uniqueness': 0.1,
}

SAMPLE_SIZE = 5


@dataclass(frozen=True)
class QualityThresholds:
    """Minimum acceptable percentages per quality axis"""
    completeness: float = 95
    validity: float = 90
    consistency: float = 85
    uniqueness: float = 98

    def with_updates(self, **changes) -> 'QualityThresholds':
        """Copy with some thresholds overridden (None values are ignored)"""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    @classmethod
    def from_config(cls, config: Config) -> 'QualityThresholds':
        """Load thresholds from quality.thresholds.* (missing keys keep defaults)"""
        defaults = cls()
        return cls(
            completeness=config.get_float('quality.thresholds.completeness', defaults.completeness),
            validity=config.get_float('quality.thresholds.validity', defaults.validity),
            consistency=config.get_float('quality.thresholds.consistency', defaults.consistency),
            uniqueness=config.get_float('quality.thresholds.uniqueness', defaults.uniqueness),
        )


@dataclass
class QualityMetric:
    """Scored quality metric with its findings"""
    name: str
    score: float
    weight: int
    description: str = ""
    issues: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)


@dataclass
class FieldQualityAnalysis:
    """Per-field quality measurements"""
    field: str
    completeness: float
    validity: float
    consistency: float
    uniqueness: float
    issues: List[str] = field(default_factory=list)
    sample_values: List[str] = field(default_factory=list)

    @property
    def score(self) -> float:
        return (
            self.completeness * FIELD_SCORE_WEIGHTS['completeness']
            + self.validity * FIELD_SCORE_WEIGHTS['validity']
            + self.consistency * FIELD_SCORE_WEIGHTS['consistency']
            + self.uniqueness * FIELD_SCORE_WEIGHTS['uniqueness']
        )


@dataclass
class QualitySummary:
    """Record and issue counts"""
    total_records: int = 0
    valid_records: int = 0
    invalid_records: int = 0
    critical_issues: int = 0
    warnings: int = 0


@dataclass
class DataQualityReport:
    """Quality report of one import batch"""
    overall_score: float
    metrics: List[QualityMetric] = field(default_factory=list)
    summary: QualitySummary = field(default_factory=QualitySummary)
    field_analysis: Dict[str, FieldQualityAnalysis] = field(default_factory=dict)
    recommendations: List[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Validity predicates, one per field type
# ---------------------------------------------------------------------------

_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$", re.IGNORECASE)
_PHONE = re.compile(r"(\(?\d{2}\)?\s?)?\d{4,5}-?\d{4}")
_TRACKING = re.compile(
    r"^[A-Z]{2}\d{9}[A-Z]{2}$|^[A-Z]{2}\d{10}[A-Z]{2}$|^\d{12,14}$"
    r"|^LG\d{9}BR$|^TE\d{9}BR$|^AC\d{9}BR$",
    re.IGNORECASE
)
_CURRENCY_NOISE = re.compile(r"[R$\s]")
_CURRENCY = re.compile(r"^\d+([,.]\d{1,2})?$")
_ZIPCODE = re.compile(r"^\d{5}-?\d{3}$")
_DATE_SLASHED = re.compile(r"^\d{2}/\d{2}/\d{4}$")
_DATE_ISO = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DATE_DASHED = re.compile(r"^\d{2}-\d{2}-\d{4}$")
# pandas resolves these against the clock
_RELATIVE_DATE_WORDS = frozenset({"now", "today", "tomorrow", "yesterday"})
_PHONE_FORMATTED = re.compile(r"^\(\d{2}\)\s\d{4,5}-\d{4}$")
_PHONE_DIGITS = re.compile(r"^\d{2}\d{4,5}\d{4}$")


def _is_email(value: str) -> bool:
    return bool(_EMAIL.match(value))


def _is_phone(value: str) -> bool:
    return bool(_PHONE.search(value))


def _is_tracking_code(value: str) -> bool:
    return bool(_TRACKING.search(value))


def _is_currency(value: str) -> bool:
    return bool(_CURRENCY.match(_CURRENCY_NOISE.sub("", value)))


def _is_zipcode(value: str) -> bool:
    return bool(_ZIPCODE.match(value))


def _is_date(value: str) -> bool:
    if _DATE_SLASHED.match(value) or _DATE_ISO.match(value):
        return True
    if value.strip().lower() in _RELATIVE_DATE_WORDS:
        return False
    return not pd.isna(pd.to_datetime(value, errors="coerce"))


def _always_valid(value: str) -> bool:
    return True


VALIDATORS: Dict[FieldType, Callable[[str], bool]] = {
    FieldType.TRACKING_CODE: _is_tracking_code,
    FieldType.CUSTOMER_NAME: _always_valid,
    FieldType.CUSTOMER_EMAIL: _is_email,
    FieldType.CUSTOMER_PHONE: _is_phone,
    FieldType.ORDER_VALUE: _is_currency,
    FieldType.DELIVERY_ZIPCODE: _is_zipcode,
    FieldType.ORDER_DATE: _is_date,
    FieldType.ESTIMATED_DELIVERY: _is_date,
    FieldType.ORDER_NUMBER: _always_valid,
    FieldType.GENERIC: _always_valid,
}


# ---------------------------------------------------------------------------
# Formatting-style classifiers for consistency, one per field type
# ---------------------------------------------------------------------------

def _phone_style(value: str) -> str:
    if _PHONE_FORMATTED.match(value):
        return 'formatted'
    if _PHONE_DIGITS.match(value):
        return 'digits_only'
    return 'other'


def _decimal_style(value: str) -> str:
    if ',' in value:
        return 'comma'
    if '.' in value:
        return 'dot'
    return 'none'


def _date_style(value: str) -> str:
    if _DATE_SLASHED.match(value):
        return 'dd/mm/yyyy'
    if _DATE_ISO.match(value):
        return 'yyyy-mm-dd'
    if _DATE_DASHED.match(value):
        return 'dd-mm-yyyy'
    return 'other'


# (style classifier, penalty per extra style); None = always consistent
CONSISTENCY_RULES: Dict[FieldType, Optional[Tuple[Callable[[str], str], int]]] = {
    FieldType.TRACKING_CODE: None,
    FieldType.CUSTOMER_NAME: None,
    FieldType.CUSTOMER_EMAIL: None,
    FieldType.CUSTOMER_PHONE: (_phone_style, 20),
    FieldType.ORDER_VALUE: (_decimal_style, 25),
    FieldType.DELIVERY_ZIPCODE: None,
    FieldType.ORDER_DATE: (_date_style, 15),
    FieldType.ESTIMATED_DELIVERY: (_date_style, 15),
    FieldType.ORDER_NUMBER: None,
    FieldType.GENERIC: None,
}


def is_valid_value(value: str, field_type: FieldType) -> bool:
    """Check one non-empty value against its field format"""
    return VALIDATORS[field_type](value)


class DataQualityAnalyzer:
    """
    Computes a DataQualityReport for a batch of mapped records

    Example:
        analyzer = DataQualityAnalyzer(QualityThresholds(validity=80))
        report = analyzer.analyze(rows, {"E-mail": "customer_email"})
    """

    def __init__(self, thresholds: Optional[QualityThresholds] = None):
        """
        Initialize analyzer

        Args:
            thresholds: Minimum acceptable percentages (default: 95/90/85/98)
        """
        self.thresholds = thresholds or QualityThresholds()
        self.logger = get_logger(self.__class__.__name__)

    @staticmethod
    def _column_values(rows: Sequence[Mapping[str, Any]], column: str) -> pd.Series:
        values = []
        for row in rows:
            value = row.get(column)
            values.append("" if value is None else str(value))
        return pd.Series(values, dtype=object)

    @staticmethod
    def _non_empty(values: pd.Series) -> pd.Series:
        if values.empty:
            return values
        return values[values.str.strip() != ""]

    def completeness(self, values: pd.Series) -> float:
        """Percentage of non-empty values (100 when there are none)"""
        if values.empty:
            return 100.0
        return len(self._non_empty(values)) / len(values) * 100

    def validity(self, values: pd.Series, field_type: FieldType) -> float:
        """Percentage of non-empty values matching the field format"""
        present = self._non_empty(values)
        if present.empty:
            return 100.0
        validator = VALIDATORS[field_type]
        return float(present.map(validator).mean() * 100)

    def consistency(self, values: pd.Series, field_type: FieldType) -> float:
        """100 minus a penalty per extra formatting style among non-empty values"""
        rule = CONSISTENCY_RULES[field_type]
        present = self._non_empty(values)
        if rule is None or present.empty:
            return 100.0

        style_of, penalty = rule
        styles = present.map(style_of).nunique()
        return float(max(100 - (styles - 1) * penalty, 0))

    def uniqueness(self, values: pd.Series) -> float:
        """Percentage of distinct values among non-empty ones"""
        present = self._non_empty(values)
        if present.empty:
            return 100.0
        return present.nunique() / len(present) * 100

    def analyze(
        self,
        records: Sequence[Any],
        field_mapping: Mapping[str, str]
    ) -> DataQualityReport:
        """
        Analyze a batch

        Args:
            records: Plain rows or Record objects
            field_mapping: source column -> canonical field name

        Returns:
            DataQualityReport
        """
        rows = [r.data if isinstance(r, Record) else r for r in records]
        thresholds = self.thresholds

        metrics: List[QualityMetric] = []
        field_analysis: Dict[str, FieldQualityAnalysis] = {}
        recommendations: List[str] = []
        scores: List[float] = []
        weights: List[int] = []
        critical_issues = 0
        warnings = 0

        for column, field_name in field_mapping.items():
            field_type = FieldType.from_field_name(field_name)
            values = self._column_values(rows, column)
            is_required = field_type in MANDATORY_FIELDS

            analysis = FieldQualityAnalysis(
                field=field_name,
                completeness=self.completeness(values),
                validity=self.validity(values, field_type),
                consistency=self.consistency(values, field_type),
                uniqueness=self.uniqueness(values),
                sample_values=values.head(SAMPLE_SIZE).tolist(),
            )
            field_recommendations: List[str] = []

            if analysis.completeness < thresholds.completeness:
                analysis.issues.append(f"Low completeness: {analysis.completeness:.1f}%")
                field_recommendations.append(f"Fill in missing values of {column}")
                if is_required:
                    critical_issues += 1

            if analysis.validity < thresholds.validity:
                analysis.issues.append(f"Low validity: {analysis.validity:.1f}%")
                field_recommendations.append(f"Fix the format of values in {column}")
                if is_required:
                    critical_issues += 1

            if analysis.consistency < thresholds.consistency:
                analysis.issues.append(f"Low consistency: {analysis.consistency:.1f}%")
                field_recommendations.append(f"Standardize the format of {column}")
                warnings += 1

            if analysis.uniqueness < thresholds.uniqueness and field_type in IDENTITY_FIELDS:
                analysis.issues.append(f"Duplicates found: {100 - analysis.uniqueness:.1f}%")
                field_recommendations.append(f"Check duplicate values in {column}")
                critical_issues += 1

            weight = 2 if is_required else 1
            field_analysis[field_name] = analysis
            metrics.append(QualityMetric(
                name=f"{column} -> {field_name}",
                score=analysis.score,
                weight=weight,
                description=f"Quality of column {column} mapped to {field_name}",
                issues=list(analysis.issues),
                recommendations=field_recommendations,
            ))
            scores.append(analysis.score)
            weights.append(weight)
            recommendations.extend(field_recommendations)

        overall_score = float(np.average(scores, weights=weights)) if scores else 100.0

        is_low = overall_score < LOW_OVERALL_SCORE
        metrics.insert(0, QualityMetric(
            name=OVERALL_METRIC_NAME,
            score=overall_score,
            weight=OVERALL_METRIC_WEIGHT,
            description="Overall data quality across every mapped field",
            issues=["Overall quality is low, review the data"] if is_low else [],
            recommendations=["Clean the data before importing"] if is_low else [],
        ))

        valid_records = sum(1 for row in rows if self._is_valid_record(row, field_mapping))

        report = DataQualityReport(
            overall_score=overall_score,
            metrics=metrics,
            summary=QualitySummary(
                total_records=len(rows),
                valid_records=valid_records,
                invalid_records=len(rows) - valid_records,
                critical_issues=critical_issues,
                warnings=warnings,
            ),
            field_analysis=field_analysis,
            recommendations=list(dict.fromkeys(recommendations)),
        )

        self.logger.info(
            f"Quality score {overall_score:.1f} over {len(rows)} records "
            f"({critical_issues} critical, {warnings} warnings)"
        )
        return report

    @staticmethod
    def _is_valid_record(row: Mapping[str, Any], field_mapping: Mapping[str, str]) -> bool:
        """Every mapped mandatory field is filled in and well formed"""
        for field_type in MANDATORY_FIELDS:
            column = next(
                (col for col, name in field_mapping.items() if name == field_type.value),
                None
            )
            if column is None:
                continue

            value = row.get(column)
            value = "" if value is None else str(value)
            if not value.strip() or not is_valid_value(value, field_type):
                return False

        return True


def analyze_quality(
    records: Sequence[Any],
    field_mapping: Mapping[str, str],
    thresholds: Optional[QualityThresholds] = None
) -> DataQualityReport:
    """Analyze a batch with the given (or default) thresholds"""
    return DataQualityAnalyzer(thresholds).analyze(records, field_mapping)
