"""
Correction Rule Engine

Rewrites messy field values (e-mails, phones, tracking codes, currency
values, names, postal codes) with ordered regex rules. Each rule targets one
semantic field; rules run by ascending priority and every rule that actually
changes the value is reported together with a confidence weight:

- priority 1: 0.9
- priority 2: 0.7
- otherwise: 0.5

The built-in rules are idempotent: correcting an already corrected value is
a no-op.
"""
import re
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from functools import lru_cache
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Pattern, Sequence, Union

from tracksync.common.exceptions import RuleCompilationError
from tracksync.common.logging import get_logger
from tracksync.common.models import FieldType, Record
from tracksync.transformers.base_transformer import Transformer

logger = get_logger("CorrectionEngine")

DEFAULT_TARGET_FIELDS = (
    FieldType.CUSTOMER_EMAIL.value,
    FieldType.CUSTOMER_PHONE.value,
    FieldType.TRACKING_CODE.value,
    FieldType.ORDER_VALUE.value,
    FieldType.CUSTOMER_NAME.value,
    FieldType.DELIVERY_ZIPCODE.value,
)

TIER_WEIGHTS = {1: 0.9, 2: 0.7}
DEFAULT_TIER_WEIGHT = 0.5


@dataclass(frozen=True)
class Literal:
    """Replacement template; back-references use \\g<n>"""
    template: str


@dataclass(frozen=True)
class Transform:
    """Replacement computed from the matched text"""
    fn: Callable[[str], str]


Replacement = Union[Literal, Transform]


@lru_cache(maxsize=256)
def _compile_pattern(pattern: str) -> Pattern:
    return re.compile(pattern, re.IGNORECASE)


@dataclass(frozen=True)
class CorrectionRule:
    """A single field correction"""
    id: str
    field: str
    pattern: str
    replacement: Replacement
    description: str = ""
    enabled: bool = True
    priority: int = 1  # Lower runs first

    @property
    def weight(self) -> float:
        return TIER_WEIGHTS.get(self.priority, DEFAULT_TIER_WEIGHT)

    def compile(self) -> Pattern:
        """
        Compile the match pattern (case-insensitive)

        Raises:
            RuleCompilationError: If the pattern is not a valid regex
        """
        try:
            return _compile_pattern(self.pattern)
        except re.error as e:
            raise RuleCompilationError(self.id, self.pattern, str(e))

    def apply(self, value: str) -> str:
        """
        Replace every match of the pattern in value

        Raises:
            RuleCompilationError: If the pattern or the template is invalid
        """
        compiled = self.compile()
        if isinstance(self.replacement, Transform):
            fn = self.replacement.fn
            return compiled.sub(lambda match: fn(match.group(0)), value)
        try:
            return compiled.sub(self.replacement.template, value)
        except re.error as e:
            raise RuleCompilationError(self.id, self.replacement.template, str(e))


@dataclass
class CorrectionResult:
    """Outcome of correcting one value"""
    original_value: Any
    corrected_value: Any
    applied_rules: List[str] = field(default_factory=list)
    confidence: float = 1.0
    field: str = ""
    record_index: Optional[int] = None  # 1-based, batch mode only

    @property
    def changed(self) -> bool:
        return bool(self.applied_rules)


@dataclass
class CorrectionSummary:
    """Batch-level correction counts"""
    total_records: int = 0
    corrected_records: int = 0
    total_corrections: int = 0
    confidence: float = 1.0


@dataclass
class SmartCorrectionAnalysis:
    """Result of correcting a batch of records"""
    corrections: List[CorrectionResult] = field(default_factory=list)
    summary: CorrectionSummary = field(default_factory=CorrectionSummary)
    rules: List[CorrectionRule] = field(default_factory=list)
    record_flags: List[bool] = field(default_factory=list)  # True where the record changed
    corrected_records: List[Dict[str, Any]] = field(default_factory=list)


_TYPO_DOMAINS = {
    "@gmai.com": "@gmail.com",
    "@gmial.com": "@gmail.com",
    "@hotmai.com": "@hotmail.com",
}


def _fix_domain_typo(text: str) -> str:
    return _TYPO_DOMAINS.get(text.lower(), text)


def _decimal_comma_to_dot(text: str) -> str:
    return text.replace(".", "").replace(",", ".")


DEFAULT_CORRECTION_RULES: Sequence[CorrectionRule] = (
    # E-mail
    CorrectionRule(
        id="email-lowercase",
        field="customer_email",
        pattern=r".+",
        replacement=Transform(str.lower),
        description="Lower-case e-mail addresses",
        priority=1,
    ),
    CorrectionRule(
        id="email-trim",
        field="customer_email",
        pattern=r"\s+$|^\s+",
        replacement=Literal(""),
        description="Strip leading and trailing whitespace",
        priority=2,
    ),
    CorrectionRule(
        id="email-common-typos",
        field="customer_email",
        pattern=r"@gmai\.com$|@gmial\.com$|@hotmai\.com$",
        replacement=Transform(_fix_domain_typo),
        description="Fix common e-mail domain typos",
        priority=3,
    ),

    # Phone (clean before formatting)
    CorrectionRule(
        id="phone-clean",
        field="customer_phone",
        pattern=r"[^\d\(\)\s\-]",
        replacement=Literal(""),
        description="Remove characters that cannot appear in a phone number",
        priority=1,
    ),
    CorrectionRule(
        id="phone-br-format",
        field="customer_phone",
        pattern=r"^(\d{2})(\d{4,5})(\d{4})$",
        replacement=Literal(r"(\g<1>) \g<2>-\g<3>"),
        description="Format Brazilian phone numbers as (AA) NNNNN-NNNN",
        priority=2,
    ),

    # Tracking code
    CorrectionRule(
        id="tracking-uppercase",
        field="tracking_code",
        pattern=r"[a-z]+",
        replacement=Transform(str.upper),
        description="Upper-case tracking codes",
        priority=1,
    ),
    CorrectionRule(
        id="tracking-clean",
        field="tracking_code",
        pattern=r"[^A-Z0-9]",
        replacement=Literal(""),
        description="Remove special characters from tracking codes",
        priority=2,
    ),

    # Order value
    CorrectionRule(
        id="value-br-format",
        field="order_value",
        pattern=r"^R\$\s*([\d.,]+)$",
        replacement=Literal(r"\g<1>"),
        description="Drop the R$ currency symbol",
        priority=1,
    ),
    CorrectionRule(
        id="value-comma-to-dot",
        field="order_value",
        pattern=r"^(\d{1,3}(?:\.\d{3})*|\d+),(\d{2})$",
        replacement=Transform(_decimal_comma_to_dot),
        description="Convert decimal comma to decimal point",
        priority=2,
    ),

    # Name
    CorrectionRule(
        id="name-trim",
        field="customer_name",
        pattern=r"^\s+|\s+$",
        replacement=Literal(""),
        description="Strip leading and trailing whitespace",
        priority=1,
    ),
    CorrectionRule(
        id="name-collapse-spaces",
        field="customer_name",
        pattern=r"\s{2,}",
        replacement=Literal(" "),
        description="Collapse repeated whitespace",
        priority=1,
    ),
    CorrectionRule(
        id="name-title-case",
        field="customer_name",
        pattern=r"\b\w",
        replacement=Transform(str.upper),
        description="Capitalize the first letter of each word",
        priority=2,
    ),

    # Postal code (clean before formatting)
    CorrectionRule(
        id="cep-clean",
        field="delivery_zipcode",
        pattern=r"[^\d\-]",
        replacement=Literal(""),
        description="Remove characters that cannot appear in a CEP",
        priority=1,
    ),
    CorrectionRule(
        id="cep-format",
        field="delivery_zipcode",
        pattern=r"^(\d{5})(\d{3})$",
        replacement=Literal(r"\g<1>-\g<2>"),
        description="Format CEP as NNNNN-NNN",
        priority=2,
    ),
)


def _as_replacement(replacement: Union[Replacement, str, Callable[[str], str]]) -> Replacement:
    if isinstance(replacement, (Literal, Transform)):
        return replacement
    if isinstance(replacement, str):
        return Literal(replacement)
    if callable(replacement):
        return Transform(replacement)
    raise TypeError(f"Unsupported replacement: {replacement!r}")


class RuleSet:
    """
    Ordered, caller-owned collection of correction rules

    Starts from the built-in defaults unless rules are given. The built-in
    tuple itself is never mutated; reset_to_defaults() restores it.
    """

    def __init__(self, rules: Optional[Iterable[CorrectionRule]] = None):
        self._rules: List[CorrectionRule] = list(DEFAULT_CORRECTION_RULES if rules is None else rules)

    def __iter__(self) -> Iterator[CorrectionRule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return any(rule.id == rule_id for rule in self._rules)

    def get(self, rule_id: str) -> Optional[CorrectionRule]:
        for rule in self._rules:
            if rule.id == rule_id:
                return rule
        return None

    def add(
        self,
        field: str,
        pattern: str,
        replacement: Union[Replacement, str, Callable[[str], str]],
        description: str = "",
        enabled: bool = True,
        priority: int = 1
    ) -> str:
        """
        Append a custom rule

        Returns:
            Generated rule id (custom-<random>)
        """
        rule_id = f"custom-{uuid.uuid4().hex[:9]}"
        self._rules.append(CorrectionRule(
            id=rule_id,
            field=field,
            pattern=pattern,
            replacement=_as_replacement(replacement),
            description=description,
            enabled=enabled,
            priority=priority,
        ))
        logger.info(f"Added correction rule {rule_id} for {field}")
        return rule_id

    def update(self, rule_id: str, **changes) -> bool:
        """
        Replace fields of an existing rule

        Returns:
            True if the rule exists
        """
        changes.pop("id", None)
        if "replacement" in changes:
            changes["replacement"] = _as_replacement(changes["replacement"])

        for i, rule in enumerate(self._rules):
            if rule.id == rule_id:
                self._rules[i] = replace(rule, **changes)
                return True
        return False

    def delete(self, rule_id: str) -> bool:
        """Remove a rule, True if it existed"""
        before = len(self._rules)
        self._rules = [rule for rule in self._rules if rule.id != rule_id]
        return len(self._rules) != before

    def toggle(self, rule_id: str) -> bool:
        """Flip a rule's enabled flag, True if the rule exists"""
        rule = self.get(rule_id)
        if rule is None:
            return False
        return self.update(rule_id, enabled=not rule.enabled)

    def reset_to_defaults(self) -> None:
        self._rules = list(DEFAULT_CORRECTION_RULES)


def _field_name(field_type: Union[FieldType, str]) -> str:
    return field_type.value if isinstance(field_type, FieldType) else field_type


def correct(
    value: Any,
    field_type: Union[FieldType, str],
    rules: Optional[Iterable[CorrectionRule]] = None
) -> CorrectionResult:
    """
    Correct a single field value

    Args:
        value: Raw value (non-strings and empty strings are returned as-is)
        field_type: Semantic field the value belongs to
        rules: Rules to consider (default: built-in rules)

    Returns:
        CorrectionResult with the corrected value, fired rule ids and the
        mean tier weight of fired rules (1.0 when nothing fired)
    """
    field_name = _field_name(field_type)

    if not value or not isinstance(value, str):
        return CorrectionResult(
            original_value=value,
            corrected_value=value,
            field=field_name
        )

    rules = DEFAULT_CORRECTION_RULES if rules is None else rules
    applicable = sorted(
        (rule for rule in rules if rule.enabled and rule.field == field_name),
        key=lambda rule: rule.priority
    )

    corrected = value
    applied: List[str] = []
    weights: List[float] = []

    for rule in applicable:
        try:
            updated = rule.apply(corrected)
        except RuleCompilationError as e:
            logger.warning(f"Skipping correction rule: {e}")
            continue

        if updated != corrected:
            corrected = updated
            applied.append(rule.id)
            weights.append(rule.weight)

    confidence = min(sum(weights) / len(weights), 1.0) if weights else 1.0

    return CorrectionResult(
        original_value=value,
        corrected_value=corrected,
        applied_rules=applied,
        confidence=confidence,
        field=field_name
    )


def analyze_and_correct(
    records: Sequence[Dict[str, Any]],
    fields_to_correct: Optional[Sequence[str]] = None,
    rules: Optional[Iterable[CorrectionRule]] = None
) -> SmartCorrectionAnalysis:
    """
    Correct every target field of every record

    Args:
        records: Plain key-value rows (left untouched)
        fields_to_correct: Fields to visit (default: DEFAULT_TARGET_FIELDS)
        rules: Rules to use (default: built-in rules)

    Returns:
        SmartCorrectionAnalysis with the fired corrections (tagged with their
        1-based record index), per-record flags, summary and corrected copies
    """
    rules = list(DEFAULT_CORRECTION_RULES if rules is None else rules)
    target_fields = list(fields_to_correct or DEFAULT_TARGET_FIELDS)

    analysis = SmartCorrectionAnalysis(rules=rules)

    for index, record in enumerate(records, start=1):
        corrected_record = dict(record)
        record_corrected = False

        for field_name in target_fields:
            value = record.get(field_name)
            if not value:
                continue

            result = correct(value, field_name, rules)
            if result.changed:
                result.record_index = index
                analysis.corrections.append(result)
                analysis.summary.total_corrections += len(result.applied_rules)
                corrected_record[field_name] = result.corrected_value
                record_corrected = True

        if record_corrected:
            analysis.summary.corrected_records += 1
        analysis.record_flags.append(record_corrected)
        analysis.corrected_records.append(corrected_record)

    analysis.summary.total_records = len(records)
    if analysis.corrections:
        analysis.summary.confidence = (
            sum(c.confidence for c in analysis.corrections) / len(analysis.corrections)
        )

    logger.info(
        f"Corrected {analysis.summary.corrected_records}/{analysis.summary.total_records} records "
        f"({analysis.summary.total_corrections} rule applications)"
    )
    return analysis


class CorrectionEngine(Transformer):
    """
    Transformer that applies correction rules to each record

    Corrections are written back into record.data and listed in
    record.metadata.custom['corrections'].
    """

    stage_name = "correct"

    def __init__(
        self,
        rules: Optional[RuleSet] = None,
        fields: Optional[List[str]] = None,
        **kwargs
    ):
        """
        Initialize correction engine

        Args:
            rules: Rule set to apply (default: a fresh set of built-in rules)
            fields: Fields to correct (default: DEFAULT_TARGET_FIELDS)
            **kwargs: Additional configuration
        """
        super().__init__({'fields': fields, **kwargs})
        self.rules = rules if rules is not None else RuleSet()
        self.fields = list(fields or DEFAULT_TARGET_FIELDS)
        self._total_corrections = 0
        self.last_analysis: Optional[SmartCorrectionAnalysis] = None

    def correct(self, value: Any, field_type: Union[FieldType, str]) -> CorrectionResult:
        """Correct one value with this engine's rules"""
        return correct(value, field_type, self.rules)

    def analyze_and_correct(
        self,
        records: Sequence[Dict[str, Any]],
        fields_to_correct: Optional[Sequence[str]] = None
    ) -> SmartCorrectionAnalysis:
        """Batch-correct plain rows with this engine's rules"""
        return analyze_and_correct(records, fields_to_correct or self.fields, list(self.rules))

    def transform(self, record: Record) -> Optional[Record]:
        corrections = []
        for field_name in self.fields:
            value = record.data.get(field_name)
            if not value:
                continue

            result = self.correct(value, field_name)
            if result.changed:
                record.data[field_name] = result.corrected_value
                corrections.append(result)

        if corrections:
            record.metadata.custom['corrections'] = corrections
            self.stats.records_modified += 1
            self._total_corrections += sum(len(c.applied_rules) for c in corrections)

        return record

    def transform_batch(self, records: List[Record]) -> List[Record]:
        """
        Correct a batch and keep its analysis in last_analysis

        Produces the same record changes as transform() on each record.
        """
        analysis = self.analyze_and_correct([record.data for record in records])
        self.last_analysis = analysis

        by_record: Dict[int, List[CorrectionResult]] = {}
        for result in analysis.corrections:
            by_record.setdefault(result.record_index, []).append(result)

        for index, record in enumerate(records, start=1):
            record.data = analysis.corrected_records[index - 1]
            corrections = by_record.get(index)
            if corrections:
                record.metadata.custom['corrections'] = corrections
                self.stats.records_modified += 1
            record.metadata.stage = self.stage_name
            record.transformed_at = datetime.now()
            self.stats.records_processed += 1

        self._total_corrections += analysis.summary.total_corrections
        return records

    def get_stats(self) -> dict:
        base_stats = super().get_stats()
        base_stats['total_corrections'] = self._total_corrections
        return base_stats
