"""
Carrier classifier for raw tracking codes

Given a tracking code, the classifier tests every registered pattern and
returns the matching carriers ranked by pattern priority. It also exposes
the confidence-scored detection used for suggestions and validation:

- regex match: 40 points
- length constraint satisfied: 15 points
- checksum present and valid: 20 points
- prefix found in the prefix index: 15 points
- pattern priority: up to 10 points (priority / 100 * 10)

Classification never raises. An empty result means "unknown carrier".
"""
import math
import re
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from tracksync.carriers.patterns import (
    CARRIER_PATTERNS,
    TrackingPattern,
    build_prefix_index,
    get_patterns_by_prefix,
)
from tracksync.common.logging import get_logger

logger = get_logger("CarrierClassifier")

_WHITESPACE = re.compile(r"\s+")
_CORREIOS_WITHOUT_SUFFIX = re.compile(r"[A-Z]{2}\d{9}", re.ASCII)
_LOOKALIKE_LETTERS = str.maketrans({"0": "O", "1": "I", "5": "S"})

# Score contributions
REGEX_POINTS = 40
LENGTH_POINTS = 15
CHECKSUM_POINTS = 20
PREFIX_POINTS = 15
PRIORITY_POINTS = 10
MAX_SCORE = REGEX_POINTS + LENGTH_POINTS + CHECKSUM_POINTS + PREFIX_POINTS + PRIORITY_POINTS


@dataclass(frozen=True)
class CarrierCandidate:
    """Outcome of testing one pattern against one code"""
    pattern: TrackingPattern
    matched: bool        # Regex and length constraint satisfied
    checksum_ok: bool    # True when the pattern has no checksum
    prefix_hit: bool
    confidence: int      # 0-100
    score: float
    matched_criteria: Tuple[str, ...] = ()

    @property
    def carrier_id(self) -> str:
        return self.pattern.id

    @property
    def is_valid(self) -> bool:
        """Shape matched and the check digit (if any) agrees"""
        return self.matched and self.checksum_ok


@dataclass(frozen=True)
class RankedCandidates(Sequence):
    """Candidates for one code, best first"""
    code: str
    candidates: Tuple[CarrierCandidate, ...] = field(default_factory=tuple)

    def __getitem__(self, index):
        return self.candidates[index]

    def __len__(self) -> int:
        return len(self.candidates)

    def __iter__(self) -> Iterator[CarrierCandidate]:
        return iter(self.candidates)

    @property
    def best(self) -> Optional[CarrierCandidate]:
        """Top valid candidate, None when the carrier is unknown"""
        for candidate in self.candidates:
            if candidate.is_valid:
                return candidate
        return None

    @property
    def carrier_ids(self) -> List[str]:
        return [c.carrier_id for c in self.candidates if c.is_valid]


@dataclass
class TrackingValidationResult:
    """Validation verdict for a single tracking code"""
    is_valid: bool = False
    carrier: Optional[str] = None
    carrier_name: Optional[str] = None
    confidence: int = 0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


class CarrierClassifier:
    """
    Classifies tracking codes against a pattern registry

    The pattern tuple and its prefix index are read-only after construction,
    so one classifier can be shared freely across concurrent callers.
    """

    def __init__(self, patterns: Sequence[TrackingPattern] = CARRIER_PATTERNS):
        """
        Initialize classifier

        Args:
            patterns: Pattern registry, in tie-breaking order
        """
        self.patterns: Tuple[TrackingPattern, ...] = tuple(patterns)
        self.prefix_index: Dict[str, List[TrackingPattern]] = build_prefix_index(self.patterns)

    @staticmethod
    def normalize(code: str) -> str:
        """Upper-case and drop every whitespace character"""
        if not isinstance(code, str):
            return ""
        return _WHITESPACE.sub("", code).upper()

    def evaluate(
        self,
        code: str,
        pattern: TrackingPattern,
        prefix_hit: Optional[bool] = None
    ) -> CarrierCandidate:
        """
        Score one pattern against a code

        Args:
            code: Tracking code (normalized here)
            pattern: Pattern to test
            prefix_hit: Override prefix detection (None = look it up)

        Returns:
            CarrierCandidate with match flags and confidence
        """
        code = self.normalize(code)
        if prefix_hit is None:
            prefix_hit = any(p is pattern for p in get_patterns_by_prefix(code, self.prefix_index))

        score = 0.0
        criteria: List[str] = []

        regex_ok = pattern.regex_ok(code)
        if regex_ok:
            score += REGEX_POINTS
            criteria.append("regex")

        length_ok = pattern.length_ok(code)
        if length_ok:
            score += LENGTH_POINTS
            criteria.append("length")

        checksum_ok = True
        if pattern.checksum is not None:
            checksum_ok = self._run_checksum(pattern, code)
            if checksum_ok:
                score += CHECKSUM_POINTS
                criteria.append("checksum")

        if prefix_hit:
            score += PREFIX_POINTS
            criteria.append("prefix")

        score += (pattern.priority / 100) * PRIORITY_POINTS

        confidence = min(100, math.floor(score / MAX_SCORE * 100 + 0.5))

        return CarrierCandidate(
            pattern=pattern,
            matched=regex_ok and length_ok,
            checksum_ok=checksum_ok,
            prefix_hit=prefix_hit,
            confidence=confidence,
            score=score,
            matched_criteria=tuple(criteria),
        )

    @staticmethod
    def _run_checksum(pattern: TrackingPattern, code: str) -> bool:
        try:
            return bool(pattern.checksum(code))
        except (ValueError, TypeError, IndexError) as e:
            logger.debug(f"Checksum for {pattern.id} failed on {code!r}: {e}")
            return False

    def classify(self, code: str, include_rejected: bool = False) -> RankedCandidates:
        """
        Rank the carriers whose pattern matches a code

        Args:
            code: Raw tracking code
            include_rejected: Also return shape matches whose checksum failed,
                ranked after every valid candidate

        Returns:
            RankedCandidates sorted by descending priority; equal priorities
            keep registry order
        """
        normalized = self.normalize(code)
        if not normalized:
            return RankedCandidates(code=normalized)

        prefix_candidates = get_patterns_by_prefix(normalized, self.prefix_index)

        valid: List[CarrierCandidate] = []
        rejected: List[CarrierCandidate] = []
        for pattern in self.patterns:
            candidate = self.evaluate(
                normalized,
                pattern,
                prefix_hit=any(p is pattern for p in prefix_candidates)
            )
            if not candidate.matched:
                continue
            if candidate.checksum_ok:
                valid.append(candidate)
            elif include_rejected:
                rejected.append(candidate)

        valid.sort(key=lambda c: c.pattern.priority, reverse=True)
        rejected.sort(key=lambda c: c.pattern.priority, reverse=True)

        logger.debug(f"Classified {normalized}: {[c.carrier_id for c in valid]}")
        return RankedCandidates(code=normalized, candidates=tuple(valid + rejected))

    def detect(
        self,
        code: str,
        country: Optional[str] = None,
        include_international: bool = True,
        min_confidence: int = 50,
        max_results: int = 5
    ) -> List[CarrierCandidate]:
        """
        Confidence-ranked carrier suggestions

        Unlike classify(), every pattern is scored, so partial matches
        (right length and prefix, wrong format) can still be suggested.

        Args:
            code: Raw tracking code
            country: Restrict to this country when include_international is False
            include_international: Score patterns from every country
            min_confidence: Drop candidates below this confidence
            max_results: Maximum number of suggestions

        Returns:
            Candidates sorted by descending confidence
        """
        normalized = self.normalize(code)
        if not normalized:
            return []

        if include_international or country is None:
            patterns = self.patterns
        else:
            patterns = tuple(p for p in self.patterns if p.country == country)

        prefix_candidates = get_patterns_by_prefix(normalized, self.prefix_index)
        results = []
        for pattern in patterns:
            candidate = self.evaluate(
                normalized,
                pattern,
                prefix_hit=any(p is pattern for p in prefix_candidates)
            )
            if candidate.confidence >= min_confidence:
                results.append(candidate)

        results.sort(key=lambda c: c.confidence, reverse=True)
        return results[:max_results]

    def detect_best(self, code: str, **options) -> Optional[CarrierCandidate]:
        """Most likely carrier by confidence, or None"""
        options["max_results"] = 1
        results = self.detect(code, **options)
        return results[0] if results else None

    def validate(self, code: str, carrier_id: str) -> bool:
        """Check that a code plausibly belongs to a given carrier (confidence >= 70)"""
        pattern = next((p for p in self.patterns if p.id == carrier_id), None)
        if pattern is None:
            return False
        return self.evaluate(code, pattern, prefix_hit=False).confidence >= 70

    def suggest_corrections(self, code: str, **options) -> List[str]:
        """
        Propose rewrites of a mistyped code that detect with high confidence

        Returns:
            Suggestions whose best detection reaches 80 confidence
        """
        if not isinstance(code, str):
            return []

        normalized = self.normalize(code)
        suggestions: List[str] = []

        if code != normalized:
            suggestions.append(normalized)

        if _CORREIOS_WITHOUT_SUFFIX.fullmatch(normalized):
            suggestions.append(normalized + "BR")

        if normalized.endswith("BRBR"):
            suggestions.append(normalized[:-2])

        lookalikes = normalized.translate(_LOOKALIKE_LETTERS)
        if lookalikes != normalized:
            suggestions.append(lookalikes)

        valid_suggestions = []
        for suggestion in dict.fromkeys(suggestions):
            best = self.detect_best(suggestion, **options)
            if best is not None and best.confidence >= 80:
                valid_suggestions.append(suggestion)

        return valid_suggestions

    def validate_tracking_code(self, code: str) -> TrackingValidationResult:
        """Validate a code and report the most likely carrier"""
        result = TrackingValidationResult()

        if not isinstance(code, str) or not code.strip():
            result.errors.append("Tracking code is empty")
            return result

        best = self.detect_best(code)
        if best is None:
            result.errors.append("No carrier pattern matches this tracking code")
            return result

        result.carrier = best.carrier_id
        result.carrier_name = best.pattern.name
        result.confidence = best.confidence
        result.is_valid = best.confidence >= 50

        if not best.matched:
            result.warnings.append(f"Code does not follow the {best.pattern.name} format {best.pattern.format}")
        if not best.checksum_ok:
            result.warnings.append("Check digit does not match")

        return result


_default_classifier = CarrierClassifier()


def classify(code: str, include_rejected: bool = False) -> RankedCandidates:
    """Classify a code against the built-in carrier registry"""
    return _default_classifier.classify(code, include_rejected=include_rejected)


def detect(code: str, **options) -> List[CarrierCandidate]:
    """Confidence-ranked detection against the built-in carrier registry"""
    return _default_classifier.detect(code, **options)


def validate_tracking_code(code: str) -> TrackingValidationResult:
    """Validate a code against the built-in carrier registry"""
    return _default_classifier.validate_tracking_code(code)
