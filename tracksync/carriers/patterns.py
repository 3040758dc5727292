"""
Static registry of carrier tracking-code patterns

Each TrackingPattern describes one carrier's code format. The registry is
loaded once at import time and never mutated; the prefix index derived from
it is rebuilt with build_prefix_index() whenever a different pattern set is
used.
"""
import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Pattern, Tuple, Union

from tracksync.carriers.checksums import (
    express_mod7_checksum,
    postal_mod11_checksum,
    ups_1z_checksum,
)

LengthSpec = Union[int, Tuple[int, int]]

_REGEX_FLAGS = re.IGNORECASE | re.ASCII


@dataclass(frozen=True)
class TrackingPattern:
    """Code format of a single carrier"""
    id: str
    name: str
    country: str
    regex: Tuple[Pattern, ...]
    priority: int  # Higher = more specific
    length: Optional[LengthSpec] = None  # Exact length or (min, max)
    checksum: Optional[Callable[[str], bool]] = None
    prefixes: Tuple[str, ...] = ()
    examples: Tuple[str, ...] = ()
    format: str = ""
    description: str = ""

    def length_ok(self, code: str) -> bool:
        """Check the code length against the declared length constraint"""
        if self.length is None:
            return True
        if isinstance(self.length, int):
            return len(code) == self.length
        minimum, maximum = self.length
        return minimum <= len(code) <= maximum

    def regex_ok(self, code: str) -> bool:
        """A pattern matches when any of its expressions matches the whole code"""
        return any(expression.fullmatch(code) for expression in self.regex)


def _compile(*expressions: str) -> Tuple[Pattern, ...]:
    return tuple(re.compile(expression, _REGEX_FLAGS) for expression in expressions)


def _letter_pairs(first_letters: str) -> Tuple[str, ...]:
    """Every two-letter prefix starting with one of first_letters"""
    return tuple(
        first + second
        for first in first_letters
        for second in "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    )


CARRIER_PATTERNS: Tuple[TrackingPattern, ...] = (
    # Brazil
    TrackingPattern(
        id="correios",
        name="Correios",
        country="BR",
        regex=_compile(r"[A-Z]{2}\d{9}[A-Z]{2}"),
        length=13,
        checksum=postal_mod11_checksum,
        priority=100,
        prefixes=tuple(p for p in _letter_pairs("JPRS") if p not in ("JA", "JB", "JC", "JG")),
        examples=("JD123456789BR", "PA987654321BR", "RE123456789BR", "SS987654321BR"),
        format="AA123456789BR",
        description="Correios tracking code (UPU international format)",
    ),
    TrackingPattern(
        id="jadlog",
        name="Jadlog",
        country="BR",
        regex=_compile(r"\d{14}", r"\d{15}"),
        length=(14, 15),
        priority=70,
        examples=("12345678901234", "123456789012345"),
        format="12345678901234",
        description="Numeric code with 14 or 15 digits",
    ),
    TrackingPattern(
        id="total-express",
        name="Total Express",
        country="BR",
        regex=_compile(r"[A-Z]{3}\d{9,10}", r"TE\d{10}"),
        length=(12, 13),
        priority=75,
        prefixes=("TEX", "TE"),
        examples=("TEX1234567890", "TE1234567890"),
        format="TEX1234567890",
        description="TEX or TE prefix followed by digits",
    ),
    TrackingPattern(
        id="loggi",
        name="Loggi",
        country="BR",
        regex=_compile(
            r"LOG\d{12}",
            r"[A-Z0-9]{8}-[A-Z0-9]{4}-[A-Z0-9]{4}-[A-Z0-9]{4}-[A-Z0-9]{12}",
        ),
        priority=80,
        prefixes=("LOG",),
        examples=("LOG123456789012", "a1b2c3d4-e5f6-7890-abcd-ef1234567890"),
        format="LOG123456789012 or UUID",
        description="LOG prefix followed by 12 digits, or a UUID",
    ),
    TrackingPattern(
        id="azul-cargo",
        name="Azul Cargo",
        country="BR",
        regex=_compile(r"\d{3}-\d{8}", r"\d{11}"),
        length=(11, 12),  # With or without hyphen
        priority=65,
        examples=("123-45678901", "12345678901"),
        format="123-45678901",
        description="Numeric airway bill 123-45678901",
    ),

    # International
    TrackingPattern(
        id="fedex",
        name="FedEx",
        country="US",
        regex=_compile(r"\d{12}", r"\d{15}", r"\d{20}", r"\d{22}"),
        length=(12, 22),
        priority=60,
        examples=("123456789012", "123456789012345", "12345678901234567890"),
        format="12/15/20/22 digits",
        description="Numeric code with 12, 15, 20 or 22 digits",
    ),
    TrackingPattern(
        id="ups",
        name="UPS",
        country="US",
        regex=_compile(r"1Z[A-Z0-9]{16}", r"\d{9}", r"T\d{10}"),
        length=(9, 18),
        checksum=ups_1z_checksum,
        priority=95,
        prefixes=("1Z", "T"),
        examples=("1Z999AA10123456784", "123456789", "T1234567890"),
        format="1Z999AA10123456784",
        description="1Z followed by 16 alphanumeric characters",
    ),
    TrackingPattern(
        id="dhl",
        name="DHL",
        country="DE",
        regex=_compile(r"\d{10}", r"\d{11}", r"[A-Z]{3}\d{7}"),
        length=(10, 11),
        checksum=express_mod7_checksum,
        priority=85,
        examples=("1234567895", "12345678901", "JJD0123456"),
        format="1234567890",
        description="Numeric waybill with 10 or 11 digits",
    ),
    TrackingPattern(
        id="usps",
        name="USPS",
        country="US",
        regex=_compile(r"[A-Z]{2}\d{9}US", r"\d{20}", r"\d{22}", r"94\d{20}"),
        length=(13, 22),
        priority=90,
        prefixes=("EA", "EB", "EC", "ED", "EE", "CP", "RA", "RB", "94"),
        examples=("EA123456789US", "9400111899223344556677", "12345678901234567890"),
        format="EA123456789US or 9400...",
        description="USPS international or Priority Mail code",
    ),
    TrackingPattern(
        id="china-post",
        name="China Post",
        country="CN",
        regex=_compile(r"[A-Z]{2}\d{9}[A-Z]{2}", r"[A-Z]{2}\d{9}CN"),
        length=13,
        priority=70,
        prefixes=tuple("L" + letter for letter in "YZPONMKJIHGFEDCBA"),
        examples=("LY123456789CN", "LZ987654321CN"),
        format="LY123456789CN",
        description="China Post international code",
    ),
    TrackingPattern(
        id="aramex",
        name="Aramex",
        country="AE",
        regex=_compile(r"\d{11}", r"\d{13}"),
        length=(11, 13),
        priority=55,
        examples=("12345678901", "1234567890123"),
        format="12345678901",
        description="Numeric code with 11 or 13 digits",
    ),
    TrackingPattern(
        id="tnt",
        name="TNT",
        country="NL",
        regex=_compile(r"[A-Z]{2}\d{9}", r"\d{9}"),
        length=(9, 11),
        priority=65,
        examples=("GE123456789", "123456789"),
        format="GE123456789",
        description="Two letters and 9 digits, or 9 digits",
    ),
    TrackingPattern(
        id="correios-portugal",
        name="CTT Portugal",
        country="PT",
        regex=_compile(r"[A-Z]{2}\d{9}PT"),
        length=13,
        priority=80,
        prefixes=("RR", "RA", "RB", "RC", "RD", "RE", "RF", "RG", "RH", "RI"),
        examples=("RR123456789PT", "RA987654321PT"),
        format="RR123456789PT",
        description="CTT Portugal international code",
    ),

    # Marketplaces
    TrackingPattern(
        id="mercado-envios",
        name="Mercado Envios",
        country="BR",
        regex=_compile(r"ME\d{12}", r"[A-Z]{2}\d{9}[A-Z]{2}"),  # Sometimes ships via Correios
        priority=75,
        prefixes=("ME",),
        examples=("ME123456789012", "PA123456789BR"),
        format="ME123456789012",
        description="Mercado Envios code or Correios code",
    ),
    TrackingPattern(
        id="shopee",
        name="Shopee",
        country="SG",
        regex=_compile(r"SPXBR\d{10,12}", r"[A-Z]{2}\d{9}[A-Z]{2}"),
        priority=70,
        prefixes=("SPXBR", "SPX"),
        examples=("SPXBR1234567890", "PA123456789BR"),
        format="SPXBR1234567890",
        description="Shopee Express code or Correios code",
    ),
)


def build_prefix_index(patterns: Iterable[TrackingPattern]) -> Dict[str, List[TrackingPattern]]:
    """
    Build the prefix -> patterns lookup

    Patterns are appended in registry order, so lookups preserve it.
    """
    index: Dict[str, List[TrackingPattern]] = {}
    for pattern in patterns:
        for prefix in pattern.prefixes:
            index.setdefault(prefix.upper(), []).append(pattern)
    return index


CARRIER_PREFIX_INDEX: Dict[str, List[TrackingPattern]] = build_prefix_index(CARRIER_PATTERNS)


def get_patterns_by_prefix(
    code: str,
    index: Optional[Dict[str, List[TrackingPattern]]] = None
) -> List[TrackingPattern]:
    """Patterns registered under the 3- or 2-character prefix of code"""
    index = CARRIER_PREFIX_INDEX if index is None else index
    prefix3 = code[:3].upper()
    prefix2 = code[:2].upper()

    patterns: List[TrackingPattern] = []
    patterns.extend(index.get(prefix3, []))
    patterns.extend(index.get(prefix2, []))
    return patterns


def get_carriers_by_country(country: str) -> List[TrackingPattern]:
    """All registry patterns of a country"""
    return [p for p in CARRIER_PATTERNS if p.country == country]


def get_carrier_by_id(carrier_id: str) -> Optional[TrackingPattern]:
    """Registry pattern by identifier"""
    for pattern in CARRIER_PATTERNS:
        if pattern.id == carrier_id:
            return pattern
    return None
