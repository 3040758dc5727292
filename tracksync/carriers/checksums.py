"""
Check-digit predicates for carrier tracking codes

Every predicate answers "is this code disqualified by its check digit?"
in the negative: a code that does not have the shape the algorithm expects
returns True, so a checksum can only reject codes it actually applies to.
"""
import re
import string

POSTAL_MOD11_WEIGHTS = (8, 6, 4, 2, 3, 5, 9, 7)

_DIGIT_RUN = re.compile(r"\d+", re.ASCII)
_CHECK_BEFORE_SUFFIX = re.compile(r"(\d)\D{2}$", re.ASCII)
_TEN_DIGITS = re.compile(r"\d{10}", re.ASCII)


def postal_mod11_checksum(code: str) -> bool:
    """
    Modulo-11 check used by domestic postal codes

    The first run of digits must be exactly 8 long. The digits are weighted
    with POSTAL_MOD11_WEIGHTS, summed and reduced mod 11; remainder 0 maps
    to 5, remainder 1 to 0, anything else to 11 - remainder. The result is
    compared with the digit right before the two-letter suffix.
    """
    digits = _DIGIT_RUN.search(code)
    if not digits or len(digits.group()) != 8:
        return True

    embedded = _CHECK_BEFORE_SUFFIX.search(code)
    if not embedded:
        return True

    total = sum(int(d) * w for d, w in zip(digits.group(), POSTAL_MOD11_WEIGHTS))
    remainder = total % 11
    if remainder == 0:
        check_digit = 5
    elif remainder == 1:
        check_digit = 0
    else:
        check_digit = 11 - remainder

    return check_digit == int(embedded.group(1))


def express_mod7_checksum(code: str) -> bool:
    """
    Modulo-7 check for 10-digit express waybills

    Digits 1..9 are weighted by their 1-based position; the sum mod 7 must
    equal the 10th digit.
    """
    if not _TEN_DIGITS.fullmatch(code):
        return True

    total = sum(int(d) * position for position, d in enumerate(code[:9], start=1))
    return total % 7 == int(code[9])


def ups_1z_checksum(code: str) -> bool:
    """
    Luhn-like check for 18-character 1Z codes

    Drops the '1Z' prefix and the trailing check character, then walks the
    remaining characters alternating weights 1 and 2. Letters count as
    ord(char) - 63.
    """
    if len(code) != 18 or not code.startswith("1Z"):
        return True

    body, check_char = code[2:-1], code[-1]

    total = 0
    is_odd = True
    for char in body:
        value = int(char) if char in string.digits else ord(char) - 63
        total += value if is_odd else value * 2
        is_odd = not is_odd

    calculated = (10 - total % 10) % 10
    return str(calculated) == check_char
