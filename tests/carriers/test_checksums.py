import pytest

from tracksync.carriers.checksums import (
    express_mod7_checksum,
    postal_mod11_checksum,
    ups_1z_checksum,
)


def test_mod11_accepts_matching_check_digit():
    # 12345679 -> weighted sum 211, 211 % 11 == 2, check digit 9
    assert postal_mod11_checksum("AB12345679CD")


@pytest.mark.parametrize("code", [
    "AB22345679CD",  # first digit changed
    "AB12346679CD",  # fifth digit changed
    "AB12345678CD",  # check digit changed
])
def test_mod11_rejects_single_digit_mutations(code):
    assert not postal_mod11_checksum(code)


@pytest.mark.parametrize("code", [
    "JD123456789BR",  # nine-digit body, outside the eight-digit shape
    "AB1234CD",
    "NODIGITS",
    "",
])
def test_mod11_does_not_apply_to_other_shapes(code):
    assert postal_mod11_checksum(code)


def test_mod11_remainder_mapping():
    # 80000005 -> 64 + 35 == 99, remainder 0 -> check digit 5
    assert postal_mod11_checksum("AA80000005BR")
    # 70000000 -> 56, remainder 1 -> check digit 0
    assert postal_mod11_checksum("AA70000000BR")
    assert not postal_mod11_checksum("AA80000000BR")


def test_mod7_accepts_matching_check_digit():
    # 1*1 + 2*2 + ... + 9*9 == 285, 285 % 7 == 5
    assert express_mod7_checksum("1234567895")


@pytest.mark.parametrize("code", [
    "2234567895",
    "1234567896",
    "1334567895",
])
def test_mod7_rejects_single_digit_mutations(code):
    assert not express_mod7_checksum(code)


@pytest.mark.parametrize("code", ["12345678901", "JJD0123456", "123"])
def test_mod7_only_applies_to_ten_digits(code):
    assert express_mod7_checksum(code)


def test_ups_accepts_valid_code():
    assert ups_1z_checksum("1Z999AA10123456784")


def test_ups_rejects_wrong_check_character():
    assert not ups_1z_checksum("1Z999AA10123456785")
    assert not ups_1z_checksum("1Z999AA1012345678X")


@pytest.mark.parametrize("code", ["123456789", "T1234567890", "1Z999AA1012345678"])
def test_ups_only_applies_to_18_char_1z_codes(code):
    assert ups_1z_checksum(code)
