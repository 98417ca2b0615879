"""Tests for basepay.evm.utils - address, amount and hash helpers."""

from decimal import Decimal

import pytest

from basepay.evm.constants import USDC_BASE_SEPOLIA, ZERO_ADDRESS
from basepay.evm.utils import (
    create_invoice_hash,
    format_amount,
    format_display_amount,
    hex_to_bytes,
    is_valid_address,
    is_valid_hash,
    is_zero_address,
    normalize_address,
    parse_amount,
    parse_decimal,
    same_address,
    to_tx_hash,
)


class TestAddresses:
    """Address normalization and comparison."""

    def test_should_checksum_lowercase_address(self):
        assert normalize_address(USDC_BASE_SEPOLIA.lower()) == USDC_BASE_SEPOLIA

    def test_should_strip_whitespace(self):
        assert normalize_address(f"  {USDC_BASE_SEPOLIA}  ") == USDC_BASE_SEPOLIA

    def test_should_reject_short_address(self):
        with pytest.raises(ValueError, match="Invalid address"):
            normalize_address("0x1234")

    def test_is_valid_address(self):
        assert is_valid_address(USDC_BASE_SEPOLIA)
        assert not is_valid_address("not-an-address")
        assert not is_valid_address(None)

    def test_zero_address_detection(self):
        assert is_zero_address(ZERO_ADDRESS)
        assert is_zero_address(None)
        assert is_zero_address("")
        assert not is_zero_address(USDC_BASE_SEPOLIA)

    def test_same_address_ignores_case(self):
        assert same_address(USDC_BASE_SEPOLIA, USDC_BASE_SEPOLIA.lower())
        assert not same_address(USDC_BASE_SEPOLIA, ZERO_ADDRESS)
        assert not same_address(None, USDC_BASE_SEPOLIA)


class TestParseAmount:
    """Decimal string to smallest unit."""

    def test_should_scale_by_decimals(self):
        assert parse_amount("1.5", 6) == 1_500_000
        assert parse_amount("1", 18) == 10**18
        assert parse_amount("0.000001", 6) == 1

    @pytest.mark.parametrize("amount", ["", "   ", "abc", "0", "-1", "NaN"])
    def test_should_reject_invalid_amounts(self, amount):
        with pytest.raises(ValueError):
            parse_amount(amount, 6)

    def test_should_reject_excess_precision(self):
        with pytest.raises(ValueError, match="decimal places"):
            parse_amount("1.0000001", 6)

    def test_should_keep_every_digit_of_long_amounts(self):
        assert parse_amount("12345678901.234567890123456789", 18) == 12345678901234567890123456789
        assert parse_amount("99999999999999999999.999999", 6) == 99999999999999999999999999

    def test_parse_decimal_checks_shape_only(self):
        assert parse_decimal(" 1.0000001 ") == Decimal("1.0000001")
        with pytest.raises(ValueError, match="required"):
            parse_decimal("")


class TestFormatting:
    """Smallest unit to display strings."""

    def test_display_six_decimal_token_uses_two_places(self):
        assert format_display_amount(1_000_000, 6) == "1.00"
        assert format_display_amount(1_234_567, 6) == "1.23"

    def test_display_rounds_half_up(self):
        assert format_display_amount(1_005_000, 6) == "1.01"

    def test_display_other_tokens_use_four_places(self):
        assert format_display_amount(10**18, 18) == "1.0000"
        assert format_display_amount(123_456_789_000_000_000, 18) == "0.1235"

    def test_format_amount_trims_trailing_zeros(self):
        assert format_amount(1_500_000, 6) == "1.5"
        assert format_amount(10_000_000, 6) == "10"
        assert format_amount(0, 6) == "0"


class TestHashes:
    """Invoice hash generation and hex helpers."""

    def test_generated_hashes_are_unique_and_valid(self):
        first, second = create_invoice_hash(), create_invoice_hash()
        assert first != second
        assert is_valid_hash(first)
        assert is_valid_hash(second)

    def test_is_valid_hash_rejects_malformed_values(self):
        assert not is_valid_hash("0x12")
        assert not is_valid_hash("a1" * 32)
        assert not is_valid_hash("0x" + "zz" * 32)

    def test_hex_to_bytes_handles_prefix(self):
        assert hex_to_bytes("0x0102") == b"\x01\x02"
        assert hex_to_bytes("0102") == b"\x01\x02"

    def test_to_tx_hash_accepts_bytes_and_hex(self):
        assert to_tx_hash(b"\x01" * 32) == "0x" + "01" * 32
        assert to_tx_hash("0x" + "ab" * 32) == "0x" + "ab" * 32
