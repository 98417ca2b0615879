"""EVM utility functions for address, amount, and hash handling."""

import os
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext

from eth_utils import is_address, keccak, to_checksum_address
from hexbytes import HexBytes

from .constants import ZERO_ADDRESS


def normalize_address(address: str) -> str:
    """Normalize Ethereum address to checksummed format.

    Accepts all-lowercase, all-uppercase, or correctly checksummed (EIP-55)
    addresses. Mixed-case input with a wrong checksum is rejected.

    Args:
        address: Ethereum address with 0x prefix.

    Returns:
        Checksummed address.

    Raises:
        ValueError: If address is invalid.
    """
    candidate = address.strip()
    if not is_address(candidate):
        raise ValueError(f"Invalid address: {address}")
    return to_checksum_address(candidate)


def is_valid_address(address: str) -> bool:
    """Check if string is a valid (EIP-55 compatible) Ethereum address.

    Args:
        address: String to check.

    Returns:
        True if valid Ethereum address.
    """
    return isinstance(address, str) and is_address(address.strip())


def is_zero_address(address: str | None) -> bool:
    """Check whether an address is empty or the zero address."""
    if not address:
        return True
    return address.lower() == ZERO_ADDRESS


def same_address(a: str | None, b: str | None) -> bool:
    """Case-insensitive address comparison."""
    if not a or not b:
        return False
    return a.lower() == b.lower()


def parse_decimal(amount: str) -> Decimal:
    """Check that a user amount is a positive decimal number.

    Args:
        amount: Decimal string (e.g., "1.50").

    Returns:
        The amount as an exact Decimal.

    Raises:
        ValueError: If amount is empty, not numeric, or not positive.
    """
    if amount is None or not str(amount).strip():
        raise ValueError("Amount is required")
    try:
        d = Decimal(str(amount).strip())
    except InvalidOperation as e:
        raise ValueError(f"Invalid amount: {amount}") from e
    if not d.is_finite() or d <= 0:
        raise ValueError(f"Invalid amount: {amount}")
    return d


def parse_amount(amount: str, decimals: int) -> int:
    """Convert decimal string to smallest unit.

    Args:
        amount: Decimal string (e.g., "1.50").
        decimals: Token decimals.

    Returns:
        Amount in smallest unit.

    Raises:
        ValueError: If amount is empty, not numeric, not positive, or has
            more fractional digits than the token supports.
    """
    d = parse_decimal(amount)
    # Precision must cover every digit of the scaled value
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, len(d.as_tuple().digits) + decimals + 2)
        scaled = d.scaleb(decimals)
        if scaled != scaled.to_integral_value():
            raise ValueError(f"Amount {amount} has more than {decimals} decimal places")
        return int(scaled)


def format_amount(amount: int, decimals: int) -> str:
    """Convert smallest unit to decimal string.

    Args:
        amount: Amount in smallest unit.
        decimals: Token decimals.

    Returns:
        Decimal string.
    """
    d = Decimal(amount)
    divisor = Decimal(10**decimals)
    return format((d / divisor).normalize(), "f") if amount else "0"


def to_decimal(amount: int, decimals: int) -> Decimal:
    """Scale a smallest-unit amount to a Decimal value."""
    return Decimal(amount) / Decimal(10**decimals)


def format_display_amount(amount: int, decimals: int) -> str:
    """Format an amount for display.

    Six-decimal stablecoins show two places, everything else four.

    Args:
        amount: Amount in smallest unit.
        decimals: Token decimals.

    Returns:
        Fixed-point string, e.g. "1.00".
    """
    places = 2 if decimals == 6 else 4
    quantum = Decimal(1).scaleb(-places)
    return str(to_decimal(amount, decimals).quantize(quantum, rounding=ROUND_HALF_UP))


def create_invoice_hash() -> str:
    """Generate a unique invoice identifier (keccak256 of 32 random bytes).

    Returns:
        Hex string with 0x prefix.
    """
    return bytes_to_hex(keccak(os.urandom(32)))


def is_valid_hash(value: str) -> bool:
    """Check if string is a 0x-prefixed 32-byte hex value."""
    if not isinstance(value, str) or not value.startswith("0x") or len(value) != 66:
        return False
    try:
        bytes.fromhex(value[2:])
        return True
    except ValueError:
        return False


def hex_to_bytes(hex_str: str) -> bytes:
    """Convert hex string to bytes (handles 0x prefix).

    Args:
        hex_str: Hex string with optional 0x prefix.

    Returns:
        Bytes.
    """
    return bytes.fromhex(hex_str.removeprefix("0x"))


def bytes_to_hex(data: bytes) -> str:
    """Convert bytes to hex string with 0x prefix.

    Args:
        data: Bytes to convert.

    Returns:
        Hex string with 0x prefix.
    """
    return "0x" + bytes(data).hex()


def to_tx_hash(value: bytes | str) -> str:
    """Render a transaction hash returned by web3 as 0x-prefixed hex."""
    return HexBytes(value).to_0x_hex()
