"""EVM helpers shared by the BasePay interaction layer."""

from .constants import (
    AUTOMATION_ABI,
    DEFAULT_CHAIN_ID,
    ERC20_ABI,
    NATIVE_DECIMALS,
    PAYROLL_ABI,
    RPC_URLS,
    TX_STATUS_FAILED,
    TX_STATUS_SUCCESS,
    ZERO_ADDRESS,
)
from .utils import (
    bytes_to_hex,
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
    to_decimal,
    to_tx_hash,
)

__all__ = [
    "AUTOMATION_ABI",
    "DEFAULT_CHAIN_ID",
    "ERC20_ABI",
    "NATIVE_DECIMALS",
    "PAYROLL_ABI",
    "RPC_URLS",
    "TX_STATUS_FAILED",
    "TX_STATUS_SUCCESS",
    "ZERO_ADDRESS",
    "bytes_to_hex",
    "create_invoice_hash",
    "format_amount",
    "format_display_amount",
    "hex_to_bytes",
    "is_valid_address",
    "is_valid_hash",
    "is_zero_address",
    "normalize_address",
    "parse_amount",
    "parse_decimal",
    "same_address",
    "to_decimal",
    "to_tx_hash",
]
