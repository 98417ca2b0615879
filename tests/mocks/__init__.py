"""Mock implementations for testing."""

from .accounts import (
    AUTOMATION_BASE,
    AUTOMATION_MORPH,
    INVOICE_A,
    INVOICE_B,
    INVOICE_C,
    MERCHANT,
    OWNER,
    PAYER,
    PAYROLL_BASE,
    PAYROLL_MORPH,
    STRANGER,
)
from .chain import (
    EMPTY_INVOICE,
    ZERO,
    FakeAutomation,
    FakeChain,
    FakeERC20,
    FakePayroll,
    FakeWeb3,
    ProviderFactory,
    SentTransaction,
)

__all__ = [
    "AUTOMATION_BASE",
    "AUTOMATION_MORPH",
    "INVOICE_A",
    "INVOICE_B",
    "INVOICE_C",
    "MERCHANT",
    "OWNER",
    "PAYER",
    "PAYROLL_BASE",
    "PAYROLL_MORPH",
    "STRANGER",
    "EMPTY_INVOICE",
    "ZERO",
    "FakeAutomation",
    "FakeChain",
    "FakeERC20",
    "FakePayroll",
    "FakeWeb3",
    "ProviderFactory",
    "SentTransaction",
]
