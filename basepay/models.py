"""Data model for networks, invoices, scheduled payments and explorer data."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .evm.constants import NATIVE_DECIMALS, TX_STATUS_SUCCESS
from .evm.utils import bytes_to_hex, is_zero_address, same_address


class TokenInfo(BaseModel):
    """Token metadata for one network."""

    address: str
    symbol: str
    decimals: int
    logo_url: str = ""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    @field_validator("decimals")
    def validate_decimals(cls, v):
        if v < 0 or v > 255:
            raise ValueError("decimals must be between 0 and 255")
        return v

    @property
    def is_native(self) -> bool:
        return is_zero_address(self.address)


class NetworkConfig(BaseModel):
    """Static configuration of a supported network."""

    chain_id: int
    name: str
    tokens: tuple[TokenInfo, ...]
    invoice_contract: Optional[str] = None
    automation_contract: Optional[str] = None
    rpc_url: Optional[str] = None
    explorer_url: Optional[str] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    @property
    def token(self) -> TokenInfo:
        """Primary (first non-native) token, or the first token listed."""
        for token in self.tokens:
            if not token.is_native:
                return token
        return self.tokens[0]

    @property
    def contract_address(self) -> Optional[str]:
        """Invoice contract address (alias kept for display code)."""
        return self.invoice_contract

    def token_for(self, address: str) -> Optional[TokenInfo]:
        """Look up a token by address (case-insensitive)."""
        for token in self.tokens:
            if same_address(token.address, address):
                return token
        return None

    def decimals_for(self, address: str) -> int:
        """Configured decimals for a token, 18 for the native asset or unknown tokens."""
        if is_zero_address(address):
            return NATIVE_DECIMALS
        token = self.token_for(address)
        return token.decimals if token else NATIVE_DECIMALS


class InvoiceStatus(str, Enum):
    PAID = "paid"
    EXPIRED = "expired"
    PENDING = "pending"


class InvoiceRecord(BaseModel):
    """An invoice as stored by the payroll contract."""

    merchant: str
    token: str
    amount: int
    due_by: int = 0
    is_paid: bool = False
    memo: str = ""
    logo_uri: str = ""
    description: str = ""
    paid_at: int = 0
    hash: str

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        frozen=True,
    )

    @field_validator("amount", "due_by", "paid_at")
    def validate_unsigned(cls, v):
        if v < 0:
            raise ValueError("value must be an unsigned integer")
        return v

    @classmethod
    def from_tuple(cls, raw: Sequence[Any], invoice_hash: str | bytes) -> "InvoiceRecord":
        """Map the positional ``invoices(bytes32)`` result to named fields.

        Field order: merchant, token, amount, dueBy, isPaid, memo, logoURI,
        description, paidAt.
        """
        if len(raw) != 9:
            raise ValueError(f"Expected 9 invoice fields, got {len(raw)}")
        if isinstance(invoice_hash, (bytes, bytearray)):
            invoice_hash = bytes_to_hex(invoice_hash)
        return cls(
            merchant=raw[0],
            token=raw[1],
            amount=int(raw[2]),
            due_by=int(raw[3]),
            is_paid=bool(raw[4]),
            memo=raw[5],
            logo_uri=raw[6],
            description=raw[7],
            paid_at=int(raw[8]),
            hash=invoice_hash.lower(),
        )

    def to_tuple(self) -> tuple:
        """Positional form, in contract field order."""
        return (
            self.merchant,
            self.token,
            self.amount,
            self.due_by,
            self.is_paid,
            self.memo,
            self.logo_uri,
            self.description,
            self.paid_at,
        )

    @property
    def exists(self) -> bool:
        return not is_zero_address(self.merchant)

    @property
    def is_native(self) -> bool:
        return is_zero_address(self.token)

    def is_expired(self, now: float) -> bool:
        return self.due_by != 0 and now > self.due_by

    def status(self, now: float) -> InvoiceStatus:
        if self.is_paid:
            return InvoiceStatus.PAID
        if self.is_expired(now):
            return InvoiceStatus.EXPIRED
        return InvoiceStatus.PENDING


class ScheduledPayment(BaseModel):
    """A payment held by the automation contract."""

    id: int
    creator: str
    total_amount: int
    recipients: tuple[str, ...] = ()
    amount_per_recipient: int
    scheduled_time: int
    executed: bool = False

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        frozen=True,
    )

    @classmethod
    def from_tuple(
        cls, payment_id: int, raw: Sequence[Any], recipients: Sequence[str] = ()
    ) -> "ScheduledPayment":
        """Map ``getPaymentDetails`` (creator, totalAmount, amountPerRecipient,
        scheduledTime, executed) plus ``getPaymentRecipients``."""
        if len(raw) != 5:
            raise ValueError(f"Expected 5 payment fields, got {len(raw)}")
        return cls(
            id=int(payment_id),
            creator=raw[0],
            total_amount=int(raw[1]),
            recipients=tuple(recipients),
            amount_per_recipient=int(raw[2]),
            scheduled_time=int(raw[3]),
            executed=bool(raw[4]),
        )

    def is_overdue(self, now: float) -> bool:
        return now > self.scheduled_time


class AuthorizationStatus(BaseModel):
    """Execution rights of an account on the automation contract."""

    is_owner: bool = False
    is_authorized_controller: bool = False

    model_config = ConfigDict(frozen=True)

    @property
    def can_execute_any(self) -> bool:
        return self.is_owner or self.is_authorized_controller


class AnalyticsBar(BaseModel):
    """One bucket of the paid-invoice chart."""

    label: str
    value: Decimal
    date: dt.date

    model_config = ConfigDict(frozen=True)


class InvoiceSummary(BaseModel):
    total: int
    active: int
    paid: int


class TxType(str, Enum):
    CREATED_INVOICE = "Created Invoice"
    PAID_INVOICE = "Paid Invoice"
    RECEIVED = "Received"
    SENT = "Sent"
    OTHER = "Other"


class ExplorerTransaction(BaseModel):
    """An entry of the block explorer's ``txlist`` response."""

    block_number: str = Field(alias="blockNumber")
    time_stamp: str = Field(alias="timeStamp")
    hash: str
    from_: str = Field(alias="from")
    to: Optional[str] = None
    value: str = "0"
    input: str = "0x"
    is_error: str = Field("0", alias="isError")
    gas_used: Optional[str] = Field(None, alias="gasUsed")
    contract_address: Optional[str] = Field(None, alias="contractAddress")

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
    )

    @property
    def timestamp(self) -> int:
        return int(self.time_stamp)

    @property
    def failed(self) -> bool:
        return self.is_error == "1"


class TransactionReceipt(BaseModel):
    """Mined transaction outcome."""

    tx_hash: str
    status: int
    block_number: Optional[int] = None

    model_config = ConfigDict(frozen=True)

    @property
    def succeeded(self) -> bool:
        return self.status == TX_STATUS_SUCCESS
