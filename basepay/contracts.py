"""Typed facade over the payroll (invoice) and payment-automation contracts."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Sequence

from .errors import (
    BasePayError,
    ContractNotFoundError,
    ExecutionRevertedError,
    InvoiceNotFoundError,
    MissingContractConfigError,
    ValidationError,
    classify_chain_error,
)
from .evm.constants import AUTOMATION_ABI, PAYROLL_ABI, TX_STATUS_FAILED
from .evm.utils import (
    hex_to_bytes,
    is_valid_hash,
    normalize_address,
    to_tx_hash,
)
from .models import InvoiceRecord, NetworkConfig, ScheduledPayment, TransactionReceipt
from .networks import NetworkRegistry
from .provider import ProviderBinding, ProviderResolver, WalletContext

logger = logging.getLogger(__name__)


# ============================================================================
# Base
# ============================================================================


class BoundContract:
    """A contract ABI bound to an address through a ``ProviderBinding``.

    Calls are made through ``binding.provider``; transactions are sent through
    ``binding.wallet_provider`` so the wallet always signs.
    """

    abi: list[dict[str, Any]] = []

    def __init__(self, binding: ProviderBinding, address: str, network_name: str = "") -> None:
        self.binding = binding
        try:
            self.address = normalize_address(address)
        except ValueError as e:
            raise ValidationError(f"Invalid contract address: {address}") from e
        self.network_name = network_name
        self._reader = binding.provider.eth.contract(address=self.address, abi=self.abi)
        self._writer = binding.wallet_provider.eth.contract(address=self.address, abi=self.abi)

    async def call(self, function_name: str, *args: Any) -> Any:
        """Invoke a view function.

        Raises:
            BasePayError: Classified RPC / revert failure.
        """
        try:
            return await getattr(self._reader.functions, function_name)(*args).call()
        except Exception as e:
            raise classify_chain_error(e) from e

    async def ensure_deployed(self) -> None:
        """Raise ContractNotFoundError when there is no code at the address."""
        try:
            code = await self.binding.provider.eth.get_code(self.address)
        except Exception as e:
            raise classify_chain_error(e) from e
        if len(bytes(code)) == 0:
            raise ContractNotFoundError(self.address, self.network_name)

    async def submit(
        self,
        method_name: str,
        args: Sequence[Any],
        sender: str,
        value: Optional[int] = None,
    ) -> str:
        """Send a state-changing call through the wallet provider.

        Args:
            method_name: ABI function name.
            args: Positional arguments in ABI order.
            sender: Account that signs the transaction.
            value: Native value to attach, in wei.

        Returns:
            Transaction hash (0x-prefixed hex).

        Raises:
            BasePayError: Classified failure; the wallet / RPC code is kept on
                ``code`` and the original exception as ``__cause__``.
        """
        tx: dict[str, Any] = {"from": normalize_address(sender)}
        if value:
            tx["value"] = value
        try:
            tx_hash = await getattr(self._writer.functions, method_name)(*args).transact(tx)
        except Exception as e:
            error = classify_chain_error(e)
            logger.warning("%s on %s failed: %s", method_name, self.address, error)
            raise error from e

        tx_hash_hex = to_tx_hash(tx_hash)
        logger.info("%s submitted: %s", method_name, tx_hash_hex)
        return tx_hash_hex

    async def wait_for_receipt(self, tx_hash: str) -> TransactionReceipt:
        """Wait until a transaction is mined.

        Raises:
            ExecutionRevertedError: If the receipt reports status 0.
        """
        try:
            raw = await self.binding.provider.eth.wait_for_transaction_receipt(tx_hash)
        except Exception as e:
            raise classify_chain_error(e) from e

        receipt = TransactionReceipt(
            tx_hash=tx_hash,
            status=int(raw["status"]),
            block_number=raw.get("blockNumber"),
        )
        if receipt.status == TX_STATUS_FAILED:
            raise ExecutionRevertedError(f"Transaction {tx_hash} reverted")
        logger.debug("Transaction %s confirmed in block %s", tx_hash, receipt.block_number)
        return receipt


def _invoice_key(invoice_hash: str) -> bytes:
    if not is_valid_hash(invoice_hash):
        raise ValidationError(f"Invalid invoice hash: {invoice_hash}")
    return hex_to_bytes(invoice_hash)


# ============================================================================
# Payroll (invoices)
# ============================================================================


class PayrollContract(BoundContract):
    """Invoice creation, payment and lookup."""

    abi = PAYROLL_ABI

    @classmethod
    def for_network(cls, binding: ProviderBinding, network: NetworkConfig) -> "PayrollContract":
        """Bind the network's invoice contract.

        Raises:
            MissingContractConfigError: If no invoice contract is configured.
        """
        if not network.invoice_contract:
            raise MissingContractConfigError(network.name, "invoice")
        return cls(binding, network.invoice_contract, network.name)

    async def read_invoice(self, invoice_hash: str) -> Optional[InvoiceRecord]:
        """Read ``invoices(hash)``; None when the merchant is the zero address."""
        raw = await self.call("invoices", _invoice_key(invoice_hash))
        record = InvoiceRecord.from_tuple(raw, invoice_hash)
        return record if record.exists else None

    async def get_invoices_by_merchant(self, merchant: str) -> list[str]:
        hashes = await self.call("getInvoicesByMerchant", normalize_address(merchant))
        return [to_tx_hash(h).lower() for h in hashes]

    async def list_merchant_invoices(self, merchant: str) -> list[InvoiceRecord]:
        """Every existing invoice created by ``merchant``."""
        hashes = await self.get_invoices_by_merchant(merchant)
        records = await asyncio.gather(*(self.read_invoice(h) for h in hashes))
        return [r for r in records if r is not None]

    async def create_invoice(
        self,
        sender: str,
        invoice_hash: str,
        token: str,
        amount: int,
        valid_for_seconds: int = 0,
        memo: str = "",
        logo_uri: str = "",
        description: str = "",
    ) -> str:
        return await self.submit(
            "createInvoice",
            [
                _invoice_key(invoice_hash),
                normalize_address(token),
                amount,
                valid_for_seconds,
                memo,
                logo_uri,
                description,
            ],
            sender,
        )

    async def pay_invoice(self, sender: str, invoice: InvoiceRecord) -> str:
        """Pay an invoice; native invoices attach ``amount`` as value."""
        value = invoice.amount if invoice.is_native else 0
        return await self.submit("payInvoice", [_invoice_key(invoice.hash)], sender, value=value)


# ============================================================================
# Automation (scheduled payments)
# ============================================================================


class AutomationContract(BoundContract):
    """Scheduled and immediate multi-recipient token payments."""

    abi = AUTOMATION_ABI

    @classmethod
    def for_network(cls, binding: ProviderBinding, network: NetworkConfig) -> "AutomationContract":
        """Bind the network's automation contract.

        Raises:
            MissingContractConfigError: If no automation contract is configured.
        """
        if not network.automation_contract:
            raise MissingContractConfigError(network.name, "automation")
        return cls(binding, network.automation_contract, network.name)

    async def owner(self) -> str:
        return await self.call("owner")

    async def is_authorized_controller(self, account: str) -> bool:
        return bool(await self.call("authorizedControllers", normalize_address(account)))

    async def next_payment_id(self) -> int:
        return int(await self.call("nextPaymentId"))

    async def read_payment_details(self, payment_id: int) -> ScheduledPayment:
        """Read ``getPaymentDetails`` and ``getPaymentRecipients`` for one id."""
        details, recipients = await asyncio.gather(
            self.call("getPaymentDetails", payment_id),
            self.call("getPaymentRecipients", payment_id),
        )
        return ScheduledPayment.from_tuple(payment_id, details, recipients)

    async def schedule_payment_with_token(
        self,
        sender: str,
        token: str,
        total_amount: int,
        recipients: Sequence[str],
        scheduled_time: int,
    ) -> str:
        return await self.submit(
            "schedulePaymentWithToken",
            [normalize_address(token), total_amount, [normalize_address(r) for r in recipients], scheduled_time],
            sender,
        )

    async def execute_payment_now_with_token(
        self,
        sender: str,
        token: str,
        total_amount: int,
        recipients: Sequence[str],
    ) -> str:
        return await self.submit(
            "executePaymentNowWithToken",
            [normalize_address(token), total_amount, [normalize_address(r) for r in recipients]],
            sender,
        )

    async def execute_scheduled_payment(self, sender: str, payment_id: int) -> str:
        return await self.submit("executeScheduledPayment", [payment_id], sender)

    async def add_controller(self, sender: str, controller: str) -> str:
        return await self.submit("addController", [normalize_address(controller)], sender)


# ============================================================================
# Cross-network invoice lookup
# ============================================================================


async def lookup_invoice(
    invoice_hash: str,
    wallet: WalletContext,
    registry: NetworkRegistry,
    resolver: ProviderResolver,
) -> InvoiceRecord:
    """Find an invoice on the wallet's network, explaining misses.

    When the active network has no such invoice, every other registered
    network with an invoice contract is queried through its direct RPC
    endpoint so the error can say where the invoice lives.

    Args:
        invoice_hash: 0x-prefixed 32-byte invoice hash.
        wallet: Wallet connection state.
        registry: Network registry.
        resolver: Provider resolver for the active network.

    Returns:
        The invoice on the active network.

    Raises:
        InvoiceNotFoundError: With ``found_on`` set to the network holding the
            invoice, or None when no registered network has it.
        NetworkMismatchError: If no usable provider exists for the active network.
        MissingContractConfigError: If the active network has no invoice contract.
    """
    _invoice_key(invoice_hash)
    network = registry.resolve(wallet.chain_id)
    binding = await resolver.get_provider(wallet, network)
    record = await PayrollContract.for_network(binding, network).read_invoice(invoice_hash)
    if record is not None:
        return record

    for other in registry.others(network.chain_id):
        if not other.invoice_contract:
            continue
        web3 = resolver.direct_provider(other)
        if web3 is None:
            continue
        direct = ProviderBinding(chain_id=other.chain_id, provider=web3, wallet_provider=web3, used_fallback=True)
        try:
            found = await PayrollContract.for_network(direct, other).read_invoice(invoice_hash)
        except BasePayError as e:
            logger.warning("Invoice lookup on %s failed: %s", other.name, e)
            continue
        if found is not None:
            logger.info("Invoice %s found on %s instead of %s", invoice_hash, other.name, network.name)
            raise InvoiceNotFoundError(invoice_hash, network.name, found_on=other.name)

    raise InvoiceNotFoundError(invoice_hash, network.name)
