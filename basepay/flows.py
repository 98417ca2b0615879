"""Payment orchestration: the user-facing invoice and payroll flows.

Each flow walks the same states::

    Idle -> Validating -> Approving (ERC20 only) -> Submitting
         -> AwaitingConfirmation -> Refreshing -> Idle

and any step may end in Failed. Errors never escape a flow: they are
classified, reported to the notification hooks and returned as a failed
``FlowResult``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Sequence

from typing_extensions import Self

from .allowance import AllowanceSequencer
from .config import Settings
from .contracts import AutomationContract, PayrollContract, lookup_invoice
from .errors import BasePayError, ValidationError, classify_chain_error, user_message
from .evm.constants import DEFAULT_SETTLE_DELAY, ERR_USER_REJECTED, NATIVE_DECIMALS
from .evm.utils import (
    create_invoice_hash,
    is_valid_address,
    is_valid_hash,
    is_zero_address,
    normalize_address,
    parse_amount,
    parse_decimal,
)
from .models import InvoiceRecord, NetworkConfig, TokenInfo
from .networks import NetworkRegistry
from .provider import ProviderBinding, ProviderResolver, WalletContext
from .scheduling import PaymentBook, can_execute, get_authorization
from .tokens import TokenReader

logger = logging.getLogger(__name__)

DEFAULT_INVOICE_VALIDITY = 86400


# ============================================================================
# Flow state and results
# ============================================================================


class FlowState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    APPROVING = "approving"
    SUBMITTING = "submitting"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    REFRESHING = "refreshing"
    FAILED = "failed"


class NotificationLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class Notification:
    """Progress or outcome message for the presentation layer."""

    level: NotificationLevel
    message: str
    action: str
    state: FlowState
    tx_hash: Optional[str] = None


@dataclass
class FlowResult:
    """Outcome of one flow run.

    Attributes:
        action: Flow name ("create_invoice", "pay_invoice"...).
        success: Whether the transaction confirmed.
        tx_hash: Hash of the main transaction, if one was sent.
        approval_sent: Whether an ERC20 approval was sent first.
        data: Refreshed record(s) after confirmation, when available.
        error: Classified error for failed runs.
        message: User-facing summary.
    """

    action: str
    success: bool
    tx_hash: Optional[str] = None
    approval_sent: bool = False
    data: Any = None
    error: Optional[BasePayError] = None
    message: str = ""

    @property
    def category(self) -> Optional[str]:
        return self.error.category if self.error is not None else None


NotifyHook = Callable[[Notification], None]


@dataclass
class _Run:
    """Mutable per-run bookkeeping."""

    action: str
    label: str
    tx_hash: Optional[str] = None
    approval_sent: bool = False


# ============================================================================
# Orchestrator
# ============================================================================


class PaymentOrchestrator:
    """Runs invoice and payroll flows for one wallet session.

    Args:
        registry: Network registry.
        resolver: Provider resolver shared with the rest of the session.
        sequencer: Approval sequencer (a default one is created if omitted).
        settle_delay: Seconds to wait after confirmation before re-reading.
        clock: Returns the current unix time.
        sleep: Awaitable sleep (replaced in tests).

    Example:
        ```python
        orchestrator = PaymentOrchestrator(registry, ProviderResolver(registry))
        orchestrator.on_notify(lambda n: print(n.level, n.message))
        result = await orchestrator.pay_invoice(wallet, invoice_hash)
        ```
    """

    def __init__(
        self,
        registry: NetworkRegistry,
        resolver: ProviderResolver,
        sequencer: Optional[AllowanceSequencer] = None,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._registry = registry
        self._resolver = resolver
        self._sequencer = sequencer or AllowanceSequencer()
        self._settle_delay = settle_delay
        self._clock = clock
        self._sleep = sleep
        self._notify_hooks: list[NotifyHook] = []
        self._submitting = False
        self.state = FlowState.IDLE

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        registry: NetworkRegistry,
        resolver: Optional[ProviderResolver] = None,
    ) -> "PaymentOrchestrator":
        return cls(
            registry,
            resolver or ProviderResolver(registry),
            settle_delay=settings.settle_delay,
        )

    @property
    def is_submitting(self) -> bool:
        return self._submitting

    def on_notify(self, hook: NotifyHook) -> Self:
        """Register a notification hook.

        Args:
            hook: Called with every progress / outcome notification.

        Returns:
            Self for chaining.
        """
        self._notify_hooks.append(hook)
        return self

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _notify(
        self,
        run: _Run,
        level: NotificationLevel,
        message: str,
        tx_hash: Optional[str] = None,
    ) -> None:
        notification = Notification(
            level=level,
            message=message,
            action=run.action,
            state=self.state,
            tx_hash=tx_hash,
        )
        for hook in self._notify_hooks:
            try:
                hook(notification)
            except Exception:
                logger.exception("Notification hook failed")

    def _enter(self, state: FlowState) -> None:
        logger.debug("Flow state %s -> %s", self.state.value, state.value)
        self.state = state

    async def _run(
        self,
        action: str,
        label: str,
        body: Callable[[_Run], Awaitable[tuple[Any, str]]],
    ) -> FlowResult:
        if self._submitting:
            error = ValidationError("Another transaction is already in progress")
            return FlowResult(action=action, success=False, error=error, message=error.message)

        run = _Run(action=action, label=label)
        self._submitting = True
        self._enter(FlowState.VALIDATING)
        try:
            data, message = await body(run)
        except Exception as e:
            if not isinstance(e, BasePayError):
                logger.exception("%s raised an unexpected error", action)
            error = classify_chain_error(e)
            self._enter(FlowState.FAILED)
            message = user_message(error, label)
            logger.warning("%s failed (%s): %s", action, error.category, error.message)
            level = NotificationLevel.WARNING if error.category == ERR_USER_REJECTED else NotificationLevel.ERROR
            self._notify(run, level, message, run.tx_hash)
            return FlowResult(
                action=action,
                success=False,
                tx_hash=run.tx_hash,
                approval_sent=run.approval_sent,
                error=error,
                message=message,
            )
        finally:
            self._submitting = False

        self._enter(FlowState.IDLE)
        self._notify(run, NotificationLevel.SUCCESS, message, run.tx_hash)
        return FlowResult(
            action=action,
            success=True,
            tx_hash=run.tx_hash,
            approval_sent=run.approval_sent,
            data=data,
            message=message,
        )

    def _network(self, wallet: WalletContext) -> NetworkConfig:
        if not wallet.is_connected:
            raise ValidationError("Wallet not connected")
        return self._registry.resolve(wallet.chain_id)

    async def _bind(
        self, wallet: WalletContext, network: Optional[NetworkConfig] = None
    ) -> tuple[NetworkConfig, ProviderBinding]:
        if network is None:
            network = self._network(wallet)
        binding = await self._resolver.get_provider(wallet, network)
        return network, binding

    def _token_info(self, network: NetworkConfig, address: str) -> TokenInfo:
        token = network.token_for(address) or self._registry.find_token(address)
        if token is not None:
            return token
        return TokenInfo(address=address, symbol="Token", decimals=NATIVE_DECIMALS)

    async def _token_decimals(self, binding: ProviderBinding, network: NetworkConfig, address: str) -> int:
        if is_zero_address(address):
            return NATIVE_DECIMALS
        fallback = self._token_info(network, address).decimals
        return await TokenReader(binding, address, network.name).decimals(fallback=fallback)

    @staticmethod
    def _check_amount(amount: str) -> None:
        try:
            parse_decimal(amount)
        except ValueError as e:
            raise ValidationError(str(e)) from e

    @staticmethod
    def _parse_amount(amount: str, decimals: int) -> int:
        try:
            return parse_amount(amount, decimals)
        except ValueError as e:
            raise ValidationError(str(e)) from e

    async def _approve(
        self,
        run: _Run,
        token: TokenInfo,
        spender: str,
        required: int,
        account: str,
        binding: ProviderBinding,
        network: NetworkConfig,
    ) -> None:
        if token.is_native:
            return
        self._enter(FlowState.APPROVING)
        self._notify(run, NotificationLevel.INFO, f"Checking {token.symbol} balance and allowance...")
        sequencer = self._sequencer
        if not sequencer.network_name:
            sequencer = AllowanceSequencer(network.name)
        run.approval_sent = await sequencer.ensure_approved(token, spender, required, account, binding)

    async def _submit(self, run: _Run, contract: Any, send: Awaitable[str]) -> None:
        self._enter(FlowState.SUBMITTING)
        run.tx_hash = await send
        self._notify(run, NotificationLevel.INFO, "Transaction sent, waiting for confirmation...", run.tx_hash)
        self._enter(FlowState.AWAITING_CONFIRMATION)
        await contract.wait_for_receipt(run.tx_hash)

    async def _refresh(self, wallet: WalletContext, reload: Callable[[ProviderBinding, NetworkConfig], Awaitable[Any]]) -> Any:
        """Wait for the chain to settle, then re-read through a fresh binding."""
        self._enter(FlowState.REFRESHING)
        await self._sleep(self._settle_delay)
        try:
            network, binding = await self._bind(wallet)
            return await reload(binding, network)
        except BasePayError as e:
            logger.warning("Could not refresh data after confirmation: %s", e)
            return None

    # ------------------------------------------------------------------
    # Invoices
    # ------------------------------------------------------------------

    async def create_invoice(
        self,
        wallet: WalletContext,
        amount: str,
        token: Optional[str] = None,
        valid_for_seconds: int = DEFAULT_INVOICE_VALIDITY,
        memo: str = "",
        logo_uri: str = "",
        description: str = "",
        invoice_hash: Optional[str] = None,
    ) -> FlowResult:
        """Create an invoice payable in ``token`` (native ETH for the zero address).

        ``FlowResult.data`` is the refreshed ``InvoiceRecord``; the generated
        hash is also in the success message.
        """

        async def body(run: _Run) -> tuple[Any, str]:
            network = self._network(wallet)
            token_address = token if token is not None else network.token.address
            if not is_valid_address(token_address):
                raise ValidationError(f"Invalid token address: {token_address}")
            if valid_for_seconds < 0:
                raise ValidationError("Validity must not be negative")
            if invoice_hash is not None and not is_valid_hash(invoice_hash):
                raise ValidationError(f"Invalid invoice hash: {invoice_hash}")
            self._check_amount(amount)

            network, binding = await self._bind(wallet, network)
            payroll = PayrollContract.for_network(binding, network)
            decimals = await self._token_decimals(binding, network, token_address)
            amount_raw = self._parse_amount(amount, decimals)
            key = invoice_hash or create_invoice_hash()
            self._notify(run, NotificationLevel.INFO, f"Generated invoice hash: {key}")

            await self._submit(
                run,
                payroll,
                payroll.create_invoice(
                    wallet.account,
                    key,
                    token_address,
                    amount_raw,
                    valid_for_seconds,
                    memo,
                    logo_uri,
                    description,
                ),
            )

            async def reload(b: ProviderBinding, n: NetworkConfig) -> Optional[InvoiceRecord]:
                return await PayrollContract.for_network(b, n).read_invoice(key)

            record = await self._refresh(wallet, reload)
            return record, f"Invoice created successfully! Hash: {key}"

        return await self._run("create_invoice", "Invoice creation", body)

    async def pay_invoice(self, wallet: WalletContext, invoice_hash: str) -> FlowResult:
        """Pay an invoice, approving the payroll contract first for ERC20 invoices."""

        async def body(run: _Run) -> tuple[Any, str]:
            network = self._network(wallet)
            if not is_valid_hash(invoice_hash):
                raise ValidationError(f"Invalid invoice hash: {invoice_hash}")

            network, binding = await self._bind(wallet, network)
            invoice = await lookup_invoice(invoice_hash, wallet, self._registry, self._resolver)
            if invoice.is_paid:
                raise ValidationError("Invoice has already been paid")
            if invoice.is_expired(self._clock()):
                raise ValidationError("Invoice has expired")

            payroll = PayrollContract.for_network(binding, network)
            token = self._token_info(network, invoice.token)
            await self._approve(run, token, payroll.address, invoice.amount, wallet.account, binding, network)
            await self._submit(run, payroll, payroll.pay_invoice(wallet.account, invoice))

            async def reload(b: ProviderBinding, n: NetworkConfig) -> Optional[InvoiceRecord]:
                return await PayrollContract.for_network(b, n).read_invoice(invoice.hash)

            record = await self._refresh(wallet, reload)
            return record, "Payment successful!"

        return await self._run("pay_invoice", "Payment", body)

    # ------------------------------------------------------------------
    # Automation
    # ------------------------------------------------------------------

    @staticmethod
    def _valid_recipients(recipients: Sequence[str]) -> list[str]:
        entries = [r.strip() for r in recipients if r and r.strip()]
        invalid = [r for r in entries if not is_valid_address(r)]
        if invalid:
            raise ValidationError(f"Invalid recipient address(es): {', '.join(invalid)}")
        if not entries:
            raise ValidationError("At least one valid recipient address required")
        return [normalize_address(r) for r in entries]

    def _reload_book(self, wallet: WalletContext) -> Callable[[ProviderBinding, NetworkConfig], Awaitable[Any]]:
        async def reload(b: ProviderBinding, n: NetworkConfig) -> PaymentBook:
            return await PaymentBook(AutomationContract.for_network(b, n), wallet.account).load(self._clock())

        return reload

    async def _token_payment(
        self,
        run: _Run,
        wallet: WalletContext,
        amount: str,
        recipients: Sequence[str],
        scheduled_time: Optional[int],
    ) -> tuple[Any, str]:
        network = self._network(wallet)
        valid = self._valid_recipients(recipients)
        if scheduled_time is not None and scheduled_time <= 0:
            raise ValidationError("Scheduled date required")
        self._check_amount(amount)

        network, binding = await self._bind(wallet, network)
        automation = AutomationContract.for_network(binding, network)
        token = network.token
        decimals = await self._token_decimals(binding, network, token.address)
        amount_raw = self._parse_amount(amount, decimals)

        await self._approve(run, token, automation.address, amount_raw, wallet.account, binding, network)
        if scheduled_time is None:
            send = automation.execute_payment_now_with_token(wallet.account, token.address, amount_raw, valid)
            message = "Payment executed successfully!"
        else:
            send = automation.schedule_payment_with_token(
                wallet.account, token.address, amount_raw, valid, scheduled_time
            )
            message = "Payment scheduled successfully!"
        await self._submit(run, automation, send)

        book = await self._refresh(wallet, self._reload_book(wallet))
        return book, message

    async def schedule_payment(
        self,
        wallet: WalletContext,
        amount: str,
        recipients: Sequence[str],
        scheduled_time: int,
    ) -> FlowResult:
        """Schedule ``amount`` of the network token, split across ``recipients``."""

        async def body(run: _Run) -> tuple[Any, str]:
            return await self._token_payment(run, wallet, amount, recipients, scheduled_time)

        return await self._run("schedule_payment", "Transaction", body)

    async def execute_payment_now(
        self,
        wallet: WalletContext,
        amount: str,
        recipients: Sequence[str],
    ) -> FlowResult:
        """Pay ``amount`` of the network token to ``recipients`` immediately."""

        async def body(run: _Run) -> tuple[Any, str]:
            return await self._token_payment(run, wallet, amount, recipients, None)

        return await self._run("execute_payment_now", "Transaction", body)

    async def execute_scheduled_payment(self, wallet: WalletContext, payment_id: int) -> FlowResult:
        """Execute one due payment after checking rights, state and time."""

        async def body(run: _Run) -> tuple[Any, str]:
            network = self._network(wallet)
            if payment_id < 0:
                raise ValidationError(f"Invalid payment id: {payment_id}")

            network, binding = await self._bind(wallet, network)
            automation = AutomationContract.for_network(binding, network)
            payment = await automation.read_payment_details(payment_id)
            auth = await get_authorization(automation, wallet.account)
            if not can_execute(payment, wallet.account, auth):
                raise ValidationError(
                    "You are not authorized to execute this payment. Only the payment creator, "
                    "contract owner, or authorized controllers can execute it."
                )
            if payment.executed:
                raise ValidationError("Payment has already been executed")
            if not payment.is_overdue(self._clock()):
                raise ValidationError("Payment time has not been reached yet")

            await self._submit(run, automation, automation.execute_scheduled_payment(wallet.account, payment_id))
            book = await self._refresh(wallet, self._reload_book(wallet))
            return book, "Payment executed successfully!"

        return await self._run("execute_scheduled_payment", "Execution", body)

    async def add_controller(self, wallet: WalletContext, controller: Optional[str] = None) -> FlowResult:
        """Authorize ``controller`` (the connected account by default); owner only."""

        async def body(run: _Run) -> tuple[Any, str]:
            network = self._network(wallet)
            target = controller or wallet.account
            if not is_valid_address(target):
                raise ValidationError(f"Invalid controller address: {target}")

            network, binding = await self._bind(wallet, network)
            automation = AutomationContract.for_network(binding, network)
            await self._submit(run, automation, automation.add_controller(wallet.account, target))

            async def reload(b: ProviderBinding, n: NetworkConfig) -> Any:
                return await get_authorization(AutomationContract.for_network(b, n), wallet.account)

            auth = await self._refresh(wallet, reload)
            return auth, "Controller authorization added successfully!"

        return await self._run("add_controller", "Transaction", body)
