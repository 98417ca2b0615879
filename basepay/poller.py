"""Background executor for overdue scheduled payments."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

from typing_extensions import Self

from .config import Settings
from .contracts import AutomationContract
from .errors import BasePayError
from .evm.constants import DEFAULT_EXECUTION_SPACING, DEFAULT_POLL_INTERVAL
from .models import TransactionReceipt
from .networks import NetworkRegistry
from .provider import ProviderResolver, WalletContext
from .scheduling import PaymentBook, executable_payments

logger = logging.getLogger(__name__)

ExecutedHook = Callable[[int, TransactionReceipt], None]


class AutoExecutionPoller:
    """Periodically submits ``executeScheduledPayment`` for due payments.

    Every ``interval`` seconds the poller reloads the wallet's payment book,
    picks the unexecuted, overdue payments the account may execute and submits
    them one by one, ``spacing`` seconds apart. Confirmation is not awaited by
    the tick: each receipt is handled by a background task that notifies the
    executed hooks and reloads the book.

    ``start`` and ``stop`` are idempotent. Stopping prevents further ticks and
    submissions; confirmations already in flight keep running until
    ``aclose`` awaits them.

    Args:
        registry: Network registry.
        resolver: Provider resolver.
        wallet: Wallet to execute with; may be replaced with ``wallet = ...``.
        interval: Seconds between ticks.
        spacing: Seconds between consecutive submissions in one tick.
        clock: Returns the current unix time.
        sleep: Awaitable sleep used for submission spacing.
    """

    def __init__(
        self,
        registry: NetworkRegistry,
        resolver: ProviderResolver,
        wallet: Optional[WalletContext] = None,
        interval: float = DEFAULT_POLL_INTERVAL,
        spacing: float = DEFAULT_EXECUTION_SPACING,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._registry = registry
        self._resolver = resolver
        self.wallet = wallet
        self.enabled = True
        self._interval = interval
        self._spacing = spacing
        self._clock = clock
        self._sleep = sleep
        self._executed_hooks: list[ExecutedHook] = []
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()
        self._confirmations: set[asyncio.Task] = set()
        self.book: Optional[PaymentBook] = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        registry: NetworkRegistry,
        resolver: ProviderResolver,
        wallet: Optional[WalletContext] = None,
    ) -> "AutoExecutionPoller":
        return cls(
            registry,
            resolver,
            wallet,
            interval=settings.poll_interval,
            spacing=settings.execution_spacing,
        )

    def on_executed(self, hook: ExecutedHook) -> Self:
        """Register a hook called with ``(payment_id, receipt)`` on confirmation.

        Returns:
            Self for chaining.
        """
        self._executed_hooks.append(hook)
        return self

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def pending_confirmations(self) -> int:
        return len(self._confirmations)

    def start(self) -> None:
        """Start ticking. Must be called from a running event loop.

        A loop that was stopped but is still finishing its tick is resumed
        instead of being replaced.
        """
        if self.running:
            if self._stop_event.is_set():
                self._stop_event.clear()
                logger.info("Auto-execution resumed")
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._loop())
        logger.info("Auto-execution started (interval %ss)", self._interval)

    def stop(self) -> None:
        if self._stop_event.is_set():
            return
        self._stop_event.set()
        if self._task is not None:
            logger.info("Auto-execution stopped")

    async def aclose(self) -> None:
        """Stop, then wait for the loop and pending confirmations to finish."""
        self.stop()
        if self._task is not None:
            await self._task
        if self._confirmations:
            await asyncio.gather(*list(self._confirmations), return_exceptions=True)

    async def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass
            if self._stop_event.is_set():
                break
            try:
                await self.tick()
            except Exception:
                logger.exception("Auto-execution batch error")

    async def tick(self) -> list[int]:
        """Run one polling pass.

        Returns:
            Ids of payments for which an execution was submitted.
        """
        wallet = self.wallet
        if not self.enabled or wallet is None or not wallet.is_connected:
            return []

        network = self._registry.resolve(wallet.chain_id)
        if not network.automation_contract:
            logger.debug("No automation contract on %s, skipping tick", network.name)
            return []

        try:
            binding = await self._resolver.get_provider(wallet, network)
            contract = AutomationContract.for_network(binding, network)
            self.book = await PaymentBook(contract, wallet.account).load(self._clock())
        except BasePayError as e:
            logger.warning("Auto-execution skipped: %s", e)
            return []

        due = executable_payments(self.book.scheduled, wallet.account, self.book.authorization, self._clock())
        submitted: list[int] = []
        for payment in due:
            if self._stop_event.is_set():
                break
            logger.info("Auto-executing overdue payment %s", payment.id)
            try:
                tx_hash = await contract.execute_scheduled_payment(wallet.account, payment.id)
            except BasePayError as e:
                logger.error("Auto-execution failed for payment %s: %s", payment.id, e)
                continue

            submitted.append(payment.id)
            task = asyncio.create_task(self._confirm(contract, wallet, payment.id, tx_hash))
            self._confirmations.add(task)
            task.add_done_callback(self._confirmations.discard)
            await self._sleep(self._spacing)
        return submitted

    async def _confirm(
        self,
        contract: AutomationContract,
        wallet: WalletContext,
        payment_id: int,
        tx_hash: str,
    ) -> None:
        try:
            receipt = await contract.wait_for_receipt(tx_hash)
        except BasePayError as e:
            logger.error("Auto-execution failed for payment %s: %s", payment_id, e)
            return

        logger.info("Payment %s auto-executed successfully", payment_id)
        for hook in self._executed_hooks:
            try:
                hook(payment_id, receipt)
            except Exception:
                logger.exception("Executed hook failed")

        try:
            self.book = await PaymentBook(contract, wallet.account).load(self._clock())
        except BasePayError as e:
            logger.warning("Could not reload payments after execution: %s", e)
