"""Scheduled payments: authorization, executable set and the payment book."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Iterable, Optional

from .contracts import AutomationContract
from .errors import BasePayError
from .evm.utils import same_address
from .models import AuthorizationStatus, ScheduledPayment

logger = logging.getLogger(__name__)


async def get_authorization(contract: AutomationContract, account: str) -> AuthorizationStatus:
    """Read owner and controller rights of ``account``.

    Read failures degrade to "no rights" rather than propagating.
    """
    try:
        owner, is_controller = await asyncio.gather(
            contract.owner(),
            contract.is_authorized_controller(account),
        )
    except BasePayError as e:
        logger.warning("Could not load authorization status for %s: %s", account, e)
        return AuthorizationStatus()
    return AuthorizationStatus(
        is_owner=same_address(owner, account),
        is_authorized_controller=bool(is_controller),
    )


def can_execute(payment: ScheduledPayment, account: str, auth: AuthorizationStatus) -> bool:
    """Creator, owner or authorized controller may execute a payment."""
    return same_address(payment.creator, account) or auth.can_execute_any


def executable_payments(
    payments: Iterable[ScheduledPayment],
    account: str,
    auth: AuthorizationStatus,
    now: float,
) -> list[ScheduledPayment]:
    """Unexecuted, overdue payments ``account`` is allowed to execute."""
    return [
        p for p in payments if not p.executed and p.is_overdue(now) and can_execute(p, account, auth)
    ]


class PaymentBook:
    """Snapshot of an account's scheduled payments on one automation contract.

    Example:
        ```python
        book = PaymentBook(AutomationContract.for_network(binding, network), account)
        await book.load()
        for payment in book.executable:
            ...
        ```
    """

    def __init__(self, contract: AutomationContract, account: str, only_own: bool = True) -> None:
        self.contract = contract
        self.account = account
        self.only_own = only_own
        self.scheduled: list[ScheduledPayment] = []
        self.history: list[ScheduledPayment] = []
        self.authorization = AuthorizationStatus()
        self.executable_ids: set[int] = set()
        self.loaded_at: Optional[float] = None

    async def _read(self, payment_id: int) -> Optional[ScheduledPayment]:
        try:
            return await self.contract.read_payment_details(payment_id)
        except BasePayError as e:
            logger.warning("Skipping payment %s: %s", payment_id, e)
            return None

    async def load(self, now: Optional[float] = None) -> "PaymentBook":
        """Reload payments ``0..nextPaymentId`` and the executable set.

        Raises:
            BasePayError: If ``nextPaymentId`` cannot be read.
        """
        count = await self.contract.next_payment_id()
        results = await asyncio.gather(*(self._read(i) for i in range(count)))
        payments = [p for p in results if p is not None]
        if self.only_own:
            payments = [p for p in payments if same_address(p.creator, self.account)]

        self.scheduled = sorted((p for p in payments if not p.executed), key=lambda p: p.scheduled_time, reverse=True)
        self.history = sorted((p for p in payments if p.executed), key=lambda p: p.scheduled_time, reverse=True)
        self.authorization = await get_authorization(self.contract, self.account)

        now = time.time() if now is None else now
        self.executable_ids = {
            p.id for p in executable_payments(self.scheduled, self.account, self.authorization, now)
        }
        self.loaded_at = now
        logger.debug(
            "Loaded %d scheduled, %d executed payments (%d executable)",
            len(self.scheduled),
            len(self.history),
            len(self.executable_ids),
        )
        return self

    def get(self, payment_id: int) -> Optional[ScheduledPayment]:
        for payment in (*self.scheduled, *self.history):
            if payment.id == payment_id:
                return payment
        return None

    @property
    def executable(self) -> list[ScheduledPayment]:
        """Scheduled payments in the executable set, newest first."""
        return [p for p in self.scheduled if p.id in self.executable_ids]
