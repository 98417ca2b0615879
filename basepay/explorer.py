"""Block-explorer transaction history (Etherscan v2 ``txlist``).

Display only: nothing in the payment flows depends on explorer data.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from .errors import ExplorerError
from .evm.constants import (
    CREATE_INVOICE_SELECTOR,
    ETHERSCAN_V2_API,
    PAY_INVOICE_SELECTOR,
)
from .models import ExplorerTransaction, TxType

logger = logging.getLogger(__name__)


# ============================================================================
# Configuration
# ============================================================================


@dataclass
class ExplorerConfig:
    """Configuration for the explorer client."""

    api_key: Optional[str] = None
    url: str = ETHERSCAN_V2_API
    timeout: float = 30.0
    http_client: Any = None  # Optional httpx.AsyncClient


# ============================================================================
# Explorer Client
# ============================================================================


class ExplorerClient:
    """Async client for the account ``txlist`` endpoint.

    Example:
        ```python
        async with ExplorerClient(ExplorerConfig(api_key=settings.etherscan_api_key)) as explorer:
            txs = await explorer.get_transactions(account, 84532)
        ```
    """

    def __init__(self, config: Optional[ExplorerConfig] = None) -> None:
        config = config or ExplorerConfig()
        self._url = config.url
        self._api_key = config.api_key
        self._timeout = config.timeout
        self._http_client = config.http_client
        self._owns_client = config.http_client is None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)
        return self._http_client

    async def aclose(self) -> None:
        """Close HTTP client if we own it."""
        if self._owns_client and self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> ExplorerClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    @property
    def url(self) -> str:
        return self._url

    async def get_transactions(self, address: str, chain_id: int) -> list[ExplorerTransaction]:
        """Fetch the account's normal transactions, newest first.

        Args:
            address: Account address.
            chain_id: Chain to query.

        Returns:
            List of transactions.

        Raises:
            ExplorerError: On HTTP failure or an explorer status other than "1"
                (which includes "no transactions found").
        """
        params = {
            "chainid": chain_id,
            "module": "account",
            "action": "txlist",
            "address": address,
            "startblock": 0,
            "endblock": 99999999,
            "sort": "desc",
            "apikey": self._api_key or "",
        }
        try:
            response = await self._get_client().get(self._url, params=params)
        except httpx.HTTPError as e:
            raise ExplorerError("Failed to fetch transactions.") from e

        if response.status_code != 200:
            raise ExplorerError(f"Explorer request failed ({response.status_code}): {response.text}")

        data = response.json()
        if str(data.get("status")) != "1":
            result = data.get("result")
            message = result if isinstance(result, str) and result else data.get("message")
            raise ExplorerError(message or "No transactions found.")

        transactions = [ExplorerTransaction.model_validate(tx) for tx in data.get("result") or []]
        logger.debug("Fetched %d transactions for %s on chain %s", len(transactions), address, chain_id)
        return transactions


def classify_transaction(
    tx: ExplorerTransaction,
    wallet: str,
    invoice_contract: Optional[str],
) -> TxType:
    """Label a transaction relative to ``wallet`` and the invoice contract."""
    to = (tx.to or "").lower()
    sender = (tx.from_ or "").lower()
    wallet = wallet.lower()
    contract = (invoice_contract or "").lower()
    data = tx.input.lower()

    if contract and to == contract:
        if data.startswith(CREATE_INVOICE_SELECTOR):
            return TxType.CREATED_INVOICE
        if data.startswith(PAY_INVOICE_SELECTOR):
            return TxType.PAID_INVOICE
    if to == wallet and sender != contract:
        return TxType.RECEIVED
    if sender == wallet and to != contract:
        return TxType.SENT
    return TxType.OTHER
