"""Chain-aware provider resolution.

The wallet-injected provider can report a stale chain right after a network
switch while the wallet library already reports the new one. ``ProviderResolver``
detects that disagreement and, when the wallet itself is on the target chain,
reads through a direct JSON-RPC endpoint instead. Transactions are always
signed through the wallet provider.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional

from eth_account import Account
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.middleware import SignAndSendRawMiddlewareBuilder

from .errors import NetworkMismatchError, classify_chain_error
from .models import NetworkConfig
from .networks import NetworkRegistry

logger = logging.getLogger(__name__)

DEFAULT_RPC_TIMEOUT = 30.0

ProviderFactory = Callable[[str], AsyncWeb3]


def http_provider(rpc_url: str, timeout: float = DEFAULT_RPC_TIMEOUT) -> AsyncWeb3:
    """Create an ``AsyncWeb3`` over a direct JSON-RPC endpoint.

    Args:
        rpc_url: HTTPS JSON-RPC URL.
        timeout: Request timeout in seconds.

    Returns:
        AsyncWeb3 instance.
    """
    return AsyncWeb3(AsyncHTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))


@dataclass(frozen=True)
class WalletContext:
    """Connection state supplied by the embedding application.

    Attributes:
        chain_id: Chain id reported by the wallet library.
        account: Connected account, or None when disconnected.
        provider: Wallet-injected provider (signs transactions).
    """

    chain_id: int
    account: Optional[str]
    provider: AsyncWeb3

    @property
    def is_connected(self) -> bool:
        return bool(self.account)


@dataclass(frozen=True)
class ProviderBinding:
    """Provider pair resolved for one call sequence.

    Attributes:
        chain_id: Chain the binding targets.
        provider: Provider used for reads and receipts.
        wallet_provider: Provider used to send transactions.
        used_fallback: True when ``provider`` is a direct RPC endpoint.
    """

    chain_id: int
    provider: AsyncWeb3
    wallet_provider: AsyncWeb3
    used_fallback: bool = False


class ProviderResolver:
    """Resolves a usable provider for a target network.

    Args:
        registry: Network registry supplying direct RPC endpoints.
        provider_factory: Builds an ``AsyncWeb3`` for an RPC URL.
    """

    def __init__(
        self,
        registry: NetworkRegistry,
        provider_factory: ProviderFactory = http_provider,
    ) -> None:
        self._registry = registry
        self._provider_factory = provider_factory

    @property
    def registry(self) -> NetworkRegistry:
        return self._registry

    async def provider_chain_id(self, wallet: WalletContext) -> Optional[int]:
        """Chain id as seen by the injected provider, None if the query fails."""
        try:
            return int(await wallet.provider.eth.chain_id)
        except Exception as e:
            logger.warning("Injected provider chain query failed: %s", classify_chain_error(e))
            return None

    async def get_provider(self, wallet: WalletContext, target: NetworkConfig) -> ProviderBinding:
        """Resolve the provider to use against ``target``.

        Args:
            wallet: Wallet connection state.
            target: Network the operation must run against.

        Returns:
            ProviderBinding.

        Raises:
            NetworkMismatchError: If the wallet is not on the target chain, or
                it is but no direct RPC endpoint is registered.
        """
        provider_chain_id = await self.provider_chain_id(wallet)

        if provider_chain_id == target.chain_id:
            return ProviderBinding(
                chain_id=target.chain_id,
                provider=wallet.provider,
                wallet_provider=wallet.provider,
                used_fallback=False,
            )

        if wallet.chain_id == target.chain_id:
            rpc_url = self._registry.rpc_url(target.chain_id) or target.rpc_url
            if rpc_url:
                logger.warning(
                    "Provider/wallet mismatch: provider reports chain %s, wallet reports %s; "
                    "using direct RPC for %s",
                    provider_chain_id,
                    wallet.chain_id,
                    target.name,
                )
                return ProviderBinding(
                    chain_id=target.chain_id,
                    provider=self._provider_factory(rpc_url),
                    wallet_provider=wallet.provider,
                    used_fallback=True,
                )
            logger.error("No direct RPC endpoint registered for %s", target.name)

        raise NetworkMismatchError(
            expected_chain_id=target.chain_id,
            provider_chain_id=provider_chain_id,
            wallet_chain_id=wallet.chain_id,
            network_name=target.name,
        )

    def direct_provider(self, network: NetworkConfig) -> Optional[AsyncWeb3]:
        """Read-only provider over the network's direct RPC endpoint, if any."""
        rpc_url = self._registry.rpc_url(network.chain_id) or network.rpc_url
        if not rpc_url:
            return None
        return self._provider_factory(rpc_url)


def local_wallet(private_key: str, chain_id: int, rpc_url: str) -> WalletContext:
    """Wallet context that signs with a local key over a direct RPC endpoint.

    Used for headless runs such as the auto-execution poller.

    Args:
        private_key: Hex private key with or without 0x prefix.
        chain_id: Chain the endpoint serves.
        rpc_url: JSON-RPC URL.

    Returns:
        WalletContext whose provider signs ``transact`` calls locally.
    """
    if not private_key.startswith("0x"):
        private_key = "0x" + private_key
    account = Account.from_key(private_key)
    web3 = http_provider(rpc_url)
    web3.middleware_onion.inject(SignAndSendRawMiddlewareBuilder.build(account), layer=0)
    web3.eth.default_account = account.address
    return WalletContext(chain_id=chain_id, account=account.address, provider=web3)
