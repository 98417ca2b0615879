"""Network registry - chain id to network configuration lookup."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from typing import Optional

from .config import Settings
from .errors import UnsupportedNetworkError
from .evm.constants import (
    CHAIN_ID_BASE_SEPOLIA,
    CHAIN_ID_MORPH_HOLESKY,
    DEFAULT_CHAIN_ID,
    ETH_LOGO,
    EXPLORER_URLS,
    NATIVE_DECIMALS,
    RPC_URLS,
    USDC_BASE_SEPOLIA,
    USDC_LOGO,
    USDT_LOGO,
    USDT_MORPH_HOLESKY,
    ZERO_ADDRESS,
)
from .evm.utils import is_valid_address
from .models import NetworkConfig, TokenInfo

logger = logging.getLogger(__name__)


NATIVE_ETH = TokenInfo(address=ZERO_ADDRESS, symbol="ETH", decimals=NATIVE_DECIMALS, logo_url=ETH_LOGO)

# Decimals are listed per token address. USDT on Morph Holesky uses 18, unlike
# mainnet USDT; on-chain decimals() takes precedence where it can be read.
BUILTIN_NETWORKS: dict[int, NetworkConfig] = {
    CHAIN_ID_BASE_SEPOLIA: NetworkConfig(
        chain_id=CHAIN_ID_BASE_SEPOLIA,
        name="Base Sepolia",
        tokens=(
            TokenInfo(address=USDC_BASE_SEPOLIA, symbol="USDC", decimals=6, logo_url=USDC_LOGO),
            NATIVE_ETH,
        ),
        rpc_url=RPC_URLS[CHAIN_ID_BASE_SEPOLIA],
        explorer_url=EXPLORER_URLS[CHAIN_ID_BASE_SEPOLIA],
    ),
    CHAIN_ID_MORPH_HOLESKY: NetworkConfig(
        chain_id=CHAIN_ID_MORPH_HOLESKY,
        name="Morph Holesky",
        tokens=(
            TokenInfo(address=USDT_MORPH_HOLESKY, symbol="USDT", decimals=18, logo_url=USDT_LOGO),
            NATIVE_ETH,
        ),
        rpc_url=RPC_URLS[CHAIN_ID_MORPH_HOLESKY],
        explorer_url=EXPLORER_URLS[CHAIN_ID_MORPH_HOLESKY],
    ),
}


def _usable_address(address: Optional[str], network_name: str, kind: str) -> Optional[str]:
    # An invalid address leaves the network unconfigured for that contract
    if address and not is_valid_address(address):
        logger.warning("Ignoring invalid %s contract address %r on %s", kind, address, network_name)
        return None
    return address or None


class NetworkRegistry:
    """Immutable chain id -> ``NetworkConfig`` table with a designated default.

    Example:
        ```python
        registry = NetworkRegistry.from_settings(Settings.from_env())
        network = registry.resolve(wallet.chain_id)
        if not registry.is_supported(wallet.chain_id):
            ...  # network shows default-network data
        ```
    """

    def __init__(
        self,
        networks: Mapping[int, NetworkConfig],
        default_chain_id: int = DEFAULT_CHAIN_ID,
    ) -> None:
        if default_chain_id not in networks:
            raise ValueError(f"Default chain {default_chain_id} is not in the registry")
        if not networks[default_chain_id].tokens:
            raise ValueError("Default network must define at least one token")
        self._networks: dict[int, NetworkConfig] = dict(networks)
        self._default_chain_id = default_chain_id

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        networks: Optional[Mapping[int, NetworkConfig]] = None,
        default_chain_id: int = DEFAULT_CHAIN_ID,
    ) -> "NetworkRegistry":
        """Build a registry with contract addresses taken from settings.

        Args:
            settings: Loaded settings.
            networks: Base network table (defaults to the built-in networks).
            default_chain_id: Fallback chain for unsupported ids.

        Returns:
            NetworkRegistry.
        """
        base = networks if networks is not None else BUILTIN_NETWORKS
        configured = {}
        for chain_id, network in base.items():
            invoice = settings.invoice_contracts.get(chain_id, network.invoice_contract)
            automation = settings.automation_contracts.get(chain_id, network.automation_contract)
            configured[chain_id] = network.model_copy(
                update={
                    "invoice_contract": _usable_address(invoice, network.name, "invoice"),
                    "automation_contract": _usable_address(automation, network.name, "automation"),
                }
            )
        return cls(configured, default_chain_id)

    @property
    def default(self) -> NetworkConfig:
        return self._networks[self._default_chain_id]

    @property
    def chain_ids(self) -> list[int]:
        return list(self._networks)

    def __iter__(self) -> Iterator[NetworkConfig]:
        return iter(self._networks.values())

    def __len__(self) -> int:
        return len(self._networks)

    def is_supported(self, chain_id: int) -> bool:
        return chain_id in self._networks

    def get(self, chain_id: int) -> Optional[NetworkConfig]:
        return self._networks.get(chain_id)

    def resolve(self, chain_id: int) -> NetworkConfig:
        """Return the config for ``chain_id``, or the default config.

        Never raises. Callers should check ``is_supported`` before trusting
        that the result describes the wallet's chain.
        """
        network = self._networks.get(chain_id)
        if network is None:
            logger.warning(
                "Chain %s is not supported, falling back to %s (%s)",
                chain_id,
                self.default.name,
                self._default_chain_id,
            )
            return self.default
        return network

    def resolve_strict(self, chain_id: int) -> NetworkConfig:
        """Return the config for ``chain_id``.

        Raises:
            UnsupportedNetworkError: If the chain is not registered.
        """
        network = self._networks.get(chain_id)
        if network is None:
            raise UnsupportedNetworkError(chain_id)
        return network

    def others(self, chain_id: int) -> list[NetworkConfig]:
        """All registered networks except ``chain_id``."""
        return [n for cid, n in self._networks.items() if cid != chain_id]

    def rpc_url(self, chain_id: int) -> Optional[str]:
        """Direct JSON-RPC endpoint registered for ``chain_id``, if any."""
        network = self._networks.get(chain_id)
        return network.rpc_url if network else None

    def find_token(self, address: str) -> Optional[TokenInfo]:
        """Search every network for a token address."""
        for network in self._networks.values():
            token = network.token_for(address)
            if token is not None:
                return token
        return None

    def decimals_for(self, address: str) -> int:
        """Registered decimals for a token on any network (18 when unknown)."""
        token = self.find_token(address)
        return token.decimals if token else NATIVE_DECIMALS


def default_registry() -> NetworkRegistry:
    """Registry built from the current environment."""
    return NetworkRegistry.from_settings(Settings.from_env())
