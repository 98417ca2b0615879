"""Environment-driven configuration.

Contract addresses and the explorer API key are supplied per network through
environment variables (optionally from a ``.env`` file). A missing address
disables writes on that network rather than failing at start-up; so does an
address that is not a valid EVM address.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from .evm.constants import (
    CHAIN_ID_BASE_SEPOLIA,
    CHAIN_ID_MORPH_HOLESKY,
    DEFAULT_EXECUTION_SPACING,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_SETTLE_DELAY,
)
from .evm.utils import is_valid_address

logger = logging.getLogger(__name__)

# chain id -> environment variable suffix
NETWORK_ENV_SUFFIXES: dict[int, str] = {
    CHAIN_ID_BASE_SEPOLIA: "BASE_SEPOLIA",
    CHAIN_ID_MORPH_HOLESKY: "MORPH_HOLESKY",
}

INVOICE_CONTRACT_ENV_PREFIX = "BASEPAY_INVOICE_CONTRACT_"
AUTOMATION_CONTRACT_ENV_PREFIX = "BASEPAY_AUTOMATION_CONTRACT_"


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


def _env_address(name: str) -> str | None:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return None
    if not is_valid_address(raw):
        logger.warning("Ignoring %s: %r is not a valid address", name, raw)
        return None
    return raw


@dataclass(frozen=True)
class Settings:
    """Runtime configuration for the interaction layer."""

    invoice_contracts: dict[int, str] = field(default_factory=dict)
    automation_contracts: dict[int, str] = field(default_factory=dict)
    etherscan_api_key: str | None = None
    poll_interval: float = DEFAULT_POLL_INTERVAL
    execution_spacing: float = DEFAULT_EXECUTION_SPACING
    settle_delay: float = DEFAULT_SETTLE_DELAY

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        """Load settings from the process environment.

        Args:
            dotenv: Also read a ``.env`` file from the working directory.

        Returns:
            Settings instance.

        Raises:
            ValueError: If a timing variable is not numeric.
        """
        if dotenv:
            load_dotenv()

        invoice_contracts: dict[int, str] = {}
        automation_contracts: dict[int, str] = {}
        for chain_id, suffix in NETWORK_ENV_SUFFIXES.items():
            invoice = _env_address(INVOICE_CONTRACT_ENV_PREFIX + suffix)
            if invoice:
                invoice_contracts[chain_id] = invoice
            automation = _env_address(AUTOMATION_CONTRACT_ENV_PREFIX + suffix)
            if automation:
                automation_contracts[chain_id] = automation

        return cls(
            invoice_contracts=invoice_contracts,
            automation_contracts=automation_contracts,
            etherscan_api_key=os.environ.get("ETHERSCAN_API_KEY") or None,
            poll_interval=_env_float("BASEPAY_POLL_INTERVAL", DEFAULT_POLL_INTERVAL),
            execution_spacing=_env_float("BASEPAY_EXECUTION_SPACING", DEFAULT_EXECUTION_SPACING),
            settle_delay=_env_float("BASEPAY_SETTLE_DELAY", DEFAULT_SETTLE_DELAY),
        )
