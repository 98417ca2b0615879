"""ERC20 token access used by the approval sequencer and the dashboard."""

from __future__ import annotations

import logging

from .contracts import BoundContract
from .errors import BasePayError, ContractNotFoundError, classify_chain_error
from .evm.constants import ERC20_ABI, NATIVE_DECIMALS
from .evm.utils import format_display_amount, normalize_address
from .models import NetworkConfig, TransactionReceipt
from .provider import ProviderBinding

logger = logging.getLogger(__name__)


class TokenReader(BoundContract):
    """ERC20 token bound through a provider binding."""

    abi = ERC20_ABI

    async def exists(self) -> bool:
        try:
            await self.ensure_deployed()
        except ContractNotFoundError:
            return False
        return True

    async def balance_of(self, account: str) -> int:
        return int(await self.call("balanceOf", normalize_address(account)))

    async def allowance(self, owner: str, spender: str) -> int:
        return int(await self.call("allowance", normalize_address(owner), normalize_address(spender)))

    async def decimals(self, fallback: int = NATIVE_DECIMALS) -> int:
        """On-chain ``decimals()``, or ``fallback`` when the call fails."""
        try:
            return int(await self.call("decimals"))
        except BasePayError as e:
            logger.debug("decimals() unavailable for %s, using %s: %s", self.address, fallback, e)
            return fallback

    async def approve(self, owner: str, spender: str, amount: int) -> TransactionReceipt:
        """Approve ``spender`` for exactly ``amount`` and wait for the receipt."""
        tx_hash = await self.submit("approve", [normalize_address(spender), amount], owner)
        return await self.wait_for_receipt(tx_hash)


async def get_display_balance(binding: ProviderBinding, account: str, network: NetworkConfig) -> str:
    """Primary-token balance of ``account`` formatted for display.

    Falls back to the native balance when the token contract is not deployed
    on the bound chain.
    """
    token = network.token
    if not token.is_native:
        reader = TokenReader(binding, token.address, network.name)
        if await reader.exists():
            balance = await reader.balance_of(account)
            decimals = await reader.decimals(fallback=token.decimals)
            return f"{format_display_amount(balance, decimals)} {token.symbol}"
        logger.warning("%s contract not found on %s, showing native balance", token.symbol, network.name)

    try:
        native = await binding.provider.eth.get_balance(normalize_address(account))
    except Exception as e:
        raise classify_chain_error(e) from e
    return f"{format_display_amount(int(native), NATIVE_DECIMALS)} ETH"
