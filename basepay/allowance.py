"""Balance / allowance / approval sequencing for ERC20 payments."""

from __future__ import annotations

import logging

from .errors import ApprovalFailedError, InsufficientBalanceError
from .evm.utils import format_amount
from .models import TokenInfo
from .provider import ProviderBinding
from .tokens import TokenReader

logger = logging.getLogger(__name__)


class AllowanceSequencer:
    """Makes sure a spender may pull ``required`` units of a token.

    The sequence is strictly ordered: contract code check, balance check,
    allowance check, ``approve`` for exactly ``required``, receipt, allowance
    re-check. An approval is only sent when the current allowance is short.

    Args:
        network_name: Name used in error messages and logs.
    """

    def __init__(self, network_name: str = "") -> None:
        self.network_name = network_name

    async def ensure_approved(
        self,
        token: TokenInfo,
        spender: str,
        required: int,
        account: str,
        binding: ProviderBinding,
    ) -> bool:
        """Approve ``spender`` for ``required`` if needed.

        Args:
            token: Token to spend.
            spender: Contract that will pull the tokens.
            required: Amount in smallest units.
            account: Token owner; signs the approval.
            binding: Provider binding for the active network.

        Returns:
            True if an approval transaction was sent. Native tokens never need
            one and return False without any call.

        Raises:
            ContractNotFoundError: No token contract on this chain.
            InsufficientBalanceError: Balance below ``required``.
            ApprovalFailedError: Allowance still short after the approval.
            BasePayError: Classified wallet / chain failures.
        """
        if token.is_native:
            return False

        reader = TokenReader(binding, token.address, self.network_name)
        await reader.ensure_deployed()

        decimals = await reader.decimals(fallback=token.decimals)
        balance = await reader.balance_of(account)
        if balance < required:
            raise InsufficientBalanceError(
                required=required,
                available=balance,
                symbol=token.symbol,
            )

        current = await reader.allowance(account, spender)
        logger.debug(
            "%s allowance for %s: %s (required %s)",
            token.symbol,
            spender,
            format_amount(current, decimals),
            format_amount(required, decimals),
        )
        if current >= required:
            return False

        receipt = await reader.approve(account, spender, required)
        logger.info("%s approval confirmed in block %s", token.symbol, receipt.block_number)

        updated = await reader.allowance(account, spender)
        if updated < required:
            raise ApprovalFailedError(required=required, actual=updated)
        return True
