"""Tests for basepay.tokens."""

import pytest

from basepay.evm.constants import CHAIN_ID_BASE_SEPOLIA, USDC_BASE_SEPOLIA
from basepay.provider import ProviderBinding
from basepay.tokens import TokenReader, get_display_balance

from ..mocks import AUTOMATION_BASE, PAYER, FakeERC20, FakeWeb3


def bind(chain):
    web3 = FakeWeb3(chain)
    return ProviderBinding(chain_id=chain.chain_id, provider=web3, wallet_provider=web3)


class TestTokenReader:
    """ERC20 reads and approval."""

    @pytest.mark.asyncio
    async def test_reads(self, base_chain):
        token = FakeERC20(base_chain, USDC_BASE_SEPOLIA, balances={PAYER: 7_000_000})
        token.set_allowance(PAYER, AUTOMATION_BASE, 1_000_000)
        reader = TokenReader(bind(base_chain), USDC_BASE_SEPOLIA)

        assert await reader.exists()
        assert await reader.balance_of(PAYER) == 7_000_000
        assert await reader.allowance(PAYER, AUTOMATION_BASE) == 1_000_000
        assert await reader.decimals() == 6

    @pytest.mark.asyncio
    async def test_missing_contract(self, base_chain):
        assert not await TokenReader(bind(base_chain), USDC_BASE_SEPOLIA).exists()

    @pytest.mark.asyncio
    async def test_decimals_falls_back(self, base_chain):
        FakeERC20(base_chain, USDC_BASE_SEPOLIA, decimals=None)
        reader = TokenReader(bind(base_chain), USDC_BASE_SEPOLIA)
        assert await reader.decimals(fallback=6) == 6
        assert await reader.decimals() == 18

    @pytest.mark.asyncio
    async def test_approve_waits_for_receipt(self, base_chain):
        token = FakeERC20(base_chain, USDC_BASE_SEPOLIA)
        reader = TokenReader(bind(base_chain), USDC_BASE_SEPOLIA)

        receipt = await reader.approve(PAYER, AUTOMATION_BASE, 5_000_000)

        assert receipt.succeeded
        assert token.allowances[(PAYER.lower(), AUTOMATION_BASE.lower())] == 5_000_000


class TestDisplayBalance:
    """Primary-token balance formatting."""

    @pytest.mark.asyncio
    async def test_token_balance(self, base_chain, registry):
        FakeERC20(base_chain, USDC_BASE_SEPOLIA, balances={PAYER: 12_500_000})
        balance = await get_display_balance(bind(base_chain), PAYER, registry.get(CHAIN_ID_BASE_SEPOLIA))
        assert balance == "12.50 USDC"

    @pytest.mark.asyncio
    async def test_native_balance_when_token_missing(self, base_chain, registry):
        base_chain.native_balances[PAYER.lower()] = 2 * 10**18
        balance = await get_display_balance(bind(base_chain), PAYER, registry.get(CHAIN_ID_BASE_SEPOLIA))
        assert balance == "2.0000 ETH"

    @pytest.mark.asyncio
    async def test_whole_stablecoin_units_keep_two_places(self, base_chain, registry):
        FakeERC20(base_chain, USDC_BASE_SEPOLIA, balances={PAYER: 1_000_000})
        balance = await get_display_balance(bind(base_chain), PAYER, registry.get(CHAIN_ID_BASE_SEPOLIA))
        assert balance == "1.00 USDC"
