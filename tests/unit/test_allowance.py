"""Tests for basepay.allowance - approval sequencing."""

import pytest

from basepay.allowance import AllowanceSequencer
from basepay.errors import (
    ApprovalFailedError,
    ContractNotFoundError,
    InsufficientBalanceError,
)
from basepay.evm.constants import CHAIN_ID_BASE_SEPOLIA
from basepay.networks import NATIVE_ETH
from basepay.provider import ProviderBinding

from ..mocks import AUTOMATION_BASE, PAYER, FakeERC20, FakeWeb3


@pytest.fixture
def binding(base_chain):
    web3 = FakeWeb3(base_chain)
    return ProviderBinding(chain_id=CHAIN_ID_BASE_SEPOLIA, provider=web3, wallet_provider=web3)


@pytest.fixture
def usdc(registry):
    return registry.get(CHAIN_ID_BASE_SEPOLIA).token


@pytest.fixture
def sequencer():
    return AllowanceSequencer("Base Sepolia")


class TestEnsureApproved:
    """Approval only when the allowance is short."""

    @pytest.mark.asyncio
    async def test_sufficient_allowance_sends_nothing(self, sequencer, binding, base_chain, usdc):
        token = FakeERC20(base_chain, usdc.address, balances={PAYER: 5_000_000})
        token.set_allowance(PAYER, AUTOMATION_BASE, 5_000_000)

        sent = await sequencer.ensure_approved(usdc, AUTOMATION_BASE, 5_000_000, PAYER, binding)

        assert sent is False
        assert base_chain.transactions == []

    @pytest.mark.asyncio
    async def test_short_allowance_approves_exact_amount(self, sequencer, binding, base_chain, usdc):
        token = FakeERC20(base_chain, usdc.address, balances={PAYER: 10_000_000})
        token.set_allowance(PAYER, AUTOMATION_BASE, 1_000_000)

        sent = await sequencer.ensure_approved(usdc, AUTOMATION_BASE, 4_000_000, PAYER, binding)

        assert sent is True
        (approval,) = base_chain.sent("approve")
        assert approval.args == (AUTOMATION_BASE, 4_000_000)
        assert token.allowances[(PAYER.lower(), AUTOMATION_BASE.lower())] == 4_000_000

    @pytest.mark.asyncio
    async def test_repeated_call_is_idempotent(self, sequencer, binding, base_chain, usdc):
        FakeERC20(base_chain, usdc.address, balances={PAYER: 10_000_000})

        assert await sequencer.ensure_approved(usdc, AUTOMATION_BASE, 2_000_000, PAYER, binding)
        assert not await sequencer.ensure_approved(usdc, AUTOMATION_BASE, 2_000_000, PAYER, binding)
        assert len(base_chain.sent("approve")) == 1

    @pytest.mark.asyncio
    async def test_insufficient_balance(self, sequencer, binding, base_chain, usdc):
        FakeERC20(base_chain, usdc.address, balances={PAYER: 999_999})

        with pytest.raises(InsufficientBalanceError) as exc_info:
            await sequencer.ensure_approved(usdc, AUTOMATION_BASE, 1_000_000, PAYER, binding)

        assert exc_info.value.required == 1_000_000
        assert exc_info.value.available == 999_999
        assert exc_info.value.symbol == "USDC"
        assert base_chain.transactions == []

    @pytest.mark.asyncio
    async def test_missing_token_contract(self, sequencer, binding, base_chain, usdc):
        with pytest.raises(ContractNotFoundError):
            await sequencer.ensure_approved(usdc, AUTOMATION_BASE, 1, PAYER, binding)
        assert base_chain.calls == []

    @pytest.mark.asyncio
    async def test_approval_without_effect_fails(self, sequencer, binding, base_chain, usdc):
        FakeERC20(base_chain, usdc.address, balances={PAYER: 10_000_000}, approve_takes_effect=False)

        with pytest.raises(ApprovalFailedError) as exc_info:
            await sequencer.ensure_approved(usdc, AUTOMATION_BASE, 3_000_000, PAYER, binding)

        assert exc_info.value.required == 3_000_000
        assert exc_info.value.actual == 0

    @pytest.mark.asyncio
    async def test_native_token_needs_no_approval(self, sequencer, binding, base_chain):
        sent = await sequencer.ensure_approved(NATIVE_ETH, AUTOMATION_BASE, 10**18, PAYER, binding)

        assert sent is False
        assert base_chain.calls == []
        assert base_chain.transactions == []
