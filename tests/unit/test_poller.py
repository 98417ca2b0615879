"""Tests for basepay.poller - auto-execution of overdue payments."""

import asyncio

import pytest

from basepay.evm.constants import CHAIN_ID_BASE_SEPOLIA
from basepay.networks import NetworkRegistry
from basepay.poller import AutoExecutionPoller
from basepay.provider import ProviderResolver, WalletContext

from ..mocks import AUTOMATION_BASE, MERCHANT, OWNER, PAYER, STRANGER, FakeAutomation, FakeWeb3

NOW = 1_700_000_000


class CallException(Exception):
    code = "CALL_EXCEPTION"


@pytest.fixture
def automation(base_chain):
    return FakeAutomation(base_chain, AUTOMATION_BASE, owner=OWNER)


@pytest.fixture
def wallet(base_chain):
    return WalletContext(chain_id=CHAIN_ID_BASE_SEPOLIA, account=PAYER, provider=FakeWeb3(base_chain))


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def poller(registry, resolver, wallet, sleeps):
    async def record_sleep(seconds):
        sleeps.append(seconds)

    return AutoExecutionPoller(
        registry, resolver, wallet, interval=0.01, spacing=1.0, clock=lambda: NOW, sleep=record_sleep
    )


class TestTick:
    """One polling pass."""

    @pytest.mark.asyncio
    async def test_executes_due_payments(self, poller, automation, base_chain, sleeps):
        executed = []
        poller.on_executed(lambda payment_id, receipt: executed.append((payment_id, receipt.succeeded)))
        automation.add_payment(PAYER, 1_000_000, [MERCHANT], NOW - 100)
        automation.add_payment(PAYER, 1_000_000, [MERCHANT], NOW - 50)
        automation.add_payment(PAYER, 1_000_000, [MERCHANT], NOW + 600)
        automation.add_payment(PAYER, 1_000_000, [MERCHANT], NOW - 10, executed=True)
        automation.add_payment(STRANGER, 1_000_000, [MERCHANT], NOW - 10)

        submitted = await poller.tick()
        await poller.aclose()

        assert submitted == [1, 0]
        assert [t.args for t in base_chain.sent("executeScheduledPayment")] == [(1,), (0,)]
        assert sleeps == [1.0, 1.0]
        assert sorted(executed) == [(0, True), (1, True)]
        assert poller.pending_confirmations == 0
        assert [p.id for p in poller.book.history] == [3, 1, 0]

    @pytest.mark.asyncio
    async def test_nothing_due(self, poller, automation, base_chain):
        automation.add_payment(PAYER, 1_000_000, [MERCHANT], NOW + 600)

        assert await poller.tick() == []
        assert base_chain.transactions == []
        assert [p.id for p in poller.book.scheduled] == [0]

    @pytest.mark.asyncio
    async def test_disabled(self, poller, automation, base_chain):
        automation.add_payment(PAYER, 1_000_000, [MERCHANT], NOW - 100)
        poller.enabled = False

        assert await poller.tick() == []
        assert base_chain.calls == []

    @pytest.mark.asyncio
    async def test_without_wallet(self, registry, resolver, automation, base_chain):
        poller = AutoExecutionPoller(registry, resolver, clock=lambda: NOW)
        assert await poller.tick() == []

        poller.wallet = WalletContext(chain_id=CHAIN_ID_BASE_SEPOLIA, account=None, provider=FakeWeb3(base_chain))
        assert await poller.tick() == []
        assert base_chain.calls == []

    @pytest.mark.asyncio
    async def test_without_automation_contract(self, registry, provider_factory, wallet, base_chain):
        networks = {n.chain_id: n.model_copy(update={"automation_contract": None}) for n in registry}
        registry = NetworkRegistry(networks)
        poller = AutoExecutionPoller(registry, ProviderResolver(registry, provider_factory=provider_factory), wallet)

        assert await poller.tick() == []
        assert base_chain.calls == []

    @pytest.mark.asyncio
    async def test_load_failure_skips_tick(self, poller, base_chain):
        # No automation contract deployed: nextPaymentId reverts
        assert await poller.tick() == []
        assert base_chain.transactions == []

    @pytest.mark.asyncio
    async def test_rejected_payment_does_not_block_others(self, poller, automation, base_chain):
        automation.add_payment(PAYER, 1_000_000, [MERCHANT], NOW - 100)
        automation.add_payment(PAYER, 1_000_000, [MERCHANT], NOW - 50)
        base_chain.reject = lambda function, args: (
            CallException("call revert exception") if args == (1,) else None
        )

        submitted = await poller.tick()
        await poller.aclose()

        assert submitted == [0]
        assert automation.payments[0]["executed"]
        assert not automation.payments[1]["executed"]

    @pytest.mark.asyncio
    async def test_reverted_receipt_skips_hooks(self, poller, automation, base_chain):
        executed = []
        poller.on_executed(lambda payment_id, receipt: executed.append(payment_id))
        automation.add_payment(PAYER, 1_000_000, [MERCHANT], NOW - 100)
        base_chain.revert.add("executeScheduledPayment")

        assert await poller.tick() == [0]
        await poller.aclose()

        assert executed == []

    @pytest.mark.asyncio
    async def test_failing_hook_does_not_stop_others(self, poller, automation):
        executed = []

        def broken(payment_id, receipt):
            raise RuntimeError("listener crashed")

        poller.on_executed(broken).on_executed(lambda payment_id, receipt: executed.append(payment_id))
        automation.add_payment(PAYER, 1_000_000, [MERCHANT], NOW - 100)

        await poller.tick()
        await poller.aclose()

        assert executed == [0]


class TestLifecycle:
    """start / stop / aclose."""

    @pytest.mark.asyncio
    async def test_start_runs_ticks_until_closed(self, poller, automation):
        done = asyncio.Event()
        poller.on_executed(lambda payment_id, receipt: done.set())
        automation.add_payment(PAYER, 1_000_000, [MERCHANT], NOW - 100)

        poller.start()
        assert poller.running
        await asyncio.wait_for(done.wait(), timeout=2)
        await poller.aclose()

        assert not poller.running
        assert automation.payments[0]["executed"]

    @pytest.mark.asyncio
    async def test_start_and_stop_are_idempotent(self, poller, automation):
        poller.start()
        task = poller._task
        poller.start()
        assert poller._task is task

        poller.stop()
        poller.stop()
        await poller.aclose()
        assert not poller.running

    @pytest.mark.asyncio
    async def test_restart_after_stop(self, poller, automation):
        poller.stop()
        poller.start()
        assert poller.running
        await poller.aclose()
        assert not poller.running

    @pytest.mark.asyncio
    async def test_restart_while_tick_in_progress(self, registry, resolver, wallet, automation, base_chain):
        in_tick = asyncio.Event()
        release = asyncio.Event()

        async def held_sleep(seconds):
            in_tick.set()
            await release.wait()

        poller = AutoExecutionPoller(
            registry, resolver, wallet, interval=0.01, spacing=1.0, clock=lambda: NOW, sleep=held_sleep
        )
        automation.add_payment(PAYER, 1_000_000, [MERCHANT], NOW - 100)
        automation.add_payment(PAYER, 1_000_000, [MERCHANT], NOW - 50)

        poller.start()
        await asyncio.wait_for(in_tick.wait(), timeout=2)
        poller.stop()
        poller.start()
        release.set()
        await asyncio.sleep(0.05)

        assert poller.running
        assert automation.payments[0]["executed"]
        assert automation.payments[1]["executed"]
        await poller.aclose()
        assert not poller.running

    def test_from_settings(self, settings, registry, resolver, wallet):
        poller = AutoExecutionPoller.from_settings(settings, registry, resolver, wallet)
        assert poller.wallet is wallet
        assert poller.enabled
        assert not poller.running
