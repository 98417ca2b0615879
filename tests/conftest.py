"""Shared fixtures: two fake networks wired into a registry and resolver."""

import pytest

from basepay.config import Settings
from basepay.evm.constants import (
    CHAIN_ID_BASE_SEPOLIA,
    CHAIN_ID_MORPH_HOLESKY,
    RPC_URLS,
)
from basepay.networks import NetworkRegistry
from basepay.provider import ProviderResolver

from .mocks import (
    AUTOMATION_BASE,
    AUTOMATION_MORPH,
    PAYROLL_BASE,
    PAYROLL_MORPH,
    FakeChain,
    ProviderFactory,
)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        invoice_contracts={
            CHAIN_ID_BASE_SEPOLIA: PAYROLL_BASE,
            CHAIN_ID_MORPH_HOLESKY: PAYROLL_MORPH,
        },
        automation_contracts={
            CHAIN_ID_BASE_SEPOLIA: AUTOMATION_BASE,
            CHAIN_ID_MORPH_HOLESKY: AUTOMATION_MORPH,
        },
        poll_interval=0.01,
        execution_spacing=0.0,
        settle_delay=0.0,
    )


@pytest.fixture
def registry(settings: Settings) -> NetworkRegistry:
    return NetworkRegistry.from_settings(settings)


@pytest.fixture
def base_chain() -> FakeChain:
    return FakeChain(CHAIN_ID_BASE_SEPOLIA)


@pytest.fixture
def morph_chain() -> FakeChain:
    return FakeChain(CHAIN_ID_MORPH_HOLESKY)


@pytest.fixture
def provider_factory(base_chain: FakeChain, morph_chain: FakeChain) -> ProviderFactory:
    return ProviderFactory(
        {
            RPC_URLS[CHAIN_ID_BASE_SEPOLIA]: base_chain,
            RPC_URLS[CHAIN_ID_MORPH_HOLESKY]: morph_chain,
        }
    )


@pytest.fixture
def resolver(registry: NetworkRegistry, provider_factory: ProviderFactory) -> ProviderResolver:
    return ProviderResolver(registry, provider_factory=provider_factory)
