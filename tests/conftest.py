"""Shared test fixtures."""
from __future__ import annotations

from decimal import Decimal

import pytest

from aave_fork.accounts import AccountProvider
from aave_fork.config import WorkflowConfig
from aave_fork.models import InterestRateMode
from simchain import (
    DAI_ADDRESS,
    ETHER,
    FEED_ADDRESS,
    POOL_ADDRESS,
    PROVIDER_ADDRESS,
    WETH_ADDRESS,
    SimHandle,
    SimulatedChain,
)


@pytest.fixture()
def account():
    return AccountProvider().get_account(0)


@pytest.fixture()
def chain(account) -> SimulatedChain:
    sim = SimulatedChain()
    sim.native[account.address] = 10 * ETHER
    return sim


@pytest.fixture()
def pool(chain: SimulatedChain, account) -> SimHandle:
    return chain.resolve("ILendingPool", POOL_ADDRESS, account)


@pytest.fixture()
def workflow_config() -> WorkflowConfig:
    return WorkflowConfig(
        network="simulated",
        rpc_url="http://127.0.0.1:8545",
        account_selector="0",
        weth_token=WETH_ADDRESS,
        lending_pool_addresses_provider=PROVIDER_ADDRESS,
        borrow_token=DAI_ADDRESS,
        price_feed=FEED_ADDRESS,
        deposit_amount=ETHER // 10,
        safety_factor=Decimal("0.95"),
        repay_fraction=Decimal("0.5"),
        interest_rate_mode=InterestRateMode.VARIABLE,
    )
