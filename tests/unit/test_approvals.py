"""Unit tests for ERC20 approval."""
from __future__ import annotations

import logging

import pytest

from aave_fork.approvals import TokenApprover
from aave_fork.errors import TransactionFailedError
from simchain import DAI_ADDRESS, ETHER, POOL_ADDRESS


class TestTokenApprover:
    def test_allowance_equals_amount(self, chain, account) -> None:
        approver = TokenApprover(chain)
        approver.approve(DAI_ADDRESS, POOL_ADDRESS, 5 * ETHER, account)
        assert approver.allowance(DAI_ADDRESS, account.address, POOL_ADDRESS) == 5 * ETHER

    def test_overwrites_instead_of_adding(self, chain, account) -> None:
        approver = TokenApprover(chain)
        approver.approve(DAI_ADDRESS, POOL_ADDRESS, 5 * ETHER, account)
        approver.approve(DAI_ADDRESS, POOL_ADDRESS, 2 * ETHER, account)
        assert approver.allowance(DAI_ADDRESS, account.address, POOL_ADDRESS) == 2 * ETHER

    def test_returns_receipt(self, chain, account) -> None:
        receipt = TokenApprover(chain).approve(DAI_ADDRESS, POOL_ADDRESS, 1, account)
        assert receipt.status == 1
        assert receipt.confirmations == 1

    def test_waits_for_configured_confirmations(self, chain, account) -> None:
        start = chain.block_number
        receipt = TokenApprover(chain, confirmations=3).approve(
            DAI_ADDRESS, POOL_ADDRESS, 1, account
        )
        assert receipt.confirmations == 3
        assert chain.block_number == start + 3

    def test_revert_is_fatal(self, chain, account) -> None:
        chain.revert_on.add("approve")
        with pytest.raises(TransactionFailedError, match="simulated revert"):
            TokenApprover(chain).approve(DAI_ADDRESS, POOL_ADDRESS, 1, account)

    def test_logs_amount_in_token_decimals(self, chain, account, caplog) -> None:
        caplog.set_level(logging.INFO, logger="aave_fork")
        TokenApprover(chain).approve(DAI_ADDRESS, POOL_ADDRESS, 2_500_000, account, 6)
        assert "to spend 2.500000 of token" in caplog.text
