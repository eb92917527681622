"""Unit tests for repay sizing and the repayment executor."""
from __future__ import annotations

import logging
from decimal import Decimal

import pytest

from aave_fork.approvals import TokenApprover
from aave_fork.errors import BorrowSizingError, TransactionFailedError
from aave_fork.models import InterestRateMode, PositionSnapshot
from aave_fork.repayment import RepaymentExecutor, compute_repay_amount
from aave_fork.state import AccountStatsReader
from simchain import DAI_ADDRESS, DAI_ETH_ANSWER, ETHER, POOL_ADDRESS

PRICE = Decimal("0.0005")


def _position(debt_value: int) -> PositionSnapshot:
    return PositionSnapshot(
        total_collateral_value=ETHER,
        total_debt_value=debt_value,
        available_borrow_value=0,
    )


class TestComputeRepayAmount:
    @pytest.mark.parametrize("borrowed", [152 * ETHER, 152 * ETHER + 1, 3, 2])
    def test_half_is_floor_division(self, borrowed: int) -> None:
        position = _position(borrowed * DAI_ETH_ANSWER // ETHER + 10**18)
        assert compute_repay_amount(borrowed, position, PRICE) == borrowed // 2

    def test_large_amounts_stay_exact(self) -> None:
        borrowed = 10**40 + 1
        position = _position(10**60)
        assert compute_repay_amount(borrowed, position, Decimal(1)) == borrowed // 2

    def test_never_exceeds_outstanding_debt(self) -> None:
        # debt was partly repaid elsewhere: only 10 DAI worth left
        position = _position(10 * DAI_ETH_ANSWER)
        amount = compute_repay_amount(152 * ETHER, position, PRICE)
        assert amount == 10 * ETHER
        assert Decimal(amount) * PRICE <= position.total_debt_value

    def test_custom_fraction(self) -> None:
        position = _position(100 * DAI_ETH_ANSWER)
        assert compute_repay_amount(100 * ETHER, position, PRICE, Decimal("0.25")) == 25 * ETHER

    @pytest.mark.parametrize("fraction", [Decimal(0), Decimal("1.5")])
    def test_fraction_out_of_range(self, fraction) -> None:
        with pytest.raises(ValueError):
            compute_repay_amount(ETHER, _position(ETHER), PRICE, fraction)

    def test_non_positive_price(self) -> None:
        with pytest.raises(BorrowSizingError):
            compute_repay_amount(ETHER, _position(ETHER), Decimal(0))

    def test_one_unit_borrow_has_nothing_to_repay(self) -> None:
        with pytest.raises(BorrowSizingError, match="Nothing to repay"):
            compute_repay_amount(1, _position(ETHER), PRICE)

    def test_no_outstanding_debt(self) -> None:
        with pytest.raises(BorrowSizingError, match="Nothing to repay"):
            compute_repay_amount(152 * ETHER, _position(0), PRICE)


class TestRepaymentExecutor:
    @pytest.fixture()
    def indebted(self, chain, account):
        chain.collateral[account.address] = ETHER // 10
        chain.debt[account.address] = 100 * ETHER
        chain.tokens[DAI_ADDRESS][account.address] = 100 * ETHER
        return chain

    def _executor(self, chain) -> RepaymentExecutor:
        return RepaymentExecutor(chain, TokenApprover(chain), AccountStatsReader(chain))

    def test_partial_repay_reduces_debt(self, indebted, pool, account) -> None:
        snapshot = self._executor(indebted).repay(
            pool, DAI_ADDRESS, 50 * ETHER, InterestRateMode.VARIABLE, account
        )
        assert snapshot.total_debt_value == 50 * DAI_ETH_ANSWER
        assert indebted.debt[account.address] == 50 * ETHER

    def test_approves_exact_amount_before_repay(self, indebted, pool, account) -> None:
        self._executor(indebted).repay(
            pool, DAI_ADDRESS, 50 * ETHER, InterestRateMode.VARIABLE, account
        )
        labels = [label for label, _ in indebted.sent]
        assert labels == ["IERC20.approve", "ILendingPool.repay"]
        assert indebted.sent[0][1] == (POOL_ADDRESS, 50 * ETHER)
        assert indebted.sent[1][1] == (DAI_ADDRESS, 50 * ETHER, 2, account.address)

    def test_revert_propagates(self, indebted, pool, account) -> None:
        indebted.revert_on.add("repay")
        with pytest.raises(TransactionFailedError):
            self._executor(indebted).repay(
                pool, DAI_ADDRESS, 50 * ETHER, InterestRateMode.VARIABLE, account
            )
        assert indebted.debt[account.address] == 100 * ETHER

    def test_logs_amount_in_token_decimals(self, indebted, pool, account, caplog) -> None:
        caplog.set_level(logging.INFO, logger="aave_fork")
        self._executor(indebted).repay(
            pool, DAI_ADDRESS, 3_000_000, InterestRateMode.VARIABLE, account, decimals=6
        )
        assert "Repaying 3.000000 of" in caplog.text
        assert "to spend 3.000000 of token" in caplog.text
