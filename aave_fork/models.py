"""Data types shared by the workflow components"""

from dataclasses import dataclass
from decimal import Decimal
from enum import IntEnum


class InterestRateMode(IntEnum):
    """Aave V2 interest rate modes"""

    STABLE = 1
    VARIABLE = 2


@dataclass(frozen=True)
class PositionSnapshot:
    """Result of LendingPool.getUserAccountData

    Values are in the pool's reference currency smallest units (wei of ETH on
    Aave V2), ltv and liquidation threshold in basis points, health factor
    with 18 decimals.
    """

    total_collateral_value: int
    total_debt_value: int
    available_borrow_value: int
    current_liquidation_threshold: int = 0
    ltv: int = 0
    health_factor: int = 0

    @classmethod
    def from_account_data(cls, data) -> "PositionSnapshot":
        (
            total_collateral,
            total_debt,
            available_borrow,
            liquidation_threshold,
            ltv,
            health_factor,
        ) = data
        return cls(
            total_collateral_value=total_collateral,
            total_debt_value=total_debt,
            available_borrow_value=available_borrow,
            current_liquidation_threshold=liquidation_threshold,
            ltv=ltv,
            health_factor=health_factor,
        )


@dataclass(frozen=True)
class PriceQuote:
    """One oracle round from AggregatorV3Interface.latestRoundData"""

    round_id: int
    answer: int
    decimals: int
    started_at: int = 0
    updated_at: int = 0
    answered_in_round: int = 0
    description: str = ""

    @property
    def price(self) -> Decimal:
        """Answer scaled by the feed decimals"""
        return Decimal(self.answer).scaleb(-self.decimals)


@dataclass(frozen=True)
class PendingTransaction:
    tx_hash: str
    label: str = ""


@dataclass(frozen=True)
class TransactionReceipt:
    tx_hash: str
    block_number: int
    gas_used: int
    status: int
    confirmations: int = 1


def format_units(amount: int, decimals: int = 18) -> Decimal:
    """Smallest-unit integer to a human readable Decimal (log output only)"""
    return Decimal(amount).scaleb(-decimals)
