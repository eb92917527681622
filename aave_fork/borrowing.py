"""Borrow sizing and execution"""

import logging
from decimal import ROUND_FLOOR, Decimal, localcontext
from typing import Union

from eth_account.signers.local import LocalAccount

from .errors import BorrowSizingError
from .models import InterestRateMode, PositionSnapshot, PriceQuote, format_units
from .state import AccountStatsReader

logger = logging.getLogger(__name__)

REFERRAL_CODE = 0
# uint256 values are at most 78 digits
DECIMAL_PRECISION = 80

Price = Union[PriceQuote, Decimal, int, str]


def as_decimal(value) -> Decimal:
    """Decimal from a quote, Decimal, int or str; floats go through str"""
    if isinstance(value, PriceQuote):
        return value.price
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def compute_borrow_amount(
    available_borrow_value: int,
    price: Price,
    safety_factor: Union[Decimal, float, str],
    decimals: int = 18,
    value_decimals: int = 18,
) -> int:
    """
    Size a borrow below the available capacity

    amount = available_borrow_value * safety_factor / price, floored and
    expressed in the borrowed token's smallest unit.

    Args:
        available_borrow_value: availableBorrowsETH from the pool, in wei
        price: Borrowed asset priced in the same reference currency (ETH per DAI)
        safety_factor: Fraction of the capacity to use, 0 < safety_factor < 1
        decimals: Borrowed token decimals
        value_decimals: Decimals of available_borrow_value

    Returns:
        Borrow amount in smallest units

    Raises:
        ValueError: safety_factor out of range
        BorrowSizingError: non-positive price or no capacity
    """
    safety_factor = as_decimal(safety_factor)
    if not 0 < safety_factor < 1:
        raise ValueError(
            f"safety_factor must be strictly between 0 and 1, got {safety_factor}"
        )
    price = as_decimal(price)
    if price <= 0:
        raise BorrowSizingError(f"Cannot size a borrow with price {price}")

    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        value = Decimal(available_borrow_value).scaleb(-value_decimals)
        amount = (value * safety_factor / price).scaleb(decimals)
        amount = int(amount.to_integral_value(rounding=ROUND_FLOOR))

    if amount <= 0:
        raise BorrowSizingError(
            f"No borrowing capacity: available {format_units(available_borrow_value, value_decimals)}"
            f" at price {price} gives {amount}"
        )
    return amount


class BorrowExecutor:
    """Submits the borrow and re-reads the position"""

    def __init__(
        self,
        gateway,
        stats_reader: AccountStatsReader,
        confirmations: int = 1,
    ):
        self.gateway = gateway
        self.stats_reader = stats_reader
        self.confirmations = confirmations

    def borrow(
        self,
        pool,
        asset: str,
        amount: int,
        interest_rate_mode: InterestRateMode,
        account: LocalAccount,
        decimals: int = 18,
    ) -> PositionSnapshot:
        """
        Borrow `amount` of `asset` against the account's collateral

        Returns:
            Position read after the borrow confirmed
        """
        logger.info(
            "Borrowing %s of %s (%s rate)",
            format_units(amount, decimals),
            asset,
            InterestRateMode(interest_rate_mode).name.lower(),
        )
        pending = self.gateway.send(
            pool,
            "borrow",
            asset,
            amount,
            int(interest_rate_mode),
            REFERRAL_CODE,
            account.address,
        )
        receipt = self.gateway.await_confirmation(pending, self.confirmations)
        logger.info("Borrowed (tx %s)", receipt.tx_hash)
        return self.stats_reader.read_position(account, pool)
