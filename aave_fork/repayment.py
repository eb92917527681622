"""Partial loan repayment"""

import logging
from decimal import ROUND_FLOOR, Decimal, localcontext
from typing import Union

from eth_account.signers.local import LocalAccount

from .approvals import TokenApprover
from .borrowing import DECIMAL_PRECISION, Price, as_decimal
from .errors import BorrowSizingError
from .models import InterestRateMode, PositionSnapshot, format_units
from .state import AccountStatsReader

logger = logging.getLogger(__name__)

HALF = Decimal("0.5")


def compute_repay_amount(
    borrowed_amount: int,
    position: PositionSnapshot,
    price: Price,
    fraction: Union[Decimal, float, str] = HALF,
    decimals: int = 18,
    value_decimals: int = 18,
) -> int:
    """
    Portion of a borrow to pay back, never more than the outstanding debt

    Args:
        borrowed_amount: Amount borrowed, smallest units
        position: Latest snapshot, after the borrow
        price: Borrowed asset priced in the reference currency
        fraction: Share of borrowed_amount to repay; 0.5 gives floor(borrowed / 2)

    Returns:
        Repay amount in smallest units

    Raises:
        ValueError: fraction out of range
        BorrowSizingError: non-positive price, or nothing left to repay
    """
    fraction = as_decimal(fraction)
    if not 0 < fraction <= 1:
        raise ValueError(f"fraction must be in (0, 1], got {fraction}")
    price = as_decimal(price)
    if price <= 0:
        raise BorrowSizingError(f"Cannot size a repayment with price {price}")

    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        amount = int((Decimal(borrowed_amount) * fraction).to_integral_value(ROUND_FLOOR))
        debt = Decimal(position.total_debt_value).scaleb(-value_decimals) / price
        outstanding = int(debt.scaleb(decimals).to_integral_value(ROUND_FLOOR))

    if amount > outstanding:
        logger.warning(
            "Requested repay %s exceeds outstanding debt %s; capping",
            format_units(amount, decimals),
            format_units(outstanding, decimals),
        )
        amount = outstanding

    if amount <= 0:
        raise BorrowSizingError(
            f"Nothing to repay: borrowed {format_units(borrowed_amount, decimals)}"
            f" with outstanding debt {format_units(outstanding, decimals)}"
        )
    return amount


class RepaymentExecutor:
    """Approves the pool and repays part of a loan"""

    def __init__(
        self,
        gateway,
        approver: TokenApprover,
        stats_reader: AccountStatsReader,
        confirmations: int = 1,
    ):
        self.gateway = gateway
        self.approver = approver
        self.stats_reader = stats_reader
        self.confirmations = confirmations

    def repay(
        self,
        pool,
        asset: str,
        amount: int,
        interest_rate_mode: InterestRateMode,
        account: LocalAccount,
        decimals: int = 18,
    ) -> PositionSnapshot:
        """
        Repay `amount` of `asset`; partial repayment is the normal case

        Returns:
            Position read after the repay confirmed
        """
        self.approver.approve(asset, pool.address, amount, account, decimals)

        logger.info("Repaying %s of %s", format_units(amount, decimals), asset)
        pending = self.gateway.send(
            pool, "repay", asset, amount, int(interest_rate_mode), account.address
        )
        receipt = self.gateway.await_confirmation(pending, self.confirmations)
        logger.info("Repaid (tx %s)", receipt.tx_hash)
        return self.stats_reader.read_position(account, pool)
