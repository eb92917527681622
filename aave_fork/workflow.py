"""End-to-end deposit -> borrow -> partial repay run

The run is a strictly linear sequence of states. Each state depends on the
confirmed on-chain result of the previous one, so nothing runs in parallel
and nothing is retried. A failure stops the run where it happened; funds
already wrapped or deposited stay where they are.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from eth_account.signers.local import LocalAccount

from .approvals import TokenApprover
from .borrowing import BorrowExecutor, compute_borrow_amount
from .collateral import CollateralDepositor
from .config import WorkflowConfig
from .models import PositionSnapshot, PriceQuote, format_units
from .oracle import PriceOracleReader, ensure_fresh, ensure_quote_currency
from .repayment import RepaymentExecutor, compute_repay_amount
from .state import AccountStatsReader

logger = logging.getLogger(__name__)


class WorkflowState(Enum):
    START = "start"
    WRAP_ASSET = "wrap_asset"
    DEPOSIT_COLLATERAL = "deposit_collateral"
    READ_POSITION = "read_position"
    READ_PRICE = "read_price"
    COMPUTE_BORROW_AMOUNT = "compute_borrow_amount"
    BORROW = "borrow"
    READ_POSITION_AFTER_BORROW = "read_position_after_borrow"
    COMPUTE_REPAY_AMOUNT = "compute_repay_amount"
    REPAY = "repay"
    READ_POSITION_AFTER_REPAY = "read_position_after_repay"
    DONE = "done"
    FAILED = "failed"


@dataclass
class WorkflowResult:
    """What a completed run observed"""

    wrapped_balance: Optional[int] = None
    position_after_deposit: Optional[PositionSnapshot] = None
    quote: Optional[PriceQuote] = None
    borrow_amount: int = 0
    position_after_borrow: Optional[PositionSnapshot] = None
    repay_amount: int = 0
    position_after_repay: Optional[PositionSnapshot] = None
    visited: List[WorkflowState] = field(default_factory=list)


def resolve_lending_pool(gateway, provider_address: str, account: LocalAccount):
    """Ask the addresses provider for the current LendingPool and bind it"""
    provider = gateway.resolve("ILendingPoolAddressesProvider", provider_address)
    pool_address = gateway.call(provider, "getLendingPool")
    logger.info("Lending pool: %s", pool_address)
    return gateway.resolve("ILendingPool", pool_address, account)


class Workflow:
    """
    Wrap ETH, deposit it, borrow against it and repay part of the loan.

    Components are built from the gateway unless passed in, so tests can
    swap the gateway for a simulated chain.
    """

    def __init__(
        self,
        config: WorkflowConfig,
        gateway,
        account: LocalAccount,
    ):
        self.config = config
        self.gateway = gateway
        self.account = account

        confirmations = config.confirmations
        self.approver = TokenApprover(gateway, confirmations)
        self.depositor = CollateralDepositor(
            gateway, self.approver, config.weth_token, confirmations
        )
        self.stats_reader = AccountStatsReader(gateway)
        self.oracle_reader = PriceOracleReader(gateway)
        self.borrower = BorrowExecutor(gateway, self.stats_reader, confirmations)
        self.repayer = RepaymentExecutor(
            gateway, self.approver, self.stats_reader, confirmations
        )

        self.state = WorkflowState.START
        self.failed_state: Optional[WorkflowState] = None
        self.result = WorkflowResult()

    def _enter(self, state: WorkflowState) -> None:
        self.state = state
        self.result.visited.append(state)
        logger.debug("Workflow state: %s", state.value)

    def run(self) -> WorkflowResult:
        """
        Execute every state once, in order

        Raises:
            Whatever the failing step raised; the workflow is left in FAILED
            with failed_state set to the step that raised.
        """
        if self.state is not WorkflowState.START:
            raise RuntimeError(
                f"Workflow already ran (state {self.state.value}); create a new one"
            )
        self.result.visited.append(WorkflowState.START)
        try:
            self._run()
        except Exception:
            self.failed_state = self.state
            self.state = WorkflowState.FAILED
            logger.error("Workflow failed during %s", self.failed_state.value)
            raise
        return self.result

    def _run(self) -> None:
        cfg = self.config
        account = self.account
        result = self.result

        self._enter(WorkflowState.WRAP_ASSET)
        if cfg.wrap_native_asset:
            result.wrapped_balance = self.depositor.acquire_wrapped_asset(
                account, cfg.deposit_amount
            )
        else:
            logger.info("Skipping wrap; using existing WETH balance")

        self._enter(WorkflowState.DEPOSIT_COLLATERAL)
        pool = resolve_lending_pool(
            self.gateway, cfg.lending_pool_addresses_provider, account
        )
        self.depositor.deposit_collateral(pool, cfg.weth_token, cfg.deposit_amount, account)

        self._enter(WorkflowState.READ_POSITION)
        result.position_after_deposit = self.stats_reader.read_position(account, pool)

        self._enter(WorkflowState.READ_PRICE)
        quote = self.oracle_reader.read_latest_price(cfg.price_feed)
        ensure_quote_currency(quote, cfg.reference_currency)
        if cfg.max_price_age is not None:
            ensure_fresh(quote, self.gateway.latest_timestamp(), cfg.max_price_age)
        result.quote = quote

        self._enter(WorkflowState.COMPUTE_BORROW_AMOUNT)
        result.borrow_amount = compute_borrow_amount(
            result.position_after_deposit.available_borrow_value,
            quote,
            cfg.safety_factor,
            decimals=cfg.borrow_decimals,
        )
        logger.info(
            "Going to borrow %s of %s",
            format_units(result.borrow_amount, cfg.borrow_decimals),
            cfg.borrow_token,
        )

        self._enter(WorkflowState.BORROW)
        position = self.borrower.borrow(
            pool,
            cfg.borrow_token,
            result.borrow_amount,
            cfg.interest_rate_mode,
            account,
            cfg.borrow_decimals,
        )

        # the executor reads the position once the borrow is confirmed
        self._enter(WorkflowState.READ_POSITION_AFTER_BORROW)
        result.position_after_borrow = position

        self._enter(WorkflowState.COMPUTE_REPAY_AMOUNT)
        result.repay_amount = compute_repay_amount(
            result.borrow_amount,
            result.position_after_borrow,
            quote,
            fraction=cfg.repay_fraction,
            decimals=cfg.borrow_decimals,
        )

        self._enter(WorkflowState.REPAY)
        position = self.repayer.repay(
            pool,
            cfg.borrow_token,
            result.repay_amount,
            cfg.interest_rate_mode,
            account,
            cfg.borrow_decimals,
        )

        self._enter(WorkflowState.READ_POSITION_AFTER_REPAY)
        result.position_after_repay = position

        self._enter(WorkflowState.DONE)
        logger.info("Deposited, borrowed and repaid")
