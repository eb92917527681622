"""Error taxonomy for the deposit/borrow/repay workflow"""

from typing import Optional


class WorkflowError(Exception):
    """Base class for every failure raised by this package"""


class ResolutionError(WorkflowError):
    """Contract address, interface or signer could not be resolved"""


class TransactionFailedError(WorkflowError):
    """A submitted transaction reverted or never confirmed"""

    def __init__(self, reason: str, tx_hash: Optional[str] = None):
        self.reason = reason
        self.tx_hash = tx_hash
        message = reason if tx_hash is None else f"{reason} (tx: {tx_hash})"
        super().__init__(message)


class PriceFeedError(WorkflowError):
    """Oracle round is unusable: non-positive, stale or quoted in the wrong currency"""


class BorrowSizingError(WorkflowError, ArithmeticError):
    """Borrow amount could not be derived from the current position"""
