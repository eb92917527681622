"""Deposit, borrow and repay against an Aave V2 lending pool"""

from .config import WorkflowConfig, load_config
from .contracts import ContractGateway
from .errors import (
    BorrowSizingError,
    PriceFeedError,
    ResolutionError,
    TransactionFailedError,
    WorkflowError,
)
from .workflow import Workflow, WorkflowResult, WorkflowState

__all__ = [
    "BorrowSizingError",
    "ContractGateway",
    "PriceFeedError",
    "ResolutionError",
    "TransactionFailedError",
    "Workflow",
    "WorkflowConfig",
    "WorkflowError",
    "WorkflowResult",
    "WorkflowState",
    "load_config",
]
