"""Transaction building, confirmation polling and revert reason extraction

Building and waiting are kept apart from the gateway so that the gateway
only deals with handles and the error taxonomy.
"""

import logging
import time
from typing import Any, Dict, Optional

from web3 import Web3
from web3.exceptions import ContractLogicError, TransactionNotFound

logger = logging.getLogger(__name__)

# 1 gwei
MIN_MAX_FEE_PER_GAS = 1_000_000_000
ERROR_STRING_SELECTOR = "0x08c379a0"  # Error(string)


# ============================================================================
# Building
# ============================================================================


def get_base_fee(w3: Web3) -> int:
    """Get base fee from latest block"""
    latest_block = w3.eth.get_block("latest")
    return latest_block.get("baseFeePerGas", 0) if latest_block else 0


def build_transaction(
    w3: Web3,
    account_address: str,
    func_call,
    value: int = 0,
    gas: Optional[int] = None,
) -> Dict[str, Any]:
    """Build an EIP-1559 transaction for a bound contract function

    Gas is estimated by the node when not given, so a call that would
    revert fails here with ContractLogicError before anything is sent.
    """
    base_fee = get_base_fee(w3)
    priority_fee = w3.eth.max_priority_fee
    params: Dict[str, Any] = {
        "from": account_address,
        "value": value,
        "maxPriorityFeePerGas": priority_fee,
        "maxFeePerGas": max(2 * base_fee + priority_fee, MIN_MAX_FEE_PER_GAS),
        "nonce": w3.eth.get_transaction_count(account_address, "pending"),
    }
    if gas is not None:
        params["gas"] = gas
    return func_call.build_transaction(params)


# ============================================================================
# Waiting
# ============================================================================


def wait_for_receipt(
    w3: Web3,
    tx_hash,
    confirmations: int = 1,
    timeout: Optional[float] = None,
    poll_interval: float = 1.0,
):
    """Wait until tx_hash is mined and buried under `confirmations` blocks

    The inclusion block counts as the first confirmation. With timeout=None
    this blocks for as long as the node takes. Returns None on timeout.
    """
    deadline = None if timeout is None else time.monotonic() + timeout
    receipt = None
    while True:
        if receipt is None:
            try:
                receipt = w3.eth.get_transaction_receipt(tx_hash)
            except TransactionNotFound:
                receipt = None
        if receipt is not None:
            depth = w3.eth.block_number - receipt["blockNumber"] + 1
            if depth >= confirmations:
                return receipt
            logger.debug("%s has %d/%d confirmations", tx_hash, depth, confirmations)
        if deadline is not None and time.monotonic() >= deadline:
            return None
        time.sleep(poll_interval)


# ============================================================================
# Revert reasons
# ============================================================================


def decode_error_string(output: str) -> Optional[str]:
    """Decode Error(string) revert data, None if it is something else"""
    if not output or not output.startswith(ERROR_STRING_SELECTOR):
        return None
    try:
        error_data = output[10:]  # skip 0x and selector
        str_len = int(error_data[64:128], 16)
        str_data_hex = error_data[128 : 128 + (str_len * 2)]
        return bytes.fromhex(str_data_hex).decode("utf-8").rstrip("\x00")
    except ValueError:
        return None


def extract_revert_reason(w3: Web3, tx_hash: str) -> str:
    """
    Find out why a mined transaction reverted

    Tries debug_traceTransaction first (Anvil, Geth with debug namespace),
    then replays the call at the parent block.

    Args:
        w3: Web3 instance
        tx_hash: Transaction hash (hex string)

    Returns:
        Revert reason or a generic message naming the transaction
    """
    try:
        trace = w3.provider.make_request(
            "debug_traceTransaction", [tx_hash, {"tracer": "callTracer"}]
        )
        result = trace.get("result") if isinstance(trace, dict) else None
        if isinstance(result, dict):
            reason = decode_error_string(result.get("output") or "")
            if reason:
                return reason
            error = result.get("error")
            if isinstance(error, str) and error:
                return error
    except Exception as e:  # tracing is optional on most nodes
        logger.debug("debug_traceTransaction unavailable: %s", e)

    tx = w3.eth.get_transaction(tx_hash)
    try:
        w3.eth.call(
            {
                "to": tx["to"],
                "data": tx["input"],
                "from": tx["from"],
                "value": tx.get("value", 0),
            },
            tx["blockNumber"] - 1,
        )
    except ContractLogicError as call_error:
        return str(call_error)

    return f"Transaction reverted (tx: {tx_hash})"
