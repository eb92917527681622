"""Contract ABIs and the gateway every component talks to the chain through"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Sequence, Union

from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError, Web3Exception

from .accounts import AccountProvider
from .errors import ResolutionError, TransactionFailedError
from .models import PendingTransaction, TransactionReceipt
from .transactions import build_transaction, extract_revert_reason, wait_for_receipt

logger = logging.getLogger(__name__)

# Get the directory where this module is located
_MODULE_DIR = Path(__file__).parent
_ABIS_DIR = _MODULE_DIR / "abis"

InterfaceDescriptor = Union[str, Sequence[dict]]


def load_abi(name: str) -> list:
    """Load a bundled interface definition from abis/<name>.json"""
    abi_path = _ABIS_DIR / f"{name}.json"
    if not abi_path.exists():
        raise ResolutionError(
            f"Unknown interface {name!r}; bundled interfaces: {', '.join(available_interfaces())}"
        )
    with open(abi_path, "r") as f:
        return json.load(f)


def available_interfaces() -> List[str]:
    return sorted(p.stem for p in _ABIS_DIR.glob("*.json"))


@dataclass
class ContractHandle:
    """A contract bound to an interface and, optionally, a signing account"""

    contract: Any
    interface: str
    signer: Optional[LocalAccount] = None
    verified: bool = False

    @property
    def address(self) -> str:
        return self.contract.address


class ContractGateway:
    """Resolve contracts and run calls/transactions against them

    Every chain interaction of the workflow goes through resolve, call,
    send and await_confirmation. Web3 failures are turned into
    ResolutionError or TransactionFailedError here.
    """

    def __init__(
        self,
        w3: Web3,
        account_provider: Optional[AccountProvider] = None,
        tx_timeout: Optional[float] = None,
        poll_interval: float = 1.0,
    ):
        self.w3 = w3
        self.account_provider = account_provider or AccountProvider()
        self.tx_timeout = tx_timeout
        self.poll_interval = poll_interval

    def resolve(
        self,
        descriptor: InterfaceDescriptor,
        address: str,
        signer: Union[LocalAccount, int, str, None] = None,
    ) -> ContractHandle:
        """
        Bind a contract address to an interface

        Args:
            descriptor: Bundled interface name (e.g. "IERC20") or an explicit ABI
            address: Contract address
            signer: LocalAccount or account selector used for send()

        Returns:
            ContractHandle. Bytecode presence is checked on first use.
        """
        if isinstance(descriptor, str):
            interface = descriptor
            abi = load_abi(descriptor)
        else:
            interface = "custom ABI"
            abi = list(descriptor)

        if not Web3.is_address(address):
            raise ResolutionError(f"Invalid address for {interface}: {address!r}")
        address = Web3.to_checksum_address(address)

        if isinstance(signer, (int, str)):
            signer = self.account_provider.get_account(signer)

        contract = self.w3.eth.contract(address=address, abi=abi)
        return ContractHandle(contract=contract, interface=interface, signer=signer)

    def call(self, handle: ContractHandle, method: str, *args) -> Any:
        """Read-only invocation; no transaction is created"""
        func_call = self._function(handle, method, args)
        self._ensure_code(handle)
        params = {"from": handle.signer.address} if handle.signer else {}
        try:
            return func_call.call(params)
        except BadFunctionCallOutput as e:
            raise ResolutionError(
                f"{handle.interface}.{method} at {handle.address} returned undecodable output; "
                f"interface does not match deployed bytecode"
            ) from e
        except ContractLogicError as e:
            raise ResolutionError(
                f"{handle.interface}.{method} at {handle.address} reverted: {e}"
            ) from e

    def send(
        self, handle: ContractHandle, method: str, *args, value: int = 0
    ) -> PendingTransaction:
        """Sign with the bound account and submit a state-changing call"""
        if handle.signer is None:
            raise ResolutionError(
                f"{handle.interface} at {handle.address} has no signer bound"
            )
        func_call = self._function(handle, method, args)
        self._ensure_code(handle)
        label = f"{handle.interface}.{method}"

        try:
            tx = build_transaction(
                self.w3, handle.signer.address, func_call, value=value
            )
        except ContractLogicError as e:
            raise TransactionFailedError(f"{label} would revert: {e}") from e
        except Web3Exception as e:
            raise TransactionFailedError(f"{label} could not be built: {e}") from e

        signed_tx = handle.signer.sign_transaction(tx)
        try:
            tx_hash = Web3.to_hex(
                self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
            )
        except Web3Exception as e:
            # e.g. insufficient funds or a stale nonce
            raise TransactionFailedError(f"{label} rejected by the node: {e}") from e
        logger.debug("Sent %s from %s: %s", label, handle.signer.address, tx_hash)
        return PendingTransaction(tx_hash=tx_hash, label=label)

    def await_confirmation(
        self, pending: PendingTransaction, confirmations: int = 1
    ) -> TransactionReceipt:
        """Block until the transaction has `confirmations` blocks; raise if it reverted"""
        receipt = wait_for_receipt(
            self.w3,
            pending.tx_hash,
            confirmations=confirmations,
            timeout=self.tx_timeout,
            poll_interval=self.poll_interval,
        )
        if receipt is None:
            raise TransactionFailedError(
                f"{pending.label} not confirmed within {self.tx_timeout}s",
                pending.tx_hash,
            )
        if receipt["status"] == 0:
            reason = extract_revert_reason(self.w3, pending.tx_hash)
            raise TransactionFailedError(
                f"{pending.label} reverted: {reason}", pending.tx_hash
            )

        logger.debug(
            "%s confirmed in block %s (gas used %s)",
            pending.label,
            receipt["blockNumber"],
            receipt["gasUsed"],
        )
        return TransactionReceipt(
            tx_hash=pending.tx_hash,
            block_number=receipt["blockNumber"],
            gas_used=receipt["gasUsed"],
            status=receipt["status"],
            confirmations=confirmations,
        )

    def latest_timestamp(self) -> int:
        """Timestamp of the latest block (fork time on a fork, not wall time)"""
        return self.w3.eth.get_block("latest")["timestamp"]

    def _function(self, handle: ContractHandle, method: str, args):
        try:
            function = getattr(handle.contract.functions, method)
        except AttributeError as e:
            raise ResolutionError(
                f"{handle.interface} has no method {method!r}"
            ) from e
        return function(*args)

    def _ensure_code(self, handle: ContractHandle) -> None:
        if handle.verified:
            return
        code = self.w3.eth.get_code(handle.address)
        if len(code) == 0:
            raise ResolutionError(
                f"No contract code at {handle.address} (expected {handle.interface})"
            )
        handle.verified = True
