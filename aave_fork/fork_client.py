"""Web3 client setup for the node (usually an Anvil mainnet fork)"""

from typing import Optional

from web3 import Web3

from .config import RPC_URL


class ForkClient:
    """Client for the JSON-RPC node the workflow runs against"""

    def __init__(self, rpc_url: Optional[str] = None):
        self.rpc_url = rpc_url or RPC_URL
        self.w3 = Web3(Web3.HTTPProvider(self.rpc_url))

        # Anvil doesn't need PoA middleware

        if not self.w3.is_connected():
            raise ConnectionError(f"Failed to connect to {self.rpc_url}")

    def set_balance(self, address: str, balance_wei: int) -> dict:
        """Set balance for an address using anvil_setBalance (forks only)"""
        return self.w3.provider.make_request(
            "anvil_setBalance", [address, hex(balance_wei)]
        )

    def get_balance(self, address: str) -> int:
        """Get ETH balance for an address"""
        return self.w3.eth.get_balance(address)
