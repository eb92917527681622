"""Signer resolution: Anvil default accounts, raw private keys or $PRIVATE_KEY"""

import os
from typing import Dict, Union

from eth_account import Account
from eth_account.signers.local import LocalAccount

from .errors import ResolutionError

ANVIL_ACCOUNTS = {
    0: {
        "address": "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266",
        "private_key": "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80",
    },
    1: {
        "address": "0x70997970C51812dc3A010C7d01b50e0d17dc79C8",
        "private_key": "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d",
    },
    2: {
        "address": "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC",
        "private_key": "0x5de4111afa1a4b94908f83103eb1f1706367c2e68ca870fc3fb9a804cdab365a",
    },
}


class AccountProvider:
    """Turns an account selector into a signing LocalAccount

    Selectors:
        - an Anvil account index ("0", "1", 2, ...)
        - "env": the key in $PRIVATE_KEY
        - a 0x-prefixed 32-byte private key
    """

    def __init__(self, env_var: str = "PRIVATE_KEY"):
        self.env_var = env_var
        self._accounts: Dict[str, LocalAccount] = {}

    def get_account(self, selector: Union[int, str]) -> LocalAccount:
        key = str(selector).strip()
        if key not in self._accounts:
            self._accounts[key] = Account.from_key(self._private_key(key))
        return self._accounts[key]

    def _private_key(self, selector: str) -> str:
        if selector.isdigit():
            index = int(selector)
            if index not in ANVIL_ACCOUNTS:
                raise ResolutionError(
                    f"Anvil account index must be one of {sorted(ANVIL_ACCOUNTS)}, got {index}"
                )
            return ANVIL_ACCOUNTS[index]["private_key"]
        if selector == "env":
            private_key = os.getenv(self.env_var)
            if not private_key:
                raise ResolutionError(f"${self.env_var} is not set")
            return private_key
        if selector.startswith("0x") and len(selector) == 66:
            return selector
        raise ResolutionError(f"Unrecognised account selector: {selector[:10]}...")
