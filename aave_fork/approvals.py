"""ERC20 allowance approval"""

import logging

from eth_account.signers.local import LocalAccount

from .models import TransactionReceipt, format_units

logger = logging.getLogger(__name__)


class TokenApprover:
    """Sets an ERC20 allowance and waits for it to be mined"""

    def __init__(self, gateway, confirmations: int = 1):
        self.gateway = gateway
        self.confirmations = confirmations

    def approve(
        self,
        token_address: str,
        spender_address: str,
        amount: int,
        account: LocalAccount,
        decimals: int = 18,
    ) -> TransactionReceipt:
        """
        Approve `spender_address` to move exactly `amount` of the token

        ERC20 approve overwrites: the resulting allowance is `amount`
        whatever it was before.

        Args:
            token_address: ERC20 token address
            spender_address: Contract allowed to transfer (e.g. the lending pool)
            amount: Allowance in the token's smallest unit
            account: Token owner, signs the transaction
            decimals: Token decimals, for the log line only

        Returns:
            Receipt of the approve transaction
        """
        logger.info(
            "Approving %s to spend %s of token %s",
            spender_address,
            format_units(amount, decimals),
            token_address,
        )
        token = self.gateway.resolve("IERC20", token_address, account)
        pending = self.gateway.send(token, "approve", spender_address, amount)
        receipt = self.gateway.await_confirmation(pending, self.confirmations)
        logger.info("Approved (tx %s)", receipt.tx_hash)
        return receipt

    def allowance(self, token_address: str, owner: str, spender: str) -> int:
        """Current allowance of owner towards spender"""
        token = self.gateway.resolve("IERC20", token_address)
        return self.gateway.call(token, "allowance", owner, spender)
