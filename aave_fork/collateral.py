"""Wrapping the native asset and depositing it as collateral"""

import logging

from eth_account.signers.local import LocalAccount

from .approvals import TokenApprover
from .models import TransactionReceipt, format_units

logger = logging.getLogger(__name__)

REFERRAL_CODE = 0


class CollateralDepositor:
    """Gets wrapped-asset balance and supplies it to the lending pool"""

    def __init__(
        self,
        gateway,
        approver: TokenApprover,
        wrapped_asset_address: str,
        confirmations: int = 1,
    ):
        self.gateway = gateway
        self.approver = approver
        self.wrapped_asset_address = wrapped_asset_address
        self.confirmations = confirmations

    def acquire_wrapped_asset(self, account: LocalAccount, amount: int) -> int:
        """
        Wrap `amount` wei of the native asset by calling IWeth.deposit

        Returns:
            Wrapped balance of the account after the deposit. It is logged,
            not compared with `amount`: earlier runs leave balance behind.
        """
        logger.info("Wrapping %s ETH", format_units(amount))
        weth = self.gateway.resolve("IWeth", self.wrapped_asset_address, account)
        pending = self.gateway.send(weth, "deposit", value=amount)
        self.gateway.await_confirmation(pending, self.confirmations)

        balance = self.gateway.call(weth, "balanceOf", account.address)
        logger.info("Wrapped balance: %s WETH", format_units(balance))
        return balance

    def deposit_collateral(
        self,
        pool,
        asset: str,
        amount: int,
        account: LocalAccount,
    ) -> TransactionReceipt:
        """
        Approve the pool for exactly `amount` of `asset` and deposit it

        Args:
            pool: Lending pool handle (signer bound)
            asset: Collateral token address
            amount: Amount in smallest units
            account: Depositor; also the onBehalfOf address
        """
        self.approver.approve(asset, pool.address, amount, account)

        logger.info("Depositing %s of %s into the lending pool", format_units(amount), asset)
        pending = self.gateway.send(
            pool, "deposit", asset, amount, account.address, REFERRAL_CODE
        )
        receipt = self.gateway.await_confirmation(pending, self.confirmations)
        logger.info("Deposited (tx %s)", receipt.tx_hash)
        return receipt
