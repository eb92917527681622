"""Reading the account position from the lending pool"""

import logging
from typing import Union

from eth_account.signers.local import LocalAccount

from .models import PositionSnapshot, format_units

logger = logging.getLogger(__name__)


class AccountStatsReader:
    """Reads getUserAccountData; nothing is cached between calls"""

    def __init__(self, gateway):
        self.gateway = gateway

    def read_position(
        self, account: Union[LocalAccount, str], pool
    ) -> PositionSnapshot:
        """
        Read the aggregate position of `account` in `pool`

        Must be called again after every deposit, borrow or repay.

        Args:
            account: Account or address
            pool: Lending pool handle

        Returns:
            PositionSnapshot in the pool's reference currency (ETH wei on Aave V2)
        """
        address = getattr(account, "address", account)
        data = self.gateway.call(pool, "getUserAccountData", address)
        snapshot = PositionSnapshot.from_account_data(data)

        logger.info(
            "You have %s worth of ETH deposited",
            format_units(snapshot.total_collateral_value),
        )
        logger.info(
            "You have %s worth of ETH borrowed", format_units(snapshot.total_debt_value)
        )
        logger.info(
            "You can borrow %s worth of ETH",
            format_units(snapshot.available_borrow_value),
        )
        return snapshot
