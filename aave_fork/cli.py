"""Command-line interface for the deposit/borrow/repay workflow."""

import argparse
import logging
import sys
from decimal import Decimal
from typing import List, Optional

from web3 import Web3

from .accounts import AccountProvider
from .config import load_config
from .contracts import ContractGateway
from .fork_client import ForkClient
from .logging_setup import configure_logging
from .models import format_units
from .oracle import PriceOracleReader
from .state import AccountStatsReader
from .workflow import Workflow, resolve_lending_pool

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="aave-fork",
        description="Wrap ETH, deposit it into Aave V2, borrow DAI and repay half",
    )
    parser.add_argument("--config", default=None, help="Optional YAML config file")
    parser.add_argument("--network", default=None, help="Network name (default: $NETWORK)")
    parser.add_argument(
        "--account",
        default=None,
        help="Anvil account index, 'env' for $PRIVATE_KEY, or a private key",
    )
    parser.add_argument("--rpc-url", default=None, help="Node URL (default: $RPC_URL)")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    run_parser = sub.add_parser("run", help="Full wrap/deposit/borrow/repay run")
    run_parser.add_argument(
        "--fund-eth",
        type=Decimal,
        default=None,
        help="Set the signer's ETH balance first (anvil_setBalance, forks only)",
    )
    sub.add_parser("position", help="Show the account position in the lending pool")
    sub.add_parser("price", help="Show the latest DAI/ETH price")

    return parser


def _run(args: argparse.Namespace) -> None:
    """Execute the selected command."""
    config = load_config(
        args.config,
        args.network,
        account_selector=args.account,
        rpc_url=args.rpc_url,
    )
    client = ForkClient(config.rpc_url)
    gateway = ContractGateway(
        client.w3,
        AccountProvider(),
        tx_timeout=config.tx_timeout,
        poll_interval=config.poll_interval,
    )
    account = gateway.account_provider.get_account(config.account_selector)
    logger.info("Account %s on %s", account.address, config.network)

    if args.command == "run":
        if args.fund_eth is not None:
            client.set_balance(account.address, Web3.to_wei(args.fund_eth, "ether"))
        logger.info("ETH balance: %s", format_units(client.get_balance(account.address)))
        Workflow(config, gateway, account).run()
    elif args.command == "position":
        pool = resolve_lending_pool(
            gateway, config.lending_pool_addresses_provider, account
        )
        AccountStatsReader(gateway).read_position(account, pool)
    elif args.command == "price":
        PriceOracleReader(gateway).read_latest_price(config.price_feed)


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point: exit 0 when the command completes, 1 on any failure."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    configure_logging(args.log_level)
    try:
        _run(args)
    except Exception as e:
        logger.error(
            "%s: %s", type(e).__name__, e, exc_info=logger.isEnabledFor(logging.DEBUG)
        )
        sys.exit(1)
    sys.exit(0)
