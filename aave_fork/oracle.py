"""Chainlink style price feed reading"""

import logging
from typing import Optional

from .contracts import InterfaceDescriptor
from .errors import PriceFeedError, ResolutionError
from .models import PriceQuote

logger = logging.getLogger(__name__)

DEFAULT_FEED_DECIMALS = 18

# Explicit ABI for feeds resolved without the bundled interface set
AGGREGATOR_V3_ABI = [
    {
        "inputs": [],
        "name": "decimals",
        "outputs": [{"internalType": "uint8", "name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "latestRoundData",
        "outputs": [
            {"internalType": "uint80", "name": "roundId", "type": "uint80"},
            {"internalType": "int256", "name": "answer", "type": "int256"},
            {"internalType": "uint256", "name": "startedAt", "type": "uint256"},
            {"internalType": "uint256", "name": "updatedAt", "type": "uint256"},
            {"internalType": "uint80", "name": "answeredInRound", "type": "uint80"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
]


class PriceOracleReader:
    """Reads the latest round of a price feed"""

    def __init__(self, gateway):
        self.gateway = gateway

    def read_latest_price(
        self,
        oracle_address: str,
        descriptor: InterfaceDescriptor = "AggregatorV3Interface",
    ) -> PriceQuote:
        """
        Read latestRoundData and keep its answer

        decimals() and description() are read when the interface has them;
        otherwise 18 decimals and an empty description are assumed. The
        round's age is not checked here, see ensure_fresh.

        Args:
            oracle_address: Feed address
            descriptor: Interface name or explicit ABI (e.g. AGGREGATOR_V3_ABI)

        Returns:
            PriceQuote
        """
        feed = self.gateway.resolve(descriptor, oracle_address)
        round_id, answer, started_at, updated_at, answered_in_round = self.gateway.call(
            feed, "latestRoundData"
        )
        if answer <= 0:
            raise PriceFeedError(
                f"Feed {oracle_address} returned non-positive answer {answer} (round {round_id})"
            )

        try:
            decimals = self.gateway.call(feed, "decimals")
        except ResolutionError:
            decimals = DEFAULT_FEED_DECIMALS
        try:
            description = self.gateway.call(feed, "description")
        except ResolutionError:
            description = ""

        quote = PriceQuote(
            round_id=round_id,
            answer=answer,
            decimals=decimals,
            started_at=started_at,
            updated_at=updated_at,
            answered_in_round=answered_in_round,
            description=description,
        )
        logger.info("Latest %s price is %s", description or "feed", quote.price)
        return quote


def ensure_fresh(quote: PriceQuote, now: int, max_age: Optional[int]) -> None:
    """Raise PriceFeedError if the round is older than max_age seconds

    max_age=None disables the check.
    """
    if max_age is None:
        return
    age = now - quote.updated_at
    if age > max_age:
        raise PriceFeedError(
            f"Price round {quote.round_id} is {age}s old (max {max_age}s)"
        )


def ensure_quote_currency(quote: PriceQuote, currency: str) -> None:
    """Raise PriceFeedError unless the feed is quoted in `currency`

    Feed descriptions look like "DAI / ETH": base asset priced in the quote
    currency. Feeds without a description pass.
    """
    if not quote.description:
        logger.warning("Feed has no description; cannot check it is quoted in %s", currency)
        return
    _, _, quoted_in = quote.description.partition("/")
    quoted_in = quoted_in.strip().upper()
    if quoted_in != currency.upper():
        raise PriceFeedError(
            f"Feed '{quote.description}' is not quoted in {currency}; "
            f"borrow capacity is denominated in {currency}"
        )
