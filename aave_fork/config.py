"""Contract addresses and workflow configuration"""

import logging
import os
import re
from dataclasses import dataclass, replace
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dotenv import load_dotenv
from web3 import Web3

from .models import InterestRateMode

load_dotenv()

logger = logging.getLogger(__name__)


# Mainnet Aave V2 market (checksummed)
WETH = Web3.to_checksum_address("0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2")
LENDING_POOL_ADDRESSES_PROVIDER = Web3.to_checksum_address(
    "0xB53C1a33016B2DC2fF3653530bfF1848a515c8c5"
)
DAI = Web3.to_checksum_address("0x6B175474E89094C44Da98b954EedeAC495271d0F")
DAI_ETH_PRICE_FEED = Web3.to_checksum_address(
    "0x773616E4d11A78F511299002da57A0a94577F1f4"
)

NETWORKS: Dict[str, Dict[str, str]] = {
    "mainnet-fork": {
        "weth_token": WETH,
        "lending_pool_addresses_provider": LENDING_POOL_ADDRESSES_PROVIDER,
        "dai_token": DAI,
        "dai_eth_price_feed": DAI_ETH_PRICE_FEED,
    },
    "mainnet": {
        "weth_token": WETH,
        "lending_pool_addresses_provider": LENDING_POOL_ADDRESSES_PROVIDER,
        "dai_token": DAI,
        "dai_eth_price_feed": DAI_ETH_PRICE_FEED,
    },
}

# RPC / signer
RPC_URL = os.getenv("RPC_URL", "http://127.0.0.1:8545")
NETWORK = os.getenv("NETWORK", "mainnet-fork")
ACCOUNT = os.getenv("ACCOUNT", "0")  # Anvil account index, "env" or a private key

DEFAULT_DEPOSIT_AMOUNT = Web3.to_wei(Decimal("0.1"), "ether")
DEFAULT_SAFETY_FACTOR = Decimal("0.95")
DEFAULT_REPAY_FRACTION = Decimal("0.5")


@dataclass(frozen=True)
class WorkflowConfig:
    """Everything a single deposit/borrow/repay run needs"""

    network: str
    rpc_url: str
    account_selector: str
    weth_token: str
    lending_pool_addresses_provider: str
    borrow_token: str
    price_feed: str
    deposit_amount: int = DEFAULT_DEPOSIT_AMOUNT
    safety_factor: Decimal = DEFAULT_SAFETY_FACTOR
    repay_fraction: Decimal = DEFAULT_REPAY_FRACTION
    interest_rate_mode: InterestRateMode = InterestRateMode.VARIABLE
    confirmations: int = 1
    borrow_decimals: int = 18
    reference_currency: str = "ETH"
    max_price_age: Optional[int] = None
    tx_timeout: Optional[float] = None
    poll_interval: float = 1.0
    wrap_native_asset: bool = True


# ---------------------------------------------------------------------------
# YAML overrides
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


def _read_yaml(config_path: Union[str, Path]) -> Dict[str, Any]:
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}
    return _interpolate_env(raw)


def _parse_rate_mode(mode: Any) -> InterestRateMode:
    """'stable'/'variable' or 1/2"""
    try:
        if isinstance(mode, str) and not mode.strip().isdigit():
            return InterestRateMode[mode.strip().upper()]
        return InterestRateMode(int(mode))
    except (KeyError, ValueError, TypeError):
        raise ValueError(
            f"interest_rate_mode must be 'stable' or 'variable' (1/2), got {mode!r}"
        ) from None


def _settings_from_yaml(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Convert the `workflow:` section into WorkflowConfig keyword arguments"""
    settings: Dict[str, Any] = {}
    if "deposit_amount" in raw:
        # given in ether, like the scripts this replaces
        settings["deposit_amount"] = Web3.to_wei(
            Decimal(str(raw["deposit_amount"])), "ether"
        )
    for key in ("safety_factor", "repay_fraction"):
        if key in raw:
            settings[key] = Decimal(str(raw[key]))
    if "interest_rate_mode" in raw:
        settings["interest_rate_mode"] = _parse_rate_mode(raw["interest_rate_mode"])
    for key in ("confirmations", "borrow_decimals", "max_price_age"):
        if raw.get(key) is not None:
            settings[key] = int(raw[key])
    for key in ("tx_timeout", "poll_interval"):
        if raw.get(key) is not None:
            settings[key] = float(raw[key])
    if "reference_currency" in raw:
        settings["reference_currency"] = str(raw["reference_currency"])
    if "wrap_native_asset" in raw:
        settings["wrap_native_asset"] = bool(raw["wrap_native_asset"])
    return settings


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    network: Optional[str] = None,
    **overrides: Any,
) -> WorkflowConfig:
    """Build the workflow configuration.

    Address book entries come from NETWORKS, optionally extended or
    replaced by the `networks:` section of a YAML file. The `workflow:`
    section and keyword overrides adjust the run parameters.

    Args:
        config_path: Optional YAML file
        network: Network name (defaults to the YAML `network` key, then $NETWORK)
        **overrides: Already-typed WorkflowConfig fields, applied last
    """
    raw: Dict[str, Any] = {}
    if config_path is not None:
        raw = _read_yaml(config_path)

    network = network or raw.get("network") or NETWORK
    networks = {name: dict(book) for name, book in NETWORKS.items()}
    for name, book in (raw.get("networks") or {}).items():
        networks.setdefault(name, {}).update(book)

    if network not in networks:
        raise ValueError(
            f"Unknown network '{network}' (known: {', '.join(sorted(networks))})"
        )
    book = networks[network]

    missing = [
        key
        for key in (
            "weth_token",
            "lending_pool_addresses_provider",
            "dai_token",
            "dai_eth_price_feed",
        )
        if not book.get(key)
    ]
    if missing:
        raise ValueError(
            f"Network '{network}' is missing addresses: {', '.join(missing)}"
        )

    cfg = WorkflowConfig(
        network=network,
        rpc_url=raw.get("rpc_url") or RPC_URL,
        account_selector=str(raw.get("account", ACCOUNT)),
        weth_token=book["weth_token"],
        lending_pool_addresses_provider=book["lending_pool_addresses_provider"],
        borrow_token=book["dai_token"],
        price_feed=book["dai_eth_price_feed"],
        **_settings_from_yaml(raw.get("workflow") or {}),
    )
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if overrides:
        cfg = replace(cfg, **overrides)

    cfg = _checksum_addresses(cfg)
    _validate(cfg)
    logger.debug("Configuration loaded for network %s", cfg.network)
    return cfg


def _checksum_addresses(cfg: WorkflowConfig) -> WorkflowConfig:
    fields = (
        "weth_token",
        "lending_pool_addresses_provider",
        "borrow_token",
        "price_feed",
    )
    checksummed = {}
    for name in fields:
        value = getattr(cfg, name)
        if not Web3.is_address(value):
            raise ValueError(f"Invalid address for {name}: {value!r}")
        checksummed[name] = Web3.to_checksum_address(value)
    return replace(cfg, **checksummed)


def _validate(cfg: WorkflowConfig) -> None:
    """Raise on invalid configuration."""
    if not 0 < cfg.safety_factor < 1:
        raise ValueError(
            f"safety_factor must be strictly between 0 and 1, got {cfg.safety_factor}"
        )
    if not 0 < cfg.repay_fraction <= 1:
        raise ValueError(
            f"repay_fraction must be in (0, 1], got {cfg.repay_fraction}"
        )
    if cfg.deposit_amount <= 0:
        raise ValueError("deposit_amount must be positive")
    if cfg.confirmations < 1:
        raise ValueError("confirmations must be at least 1")
    if cfg.max_price_age is not None and cfg.max_price_age <= 0:
        raise ValueError("max_price_age must be positive when set")
