"""Unit tests for config loading, env interpolation, and validation."""
from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pytest

from aave_fork.config import (
    DAI,
    DAI_ETH_PRICE_FEED,
    LENDING_POOL_ADDRESSES_PROVIDER,
    WETH,
    WorkflowConfig,
    _interpolate_env,
    load_config,
)
from aave_fork.models import InterestRateMode


class TestInterpolateEnv:
    def test_simple_substitution(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MY_VAR", "hello")
        assert _interpolate_env("${MY_VAR}") == "hello"

    def test_missing_var_becomes_empty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NONEXISTENT_VAR_XYZ", raising=False)
        assert _interpolate_env("${NONEXISTENT_VAR_XYZ}") == ""

    def test_nested(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TOK", "secret")
        assert _interpolate_env({"a": ["${TOK}", 1]}) == {"a": ["secret", 1]}


class TestLoadConfigDefaults:
    def test_mainnet_fork_address_book(self) -> None:
        cfg = load_config(network="mainnet-fork")
        assert isinstance(cfg, WorkflowConfig)
        assert cfg.weth_token == WETH
        assert cfg.lending_pool_addresses_provider == LENDING_POOL_ADDRESSES_PROVIDER
        assert cfg.borrow_token == DAI
        assert cfg.price_feed == DAI_ETH_PRICE_FEED

    def test_run_defaults(self) -> None:
        cfg = load_config(network="mainnet-fork")
        assert cfg.deposit_amount == 10**17
        assert cfg.safety_factor == Decimal("0.95")
        assert cfg.repay_fraction == Decimal("0.5")
        assert cfg.interest_rate_mode is InterestRateMode.VARIABLE
        assert cfg.confirmations == 1
        assert cfg.max_price_age is None
        assert cfg.tx_timeout is None

    def test_unknown_network(self) -> None:
        with pytest.raises(ValueError, match="Unknown network"):
            load_config(network="kovan")

    def test_keyword_overrides(self) -> None:
        cfg = load_config(network="mainnet", account_selector="2", confirmations=3)
        assert cfg.account_selector == "2"
        assert cfg.confirmations == 3

    def test_none_overrides_are_ignored(self) -> None:
        cfg = load_config(network="mainnet", account_selector=None, rpc_url=None)
        assert cfg.account_selector
        assert cfg.rpc_url


class TestLoadConfigYaml:
    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nonexistent.yaml")

    def test_workflow_section(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text(
            """\
network: mainnet-fork
workflow:
  deposit_amount: 0.25
  safety_factor: 0.9
  interest_rate_mode: stable
  confirmations: 2
  max_price_age: 3600
  wrap_native_asset: false
"""
        )
        cfg = load_config(path)
        assert cfg.deposit_amount == 25 * 10**16
        assert cfg.safety_factor == Decimal("0.9")
        assert cfg.interest_rate_mode is InterestRateMode.STABLE
        assert cfg.confirmations == 2
        assert cfg.max_price_age == 3600
        assert cfg.wrap_native_asset is False

    @pytest.mark.parametrize("mode", ["fixed", 3, "0"])
    def test_unknown_rate_mode(self, tmp_path: Path, mode) -> None:
        path = tmp_path / "config.yaml"
        path.write_text(f"workflow:\n  interest_rate_mode: {mode!r}\n")
        with pytest.raises(ValueError, match="interest_rate_mode must be"):
            load_config(path, network="mainnet-fork")

    @pytest.mark.parametrize("mode,expected", [("Variable", 2), (1, 1), ("2", 2)])
    def test_rate_mode_spellings(self, tmp_path: Path, mode, expected: int) -> None:
        path = tmp_path / "config.yaml"
        path.write_text(f"workflow:\n  interest_rate_mode: {mode!r}\n")
        cfg = load_config(path, network="mainnet-fork")
        assert int(cfg.interest_rate_mode) == expected

    def test_custom_network_with_env(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("TEST_FEED", "0x" + "ab" * 20)
        path = tmp_path / "config.yaml"
        path.write_text(
            """\
network: local
rpc_url: http://localhost:9999
account: env
networks:
  local:
    weth_token: "0x1111111111111111111111111111111111111111"
    lending_pool_addresses_provider: "0x3333333333333333333333333333333333333333"
    dai_token: "0x2222222222222222222222222222222222222222"
    dai_eth_price_feed: ${TEST_FEED}
"""
        )
        cfg = load_config(path)
        assert cfg.network == "local"
        assert cfg.rpc_url == "http://localhost:9999"
        assert cfg.account_selector == "env"
        assert cfg.price_feed.lower() == "0x" + "ab" * 20
        # checksummed on the way in
        assert cfg.price_feed != cfg.price_feed.lower()

    def test_partial_network_override(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text(
            """\
networks:
  mainnet-fork:
    dai_eth_price_feed: "0x5555555555555555555555555555555555555555"
"""
        )
        cfg = load_config(path, network="mainnet-fork")
        assert cfg.price_feed == "0x5555555555555555555555555555555555555555"
        assert cfg.weth_token == WETH

    def test_missing_addresses(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("networks:\n  empty:\n    weth_token: '0x1111111111111111111111111111111111111111'\n")
        with pytest.raises(ValueError, match="missing addresses"):
            load_config(path, network="empty")


class TestValidation:
    @pytest.mark.parametrize("safety", [Decimal(0), Decimal(1), Decimal("1.5")])
    def test_safety_factor_range(self, safety: Decimal) -> None:
        with pytest.raises(ValueError, match="safety_factor"):
            load_config(network="mainnet", safety_factor=safety)

    def test_repay_fraction_range(self) -> None:
        with pytest.raises(ValueError, match="repay_fraction"):
            load_config(network="mainnet", repay_fraction=Decimal("1.1"))

    def test_deposit_must_be_positive(self) -> None:
        with pytest.raises(ValueError, match="deposit_amount"):
            load_config(network="mainnet", deposit_amount=0)

    def test_confirmations_at_least_one(self) -> None:
        with pytest.raises(ValueError, match="confirmations"):
            load_config(network="mainnet", confirmations=0)

    def test_invalid_address(self) -> None:
        with pytest.raises(ValueError, match="Invalid address"):
            load_config(network="mainnet", price_feed="0xnot-an-address")
