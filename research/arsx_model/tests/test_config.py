"""Config loading, env interpolation, and validation."""
from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import pytest

from arsx_model.src.config import (
    AppConfig,
    CollateralConfig,
    OracleConfig,
    PsmConfig,
    _interpolate_env,
    _validate,
    load_config,
)


class TestInterpolateEnv:
    def test_simple_substitution(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ARSX_TEST_ADMIN", "deployer")
        assert _interpolate_env("${ARSX_TEST_ADMIN}") == "deployer"

    def test_missing_var_becomes_empty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NONEXISTENT_VAR_XYZ", raising=False)
        assert _interpolate_env("${NONEXISTENT_VAR_XYZ}") == ""

    def test_nested_structures(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("UPD", "price-bot")
        result = _interpolate_env({"oracle": {"updater": "${UPD}"}, "list": ["${UPD}", 1]})
        assert result == {"oracle": {"updater": "price-bot"}, "list": ["price-bot", 1]}

    def test_non_string_passthrough(self) -> None:
        assert _interpolate_env(42) == 42
        assert _interpolate_env(None) is None


class TestLoadConfig:
    def test_loads_valid_yaml(self, sample_yaml_path: Path) -> None:
        cfg = load_config(sample_yaml_path)
        assert isinstance(cfg, AppConfig)
        assert cfg.network == "test"
        assert cfg.admin == "deployer"
        assert [c.symbol for c in cfg.collateral] == ["WETH", "WBTC"]
        assert cfg.collateral[0].name == "Wrapped Ether"
        assert cfg.collateral[1].name == "WBTC"
        assert cfg.collateral[1].price == 3_000_000_000_000
        assert cfg.risk.liquidation_threshold == 60
        assert cfg.risk.liquidation_bonus == 8
        assert cfg.oracle.initial_rate == 100_000
        assert (cfg.oracle.max_age, cfg.oracle.max_delay) == (3600, 7200)
        assert cfg.psm.fee_bps == 25
        assert cfg.simulation.steps == 10
        assert cfg.simulation.random_seed == 1

    def test_defaults_for_missing_sections(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text(
            "admin: deployer\n"
            "collateral:\n"
            "  - symbol: WETH\n"
            "    price: 200000000000\n"
            "oracle:\n"
            "  initial_rate: 83333\n"
            "psm:\n"
            "  enabled: false\n"
        )
        cfg = load_config(path)
        assert cfg.network == "local"
        assert cfg.risk.liquidation_threshold == 50
        assert cfg.risk.liquidation_bonus == 10
        assert cfg.oracle.max_age == 3 * 3600
        assert cfg.simulation.random_seed is None
        assert cfg.price_sources.timeout == 10

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nonexistent.yaml")

    def test_env_interpolation_in_yaml(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ARSX_TEST_ADMIN", "multisig")
        monkeypatch.setenv("ARSX_TEST_UPDATER", "price-bot")
        path = tmp_path / "config.yaml"
        path.write_text(
            "admin: ${ARSX_TEST_ADMIN}\n"
            "collateral:\n"
            "  - symbol: WETH\n"
            "    price: 200000000000\n"
            "oracle:\n"
            "  initial_rate: 83333\n"
            "  updater: ${ARSX_TEST_UPDATER}\n"
            "psm:\n"
            "  collateral: WETH\n"
        )
        cfg = load_config(path)
        assert cfg.admin == "multisig"
        assert cfg.oracle.updater == "price-bot"

    def test_repository_config_loads(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ARSX_ADMIN", "deployer")
        cfg = load_config()
        assert cfg.admin == "deployer"
        assert cfg.collateral[0].symbol == "WETH"
        assert cfg.collateral[1].decimals == 8


def _valid() -> AppConfig:
    return AppConfig(
        admin="deployer",
        collateral=(CollateralConfig(symbol="WETH", price=2_000 * 10**8),),
        oracle=OracleConfig(initial_rate=83_333),
        psm=PsmConfig(collateral="WETH"),
    )


class TestValidate:
    def test_valid_config_passes(self) -> None:
        _validate(_valid())

    def test_missing_admin(self) -> None:
        with pytest.raises(ValueError, match="admin"):
            _validate(replace(_valid(), admin=""))

    def test_no_collateral(self) -> None:
        with pytest.raises(ValueError, match="collateral"):
            _validate(replace(_valid(), collateral=()))

    def test_duplicate_symbols(self) -> None:
        weth = CollateralConfig(symbol="WETH", price=1)
        with pytest.raises(ValueError, match="unique"):
            _validate(replace(_valid(), collateral=(weth, weth)))

    def test_non_positive_price(self) -> None:
        with pytest.raises(ValueError, match="positive initial price"):
            _validate(replace(_valid(), collateral=(CollateralConfig(symbol="WETH"),)))

    @pytest.mark.parametrize("decimals", [-1, 19])
    def test_collateral_decimals_out_of_range(self, decimals: int) -> None:
        weth = CollateralConfig(symbol="WETH", price=1, decimals=decimals)
        with pytest.raises(ValueError, match="decimals"):
            _validate(replace(_valid(), collateral=(weth,)))

    def test_eight_decimal_collateral_passes(self) -> None:
        collateral = CollateralConfig(symbol="WETH", price=1, decimals=8)
        _validate(replace(_valid(), collateral=(collateral,)))

    def test_missing_oracle_rate(self) -> None:
        with pytest.raises(ValueError, match="initial_rate"):
            _validate(replace(_valid(), oracle=OracleConfig()))

    def test_psm_with_unknown_collateral(self) -> None:
        with pytest.raises(ValueError, match="PSM"):
            _validate(replace(_valid(), psm=PsmConfig(collateral="DAI")))

    def test_disabled_psm_is_not_checked(self) -> None:
        _validate(replace(_valid(), psm=PsmConfig(enabled=False)))
