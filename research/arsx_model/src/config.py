"""Configuration loader: reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .constants import (
    DEFAULT_FEED_MAX_DELAY,
    DEFAULT_LIQUIDATION_BONUS,
    DEFAULT_LIQUIDATION_THRESHOLD,
    DEFAULT_ORACLE_MAX_AGE,
    DEFAULT_PSM_FEE_BPS,
    DEFAULT_PSM_REDEEM_THRESHOLD,
    FEED_DECIMALS,
    TOKEN_DECIMALS,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CollateralConfig:
    symbol: str = ""
    name: str = ""
    decimals: int = 18
    price: int = 0  # initial feed answer, FEED_DECIMALS decimals
    feed_decimals: int = FEED_DECIMALS


@dataclass(frozen=True)
class RiskConfig:
    liquidation_threshold: int = DEFAULT_LIQUIDATION_THRESHOLD
    liquidation_bonus: int = DEFAULT_LIQUIDATION_BONUS


@dataclass(frozen=True)
class OracleConfig:
    initial_rate: int = 0  # USD per ARS, 8 decimals
    max_age: int = DEFAULT_ORACLE_MAX_AGE
    max_delay: int = DEFAULT_FEED_MAX_DELAY
    updater: str = ""


@dataclass(frozen=True)
class PsmConfig:
    enabled: bool = True
    collateral: str = ""
    fee_bps: int = DEFAULT_PSM_FEE_BPS
    redeem_threshold: int = DEFAULT_PSM_REDEEM_THRESHOLD


@dataclass(frozen=True)
class PriceSourcesConfig:
    bluelytics_url: str = "https://api.bluelytics.com.ar/v2/latest"
    binance_url: str = "https://api.binance.com/api/v3/ticker/price?symbol=USDTARS"
    timeout: int = 10


@dataclass(frozen=True)
class SimulationConfig:
    steps: int = 500
    price_volatility: float = 0.02
    price_drift: float = -0.001
    borrowers: int = 20
    random_seed: int | None = None
    output_dir: str = "results"


@dataclass(frozen=True)
class AppConfig:
    network: str = "local"
    admin: str = ""
    collateral: tuple[CollateralConfig, ...] = ()
    risk: RiskConfig = field(default_factory=RiskConfig)
    oracle: OracleConfig = field(default_factory=OracleConfig)
    psm: PsmConfig = field(default_factory=PsmConfig)
    price_sources: PriceSourcesConfig = field(default_factory=PriceSourcesConfig)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)


# ---------------------------------------------------------------------------
# Env interpolation
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


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_collateral(raw: list[dict[str, Any]]) -> tuple[CollateralConfig, ...]:
    return tuple(
        CollateralConfig(
            symbol=c.get("symbol", ""),
            name=c.get("name", c.get("symbol", "")),
            decimals=int(c.get("decimals", TOKEN_DECIMALS)),
            price=int(c.get("price", 0)),
            feed_decimals=int(c.get("feed_decimals", FEED_DECIMALS)),
        )
        for c in raw
    )


def _build_risk(raw: dict[str, Any]) -> RiskConfig:
    return RiskConfig(
        liquidation_threshold=int(raw.get("liquidation_threshold", DEFAULT_LIQUIDATION_THRESHOLD)),
        liquidation_bonus=int(raw.get("liquidation_bonus", DEFAULT_LIQUIDATION_BONUS)),
    )


def _build_oracle(raw: dict[str, Any]) -> OracleConfig:
    return OracleConfig(
        initial_rate=int(raw.get("initial_rate", 0) or 0),
        max_age=int(raw.get("max_age", DEFAULT_ORACLE_MAX_AGE)),
        max_delay=int(raw.get("max_delay", DEFAULT_FEED_MAX_DELAY)),
        updater=raw.get("updater", ""),
    )


def _build_psm(raw: dict[str, Any]) -> PsmConfig:
    return PsmConfig(
        enabled=bool(raw.get("enabled", True)),
        collateral=raw.get("collateral", ""),
        fee_bps=int(raw.get("fee_bps", DEFAULT_PSM_FEE_BPS)),
        redeem_threshold=int(raw.get("redeem_threshold", DEFAULT_PSM_REDEEM_THRESHOLD)),
    )


def _build_price_sources(raw: dict[str, Any]) -> PriceSourcesConfig:
    return PriceSourcesConfig(
        bluelytics_url=raw.get("bluelytics_url", PriceSourcesConfig.bluelytics_url),
        binance_url=raw.get("binance_url", PriceSourcesConfig.binance_url),
        timeout=int(raw.get("timeout", 10)),
    )


def _build_simulation(raw: dict[str, Any]) -> SimulationConfig:
    seed = raw.get("random_seed")
    return SimulationConfig(
        steps=int(raw.get("steps", 500)),
        price_volatility=float(raw.get("price_volatility", 0.02)),
        price_drift=float(raw.get("price_drift", -0.001)),
        borrowers=int(raw.get("borrowers", 20)),
        random_seed=None if seed in (None, "") else int(seed),
        output_dir=raw.get("output_dir", "results"),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` at the
            repository root.
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parents[3] / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        network=raw.get("network") or "local",
        admin=raw.get("admin", ""),
        collateral=_build_collateral(raw.get("collateral", [])),
        risk=_build_risk(raw.get("risk", {})),
        oracle=_build_oracle(raw.get("oracle", {})),
        psm=_build_psm(raw.get("psm", {})),
        price_sources=_build_price_sources(raw.get("price_sources", {})),
        simulation=_build_simulation(raw.get("simulation", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s (network %s)", config_path, cfg.network)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.admin:
        raise ValueError("An admin account must be configured")
    if not cfg.collateral:
        raise ValueError("At least one collateral asset must be configured")

    symbols = [c.symbol for c in cfg.collateral]
    if len(set(symbols)) != len(symbols):
        raise ValueError("Collateral symbols must be unique")
    for c in cfg.collateral:
        if not c.symbol:
            raise ValueError("Collateral entry has no symbol")
        if c.price <= 0:
            raise ValueError(f"Collateral '{c.symbol}' needs a positive initial price")
        if not 0 <= c.decimals <= TOKEN_DECIMALS:
            raise ValueError(f"Collateral '{c.symbol}' decimals must be between 0 and {TOKEN_DECIMALS}")

    if cfg.oracle.initial_rate <= 0:
        raise ValueError("Oracle initial_rate must be positive")
    if cfg.psm.enabled and cfg.psm.collateral not in symbols:
        raise ValueError(
            f"PSM references unknown collateral '{cfg.psm.collateral}'"
        )
