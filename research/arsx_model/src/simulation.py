"""Liquidation stress simulation.

Drives a deployed protocol through a random collateral price path and lets a
single liquidator close every position that falls below the minimum health
factor, recording protocol-level metrics at each step.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from .chain import Chain
from .config import AppConfig, CollateralConfig, OracleConfig, PsmConfig, SimulationConfig
from .constants import FEED_PRECISION, MIN_HEALTH_FACTOR, ORACLE_DECIMALS, PRECISION, UINT256_MAX
from .deploy import Deployment, deploy_protocol
from .errors import (
    BreaksHealthFactorError,
    HealthFactorNotImprovedError,
    InsufficientFundsError,
    ZeroAmountError,
)
from .instructions.valuation import usd_to_arsx

logger = logging.getLogger(__name__)

ADMIN = "admin"
LIQUIDATOR = "liquidator"


@dataclass
class SimulationParams:
    initial_price: float = 2000.0  # USD per collateral unit
    ars_per_usd: float = 1200.0
    price_volatility: float = 0.02  # per step
    price_drift: float = -0.001  # per step
    steps: int = 500
    step_seconds: int = 3600
    borrowers: int = 20
    min_utilization: float = 0.40  # share of borrowing capacity minted
    max_utilization: float = 0.95
    close_factor: float = 0.5  # share of debt covered per liquidation
    random_seed: Optional[int] = None
    experiment_name: str = "default"

    @classmethod
    def from_config(cls, cfg: SimulationConfig, initial_price: float, ars_per_usd: float) -> "SimulationParams":
        return cls(
            initial_price=initial_price,
            ars_per_usd=ars_per_usd,
            price_volatility=cfg.price_volatility,
            price_drift=cfg.price_drift,
            steps=cfg.steps,
            borrowers=cfg.borrowers,
            random_seed=cfg.random_seed,
        )


@dataclass
class StepRecord:
    step: int
    timestamp: int
    price: float
    collateral_value_usd: float
    debt_value_usd: float
    min_health_factor: float
    liquidatable: int
    liquidations: int
    failed_liquidations: int


def _default_config(params: SimulationParams) -> AppConfig:
    return AppConfig(
        network="simulation",
        admin=ADMIN,
        collateral=(
            CollateralConfig(
                symbol="WETH",
                name="Wrapped Ether",
                price=int(params.initial_price * FEED_PRECISION),
            ),
        ),
        oracle=OracleConfig(initial_rate=_scaled_rate(params.ars_per_usd)),
        psm=PsmConfig(enabled=False),
    )


def _scaled_rate(ars_per_usd: float) -> int:
    """USD per ARS at the oracle's fixed point scale"""
    return round(10**ORACLE_DECIMALS / ars_per_usd)


def _to_float(value: int) -> float:
    return value / PRECISION


class LiquidationSimulation:
    def __init__(self, params: SimulationParams, config: Optional[AppConfig] = None):
        self.params = params
        self.config = config or _default_config(params)
        self.deployment: Deployment = deploy_protocol(self.config, Chain())
        self.symbol = self.config.collateral[0].symbol
        self.price_updater = self.config.oracle.updater or self.config.admin
        self.records: List[StepRecord] = []
        self.borrowers: List[str] = []

        if params.random_seed is not None:
            np.random.seed(params.random_seed)

    @property
    def asset(self) -> str:
        return self.deployment.collateral(self.symbol).address

    def setup(self) -> None:
        """Open borrower positions and fund the liquidator"""
        for i in range(self.params.borrowers):
            borrower = f"borrower-{i}"
            units = float(np.random.uniform(1, 20))
            utilization = float(np.random.uniform(self.params.min_utilization, self.params.max_utilization))
            self._open_position(borrower, int(units * PRECISION), utilization)
            self.borrowers.append(borrower)

        # Large, lightly levered position so liquidations never break the liquidator
        liquidator_units = 50 * self.params.borrowers
        self._open_position(LIQUIDATOR, liquidator_units * PRECISION, 0.2)
        self.deployment.arsx.approve(LIQUIDATOR, self.deployment.engine.address, UINT256_MAX)

    def _open_position(self, account: str, amount: int, utilization: float) -> None:
        engine = self.deployment.engine
        token = self.deployment.collateral(self.symbol)
        token.mint(account, account, amount)
        token.approve(account, engine.address, amount)
        engine.deposit_collateral(account, self.asset, amount)

        capacity_usd = engine.get_account_collateral_value(account) * engine.get_liquidation_threshold() // 100
        rate, _ = self.deployment.oracle.latest_data()
        to_mint = int(usd_to_arsx(capacity_usd, rate, self.deployment.oracle.decimals) * utilization)
        if to_mint > 0:
            engine.mint_arsx(account, to_mint)

    def simulate(self) -> List[StepRecord]:
        if not self.borrowers:
            self.setup()

        chain = self.deployment.chain
        feed = self.deployment.feed(self.symbol)
        oracle = self.deployment.oracle
        price = self.params.initial_price
        sigma = self.params.price_volatility

        for step in range(self.params.steps):
            # Geometric Brownian motion step
            shock = np.random.normal(0, 1)
            price *= float(np.exp(self.params.price_drift - 0.5 * sigma**2 + sigma * shock))

            chain.advance(self.params.step_seconds)
            feed.update_answer(max(1, int(price * FEED_PRECISION)))
            oracle.update_price(self.price_updater, _scaled_rate(self.params.ars_per_usd))

            liquidations, failures = self._liquidate_unhealthy()
            self.records.append(self._record(step, price, liquidations, failures))

        return self.records

    def _liquidate_unhealthy(self):
        engine = self.deployment.engine
        arsx = self.deployment.arsx
        liquidations = failures = 0
        for borrower in self.borrowers:
            if engine.get_health_factor(borrower) >= MIN_HEALTH_FACTOR:
                continue
            debt = engine.get_arsx_minted(borrower)
            debt_to_cover = min(
                max(1, int(debt * self.params.close_factor)),
                arsx.balance_of(LIQUIDATOR),
            )
            try:
                engine.liquidate(LIQUIDATOR, self.asset, borrower, debt_to_cover)
                liquidations += 1
            except (
                HealthFactorNotImprovedError,
                InsufficientFundsError,
                BreaksHealthFactorError,
                ZeroAmountError,
            ) as e:
                # Underwater or dust positions stay open as bad debt
                logger.warning("Could not liquidate %s: %s", borrower, e)
                failures += 1
        return liquidations, failures

    def _record(self, step: int, price: float, liquidations: int, failures: int) -> StepRecord:
        engine = self.deployment.engine
        health_factors = []
        collateral_value = debt_value = 0
        for borrower in self.borrowers:
            info = engine.get_account_information(borrower)
            collateral_value += info.collateral_value_in_usd
            if info.total_arsx_minted:
                debt_value += engine.get_arsx_usd_value(info.total_arsx_minted)
                health_factors.append(engine.get_health_factor(borrower))

        return StepRecord(
            step=step,
            timestamp=self.deployment.chain.timestamp,
            price=price,
            collateral_value_usd=_to_float(collateral_value),
            debt_value_usd=_to_float(debt_value),
            min_health_factor=_to_float(min(health_factors)) if health_factors else float("inf"),
            liquidatable=sum(1 for hf in health_factors if hf < MIN_HEALTH_FACTOR),
            liquidations=liquidations,
            failed_liquidations=failures,
        )

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame([vars(record) for record in self.records])

    def plot_results(self, output_dir: Path = Path("results")) -> Path:
        output_dir = Path(output_dir) / self.params.experiment_name
        output_dir.mkdir(parents=True, exist_ok=True)
        frame = self.to_frame()

        fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(12, 8))

        # Plot price
        ax1.plot(frame["step"], frame["price"], label=f"{self.symbol} Price")
        ax1.set_ylabel("Price (USD)")
        ax1.set_title("Collateral Price Over Time")
        ax1.legend()
        ax1.grid(True)

        # Plot health factor and liquidations
        ax2.plot(frame["step"], frame["min_health_factor"].clip(upper=5), label="Min Health Factor", color="orange")
        ax2.axhline(y=1.0, color="r", linestyle="--", alpha=0.3)
        ax2.bar(frame["step"], frame["liquidations"], label="Liquidations", alpha=0.4)
        ax2.set_xlabel("Step")
        ax2.set_title("Health Factor and Liquidations")
        ax2.legend()
        ax2.grid(True)

        plt.tight_layout()

        plot_name = f"vol_{self.params.price_volatility}_drift_{self.params.price_drift}"
        if self.params.random_seed is not None:
            plot_name += f"_seed_{self.params.random_seed}"
        path = output_dir / f"{plot_name}.png"
        plt.savefig(path)
        plt.close(fig)
        return path

    def summary(self) -> Dict[str, float]:
        frame = self.to_frame()
        return {
            "steps": len(frame),
            "final_price": float(frame["price"].iloc[-1]),
            "liquidations": int(frame["liquidations"].sum()),
            "failed_liquidations": int(frame["failed_liquidations"].sum()),
            "min_health_factor": float(frame["min_health_factor"].min()),
        }


def run_simulation(params: SimulationParams, output_dir: Path, config: Optional[AppConfig] = None) -> Dict[str, float]:
    """Run one simulation, write its metrics CSV and chart, return the summary"""
    sim = LiquidationSimulation(params, config)
    sim.simulate()

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    sim.to_frame().to_csv(output_dir / f"liquidations_{timestamp}.csv", index=False)
    sim.plot_results(output_dir)

    summary = sim.summary()
    logger.info("Simulation finished: %s", summary)
    return summary
