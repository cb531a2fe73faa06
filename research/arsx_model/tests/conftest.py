"""Shared fixtures: a deployed protocol with WETH and WBTC collateral.

Prices: WETH $2,000, WBTC $30,000, 1 ARS = $0.001 (1,000 ARS per USD).
With the default 50% threshold, 10 WETH backs at most 10,000,000 ARSX.
"""
from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from arsx_model.src.chain import Chain
from arsx_model.src.config import AppConfig, CollateralConfig, OracleConfig, PsmConfig
from arsx_model.src.deploy import Deployment, deploy_protocol

E18 = 10**18
START = 1_700_000_000

ADMIN = "admin"
ALICE = "alice"
BOB = "bob"
CAROL = "carol"

WETH_PRICE = 2_000 * 10**8
WBTC_PRICE = 30_000 * 10**8
ARS_USD_RATE = 100_000  # $0.001 per ARS, 8 decimals


@pytest.fixture()
def app_config() -> AppConfig:
    return AppConfig(
        network="test",
        admin=ADMIN,
        collateral=(
            CollateralConfig(symbol="WETH", name="Wrapped Ether", price=WETH_PRICE),
            CollateralConfig(symbol="WBTC", name="Wrapped Bitcoin", price=WBTC_PRICE),
        ),
        oracle=OracleConfig(initial_rate=ARS_USD_RATE),
        psm=PsmConfig(enabled=True, collateral="WETH", fee_bps=50, redeem_threshold=50),
    )


@pytest.fixture()
def chain() -> Chain:
    return Chain(timestamp=START)


@pytest.fixture()
def deployment(app_config: AppConfig, chain: Chain) -> Deployment:
    return deploy_protocol(app_config, chain)


@pytest.fixture()
def engine(deployment):
    return deployment.engine


@pytest.fixture()
def arsx(deployment):
    return deployment.arsx


@pytest.fixture()
def oracle(deployment):
    return deployment.oracle


@pytest.fixture()
def psm(deployment):
    return deployment.psm


@pytest.fixture()
def weth(deployment):
    return deployment.collateral("WETH")


@pytest.fixture()
def wbtc(deployment):
    return deployment.collateral("WBTC")


@pytest.fixture()
def weth_feed(deployment):
    return deployment.feed("WETH")


@pytest.fixture()
def fund(engine):
    """Mint collateral to an account and approve the engine to pull it."""

    def _fund(token, account: str, amount: int, spender: str | None = None) -> None:
        token.mint(account, account, amount)
        token.approve(account, spender or engine.address, amount)

    return _fund


@pytest.fixture()
def open_position(engine, fund):
    """Deposit collateral and mint ARSX in one call."""

    def _open(token, account: str, collateral: int, debt: int) -> None:
        fund(token, account, collateral)
        if debt:
            engine.deposit_collateral_and_mint_arsx(account, token.address, collateral, debt)
        else:
            engine.deposit_collateral(account, token.address, collateral)

    return _open


@pytest.fixture()
def alice_at_max(open_position, weth):
    """Alice holds 10 WETH and exactly the maximum 10,000,000 ARSX (health factor 1.0)."""
    open_position(weth, ALICE, 10 * E18, 10_000_000 * E18)


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    content = textwrap.dedent(
        """\
        network: test
        admin: deployer
        collateral:
          - symbol: WETH
            name: Wrapped Ether
            price: 200000000000
          - symbol: WBTC
            price: 3000000000000
        risk:
          liquidation_threshold: 60
          liquidation_bonus: 8
        oracle:
          initial_rate: 100000
          max_age: 3600
          max_delay: 7200
        psm:
          enabled: true
          collateral: WETH
          fee_bps: 25
          redeem_threshold: 40
        simulation:
          steps: 10
          borrowers: 3
          random_seed: 1
        """
    )
    path = tmp_path / "config.yaml"
    path.write_text(content)
    return path
