"""Deploys and wires the full protocol on a Chain from an AppConfig."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from .chain import Chain
from .config import AppConfig
from .contracts.access_manager import AccessManager, Role
from .contracts.oracle import ArsUsdOracle
from .contracts.price_feed import PriceFeed
from .contracts.psm import PegStabilityModule
from .contracts.token import StableAsset, Token
from .engine import ArsxEngine

logger = logging.getLogger(__name__)

_GOVERNANCE_ROLES = (
    Role.RISK_ADMIN,
    Role.CONFIG_ADMIN,
    Role.EMERGENCY_ADMIN,
)


@dataclass(frozen=True)
class Deployment:
    """Handles to every deployed contract."""

    chain: Chain
    admin: str
    access_manager: AccessManager
    arsx: StableAsset
    oracle: ArsUsdOracle
    engine: ArsxEngine
    tokens: dict[str, Token]
    feeds: dict[str, PriceFeed]
    psm: PegStabilityModule | None = None

    def collateral(self, symbol: str) -> Token:
        return self.tokens[symbol]

    def feed(self, symbol: str) -> PriceFeed:
        return self.feeds[symbol]


def deploy_protocol(config: AppConfig, chain: Chain | None = None) -> Deployment:
    """Deploy the directory, ARSX, oracle, collateral, engine and PSM.

    The engine (and the PSM, when enabled) receive the minter and burner
    roles; the admin receives every governance role and the configured
    price updater (the admin when none is configured) may push ARS/USD rates.
    """
    chain = chain or Chain()
    admin = config.admin

    access_manager = AccessManager(chain, admin)
    arsx = StableAsset(chain, access_manager)
    oracle = ArsUsdOracle(chain, access_manager, initial_rate=config.oracle.initial_rate)

    tokens: dict[str, Token] = {}
    feeds: dict[str, PriceFeed] = {}
    for c in config.collateral:
        tokens[c.symbol] = Token(chain, c.name, c.symbol, c.decimals)
        feeds[c.symbol] = PriceFeed(chain, f"{c.symbol} / USD", c.price, c.feed_decimals)

    engine = ArsxEngine(
        chain,
        [(tokens[c.symbol], feeds[c.symbol]) for c in config.collateral],
        arsx,
        oracle,
        access_manager,
    )

    psm = None
    if config.psm.enabled:
        psm = PegStabilityModule(
            chain,
            tokens[config.psm.collateral],
            feeds[config.psm.collateral],
            arsx,
            oracle,
            access_manager,
            fee_bps=config.psm.fee_bps,
            redeem_threshold=config.psm.redeem_threshold,
        )

    for role in _GOVERNANCE_ROLES:
        access_manager.grant_role(admin, role, admin)
    access_manager.grant_role(admin, Role.PRICE_UPDATER, config.oracle.updater or admin)
    for minter in filter(None, (engine, psm)):
        access_manager.grant_role(admin, Role.MINTER, minter.address)
        access_manager.grant_role(admin, Role.BURNER, minter.address)

    engine.set_liquidation_parameters(
        admin, config.risk.liquidation_threshold, config.risk.liquidation_bonus
    )
    engine.set_oracle_freshness_params(admin, config.oracle.max_age, config.oracle.max_delay)
    if psm is not None:
        psm.set_oracle_freshness_params(admin, config.oracle.max_age, config.oracle.max_delay)

    logger.info(
        "Deployed ARSX on %s: engine %s, oracle %s, %d collateral asset(s)",
        config.network,
        engine.address,
        oracle.address,
        len(tokens),
    )
    return Deployment(
        chain=chain,
        admin=admin,
        access_manager=access_manager,
        arsx=arsx,
        oracle=oracle,
        engine=engine,
        tokens=tokens,
        feeds=feeds,
        psm=psm,
    )
