"""Protocol configuration and state management"""
from dataclasses import dataclass, field
from typing import Dict, Optional

from ..constants import (
    DEFAULT_FEED_MAX_DELAY,
    DEFAULT_LIQUIDATION_BONUS,
    DEFAULT_LIQUIDATION_THRESHOLD,
    DEFAULT_ORACLE_MAX_AGE,
    MAX_LIQUIDATION_BONUS,
    MAX_LIQUIDATION_THRESHOLD,
    MAX_ORACLE_MAX_AGE,
    MIN_LIQUIDATION_BONUS,
    MIN_LIQUIDATION_THRESHOLD,
)
from ..errors import InvalidParameterError
from .collateral import CollateralVault
from .position import Position

@dataclass
class ProtocolConfig:
    """Risk parameters and oracle freshness windows, read on every valuation"""
    liquidation_threshold: int = DEFAULT_LIQUIDATION_THRESHOLD
    liquidation_bonus: int = DEFAULT_LIQUIDATION_BONUS
    oracle_max_age: int = DEFAULT_ORACLE_MAX_AGE  # ARS/USD oracle
    feed_max_delay: int = DEFAULT_FEED_MAX_DELAY  # collateral price feeds
    total_debt: int = 0

    def set_liquidation_parameters(self, threshold: int, bonus: int) -> None:
        if not MIN_LIQUIDATION_THRESHOLD <= threshold <= MAX_LIQUIDATION_THRESHOLD:
            raise InvalidParameterError(
                f"liquidation threshold {threshold} outside "
                f"[{MIN_LIQUIDATION_THRESHOLD}, {MAX_LIQUIDATION_THRESHOLD}]"
            )
        if not MIN_LIQUIDATION_BONUS <= bonus <= MAX_LIQUIDATION_BONUS:
            raise InvalidParameterError(
                f"liquidation bonus {bonus} outside "
                f"[{MIN_LIQUIDATION_BONUS}, {MAX_LIQUIDATION_BONUS}]"
            )
        self.liquidation_threshold = threshold
        self.liquidation_bonus = bonus

    def set_oracle_freshness(self, max_age: int, max_delay: Optional[int] = None) -> None:
        check_freshness_window("max age", max_age)
        if max_delay is not None:
            check_freshness_window("max delay", max_delay)
        self.oracle_max_age = max_age
        if max_delay is not None:
            self.feed_max_delay = max_delay

    def update_totals(self, debt_change: int) -> None:
        """Update protocol totals when debt changes"""
        if debt_change > 0:
            self.total_debt += debt_change
        else:
            self.total_debt -= abs(debt_change)


@dataclass
class EngineState:
    """Everything the engine persists"""
    vaults: Dict[str, CollateralVault]  # token -> vault, in allow-list order
    positions: Dict[str, Position] = field(default_factory=dict)
    config: ProtocolConfig = field(default_factory=ProtocolConfig)

    def view(self, user: str) -> Position:
        """Position of `user` without creating an entry for unknown accounts"""
        return self.positions.get(user) or Position(user=user)

    def position(self, user: str) -> Position:
        if user not in self.positions:
            self.positions[user] = Position(user=user)
        return self.positions[user]


def check_freshness_window(name: str, value: int) -> None:
    """Staleness windows are whole seconds in (0, MAX_ORACLE_MAX_AGE]"""
    if not isinstance(value, int) or not 0 < value <= MAX_ORACLE_MAX_AGE:
        raise InvalidParameterError(f"oracle {name} {value} outside (0, {MAX_ORACLE_MAX_AGE}]")
