"""ARS/USD exchange-rate oracle"""
import logging
from dataclasses import dataclass
from typing import Tuple

from ..chain import Chain, Contract, transactional
from ..constants import ORACLE_DECIMALS
from ..errors import InvalidPriceError, StalePriceError
from .access_manager import AuthorizationProvider

logger = logging.getLogger(__name__)


@dataclass
class OracleState:
    rate: int = 0  # USD per ARS, ORACLE_DECIMALS decimals
    last_update: int = 0


class ArsUsdOracle(Contract):
    """Holds a single scaled rate pushed by a price-updater account"""

    decimals = ORACLE_DECIMALS

    def __init__(self, chain: Chain, authority: AuthorizationProvider, initial_rate: int = 0):
        super().__init__(chain, OracleState())
        self.authority = authority
        if initial_rate:
            self.state.rate = initial_rate
            self.state.last_update = chain.timestamp

    @transactional
    def update_price(self, caller: str, new_rate: int) -> None:
        self.authority.check_price_updater(caller)
        if new_rate <= 0:
            raise InvalidPriceError("rate must be positive")
        self.state.rate = new_rate
        self.state.last_update = self.chain.timestamp
        logger.info("ARS/USD rate updated to %d at %d", new_rate, self.state.last_update)
        self.emit("PriceUpdated", rate=new_rate, timestamp=self.state.last_update)

    def latest_data(self) -> Tuple[int, int]:
        return self.state.rate, self.state.last_update

    def is_stale(self, max_age: int) -> bool:
        return self.chain.timestamp - self.state.last_update > max_age

    def latest_valid_data(self, max_age: int) -> int:
        """Return the rate, refusing stale or zero readings"""
        if self.is_stale(max_age):
            raise StalePriceError(
                f"ARS/USD rate is {self.chain.timestamp - self.state.last_update}s old, max {max_age}s"
            )
        if self.state.rate == 0:
            raise InvalidPriceError("ARS/USD rate is zero")
        return self.state.rate
