"""Peg stability module: direct collateral <-> ARSX swaps at oracle prices"""
import logging
from dataclasses import dataclass
from typing import Optional

from ..chain import Chain, Contract, non_reentrant, transactional
from ..constants import (
    BPS_SCALE,
    DEFAULT_FEED_MAX_DELAY,
    DEFAULT_ORACLE_MAX_AGE,
    DEFAULT_PSM_FEE_BPS,
    DEFAULT_PSM_REDEEM_THRESHOLD,
    LIQUIDATION_PRECISION,
    MAX_PSM_FEE_BPS,
    TOKEN_DECIMALS,
)
from ..errors import (
    InvalidParameterError,
    PausedError,
    RedeemThresholdExceededError,
    ZeroAmountError,
)
from ..instructions.valuation import (
    arsx_to_usd,
    checked_div,
    checked_mul,
    token_amount_from_usd,
    usd_to_arsx,
    usd_value,
)
from ..state.protocol_config import check_freshness_window
from .access_manager import AuthorizationProvider
from .oracle import ArsUsdOracle
from .price_feed import PriceFeed, stale_checked_round_data
from .token import StableAsset, Token

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SwapQuote:
    amount_in: int
    amount_out: int
    fee: int  # charged in the output asset


@dataclass
class PsmState:
    fee_bps: int = DEFAULT_PSM_FEE_BPS
    redeem_threshold: int = DEFAULT_PSM_REDEEM_THRESHOLD  # percent of the buffer per swap
    oracle_max_age: int = DEFAULT_ORACLE_MAX_AGE
    feed_max_delay: int = DEFAULT_FEED_MAX_DELAY
    paused: bool = False
    collateral_buffer: int = 0


class PegStabilityModule(Contract):
    """Fixed-fee exchange between one collateral asset and ARSX.

    Has no positions and no health factor: collateral swapped in stays in the
    module's buffer and backs the ARSX it minted one to one at oracle value.
    """

    def __init__(
        self,
        chain: Chain,
        collateral: Token,
        price_feed: PriceFeed,
        stable: StableAsset,
        oracle: ArsUsdOracle,
        authority: AuthorizationProvider,
        fee_bps: int = DEFAULT_PSM_FEE_BPS,
        redeem_threshold: int = DEFAULT_PSM_REDEEM_THRESHOLD,
    ):
        _check_fee(fee_bps)
        _check_redeem_threshold(redeem_threshold)
        if not 0 <= collateral.decimals <= TOKEN_DECIMALS:
            raise InvalidParameterError(
                f"collateral {collateral.symbol} has {collateral.decimals} decimals, at most {TOKEN_DECIMALS} supported"
            )
        super().__init__(chain, PsmState(fee_bps=fee_bps, redeem_threshold=redeem_threshold))
        self.collateral = collateral
        self.price_feed = price_feed
        self.stable = stable
        self.oracle = oracle
        self.authority = authority
        self._entered = False

    # Swaps

    @transactional
    @non_reentrant
    def swap_collateral_for_arsx(self, caller: str, collateral_amount: int) -> SwapQuote:
        self._require_active()
        quote = self.preview_swap_collateral_for_arsx(collateral_amount)
        if quote.amount_out <= 0:
            raise ZeroAmountError("ARSX out")

        self.collateral.transfer_from(self.address, caller, self.address, collateral_amount)
        self.state.collateral_buffer += collateral_amount
        self.stable.mint(self.address, caller, quote.amount_out)

        logger.debug("%s swapped %d collateral for %d ARSX", caller, collateral_amount, quote.amount_out)
        self.emit(
            "CollateralSwappedForArsx",
            account=caller,
            collateral_in=collateral_amount,
            arsx_out=quote.amount_out,
            fee=quote.fee,
        )
        return quote

    @transactional
    @non_reentrant
    def swap_arsx_for_collateral(self, caller: str, arsx_amount: int) -> SwapQuote:
        self._require_active()
        quote = self.preview_swap_arsx_for_collateral(arsx_amount)
        if quote.amount_out <= 0:
            raise ZeroAmountError("collateral out")
        limit = self.redeemable_collateral()
        if quote.amount_out > limit:
            raise RedeemThresholdExceededError(
                f"swap releases {quote.amount_out} collateral, limit is {limit}"
            )

        self.stable.transfer_from(self.address, caller, self.address, arsx_amount)
        self.stable.burn(self.address, arsx_amount)
        self.state.collateral_buffer -= quote.amount_out
        self.collateral.transfer(self.address, caller, quote.amount_out)

        logger.debug("%s swapped %d ARSX for %d collateral", caller, arsx_amount, quote.amount_out)
        self.emit(
            "ArsxSwappedForCollateral",
            account=caller,
            arsx_in=arsx_amount,
            collateral_out=quote.amount_out,
            fee=quote.fee,
        )
        return quote

    # Views

    def preview_swap_collateral_for_arsx(self, collateral_amount: int) -> SwapQuote:
        if collateral_amount <= 0:
            raise ZeroAmountError()
        usd = usd_value(
            collateral_amount, self._collateral_price(), self.price_feed.decimals, self.collateral.decimals
        )
        gross = usd_to_arsx(usd, self._ars_usd_rate(), self.oracle.decimals)
        fee = self._fee_on(gross)
        return SwapQuote(amount_in=collateral_amount, amount_out=gross - fee, fee=fee)

    def preview_swap_arsx_for_collateral(self, arsx_amount: int) -> SwapQuote:
        if arsx_amount <= 0:
            raise ZeroAmountError()
        usd = arsx_to_usd(arsx_amount, self._ars_usd_rate(), self.oracle.decimals)
        gross = token_amount_from_usd(
            usd, self._collateral_price(), self.price_feed.decimals, self.collateral.decimals
        )
        fee = self._fee_on(gross)
        return SwapQuote(amount_in=arsx_amount, amount_out=gross - fee, fee=fee)

    def redeemable_collateral(self) -> int:
        """Most collateral a single swap may release"""
        return checked_div(
            checked_mul(self.state.collateral_buffer, self.state.redeem_threshold),
            LIQUIDATION_PRECISION,
        )

    @property
    def collateral_buffer(self) -> int:
        return self.state.collateral_buffer

    @property
    def paused(self) -> bool:
        return self.state.paused

    # Governance

    @transactional
    def set_fee(self, caller: str, fee_bps: int) -> None:
        self.authority.check_risk_admin(caller)
        _check_fee(fee_bps)
        self.state.fee_bps = fee_bps
        logger.info("PSM fee set to %d bps", fee_bps)
        self.emit("FeeUpdated", fee_bps=fee_bps)

    @transactional
    def set_redeem_threshold(self, caller: str, redeem_threshold: int) -> None:
        self.authority.check_risk_admin(caller)
        _check_redeem_threshold(redeem_threshold)
        self.state.redeem_threshold = redeem_threshold
        logger.info("PSM redeem threshold set to %d%%", redeem_threshold)
        self.emit("RedeemThresholdUpdated", redeem_threshold=redeem_threshold)

    @transactional
    def set_oracle_freshness_params(
        self, caller: str, max_age: int, max_delay: Optional[int] = None
    ) -> None:
        self.authority.check_config_admin(caller)
        check_freshness_window("max age", max_age)
        if max_delay is not None:
            check_freshness_window("max delay", max_delay)
        self.state.oracle_max_age = max_age
        if max_delay is not None:
            self.state.feed_max_delay = max_delay
        logger.info(
            "PSM oracle freshness set to max_age=%ds max_delay=%ds",
            self.state.oracle_max_age,
            self.state.feed_max_delay,
        )
        self.emit(
            "OracleFreshnessParamsUpdated",
            max_age=self.state.oracle_max_age,
            max_delay=self.state.feed_max_delay,
        )

    @transactional
    def pause(self, caller: str) -> None:
        self.authority.check_emergency_admin(caller)
        self.state.paused = True
        logger.warning("PSM paused by %s", caller)
        self.emit("Paused", account=caller)

    @transactional
    def unpause(self, caller: str) -> None:
        self.authority.check_emergency_admin(caller)
        self.state.paused = False
        logger.info("PSM unpaused by %s", caller)
        self.emit("Unpaused", account=caller)

    # Internals

    def _require_active(self) -> None:
        if self.state.paused:
            raise PausedError("peg stability module is paused")

    def _fee_on(self, amount: int) -> int:
        return checked_div(checked_mul(amount, self.state.fee_bps), BPS_SCALE)

    def _collateral_price(self) -> int:
        data = stale_checked_round_data(self.price_feed, self.chain.timestamp, self.state.feed_max_delay)
        return data.answer

    def _ars_usd_rate(self) -> int:
        return self.oracle.latest_valid_data(self.state.oracle_max_age)


def _check_fee(fee_bps: int) -> None:
    if not 0 <= fee_bps <= MAX_PSM_FEE_BPS:
        raise InvalidParameterError(f"fee {fee_bps} bps outside [0, {MAX_PSM_FEE_BPS}]")

def _check_redeem_threshold(redeem_threshold: int) -> None:
    if not 0 < redeem_threshold <= LIQUIDATION_PRECISION:
        raise InvalidParameterError(f"redeem threshold {redeem_threshold} outside (0, 100]")
