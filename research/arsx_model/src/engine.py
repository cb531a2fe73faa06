"""Collateral & solvency engine for ARSX.

Accounts lock allow-listed collateral and mint ARSX against it. After every
operation that can weaken a position, the account's health factor

    (collateral value in USD * liquidation threshold / 100) * 1e18 / debt value in USD

must stay at or above MIN_HEALTH_FACTOR. Debt is converted to USD through the
ARS/USD oracle, collateral through one aggregator feed per asset. Positions
that fall below the minimum can be partially or fully closed by any account
holding ARSX, in exchange for the debt-equivalent collateral plus a bonus.

Every entry point runs as one host transaction: a failing check anywhere,
including inside a token ledger or the oracle, reverts every effect of the
call.
"""
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from .chain import Chain, Contract, non_reentrant, transactional
from .constants import (
    LIQUIDATION_PRECISION,
    MIN_HEALTH_FACTOR,
    PRECISION,
    TOKEN_DECIMALS,
    UINT256_MAX,
)
from .contracts.access_manager import AuthorizationProvider
from .contracts.oracle import ArsUsdOracle
from .contracts.price_feed import PriceFeed, stale_checked_round_data
from .contracts.token import StableAsset, Token
from .errors import (
    BreaksHealthFactorError,
    HealthFactorNotImprovedError,
    HealthFactorOkError,
    InvalidCollateralError,
    TokenNotAllowedError,
    ZeroAmountError,
)
from .instructions.liquidation import LiquidationQuote, bonus_collateral
from .instructions.valuation import (
    arsx_to_usd,
    calculate_health_factor,
    checked_add,
    token_amount_from_usd,
    usd_value,
)
from .state.collateral import CollateralVault
from .state.position import AccountInformation
from .state.protocol_config import EngineState

logger = logging.getLogger(__name__)


class ArsxEngine(Contract):
    """Owns collateral custody and debt bookkeeping for every account"""

    def __init__(
        self,
        chain: Chain,
        collateral: Sequence[Tuple[Token, PriceFeed]],
        stable: StableAsset,
        oracle: ArsUsdOracle,
        authority: AuthorizationProvider,
    ):
        if not collateral:
            raise InvalidCollateralError("at least one collateral asset is required")

        vaults: Dict[str, CollateralVault] = {}
        self._tokens: Dict[str, Token] = {}
        self._feeds: Dict[str, PriceFeed] = {}
        for token, feed in collateral:
            if token.address in vaults:
                raise InvalidCollateralError(f"collateral {token.symbol} listed twice")
            if not 0 <= token.decimals <= TOKEN_DECIMALS:
                raise InvalidCollateralError(
                    f"collateral {token.symbol} has {token.decimals} decimals, at most {TOKEN_DECIMALS} supported"
                )
            vaults[token.address] = CollateralVault(token=token.address, price_feed=feed.address)
            self._tokens[token.address] = token
            self._feeds[token.address] = feed

        super().__init__(chain, EngineState(vaults=vaults))
        self.stable = stable
        self.oracle = oracle
        self.authority = authority
        self._entered = False
        logger.info(
            "Engine deployed with collateral %s",
            ", ".join(token.symbol for token, _ in collateral),
        )

    ##########################
    # External functions
    ##########################

    @transactional
    @non_reentrant
    def deposit_collateral_and_mint_arsx(
        self, caller: str, asset: str, collateral_amount: int, debt_amount: int
    ) -> None:
        self._deposit_collateral(caller, asset, collateral_amount)
        self._mint_arsx(caller, debt_amount)

    @transactional
    @non_reentrant
    def deposit_collateral(self, caller: str, asset: str, amount: int) -> None:
        self._deposit_collateral(caller, asset, amount)

    @transactional
    @non_reentrant
    def mint_arsx(self, caller: str, amount: int) -> None:
        self._mint_arsx(caller, amount)

    @transactional
    @non_reentrant
    def redeem_collateral_for_arsx(
        self, caller: str, asset: str, collateral_amount: int, debt_amount: int
    ) -> None:
        # Burning first lets the debt reduction pay for the redemption
        self._burn_arsx(debt_amount, on_behalf_of=caller, payer=caller)
        self._redeem_collateral(asset, collateral_amount, redeemed_from=caller, redeemed_to=caller)
        self._revert_if_health_factor_is_broken(caller)

    @transactional
    @non_reentrant
    def redeem_collateral(self, caller: str, asset: str, amount: int) -> None:
        self._redeem_collateral(asset, amount, redeemed_from=caller, redeemed_to=caller)
        self._revert_if_health_factor_is_broken(caller)

    @transactional
    @non_reentrant
    def burn_arsx(self, caller: str, amount: int) -> None:
        self._burn_arsx(amount, on_behalf_of=caller, payer=caller)
        self._revert_if_health_factor_is_broken(caller)

    @transactional
    @non_reentrant
    def liquidate(self, caller: str, asset: str, account: str, debt_to_cover: int) -> LiquidationQuote:
        """Cover `debt_to_cover` ARSX of `account` and seize its collateral plus a bonus"""
        self._require_more_than_zero(debt_to_cover, "debt to cover")
        self._require_allowed(asset)

        starting_health_factor = self._health_factor(account)
        if starting_health_factor >= MIN_HEALTH_FACTOR:
            raise HealthFactorOkError(account, starting_health_factor)

        quote = self._quote_liquidation(asset, debt_to_cover)
        self._redeem_collateral(
            asset,
            quote.total_collateral_to_seize,
            redeemed_from=account,
            redeemed_to=caller,
        )
        self._burn_arsx(debt_to_cover, on_behalf_of=account, payer=caller)

        ending_health_factor = self._health_factor(account)
        if ending_health_factor < starting_health_factor:
            raise HealthFactorNotImprovedError(account, starting_health_factor, ending_health_factor)
        self._revert_if_health_factor_is_broken(caller)

        logger.info(
            "%s liquidated %s: covered %d ARSX, seized %d of %s, health factor %d -> %d",
            caller,
            account,
            debt_to_cover,
            quote.total_collateral_to_seize,
            self._tokens[asset].symbol,
            starting_health_factor,
            ending_health_factor,
        )
        self.emit(
            "Liquidated",
            account=account,
            liquidator=caller,
            asset=asset,
            debt_covered=debt_to_cover,
            collateral_seized=quote.total_collateral_to_seize,
        )
        return quote

    @transactional
    def set_liquidation_parameters(self, caller: str, threshold: int, bonus: int) -> None:
        self.authority.check_risk_admin(caller)
        self.state.config.set_liquidation_parameters(threshold, bonus)
        logger.info("Liquidation parameters set to threshold=%d bonus=%d", threshold, bonus)
        self.emit("LiquidationParametersUpdated", threshold=threshold, bonus=bonus)

    @transactional
    def set_oracle_freshness_params(
        self, caller: str, max_age: int, max_delay: Optional[int] = None
    ) -> None:
        self.authority.check_config_admin(caller)
        config = self.state.config
        config.set_oracle_freshness(max_age, max_delay)
        logger.info(
            "Oracle freshness set to max_age=%ds max_delay=%ds",
            config.oracle_max_age,
            config.feed_max_delay,
        )
        self.emit(
            "OracleFreshnessParamsUpdated",
            max_age=config.oracle_max_age,
            max_delay=config.feed_max_delay,
        )

    ##########################
    # Internal functions
    ##########################

    def _deposit_collateral(self, caller: str, asset: str, amount: int) -> None:
        self._require_more_than_zero(amount)
        self._require_allowed(asset)
        # Custody first: the ledger is only credited for tokens actually received
        self._tokens[asset].transfer_from(self.address, caller, self.address, amount)
        self.state.position(caller).update_collateral(asset, amount)
        self.state.vaults[asset].deposit(amount)
        logger.debug("%s deposited %d of %s", caller, amount, asset)
        self.emit("CollateralDeposited", account=caller, asset=asset, amount=amount)

    def _mint_arsx(self, caller: str, amount: int) -> None:
        self._require_more_than_zero(amount)
        self.state.position(caller).update_debt(amount)
        self.state.config.update_totals(amount)
        self._revert_if_health_factor_is_broken(caller)
        self.stable.mint(self.address, caller, amount)
        logger.debug("%s minted %d ARSX", caller, amount)
        self.emit("ArsxMinted", account=caller, amount=amount)

    def _redeem_collateral(
        self, asset: str, amount: int, redeemed_from: str, redeemed_to: str
    ) -> None:
        self._require_more_than_zero(amount)
        self._require_allowed(asset)
        # Debit before the asset leaves custody
        self.state.position(redeemed_from).update_collateral(asset, -amount)
        self.state.vaults[asset].withdraw(amount)
        self._tokens[asset].transfer(self.address, redeemed_to, amount)
        logger.debug("%d of %s redeemed from %s to %s", amount, asset, redeemed_from, redeemed_to)
        self.emit(
            "CollateralRedeemed",
            redeemed_from=redeemed_from,
            redeemed_to=redeemed_to,
            asset=asset,
            amount=amount,
        )

    def _burn_arsx(self, amount: int, on_behalf_of: str, payer: str) -> None:
        self._require_more_than_zero(amount)
        self.stable.transfer_from(self.address, payer, self.address, amount)
        self.stable.burn(self.address, amount)
        self.state.position(on_behalf_of).update_debt(-amount)
        self.state.config.update_totals(-amount)
        logger.debug("%s burned %d ARSX for %s", payer, amount, on_behalf_of)
        self.emit("ArsxBurned", on_behalf_of=on_behalf_of, payer=payer, amount=amount)

    def _require_more_than_zero(self, amount: int, what: str = "amount") -> None:
        if amount <= 0:
            raise ZeroAmountError(what)

    def _require_allowed(self, asset: str) -> None:
        if asset not in self.state.vaults:
            raise TokenNotAllowedError(asset)

    def _revert_if_health_factor_is_broken(self, user: str) -> None:
        health_factor = self._health_factor(user)
        if health_factor < MIN_HEALTH_FACTOR:
            raise BreaksHealthFactorError(user, health_factor)

    def _health_factor(self, user: str) -> int:
        position = self.state.view(user)
        if position.debt_amount == 0:
            return UINT256_MAX
        info = self._account_information(user)
        return self.calculate_health_factor(info.total_arsx_minted, info.collateral_value_in_usd)

    def _account_information(self, user: str) -> AccountInformation:
        return AccountInformation(
            total_arsx_minted=self.state.view(user).debt_amount,
            collateral_value_in_usd=self.get_account_collateral_value(user),
        )

    def _collateral_price(self, asset: str) -> int:
        feed = self._feeds[asset]
        data = stale_checked_round_data(feed, self.chain.timestamp, self.state.config.feed_max_delay)
        return data.answer

    def _ars_usd_rate(self) -> int:
        return self.oracle.latest_valid_data(self.state.config.oracle_max_age)

    def _quote_liquidation(self, asset: str, debt_to_cover: int) -> LiquidationQuote:
        debt_value_usd = self.get_arsx_usd_value(debt_to_cover)
        token_amount = self.get_token_amount_from_usd(asset, debt_value_usd)
        return LiquidationQuote(
            asset=asset,
            debt_to_cover=debt_to_cover,
            debt_value_usd=debt_value_usd,
            token_amount_from_debt=token_amount,
            bonus_collateral=bonus_collateral(token_amount, self.state.config.liquidation_bonus),
        )

    ##########################
    # Public & external view functions
    ##########################

    def calculate_health_factor(self, total_arsx_minted: int, collateral_value_in_usd: int) -> int:
        if total_arsx_minted == 0:
            return UINT256_MAX
        return calculate_health_factor(
            self.get_arsx_usd_value(total_arsx_minted),
            collateral_value_in_usd,
            self.state.config.liquidation_threshold,
        )

    def get_health_factor(self, user: str) -> int:
        return self._health_factor(user)

    def get_account_information(self, user: str) -> AccountInformation:
        return self._account_information(user)

    def get_account_collateral_value(self, user: str) -> int:
        """Sum of the USD value (18 decimals) of every collateral asset held by `user`"""
        position = self.state.view(user)
        total = 0
        for asset in self.state.vaults:
            amount = position.collateral_of(asset)
            if amount:
                total = checked_add(total, self.get_usd_value(asset, amount))
        return total

    def get_usd_value(self, asset: str, amount: int) -> int:
        self._require_allowed(asset)
        return usd_value(
            amount,
            self._collateral_price(asset),
            self._feeds[asset].decimals,
            self._tokens[asset].decimals,
        )

    def get_token_amount_from_usd(self, asset: str, usd_amount_in_wei: int) -> int:
        self._require_allowed(asset)
        return token_amount_from_usd(
            usd_amount_in_wei,
            self._collateral_price(asset),
            self._feeds[asset].decimals,
            self._tokens[asset].decimals,
        )

    def get_arsx_usd_value(self, amount: int) -> int:
        return arsx_to_usd(amount, self._ars_usd_rate(), self.oracle.decimals)

    def get_collateral_balance_of_user(self, user: str, asset: str) -> int:
        return self.state.view(user).collateral_of(asset)

    def get_arsx_minted(self, user: str) -> int:
        return self.state.view(user).debt_amount

    def get_total_collateral(self, asset: str) -> int:
        self._require_allowed(asset)
        return self.state.vaults[asset].total_deposited

    def get_total_debt(self) -> int:
        return self.state.config.total_debt

    def get_collateral_tokens(self) -> List[str]:
        return list(self.state.vaults)

    def get_collateral_token_price_feed(self, asset: str) -> str:
        self._require_allowed(asset)
        return self.state.vaults[asset].price_feed

    def get_accounts(self) -> List[str]:
        return list(self.state.positions)

    def preview_liquidation(self, asset: str, debt_to_cover: int) -> LiquidationQuote:
        self._require_more_than_zero(debt_to_cover, "debt to cover")
        self._require_allowed(asset)
        return self._quote_liquidation(asset, debt_to_cover)

    def get_liquidation_threshold(self) -> int:
        return self.state.config.liquidation_threshold

    def get_liquidation_bonus(self) -> int:
        return self.state.config.liquidation_bonus

    def get_oracle_freshness(self) -> Tuple[int, int]:
        return self.state.config.oracle_max_age, self.state.config.feed_max_delay

    def get_min_health_factor(self) -> int:
        return MIN_HEALTH_FACTOR

    def get_precision(self) -> int:
        return PRECISION

    def get_liquidation_precision(self) -> int:
        return LIQUIDATION_PRECISION
