"""Liquidation sizing"""
from dataclasses import dataclass

from ..constants import LIQUIDATION_PRECISION
from .valuation import checked_add, checked_div, checked_mul

@dataclass(frozen=True)
class LiquidationQuote:
    """Collateral a liquidator receives for covering `debt_to_cover` ARSX"""
    asset: str
    debt_to_cover: int
    debt_value_usd: int
    token_amount_from_debt: int
    bonus_collateral: int

    @property
    def total_collateral_to_seize(self) -> int:
        """Debt-equivalent collateral plus the liquidation bonus"""
        return checked_add(self.token_amount_from_debt, self.bonus_collateral)

def bonus_collateral(token_amount_from_debt: int, liquidation_bonus: int) -> int:
    return checked_div(
        checked_mul(token_amount_from_debt, liquidation_bonus),
        LIQUIDATION_PRECISION
    )
