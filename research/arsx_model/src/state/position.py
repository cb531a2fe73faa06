"""Position state management"""
from dataclasses import dataclass, field
from typing import Dict

from ..errors import BurnAmountExceedsDebtError, InsufficientCollateralError

@dataclass
class Position:
    """Collateral deposited and ARSX minted by one account"""
    user: str
    collateral: Dict[str, int] = field(default_factory=dict)  # token -> amount
    debt_amount: int = 0  # ARSX minted, 18 decimals

    def collateral_of(self, token: str) -> int:
        return self.collateral.get(token, 0)

    def update_collateral(self, token: str, amount_change: int) -> None:
        """Update position collateral"""
        current = self.collateral_of(token)
        if amount_change < 0 and current < abs(amount_change):
            raise InsufficientCollateralError(
                f"{self.user} has {current} of {token}, needs {abs(amount_change)}"
            )
        self.collateral[token] = current + amount_change

    def update_debt(self, amount_change: int) -> None:
        """Update position debt"""
        if amount_change < 0 and self.debt_amount < abs(amount_change):
            raise BurnAmountExceedsDebtError(
                f"{self.user} owes {self.debt_amount}, cannot burn {abs(amount_change)}"
            )
        self.debt_amount += amount_change


@dataclass(frozen=True)
class AccountInformation:
    total_arsx_minted: int
    collateral_value_in_usd: int
