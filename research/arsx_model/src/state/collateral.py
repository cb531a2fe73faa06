"""Collateral vault state management"""
from dataclasses import dataclass

from ..errors import InsufficientCollateralError

@dataclass
class CollateralVault:
    """Represents an allow-listed collateral asset"""
    token: str  # token contract address
    price_feed: str  # price feed contract address
    total_deposited: int = 0

    def deposit(self, amount: int) -> None:
        """Deposit collateral"""
        self.total_deposited += amount

    def withdraw(self, amount: int) -> None:
        """Withdraw collateral"""
        if amount > self.total_deposited:
            raise InsufficientCollateralError("Insufficient collateral in vault")
        self.total_deposited -= amount
