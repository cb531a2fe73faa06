"""Custom errors for the protocol model"""
from typing import Optional


class ProtocolError(Exception):
    """Base error class for protocol errors"""
    pass

class ArithmeticOverflowError(ProtocolError):
    """Error for uint256 overflow/underflow or division by zero"""
    pass

class ReentrancyError(ProtocolError):
    """Error for a nested call into a guarded entry point"""
    pass

# Input validation

class InvalidInputError(ProtocolError):
    """Base error for rejected arguments"""
    pass

class ZeroAmountError(InvalidInputError):
    """Error for an amount that must be more than zero"""

    def __init__(self, what: str = "amount"):
        super().__init__(f"{what} must be more than zero")

class TokenNotAllowedError(InvalidInputError):
    """Error for an asset outside the collateral allow-list"""

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"token {token} is not allowed as collateral")

class InvalidParameterError(InvalidInputError):
    """Error for an out-of-bounds governance parameter"""
    pass

class InvalidCollateralError(InvalidInputError):
    """Error for an invalid collateral allow-list"""
    pass

# Authorization

class UnauthorizedError(ProtocolError):
    """Base error for failed capability checks"""
    pass

class MissingRoleError(UnauthorizedError):
    """Error for an account lacking a role"""
    role = "role"

    def __init__(self, account: str, role: Optional[str] = None):
        self.account = account
        if role is not None:
            self.role = role
        super().__init__(f"account {account} is missing role {self.role}")

class NotMinterError(MissingRoleError):
    role = "MINTER"

class NotBurnerError(MissingRoleError):
    role = "BURNER"

class NotPriceUpdaterError(MissingRoleError):
    role = "PRICE_UPDATER"

class NotRiskAdminError(MissingRoleError):
    role = "RISK_ADMIN"

class NotConfigAdminError(MissingRoleError):
    role = "CONFIG_ADMIN"

class NotEmergencyAdminError(MissingRoleError):
    role = "EMERGENCY_ADMIN"

# Insufficiency

class InsufficientFundsError(ProtocolError):
    """Base error for balance shortfalls"""
    pass

class InsufficientBalanceError(InsufficientFundsError):
    """Error for a token balance below the requested amount"""
    pass

class InsufficientAllowanceError(InsufficientFundsError):
    """Error for an allowance below the requested amount"""
    pass

class InsufficientCollateralError(InsufficientFundsError):
    """Error for insufficient collateral"""
    pass

class BurnAmountExceedsDebtError(InsufficientFundsError):
    """Error for burning more debt than the account owes"""
    pass

# Solvency

class BreaksHealthFactorError(ProtocolError):
    """Error for an operation that leaves an account below the minimum health factor"""

    def __init__(self, account: str, health_factor: int):
        self.account = account
        self.health_factor = health_factor
        super().__init__(f"health factor of {account} would be {health_factor}")

# Oracle

class InvalidPriceError(ProtocolError):
    """Error for invalid price data"""
    pass

class StalePriceError(InvalidPriceError):
    """Error for price data older than the allowed age"""
    pass

# Liquidation invariants

class HealthFactorOkError(ProtocolError):
    """Error for liquidating a healthy position"""

    def __init__(self, account: str, health_factor: int):
        self.account = account
        self.health_factor = health_factor
        super().__init__(f"position of {account} is healthy, nothing to liquidate")

class HealthFactorNotImprovedError(ProtocolError):
    """Error for a liquidation that does not improve the position"""

    def __init__(self, account: str, before: int, after: int):
        self.account = account
        self.before = before
        self.after = after
        super().__init__(f"health factor of {account} went from {before} to {after}")

# Peg stability module

class PausedError(ProtocolError):
    """Error for swaps while the module is paused"""
    pass

class RedeemThresholdExceededError(ProtocolError):
    """Error for a swap draining too much of the collateral buffer"""
    pass
