"""Valuation and health factor math on 256-bit fixed point words"""
from ..constants import (
    LIQUIDATION_PRECISION,
    PRECISION,
    TOKEN_DECIMALS,
    UINT256_MAX,
)
from ..errors import ArithmeticOverflowError

def checked_mul(a: int, b: int) -> int:
    """Multiply with overflow checking"""
    result = a * b
    if result > UINT256_MAX:
        raise ArithmeticOverflowError("Arithmetic overflow in multiplication")
    return result

def checked_div(a: int, b: int) -> int:
    """Divide with zero checking"""
    if b == 0:
        raise ArithmeticOverflowError("Division by zero")
    return a // b

def checked_add(a: int, b: int) -> int:
    """Add with overflow checking"""
    result = a + b
    if result > UINT256_MAX:
        raise ArithmeticOverflowError("Arithmetic overflow in addition")
    return result

def checked_sub(a: int, b: int) -> int:
    """Subtract with underflow checking"""
    if b > a:
        raise ArithmeticOverflowError("Arithmetic underflow in subtraction")
    return a - b

def to_precision(price: int, decimals: int) -> int:
    """Lift a value with `decimals` decimals to PRECISION"""
    return checked_mul(price, PRECISION // 10**decimals)

def usd_value(amount: int, price: int, feed_decimals: int, token_decimals: int = TOKEN_DECIMALS) -> int:
    """USD value, 18 decimals, of `amount` token units priced by a feed"""
    # amount * price * 1e10 / 1e18 for an 18 decimal token and an 8 decimal feed
    return checked_div(
        checked_mul(to_precision(amount, token_decimals), to_precision(price, feed_decimals)),
        PRECISION
    )

def token_amount_from_usd(
    usd_amount: int,
    price: int,
    feed_decimals: int,
    token_decimals: int = TOKEN_DECIMALS
) -> int:
    """Token units worth `usd_amount` (18 decimals) at a feed price, rounded down"""
    amount = checked_div(checked_mul(usd_amount, PRECISION), to_precision(price, feed_decimals))
    return checked_div(amount, PRECISION // 10**token_decimals)

def arsx_to_usd(amount: int, rate: int, oracle_decimals: int) -> int:
    """USD value of an ARSX amount at a USD-per-ARS rate"""
    return usd_value(amount, rate, oracle_decimals)

def usd_to_arsx(usd_amount: int, rate: int, oracle_decimals: int) -> int:
    """ARSX worth `usd_amount` at a USD-per-ARS rate"""
    return token_amount_from_usd(usd_amount, rate, oracle_decimals)

def calculate_health_factor(
    debt_value_usd: int,
    collateral_value_usd: int,
    liquidation_threshold: int
) -> int:
    """Threshold-adjusted collateral over debt, scaled by PRECISION

    An account without debt cannot be liquidated and reports UINT256_MAX.
    """
    if debt_value_usd == 0:
        return UINT256_MAX
    collateral_adjusted = checked_div(
        checked_mul(collateral_value_usd, liquidation_threshold),
        LIQUIDATION_PRECISION
    )
    return checked_div(checked_mul(collateral_adjusted, PRECISION), debt_value_usd)
