# Fixed point scale factors
PRECISION = 10**18  # 18 decimals for token amounts and health factor
TOKEN_DECIMALS = 18  # decimals every internal USD and token value is normalized to
FEED_DECIMALS = 8  # aggregator-style price feeds
FEED_PRECISION = 10**FEED_DECIMALS
ADDITIONAL_FEED_PRECISION = PRECISION // FEED_PRECISION  # 1e10, lifts 8 decimals to 18
ORACLE_DECIMALS = 8  # ARS/USD oracle, USD per ARS
LIQUIDATION_PRECISION = 100  # risk parameters are whole percentages
BPS_SCALE = 10_000  # Basis points (100% = 10000)

UINT256_MAX = 2**256 - 1

# Health factor
MIN_HEALTH_FACTOR = PRECISION  # 1.0

# Risk parameter defaults and hard bounds
DEFAULT_LIQUIDATION_THRESHOLD = 50  # 200% overcollateralized
DEFAULT_LIQUIDATION_BONUS = 10      # 10% to liquidators
MIN_LIQUIDATION_THRESHOLD = 50
MAX_LIQUIDATION_THRESHOLD = 85
MIN_LIQUIDATION_BONUS = 5
MAX_LIQUIDATION_BONUS = 20

# Time constants
HOUR_IN_SECONDS = 60 * 60
DAY_IN_SECONDS = 24 * HOUR_IN_SECONDS

# Oracle freshness
DEFAULT_ORACLE_MAX_AGE = 3 * HOUR_IN_SECONDS  # ARS/USD rate
DEFAULT_FEED_MAX_DELAY = 3 * HOUR_IN_SECONDS  # collateral price feeds
MAX_ORACLE_MAX_AGE = 7 * DAY_IN_SECONDS

# Peg stability module
DEFAULT_PSM_FEE_BPS = 50            # 0.5%
MAX_PSM_FEE_BPS = 500               # 5%
DEFAULT_PSM_REDEEM_THRESHOLD = 50   # at most half the buffer per swap

# Stable asset metadata
ARSX_NAME = "Peso Argentino Estable"
ARSX_SYMBOL = "ARSX"
ARSX_DECIMALS = 18
