"""
vestledger Constants

Magic numbers used by the vesting ledger, organized by category.

NOTE: Changes to schedule constants (marked with [SCHEDULE]) alter the
release math of every deployment that relies on the defaults.
"""

from typing import Final

# =============================================================================
# TIME CONSTANTS (in seconds)
# =============================================================================

SECONDS_PER_MINUTE: Final[int] = 60
SECONDS_PER_HOUR: Final[int] = 3600  # 60 * 60
SECONDS_PER_DAY: Final[int] = 86400  # 60 * 60 * 24
SECONDS_PER_30_DAYS: Final[int] = 2592000  # 60 * 60 * 24 * 30
SECONDS_PER_YEAR: Final[int] = 31536000  # 60 * 60 * 24 * 365

# =============================================================================
# TOKEN CONSTANTS
# =============================================================================

TOKEN_DECIMALS: Final[int] = 18  # Standard ERC20 decimals
WEI_PER_TOKEN: Final[int] = 10**18  # 1 token = 10^18 base units
UINT256_MAX: Final[int] = 2**256 - 1
ZERO_ADDRESS: Final[str] = "0x" + "0" * 40

# =============================================================================
# VESTING SCHEDULE CONSTANTS
# =============================================================================

# [SCHEDULE] Number of equal monthly installments
TOTAL_INSTALLMENTS: Final[int] = 12

# [SCHEDULE] Length of one installment period
INSTALLMENT_PERIOD_SECONDS: Final[int] = SECONDS_PER_30_DAYS

# [SCHEDULE] First installment: 1st Jan 2025, 09:00 GMT
DEFAULT_SCHEDULE_START: Final[int] = 1735722000

# Exact amount that must be deposited: 3,480,000 tokens
DEFAULT_DEPOSIT_LIMIT: Final[int] = 3_480_000 * WEI_PER_TOKEN

# Length of an ABI-encoded uint256 word in keeper perform data
ABI_WORD_BYTES: Final[int] = 32


__all__ = [
    'SECONDS_PER_MINUTE', 'SECONDS_PER_HOUR', 'SECONDS_PER_DAY',
    'SECONDS_PER_30_DAYS', 'SECONDS_PER_YEAR',
    'TOKEN_DECIMALS', 'WEI_PER_TOKEN', 'UINT256_MAX', 'ZERO_ADDRESS',
    'TOTAL_INSTALLMENTS', 'INSTALLMENT_PERIOD_SECONDS',
    'DEFAULT_SCHEDULE_START', 'DEFAULT_DEPOSIT_LIMIT', 'ABI_WORD_BYTES',
]
