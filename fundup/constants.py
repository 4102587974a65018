"""
FundUp Constants

This module consolidates global constants and environment configuration
used throughout the codebase. Constants are organized by category for easy
reference and maintenance.
"""
import ast

from dotenv import dotenv_values

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================
# Load environment variables once at module import
_config = dotenv_values(".env")

LOGGER_DEFAULTS = {
    'LOG_LEVEL':                       'INFO',
    'LOG_FORMAT':                      '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT':                 '%Y-%m-%dT%H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING':        'True',
    'LOG_FILE_OUTPUT':                 'False',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024 # 10MB
LOG_BACKUP_COUNT = 5


# ==================================================================================
# MECHANISM CONSTANTS
# ==================================================================================
MECHANISM_VERSION = '1'

# Ceiling for deposits and accumulated voting power (uint128 max)
MAX_SAFE_VALUE = 2**128 - 1

# Sentinel returned by the withdraw-limit hook when redemption is unbounded
UNLIMITED = 2**256 - 1

# Proposal descriptions are measured in UTF-8 bytes
MAX_DESCRIPTION_LENGTH = 1000

# Shares always carry 18 decimals; assets with fewer are scaled up
SHARE_DECIMALS = 18

# Default asymmetric band below isqrt(contribution), in percent
DEFAULT_SQRT_TOLERANCE_PERCENT = 10

ZERO_ADDRESS = '0x' + '00' * 20


# ==================================================================================
# SIGNATURE CONSTANTS
# ==================================================================================
# EIP-1271 isValidSignature(bytes32,bytes) selector
EIP1271_MAGIC_VALUE = bytes.fromhex('1626ba7e')

EIP712_DOMAIN_TYPE = (
    'EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)'
)
SIGNUP_TYPE = (
    'Signup(address user,address payer,uint256 deposit,uint256 nonce,uint256 deadline)'
)
CAST_VOTE_TYPE = (
    'CastVote(address voter,uint256 proposalId,uint8 choice,uint256 weight,'
    'address expectedRecipient,uint256 nonce,uint256 deadline)'
)


# ==================================================================================
# CHAIN DEFAULTS
# ==================================================================================
DEFAULT_CHAIN_ID = 31337
DAY = 86400


# ==================================================================================
# CONFIGURATION WRAPPERS
# ==================================================================================
class ConfigString(str):
    """
    String subclass that stores a default value.
    """
    def __new__(cls, value, default):
        obj = str.__new__(cls, value)
        obj._default = default
        return obj

    def default(self):
        return self._default

class ConfigBool(int):
    """
    Int subclass acting as a boolean that stores a default value.
    """
    def __new__(cls, value, default):
        obj = int.__new__(cls, bool(value))
        obj._default = default
        return obj

    def default(self):
        return self._default

    def __repr__(self):
        return str(bool(self))

    def __str__(self):
        return str(bool(self))

    def __eq__(self, other):
        return bool(self) == other

    __hash__ = int.__hash__


# ==================================================================================
# DYNAMIC CONFIGURATION LOADING
# ==================================================================================
namespace = globals()

def parse_bool(v):
    """
    Convert "True"/"False" (any casing, with surrounding whitespace) into bool.
    Avoids exceptions by only calling ast.literal_eval for known literals.
    """
    if not isinstance(v, str):
        return v
    s = v.strip()
    if not s:
        return v
    if s.casefold() in {"true", "false"}:
        return ast.literal_eval(s.title())
    return v

for key, default_raw in LOGGER_DEFAULTS.items():
    # dotenv_values returns strings or None. None is treated as missing.
    raw = _config.get(key)
    value_raw = default_raw if raw is None else raw

    value = parse_bool(value_raw)
    default_val = parse_bool(default_raw)

    if isinstance(value, bool):
        namespace[key] = ConfigBool(value, default_val)
    else:
        namespace[key] = ConfigString(value_raw, default_val)
