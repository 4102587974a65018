"""
FundUp configuration.

Loads fundup.toml; environment variables override TOML values.
"""

from .loader import (
    AssetConfig,
    ChainConfig,
    FundUpConfig,
    MechanismConfig,
    load_config,
    read_toml,
)

__all__ = [
    "AssetConfig",
    "ChainConfig",
    "FundUpConfig",
    "MechanismConfig",
    "load_config",
    "read_toml",
]
