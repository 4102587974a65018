"""
FundUp TOML Configuration Loader

Loads a round definition from fundup.toml with environment variable overrides.

Environment variable mapping:
    [mechanism] quorum_shares  → FUNDUP_QUORUM_SHARES
    [mechanism] voting_period  → FUNDUP_VOTING_PERIOD
    [chain] chain_id           → FUNDUP_CHAIN_ID
    ...

Keys never appear in TOML: simulated participants are named, and each
name deterministically derives a throwaway key.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

if sys.version_info >= (3, 11):
    import tomllib as tomli
else:
    import tomli

from ..constants import (
    DAY,
    DEFAULT_CHAIN_ID,
    DEFAULT_SQRT_TOLERANCE_PERCENT,
    MECHANISM_VERSION,
)
from ..crypto.address import is_valid_address, is_zero_address, to_checksum_address
from ..exceptions import ConfigurationError
from ..logger import get_logger

logger = get_logger(__name__)


def read_toml(path) -> Dict[str, Any]:
    """Parse a TOML file, raising ConfigurationError on syntax errors."""
    with open(path, "rb") as f:
        try:
            return tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise ConfigurationError(f"Malformed TOML file {path}: {e}") from e


# ---------------------------------------------------------------------------
# Section dataclasses
# ---------------------------------------------------------------------------


@dataclass
class MechanismConfig:
    """
    [mechanism] section.

    Immutable parameters of one allocation round. ``management`` and
    ``keeper`` default to ``owner`` when left empty.
    """
    asset: str = ""
    name: str = "FundUp Round"
    symbol: str = "FUR"
    voting_delay: int = DAY
    voting_period: int = 7 * DAY
    timelock_delay: int = DAY
    grace_period: int = 7 * DAY
    quorum_shares: int = 1
    owner: str = ""
    management: str = ""
    keeper: str = ""
    alpha_numerator: int = 1
    alpha_denominator: int = 1
    sqrt_tolerance_percent: int = DEFAULT_SQRT_TOLERANCE_PERCENT
    version: str = MECHANISM_VERSION

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MechanismConfig":
        return cls(
            asset=data.get("asset", ""),
            name=data.get("name", "FundUp Round"),
            symbol=data.get("symbol", "FUR"),
            voting_delay=data.get("voting_delay", DAY),
            voting_period=data.get("voting_period", 7 * DAY),
            timelock_delay=data.get("timelock_delay", DAY),
            grace_period=data.get("grace_period", 7 * DAY),
            quorum_shares=int(data.get("quorum_shares", 1)),
            owner=data.get("owner", ""),
            management=data.get("management", ""),
            keeper=data.get("keeper", ""),
            alpha_numerator=data.get("alpha_numerator", 1),
            alpha_denominator=data.get("alpha_denominator", 1),
            sqrt_tolerance_percent=data.get("sqrt_tolerance_percent", DEFAULT_SQRT_TOLERANCE_PERCENT),
            version=str(data.get("version", MECHANISM_VERSION)),
        )

    def apply_env(self) -> None:
        """Override from environment variables."""
        if v := os.environ.get("FUNDUP_ASSET"):
            self.asset = v
        if v := os.environ.get("FUNDUP_NAME"):
            self.name = v
        if v := os.environ.get("FUNDUP_SYMBOL"):
            self.symbol = v
        if v := os.environ.get("FUNDUP_VOTING_DELAY"):
            self.voting_delay = int(v)
        if v := os.environ.get("FUNDUP_VOTING_PERIOD"):
            self.voting_period = int(v)
        if v := os.environ.get("FUNDUP_TIMELOCK_DELAY"):
            self.timelock_delay = int(v)
        if v := os.environ.get("FUNDUP_GRACE_PERIOD"):
            self.grace_period = int(v)
        if v := os.environ.get("FUNDUP_QUORUM_SHARES"):
            self.quorum_shares = int(v)
        if v := os.environ.get("FUNDUP_OWNER"):
            self.owner = v

    # --- validation -------------------------------------------------------

    def validate(self) -> "MechanismConfig":
        """
        Check every parameter and normalize addresses to checksum form.

        Returns:
            self, for chaining

        Raises:
            ConfigurationError: on the first invalid parameter
        """
        if not self.asset or not is_valid_address(self.asset) or is_zero_address(self.asset):
            raise ConfigurationError(f"Invalid asset address: {self.asset!r}")
        if not self.name:
            raise ConfigurationError("Mechanism name cannot be empty")
        if not self.symbol:
            raise ConfigurationError("Mechanism symbol cannot be empty")
        if self.voting_delay <= 0:
            raise ConfigurationError(f"voting_delay must be positive, got {self.voting_delay}")
        if self.voting_period <= 0:
            raise ConfigurationError(f"voting_period must be positive, got {self.voting_period}")
        if self.quorum_shares <= 0:
            raise ConfigurationError(f"quorum_shares must be positive, got {self.quorum_shares}")
        if self.timelock_delay <= 0:
            raise ConfigurationError(f"timelock_delay must be positive, got {self.timelock_delay}")
        if self.grace_period <= 0:
            raise ConfigurationError(f"grace_period must be positive, got {self.grace_period}")
        if not self.owner or not is_valid_address(self.owner) or is_zero_address(self.owner):
            raise ConfigurationError(f"Invalid owner address: {self.owner!r}")
        if self.alpha_denominator <= 0:
            raise ConfigurationError("alpha_denominator must be positive")
        if not 0 <= self.alpha_numerator <= self.alpha_denominator:
            raise ConfigurationError(
                f"alpha {self.alpha_numerator}/{self.alpha_denominator} must lie within [0, 1]"
            )
        if not 0 <= self.sqrt_tolerance_percent <= 100:
            raise ConfigurationError(
                f"sqrt_tolerance_percent must be 0-100, got {self.sqrt_tolerance_percent}"
            )

        self.asset = to_checksum_address(self.asset)
        self.owner = to_checksum_address(self.owner)
        for role in ("management", "keeper"):
            value = getattr(self, role) or self.owner
            if not is_valid_address(value):
                raise ConfigurationError(f"Invalid {role} address: {value!r}")
            setattr(self, role, to_checksum_address(value))
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asset": self.asset,
            "name": self.name,
            "symbol": self.symbol,
            "voting_delay": self.voting_delay,
            "voting_period": self.voting_period,
            "timelock_delay": self.timelock_delay,
            "grace_period": self.grace_period,
            "quorum_shares": str(self.quorum_shares),
            "owner": self.owner,
            "management": self.management,
            "keeper": self.keeper,
            "alpha": f"{self.alpha_numerator}/{self.alpha_denominator}",
            "sqrt_tolerance_percent": self.sqrt_tolerance_percent,
            "version": self.version,
        }


@dataclass
class ChainConfig:
    """[chain] section."""
    chain_id: int = DEFAULT_CHAIN_ID
    start_time: int = 0   # 0 = wall clock

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChainConfig":
        return cls(
            chain_id=data.get("chain_id", DEFAULT_CHAIN_ID),
            start_time=data.get("start_time", 0),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("FUNDUP_CHAIN_ID"):
            self.chain_id = int(v)
        if v := os.environ.get("FUNDUP_START_TIME"):
            self.start_time = int(v)


@dataclass
class AssetConfig:
    """[asset] section: the backing token deployed for simulations."""
    name: str = "Test USD"
    symbol: str = "TUSD"
    decimals: int = 18
    matching_pool: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AssetConfig":
        return cls(
            name=data.get("name", "Test USD"),
            symbol=data.get("symbol", "TUSD"),
            decimals=data.get("decimals", 18),
            matching_pool=int(data.get("matching_pool", 0)),
        )


# -----------------------------------------------------------------------
# Root config
# -----------------------------------------------------------------------

@dataclass
class FundUpConfig:
    """All sections of fundup.toml plus environment overrides."""
    mechanism: MechanismConfig = field(default_factory=MechanismConfig)
    chain: ChainConfig = field(default_factory=ChainConfig)
    asset: AssetConfig = field(default_factory=AssetConfig)

    # --- factories --------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FundUpConfig":
        """Create FundUpConfig from a parsed TOML dict."""
        return cls(
            mechanism=MechanismConfig.from_dict(data.get("mechanism", {})),
            chain=ChainConfig.from_dict(data.get("chain", {})),
            asset=AssetConfig.from_dict(data.get("asset", {})),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "FundUpConfig":
        """
        Load configuration from a TOML file.

        A missing file yields defaults (with env overrides).
        """
        path = Path(config_path)
        if not path.exists():
            logger.warning(f"Config file not found: {config_path}, using defaults")
            cfg = cls()
            cfg.apply_env()
            return cfg

        cfg = cls.from_dict(read_toml(path))
        cfg.apply_env()
        logger.debug(f"Loaded config from {path.resolve()}")
        return cfg

    # --- env overrides ----------------------------------------------------

    def apply_env(self) -> None:
        self.mechanism.apply_env()
        self.chain.apply_env()

    # --- serialisation ----------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mechanism": self.mechanism.to_dict(),
            "chain": {
                "chain_id": self.chain.chain_id,
                "start_time": self.chain.start_time,
            },
            "asset": {
                "name": self.asset.name,
                "symbol": self.asset.symbol,
                "decimals": self.asset.decimals,
                "matching_pool": str(self.asset.matching_pool),
            },
        }


# -----------------------------------------------------------------------
# Convenience function
# -----------------------------------------------------------------------

def load_config(path: Optional[str] = None) -> FundUpConfig:
    """
    Load round configuration.

    Resolution order:
        1. Explicit *path* argument
        2. FUNDUP_CONFIG env var
        3. ./fundup.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("FUNDUP_CONFIG", "fundup.toml")

    return FundUpConfig.from_file(path)
