"""
Execution environment for mechanism instances.

A Chain supplies what a contract would read from its host: the current
timestamp, the network identifier, deterministic addresses for new
deployments, and the registry of programmatic identities (accounts that
validate signatures with their own logic instead of a key pair).
"""

import time
from typing import Callable, Dict, Optional

from .constants import DEFAULT_CHAIN_ID
from .crypto.address import to_checksum_address
from .crypto.contract import generate_contract_address
from .logger import get_logger

logger = get_logger(__name__)


class ManualClock:
    """Clock that only moves when told to. Used by tests and simulations."""

    def __init__(self, start: int = 1_700_000_000):
        self.now = int(start)

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("Clock cannot move backwards")
        self.now += int(seconds)
        return self.now

    def set(self, timestamp: int) -> int:
        if timestamp < self.now:
            raise ValueError(f"Clock cannot move backwards ({timestamp} < {self.now})")
        self.now = int(timestamp)
        return self.now


def system_clock() -> int:
    return int(time.time())


class Chain:
    """
    Host environment shared by every mechanism and token deployed on it.

    Args:
        chain_id: Network identifier bound into signed messages
        clock: Callable returning the current UNIX timestamp
    """

    def __init__(self, chain_id: int = DEFAULT_CHAIN_ID, clock: Optional[Callable[[], int]] = None):
        if chain_id <= 0:
            raise ValueError(f"chain_id must be positive, got {chain_id}")
        self._chain_id = chain_id
        self._clock = clock or system_clock
        self._accounts: Dict[str, object] = {}
        self._deploy_nonces: Dict[str, int] = {}

    # ── Clock / network ───────────────────────────────────────────────

    @property
    def timestamp(self) -> int:
        return int(self._clock())

    @property
    def chain_id(self) -> int:
        return self._chain_id

    def set_chain_id(self, chain_id: int):
        """Switch network identity (e.g. after a fork)."""
        if chain_id <= 0:
            raise ValueError(f"chain_id must be positive, got {chain_id}")
        logger.warning(f"Chain id changed: {self._chain_id} → {chain_id}")
        self._chain_id = chain_id

    # ── Deployment ────────────────────────────────────────────────────

    def next_contract_address(self, deployer: str) -> str:
        """Reserve the next CREATE-style address for *deployer*."""
        deployer = to_checksum_address(deployer)
        nonce = self._deploy_nonces.get(deployer, 0)
        self._deploy_nonces[deployer] = nonce + 1
        return generate_contract_address(deployer, nonce)

    # ── Programmatic identities ───────────────────────────────────────

    def register_account(self, account) -> str:
        """
        Register a programmatic identity under its ``address``.

        Only registered identities are ever asked to validate a signature;
        an address with no deployed logic is never trusted.
        """
        address = to_checksum_address(account.address)
        self._accounts[address] = account
        logger.debug(f"Programmatic account registered: {address}")
        return address

    def get_account(self, address: str):
        return self._accounts.get(to_checksum_address(address))

    def is_programmatic(self, address: str) -> bool:
        return to_checksum_address(address) in self._accounts

    def __repr__(self) -> str:
        return f"<Chain id={self._chain_id} t={self.timestamp} accounts={len(self._accounts)}>"
