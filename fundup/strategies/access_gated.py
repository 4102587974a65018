"""
Access-Gated Quadratic Voting Strategy

Quadratic voting with an owner-managed gate in front of signup:

    NONE      anyone may sign up
    ALLOWSET  only addresses in the allow set
    BLOCKSET  anyone except addresses in the block set

The mode cannot change while voting is open and the tally is not yet
finalized; power already granted under one mode is never re-evaluated.
"""

from enum import IntEnum
from typing import Any, Dict, Iterable, List, Set

from ..crypto.address import to_checksum_address
from ..exceptions import AccessModeLockedError
from ..logger import get_logger
from ..mechanism.events import AccessModeChangedEvent
from .quadratic import QuadraticVotingStrategy

logger = get_logger(__name__)


class AccessMode(IntEnum):
    NONE = 0
    ALLOWSET = 1
    BLOCKSET = 2


class AccessGatedQuadraticVotingStrategy(QuadraticVotingStrategy):
    """
    Args:
        access_mode: Initial gate mode
        allowset: Initial allow set
        blockset: Initial block set
    """

    def __init__(
        self,
        access_mode: AccessMode = AccessMode.NONE,
        allowset: Iterable[str] = (),
        blockset: Iterable[str] = (),
    ):
        super().__init__()
        self.access_mode = AccessMode(access_mode)
        self._allowset: Set[str] = {to_checksum_address(a) for a in allowset}
        self._blockset: Set[str] = {to_checksum_address(a) for a in blockset}

    # ── Gate ──────────────────────────────────────────────────────────

    def is_allowed(self, user: str) -> bool:
        user = to_checksum_address(user)
        if self.access_mode == AccessMode.ALLOWSET:
            return user in self._allowset
        if self.access_mode == AccessMode.BLOCKSET:
            return user not in self._blockset
        return True

    def before_signup(self, user: str) -> bool:
        return self.is_allowed(user)

    # ══════════════════════════════════════════════════════════════════
    #  ADMINISTRATION (owner only)
    # ══════════════════════════════════════════════════════════════════

    def set_access_mode(self, sender: str, mode: AccessMode):
        mechanism = self.mechanism
        with mechanism.locked():
            mechanism.require_owner(sender)
            now = mechanism.chain.timestamp
            tl = mechanism.timeline
            if tl.voting_start_time <= now <= tl.voting_end_time and not tl.finalized:
                raise AccessModeLockedError(
                    f"Access mode is locked during voting [{tl.voting_start_time}, {tl.voting_end_time}] (now={now})"
                )

            old_mode, self.access_mode = self.access_mode, AccessMode(mode)
            mechanism.emit(AccessModeChangedEvent(int(old_mode), int(self.access_mode), now))
            logger.info(f"Access mode {old_mode.name} → {self.access_mode.name} on {mechanism.address}")

    def add_to_allowset(self, sender: str, addresses: Iterable[str]):
        with self.mechanism.locked():
            self.mechanism.require_owner(sender)
            self._allowset.update(to_checksum_address(a) for a in addresses)

    def remove_from_allowset(self, sender: str, addresses: Iterable[str]):
        with self.mechanism.locked():
            self.mechanism.require_owner(sender)
            self._allowset.difference_update(to_checksum_address(a) for a in addresses)

    def add_to_blockset(self, sender: str, addresses: Iterable[str]):
        with self.mechanism.locked():
            self.mechanism.require_owner(sender)
            self._blockset.update(to_checksum_address(a) for a in addresses)

    def remove_from_blockset(self, sender: str, addresses: Iterable[str]):
        with self.mechanism.locked():
            self.mechanism.require_owner(sender)
            self._blockset.difference_update(to_checksum_address(a) for a in addresses)

    # ── Views ─────────────────────────────────────────────────────────

    @property
    def allowset(self) -> List[str]:
        return sorted(self._allowset)

    @property
    def blockset(self) -> List[str]:
        return sorted(self._blockset)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "accessMode": self.access_mode.name,
            "allowset": self.allowset,
            "blockset": self.blockset,
        })
        return data
