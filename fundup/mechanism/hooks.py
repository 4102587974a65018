"""
Strategy Hook Interface

An AllocationStrategy supplies the policy decisions of a mechanism:
who may sign up or propose, how deposits turn into voting power, how a vote
is recorded, what counts as quorum and how votes become shares.

Hooks are only callable while the bound mechanism is dispatching into the
strategy. The mechanism receives a private dispatch token when it binds the
strategy; ``invoke`` refuses any other token and every hook method refuses
to run outside a dispatch. External callers (and hooks of other strategies)
therefore cannot drive a strategy directly.
"""

import functools
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

from ..constants import UNLIMITED
from ..exceptions import ConfigurationError, HookAccessError
from ..logger import get_logger

logger = get_logger(__name__)

HOOKS = (
    "before_signup",
    "before_propose",
    "get_voting_power",
    "validate_proposal",
    "process_vote",
    "has_quorum",
    "convert_votes_to_shares",
    "before_finalize_vote_tally",
    "get_recipient",
    "request_custom_distribution",
    "available_withdraw_limit",
    "calculate_total_assets",
)


def hook(fn):
    """Restrict *fn* to calls made while the owning mechanism dispatches."""
    if getattr(fn, "__hook_guarded__", False):
        return fn

    @functools.wraps(fn)
    def guarded(self, *args, **kwargs):
        if not self._dispatch_depth:
            raise HookAccessError(
                f"{type(self).__name__}.{fn.__name__} can only be called by its mechanism"
            )
        return fn(self, *args, **kwargs)

    guarded.__hook_guarded__ = True
    return guarded


class AllocationStrategy(ABC):
    """
    Base class for allocation strategies.

    Subclasses implement the abstract hooks; any hook a subclass defines is
    guarded automatically.
    """

    def __init__(self):
        self.mechanism = None
        self._dispatch_token: Optional[object] = None
        self._dispatch_depth = 0

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        for name in HOOKS:
            fn = cls.__dict__.get(name)
            if fn is not None and callable(fn):
                setattr(cls, name, hook(fn))

    # ══════════════════════════════════════════════════════════════════
    #  BINDING / DISPATCH
    # ══════════════════════════════════════════════════════════════════

    def bind(self, mechanism) -> object:
        """
        Attach this strategy to *mechanism*.

        Returns:
            The dispatch token the mechanism must present to ``invoke``.

        Raises:
            ConfigurationError: If the strategy is already bound
        """
        if self.mechanism is not None:
            raise ConfigurationError(f"{type(self).__name__} is already bound to {self.mechanism.address}")
        self.mechanism = mechanism
        self._dispatch_token = object()
        logger.debug(f"{type(self).__name__} bound to mechanism {mechanism.address}")
        return self._dispatch_token

    def invoke(self, token: object, name: str, *args) -> Any:
        if token is None or token is not self._dispatch_token:
            raise HookAccessError(f"Hook '{name}' invoked without the mechanism's dispatch token")
        if name not in HOOKS:
            raise HookAccessError(f"Unknown hook '{name}'")

        self._dispatch_depth += 1
        try:
            return getattr(self, name)(*args)
        finally:
            self._dispatch_depth -= 1

    # ══════════════════════════════════════════════════════════════════
    #  REQUIRED HOOKS
    # ══════════════════════════════════════════════════════════════════

    @abstractmethod
    def before_signup(self, user: str) -> bool:
        """Whether *user* may register."""

    @abstractmethod
    def before_propose(self, proposer: str) -> bool:
        """Whether *proposer* may create proposals."""

    @abstractmethod
    def get_voting_power(self, user: str, deposit: int) -> int:
        """Voting power granted for *deposit*."""

    @abstractmethod
    def validate_proposal(self, proposal_id: int) -> bool:
        ...

    @abstractmethod
    def process_vote(self, proposal_id: int, voter: str, choice: int, weight: int, old_power: int) -> int:
        """Record a vote; returns the voter's remaining power (<= old_power)."""

    @abstractmethod
    def has_quorum(self, proposal_id: int) -> bool:
        ...

    @abstractmethod
    def convert_votes_to_shares(self, proposal_id: int) -> int:
        ...

    @abstractmethod
    def before_finalize_vote_tally(self) -> bool:
        ...

    @abstractmethod
    def get_recipient(self, proposal_id: int) -> str:
        ...

    # ══════════════════════════════════════════════════════════════════
    #  OPTIONAL HOOKS
    # ══════════════════════════════════════════════════════════════════

    @hook
    def request_custom_distribution(self, recipient: str, shares: int) -> Tuple[bool, int]:
        """
        Take over distribution of *shares* to *recipient*.

        Returns:
            (handled, assets_transferred). When handled is False the
            mechanism mints the shares itself.
        """
        return False, 0

    @hook
    def available_withdraw_limit(self, owner: str) -> int:
        """Zero outside the redemption window, UNLIMITED inside it."""
        if self.mechanism.timeline.in_redemption_window(self.mechanism.chain.timestamp):
            return UNLIMITED
        return 0

    @hook
    def calculate_total_assets(self) -> int:
        """Backing assets attributable to shares. Defaults to the asset balance held."""
        return self.mechanism.asset.balance_of(self.mechanism.address)

    # ══════════════════════════════════════════════════════════════════
    #  VIEWS
    # ══════════════════════════════════════════════════════════════════

    def get_proposal_funding(self, proposal_id: int):
        raise NotImplementedError(f"{type(self).__name__} does not tally funding")

    def to_dict(self) -> Dict[str, Any]:
        return {"type": type(self).__name__}
