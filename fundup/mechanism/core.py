"""
Tokenized Allocation Mechanism

One allocation round: participants deposit the backing asset for voting
power, keepers/management propose recipients, participants vote, and the
owner finalizes the tally. Proposals that reach quorum are queued and their
recipients receive redeemable shares of the pooled assets, claimable only
inside the timelocked redemption window.

Lifecycle (global):
    start ── voting_delay ──► voting ── voting_period ──► tallying
    finalize ── timelock_delay ──► redemption ── grace_period ──► expired

Policy decisions (eligibility, voting power, vote accounting, quorum,
share conversion) are delegated to an AllocationStrategy through guarded
hooks. Every mutating entrypoint holds a non-reentrant lock, so a hook that
calls back into the mechanism fails immediately.
"""

import functools
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Set, Tuple

from ..auth.verifier import SignatureVerifier
from ..config.loader import MechanismConfig
from ..constants import MAX_DESCRIPTION_LENGTH, MAX_SAFE_VALUE, UNLIMITED
from ..crypto.address import is_zero_address, to_checksum_address
from ..crypto.typed_data import (
    cast_vote_struct_hash,
    domain_separator,
    signup_struct_hash,
    typed_data_digest,
)
from ..exceptions import (
    AlreadyQueuedError,
    AlreadyVotedError,
    ConfigurationError,
    DepositTooLargeError,
    ExceedsMaxRedeemError,
    FinalizeNotAllowedError,
    InvalidDepositError,
    InvalidDescriptionError,
    InvalidProposalError,
    InvalidRecipientError,
    InvalidShareAmountError,
    NoAllocationError,
    NoQuorumError,
    ProposalCanceledError,
    ProposeNotAllowedError,
    QueueWindowClosedError,
    RecipientMismatchError,
    RecipientUsedError,
    ReentrancyError,
    SignupNotAllowedError,
    SweepNotAllowedError,
    TallyAlreadyFinalizedError,
    TallyNotFinalizedError,
    TransferWindowClosedError,
    UnauthorizedError,
    VotingEndedError,
    VotingNotActiveError,
    VotingNotEndedError,
    VotingPowerIncreasedError,
    VotingPowerOverflowError,
    ZeroAssetsError,
)
from ..logger import get_logger
from ..tokens.shares import ShareLedger
from .events import (
    OwnershipTransferredEvent,
    ProposalCanceledEvent,
    ProposalCreatedEvent,
    ProposalQueuedEvent,
    RedeemEvent,
    SignupEvent,
    SweepEvent,
    VoteCastEvent,
    VoteTallyFinalizedEvent,
)
from .hooks import AllocationStrategy
from .proposals import Proposal, ProposalState

logger = get_logger(__name__)


def nonreentrant(fn):
    """Run *fn* under the mechanism lock."""
    @functools.wraps(fn)
    def wrapper(self, *args, **kwargs):
        with self.locked():
            return fn(self, *args, **kwargs)
    return wrapper


@dataclass
class Timeline:
    """Round timestamps. The redemption window is fixed at finalization."""
    start_time: int
    voting_start_time: int
    voting_end_time: int
    finalized: bool = False
    tally_finalized_time: int = 0
    global_redemption_start: int = 0
    global_redemption_end: int = 0

    def in_redemption_window(self, now: int) -> bool:
        return self.finalized and self.global_redemption_start <= now <= self.global_redemption_end

    def to_dict(self) -> Dict[str, Any]:
        return {
            "startTime": self.start_time,
            "votingStartTime": self.voting_start_time,
            "votingEndTime": self.voting_end_time,
            "finalized": self.finalized,
            "tallyFinalizedTime": self.tally_finalized_time,
            "globalRedemptionStart": self.global_redemption_start,
            "globalRedemptionEnd": self.global_redemption_end,
        }


class TokenizedAllocationMechanism:
    """
    Allocation round engine, composed with a strategy per instance.

    Args:
        config: Round parameters (validated here)
        chain: Host environment (clock, chain id, account registry)
        asset: Backing fungible asset; its address must match config.asset
        strategy: Policy hooks; bound to this mechanism for its lifetime
        deployer: Account whose deployment nonce derives the mechanism
            address (defaults to the owner)
    """

    def __init__(
        self,
        config: MechanismConfig,
        chain,
        asset,
        strategy: AllocationStrategy,
        deployer: Optional[str] = None,
    ):
        config.validate()
        if to_checksum_address(asset.address) != config.asset:
            raise ConfigurationError(
                f"Asset {asset.address} does not match configured asset {config.asset}"
            )

        self.config = config
        self.chain = chain
        self.asset = asset
        self.address = chain.next_contract_address(deployer or config.owner)

        # ── Roles ──
        self.owner = config.owner
        self.pending_owner: Optional[str] = None
        self.management = config.management
        self.keeper = config.keeper

        # ── Timeline ──
        now = chain.timestamp
        voting_start = now + config.voting_delay
        self.timeline = Timeline(
            start_time=now,
            voting_start_time=voting_start,
            voting_end_time=voting_start + config.voting_period,
        )

        # ── State ──
        self._proposals: Dict[int, Proposal] = {}
        self._recipient_proposal: Dict[str, int] = {}
        self._defeated: Set[int] = set()
        self._voting_power: Dict[str, int] = {}
        self._receipts: Set[Tuple[int, str]] = set()
        self.proposal_count = 0
        self._events: List[Any] = []
        self._locked = False
        self._domain_cache: Optional[Tuple[int, bytes]] = None

        self.verifier = SignatureVerifier(chain)
        self.shares = ShareLedger(config.symbol, asset.decimals, emit=self.emit)

        self.strategy = strategy
        self._hook_token = strategy.bind(self)

        logger.info(
            f"Mechanism '{config.name}' deployed at {self.address} "
            f"(voting {self.timeline.voting_start_time}-{self.timeline.voting_end_time}, "
            f"quorum {config.quorum_shares}, strategy {type(strategy).__name__})"
        )

    # ══════════════════════════════════════════════════════════════════
    #  INTERNALS
    # ══════════════════════════════════════════════════════════════════

    def _acquire_lock(self) -> None:
        if self._locked:
            raise ReentrancyError(f"Reentrant call into mechanism {self.address}")
        self._locked = True

    def _release_lock(self) -> None:
        self._locked = False

    @contextmanager
    def locked(self):
        """Hold the mechanism lock for the duration of the block."""
        self._acquire_lock()
        try:
            yield
        finally:
            self._release_lock()

    def _hook(self, name: str, *args) -> Any:
        return self.strategy.invoke(self._hook_token, name, *args)

    def emit(self, event: Any):
        self._events.append(event)
        logger.debug(f"Event: {event.to_dict()}")

    def require_owner(self, sender: str) -> str:
        sender = to_checksum_address(sender)
        if sender != self.owner:
            raise UnauthorizedError(f"{sender} is not the owner of {self.address}")
        return sender

    def _validate_proposal_id(self, proposal_id: int) -> Proposal:
        if not 1 <= proposal_id <= self.proposal_count or not self._hook("validate_proposal", proposal_id):
            raise InvalidProposalError(
                f"Invalid proposal #{proposal_id} (count={self.proposal_count})"
            )
        return self._proposals[proposal_id]

    # ══════════════════════════════════════════════════════════════════
    #  TYPED DATA
    # ══════════════════════════════════════════════════════════════════

    @property
    def domain_separator(self) -> bytes:
        """EIP-712 domain separator, recomputed if the chain id changed."""
        chain_id = self.chain.chain_id
        if self._domain_cache is None or self._domain_cache[0] != chain_id:
            separator = domain_separator(self.config.name, self.config.version, chain_id, self.address)
            self._domain_cache = (chain_id, separator)
            logger.debug(f"Domain separator for chain {chain_id}: 0x{separator.hex()}")
        return self._domain_cache[1]

    def signup_digest(self, user: str, payer: str, deposit: int, nonce: int, deadline: int) -> bytes:
        return typed_data_digest(
            self.domain_separator,
            signup_struct_hash(user, payer, deposit, nonce, deadline),
        )

    def cast_vote_digest(
        self,
        voter: str,
        proposal_id: int,
        choice: int,
        weight: int,
        expected_recipient: str,
        nonce: int,
        deadline: int,
    ) -> bytes:
        return typed_data_digest(
            self.domain_separator,
            cast_vote_struct_hash(voter, proposal_id, choice, weight, expected_recipient, nonce, deadline),
        )

    def nonces(self, user: str) -> int:
        return self.verifier.nonce_of(user)

    def _consume_signature(self, signer: str, digest_fn, deadline: int, signature: bytes):
        """Check deadline, burn the signer's nonce, then verify."""
        self.verifier.check_deadline(deadline)
        nonce = self.verifier.consume_nonce(signer)
        self.verifier.verify(signer, digest_fn(nonce), signature)

    # ══════════════════════════════════════════════════════════════════
    #  SIGNUP
    # ══════════════════════════════════════════════════════════════════

    @nonreentrant
    def signup(self, sender: str, deposit: int) -> int:
        """Register *sender*, paying *deposit* from their own balance."""
        sender = to_checksum_address(sender)
        return self._signup(sender, sender, deposit)

    @nonreentrant
    def signup_with_signature(
        self,
        sender: str,
        user: str,
        deposit: int,
        deadline: int,
        signature: bytes,
    ) -> int:
        """Relay a signup signed by *user*; the deposit comes from *user*."""
        user = to_checksum_address(user)
        self._consume_signature(
            user,
            lambda nonce: self.signup_digest(user, user, deposit, nonce, deadline),
            deadline,
            signature,
        )
        return self._signup(user, user, deposit)

    @nonreentrant
    def signup_on_behalf_with_signature(
        self,
        sender: str,
        user: str,
        deposit: int,
        deadline: int,
        signature: bytes,
    ) -> int:
        """
        Register *user* with a deposit paid by *sender*.

        *user* must have signed a Signup naming *sender* as payer. Voting
        power is credited to *user*.
        """
        user = to_checksum_address(user)
        payer = to_checksum_address(sender)
        self._consume_signature(
            user,
            lambda nonce: self.signup_digest(user, payer, deposit, nonce, deadline),
            deadline,
            signature,
        )
        return self._signup(user, payer, deposit)

    def _signup(self, user: str, payer: str, deposit: int) -> int:
        now = self.chain.timestamp
        if now > self.timeline.voting_end_time:
            raise VotingEndedError(
                f"Signup closed at {self.timeline.voting_end_time} (now={now})"
            )
        if deposit < 0:
            raise InvalidDepositError(f"Deposit cannot be negative ({deposit})")
        if deposit > MAX_SAFE_VALUE:
            raise DepositTooLargeError(f"Deposit {deposit} exceeds {MAX_SAFE_VALUE}")
        if not self._hook("before_signup", user):
            raise SignupNotAllowedError(f"{user} is not allowed to sign up")

        new_power = self._hook("get_voting_power", user, deposit)
        if new_power > MAX_SAFE_VALUE:
            raise VotingPowerOverflowError(f"Voting power {new_power} exceeds {MAX_SAFE_VALUE}")
        total_power = self._voting_power.get(user, 0) + new_power
        if total_power > MAX_SAFE_VALUE:
            raise VotingPowerOverflowError(
                f"Accumulated voting power {total_power} for {user} exceeds {MAX_SAFE_VALUE}"
            )

        if deposit > 0:
            self.asset.transfer_from(self.address, payer, self.address, deposit)

        self._voting_power[user] = total_power
        self.emit(SignupEvent(user, payer, deposit, total_power, now))
        logger.info(f"Signup: {user} deposit={deposit} power={total_power} (payer {payer})")
        return total_power

    def voting_power(self, user: str) -> int:
        return self._voting_power.get(to_checksum_address(user), 0)

    # ══════════════════════════════════════════════════════════════════
    #  PROPOSALS
    # ══════════════════════════════════════════════════════════════════

    @nonreentrant
    def propose(self, sender: str, recipient: str, description: str) -> int:
        """
        Create a proposal funding *recipient*.

        Returns:
            The new proposal id (1-based)
        """
        sender = to_checksum_address(sender)
        if not self._hook("before_propose", sender):
            raise ProposeNotAllowedError(f"{sender} is not allowed to propose")

        recipient = to_checksum_address(recipient)
        if is_zero_address(recipient) or recipient == self.address:
            raise InvalidRecipientError(f"Invalid recipient {recipient}")
        if recipient in self._recipient_proposal:
            raise RecipientUsedError(
                f"Recipient {recipient} already has proposal #{self._recipient_proposal[recipient]}"
            )

        size = len(description.encode("utf-8"))
        if size == 0:
            raise InvalidDescriptionError("Description cannot be empty")
        if size > MAX_DESCRIPTION_LENGTH:
            raise InvalidDescriptionError(
                f"Description is {size} bytes, limit is {MAX_DESCRIPTION_LENGTH}"
            )

        now = self.chain.timestamp
        if now > self.timeline.voting_end_time:
            raise VotingEndedError(
                f"Proposals closed at {self.timeline.voting_end_time} (now={now})"
            )

        self.proposal_count += 1
        pid = self.proposal_count
        self._proposals[pid] = Proposal(
            id=pid,
            proposer=sender,
            recipient=recipient,
            description=description,
            created_at=now,
        )
        self._recipient_proposal[recipient] = pid

        self.emit(ProposalCreatedEvent(pid, sender, recipient, description, now))
        logger.info(f"Proposal #{pid} created by {sender} for {recipient}")
        return pid

    def proposals(self, proposal_id: int) -> Proposal:
        """Snapshot of the proposal; mutating it does not touch mechanism state."""
        return replace(self._validate_proposal_id(proposal_id))

    @nonreentrant
    def cancel_proposal(self, sender: str, proposal_id: int):
        """Proposer-only; closed once the tally is finalized."""
        proposal = self._validate_proposal_id(proposal_id)
        sender = to_checksum_address(sender)
        if sender != proposal.proposer:
            raise UnauthorizedError(f"{sender} is not the proposer of #{proposal_id}")
        if proposal.canceled:
            raise ProposalCanceledError(f"Proposal #{proposal_id} is already canceled")
        if self.timeline.finalized:
            raise TallyAlreadyFinalizedError(
                f"Cannot cancel #{proposal_id}: tally finalized at {self.timeline.tally_finalized_time}"
            )

        proposal.canceled = True
        del self._recipient_proposal[proposal.recipient]

        self.emit(ProposalCanceledEvent(proposal_id, sender, self.chain.timestamp))
        logger.info(f"Proposal #{proposal_id} canceled by {sender}")

    # ══════════════════════════════════════════════════════════════════
    #  VOTING
    # ══════════════════════════════════════════════════════════════════

    @nonreentrant
    def cast_vote(
        self,
        sender: str,
        proposal_id: int,
        choice: int,
        weight: int,
        expected_recipient: str,
    ) -> int:
        """
        Vote on a proposal.

        Returns:
            Remaining voting power of *sender*
        """
        return self._cast_vote(to_checksum_address(sender), proposal_id, choice, weight, expected_recipient)

    @nonreentrant
    def cast_vote_with_signature(
        self,
        sender: str,
        voter: str,
        proposal_id: int,
        choice: int,
        weight: int,
        expected_recipient: str,
        deadline: int,
        signature: bytes,
    ) -> int:
        """Relay a vote signed by *voter*."""
        voter = to_checksum_address(voter)
        self._consume_signature(
            voter,
            lambda nonce: self.cast_vote_digest(
                voter, proposal_id, choice, weight, expected_recipient, nonce, deadline
            ),
            deadline,
            signature,
        )
        return self._cast_vote(voter, proposal_id, choice, weight, expected_recipient)

    def _cast_vote(self, voter: str, proposal_id: int, choice: int, weight: int, expected_recipient: str) -> int:
        proposal = self._validate_proposal_id(proposal_id)
        now = self.chain.timestamp
        tl = self.timeline
        if now < tl.voting_start_time or now > tl.voting_end_time:
            raise VotingNotActiveError(
                f"Voting window is [{tl.voting_start_time}, {tl.voting_end_time}] (now={now})"
            )
        if proposal.canceled:
            raise ProposalCanceledError(f"Proposal #{proposal_id} is canceled")

        recipient = self._hook("get_recipient", proposal_id)
        if to_checksum_address(expected_recipient) != recipient:
            raise RecipientMismatchError(
                f"Proposal #{proposal_id} recipient is {recipient}, voter expected {expected_recipient}"
            )
        if (proposal_id, voter) in self._receipts:
            raise AlreadyVotedError(f"{voter} already voted on #{proposal_id}")

        old_power = self._voting_power.get(voter, 0)
        new_power = self._hook("process_vote", proposal_id, voter, int(choice), weight, old_power)
        if new_power > old_power:
            raise VotingPowerIncreasedError(
                f"Strategy raised power of {voter} from {old_power} to {new_power}"
            )

        self._voting_power[voter] = new_power
        self._receipts.add((proposal_id, voter))

        self.emit(VoteCastEvent(voter, proposal_id, int(choice), weight, new_power, now))
        logger.info(f"Vote: {voter} → #{proposal_id} choice={int(choice)} weight={weight} power {old_power}→{new_power}")
        return new_power

    def has_voted(self, proposal_id: int, voter: str) -> bool:
        return (proposal_id, to_checksum_address(voter)) in self._receipts

    # ══════════════════════════════════════════════════════════════════
    #  FINALIZATION / QUEUEING
    # ══════════════════════════════════════════════════════════════════

    @nonreentrant
    def finalize_vote_tally(self, sender: str):
        """
        Close the round: snapshot quorum outcomes, fix tracked assets and
        open the timelock.
        """
        self.require_owner(sender)
        now = self.chain.timestamp
        tl = self.timeline
        if now <= tl.voting_end_time:
            raise VotingNotEndedError(f"Voting ends at {tl.voting_end_time} (now={now})")
        if tl.finalized:
            raise TallyAlreadyFinalizedError(f"Tally finalized at {tl.tally_finalized_time}")
        if not self._hook("before_finalize_vote_tally"):
            raise FinalizeNotAllowedError("Strategy declined finalization")

        for pid, proposal in self._proposals.items():
            if not proposal.canceled and not self._hook("has_quorum", pid):
                self._defeated.add(pid)

        total_assets = self._hook("calculate_total_assets")
        self.shares.set_total_assets(total_assets)

        tl.finalized = True
        tl.tally_finalized_time = now
        tl.global_redemption_start = now + self.config.timelock_delay
        tl.global_redemption_end = tl.global_redemption_start + self.config.grace_period

        self.emit(VoteTallyFinalizedEvent(
            total_assets, tl.global_redemption_start, tl.global_redemption_end, now,
        ))
        logger.info(
            f"Tally finalized: total assets {total_assets}, "
            f"redemption [{tl.global_redemption_start}, {tl.global_redemption_end}], "
            f"defeated {sorted(self._defeated)}"
        )

    @nonreentrant
    def queue_proposal(self, sender: str, proposal_id: int) -> int:
        """
        Allocate shares to a successful proposal's recipient. Anyone may call.

        Returns:
            Shares allocated
        """
        proposal = self._validate_proposal_id(proposal_id)
        now = self.chain.timestamp
        tl = self.timeline
        if proposal.canceled:
            raise ProposalCanceledError(f"Proposal #{proposal_id} is canceled")
        if not tl.finalized:
            raise TallyNotFinalizedError(f"Cannot queue #{proposal_id} before finalization")
        if now >= tl.global_redemption_start:
            raise QueueWindowClosedError(
                f"Queueing closed at {tl.global_redemption_start} (now={now})"
            )
        if proposal.is_queued:
            raise AlreadyQueuedError(f"Proposal #{proposal_id} already queued with {proposal.shares} shares")
        if proposal_id in self._defeated or not self._hook("has_quorum", proposal_id):
            raise NoQuorumError(
                f"Proposal #{proposal_id} did not reach quorum of {self.config.quorum_shares}"
            )

        shares = self._hook("convert_votes_to_shares", proposal_id)
        if shares == 0:
            raise NoAllocationError(f"Proposal #{proposal_id} converts to zero shares")

        recipient = self._hook("get_recipient", proposal_id)
        handled, assets_transferred = self._hook("request_custom_distribution", recipient, shares)
        if handled:
            self.shares.decrease_total_assets(assets_transferred)
        else:
            self.shares.mint(recipient, shares)
        proposal.shares = shares

        self.emit(ProposalQueuedEvent(proposal_id, recipient, shares, handled, now))
        logger.info(
            f"Proposal #{proposal_id} queued: {shares} shares → {recipient}"
            + (f" (custom distribution, {assets_transferred} assets)" if handled else "")
        )
        return shares

    # ══════════════════════════════════════════════════════════════════
    #  STATE
    # ══════════════════════════════════════════════════════════════════

    def state(self, proposal_id: int) -> ProposalState:
        proposal = self._validate_proposal_id(proposal_id)
        if proposal.canceled:
            return ProposalState.CANCELED

        now = self.chain.timestamp
        tl = self.timeline
        if now < tl.voting_start_time:
            return ProposalState.PENDING
        if now <= tl.voting_end_time:
            return ProposalState.ACTIVE
        if not tl.finalized:
            return ProposalState.TALLYING
        if proposal_id in self._defeated or not self._hook("has_quorum", proposal_id):
            return ProposalState.DEFEATED
        if not proposal.is_queued:
            # unqueued proposals can never be queued once redemption ends
            if now > tl.global_redemption_end:
                return ProposalState.EXPIRED
            return ProposalState.SUCCEEDED
        if now < tl.global_redemption_start:
            return ProposalState.QUEUED
        if now <= tl.global_redemption_end:
            return ProposalState.REDEEMABLE
        return ProposalState.EXPIRED

    def get_proposal_funding(self, proposal_id: int):
        self._validate_proposal_id(proposal_id)
        return self.strategy.get_proposal_funding(proposal_id)

    # ══════════════════════════════════════════════════════════════════
    #  SHARES
    # ══════════════════════════════════════════════════════════════════

    @property
    def total_supply(self) -> int:
        return self.shares.total_supply

    @property
    def total_assets(self) -> int:
        return self.shares.total_assets

    def balance_of(self, owner: str) -> int:
        return self.shares.balance_of(owner)

    def allowance(self, owner: str, spender: str) -> int:
        return self.shares.allowance(owner, spender)

    def convert_to_shares(self, assets: int) -> int:
        return self.shares.convert_to_shares(assets)

    def convert_to_assets(self, shares: int) -> int:
        return self.shares.convert_to_assets(shares)

    def preview_redeem(self, shares: int) -> int:
        return self.shares.convert_to_assets(shares)

    def max_redeem(self, owner: str) -> int:
        owner = to_checksum_address(owner)
        balance = self.shares.balance_of(owner)
        limit = self._hook("available_withdraw_limit", owner)
        if limit == UNLIMITED:
            return balance
        return min(balance, self.shares.convert_to_shares(limit))

    @nonreentrant
    def redeem(self, sender: str, shares: int, receiver: str, owner: str) -> int:
        """
        Burn *shares* of *owner* and pay the backing assets to *receiver*.

        Returns:
            Assets paid out
        """
        sender = to_checksum_address(sender)
        receiver = to_checksum_address(receiver)
        owner = to_checksum_address(owner)

        if shares < 0:
            raise InvalidShareAmountError(f"Cannot redeem a negative share amount ({shares})")
        max_shares = self.max_redeem(owner)
        if shares > max_shares:
            raise ExceedsMaxRedeemError(
                f"Redeem of {shares} shares exceeds max {max_shares} for {owner} "
                f"(window [{self.timeline.global_redemption_start}, {self.timeline.global_redemption_end}], "
                f"now={self.chain.timestamp})"
            )
        assets = self.preview_redeem(shares)
        if assets == 0:
            raise ZeroAssetsError(f"Redeeming {shares} shares yields zero assets")
        if sender != owner:
            self.shares.check_allowance(owner, sender, shares)

        self.asset.transfer(self.address, receiver, assets)

        if sender != owner:
            self.shares.spend_allowance(owner, sender, shares)
        self.shares.burn(owner, shares)
        self.shares.decrease_total_assets(assets)

        self.emit(RedeemEvent(sender, receiver, owner, assets, shares, self.chain.timestamp))
        logger.info(f"Redeem: {owner} burned {shares} shares → {assets} assets to {receiver}")
        return assets

    def _require_transfer_window(self):
        now = self.chain.timestamp
        if not self.timeline.in_redemption_window(now):
            raise TransferWindowClosedError(
                f"Share transfers are only allowed in "
                f"[{self.timeline.global_redemption_start}, {self.timeline.global_redemption_end}] (now={now})"
            )

    @nonreentrant
    def transfer(self, sender: str, recipient: str, shares: int) -> bool:
        self._require_transfer_window()
        self.shares.transfer(sender, recipient, shares)
        return True

    @nonreentrant
    def transfer_from(self, sender: str, owner: str, recipient: str, shares: int) -> bool:
        self._require_transfer_window()
        self.shares.check_allowance(owner, sender, shares)
        self.shares.transfer(owner, recipient, shares)
        self.shares.spend_allowance(owner, sender, shares)
        return True

    @nonreentrant
    def approve(self, sender: str, spender: str, shares: int) -> bool:
        self.shares.approve(sender, spender, shares)
        return True

    # ══════════════════════════════════════════════════════════════════
    #  SWEEP
    # ══════════════════════════════════════════════════════════════════

    @nonreentrant
    def sweep(self, sender: str, token, receiver: str) -> int:
        """
        Recover *token* held by the mechanism once the grace period is over.

        Sweeping the backing asset zeroes tracked assets; outstanding shares
        become worthless.
        """
        self.require_owner(sender)
        now = self.chain.timestamp
        tl = self.timeline
        if not tl.finalized or now <= tl.global_redemption_end:
            raise SweepNotAllowedError(
                f"Sweep allowed after {tl.global_redemption_end or 'finalization'} (now={now})"
            )
        receiver = to_checksum_address(receiver)
        if is_zero_address(receiver):
            raise InvalidRecipientError("Cannot sweep to the zero address")

        amount = token.balance_of(self.address)
        if amount > 0:
            token.transfer(self.address, receiver, amount)
        if to_checksum_address(token.address) == self.config.asset:
            self.shares.set_total_assets(0)

        self.emit(SweepEvent(to_checksum_address(token.address), receiver, amount, now))
        logger.info(f"Swept {amount} {token.symbol} → {receiver}")
        return amount

    # ══════════════════════════════════════════════════════════════════
    #  ROLES
    # ══════════════════════════════════════════════════════════════════

    @nonreentrant
    def transfer_ownership(self, sender: str, new_owner: str):
        """Start a two-step ownership transfer."""
        self.require_owner(sender)
        new_owner = to_checksum_address(new_owner)
        if is_zero_address(new_owner):
            raise UnauthorizedError("New owner cannot be the zero address")
        self.pending_owner = new_owner
        logger.info(f"Ownership transfer started: {self.owner} → {new_owner}")

    @nonreentrant
    def accept_ownership(self, sender: str):
        sender = to_checksum_address(sender)
        if sender != self.pending_owner:
            raise UnauthorizedError(f"{sender} is not the pending owner")
        previous, self.owner = self.owner, sender
        self.pending_owner = None
        self.emit(OwnershipTransferredEvent("owner", previous, sender, self.chain.timestamp))
        logger.info(f"Ownership transferred: {previous} → {sender}")

    @nonreentrant
    def set_keeper(self, sender: str, keeper: str):
        self.require_owner(sender)
        keeper = to_checksum_address(keeper)
        previous, self.keeper = self.keeper, keeper
        self.emit(OwnershipTransferredEvent("keeper", previous, keeper, self.chain.timestamp))

    @nonreentrant
    def set_management(self, sender: str, management: str):
        self.require_owner(sender)
        management = to_checksum_address(management)
        previous, self.management = self.management, management
        self.emit(OwnershipTransferredEvent("management", previous, management, self.chain.timestamp))

    def is_proposer_role(self, address: str) -> bool:
        address = to_checksum_address(address)
        return address in (self.keeper, self.management)

    # ══════════════════════════════════════════════════════════════════
    #  SERIALIZATION
    # ══════════════════════════════════════════════════════════════════

    @property
    def events(self) -> List[Any]:
        return list(self._events)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "config": self.config.to_dict(),
            "chainId": self.chain.chain_id,
            "roles": {
                "owner": self.owner,
                "pendingOwner": self.pending_owner,
                "management": self.management,
                "keeper": self.keeper,
            },
            "timeline": self.timeline.to_dict(),
            "proposalCount": self.proposal_count,
            "proposals": {str(pid): p.to_dict() for pid, p in self._proposals.items()},
            "defeated": sorted(self._defeated),
            "votingPower": {k: str(v) for k, v in self._voting_power.items()},
            "nonces": self.verifier.to_dict(),
            "shares": self.shares.to_dict(),
            "strategy": self.strategy.to_dict(),
        }

    def __repr__(self) -> str:
        return f"<TokenizedAllocationMechanism {self.config.symbol} at {self.address} proposals={self.proposal_count}>"
