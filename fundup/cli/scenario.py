"""
Round simulation.

Replays a scenario (deposits, proposals, votes) against an in-process
mechanism on a manual clock, then finalizes, queues and redeems.

Scenario TOML, on top of the [mechanism] / [chain] / [asset] sections:

    [access]                      # optional, switches to the gated strategy
    mode = "allowset"             # none | allowset | blockset
    allowset = ["alice", "bob"]

    [[participants]]
    name = "alice"
    deposit = 100
    relayed = false               # true: signup_with_signature relayed by the owner

    [[proposals]]
    recipient = "grantee-a"
    description = "Open-source tooling"

    [[votes]]
    voter = "alice"
    proposal = 1
    weight = 10

Participant and recipient names map to deterministic throwaway keys.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from ..auth.signers import KeyPairSigner
from ..chain import Chain, ManualClock, system_clock
from ..config.loader import FundUpConfig
from ..crypto.hashing import keccak256_text
from ..crypto.keys import SECP256K1_N, PrivateKey
from ..exceptions import ConfigurationError, FundUpError
from ..logger import get_logger
from ..mechanism.core import TokenizedAllocationMechanism
from ..mechanism.proposals import ProposalState, VoteType
from ..strategies.access_gated import AccessGatedQuadraticVotingStrategy, AccessMode
from ..strategies.quadratic import QuadraticVotingStrategy
from ..tokens.erc20 import ERC20Token, deploy_token

logger = get_logger(__name__)


def signer_for(name: str) -> KeyPairSigner:
    """Deterministic signer for a scenario name."""
    seed = int.from_bytes(keccak256_text(f"fundup:{name}"), "big")
    return KeyPairSigner(PrivateKey.from_int(seed % (SECP256K1_N - 1) + 1))


@dataclass
class ProposalOutcome:
    proposal_id: int
    recipient_name: str
    recipient: str
    votes: int = 0
    funding: int = 0
    shares: int = 0
    redeemed: int = 0
    state: ProposalState = ProposalState.PENDING
    note: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proposalId": self.proposal_id,
            "recipientName": self.recipient_name,
            "recipient": self.recipient,
            "votes": str(self.votes),
            "funding": str(self.funding),
            "shares": str(self.shares),
            "redeemed": str(self.redeemed),
            "state": self.state.name,
            "note": self.note,
        }


@dataclass
class SimulationResult:
    mechanism: TokenizedAllocationMechanism
    asset: ERC20Token
    outcomes: List[ProposalOutcome] = field(default_factory=list)
    rejected: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mechanism": self.mechanism.to_dict(),
            "outcomes": [o.to_dict() for o in self.outcomes],
            "rejected": list(self.rejected),
        }


def _build_strategy(access: Optional[Dict[str, Any]]):
    if not access:
        return QuadraticVotingStrategy()
    try:
        mode = AccessMode[str(access.get("mode", "none")).upper()]
    except KeyError:
        raise ConfigurationError(f"Unknown access mode {access.get('mode')!r}")
    return AccessGatedQuadraticVotingStrategy(
        access_mode=mode,
        allowset=[signer_for(n).address for n in access.get("allowset", [])],
        blockset=[signer_for(n).address for n in access.get("blockset", [])],
    )


def run_scenario(scenario: Dict[str, Any], redeem: bool = True) -> SimulationResult:
    """
    Execute *scenario* (a parsed TOML dict) from deployment to redemption.

    Individual signups and votes that the mechanism rejects are collected
    in ``SimulationResult.rejected``; configuration errors propagate.
    """
    cfg = FundUpConfig.from_dict(scenario)
    cfg.apply_env()

    clock = ManualClock(cfg.chain.start_time or system_clock())
    chain = Chain(cfg.chain.chain_id, clock)

    owner = signer_for("owner")
    asset = deploy_token(chain, owner.address, cfg.asset.name, cfg.asset.symbol, cfg.asset.decimals)

    mech_cfg = replace(cfg.mechanism, asset=asset.address, owner=owner.address)
    mechanism = TokenizedAllocationMechanism(
        mech_cfg, chain, asset, _build_strategy(scenario.get("access")),
    )
    result = SimulationResult(mechanism=mechanism, asset=asset)

    if cfg.asset.matching_pool > 0:
        asset.mint(owner.address, mechanism.address, cfg.asset.matching_pool)

    # ── Signups ──
    for entry in scenario.get("participants", []):
        name = entry["name"]
        user = signer_for(name)
        deposit = int(entry.get("deposit", 0))
        if deposit > 0:
            asset.mint(owner.address, user.address, deposit)
            asset.approve(user.address, mechanism.address, deposit)
        try:
            if entry.get("relayed", False):
                nonce = mechanism.nonces(user.address)
                deadline = chain.timestamp + 3600
                digest = mechanism.signup_digest(user.address, user.address, deposit, nonce, deadline)
                mechanism.signup_with_signature(
                    owner.address, user.address, deposit, deadline, user.sign(digest),
                )
            else:
                mechanism.signup(user.address, deposit)
        except FundUpError as e:
            result.rejected.append(f"signup {name}: {e}")

    # ── Proposals ──
    for entry in scenario.get("proposals", []):
        recipient = signer_for(entry["recipient"]).address
        pid = mechanism.propose(owner.address, recipient, entry.get("description", entry["recipient"]))
        result.outcomes.append(ProposalOutcome(pid, entry["recipient"], recipient))

    # ── Votes ──
    clock.set(mechanism.timeline.voting_start_time)
    for entry in scenario.get("votes", []):
        voter = signer_for(entry["voter"])
        pid = int(entry["proposal"])
        try:
            recipient = mechanism.proposals(pid).recipient
            mechanism.cast_vote(voter.address, pid, VoteType.FOR, int(entry["weight"]), recipient)
        except FundUpError as e:
            result.rejected.append(f"vote {entry['voter']} → #{pid}: {e}")

    # ── Finalize / queue ──
    clock.set(mechanism.timeline.voting_end_time + 1)
    mechanism.finalize_vote_tally(owner.address)

    for outcome in result.outcomes:
        funding = mechanism.get_proposal_funding(outcome.proposal_id)
        outcome.votes = funding.sum_square_roots
        outcome.funding = funding.total
        try:
            outcome.shares = mechanism.queue_proposal(owner.address, outcome.proposal_id)
        except FundUpError as e:
            outcome.note = type(e).__name__

    # ── Redeem ──
    if redeem:
        clock.set(mechanism.timeline.global_redemption_start)
        for outcome in result.outcomes:
            shares = mechanism.max_redeem(outcome.recipient)
            if shares == 0:
                continue
            try:
                outcome.redeemed = mechanism.redeem(
                    outcome.recipient, shares, outcome.recipient, outcome.recipient,
                )
            except FundUpError as e:
                outcome.note = type(e).__name__

    for outcome in result.outcomes:
        outcome.state = mechanism.state(outcome.proposal_id)

    logger.info(
        f"Simulation complete: {len(result.outcomes)} proposals, "
        f"{sum(o.redeemed for o in result.outcomes)} assets redeemed, {len(result.rejected)} rejected actions"
    )
    return result
