"""
Allocation Strategy Test Suite

Coverage:
  - QuadraticVotingStrategy: vote cost, FOR-only, quorum, alpha governance
  - AccessGatedQuadraticVotingStrategy: modes, set management, mode lock
  - custom distribution and withdraw limit hooks
"""

import pytest

from fundup.auth.signers import KeyPairSigner
from fundup.crypto.keys import PrivateKey
from fundup.exceptions import (
    AccessModeLockedError,
    InsufficientVotingPowerError,
    QuadraticCostError,
    SignupNotAllowedError,
    TallyAlreadyFinalizedError,
    UnauthorizedError,
    UnsupportedVoteTypeError,
)
from fundup.mechanism.proposals import ProposalState, VoteType
from fundup.strategies.access_gated import AccessGatedQuadraticVotingStrategy, AccessMode
from fundup.strategies.quadratic import QuadraticVotingStrategy


# ══════════════════════════════════════════════════════════════════════
#  HELPERS
# ══════════════════════════════════════════════════════════════════════

ALICE = KeyPairSigner(PrivateKey.from_int(0xA11CE)).address
BOB = KeyPairSigner(PrivateKey.from_int(0xB0B)).address
CAROL = KeyPairSigner(PrivateKey.from_int(0xCA201)).address
PROJECT_A = "0x" + "aa" * 20
PROJECT_B = "0x" + "bb" * 20


def voting_round(make_round, fund, clock, owner, deposits, strategy=None, **overrides):
    """Round with *deposits* signed up and one proposal per project, voting open."""
    mech = make_round(strategy=strategy, **overrides)
    for user, amount in deposits.items():
        fund(mech, user, amount)
        mech.signup(user, amount)
    a = mech.propose(owner.address, PROJECT_A, "Project A")
    b = mech.propose(owner.address, PROJECT_B, "Project B")
    clock.set(mech.timeline.voting_start_time)
    return mech, a, b


# ══════════════════════════════════════════════════════════════════════
#  QUADRATIC VOTING
# ══════════════════════════════════════════════════════════════════════

class TestQuadraticVoting:
    """Vote accounting through the quadratic tally."""

    def test_weight_costs_its_square(self, make_round, fund, clock, owner):
        mech, a, _ = voting_round(make_round, fund, clock, owner, {ALICE: 50})
        assert mech.cast_vote(ALICE, a, VoteType.FOR, 7, PROJECT_A) == 1

    def test_insufficient_power(self, make_round, fund, clock, owner):
        mech, a, _ = voting_round(make_round, fund, clock, owner, {ALICE: 48})
        with pytest.raises(InsufficientVotingPowerError, match="costs 49"):
            mech.cast_vote(ALICE, a, VoteType.FOR, 7, PROJECT_A)
        assert mech.voting_power(ALICE) == 48

    @pytest.mark.parametrize("choice", [VoteType.AGAINST, VoteType.ABSTAIN])
    def test_only_for_votes(self, make_round, fund, clock, owner, choice):
        mech, a, _ = voting_round(make_round, fund, clock, owner, {ALICE: 100})
        with pytest.raises(UnsupportedVoteTypeError):
            mech.cast_vote(ALICE, a, choice, 5, PROJECT_A)
        assert not mech.has_voted(a, ALICE)

    def test_zero_weight(self, make_round, fund, clock, owner):
        mech, a, _ = voting_round(make_round, fund, clock, owner, {ALICE: 100})
        with pytest.raises(QuadraticCostError):
            mech.cast_vote(ALICE, a, VoteType.FOR, 0, PROJECT_A)

    def test_quorum_boundary(self, make_round, fund, clock, owner):
        mech, a, b = voting_round(make_round, fund, clock, owner, {ALICE: 100, BOB: 100})
        mech.cast_vote(ALICE, a, VoteType.FOR, 10, PROJECT_A)  # exactly 100
        mech.cast_vote(BOB, b, VoteType.FOR, 9, PROJECT_B)     # 81
        clock.set(mech.timeline.voting_end_time + 1)
        mech.finalize_vote_tally(owner.address)
        assert mech.state(a) == ProposalState.SUCCEEDED
        assert mech.state(b) == ProposalState.DEFEATED

    def test_matching_shifts_funding(self, make_round, fund, clock, owner):
        # three small donors beat one large donor on the quadratic term
        deposits = {ALICE: 25, BOB: 25, CAROL: 25, owner.address: 100}
        mech, a, b = voting_round(make_round, fund, clock, owner, deposits)
        for voter in (ALICE, BOB, CAROL):
            mech.cast_vote(voter, a, VoteType.FOR, 5, PROJECT_A)
        mech.cast_vote(owner.address, b, VoteType.FOR, 10, PROJECT_B)
        tally = mech.strategy.tally
        assert tally.project_funding(a) == 225
        assert tally.project_funding(b) == 100


class TestAlphaGovernance:
    """Owner-only alpha updates."""

    def test_set_alpha(self, make_round, fund, clock, owner):
        mech, a, _ = voting_round(make_round, fund, clock, owner, {ALICE: 100, BOB: 100})
        mech.cast_vote(ALICE, a, VoteType.FOR, 10, PROJECT_A)
        mech.cast_vote(BOB, a, VoteType.FOR, 10, PROJECT_A)
        mech.strategy.set_alpha(owner.address, 1, 2)
        # 400/2 + 200/2
        assert mech.get_proposal_funding(a).total == 300
        assert mech.events[-1].to_dict()["event"] == "AlphaUpdated"

    def test_set_alpha_owner_only(self, make_round):
        mech = make_round()
        with pytest.raises(UnauthorizedError):
            mech.strategy.set_alpha(ALICE, 1, 2)

    def test_set_alpha_after_finalize(self, make_round, clock, owner):
        mech = make_round()
        clock.set(mech.timeline.voting_end_time + 1)
        mech.finalize_vote_tally(owner.address)
        with pytest.raises(TallyAlreadyFinalizedError):
            mech.strategy.set_alpha(owner.address, 1, 2)

    def test_configured_alpha(self, make_round, fund, clock, owner):
        mech, a, _ = voting_round(
            make_round, fund, clock, owner, {ALICE: 100},
            alpha_numerator=0, alpha_denominator=1,
        )
        mech.cast_vote(ALICE, a, VoteType.FOR, 10, PROJECT_A)
        assert mech.get_proposal_funding(a).total == 100
        assert mech.get_proposal_funding(a).quadratic_funding == 0

    def test_optimal_alpha(self, make_round, fund, clock, owner):
        mech, a, _ = voting_round(make_round, fund, clock, owner, {ALICE: 100, BOB: 100})
        mech.cast_vote(ALICE, a, VoteType.FOR, 10, PROJECT_A)
        mech.cast_vote(BOB, a, VoteType.FOR, 10, PROJECT_A)
        # Q = 400, L = 200; 100 matching + 200 deposits funds half the gap
        assert mech.strategy.calculate_optimal_alpha(100, 200) == (100, 200)
        assert mech.strategy.calculate_optimal_alpha(200, 200) == (1, 1)


class TestCustomHooks:
    """Optional hooks overridden by a strategy."""

    def test_custom_distribution(self, make_round, fund, clock, owner, token):
        class DirectPayout(QuadraticVotingStrategy):
            def request_custom_distribution(self, recipient, shares):
                assets = shares * self.mechanism.total_assets // self.tally.total_funding
                self.mechanism.asset.transfer(self.mechanism.address, recipient, assets)
                return True, assets

        mech, a, _ = voting_round(
            make_round, fund, clock, owner, {ALICE: 100, BOB: 100}, strategy=DirectPayout(),
        )
        mech.cast_vote(ALICE, a, VoteType.FOR, 10, PROJECT_A)
        mech.cast_vote(BOB, a, VoteType.FOR, 10, PROJECT_A)
        clock.set(mech.timeline.voting_end_time + 1)
        mech.finalize_vote_tally(owner.address)

        assert mech.queue_proposal(owner.address, a) == 400
        assert token.balance_of(PROJECT_A) == 200
        assert mech.balance_of(PROJECT_A) == 0
        assert mech.total_supply == 0
        assert mech.total_assets == 0
        assert mech.events[-1].custom_distribution is True

    def test_withdraw_limit_override(self, make_round, fund, clock, owner):
        class HalfLimit(QuadraticVotingStrategy):
            def available_withdraw_limit(self, owner):
                if self.mechanism.timeline.in_redemption_window(self.mechanism.chain.timestamp):
                    return self.mechanism.total_assets // 2
                return 0

        mech, a, _ = voting_round(
            make_round, fund, clock, owner, {ALICE: 100, BOB: 100}, strategy=HalfLimit(),
        )
        mech.cast_vote(ALICE, a, VoteType.FOR, 10, PROJECT_A)
        mech.cast_vote(BOB, a, VoteType.FOR, 10, PROJECT_A)
        clock.set(mech.timeline.voting_end_time + 1)
        mech.finalize_vote_tally(owner.address)
        mech.queue_proposal(owner.address, a)
        clock.set(mech.timeline.global_redemption_start)
        # limit 100 assets = 200 shares
        assert mech.max_redeem(PROJECT_A) == 200


# ══════════════════════════════════════════════════════════════════════
#  ACCESS GATE
# ══════════════════════════════════════════════════════════════════════

class TestAccessGate:
    """Signup gating by allow / block sets."""

    def test_none_mode_open(self, make_round, fund):
        mech = make_round(strategy=AccessGatedQuadraticVotingStrategy())
        fund(mech, ALICE, 10)
        assert mech.signup(ALICE, 10) == 10

    def test_allowset_mode(self, make_round, fund):
        strategy = AccessGatedQuadraticVotingStrategy(AccessMode.ALLOWSET, allowset=[ALICE])
        mech = make_round(strategy=strategy)
        fund(mech, ALICE, 10)
        fund(mech, BOB, 10)
        mech.signup(ALICE, 10)
        with pytest.raises(SignupNotAllowedError):
            mech.signup(BOB, 10)

    def test_blockset_mode(self, make_round, fund):
        strategy = AccessGatedQuadraticVotingStrategy(AccessMode.BLOCKSET, blockset=[BOB])
        mech = make_round(strategy=strategy)
        fund(mech, ALICE, 10)
        fund(mech, BOB, 10)
        mech.signup(ALICE, 10)
        with pytest.raises(SignupNotAllowedError):
            mech.signup(BOB, 10)

    def test_mode_switch_before_voting(self, make_round, fund, owner):
        strategy = AccessGatedQuadraticVotingStrategy()
        mech = make_round(strategy=strategy)
        strategy.set_access_mode(owner.address, AccessMode.ALLOWSET)
        fund(mech, ALICE, 10)
        with pytest.raises(SignupNotAllowedError):
            mech.signup(ALICE, 10)
        strategy.add_to_allowset(owner.address, [ALICE])
        mech.signup(ALICE, 10)
        assert mech.events[0].to_dict()["event"] == "AccessModeSet"

    def test_mode_locked_during_voting(self, make_round, owner, clock):
        strategy = AccessGatedQuadraticVotingStrategy()
        mech = make_round(strategy=strategy)
        clock.set(mech.timeline.voting_start_time)
        with pytest.raises(AccessModeLockedError):
            strategy.set_access_mode(owner.address, AccessMode.BLOCKSET)
        clock.set(mech.timeline.voting_end_time + 1)
        strategy.set_access_mode(owner.address, AccessMode.BLOCKSET)
        assert strategy.access_mode == AccessMode.BLOCKSET

    def test_set_edits_allowed_during_voting(self, make_round, fund, owner, clock):
        strategy = AccessGatedQuadraticVotingStrategy(AccessMode.ALLOWSET)
        mech = make_round(strategy=strategy)
        clock.set(mech.timeline.voting_start_time)
        strategy.add_to_allowset(owner.address, [ALICE])
        fund(mech, ALICE, 10)
        mech.signup(ALICE, 10)
        strategy.remove_from_allowset(owner.address, [ALICE])
        # power already granted is kept
        assert mech.voting_power(ALICE) == 10
        assert strategy.allowset == []

    def test_admin_owner_only(self, make_round):
        strategy = AccessGatedQuadraticVotingStrategy()
        make_round(strategy=strategy)
        with pytest.raises(UnauthorizedError):
            strategy.set_access_mode(ALICE, AccessMode.ALLOWSET)
        with pytest.raises(UnauthorizedError):
            strategy.add_to_allowset(ALICE, [ALICE])
        with pytest.raises(UnauthorizedError):
            strategy.add_to_blockset(ALICE, [BOB])
        with pytest.raises(UnauthorizedError):
            strategy.remove_from_blockset(ALICE, [BOB])

    def test_gate_checks_signed_user(self, make_round, fund, clock):
        relayer = KeyPairSigner(PrivateKey.from_int(0x5E1A7))
        alice = KeyPairSigner(PrivateKey.from_int(0xA11CE))
        strategy = AccessGatedQuadraticVotingStrategy(AccessMode.ALLOWSET, allowset=[relayer.address])
        mech = make_round(strategy=strategy)
        fund(mech, relayer.address, 10)
        deadline = clock.now + 60
        digest = mech.signup_digest(alice.address, relayer.address, 10, 0, deadline)
        with pytest.raises(SignupNotAllowedError):
            mech.signup_on_behalf_with_signature(
                relayer.address, alice.address, 10, deadline, alice.sign(digest),
            )

    def test_to_dict(self, make_round, owner):
        strategy = AccessGatedQuadraticVotingStrategy(AccessMode.BLOCKSET, blockset=[BOB])
        make_round(strategy=strategy)
        d = strategy.to_dict()
        assert d["type"] == "AccessGatedQuadraticVotingStrategy"
        assert d["accessMode"] == "BLOCKSET"
        assert d["blockset"] == [BOB]
        assert "tally" in d
