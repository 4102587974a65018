"""
Shared fixtures: a manual-clock chain, an owner signer, a backing token and
a factory for quadratic-funding rounds on top of them.
"""

import os
import sys
from dataclasses import replace

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from fundup.auth.signers import KeyPairSigner
from fundup.chain import Chain, ManualClock
from fundup.config.loader import MechanismConfig
from fundup.constants import DAY
from fundup.crypto.keys import PrivateKey
from fundup.mechanism.core import TokenizedAllocationMechanism
from fundup.strategies.quadratic import QuadraticVotingStrategy
from fundup.tokens.erc20 import deploy_token

START = 1_700_000_000


@pytest.fixture
def clock():
    return ManualClock(START)


@pytest.fixture
def chain(clock):
    return Chain(31337, clock)


@pytest.fixture
def owner():
    return KeyPairSigner(PrivateKey.from_int(0x0111))


@pytest.fixture
def token(chain, owner):
    return deploy_token(chain, owner.address, "Test USD", "TUSD", 18)


@pytest.fixture
def make_round(chain, owner, token):
    """Factory: quadratic round with quorum 100 and day-granular windows."""
    def _make(strategy=None, **overrides):
        cfg = MechanismConfig(
            asset=token.address,
            name="Test Round",
            symbol="TR",
            voting_delay=DAY,
            voting_period=7 * DAY,
            timelock_delay=DAY,
            grace_period=7 * DAY,
            quorum_shares=100,
            owner=owner.address,
        )
        cfg = replace(cfg, **overrides)
        return TokenizedAllocationMechanism(cfg, chain, token, strategy or QuadraticVotingStrategy())
    return _make


@pytest.fixture
def fund(token, owner):
    """Mint *amount* to *user* and approve the mechanism to pull it."""
    def _fund(mechanism, user, amount):
        token.mint(owner.address, user, amount)
        token.approve(user, mechanism.address, amount)
    return _fund
