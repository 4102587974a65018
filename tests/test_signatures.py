"""
Signed Instruction Test Suite

Coverage:
  - EIP-712 domain / struct hashing and digest recovery
  - signup_with_signature and signup_on_behalf_with_signature
  - cast_vote_with_signature
  - nonce consumption, deadlines, chain id changes
  - EIP-1271 fallback for programmatic identities
"""

import pytest

from fundup.auth.signers import KeyPairSigner, SmartAccount
from fundup.auth.verifier import SignatureVerifier
from fundup.constants import EIP1271_MAGIC_VALUE
from fundup.crypto.keys import SECP256K1_N, PrivateKey
from fundup.crypto.signing import recover_signer, sign_digest, sign_typed_data
from fundup.crypto.typed_data import (
    cast_vote_struct_hash,
    domain_separator,
    signup_struct_hash,
    typed_data_digest,
)
from fundup.exceptions import (
    ExpiredSignatureError,
    InvalidSignatureError,
    RecipientMismatchError,
)
from fundup.mechanism.proposals import VoteType


# ══════════════════════════════════════════════════════════════════════
#  HELPERS
# ══════════════════════════════════════════════════════════════════════

ALICE = KeyPairSigner(PrivateKey.from_int(0xA11CE))
BOB = KeyPairSigner(PrivateKey.from_int(0xB0B))
RELAYER = KeyPairSigner(PrivateKey.from_int(0x5E1A7))
PROJECT = "0x" + "aa" * 20
VAULT = "0x" + "5a" * 20
CONTRACT = "0x" + "c0" * 20


def sign_signup(mech, signer, user, payer, deposit, deadline, nonce=None):
    if nonce is None:
        nonce = mech.nonces(user)
    return signer.sign(mech.signup_digest(user, payer, deposit, nonce, deadline))


def sign_vote(mech, signer, voter, pid, weight, recipient, deadline, nonce=None):
    if nonce is None:
        nonce = mech.nonces(voter)
    return signer.sign(mech.cast_vote_digest(voter, pid, VoteType.FOR, weight, recipient, nonce, deadline))


# ══════════════════════════════════════════════════════════════════════
#  TYPED DATA
# ══════════════════════════════════════════════════════════════════════

class TestTypedData:
    """Hashing and recovery primitives."""

    def test_domain_binds_every_field(self):
        base = domain_separator("Round", "1", 1, CONTRACT)
        assert len(base) == 32
        assert base == domain_separator("Round", "1", 1, CONTRACT)
        assert base != domain_separator("Other", "1", 1, CONTRACT)
        assert base != domain_separator("Round", "2", 1, CONTRACT)
        assert base != domain_separator("Round", "1", 2, CONTRACT)
        assert base != domain_separator("Round", "1", 1, PROJECT)

    def test_struct_hashes_differ_by_nonce(self):
        a = signup_struct_hash(ALICE.address, ALICE.address, 100, 0, 10)
        b = signup_struct_hash(ALICE.address, ALICE.address, 100, 1, 10)
        assert a != b

    def test_vote_hash_binds_recipient(self):
        a = cast_vote_struct_hash(ALICE.address, 1, VoteType.FOR, 5, PROJECT, 0, 10)
        b = cast_vote_struct_hash(ALICE.address, 1, VoteType.FOR, 5, CONTRACT, 0, 10)
        assert a != b

    def test_sign_and_recover(self):
        key = PrivateKey.from_int(0x1234)
        sep = domain_separator("Round", "1", 1, CONTRACT)
        struct = signup_struct_hash(key.address, key.address, 1, 0, 99)
        sig = sign_typed_data(key, sep, struct)
        assert len(sig) == 65
        assert sig[64] in (27, 28)
        assert recover_signer(typed_data_digest(sep, struct), sig) == key.address

    def test_malformed_signature_length(self):
        with pytest.raises(InvalidSignatureError, match="65 bytes"):
            recover_signer(b"\x01" * 32, b"\x00" * 64)

    def test_high_s_rejected(self):
        key = PrivateKey.from_int(0x1234)
        digest = b"\x42" * 32
        sig = sign_digest(key, digest)
        s = int.from_bytes(sig[32:64], "big")
        flipped_v = 27 if sig[64] == 28 else 28
        malleable = sig[:32] + (SECP256K1_N - s).to_bytes(32, "big") + bytes([flipped_v])
        with pytest.raises(InvalidSignatureError):
            recover_signer(digest, malleable)


# ══════════════════════════════════════════════════════════════════════
#  VERIFIER
# ══════════════════════════════════════════════════════════════════════

class TestVerifier:
    """ecrecover first, EIP-1271 only for registered identities."""

    def test_key_pair_signature(self, chain):
        verifier = SignatureVerifier(chain)
        digest = b"\x07" * 32
        verifier.verify(ALICE.address, digest, ALICE.sign(digest))

    def test_wrong_signer(self, chain):
        verifier = SignatureVerifier(chain)
        digest = b"\x07" * 32
        with pytest.raises(InvalidSignatureError):
            verifier.verify(ALICE.address, digest, BOB.sign(digest))

    def test_smart_account_owner_signature(self, chain):
        chain.register_account(SmartAccount(VAULT, [ALICE.address]))
        verifier = SignatureVerifier(chain)
        digest = b"\x07" * 32
        assert verifier.is_valid(VAULT, digest, ALICE.sign(digest))
        assert not verifier.is_valid(VAULT, digest, BOB.sign(digest))

    def test_unregistered_address_never_asked(self, chain):
        verifier = SignatureVerifier(chain)
        digest = b"\x07" * 32
        assert not chain.is_programmatic(VAULT)
        assert not verifier.is_valid(VAULT, digest, ALICE.sign(digest))

    def test_only_magic_value_accepted(self, chain):
        class Sloppy:
            address = CONTRACT

            def is_valid_signature(self, digest, signature):
                return b"\x00\x00\x00\x01"

        chain.register_account(Sloppy())
        assert not SignatureVerifier(chain).is_valid(CONTRACT, b"\x01" * 32, b"\x00" * 65)

    def test_raising_account_rejected(self, chain):
        class Broken:
            address = CONTRACT

            def is_valid_signature(self, digest, signature):
                raise RuntimeError("boom")

        chain.register_account(Broken())
        assert not SignatureVerifier(chain).is_valid(CONTRACT, b"\x01" * 32, b"\x00" * 65)

    def test_smart_account_returns_magic(self):
        account = SmartAccount(VAULT, [ALICE.address])
        digest = b"\x09" * 32
        assert account.is_valid_signature(digest, ALICE.sign(digest)) == EIP1271_MAGIC_VALUE
        assert account.is_valid_signature(digest, b"\x00" * 65) == SmartAccount.INVALID

    def test_smart_account_owner_rotation(self):
        account = SmartAccount(VAULT, [ALICE.address])
        digest = b"\x0a" * 32
        account.add_owner(BOB.address)
        assert account.is_valid_signature(digest, BOB.sign(digest)) == EIP1271_MAGIC_VALUE
        account.remove_owner(ALICE.address)
        assert account.owners == [BOB.address]
        assert account.is_valid_signature(digest, ALICE.sign(digest)) == SmartAccount.INVALID

    def test_signer_from_hex(self):
        signer = KeyPairSigner.from_hex("0x" + (0xA11CE).to_bytes(32, "big").hex())
        assert signer.address == ALICE.address

    def test_deadline(self, chain, clock):
        verifier = SignatureVerifier(chain)
        verifier.check_deadline(clock.now)
        with pytest.raises(ExpiredSignatureError):
            verifier.check_deadline(clock.now - 1)


# ══════════════════════════════════════════════════════════════════════
#  SIGNED SIGNUP
# ══════════════════════════════════════════════════════════════════════

class TestSignedSignup:
    """Relayed registrations."""

    def test_signup_with_signature(self, make_round, fund, clock, token):
        mech = make_round()
        fund(mech, ALICE.address, 100)
        deadline = clock.now + 3600
        sig = sign_signup(mech, ALICE, ALICE.address, ALICE.address, 100, deadline)

        power = mech.signup_with_signature(RELAYER.address, ALICE.address, 100, deadline, sig)
        assert power == 100
        assert mech.nonces(ALICE.address) == 1
        assert token.balance_of(ALICE.address) == 0

    def test_replay_rejected(self, make_round, fund, clock):
        mech = make_round()
        fund(mech, ALICE.address, 200)
        deadline = clock.now + 3600
        sig = sign_signup(mech, ALICE, ALICE.address, ALICE.address, 100, deadline)
        mech.signup_with_signature(RELAYER.address, ALICE.address, 100, deadline, sig)
        with pytest.raises(InvalidSignatureError):
            mech.signup_with_signature(RELAYER.address, ALICE.address, 100, deadline, sig)
        assert mech.voting_power(ALICE.address) == 100

    def test_failed_verification_burns_nonce(self, make_round, fund, clock):
        mech = make_round()
        fund(mech, ALICE.address, 100)
        deadline = clock.now + 3600
        good = sign_signup(mech, ALICE, ALICE.address, ALICE.address, 100, deadline)
        bad = sign_signup(mech, BOB, ALICE.address, ALICE.address, 100, deadline)

        with pytest.raises(InvalidSignatureError):
            mech.signup_with_signature(RELAYER.address, ALICE.address, 100, deadline, bad)
        assert mech.nonces(ALICE.address) == 1
        # the good signature was made for nonce 0
        with pytest.raises(InvalidSignatureError):
            mech.signup_with_signature(RELAYER.address, ALICE.address, 100, deadline, good)

    def test_expired_deadline_keeps_nonce(self, make_round, fund, clock):
        mech = make_round()
        fund(mech, ALICE.address, 100)
        deadline = clock.now + 10
        sig = sign_signup(mech, ALICE, ALICE.address, ALICE.address, 100, deadline)
        clock.advance(11)
        with pytest.raises(ExpiredSignatureError):
            mech.signup_with_signature(RELAYER.address, ALICE.address, 100, deadline, sig)
        assert mech.nonces(ALICE.address) == 0

    def test_on_behalf_payer_pays(self, make_round, fund, clock, token):
        mech = make_round()
        fund(mech, RELAYER.address, 100)
        deadline = clock.now + 3600
        sig = sign_signup(mech, ALICE, ALICE.address, RELAYER.address, 100, deadline)

        mech.signup_on_behalf_with_signature(RELAYER.address, ALICE.address, 100, deadline, sig)
        assert mech.voting_power(ALICE.address) == 100
        assert mech.voting_power(RELAYER.address) == 0
        assert token.balance_of(RELAYER.address) == 0

    def test_on_behalf_payer_is_signed(self, make_round, fund, clock):
        mech = make_round()
        fund(mech, BOB.address, 100)
        deadline = clock.now + 3600
        # ALICE authorized RELAYER as payer, not BOB
        sig = sign_signup(mech, ALICE, ALICE.address, RELAYER.address, 100, deadline)
        with pytest.raises(InvalidSignatureError):
            mech.signup_on_behalf_with_signature(BOB.address, ALICE.address, 100, deadline, sig)

    def test_chain_id_change_invalidates(self, make_round, fund, clock, chain):
        mech = make_round()
        fund(mech, ALICE.address, 100)
        deadline = clock.now + 3600
        before = mech.domain_separator
        sig = sign_signup(mech, ALICE, ALICE.address, ALICE.address, 100, deadline)

        chain.set_chain_id(10)
        assert mech.domain_separator != before
        with pytest.raises(InvalidSignatureError):
            mech.signup_with_signature(RELAYER.address, ALICE.address, 100, deadline, sig)

    def test_smart_account_signup(self, make_round, fund, clock, chain):
        chain.register_account(SmartAccount(VAULT, [ALICE.address]))
        mech = make_round()
        fund(mech, VAULT, 100)
        deadline = clock.now + 3600
        sig = sign_signup(mech, ALICE, VAULT, VAULT, 100, deadline)

        mech.signup_with_signature(RELAYER.address, VAULT, 100, deadline, sig)
        assert mech.voting_power(VAULT) == 100

    def test_smart_account_rejects_stranger(self, make_round, fund, clock, chain):
        chain.register_account(SmartAccount(VAULT, [ALICE.address]))
        mech = make_round()
        fund(mech, VAULT, 100)
        deadline = clock.now + 3600
        sig = sign_signup(mech, BOB, VAULT, VAULT, 100, deadline)
        with pytest.raises(InvalidSignatureError):
            mech.signup_with_signature(RELAYER.address, VAULT, 100, deadline, sig)


# ══════════════════════════════════════════════════════════════════════
#  SIGNED VOTES
# ══════════════════════════════════════════════════════════════════════

class TestSignedVote:
    """Relayed votes."""

    def _setup(self, make_round, fund, owner, clock):
        mech = make_round()
        fund(mech, ALICE.address, 100)
        mech.signup(ALICE.address, 100)
        pid = mech.propose(owner.address, PROJECT, "Signed votes")
        clock.set(mech.timeline.voting_start_time)
        return mech, pid

    def test_cast_vote_with_signature(self, make_round, fund, owner, clock):
        mech, pid = self._setup(make_round, fund, owner, clock)
        deadline = clock.now + 3600
        sig = sign_vote(mech, ALICE, ALICE.address, pid, 5, PROJECT, deadline)

        remaining = mech.cast_vote_with_signature(
            RELAYER.address, ALICE.address, pid, VoteType.FOR, 5, PROJECT, deadline, sig,
        )
        assert remaining == 75
        assert mech.has_voted(pid, ALICE.address)
        assert not mech.has_voted(pid, RELAYER.address)

    def test_tampered_weight_rejected(self, make_round, fund, owner, clock):
        mech, pid = self._setup(make_round, fund, owner, clock)
        deadline = clock.now + 3600
        sig = sign_vote(mech, ALICE, ALICE.address, pid, 5, PROJECT, deadline)
        with pytest.raises(InvalidSignatureError):
            mech.cast_vote_with_signature(
                RELAYER.address, ALICE.address, pid, VoteType.FOR, 6, PROJECT, deadline, sig,
            )

    def test_signed_recipient_checked(self, make_round, fund, owner, clock):
        mech, pid = self._setup(make_round, fund, owner, clock)
        deadline = clock.now + 3600
        sig = sign_vote(mech, ALICE, ALICE.address, pid, 5, CONTRACT, deadline)
        with pytest.raises(RecipientMismatchError):
            mech.cast_vote_with_signature(
                RELAYER.address, ALICE.address, pid, VoteType.FOR, 5, CONTRACT, deadline, sig,
            )

    def test_nonce_shared_with_signup(self, make_round, fund, owner, clock):
        mech, pid = self._setup(make_round, fund, owner, clock)
        deadline = clock.now + 3600
        fund(mech, ALICE.address, 10)
        mech.signup_with_signature(
            RELAYER.address, ALICE.address, 10, deadline,
            sign_signup(mech, ALICE, ALICE.address, ALICE.address, 10, deadline),
        )
        # a vote signed for nonce 0 is stale now
        stale = sign_vote(mech, ALICE, ALICE.address, pid, 5, PROJECT, deadline, nonce=0)
        with pytest.raises(InvalidSignatureError):
            mech.cast_vote_with_signature(
                RELAYER.address, ALICE.address, pid, VoteType.FOR, 5, PROJECT, deadline, stale,
            )
