"""
EIP-712 Typed Data

Canonical serialization of the two signed instructions the mechanism
accepts, Signup and CastVote, bound to a domain made of the mechanism name,
version, chain id and mechanism address.
"""

from eth_abi import encode

from ..constants import CAST_VOTE_TYPE, EIP712_DOMAIN_TYPE, SIGNUP_TYPE
from .hashing import keccak256, keccak256_text

EIP712_DOMAIN_TYPEHASH = keccak256_text(EIP712_DOMAIN_TYPE)
SIGNUP_TYPEHASH = keccak256_text(SIGNUP_TYPE)
CAST_VOTE_TYPEHASH = keccak256_text(CAST_VOTE_TYPE)


def domain_separator(name: str, version: str, chain_id: int, verifying_contract: str) -> bytes:
    """hashStruct(EIP712Domain) for the given mechanism identity."""
    return keccak256(encode(
        ["bytes32", "bytes32", "bytes32", "uint256", "address"],
        [
            EIP712_DOMAIN_TYPEHASH,
            keccak256_text(name),
            keccak256_text(version),
            chain_id,
            verifying_contract,
        ],
    ))


def signup_struct_hash(user: str, payer: str, deposit: int, nonce: int, deadline: int) -> bytes:
    return keccak256(encode(
        ["bytes32", "address", "address", "uint256", "uint256", "uint256"],
        [SIGNUP_TYPEHASH, user, payer, deposit, nonce, deadline],
    ))


def cast_vote_struct_hash(
    voter: str,
    proposal_id: int,
    choice: int,
    weight: int,
    expected_recipient: str,
    nonce: int,
    deadline: int,
) -> bytes:
    return keccak256(encode(
        ["bytes32", "address", "uint256", "uint8", "uint256", "address", "uint256", "uint256"],
        [
            CAST_VOTE_TYPEHASH,
            voter,
            proposal_id,
            int(choice),
            weight,
            expected_recipient,
            nonce,
            deadline,
        ],
    ))


def typed_data_digest(domain_sep: bytes, struct_hash: bytes) -> bytes:
    """
    Final signing digest.

    EIP-712: keccak256(0x19 0x01 || domainSeparator || structHash)
    """
    return keccak256(b'\x19\x01' + domain_sep + struct_hash)
