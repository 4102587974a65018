"""
Contract Address Generation

Each mechanism instance gets an identity derived the way the CREATE opcode
derives one, so the address that binds signed messages (the
``verifyingContract`` of the EIP-712 domain) is reproducible from the
deployer and its deployment counter.
"""

from eth_utils import keccak, to_canonical_address, to_checksum_address
import rlp


def generate_contract_address(deployer: str, nonce: int) -> str:
    """
    Generate a contract address using CREATE opcode logic.

    Address = keccak256(rlp([deployer, nonce]))[-20:]

    Args:
        deployer: Deploying account (0x address)
        nonce: Deployer's deployment counter

    Returns:
        Contract address (checksum format)
    """
    rlp_encoded = rlp.encode([to_canonical_address(deployer), nonce])
    return to_checksum_address(keccak(rlp_encoded)[-20:])
