"""
Offline contract address derivation.

Public API
----------
compute_create_address(sender, nonce)
    Address of a contract created by ``sender`` at ``nonce`` (CREATE).
compute_create2_address(deployer, salt, init_code)
    Address of a contract created with CREATE2.
compute_create3_address(factory, deployer, salt)
    Address the CREATE3 factory produces for (deployer, salt).
to_salt(value)
    Normalise a hex string or bytes into a 32-byte salt.
"""
from __future__ import annotations

import rlp
from eth_utils import keccak, to_canonical_address, to_checksum_address

__all__ = [
    "PROXY_BYTECODE",
    "compute_create_address",
    "compute_create2_address",
    "compute_create3_address",
    "to_salt",
]

# solmate CREATE3 proxy creation code: deploys whatever calldata it receives
PROXY_BYTECODE = bytes.fromhex("67363d3d37363d34f03d5260086018f3")


def to_salt(value: str | bytes) -> bytes:
    """Return ``value`` as exactly 32 bytes; raises ValueError otherwise."""
    if isinstance(value, str):
        s = value[2:] if value.startswith("0x") else value
        try:
            value = bytes.fromhex(s)
        except ValueError:
            raise ValueError(f"Salt is not valid hex: {value}")
    if len(value) != 32:
        raise ValueError(f"Salt must be 32 bytes, got {len(value)}")
    return bytes(value)


def compute_create_address(sender: str, nonce: int) -> str:
    encoded = rlp.encode([to_canonical_address(sender), nonce])
    return to_checksum_address(keccak(encoded)[12:])


def compute_create2_address(deployer: str, salt: str | bytes, init_code: bytes) -> str:
    preimage = b"\xff" + to_canonical_address(deployer) + to_salt(salt) + keccak(init_code)
    return to_checksum_address(keccak(preimage)[12:])


def compute_create3_address(factory: str, deployer: str, salt: str | bytes) -> str:
    """Mirror of the factory's ``getDeployed`` view.

    The factory namespaces the salt by deployer, CREATE2-deploys a proxy
    with it, and the proxy CREATEs the contract at nonce 1.
    """
    namespaced = keccak(to_canonical_address(deployer) + to_salt(salt))
    proxy = compute_create2_address(factory, namespaced, PROXY_BYTECODE)
    return compute_create_address(proxy, 1)
