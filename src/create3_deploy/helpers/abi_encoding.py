"""
Constructor argument encoding.

Shared by the deployment executor and the verification coordinator so the
encoded arguments sent on-chain and the ones handed to the verifier are the
same bytes.
"""
from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from eth_abi import encode
from web3 import Web3


def encode_constructor_args(types: Sequence[str], values: Sequence[Any]) -> bytes:
    """ABI-encode constructor arguments; an empty argument list encodes to b''.

    Raises:
        ValueError: If the number of types and values differ.
    """
    if len(types) != len(values):
        raise ValueError(f"Got {len(values)} constructor args for {len(types)} types")
    if not values:
        return b""
    return encode(list(types), [_normalize(t, v) for t, v in zip(types, values)])


def _normalize(abi_type: str, value: Any) -> Any:
    """Coerce JSON-friendly inputs into what eth_abi expects."""
    if abi_type == "address" and isinstance(value, str):
        return Web3.to_checksum_address(value)
    if abi_type.startswith("bytes") and isinstance(value, str):
        return bytes.fromhex(value[2:] if value.startswith("0x") else value)
    if abi_type.startswith(("uint", "int")) and isinstance(value, str):
        return int(value, 0)
    return value


def build_init_code(bytecode: bytes, encoded_args: bytes) -> bytes:
    """Creation bytecode followed by the encoded constructor arguments."""
    return bytes(bytecode) + bytes(encoded_args)
