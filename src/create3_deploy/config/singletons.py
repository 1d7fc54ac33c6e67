"""
Singleton infrastructure records.

A singleton is deployed by broadcasting a pre-signed, chain-agnostic
(pre-EIP-155) contract-creation transaction from a fixed sender at nonce 0,
so its address is identical on every chain. Records are built from the raw
transaction itself: the sender is recovered from the signature, the address
is derived with CREATE, and the gas budget is read from the transaction.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import rlp
from rlp.exceptions import DecodingError
from eth_account import Account
from eth_utils import to_checksum_address

from ..exceptions import SingletonConfigError
from ..helpers.addresses import compute_create_address
from .deploy_config import DeployConfig

FACTORY = "factory"
MULTICALL = "multicall"

# Published addresses; a configured transaction must reproduce these.
KNOWN_SINGLETONS: dict[str, dict[str, Any]] = {
    MULTICALL: {
        "label": "Multicall3",
        "address": "0xcA11bde05977b3631167028862bE2a173976CA11",
        "sender": "0x05f32B3cC3888453ff71B01135B34FF8e41263F2",
    },
    FACTORY: {
        "label": "CREATE3 Factory",
        "address": None,
        "sender": None,
    },
}


@dataclass(frozen=True)
class SingletonInfrastructure:
    """One fixed-address singleton and the transaction that deploys it."""

    name: str
    address: str
    sender: str
    raw_transaction: bytes
    gas_limit: int
    gas_price: int
    label: str = ""

    @property
    def required_balance(self) -> int:
        return self.gas_limit * self.gas_price

    @classmethod
    def from_raw_transaction(
        cls,
        name: str,
        raw_transaction: str | bytes,
        expected_address: str | None = None,
        expected_sender: str | None = None,
        label: str = "",
    ) -> "SingletonInfrastructure":
        """Decode a pre-signed legacy creation transaction into a record.

        Raises:
            SingletonConfigError: If the transaction is not a nonce-0 legacy
                contract creation or does not match the expected address/sender.
        """
        if isinstance(raw_transaction, str):
            s = raw_transaction[2:] if raw_transaction.startswith("0x") else raw_transaction
            try:
                raw = bytes.fromhex(s)
            except ValueError:
                raise SingletonConfigError(f"{name}: raw transaction is not valid hex")
        else:
            raw = bytes(raw_transaction)

        # Typed (EIP-2718) transactions start with a byte <= 0x7f
        if not raw or raw[0] <= 0x7F:
            raise SingletonConfigError(f"{name}: expected a legacy pre-signed transaction")

        try:
            fields = rlp.decode(raw)
        except DecodingError as e:
            raise SingletonConfigError(f"{name}: cannot decode raw transaction: {e}") from e
        if len(fields) != 9:
            raise SingletonConfigError(f"{name}: unexpected transaction shape ({len(fields)} fields)")

        nonce, gas_price, gas_limit, to = (
            int.from_bytes(fields[0], "big"),
            int.from_bytes(fields[1], "big"),
            int.from_bytes(fields[2], "big"),
            fields[3],
        )
        if to:
            raise SingletonConfigError(f"{name}: transaction is not a contract creation")
        if nonce != 0:
            raise SingletonConfigError(f"{name}: transaction nonce is {nonce}, expected 0")

        sender = to_checksum_address(Account.recover_transaction(raw))
        address = compute_create_address(sender, nonce)

        if expected_sender and sender != to_checksum_address(expected_sender):
            raise SingletonConfigError(
                f"{name}: transaction signed by {sender}, expected {expected_sender}"
            )
        if expected_address and address != to_checksum_address(expected_address):
            raise SingletonConfigError(
                f"{name}: transaction deploys to {address}, expected {expected_address}"
            )

        return cls(
            name=name,
            address=address,
            sender=sender,
            raw_transaction=raw,
            gas_limit=gas_limit,
            gas_price=gas_price,
            label=label or name,
        )


def get_singleton(config: DeployConfig, name: str) -> SingletonInfrastructure:
    """Build the singleton record configured under ``singletons.<name>``.

    Raises:
        SingletonConfigError: If the singleton is unknown or not configured.
    """
    known = KNOWN_SINGLETONS.get(name)
    if known is None:
        raise SingletonConfigError(f"Unknown singleton: {name}. Known: {list(KNOWN_SINGLETONS)}")

    raw = config.singleton_raw_transaction(name)
    if raw is None:
        raise SingletonConfigError(
            f"No pre-signed transaction configured for singleton '{name}' "
            f"(set singletons.{name}.rawTransaction or singletons.{name}.file)"
        )

    return SingletonInfrastructure.from_raw_transaction(
        name,
        raw,
        expected_address=known["address"],
        expected_sender=known["sender"],
        label=known["label"],
    )
