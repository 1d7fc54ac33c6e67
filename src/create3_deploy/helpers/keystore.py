#!/usr/bin/env python3
from __future__ import annotations

from typing import Any

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import ValidationError

from ..exceptions import ConfigError

DEFAULT_HD_PATH = "m/44'/60'/0'/0/{index}"


def _normalize_privkey_hex(pk: str) -> str:
    if not isinstance(pk, str):
        raise ValueError("private key must be a hex string")
    pk = pk.strip()
    if pk.startswith("0x"):
        pk = pk[2:]
    if len(pk) != 64:
        raise ValueError("private key hex must be 64 characters (32 bytes)")
    int(pk, 16)  # validate hex
    return "0x" + pk


def account_from_private_key(private_key_hex: str) -> LocalAccount:
    return Account.from_key(_normalize_privkey_hex(private_key_hex))


def account_from_mnemonic(mnemonic: str, index: int = 0) -> LocalAccount:
    """Derive the account at ``m/44'/60'/0'/0/<index>`` from a BIP-39 mnemonic."""
    # Enable HD wallet features (eth-account marks as unaudited)
    Account.enable_unaudited_hdwallet_features()
    return Account.from_mnemonic(mnemonic, account_path=DEFAULT_HD_PATH.format(index=int(index)))


def load_signer(wallet_name: str, wallet: dict[str, Any]) -> LocalAccount:
    """Build the signer for a configured wallet.

    Supported wallet types:
        mnemonic:    config.words, config.index (default 0)
        private-key: config.key

    Raises:
        ConfigError: If the wallet type is unknown or its secret is missing/invalid.
    """
    wallet_type = wallet.get("type")
    cfg = wallet.get("config") or {}

    if wallet_type == "mnemonic":
        words = (cfg.get("words") or "").strip()
        if not words:
            raise ConfigError(f"Mnemonic not configured for wallet {wallet_name}")
        try:
            return account_from_mnemonic(words, cfg.get("index", 0))
        except (ValueError, ValidationError) as e:
            raise ConfigError(f"Invalid mnemonic for wallet {wallet_name}: {e}") from e

    if wallet_type == "private-key":
        key = cfg.get("key")
        if not key:
            raise ConfigError(f"Private key not configured for wallet {wallet_name}")
        try:
            return account_from_private_key(key)
        except ValueError as e:
            raise ConfigError(f"Invalid private key for wallet {wallet_name}: {e}") from e

    raise ConfigError(f"Unsupported wallet type: {wallet_type}")
