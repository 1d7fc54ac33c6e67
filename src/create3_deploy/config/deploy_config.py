"""Deploy configuration loaded from a JSON file.

The config mirrors a gemforge-style layout::

    targets  -> {network, wallet, create3Salt?, chain?}
    networks -> {rpcUrl, contractVerification?}
    wallets  -> {type: mnemonic | private-key, config}
    paths    -> {artifacts, sources, ledger}
    singletons -> {factory | multicall: {rawTransaction | file}}

String values may reference environment variables as ``${NAME}``; they are
expanded once, at load time. The loaded object is handed to the connection
provider explicitly and never re-read.
"""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from ..exceptions import ConfigError

DEFAULT_CONFIG_FILE = "create3.config.json"
DEFAULT_ARTIFACTS_DIR = "out"
DEFAULT_SOURCE_PREFIX = "src"
DEFAULT_LEDGER_FILE = "deployments.json"

_ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def _expand_env(value: Any) -> Any:
    """Recursively replace ``${VAR}`` with the environment value (or '')."""
    if isinstance(value, str):
        return _ENV_PATTERN.sub(lambda m: os.getenv(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _expand_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand_env(v) for v in value]
    return value


@dataclass(frozen=True)
class VerificationDescriptor:
    """Block explorer verification settings for one network."""

    api_url: str
    api_key: str
    chain_id: int | None = None
    verifier: str | None = None


@dataclass
class DeployConfig:
    """Parsed deploy configuration."""

    targets: dict[str, dict[str, Any]] = field(default_factory=dict)
    networks: dict[str, dict[str, Any]] = field(default_factory=dict)
    wallets: dict[str, dict[str, Any]] = field(default_factory=dict)
    paths: dict[str, str] = field(default_factory=dict)
    singletons: dict[str, dict[str, Any]] = field(default_factory=dict)
    base_dir: Path = field(default_factory=Path.cwd)

    @classmethod
    def from_dict(cls, data: dict[str, Any], base_dir: Path | None = None) -> "DeployConfig":
        data = _expand_env(data)
        return cls(
            targets=data.get("targets", {}),
            networks=data.get("networks", {}),
            wallets=data.get("wallets", {}),
            paths=data.get("paths", {}),
            singletons=data.get("singletons", {}),
            base_dir=base_dir or Path.cwd(),
        )

    # ------------------------------------------------------------------ #
    # Lookups                                                            #
    # ------------------------------------------------------------------ #

    def target(self, name: str) -> dict[str, Any]:
        target = self.targets.get(name)
        if target is None:
            raise ConfigError(f"Target {name} not found in deploy config")
        return target

    def network_for(self, target: str) -> tuple[str, dict[str, Any]]:
        network_name = self.target(target).get("network")
        network = self.networks.get(network_name) if network_name else None
        if network is None:
            raise ConfigError(f"Network {network_name} not found in deploy config")
        return network_name, network

    def wallet_for(self, target: str) -> tuple[str, dict[str, Any]]:
        wallet_name = self.target(target).get("wallet")
        wallet = self.wallets.get(wallet_name) if wallet_name else None
        if wallet is None:
            raise ConfigError(f"Wallet {wallet_name} not found in deploy config")
        return wallet_name, wallet

    def rpc_url_for(self, target: str) -> str:
        network_name, network = self.network_for(target)
        rpc_url = network.get("rpcUrl")
        if not rpc_url:
            raise ConfigError(f"Network {network_name} has no rpcUrl")
        return rpc_url

    def verification_for(self, target: str) -> VerificationDescriptor | None:
        """Return the foundry verification settings for a target's network, if any."""
        _, network = self.network_for(target)
        foundry = (network.get("contractVerification") or {}).get("foundry")
        if not foundry:
            return None
        chain_id = foundry.get("chainId")
        return VerificationDescriptor(
            api_url=foundry["apiUrl"],
            api_key=foundry.get("apiKey", ""),
            chain_id=int(chain_id) if chain_id is not None else None,
            verifier=foundry.get("verifier"),
        )

    def salt_for(self, target: str) -> str | None:
        return self.target(target).get("create3Salt")

    # ------------------------------------------------------------------ #
    # Paths                                                              #
    # ------------------------------------------------------------------ #

    def _path(self, key: str, default: str) -> Path:
        path = Path(self.paths.get(key, default))
        return path if path.is_absolute() else self.base_dir / path

    @property
    def artifacts_dir(self) -> Path:
        return self._path("artifacts", DEFAULT_ARTIFACTS_DIR)

    @property
    def ledger_path(self) -> Path:
        return self._path("ledger", DEFAULT_LEDGER_FILE)

    @property
    def source_prefix(self) -> str:
        return self.paths.get("sources", DEFAULT_SOURCE_PREFIX)

    def singleton_raw_transaction(self, name: str) -> str | None:
        """Return the pre-signed raw transaction configured for a singleton."""
        entry = self.singletons.get(name)
        if not entry:
            return None
        if entry.get("rawTransaction"):
            return entry["rawTransaction"].strip()
        if entry.get("file"):
            path = Path(entry["file"])
            if not path.is_absolute():
                path = self.base_dir / path
            if not path.exists():
                raise ConfigError(f"Singleton transaction file not found: {path}")
            return path.read_text().strip()
        raise ConfigError(f"Singleton {name} needs 'rawTransaction' or 'file'")


def load_config(path: str | Path | None = None, env_file: str | None = None) -> DeployConfig:
    """Load ``.env`` and the JSON deploy config.

    Args:
        path: Config file path (defaults to ./create3.config.json)
        env_file: Optional dotenv file; ./.env is used when omitted

    Raises:
        ConfigError: If the file is missing or not valid JSON.
    """
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    config_path = Path(path or DEFAULT_CONFIG_FILE)
    if not config_path.exists():
        raise ConfigError(f"Deploy config not found: {config_path}")
    try:
        with open(config_path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {config_path}: {e}") from e

    return DeployConfig.from_dict(data, base_dir=config_path.resolve().parent)
