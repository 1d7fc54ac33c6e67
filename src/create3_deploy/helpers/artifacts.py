"""Foundry build artifact loading."""
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from ..exceptions import ArtifactNotFoundError


@dataclass(frozen=True)
class ContractArtifact:
    name: str
    bytecode: bytes
    abi: list


def artifact_path(artifacts_dir: Path, contract_path: str, contract_name: str) -> Path:
    return Path(artifacts_dir) / contract_path / f"{contract_name}.json"


def _to_bytes(hex_str: str) -> bytes:
    return bytes.fromhex(hex_str[2:] if hex_str.startswith("0x") else hex_str)


def load_artifact(artifacts_dir: Path, contract_path: str, contract_name: str) -> ContractArtifact:
    """Load creation bytecode and ABI from ``<artifacts>/<path>/<name>.json``.

    Accepts Foundry's ``{"bytecode": {"object": "0x..."}}`` as well as a
    plain hex string under ``bytecode``.

    Raises:
        ArtifactNotFoundError: If the file is missing or carries no bytecode.
    """
    path = artifact_path(artifacts_dir, contract_path, contract_name)
    if not path.exists():
        raise ArtifactNotFoundError(
            f"Missing build artifact {path}. Run the contract build first (forge build)."
        )

    with open(path) as f:
        data = json.load(f)

    bytecode = data.get("bytecode")
    if isinstance(bytecode, dict):
        bytecode = bytecode.get("object")
    if not bytecode or bytecode in ("0x", ""):
        raise ArtifactNotFoundError(f"Artifact {path} has no creation bytecode")

    try:
        code = _to_bytes(bytecode)
    except ValueError:
        # Unlinked libraries leave __$...$__ placeholders in the hex
        raise ArtifactNotFoundError(f"Artifact {path} bytecode is not plain hex (unlinked libraries?)")

    return ContractArtifact(name=contract_name, bytecode=code, abi=data.get("abi", []))
