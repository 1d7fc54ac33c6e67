"""
Deployment ledger: a JSON record of what was deployed where, per target.

    {"<target>": {"contracts": [{"name", "fullyQualifiedName", "sender", "txHash",
                                 "onChain": {"address", "constructorArgs"}}]}}
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from ..exceptions import ConfigError
from .deployer import DeployOutcome, DeployRequest

logger = logging.getLogger(__name__)

# txHash recorded for contracts found on chain but not sent by this tool
UNKNOWN_TX_HASH = "0x0"


def load_ledger(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Ledger {path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Ledger {path} must hold a JSON object")
    return data


def save_ledger(path: Path, data: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_fd, tmp_path = tempfile.mkstemp(prefix="ledger_", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(tmp_fd, "w") as f:
            json.dump(data, f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)


def find_record(records: list[dict[str, Any]], name: str) -> dict[str, Any] | None:
    for r in records:
        if r.get("name") == name:
            return r
    return None


def upsert_record(records: list[dict[str, Any]], rec: dict[str, Any]) -> list[dict[str, Any]]:
    """Replace the record with the same contract name, else append."""
    replaced = False
    out: list[dict[str, Any]] = []
    for r in records:
        if r.get("name") == rec["name"]:
            out.append(rec)
            replaced = True
        else:
            out.append(r)
    if not replaced:
        out.append(rec)
    return out


def _jsonable(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def build_record(request: DeployRequest, outcome: DeployOutcome, sender: str) -> dict[str, Any]:
    return {
        "name": request.contract_name,
        "fullyQualifiedName": request.fully_qualified_name,
        "sender": sender,
        "txHash": outcome.transaction_hash or UNKNOWN_TX_HASH,
        "onChain": {
            "address": outcome.address,
            "constructorArgs": _jsonable(request.constructor_args),
        },
    }


def record_deployment(
    path: Path,
    target: str,
    request: DeployRequest,
    outcome: DeployOutcome,
    sender: str,
) -> bool:
    """
    Write ``outcome`` into the ledger under ``target``.

    A fresh deployment replaces any record with the same contract name. An
    already-deployed contract is only added when the ledger has no record of
    it, with txHash "0x0". Returns True when the file was written.
    """
    data = load_ledger(path)
    section = data.setdefault(target, {})
    records = section.get("contracts", [])

    if outcome.already_deployed and find_record(records, request.contract_name) is not None:
        logger.debug(f"{request.contract_name} already in ledger for {target}")
        return False

    section["contracts"] = upsert_record(records, build_record(request, outcome, sender))
    save_ledger(path, data)
    logger.info(f"Updated {path} with {request.contract_name} deployment ({target})")
    return True
