"""
Source verification through ``forge verify-contract``.

forge's exit code is not reliable for explorers that answer "already
verified" or report success on a later poll, so the outcome is decided by
``classify`` from the exit code and the combined stdout/stderr text.
A verification failure never fails a deployment.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from eth_abi.exceptions import EncodingError

from ..config.deploy_config import DEFAULT_SOURCE_PREFIX, VerificationDescriptor
from ..helpers.abi_encoding import encode_constructor_args

logger = logging.getLogger(__name__)

VERIFY_EXECUTABLE = "forge"
SUCCESS_MARKERS = ("already verified", "successfully verified", "verification successful")

# (command, timeout) -> (exit code, combined output)
CommandRunner = Callable[[list[str], float | None], tuple[int, str]]


@dataclass(frozen=True)
class VerificationResult:
    success: bool
    error: str | None = None


def classify(exit_code: int, text: str) -> VerificationResult:
    """Decide a verification outcome from the tool's exit code and output."""
    lowered = (text or "").lower()
    if exit_code == 0 or any(marker in lowered for marker in SUCCESS_MARKERS):
        return VerificationResult(success=True)
    return VerificationResult(
        success=False,
        error=text or f"Verification failed with exit code {exit_code}",
    )


def run_command(cmd: list[str], timeout: float | None = None) -> tuple[int, str]:
    """Run ``cmd`` and return (exit code, stdout and stderr combined)."""
    result = subprocess.run(
        cmd,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        errors="replace",
        timeout=timeout,
    )
    return result.returncode, result.stdout or ""


def contract_identifier(contract_path: str, contract_name: str, source_prefix: str = DEFAULT_SOURCE_PREFIX) -> str:
    """``<source_prefix>/<contract_path>:<contract_name>``, e.g. ``src/adapters/Foo.sol:Foo``."""
    prefix = source_prefix.rstrip("/")
    path = f"{prefix}/{contract_path}" if prefix else contract_path
    return f"{path}:{contract_name}"


def build_verify_command(
    address: str,
    identifier: str,
    descriptor: VerificationDescriptor,
    encoded_args: bytes = b"",
    executable: str = VERIFY_EXECUTABLE,
) -> list[str]:
    cmd = [
        executable,
        "verify-contract",
        address,
        identifier,
        "--verifier-url",
        descriptor.api_url,
        "--etherscan-api-key",
        descriptor.api_key,
    ]
    if descriptor.verifier:
        cmd += ["--verifier", descriptor.verifier]
    if encoded_args:
        cmd += ["--constructor-args", "0x" + encoded_args.hex()]
    if descriptor.chain_id:
        cmd += ["--chain", str(descriptor.chain_id)]
    return cmd


def verify_contract(
    address: str,
    contract_name: str,
    contract_path: str,
    constructor_args: Sequence[Any],
    constructor_types: Sequence[str],
    descriptor: VerificationDescriptor,
    source_prefix: str = DEFAULT_SOURCE_PREFIX,
    runner: CommandRunner = run_command,
    executable: str = VERIFY_EXECUTABLE,
    timeout: float | None = None,
) -> VerificationResult:
    """
    Verify a deployed contract's source on a block explorer.

    Args:
        address: Deployed contract address
        contract_name: Contract name (e.g. 'UniswapV3SwapAdapter')
        contract_path: Source file relative to ``source_prefix`` (e.g. 'UniswapV3SwapAdapter.sol')
        constructor_args: Constructor argument values
        constructor_types: Constructor argument ABI types
        descriptor: Explorer endpoint, API key, optional chain id and verifier
        source_prefix: Source directory the contract path is relative to
        runner: Process runner, replaceable in tests
        executable: Verification tool binary
        timeout: Optional limit for the verification process, in seconds

    Returns:
        VerificationResult; failures carry the tool output as ``error``.
    """
    try:
        encoded = encode_constructor_args(constructor_types, constructor_args)
    except (ValueError, EncodingError) as e:
        return VerificationResult(success=False, error=f"Cannot encode constructor args: {e}")

    identifier = contract_identifier(contract_path, contract_name, source_prefix)
    cmd = build_verify_command(address, identifier, descriptor, encoded, executable)

    # API key stays out of the log
    shown = [("***" if i > 0 and cmd[i - 1] == "--etherscan-api-key" else part) for i, part in enumerate(cmd)]
    logger.info(f"Verifying {identifier} at {address}")
    logger.debug(f"Command: {' '.join(shown)}")

    try:
        exit_code, output = runner(cmd, timeout)
    except FileNotFoundError:
        return VerificationResult(success=False, error=f"{executable} not found on PATH")
    except subprocess.TimeoutExpired:
        return VerificationResult(success=False, error=f"Verification timed out after {timeout}s")
    except OSError as e:
        return VerificationResult(success=False, error=f"Cannot run {executable}: {e}")

    if output.strip():
        logger.debug(f"{executable} output:\n{output.strip()}")

    result = classify(exit_code, output)
    if result.success:
        logger.info(f"Contract {address} verified")
    else:
        logger.warning(f"Verification of {address} failed (exit code: {exit_code})")
    return result
