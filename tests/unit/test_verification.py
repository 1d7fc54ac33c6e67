"""Unit tests for the verification coordinator."""

import subprocess
import sys

import pytest

from create3_deploy.config.deploy_config import VerificationDescriptor
from create3_deploy.setup.verification import (
    VerificationResult,
    build_verify_command,
    classify,
    contract_identifier,
    run_command,
    verify_contract,
)

ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
OWNER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
DESCRIPTOR = VerificationDescriptor(
    api_url="https://api.basescan.org/api",
    api_key="secret-key",
    chain_id=8453,
    verifier="etherscan",
)


class FakeRunner:
    """Records commands and returns a canned (exit code, output)."""

    def __init__(self, exit_code=0, output="", error=None):
        self.exit_code = exit_code
        self.output = output
        self.error = error
        self.calls = []

    def __call__(self, cmd, timeout=None):
        self.calls.append((cmd, timeout))
        if self.error is not None:
            raise self.error
        return self.exit_code, self.output


class TestClassify:
    """Test the exit-code and output classification policy."""

    def test_exit_code_zero_is_success(self):
        """Test that a clean exit is success regardless of output."""
        assert classify(0, "") == VerificationResult(success=True)

    @pytest.mark.parametrize(
        "text",
        [
            "Contract source code already verified",
            "Error: contract ALREADY VERIFIED on explorer",
            "Contract successfully verified",
            "Verification successful",
        ],
    )
    def test_success_markers_override_exit_code(self, text):
        """Test that known success phrases win over a non-zero exit code."""
        assert classify(1, text).success

    def test_failure_carries_output(self):
        """Test that the tool output becomes the error."""
        result = classify(1, "Error: invalid API key")
        assert not result.success
        assert result.error == "Error: invalid API key"

    def test_rate_limited(self):
        """Test that unrecognised output with a failing exit code is a failure."""
        result = classify(2, "rate limited")
        assert result == VerificationResult(success=False, error="rate limited")

    def test_failure_without_output(self):
        """Test the fallback error message when the tool printed nothing."""
        result = classify(2, "")
        assert not result.success
        assert result.error == "Verification failed with exit code 2"


class TestCommandBuilding:
    """Test the forge verify-contract command line."""

    def test_contract_identifier_default_prefix(self):
        """Test the default src/ prefix."""
        assert contract_identifier("Greeter.sol", "Greeter") == "src/Greeter.sol:Greeter"

    def test_contract_identifier_custom_prefix(self):
        """Test a nested source prefix and a trailing slash."""
        assert contract_identifier("Dex.sol", "Dex", "src/depositors/") == "src/depositors/Dex.sol:Dex"

    def test_contract_identifier_empty_prefix(self):
        """Test a contract path used as-is."""
        assert contract_identifier("lib/Foo.sol", "Foo", "") == "lib/Foo.sol:Foo"

    def test_full_command(self):
        """Test every optional flag being emitted."""
        cmd = build_verify_command(ADDRESS, "src/Greeter.sol:Greeter", DESCRIPTOR, b"\x01\x02")

        assert cmd == [
            "forge",
            "verify-contract",
            ADDRESS,
            "src/Greeter.sol:Greeter",
            "--verifier-url",
            "https://api.basescan.org/api",
            "--etherscan-api-key",
            "secret-key",
            "--verifier",
            "etherscan",
            "--constructor-args",
            "0x0102",
            "--chain",
            "8453",
        ]

    def test_minimal_command(self):
        """Test that absent optional values leave their flags out."""
        descriptor = VerificationDescriptor(api_url="http://localhost:4000/api", api_key="")
        cmd = build_verify_command(ADDRESS, "src/Greeter.sol:Greeter", descriptor)

        assert "--constructor-args" not in cmd
        assert "--chain" not in cmd
        assert "--verifier" not in cmd


class TestVerifyContract:
    """Test verify_contract with an injected process runner."""

    def test_success(self):
        """Test a successful verification run."""
        runner = FakeRunner(0, "Submitted contract for verification")

        result = verify_contract(ADDRESS, "Greeter", "Greeter.sol", [], [], DESCRIPTOR, runner=runner)

        assert result.success
        cmd, _ = runner.calls[0]
        assert cmd[3] == "src/Greeter.sol:Greeter"

    def test_constructor_args_are_abi_encoded(self):
        """Test that constructor arguments are passed as ABI-encoded hex."""
        runner = FakeRunner(0)

        verify_contract(
            ADDRESS, "Vault", "Vault.sol", [OWNER, 5], ["address", "uint256"], DESCRIPTOR, runner=runner
        )

        cmd, _ = runner.calls[0]
        encoded = cmd[cmd.index("--constructor-args") + 1]
        assert encoded == "0x" + "00" * 12 + OWNER[2:].lower() + "00" * 31 + "05"

    def test_already_verified_with_error_exit(self):
        """Test that an explorer reporting an existing verification counts as success."""
        runner = FakeRunner(1, "Error: Contract source code already verified")

        result = verify_contract(ADDRESS, "Greeter", "Greeter.sol", [], [], DESCRIPTOR, runner=runner)

        assert result.success

    def test_failure_is_returned_not_raised(self):
        """Test that a failing tool yields a failed result."""
        runner = FakeRunner(1, "Error: Invalid API Key")

        result = verify_contract(ADDRESS, "Greeter", "Greeter.sol", [], [], DESCRIPTOR, runner=runner)

        assert not result.success
        assert "Invalid API Key" in result.error

    def test_missing_executable(self):
        """Test that a missing forge binary is a failed result."""
        runner = FakeRunner(error=FileNotFoundError("forge"))

        result = verify_contract(ADDRESS, "Greeter", "Greeter.sol", [], [], DESCRIPTOR, runner=runner)

        assert not result.success
        assert "not found" in result.error

    def test_process_timeout(self):
        """Test that a hung tool is a failed result and the timeout is forwarded."""
        runner = FakeRunner(error=subprocess.TimeoutExpired(["forge"], 30))

        result = verify_contract(
            ADDRESS, "Greeter", "Greeter.sol", [], [], DESCRIPTOR, runner=runner, timeout=30
        )

        assert not result.success
        assert "timed out" in result.error
        assert runner.calls[0][1] == 30

    def test_unrunnable_executable(self):
        """Test that a non-executable forge binary is a failed result."""
        runner = FakeRunner(error=PermissionError(13, "Permission denied", "forge"))

        result = verify_contract(ADDRESS, "Greeter", "Greeter.sol", [], [], DESCRIPTOR, runner=runner)

        assert not result.success
        assert "Permission denied" in result.error

    def test_unencodable_constructor_args(self):
        """Test that bad constructor values fail verification without running the tool."""
        runner = FakeRunner(0)

        result = verify_contract(
            ADDRESS, "Vault", "Vault.sol", ["not-an-address"], ["address"], DESCRIPTOR, runner=runner
        )

        assert not result.success
        assert "constructor args" in result.error
        assert runner.calls == []

    def test_source_prefix(self):
        """Test that the source prefix reaches the contract identifier."""
        runner = FakeRunner(0)

        verify_contract(
            ADDRESS, "Dex", "Dex.sol", [], [], DESCRIPTOR, source_prefix="src/depositors", runner=runner
        )

        assert runner.calls[0][0][3] == "src/depositors/Dex.sol:Dex"


class TestRunCommand:
    """Test the default process runner."""

    def test_combines_output_and_exit_code(self):
        """Test that stderr is folded into the output and the exit code is kept."""
        code = "import sys; print('out'); print('err', file=sys.stderr); sys.exit(3)"

        exit_code, output = run_command([sys.executable, "-c", code])

        assert exit_code == 3
        assert "out" in output
        assert "err" in output

    def test_undecodable_output(self):
        """Test that non-UTF-8 bytes from the tool are replaced, not raised."""
        code = "import sys; sys.stdout.buffer.write(b'rate limited \\xff'); sys.exit(2)"

        exit_code, output = run_command([sys.executable, "-c", code])

        assert exit_code == 2
        assert output.startswith("rate limited")
        assert not classify(exit_code, output).success
