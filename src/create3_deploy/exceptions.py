"""Exception classes raised by the create3-deploy orchestrator."""

from __future__ import annotations


class Create3DeployError(Exception):
    """Base exception for deployment orchestration errors."""

    pass


class ConfigError(Create3DeployError, ValueError):
    """Raised when a target, network, wallet or secret is missing or invalid."""

    pass


class UnknownTargetError(ConfigError):
    """Raised when no chain descriptor is registered for a target."""

    pass


class SingletonConfigError(ConfigError):
    """Raised when a pre-signed singleton transaction does not match its record."""

    pass


class ArtifactNotFoundError(Create3DeployError, FileNotFoundError):
    """Raised when a compiled contract artifact is missing or has no bytecode."""

    pass


class InsufficientOperatorBalanceError(Create3DeployError):
    """Raised when the operator cannot fund a singleton sender."""

    def __init__(self, operator: str, balance: int, required: int, recipient: str | None = None):
        self.operator = operator
        self.balance = balance
        self.required = required
        self.shortfall = required - balance
        self.recipient = recipient
        target = f" to fund {recipient}" if recipient else ""
        super().__init__(
            f"Insufficient operator balance{target}: "
            f"{operator} holds {balance} wei, needs {required} wei "
            f"(short by {self.shortfall} wei)"
        )


class BootstrapVerificationError(Create3DeployError, RuntimeError):
    """Raised when a singleton has no code after its transaction confirmed."""

    pass


class TransactionRevertedError(Create3DeployError, RuntimeError):
    """Raised when a confirmed transaction has a failed status."""

    def __init__(self, tx_hash: str, receipt=None):
        self.tx_hash = tx_hash
        self.receipt = receipt
        super().__init__(f"Transaction {tx_hash} reverted")


class ConfirmationTimeoutError(Create3DeployError, TimeoutError):
    """Raised when a transaction is not confirmed within the allotted time."""

    def __init__(self, tx_hash: str, timeout: float):
        self.tx_hash = tx_hash
        self.timeout = timeout
        super().__init__(f"Transaction {tx_hash} not confirmed after {timeout}s")


class OperationCancelledError(Create3DeployError):
    """Raised when a wait is interrupted through its cancellation token."""

    pass
