"""
Singleton bootstrap
===================

Makes sure a fixed-address singleton (the CREATE3 factory or Multicall3)
exists on the connected chain. The run is a small state machine::

    ABSENT -> FUNDING -> BROADCASTING -> CONFIRMING -> PRESENT

FUNDING is skipped when the sender already holds the gas budget. Every run
starts by reading the code at the singleton address, so a re-run after a
crash resumes safely: a landed transaction is seen as PRESENT and an
unconfirmed one is rejected by the node as "already known" / "nonce too low",
which counts as success.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum

from web3.exceptions import Web3Exception

from ..config.deploy_config import DeployConfig
from ..config.singletons import FACTORY, MULTICALL, SingletonInfrastructure, get_singleton
from ..exceptions import BootstrapVerificationError, InsufficientOperatorBalanceError
from ..helpers.blockchain_sender import DEFAULT_RECEIPT_TIMEOUT

logger = logging.getLogger(__name__)

BOOTSTRAP_TIMEOUT = 60  # seconds
BENIGN_BROADCAST_ERRORS = ("already known", "nonce too low")


class BootstrapState(Enum):
    ABSENT = "absent"
    FUNDING = "funding"
    BROADCASTING = "broadcasting"
    CONFIRMING = "confirming"
    PRESENT = "present"


@dataclass
class BootstrapReport:
    """What a bootstrap run observed and did."""

    singleton: str
    address: str
    states: list[BootstrapState] = field(default_factory=list)
    funding_amount: int = 0
    funding_tx: str | None = None
    deploy_tx: str | None = None
    gas_used: int | None = None
    block_number: int | None = None
    race_detected: bool = False

    @property
    def state(self) -> BootstrapState | None:
        return self.states[-1] if self.states else None

    @property
    def already_present(self) -> bool:
        return self.states == [BootstrapState.PRESENT]


def funding_amount(required: int, balance: int) -> int:
    """Wei to send so ``balance`` covers ``required`` plus a 10% buffer on the gap."""
    if balance >= required:
        return 0
    shortfall = required - balance
    return shortfall + shortfall // 10


def is_benign_broadcast_error(error: Exception) -> bool:
    """True when a broadcast failure means the transaction is already pending or mined."""
    message = str(error).lower()
    return any(marker in message for marker in BENIGN_BROADCAST_ERRORS)


class SingletonBootstrapper:
    """Drives one singleton through the bootstrap states."""

    def __init__(
        self,
        connection,
        singleton: SingletonInfrastructure,
        timeout: float = BOOTSTRAP_TIMEOUT,
        cancel: threading.Event | None = None,
    ):
        self.connection = connection
        self.singleton = singleton
        self.timeout = timeout
        self.cancel = cancel
        self.report = BootstrapReport(singleton=singleton.name, address=singleton.address)
        self._funding = 0

    def run(self) -> BootstrapReport:
        handlers = {
            BootstrapState.ABSENT: self._on_absent,
            BootstrapState.FUNDING: self._on_funding,
            BootstrapState.BROADCASTING: self._on_broadcasting,
            BootstrapState.CONFIRMING: self._on_confirming,
        }

        state = self._initial_state()
        while True:
            self.report.states.append(state)
            if state is BootstrapState.PRESENT:
                return self.report
            state = handlers[state]()

    # ------------------------------------------------------------------ #
    # States                                                             #
    # ------------------------------------------------------------------ #

    def _initial_state(self) -> BootstrapState:
        if self.connection.has_code(self.singleton.address):
            logger.info(f"{self.singleton.label} already deployed at {self.singleton.address}")
            return BootstrapState.PRESENT
        logger.info(f"{self.singleton.label} not found at {self.singleton.address}, deploying")
        return BootstrapState.ABSENT

    def _on_absent(self) -> BootstrapState:
        sender = self.singleton.sender
        required = self.singleton.required_balance
        balance = self.connection.get_balance(sender)
        logger.info(f"Sender {sender} balance: {balance} wei, required: {required} wei")

        self._funding = funding_amount(required, balance)
        if self._funding == 0:
            return BootstrapState.BROADCASTING

        operator = self.connection.signer_address
        operator_balance = self.connection.get_balance(operator)
        if operator_balance < self._funding:
            raise InsufficientOperatorBalanceError(
                operator, operator_balance, self._funding, recipient=sender
            )
        return BootstrapState.FUNDING

    def _on_funding(self) -> BootstrapState:
        sender = self.singleton.sender
        logger.info(f"Funding {sender} with {self._funding} wei (shortfall + 10% buffer)")
        tx_hash = self.connection.send_value(sender, self._funding)
        self.report.funding_amount = self._funding
        self.report.funding_tx = tx_hash
        logger.info(f"Funding tx: {tx_hash}")
        self.connection.wait_for_receipt(tx_hash, timeout=DEFAULT_RECEIPT_TIMEOUT, cancel=self.cancel)
        logger.info(f"Sender {sender} funded")
        return BootstrapState.BROADCASTING

    def _on_broadcasting(self) -> BootstrapState:
        try:
            tx_hash = self.connection.send_raw_transaction(self.singleton.raw_transaction)
        except (ValueError, Web3Exception) as e:
            if not is_benign_broadcast_error(e):
                raise
            logger.info(f"{self.singleton.label} transaction already submitted ({e})")
            self.report.race_detected = True
            return BootstrapState.PRESENT

        self.report.deploy_tx = tx_hash
        logger.info(f"{self.singleton.label} transaction: {tx_hash}")
        return BootstrapState.CONFIRMING

    def _on_confirming(self) -> BootstrapState:
        # a reverted receipt is reported below as missing code
        receipt = self.connection.wait_for_receipt(
            self.report.deploy_tx, timeout=self.timeout, cancel=self.cancel, require_success=False
        )
        self.report.gas_used = receipt.get("gasUsed")
        self.report.block_number = receipt.get("blockNumber")
        if receipt.get("status") == 0:
            logger.warning(f"{self.singleton.label} transaction {self.report.deploy_tx} reverted")

        if not self.connection.has_code(self.singleton.address):
            raise BootstrapVerificationError(
                f"{self.singleton.label} deployment failed - no code at {self.singleton.address}"
            )

        logger.info(
            f"{self.singleton.label} deployed at {self.singleton.address} "
            f"(gas used: {self.report.gas_used}, block: {self.report.block_number})"
        )
        return BootstrapState.PRESENT


def ensure_singleton(
    connection,
    singleton: SingletonInfrastructure,
    timeout: float = BOOTSTRAP_TIMEOUT,
    cancel: threading.Event | None = None,
) -> BootstrapReport:
    """Deploy ``singleton`` unless its address already holds code.

    Raises:
        InsufficientOperatorBalanceError: The signer cannot fund the singleton sender.
        BootstrapVerificationError: No code at the address after confirmation.
        ConfirmationTimeoutError: The transaction was not mined within ``timeout``.
    """
    return SingletonBootstrapper(connection, singleton, timeout=timeout, cancel=cancel).run()


def ensure_factory(connection, config: DeployConfig, **kwargs) -> BootstrapReport:
    return ensure_singleton(connection, get_singleton(config, FACTORY), **kwargs)


def ensure_multicall3(connection, config: DeployConfig, **kwargs) -> BootstrapReport:
    return ensure_singleton(connection, get_singleton(config, MULTICALL), **kwargs)
