"""
CREATE3 deployment executor
===========================

Deploys a compiled contract through the CREATE3 factory so that its address
depends only on (signer, salt):

1. make sure the factory singleton exists,
2. ask the factory where (signer, salt) lands,
3. stop there if that address already holds code,
4. otherwise send ``deploy(salt, bytecode ++ constructor args)`` and wait,
5. optionally verify the source (never fatal).

Running the same request twice is safe: the second run sends nothing.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from ..config.deploy_config import DEFAULT_SOURCE_PREFIX, DeployConfig, VerificationDescriptor
from ..config.singletons import FACTORY, SingletonInfrastructure, get_singleton
from ..helpers.abi_encoding import build_init_code, encode_constructor_args
from ..helpers.addresses import to_salt
from ..helpers.artifacts import load_artifact
from ..helpers.blockchain_sender import DEFAULT_RECEIPT_TIMEOUT
from ..helpers.factory import Create3Factory
from .bootstrap import BOOTSTRAP_TIMEOUT, ensure_singleton
from .predictor import predict_address, predict_address_offline
from .verification import CommandRunner, run_command, verify_contract

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeployRequest:
    """One contract to deploy at a salt-determined address."""

    contract_name: str
    contract_path: str
    salt: bytes
    constructor_args: Sequence[Any] = field(default_factory=tuple)
    constructor_types: Sequence[str] = field(default_factory=tuple)
    verification: VerificationDescriptor | None = None
    source_prefix: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "salt", to_salt(self.salt))
        object.__setattr__(self, "constructor_args", tuple(self.constructor_args))
        object.__setattr__(self, "constructor_types", tuple(self.constructor_types))
        if len(self.constructor_args) != len(self.constructor_types):
            raise ValueError(
                f"{self.contract_name}: {len(self.constructor_args)} constructor args "
                f"for {len(self.constructor_types)} types"
            )

    @property
    def fully_qualified_name(self) -> str:
        return f"{self.contract_path}:{self.contract_name}"


@dataclass
class DeployOutcome:
    """Result of one deployment attempt.

    ``already_deployed`` with no ``transaction_hash`` means the address was
    occupied and nothing was sent.
    """

    address: str
    already_deployed: bool
    transaction_hash: str | None = None
    gas_used: int | None = None
    verified: bool | None = None
    verification_error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class Create3Deployer:
    """Deploys requests through one factory over one connection."""

    def __init__(
        self,
        connection,
        factory_singleton: SingletonInfrastructure,
        artifacts_dir: Path,
        source_prefix: str = DEFAULT_SOURCE_PREFIX,
        factory: Create3Factory | None = None,
        verify_runner: CommandRunner = run_command,
        bootstrap_timeout: float = BOOTSTRAP_TIMEOUT,
        receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT,
        verify_timeout: float | None = None,
        cancel: threading.Event | None = None,
    ):
        self.connection = connection
        self.factory_singleton = factory_singleton
        self.artifacts_dir = Path(artifacts_dir)
        self.source_prefix = source_prefix
        self.factory = factory or Create3Factory(connection, factory_singleton.address)
        self.verify_runner = verify_runner
        self.bootstrap_timeout = bootstrap_timeout
        self.receipt_timeout = receipt_timeout
        self.verify_timeout = verify_timeout
        self.cancel = cancel

    @classmethod
    def from_config(cls, connection, config: DeployConfig, **kwargs) -> "Create3Deployer":
        kwargs.setdefault("source_prefix", config.source_prefix)
        return cls(
            connection,
            get_singleton(config, FACTORY),
            config.artifacts_dir,
            **kwargs,
        )

    def predict(self, salt: str | bytes) -> str:
        deployer = self.connection.signer_address
        predicted = predict_address(self.connection, deployer, salt, self.factory)
        local = predict_address_offline(self.factory.address, deployer, salt)
        if local != predicted:
            logger.warning(
                f"Factory at {self.factory.address} predicts {predicted}, "
                f"local CREATE3 derivation gives {local}"
            )
        return predicted

    def deploy(self, request: DeployRequest) -> DeployOutcome:
        """
        Deploy ``request`` unless its predicted address already holds code.

        Raises:
            InsufficientOperatorBalanceError, BootstrapVerificationError: factory bootstrap failed
            ArtifactNotFoundError: the compiled artifact is missing
            ConfirmationTimeoutError, TransactionRevertedError: the deploy transaction failed
        """
        ensure_singleton(
            self.connection,
            self.factory_singleton,
            timeout=self.bootstrap_timeout,
            cancel=self.cancel,
        )

        predicted = self.predict(request.salt)
        logger.info(f"{request.contract_name}: salt 0x{request.salt.hex()} -> {predicted}")

        if self.connection.has_code(predicted):
            logger.info(f"{request.contract_name} already deployed at {predicted}")
            outcome = DeployOutcome(address=predicted, already_deployed=True)
        else:
            outcome = self._send_deploy(request, predicted)

        if request.verification is not None:
            self._verify(request, outcome)

        return outcome

    def _send_deploy(self, request: DeployRequest, predicted: str) -> DeployOutcome:
        artifact = load_artifact(self.artifacts_dir, request.contract_path, request.contract_name)
        encoded = encode_constructor_args(request.constructor_types, request.constructor_args)
        init_code = build_init_code(artifact.bytecode, encoded)

        logger.info(f"Deploying {request.contract_name} ({len(init_code)} bytes init code)")
        tx_hash = self.factory.deploy(request.salt, init_code)
        logger.info(f"Transaction: {tx_hash}")

        receipt = self.connection.wait_for_receipt(tx_hash, timeout=self.receipt_timeout, cancel=self.cancel)
        gas_used = receipt.get("gasUsed")
        logger.info(f"{request.contract_name} deployed at {predicted} (gas used: {gas_used})")

        return DeployOutcome(
            address=predicted,
            already_deployed=False,
            transaction_hash=tx_hash,
            gas_used=gas_used,
        )

    def _verify(self, request: DeployRequest, outcome: DeployOutcome) -> None:
        result = verify_contract(
            outcome.address,
            request.contract_name,
            request.contract_path,
            request.constructor_args,
            request.constructor_types,
            request.verification,
            source_prefix=request.source_prefix or self.source_prefix,
            runner=self.verify_runner,
            timeout=self.verify_timeout,
        )
        outcome.verified = result.success
        outcome.verification_error = result.error


def deploy(connection, request: DeployRequest, config: DeployConfig, **kwargs) -> DeployOutcome:
    """Deploy one request with the factory and paths from ``config``."""
    return Create3Deployer.from_config(connection, config, **kwargs).deploy(request)
