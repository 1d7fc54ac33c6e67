"""Address prediction through the CREATE3 factory."""

from __future__ import annotations

import logging

from ..helpers.addresses import compute_create3_address
from ..helpers.factory import Create3Factory

logger = logging.getLogger(__name__)


def predict_address(connection, deployer: str, salt: str | bytes, factory: Create3Factory | str) -> str:
    """Ask the factory's ``getDeployed`` view where (deployer, salt) will land.

    ``factory`` is a Create3Factory or the factory's address. Read-only;
    transport errors propagate unchanged.
    """
    if isinstance(factory, str):
        factory = Create3Factory(connection, factory)
    predicted = factory.get_deployed(deployer, salt)
    logger.debug(f"Predicted address for {deployer}: {predicted}")
    return predicted


def predict_address_offline(factory_address: str, deployer: str, salt: str | bytes) -> str:
    """Same prediction computed locally, without an RPC call."""
    return compute_create3_address(factory_address, deployer, salt)
