"""CREATE3 factory contract wrapper."""
from __future__ import annotations

from web3 import Web3

from ..config.abis import CREATE3_FACTORY_ABI
from .addresses import to_salt


class Create3Factory:
    """Read and write access to a deployed CREATE3 factory."""

    def __init__(self, connection, address: str):
        self.connection = connection
        self.address = Web3.to_checksum_address(address)
        self.contract = connection.contract(self.address, CREATE3_FACTORY_ABI)

    def get_deployed(self, deployer: str, salt: str | bytes) -> str:
        """Address ``deploy`` will produce for (deployer, salt)."""
        deployed = self.contract.functions.getDeployed(
            Web3.to_checksum_address(deployer), to_salt(salt)
        ).call()
        return Web3.to_checksum_address(deployed)

    def deploy(self, salt: str | bytes, init_code: bytes) -> str:
        """Send ``deploy(salt, initCode)`` from the connection's signer; returns the tx hash."""
        return self.connection.transact(self.contract.functions.deploy(to_salt(salt), init_code))
