"""
Chain connection provider.

Public API
----------
resolve_connection(config, target, rpc_url=None)
    Resolve a deployment target into a ChainConnection: the chain
    descriptor, a read-only Web3 client and a signing TransactionSender.
    No RPC request is made while resolving.
"""
from __future__ import annotations

import threading

from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.middleware import ExtraDataToPOAMiddleware

from ..config.deploy_config import DeployConfig
from ..config.network import ChainTarget, get_target_chain
from .blockchain_sender import DEFAULT_RECEIPT_TIMEOUT, TransactionSender
from .keystore import load_signer

__all__ = ["ChainConnection", "resolve_connection", "build_web3"]

RPC_TIMEOUT = 30  # seconds


def build_web3(rpc_url: str) -> Web3:
    """Web3 over HTTP with the POA extraData middleware (Ronin, devnets)."""
    w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": RPC_TIMEOUT}))
    w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
    return w3


class ChainConnection:
    """A read client and a signing client bound to one chain and one signer."""

    def __init__(self, chain: ChainTarget, read_client: Web3, write_client: TransactionSender):
        self.chain = chain
        self.read_client = read_client
        self.write_client = write_client

    @property
    def signer(self) -> LocalAccount:
        return self.write_client.account

    @property
    def signer_address(self) -> str:
        return self.write_client.address

    # Reads

    def get_code(self, address: str) -> bytes:
        return bytes(self.read_client.eth.get_code(Web3.to_checksum_address(address)))

    def has_code(self, address: str) -> bool:
        return len(self.get_code(address)) > 0

    def get_balance(self, address: str) -> int:
        return self.read_client.eth.get_balance(Web3.to_checksum_address(address))

    def contract(self, address: str, abi: list):
        return self.read_client.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    # Writes

    def send_value(self, to: str, value: int) -> str:
        return self.write_client.send_value(to, value)

    def send_raw_transaction(self, raw_transaction: bytes) -> str:
        return self.write_client.send_raw_transaction(raw_transaction)

    def transact(self, contract_function, value: int = 0) -> str:
        return self.write_client.transact(contract_function, value)

    def wait_for_receipt(
        self,
        tx_hash: str,
        timeout: float = DEFAULT_RECEIPT_TIMEOUT,
        cancel: threading.Event | None = None,
        require_success: bool = True,
    ):
        return self.write_client.wait_for_receipt(
            tx_hash, timeout=timeout, cancel=cancel, require_success=require_success
        )


def resolve_connection(config: DeployConfig, target: str, rpc_url: str | None = None) -> ChainConnection:
    """
    Resolve a deployment target into a connection.

    Args:
        config: Loaded deploy configuration
        target: Target name from the config's ``targets`` section
        rpc_url: Optional RPC URL overriding the configured network endpoint

    Returns:
        ChainConnection

    Raises:
        UnknownTargetError: If no chain descriptor is registered for the target
        ConfigError: If the network, RPC URL or wallet cannot be resolved
    """
    target_cfg = config.targets.get(target, {})
    descriptor = get_target_chain(target, target_cfg.get("chain"))

    if rpc_url:
        network_name = target_cfg.get("network", target)
    else:
        network_name, _ = config.network_for(target)
        rpc_url = config.rpc_url_for(target)

    wallet_name, wallet = config.wallet_for(target)
    account = load_signer(wallet_name, wallet)

    chain = ChainTarget(
        target=target,
        network=network_name,
        chain_id=descriptor["chain_id"],
        rpc_url=rpc_url,
        currency=descriptor["currency"],
        decimals=descriptor.get("decimals", 18),
        name=descriptor["name"],
    )

    return ChainConnection(
        chain=chain,
        read_client=build_web3(rpc_url),
        write_client=TransactionSender(build_web3(rpc_url), account),
    )
