"""Shared pytest fixtures for create3-deploy tests."""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from eth_account import Account
from eth_utils import to_checksum_address

from create3_deploy.config.deploy_config import DeployConfig
from create3_deploy.config.singletons import FACTORY, SingletonInfrastructure
from create3_deploy.exceptions import ConfirmationTimeoutError, TransactionRevertedError
from create3_deploy.helpers.addresses import compute_create3_address

# Anvil/Hardhat default mnemonic and its first account
TEST_MNEMONIC = "test test test test test test test test test test test junk"
TEST_ACCOUNT = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
TEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"

FACTORY_DEPLOYER_KEY = "0x" + "42" * 32
FACTORY_GAS_LIMIT = 500_000
FACTORY_GAS_PRICE = 100_000_000_000  # 100 gwei

SALT = "0x" + "00" * 31 + "01"


def sign_creation_tx(private_key: str, gas: int, gas_price: int, data: str = "0x6080604052") -> bytes:
    """Sign a chain-agnostic (no chainId) nonce-0 contract creation."""
    signed = Account.sign_transaction(
        {"nonce": 0, "gasPrice": gas_price, "gas": gas, "data": data, "value": 0},
        private_key,
    )
    return bytes(signed.raw_transaction)


class FakeChain:
    """In-memory chain implementing the ChainConnection interface."""

    def __init__(self, signer_address: str = TEST_ACCOUNT, balances: Optional[Dict[str, int]] = None):
        self.signer_address = to_checksum_address(signer_address)
        self.code: Dict[str, bytes] = {}
        self.balances: Dict[str, int] = {to_checksum_address(k): v for k, v in (balances or {}).items()}
        self.receipts: Dict[str, Dict[str, Any]] = {}
        self.creations: Dict[bytes, tuple] = {}
        self.raw_errors: List[Exception] = []
        self.transfers: List[tuple] = []
        self.broadcasts: List[bytes] = []
        self.waits: List[tuple] = []
        self.mine = True
        self.raw_status = 1
        self._block = 100

    # Test setup

    def set_code(self, address: str, code: bytes = b"\x60\x80") -> None:
        self.code[to_checksum_address(address)] = code

    def expect_creation(self, raw: bytes, address: str, code: bytes = b"\x60\x80") -> None:
        """Make broadcasting ``raw`` place ``code`` at ``address``."""
        self.creations[raw] = (to_checksum_address(address), code)

    def record_tx(self, gas_used: int = 21_000, status: int = 1) -> str:
        self._block += 1
        tx_hash = "0x" + f"{self._block:064x}"
        if self.mine:
            self.receipts[tx_hash] = {"status": status, "gasUsed": gas_used, "blockNumber": self._block}
        return tx_hash

    # Reads

    def get_code(self, address: str) -> bytes:
        return self.code.get(to_checksum_address(address), b"")

    def has_code(self, address: str) -> bool:
        return len(self.get_code(address)) > 0

    def get_balance(self, address: str) -> int:
        return self.balances.get(to_checksum_address(address), 0)

    # Writes

    def send_value(self, to: str, value: int) -> str:
        to = to_checksum_address(to)
        self.balances[self.signer_address] = self.get_balance(self.signer_address) - value
        self.balances[to] = self.get_balance(to) + value
        self.transfers.append((to, value))
        return self.record_tx()

    def send_raw_transaction(self, raw_transaction: bytes) -> str:
        if self.raw_errors:
            raise self.raw_errors.pop(0)
        self.broadcasts.append(raw_transaction)
        if raw_transaction in self.creations and self.mine and self.raw_status == 1:
            address, code = self.creations[raw_transaction]
            self.code[address] = code
        return self.record_tx(gas_used=FACTORY_GAS_LIMIT // 2, status=self.raw_status)

    def wait_for_receipt(self, tx_hash: str, timeout: float = 300, cancel=None, require_success: bool = True):
        self.waits.append((tx_hash, timeout))
        if tx_hash not in self.receipts:
            raise ConfirmationTimeoutError(tx_hash, timeout)
        receipt = self.receipts[tx_hash]
        if require_success and receipt["status"] == 0:
            raise TransactionRevertedError(tx_hash, receipt)
        return receipt


class FakeFactory:
    """CREATE3 factory double: predicts with the CREATE3 formula and deploys into FakeChain."""

    def __init__(self, chain: FakeChain, address: str):
        self.chain = chain
        self.address = to_checksum_address(address)
        self.deployed: List[tuple] = []

    def get_deployed(self, deployer: str, salt) -> str:
        if not self.chain.has_code(self.address):
            raise ValueError(f"No factory code at {self.address}")
        return compute_create3_address(self.address, deployer, salt)

    def deploy(self, salt, init_code: bytes) -> str:
        address = self.get_deployed(self.chain.signer_address, salt)
        if self.chain.has_code(address):
            raise ValueError("execution reverted: DEPLOYMENT_FAILED")
        self.chain.set_code(address, init_code or b"\x00")
        self.deployed.append((address, init_code))
        return self.chain.record_tx(gas_used=250_000)


@pytest.fixture
def factory_raw_tx() -> bytes:
    return sign_creation_tx(FACTORY_DEPLOYER_KEY, FACTORY_GAS_LIMIT, FACTORY_GAS_PRICE)


@pytest.fixture
def factory_singleton(factory_raw_tx: bytes) -> SingletonInfrastructure:
    return SingletonInfrastructure.from_raw_transaction(FACTORY, factory_raw_tx, label="CREATE3 Factory")


@pytest.fixture
def operator_funds() -> int:
    return 10**18


@pytest.fixture
def chain(factory_singleton: SingletonInfrastructure, factory_raw_tx: bytes, operator_funds: int) -> FakeChain:
    """A chain without the factory; broadcasting its transaction deploys it."""
    fake = FakeChain(balances={TEST_ACCOUNT: operator_funds})
    fake.expect_creation(factory_raw_tx, factory_singleton.address)
    return fake


@pytest.fixture
def fake_factory(chain: FakeChain, factory_singleton: SingletonInfrastructure) -> FakeFactory:
    return FakeFactory(chain, factory_singleton.address)


@pytest.fixture
def artifacts_dir(tmp_path: Path) -> Path:
    """Foundry-style out/ directory with a Greeter and a Vault artifact."""
    out = tmp_path / "out"
    greeter = out / "Greeter.sol"
    greeter.mkdir(parents=True)
    with open(greeter / "Greeter.json", "w") as f:
        json.dump({"abi": [], "bytecode": {"object": "0x6080604052348015600f57600080fd5b50"}}, f)

    vault = out / "vaults" / "Vault.sol"
    vault.mkdir(parents=True)
    with open(vault / "Vault.json", "w") as f:
        json.dump({"abi": [{"type": "constructor", "inputs": []}], "bytecode": "0x60806040"}, f)
    return out


@pytest.fixture
def config_dict(factory_raw_tx: bytes) -> Dict[str, Any]:
    return {
        "paths": {"artifacts": "out", "sources": "src", "ledger": "deployments.json"},
        "wallets": {
            "local_wallet": {"type": "mnemonic", "config": {"words": TEST_MNEMONIC, "index": 0}},
            "deployer_wallet": {"type": "private-key", "config": {"key": "${CREATE3_TEST_DEPLOYER_KEY}"}},
        },
        "networks": {
            "local": {"rpcUrl": "http://localhost:8545"},
            "base": {
                "rpcUrl": "https://mainnet.base.org",
                "contractVerification": {
                    "foundry": {
                        "apiUrl": "https://api.basescan.org/api",
                        "apiKey": "${CREATE3_TEST_API_KEY}",
                        "chainId": 8453,
                        "verifier": "etherscan",
                    }
                },
            },
        },
        "targets": {
            "local1": {"network": "local", "wallet": "local_wallet", "create3Salt": SALT},
            "base": {"network": "base", "wallet": "deployer_wallet"},
            "orphan": {"network": "missing", "wallet": "local_wallet", "chain": "foundry"},
        },
        "singletons": {FACTORY: {"rawTransaction": "0x" + factory_raw_tx.hex()}},
    }


@pytest.fixture
def deploy_config(config_dict: Dict[str, Any], tmp_path: Path, monkeypatch) -> DeployConfig:
    monkeypatch.setenv("CREATE3_TEST_DEPLOYER_KEY", TEST_PRIVATE_KEY)
    monkeypatch.setenv("CREATE3_TEST_API_KEY", "test-api-key")
    return DeployConfig.from_dict(config_dict, base_dir=tmp_path)
