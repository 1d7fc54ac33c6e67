"""
Local signing and broadcasting of transactions.

Every transaction is signed with the connection's account and broadcast as a
raw transaction; confirmation waits poll for the receipt with an explicit
timeout and an optional cancellation token.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Any

from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.exceptions import TransactionNotFound

from ..exceptions import (
    ConfirmationTimeoutError,
    OperationCancelledError,
    TransactionRevertedError,
)

logger = logging.getLogger(__name__)

__all__ = ["TransactionSender", "DEFAULT_RECEIPT_TIMEOUT"]

DEFAULT_RECEIPT_TIMEOUT = 300  # seconds
DEFAULT_POLL_LATENCY = 1.0  # seconds
PRIORITY_FEE_GWEI = 2
GAS_LIMIT_BUFFER = 1.2  # 20% over estimate
TRANSFER_GAS = 21_000


class TransactionSender:
    """Signs with a local account and broadcasts through a Web3 client."""

    def __init__(self, w3: Web3, account: LocalAccount, poll_latency: float = DEFAULT_POLL_LATENCY):
        self.w3 = w3
        self.account = account
        self.poll_latency = poll_latency

    @property
    def address(self) -> str:
        return self.account.address

    # ------------------------------------------------------------------ #
    # Building                                                           #
    # ------------------------------------------------------------------ #

    def _fee_fields(self) -> dict[str, int]:
        """EIP-1559 fees when the chain reports a base fee, else legacy gasPrice."""
        latest_block = self.w3.eth.get_block("latest")
        base_fee = latest_block.get("baseFeePerGas")
        if base_fee is None:
            return {"gasPrice": self.w3.eth.gas_price}
        priority_fee = Web3.to_wei(PRIORITY_FEE_GWEI, "gwei")
        return {
            "maxPriorityFeePerGas": priority_fee,
            "maxFeePerGas": base_fee * 2 + priority_fee,  # generous cap
        }

    def _base_tx(self) -> dict[str, Any]:
        tx: dict[str, Any] = {
            "from": self.account.address,
            "nonce": self.w3.eth.get_transaction_count(self.account.address, "pending"),
            "chainId": self.w3.eth.chain_id,
        }
        tx.update(self._fee_fields())
        return tx

    def _sign_and_send(self, tx: dict[str, Any]) -> str:
        signed_tx = self.account.sign_transaction(tx)
        tx_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
        return Web3.to_hex(tx_hash)

    # ------------------------------------------------------------------ #
    # Sending                                                            #
    # ------------------------------------------------------------------ #

    def send_value(self, to: str, value: int) -> str:
        """Send a plain native-currency transfer; returns the transaction hash."""
        tx = self._base_tx()
        tx.update({"to": Web3.to_checksum_address(to), "value": int(value), "gas": TRANSFER_GAS})
        tx_hash = self._sign_and_send(tx)
        logger.debug(f"Transfer of {value} wei to {to} sent: {tx_hash}")
        return tx_hash

    def transact(self, contract_function, value: int = 0) -> str:
        """Sign and send a bound contract function call (e.g. ``contract.functions.deploy(...)``)."""
        # build_transaction estimates gas; keep headroom over the estimate
        tx = contract_function.build_transaction({**self._base_tx(), "value": int(value)})
        tx["gas"] = int(tx["gas"] * GAS_LIMIT_BUFFER)
        tx_hash = self._sign_and_send(tx)
        logger.debug(f"Contract call sent: {tx_hash} (gas limit {tx['gas']:,})")
        return tx_hash

    def send_raw_transaction(self, raw_transaction: bytes) -> str:
        """Broadcast an already-signed transaction verbatim."""
        return Web3.to_hex(self.w3.eth.send_raw_transaction(raw_transaction))

    # ------------------------------------------------------------------ #
    # Confirmation                                                       #
    # ------------------------------------------------------------------ #

    def wait_for_receipt(
        self,
        tx_hash: str,
        timeout: float = DEFAULT_RECEIPT_TIMEOUT,
        cancel: threading.Event | None = None,
        require_success: bool = True,
    ):
        """Poll until the transaction is mined.

        Raises:
            ConfirmationTimeoutError: If no receipt appears within ``timeout`` seconds.
            OperationCancelledError: If ``cancel`` is set while waiting.
            TransactionRevertedError: If the receipt status is 0 and
                ``require_success`` is set.
        """
        deadline = time.monotonic() + timeout
        while True:
            if cancel is not None and cancel.is_set():
                raise OperationCancelledError(f"Cancelled while waiting for {tx_hash}")

            try:
                receipt = self.w3.eth.get_transaction_receipt(tx_hash)
            except TransactionNotFound:
                receipt = None

            if receipt is not None:
                if require_success and receipt.get("status") == 0:
                    raise TransactionRevertedError(tx_hash, receipt)
                return receipt

            if time.monotonic() >= deadline:
                raise ConfirmationTimeoutError(tx_hash, timeout)

            if cancel is not None:
                cancel.wait(self.poll_latency)
            else:
                time.sleep(self.poll_latency)
