"""
Handles for submitted transactions

Both handles are stateless apart from the hash: every wait re-queries
the chain, so they can be shared and re-awaited freely.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from eth_utils import to_hex
from web3.exceptions import TransactionNotFound

from .chain import TransactionInfo, TransactionReceipt
from ..infra.polling import wait_for

if TYPE_CHECKING:
    from web3 import Web3
    from ..provider import Provider

logger = logging.getLogger(__name__)


class TransactionResponse:
    """
    Submitted L2 transaction

    Attributes:
        hash: L2 transaction hash
        info: Transaction data as last fetched (None if only the hash is known)
    """

    def __init__(self, provider: "Provider", tx_hash: str, info: Optional[TransactionInfo] = None):
        self._provider = provider
        self.hash = tx_hash
        self.info = info

    @property
    def l1_batch_number(self) -> Optional[int]:
        return self.info.l1_batch_number if self.info else None

    @property
    def l1_batch_tx_index(self) -> Optional[int]:
        return self.info.l1_batch_tx_index if self.info else None

    def wait(self, timeout: Optional[float] = None, max_attempts: Optional[int] = None) -> TransactionReceipt:
        """Block until the transaction is included in a block."""
        return self._provider.get_transaction_receipt(self.hash, timeout=timeout, max_attempts=max_attempts)

    def wait_finalize(self, timeout: Optional[float] = None, max_attempts: Optional[int] = None) -> TransactionReceipt:
        """Block until the including block is at or below the finalized head."""
        receipt = self.wait(timeout=timeout, max_attempts=max_attempts)

        def finalized_receipt() -> Optional[TransactionReceipt]:
            finalized = self._provider.get_block("finalized")
            if finalized is not None and receipt.block_number <= finalized.number:
                return self._provider.get_transaction_receipt(self.hash)
            return None

        return wait_for(
            finalized_receipt,
            "wait_finalize",
            timeout=timeout,
            max_attempts=max_attempts,
            tx_hash=self.hash,
        )

    def __repr__(self) -> str:
        return f"TransactionResponse(hash={self.hash})"


class PriorityOpResponse:
    """
    L1 transaction that enqueues an L2 priority operation

    Lifecycle: wait_l1_commit() -> L1 receipt, wait() -> L2 receipt,
    wait_finalize() -> finalized L2 receipt.
    """

    def __init__(self, provider: "Provider", web3_l1: "Web3", l1_tx_hash):
        self._provider = provider
        self._web3 = web3_l1
        self.hash = l1_tx_hash if isinstance(l1_tx_hash, str) else to_hex(l1_tx_hash)

    def wait_l1_commit(self, timeout: Optional[float] = None, max_attempts: Optional[int] = None) -> Any:
        """Block until the L1 transaction is mined; returns the web3 receipt."""

        def l1_receipt():
            try:
                return self._web3.eth.get_transaction_receipt(self.hash)
            except TransactionNotFound:
                return None

        return wait_for(
            l1_receipt,
            "wait_l1_commit",
            timeout=timeout,
            max_attempts=max_attempts,
            tx_hash=self.hash,
        )

    def get_l2_transaction(self, timeout: Optional[float] = None, max_attempts: Optional[int] = None) -> TransactionResponse:
        return self._provider.get_l2_transaction_from_priority_op(
            self, timeout=timeout, max_attempts=max_attempts
        )

    def wait(self, timeout: Optional[float] = None, max_attempts: Optional[int] = None) -> TransactionReceipt:
        return self.get_l2_transaction(timeout, max_attempts).wait(timeout, max_attempts)

    def wait_finalize(self, timeout: Optional[float] = None, max_attempts: Optional[int] = None) -> TransactionReceipt:
        return self.get_l2_transaction(timeout, max_attempts).wait_finalize(timeout, max_attempts)

    def __repr__(self) -> str:
        return f"PriorityOpResponse(l1_hash={self.hash})"
