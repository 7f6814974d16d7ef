"""
Capabilities the bridging adapters need from their owner

An adapter never holds a key: it builds unsigned transactions and hands
them to whoever implements one of these interfaces (a Wallet, or a void
signer that refuses to send).
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from ..types import Transaction712, TransactionResponse


class L1TransactionCapable(ABC):
    """
    Owner able to submit transactions on L1

    Implementations fill nonce, chain id and gas fields that are missing
    from the request.
    """

    @property
    @abstractmethod
    def address(self) -> str:
        """Checksummed account address"""
        ...

    @abstractmethod
    def send_l1_transaction(self, tx: Dict[str, Any]) -> str:
        """
        Sign and submit an L1 transaction

        Args:
            tx: web3 TxParams dict (to, data, value, optional gas/fee fields)

        Returns:
            L1 transaction hash (0x hex)

        Raises:
            SignerError: If the owner cannot sign
        """
        ...


class L2TransactionCapable(ABC):
    """
    Owner able to submit transactions on L2
    """

    @property
    @abstractmethod
    def address(self) -> str:
        """Checksummed account address"""
        ...

    @abstractmethod
    def send_transaction(self, tx: Union[Dict[str, Any], "Transaction712"]) -> "TransactionResponse":
        """
        Populate, sign and broadcast an L2 transaction

        Raises:
            SignerError: If the owner cannot sign
        """
        ...
