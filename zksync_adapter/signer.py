"""
EIP-712 transaction signer and read-only (void) signers

Usage:
    signer = EIP712Signer(EVMSigner.from_env(), chain_id=324)
    tx.custom_data.custom_signature = signer.sign(tx)

    watcher = L2VoidSigner("0x...", provider)
    watcher.get_balance()
"""

import logging
from typing import Any, Dict, Union

from eth_account.signers.local import LocalAccount
from web3 import Web3

from .adapters.base import L1TransactionCapable, L2TransactionCapable
from .adapters.l1 import L1Adapter
from .adapters.l2 import L2Adapter
from .core.eip712 import get_domain, get_sign_input, get_signable_message, get_signed_digest
from .errors import SignerError
from .infra.evm_signer import EVMSigner
from .types.response import TransactionResponse
from .types.transaction import Transaction712

logger = logging.getLogger(__name__)


class EIP712Signer:
    """
    Signs 0x71 transactions as EIP-712 typed data under the
    {name: "zkSync", version: "2", chainId} domain
    """

    def __init__(self, account: Union[EVMSigner, LocalAccount], chain_id: int):
        if isinstance(account, LocalAccount):
            account = EVMSigner(account)
        self._account = account
        self.chain_id = chain_id

    @property
    def address(self) -> str:
        return self._account.address

    @property
    def domain(self) -> Dict[str, Any]:
        return get_domain(self.chain_id)

    def _with_chain_id(self, tx: Transaction712) -> Transaction712:
        if tx.chain_id is None:
            return tx.copy(chain_id=self.chain_id)
        return tx

    def sign(self, tx: Transaction712) -> bytes:
        """
        Sign `tx` and return the 65-byte r||s||v signature.

        Raises:
            SignerError: signing failed
        """
        return self._account.sign_signable(get_signable_message(self._with_chain_id(tx)))

    @staticmethod
    def get_sign_input(tx: Transaction712) -> Dict[str, Any]:
        return get_sign_input(tx)

    def get_signed_digest(self, tx: Transaction712) -> bytes:
        return get_signed_digest(self._with_chain_id(tx))

    def __repr__(self) -> str:
        return f"EIP712Signer(address={self.address}, chain_id={self.chain_id})"


# ============================================================================
# Void signers
# ============================================================================

class L2VoidSigner(L2Adapter, L2TransactionCapable):
    """
    Address-only L2 account: every read works, sending does not
    """

    def __init__(self, address: str, provider):
        self._address = Web3.to_checksum_address(address)
        super().__init__(self, provider)

    @property
    def address(self) -> str:
        return self._address

    def get_nonce(self, block_tag: Any = "latest") -> int:
        return self.provider.get_transaction_count(self.address, block_tag)

    def send_transaction(self, tx) -> TransactionResponse:
        raise SignerError.read_only(self.address)

    def sign_transaction(self, tx) -> bytes:
        raise SignerError.read_only(self.address)

    def connect(self, provider) -> "L2VoidSigner":
        return L2VoidSigner(self.address, provider)

    def __repr__(self) -> str:
        return f"L2VoidSigner(address={self.address})"


class L1VoidSigner(L1Adapter, L1TransactionCapable):
    """
    Address-only L1 account: quotes, balances and transaction building
    work; anything that would submit raises SignerError.read_only
    """

    def __init__(self, address: str, provider, web3_l1: Web3):
        self._address = Web3.to_checksum_address(address)
        super().__init__(self, provider, web3_l1)

    @property
    def address(self) -> str:
        return self._address

    def send_l1_transaction(self, tx: Dict[str, Any]) -> str:
        raise SignerError.read_only(self.address)

    def connect_to_l1(self, web3_l1: Web3) -> "L1VoidSigner":
        return L1VoidSigner(self.address, self.provider, web3_l1)

    def __repr__(self) -> str:
        return f"L1VoidSigner(address={self.address})"
