"""
Wallet: one private key acting on both layers

L2 transactions are populated against the L2 node and signed either as
plain legacy/1559 transactions or as 0x71 EIP-712 transactions. L1
transactions are signed locally and sent through the L1 Web3 instance.

Usage:
    wallet = Wallet.from_env(provider_l2=Provider(), web3_l1=create_web3())
    wallet.deposit(token=ETH_ADDRESS, amount=10**16).wait()
    wallet.transfer(to="0x...", amount=10**15).wait()
"""

import logging
from dataclasses import replace
from typing import Any, Dict, Optional, Union

from web3 import Web3

from .adapters.base import L1TransactionCapable, L2TransactionCapable
from .adapters.l1 import L1Adapter, get_l1_fee_data, insert_gas_price
from .adapters.l2 import L2Adapter, fill_custom_data
from .core.codec import serialize_eip712
from .core.constants import EIP712_TX_TYPE
from .core.utils import BytesLike
from .errors import ConfigurationError, TransactionError
from .infra.evm_signer import EVMSigner
from .provider import Provider, request_from_transaction712
from .signer import EIP712Signer
from .types.chain import FeeData, FinalizeWithdrawalParams, FullDepositFee
from .types.response import PriorityOpResponse, TransactionResponse
from .types.transaction import Transaction712, TransactionType, is_eip712_request, to_int

logger = logging.getLogger(__name__)

TxLike = Union[Dict[str, Any], Transaction712]


class Wallet(L1TransactionCapable, L2TransactionCapable):
    """
    Signing account on L2, optionally connected to L1

    Attributes:
        provider: L2 Provider
        web3: L1 Web3 instance (None until connected)
    """

    def __init__(
        self,
        private_key: Union[str, bytes, EVMSigner],
        provider_l2: Optional[Provider] = None,
        web3_l1: Optional[Web3] = None,
    ):
        """
        Args:
            private_key: Hex private key or a ready EVMSigner
            provider_l2: L2 Provider (defaults to config.provider.url)
            web3_l1: L1 Web3; bridging operations need it
        """
        if isinstance(private_key, EVMSigner):
            self._signer = private_key
        else:
            if isinstance(private_key, bytes):
                private_key = private_key.hex()
            self._signer = EVMSigner.from_private_key(private_key)

        self.provider = provider_l2 or Provider()
        self.web3 = web3_l1
        self._l2 = L2Adapter(self, self.provider)
        self._l1 = L1Adapter(self, self.provider, web3_l1) if web3_l1 is not None else None

    @classmethod
    def from_env(
        cls,
        provider_l2: Optional[Provider] = None,
        web3_l1: Optional[Web3] = None,
        env_var: Optional[str] = None,
    ) -> "Wallet":
        """Key from `env_var` (default: config.signer.private_key_env)."""
        return cls(EVMSigner.from_env(env_var), provider_l2, web3_l1)

    @classmethod
    def from_keystore(
        cls,
        path: str,
        password: str,
        provider_l2: Optional[Provider] = None,
        web3_l1: Optional[Web3] = None,
    ) -> "Wallet":
        return cls(EVMSigner.from_keystore(path, password), provider_l2, web3_l1)

    # =========================================================================
    # Identity & connections
    # =========================================================================

    @property
    def address(self) -> str:
        return self._signer.address

    @property
    def signer(self) -> EVMSigner:
        return self._signer

    @property
    def l1(self) -> L1Adapter:
        """
        Raises:
            ConfigurationError: wallet not connected to L1
        """
        if self._l1 is None:
            raise ConfigurationError.missing("web3_l1")
        return self._l1

    @property
    def l2(self) -> L2Adapter:
        return self._l2

    def eth_wallet(self) -> EVMSigner:
        """L1 signer for the same key; requires an L1 connection."""
        if self.web3 is None:
            raise ConfigurationError.missing("web3_l1")
        return self._signer

    def connect(self, provider_l2: Provider) -> "Wallet":
        return Wallet(self._signer, provider_l2, self.web3)

    def connect_to_l1(self, web3_l1: Web3) -> "Wallet":
        return Wallet(self._signer, self.provider, web3_l1)

    def get_nonce(self, block_tag: Any = "latest") -> int:
        return self.provider.get_transaction_count(self.address, block_tag)

    def _check_from(self, tx: Dict[str, Any]) -> None:
        sender = tx.get("from")
        if sender is not None and sender.lower() != self.address.lower():
            raise TransactionError.from_mismatch(self.address, sender)

    # =========================================================================
    # L2 transactions
    # =========================================================================

    def populate_transaction(self, tx: TxLike) -> Dict[str, Any]:
        """
        Fill nonce, chainId, gas and fee fields of an L2 request.

        An untyped request without customData becomes a legacy (type 0)
        transaction. A 0x71 request also gets value 0, data "0x" and
        customData defaults (gasPerPubdata 50 000, no factory deps).

        Raises:
            TransactionError: `from` is not this wallet
        """
        if isinstance(tx, Transaction712):
            tx = request_from_transaction712(tx)
        tx = dict(tx)
        self._check_from(tx)
        tx["from"] = self.address

        if tx.get("type") is None and tx.get("customData") is None:
            tx["type"] = TransactionType.LEGACY

        if tx.get("nonce") is None:
            tx["nonce"] = self.get_nonce("pending")
        if tx.get("chainId") is None:
            tx["chainId"] = self.provider.get_chain_id()

        if not is_eip712_request(tx):
            if to_int(tx["type"]) == TransactionType.EIP1559:
                if tx.get("maxFeePerGas") is None:
                    fee_data = self.provider.get_fee_data()
                    tx["maxFeePerGas"] = fee_data.max_fee_per_gas or fee_data.gas_price
                    tx["maxPriorityFeePerGas"] = fee_data.max_priority_fee_per_gas or 0
            elif tx.get("gasPrice") is None:
                tx["gasPrice"] = self.provider.get_gas_price()
            if tx.get("gas") is None:
                tx["gas"] = self.provider.estimate_gas(tx)
            return tx

        tx["type"] = EIP712_TX_TYPE
        tx.setdefault("value", 0)
        tx.setdefault("data", "0x")
        tx["customData"] = fill_custom_data(tx.get("customData"))
        if tx.get("gasPrice") is None and tx.get("maxFeePerGas") is None:
            tx["gasPrice"] = self.provider.get_gas_price()
        if tx.get("gas") is None:
            tx["gas"] = self.provider.estimate_gas(tx)
        return tx

    def sign_transaction(self, tx: TxLike) -> bytes:
        """
        Sign a populated L2 request and return the raw transaction.

        0x71 requests are signed as EIP-712 typed data; the signature
        goes into customSignature and the envelope is RLP-serialized.

        Raises:
            TransactionError: `from` is not this wallet
            SignerError: signing failed
        """
        if isinstance(tx, Transaction712):
            tx = request_from_transaction712(tx)
        tx = dict(tx)
        self._check_from(tx)

        if not is_eip712_request(tx):
            tx.pop("from", None)
            tx_type = to_int(tx.get("type"))
            if tx_type == TransactionType.LEGACY:
                # eth_account only accepts legacy transactions untyped
                tx.pop("type", None)
            elif tx_type == TransactionType.EIP1559 and tx.get("maxFeePerGas") is None:
                tx["maxFeePerGas"] = self.provider.get_gas_price()
                tx.setdefault("maxPriorityFeePerGas", 0)
            raw, _ = self._signer.sign_transaction(tx)
            return raw

        tx["from"] = self.address
        unsigned = Transaction712.from_request(tx)
        signature = EIP712Signer(self._signer, unsigned.chain_id).sign(unsigned)
        signed = unsigned.copy(custom_data=replace(unsigned.custom_data, custom_signature=signature))
        return serialize_eip712(signed)

    def send_transaction(self, tx: TxLike) -> TransactionResponse:
        """Populate, sign and broadcast an L2 transaction."""
        raw = self.sign_transaction(self.populate_transaction(tx))
        return self.provider.broadcast_transaction(raw)

    # =========================================================================
    # L1 transactions
    # =========================================================================

    def send_l1_transaction(self, tx: Dict[str, Any]) -> str:
        """
        Sign and send an L1 transaction built by the L1 adapter.

        Missing nonce, chainId, gas and fee fields are filled from L1.

        Raises:
            ConfigurationError: wallet not connected to L1
            TransactionError: `from` mismatch or the node rejected the transaction
        """
        web3 = self.l1.web3
        tx = dict(tx)
        self._check_from(tx)
        tx.pop("from", None)

        if tx.get("nonce") is None:
            tx["nonce"] = web3.eth.get_transaction_count(self.address, "pending")
        if tx.get("chainId") is None:
            tx["chainId"] = web3.eth.chain_id
        tx.setdefault("value", 0)
        if tx.get("gas") is None:
            estimate_tx = {k: v for k, v in tx.items() if k not in ("gasPrice", "maxFeePerGas", "maxPriorityFeePerGas")}
            tx["gas"] = web3.eth.estimate_gas({**estimate_tx, "from": self.address})
        insert_gas_price(web3, tx)
        if tx.get("maxFeePerGas") is not None:
            tx.setdefault("maxPriorityFeePerGas", 0)

        raw, tx_hash = self._signer.sign_transaction(tx)
        try:
            web3.eth.send_raw_transaction(raw)
        except Exception as e:
            raise TransactionError.send_failed(str(e), e)
        logger.debug(f"L1 transaction {tx_hash} sent from {self.address} (nonce {tx['nonce']})")
        return tx_hash

    # =========================================================================
    # L2 operations
    # =========================================================================

    def get_balance(self, token: Optional[str] = None, block_tag: Any = "committed") -> int:
        return self._l2.get_balance(token, block_tag)

    def get_all_balances(self) -> Dict[str, int]:
        return self._l2.get_all_balances()

    def get_deployment_nonce(self) -> int:
        return self._l2.get_deployment_nonce()

    def get_l2_bridge_contracts(self):
        return self._l2.get_l2_bridge_contracts()

    def withdraw(self, token: str, amount: int, **kwargs) -> TransactionResponse:
        return self._l2.withdraw(token, amount, **kwargs)

    def transfer(self, to: str, amount: int, **kwargs) -> TransactionResponse:
        return self._l2.transfer(to, amount, **kwargs)

    # =========================================================================
    # L1 operations
    # =========================================================================

    def get_main_contract(self):
        return self.l1.get_main_contract()

    def get_l1_bridge_contracts(self):
        return self.l1.get_l1_bridge_contracts()

    def get_balance_l1(self, token: Optional[str] = None, block_tag: Any = "latest") -> int:
        return self.l1.get_balance_l1(token, block_tag)

    def get_allowance_l1(self, token: str, bridge_address: Optional[str] = None, block_tag: Any = "latest") -> int:
        return self.l1.get_allowance_l1(token, bridge_address, block_tag)

    def l2_token_address(self, token: str) -> str:
        return self.l1.l2_token_address(token)

    def approve_erc20(self, token: str, amount: int, **kwargs) -> str:
        return self.l1.approve_erc20(token, amount, **kwargs)

    def get_base_cost(self, gas_limit: int, **kwargs) -> int:
        return self.l1.get_base_cost(gas_limit, **kwargs)

    def get_l1_fee_data(self) -> FeeData:
        return get_l1_fee_data(self.l1.web3)

    def get_deposit_tx(self, token: str, amount: int, **kwargs) -> Dict[str, Any]:
        return self.l1.get_deposit_tx(token, amount, **kwargs)

    def estimate_gas_deposit(self, token: str, amount: int, **kwargs) -> int:
        return self.l1.estimate_gas_deposit(token, amount, **kwargs)

    def deposit(self, token: str, amount: int, **kwargs) -> PriorityOpResponse:
        return self.l1.deposit(token, amount, **kwargs)

    def get_full_required_deposit_fee(self, token: str, **kwargs) -> FullDepositFee:
        return self.l1.get_full_required_deposit_fee(token, **kwargs)

    def finalize_withdrawal_params(self, withdrawal_hash: str, index: int = 0) -> FinalizeWithdrawalParams:
        return self.l1.finalize_withdrawal_params(withdrawal_hash, index)

    def finalize_withdrawal(self, withdrawal_hash: str, index: int = 0, overrides: Optional[Dict[str, Any]] = None) -> str:
        return self.l1.finalize_withdrawal(withdrawal_hash, index, overrides)

    def is_withdrawal_finalized(self, withdrawal_hash: str, index: int = 0) -> bool:
        return self.l1.is_withdrawal_finalized(withdrawal_hash, index)

    def claim_failed_deposit(self, deposit_hash: str, overrides: Optional[Dict[str, Any]] = None) -> str:
        return self.l1.claim_failed_deposit(deposit_hash, overrides)

    def get_request_execute_tx(self, contract_address: str, calldata: BytesLike, **kwargs) -> Dict[str, Any]:
        return self.l1.get_request_execute_tx(contract_address, calldata, **kwargs)

    def estimate_gas_request_execute(self, contract_address: str, calldata: BytesLike, **kwargs) -> int:
        return self.l1.estimate_gas_request_execute(contract_address, calldata, **kwargs)

    def request_execute(self, contract_address: str, calldata: BytesLike, **kwargs) -> PriorityOpResponse:
        return self.l1.request_execute(contract_address, calldata, **kwargs)

    def __repr__(self) -> str:
        return f"Wallet(address={self.address}, l1={'connected' if self.web3 is not None else 'none'})"
