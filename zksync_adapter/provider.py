"""
L2 chain client

Typed queries over the node's JSON-RPC (standard eth_* plus the zks_*
namespace), transaction builders for withdrawals and transfers, and the
priority-operation lookup that links an L1 deposit to its L2 transaction.

Usage:
    provider = Provider("http://localhost:3050")
    balance = provider.get_balance(address)
    proof = provider.get_log_proof(withdrawal_hash)
"""

from __future__ import annotations

import logging
import os
import threading
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from eth_account import Account
from eth_utils import keccak, to_checksum_address, to_hex

from .config import config as global_config
from .core.abi import get_interface
from .core.codec import parse_eip712
from .core.constants import (
    CONTRACT_DEPLOYER_ADDRESS,
    EIP712_TX_TYPE,
    ETH_ADDRESS,
    L2_ETH_TOKEN_ADDRESS,
    REQUIRED_L1_TO_L2_GAS_PER_PUBDATA_LIMIT,
    AccountAbstractionVersion,
    AccountNonceOrdering,
    TransactionStatus,
    ZkSyncNetwork,
)
from .core.utils import BytesLike, get_bytes, get_l2_hash_from_priority_op, is_eth
from .errors import ProtocolError, ValidationError
from .infra.polling import wait_for
from .infra.rpc import RpcClient
from .types.chain import (
    BatchDetails,
    Block,
    BlockDetails,
    BridgeAddresses,
    ContractAccountInfo,
    Fee,
    FeeData,
    Log,
    MessageProof,
    Token,
    TransactionDetails,
    TransactionInfo,
    TransactionReceipt,
)
from .types.response import PriorityOpResponse, TransactionResponse
from .types.transaction import Eip712Meta, Transaction712, to_int

logger = logging.getLogger(__name__)

BlockTag = Union[str, int]

_QUANTITY_FIELDS = (
    ("gas", "gas"),
    ("gasLimit", "gas"),
    ("gasPrice", "gasPrice"),
    ("maxFeePerGas", "maxFeePerGas"),
    ("maxPriorityFeePerGas", "maxPriorityFeePerGas"),
    ("value", "value"),
    ("nonce", "nonce"),
    ("chainId", "chainId"),
    ("type", "type"),
)


def _block_tag(tag: BlockTag) -> str:
    """Ints become hex quantities; named tags ("committed" included) and hashes pass through."""
    if isinstance(tag, int):
        return hex(tag)
    return tag


def _is_block_hash(tag: BlockTag) -> bool:
    return isinstance(tag, str) and tag.startswith("0x") and len(tag) == 66


def request_from_transaction712(tx: Transaction712) -> Dict[str, Any]:
    """Web3-style request dict for a Transaction712 (customData kept as Eip712Meta)."""
    request: Dict[str, Any] = {
        "type": EIP712_TX_TYPE,
        "nonce": tx.nonce,
        "gas": tx.gas_limit,
        "value": tx.value,
        "data": tx.data,
        "customData": tx.custom_data,
    }
    if tx.to:
        request["to"] = tx.to
    if tx.from_address:
        request["from"] = tx.from_address
    if tx.chain_id is not None:
        request["chainId"] = tx.chain_id
    if tx.gas_price is not None:
        request["gasPrice"] = tx.gas_price
    if tx.max_fee_per_gas is not None:
        request["maxFeePerGas"] = tx.max_fee_per_gas
    if tx.max_priority_fee_per_gas is not None:
        request["maxPriorityFeePerGas"] = tx.max_priority_fee_per_gas
    return request


class Provider:
    """
    Client for one L2 node

    Main contract and default bridge addresses are fetched once and
    memoized; everything else is queried on each call.

    Attributes:
        rpc: Underlying JSON-RPC transport
    """

    def __init__(self, url: Optional[str] = None, rpc_client: Optional[RpcClient] = None):
        """
        Args:
            url: Node endpoint (defaults to config.provider.url)
            rpc_client: Pre-built transport; takes precedence over url
        """
        self.rpc = rpc_client or RpcClient(url or global_config.provider.url)
        self._lock = threading.Lock()
        self._main_contract: Optional[str] = None
        self._bridge_addresses: Optional[BridgeAddresses] = None

    @classmethod
    def get_default_provider(cls, network: ZkSyncNetwork = ZkSyncNetwork.LOCALHOST) -> "Provider":
        """
        Provider for a known network; ZKSYNC_WEB3_API_URL wins when set.
        """
        env_url = os.getenv("ZKSYNC_WEB3_API_URL")
        if env_url:
            return cls(env_url)
        return cls(ZkSyncNetwork(network).default_url)

    def _send(self, method: str, params: Sequence[Any] = ()) -> Any:
        return self.rpc.call(method, list(params))

    # =========================================================================
    # Request formatting
    # =========================================================================

    def get_rpc_transaction(self, tx: Union[Dict[str, Any], Transaction712]) -> Dict[str, Any]:
        """
        JSON-RPC form of a transaction request.

        Quantities become hex strings. When custom data is present the
        request gets type 0x71 and an `eip712Meta` member; factory deps
        and paymaster input are sent as int lists.
        """
        if isinstance(tx, Transaction712):
            tx = request_from_transaction712(tx)

        result: Dict[str, Any] = {}
        for key in ("from", "to"):
            if tx.get(key):
                result[key] = to_checksum_address(tx[key])
        for key, rpc_key in _QUANTITY_FIELDS:
            if tx.get(key) is not None:
                result[rpc_key] = hex(to_int(tx[key]))
        if tx.get("data") is not None:
            result["data"] = to_hex(get_bytes(tx["data"]))

        custom_data = tx.get("customData")
        if custom_data is None:
            return result

        meta = custom_data if isinstance(custom_data, Eip712Meta) else Eip712Meta.from_dict(custom_data)
        result["type"] = hex(EIP712_TX_TYPE)
        eip712_meta: Dict[str, Any] = {"gasPerPubdata": hex(meta.gas_per_pubdata)}
        if meta.factory_deps:
            eip712_meta["factoryDeps"] = [list(dep) for dep in meta.factory_deps]
        if meta.paymaster_params is not None:
            eip712_meta["paymasterParams"] = {
                "paymaster": meta.paymaster_params.paymaster,
                "paymasterInput": list(meta.paymaster_params.paymaster_input),
            }
        result["eip712Meta"] = eip712_meta
        return result

    def _format_filter(self, log_filter: Dict[str, Any]) -> Dict[str, Any]:
        result = dict(log_filter)
        for key in ("fromBlock", "toBlock"):
            if key in result and result[key] is not None:
                result[key] = _block_tag(result[key])
        address = result.get("address")
        if isinstance(address, str):
            result["address"] = to_checksum_address(address)
        elif address:
            result["address"] = [to_checksum_address(a) for a in address]
        return result

    # =========================================================================
    # Standard queries
    # =========================================================================

    def get_chain_id(self) -> int:
        return to_int(self._send("eth_chainId"))

    def get_block_number(self) -> int:
        return to_int(self._send("eth_blockNumber"))

    def get_block(self, block: BlockTag = "latest", full_transactions: bool = False) -> Optional[Block]:
        """Block by number, tag or hash (None when unknown)."""
        if _is_block_hash(block):
            data = self._send("eth_getBlockByHash", [block, full_transactions])
        else:
            data = self._send("eth_getBlockByNumber", [_block_tag(block), full_transactions])
        return Block.from_rpc(data) if data else None

    def get_code(self, address: str, block_tag: BlockTag = "latest") -> bytes:
        return get_bytes(self._send("eth_getCode", [to_checksum_address(address), _block_tag(block_tag)]) or "0x")

    def get_transaction_count(self, address: str, block_tag: BlockTag = "latest") -> int:
        return to_int(self._send("eth_getTransactionCount", [to_checksum_address(address), _block_tag(block_tag)]))

    def get_gas_price(self) -> int:
        return to_int(self._send("eth_gasPrice"))

    def get_fee_data(self) -> FeeData:
        """
        Current gas price; on a block with a base fee the 1559 pair is
        max_fee = gas price, priority = 0.
        """
        gas_price = self.get_gas_price()
        block = self.get_block("latest")
        if block is None or block.base_fee_per_gas is None:
            return FeeData(gas_price=gas_price)
        return FeeData(gas_price=gas_price, max_fee_per_gas=gas_price, max_priority_fee_per_gas=0)

    def estimate_gas(self, tx: Union[Dict[str, Any], Transaction712]) -> int:
        return to_int(self._send("eth_estimateGas", [self.get_rpc_transaction(tx)]))

    def call(self, tx: Union[Dict[str, Any], Transaction712], block_tag: BlockTag = "latest") -> str:
        """eth_call; returns the raw 0x-hex result"""
        return self._send("eth_call", [self.get_rpc_transaction(tx), _block_tag(block_tag)])

    def call_contract(
        self,
        address: str,
        abi_name: str,
        function_name: str,
        args: Sequence[Any] = (),
        block_tag: BlockTag = "latest",
    ) -> Any:
        """
        Read-only call to a registered ABI function.

        Returns the single output unwrapped, or the output tuple.
        """
        interface = get_interface(abi_name)
        data = interface.encode_function_data(function_name, args)
        raw = self.call({"to": address, "data": data}, block_tag)
        result = interface.decode_function_result(function_name, raw)
        return result[0] if len(result) == 1 else result

    def get_balance(self, address: str, block_tag: BlockTag = "committed", token: Optional[str] = None) -> int:
        """
        ETH balance, or the ERC20 balance of `token`.

        A failing token call reads as a zero balance.
        """
        if token is None or is_eth(token):
            return to_int(self._send("eth_getBalance", [to_checksum_address(address), _block_tag(block_tag)]))
        try:
            return self.call_contract(token, "IERC20", "balanceOf", [to_checksum_address(address)], block_tag)
        except Exception as e:
            logger.debug(f"balanceOf({address}) on {token} failed, reporting 0: {e}")
            return 0

    def get_transaction(self, tx_hash: str) -> Optional[TransactionInfo]:
        data = self._send("eth_getTransactionByHash", [tx_hash])
        return TransactionInfo.from_rpc(data) if data else None

    def get_transaction_receipt(
        self,
        tx_hash: str,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
    ) -> TransactionReceipt:
        """
        Receipt of `tx_hash` once it is in a block.

        Polls every config.polling.interval_seconds while the receipt is
        missing or has no block number.

        Raises:
            TransactionError: confirmation_timeout when a bound is exhausted
        """

        def included_receipt() -> Optional[TransactionReceipt]:
            data = self._send("eth_getTransactionReceipt", [tx_hash])
            if data and data.get("blockNumber"):
                return TransactionReceipt.from_rpc(data)
            return None

        return wait_for(
            included_receipt,
            "wait_receipt",
            timeout=timeout,
            max_attempts=max_attempts,
            tx_hash=tx_hash,
        )

    def get_logs(self, log_filter: Dict[str, Any]) -> List[Log]:
        return [Log.from_rpc(log) for log in self._send("eth_getLogs", [self._format_filter(log_filter)]) or []]

    # =========================================================================
    # Filters
    # =========================================================================

    def new_filter(self, log_filter: Dict[str, Any]) -> int:
        return to_int(self._send("eth_newFilter", [self._format_filter(log_filter)]))

    def new_block_filter(self) -> int:
        return to_int(self._send("eth_newBlockFilter"))

    def new_pending_transactions_filter(self) -> int:
        return to_int(self._send("eth_newPendingTransactionFilter"))

    def get_filter_changes(self, filter_id: int) -> List[Union[Log, str]]:
        """Block/tx hashes for block and pending filters, Logs for log filters."""
        changes = self._send("eth_getFilterChanges", [hex(filter_id)]) or []
        if changes and isinstance(changes[0], str):
            return list(changes)
        return [Log.from_rpc(log) for log in changes]

    # =========================================================================
    # zks_* namespace
    # =========================================================================

    def get_main_contract_address(self) -> str:
        """L1 main (diamond proxy) contract; fetched once."""
        with self._lock:
            if self._main_contract is None:
                self._main_contract = to_checksum_address(self._send("zks_getMainContract"))
                logger.debug(f"Main contract: {self._main_contract}")
            return self._main_contract

    def get_testnet_paymaster_address(self) -> Optional[str]:
        # Not cached: the node may swap it at any time
        address = self._send("zks_getTestnetPaymaster")
        return to_checksum_address(address) if address else None

    def get_default_bridge_addresses(self) -> BridgeAddresses:
        """Default ERC20 and WETH bridges on both layers; fetched once."""
        with self._lock:
            if self._bridge_addresses is None:
                self._bridge_addresses = BridgeAddresses.from_rpc(self._send("zks_getBridgeContracts"))
                logger.debug(f"Bridge addresses: {self._bridge_addresses}")
            return self._bridge_addresses

    def get_confirmed_tokens(self, start: int = 0, limit: int = 255) -> List[Token]:
        return [Token.from_rpc(token) for token in self._send("zks_getConfirmedTokens", [start, limit]) or []]

    def get_all_account_balances(self, address: str) -> Dict[str, int]:
        balances = self._send("zks_getAllAccountBalances", [to_checksum_address(address)]) or {}
        return {to_checksum_address(token): to_int(amount) for token, amount in balances.items()}

    def l1_chain_id(self) -> int:
        return to_int(self._send("zks_L1ChainId"))

    def get_l1_batch_number(self) -> int:
        return to_int(self._send("zks_L1BatchNumber"))

    def get_l1_batch_details(self, number: int) -> Optional[BatchDetails]:
        data = self._send("zks_getL1BatchDetails", [number])
        return BatchDetails.from_rpc(data) if data else None

    def get_l1_batch_block_range(self, l1_batch_number: int) -> Optional[Tuple[int, int]]:
        block_range = self._send("zks_getL1BatchBlockRange", [l1_batch_number])
        if block_range is None:
            return None
        return to_int(block_range[0]), to_int(block_range[1])

    def get_block_details(self, number: int) -> Optional[BlockDetails]:
        data = self._send("zks_getBlockDetails", [number])
        return BlockDetails.from_rpc(data) if data else None

    def get_transaction_details(self, tx_hash: str) -> Optional[TransactionDetails]:
        data = self._send("zks_getTransactionDetails", [tx_hash])
        return TransactionDetails.from_rpc(data) if data else None

    def get_bytecode_by_hash(self, bytecode_hash: BytesLike) -> Optional[bytes]:
        code = self._send("zks_getBytecodeByHash", [to_hex(get_bytes(bytecode_hash))])
        return get_bytes(code) if code is not None else None

    def get_raw_block_transactions(self, number: int) -> List[Dict[str, Any]]:
        return list(self._send("zks_getRawBlockTransactions", [number]) or [])

    def estimate_gas_l1(self, tx: Union[Dict[str, Any], Transaction712]) -> int:
        """L2 gas limit for an L1->L2 request (zks_estimateGasL1ToL2)."""
        return to_int(self._send("zks_estimateGasL1ToL2", [self.get_rpc_transaction(tx)]))

    def estimate_fee(self, tx: Union[Dict[str, Any], Transaction712]) -> Fee:
        return Fee.from_rpc(self._send("zks_estimateFee", [self.get_rpc_transaction(tx)]))

    def get_log_proof(self, tx_hash: BytesLike, index: Optional[int] = None) -> Optional[MessageProof]:
        """
        Merkle proof for the `index`-th L2->L1 log of a transaction.

        None while the batch holding the transaction is not yet sealed.
        """
        data = self._send("zks_getL2ToL1LogProof", [to_hex(get_bytes(tx_hash)), index])
        return MessageProof.from_rpc(data) if data else None

    # =========================================================================
    # Token addresses
    # =========================================================================

    def _query_weth_bridge(self, function_name: str, token: str) -> Optional[str]:
        """
        Ask the L2 WETH bridge for the counterpart of `token`.

        Any failure (no WETH bridge, revert, transport) reads as
        "not WETH" and returns None.
        """
        bridges = self.get_default_bridge_addresses()
        if not bridges.weth_l2:
            return None
        try:
            counterpart = self.call_contract(bridges.weth_l2, "IL2Bridge", function_name, [to_checksum_address(token)])
        except Exception as e:
            logger.debug(f"WETH bridge {function_name}({token}) lookup failed: {e}")
            return None
        if int(counterpart, 16) == 0:
            return None
        return to_checksum_address(counterpart)

    def l2_token_address(self, token: str) -> str:
        """L2 address of L1 `token`."""
        if token.lower() == ETH_ADDRESS:
            return ETH_ADDRESS
        weth = self._query_weth_bridge("l2TokenAddress", token)
        if weth is not None:
            return weth
        bridges = self.get_default_bridge_addresses()
        return to_checksum_address(
            self.call_contract(bridges.erc20_l2, "IL2Bridge", "l2TokenAddress", [to_checksum_address(token)])
        )

    def l1_token_address(self, token: str) -> str:
        """L1 address of L2 `token`."""
        if token.lower() == ETH_ADDRESS:
            return ETH_ADDRESS
        weth = self._query_weth_bridge("l1TokenAddress", token)
        if weth is not None:
            return weth
        bridges = self.get_default_bridge_addresses()
        return to_checksum_address(
            self.call_contract(bridges.erc20_l2, "IL2Bridge", "l1TokenAddress", [to_checksum_address(token)])
        )

    # =========================================================================
    # Transaction builders
    # =========================================================================

    def get_withdraw_tx(
        self,
        token: str,
        amount: int,
        from_address: Optional[str] = None,
        to: Optional[str] = None,
        bridge_address: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Unsigned L2 transaction withdrawing `amount` of `token` to L1.

        ETH goes through the L2 ETH token contract and must carry
        value == amount; tokens go through the WETH or default ERC20
        L2 bridge.

        Raises:
            ValidationError: no target address, or value != amount for ETH
        """
        if to is None and from_address is None:
            raise ValidationError.invalid("to", None, "withdrawal target address is undefined")
        to = to_checksum_address(to or from_address)

        tx = dict(overrides or {})
        if from_address is not None:
            tx.setdefault("from", to_checksum_address(from_address))

        if is_eth(token):
            value = tx.get("value") or amount
            if to_int(value) != amount:
                raise ValidationError.invalid("value", value, "The tx.value is not equal to the value withdrawn")
            tx.update(
                to=to_checksum_address(L2_ETH_TOKEN_ADDRESS),
                data=get_interface("IEthToken").encode_function_data("withdraw", [to]),
                value=amount,
            )
            return tx

        if bridge_address is None:
            bridges = self.get_default_bridge_addresses()
            l1_weth = self._query_weth_bridge("l1TokenAddress", token)
            bridge_address = bridges.weth_l2 if l1_weth is not None else bridges.erc20_l2

        tx.update(
            to=to_checksum_address(bridge_address),
            data=get_interface("IL2Bridge").encode_function_data(
                "withdraw", [to, to_checksum_address(token), amount]
            ),
        )
        return tx

    def estimate_gas_withdraw(self, token: str, amount: int, **kwargs) -> int:
        return self.estimate_gas(self.get_withdraw_tx(token, amount, **kwargs))

    def get_transfer_tx(
        self,
        to: str,
        amount: int,
        from_address: Optional[str] = None,
        token: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Unsigned L2 transfer of ETH (plain value) or an ERC20 token."""
        tx = dict(overrides or {})
        if from_address is not None:
            tx.setdefault("from", to_checksum_address(from_address))

        if token is None or token.lower() == ETH_ADDRESS:
            tx.update(to=to_checksum_address(to), value=amount)
            return tx

        tx.update(
            to=to_checksum_address(token),
            data=get_interface("IERC20").encode_function_data("transfer", [to_checksum_address(to), amount]),
        )
        return tx

    def estimate_gas_transfer(self, to: str, amount: int, **kwargs) -> int:
        return self.estimate_gas(self.get_transfer_tx(to, amount, **kwargs))

    def estimate_l1_to_l2_execute(
        self,
        contract_address: str,
        calldata: BytesLike,
        caller: Optional[str] = None,
        l2_value: int = 0,
        factory_deps: Optional[List[BytesLike]] = None,
        gas_per_pubdata_byte: Optional[int] = None,
    ) -> int:
        """
        L2 gas limit of an L1->L2 execute request.

        Without a caller a fresh random address is used; estimating for
        the zero address would under-count storage writes.
        """
        if gas_per_pubdata_byte is None:
            gas_per_pubdata_byte = REQUIRED_L1_TO_L2_GAS_PER_PUBDATA_LIMIT
        if caller is None:
            caller = Account.create().address

        custom_data: Dict[str, Any] = {"gasPerPubdata": gas_per_pubdata_byte}
        if factory_deps:
            custom_data["factoryDeps"] = [get_bytes(dep) for dep in factory_deps]

        return self.estimate_gas_l1({
            "from": caller,
            "data": calldata,
            "to": contract_address,
            "value": l2_value,
            "customData": custom_data,
        })

    # =========================================================================
    # Status & submission
    # =========================================================================

    def get_transaction_status(self, tx_hash: str) -> TransactionStatus:
        tx = self.get_transaction(tx_hash)
        if tx is None:
            return TransactionStatus.NOT_FOUND
        if tx.block_number is None:
            return TransactionStatus.PROCESSING
        finalized = self.get_block("finalized")
        if finalized is not None and tx.block_number <= finalized.number:
            return TransactionStatus.FINALIZED
        return TransactionStatus.COMMITTED

    def send_raw_transaction(self, raw_tx: BytesLike) -> str:
        return self._send("eth_sendRawTransaction", [to_hex(get_bytes(raw_tx))])

    def broadcast_transaction(self, raw_tx: BytesLike) -> TransactionResponse:
        """
        Submit a signed transaction and check the node echoes its hash.

        Raises:
            ProtocolError: returned hash differs from the locally computed one
        """
        raw = get_bytes(raw_tx)
        if raw and raw[0] == EIP712_TX_TYPE:
            expected = parse_eip712(raw).hash
        else:
            expected = to_hex(keccak(raw))

        returned = self.send_raw_transaction(raw)
        if expected is None or returned is None or expected.lower() != returned.lower():
            raise ProtocolError.hash_mismatch(expected, returned)

        logger.info(f"L2 transaction submitted: {returned}")
        return TransactionResponse(self, returned)

    # =========================================================================
    # Priority operations
    # =========================================================================

    def get_priority_op_response(self, l1_tx_hash, web3_l1) -> PriorityOpResponse:
        return PriorityOpResponse(self, web3_l1, l1_tx_hash)

    def get_l2_transaction_from_priority_op(
        self,
        priority_op: PriorityOpResponse,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
    ) -> TransactionResponse:
        """
        L2 transaction created by an L1 priority request.

        Waits for the L1 receipt, derives the L2 hash from its
        NewPriorityRequest log, then polls until the node knows the hash.
        """
        receipt = priority_op.wait_l1_commit(timeout=timeout, max_attempts=max_attempts)
        l2_hash = get_l2_hash_from_priority_op(receipt, self.get_main_contract_address())
        logger.debug(f"Priority op {priority_op.hash} -> L2 tx {l2_hash}")

        def known_status() -> Optional[TransactionStatus]:
            status = self.get_transaction_status(l2_hash)
            return None if status == TransactionStatus.NOT_FOUND else status

        wait_for(
            known_status,
            "wait_priority_op",
            timeout=timeout,
            max_attempts=max_attempts,
            tx_hash=l2_hash,
        )
        return TransactionResponse(self, l2_hash, self.get_transaction(l2_hash))

    def get_contract_account_info(self, address: str) -> ContractAccountInfo:
        aa_version, nonce_ordering = self.call_contract(
            CONTRACT_DEPLOYER_ADDRESS, "ContractDeployer", "getAccountInfo", [to_checksum_address(address)]
        )
        return ContractAccountInfo(
            supported_aa_version=AccountAbstractionVersion(aa_version),
            nonce_ordering=AccountNonceOrdering(nonce_ordering),
        )

    def close(self):
        self.rpc.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self) -> str:
        return f"Provider(endpoint={self.rpc.endpoint})"
