"""
Chain data types

RPC payloads are decoded into these dataclasses once, at the point they
enter the client; hex quantities become ints and the rollup-specific
batch fields are kept alongside the standard ones.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from eth_utils import to_checksum_address

from .transaction import to_int
from ..core.constants import AccountAbstractionVersion, AccountNonceOrdering


def _opt_int(value) -> Optional[int]:
    return None if value is None else to_int(value)


def _opt_address(value) -> Optional[str]:
    return to_checksum_address(value) if value else None


@dataclass(frozen=True)
class BridgeAddresses:
    """Default bridge contracts on both layers"""
    erc20_l1: str
    erc20_l2: str
    weth_l1: Optional[str] = None
    weth_l2: Optional[str] = None

    @classmethod
    def from_rpc(cls, data: Dict[str, Any]) -> "BridgeAddresses":
        return cls(
            erc20_l1=_opt_address(data.get("l1Erc20DefaultBridge")),
            erc20_l2=_opt_address(data.get("l2Erc20DefaultBridge")),
            weth_l1=_opt_address(data.get("l1WethBridge")),
            weth_l2=_opt_address(data.get("l2WethBridge")),
        )


@dataclass(frozen=True)
class MessageProof:
    """
    Merkle proof of an L2->L1 log

    Attributes:
        id: Position of the log in the batch's message tree
        proof: Sibling hashes
        root: Tree root
    """
    id: int
    proof: List[str]
    root: str

    @classmethod
    def from_rpc(cls, data: Dict[str, Any]) -> "MessageProof":
        return cls(id=to_int(data["id"]), proof=list(data.get("proof") or []), root=data.get("root"))


@dataclass(frozen=True)
class FullDepositFee:
    """
    Fee quote for a deposit

    Either gas_price (legacy L1) or the max fee pair (1559 L1) is set.
    """
    base_cost: int
    l1_gas_limit: int
    l2_gas_limit: int
    gas_price: Optional[int] = None
    max_fee_per_gas: Optional[int] = None
    max_priority_fee_per_gas: Optional[int] = None


@dataclass(frozen=True)
class Fee:
    gas_limit: int
    gas_per_pubdata_limit: int
    max_priority_fee_per_gas: int
    max_fee_per_gas: int

    @classmethod
    def from_rpc(cls, data: Dict[str, Any]) -> "Fee":
        return cls(
            gas_limit=to_int(data.get("gas_limit")),
            gas_per_pubdata_limit=to_int(data.get("gas_per_pubdata_limit")),
            max_priority_fee_per_gas=to_int(data.get("max_priority_fee_per_gas")),
            max_fee_per_gas=to_int(data.get("max_fee_per_gas")),
        )


@dataclass(frozen=True)
class FeeData:
    gas_price: Optional[int]
    max_fee_per_gas: Optional[int] = None
    max_priority_fee_per_gas: Optional[int] = None


@dataclass(frozen=True)
class Token:
    l1_address: str
    l2_address: str
    name: str
    symbol: str
    decimals: int

    @property
    def address(self) -> str:
        return self.l2_address

    @classmethod
    def from_rpc(cls, data: Dict[str, Any]) -> "Token":
        return cls(
            l1_address=to_checksum_address(data["l1Address"]),
            l2_address=to_checksum_address(data["l2Address"]),
            name=data.get("name", ""),
            symbol=data.get("symbol", ""),
            decimals=to_int(data.get("decimals")),
        )


@dataclass(frozen=True)
class DeploymentInfo:
    sender: str
    bytecode_hash: str
    deployed_address: str


@dataclass(frozen=True)
class ContractAccountInfo:
    supported_aa_version: AccountAbstractionVersion
    nonce_ordering: AccountNonceOrdering


@dataclass(frozen=True)
class Log:
    """
    Event log with the L1 batch it belongs to
    """
    address: str
    topics: List[str]
    data: str
    block_number: Optional[int] = None
    block_hash: Optional[str] = None
    transaction_hash: Optional[str] = None
    transaction_index: Optional[int] = None
    log_index: Optional[int] = None
    l1_batch_number: Optional[int] = None
    removed: bool = False

    @classmethod
    def from_rpc(cls, data: Dict[str, Any]) -> "Log":
        return cls(
            address=to_checksum_address(data["address"]),
            topics=list(data.get("topics") or []),
            data=data.get("data") or "0x",
            block_number=_opt_int(data.get("blockNumber")),
            block_hash=data.get("blockHash"),
            transaction_hash=data.get("transactionHash"),
            transaction_index=_opt_int(data.get("transactionIndex")),
            log_index=_opt_int(data.get("logIndex")),
            l1_batch_number=_opt_int(data.get("l1BatchNumber")),
            removed=bool(data.get("removed", False)),
        )


@dataclass(frozen=True)
class L2ToL1Log:
    """
    System log sent from L2 to L1 (one per message, deposit status, ...)

    Attributes:
        sender: Emitting system contract (messenger, bootloader)
        key: Message hash or deposit hash
        value: Payload hash or deposit status (zero hash = failed)
    """
    sender: str
    key: str
    value: str
    block_number: Optional[int] = None
    block_hash: Optional[str] = None
    l1_batch_number: Optional[int] = None
    transaction_index: Optional[int] = None
    transaction_hash: Optional[str] = None
    log_index: Optional[int] = None
    shard_id: int = 0
    is_service: bool = True

    @classmethod
    def from_rpc(cls, data: Dict[str, Any]) -> "L2ToL1Log":
        return cls(
            sender=to_checksum_address(data["sender"]),
            key=data["key"],
            value=data["value"],
            block_number=_opt_int(data.get("blockNumber")),
            block_hash=data.get("blockHash"),
            l1_batch_number=_opt_int(data.get("l1BatchNumber")),
            transaction_index=_opt_int(data.get("transactionIndex")),
            transaction_hash=data.get("transactionHash"),
            log_index=_opt_int(data.get("logIndex")),
            shard_id=to_int(data.get("shardId")),
            is_service=bool(data.get("isService", True)),
        )


@dataclass(frozen=True)
class TransactionReceipt:
    """
    L2 transaction receipt

    block_number stays None while the transaction is not yet in a block.
    """
    transaction_hash: str
    block_number: Optional[int]
    block_hash: Optional[str] = None
    transaction_index: Optional[int] = None
    from_address: Optional[str] = None
    to: Optional[str] = None
    contract_address: Optional[str] = None
    status: Optional[int] = None
    gas_used: int = 0
    cumulative_gas_used: int = 0
    effective_gas_price: Optional[int] = None
    type: Optional[int] = None
    logs: List[Log] = field(default_factory=list)
    l2_to_l1_logs: List[L2ToL1Log] = field(default_factory=list)
    l1_batch_number: Optional[int] = None
    l1_batch_tx_index: Optional[int] = None

    @property
    def hash(self) -> str:
        return self.transaction_hash

    @classmethod
    def from_rpc(cls, data: Dict[str, Any]) -> "TransactionReceipt":
        return cls(
            transaction_hash=data["transactionHash"],
            block_number=_opt_int(data.get("blockNumber")),
            block_hash=data.get("blockHash"),
            transaction_index=_opt_int(data.get("transactionIndex")),
            from_address=_opt_address(data.get("from")),
            to=_opt_address(data.get("to")),
            contract_address=_opt_address(data.get("contractAddress")),
            status=_opt_int(data.get("status")),
            gas_used=to_int(data.get("gasUsed")),
            cumulative_gas_used=to_int(data.get("cumulativeGasUsed")),
            effective_gas_price=_opt_int(data.get("effectiveGasPrice")),
            type=_opt_int(data.get("type")),
            logs=[Log.from_rpc(log) for log in data.get("logs") or []],
            l2_to_l1_logs=[L2ToL1Log.from_rpc(log) for log in data.get("l2ToL1Logs") or []],
            l1_batch_number=_opt_int(data.get("l1BatchNumber")),
            l1_batch_tx_index=_opt_int(data.get("l1BatchTxIndex")),
        )


@dataclass(frozen=True)
class TransactionInfo:
    """
    Transaction as returned by eth_getTransactionByHash
    """
    hash: str
    block_number: Optional[int] = None
    block_hash: Optional[str] = None
    transaction_index: Optional[int] = None
    from_address: Optional[str] = None
    to: Optional[str] = None
    nonce: int = 0
    value: int = 0
    gas_limit: int = 0
    gas_price: Optional[int] = None
    max_fee_per_gas: Optional[int] = None
    max_priority_fee_per_gas: Optional[int] = None
    data: str = "0x"
    chain_id: Optional[int] = None
    type: Optional[int] = None
    l1_batch_number: Optional[int] = None
    l1_batch_tx_index: Optional[int] = None

    @classmethod
    def from_rpc(cls, data: Dict[str, Any]) -> "TransactionInfo":
        return cls(
            hash=data["hash"],
            block_number=_opt_int(data.get("blockNumber")),
            block_hash=data.get("blockHash"),
            transaction_index=_opt_int(data.get("transactionIndex")),
            from_address=_opt_address(data.get("from")),
            to=_opt_address(data.get("to")),
            nonce=to_int(data.get("nonce")),
            value=to_int(data.get("value")),
            gas_limit=to_int(data.get("gas")),
            gas_price=_opt_int(data.get("gasPrice")),
            max_fee_per_gas=_opt_int(data.get("maxFeePerGas")),
            max_priority_fee_per_gas=_opt_int(data.get("maxPriorityFeePerGas")),
            data=data.get("input") or data.get("data") or "0x",
            chain_id=_opt_int(data.get("chainId")),
            type=_opt_int(data.get("type")),
            l1_batch_number=_opt_int(data.get("l1BatchNumber")),
            l1_batch_tx_index=_opt_int(data.get("l1BatchTxIndex")),
        )


@dataclass(frozen=True)
class Block:
    """
    L2 block; `transactions` holds hashes or TransactionInfo when fetched in full
    """
    number: int
    hash: Optional[str]
    parent_hash: Optional[str] = None
    timestamp: int = 0
    gas_limit: int = 0
    gas_used: int = 0
    base_fee_per_gas: Optional[int] = None
    transactions: List[Union[str, TransactionInfo]] = field(default_factory=list)
    l1_batch_number: Optional[int] = None
    l1_batch_timestamp: Optional[int] = None

    @classmethod
    def from_rpc(cls, data: Dict[str, Any]) -> "Block":
        return cls(
            number=to_int(data.get("number")),
            hash=data.get("hash"),
            parent_hash=data.get("parentHash"),
            timestamp=to_int(data.get("timestamp")),
            gas_limit=to_int(data.get("gasLimit")),
            gas_used=to_int(data.get("gasUsed")),
            base_fee_per_gas=_opt_int(data.get("baseFeePerGas")),
            transactions=[
                tx if isinstance(tx, str) else TransactionInfo.from_rpc(tx)
                for tx in data.get("transactions") or []
            ],
            l1_batch_number=_opt_int(data.get("l1BatchNumber")),
            l1_batch_timestamp=_opt_int(data.get("l1BatchTimestamp")),
        )


@dataclass(frozen=True)
class BatchDetails:
    number: int
    timestamp: int
    l1_tx_count: int
    l2_tx_count: int
    status: str
    root_hash: Optional[str] = None
    commit_tx_hash: Optional[str] = None
    committed_at: Optional[str] = None
    prove_tx_hash: Optional[str] = None
    proven_at: Optional[str] = None
    execute_tx_hash: Optional[str] = None
    executed_at: Optional[str] = None
    l1_gas_price: int = 0
    l2_fair_gas_price: int = 0

    @classmethod
    def from_rpc(cls, data: Dict[str, Any]) -> "BatchDetails":
        return cls(
            number=to_int(data.get("number")),
            timestamp=to_int(data.get("timestamp")),
            l1_tx_count=to_int(data.get("l1TxCount")),
            l2_tx_count=to_int(data.get("l2TxCount")),
            status=data.get("status", ""),
            root_hash=data.get("rootHash"),
            commit_tx_hash=data.get("commitTxHash"),
            committed_at=data.get("committedAt"),
            prove_tx_hash=data.get("proveTxHash"),
            proven_at=data.get("provenAt"),
            execute_tx_hash=data.get("executeTxHash"),
            executed_at=data.get("executedAt"),
            l1_gas_price=to_int(data.get("l1GasPrice")),
            l2_fair_gas_price=to_int(data.get("l2FairGasPrice")),
        )


@dataclass(frozen=True)
class BlockDetails:
    number: int
    timestamp: int
    l1_batch_number: int
    l1_tx_count: int
    l2_tx_count: int
    status: str
    root_hash: Optional[str] = None
    commit_tx_hash: Optional[str] = None
    committed_at: Optional[str] = None
    prove_tx_hash: Optional[str] = None
    proven_at: Optional[str] = None
    execute_tx_hash: Optional[str] = None
    executed_at: Optional[str] = None

    @classmethod
    def from_rpc(cls, data: Dict[str, Any]) -> "BlockDetails":
        return cls(
            number=to_int(data.get("number")),
            timestamp=to_int(data.get("timestamp")),
            l1_batch_number=to_int(data.get("l1BatchNumber")),
            l1_tx_count=to_int(data.get("l1TxCount")),
            l2_tx_count=to_int(data.get("l2TxCount")),
            status=data.get("status", ""),
            root_hash=data.get("rootHash"),
            commit_tx_hash=data.get("commitTxHash"),
            committed_at=data.get("committedAt"),
            prove_tx_hash=data.get("proveTxHash"),
            proven_at=data.get("provenAt"),
            execute_tx_hash=data.get("executeTxHash"),
            executed_at=data.get("executedAt"),
        )


@dataclass(frozen=True)
class TransactionDetails:
    is_l1_originated: bool
    status: str
    fee: int
    initiator_address: str
    received_at: Optional[str] = None
    eth_commit_tx_hash: Optional[str] = None
    eth_prove_tx_hash: Optional[str] = None
    eth_execute_tx_hash: Optional[str] = None

    @classmethod
    def from_rpc(cls, data: Dict[str, Any]) -> "TransactionDetails":
        return cls(
            is_l1_originated=bool(data.get("isL1Originated")),
            status=data.get("status", ""),
            fee=to_int(data.get("fee")),
            initiator_address=_opt_address(data.get("initiatorAddress")),
            received_at=data.get("receivedAt"),
            eth_commit_tx_hash=data.get("ethCommitTxHash"),
            eth_prove_tx_hash=data.get("ethProveTxHash"),
            eth_execute_tx_hash=data.get("ethExecuteTxHash"),
        )


@dataclass(frozen=True)
class FinalizeWithdrawalParams:
    """
    Arguments of the L1 finalizeWithdrawal / finalizeEthWithdrawal call

    Attributes:
        l1_batch_number: Batch holding the withdrawal
        l2_message_index: Position of the message in the batch tree (proof id)
        l2_tx_number_in_block: Index of the withdrawal tx within the batch
        message: Raw message sent to L1
        sender: L2 contract that sent the message
        proof: Merkle proof of the message
    """
    l1_batch_number: int
    l2_message_index: int
    l2_tx_number_in_block: int
    message: bytes
    sender: str
    proof: List[str]
