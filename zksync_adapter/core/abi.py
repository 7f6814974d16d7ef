"""
Contract ABI registry and a minimal calldata/log codec

The ABI lists are shared by both layers: L1 contracts are bound with
`web3.eth.contract(abi=get_abi(...))`, L2 system contracts are called over
raw eth_call through `ContractInterface`.
"""

from functools import lru_cache
from types import MappingProxyType
from typing import Any, Dict, List, Optional, Sequence, Tuple

from eth_abi import decode, encode
from eth_utils import (
    event_signature_to_log_topic,
    function_signature_to_4byte_selector,
    to_bytes,
    to_hex,
)


# ============================================================================
# ABI definitions
# ============================================================================

_L2_CANONICAL_TRANSACTION = [
    {"name": "txType", "type": "uint256"},
    {"name": "from", "type": "uint256"},
    {"name": "to", "type": "uint256"},
    {"name": "gasLimit", "type": "uint256"},
    {"name": "gasPerPubdataByteLimit", "type": "uint256"},
    {"name": "maxFeePerGas", "type": "uint256"},
    {"name": "maxPriorityFeePerGas", "type": "uint256"},
    {"name": "paymaster", "type": "uint256"},
    {"name": "nonce", "type": "uint256"},
    {"name": "value", "type": "uint256"},
    {"name": "reserved", "type": "uint256[4]"},
    {"name": "data", "type": "bytes"},
    {"name": "signature", "type": "bytes"},
    {"name": "factoryDeps", "type": "uint256[]"},
    {"name": "paymasterInput", "type": "bytes"},
    {"name": "reservedDynamic", "type": "bytes"},
]

ZKSYNC_MAIN_ABI = [
    {
        "inputs": [
            {"name": "_gasPrice", "type": "uint256"},
            {"name": "_l2GasLimit", "type": "uint256"},
            {"name": "_l2GasPerPubdataByteLimit", "type": "uint256"},
        ],
        "name": "l2TransactionBaseCost",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "_contractL2", "type": "address"},
            {"name": "_l2Value", "type": "uint256"},
            {"name": "_calldata", "type": "bytes"},
            {"name": "_l2GasLimit", "type": "uint256"},
            {"name": "_l2GasPerPubdataByteLimit", "type": "uint256"},
            {"name": "_factoryDeps", "type": "bytes[]"},
            {"name": "_refundRecipient", "type": "address"},
        ],
        "name": "requestL2Transaction",
        "outputs": [{"name": "canonicalTxHash", "type": "bytes32"}],
        "stateMutability": "payable",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "_l2BatchNumber", "type": "uint256"},
            {"name": "_l2MessageIndex", "type": "uint256"},
            {"name": "_l2TxNumberInBatch", "type": "uint16"},
            {"name": "_message", "type": "bytes"},
            {"name": "_merkleProof", "type": "bytes32[]"},
        ],
        "name": "finalizeEthWithdrawal",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "_l2BatchNumber", "type": "uint256"},
            {"name": "_l2MessageIndex", "type": "uint256"},
        ],
        "name": "isEthWithdrawalFinalized",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": False, "name": "txId", "type": "uint256"},
            {"indexed": False, "name": "txHash", "type": "bytes32"},
            {"indexed": False, "name": "expirationTimestamp", "type": "uint64"},
            {
                "indexed": False,
                "name": "transaction",
                "type": "tuple",
                "components": _L2_CANONICAL_TRANSACTION,
            },
            {"indexed": False, "name": "factoryDeps", "type": "bytes[]"},
        ],
        "name": "NewPriorityRequest",
        "type": "event",
    },
]

CONTRACT_DEPLOYER_ABI = [
    {
        "inputs": [
            {"name": "_salt", "type": "bytes32"},
            {"name": "_bytecodeHash", "type": "bytes32"},
            {"name": "_input", "type": "bytes"},
        ],
        "name": "create",
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "payable",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "_salt", "type": "bytes32"},
            {"name": "_bytecodeHash", "type": "bytes32"},
            {"name": "_input", "type": "bytes"},
        ],
        "name": "create2",
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "payable",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "_salt", "type": "bytes32"},
            {"name": "_bytecodeHash", "type": "bytes32"},
            {"name": "_input", "type": "bytes"},
            {"name": "_aaVersion", "type": "uint8"},
        ],
        "name": "createAccount",
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "payable",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "_salt", "type": "bytes32"},
            {"name": "_bytecodeHash", "type": "bytes32"},
            {"name": "_input", "type": "bytes"},
            {"name": "_aaVersion", "type": "uint8"},
        ],
        "name": "create2Account",
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "payable",
        "type": "function",
    },
    {
        "inputs": [{"name": "_address", "type": "address"}],
        "name": "getAccountInfo",
        "outputs": [
            {
                "name": "info",
                "type": "tuple",
                "components": [
                    {"name": "supportedAAVersion", "type": "uint8"},
                    {"name": "nonceOrdering", "type": "uint8"},
                ],
            }
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "deployerAddress", "type": "address"},
            {"indexed": True, "name": "bytecodeHash", "type": "bytes32"},
            {"indexed": True, "name": "contractAddress", "type": "address"},
        ],
        "name": "ContractDeployed",
        "type": "event",
    },
]

L1_MESSENGER_ABI = [
    {
        "inputs": [{"name": "_message", "type": "bytes"}],
        "name": "sendToL1",
        "outputs": [{"name": "", "type": "bytes32"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "_sender", "type": "address"},
            {"indexed": True, "name": "_hash", "type": "bytes32"},
            {"indexed": False, "name": "_message", "type": "bytes"},
        ],
        "name": "L1MessageSent",
        "type": "event",
    },
]

IERC20_ABI = [
    {
        "inputs": [{"name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "owner", "type": "address"},
            {"name": "spender", "type": "address"},
        ],
        "name": "allowance",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "spender", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "name": "approve",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "name": "transfer",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "name",
        "outputs": [{"name": "", "type": "string"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "symbol",
        "outputs": [{"name": "", "type": "string"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "decimals",
        "outputs": [{"name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function",
    },
]

IERC1271_ABI = [
    {
        "inputs": [
            {"name": "hash", "type": "bytes32"},
            {"name": "signature", "type": "bytes"},
        ],
        "name": "isValidSignature",
        "outputs": [{"name": "magicValue", "type": "bytes4"}],
        "stateMutability": "view",
        "type": "function",
    },
]

L1_BRIDGE_ABI = [
    {
        "inputs": [
            {"name": "_l2Receiver", "type": "address"},
            {"name": "_l1Token", "type": "address"},
            {"name": "_amount", "type": "uint256"},
            {"name": "_l2TxGasLimit", "type": "uint256"},
            {"name": "_l2TxGasPerPubdataByte", "type": "uint256"},
            {"name": "_refundRecipient", "type": "address"},
        ],
        "name": "deposit",
        "outputs": [{"name": "txHash", "type": "bytes32"}],
        "stateMutability": "payable",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "_depositSender", "type": "address"},
            {"name": "_l1Token", "type": "address"},
            {"name": "_l2TxHash", "type": "bytes32"},
            {"name": "_l2BatchNumber", "type": "uint256"},
            {"name": "_l2MessageIndex", "type": "uint256"},
            {"name": "_l2TxNumberInBatch", "type": "uint16"},
            {"name": "_merkleProof", "type": "bytes32[]"},
        ],
        "name": "claimFailedDeposit",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "_l2BatchNumber", "type": "uint256"},
            {"name": "_l2MessageIndex", "type": "uint256"},
            {"name": "_l2TxNumberInBatch", "type": "uint16"},
            {"name": "_message", "type": "bytes"},
            {"name": "_merkleProof", "type": "bytes32[]"},
        ],
        "name": "finalizeWithdrawal",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "_l2BatchNumber", "type": "uint256"},
            {"name": "_l2MessageIndex", "type": "uint256"},
        ],
        "name": "isWithdrawalFinalized",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"name": "_l1Token", "type": "address"}],
        "name": "l2TokenAddress",
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "l2Bridge",
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
]

L2_BRIDGE_ABI = [
    {
        "inputs": [
            {"name": "_l1Sender", "type": "address"},
            {"name": "_l2Receiver", "type": "address"},
            {"name": "_l1Token", "type": "address"},
            {"name": "_amount", "type": "uint256"},
            {"name": "_data", "type": "bytes"},
        ],
        "name": "finalizeDeposit",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "_l1Receiver", "type": "address"},
            {"name": "_l2Token", "type": "address"},
            {"name": "_amount", "type": "uint256"},
        ],
        "name": "withdraw",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [{"name": "_l2Token", "type": "address"}],
        "name": "l1TokenAddress",
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"name": "_l1Token", "type": "address"}],
        "name": "l2TokenAddress",
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "l1Bridge",
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
]

ETH_TOKEN_ABI = [
    {
        "inputs": [{"name": "_l1Receiver", "type": "address"}],
        "name": "withdraw",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function",
    },
]

NONCE_HOLDER_ABI = [
    {
        "inputs": [{"name": "_address", "type": "address"}],
        "name": "getDeploymentNonce",
        "outputs": [{"name": "deploymentNonce", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"name": "_address", "type": "address"}],
        "name": "getMinNonce",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]

PAYMASTER_FLOW_ABI = [
    {
        "inputs": [
            {"name": "_token", "type": "address"},
            {"name": "_minAllowance", "type": "uint256"},
            {"name": "_innerInput", "type": "bytes"},
        ],
        "name": "approvalBased",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [{"name": "input", "type": "bytes"}],
        "name": "general",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]


ABIS = MappingProxyType({
    "IZkSync": ZKSYNC_MAIN_ABI,
    "ContractDeployer": CONTRACT_DEPLOYER_ABI,
    "IL1Messenger": L1_MESSENGER_ABI,
    "IERC20": IERC20_ABI,
    "IERC1271": IERC1271_ABI,
    "IL1Bridge": L1_BRIDGE_ABI,
    "IL2Bridge": L2_BRIDGE_ABI,
    "IEthToken": ETH_TOKEN_ABI,
    "INonceHolder": NONCE_HOLDER_ABI,
    "IPaymasterFlow": PAYMASTER_FLOW_ABI,
})


def get_abi(name: str) -> List[Dict[str, Any]]:
    """Return the ABI list registered under `name` (KeyError if unknown)."""
    return ABIS[name]


@lru_cache(maxsize=None)
def get_interface(name: str) -> "ContractInterface":
    return ContractInterface(get_abi(name))


# ============================================================================
# Codec
# ============================================================================

def _collapse_type(param: Dict[str, Any]) -> str:
    """Canonical type string, expanding tuple components recursively."""
    abi_type = param["type"]
    if not abi_type.startswith("tuple"):
        return abi_type
    suffix = abi_type[len("tuple"):]
    inner = ",".join(_collapse_type(c) for c in param["components"])
    return f"({inner}){suffix}"


def _types(params: Sequence[Dict[str, Any]]) -> List[str]:
    return [_collapse_type(p) for p in params]


def _to_bytes(data) -> bytes:
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    return to_bytes(hexstr=data)


class ContractInterface:
    """
    Encode calls and decode results/logs for a single ABI

    Usage:
        erc20 = get_interface("IERC20")
        data = erc20.encode_function_data("balanceOf", [owner])
        (balance,) = erc20.decode_function_result("balanceOf", raw)
    """

    def __init__(self, abi: List[Dict[str, Any]]):
        self.abi = abi
        self._functions = {e["name"]: e for e in abi if e.get("type") == "function"}
        self._events = {e["name"]: e for e in abi if e.get("type") == "event"}
        self._events_by_topic = {
            self.event_topic(name): entry for name, entry in self._events.items()
        }

    def function(self, name: str) -> Dict[str, Any]:
        return self._functions[name]

    def function_signature(self, name: str) -> str:
        entry = self._functions[name]
        return f"{name}({','.join(_types(entry['inputs']))})"

    def selector(self, name: str) -> bytes:
        return function_signature_to_4byte_selector(self.function_signature(name))

    def encode_function_data(self, name: str, args: Sequence[Any] = ()) -> str:
        """Return 0x-prefixed calldata for `name(args)`."""
        entry = self._functions[name]
        encoded = encode(_types(entry["inputs"]), list(args))
        return to_hex(self.selector(name) + encoded)

    def encode_constructor(self, args: Sequence[Any] = ()) -> bytes:
        """ABI-encoded constructor arguments (no selector)."""
        entry = next((e for e in self.abi if e.get("type") == "constructor"), None)
        if entry is None:
            if args:
                raise ValueError("ABI has no constructor but arguments were given")
            return b""
        return encode(_types(entry["inputs"]), list(args))

    def decode_function_data(self, name: str, data) -> Tuple[Any, ...]:
        """Decode the arguments of a call to `name`; the selector must match."""
        raw = _to_bytes(data)
        if raw[:4] != self.selector(name):
            raise ValueError(f"calldata selector {raw[:4].hex()} does not match {name}")
        return tuple(decode(_types(self._functions[name]["inputs"]), raw[4:]))

    def decode_function_result(self, name: str, data) -> Tuple[Any, ...]:
        return tuple(decode(_types(self._functions[name]["outputs"]), _to_bytes(data)))

    def event_signature(self, name: str) -> str:
        entry = self._events[name]
        return f"{name}({','.join(_types(entry['inputs']))})"

    def event_topic(self, name: str) -> str:
        return to_hex(event_signature_to_log_topic(self.event_signature(name)))

    def parse_log(self, topics: Sequence, data) -> Optional[Tuple[str, Dict[str, Any]]]:
        """
        Decode a log emitted by this ABI.

        Returns (event_name, args) or None when topic0 is not one of ours.
        Indexed dynamic types are returned as their raw 32-byte topic.
        """
        if not topics:
            return None
        topic0 = to_hex(_to_bytes(topics[0]))
        entry = self._events_by_topic.get(topic0)
        if entry is None:
            return None

        indexed = [p for p in entry["inputs"] if p.get("indexed")]
        plain = [p for p in entry["inputs"] if not p.get("indexed")]

        args: Dict[str, Any] = {}
        for param, topic in zip(indexed, topics[1:]):
            raw_topic = _to_bytes(topic)
            if param["type"] in ("string", "bytes") or param["type"].startswith("tuple") or param["type"].endswith("]"):
                args[param["name"]] = raw_topic
            else:
                args[param["name"]] = decode([param["type"]], raw_topic)[0]

        values = decode(_types(plain), _to_bytes(data)) if plain else ()
        for param, value in zip(plain, values):
            args[param["name"]] = value

        return entry["name"], args
