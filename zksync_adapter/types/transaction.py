"""
Transaction type definitions

Standard L1/L2 transactions stay plain web3 TxParams dicts; the
rollup-native 0x71 kind is the Transaction712 dataclass below.
"""

from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import Any, Dict, List, Optional, Union

from eth_utils import to_bytes, to_checksum_address

from ..core.constants import DEFAULT_GAS_PER_PUBDATA_LIMIT, EIP712_TX_TYPE, PRIORITY_OPERATION_L2_TX_TYPE
from ..errors import InvalidSignatureError


class TransactionType(IntEnum):
    """Envelope type byte"""
    LEGACY = 0
    EIP2930 = 1
    EIP1559 = 2
    EIP712 = EIP712_TX_TYPE
    PRIORITY_OP = PRIORITY_OPERATION_L2_TX_TYPE


def to_int(value: Union[int, str, None], default: int = 0) -> int:
    """Accept ints and 0x-hex quantities (as found in RPC payloads)."""
    if value is None:
        return default
    if isinstance(value, str):
        if value in ("", "0x"):
            return 0
        return int(value, 16) if value.startswith("0x") else int(value)
    return int(value)


def _to_raw(value) -> bytes:
    if value is None:
        return b""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        return to_bytes(hexstr=value)
    return bytes(value)


@dataclass(frozen=True)
class PaymasterParams:
    """
    Paymaster attached to an EIP-712 transaction

    Attributes:
        paymaster: Paymaster contract address
        paymaster_input: ABI-encoded IPaymasterFlow call
    """
    paymaster: str
    paymaster_input: bytes

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PaymasterParams":
        return cls(
            paymaster=to_checksum_address(data["paymaster"]),
            paymaster_input=_to_raw(data.get("paymasterInput")),
        )


@dataclass
class Eip712Meta:
    """
    Rollup-specific transaction fields (the `customData` of a request)

    Attributes:
        gas_per_pubdata: Max L2 gas the sender pays per pubdata byte
        factory_deps: Raw bytecodes the transaction may deploy
        custom_signature: Opaque signature (account abstraction or EOA)
        paymaster_params: Optional paymaster
    """
    gas_per_pubdata: int = DEFAULT_GAS_PER_PUBDATA_LIMIT
    factory_deps: List[bytes] = field(default_factory=list)
    custom_signature: Optional[bytes] = None
    paymaster_params: Optional[PaymasterParams] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Eip712Meta":
        data = data or {}
        paymaster = data.get("paymasterParams")
        if paymaster is not None and not isinstance(paymaster, PaymasterParams):
            paymaster = PaymasterParams.from_dict(paymaster)
        custom_signature = data.get("customSignature")
        return cls(
            gas_per_pubdata=to_int(data.get("gasPerPubdata"), DEFAULT_GAS_PER_PUBDATA_LIMIT),
            factory_deps=[_to_raw(dep) for dep in data.get("factoryDeps") or []],
            custom_signature=_to_raw(custom_signature) if custom_signature is not None else None,
            paymaster_params=paymaster,
        )


@dataclass(frozen=True)
class EthSignature:
    """
    ECDSA signature with v as y-parity (0/1)
    """
    v: int
    r: bytes
    s: bytes

    @classmethod
    def from_bytes(cls, signature: bytes) -> "EthSignature":
        """Split a 65-byte r||s||v signature, normalising v=27/28 to parity."""
        if len(signature) != 65:
            raise InvalidSignatureError(f"Expected 65-byte signature, got {len(signature)}", len(signature))
        v = signature[64]
        if v >= 27:
            v -= 27
        return cls(v=v, r=signature[:32], s=signature[32:64])

    def to_bytes(self) -> bytes:
        return self.r.rjust(32, b"\x00") + self.s.rjust(32, b"\x00") + bytes([self.v])


@dataclass
class Transaction712:
    """
    Rollup-native (type 0x71) transaction

    Attributes:
        to: Recipient, None for an envelope without target
        from_address: Sender; required for serialization
        chain_id: L2 chain id; required for signing and serialization
        nonce, gas_limit, value: Standard fields
        gas_price / max_fee_per_gas / max_priority_fee_per_gas: Fee fields;
            the envelope only carries the 1559 pair
        data: Calldata
        custom_data: Rollup-specific fields, always present
        signature: ECDSA signature (only when no custom signature)
        hash: Transaction hash, set once the envelope is signed
    """
    to: Optional[str] = None
    from_address: Optional[str] = None
    chain_id: Optional[int] = None
    nonce: int = 0
    gas_limit: int = 0
    gas_price: Optional[int] = None
    max_fee_per_gas: Optional[int] = None
    max_priority_fee_per_gas: Optional[int] = None
    value: int = 0
    data: bytes = b""
    custom_data: Eip712Meta = field(default_factory=Eip712Meta)
    signature: Optional[EthSignature] = None
    hash: Optional[str] = None

    type: int = field(default=EIP712_TX_TYPE, init=False)

    @property
    def is_signed(self) -> bool:
        return self.signature is not None or bool(self.custom_data.custom_signature)

    def copy(self, **changes) -> "Transaction712":
        return replace(self, **changes)

    @classmethod
    def from_request(cls, tx: Dict[str, Any]) -> "Transaction712":
        """
        Build from a web3-style request dict carrying `customData`.
        """
        to = tx.get("to")
        sender = tx.get("from")
        return cls(
            to=to_checksum_address(to) if to else None,
            from_address=to_checksum_address(sender) if sender else None,
            chain_id=to_int(tx["chainId"]) if tx.get("chainId") is not None else None,
            nonce=to_int(tx.get("nonce")),
            gas_limit=to_int(tx.get("gas", tx.get("gasLimit"))),
            gas_price=to_int(tx["gasPrice"]) if tx.get("gasPrice") is not None else None,
            max_fee_per_gas=to_int(tx["maxFeePerGas"]) if tx.get("maxFeePerGas") is not None else None,
            max_priority_fee_per_gas=(
                to_int(tx["maxPriorityFeePerGas"]) if tx.get("maxPriorityFeePerGas") is not None else None
            ),
            value=to_int(tx.get("value")),
            data=_to_raw(tx.get("data")),
            custom_data=(
                tx["customData"] if isinstance(tx.get("customData"), Eip712Meta)
                else Eip712Meta.from_dict(tx.get("customData"))
            ),
        )


def is_eip712_request(tx: Union[Dict[str, Any], Transaction712]) -> bool:
    """True when a request must be handled as a 0x71 transaction."""
    if isinstance(tx, Transaction712):
        return True
    return tx.get("customData") is not None or to_int(tx.get("type"), -1) == EIP712_TX_TYPE
