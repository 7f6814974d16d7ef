"""
Wire codec for 0x71 (EIP-712) transactions

Envelope: 0x71 || RLP([nonce, maxPriorityFeePerGas, maxFeePerGas, gasLimit,
to, value, data, v|chainId, r|"", s|"", chainId, from, gasPerPubdata,
factoryDeps, customSignature, paymaster])
"""

from typing import List, Optional, Union

import rlp
from rlp.exceptions import RLPException
from eth_utils import keccak, to_checksum_address, to_hex

from .constants import DEFAULT_GAS_PER_PUBDATA_LIMIT, EIP712_TX_TYPE
from .eip712 import get_signed_digest
from .utils import address_to_bytes, get_bytes, int_to_bytes
from ..errors import InvalidSignatureError, MalformedPayloadError, MissingFieldError
from ..types.transaction import EthSignature, Eip712Meta, PaymasterParams, Transaction712

_FIELD_COUNT = 16
_LIST_FIELDS = (13, 15)


def serialize_eip712(tx: Transaction712, signature: Optional[EthSignature] = None) -> bytes:
    """
    Encode `tx` as a 0x71 envelope.

    With `signature` the ECDSA triple is embedded; otherwise the slots hold
    (chainId, "", "") and only the custom signature (if any) authenticates.

    Raises:
        MissingFieldError: chain_id or from_address is not set
        InvalidSignatureError: custom signature present but empty
    """
    if not tx.chain_id:
        raise MissingFieldError("chainId", "EIP712 transactions")
    if not tx.from_address:
        raise MissingFieldError("from", "EIP712 transactions")

    meta = tx.custom_data
    max_fee_per_gas = tx.max_fee_per_gas or tx.gas_price or 0
    max_priority_fee_per_gas = tx.max_priority_fee_per_gas or max_fee_per_gas

    fields: List[Union[bytes, list]] = [
        int_to_bytes(tx.nonce or 0),
        int_to_bytes(max_priority_fee_per_gas),
        int_to_bytes(max_fee_per_gas),
        int_to_bytes(tx.gas_limit or 0),
        address_to_bytes(tx.to) if tx.to is not None else b"",
        int_to_bytes(tx.value or 0),
        tx.data or b"",
    ]

    if signature is not None:
        fields.append(int_to_bytes(signature.v))
        fields.append(signature.r.lstrip(b"\x00"))
        fields.append(signature.s.lstrip(b"\x00"))
    else:
        fields.append(int_to_bytes(tx.chain_id))
        fields.append(b"")
        fields.append(b"")

    fields.append(int_to_bytes(tx.chain_id))
    fields.append(address_to_bytes(tx.from_address))

    fields.append(int_to_bytes(meta.gas_per_pubdata or DEFAULT_GAS_PER_PUBDATA_LIMIT))
    fields.append([bytes(dep) for dep in meta.factory_deps])

    if meta.custom_signature is not None and len(meta.custom_signature) == 0:
        raise InvalidSignatureError.empty()
    fields.append(meta.custom_signature or b"")

    if meta.paymaster_params is not None:
        fields.append([
            address_to_bytes(meta.paymaster_params.paymaster),
            bytes(meta.paymaster_params.paymaster_input),
        ])
    else:
        fields.append([])

    return bytes([EIP712_TX_TYPE]) + rlp.encode(fields)


def _decode_int(value: bytes) -> int:
    return int.from_bytes(value, "big") if value else 0


def _decode_address(value: bytes) -> Optional[str]:
    if not value:
        return None
    if len(value) != 20:
        raise MalformedPayloadError(f"Invalid address length {len(value)}", to_hex(value))
    return to_checksum_address(value)


def _decode_paymaster(items: list) -> Optional[PaymasterParams]:
    if len(items) == 0:
        return None
    if len(items) != 2:
        raise MalformedPayloadError(
            f"Invalid paymaster parameters, expected to have length of 2, found {len(items)}"
        )
    return PaymasterParams(paymaster=_decode_address(items[0]), paymaster_input=bytes(items[1]))


def parse_eip712(payload: Union[bytes, str]) -> Transaction712:
    """
    Decode a 0x71 envelope.

    The ECDSA signature is restored only when there is no custom
    signature; `hash` is set whenever the envelope is signed.

    Raises:
        MalformedPayloadError: wrong type byte, bad RLP or field layout
        InvalidSignatureError: v is not a y-parity value
    """
    raw_payload = get_bytes(payload)
    if not raw_payload or raw_payload[0] != EIP712_TX_TYPE:
        raise MalformedPayloadError("Payload is not a 0x71 transaction", to_hex(raw_payload[:1]))

    try:
        raw = rlp.decode(raw_payload[1:])
    except RLPException as e:
        raise MalformedPayloadError(f"Invalid RLP: {e}", to_hex(raw_payload)) from e

    if not isinstance(raw, list) or len(raw) != _FIELD_COUNT:
        raise MalformedPayloadError(
            f"Expected {_FIELD_COUNT} RLP items, found {len(raw) if isinstance(raw, list) else 'a string'}"
        )
    if not isinstance(raw[13], list) or not isinstance(raw[15], list):
        raise MalformedPayloadError("factoryDeps and paymaster must be RLP lists")
    for index, item in enumerate(raw):
        if index not in _LIST_FIELDS and not isinstance(item, bytes):
            raise MalformedPayloadError(f"RLP item {index} must be a byte string")
    if not all(isinstance(item, bytes) for item in raw[13] + raw[15]):
        raise MalformedPayloadError("factoryDeps and paymaster items must be byte strings")

    chain_id = _decode_int(raw[10])
    if not chain_id:
        raise MalformedPayloadError("Transaction chainId isn't set")

    custom_signature = bytes(raw[14]) or None

    tx = Transaction712(
        nonce=_decode_int(raw[0]),
        max_priority_fee_per_gas=_decode_int(raw[1]),
        max_fee_per_gas=_decode_int(raw[2]),
        gas_limit=_decode_int(raw[3]),
        to=_decode_address(raw[4]),
        value=_decode_int(raw[5]),
        data=bytes(raw[6]),
        chain_id=chain_id,
        from_address=_decode_address(raw[11]),
        custom_data=Eip712Meta(
            gas_per_pubdata=_decode_int(raw[12]),
            factory_deps=[bytes(dep) for dep in raw[13]],
            custom_signature=custom_signature,
            paymaster_params=_decode_paymaster(raw[15]),
        ),
    )

    v, r, s = _decode_int(raw[7]), bytes(raw[8]), bytes(raw[9])

    if (not r or not s) and custom_signature is None:
        return tx

    if custom_signature is None:
        if v not in (0, 1):
            raise InvalidSignatureError.bad_parity(v)
        tx.signature = EthSignature(v=v, r=r.rjust(32, b"\x00"), s=s.rjust(32, b"\x00"))

    tx.hash = eip712_tx_hash(tx)
    return tx


def _signature_bytes(tx: Transaction712, signature: Optional[EthSignature]) -> bytes:
    if tx.custom_data.custom_signature:
        return tx.custom_data.custom_signature
    signature = signature or tx.signature
    if signature is None:
        raise InvalidSignatureError("No signature provided")
    return signature.to_bytes()


def eip712_tx_hash(tx: Transaction712, signature: Optional[EthSignature] = None) -> str:
    """keccak(signed_digest || keccak(signature_bytes)) as a 0x hex string."""
    signed_digest = get_signed_digest(tx)
    hashed_signature = keccak(_signature_bytes(tx, signature))
    return to_hex(keccak(signed_digest + hashed_signature))
