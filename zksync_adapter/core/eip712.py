"""
EIP-712 typed data for 0x71 transactions

The signed digest is produced by eth_account's typed-data encoder; this
module only maps a Transaction712 onto the zkSync `Transaction` struct.
"""

from typing import Any, Dict

from eth_account.messages import SignableMessage, encode_typed_data

from .constants import (
    DEFAULT_GAS_PER_PUBDATA_LIMIT,
    EIP712_DOMAIN_NAME,
    EIP712_DOMAIN_VERSION,
    EIP712_TX_TYPE,
    ZERO_ADDRESS,
)
from .utils import hash_bytecode, hash_signable
from ..errors import MissingFieldError
from ..types.transaction import Transaction712


EIP712_TYPES = {
    "EIP712Domain": [
        {"name": "name", "type": "string"},
        {"name": "version", "type": "string"},
        {"name": "chainId", "type": "uint256"},
    ],
    "Transaction": [
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
        {"name": "data", "type": "bytes"},
        {"name": "factoryDeps", "type": "bytes32[]"},
        {"name": "paymasterInput", "type": "bytes"},
    ],
}


def get_domain(chain_id: int) -> Dict[str, Any]:
    return {
        "name": EIP712_DOMAIN_NAME,
        "version": EIP712_DOMAIN_VERSION,
        "chainId": chain_id,
    }


def _address_as_int(address) -> int:
    return int(address, 16) if address else 0


def get_sign_input(tx: Transaction712) -> Dict[str, Any]:
    """
    The `Transaction` struct values for `tx`.

    Addresses are encoded as uint256 and factory deps as their
    versioned bytecode hashes.
    """
    max_fee_per_gas = tx.max_fee_per_gas or tx.gas_price or 0
    max_priority_fee_per_gas = tx.max_priority_fee_per_gas or max_fee_per_gas
    meta = tx.custom_data
    paymaster = meta.paymaster_params

    return {
        "txType": EIP712_TX_TYPE,
        "from": _address_as_int(tx.from_address),
        "to": _address_as_int(tx.to),
        "gasLimit": tx.gas_limit or 0,
        "gasPerPubdataByteLimit": meta.gas_per_pubdata or DEFAULT_GAS_PER_PUBDATA_LIMIT,
        "maxFeePerGas": max_fee_per_gas,
        "maxPriorityFeePerGas": max_priority_fee_per_gas,
        "paymaster": _address_as_int(paymaster.paymaster if paymaster else ZERO_ADDRESS),
        "nonce": tx.nonce or 0,
        "value": tx.value or 0,
        "data": tx.data or b"",
        "factoryDeps": [hash_bytecode(dep) for dep in meta.factory_deps],
        "paymasterInput": paymaster.paymaster_input if paymaster else b"",
    }


def typed_data(tx: Transaction712) -> Dict[str, Any]:
    """Full EIP-712 message (types, primaryType, domain, message)."""
    if not tx.chain_id:
        raise MissingFieldError("chainId", "signing EIP712 transactions")
    return {
        "types": EIP712_TYPES,
        "primaryType": "Transaction",
        "domain": get_domain(tx.chain_id),
        "message": get_sign_input(tx),
    }


def get_signable_message(tx: Transaction712) -> SignableMessage:
    return encode_typed_data(full_message=typed_data(tx))


def get_signed_digest(tx: Transaction712) -> bytes:
    """32-byte digest an EOA signs for `tx`."""
    return hash_signable(get_signable_message(tx))
