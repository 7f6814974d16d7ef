"""
Address, hash and bridging helpers

Pure functions only: anything that needs chain access takes the
provider or web3 instance as an argument.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any, Dict, List, Sequence, Union

from eth_account import Account
from eth_account.messages import SignableMessage, encode_defunct, encode_typed_data
from eth_utils import keccak, to_bytes, to_checksum_address, to_hex

from .abi import get_interface
from .constants import (
    ADDRESS_MODULO,
    BOOTLOADER_FORMAL_ADDRESS,
    CONTRACT_DEPLOYER_ADDRESS,
    EIP1271_MAGIC_VALUE,
    ETH_ADDRESS,
    L1_FEE_ESTIMATION_COEF_DENOMINATOR,
    L1_FEE_ESTIMATION_COEF_NUMERATOR,
    L1_MESSENGER_ADDRESS,
    L1_TO_L2_ALIAS_OFFSET,
    L2_ETH_TOKEN_ADDRESS,
    MAX_BYTECODE_LEN_BYTES,
    PriorityOpTree,
    PriorityQueueType,
)
from ..errors import InsufficientValueError, InvalidBytecodeError, ProtocolError, ValidationError

logger = logging.getLogger(__name__)

BytesLike = Union[bytes, bytearray, str, Sequence[int]]

_CREATE_PREFIX = keccak(text="zksyncCreate")
_CREATE2_PREFIX = keccak(text="zksyncCreate2")


# ============================================================================
# Byte helpers
# ============================================================================

def get_bytes(value: BytesLike) -> bytes:
    """Accept bytes, a 0x hex string or a list of ints (the node's Vec<u8>)."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        if not value.startswith("0x"):
            raise ValidationError.invalid("bytes", value, "hex string must be 0x-prefixed")
        return to_bytes(hexstr=value)
    return bytes(value)


def int_to_bytes(value: int) -> bytes:
    """Minimal big-endian encoding; 0 -> b''."""
    return value.to_bytes((value.bit_length() + 7) // 8, "big")


def pad32(value: bytes) -> bytes:
    return value.rjust(32, b"\x00")


def address_to_bytes(address: str) -> bytes:
    raw = to_bytes(hexstr=address)
    if len(raw) != 20:
        raise ValidationError.invalid("address", address, "expected 20 bytes")
    return raw


def is_eth(token: str) -> bool:
    """True for the zero address and the L2 ETH token contract."""
    return token.lower() in (ETH_ADDRESS, L2_ETH_TOKEN_ADDRESS)


def layer1_tx_defaults() -> Dict[str, int]:
    return {
        "queueType": PriorityQueueType.DEQUE,
        "opTree": PriorityOpTree.FULL,
    }


# ============================================================================
# Bytecode and address derivation
# ============================================================================

def hash_bytecode(bytecode: BytesLike) -> bytes:
    """
    Versioned bytecode hash used by the contract deployer.

    sha256 of the bytecode with the first two bytes replaced by the
    version marker 0x0100 and the next two by the length in 32-byte words.

    Raises:
        InvalidBytecodeError: length not a multiple of 32, too long, or an
            even number of words
    """
    code = get_bytes(bytecode)

    if len(code) % 32 != 0:
        raise InvalidBytecodeError("The bytecode length in bytes must be divisible by 32", len(code))

    if len(code) > MAX_BYTECODE_LEN_BYTES:
        raise InvalidBytecodeError(f"Bytecode can not be longer than {MAX_BYTECODE_LEN_BYTES} bytes", len(code))

    words = len(code) // 32
    if words % 2 == 0:
        raise InvalidBytecodeError("Bytecode length in 32-byte words must be odd", len(code))

    digest = bytearray(hashlib.sha256(code).digest())
    digest[0:2] = b"\x01\x00"
    digest[2:4] = words.to_bytes(2, "big")
    return bytes(digest)


def create2_address(sender: str, bytecode_hash: BytesLike, salt: BytesLike, input: BytesLike = b"") -> str:
    """Address of a contract deployed via create2 on L2 (differs from the EVM rule)."""
    data = (
        _CREATE2_PREFIX
        + pad32(address_to_bytes(sender))
        + get_bytes(salt)
        + get_bytes(bytecode_hash)
        + keccak(get_bytes(input))
    )
    return to_checksum_address(keccak(data)[12:])


def create_address(sender: str, sender_nonce: int) -> str:
    data = (
        _CREATE_PREFIX
        + pad32(address_to_bytes(sender))
        + pad32(int_to_bytes(sender_nonce))
    )
    return to_checksum_address(keccak(data)[12:])


def apply_l1_to_l2_alias(address: str) -> str:
    """L2 msg.sender of a transaction initiated by L1 contract `address`."""
    result = (int(address, 16) + L1_TO_L2_ALIAS_OFFSET) % ADDRESS_MODULO
    return to_checksum_address(result.to_bytes(20, "big"))


def undo_l1_to_l2_alias(address: str) -> str:
    result = int(address, 16) - L1_TO_L2_ALIAS_OFFSET
    if result < 0:
        result += ADDRESS_MODULO
    return to_checksum_address(result.to_bytes(20, "big"))


# ============================================================================
# Logs and messages
# ============================================================================

def get_hashed_l2_to_l1_msg(sender: str, msg: BytesLike, tx_number_in_block: int) -> str:
    encoded = (
        b"\x00"  # l2ShardId
        + b"\x01"  # isService
        + tx_number_in_block.to_bytes(2, "big")
        + address_to_bytes(L1_MESSENGER_ADDRESS)
        + pad32(address_to_bytes(sender))
        + keccak(get_bytes(msg))
    )
    return to_hex(keccak(encoded))


def _topic_address(topic) -> str:
    return to_checksum_address(get_bytes(topic)[-20:])


def get_deployed_contracts(receipt) -> List["DeploymentInfo"]:
    """
    Extract ContractDeployed events emitted by the deployer system contract.

    Args:
        receipt: Any receipt whose logs expose address/topics
    """
    from ..types.chain import DeploymentInfo

    deployer = get_interface("ContractDeployer")
    topic = deployer.event_topic("ContractDeployed")

    deployed = []
    for log in receipt.logs:
        if not log.topics or to_hex(get_bytes(log.topics[0])) != topic:
            continue
        if log.address.lower() != CONTRACT_DEPLOYER_ADDRESS:
            continue
        deployed.append(DeploymentInfo(
            sender=_topic_address(log.topics[1]),
            bytecode_hash=to_hex(get_bytes(log.topics[2])),
            deployed_address=_topic_address(log.topics[3]),
        ))
    return deployed


def get_l2_hash_from_priority_op(l1_receipt, main_contract: str) -> str:
    """
    Canonical L2 hash of a priority operation, read from the
    NewPriorityRequest event the main contract emitted in `l1_receipt`.

    Raises:
        ProtocolError: no such event in the receipt
    """
    main = get_interface("IZkSync")
    tx_hash = None

    for log in l1_receipt.logs:
        if log.address.lower() != main_contract.lower():
            continue
        try:
            parsed = main.parse_log(log.topics, log.data)
        except Exception as e:
            logger.debug(f"Skipping undecodable main contract log: {e}")
            continue
        if parsed and parsed[1].get("txHash") is not None:
            tx_hash = to_hex(parsed[1]["txHash"])

    if tx_hash is None:
        receipt_hash = getattr(l1_receipt, "transactionHash", None)
        raise ProtocolError.priority_op_not_found(to_hex(receipt_hash) if receipt_hash else "<unknown>")

    return tx_hash


# ============================================================================
# Fees
# ============================================================================

def check_base_cost(base_cost: int, value: int) -> None:
    """
    Raises:
        InsufficientValueError: base_cost exceeds value
    """
    if base_cost > value:
        raise InsufficientValueError(base_cost, value)


def scale_gas_limit(gas_limit: int) -> int:
    return gas_limit * L1_FEE_ESTIMATION_COEF_NUMERATOR // L1_FEE_ESTIMATION_COEF_DENOMINATOR


# ============================================================================
# Signature verification
# ============================================================================

def hash_signable(signable: SignableMessage) -> bytes:
    """EIP-191 digest of a SignableMessage."""
    return keccak(b"\x19" + signable.version + signable.header + signable.body)


def _is_ecdsa_signature_correct(address: str, signable: SignableMessage, signature: BytesLike) -> bool:
    try:
        recovered = Account.recover_message(signable, signature=get_bytes(signature))
    except Exception as e:
        # Malformed signatures are treated as incorrect
        logger.debug(f"ECDSA recovery failed: {e}")
        return False
    return recovered.lower() == address.lower()


def _is_eip1271_signature_correct(provider, address: str, msg_hash: bytes, signature: BytesLike) -> bool:
    # Transport errors propagate; only the magic value decides
    result = provider.call_contract(
        address, "IERC1271", "isValidSignature", [msg_hash, get_bytes(signature)]
    )
    return to_hex(result) == EIP1271_MAGIC_VALUE


def _is_signature_correct(provider, address: str, signable: SignableMessage, signature: BytesLike) -> bool:
    code = provider.get_code(address)
    if len(get_bytes(code)) == 0:
        return _is_ecdsa_signature_correct(address, signable, signature)
    return _is_eip1271_signature_correct(provider, address, hash_signable(signable), signature)


def is_message_signature_correct(provider, address: str, message: Union[str, bytes], signature: BytesLike) -> bool:
    """
    Check an EIP-191 personal message signature for an EOA or a contract account.

    EOAs are checked by recovery; accounts with code by EIP-1271.
    """
    if isinstance(message, str):
        signable = encode_defunct(text=message)
    else:
        signable = encode_defunct(primitive=bytes(message))
    return _is_signature_correct(provider, address, signable, signature)


def is_typed_data_signature_correct(provider, address: str, typed_data: Dict[str, Any], signature: BytesLike) -> bool:
    """
    Same as is_message_signature_correct for an EIP-712 typed data
    message ({"types", "primaryType", "domain", "message"}).
    """
    signable = encode_typed_data(full_message=typed_data)
    return _is_signature_correct(provider, address, signable, signature)
