"""
Test 0x71 Codec

Tests for serialize_eip712 / parse_eip712 / eip712_tx_hash and the
EIP-712 typed-data signer.
"""

import hashlib
import sys
from pathlib import Path

import pytest
import rlp
from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_utils import keccak, to_checksum_address, to_hex

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from zksync_adapter.core.codec import serialize_eip712, parse_eip712, eip712_tx_hash
from zksync_adapter.core.eip712 import get_signable_message, get_sign_input
from zksync_adapter.core.utils import hash_bytecode
from zksync_adapter.infra.evm_signer import EVMSigner
from zksync_adapter.signer import EIP712Signer
from zksync_adapter.types.transaction import (
    EthSignature,
    Eip712Meta,
    PaymasterParams,
    Transaction712,
)
from zksync_adapter.errors import (
    InvalidSignatureError,
    MalformedPayloadError,
    MissingFieldError,
)

PRIVATE_KEY = "0x" + "11" * 32
CHAIN_ID = 270
RECIPIENT = to_checksum_address("0xa61464658afeaf65cccaafd3a512b69a83b77618")
PAYMASTER = to_checksum_address("0x" + "ab" * 20)
BYTECODE = bytes(range(32))


def _signer() -> EVMSigner:
    return EVMSigner.from_private_key(PRIVATE_KEY)


def _tx(**changes) -> Transaction712:
    tx = Transaction712(
        to=RECIPIENT,
        from_address=_signer().address,
        chain_id=CHAIN_ID,
        nonce=3,
        gas_limit=1_000_000,
        max_fee_per_gas=250_000_000,
        max_priority_fee_per_gas=1,
        value=7,
        data=b"\xde\xad\xbe\xef",
        custom_data=Eip712Meta(
            gas_per_pubdata=50_000,
            factory_deps=[BYTECODE],
            paymaster_params=PaymasterParams(paymaster=PAYMASTER, paymaster_input=b"\x01\x02"),
        ),
    )
    return tx.copy(**changes) if changes else tx


def _expected_tx_hash(tx: Transaction712, signature_bytes: bytes) -> str:
    """keccak(EIP-712 digest || keccak(signature)), with the struct written out by hand."""
    message = {
        "types": {
            "EIP712Domain": [
                {"name": "name", "type": "string"},
                {"name": "version", "type": "string"},
                {"name": "chainId", "type": "uint256"},
            ],
            "Transaction": [
                {"name": name, "type": "uint256"}
                for name in (
                    "txType", "from", "to", "gasLimit", "gasPerPubdataByteLimit", "maxFeePerGas",
                    "maxPriorityFeePerGas", "paymaster", "nonce", "value",
                )
            ] + [
                {"name": "data", "type": "bytes"},
                {"name": "factoryDeps", "type": "bytes32[]"},
                {"name": "paymasterInput", "type": "bytes"},
            ],
        },
        "primaryType": "Transaction",
        "domain": {"name": "zkSync", "version": "2", "chainId": CHAIN_ID},
        "message": {
            "txType": 113,
            "from": int(tx.from_address, 16),
            "to": int(RECIPIENT, 16),
            "gasLimit": 1_000_000,
            "gasPerPubdataByteLimit": 50_000,
            "maxFeePerGas": 250_000_000,
            "maxPriorityFeePerGas": 1,
            "paymaster": int(PAYMASTER, 16),
            "nonce": 3,
            "value": 7,
            "data": b"\xde\xad\xbe\xef",
            "factoryDeps": [b"\x01\x00\x00\x01" + hashlib.sha256(BYTECODE).digest()[4:]],
            "paymasterInput": b"\x01\x02",
        },
    }
    signable = encode_typed_data(full_message=message)
    digest = keccak(b"\x19" + signable.version + signable.header + signable.body)
    return to_hex(keccak(digest + keccak(signature_bytes)))


def _sign(tx: Transaction712) -> EthSignature:
    return EthSignature.from_bytes(EIP712Signer(_signer(), CHAIN_ID).sign(tx))


# =============================================================================
# Signing
# =============================================================================

def test_sign_recovers_sender():
    """Test the typed-data signature recovers to the sender"""
    print("Testing EIP712Signer.sign...")

    tx = _tx()
    raw_signature = EIP712Signer(_signer(), CHAIN_ID).sign(tx)
    assert len(raw_signature) == 65

    recovered = Account.recover_message(get_signable_message(tx), signature=raw_signature)
    assert recovered == tx.from_address

    print("  EIP712Signer.sign: PASSED")


def test_sign_input_hashes_factory_deps():
    """Test the struct carries hashed deps and addresses as integers"""
    print("Testing get_sign_input...")

    sign_input = get_sign_input(_tx())
    assert sign_input["txType"] == 0x71
    assert sign_input["factoryDeps"] == [hash_bytecode(BYTECODE)]
    assert sign_input["to"] == int(RECIPIENT, 16)
    assert sign_input["paymasterInput"] == b"\x01\x02"

    no_paymaster = get_sign_input(_tx(custom_data=Eip712Meta()))
    assert no_paymaster["paymaster"] == 0
    assert no_paymaster["paymasterInput"] == b""

    print("  get_sign_input: PASSED")


# =============================================================================
# Envelope
# =============================================================================

def test_signed_round_trip():
    """Test serialize -> parse restores fields, signature and hash"""
    print("Testing signed round trip...")

    tx = _tx()
    signature = _sign(tx)
    payload = serialize_eip712(tx, signature)
    assert payload[0] == 0x71

    parsed = parse_eip712(payload)
    assert parsed.to == tx.to
    assert parsed.from_address == tx.from_address
    assert parsed.nonce == 3
    assert parsed.gas_limit == 1_000_000
    assert parsed.max_fee_per_gas == 250_000_000
    assert parsed.max_priority_fee_per_gas == 1
    assert parsed.value == 7
    assert parsed.data == b"\xde\xad\xbe\xef"
    assert parsed.custom_data.factory_deps == [BYTECODE]
    assert parsed.custom_data.paymaster_params == tx.custom_data.paymaster_params
    assert parsed.signature == signature
    assert parsed.hash == _expected_tx_hash(tx, signature.r + signature.s + bytes([signature.v]))
    assert parsed.hash == eip712_tx_hash(tx, signature)

    # Hex input parses the same way
    assert parse_eip712("0x" + payload.hex()).hash == parsed.hash

    print("  Signed round trip: PASSED")


def test_custom_signature_round_trip():
    """Test a custom signature takes precedence over the ECDSA slots"""
    print("Testing custom signature...")

    tx = _tx()
    raw_signature = EIP712Signer(_signer(), CHAIN_ID).sign(tx)
    tx.custom_data.custom_signature = raw_signature

    parsed = parse_eip712(serialize_eip712(tx))
    assert parsed.custom_data.custom_signature == raw_signature
    assert parsed.signature is None
    assert parsed.is_signed
    assert parsed.hash == _expected_tx_hash(tx, raw_signature)

    print("  Custom signature: PASSED")


def test_unsigned_has_no_hash():
    """Test an unsigned envelope parses without signature or hash"""
    print("Testing unsigned envelope...")

    parsed = parse_eip712(serialize_eip712(_tx()))
    assert parsed.signature is None
    assert parsed.hash is None
    assert not parsed.is_signed
    assert parsed.chain_id == CHAIN_ID

    print("  Unsigned envelope: PASSED")


def test_empty_custom_signature_rejected():
    """Test an empty (not absent) custom signature"""
    print("Testing empty custom signature...")

    tx = _tx()
    tx.custom_data.custom_signature = b""
    with pytest.raises(InvalidSignatureError):
        serialize_eip712(tx)

    print("  Empty custom signature: PASSED")


def test_missing_from_rejected():
    """Test serialization requires from and chainId"""
    print("Testing missing fields...")

    with pytest.raises(MissingFieldError):
        serialize_eip712(_tx(from_address=None))
    with pytest.raises(MissingFieldError):
        serialize_eip712(_tx(chain_id=None))

    print("  Missing fields: PASSED")


def test_malformed_payloads():
    """Test wrong type byte, bad RLP and wrong item count"""
    print("Testing malformed payloads...")

    payload = serialize_eip712(_tx())

    with pytest.raises(MalformedPayloadError):
        parse_eip712(b"\x02" + payload[1:])

    with pytest.raises(MalformedPayloadError):
        parse_eip712(b"")

    with pytest.raises(MalformedPayloadError):
        parse_eip712(b"\x71\xc5\x01")

    with pytest.raises(MalformedPayloadError):
        parse_eip712(b"\x71" + rlp.encode([b"\x01", b"\x02"]))

    print("  Malformed payloads: PASSED")


def test_bad_parity_rejected():
    """Test v outside {0, 1} on an ECDSA-signed envelope"""
    print("Testing bad parity...")

    tx = _tx()
    signature = _sign(tx)
    bad = EthSignature(v=5, r=signature.r, s=signature.s)

    with pytest.raises(InvalidSignatureError):
        parse_eip712(serialize_eip712(tx, bad))

    print("  Bad parity: PASSED")


def test_list_in_byte_string_slot_rejected():
    """Test a nested list where a scalar or byte string belongs"""
    print("Testing list in byte-string slot...")

    fields = rlp.decode(serialize_eip712(_tx())[1:])
    for index in (2, 6, 8, 11, 14):
        items = list(fields)
        items[index] = [b"x"]
        with pytest.raises(MalformedPayloadError):
            parse_eip712(b"\x71" + rlp.encode(items))

    items = list(fields)
    items[13] = [[b"x"]]
    with pytest.raises(MalformedPayloadError):
        parse_eip712(b"\x71" + rlp.encode(items))

    print("  List in byte-string slot: PASSED")


def test_zero_gas_per_pubdata_uses_default():
    """Test an explicit 0 gasPerPubdata is encoded as the default limit"""
    print("Testing zero gasPerPubdata...")

    tx = _tx(custom_data=Eip712Meta(gas_per_pubdata=0))
    fields = rlp.decode(serialize_eip712(tx)[1:])
    assert int.from_bytes(fields[12], "big") == 50_000
    assert parse_eip712(serialize_eip712(tx)).custom_data.gas_per_pubdata == 50_000

    print("  Zero gasPerPubdata: PASSED")


if __name__ == "__main__":
    test_sign_recovers_sender()
    test_sign_input_hashes_factory_deps()
    test_signed_round_trip()
    test_custom_signature_round_trip()
    test_unsigned_has_no_hash()
    test_empty_custom_signature_rejected()
    test_missing_from_rejected()
    test_malformed_payloads()
    test_bad_parity_rejected()
    test_list_in_byte_string_slot_rejected()
    test_zero_gas_per_pubdata_uses_default()
    print("\nAll codec tests passed!")
