"""
Test Provider

Tests for the L2 Provider over a scripted JSON-RPC transport.
"""

import sys
from pathlib import Path
from types import SimpleNamespace

import pytest
from eth_abi import encode
from eth_utils import keccak, to_checksum_address, to_hex

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from conftest import ERC20_BRIDGE_L2, MAIN_CONTRACT, sequence  # noqa: E402

ALICE = to_checksum_address("0x" + "a1" * 20)
TOKEN_L1 = to_checksum_address("0x" + "c0" * 20)
TOKEN_L2 = to_checksum_address("0x" + "c2" * 20)
WETH_BRIDGE_L2 = to_checksum_address("0x" + "e2" * 20)
L2_HASH = "0x" + "ab" * 32


def _encoded_address(address: str) -> str:
    return to_hex(encode(["address"], [address]))


def _priority_request_log(tx_hash: bytes):
    """NewPriorityRequest log as the main contract emits it."""
    from zksync_adapter.core.abi import get_interface

    canonical_tx = (0xFF, 1, 2, 100_000, 800, 1, 0, 0, 0, 0, [0, 0, 0, 0], b"", b"", [], b"", b"")
    data = encode(
        [
            "uint256",
            "bytes32",
            "uint64",
            "(uint256,uint256,uint256,uint256,uint256,uint256,uint256,uint256,uint256,uint256,"
            "uint256[4],bytes,bytes,uint256[],bytes,bytes)",
            "bytes[]",
        ],
        [7, tx_hash, 0, canonical_tx, []],
    )
    return SimpleNamespace(
        address=MAIN_CONTRACT,
        topics=[get_interface("IZkSync").event_topic("NewPriorityRequest")],
        data=data,
    )


# =============================================================================
# Request formatting
# =============================================================================

def test_get_rpc_transaction_eip712(provider):
    """Test quantities become hex and customData becomes eip712Meta"""
    print("Testing get_rpc_transaction (0x71)...")

    rpc_tx = provider.get_rpc_transaction({
        "from": ALICE.lower(),
        "to": TOKEN_L2,
        "gasLimit": 100,
        "value": 5,
        "data": b"\x01",
        "customData": {
            "gasPerPubdata": 800,
            "factoryDeps": [b"\x01\x02"],
            "paymasterParams": {"paymaster": WETH_BRIDGE_L2.lower(), "paymasterInput": b"\x03"},
        },
    })

    assert rpc_tx["from"] == ALICE
    assert rpc_tx["gas"] == "0x64"
    assert rpc_tx["value"] == "0x5"
    assert rpc_tx["data"] == "0x01"
    assert rpc_tx["type"] == "0x71"
    assert rpc_tx["eip712Meta"] == {
        "gasPerPubdata": "0x320",
        "factoryDeps": [[1, 2]],
        "paymasterParams": {"paymaster": WETH_BRIDGE_L2, "paymasterInput": [3]},
    }

    print("  get_rpc_transaction (0x71): PASSED")


def test_get_rpc_transaction_plain(provider):
    """Test requests without customData carry no eip712Meta"""
    print("Testing get_rpc_transaction (plain)...")

    rpc_tx = provider.get_rpc_transaction({"to": ALICE, "value": 0, "nonce": 2})
    assert rpc_tx == {"to": ALICE, "value": "0x0", "nonce": "0x2"}

    print("  get_rpc_transaction (plain): PASSED")


# =============================================================================
# Memoized addresses
# =============================================================================

def test_addresses_fetched_once(provider, fake_rpc):
    """Test main contract and bridges are queried once"""
    print("Testing address memoization...")

    for _ in range(3):
        assert provider.get_main_contract_address() == MAIN_CONTRACT
        bridges = provider.get_default_bridge_addresses()

    assert bridges.erc20_l2 == ERC20_BRIDGE_L2
    assert bridges.weth_l2 is None
    assert fake_rpc.count("zks_getMainContract") == 1
    assert fake_rpc.count("zks_getBridgeContracts") == 1

    print("  Address memoization: PASSED")


def test_default_provider_env(monkeypatch):
    """Test ZKSYNC_WEB3_API_URL overrides the network URL"""
    from zksync_adapter.provider import Provider
    from zksync_adapter.core.constants import ZkSyncNetwork

    print("Testing get_default_provider...")

    monkeypatch.delenv("ZKSYNC_WEB3_API_URL", raising=False)
    assert Provider.get_default_provider(ZkSyncNetwork.GOERLI).rpc.endpoint == "https://zksync2-testnet.zksync.dev"

    monkeypatch.setenv("ZKSYNC_WEB3_API_URL", "http://custom:3050")
    assert Provider.get_default_provider().rpc.endpoint == "http://custom:3050"

    print("  get_default_provider: PASSED")


# =============================================================================
# Queries
# =============================================================================

def test_fee_data(provider, fake_rpc):
    """Test 1559 pair is (gas price, 0) when the block has a base fee"""
    print("Testing get_fee_data...")

    fake_rpc.on("eth_gasPrice", "0x10")
    fake_rpc.on("eth_getBlockByNumber", {"number": "0x1", "hash": L2_HASH, "baseFeePerGas": "0x5"})

    fee_data = provider.get_fee_data()
    assert fee_data.gas_price == 16
    assert fee_data.max_fee_per_gas == 16
    assert fee_data.max_priority_fee_per_gas == 0

    fake_rpc.on("eth_getBlockByNumber", {"number": "0x1", "hash": L2_HASH})
    assert provider.get_fee_data().max_fee_per_gas is None

    print("  get_fee_data: PASSED")


def test_token_balance_failure_reads_zero(provider, fake_rpc):
    """Test a reverting balanceOf is reported as zero"""
    from zksync_adapter.errors import RpcError

    print("Testing token balance failure...")

    def failing_call(params):
        raise RpcError.error_response("eth_call", 3, "execution reverted")

    fake_rpc.on("eth_call", failing_call)
    fake_rpc.on("eth_getBalance", "0x2a")

    assert provider.get_balance(ALICE, token=TOKEN_L2) == 0
    assert provider.get_balance(ALICE) == 42
    assert fake_rpc.calls[-1] == ("eth_getBalance", [ALICE, "committed"])

    print("  Token balance failure: PASSED")


def test_receipt_polling(provider, fake_rpc, fast_polling):
    """Test receipts without a block number keep the loop going"""
    print("Testing receipt polling...")

    fake_rpc.on("eth_getTransactionReceipt", sequence(
        None,
        {"transactionHash": L2_HASH, "blockNumber": None},
        {"transactionHash": L2_HASH, "blockNumber": "0x5", "status": "0x1", "l1BatchNumber": "0x2"},
    ))

    receipt = provider.get_transaction_receipt(L2_HASH)
    assert receipt.block_number == 5
    assert receipt.l1_batch_number == 2
    assert fake_rpc.count("eth_getTransactionReceipt") == 3

    print("  Receipt polling: PASSED")


def test_receipt_polling_bound(provider, fake_rpc, fast_polling):
    """Test an unknown transaction exhausts the configured bound"""
    from zksync_adapter.errors import TransactionError

    print("Testing receipt polling bound...")

    fake_rpc.on("eth_getTransactionReceipt", None)

    with pytest.raises(TransactionError):
        provider.get_transaction_receipt(L2_HASH)
    assert fake_rpc.count("eth_getTransactionReceipt") == fast_polling.max_attempts

    print("  Receipt polling bound: PASSED")


# =============================================================================
# Broadcast
# =============================================================================

def test_broadcast_checks_hash(provider, fake_rpc):
    """Test the node's returned hash is compared with keccak(raw)"""
    from zksync_adapter.errors import ProtocolError, ErrorCode

    print("Testing broadcast hash check...")

    raw = b"\x02\xf8\x01\x02"
    expected = to_hex(keccak(raw))

    fake_rpc.on("eth_sendRawTransaction", expected)
    response = provider.broadcast_transaction(raw)
    assert response.hash == expected
    assert fake_rpc.calls[-1] == ("eth_sendRawTransaction", ["0x02f80102"])

    fake_rpc.on("eth_sendRawTransaction", L2_HASH)
    with pytest.raises(ProtocolError) as exc_info:
        provider.broadcast_transaction(raw)
    assert exc_info.value.code == ErrorCode.HASH_MISMATCH

    print("  Broadcast hash check: PASSED")


# =============================================================================
# Token addresses
# =============================================================================

def test_weth_lookup_failure_falls_back(provider, fake_rpc):
    """Test a failing WETH bridge lookup falls back to the ERC20 bridge"""
    from zksync_adapter.errors import RpcError

    print("Testing WETH lookup fallback...")

    fake_rpc.on("zks_getBridgeContracts", {
        "l1Erc20DefaultBridge": ERC20_BRIDGE_L2,
        "l2Erc20DefaultBridge": ERC20_BRIDGE_L2,
        "l1WethBridge": WETH_BRIDGE_L2,
        "l2WethBridge": WETH_BRIDGE_L2,
    })

    def eth_call(params):
        if params[0]["to"] == WETH_BRIDGE_L2:
            raise RpcError.error_response("eth_call", 3, "execution reverted")
        return _encoded_address(TOKEN_L2)

    fake_rpc.on("eth_call", eth_call)

    assert provider.l2_token_address(TOKEN_L1) == TOKEN_L2
    assert provider.l2_token_address("0x" + "00" * 20) == "0x" + "00" * 20

    print("  WETH lookup fallback: PASSED")


def test_withdraw_tx_eth(provider):
    """Test ETH withdrawals go through the L2 ETH token contract"""
    from zksync_adapter.core.constants import L2_ETH_TOKEN_ADDRESS
    from zksync_adapter.core.abi import get_interface
    from zksync_adapter.errors import ValidationError

    print("Testing get_withdraw_tx (ETH)...")

    tx = provider.get_withdraw_tx("0x" + "00" * 20, 10, from_address=ALICE)
    assert tx["to"] == to_checksum_address(L2_ETH_TOKEN_ADDRESS)
    assert tx["value"] == 10
    assert tx["from"] == ALICE
    assert get_interface("IEthToken").decode_function_data("withdraw", tx["data"]) == (ALICE,)

    with pytest.raises(ValidationError):
        provider.get_withdraw_tx("0x" + "00" * 20, 10, from_address=ALICE, overrides={"value": 9})
    with pytest.raises(ValidationError):
        provider.get_withdraw_tx("0x" + "00" * 20, 10)

    print("  get_withdraw_tx (ETH): PASSED")


# =============================================================================
# Priority operations
# =============================================================================

def test_priority_op_l2_hash(provider, fake_rpc, web3_l1, fast_polling):
    """Test the L2 hash comes from the NewPriorityRequest log"""
    from zksync_adapter.core.constants import TransactionStatus

    print("Testing priority op L2 hash...")

    l1_receipt = SimpleNamespace(
        transactionHash=b"\x01" * 32,
        logs=[
            SimpleNamespace(address=ALICE, topics=[], data=b""),
            _priority_request_log(bytes.fromhex(L2_HASH[2:])),
        ],
    )
    web3_l1.eth.get_transaction_receipt.return_value = l1_receipt

    l2_tx = {"hash": L2_HASH, "blockNumber": "0x3", "l1BatchNumber": "0x1", "l1BatchTxIndex": "0x0"}
    fake_rpc.on("eth_getTransactionByHash", sequence(None, l2_tx))
    fake_rpc.on("eth_getBlockByNumber", {"number": "0x1", "hash": "0x" + "00" * 32})

    priority_op = provider.get_priority_op_response("0x" + "01" * 32, web3_l1)
    response = priority_op.get_l2_transaction()

    assert response.hash == L2_HASH
    assert response.l1_batch_number == 1
    assert provider.get_transaction_status(L2_HASH) == TransactionStatus.COMMITTED

    print("  Priority op L2 hash: PASSED")


def test_priority_op_without_event(provider, web3_l1, fast_polling):
    """Test an L1 receipt without the event is a protocol error"""
    from zksync_adapter.errors import ProtocolError

    print("Testing priority op without event...")

    web3_l1.eth.get_transaction_receipt.return_value = SimpleNamespace(
        transactionHash=b"\x01" * 32, logs=[]
    )

    with pytest.raises(ProtocolError):
        provider.get_priority_op_response("0x" + "01" * 32, web3_l1).get_l2_transaction()

    print("  Priority op without event: PASSED")


# =============================================================================
# Finalization
# =============================================================================

def test_wait_finalize_before_first_finalized_block(provider, fake_rpc, fast_polling):
    """Test a node without a finalized head yet keeps the loop polling"""
    from zksync_adapter.types.response import TransactionResponse

    print("Testing wait_finalize without a finalized block...")

    receipt = {"transactionHash": L2_HASH, "blockNumber": "0x5", "status": "0x1"}
    fake_rpc.on("eth_getTransactionReceipt", receipt)
    fake_rpc.on("eth_getBlockByNumber", sequence(
        None,
        {"number": "0x4", "hash": "0x" + "04" * 32},
        {"number": "0x9", "hash": "0x" + "09" * 32},
    ))

    finalized = TransactionResponse(provider, L2_HASH).wait_finalize()

    assert finalized.block_number == 5
    assert fake_rpc.count("eth_getBlockByNumber") == 3
    assert ("eth_getBlockByNumber", ["finalized", False]) in fake_rpc.calls

    print("  wait_finalize without a finalized block: PASSED")


def test_wait_finalize_bound(provider, fake_rpc, fast_polling):
    """Test a block that never finalizes exhausts the bound"""
    from zksync_adapter.errors import TransactionError
    from zksync_adapter.types.response import TransactionResponse

    print("Testing wait_finalize bound...")

    fake_rpc.on("eth_getTransactionReceipt", {"transactionHash": L2_HASH, "blockNumber": "0x5"})
    fake_rpc.on("eth_getBlockByNumber", None)

    with pytest.raises(TransactionError):
        TransactionResponse(provider, L2_HASH).wait_finalize()
    assert fake_rpc.count("eth_getBlockByNumber") == fast_polling.max_attempts

    print("  wait_finalize bound: PASSED")


def test_priority_op_wait_finalize(provider, fake_rpc, web3_l1, fast_polling):
    """Test a priority op resolves its L2 transaction and waits for finality"""
    print("Testing priority op wait_finalize...")

    web3_l1.eth.get_transaction_receipt.return_value = SimpleNamespace(
        transactionHash=b"\x01" * 32,
        logs=[_priority_request_log(bytes.fromhex(L2_HASH[2:]))],
    )
    fake_rpc.on("eth_getTransactionByHash", {"hash": L2_HASH, "blockNumber": "0x3"})
    fake_rpc.on("eth_getTransactionReceipt", {"transactionHash": L2_HASH, "blockNumber": "0x3"})
    # First reply is read by the status check, the second by wait_finalize
    fake_rpc.on("eth_getBlockByNumber", sequence(None, None, {"number": "0x3", "hash": "0x" + "03" * 32}))

    priority_op = provider.get_priority_op_response("0x" + "01" * 32, web3_l1)
    receipt = priority_op.wait_finalize()

    assert receipt.transaction_hash == L2_HASH
    assert receipt.block_number == 3
    assert fake_rpc.calls[-1] == ("eth_getTransactionReceipt", [L2_HASH])

    print("  Priority op wait_finalize: PASSED")


if __name__ == "__main__":
    pytest.main([__file__, "-v", "-s"])
