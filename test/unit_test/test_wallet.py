"""
Test Wallet, Void Signers and ContractFactory

L2 is a scripted JSON-RPC transport, L1 web3 a MagicMock; signing uses
a real local key.
"""

import sys
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from eth_abi import encode
from eth_account import Account
from eth_utils import keccak, to_checksum_address, to_hex

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from conftest import MAIN_CONTRACT, TEST_PRIVATE_KEY  # noqa: E402

from zksync_adapter.core.abi import get_interface  # noqa: E402
from zksync_adapter.core.codec import parse_eip712  # noqa: E402
from zksync_adapter.core.constants import CONTRACT_DEPLOYER_ADDRESS, ETH_ADDRESS, ZERO_HASH  # noqa: E402
from zksync_adapter.core.eip712 import get_signable_message  # noqa: E402
from zksync_adapter.core.utils import create2_address, create_address, hash_bytecode  # noqa: E402
from zksync_adapter.errors import (  # noqa: E402
    ConfigurationError,
    ErrorCode,
    SignerError,
    TransactionError,
)
from zksync_adapter.wallet import Wallet  # noqa: E402

GWEI = 10**9
BOB = to_checksum_address("0x" + "b0" * 20)
BYTECODE = bytes(range(32)) * 3
SALT = "0x" + "5a" * 32


@pytest.fixture
def l2_node(fake_rpc):
    """Node answers for populating L2 transactions."""
    fake_rpc.on("eth_getTransactionCount", "0x3")
    fake_rpc.on("eth_gasPrice", "0xee6b280")
    fake_rpc.on("eth_estimateGas", "0x5208")
    fake_rpc.on("eth_getBlockByNumber", {"number": "0x1", "hash": "0x" + "00" * 32, "baseFeePerGas": "0x1"})
    fake_rpc.on("eth_sendRawTransaction", lambda params: _expected_hash(params[0]))
    return fake_rpc


def _expected_hash(raw_hex: str) -> str:
    raw = bytes.fromhex(raw_hex[2:])
    if raw[0] == 0x71:
        return parse_eip712(raw).hash
    return to_hex(keccak(raw))


@pytest.fixture
def wallet(provider, l2_node):
    return Wallet(TEST_PRIVATE_KEY, provider)


# =============================================================================
# Populate & sign
# =============================================================================

def test_populate_legacy(wallet, l2_node):
    """Test an untyped request becomes legacy with gasPrice and gas"""
    print("Testing populate (legacy)...")

    tx = wallet.populate_transaction({"to": BOB, "value": 1})
    assert tx["type"] == 0
    assert tx["from"] == wallet.address
    assert tx["nonce"] == 3
    assert tx["chainId"] == 270
    assert tx["gasPrice"] == 250_000_000
    assert tx["gas"] == 21_000
    # Nonce is read at the pending tag
    assert ("eth_getTransactionCount", [wallet.address, "pending"]) in l2_node.calls

    print("  Populate (legacy): PASSED")


def test_populate_eip712(wallet):
    """Test 0x71 requests get customData defaults"""
    print("Testing populate (0x71)...")

    tx = wallet.populate_transaction({"to": BOB, "customData": {}})
    assert tx["type"] == 0x71
    assert tx["value"] == 0
    assert tx["data"] == "0x"
    assert tx["customData"] == {"gasPerPubdata": 50_000, "factoryDeps": []}
    assert tx["gasPrice"] == 250_000_000

    print("  Populate (0x71): PASSED")


def test_from_mismatch(wallet):
    print("Testing from mismatch...")

    with pytest.raises(TransactionError) as exc_info:
        wallet.populate_transaction({"to": BOB, "from": BOB})
    assert exc_info.value.code == ErrorCode.TX_FROM_MISMATCH

    with pytest.raises(TransactionError):
        wallet.sign_transaction({"to": BOB, "from": BOB, "customData": {}})

    print("  From mismatch: PASSED")


def test_sign_legacy_and_1559(wallet):
    """Test standard transactions are signed by eth_account"""
    print("Testing sign (legacy / 1559)...")

    legacy_raw = wallet.sign_transaction(wallet.populate_transaction({"to": BOB, "value": 1}))
    assert legacy_raw[0] >= 0xC0
    assert Account.recover_transaction(legacy_raw) == wallet.address

    dynamic_tx = wallet.populate_transaction({"to": BOB, "value": 1, "type": 2})
    assert dynamic_tx["maxFeePerGas"] == 250_000_000
    assert dynamic_tx["maxPriorityFeePerGas"] == 0

    dynamic_raw = wallet.sign_transaction(dynamic_tx)
    assert dynamic_raw[0] == 0x02
    assert Account.recover_transaction(dynamic_raw) == wallet.address

    print("  Sign (legacy / 1559): PASSED")


def test_sign_eip712(wallet):
    """Test 0x71 signing fills customSignature and round-trips"""
    print("Testing sign (0x71)...")

    raw = wallet.sign_transaction(wallet.populate_transaction({"to": BOB, "value": 7, "customData": {}}))
    parsed = parse_eip712(raw)

    assert parsed.from_address == wallet.address
    assert parsed.to == BOB
    assert parsed.value == 7
    assert parsed.nonce == 3
    assert parsed.chain_id == 270
    assert parsed.max_fee_per_gas == 250_000_000
    assert len(parsed.custom_data.custom_signature) == 65
    assert parsed.hash is not None

    recovered = Account.recover_message(
        get_signable_message(parsed), signature=parsed.custom_data.custom_signature
    )
    assert recovered == wallet.address

    print("  Sign (0x71): PASSED")


def test_transfer_broadcasts(wallet, l2_node):
    """Test transfer populates, signs and broadcasts"""
    print("Testing transfer...")

    response = wallet.transfer(BOB, 5)
    sent = l2_node.calls[-1]
    assert sent[0] == "eth_sendRawTransaction"
    assert response.hash == _expected_hash(sent[1][0])

    print("  Transfer: PASSED")


def test_withdraw_eth(wallet, l2_node):
    """Test ETH withdrawal goes to the L2 ETH token with value"""
    from zksync_adapter.core.constants import L2_ETH_TOKEN_ADDRESS

    print("Testing withdraw...")

    wallet.withdraw(ETH_ADDRESS, 10)
    raw = bytes.fromhex(l2_node.calls[-1][1][0][2:])
    sent = Account.recover_transaction(raw)
    assert sent == wallet.address

    estimate = [params for method, params in l2_node.calls if method == "eth_estimateGas"][-1][0]
    assert estimate["to"] == to_checksum_address(L2_ETH_TOKEN_ADDRESS)
    assert estimate["value"] == "0xa"

    print("  Withdraw: PASSED")


# =============================================================================
# L1 connection
# =============================================================================

def test_l1_required(wallet):
    """Test L1 operations without an L1 connection"""
    print("Testing L1 operations without L1...")

    with pytest.raises(ConfigurationError):
        wallet.deposit(ETH_ADDRESS, 1)
    with pytest.raises(ConfigurationError):
        wallet.eth_wallet()

    print("  L1 operations without L1: PASSED")


def test_send_l1_transaction(wallet, web3_l1):
    """Test L1 transactions get nonce, gas and the bumped fees"""
    print("Testing send_l1_transaction...")

    web3_l1.eth.get_transaction_count.return_value = 7
    web3_l1.eth.estimate_gas.return_value = 21_000
    connected = wallet.connect_to_l1(web3_l1)

    tx_hash = connected.send_l1_transaction({"to": MAIN_CONTRACT, "data": "0x", "value": 5})

    raw = web3_l1.eth.send_raw_transaction.call_args.args[0]
    assert Account.recover_transaction(raw) == wallet.address
    assert tx_hash == to_hex(keccak(raw))

    estimate = web3_l1.eth.estimate_gas.call_args.args[0]
    assert estimate["from"] == wallet.address
    assert "maxFeePerGas" not in estimate
    web3_l1.eth.get_transaction_count.assert_called_with(wallet.address, "pending")

    print("  send_l1_transaction: PASSED")


def test_send_l1_transaction_rejected(wallet, web3_l1):
    print("Testing send_l1_transaction rejection...")

    web3_l1.eth.get_transaction_count.return_value = 7
    web3_l1.eth.estimate_gas.return_value = 21_000
    web3_l1.eth.send_raw_transaction.side_effect = ValueError("nonce too low")

    with pytest.raises(TransactionError) as exc_info:
        wallet.connect_to_l1(web3_l1).send_l1_transaction({"to": MAIN_CONTRACT, "value": 0})
    assert exc_info.value.code == ErrorCode.TX_SEND_FAILED

    print("  send_l1_transaction rejection: PASSED")


# =============================================================================
# Void signers
# =============================================================================

def test_l2_void_signer(provider, fake_rpc):
    """Test reads work and sends raise read_only"""
    from zksync_adapter.signer import L2VoidSigner

    print("Testing L2VoidSigner...")

    fake_rpc.on("eth_getBalance", "0x64")
    void = L2VoidSigner(BOB.lower(), provider)

    assert void.address == BOB
    assert void.get_balance() == 100

    with pytest.raises(SignerError) as exc_info:
        void.send_transaction({"to": BOB, "value": 1})
    assert exc_info.value.code == ErrorCode.SIGNER_READ_ONLY

    with pytest.raises(SignerError):
        void.sign_transaction({})

    print("  L2VoidSigner: PASSED")


def test_l1_void_signer(provider, web3_l1):
    """Test deposit quotes work and submission raises read_only"""
    from zksync_adapter.signer import L1VoidSigner

    print("Testing L1VoidSigner...")

    web3_l1.eth.contract.return_value.functions.l2TransactionBaseCost.return_value.call.return_value = 1_000
    web3_l1.eth.estimate_gas.return_value = 100_000
    void = L1VoidSigner(BOB, provider, web3_l1)

    tx = void.get_deposit_tx(ETH_ADDRESS, 5, l2_gas_limit=100_000)
    assert tx["from"] == BOB
    assert tx["value"] == 1_005

    with pytest.raises(SignerError) as exc_info:
        void.deposit(ETH_ADDRESS, 5, l2_gas_limit=100_000)
    assert exc_info.value.code == ErrorCode.SIGNER_READ_ONLY

    print("  L1VoidSigner: PASSED")


# =============================================================================
# ContractFactory
# =============================================================================

CONSTRUCTOR_ABI = [{"type": "constructor", "inputs": [{"name": "x", "type": "uint256"}]}]


def test_factory_deploy_transaction(wallet):
    """Test create deployments target the deployer with the bytecode as a dep"""
    from zksync_adapter.contract import ContractFactory

    print("Testing get_deploy_transaction (create)...")

    factory = ContractFactory(CONSTRUCTOR_ABI, BYTECODE, wallet)
    tx = factory.get_deploy_transaction(42, overrides={"customData": {"factoryDeps": [BYTECODE]}})

    assert tx["type"] == 0x71
    assert tx["to"] == to_checksum_address(CONTRACT_DEPLOYER_ADDRESS)
    assert tx["customData"]["factoryDeps"] == [BYTECODE]
    assert tx["customData"]["gasPerPubdata"] == 50_000

    salt, bytecode_hash, constructor_input = get_interface("ContractDeployer").decode_function_data(
        "create", tx["data"]
    )
    assert salt == bytes.fromhex(ZERO_HASH[2:])
    assert bytecode_hash == hash_bytecode(BYTECODE)
    assert constructor_input == encode(["uint256"], [42])

    print("  get_deploy_transaction (create): PASSED")


def test_factory_create2_account(wallet):
    """Test create2Account carries the salt and account version"""
    from zksync_adapter.contract import ContractFactory

    print("Testing get_deploy_transaction (create2Account)...")

    factory = ContractFactory([], BYTECODE, wallet, deployment_type="create2Account")
    tx = factory.get_deploy_transaction(salt=SALT)

    args = get_interface("ContractDeployer").decode_function_data("create2Account", tx["data"])
    assert args == (bytes.fromhex("5a" * 32), hash_bytecode(BYTECODE), b"", 1)

    assert factory.get_deploy_address(salt=SALT) == create2_address(
        wallet.address, hash_bytecode(BYTECODE), bytes.fromhex("5a" * 32), b""
    )

    print("  get_deploy_transaction (create2Account): PASSED")


def test_factory_bad_salt_and_type(wallet):
    """Test malformed salts and unknown deployment types"""
    from zksync_adapter.contract import ContractFactory
    from zksync_adapter.errors import InvalidSaltError, OperationNotSupported

    print("Testing factory validation...")

    factory = ContractFactory([], BYTECODE, wallet, deployment_type="create2")
    for salt in (None, "0x12", "5a" * 33, "0x" + "zz" * 32):
        with pytest.raises(InvalidSaltError):
            factory.get_deploy_transaction(salt=salt)

    with pytest.raises(OperationNotSupported):
        ContractFactory([], BYTECODE, wallet, deployment_type="create3")

    print("  Factory validation: PASSED")


def test_factory_create_address_uses_deployment_nonce(wallet, fake_rpc):
    """Test create addresses use the NonceHolder deployment nonce"""
    from zksync_adapter.contract import ContractFactory

    print("Testing get_deploy_address (create)...")

    fake_rpc.on("eth_call", to_hex(encode(["uint256"], [2])))
    factory = ContractFactory([], BYTECODE, wallet)

    assert factory.get_deploy_address() == create_address(wallet.address, 2)
    assert wallet.get_deployment_nonce() == 2

    print("  get_deploy_address (create): PASSED")


def test_factory_deploy(fast_polling):
    """Test deploy returns the last ContractDeployed event"""
    from zksync_adapter.contract import ContractFactory
    from zksync_adapter.errors import NotFoundError

    print("Testing deploy...")

    deployed = to_checksum_address("0x" + "dc" * 20)
    topic = get_interface("ContractDeployer").event_topic("ContractDeployed")
    receipt = SimpleNamespace(logs=[
        SimpleNamespace(
            address=to_checksum_address(CONTRACT_DEPLOYER_ADDRESS),
            topics=[
                topic,
                to_hex(bytes(12) + bytes.fromhex(BOB[2:])),
                to_hex(hash_bytecode(BYTECODE)),
                to_hex(bytes(12) + bytes.fromhex(deployed[2:])),
            ],
            data="0x",
        )
    ])

    signer = MagicMock()
    signer.address = BOB
    signer.send_transaction.return_value.wait.return_value = receipt

    info = ContractFactory([], BYTECODE, signer).deploy()
    assert info.deployed_address == deployed
    assert info.sender == BOB
    assert info.bytecode_hash == to_hex(hash_bytecode(BYTECODE))

    signer.send_transaction.return_value.wait.return_value = SimpleNamespace(logs=[])
    with pytest.raises(NotFoundError):
        ContractFactory([], BYTECODE, signer).deploy()

    print("  Deploy: PASSED")


if __name__ == "__main__":
    pytest.main([__file__, "-v", "-s"])
