"""
zkSync Adapter - client for a two-layer zkSync rollup

Provides:
- Provider: typed L2 JSON-RPC queries and transaction builders
- Wallet: one key acting on L1 (deposits, finalization, claims) and L2
- 0x71 (EIP-712) transaction signing and serialization
- ContractFactory: deployments through the L2 ContractDeployer
- Paymaster input encoding
"""

from .provider import Provider
from .wallet import Wallet
from .signer import EIP712Signer, L1VoidSigner, L2VoidSigner
from .contract import ContractFactory
from .adapters import L1Adapter, L2Adapter
from .core.codec import serialize_eip712, parse_eip712, eip712_tx_hash
from .core.constants import (
    ETH_ADDRESS,
    L2_ETH_TOKEN_ADDRESS,
    BOOTLOADER_FORMAL_ADDRESS,
    CONTRACT_DEPLOYER_ADDRESS,
    L1_MESSENGER_ADDRESS,
    NONCE_HOLDER_ADDRESS,
    EIP712_TX_TYPE,
    ZkSyncNetwork,
    TransactionStatus,
    DeploymentType,
)
from .core.paymaster import (
    ApprovalBasedPaymasterInput,
    GeneralPaymasterInput,
    get_approval_based_paymaster_input,
    get_general_paymaster_input,
    get_paymaster_params,
)
from .core.utils import (
    hash_bytecode,
    create_address,
    create2_address,
    apply_l1_to_l2_alias,
    undo_l1_to_l2_alias,
    is_eth,
)
from .types import (
    Transaction712,
    Eip712Meta,
    PaymasterParams,
    EthSignature,
    TransactionResponse,
    PriorityOpResponse,
)
from .errors import (
    ZkSyncError,
    RpcError,
    ValidationError,
    InsufficientFunds,
    NotFoundError,
    ProofNotAvailableError,
    ProtocolError,
    TransactionError,
    SignerError,
    ConfigurationError,
    ErrorCode,
)

# EVM infrastructure
from .infra.evm_signer import EVMSigner, create_web3, create_evm_signer

__all__ = [
    # Clients
    "Provider",
    "Wallet",
    "EIP712Signer",
    "L1VoidSigner",
    "L2VoidSigner",
    "ContractFactory",
    "L1Adapter",
    "L2Adapter",
    # Codec
    "serialize_eip712",
    "parse_eip712",
    "eip712_tx_hash",
    # Constants
    "ETH_ADDRESS",
    "L2_ETH_TOKEN_ADDRESS",
    "BOOTLOADER_FORMAL_ADDRESS",
    "CONTRACT_DEPLOYER_ADDRESS",
    "L1_MESSENGER_ADDRESS",
    "NONCE_HOLDER_ADDRESS",
    "EIP712_TX_TYPE",
    "ZkSyncNetwork",
    "TransactionStatus",
    "DeploymentType",
    # Paymaster
    "ApprovalBasedPaymasterInput",
    "GeneralPaymasterInput",
    "get_approval_based_paymaster_input",
    "get_general_paymaster_input",
    "get_paymaster_params",
    # Utilities
    "hash_bytecode",
    "create_address",
    "create2_address",
    "apply_l1_to_l2_alias",
    "undo_l1_to_l2_alias",
    "is_eth",
    # Types
    "Transaction712",
    "Eip712Meta",
    "PaymasterParams",
    "EthSignature",
    "TransactionResponse",
    "PriorityOpResponse",
    # Errors
    "ZkSyncError",
    "RpcError",
    "ValidationError",
    "InsufficientFunds",
    "NotFoundError",
    "ProofNotAvailableError",
    "ProtocolError",
    "TransactionError",
    "SignerError",
    "ConfigurationError",
    "ErrorCode",
    # EVM
    "EVMSigner",
    "create_web3",
    "create_evm_signer",
]

__version__ = "0.1.0"
