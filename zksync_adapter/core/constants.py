"""
Protocol constants and enums for the zkSync rollup
"""

from enum import Enum, IntEnum


# ============================================================================
# System contract addresses
# ============================================================================

ETH_ADDRESS = "0x0000000000000000000000000000000000000000"
ZERO_ADDRESS = ETH_ADDRESS
BOOTLOADER_FORMAL_ADDRESS = "0x0000000000000000000000000000000000008001"
NONCE_HOLDER_ADDRESS = "0x0000000000000000000000000000000000008003"
CONTRACT_DEPLOYER_ADDRESS = "0x0000000000000000000000000000000000008006"
L1_MESSENGER_ADDRESS = "0x0000000000000000000000000000000000008008"
L2_ETH_TOKEN_ADDRESS = "0x000000000000000000000000000000000000800a"

ZERO_HASH = "0x" + "00" * 32

L1_TO_L2_ALIAS_OFFSET = 0x1111000000000000000000000000000000001111
ADDRESS_MODULO = 2 ** 160

EIP1271_MAGIC_VALUE = "0x1626ba7e"


# ============================================================================
# Transaction envelope
# ============================================================================

EIP712_TX_TYPE = 0x71
PRIORITY_OPERATION_L2_TX_TYPE = 0xFF

MAX_BYTECODE_LEN_BYTES = ((1 << 16) - 1) * 32

# L1 gas estimates for priority requests come back slightly short
L1_FEE_ESTIMATION_COEF_NUMERATOR = 12
L1_FEE_ESTIMATION_COEF_DENOMINATOR = 10

# Only used to compute the recommended balance in error messages
L1_RECOMMENDED_MIN_ERC20_DEPOSIT_GAS_LIMIT = 400_000
L1_RECOMMENDED_MIN_ETH_DEPOSIT_GAS_LIMIT = 200_000

# Signed upper bound; the operator may charge less
DEFAULT_GAS_PER_PUBDATA_LIMIT = 50_000

REQUIRED_L1_TO_L2_GAS_PER_PUBDATA_LIMIT = 800

# EIP-712 domain
EIP712_DOMAIN_NAME = "zkSync"
EIP712_DOMAIN_VERSION = "2"


# ============================================================================
# Enums
# ============================================================================

class ZkSyncNetwork(IntEnum):
    """Known L1 networks and the default L2 endpoint for each"""
    MAINNET = 1
    GOERLI = 5
    LOCALHOST = 9

    @property
    def default_url(self) -> str:
        return _DEFAULT_NETWORK_URLS[self]


_DEFAULT_NETWORK_URLS = {
    ZkSyncNetwork.LOCALHOST: "http://localhost:3050",
    ZkSyncNetwork.GOERLI: "https://zksync2-testnet.zksync.dev",
    ZkSyncNetwork.MAINNET: "https://zksync2-mainnet.zksync.io/",
}


class PriorityQueueType(IntEnum):
    DEQUE = 0
    HEAP_BUFFER = 1
    HEAP = 2


class PriorityOpTree(IntEnum):
    FULL = 0
    ROLLUP = 1


class TransactionStatus(Enum):
    """L2 transaction lifecycle as seen by getTransactionStatus"""
    NOT_FOUND = "not-found"
    PROCESSING = "processing"
    COMMITTED = "committed"
    FINALIZED = "finalized"


class AccountAbstractionVersion(IntEnum):
    NONE = 0
    VERSION_1 = 1


class AccountNonceOrdering(IntEnum):
    SEQUENTIAL = 0
    ARBITRARY = 1


class DeploymentType(Enum):
    """ContractDeployer entry points"""
    CREATE = "create"
    CREATE_ACCOUNT = "createAccount"
    CREATE2 = "create2"
    CREATE2_ACCOUNT = "create2Account"

    @property
    def is_create2(self) -> bool:
        return self in (DeploymentType.CREATE2, DeploymentType.CREATE2_ACCOUNT)

    @property
    def is_account(self) -> bool:
        return self in (DeploymentType.CREATE_ACCOUNT, DeploymentType.CREATE2_ACCOUNT)
