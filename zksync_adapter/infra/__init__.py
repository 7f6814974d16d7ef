"""
Infrastructure layer for zkSync adapter

Provides:
- RpcClient: JSON-RPC transport for the L2 node
- EVMSigner: local key signing (eth-account)
- wait_for: bounded polling with correlation IDs
"""

from .rpc import RpcClient, RpcClientConfig
from .evm_signer import (
    EVMSigner,
    create_web3,
    create_evm_signer,
)
from .polling import (
    CorrelationContext,
    get_correlation_id,
    wait_for,
)

__all__ = [
    "RpcClient",
    "RpcClientConfig",
    "EVMSigner",
    "create_web3",
    "create_evm_signer",
    "CorrelationContext",
    "get_correlation_id",
    "wait_for",
]
