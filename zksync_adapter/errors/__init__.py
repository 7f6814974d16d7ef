"""
Error definitions for zkSync adapter
"""

from .exceptions import (
    ErrorCode,
    ZkSyncError,
    RpcError,
    ValidationError,
    MissingFieldError,
    InvalidSignatureError,
    InvalidBytecodeError,
    MalformedPayloadError,
    InvalidSaltError,
    InsufficientFunds,
    InsufficientValueError,
    NotFoundError,
    ProofNotAvailableError,
    ProtocolError,
    CannotClaimSuccessfulDepositError,
    TransactionError,
    SignerError,
    ConfigurationError,
    OperationNotSupported,
)

__all__ = [
    "ErrorCode",
    "ZkSyncError",
    "RpcError",
    "ValidationError",
    "MissingFieldError",
    "InvalidSignatureError",
    "InvalidBytecodeError",
    "MalformedPayloadError",
    "InvalidSaltError",
    "InsufficientFunds",
    "InsufficientValueError",
    "NotFoundError",
    "ProofNotAvailableError",
    "ProtocolError",
    "CannotClaimSuccessfulDepositError",
    "TransactionError",
    "SignerError",
    "ConfigurationError",
    "OperationNotSupported",
]
