"""
Exception definitions for zkSync adapter
"""

from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    """
    Unified error codes for rollup client operations

    1xxx - RPC errors
    2xxx - Transaction errors
    3xxx - Validation errors
    4xxx - Funds errors
    5xxx - Not found errors
    6xxx - Signer errors
    7xxx - Protocol errors
    9xxx - Configuration errors
    """
    # RPC errors (recoverable)
    RPC_CONNECTION_FAILED = "1001"
    RPC_TIMEOUT = "1002"
    RPC_RATE_LIMITED = "1003"
    RPC_INVALID_RESPONSE = "1004"
    RPC_ERROR_RESPONSE = "1005"

    # Transaction errors
    TX_SEND_FAILED = "2001"
    TX_CONFIRMATION_TIMEOUT = "2002"
    TX_FROM_MISMATCH = "2003"

    # Validation errors
    MISSING_FIELD = "3001"
    INVALID_SIGNATURE = "3002"
    INVALID_BYTECODE = "3003"
    INVALID_SALT = "3004"
    INVALID_ARGUMENT = "3005"

    # Funds errors
    INSUFFICIENT_VALUE = "4001"
    INSUFFICIENT_BALANCE = "4002"
    INSUFFICIENT_ALLOWANCE = "4003"

    # Not found errors (recoverable)
    PROOF_NOT_AVAILABLE = "5001"
    BRIDGE_NOT_FOUND = "5002"
    LOG_NOT_FOUND = "5003"

    # Signer errors
    SIGNER_NOT_CONFIGURED = "6001"
    SIGNER_FAILED = "6002"
    SIGNER_READ_ONLY = "6003"

    # Protocol errors
    CANNOT_CLAIM_SUCCESSFUL_DEPOSIT = "7001"
    HASH_MISMATCH = "7002"
    PRIORITY_OP_NOT_FOUND = "7003"
    MALFORMED_PAYLOAD = "7004"
    OPERATION_NOT_SUPPORTED = "7005"

    # Configuration errors
    CONFIG_INVALID = "9001"
    CONFIG_MISSING = "9002"


class ZkSyncError(Exception):
    """
    Base exception for all zkSync adapter errors

    Attributes:
        message: Human-readable error message
        code: Error code for programmatic handling
        recoverable: Whether the error might succeed on retry
        original_error: The underlying exception if any
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        recoverable: bool = False,
        original_error: Optional[Exception] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.recoverable = recoverable
        self.original_error = original_error
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"

    @property
    def should_retry(self) -> bool:
        """Indicate if the operation should be retried"""
        return self.recoverable


class RpcError(ZkSyncError):
    """
    RPC-related errors - typically recoverable

    Raised when:
    - Connection to RPC endpoint fails
    - Request times out
    - Rate limit is hit
    - Node answers with a JSON-RPC error object
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.RPC_CONNECTION_FAILED,
        original_error: Optional[Exception] = None,
        endpoint: Optional[str] = None,
        rpc_code: Optional[int] = None,
    ):
        details = {}
        if endpoint:
            details["endpoint"] = endpoint
        if rpc_code is not None:
            details["rpc_code"] = rpc_code
        super().__init__(
            message,
            code,
            recoverable=code != ErrorCode.RPC_ERROR_RESPONSE,
            original_error=original_error,
            details=details or None,
        )
        self.endpoint = endpoint
        self.rpc_code = rpc_code

    @classmethod
    def connection_failed(cls, endpoint: str, error: Exception = None) -> "RpcError":
        return cls(
            f"Failed to connect to RPC endpoint: {endpoint}",
            ErrorCode.RPC_CONNECTION_FAILED,
            original_error=error,
            endpoint=endpoint,
        )

    @classmethod
    def timeout(cls, endpoint: str, timeout_seconds: float) -> "RpcError":
        return cls(
            f"RPC request timed out after {timeout_seconds}s",
            ErrorCode.RPC_TIMEOUT,
            endpoint=endpoint,
        )

    @classmethod
    def rate_limited(cls, endpoint: str) -> "RpcError":
        return cls(
            "RPC rate limit exceeded",
            ErrorCode.RPC_RATE_LIMITED,
            endpoint=endpoint,
        )

    @classmethod
    def invalid_response(cls, method: str, reason: str, endpoint: str = None) -> "RpcError":
        return cls(
            f"Invalid response for {method}: {reason}",
            ErrorCode.RPC_INVALID_RESPONSE,
            endpoint=endpoint,
        )

    @classmethod
    def error_response(cls, method: str, rpc_code: Optional[int], message: str, endpoint: str = None) -> "RpcError":
        return cls(
            f"{method} failed: {message}",
            ErrorCode.RPC_ERROR_RESPONSE,
            endpoint=endpoint,
            rpc_code=rpc_code,
        )


class ValidationError(ZkSyncError):
    """
    Invalid input - raised before any network call, never recoverable

    Raised when:
    - A required transaction field is absent
    - Bytecode length or word-count parity is wrong
    - A salt or signature has the wrong shape
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INVALID_ARGUMENT,
        field: Optional[str] = None,
        value: Optional[object] = None,
    ):
        super().__init__(
            message,
            code,
            recoverable=False,
            details={"field": field, "value": repr(value) if value is not None else None},
        )
        self.field = field
        self.value = value

    @classmethod
    def invalid(cls, field: str, value: object, reason: str) -> "ValidationError":
        return cls(f"Invalid {field} {value!r}: {reason}", field=field, value=value)


class MissingFieldError(ValidationError):
    """Required transaction field is absent"""

    def __init__(self, field: str, context: str = "transaction"):
        super().__init__(
            f"Explicitly providing `{field}` field is required for {context}",
            ErrorCode.MISSING_FIELD,
            field=field,
        )


class InvalidSignatureError(ValidationError):
    """Signature cannot be serialized or parsed"""

    def __init__(self, message: str, value: Optional[object] = None):
        super().__init__(message, ErrorCode.INVALID_SIGNATURE, field="signature", value=value)

    @classmethod
    def empty(cls) -> "InvalidSignatureError":
        return cls("Empty signatures are not supported")

    @classmethod
    def bad_parity(cls, v: int) -> "InvalidSignatureError":
        return cls(f"Failed to parse signature: v must be 0 or 1, got {v}", value=v)


class InvalidBytecodeError(ValidationError):
    """Bytecode violates length or word-count rules"""

    def __init__(self, message: str, length: Optional[int] = None):
        super().__init__(message, ErrorCode.INVALID_BYTECODE, field="bytecode", value=length)
        self.length = length


class InvalidSaltError(ValidationError):
    """CREATE2 salt is not a 0x-prefixed 32-byte hex string"""

    def __init__(self, salt: Optional[object]):
        super().__init__(
            f"Invalid salt provided: {salt!r} (expected 0x-prefixed 32-byte hex string)",
            ErrorCode.INVALID_SALT,
            field="salt",
            value=salt,
        )


class InsufficientFunds(ZkSyncError):
    """
    Insufficient value, balance or allowance - not recoverable without funding

    Raised when:
    - Provided value is below the computed L2 base cost
    - L1 balance cannot cover the deposit fee
    - Bridge allowance is below the deposit amount
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INSUFFICIENT_BALANCE,
        required: Optional[int] = None,
        available: Optional[int] = None,
        token: Optional[str] = None,
    ):
        super().__init__(
            message,
            code,
            recoverable=False,
            details={
                "required": required,
                "available": available,
                "token": token,
            },
        )
        self.required = required
        self.available = available
        self.token = token

    @classmethod
    def balance(cls, recommended: int, available: int) -> "InsufficientFunds":
        return cls(
            "Not enough balance for deposit. Under the provided gas price, "
            f"the recommended balance to perform a deposit is {recommended} wei",
            ErrorCode.INSUFFICIENT_BALANCE,
            required=recommended,
            available=available,
        )

    @classmethod
    def allowance(cls, token: str, required: int, available: int) -> "InsufficientFunds":
        return cls(
            f"Not enough allowance to cover the deposit of {token}: required {required}, approved {available}",
            ErrorCode.INSUFFICIENT_ALLOWANCE,
            required=required,
            available=available,
            token=token,
        )


class InsufficientValueError(InsufficientFunds):
    """Transaction value does not cover the priority operation base cost"""

    def __init__(self, base_cost: int, value: int):
        super().__init__(
            "The base cost of performing the priority operation is higher than the provided value "
            f"parameter for the transaction: baseCost: {base_cost}, provided value: {value}",
            ErrorCode.INSUFFICIENT_VALUE,
            required=base_cost,
            available=value,
        )


class NotFoundError(ZkSyncError):
    """
    Requested chain data is not (yet) available - recoverable by polling

    Raised when:
    - A log proof has not been produced because the batch is not committed
    - A bridge address cannot be resolved
    - A withdrawal log is absent from the receipt
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.LOG_NOT_FOUND,
        details: Optional[dict] = None,
    ):
        super().__init__(message, code, recoverable=True, details=details)

    @classmethod
    def bridge_not_found(cls, tx_hash: str) -> "NotFoundError":
        return cls(
            f"L2 bridge address not found for transaction {tx_hash}",
            ErrorCode.BRIDGE_NOT_FOUND,
            details={"tx_hash": tx_hash},
        )

    @classmethod
    def log_not_found(cls, tx_hash: str, what: str, index: int = 0) -> "NotFoundError":
        return cls(
            f"{what} #{index} not found in receipt of {tx_hash}",
            ErrorCode.LOG_NOT_FOUND,
            details={"tx_hash": tx_hash, "index": index},
        )


class ProofNotAvailableError(NotFoundError):
    """L2->L1 log proof is not available yet (batch not committed)"""

    def __init__(self, tx_hash: str, index: Optional[int] = None):
        super().__init__(
            f"Log proof not found for {tx_hash} (log index {index})",
            ErrorCode.PROOF_NOT_AVAILABLE,
            details={"tx_hash": tx_hash, "index": index},
        )
        self.tx_hash = tx_hash
        self.index = index


class ProtocolError(ZkSyncError):
    """
    Protocol or state violation - should not be blindly retried

    Raised when:
    - Claiming a deposit that succeeded on L2
    - Node returns a hash different from the locally computed one
    - A serialized envelope does not conform to the 0x71 layout
    - L1 receipt carries no priority request event
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.HASH_MISMATCH,
        details: Optional[dict] = None,
    ):
        super().__init__(message, code, recoverable=False, details=details)

    @classmethod
    def hash_mismatch(cls, expected: str, returned: str) -> "ProtocolError":
        return cls(
            f"The returned hash {returned} did not match the local hash {expected}",
            ErrorCode.HASH_MISMATCH,
            details={"expected": expected, "returned": returned},
        )

    @classmethod
    def priority_op_not_found(cls, l1_tx_hash: str) -> "ProtocolError":
        return cls(
            f"Failed to parse tx logs: no priority request found in {l1_tx_hash}",
            ErrorCode.PRIORITY_OP_NOT_FOUND,
            details={"l1_tx_hash": l1_tx_hash},
        )


class CannotClaimSuccessfulDepositError(ProtocolError):
    """Deposit was executed successfully on L2, nothing to claim"""

    def __init__(self, deposit_hash: str):
        super().__init__(
            f"Cannot claim successful deposit {deposit_hash}",
            ErrorCode.CANNOT_CLAIM_SUCCESSFUL_DEPOSIT,
            details={"deposit_hash": deposit_hash},
        )
        self.deposit_hash = deposit_hash


class MalformedPayloadError(ProtocolError):
    """Serialized envelope does not decode into a valid transaction"""

    def __init__(self, message: str, payload: Optional[str] = None):
        super().__init__(
            message,
            ErrorCode.MALFORMED_PAYLOAD,
            details={"payload": payload} if payload else None,
        )


class TransactionError(ZkSyncError):
    """
    Transaction submission or confirmation errors

    Raised when:
    - Broadcasting fails
    - A polling bound is exhausted before confirmation
    - The `from` field does not belong to the signer
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.TX_SEND_FAILED,
        tx_hash: Optional[str] = None,
        recoverable: bool = False,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            message,
            code,
            recoverable=recoverable,
            original_error=original_error,
            details={"tx_hash": tx_hash} if tx_hash else None,
        )
        self.tx_hash = tx_hash

    @classmethod
    def send_failed(cls, reason: str, error: Exception = None) -> "TransactionError":
        return cls(
            f"Transaction send failed: {reason}",
            ErrorCode.TX_SEND_FAILED,
            original_error=error,
        )

    @classmethod
    def confirmation_timeout(cls, operation: str, attempts: int, tx_hash: str = None) -> "TransactionError":
        return cls(
            f"{operation} did not complete after {attempts} polls",
            ErrorCode.TX_CONFIRMATION_TIMEOUT,
            tx_hash=tx_hash,
            recoverable=True,
        )

    @classmethod
    def from_mismatch(cls, expected: str, got: str) -> "TransactionError":
        return cls(
            f"Transaction `from` address mismatch: signer is {expected}, got {got}",
            ErrorCode.TX_FROM_MISMATCH,
        )


class SignerError(ZkSyncError):
    """
    Signer-related errors

    Raised when:
    - Private key is not configured
    - Signing fails
    - A read-only (void) signer is asked to send
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.SIGNER_FAILED,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            message,
            code,
            recoverable=False,
            original_error=original_error,
        )

    @classmethod
    def not_configured(cls) -> "SignerError":
        return cls(
            "Signer not configured. Provide a private key or set EVM_PRIVATE_KEY",
            ErrorCode.SIGNER_NOT_CONFIGURED,
        )

    @classmethod
    def failed(cls, reason: str, error: Exception = None) -> "SignerError":
        return cls(
            f"Signing failed: {reason}",
            ErrorCode.SIGNER_FAILED,
            original_error=error,
        )

    @classmethod
    def read_only(cls, address: str) -> "SignerError":
        return cls(
            f"Signer for {address} is read-only and cannot send transactions",
            ErrorCode.SIGNER_READ_ONLY,
        )


class ConfigurationError(ZkSyncError):
    """
    Configuration errors - not recoverable

    Raised when:
    - Required configuration is missing
    - Configuration values are invalid
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIG_INVALID,
        param: Optional[str] = None,
    ):
        super().__init__(
            message,
            code,
            recoverable=False,
            details={"param": param},
        )
        self.param = param

    @classmethod
    def missing(cls, param: str) -> "ConfigurationError":
        return cls(
            f"Missing required configuration: {param}",
            ErrorCode.CONFIG_MISSING,
            param=param,
        )

    @classmethod
    def invalid(cls, param: str, reason: str) -> "ConfigurationError":
        return cls(
            f"Invalid configuration for {param}: {reason}",
            ErrorCode.CONFIG_INVALID,
            param=param,
        )


class OperationNotSupported(ZkSyncError):
    """
    Operation not supported

    Raised when:
    - An unknown deployment type is requested
    - A token route is not available
    """

    def __init__(self, operation: str, reason: str = ""):
        message = f"Operation not supported: {operation}"
        if reason:
            message += f" ({reason})"
        super().__init__(
            message,
            ErrorCode.OPERATION_NOT_SUPPORTED,
            recoverable=False,
        )
        self.operation = operation
