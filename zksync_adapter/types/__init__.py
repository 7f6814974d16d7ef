"""
Type definitions for zkSync adapter
"""

from .transaction import (
    TransactionType,
    PaymasterParams,
    Eip712Meta,
    EthSignature,
    Transaction712,
    is_eip712_request,
)
from .chain import (
    BridgeAddresses,
    MessageProof,
    FullDepositFee,
    Fee,
    FeeData,
    Token,
    DeploymentInfo,
    ContractAccountInfo,
    Log,
    L2ToL1Log,
    TransactionReceipt,
    TransactionInfo,
    Block,
    BatchDetails,
    BlockDetails,
    TransactionDetails,
    FinalizeWithdrawalParams,
)
from .response import TransactionResponse, PriorityOpResponse

__all__ = [
    # Transactions
    "TransactionType",
    "PaymasterParams",
    "Eip712Meta",
    "EthSignature",
    "Transaction712",
    "is_eip712_request",
    # Chain data
    "BridgeAddresses",
    "MessageProof",
    "FullDepositFee",
    "Fee",
    "FeeData",
    "Token",
    "DeploymentInfo",
    "ContractAccountInfo",
    "Log",
    "L2ToL1Log",
    "TransactionReceipt",
    "TransactionInfo",
    "Block",
    "BatchDetails",
    "BlockDetails",
    "TransactionDetails",
    "FinalizeWithdrawalParams",
    # Responses
    "TransactionResponse",
    "PriorityOpResponse",
]
