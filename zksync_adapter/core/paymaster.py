"""
Paymaster input encoders (IPaymasterFlow)
"""

from dataclasses import dataclass
from typing import Union

from eth_utils import to_bytes, to_checksum_address

from .abi import get_interface
from .utils import BytesLike, get_bytes
from ..types.transaction import PaymasterParams


@dataclass(frozen=True)
class ApprovalBasedPaymasterInput:
    """Paymaster pulls `minimal_allowance` of `token` from the sender"""
    token: str
    minimal_allowance: int
    inner_input: BytesLike = b""


@dataclass(frozen=True)
class GeneralPaymasterInput:
    inner_input: BytesLike = b""


PaymasterInput = Union[ApprovalBasedPaymasterInput, GeneralPaymasterInput]


def get_approval_based_paymaster_input(paymaster_input: ApprovalBasedPaymasterInput) -> bytes:
    encoded = get_interface("IPaymasterFlow").encode_function_data(
        "approvalBased",
        [
            to_checksum_address(paymaster_input.token),
            paymaster_input.minimal_allowance,
            get_bytes(paymaster_input.inner_input),
        ],
    )
    return to_bytes(hexstr=encoded)


def get_general_paymaster_input(paymaster_input: GeneralPaymasterInput) -> bytes:
    encoded = get_interface("IPaymasterFlow").encode_function_data(
        "general", [get_bytes(paymaster_input.inner_input)]
    )
    return to_bytes(hexstr=encoded)


def get_paymaster_params(paymaster_address: str, paymaster_input: PaymasterInput) -> PaymasterParams:
    if isinstance(paymaster_input, GeneralPaymasterInput):
        encoded = get_general_paymaster_input(paymaster_input)
    else:
        encoded = get_approval_based_paymaster_input(paymaster_input)
    return PaymasterParams(
        paymaster=to_checksum_address(paymaster_address),
        paymaster_input=encoded,
    )
