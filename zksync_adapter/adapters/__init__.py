"""
Bridging adapters

L1Adapter and L2Adapter build transactions; the owner passed to them
(a Wallet or a void signer) decides whether they can be sent.
"""

from .base import L1TransactionCapable, L2TransactionCapable
from .bridge import (
    lookup_weth_l2_token,
    get_erc20_default_bridge_data,
    get_erc20_bridge_calldata,
    estimate_custom_bridge_deposit_l2_gas,
    estimate_default_bridge_deposit_l2_gas,
)
from .l1 import L1Adapter, L1BridgeContracts, insert_gas_price, get_l1_fee_data
from .l2 import L2Adapter, L2BridgeContracts, fill_custom_data

__all__ = [
    "L1TransactionCapable",
    "L2TransactionCapable",
    "lookup_weth_l2_token",
    "get_erc20_default_bridge_data",
    "get_erc20_bridge_calldata",
    "estimate_custom_bridge_deposit_l2_gas",
    "estimate_default_bridge_deposit_l2_gas",
    "L1Adapter",
    "L1BridgeContracts",
    "insert_gas_price",
    "get_l1_fee_data",
    "L2Adapter",
    "L2BridgeContracts",
    "fill_custom_data",
]
