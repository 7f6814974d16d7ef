"""
Bridge calldata and L2 gas estimation for deposits

These helpers only read chain state; nothing here signs or sends.
"""

import logging
from typing import Optional, TYPE_CHECKING

from eth_abi import encode
from eth_account import Account
from web3 import Web3

from ..core.abi import get_abi, get_interface
from ..core.constants import ETH_ADDRESS
from ..core.utils import BytesLike, apply_l1_to_l2_alias, get_bytes

if TYPE_CHECKING:
    from ..provider import Provider

logger = logging.getLogger(__name__)


def lookup_weth_l2_token(web3_l1: Web3, weth_bridge_l1: Optional[str], token: str) -> Optional[str]:
    """
    L2 address of `token` if the L1 WETH bridge handles it.

    Returns None when the token is not WETH, when there is no WETH
    bridge, or when the lookup fails for any reason.
    """
    if not weth_bridge_l1:
        return None
    try:
        bridge = web3_l1.eth.contract(
            address=Web3.to_checksum_address(weth_bridge_l1),
            abi=get_abi("IL1Bridge"),
        )
        l2_token = bridge.functions.l2TokenAddress(Web3.to_checksum_address(token)).call()
    except Exception as e:
        logger.debug(f"WETH bridge lookup for {token} failed: {e}")
        return None
    if int(l2_token, 16) == 0:
        return None
    return Web3.to_checksum_address(l2_token)


def get_erc20_default_bridge_data(l1_token: str, web3_l1: Web3) -> bytes:
    """
    Token metadata the default ERC20 bridge forwards to L2:
    abi.encode(bytes name, bytes symbol, bytes decimals), each field
    itself ABI-encoded.
    """
    token = web3_l1.eth.contract(address=Web3.to_checksum_address(l1_token), abi=get_abi("IERC20"))

    name = token.functions.name().call()
    symbol = token.functions.symbol().call()
    decimals = token.functions.decimals().call()

    return encode(
        ["bytes", "bytes", "bytes"],
        [
            encode(["string"], [name]),
            encode(["string"], [symbol]),
            encode(["uint256"], [decimals]),
        ],
    )


def get_erc20_bridge_calldata(
    l1_token: str,
    l1_sender: str,
    l2_receiver: str,
    amount: int,
    bridge_data: BytesLike,
) -> str:
    """finalizeDeposit calldata an L1 ERC20 bridge sends to its L2 counterpart."""
    return get_interface("IL2Bridge").encode_function_data(
        "finalizeDeposit",
        [
            Web3.to_checksum_address(l1_sender),
            Web3.to_checksum_address(l2_receiver),
            Web3.to_checksum_address(l1_token),
            amount,
            get_bytes(bridge_data),
        ],
    )


def estimate_custom_bridge_deposit_l2_gas(
    provider: "Provider",
    l1_bridge_address: str,
    l2_bridge_address: str,
    token: str,
    amount: int,
    to: str,
    bridge_data: BytesLike,
    from_address: str,
    gas_per_pubdata_byte: Optional[int] = None,
    l2_value: int = 0,
) -> int:
    """
    L2 gas of the finalizeDeposit call a bridge makes on L2.

    The call originates from the aliased L1 bridge address.
    """
    calldata = get_erc20_bridge_calldata(token, from_address, to, amount, bridge_data)
    return provider.estimate_l1_to_l2_execute(
        contract_address=l2_bridge_address,
        calldata=calldata,
        caller=apply_l1_to_l2_alias(l1_bridge_address),
        l2_value=l2_value,
        gas_per_pubdata_byte=gas_per_pubdata_byte,
    )


def estimate_default_bridge_deposit_l2_gas(
    web3_l1: Web3,
    provider: "Provider",
    token: str,
    amount: int,
    to: str,
    from_address: Optional[str] = None,
    gas_per_pubdata_byte: Optional[int] = None,
) -> int:
    """
    L2 gas of a deposit through the default bridges.

    ETH is a plain L1->L2 value transfer; WETH goes through the WETH
    bridge (value = amount, no bridge data); other tokens go through the
    default ERC20 bridge with the token metadata as bridge data.
    """
    # Estimation for the zero address under-counts storage writes
    if from_address is None:
        from_address = Account.create().address

    if token.lower() == ETH_ADDRESS:
        return provider.estimate_l1_to_l2_execute(
            contract_address=to,
            calldata="0x",
            caller=from_address,
            l2_value=amount,
            gas_per_pubdata_byte=gas_per_pubdata_byte,
        )

    bridges = provider.get_default_bridge_addresses()
    if lookup_weth_l2_token(web3_l1, bridges.weth_l1, token) is not None:
        value = amount
        l1_bridge, l2_bridge = bridges.weth_l1, bridges.weth_l2
        bridge_data = b""
    else:
        value = 0
        l1_bridge, l2_bridge = bridges.erc20_l1, bridges.erc20_l2
        bridge_data = get_erc20_default_bridge_data(token, web3_l1)

    return estimate_custom_bridge_deposit_l2_gas(
        provider,
        l1_bridge,
        l2_bridge,
        token,
        amount,
        to,
        bridge_data,
        from_address,
        gas_per_pubdata_byte,
        value,
    )
