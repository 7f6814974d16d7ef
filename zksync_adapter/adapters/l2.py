"""
L2 side of an account: balances, deployment nonce, withdrawals and transfers
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, TYPE_CHECKING

from eth_utils import to_checksum_address

from .base import L2TransactionCapable
from ..core.constants import DEFAULT_GAS_PER_PUBDATA_LIMIT, NONCE_HOLDER_ADDRESS
from ..types.transaction import Eip712Meta
from ..types.response import TransactionResponse

if TYPE_CHECKING:
    from ..provider import Provider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class L2BridgeContracts:
    """Default L2 bridge addresses"""
    erc20: str
    weth: Optional[str] = None


def fill_custom_data(data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Copy of `data` with gasPerPubdata (50 000) and factoryDeps ([]) filled in.

    Eip712Meta instances are converted to the request-dict shape first.
    """
    if isinstance(data, Eip712Meta):
        custom_data: Dict[str, Any] = {
            "gasPerPubdata": data.gas_per_pubdata,
            "factoryDeps": list(data.factory_deps),
        }
        if data.custom_signature is not None:
            custom_data["customSignature"] = data.custom_signature
        if data.paymaster_params is not None:
            custom_data["paymasterParams"] = data.paymaster_params
        return custom_data

    custom_data = dict(data or {})
    if custom_data.get("gasPerPubdata") is None:
        custom_data["gasPerPubdata"] = DEFAULT_GAS_PER_PUBDATA_LIMIT
    if custom_data.get("factoryDeps") is None:
        custom_data["factoryDeps"] = []
    return custom_data


class L2Adapter:
    """
    L2 account operations; sending goes through the owner

    Usage:
        l2 = L2Adapter(wallet, provider)
        l2.get_balance()
        l2.withdraw(ETH_ADDRESS, 10**15).wait()
    """

    def __init__(self, owner: L2TransactionCapable, provider: "Provider"):
        self._owner = owner
        self.provider = provider

    @property
    def address(self) -> str:
        return self._owner.address

    def get_balance(self, token: Optional[str] = None, block_tag: Any = "committed") -> int:
        return self.provider.get_balance(self.address, block_tag, token)

    def get_all_balances(self) -> Dict[str, int]:
        return self.provider.get_all_account_balances(self.address)

    def get_deployment_nonce(self) -> int:
        """Nonce the deployer uses for create() from this account."""
        return self.provider.call_contract(
            NONCE_HOLDER_ADDRESS, "INonceHolder", "getDeploymentNonce", [to_checksum_address(self.address)]
        )

    def get_l2_bridge_contracts(self) -> L2BridgeContracts:
        addresses = self.provider.get_default_bridge_addresses()
        return L2BridgeContracts(erc20=addresses.erc20_l2, weth=addresses.weth_l2)

    def withdraw(
        self,
        token: str,
        amount: int,
        to: Optional[str] = None,
        bridge_address: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> TransactionResponse:
        """
        Start a withdrawal to L1; finalize it later with L1Adapter.finalize_withdrawal.

        Args:
            token: L2 token address (ETH_ADDRESS for ETH)
            amount: Amount in base units
            to: L1 receiver (defaults to this account)
            bridge_address: L2 bridge to use instead of the default
            overrides: Extra transaction fields
        """
        tx = self.provider.get_withdraw_tx(
            token,
            amount,
            from_address=self.address,
            to=to,
            bridge_address=bridge_address,
            overrides=overrides,
        )
        logger.info(f"Withdrawing {amount} of {token} to {to or self.address}")
        return self._owner.send_transaction(tx)

    def transfer(
        self,
        to: str,
        amount: int,
        token: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> TransactionResponse:
        tx = self.provider.get_transfer_tx(
            to, amount, from_address=self.address, token=token, overrides=overrides
        )
        return self._owner.send_transaction(tx)

    def __repr__(self) -> str:
        return f"L2Adapter(address={self.address})"
