"""
L1 side of the bridge: deposits, withdrawal finalization, failed-deposit
claims and arbitrary L1->L2 execute requests.

Transactions are built here and submitted through the owner's
`send_l1_transaction`, so the same adapter serves a signing wallet and a
read-only void signer.

Usage:
    l1 = L1Adapter(wallet, provider, web3_l1)
    op = l1.deposit(token=ETH_ADDRESS, amount=10**16)
    receipt = op.wait()
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from eth_abi import decode
from web3 import Web3
from web3.contract import Contract

from .base import L1TransactionCapable
from .bridge import (
    estimate_custom_bridge_deposit_l2_gas,
    estimate_default_bridge_deposit_l2_gas,
    get_erc20_default_bridge_data,
    lookup_weth_l2_token,
)
from ..core.abi import get_abi, get_interface
from ..core.constants import (
    BOOTLOADER_FORMAL_ADDRESS,
    ETH_ADDRESS,
    L1_MESSENGER_ADDRESS,
    L1_RECOMMENDED_MIN_ERC20_DEPOSIT_GAS_LIMIT,
    L1_RECOMMENDED_MIN_ETH_DEPOSIT_GAS_LIMIT,
    REQUIRED_L1_TO_L2_GAS_PER_PUBDATA_LIMIT,
    ZERO_ADDRESS,
    ZERO_HASH,
)
from ..core.utils import (
    BytesLike,
    check_base_cost,
    get_bytes,
    is_eth,
    scale_gas_limit,
    undo_l1_to_l2_alias,
)
from ..errors import (
    CannotClaimSuccessfulDepositError,
    InsufficientFunds,
    NotFoundError,
    ProofNotAvailableError,
    RpcError,
    ValidationError,
)
from ..types.chain import FeeData, FinalizeWithdrawalParams, FullDepositFee
from ..types.response import PriorityOpResponse

logger = logging.getLogger(__name__)

_FEE_FIELDS = ("gasPrice", "maxFeePerGas", "maxPriorityFeePerGas")


# ============================================================================
# L1 fees
# ============================================================================

def get_l1_fee_data(web3_l1: Web3) -> FeeData:
    """
    L1 fee data; the 1559 pair follows the usual wallet default
    (max fee = 2 * base fee + priority fee).
    """
    gas_price = web3_l1.eth.gas_price
    block = web3_l1.eth.get_block("latest")
    base_fee = block.get("baseFeePerGas")
    if base_fee is None:
        return FeeData(gas_price=gas_price)
    priority_fee = web3_l1.eth.max_priority_fee
    return FeeData(
        gas_price=gas_price,
        max_fee_per_gas=base_fee * 2 + priority_fee,
        max_priority_fee_per_gas=priority_fee,
    )


def base_fee_from_fee_data(fee_data: FeeData) -> int:
    """Undo the wallet default: base = (max fee - priority fee) / 2, else gas price."""
    if fee_data.max_fee_per_gas:
        return (fee_data.max_fee_per_gas - (fee_data.max_priority_fee_per_gas or 0)) // 2
    return fee_data.gas_price or 0


def insert_gas_price(web3_l1: Web3, overrides: Dict[str, Any]) -> None:
    """
    Fill maxFeePerGas / maxPriorityFeePerGas in place unless the
    overrides already carry gasPrice or maxFeePerGas.

    The L2 part of a priority request is priced off the L1 fee, so the
    base fee is scaled by 1.5 rather than doubled.

    Raises:
        RpcError: the node reports neither a base fee nor a gas price
    """
    if overrides.get("gasPrice") or overrides.get("maxFeePerGas"):
        return

    fee_data = get_l1_fee_data(web3_l1)
    base_fee = base_fee_from_fee_data(fee_data)
    if not base_fee:
        raise RpcError.invalid_response("eth_gasPrice", "Failed to calculate base fee")

    priority_fee = fee_data.max_priority_fee_per_gas or 0
    overrides["maxFeePerGas"] = base_fee * 3 // 2 + priority_fee
    overrides["maxPriorityFeePerGas"] = priority_fee


def _without_fees(tx: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in tx.items() if k not in _FEE_FIELDS}


@dataclass(frozen=True)
class L1BridgeContracts:
    """Default L1 bridges bound to the L1 web3 instance"""
    erc20: Contract
    weth: Optional[Contract] = None


class L1Adapter:
    """
    L1 bridging operations on behalf of one account

    Attributes:
        provider: L2 provider (bridge and main contract discovery, proofs)
        web3: L1 Web3 instance
    """

    def __init__(self, owner: L1TransactionCapable, provider, web3_l1: Web3):
        """
        Args:
            owner: Account that submits the L1 transactions
            provider: L2 Provider
            web3_l1: L1 Web3 instance
        """
        self._owner = owner
        self.provider = provider
        self.web3 = web3_l1

    @property
    def address(self) -> str:
        return self._owner.address

    def _contract(self, address: str, abi_name: str) -> Contract:
        return self.web3.eth.contract(address=Web3.to_checksum_address(address), abi=get_abi(abi_name))

    def _estimate_l1_gas(self, tx: Dict[str, Any]) -> int:
        # Explicit fee fields would make the estimate fail on low balances
        return self.web3.eth.estimate_gas(_without_fees(tx))

    def _submit(self, tx: Dict[str, Any]) -> str:
        tx_hash = self._owner.send_l1_transaction(tx)
        logger.info(f"L1 transaction submitted: {tx_hash}")
        return tx_hash

    # =========================================================================
    # Contracts
    # =========================================================================

    def get_main_contract(self) -> Contract:
        return self._contract(self.provider.get_main_contract_address(), "IZkSync")

    def get_l1_bridge_contracts(self) -> L1BridgeContracts:
        addresses = self.provider.get_default_bridge_addresses()
        return L1BridgeContracts(
            erc20=self._contract(addresses.erc20_l1, "IL1Bridge"),
            weth=self._contract(addresses.weth_l1, "IL1Bridge") if addresses.weth_l1 else None,
        )

    def lookup_weth_l2_token(self, token: str) -> Optional[str]:
        """L2 token of `token` if it is the L1 WETH; None otherwise or on any failure."""
        return lookup_weth_l2_token(self.web3, self.provider.get_default_bridge_addresses().weth_l1, token)

    def _default_bridge_address(self, token: str) -> str:
        """WETH bridge for WETH, default ERC20 bridge for everything else."""
        addresses = self.provider.get_default_bridge_addresses()
        if self.lookup_weth_l2_token(token) is not None:
            return addresses.weth_l1
        return addresses.erc20_l1

    # =========================================================================
    # Balances
    # =========================================================================

    def get_balance_l1(self, token: Optional[str] = None, block_tag: Any = "latest") -> int:
        if token is None or is_eth(token):
            return self.web3.eth.get_balance(self.address, block_identifier=block_tag)
        erc20 = self._contract(token, "IERC20")
        return erc20.functions.balanceOf(self.address).call(block_identifier=block_tag)

    def get_allowance_l1(self, token: str, bridge_address: Optional[str] = None, block_tag: Any = "latest") -> int:
        """Allowance granted to `bridge_address` (default: the bridge that handles `token`)."""
        if bridge_address is None:
            bridge_address = self._default_bridge_address(token)
        erc20 = self._contract(token, "IERC20")
        return erc20.functions.allowance(
            self.address, Web3.to_checksum_address(bridge_address)
        ).call(block_identifier=block_tag)

    def l2_token_address(self, token: str) -> str:
        if token.lower() == ETH_ADDRESS:
            return ETH_ADDRESS
        weth = self.lookup_weth_l2_token(token)
        if weth is not None:
            return weth
        l2_token = self.get_l1_bridge_contracts().erc20.functions.l2TokenAddress(
            Web3.to_checksum_address(token)
        ).call()
        return Web3.to_checksum_address(l2_token)

    def approve_erc20(
        self,
        token: str,
        amount: int,
        bridge_address: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Approve `amount` of `token` to its bridge.

        Returns:
            L1 transaction hash

        Raises:
            ValidationError: token is ETH
        """
        if is_eth(token):
            raise ValidationError.invalid(
                "token", token, "ETH token can't be approved. The address of the token does not exist on L1."
            )
        if bridge_address is None:
            bridge_address = self._default_bridge_address(token)

        tx = dict(overrides or {})
        tx.update(
            to=Web3.to_checksum_address(token),
            data=get_interface("IERC20").encode_function_data(
                "approve", [Web3.to_checksum_address(bridge_address), amount]
            ),
        )
        logger.info(f"Approving {amount} of {token} to bridge {bridge_address}")
        return self._submit(tx)

    # =========================================================================
    # Base cost
    # =========================================================================

    def get_base_cost(
        self,
        gas_limit: int,
        gas_per_pubdata_byte: Optional[int] = None,
        gas_price: Optional[int] = None,
    ) -> int:
        """
        ETH the main contract charges for an L2 execution of `gas_limit`.

        Args:
            gas_limit: L2 gas limit
            gas_per_pubdata_byte: Defaults to 800
            gas_price: L1 gas price (defaults to the current one)
        """
        if gas_price is None:
            gas_price = self.web3.eth.gas_price
        if gas_per_pubdata_byte is None:
            gas_per_pubdata_byte = REQUIRED_L1_TO_L2_GAS_PER_PUBDATA_LIMIT
        return self.get_main_contract().functions.l2TransactionBaseCost(
            gas_price, gas_limit, gas_per_pubdata_byte
        ).call()

    # =========================================================================
    # Deposits
    # =========================================================================

    def _custom_bridge_data(self, token: str, bridge_address: str, custom_bridge_data: Optional[BytesLike]) -> bytes:
        if custom_bridge_data is not None:
            return get_bytes(custom_bridge_data)
        weth_l1 = self.provider.get_default_bridge_addresses().weth_l1
        if weth_l1 and weth_l1.lower() == bridge_address.lower():
            return b""
        return get_erc20_default_bridge_data(token, self.web3)

    def _estimate_deposit_l2_gas(
        self,
        token: str,
        amount: int,
        to: str,
        bridge_address: Optional[str],
        custom_bridge_data: Optional[BytesLike],
        gas_per_pubdata_byte: int,
    ) -> int:
        if bridge_address is None:
            return estimate_default_bridge_deposit_l2_gas(
                self.web3, self.provider, token, amount, to, self.address, gas_per_pubdata_byte
            )
        bridge_data = self._custom_bridge_data(token, bridge_address, custom_bridge_data)
        l2_bridge = self._contract(bridge_address, "IL1Bridge").functions.l2Bridge().call()
        return estimate_custom_bridge_deposit_l2_gas(
            self.provider,
            bridge_address,
            l2_bridge,
            token,
            amount,
            to,
            bridge_data,
            self.address,
            gas_per_pubdata_byte,
        )

    def get_deposit_tx(
        self,
        token: str,
        amount: int,
        to: Optional[str] = None,
        operator_tip: int = 0,
        bridge_address: Optional[str] = None,
        l2_gas_limit: Optional[int] = None,
        gas_per_pubdata_byte: Optional[int] = None,
        custom_bridge_data: Optional[BytesLike] = None,
        refund_recipient: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Unsigned L1 deposit transaction.

        ETH becomes a requestL2Transaction carrying
        value = base_cost + operator_tip + amount. Tokens go through the
        bridge's deposit() with value = base_cost + operator_tip.

        Raises:
            InsufficientValueError: explicit value below the base cost
        """
        to = Web3.to_checksum_address(to or self.address)
        if gas_per_pubdata_byte is None:
            gas_per_pubdata_byte = REQUIRED_L1_TO_L2_GAS_PER_PUBDATA_LIMIT
        if l2_gas_limit is None:
            l2_gas_limit = self._estimate_deposit_l2_gas(
                token, amount, to, bridge_address, custom_bridge_data, gas_per_pubdata_byte
            )

        tx = dict(overrides or {})
        tx.setdefault("from", self.address)

        if token.lower() == ETH_ADDRESS:
            return self.get_request_execute_tx(
                contract_address=to,
                calldata=b"",
                l2_gas_limit=l2_gas_limit,
                l2_value=amount,
                operator_tip=operator_tip,
                gas_per_pubdata_byte=gas_per_pubdata_byte,
                refund_recipient=refund_recipient,
                overrides=tx,
            )

        insert_gas_price(self.web3, tx)
        gas_price_for_estimation = tx.get("maxFeePerGas") or tx.get("gasPrice")
        base_cost = self.get_base_cost(l2_gas_limit, gas_per_pubdata_byte, gas_price_for_estimation)

        tx.setdefault("value", base_cost + operator_tip)
        check_base_cost(base_cost, tx["value"])

        # WETH always goes through its own bridge
        if self.lookup_weth_l2_token(token) is not None:
            bridge = self.provider.get_default_bridge_addresses().weth_l1
        else:
            bridge = bridge_address or self.provider.get_default_bridge_addresses().erc20_l1

        tx.update(
            to=Web3.to_checksum_address(bridge),
            data=get_interface("IL1Bridge").encode_function_data(
                "deposit",
                [
                    to,
                    Web3.to_checksum_address(token),
                    amount,
                    l2_gas_limit,
                    gas_per_pubdata_byte,
                    Web3.to_checksum_address(refund_recipient or ZERO_ADDRESS),
                ],
            ),
        )
        return tx

    def estimate_gas_deposit(self, token: str, amount: int, **kwargs) -> int:
        """L1 gas limit of the deposit (estimate scaled by 1.2)."""
        tx = self.get_deposit_tx(token, amount, **kwargs)
        return scale_gas_limit(self._estimate_l1_gas(tx))

    def deposit(
        self,
        token: str,
        amount: int,
        approve_erc20: bool = False,
        approve_overrides: Optional[Dict[str, Any]] = None,
        **kwargs,
    ) -> PriorityOpResponse:
        """
        Deposit `amount` of `token` to L2.

        Args:
            token: L1 token address (ETH_ADDRESS for ETH)
            amount: Amount in base units
            approve_erc20: Approve the bridge first when the allowance is short
            approve_overrides: Overrides for the approval transaction
            **kwargs: See get_deposit_tx

        Returns:
            PriorityOpResponse tracking the L1 transaction and its L2 counterpart
        """
        tx = self.get_deposit_tx(token, amount, **kwargs)

        if token.lower() != ETH_ADDRESS and approve_erc20:
            bridge_address = kwargs.get("bridge_address") or self._default_bridge_address(token)
            allowance = self.get_allowance_l1(token, bridge_address)
            if allowance < amount:
                approve_hash = self.approve_erc20(token, amount, bridge_address, approve_overrides)
                self.web3.eth.wait_for_transaction_receipt(approve_hash)

        if tx.get("gas") is None:
            tx["gas"] = scale_gas_limit(self._estimate_l1_gas(tx))

        tx_hash = self._submit(tx)
        return self.provider.get_priority_op_response(tx_hash, self.web3)

    def get_full_required_deposit_fee(
        self,
        token: str,
        to: Optional[str] = None,
        bridge_address: Optional[str] = None,
        custom_bridge_data: Optional[BytesLike] = None,
        gas_per_pubdata_byte: Optional[int] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> FullDepositFee:
        """
        Full ETH cost of a deposit: L2 base cost plus the L1 gas.

        The L2 fee is assumed not to depend on the amount, so everything
        is quoted for an amount of 1.

        Raises:
            InsufficientFunds: balance below the base cost (with the
                recommended balance), or allowance below the quoted amount
        """
        dummy_amount = 1

        overrides = dict(overrides or {})
        insert_gas_price(self.web3, overrides)
        gas_price_for_messages = overrides.get("maxFeePerGas") or overrides.get("gasPrice")

        to = to or self.address
        if gas_per_pubdata_byte is None:
            gas_per_pubdata_byte = REQUIRED_L1_TO_L2_GAS_PER_PUBDATA_LIMIT

        l2_gas_limit = self._estimate_deposit_l2_gas(
            token, dummy_amount, to, bridge_address, custom_bridge_data, gas_per_pubdata_byte
        )
        base_cost = self.get_base_cost(l2_gas_limit, gas_per_pubdata_byte, gas_price_for_messages)

        balance = self.get_balance_l1()
        if base_cost >= balance + dummy_amount:
            min_gas_limit = (
                L1_RECOMMENDED_MIN_ETH_DEPOSIT_GAS_LIMIT if token.lower() == ETH_ADDRESS
                else L1_RECOMMENDED_MIN_ERC20_DEPOSIT_GAS_LIMIT
            )
            raise InsufficientFunds.balance(min_gas_limit * gas_price_for_messages + base_cost, balance)

        if not is_eth(token):
            allowance = self.get_allowance_l1(token)
            if allowance < dummy_amount:
                raise InsufficientFunds.allowance(token, dummy_amount, allowance)

        l1_gas_limit = self.estimate_gas_deposit(
            token,
            dummy_amount,
            to=to,
            bridge_address=bridge_address,
            custom_bridge_data=custom_bridge_data,
            gas_per_pubdata_byte=gas_per_pubdata_byte,
            l2_gas_limit=l2_gas_limit,
            overrides=_without_fees(overrides),
        )

        if overrides.get("gasPrice"):
            return FullDepositFee(
                base_cost=base_cost,
                l1_gas_limit=l1_gas_limit,
                l2_gas_limit=l2_gas_limit,
                gas_price=overrides["gasPrice"],
            )
        return FullDepositFee(
            base_cost=base_cost,
            l1_gas_limit=l1_gas_limit,
            l2_gas_limit=l2_gas_limit,
            max_fee_per_gas=overrides.get("maxFeePerGas"),
            max_priority_fee_per_gas=overrides.get("maxPriorityFeePerGas"),
        )

    # =========================================================================
    # Withdrawals
    # =========================================================================

    def _get_withdrawal_log(self, withdrawal_hash: str, index: int = 0):
        receipt = self.provider.get_transaction_receipt(withdrawal_hash)
        topic = get_interface("IL1Messenger").event_topic("L1MessageSent")
        logs = [
            log for log in receipt.logs
            if log.address.lower() == L1_MESSENGER_ADDRESS and log.topics and log.topics[0].lower() == topic
        ]
        if index >= len(logs):
            raise NotFoundError.log_not_found(withdrawal_hash, "L1MessageSent", index)
        return logs[index], receipt.l1_batch_tx_index

    def _get_withdrawal_l2_to_l1_log(self, withdrawal_hash: str, index: int = 0):
        receipt = self.provider.get_transaction_receipt(withdrawal_hash)
        messages = [
            (position, log) for position, log in enumerate(receipt.l2_to_l1_logs)
            if log.sender.lower() == L1_MESSENGER_ADDRESS
        ]
        if index >= len(messages):
            raise NotFoundError.log_not_found(withdrawal_hash, "L2->L1 messenger log", index)
        return messages[index]

    def _withdrawal_proof(self, withdrawal_hash: str, index: int):
        log, l1_batch_tx_index = self._get_withdrawal_log(withdrawal_hash, index)
        l2_to_l1_log_index, _ = self._get_withdrawal_l2_to_l1_log(withdrawal_hash, index)
        proof = self.provider.get_log_proof(withdrawal_hash, l2_to_l1_log_index)
        if proof is None:
            raise ProofNotAvailableError(withdrawal_hash, l2_to_l1_log_index)
        sender = Web3.to_checksum_address(get_bytes(log.topics[1])[12:])
        return log, l1_batch_tx_index, sender, proof

    def finalize_withdrawal_params(self, withdrawal_hash: str, index: int = 0) -> FinalizeWithdrawalParams:
        """
        Everything the L1 finalize call needs for the `index`-th
        withdrawal message of an L2 transaction.

        Raises:
            NotFoundError: no such withdrawal log
            ProofNotAvailableError: the batch is not yet proven
        """
        log, l1_batch_tx_index, sender, proof = self._withdrawal_proof(withdrawal_hash, index)
        (message,) = decode(["bytes"], get_bytes(log.data))
        return FinalizeWithdrawalParams(
            l1_batch_number=log.l1_batch_number,
            l2_message_index=proof.id,
            l2_tx_number_in_block=l1_batch_tx_index,
            message=message,
            sender=sender,
            proof=proof.proof,
        )

    def finalize_withdrawal(
        self,
        withdrawal_hash: str,
        index: int = 0,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Complete a withdrawal on L1.

        ETH withdrawn to the L1 WETH bridge is finalized there; other ETH
        through the main contract; tokens through the L1 counterpart of
        the L2 bridge that sent the message.

        Returns:
            L1 transaction hash
        """
        params = self.finalize_withdrawal_params(withdrawal_hash, index)
        args = [
            params.l1_batch_number,
            params.l2_message_index,
            params.l2_tx_number_in_block,
            params.message,
            [get_bytes(p) for p in params.proof],
        ]
        tx = dict(overrides or {})

        if is_eth(params.sender):
            withdraw_to = Web3.to_checksum_address(params.message[4:24])
            weth_l1 = self.provider.get_default_bridge_addresses().weth_l1
            if weth_l1 and withdraw_to.lower() == weth_l1.lower():
                tx.update(
                    to=Web3.to_checksum_address(weth_l1),
                    data=get_interface("IL1Bridge").encode_function_data("finalizeWithdrawal", args),
                )
            else:
                tx.update(
                    to=self.provider.get_main_contract_address(),
                    data=get_interface("IZkSync").encode_function_data("finalizeEthWithdrawal", args),
                )
            return self._submit(tx)

        l1_bridge = self.provider.call_contract(params.sender, "IL2Bridge", "l1Bridge")
        tx.update(
            to=Web3.to_checksum_address(l1_bridge),
            data=get_interface("IL1Bridge").encode_function_data("finalizeWithdrawal", args),
        )
        return self._submit(tx)

    def is_withdrawal_finalized(self, withdrawal_hash: str, index: int = 0) -> bool:
        log, _, sender, proof = self._withdrawal_proof(withdrawal_hash, index)

        if is_eth(sender):
            return self.get_main_contract().functions.isEthWithdrawalFinalized(
                log.l1_batch_number, proof.id
            ).call()

        l1_bridge = self.provider.call_contract(sender, "IL2Bridge", "l1Bridge")
        return self._contract(l1_bridge, "IL1Bridge").functions.isWithdrawalFinalized(
            log.l1_batch_number, proof.id
        ).call()

    # =========================================================================
    # Failed deposits
    # =========================================================================

    def claim_failed_deposit(self, deposit_hash: str, overrides: Optional[Dict[str, Any]] = None) -> str:
        """
        Recover the tokens of a deposit whose L2 execution failed.

        Returns:
            L1 transaction hash

        Raises:
            CannotClaimSuccessfulDepositError: the deposit succeeded on L2
            NotFoundError: no deposit status log or no L2 bridge
            ProofNotAvailableError: the batch is not yet proven
        """
        receipt = self.provider.get_transaction_receipt(deposit_hash)

        status_index: Optional[int] = None
        for position, log in enumerate(receipt.l2_to_l1_logs):
            if log.sender.lower() == BOOTLOADER_FORMAL_ADDRESS and log.key.lower() == deposit_hash.lower():
                status_index = position
                break
        if status_index is None:
            raise NotFoundError.log_not_found(deposit_hash, "deposit status log")
        if receipt.l2_to_l1_logs[status_index].value.lower() != ZERO_HASH:
            raise CannotClaimSuccessfulDepositError(deposit_hash)

        tx_info = self.provider.get_transaction(deposit_hash)

        # The mailbox aliased the L1 bridge when it sent the deposit
        l1_bridge = undo_l1_to_l2_alias(receipt.from_address)
        if not receipt.to:
            raise NotFoundError.bridge_not_found(deposit_hash)

        l1_sender, _, l1_token, _, _ = get_interface("IL2Bridge").decode_function_data(
            "finalizeDeposit", tx_info.data
        )

        proof = self.provider.get_log_proof(deposit_hash, status_index)
        if proof is None:
            raise ProofNotAvailableError(deposit_hash, status_index)

        tx = dict(overrides or {})
        tx.update(
            to=l1_bridge,
            data=get_interface("IL1Bridge").encode_function_data(
                "claimFailedDeposit",
                [
                    l1_sender,
                    l1_token,
                    get_bytes(deposit_hash),
                    receipt.l1_batch_number,
                    proof.id,
                    receipt.l1_batch_tx_index,
                    [get_bytes(p) for p in proof.proof],
                ],
            ),
        )
        return self._submit(tx)

    # =========================================================================
    # L1 -> L2 execute
    # =========================================================================

    def get_request_execute_tx(
        self,
        contract_address: str,
        calldata: BytesLike,
        l2_gas_limit: Optional[int] = None,
        l2_value: int = 0,
        factory_deps: Optional[List[BytesLike]] = None,
        operator_tip: int = 0,
        gas_per_pubdata_byte: Optional[int] = None,
        refund_recipient: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Unsigned requestL2Transaction call on the main contract.

        value defaults to base_cost + operator_tip + l2_value.

        Raises:
            InsufficientValueError: value below the base cost
        """
        factory_deps = [get_bytes(dep) for dep in factory_deps or []]
        if gas_per_pubdata_byte is None:
            gas_per_pubdata_byte = REQUIRED_L1_TO_L2_GAS_PER_PUBDATA_LIMIT
        if l2_gas_limit is None:
            l2_gas_limit = self.provider.estimate_l1_to_l2_execute(
                contract_address=contract_address,
                calldata=calldata,
                l2_value=l2_value,
                factory_deps=factory_deps,
                gas_per_pubdata_byte=gas_per_pubdata_byte,
            )

        tx = dict(overrides or {})
        tx.setdefault("from", self.address)

        insert_gas_price(self.web3, tx)
        gas_price_for_estimation = tx.get("maxFeePerGas") or tx.get("gasPrice")
        base_cost = self.get_base_cost(l2_gas_limit, gas_per_pubdata_byte, gas_price_for_estimation)

        tx.setdefault("value", base_cost + operator_tip + l2_value)
        check_base_cost(base_cost, tx["value"])

        tx.update(
            to=self.provider.get_main_contract_address(),
            data=get_interface("IZkSync").encode_function_data(
                "requestL2Transaction",
                [
                    Web3.to_checksum_address(contract_address),
                    l2_value,
                    get_bytes(calldata),
                    l2_gas_limit,
                    gas_per_pubdata_byte,
                    factory_deps,
                    Web3.to_checksum_address(refund_recipient or self.address),
                ],
            ),
        )
        return tx

    def estimate_gas_request_execute(self, contract_address: str, calldata: BytesLike, **kwargs) -> int:
        return self._estimate_l1_gas(self.get_request_execute_tx(contract_address, calldata, **kwargs))

    def request_execute(self, contract_address: str, calldata: BytesLike, **kwargs) -> PriorityOpResponse:
        """
        Ask the main contract to run `calldata` on `contract_address` in L2.

        Args:
            contract_address: L2 target
            calldata: L2 calldata
            **kwargs: See get_request_execute_tx
        """
        tx = self.get_request_execute_tx(contract_address, calldata, **kwargs)
        tx_hash = self._submit(tx)
        return self.provider.get_priority_op_response(tx_hash, self.web3)

    def __repr__(self) -> str:
        return f"L1Adapter(address={self.address})"
