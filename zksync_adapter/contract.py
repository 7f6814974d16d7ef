"""
Contract deployment through the L2 ContractDeployer system contract

Deployments are 0x71 transactions to the deployer at 0x...8006 whose
factoryDeps carry the bytecode; the deployer only receives its hash.

Usage:
    factory = ContractFactory(abi, bytecode, wallet, deployment_type="create2")
    info = factory.deploy(42, salt="0x" + "11" * 32)
    print(info.deployed_address)
"""

import logging
from typing import Any, Dict, List, Optional, Union

from eth_utils import to_checksum_address

from .adapters.l2 import fill_custom_data
from .core.abi import ContractInterface, get_interface
from .core.constants import (
    CONTRACT_DEPLOYER_ADDRESS,
    EIP712_TX_TYPE,
    NONCE_HOLDER_ADDRESS,
    ZERO_HASH,
    AccountAbstractionVersion,
    DeploymentType,
)
from .core.utils import BytesLike, create2_address, create_address, get_bytes, get_deployed_contracts, hash_bytecode
from .errors import InvalidSaltError, NotFoundError, OperationNotSupported
from .types.chain import DeploymentInfo

logger = logging.getLogger(__name__)


def _validate_salt(salt: Optional[str]) -> bytes:
    if not isinstance(salt, str) or not salt.startswith("0x") or len(salt) != 66:
        raise InvalidSaltError(salt)
    try:
        return get_bytes(salt)
    except ValueError as e:
        raise InvalidSaltError(salt) from e


class ContractFactory:
    """
    Builds and sends deployer calls for one contract

    Attributes:
        interface: Codec for the contract ABI (constructor encoding)
        bytecode: Raw contract bytecode
        signer: Wallet that sends the deployment (needs provider, address, send_transaction)
        deployment_type: create, createAccount, create2 or create2Account
    """

    def __init__(
        self,
        abi: List[Dict[str, Any]],
        bytecode: BytesLike,
        signer,
        deployment_type: Union[str, DeploymentType] = DeploymentType.CREATE,
    ):
        self.interface = ContractInterface(abi)
        self.bytecode = get_bytes(bytecode)
        self.signer = signer
        try:
            self.deployment_type = DeploymentType(deployment_type)
        except ValueError as e:
            raise OperationNotSupported(f"deployment type {deployment_type!r}") from e

    def _deployer_calldata(self, salt: bytes, args) -> str:
        params: List[Any] = [salt, hash_bytecode(self.bytecode), self.interface.encode_constructor(args)]
        if self.deployment_type.is_account:
            params.append(AccountAbstractionVersion.VERSION_1)
        return get_interface("ContractDeployer").encode_function_data(self.deployment_type.value, params)

    def get_deploy_transaction(
        self,
        *args,
        salt: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Unsigned 0x71 deployment request.

        Args:
            *args: Constructor arguments
            salt: 0x-prefixed 32-byte hex salt (create2 types only)
            overrides: Extra request fields; customData is merged

        Raises:
            InvalidSaltError: create2 type with a missing or malformed salt
        """
        if self.deployment_type.is_create2:
            salt_bytes = _validate_salt(salt)
        else:
            salt_bytes = get_bytes(ZERO_HASH)

        tx = dict(overrides or {})
        custom_data = fill_custom_data(tx.get("customData"))
        factory_deps = [get_bytes(dep) for dep in custom_data["factoryDeps"]]
        if self.bytecode not in factory_deps:
            factory_deps.append(self.bytecode)
        custom_data["factoryDeps"] = factory_deps

        tx.update(
            type=EIP712_TX_TYPE,
            to=to_checksum_address(CONTRACT_DEPLOYER_ADDRESS),
            data=self._deployer_calldata(salt_bytes, args),
            customData=custom_data,
        )
        return tx

    def get_deploy_address(self, *args, salt: Optional[str] = None) -> str:
        """Address the next deployment from the signer will land at."""
        sender = self.signer.address
        if self.deployment_type.is_create2:
            return create2_address(
                sender,
                hash_bytecode(self.bytecode),
                _validate_salt(salt),
                self.interface.encode_constructor(args),
            )
        nonce = self.signer.provider.call_contract(
            NONCE_HOLDER_ADDRESS,
            "INonceHolder",
            "getDeploymentNonce",
            [to_checksum_address(sender)],
        )
        return create_address(sender, nonce)

    def deploy(
        self,
        *args,
        salt: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> DeploymentInfo:
        """
        Send the deployment and wait for it.

        Returns:
            The last ContractDeployed event of the receipt

        Raises:
            NotFoundError: the receipt holds no ContractDeployed event
        """
        tx = self.get_deploy_transaction(*args, salt=salt, overrides=overrides)
        response = self.signer.send_transaction(tx)
        receipt = response.wait(timeout=timeout)

        deployed = get_deployed_contracts(receipt)
        if not deployed:
            raise NotFoundError.log_not_found(response.hash, "ContractDeployed")
        info = deployed[-1]
        logger.info(f"Deployed {self.deployment_type.value} contract at {info.deployed_address}")
        return info
