"""
Local EVM key handling using eth-account / web3.py

Provides the private-key account shared by the L1 and L2 sides of a
wallet, plus the L1 Web3 factory.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional, Tuple

from web3 import HTTPProvider, Web3
from eth_account import Account
from eth_account.messages import SignableMessage, encode_defunct
from eth_account.signers.local import LocalAccount
from eth_utils import to_hex

from ..errors import SignerError, ConfigurationError
from ..config import config as global_config

logger = logging.getLogger(__name__)


class EVMSigner:
    """
    Local signer backed by an eth_account LocalAccount

    Usage:
        signer = EVMSigner.from_private_key("0x...")
        signer = EVMSigner.from_env()

        raw_tx, tx_hash = signer.sign_transaction(tx_dict)
    """

    def __init__(self, account: LocalAccount):
        self._account = account

    @property
    def address(self) -> str:
        """Get wallet address (checksummed)"""
        return self._account.address

    @property
    def account(self) -> LocalAccount:
        return self._account

    @property
    def private_key(self) -> bytes:
        return bytes(self._account.key)

    def sign_transaction(self, tx_dict: Dict[str, Any]) -> Tuple[bytes, str]:
        """
        Sign a legacy / EIP-1559 transaction

        Args:
            tx_dict: Transaction dictionary with to, data, value, gas, fees, nonce, chainId

        Returns:
            (raw_tx_bytes, tx_hash_hex)
        """
        try:
            signed = self._account.sign_transaction(tx_dict)
        except Exception as e:
            raise SignerError.failed(str(e), e)
        return bytes(signed.raw_transaction), to_hex(signed.hash)

    def sign_signable(self, signable: SignableMessage) -> bytes:
        """Sign an EIP-191 SignableMessage and return the 65-byte r||s||v signature"""
        try:
            signed = self._account.sign_message(signable)
        except Exception as e:
            raise SignerError.failed(str(e), e)
        return bytes(signed.signature)

    def sign_message(self, message: bytes) -> bytes:
        """
        Sign a raw personal message

        Args:
            message: Message bytes to sign

        Returns:
            Signature bytes
        """
        return self.sign_signable(encode_defunct(message))

    @classmethod
    def from_private_key(cls, private_key: str) -> "EVMSigner":
        """
        Create signer from private key

        Args:
            private_key: Hex-encoded private key (with or without 0x prefix)
        """
        if not private_key.startswith("0x"):
            private_key = "0x" + private_key

        try:
            account = Account.from_key(private_key)
        except ValueError as e:
            raise ConfigurationError.invalid("private_key", str(e))
        return cls(account)

    @classmethod
    def from_env(cls, env_var: Optional[str] = None) -> "EVMSigner":
        """
        Create signer from environment variable

        Args:
            env_var: Name of environment variable containing private key
                (defaults to config.signer.private_key_env)

        Raises:
            SignerError: If environment variable is not set
        """
        env_var = env_var or global_config.signer.private_key_env
        private_key = os.getenv(env_var, "")
        if not private_key:
            raise SignerError.not_configured()

        return cls.from_private_key(private_key)

    @classmethod
    def from_keystore(
        cls,
        keystore_path: str,
        password: str,
    ) -> "EVMSigner":
        """
        Create signer from encrypted keystore file

        Args:
            keystore_path: Path to keystore JSON file
            password: Password to decrypt keystore
        """
        with open(keystore_path, "r") as f:
            keystore = f.read()

        private_key = Account.decrypt(keystore, password)
        return cls(Account.from_key(private_key))

    @classmethod
    def create_random(cls) -> "EVMSigner":
        return cls(Account.create())

    def __repr__(self) -> str:
        return f"EVMSigner(address={self.address})"


def create_web3(
    rpc_url: Optional[str] = None,
    timeout: Optional[int] = None,
) -> Web3:
    """
    Create Web3 instance for the L1 chain

    Args:
        rpc_url: RPC endpoint URL (defaults to config.l1.url / ETH_RPC_URL)
        timeout: Request timeout in seconds

    Returns:
        Configured Web3 instance
    """
    rpc_url = rpc_url or global_config.l1.url
    if not rpc_url:
        raise ConfigurationError.missing("ETH_RPC_URL")
    timeout = timeout if timeout is not None else global_config.l1.timeout_seconds

    provider = HTTPProvider(
        rpc_url,
        request_kwargs={"timeout": timeout},
    )
    return Web3(provider)


def create_evm_signer(
    private_key: Optional[str] = None,
    keystore_path: Optional[str] = None,
    keystore_password: Optional[str] = None,
) -> EVMSigner:
    """
    Create EVM signer based on configuration

    Priority:
    1. private_key: Use provided private key
    2. keystore_path + keystore_password: Load from keystore file
    3. Environment variable named by config.signer.private_key_env

    Raises:
        SignerError: If no valid signer configuration found
    """
    if private_key is not None:
        return EVMSigner.from_private_key(private_key)

    if keystore_path is not None and keystore_password is not None:
        return EVMSigner.from_keystore(keystore_path, keystore_password)

    return EVMSigner.from_env()
