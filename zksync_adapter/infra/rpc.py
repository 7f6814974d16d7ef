"""
JSON-RPC transport for the L2 node

Provides a thin JSON-RPC interface with:
- Lazy, thread-safe HTTP client
- Rate limit and timeout detection
- JSON-RPC error object mapping

Retries are left to the caller; every failure surfaces as RpcError.
"""

from __future__ import annotations

import itertools
import logging
import threading
from typing import Any, List, Optional
from dataclasses import dataclass

import httpx

from ..errors import RpcError, ConfigurationError
from ..config import config as global_config

logger = logging.getLogger(__name__)


@dataclass
class RpcClientConfig:
    """
    RPC client runtime configuration

    Pulls defaults from the global config (zksync_adapter.config.ProviderConfig).

    Usage:
        client = RpcClient(endpoint, config=RpcClientConfig(timeout_seconds=60))
    """
    timeout_seconds: float = None

    def __post_init__(self):
        """Apply defaults from global config for any unset values"""
        if self.timeout_seconds is None:
            self.timeout_seconds = global_config.provider.timeout_seconds


class RpcClient:
    """
    JSON-RPC client bound to a single endpoint

    Usage:
        rpc = RpcClient("http://localhost:3050")
        chain_id = int(rpc.call("eth_chainId", []), 16)
    """

    def __init__(
        self,
        endpoint: str,
        config: Optional[RpcClientConfig] = None,
    ):
        if not endpoint:
            raise ConfigurationError.missing("RPC endpoint")

        self._endpoint = endpoint
        self._config = config or RpcClientConfig()
        self._client: Optional[httpx.Client] = None
        self._client_lock = threading.Lock()
        self._ids = itertools.count(1)

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client (thread-safe)"""
        if self._client is None:
            with self._client_lock:
                if self._client is None:
                    self._client = httpx.Client(
                        timeout=self._config.timeout_seconds,
                        headers={"Content-Type": "application/json"},
                    )
        return self._client

    def call(
        self,
        method: str,
        params: List[Any],
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Make JSON-RPC call

        Args:
            method: RPC method name
            params: RPC parameters
            timeout: Optional timeout override

        Returns:
            The "result" member of the response (may be None)

        Raises:
            RpcError: On transport failure or a JSON-RPC error object
        """
        client = self._get_client()
        body = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        timeout_val = timeout or self._config.timeout_seconds

        try:
            response = client.post(self._endpoint, json=body, timeout=timeout_val)
        except httpx.TimeoutException:
            logger.warning(f"RPC timeout: {method} @ {self._endpoint}")
            raise RpcError.timeout(self._endpoint, timeout_val)
        except httpx.HTTPError as e:
            logger.warning(f"RPC connection error: {method} @ {self._endpoint}: {e}")
            raise RpcError.connection_failed(self._endpoint, e)

        if response.status_code == 429:
            logger.warning(f"Rate limited by {self._endpoint}")
            raise RpcError.rate_limited(self._endpoint)

        try:
            response.raise_for_status()
            result = response.json()
        except httpx.HTTPStatusError as e:
            raise RpcError.connection_failed(self._endpoint, e)
        except ValueError:
            raise RpcError.invalid_response(method, "body is not JSON", self._endpoint)

        if not isinstance(result, dict):
            raise RpcError.invalid_response(method, f"unexpected payload {type(result).__name__}", self._endpoint)

        if "error" in result and result["error"] is not None:
            error = result["error"]
            if isinstance(error, dict):
                rpc_error = RpcError.error_response(
                    method, error.get("code"), error.get("message", str(error)), self._endpoint
                )
                rpc_error.details["rpc_error_data"] = error.get("data")
            else:
                rpc_error = RpcError.error_response(method, None, str(error), self._endpoint)
            raise rpc_error

        return result.get("result")

    def close(self):
        """Close HTTP client"""
        if self._client:
            self._client.close()
            self._client = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self) -> str:
        return f"RpcClient(endpoint={self._endpoint})"
