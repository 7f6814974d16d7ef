"""
Shared fixtures for unit tests

No network: the L2 transport is a scripted fake and L1 web3 is a MagicMock.
"""

import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Tuple, Union
from unittest.mock import MagicMock

import pytest
from eth_utils import to_checksum_address

# Add repo root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from zksync_adapter.config import config as global_config  # noqa: E402


TEST_PRIVATE_KEY = "0x" + "11" * 32
MAIN_CONTRACT = to_checksum_address("0x32400084c286cf3e17e7b677ea9583e60a000324")
ERC20_BRIDGE_L1 = to_checksum_address("0x57891966931eb4bb6fb81430e6ce0a03aabde063")
ERC20_BRIDGE_L2 = to_checksum_address("0x11f943b2c77b743ab90f4a0ae7d5a4e7fca3e102")


class FakeRpc:
    """
    Scripted stand-in for RpcClient

    Responses are registered per method, either as a fixed value, a list
    consumed one call at a time, or a callable receiving the params.
    Every call is recorded in `calls`.
    """

    endpoint = "http://fake-l2"

    def __init__(self):
        self.responses: Dict[str, Union[Any, List[Any], Callable]] = {}
        self.calls: List[Tuple[str, List[Any]]] = []

    def on(self, method: str, response):
        self.responses[method] = response
        return self

    def call(self, method: str, params: List[Any], timeout=None):
        self.calls.append((method, params))
        if method not in self.responses:
            raise AssertionError(f"unexpected RPC call {method}({params})")
        response = self.responses[method]
        if callable(response):
            return response(params)
        if isinstance(response, list) and response and isinstance(response[0], _Sequence):
            # The last scripted value repeats once the sequence is exhausted
            item = response.pop(0) if len(response) > 1 else response[0]
            return item.value
        return response

    def count(self, method: str) -> int:
        return sum(1 for m, _ in self.calls if m == method)

    def close(self):
        pass


class _Sequence:
    def __init__(self, value):
        self.value = value


def sequence(*values) -> List[_Sequence]:
    """Responses returned one per call, in order."""
    return [_Sequence(v) for v in values]


@pytest.fixture
def fake_rpc():
    rpc = FakeRpc()
    rpc.on("zks_getMainContract", MAIN_CONTRACT)
    rpc.on("zks_getBridgeContracts", {
        "l1Erc20DefaultBridge": ERC20_BRIDGE_L1,
        "l2Erc20DefaultBridge": ERC20_BRIDGE_L2,
        "l1WethBridge": None,
        "l2WethBridge": None,
    })
    rpc.on("eth_chainId", "0x10e")
    return rpc


@pytest.fixture
def provider(fake_rpc):
    from zksync_adapter.provider import Provider
    return Provider(rpc_client=fake_rpc)


@pytest.fixture
def web3_l1():
    """MagicMock Web3 with a 1559 L1: base fee 10 gwei, tip 1 gwei, gas price 12 gwei."""
    web3 = MagicMock()
    web3.eth.gas_price = 12 * 10**9
    web3.eth.max_priority_fee = 10**9
    web3.eth.get_block.return_value = {"baseFeePerGas": 10 * 10**9}
    web3.eth.chain_id = 1
    return web3


@pytest.fixture
def fast_polling():
    """Zero-interval polling with a small attempt bound."""
    polling = global_config.polling
    saved = (polling.interval_seconds, polling.timeout_seconds, polling.max_attempts)
    polling.interval_seconds = 0
    polling.timeout_seconds = None
    polling.max_attempts = 5
    yield polling
    polling.interval_seconds, polling.timeout_seconds, polling.max_attempts = saved
