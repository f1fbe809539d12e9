"""Shared fixtures for executor tests.

Chain access is replaced with an in-memory chain client that records all reads and writes.
Superform API is mocked per test by patching ``requests.request``.
"""

from typing import Any, Sequence
from unittest.mock import Mock

import pytest
from hexbytes import HexBytes
from web3 import Web3

from safe_superform.abi import ZERO_ADDRESS, encode_function_call_by_name
from safe_superform.chain_client import ChainClient, ContractRead
from safe_superform.config import ExecutorConfig
from safe_superform.executor import SafeSuperformExecutor
from safe_superform.superform.abis import SUPERFORM_ROUTER_SINGLE_WITHDRAW_ABI


#: Superform router on Base
SUPERFORM_ROUTER = "0xa195608C2306A26f727d5199D5A382a4508308DA"

#: Superform USDC vault wrapper on Base, as packed in the superform id below
SUPERFORM_ADDRESS = Web3.to_checksum_address("0x81d5cef48bff2dde1b15d6c592ae14383c52d8f6")

#: chain id 8453, form implementation 1, superform address
SUPERFORM_ID = (8453 << 192) | (1 << 160) | int(SUPERFORM_ADDRESS, 16)

#: USDC on Base
USDC = Web3.to_checksum_address("0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913")

#: Superform singleDirectSingleVaultDeposit() for 5000 raw USDC into the vault above
DEPOSIT_START_DATA = "0xb19dcc330000000000000000000000000000000000000000000000000000000000000020000000000000000000000000000000000000000000000000000000000000002000000000000021050000000181d5cef48bff2dde1b15d6c592ae14383c52d8f60000000000000000000000000000000000000000000000000000000000001388000000000000000000000000000000000000000000000000000000000000117b000000000000000000000000000000000000000000000000000000000000003200000000000000000000000000000000000000000000000000000000000001600000000000000000000000000000000000000000000000000000000000000240000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000008d1a5e9fe73529c4444aa07abd6d76c98d32394b0000000000000000000000008d1a5e9fe73529c4444aa07abd6d76c98d32394b000000000000000000000000000000000000000000000000000000000000026000000000000000000000000000000000000000000000000000000000000000c0000000000000000000000000833589fcd6edb6e08f4c7c32d4f71b54bda029130000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000100000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000"

#: Superform singleDirectSingleVaultWithdraw() burning 4477 SuperPositions, zero liquidity token
WITHDRAW_START_DATA = "0x407c7b1d0000000000000000000000000000000000000000000000000000000000000020000000000000000000000000000000000000000000000000000000000000002000000000000021050000000181d5cef48bff2dde1b15d6c592ae14383c52d8f6000000000000000000000000000000000000000000000000000000000000117d0000000000000000000000000000000000000000000000000000000000001389000000000000000000000000000000000000000000000000000000000000138800000000000000000000000000000000000000000000000000000000000001600000000000000000000000000000000000000000000000000000000000000240000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000008d1a5e9fe73529c4444aa07abd6d76c98d32394b0000000000000000000000008d1a5e9fe73529c4444aa07abd6d76c98d32394b000000000000000000000000000000000000000000000000000000000000026000000000000000000000000000000000000000000000000000000000000000c000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000"


class FakeChainClient(ChainClient):
    """In-memory chain client.

    - ``responses`` maps a function name to a return value, an exception to raise,
      or a callable ``(address, args) -> value``
    - ``code`` maps an address to deployed bytecode, unknown addresses report ``None``
    """

    def __init__(self, address: str | None, chain_id: int | None = 8453, batch: bool = False):
        self._address = address
        self._chain_id = chain_id
        self.batch = batch
        self.responses: dict[str, Any] = {}
        self.code: dict[str, bytes] = {}
        self.reads: list[tuple[str, str, tuple]] = []
        self.writes: list[dict] = []
        self.batch_reads: list[list[ContractRead]] = []
        self.receipt_status = 1

    @property
    def address(self):
        return self._address

    @property
    def chain_id(self):
        return self._chain_id

    def read_contract(self, address, abi, function_name, args=()):
        self.reads.append((Web3.to_checksum_address(address), function_name, tuple(args)))
        response = self.responses.get(function_name)
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(address, args)
        return response

    def batch_read_contracts(self, calls: Sequence[ContractRead]) -> list:
        self.batch_reads.append(list(calls))
        return super().batch_read_contracts(calls)

    def write_contract(self, address, abi, function_name, args, value=0):
        self.writes.append({"address": Web3.to_checksum_address(address), "function_name": function_name, "args": tuple(args), "value": value})
        return HexBytes(Web3.keccak(text=f"tx-{len(self.writes)}"))

    def wait_for_transaction_receipt(self, tx_hash):
        return {"transactionHash": tx_hash, "status": self.receipt_status}

    def get_code(self, address):
        return self.code.get(Web3.to_checksum_address(address))


def make_api_response(data: Any, status_code: int = 200, reason: str = "OK") -> Mock:
    """Mock :py:class:`requests.Response`."""
    response = Mock()
    response.status_code = status_code
    response.reason = reason
    response.json.return_value = data
    response.text = str(data)
    return response


@pytest.fixture()
def factory_address() -> str:
    return Web3.to_checksum_address("0xF000000000000000000000000000000000000001")


@pytest.fixture()
def roles_address() -> str:
    return Web3.to_checksum_address("0xF000000000000000000000000000000000000002")


@pytest.fixture()
def safe_address() -> str:
    return Web3.to_checksum_address("0xF000000000000000000000000000000000000003")


@pytest.fixture()
def proxy_address() -> str:
    return Web3.to_checksum_address("0x8D1a5E9FE73529c4444Aa07ABD6D76C98d32394b")


@pytest.fixture()
def module_address() -> str:
    """Operator account holding the role."""
    return Web3.to_checksum_address("0xF0000000000000000000000000000000000000AA")


@pytest.fixture()
def chain_client(module_address, safe_address, proxy_address) -> FakeChainClient:
    """Chain client with a correctly wired Roles module and a deployed superform."""
    client = FakeChainClient(module_address)
    client.responses["avatar"] = safe_address
    client.responses["target"] = safe_address
    client.responses["predictP2pYieldProxyAddress"] = proxy_address
    client.responses["asset"] = USDC
    client.code[SUPERFORM_ADDRESS] = b"\x60\x80\x60\x40"
    return client


@pytest.fixture()
def executor_config(factory_address) -> ExecutorConfig:
    return ExecutorConfig(
        p2p_superform_proxy_factory_address=factory_address,
        superform_api_key="test-key",
    )


@pytest.fixture()
def executor(chain_client, executor_config) -> SafeSuperformExecutor:
    return SafeSuperformExecutor(chain_client, executor_config)


@pytest.fixture()
def make_withdraw_calldata(proxy_address):
    """Build ``singleDirectSingleVaultWithdraw()`` calldata for a given amount."""

    def _make(amount: int, superform_id: int = SUPERFORM_ID, liq_token: str = ZERO_ADDRESS) -> HexBytes:
        liq_request = (b"", liq_token, ZERO_ADDRESS, 0, 0, 0)
        superform_data = (superform_id, amount, amount, 5000, liq_request, b"", False, False, proxy_address, proxy_address, b"")
        return encode_function_call_by_name(SUPERFORM_ROUTER_SINGLE_WITHDRAW_ABI, "singleDirectSingleVaultWithdraw", [(superform_data,)])

    return _make
