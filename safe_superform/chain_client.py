"""Chain client collaborator.

The executor does not talk to web3.py directly. It needs only

- read a contract function
- write (sign and broadcast) a contract function call
- wait for a receipt
- know the signing account and the chain id

:py:class:`Web3ChainClient` implements this over :py:class:`web3.Web3` and a local
private key account. Tests can substitute any :py:class:`ChainClient` subclass.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Sequence

from eth_account.datastructures import SignedTransaction
from eth_account.signers.local import LocalAccount
from eth_typing import HexAddress
from hexbytes import HexBytes
from web3 import Web3

from safe_superform.utils import checksum

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ContractRead:
    """One read call, used with :py:meth:`ChainClient.batch_read_contracts`."""

    address: HexAddress
    abi: Sequence[dict]
    function_name: str
    args: tuple = ()


class ChainClient(ABC):
    """Read/write access to a blockchain for a single signing account."""

    #: Multi-reads go out as one JSON-RPC batch instead of parallel requests
    batch: bool = False

    @property
    @abstractmethod
    def address(self) -> HexAddress | None:
        """Active signing account address, ``None`` if read-only."""

    @property
    @abstractmethod
    def chain_id(self) -> int | None:
        """Configured chain id."""

    @abstractmethod
    def read_contract(self, address: HexAddress | str, abi: Sequence[dict], function_name: str, args: Sequence[Any] = ()) -> Any:
        """Call a view function and return its decoded result."""

    @abstractmethod
    def write_contract(self, address: HexAddress | str, abi: Sequence[dict], function_name: str, args: Sequence[Any], value: int = 0) -> HexBytes:
        """Sign and broadcast a contract call with the active account.

        :return:
            Transaction hash
        """

    @abstractmethod
    def wait_for_transaction_receipt(self, tx_hash: HexBytes) -> dict:
        """Block until the transaction is mined."""

    def batch_read_contracts(self, calls: Sequence[ContractRead]) -> list:
        """Read several contract functions.

        The default implementation reads one by one.
        """
        return [self.read_contract(c.address, c.abi, c.function_name, c.args) for c in calls]

    def get_code(self, address: HexAddress | str) -> bytes | None:
        """Deployed bytecode at an address.

        :return:
            ``None`` if the client cannot tell
        """
        return None


def get_tx_broadcast_data(signed_tx: SignedTransaction) -> HexBytes:
    """Get raw transaction bytes regardless of eth_account version naming."""
    if hasattr(signed_tx, "raw_transaction"):
        return HexBytes(signed_tx.raw_transaction)
    return HexBytes(signed_tx.rawTransaction)


class Web3ChainClient(ChainClient):
    """Chain client over web3.py.

    - Signs transactions locally with :py:class:`eth_account.signers.local.LocalAccount`
    - Nonce is read from the node for every transaction, we do not manage nonces

    Example:

    .. code-block:: python

        web3 = Web3(HTTPProvider(os.environ["RPC_URL"]))
        account = Account.from_key(os.environ["PRIVATE_KEY"])
        client = Web3ChainClient(web3, account)
    """

    def __init__(
        self,
        web3: Web3,
        account: LocalAccount | None = None,
        chain_id: int | None = None,
        batch: bool = False,
    ):
        """
        :param chain_id:
            Read from the node if not given

        :param batch:
            Use JSON-RPC batching for multi-reads
        """
        assert isinstance(web3, Web3), f"Got {type(web3)}"
        self.web3 = web3
        self.account = account
        self.batch = batch
        self._chain_id = chain_id

    def __repr__(self):
        return f"<Web3ChainClient account:{self.address} chain:{self._chain_id}>"

    @property
    def address(self) -> HexAddress | None:
        if self.account is None:
            return None
        return self.account.address

    @property
    def chain_id(self) -> int | None:
        if self._chain_id is None:
            self._chain_id = self.web3.eth.chain_id
        return self._chain_id

    def _bind(self, address: HexAddress | str, abi: Sequence[dict], function_name: str, args: Sequence[Any]):
        contract = self.web3.eth.contract(address=checksum(address), abi=abi)
        return contract.functions[function_name](*args)

    def read_contract(self, address: HexAddress | str, abi: Sequence[dict], function_name: str, args: Sequence[Any] = ()) -> Any:
        return self._bind(address, abi, function_name, args).call()

    def batch_read_contracts(self, calls: Sequence[ContractRead]) -> list:
        if not self.batch:
            return super().batch_read_contracts(calls)

        with self.web3.batch_requests() as batch:
            for c in calls:
                batch.add(self._bind(c.address, c.abi, c.function_name, c.args))
            return list(batch.execute())

    def get_code(self, address: HexAddress | str) -> bytes | None:
        return bytes(self.web3.eth.get_code(checksum(address)))

    def write_contract(self, address: HexAddress | str, abi: Sequence[dict], function_name: str, args: Sequence[Any], value: int = 0) -> HexBytes:
        assert self.account is not None, "Web3ChainClient has no signing account"
        func = self._bind(address, abi, function_name, args)
        tx = func.build_transaction(
            {
                "from": self.account.address,
                "chainId": self.chain_id,
                "value": value,
                "nonce": self.web3.eth.get_transaction_count(self.account.address, "pending"),
            }
        )
        signed = self.account.sign_transaction(tx)
        logger.info("Broadcasting %s() on %s from %s, nonce %d", function_name, address, self.account.address, tx["nonce"])
        return HexBytes(self.web3.eth.send_raw_transaction(get_tx_broadcast_data(signed)))

    def wait_for_transaction_receipt(self, tx_hash: HexBytes) -> dict:
        return self.web3.eth.wait_for_transaction_receipt(tx_hash)
