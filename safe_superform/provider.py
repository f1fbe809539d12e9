"""Create chain clients from a JSON-RPC URL and a private key."""

import logging

from eth_account import Account
from web3 import HTTPProvider, Web3
from web3.providers import BaseProvider

from safe_superform.chain_client import Web3ChainClient
from safe_superform.utils import get_url_domain

logger = logging.getLogger(__name__)


def create_clients_from_private_key(
    rpc_url: str,
    private_key: str,
    chain_id: int | None = None,
    batch: bool = False,
    provider: BaseProvider | None = None,
) -> Web3ChainClient:
    """Create a signing chain client.

    Example:

    .. code-block:: python

        client = create_clients_from_private_key(
            os.environ["RPC_URL"],
            os.environ["PRIVATE_KEY"],
            chain_id=8453,
        )
        print("Operator is", client.address)

    :param chain_id:
        Expected chain id. If given, we check the node agrees.
        If not given, read from the node.

    :param batch:
        Batch multi-reads into a single JSON-RPC request

    :param provider:
        Custom transport, overrides ``rpc_url``
    """
    assert private_key.startswith("0x"), "Private key must be 0x prefixed"

    if provider is None:
        assert rpc_url, "rpc_url or provider must be given"
        provider = HTTPProvider(rpc_url)
        logger.info("Connecting to JSON-RPC %s", get_url_domain(rpc_url))

    web3 = Web3(provider)
    account = Account.from_key(private_key)

    node_chain_id = web3.eth.chain_id
    if chain_id is not None:
        assert node_chain_id == chain_id, f"JSON-RPC node is chain {node_chain_id}, expected {chain_id}"

    return Web3ChainClient(
        web3,
        account=account,
        chain_id=node_chain_id,
        batch=batch,
    )
