"""Superform deposit route quoting.

- Superform computes the bridge/swap route and returns router calldata
- The calldata is later wrapped into P2P proxy factory ``deposit()``
"""

import datetime
import logging

import requests
from eth_typing import HexAddress

from safe_superform.superform.api import DEFAULT_API_TIMEOUT, SuperformTransaction, parse_superform_transaction, superform_request
from safe_superform.utils import checksum

logger = logging.getLogger(__name__)


def build_deposit_body(
    user_address: HexAddress | str,
    from_token_address: HexAddress | str,
    from_chain_id: int | str,
    amount_in: str,
    refund_address: HexAddress | str,
    vault_id: str,
    bridge_slippage: int,
    swap_slippage: int,
    route_type: str,
    exclude_ambs: list[int] | None = None,
    exclude_liquidity_providers: list[int] | None = None,
    exclude_dexes: list[int] | None = None,
    exclude_bridges: list[int] | None = None,
) -> dict:
    """Construct ``/deposit/start`` payload.

    All addresses are checksummed.

    :param amount_in:
        Human readable amount as a decimal string, e.g. ``"0.005"``

    :param vault_id:
        Superform vault id, e.g. ``"2GoghTk010_A08iZkKpgg"``
    """
    return {
        "user_address": checksum(user_address, "user_address"),
        "from_token_address": checksum(from_token_address, "from_token_address"),
        "from_chain_id": from_chain_id,
        "amount_in": amount_in,
        "refund_address": checksum(refund_address, "refund_address"),
        "vault_id": vault_id,
        "bridge_slippage": bridge_slippage,
        "swap_slippage": swap_slippage,
        "route_type": route_type,
        "exclude_ambs": list(exclude_ambs or []),
        "exclude_liquidity_providers": list(exclude_liquidity_providers or []),
        "exclude_dexes": list(exclude_dexes or []),
        "exclude_bridges": list(exclude_bridges or []),
    }


def fetch_deposit_start(
    api_key: str,
    body: dict,
    session: requests.Session | None = None,
    api_timeout: datetime.timedelta = DEFAULT_API_TIMEOUT,
) -> SuperformTransaction:
    """Fetch deposit calldata from Superform.

    Example:

    .. code-block:: python

        body = build_deposit_body(
            user_address=proxy_address,
            from_token_address="0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
            from_chain_id=8453,
            amount_in="0.005",
            refund_address=proxy_address,
            vault_id="2GoghTk010_A08iZkKpgg",
            bridge_slippage=0,
            swap_slippage=0,
            route_type="output",
        )
        deposit_start = fetch_deposit_start(api_key, body)

    :param body:
        See :py:func:`build_deposit_body`

    :raise SuperformAPIError:
        If the API returns an error
    """
    logger.info("Fetching Superform deposit route for vault %s, amount %s", body.get("vault_id"), body.get("amount_in"))
    data = superform_request(
        "POST",
        "/deposit/start",
        api_key=api_key,
        action="fetch deposit calldata",
        json_body=body,
        session=session,
        api_timeout=api_timeout,
    )
    return parse_superform_transaction(data, "fetch deposit calldata")
