"""Superform withdraw route quoting and calldata decoding.

- Withdraw routes are computed in two steps: ``/withdraw/calculate`` and ``/withdraw/start``
- Caller supplied withdraw calldata is decoded strictly before we trust any of its fields
"""

import datetime
import logging
from dataclasses import dataclass

import requests
from eth_typing import HexAddress
from hexbytes import HexBytes

from safe_superform.abi import decode_function_call
from safe_superform.errors import SuperformAPIError
from safe_superform.superform.abis import SUPERFORM_ROUTER_SINGLE_WITHDRAW_ABI
from safe_superform.superform.api import DEFAULT_API_TIMEOUT, SuperformTransaction, parse_superform_transaction, superform_request
from safe_superform.superform.constants import SUPERFORM_ID_ADDRESS_MASK
from safe_superform.utils import checksum

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class LiqRequest:
    """Superform ``LiqRequest`` struct."""

    tx_data: HexBytes
    token: HexAddress
    interim_token: HexAddress
    bridge_id: int
    liq_dst_chain_id: int
    native_amount: int


@dataclass(slots=True, frozen=True)
class SingleVaultWithdraw:
    """Decoded ``singleDirectSingleVaultWithdraw()`` superform data.

    Only the fields we validate against are named separately,
    the rest is kept for logging and diagnostics.
    """

    #: Superform id packs chain id, form implementation id and superform address
    superform_id: int

    #: Amount of SuperPositions to burn
    amount: int

    output_amount: int

    max_slippage: int

    liq_request: LiqRequest

    permit2_data: HexBytes

    has_dst_swap: bool

    retain_4626: bool

    receiver_address: HexAddress

    receiver_address_sp: HexAddress

    extra_form_data: HexBytes


def superform_id_to_address(superform_id: int) -> HexAddress:
    """Extract the superform address from a superform id.

    The address lives in the low 160 bits; chain id and form id are packed above it.
    """
    assert type(superform_id) == int, f"Got {type(superform_id)}"
    masked = superform_id & SUPERFORM_ID_ADDRESS_MASK
    return checksum("0x" + masked.to_bytes(20, "big").hex())


def decode_single_direct_single_vault_withdraw(calldata: bytes | HexBytes | str) -> SingleVaultWithdraw:
    """Decode Superform router withdraw calldata.

    :raise CalldataDecodeError:
        If the selector is not ``singleDirectSingleVaultWithdraw``
    """
    args = decode_function_call(
        SUPERFORM_ROUTER_SINGLE_WITHDRAW_ABI,
        calldata,
        "singleDirectSingleVaultWithdraw",
    )

    # req_ is a struct with a single SingleVaultSFData member
    (superform_data,) = args["req_"]
    (
        superform_id,
        amount,
        output_amount,
        max_slippage,
        liq_request,
        permit2_data,
        has_dst_swap,
        retain_4626,
        receiver_address,
        receiver_address_sp,
        extra_form_data,
    ) = superform_data
    tx_data, token, interim_token, bridge_id, liq_dst_chain_id, native_amount = liq_request

    return SingleVaultWithdraw(
        superform_id=superform_id,
        amount=amount,
        output_amount=output_amount,
        max_slippage=max_slippage,
        liq_request=LiqRequest(
            tx_data=HexBytes(tx_data),
            token=checksum(token),
            interim_token=checksum(interim_token),
            bridge_id=bridge_id,
            liq_dst_chain_id=liq_dst_chain_id,
            native_amount=native_amount,
        ),
        permit2_data=HexBytes(permit2_data),
        has_dst_swap=has_dst_swap,
        retain_4626=retain_4626,
        receiver_address=checksum(receiver_address),
        receiver_address_sp=checksum(receiver_address_sp),
        extra_form_data=HexBytes(extra_form_data),
    )


def build_withdraw_body(
    user_address: HexAddress | str,
    refund_address: HexAddress | str,
    superform_id: str,
    superpositions_amount_in: str,
    superpositions_chain_id: int | str,
    to_chain_id: int | str,
    to_token_address: HexAddress | str,
    vault_id: str,
    bridge_slippage: int,
    swap_slippage: int,
    positive_slippage: int,
    is_erc20: bool,
    route_type: str = "output",
    filter_swap_routes: bool = False,
    is_part_of_multi_vault: bool = False,
    need_insurance: bool = True,
) -> dict:
    """Construct ``/withdraw/calculate`` payload.

    All addresses are checksummed. We never ask Superform to retain ERC-4626 shares.
    """
    return {
        "bridge_slippage": bridge_slippage,
        "filter_swap_routes": filter_swap_routes,
        "is_erc20": is_erc20,
        "is_part_of_multi_vault": is_part_of_multi_vault,
        "need_insurance": need_insurance,
        "positive_slippage": positive_slippage,
        "refund_address": checksum(refund_address, "refund_address"),
        "retain_4626": False,
        "route_type": route_type,
        "superform_id": superform_id,
        "superpositions_amount_in": superpositions_amount_in,
        "superpositions_chain_id": superpositions_chain_id,
        "swap_slippage": swap_slippage,
        "to_chain_id": to_chain_id,
        "to_token_address": checksum(to_token_address, "to_token_address"),
        "user_address": checksum(user_address, "user_address"),
        "vault_id": vault_id,
    }


def fetch_withdraw_calculate(
    api_key: str,
    body: dict,
    session: requests.Session | None = None,
    api_timeout: datetime.timedelta = DEFAULT_API_TIMEOUT,
) -> dict:
    """Calculate a withdraw route.

    The endpoint takes and returns a list; we send one route and return the first result.

    :param body:
        See :py:func:`build_withdraw_body`
    """
    logger.info("Calculating Superform withdraw route for superform %s", body.get("superform_id"))
    data = superform_request(
        "POST",
        "/withdraw/calculate",
        api_key=api_key,
        action="calculate withdraw route",
        json_body=[body],
        session=session,
        api_timeout=api_timeout,
    )
    if isinstance(data, list):
        if not data:
            raise SuperformAPIError("Withdraw calculate response missing payload")
        return data[0]
    return data


def fetch_withdraw_start(
    api_key: str,
    calculate_result: dict,
    session: requests.Session | None = None,
    api_timeout: datetime.timedelta = DEFAULT_API_TIMEOUT,
) -> SuperformTransaction:
    """Fetch withdraw calldata for a calculated route.

    :param calculate_result:
        Output of :py:func:`fetch_withdraw_calculate`

    :raise SuperformAPIError:
        If the API returns an error or an empty payload
    """
    data = superform_request(
        "POST",
        "/withdraw/start",
        api_key=api_key,
        action="fetch withdraw calldata",
        json_body=[calculate_result],
        session=session,
        api_timeout=api_timeout,
    )
    payload = data[0] if isinstance(data, list) and data else data
    if not payload:
        raise SuperformAPIError("Withdraw start response missing payload")
    return parse_superform_transaction(payload, "fetch withdraw calldata")
