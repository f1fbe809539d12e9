"""Superform protocol reward claims.

Superform API gives us a ready-made ``RewardsDistributor.batchClaim()`` transaction
for a user. The P2P proxy has its own ``batchClaim()`` that forwards the claim,
so we decode the distributor call and re-encode the same arrays for the proxy.
"""

import datetime
import logging
import re
from dataclasses import dataclass
from pprint import pformat

import requests
from eth_typing import HexAddress
from hexbytes import HexBytes

from safe_superform.abi import decode_function_call, encode_function_call_by_name
from safe_superform.errors import SuperformAPIError
from safe_superform.superform.abis import P2P_SUPERFORM_PROXY_ABI, REWARDS_DISTRIBUTOR_ABI
from safe_superform.superform.api import DEFAULT_API_TIMEOUT, superform_request
from safe_superform.utils import checksum

logger = logging.getLogger(__name__)


_HEX_DATA_PATTERN = re.compile(r"^0x[0-9a-fA-F]*$")

_ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")


@dataclass(slots=True, frozen=True)
class ProtocolRewardsClaim:
    """Response of ``/protocolRewards/claim/{chainId}/{user}``."""

    #: RewardsDistributor.batchClaim() calldata
    transaction_data: HexBytes

    #: RewardsDistributor address, checksummed
    to: HexAddress


@dataclass(slots=True, frozen=True)
class DecodedBatchClaim:
    """Decoded ``RewardsDistributor.batchClaim()`` arguments."""

    #: Who receives the rewards, checksummed
    receiver: HexAddress

    period_ids: list[int]

    #: Reward token addresses per period, checksummed
    reward_tokens: list[list[HexAddress]]

    amounts_claimed: list[list[int]]

    #: Merkle proofs per period
    proofs: list[list[bytes]]


def parse_protocol_rewards_claim_response(data: dict) -> ProtocolRewardsClaim:
    """Validate rewards claim API response.

    :raise SuperformAPIError:
        If ``transactionData`` is not 0x-hex or ``to`` is not an address
    """
    if not isinstance(data, dict):
        raise SuperformAPIError(f"Rewards claim response is not an object: {pformat(data)}")

    transaction_data = data.get("transactionData")
    to = data.get("to")

    if not isinstance(transaction_data, str) or not _HEX_DATA_PATTERN.match(transaction_data):
        raise SuperformAPIError(f"transactionData must be 0x-hex, got {transaction_data!r}")

    if not isinstance(to, str) or not _ADDRESS_PATTERN.match(to):
        raise SuperformAPIError(f"to must be an address, got {to!r}")

    return ProtocolRewardsClaim(
        transaction_data=HexBytes(transaction_data),
        to=checksum(to),
    )


def fetch_protocol_rewards_claim(
    chain_id: int | str,
    user: HexAddress | str,
    api_key: str,
    session: requests.Session | None = None,
    api_timeout: datetime.timedelta = DEFAULT_API_TIMEOUT,
) -> ProtocolRewardsClaim:
    """Fetch claimable protocol rewards transaction for a user.

    :param user:
        Reward receiver, in our case the P2P proxy address

    :raise SuperformAPIError:
        If the API returns an error or a malformed payload
    """
    logger.info("Fetching Superform protocol rewards claim for %s on chain %s", user, chain_id)
    data = superform_request(
        "GET",
        f"/protocolRewards/claim/{chain_id}/{user}",
        api_key=api_key,
        action="fetch rewards claim data",
        session=session,
        api_timeout=api_timeout,
    )
    return parse_protocol_rewards_claim_response(data)


def decode_rewards_distributor_batch_claim(transaction_data: bytes | HexBytes | str) -> DecodedBatchClaim:
    """Decode ``RewardsDistributor.batchClaim()`` calldata.

    :raise CalldataDecodeError:
        If the selector is not ``batchClaim``
    """
    args = decode_function_call(REWARDS_DISTRIBUTOR_ABI, transaction_data, "batchClaim")
    return DecodedBatchClaim(
        receiver=checksum(args["receiver_"]),
        period_ids=list(args["periodIds_"]),
        reward_tokens=[[checksum(token) for token in tokens] for tokens in args["rewardTokens_"]],
        amounts_claimed=[list(amounts) for amounts in args["amountsClaimed_"]],
        proofs=[list(proof) for proof in args["proofs_"]],
    )


def build_proxy_batch_claim_calldata(decoded: DecodedBatchClaim) -> HexBytes:
    """Re-encode decoded distributor claim against P2P proxy ``batchClaim()``.

    The receiver is dropped, the proxy always claims for itself.
    """
    return encode_function_call_by_name(
        P2P_SUPERFORM_PROXY_ABI,
        "batchClaim",
        [
            decoded.period_ids,
            decoded.reward_tokens,
            decoded.amounts_claimed,
            decoded.proofs,
        ],
    )
