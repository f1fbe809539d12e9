"""Superform API utilities.

- Shared HTTP plumbing for deposit, withdraw and rewards endpoints
- Every call is made once, we do not retry
"""

import datetime
import logging
from dataclasses import dataclass
from pprint import pformat

import requests
from eth_typing import HexAddress
from hexbytes import HexBytes

from safe_superform.errors import SuperformAPIError, ValidationError
from safe_superform.superform.constants import SUPERFORM_API_KEY_HEADER, SUPERFORM_API_URL
from safe_superform.utils import checksum, normalise_uint

logger = logging.getLogger(__name__)


#: How long we wait for Superform API to answer
DEFAULT_API_TIMEOUT = datetime.timedelta(seconds=30)


@dataclass(slots=True, frozen=True)
class SuperformTransaction:
    """Transaction payload returned by ``/deposit/start`` and ``/withdraw/start``.

    Example response data:

    .. code-block:: python

        {"to": "0xa195608C2306A26f727d5199D5A382a4508308DA", "method": "singleDirectSingleVaultDeposit", "data": "0xb19dcc33...", "value": "0"}
    """

    #: Superform router address, checksummed
    to: HexAddress

    #: Router method name the calldata is for
    method: str

    #: Raw calldata to be forwarded to the router by the P2P proxy
    data: HexBytes

    #: Native value as a decimal string
    value: str

    def get_value(self) -> int:
        """Native value as wei.

        :raise ValidationError:
            Value is not a whole non-negative number
        """
        return normalise_uint(self.value or 0, "quote value")


def get_superform_api_url() -> str:
    """Get Superform API base URL."""
    return SUPERFORM_API_URL


def make_superform_headers(api_key: str, json_body: bool = False) -> dict:
    """Build request headers with the API key."""
    assert api_key, "Superform API key missing"
    headers = {
        "accept": "application/json",
        SUPERFORM_API_KEY_HEADER: api_key,
    }
    if json_body:
        headers["content-type"] = "application/json"
    return headers


def read_response_body(response: requests.Response) -> str:
    """Read response body for error messages.

    Never raises: a failed read degrades to a placeholder message.
    """
    try:
        return response.text
    except Exception as e:  # noqa: BLE001
        return f"unable to read body: {e}"


def raise_for_superform_status(response: requests.Response, action: str):
    """Turn non-2xx response to :py:class:`SuperformAPIError`.

    :param action:
        Human readable description, e.g. ``fetch deposit calldata``
    """
    if 200 <= response.status_code < 300:
        return

    body = read_response_body(response)
    logger.error("Superform API error when trying to %s: %s %s: %s", action, response.status_code, response.reason, body)
    raise SuperformAPIError(
        f"Failed to {action} ({response.status_code} {response.reason}): {body}",
        status_code=response.status_code,
        reason=response.reason,
        body=body,
    )


def parse_superform_transaction(data: dict, action: str) -> SuperformTransaction:
    """Parse ``{to, method, data, value}`` payload.

    :raise SuperformAPIError:
        If the payload is missing fields
    """
    if not isinstance(data, dict):
        raise SuperformAPIError(f"Failed to {action}: expected JSON object, got {pformat(data)}")

    try:
        to = checksum(data["to"], "to")
        calldata = HexBytes(data["data"])
    except (KeyError, ValueError, TypeError) as e:
        raise SuperformAPIError(f"Failed to {action}: malformed response {pformat(data)}") from e

    value = data.get("value")
    try:
        value = normalise_uint(value if value not in (None, "") else 0, "value")
    except ValidationError as e:
        raise SuperformAPIError(f"Failed to {action}: bad native value {value!r} in {pformat(data)}") from e

    return SuperformTransaction(
        to=to,
        method=data.get("method", ""),
        data=calldata,
        value=str(value),
    )


def superform_request(
    method: str,
    path: str,
    api_key: str,
    action: str,
    json_body: dict | list | None = None,
    session: requests.Session | None = None,
    api_timeout: datetime.timedelta = DEFAULT_API_TIMEOUT,
) -> dict | list:
    """Make one Superform API request and return decoded JSON.

    :param session:
        Optional session, e.g. with a custom transport adapter.
        Module level ``requests`` is used if not given.

    :raise SuperformAPIError:
        Non-2xx response or non-JSON body
    """
    final_url = f"{get_superform_api_url()}{path}"
    http = session or requests

    logger.info("Superform API %s %s", method, final_url)
    logger.debug("Superform API request body:\n%s", pformat(json_body))

    response = http.request(
        method,
        final_url,
        headers=make_superform_headers(api_key, json_body=json_body is not None),
        json=json_body,
        timeout=api_timeout.total_seconds(),
    )

    raise_for_superform_status(response, action)

    try:
        data = response.json()
    except ValueError as e:
        raise SuperformAPIError(f"Failed to {action}: response is not JSON: {read_response_body(response)}", status_code=response.status_code) from e

    logger.debug("Superform API response:\n%s", pformat(data))
    return data
