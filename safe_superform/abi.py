"""ABI encode/decode helpers for plain ABI lists.

We do not need full :py:class:`web3.contract.Contract` proxies for building calldata,
so these helpers work directly on the ABI list and :py:mod:`eth_abi`.

- :py:func:`encode_function_call_by_name` mimics Solidity ``abi.encodeWithSelector()``
- :py:func:`decode_function_call` is strict: the selector must belong to the expected function

"""

from typing import Any, Sequence

import eth_abi
from eth_abi.exceptions import DecodingError, EncodingError
from eth_typing import HexStr
from hexbytes import HexBytes
from web3 import Web3

from safe_superform.errors import CalldataDecodeError, ValidationError


#: Ethereum 0x0000000000000000000000000000000000000000 address
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def get_function_abi_by_name(abi: Sequence[dict], function_name: str) -> dict:
    """Get function ABI by its name.

    Overloaded functions are not supported, the first declaration wins.

    :raise KeyError:
        If the function is not in the ABI
    """
    for item in abi:
        if item.get("type") == "function" and item.get("name") == function_name:
            return item
    raise KeyError(f"Function {function_name} not found in ABI")


def collapse_abi_type(param: dict) -> str:
    """Turn an ABI input/output entry to a canonical type string.

    Structs are expanded recursively, so that
    ``{"type": "tuple[]", "components": [...]}`` becomes ``(uint256,address)[]``.
    """
    abi_type = param["type"]
    if not abi_type.startswith("tuple"):
        return abi_type
    array_suffix = abi_type[len("tuple") :]
    inner = ",".join(collapse_abi_type(c) for c in param["components"])
    return f"({inner}){array_suffix}"


def get_function_signature(fn_abi: dict) -> str:
    """Solidity function signature, e.g. ``withdraw(bytes)``."""
    types = ",".join(collapse_abi_type(i) for i in fn_abi.get("inputs", []))
    return f"{fn_abi['name']}({types})"


def get_function_selector_by_name(abi: Sequence[dict], function_name: str) -> bytes:
    """Get Solidity function selector.

    :return:
        First 32-bit (4 bytes) of keccak hash of the function signature.
    """
    fn_abi = get_function_abi_by_name(abi, function_name)
    return bytes(Web3.keccak(text=get_function_signature(fn_abi))[0:4])


def encode_function_call_by_name(
    abi: Sequence[dict],
    function_name: str,
    args: Sequence[Any],
) -> HexBytes:
    """Encode function selector + its arguments as data payload.

    Example:

    .. code-block:: python

        data = encode_function_call_by_name(P2P_SUPERFORM_PROXY_ABI, "withdraw", [superform_calldata])

    :param args:
        Positional arguments. Structs are given as tuples.

    :return:
        Solidity's function selector + argument payload.

    :raise ValidationError:
        If the arguments do not fit the ABI types
    """
    assert type(args) in (tuple, list), f"args must be a list or tuple, got {type(args)}"
    fn_abi = get_function_abi_by_name(abi, function_name)
    arg_types = [collapse_abi_type(i) for i in fn_abi.get("inputs", [])]

    if len(arg_types) != len(args):
        raise ValidationError(f"{function_name}() takes {len(arg_types)} arguments, got {len(args)}")

    try:
        encoded_args = eth_abi.encode(arg_types, list(args))
    except (EncodingError, TypeError, ValueError) as e:
        raise ValidationError(f"Could not encode {get_function_signature(fn_abi)} with args {args}: {e}") from e

    return HexBytes(get_function_selector_by_name(abi, function_name) + encoded_args)


def decode_function_call(
    abi: Sequence[dict],
    data: bytes | HexBytes | HexStr | str,
    expected_function: str,
) -> dict:
    """Decode calldata against the expected Solidity function.

    Any selector that does not belong to ``expected_function`` is a hard failure,
    we never fall back to other functions in the ABI.

    :param data:
        Full calldata including the 4 byte selector

    :return:
        Ordered dict of decoded arguments keyed by the ABI input name.
        Unnamed inputs are keyed ``arg0``, ``arg1``...

    :raise CalldataDecodeError:
        Selector mismatch or the payload does not decode
    """
    try:
        payload = HexBytes(data)
    except (ValueError, TypeError) as e:
        raise CalldataDecodeError(f"{expected_function}: calldata is not hex: {data!r}") from e

    if len(payload) < 4:
        raise CalldataDecodeError(f"{expected_function}: calldata is too short, got {len(payload)} bytes")

    fn_abi = get_function_abi_by_name(abi, expected_function)
    expected_selector = get_function_selector_by_name(abi, expected_function)
    selector = bytes(payload[0:4])
    if selector != expected_selector:
        raise CalldataDecodeError(f"Calldata selector 0x{selector.hex()} is not {get_function_signature(fn_abi)} (0x{expected_selector.hex()})")

    inputs = fn_abi.get("inputs", [])
    arg_types = [collapse_abi_type(i) for i in inputs]
    try:
        decoded = eth_abi.decode(arg_types, bytes(payload[4:]))
    except DecodingError as e:
        raise CalldataDecodeError(f"Could not decode {get_function_signature(fn_abi)} calldata: {e}") from e

    arg_names = [i.get("name") or f"arg{idx}" for idx, i in enumerate(inputs)]
    return dict(zip(arg_names, decoded))
