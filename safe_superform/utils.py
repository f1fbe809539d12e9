"""Utilities for integer normalisation, address handling and logging set up."""

import logging
import os
from decimal import Decimal
from pathlib import Path
from urllib.parse import urlparse

from eth_typing import HexAddress
from web3 import Web3

from safe_superform.errors import ValidationError


#: Largest value of Solidity ``uint48``, used for basis point splits
UINT48_MAX = 2**48 - 1


def normalise_int(
    value: int | str | Decimal | float | None,
    label: str,
    default: int | None = 0,
) -> int:
    """Coerce a caller supplied number to a Python integer.

    - ``None`` resolves to ``default``
    - Decimal strings and ``0x`` prefixed hex strings are accepted
    - Fractional values and booleans are rejected, we never round

    :param label:
        Name of the field, used in the error message

    :raise ValidationError:
        If the value cannot be represented as an integer
    """
    if value is None:
        if default is None:
            raise ValidationError(f"{label} is required")
        return default

    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a number, got bool {value}")

    if isinstance(value, int):
        return value

    try:
        if isinstance(value, str):
            text = value.strip()
            if text.lower().startswith("0x"):
                return int(text, 16)
            return int(text)

        if isinstance(value, (float, Decimal)):
            as_int = int(value)
            if as_int != value:
                raise ValueError(f"{value} is not a whole number")
            return as_int
    except (ValueError, TypeError, OverflowError, ArithmeticError) as e:
        raise ValidationError(f"{label} must be a number: {e}") from e

    raise ValidationError(f"{label} must be a number, got {type(value).__name__}")


def normalise_uint(
    value: int | str | Decimal | float | None,
    label: str,
    bits: int = 256,
) -> int:
    """Coerce a value to a Solidity ``uintN`` with an explicit range check.

    Example:

    .. code-block:: python

        deposit_bp = normalise_uint(10_000, "client_basis_points_of_deposit", bits=48)

    :param bits:
        Width of the Solidity integer type

    :raise ValidationError:
        If the value is missing, not an integer or outside ``[0, 2**bits - 1]``
    """
    as_int = normalise_int(value, label, default=None)
    max_value = 2**bits - 1
    if as_int < 0 or as_int > max_value:
        raise ValidationError(f"{label} must fit in uint{bits}: value {as_int} is outside uint{bits} range")
    return as_int


def normalise_uint48(value: int | str | Decimal | float | None, label: str) -> int:
    """Basis point fields are ``uint48`` in P2P contracts."""
    return normalise_uint(value, label, bits=48)


def checksum(address: HexAddress | str, label: str = "address") -> HexAddress:
    """Checksum an address, turning web3 errors to validation errors."""
    try:
        return Web3.to_checksum_address(address)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"{label} is not a valid address: {address}") from e


def same_address(a: HexAddress | str, b: HexAddress | str) -> bool:
    """Compare two addresses in their checksummed form."""
    return checksum(a) == checksum(b)


def get_url_domain(url: str) -> str:
    """Redact URL so that only domain is displayed.

    Some services e.g. infura use path as an API key.
    """
    parsed = urlparse(url)
    if parsed.port in (80, 443, None):
        return parsed.hostname
    else:
        return f"{parsed.hostname}:{parsed.port}"


def setup_console_logging(
    default_log_level="info",
    simplified_logging=False,
    log_file: Path = None,
) -> logging.Logger:
    """Set up coloured log output for scripts.

    - Level is read from ``LOG_LEVEL`` environment variable
    - Tune down some noisy dependency library logging

    :param log_file:
        Output both console and this log file.

    :return:
        Root logger
    """

    level = os.environ.get("LOG_LEVEL", default_log_level).upper()
    numeric_level = getattr(logging, level, None)
    assert numeric_level, f"No level: {level}"

    if simplified_logging:
        fmt = "%(message)s"
    else:
        fmt = "%(asctime)s %(name)-44s %(message)s"
    date_fmt = "%H:%M:%S"

    try:
        # Optional dev dependency
        import coloredlogs

        coloredlogs.install(level=numeric_level, fmt=fmt, datefmt=date_fmt)
    except ImportError:
        # non-ANSI e.g. Docker
        logging.basicConfig(level=numeric_level, format=fmt, datefmt=date_fmt)

    if log_file:
        assert isinstance(log_file, Path), "log_file must be a Path"
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(min(logging.INFO, numeric_level))
        file_handler.setFormatter(logging.Formatter(fmt, date_fmt))
        logging.getLogger().addHandler(file_handler)

    # Mute noise
    logging.getLogger("web3.providers.HTTPProvider").setLevel(logging.WARNING)
    logging.getLogger("web3.RequestManager").setLevel(logging.WARNING)
    logging.getLogger("urllib3.connectionpool").setLevel(logging.WARNING)
    return logging.getLogger()
