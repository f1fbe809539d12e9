"""Executor configuration.

- :py:class:`ExecutorConfig` holds optional options as given by the caller
- :py:func:`resolve_config` merges them with built-in defaults once, at construction time
- :py:func:`load_env` reads and validates the process environment, ``.env`` included
"""

import logging
import os
import re
from dataclasses import dataclass
from typing import Callable, Mapping
from urllib.parse import urlparse

from dotenv import load_dotenv
from eth_typing import HexAddress
from hexbytes import HexBytes

from safe_superform.errors import ConfigurationError
from safe_superform.superform.constants import DEFAULT_ROLE_KEY, P2P_ADDRESS, P2P_SUPERFORM_PROXY_FACTORY_ADDRESS, SUPERFORM_API_KEY_ENV
from safe_superform.utils import checksum

logger = logging.getLogger(__name__)


_PRIVATE_KEY_PATTERN = re.compile(r"^0x[0-9a-fA-F]{64}$")


@dataclass(slots=True)
class ExecutorConfig:
    """Caller supplied options. Everything is optional."""

    #: P2P proxy factory, defaults to :py:data:`P2P_SUPERFORM_PROXY_FACTORY_ADDRESS`
    p2p_superform_proxy_factory_address: HexAddress | None = None

    #: Expected signing account, defaults to the chain client account
    p2p_module_address: HexAddress | None = None

    #: Role key used when not given per call, defaults to :py:data:`DEFAULT_ROLE_KEY`
    default_role_key: bytes | str | None = None

    #: Superform API key, defaults to ``SF_API_KEY`` environment variable
    superform_api_key: str | None = None

    #: Progress message callback, defaults to module logger at INFO level
    logger: Callable[[str], None] | None = None

    #: Check the Roles module is wired to the asserted Safe before each write
    validate_roles_target: bool | None = None


@dataclass(slots=True, frozen=True)
class ResolvedExecutorConfig:
    """Configuration with all defaults applied."""

    p2p_superform_proxy_factory_address: HexAddress

    #: Expected signing account
    p2p_module_address: HexAddress

    default_role_key: HexBytes | None

    superform_api_key: str | None

    validate_roles_target: bool


def resolve_config(
    config: ExecutorConfig | None,
    account_address: HexAddress | str | None,
    environ: Mapping[str, str] = os.environ,
) -> ResolvedExecutorConfig:
    """Merge caller options with built-in defaults.

    Module address resolves to the configured address, then the signing account,
    then :py:data:`P2P_ADDRESS`. With the default the module check is a no-op,
    pinning it lets operators catch a wrong signer.
    """
    config = config or ExecutorConfig()

    factory = config.p2p_superform_proxy_factory_address or P2P_SUPERFORM_PROXY_FACTORY_ADDRESS
    module = config.p2p_module_address or account_address or P2P_ADDRESS
    role_key = config.default_role_key if config.default_role_key is not None else DEFAULT_ROLE_KEY

    return ResolvedExecutorConfig(
        p2p_superform_proxy_factory_address=checksum(factory, "p2p_superform_proxy_factory_address"),
        p2p_module_address=checksum(module, "p2p_module_address"),
        default_role_key=HexBytes(role_key) if role_key else None,
        superform_api_key=config.superform_api_key or environ.get(SUPERFORM_API_KEY_ENV) or None,
        validate_roles_target=True if config.validate_roles_target is None else config.validate_roles_target,
    )


@dataclass(slots=True, frozen=True)
class EnvConfig:
    """Validated environment."""

    #: JSON-RPC endpoint
    rpc_url: str | None = None

    #: Operator private key, 0x prefixed
    private_key: str | None = None

    #: Superform API key
    sf_api_key: str | None = None


def parse_env(environ: Mapping[str, str]) -> EnvConfig:
    """Validate ``RPC_URL``, ``PRIVATE_KEY`` and ``SF_API_KEY``.

    :raise ConfigurationError:
        Lists all invalid variables
    """
    errors = []

    rpc_url = environ.get("RPC_URL") or None
    if rpc_url:
        parsed = urlparse(rpc_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            errors.append("RPC_URL: RPC_URL must be a valid http(s) URL")

    private_key = environ.get("PRIVATE_KEY") or None
    if private_key and not _PRIVATE_KEY_PATTERN.match(private_key):
        errors.append("PRIVATE_KEY: PRIVATE_KEY must be a 0x-prefixed 32-byte hex string")

    if errors:
        raise ConfigurationError(f"Invalid environment configuration: {', '.join(errors)}")

    return EnvConfig(
        rpc_url=rpc_url,
        private_key=private_key,
        sf_api_key=environ.get(SUPERFORM_API_KEY_ENV) or None,
    )


def load_env(path: str | None = None, override: bool = False) -> EnvConfig:
    """Load ``.env`` and validate the environment.

    :param path:
        ``.env`` file path, searched from the working directory if not given

    :param override:
        ``.env`` values override existing environment variables
    """
    load_dotenv(dotenv_path=path, override=override)
    env = parse_env(os.environ)
    logger.info("Environment loaded, RPC %s, private key %s, Superform API key %s", urlparse(env.rpc_url).hostname if env.rpc_url else "-", "set" if env.private_key else "-", "set" if env.sf_api_key else "-")
    return env
