"""Zodiac Roles module guard and execution pipeline.

Every privileged write goes through :py:func:`execute_via_roles`:

1. Build a :py:class:`RolesExecutionRequest`, resolving role key, value and operation defaults
2. Check the signing account is the configured module identity
3. Check the Roles module ``avatar()`` and ``target()`` are the Safe the caller asserts
4. Call ``execTransactionWithRole()`` on the Roles module
5. Wait for the receipt

There is no way to skip the account check. The wiring check can be turned off
with ``validate_roles_target=False``.
"""

import enum
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable

from eth_typing import HexAddress, HexStr
from hexbytes import HexBytes

from safe_superform.chain_client import ChainClient, ContractRead
from safe_superform.errors import ConfigurationError, TransactionReverted, TrustError, ValidationError
from safe_superform.utils import checksum, normalise_uint, same_address

logger = logging.getLogger(__name__)


#: Zodiac Roles module functions we use
ROLES_MODULE_ABI = [
    {
        "type": "function",
        "name": "execTransactionWithRole",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "value", "type": "uint256"},
            {"name": "data", "type": "bytes"},
            {"name": "operation", "type": "uint8"},
            {"name": "roleKey", "type": "bytes32"},
            {"name": "shouldRevert", "type": "bool"},
        ],
        "outputs": [{"name": "success", "type": "bool"}],
    },
    {"type": "function", "name": "avatar", "stateMutability": "view", "inputs": [], "outputs": [{"name": "", "type": "address"}]},
    {"type": "function", "name": "target", "stateMutability": "view", "inputs": [], "outputs": [{"name": "", "type": "address"}]},
]


class SafeOperation(enum.IntEnum):
    """Safe ``Enum.Operation``."""

    #: Plain call, the default
    call = 0

    #: Delegate call runs target code in the Safe context.
    #: Must always be asked for explicitly.
    delegate_call = 1


def parse_safe_operation(operation: SafeOperation | int | None) -> SafeOperation:
    """Missing operation is a plain call.

    :raise ValidationError:
        Not a Safe operation
    """
    if operation is None:
        return SafeOperation.call

    if isinstance(operation, bool):
        raise ValidationError(f"operation must be 0 (call) or 1 (delegate call), got {operation!r}")

    try:
        return SafeOperation(operation)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"operation must be 0 (call) or 1 (delegate call), got {operation!r}") from e


def resolve_role_key(custom: bytes | HexStr | str | None, default: bytes | HexStr | str | None) -> HexBytes:
    """Pick per-call role key, then the configured default.

    :raise ConfigurationError:
        Neither is given

    :raise ValidationError:
        Role key is not 32 bytes
    """
    role_key = custom if custom else default
    if not role_key:
        raise ConfigurationError("Role key is required for Roles execution")

    try:
        as_bytes = HexBytes(role_key)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"Role key is not hex: {role_key!r}") from e

    if len(as_bytes) != 32:
        raise ValidationError(f"Role key must be 32 bytes, got {len(as_bytes)} bytes: {as_bytes.hex()}")
    return as_bytes


@dataclass(slots=True, frozen=True)
class RolesExecutionRequest:
    """One ``execTransactionWithRole()`` call.

    Use :py:meth:`create` to build with defaults resolved.
    """

    #: Zodiac Roles module
    roles_address: HexAddress

    #: Contract the Safe calls
    target: HexAddress

    #: Calldata for the target
    data: HexBytes

    #: Native value forwarded by the Safe
    value: int

    role_key: HexBytes

    #: Revert the whole transaction if the inner call fails
    should_revert_on_failure: bool

    operation: SafeOperation

    #: Safe the Roles module must be wired to, ``None`` skips the wiring check
    expected_safe: HexAddress | None = None

    @classmethod
    def create(
        cls,
        roles_address: HexAddress | str,
        target: HexAddress | str,
        data: bytes | HexBytes | str,
        value: int | str | None = None,
        role_key: bytes | str | None = None,
        default_role_key: bytes | str | None = None,
        should_revert_on_failure: bool | None = None,
        operation: SafeOperation | int | None = None,
        expected_safe: HexAddress | str | None = None,
    ) -> "RolesExecutionRequest":
        """Build a request, resolving defaults.

        - value defaults to 0
        - operation defaults to :py:attr:`SafeOperation.call`
        - ``should_revert_on_failure`` defaults to ``True``

        :raise ConfigurationError:
            No role key available

        :raise ValidationError:
            Value is not a ``uint256`` or operation is not 0 or 1
        """
        return cls(
            roles_address=checksum(roles_address, "roles_address"),
            target=checksum(target, "target"),
            data=HexBytes(data),
            value=normalise_uint(0 if value is None else value, "value"),
            role_key=resolve_role_key(role_key, default_role_key),
            should_revert_on_failure=True if should_revert_on_failure is None else should_revert_on_failure,
            operation=parse_safe_operation(operation),
            expected_safe=checksum(expected_safe, "expected_safe") if expected_safe else None,
        )

    def get_args(self) -> tuple:
        """Arguments for ``execTransactionWithRole()``."""
        return (
            self.target,
            self.value,
            bytes(self.data),
            int(self.operation),
            bytes(self.role_key),
            self.should_revert_on_failure,
        )


def verify_module_account(actual: HexAddress | str | None, expected: HexAddress | str | None):
    """Check the signing account is the configured module identity.

    :raise ConfigurationError:
        No signing account

    :raise TrustError:
        Address mismatch
    """
    if not actual:
        raise ConfigurationError("Chain client must have an active signing account")

    if not expected:
        return

    if not same_address(actual, expected):
        raise TrustError(f"Chain client account {checksum(actual)} does not match configured P2P module {checksum(expected)}")


def verify_roles_wiring(
    chain_client: ChainClient,
    roles_address: HexAddress | str,
    expected_safe: HexAddress | str,
):
    """Check the Roles module acts as and against the given Safe.

    ``avatar()`` and ``target()`` are read concurrently,
    or in one JSON-RPC batch if the chain client is batching.

    :raise TrustError:
        Mismatch or any read failure
    """
    safe = checksum(expected_safe, "expected_safe")
    calls = [ContractRead(roles_address, ROLES_MODULE_ABI, "avatar"), ContractRead(roles_address, ROLES_MODULE_ABI, "target")]

    try:
        if chain_client.batch:
            avatar, target = chain_client.batch_read_contracts(calls)
        else:
            with ThreadPoolExecutor(max_workers=2) as executor:
                futures = [executor.submit(chain_client.read_contract, c.address, c.abi, c.function_name, c.args) for c in calls]
                avatar, target = [f.result() for f in futures]

        avatar = checksum(avatar, "avatar")
        target = checksum(target, "target")

        if avatar != safe or target != safe:
            raise TrustError(f"Roles module {roles_address} is wired to avatar={avatar} target={target}, expected {safe}")
    except Exception as e:
        raise TrustError(f"Failed to verify Roles wiring for {roles_address}: {e}") from e

    logger.info("Roles module %s is wired to Safe %s", roles_address, safe)


def execute_via_roles(
    chain_client: ChainClient,
    request: RolesExecutionRequest,
    module_address: HexAddress | str | None,
    validate_roles_target: bool = True,
    log: Callable[[str], None] = logger.info,
) -> HexBytes:
    """Run the guard, submit ``execTransactionWithRole()`` and wait for confirmation.

    Nothing is written if any of the checks fail.

    :param module_address:
        Expected signing account

    :param log:
        Progress message callback

    :return:
        Confirmed transaction hash

    :raise TransactionReverted:
        Transaction was mined but failed
    """
    verify_module_account(chain_client.address, module_address)

    if validate_roles_target and request.expected_safe:
        verify_roles_wiring(chain_client, request.roles_address, request.expected_safe)

    log(f"Roles execution -> target {request.target} value={request.value} operation={request.operation.name} role=0x{request.role_key.hex().removeprefix('0x')}")

    tx_hash = chain_client.write_contract(
        request.roles_address,
        ROLES_MODULE_ABI,
        "execTransactionWithRole",
        request.get_args(),
    )
    tx_hash = HexBytes(tx_hash)

    log(f"Waiting for Roles tx {tx_hash.hex()}")
    receipt = chain_client.wait_for_transaction_receipt(tx_hash)

    if receipt is not None and receipt.get("status") == 0:
        raise TransactionReverted(f"Roles tx {tx_hash.hex()} reverted: {receipt}", tx_hash=tx_hash, receipt=receipt)

    log(f"Roles tx confirmed {tx_hash.hex()}")
    return tx_hash
