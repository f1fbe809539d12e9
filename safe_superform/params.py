"""Action parameters for :py:class:`safe_superform.executor.SafeSuperformExecutor`.

Each action takes the Safe and the Roles module it acts through,
plus optional Roles execution overrides:

- ``value``: native value forwarded by the Safe, defaults to 0
- ``role_key``: defaults to the executor default role key
- ``should_revert_on_failure``: defaults to ``True``
- ``operation``: defaults to :py:attr:`SafeOperation.call`
"""

from dataclasses import dataclass, field

from eth_typing import HexAddress

from safe_superform.zodiac.roles import SafeOperation


@dataclass(slots=True, kw_only=True)
class RolesCallOptions:
    """Optional Roles execution overrides shared by all actions."""

    #: Native value forwarded from the Safe to the target
    value: int | str | None = None

    role_key: bytes | str | None = None

    should_revert_on_failure: bool | None = None

    operation: SafeOperation | int | None = None


@dataclass(slots=True, kw_only=True)
class DepositParams(RolesCallOptions):
    """Deposit into a Superform vault through the P2P proxy factory."""

    safe_address: HexAddress

    roles_address: HexAddress

    #: Token the Safe pays with
    from_token_address: HexAddress

    #: Human readable amount as a decimal string, e.g. ``"0.005"``
    amount_in: str

    #: Superform vault id
    vault_id: str

    bridge_slippage: int

    swap_slippage: int

    route_type: str

    #: Client share of the deposit, basis points, ``uint48``
    client_basis_points_of_deposit: int

    #: Client share of the profit, basis points, ``uint48``
    client_basis_points_of_profit: int

    #: P2P signer signature deadline, UNIX timestamp
    p2p_signer_sig_deadline: int

    #: P2P signer signature over the deposit parameters
    p2p_signer_signature: bytes | str

    exclude_ambs: list[int] = field(default_factory=list)

    exclude_liquidity_providers: list[int] = field(default_factory=list)

    exclude_dexes: list[int] = field(default_factory=list)

    exclude_bridges: list[int] = field(default_factory=list)


@dataclass(slots=True, kw_only=True)
class WithdrawParams(RolesCallOptions):
    """Withdraw with ready-made Superform router calldata."""

    safe_address: HexAddress

    roles_address: HexAddress

    p2p_superform_proxy_address: HexAddress

    #: Superform router calldata, e.g. ``singleDirectSingleVaultWithdraw()``
    superform_calldata: bytes | str


@dataclass(slots=True, kw_only=True)
class WithdrawQuoteParams(RolesCallOptions):
    """Withdraw with a route quoted by Superform API."""

    safe_address: HexAddress

    roles_address: HexAddress

    p2p_superform_proxy_address: HexAddress

    superform_id: str

    vault_id: str

    #: SuperPositions to burn, raw units as a decimal string
    superpositions_amount_in: str

    to_token_address: HexAddress

    bridge_slippage: int

    swap_slippage: int

    positive_slippage: int

    is_erc20: bool

    #: Defaults to the executor chain
    superpositions_chain_id: int | None = None

    #: Defaults to the executor chain
    to_chain_id: int | None = None

    route_type: str = "output"

    filter_swap_routes: bool = False

    is_part_of_multi_vault: bool = False

    need_insurance: bool = True


@dataclass(slots=True, kw_only=True)
class WithdrawAccruedRewardsParams(RolesCallOptions):
    """Withdraw only the profit accrued on a position."""

    safe_address: HexAddress

    roles_address: HexAddress

    p2p_superform_proxy_address: HexAddress

    #: ``singleDirectSingleVaultWithdraw()`` calldata, amount must equal accrued rewards
    superform_calldata: bytes | str


@dataclass(slots=True, kw_only=True)
class BatchClaimParams(RolesCallOptions):
    """Claim Superform protocol rewards to the P2P proxy."""

    safe_address: HexAddress

    roles_address: HexAddress

    p2p_superform_proxy_address: HexAddress


@dataclass(slots=True, kw_only=True)
class PredictProxyAddressParams:
    """Inputs of ``predictP2pYieldProxyAddress()``."""

    #: Client, i.e. the Safe
    client: HexAddress

    client_basis_points_of_deposit: int

    client_basis_points_of_profit: int

    #: Override the configured factory
    factory_address: HexAddress | None = None
