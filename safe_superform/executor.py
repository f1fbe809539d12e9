"""Superform actions for a Safe, executed through a Zodiac Roles module.

- The Safe owns a P2P.org yield proxy, deployed by the P2P proxy factory on the first deposit
- An operator key holds a role in the Safe's Roles module and calls ``execTransactionWithRole()``
- The Safe then calls the factory or the proxy, which forward to Superform

Every state changing action goes through :py:func:`safe_superform.zodiac.roles.execute_via_roles`.

Example:

.. code-block:: python

    executor = create_executor_from_env(chain_id=8453)

    proxy = executor.predict_proxy_address(PredictProxyAddressParams(
        client=safe_address,
        client_basis_points_of_deposit=10_000,
        client_basis_points_of_profit=9_700,
    ))

    tx_hash = executor.deposit(DepositParams(
        safe_address=safe_address,
        roles_address=roles_address,
        from_token_address="0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
        amount_in="0.005",
        vault_id="2GoghTk010_A08iZkKpgg",
        bridge_slippage=0,
        swap_slippage=0,
        route_type="output",
        client_basis_points_of_deposit=10_000,
        client_basis_points_of_profit=9_700,
        p2p_signer_sig_deadline=deadline,
        p2p_signer_signature=signature,
    ))
"""

import logging
from typing import Callable

import requests
from eth_typing import HexAddress
from hexbytes import HexBytes
from web3.providers import BaseProvider

from safe_superform.abi import ZERO_ADDRESS, encode_function_call_by_name
from safe_superform.chain_client import ChainClient
from safe_superform.config import ExecutorConfig, ResolvedExecutorConfig, load_env, resolve_config
from safe_superform.errors import ConfigurationError, ValidationError
from safe_superform.params import (
    BatchClaimParams,
    DepositParams,
    PredictProxyAddressParams,
    RolesCallOptions,
    WithdrawAccruedRewardsParams,
    WithdrawParams,
    WithdrawQuoteParams,
)
from safe_superform.provider import create_clients_from_private_key
from safe_superform.superform.abis import ERC_4626_ASSET_ABI, P2P_SUPERFORM_PROXY_ABI, P2P_SUPERFORM_PROXY_FACTORY_ABI
from safe_superform.superform.deposit import build_deposit_body, fetch_deposit_start
from safe_superform.superform.rewards import ProtocolRewardsClaim, build_proxy_batch_claim_calldata, decode_rewards_distributor_batch_claim, fetch_protocol_rewards_claim
from safe_superform.superform.withdraw import build_withdraw_body, decode_single_direct_single_vault_withdraw, fetch_withdraw_calculate, fetch_withdraw_start, superform_id_to_address
from safe_superform.utils import checksum, normalise_int, normalise_uint48, same_address
from safe_superform.zodiac.roles import RolesExecutionRequest, execute_via_roles, resolve_role_key

logger = logging.getLogger(__name__)


class SafeSuperformExecutor:
    """Run Superform deposits, withdrawals and reward claims for a Safe.

    Configuration is resolved once at construction time,
    see :py:func:`safe_superform.config.resolve_config`.
    """

    def __init__(
        self,
        chain_client: ChainClient,
        config: ExecutorConfig | None = None,
        session: requests.Session | None = None,
    ):
        """
        :param chain_client:
            Signing chain access

        :param config:
            Optional overrides for addresses, role key, API key and logging

        :param session:
            HTTP session for Superform API, module level ``requests`` if not given
        """
        assert isinstance(chain_client, ChainClient), f"Got {type(chain_client)}"
        self.chain_client = chain_client
        self.session = session
        self.config: ResolvedExecutorConfig = resolve_config(config, chain_client.address)
        self.log: Callable[[str], None] = (config.logger if config else None) or logger.info

    def __repr__(self):
        return f"<SafeSuperformExecutor module:{self.config.p2p_module_address} factory:{self.config.p2p_superform_proxy_factory_address}>"

    def _require_chain_id(self, action: str) -> int:
        chain_id = self.chain_client.chain_id
        if not chain_id:
            raise ConfigurationError(f"Chain client chain id is required to {action}")
        return chain_id

    def _require_api_key(self, action: str) -> str:
        if not self.config.superform_api_key:
            raise ConfigurationError(f"superform_api_key (or SF_API_KEY in env) is required to {action}")
        return self.config.superform_api_key

    def _resolve_role_key(self, options: RolesCallOptions) -> HexBytes:
        # Called before any chain read or API request
        return resolve_role_key(options.role_key, self.config.default_role_key)

    def _execute(
        self,
        roles_address: HexAddress,
        target: HexAddress,
        data: HexBytes,
        options: RolesCallOptions,
        expected_safe: HexAddress,
        role_key: HexBytes,
        value: int | str | None = None,
    ) -> HexBytes:
        request = RolesExecutionRequest.create(
            roles_address=roles_address,
            target=target,
            data=data,
            value=options.value if value is None else value,
            role_key=role_key,
            should_revert_on_failure=options.should_revert_on_failure,
            operation=options.operation,
            expected_safe=expected_safe,
        )
        return execute_via_roles(
            self.chain_client,
            request,
            module_address=self.config.p2p_module_address,
            validate_roles_target=self.config.validate_roles_target,
            log=self.log,
        )

    def predict_proxy_address(self, params: PredictProxyAddressParams) -> HexAddress:
        """Get the P2P proxy address for a client and fee split.

        Read-only. The proxy does not need to be deployed yet.
        """
        factory = checksum(params.factory_address or self.config.p2p_superform_proxy_factory_address, "factory_address")
        address = self.chain_client.read_contract(
            factory,
            P2P_SUPERFORM_PROXY_FACTORY_ABI,
            "predictP2pYieldProxyAddress",
            (
                checksum(params.client, "client"),
                normalise_uint48(params.client_basis_points_of_deposit, "client_basis_points_of_deposit"),
                normalise_uint48(params.client_basis_points_of_profit, "client_basis_points_of_profit"),
            ),
        )
        return checksum(address, "predicted proxy address")

    def deposit(self, params: DepositParams) -> HexBytes:
        """Deposit Safe funds into a Superform vault through the P2P proxy factory.

        1. Predict the proxy address for the Safe and the fee split
        2. Ask Superform for a deposit route, the proxy being both user and refund address
        3. Wrap router calldata into factory ``deposit()``
        4. Execute through the Roles module

        :return:
            Confirmed transaction hash
        """
        role_key = self._resolve_role_key(params)
        chain_id = self._require_chain_id("deposit")
        api_key = self._require_api_key("deposit")

        deposit_bp = normalise_uint48(params.client_basis_points_of_deposit, "client_basis_points_of_deposit")
        profit_bp = normalise_uint48(params.client_basis_points_of_profit, "client_basis_points_of_profit")
        deadline = normalise_int(params.p2p_signer_sig_deadline, "p2p_signer_sig_deadline", default=None)

        proxy_address = self.predict_proxy_address(
            PredictProxyAddressParams(
                client=params.safe_address,
                client_basis_points_of_deposit=deposit_bp,
                client_basis_points_of_profit=profit_bp,
            )
        )

        body = build_deposit_body(
            user_address=proxy_address,
            from_token_address=params.from_token_address,
            from_chain_id=chain_id,
            amount_in=params.amount_in,
            refund_address=proxy_address,
            vault_id=params.vault_id,
            bridge_slippage=params.bridge_slippage,
            swap_slippage=params.swap_slippage,
            route_type=params.route_type,
            exclude_ambs=params.exclude_ambs,
            exclude_liquidity_providers=params.exclude_liquidity_providers,
            exclude_dexes=params.exclude_dexes,
            exclude_bridges=params.exclude_bridges,
        )
        deposit_start = fetch_deposit_start(api_key, body, session=self.session)

        factory = self.config.p2p_superform_proxy_factory_address
        data = encode_function_call_by_name(
            P2P_SUPERFORM_PROXY_FACTORY_ABI,
            "deposit",
            [
                bytes(deposit_start.data),
                deposit_bp,
                profit_bp,
                deadline,
                bytes(HexBytes(params.p2p_signer_signature)),
            ],
        )

        self.log(f"Deposit via Roles {params.roles_address} -> Safe {params.safe_address} -> Factory {factory}, proxy {proxy_address}")

        if params.value is not None:
            value = params.value
        else:
            value = deposit_start.get_value()

        return self._execute(params.roles_address, factory, data, params, params.safe_address, role_key, value=value)

    def withdraw(self, params: WithdrawParams) -> HexBytes:
        """Withdraw from the P2P proxy with caller supplied Superform calldata."""
        role_key = self._resolve_role_key(params)
        data = encode_function_call_by_name(P2P_SUPERFORM_PROXY_ABI, "withdraw", [bytes(HexBytes(params.superform_calldata))])
        self.log(f"Withdraw via Roles {params.roles_address} -> Safe {params.safe_address} -> Proxy {params.p2p_superform_proxy_address}")
        return self._execute(params.roles_address, params.p2p_superform_proxy_address, data, params, params.safe_address, role_key)

    def withdraw_with_quote(self, params: WithdrawQuoteParams) -> HexBytes:
        """Withdraw from the P2P proxy with a route quoted by Superform.

        The proxy holds the SuperPositions, so it is the user and the refund address.
        """
        role_key = self._resolve_role_key(params)
        chain_id = self._require_chain_id("withdraw")
        api_key = self._require_api_key("withdraw")
        proxy_address = checksum(params.p2p_superform_proxy_address, "p2p_superform_proxy_address")

        body = build_withdraw_body(
            user_address=proxy_address,
            refund_address=proxy_address,
            superform_id=params.superform_id,
            superpositions_amount_in=params.superpositions_amount_in,
            superpositions_chain_id=params.superpositions_chain_id or chain_id,
            to_chain_id=params.to_chain_id or chain_id,
            to_token_address=params.to_token_address,
            vault_id=params.vault_id,
            bridge_slippage=params.bridge_slippage,
            swap_slippage=params.swap_slippage,
            positive_slippage=params.positive_slippage,
            is_erc20=params.is_erc20,
            route_type=params.route_type,
            filter_swap_routes=params.filter_swap_routes,
            is_part_of_multi_vault=params.is_part_of_multi_vault,
            need_insurance=params.need_insurance,
        )
        calculated = fetch_withdraw_calculate(api_key, body, session=self.session)
        withdraw_start = fetch_withdraw_start(api_key, calculated, session=self.session)

        return self.withdraw(
            WithdrawParams(
                safe_address=params.safe_address,
                roles_address=params.roles_address,
                p2p_superform_proxy_address=proxy_address,
                superform_calldata=withdraw_start.data,
                value=params.value,
                role_key=role_key,
                should_revert_on_failure=params.should_revert_on_failure,
                operation=params.operation,
            )
        )

    def _resolve_asset_for_withdraw(self, superform_id: int, liq_token: HexAddress) -> HexAddress:
        """Find the asset accrued rewards are measured in.

        A zero liquidity request token means the withdraw pays out the vault asset directly,
        so we ask the superform for its ``asset()``.
        """
        if liq_token != ZERO_ADDRESS:
            return checksum(liq_token, "liq_request.token")

        vault_address = superform_id_to_address(superform_id)
        code = self.chain_client.get_code(vault_address)
        if code is not None and len(code) == 0:
            raise ValidationError(f"Superform {vault_address} derived from superformId={superform_id} has no deployed code")

        asset = self.chain_client.read_contract(vault_address, ERC_4626_ASSET_ABI, "asset")
        return checksum(asset, "asset")

    def withdraw_accrued_rewards(self, params: WithdrawAccruedRewardsParams) -> HexBytes:
        """Withdraw exactly the profit accrued on a position.

        The withdraw amount in the calldata must equal what the proxy reports as accrued,
        otherwise we refuse to submit.

        :raise CalldataDecodeError:
            Calldata is not ``singleDirectSingleVaultWithdraw()``

        :raise ValidationError:
            Nothing accrued or the amount does not match
        """
        role_key = self._resolve_role_key(params)
        decoded = decode_single_direct_single_vault_withdraw(params.superform_calldata)
        asset = self._resolve_asset_for_withdraw(decoded.superform_id, decoded.liq_request.token)

        accrued = self.chain_client.read_contract(
            params.p2p_superform_proxy_address,
            P2P_SUPERFORM_PROXY_ABI,
            "calculateAccruedRewards",
            (decoded.superform_id, asset),
        )
        accrued = normalise_int(accrued, "accrued rewards", default=None)

        if accrued <= 0:
            raise ValidationError(f"No accrued rewards available for superformId={decoded.superform_id} asset={asset}; got {accrued}")

        if decoded.amount != accrued:
            raise ValidationError(f"superform calldata amount ({decoded.amount}) must equal accrued rewards ({accrued})")

        data = encode_function_call_by_name(P2P_SUPERFORM_PROXY_ABI, "withdrawAccruedRewards", [bytes(HexBytes(params.superform_calldata))])
        self.log(f"Withdraw accrued rewards via Roles {params.roles_address} -> Safe {params.safe_address} -> Proxy {params.p2p_superform_proxy_address}")
        return self._execute(params.roles_address, params.p2p_superform_proxy_address, data, params, params.safe_address, role_key)

    def fetch_protocol_rewards_claim(self, user: HexAddress | str) -> ProtocolRewardsClaim:
        """Get Superform protocol rewards claim transaction for a user on the current chain."""
        chain_id = self._require_chain_id("fetch rewards claim data")
        api_key = self._require_api_key("fetch rewards claim data")
        return fetch_protocol_rewards_claim(chain_id, checksum(user, "user"), api_key, session=self.session)

    def batch_claim(self, params: BatchClaimParams) -> HexBytes:
        """Claim Superform protocol rewards to the P2P proxy.

        :raise ValidationError:
            Claim is not for the given proxy
        """
        role_key = self._resolve_role_key(params)
        proxy_address = checksum(params.p2p_superform_proxy_address, "p2p_superform_proxy_address")
        claim = self.fetch_protocol_rewards_claim(proxy_address)
        decoded = decode_rewards_distributor_batch_claim(claim.transaction_data)

        if not same_address(decoded.receiver, proxy_address):
            raise ValidationError(f"Claim receiver {decoded.receiver} does not match proxy {proxy_address}")

        data = build_proxy_batch_claim_calldata(decoded)
        self.log(f"Batch claim via Roles {params.roles_address} -> Safe {params.safe_address} -> Proxy {proxy_address}, {len(decoded.period_ids)} periods")
        return self._execute(params.roles_address, proxy_address, data, params, params.safe_address, role_key)


def create_executor_from_env(
    chain_id: int | None = None,
    batch_rpc: bool = False,
    env_path: str | None = None,
    config: ExecutorConfig | None = None,
    provider: BaseProvider | None = None,
) -> SafeSuperformExecutor:
    """Create an executor from ``RPC_URL``, ``PRIVATE_KEY`` and ``SF_API_KEY``.

    ``.env`` is loaded first.

    :param chain_id:
        Expected chain id, checked against the node

    :param batch_rpc:
        Batch multi-reads into one JSON-RPC request

    :param provider:
        Custom web3 transport used instead of ``RPC_URL``

    :raise ConfigurationError:
        ``RPC_URL`` or ``PRIVATE_KEY`` is missing or invalid
    """
    env = load_env(env_path)

    required = [("PRIVATE_KEY", env.private_key)]
    if provider is None:
        required.insert(0, ("RPC_URL", env.rpc_url))
    missing = [name for name, value in required if not value]
    if missing:
        raise ConfigurationError(f"Missing environment variables: {', '.join(missing)}")

    chain_client = create_clients_from_private_key(env.rpc_url, env.private_key, chain_id=chain_id, batch=batch_rpc, provider=provider)

    # SF_API_KEY from .env is picked up by resolve_config()
    return SafeSuperformExecutor(chain_client, config)
