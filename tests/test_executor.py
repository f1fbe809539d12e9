"""End-to-end action tests over an in-memory chain client and mocked Superform API."""

import logging
from dataclasses import replace
from unittest.mock import patch

import pytest
from hexbytes import HexBytes
from web3 import Web3

from conftest import DEPOSIT_START_DATA, SUPERFORM_ADDRESS, SUPERFORM_ID, SUPERFORM_ROUTER, USDC, WITHDRAW_START_DATA, FakeChainClient, make_api_response
from safe_superform.abi import decode_function_call, encode_function_call_by_name
from safe_superform.config import ExecutorConfig
from safe_superform.errors import CalldataDecodeError, ConfigurationError, SuperformAPIError, TrustError, ValidationError
from safe_superform.executor import SafeSuperformExecutor
from safe_superform.params import BatchClaimParams, DepositParams, PredictProxyAddressParams, WithdrawAccruedRewardsParams, WithdrawParams, WithdrawQuoteParams
from safe_superform.superform.abis import P2P_SUPERFORM_PROXY_ABI, P2P_SUPERFORM_PROXY_FACTORY_ABI, REWARDS_DISTRIBUTOR_ABI
from safe_superform.superform.constants import DEFAULT_ROLE_KEY, P2P_SUPERFORM_PROXY_FACTORY_ADDRESS
from safe_superform.zodiac.roles import SafeOperation

REWARDS_DISTRIBUTOR = Web3.to_checksum_address("0xce23bd7205bf2b543f6b4eec00add0c111fefc3b")


@pytest.fixture()
def deposit_params(safe_address, roles_address) -> DepositParams:
    return DepositParams(
        safe_address=safe_address,
        roles_address=roles_address,
        from_token_address=USDC,
        amount_in="0.005",
        vault_id="2GoghTk010_A08iZkKpgg",
        bridge_slippage=0,
        swap_slippage=0,
        route_type="output",
        client_basis_points_of_deposit=10_000,
        client_basis_points_of_profit=9_700,
        p2p_signer_sig_deadline=123,
        p2p_signer_signature="0x",
    )


@pytest.fixture()
def deposit_start_response() -> dict:
    return {
        "to": SUPERFORM_ROUTER,
        "method": "singleDirectSingleVaultDeposit",
        "data": DEPOSIT_START_DATA,
        "value": "0",
    }


def get_roles_call(chain_client: FakeChainClient) -> tuple:
    """Arguments of the single execTransactionWithRole() write."""
    assert len(chain_client.writes) == 1
    write = chain_client.writes[0]
    assert write["function_name"] == "execTransactionWithRole"
    return write["args"]


@patch("safe_superform.superform.api.requests.request")
def test_deposit(mock_request, executor, chain_client, deposit_params, deposit_start_response, factory_address, roles_address, safe_address, proxy_address):
    """Deposit wraps Superform router calldata into the factory deposit() and routes it via Roles."""
    mock_request.return_value = make_api_response(deposit_start_response)

    tx_hash = executor.deposit(deposit_params)
    assert isinstance(tx_hash, HexBytes)

    # Proxy is predicted with the same fee split
    predict = [r for r in chain_client.reads if r[1] == "predictP2pYieldProxyAddress"]
    assert predict == [(factory_address, "predictP2pYieldProxyAddress", (safe_address, 10_000, 9_700))]

    # Proxy receives the position and any refunds
    body = mock_request.call_args.kwargs["json"]
    assert body["user_address"] == proxy_address
    assert body["refund_address"] == proxy_address
    assert body["from_chain_id"] == 8453
    assert body["amount_in"] == "0.005"

    assert chain_client.writes[0]["address"] == roles_address
    target, value, data, operation, role_key, should_revert = get_roles_call(chain_client)
    assert target == factory_address
    assert value == 0
    assert operation == SafeOperation.call
    assert role_key == bytes(DEFAULT_ROLE_KEY)
    assert should_revert is True

    decoded = decode_function_call(P2P_SUPERFORM_PROXY_FACTORY_ABI, data, "deposit")
    assert decoded["_yieldProtocolCalldata"] == HexBytes(DEPOSIT_START_DATA)
    assert decoded["_clientBasisPointsOfDeposit"] == 10_000
    assert decoded["_clientBasisPointsOfProfit"] == 9_700
    assert decoded["_p2pSignerSigDeadline"] == 123
    assert decoded["_p2pSignerSignature"] == b""


@patch("safe_superform.superform.api.requests.request")
def test_deposit_value_from_quote(mock_request, executor, chain_client, deposit_params, deposit_start_response):
    """Native value falls back to the Superform quote value."""
    deposit_start_response["value"] = "1000"
    mock_request.return_value = make_api_response(deposit_start_response)

    executor.deposit(deposit_params)
    assert get_roles_call(chain_client)[1] == 1000


@patch("safe_superform.superform.api.requests.request")
def test_deposit_explicit_value_and_role(mock_request, executor, chain_client, deposit_params, deposit_start_response):
    deposit_start_response["value"] = "1000"
    mock_request.return_value = make_api_response(deposit_start_response)
    deposit_params.value = 5
    deposit_params.role_key = b"\x07" * 32
    deposit_params.should_revert_on_failure = False

    executor.deposit(deposit_params)
    _, value, _, _, role_key, should_revert = get_roles_call(chain_client)
    assert value == 5
    assert role_key == b"\x07" * 32
    assert should_revert is False


@patch("safe_superform.superform.api.requests.request")
def test_deposit_uint48_overflow(mock_request, executor, chain_client, deposit_params):
    deposit_params.client_basis_points_of_profit = 2**48
    with pytest.raises(ValidationError, match="client_basis_points_of_profit must fit in uint48"):
        executor.deposit(deposit_params)
    assert mock_request.call_count == 0
    assert chain_client.writes == []


def test_deposit_requires_api_key(chain_client, deposit_params, factory_address, monkeypatch):
    monkeypatch.delenv("SF_API_KEY", raising=False)
    executor = SafeSuperformExecutor(chain_client, ExecutorConfig(p2p_superform_proxy_factory_address=factory_address))
    with pytest.raises(ConfigurationError, match="superform_api_key"):
        executor.deposit(deposit_params)


def test_deposit_requires_chain_id(executor, chain_client, deposit_params):
    chain_client._chain_id = None
    with pytest.raises(ConfigurationError, match="chain id is required to deposit"):
        executor.deposit(deposit_params)


@patch("safe_superform.superform.api.requests.request")
def test_deposit_roles_mismatch_makes_no_write(mock_request, executor, chain_client, deposit_params, deposit_start_response, roles_address):
    mock_request.return_value = make_api_response(deposit_start_response)
    chain_client.responses["avatar"] = Web3.to_checksum_address("0xf000000000000000000000000000000000000bad")

    with pytest.raises(TrustError) as exc_info:
        executor.deposit(deposit_params)
    assert roles_address in str(exc_info.value)
    assert chain_client.writes == []


def test_withdraw(executor, chain_client, safe_address, roles_address, proxy_address):
    tx_hash = executor.withdraw(
        WithdrawParams(
            safe_address=safe_address,
            roles_address=roles_address,
            p2p_superform_proxy_address=proxy_address,
            superform_calldata=WITHDRAW_START_DATA,
        )
    )
    assert isinstance(tx_hash, HexBytes)

    target, value, data, operation, _, _ = get_roles_call(chain_client)
    assert target == proxy_address
    assert value == 0
    assert operation == SafeOperation.call

    decoded = decode_function_call(P2P_SUPERFORM_PROXY_ABI, data, "withdraw")
    assert decoded["_superformCalldata"] == HexBytes(WITHDRAW_START_DATA)


def test_withdraw_delegate_call_is_explicit(executor, chain_client, safe_address, roles_address, proxy_address):
    executor.withdraw(
        WithdrawParams(
            safe_address=safe_address,
            roles_address=roles_address,
            p2p_superform_proxy_address=proxy_address,
            superform_calldata=WITHDRAW_START_DATA,
            operation=SafeOperation.delegate_call,
        )
    )
    assert get_roles_call(chain_client)[3] == SafeOperation.delegate_call


@patch("safe_superform.superform.api.requests.request")
def test_withdraw_with_quote(mock_request, executor, chain_client, safe_address, roles_address, proxy_address):
    calculated = {"superform_id": str(SUPERFORM_ID), "route": "direct"}
    mock_request.side_effect = [
        make_api_response([calculated]),
        make_api_response({"to": SUPERFORM_ROUTER, "method": "singleDirectSingleVaultWithdraw", "data": WITHDRAW_START_DATA, "value": "0"}),
    ]

    executor.withdraw_with_quote(
        WithdrawQuoteParams(
            safe_address=safe_address,
            roles_address=roles_address,
            p2p_superform_proxy_address=proxy_address,
            superform_id=str(SUPERFORM_ID),
            vault_id="2GoghTk010_A08iZkKpgg",
            superpositions_amount_in="4477",
            to_token_address=USDC,
            bridge_slippage=5000,
            swap_slippage=5000,
            positive_slippage=5000,
            is_erc20=False,
        )
    )

    calculate_body = mock_request.call_args_list[0].kwargs["json"][0]
    assert calculate_body["user_address"] == proxy_address
    assert calculate_body["refund_address"] == proxy_address
    assert calculate_body["superpositions_chain_id"] == 8453
    assert calculate_body["to_chain_id"] == 8453

    decoded = decode_function_call(P2P_SUPERFORM_PROXY_ABI, get_roles_call(chain_client)[2], "withdraw")
    assert decoded["_superformCalldata"] == HexBytes(WITHDRAW_START_DATA)


@pytest.fixture()
def accrued_params(safe_address, roles_address, proxy_address):
    def _make(calldata) -> WithdrawAccruedRewardsParams:
        return WithdrawAccruedRewardsParams(
            safe_address=safe_address,
            roles_address=roles_address,
            p2p_superform_proxy_address=proxy_address,
            superform_calldata=calldata,
        )

    return _make


def test_withdraw_accrued_rewards(executor, chain_client, accrued_params, make_withdraw_calldata, proxy_address):
    """Zero liquidity token resolves the asset from the superform itself."""
    chain_client.responses["calculateAccruedRewards"] = 4477
    calldata = make_withdraw_calldata(4477)

    executor.withdraw_accrued_rewards(accrued_params(calldata))

    assert (SUPERFORM_ADDRESS, "asset", ()) in chain_client.reads
    assert (proxy_address, "calculateAccruedRewards", (SUPERFORM_ID, USDC)) in chain_client.reads

    target, _, data, _, _, _ = get_roles_call(chain_client)
    assert target == proxy_address
    decoded = decode_function_call(P2P_SUPERFORM_PROXY_ABI, data, "withdrawAccruedRewards")
    assert decoded["_superformCalldata"] == calldata


def test_withdraw_accrued_rewards_liquidity_token(executor, chain_client, accrued_params, make_withdraw_calldata, proxy_address):
    """A non-zero liquidity token is used as the asset as is."""
    other_asset = Web3.to_checksum_address("0x4200000000000000000000000000000000000006")
    chain_client.responses["calculateAccruedRewards"] = 10
    executor.withdraw_accrued_rewards(accrued_params(make_withdraw_calldata(10, liq_token=other_asset)))

    assert not any(name == "asset" for _, name, _ in chain_client.reads)
    assert (proxy_address, "calculateAccruedRewards", (SUPERFORM_ID, other_asset)) in chain_client.reads
    assert len(chain_client.writes) == 1


def test_withdraw_accrued_rewards_amount_mismatch(executor, chain_client, accrued_params, make_withdraw_calldata):
    chain_client.responses["calculateAccruedRewards"] = 4000
    with pytest.raises(ValidationError, match=r"superform calldata amount \(4477\) must equal accrued rewards \(4000\)"):
        executor.withdraw_accrued_rewards(accrued_params(make_withdraw_calldata(4477)))
    assert chain_client.writes == []


@pytest.mark.parametrize("accrued", [0, -5])
def test_withdraw_accrued_rewards_nothing_accrued(executor, chain_client, accrued_params, make_withdraw_calldata, accrued):
    chain_client.responses["calculateAccruedRewards"] = accrued
    with pytest.raises(ValidationError, match="No accrued rewards available"):
        executor.withdraw_accrued_rewards(accrued_params(make_withdraw_calldata(0)))
    assert chain_client.writes == []


def test_withdraw_accrued_rewards_superform_not_deployed(executor, chain_client, accrued_params, make_withdraw_calldata):
    """Superform address packed in the id must have code before we ask for its asset."""
    chain_client.code[SUPERFORM_ADDRESS] = b""
    chain_client.responses["calculateAccruedRewards"] = 4477
    with pytest.raises(ValidationError, match="has no deployed code"):
        executor.withdraw_accrued_rewards(accrued_params(make_withdraw_calldata(4477)))
    assert not any(name == "asset" for _, name, _ in chain_client.reads)
    assert chain_client.writes == []


def test_withdraw_accrued_rewards_wrong_selector(executor, chain_client, accrued_params):
    calldata = encode_function_call_by_name(P2P_SUPERFORM_PROXY_ABI, "withdraw", [b""])
    with pytest.raises(CalldataDecodeError):
        executor.withdraw_accrued_rewards(accrued_params(calldata))
    assert chain_client.reads == []
    assert chain_client.writes == []


def make_claim_response(receiver: str) -> dict:
    data = encode_function_call_by_name(
        REWARDS_DISTRIBUTOR_ABI,
        "batchClaim",
        [receiver, [3], [[USDC]], [[1_000_000]], [[b"\xaa" * 32]]],
    )
    return {"transactionData": Web3.to_hex(data), "to": REWARDS_DISTRIBUTOR}


@patch("safe_superform.superform.api.requests.request")
def test_batch_claim(mock_request, executor, chain_client, safe_address, roles_address, proxy_address):
    mock_request.return_value = make_api_response(make_claim_response(proxy_address))

    executor.batch_claim(BatchClaimParams(safe_address=safe_address, roles_address=roles_address, p2p_superform_proxy_address=proxy_address.lower()))

    assert mock_request.call_args.args[1] == f"https://api.superform.xyz/protocolRewards/claim/8453/{proxy_address}"

    target, _, data, _, _, _ = get_roles_call(chain_client)
    assert target == proxy_address
    decoded = decode_function_call(P2P_SUPERFORM_PROXY_ABI, data, "batchClaim")
    assert list(decoded["_periodIds"]) == [3]
    assert [list(a) for a in decoded["_amountsClaimed"]] == [[1_000_000]]


@patch("safe_superform.superform.api.requests.request")
def test_batch_claim_receiver_mismatch(mock_request, executor, chain_client, safe_address, roles_address, proxy_address):
    """Rewards claimed for someone else are never forwarded."""
    mock_request.return_value = make_api_response(make_claim_response(safe_address))

    with pytest.raises(ValidationError) as exc_info:
        executor.batch_claim(BatchClaimParams(safe_address=safe_address, roles_address=roles_address, p2p_superform_proxy_address=proxy_address))
    assert safe_address in str(exc_info.value)
    assert proxy_address in str(exc_info.value)
    assert chain_client.writes == []


def test_predict_proxy_address(executor, chain_client, safe_address, factory_address, proxy_address):
    """Read-only and idempotent."""
    params = PredictProxyAddressParams(client=safe_address, client_basis_points_of_deposit=10_000, client_basis_points_of_profit=9_700)
    first = executor.predict_proxy_address(params)
    second = executor.predict_proxy_address(params)

    assert first == second == proxy_address
    assert chain_client.reads == [(factory_address, "predictP2pYieldProxyAddress", (safe_address, 10_000, 9_700))] * 2
    assert chain_client.writes == []


def test_predict_proxy_address_factory_override(executor, chain_client, safe_address):
    other_factory = Web3.to_checksum_address("0xf000000000000000000000000000000000000f00")
    executor.predict_proxy_address(PredictProxyAddressParams(client=safe_address, client_basis_points_of_deposit=1, client_basis_points_of_profit=2, factory_address=other_factory))
    assert chain_client.reads[0][0] == other_factory


def test_predict_proxy_address_checksums_result(executor, chain_client, safe_address, proxy_address):
    chain_client.responses["predictP2pYieldProxyAddress"] = proxy_address.lower()
    assert executor.predict_proxy_address(PredictProxyAddressParams(client=safe_address, client_basis_points_of_deposit=1, client_basis_points_of_profit=2)) == proxy_address


def test_executor_defaults(chain_client, module_address, monkeypatch):
    monkeypatch.setenv("SF_API_KEY", "env-key")
    executor = SafeSuperformExecutor(chain_client)
    assert executor.config.p2p_superform_proxy_factory_address == P2P_SUPERFORM_PROXY_FACTORY_ADDRESS
    assert executor.config.p2p_module_address == module_address
    assert executor.config.default_role_key == DEFAULT_ROLE_KEY
    assert executor.config.superform_api_key == "env-key"
    assert executor.config.validate_roles_target is True


def test_executor_custom_logger(chain_client, executor_config, safe_address, roles_address, proxy_address):
    """Progress messages go to the configured callback."""
    messages = []
    executor_config.logger = messages.append
    executor = SafeSuperformExecutor(chain_client, executor_config)
    executor.withdraw(WithdrawParams(safe_address=safe_address, roles_address=roles_address, p2p_superform_proxy_address=proxy_address, superform_calldata=WITHDRAW_START_DATA))
    assert messages[0].startswith(f"Withdraw via Roles {roles_address}")
    assert any("confirmed" in m for m in messages)


def test_executor_default_logger(executor, safe_address, roles_address, proxy_address, caplog):
    with caplog.at_level(logging.INFO, logger="safe_superform.executor"):
        executor.withdraw(WithdrawParams(safe_address=safe_address, roles_address=roles_address, p2p_superform_proxy_address=proxy_address, superform_calldata=WITHDRAW_START_DATA))
    assert "Withdraw via Roles" in caplog.text


def test_executor_module_mismatch(chain_client, executor_config, safe_address, roles_address, proxy_address):
    executor_config.p2p_module_address = Web3.to_checksum_address("0xf000000000000000000000000000000000000bad")
    executor = SafeSuperformExecutor(chain_client, executor_config)
    with pytest.raises(TrustError, match="does not match configured P2P module"):
        executor.withdraw(WithdrawParams(safe_address=safe_address, roles_address=roles_address, p2p_superform_proxy_address=proxy_address, superform_calldata="0x"))
    assert chain_client.reads == []
    assert chain_client.writes == []


@pytest.fixture()
def action_calls(deposit_params, safe_address, roles_address, proxy_address, make_withdraw_calldata) -> dict:
    """One call per state changing action, each would read the chain or call Superform API before submitting."""
    withdraw_calldata = make_withdraw_calldata(4477)
    return {
        "deposit": lambda executor, **options: executor.deposit(replace(deposit_params, **options)),
        "withdraw": lambda executor, **options: executor.withdraw(
            WithdrawParams(safe_address=safe_address, roles_address=roles_address, p2p_superform_proxy_address=proxy_address, superform_calldata=WITHDRAW_START_DATA, **options)
        ),
        "withdraw_with_quote": lambda executor, **options: executor.withdraw_with_quote(
            WithdrawQuoteParams(
                safe_address=safe_address,
                roles_address=roles_address,
                p2p_superform_proxy_address=proxy_address,
                superform_id=str(SUPERFORM_ID),
                vault_id="2GoghTk010_A08iZkKpgg",
                superpositions_amount_in="4477",
                to_token_address=USDC,
                bridge_slippage=5000,
                swap_slippage=5000,
                positive_slippage=5000,
                is_erc20=False,
                **options,
            )
        ),
        "withdraw_accrued_rewards": lambda executor, **options: executor.withdraw_accrued_rewards(
            WithdrawAccruedRewardsParams(safe_address=safe_address, roles_address=roles_address, p2p_superform_proxy_address=proxy_address, superform_calldata=withdraw_calldata, **options)
        ),
        "batch_claim": lambda executor, **options: executor.batch_claim(BatchClaimParams(safe_address=safe_address, roles_address=roles_address, p2p_superform_proxy_address=proxy_address, **options)),
    }


@pytest.mark.parametrize("action", ["deposit", "withdraw", "withdraw_with_quote", "withdraw_accrued_rewards", "batch_claim"])
@patch("safe_superform.superform.api.requests.request")
def test_missing_role_key_fails_before_network(mock_request, chain_client, factory_address, action_calls, action):
    """No per-call role key and no default: nothing is read or requested."""
    executor = SafeSuperformExecutor(chain_client, ExecutorConfig(p2p_superform_proxy_factory_address=factory_address, superform_api_key="test-key", default_role_key=b""))
    assert executor.config.default_role_key is None

    with pytest.raises(ConfigurationError, match="Role key is required for Roles execution"):
        action_calls[action](executor)

    assert chain_client.reads == []
    assert chain_client.batch_reads == []
    assert chain_client.writes == []
    assert mock_request.call_count == 0


@pytest.mark.parametrize("action", ["deposit", "withdraw", "withdraw_with_quote", "withdraw_accrued_rewards", "batch_claim"])
@patch("safe_superform.superform.api.requests.request")
def test_bad_role_key_fails_before_network(mock_request, executor, chain_client, action_calls, action):
    with pytest.raises(ValidationError, match="Role key must be 32 bytes"):
        action_calls[action](executor, role_key=b"\x01" * 20)

    assert chain_client.reads == []
    assert chain_client.writes == []
    assert mock_request.call_count == 0


def test_withdraw_negative_value_makes_no_reads(executor, chain_client, action_calls):
    """Value is range checked before the Roles guard reads avatar() and target()."""
    with pytest.raises(ValidationError, match="value must fit in uint256"):
        action_calls["withdraw"](executor, value=-5)
    assert chain_client.reads == []
    assert chain_client.writes == []


@patch("safe_superform.superform.api.requests.request")
def test_deposit_bad_quote_value(mock_request, executor, chain_client, deposit_params, deposit_start_response):
    deposit_start_response["value"] = "1.5"
    mock_request.return_value = make_api_response(deposit_start_response)

    with pytest.raises(SuperformAPIError, match="bad native value"):
        executor.deposit(deposit_params)
    assert chain_client.writes == []
