"""A manual test script to deposit Safe funds into a Superform vault through a Zodiac Roles module.

- The Safe must have a Roles module whose ``avatar()`` and ``target()`` are the Safe
- ``PRIVATE_KEY`` must hold the P2P Superform role in that Roles module
- The P2P signer signature and its deadline are issued by P2P.org for the given fee split

Environment variables:

- ``RPC_URL``, ``PRIVATE_KEY``, ``SF_API_KEY``: see ``.env``
- ``SAFE_ADDRESS``, ``ROLES_ADDRESS``: Safe and its Roles module
- ``AMOUNT``: USDC amount as a decimal string, e.g. ``0.005``
- ``P2P_SIGNER_SIG_DEADLINE``, ``P2P_SIGNER_SIGNATURE``: from P2P.org
- ``ACTION``: ``deposit`` (default), ``predict`` or ``claim``

Example:

.. code-block:: shell

    SAFE_ADDRESS=0x... ROLES_ADDRESS=0x... AMOUNT=0.005 \\
        P2P_SIGNER_SIG_DEADLINE=1767225600 P2P_SIGNER_SIGNATURE=0x... \\
        python scripts/superform/deposit-via-roles.py
"""

import os

from safe_superform.executor import create_executor_from_env
from safe_superform.params import BatchClaimParams, DepositParams, PredictProxyAddressParams
from safe_superform.utils import setup_console_logging

#: USDC on Base
USDC_BASE = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"

#: Superform USDC vault on Base
VAULT_ID = "2GoghTk010_A08iZkKpgg"


def main():
    setup_console_logging()

    safe_address = os.environ.get("SAFE_ADDRESS")
    assert safe_address, "SAFE_ADDRESS env missing"

    roles_address = os.environ.get("ROLES_ADDRESS")
    assert roles_address, "ROLES_ADDRESS env missing"

    action = os.environ.get("ACTION", "deposit")
    deposit_bp = int(os.environ.get("CLIENT_BASIS_POINTS_OF_DEPOSIT", "10000"))
    profit_bp = int(os.environ.get("CLIENT_BASIS_POINTS_OF_PROFIT", "9700"))

    executor = create_executor_from_env(chain_id=8453)
    print(f"Operator {executor.chain_client.address}, executor {executor}")

    proxy_address = executor.predict_proxy_address(
        PredictProxyAddressParams(
            client=safe_address,
            client_basis_points_of_deposit=deposit_bp,
            client_basis_points_of_profit=profit_bp,
        )
    )
    print(f"P2P proxy for Safe {safe_address} is {proxy_address}")

    if action == "predict":
        return

    if action == "claim":
        claim = executor.fetch_protocol_rewards_claim(proxy_address)
        print(f"Claiming rewards from distributor {claim.to}")
        tx_hash = executor.batch_claim(
            BatchClaimParams(
                safe_address=safe_address,
                roles_address=roles_address,
                p2p_superform_proxy_address=proxy_address,
            )
        )
        print(f"Claimed, tx {tx_hash.hex()}")
        return

    assert action == "deposit", f"Unknown ACTION: {action}"

    amount = os.environ.get("AMOUNT")
    assert amount, "AMOUNT env missing"

    deadline = os.environ.get("P2P_SIGNER_SIG_DEADLINE")
    signature = os.environ.get("P2P_SIGNER_SIGNATURE")
    assert deadline and signature, "P2P_SIGNER_SIG_DEADLINE and P2P_SIGNER_SIGNATURE env needed"

    tx_hash = executor.deposit(
        DepositParams(
            safe_address=safe_address,
            roles_address=roles_address,
            from_token_address=USDC_BASE,
            amount_in=amount,
            vault_id=VAULT_ID,
            bridge_slippage=5000,
            swap_slippage=5000,
            route_type="output",
            client_basis_points_of_deposit=deposit_bp,
            client_basis_points_of_profit=profit_bp,
            p2p_signer_sig_deadline=deadline,
            p2p_signer_signature=signature,
        )
    )
    print(f"Deposited {amount} USDC, tx {tx_hash.hex()}")
    print(f"All ok, check the Safe at https://basescan.org/address/{safe_address}")


if __name__ == "__main__":
    main()
