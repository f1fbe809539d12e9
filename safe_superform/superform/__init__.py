"""Superform integration through P2P.org yield proxies.

Superform is a cross-chain vault aggregation protocol. Deposits go through
the P2P.org proxy factory, which deploys a per-client proxy that holds the
Superform positions and splits profits with P2P.org.

For more information see `Superform API documentation <https://docs.superform.xyz>`__.

Key components:

- :py:mod:`safe_superform.superform.constants` - Contract addresses and API configuration
- :py:mod:`safe_superform.superform.abis` - Minimal ABIs of the contracts we talk to
- :py:mod:`safe_superform.superform.api` - API helpers and error handling
- :py:mod:`safe_superform.superform.deposit` - Deposit route quoting
- :py:mod:`safe_superform.superform.withdraw` - Withdraw route quoting and calldata decoding
- :py:mod:`safe_superform.superform.rewards` - Protocol reward claims
"""
