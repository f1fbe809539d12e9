"""Superform and P2P.org contract addresses and constants.

See `Superform API documentation <https://docs.superform.xyz>`__ for more details.
"""

from eth_typing import HexAddress
from hexbytes import HexBytes
from web3 import Web3

#: Superform API endpoint
SUPERFORM_API_URL = "https://api.superform.xyz"

#: HTTP header carrying the Superform API key
SUPERFORM_API_KEY_HEADER = "SF-API-KEY"

#: Environment variable used when the API key is not given explicitly
SUPERFORM_API_KEY_ENV = "SF_API_KEY"

#: P2P.org Superform proxy factory
#:
#: Deploys per-client proxies and forwards deposits to Superform router.
P2P_SUPERFORM_PROXY_FACTORY_ADDRESS: HexAddress = HexAddress("0x815B6A7c0b8F4D1c7cdb5031EBe802bf4f7e6d81")

#: P2P.org operator address
#:
#: Used as the expected module identity if there is no signing account.
P2P_ADDRESS: HexAddress = HexAddress("0x03264232431031B6484188640ECFF7BdaBDA4b8b")

#: Default Zodiac Roles role key for P2P Superform operations
#:
#: ``keccak256("P2P_SUPERFORM_ROLE")``
DEFAULT_ROLE_KEY = HexBytes(Web3.keccak(text="P2P_SUPERFORM_ROLE"))

#: Low 160 bits of a Superform id is the superform (vault wrapper) address
SUPERFORM_ID_ADDRESS_MASK = 2**160 - 1
