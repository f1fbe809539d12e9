"""Minimal ABIs of P2P.org proxies, Superform router and rewards distributor.

Only the functions we encode, decode or read are included.
"""

#: Superform ``LiqRequest`` struct
LIQ_REQUEST_COMPONENTS = [
    {"name": "txData", "type": "bytes"},
    {"name": "token", "type": "address"},
    {"name": "interimToken", "type": "address"},
    {"name": "bridgeId", "type": "uint8"},
    {"name": "liqDstChainId", "type": "uint64"},
    {"name": "nativeAmount", "type": "uint256"},
]

#: Superform ``SingleVaultSFData`` struct
SINGLE_VAULT_SF_DATA_COMPONENTS = [
    {"name": "superformId", "type": "uint256"},
    {"name": "amount", "type": "uint256"},
    {"name": "outputAmount", "type": "uint256"},
    {"name": "maxSlippage", "type": "uint256"},
    {"name": "liqRequest", "type": "tuple", "components": LIQ_REQUEST_COMPONENTS},
    {"name": "permit2data", "type": "bytes"},
    {"name": "hasDstSwap", "type": "bool"},
    {"name": "retain4626", "type": "bool"},
    {"name": "receiverAddress", "type": "address"},
    {"name": "receiverAddressSP", "type": "address"},
    {"name": "extraFormData", "type": "bytes"},
]

#: P2P Superform proxy factory
P2P_SUPERFORM_PROXY_FACTORY_ABI = [
    {
        "type": "function",
        "name": "deposit",
        "stateMutability": "payable",
        "inputs": [
            {"name": "_yieldProtocolCalldata", "type": "bytes"},
            {"name": "_clientBasisPointsOfDeposit", "type": "uint48"},
            {"name": "_clientBasisPointsOfProfit", "type": "uint48"},
            {"name": "_p2pSignerSigDeadline", "type": "uint256"},
            {"name": "_p2pSignerSignature", "type": "bytes"},
        ],
        "outputs": [{"name": "p2pYieldProxyAddress", "type": "address"}],
    },
    {
        "type": "function",
        "name": "predictP2pYieldProxyAddress",
        "stateMutability": "view",
        "inputs": [
            {"name": "_client", "type": "address"},
            {"name": "_clientBasisPointsOfDeposit", "type": "uint48"},
            {"name": "_clientBasisPointsOfProfit", "type": "uint48"},
        ],
        "outputs": [{"name": "", "type": "address"}],
    },
]

#: P2P Superform proxy, one per client and basis point split
P2P_SUPERFORM_PROXY_ABI = [
    {
        "type": "function",
        "name": "withdraw",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "_superformCalldata", "type": "bytes"}],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "withdrawAccruedRewards",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "_superformCalldata", "type": "bytes"}],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "batchClaim",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "_periodIds", "type": "uint256[]"},
            {"name": "_rewardTokens", "type": "address[][]"},
            {"name": "_amountsClaimed", "type": "uint256[][]"},
            {"name": "_proofs", "type": "bytes32[][]"},
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "calculateAccruedRewards",
        "stateMutability": "view",
        "inputs": [
            {"name": "_superformId", "type": "uint256"},
            {"name": "_asset", "type": "address"},
        ],
        "outputs": [{"name": "", "type": "int256"}],
    },
]

#: Superform router, only the single direct single vault withdraw
SUPERFORM_ROUTER_SINGLE_WITHDRAW_ABI = [
    {
        "type": "function",
        "name": "singleDirectSingleVaultWithdraw",
        "stateMutability": "payable",
        "inputs": [
            {
                "name": "req_",
                "type": "tuple",
                "components": [
                    {"name": "superformData", "type": "tuple", "components": SINGLE_VAULT_SF_DATA_COMPONENTS},
                ],
            }
        ],
        "outputs": [],
    },
]

#: Superform protocol rewards distributor
REWARDS_DISTRIBUTOR_ABI = [
    {
        "type": "function",
        "name": "batchClaim",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "receiver_", "type": "address"},
            {"name": "periodIds_", "type": "uint256[]"},
            {"name": "rewardTokens_", "type": "address[][]"},
            {"name": "amountsClaimed_", "type": "uint256[][]"},
            {"name": "proofs_", "type": "bytes32[][]"},
        ],
        "outputs": [],
    },
]

#: ERC-4626 ``asset()`` accessor
ERC_4626_ASSET_ABI = [
    {"inputs": [], "name": "asset", "outputs": [{"name": "", "type": "address"}], "stateMutability": "view", "type": "function"},
]
