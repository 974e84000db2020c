"""Contract interfaces used by the orchestrator."""
from __future__ import annotations

VAULT_FACTORY_ABI: list[dict] = [
    {
        "inputs": [
            {"name": "leader", "type": "address"},
            {"name": "follower", "type": "address"},
        ],
        "name": "getVault",
        "outputs": [{"type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"name": "leader", "type": "address"}],
        "name": "createVault",
        "outputs": [{"type": "address"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]

VAULT_ABI: list[dict] = [
    {
        "inputs": [
            {"name": "token", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "name": "deposit",
        "outputs": [{"type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "depositedCapital",
        "outputs": [{"type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "highWaterMark",
        "outputs": [{"type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "getActivePositionCount",
        "outputs": [{"type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "getAllPositions",
        "outputs": [
            {
                "name": "positions",
                "type": "tuple[]",
                "components": [
                    {"name": "protocol", "type": "address"},
                    {"name": "token0", "type": "address"},
                    {"name": "token1", "type": "address"},
                    {"name": "liquidity", "type": "uint256"},
                    {"name": "tokenId", "type": "uint256"},
                    {"name": "isActive", "type": "bool"},
                ],
            }
        ],
        "stateMutability": "view",
        "type": "function",
    },
]

ERC20_ABI: list[dict] = [
    {
        "inputs": [{"name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "spender", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "name": "approve",
        "outputs": [{"type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]
