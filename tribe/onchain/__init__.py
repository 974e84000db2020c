"""On-chain integration helpers."""

from tribe.onchain.chain import (
    ChainReader,
    ChainWriter,
    PendingTransaction,
    Receipt,
    TransactionFailedError,
    Web3ChainReader,
    Web3ChainWriter,
)
from tribe.onchain.wallet import WalletManager

__all__ = [
    "ChainReader",
    "ChainWriter",
    "PendingTransaction",
    "Receipt",
    "TransactionFailedError",
    "Web3ChainReader",
    "Web3ChainWriter",
    "WalletManager",
]
