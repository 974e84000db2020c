from __future__ import annotations


def should_deposit(balance: int, amount: int) -> bool:
    """True when the holder balance covers the intended deposit."""
    if balance < 0 or amount < 0:
        raise ValueError("Token balances and amounts are unsigned")
    return balance >= amount
