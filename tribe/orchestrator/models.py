"""Value types shared by the vault orchestration components."""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def is_zero_address(address: Optional[str]) -> bool:
    return not address or int(address, 16) == 0


def format_amount(amount: int, decimals: int) -> str:
    """Render a raw token amount in whole units, like ethers' formatUnits."""
    value = Decimal(int(amount)).scaleb(-int(decimals))
    return format(value.normalize(), "f") if value else "0"


@dataclass(frozen=True)
class IdentityPair:
    leader: str
    follower: str

    @classmethod
    def self_follow(cls, address: str) -> "IdentityPair":
        return cls(leader=address, follower=address)

    @property
    def is_self_follow(self) -> bool:
        return self.leader.lower() == self.follower.lower()


@dataclass(frozen=True)
class AssetDepositIntent:
    token_address: str
    amount: int
    label: str
    decimals: int = 18

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError(f"Deposit amount for {self.label} must be non-negative")

    @property
    def display_amount(self) -> str:
        return format_amount(self.amount, self.decimals)


@dataclass(frozen=True)
class Position:
    protocol: str
    token0: str
    token1: str
    liquidity: int
    token_id: int
    is_active: bool

    @classmethod
    def from_raw(cls, raw: Any) -> "Position":
        if isinstance(raw, dict):
            raw = (
                raw.get("protocol"),
                raw.get("token0"),
                raw.get("token1"),
                raw.get("liquidity"),
                raw.get("tokenId"),
                raw.get("isActive"),
            )
        protocol, token0, token1, liquidity, token_id, is_active = raw
        return cls(
            protocol=str(protocol),
            token0=str(token0),
            token1=str(token1),
            liquidity=int(liquidity),
            token_id=int(token_id),
            is_active=bool(is_active),
        )


class OutcomeStatus(str, Enum):
    DEPOSITED = "deposited"
    SKIPPED = "skipped"
    FAILED = "failed"


class OutcomeReason(str, Enum):
    INSUFFICIENT_BALANCE = "insufficient_balance"
    BALANCE_UNAVAILABLE = "balance_unavailable"
    APPROVAL_FAILED = "approval_failed"
    DEPOSIT_FAILED = "deposit_failed"


@dataclass
class FundingOutcome:
    intent: AssetDepositIntent
    status: OutcomeStatus
    amount: int = 0
    balance: Optional[int] = None
    reason: Optional[OutcomeReason] = None
    error: Optional[str] = None
    approve_tx_hash: Optional[str] = None
    deposit_tx_hash: Optional[str] = None

    @classmethod
    def deposited(
        cls,
        intent: AssetDepositIntent,
        balance: int,
        approve_tx_hash: str,
        deposit_tx_hash: str,
    ) -> "FundingOutcome":
        return cls(
            intent=intent,
            status=OutcomeStatus.DEPOSITED,
            amount=intent.amount,
            balance=balance,
            approve_tx_hash=approve_tx_hash,
            deposit_tx_hash=deposit_tx_hash,
        )

    @classmethod
    def skipped(cls, intent: AssetDepositIntent, balance: int) -> "FundingOutcome":
        return cls(
            intent=intent,
            status=OutcomeStatus.SKIPPED,
            balance=balance,
            reason=OutcomeReason.INSUFFICIENT_BALANCE,
        )

    @classmethod
    def failed(
        cls,
        intent: AssetDepositIntent,
        reason: OutcomeReason,
        error: str,
        balance: Optional[int] = None,
        approve_tx_hash: Optional[str] = None,
    ) -> "FundingOutcome":
        return cls(
            intent=intent,
            status=OutcomeStatus.FAILED,
            balance=balance,
            reason=reason,
            error=error,
            approve_tx_hash=approve_tx_hash,
        )

    def to_dict(self) -> dict:
        return {
            "asset": self.intent.label,
            "token": self.intent.token_address,
            "status": self.status.value,
            "amount": self.amount,
            "balance": self.balance,
            "reason": self.reason.value if self.reason else None,
            "error": self.error,
            "approve_tx_hash": self.approve_tx_hash,
            "deposit_tx_hash": self.deposit_tx_hash,
        }


@dataclass
class VaultSnapshot:
    vault_address: str
    deposited_capital: int
    high_water_mark: int
    active_position_count: int
    positions: list[Position] = field(default_factory=list)


class RunPhase(str, Enum):
    IDLE = "idle"
    VAULT_RESOLVED = "vault_resolved"
    FUNDING = "funding"
    REPORTED = "reported"
    REPORT_FAILED = "report_failed"
    DONE = "done"


@dataclass
class RunResult:
    vault_address: Optional[str] = None
    outcomes: list[FundingOutcome] = field(default_factory=list)
    snapshot: Optional[VaultSnapshot] = None
    phase: RunPhase = RunPhase.IDLE
    report_error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.phase == RunPhase.DONE and self.report_error is None
