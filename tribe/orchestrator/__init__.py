"""Vault provisioning and funding orchestration."""

from tribe.orchestrator.balance_gate import should_deposit
from tribe.orchestrator.errors import (
    ApprovalFailure,
    DepositFailure,
    ReportingFailure,
    ResolutionFailure,
    VaultOrchestrationError,
)
from tribe.orchestrator.funding import FundingSequencer
from tribe.orchestrator.models import (
    AssetDepositIntent,
    FundingOutcome,
    IdentityPair,
    OutcomeReason,
    OutcomeStatus,
    Position,
    RunPhase,
    RunResult,
    VaultSnapshot,
)
from tribe.orchestrator.reporter import StateReporter
from tribe.orchestrator.resolver import VaultResolver
from tribe.orchestrator.runner import VaultOrchestrator

__all__ = [
    "ApprovalFailure",
    "AssetDepositIntent",
    "DepositFailure",
    "FundingOutcome",
    "FundingSequencer",
    "IdentityPair",
    "OutcomeReason",
    "OutcomeStatus",
    "Position",
    "ReportingFailure",
    "ResolutionFailure",
    "RunPhase",
    "RunResult",
    "StateReporter",
    "VaultOrchestrationError",
    "VaultOrchestrator",
    "VaultResolver",
    "VaultSnapshot",
    "should_deposit",
]
