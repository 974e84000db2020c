"""Failures raised while provisioning, funding and reporting a vault."""
from __future__ import annotations

from typing import Optional


class VaultOrchestrationError(RuntimeError):
    """Base class for orchestration failures."""


class ResolutionFailure(VaultOrchestrationError):
    """Vault lookup or creation failed; nothing else can run."""


class ApprovalFailure(VaultOrchestrationError):
    def __init__(self, asset: str, message: str, tx_hash: Optional[str] = None) -> None:
        super().__init__(f"{asset} approval failed: {message}")
        self.asset = asset
        self.tx_hash = tx_hash


class DepositFailure(VaultOrchestrationError):
    def __init__(self, asset: str, message: str, tx_hash: Optional[str] = None) -> None:
        super().__init__(f"{asset} deposit failed: {message}")
        self.asset = asset
        self.tx_hash = tx_hash


class ReportingFailure(VaultOrchestrationError):
    """Reading vault state failed after funding completed."""
