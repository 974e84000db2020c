"""End-to-end run: resolve the vault, fund it, report its state."""
from __future__ import annotations

import logging
from typing import Sequence

from tribe.onchain.chain import ChainReader, ChainWriter
from tribe.orchestrator.errors import ReportingFailure
from tribe.orchestrator.funding import FundingSequencer
from tribe.orchestrator.models import (
    AssetDepositIntent,
    IdentityPair,
    RunPhase,
    RunResult,
)
from tribe.orchestrator.reporter import StateReporter
from tribe.orchestrator.resolver import VaultResolver

logger = logging.getLogger(__name__)


class VaultOrchestrator:
    def __init__(self, reader: ChainReader, writer: ChainWriter, factory_address: str) -> None:
        self.resolver = VaultResolver(reader, writer, factory_address)
        self.sequencer = FundingSequencer(reader, writer)
        self.reporter = StateReporter(reader)

    @staticmethod
    def _advance(result: RunResult, phase: RunPhase) -> None:
        logger.debug("Run phase %s -> %s", result.phase.value, phase.value)
        result.phase = phase

    async def run(
        self,
        pair: IdentityPair,
        intents: Sequence[AssetDepositIntent],
    ) -> RunResult:
        """Execute one provisioning run.

        ``ResolutionFailure`` propagates to the caller. Per-asset funding
        failures are captured in ``RunResult.outcomes``; a reporting failure
        is captured in ``RunResult.report_error`` and leaves the outcomes
        untouched.
        """
        result = RunResult()

        logger.info("--- Step 1: Get Follower Vault ---")
        result.vault_address = await self.resolver.resolve_or_create_vault(pair)
        self._advance(result, RunPhase.VAULT_RESOLVED)

        logger.info("--- Step 2: Deposit Tokens ---")
        self._advance(result, RunPhase.FUNDING)
        result.outcomes = await self.sequencer.fund_vault(result.vault_address, intents)

        logger.info("--- Step 3: Vault State ---")
        try:
            result.snapshot = await self.reporter.report_vault_state(result.vault_address)
        except ReportingFailure as exc:
            logger.error("Vault state report failed: %s", exc)
            result.report_error = str(exc)
            self._advance(result, RunPhase.REPORT_FAILED)
            return result
        self._advance(result, RunPhase.REPORTED)
        self._advance(result, RunPhase.DONE)
        return result
