"""Approve-then-deposit funding of a vault, one asset at a time."""
from __future__ import annotations

import logging
from typing import Sequence

from tribe.onchain.abis import ERC20_ABI, VAULT_ABI
from tribe.onchain.chain import ChainReader, ChainWriter
from tribe.orchestrator.balance_gate import should_deposit
from tribe.orchestrator.errors import ApprovalFailure, DepositFailure
from tribe.orchestrator.models import (
    AssetDepositIntent,
    FundingOutcome,
    OutcomeReason,
    format_amount,
)

logger = logging.getLogger(__name__)


class FundingSequencer:
    """Run each deposit intent as its own balance/approve/deposit flow.

    Intents are processed strictly in order and never concurrently, so every
    transaction from the signing identity is submitted after the previous one
    finalized. A failure inside one intent is recorded on its outcome and the
    next intent still runs.
    """

    def __init__(self, reader: ChainReader, writer: ChainWriter) -> None:
        self.reader = reader
        self.writer = writer

    async def fund_vault(
        self,
        vault_address: str,
        intents: Sequence[AssetDepositIntent],
    ) -> list[FundingOutcome]:
        outcomes: list[FundingOutcome] = []
        for intent in intents:
            outcome = await self._fund_asset(vault_address, intent)
            outcomes.append(outcome)
        return outcomes

    async def _fund_asset(self, vault_address: str, intent: AssetDepositIntent) -> FundingOutcome:
        try:
            balance = int(
                await self.reader.call(
                    intent.token_address,
                    ERC20_ABI,
                    "balanceOf",
                    (self.writer.address,),
                )
            )
            if balance < 0:
                raise ValueError(f"negative balance {balance}")
        except Exception as exc:
            logger.error("%s balance read failed: %s", intent.label, exc)
            return FundingOutcome.failed(intent, OutcomeReason.BALANCE_UNAVAILABLE, str(exc))
        logger.info("%s balance: %s", intent.label, format_amount(balance, intent.decimals))

        if not should_deposit(balance, intent.amount):
            logger.info(
                "Insufficient %s balance (have %s, need %s)",
                intent.label,
                format_amount(balance, intent.decimals),
                intent.display_amount,
            )
            return FundingOutcome.skipped(intent, balance)

        try:
            approve_tx_hash = await self._approve(vault_address, intent)
        except ApprovalFailure as exc:
            logger.error("%s", exc)
            return FundingOutcome.failed(
                intent,
                OutcomeReason.APPROVAL_FAILED,
                str(exc),
                balance=balance,
                approve_tx_hash=exc.tx_hash,
            )

        try:
            deposit_tx_hash = await self._deposit(vault_address, intent)
        except DepositFailure as exc:
            logger.error("%s", exc)
            outcome = FundingOutcome.failed(
                intent,
                OutcomeReason.DEPOSIT_FAILED,
                str(exc),
                balance=balance,
                approve_tx_hash=approve_tx_hash,
            )
            outcome.deposit_tx_hash = exc.tx_hash
            return outcome

        logger.info("Deposited %s %s", intent.display_amount, intent.label)
        return FundingOutcome.deposited(intent, balance, approve_tx_hash, deposit_tx_hash)

    async def _approve(self, vault_address: str, intent: AssetDepositIntent) -> str:
        logger.info("Approving %s...", intent.label)
        pending = None
        try:
            pending = await self.writer.submit(
                intent.token_address,
                ERC20_ABI,
                "approve",
                (vault_address, intent.amount),
            )
            receipt = await self.writer.await_finality(pending)
        except Exception as exc:
            raise ApprovalFailure(
                intent.label, str(exc), pending.tx_hash if pending else None
            ) from exc
        return receipt.tx_hash

    async def _deposit(self, vault_address: str, intent: AssetDepositIntent) -> str:
        logger.info("Depositing %s...", intent.label)
        pending = None
        try:
            pending = await self.writer.submit(
                vault_address,
                VAULT_ABI,
                "deposit",
                (intent.token_address, intent.amount),
            )
            receipt = await self.writer.await_finality(pending)
        except Exception as exc:
            raise DepositFailure(
                intent.label, str(exc), pending.tx_hash if pending else None
            ) from exc
        return receipt.tx_hash
