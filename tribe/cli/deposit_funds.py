#!/usr/bin/env python3
"""Provision the signer's follower vault, fund it and print its state."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from tribe.config import settings
from tribe.onchain.chain import Web3ChainReader, Web3ChainWriter
from tribe.onchain.wallet import WalletManager
from tribe.orchestrator.errors import ResolutionFailure
from tribe.orchestrator.models import IdentityPair, OutcomeStatus, RunResult
from tribe.orchestrator.runner import VaultOrchestrator

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Create (if needed) and fund the vault following the signer, then "
            "print its accounting state. Reads PRIVATE_KEY from the environment."
        ),
    )
    return parser.parse_args(argv)


def print_report(result: RunResult) -> None:
    print(f"Vault: {result.vault_address}")
    print("\n--- Deposits ---")
    for outcome in result.outcomes:
        intent = outcome.intent
        if outcome.status == OutcomeStatus.DEPOSITED:
            print(f"Deposited {intent.display_amount} {intent.label}")
        elif outcome.status == OutcomeStatus.SKIPPED:
            print(f"Insufficient {intent.label} balance")
        else:
            print(f"{intent.label} failed ({outcome.reason.value}): {outcome.error}")

    snapshot = result.snapshot
    if snapshot is None:
        print(f"\nVault state unavailable: {result.report_error}")
        return

    print("\n--- Vault State ---")
    print("Vault Deposited Capital:", snapshot.deposited_capital)
    print("Vault High Water Mark:", snapshot.high_water_mark)
    print("Active Positions:", snapshot.active_position_count)
    if snapshot.positions:
        print("\n--- Active Positions Details ---")
        for index, position in enumerate(snapshot.positions, start=1):
            print(f"Position {index}:")
            print("  Protocol:", position.protocol)
            print("  Token0:", position.token0)
            print("  Token1:", position.token1)
            print("  Liquidity:", position.liquidity)
            print("  Token ID:", position.token_id)
            print("  Is Active:", position.is_active)


async def run() -> int:
    wallet = WalletManager()
    logger.info("Using wallet address: %s", wallet.address)
    reader = Web3ChainReader(wallet.web3)
    writer = Web3ChainWriter(wallet)
    orchestrator = VaultOrchestrator(reader, writer, settings.vault_factory_address)

    leader = settings.leader_address or wallet.address
    pair = IdentityPair(leader=leader, follower=wallet.address)

    try:
        result = await orchestrator.run(pair, settings.deposit_intents())
    except ResolutionFailure as exc:
        logger.error("Could not resolve vault: %s", exc)
        return 1

    print_report(result)
    return 0 if result.succeeded else 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    parse_args(argv)
    configure_logging()
    try:
        return asyncio.run(run())
    except Exception:
        logger.exception("Vault funding run failed")
        return 1


if __name__ == "__main__":
    sys.exit(main())
