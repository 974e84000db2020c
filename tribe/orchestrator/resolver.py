"""Resolve the vault bound to an identity pair, creating it when absent."""
from __future__ import annotations

import logging

from tribe.onchain.abis import VAULT_FACTORY_ABI
from tribe.onchain.chain import ChainReader, ChainWriter
from tribe.orchestrator.errors import ResolutionFailure
from tribe.orchestrator.models import IdentityPair, is_zero_address

logger = logging.getLogger(__name__)


class VaultResolver:
    def __init__(self, reader: ChainReader, writer: ChainWriter, factory_address: str) -> None:
        self.reader = reader
        self.writer = writer
        self.factory_address = factory_address

    async def _lookup(self, pair: IdentityPair) -> str:
        return await self.reader.call(
            self.factory_address,
            VAULT_FACTORY_ABI,
            "getVault",
            (pair.leader, pair.follower),
        )

    async def resolve_or_create_vault(self, pair: IdentityPair) -> str:
        try:
            vault_address = await self._lookup(pair)
        except Exception as exc:
            raise ResolutionFailure(f"Vault lookup failed: {exc}") from exc

        if not is_zero_address(vault_address):
            logger.info("Existing vault found: %s", vault_address)
            return vault_address

        logger.info("No vault for leader=%s follower=%s, creating", pair.leader, pair.follower)
        try:
            receipt = await self.writer.execute(
                self.factory_address,
                VAULT_FACTORY_ABI,
                "createVault",
                (pair.leader,),
            )
        except Exception as exc:
            raise ResolutionFailure(f"Vault creation failed: {exc}") from exc

        # The pre-creation lookup is always the zero address; read it back.
        try:
            vault_address = await self._lookup(pair)
        except Exception as exc:
            raise ResolutionFailure(f"Vault lookup after creation failed: {exc}") from exc
        if is_zero_address(vault_address):
            raise ResolutionFailure(
                f"Factory returned no vault after creation tx {receipt.tx_hash}"
            )
        logger.info("New vault created: %s (tx=%s)", vault_address, receipt.tx_hash)
        return vault_address
