"""Read back vault accounting state after funding."""
from __future__ import annotations

import logging

from tribe.onchain.abis import VAULT_ABI
from tribe.onchain.chain import ChainReader
from tribe.orchestrator.errors import ReportingFailure
from tribe.orchestrator.models import Position, VaultSnapshot

logger = logging.getLogger(__name__)


class StateReporter:
    def __init__(self, reader: ChainReader) -> None:
        self.reader = reader

    async def _read(self, vault_address: str, function_name: str):
        try:
            return await self.reader.call(vault_address, VAULT_ABI, function_name)
        except Exception as exc:
            raise ReportingFailure(f"{function_name}() read failed: {exc}") from exc

    async def _read_uint(self, vault_address: str, function_name: str) -> int:
        value = await self._read(vault_address, function_name)
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ReportingFailure(f"{function_name}() returned malformed value {value!r}") from exc

    async def report_vault_state(self, vault_address: str) -> VaultSnapshot:
        capital = await self._read_uint(vault_address, "depositedCapital")
        high_water_mark = await self._read_uint(vault_address, "highWaterMark")
        active_count = await self._read_uint(vault_address, "getActivePositionCount")

        positions: list[Position] = []
        if active_count > 0:
            raw_positions = await self._read(vault_address, "getAllPositions")
            try:
                decoded = [Position.from_raw(raw) for raw in raw_positions]
            except (TypeError, ValueError) as exc:
                raise ReportingFailure(f"Malformed position data: {exc}") from exc
            positions = [p for p in decoded if p.is_active]
            if len(positions) != active_count:
                logger.warning(
                    "Vault %s reports %d active positions but %d were listed",
                    vault_address,
                    active_count,
                    len(positions),
                )

        return VaultSnapshot(
            vault_address=vault_address,
            deposited_capital=capital,
            high_water_mark=high_water_mark,
            active_position_count=active_count,
            positions=positions,
        )
