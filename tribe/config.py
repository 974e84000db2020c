from __future__ import annotations

import json
from typing import TYPE_CHECKING

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from tribe.orchestrator.models import AssetDepositIntent


def _parse_label_map(value: str) -> dict[str, str]:
    stripped = value.strip()
    # Try JSON format first: {"USDC": "0x...", "WETH": "0x..."}
    if stripped.startswith("{") and stripped.endswith("}"):
        try:
            parsed = json.loads(stripped)
            if isinstance(parsed, dict):
                return {k.strip().upper(): str(v).strip() for k, v in parsed.items()}
        except json.JSONDecodeError:
            pass
    # Fallback to comma-separated format: USDC:0x...,WETH:0x...
    items = [item.strip() for item in stripped.split(",") if item.strip()]
    parsed_items: dict[str, str] = {}
    for item in items:
        if ":" not in item:
            continue
        label, raw = item.split(":", 1)
        parsed_items[label.strip().upper()] = raw.strip()
    return parsed_items


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        enable_decoding=False,
    )

    rpc_url: str = Field(
        default="https://sepolia.base.org",
        validation_alias=AliasChoices("BASE_SEPOLIA_RPC_URL", "RPC_URL", "rpc_url"),
    )
    chain_id: int = 84532
    private_key: str = ""
    vault_factory_address: str = "0xdEc456e502CB9baB4a33153206a470B65Bedcf9E"
    leader_address: str = ""
    token_addresses: dict[str, str] = {
        "USDC": "0x036CbD53842c5426634e7929541eC2318f3dCF7e",
        "WETH": "0x4200000000000000000000000000000000000006",
    }
    token_decimals: dict[str, int] = {"USDC": 6, "WETH": 18}
    deposit_amounts: dict[str, int] = {
        "USDC": 2,  # 2 raw USDC units
        "WETH": 50_000_000_000_000,  # 0.00005 WETH
    }
    confirmation_timeout_seconds: int = 120
    confirmation_poll_seconds: float = 2.0
    read_max_retries: int = 2
    read_backoff_seconds: float = 0.5
    log_level: str = "INFO"

    @field_validator("token_addresses", mode="before")
    @classmethod
    def parse_token_addresses(cls, value):
        if isinstance(value, str):
            return _parse_label_map(value)
        return value

    @field_validator("token_decimals", "deposit_amounts", mode="before")
    @classmethod
    def parse_integer_map(cls, value):
        if isinstance(value, str):
            return {label: int(raw) for label, raw in _parse_label_map(value).items()}
        return value

    @field_validator("deposit_amounts")
    @classmethod
    def reject_negative_amounts(cls, value: dict[str, int]) -> dict[str, int]:
        for label, amount in value.items():
            if amount < 0:
                raise ValueError(f"Deposit amount for {label} must be non-negative")
        return value

    @field_validator("read_max_retries", mode="before")
    @classmethod
    def parse_read_max_retries(cls, value):
        if isinstance(value, str) and value.strip() == "":
            return 0
        return value

    def deposit_intents(self) -> list[AssetDepositIntent]:
        """Build the ordered deposit intents, one per configured amount."""
        # Imported here: tribe.orchestrator pulls in the chain layer, which reads settings.
        from tribe.orchestrator.models import AssetDepositIntent

        intents: list[AssetDepositIntent] = []
        for label, amount in self.deposit_amounts.items():
            token = self.token_addresses.get(label)
            if not token:
                raise ValueError(f"No token address configured for {label}")
            intents.append(
                AssetDepositIntent(
                    token_address=token,
                    amount=int(amount),
                    label=label,
                    decimals=int(self.token_decimals.get(label, 18)),
                )
            )
        return intents


settings = Settings()
