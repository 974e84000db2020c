"""Read and write access to deployed contracts.

The orchestrator only sees the two narrow interfaces defined here:
``ChainReader`` for view calls and ``ChainWriter`` for signed
transactions. ``Web3ChainReader`` and ``Web3ChainWriter`` back them with
web3.py over an HTTP provider.
"""
from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from web3 import Web3
from web3.exceptions import TransactionNotFound

from tribe.config import settings
from tribe.onchain.wallet import WalletManager

logger = logging.getLogger(__name__)


@dataclass
class Receipt:
    tx_hash: str
    status: int
    block_number: Optional[int] = None
    gas_used: int = 0
    logs: list = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status == 1


@dataclass(frozen=True)
class PendingTransaction:
    tx_hash: str
    function_name: str


class TransactionFailedError(RuntimeError):
    def __init__(self, tx_hash: str, message: str = "Transaction reverted") -> None:
        super().__init__(f"{message}: {tx_hash}")
        self.tx_hash = tx_hash


def format_rpc_error(exc: Optional[BaseException]) -> str:
    if exc is None:
        return "Unknown RPC error"
    message = str(exc) or exc.__class__.__name__
    if "execution reverted" in message:
        return message
    if "insufficient funds" in message.lower():
        return f"Insufficient funds for gas: {message}"
    if "timeout" in message.lower():
        return f"RPC timeout: {message}"
    return message


def _checksum(address: str, kind: str = "contract") -> str:
    if not Web3.is_address(address):
        raise ValueError(f"Invalid {kind} address: {address}")
    return Web3.to_checksum_address(address)


def _normalize_args(args: Sequence[Any]) -> list[Any]:
    normalized = []
    for arg in args:
        if isinstance(arg, str) and arg.startswith("0x") and Web3.is_address(arg):
            normalized.append(Web3.to_checksum_address(arg))
        else:
            normalized.append(arg)
    return normalized


class ChainReader(ABC):
    @abstractmethod
    async def call(
        self,
        contract_address: str,
        abi: list[dict],
        function_name: str,
        args: Sequence[Any] = (),
    ) -> Any:
        """Run a view function and return its decoded result."""


class ChainWriter(ABC):
    @property
    @abstractmethod
    def address(self) -> str:
        """Address of the signing identity."""

    @abstractmethod
    async def submit(
        self,
        contract_address: str,
        abi: list[dict],
        function_name: str,
        args: Sequence[Any] = (),
    ) -> PendingTransaction:
        """Sign and broadcast a state-changing call."""

    @abstractmethod
    async def await_finality(self, pending: PendingTransaction) -> Receipt:
        """Block until the transaction is mined; raise if it reverted."""

    async def execute(
        self,
        contract_address: str,
        abi: list[dict],
        function_name: str,
        args: Sequence[Any] = (),
    ) -> Receipt:
        pending = await self.submit(contract_address, abi, function_name, args)
        return await self.await_finality(pending)


class Web3ChainReader(ChainReader):
    def __init__(
        self,
        web3: Optional[Web3] = None,
        max_retries: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
    ) -> None:
        self.web3 = web3 or Web3(Web3.HTTPProvider(settings.rpc_url))
        self.max_retries = settings.read_max_retries if max_retries is None else max_retries
        self.backoff_seconds = (
            settings.read_backoff_seconds if backoff_seconds is None else backoff_seconds
        )

    async def _retry_call(self, fn: Callable[[], Any]) -> Any:
        last_exc: Optional[Exception] = None
        for attempt in range(self.max_retries + 1):
            try:
                return fn()
            except Exception as exc:
                # Reverts are final, not transient.
                if "execution reverted" in str(exc):
                    raise RuntimeError(format_rpc_error(exc)) from exc
                last_exc = exc
                if attempt >= self.max_retries:
                    break
                await asyncio.sleep(self.backoff_seconds * (2**attempt))
        raise RuntimeError(format_rpc_error(last_exc)) from last_exc

    async def call(
        self,
        contract_address: str,
        abi: list[dict],
        function_name: str,
        args: Sequence[Any] = (),
    ) -> Any:
        contract = self.web3.eth.contract(address=_checksum(contract_address), abi=abi)
        fn = getattr(contract.functions, function_name)(*_normalize_args(args))
        return await self._retry_call(fn.call)


class Web3ChainWriter(ChainWriter):
    def __init__(
        self,
        wallet: WalletManager,
        web3: Optional[Web3] = None,
        timeout: Optional[int] = None,
        poll_interval: Optional[float] = None,
    ) -> None:
        self.wallet = wallet
        self.web3 = web3 or wallet.web3
        self.timeout = settings.confirmation_timeout_seconds if timeout is None else timeout
        self.poll_interval = (
            settings.confirmation_poll_seconds if poll_interval is None else poll_interval
        )
        # One signer, one nonce sequence: submissions never overlap.
        self._submit_lock = asyncio.Lock()

    @property
    def address(self) -> str:
        return self.wallet.address

    async def submit(
        self,
        contract_address: str,
        abi: list[dict],
        function_name: str,
        args: Sequence[Any] = (),
    ) -> PendingTransaction:
        contract = self.web3.eth.contract(address=_checksum(contract_address), abi=abi)
        fn = getattr(contract.functions, function_name)(*_normalize_args(args))
        async with self._submit_lock:
            try:
                tx = fn.build_transaction(
                    {
                        "from": self.wallet.address,
                        "nonce": self.wallet.next_nonce(),
                        "chainId": self.wallet.chain_id,
                    }
                )
                signed = self.wallet.sign_transaction(tx)
                tx_hash = self.web3.eth.send_raw_transaction(signed.raw_transaction)
            except Exception as exc:
                raise RuntimeError(format_rpc_error(exc)) from exc
        hex_hash = tx_hash.hex() if hasattr(tx_hash, "hex") else str(tx_hash)
        hex_hash = hex_hash if hex_hash.startswith("0x") else f"0x{hex_hash}"
        logger.debug("Submitted %s tx=%s signed=%s", function_name, hex_hash, signed.hash)
        return PendingTransaction(tx_hash=hex_hash, function_name=function_name)

    async def await_finality(self, pending: PendingTransaction) -> Receipt:
        start = time.monotonic()
        while (time.monotonic() - start) < self.timeout:
            try:
                receipt = self.web3.eth.get_transaction_receipt(pending.tx_hash)
            except TransactionNotFound:
                receipt = None
            if receipt:
                if receipt["status"] == 0:
                    raise TransactionFailedError(pending.tx_hash)
                return Receipt(
                    tx_hash=pending.tx_hash,
                    status=int(receipt["status"]),
                    block_number=receipt.get("blockNumber"),
                    gas_used=int(receipt.get("gasUsed", 0)),
                    logs=list(receipt.get("logs", [])),
                )
            await asyncio.sleep(self.poll_interval)
        raise TimeoutError(
            f"Transaction confirmation timeout after {self.timeout}s: {pending.tx_hash}"
        )
