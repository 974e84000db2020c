import pytest

from tribe.onchain.chain import (
    ChainReader,
    ChainWriter,
    PendingTransaction,
    Receipt,
    TransactionFailedError,
)
from tribe.orchestrator.models import ZERO_ADDRESS, AssetDepositIntent

SIGNER = "0x" + "0" * 36 + "beef"
FACTORY = "0xdEc456e502CB9baB4a33153206a470B65Bedcf9E"
USDC = "0x036CbD53842c5426634e7929541eC2318f3dCF7e"
WETH = "0x4200000000000000000000000000000000000006"
NEW_VAULT = "0x" + "0" * 36 + "a017"
EXISTING_VAULT = "0x" + "0" * 37 + "777"


class FakeChain(ChainReader, ChainWriter):
    """In-memory ledger standing in for both the reader and the writer."""

    def __init__(self, address: str = SIGNER) -> None:
        self._address = address
        self.vaults: dict[tuple[str, str], str] = {}
        self.balances: dict[str, int] = {}
        self.vault_state = {"depositedCapital": 0, "highWaterMark": 0}
        self.positions: list[tuple] = []
        self.active_count_override = None
        self.created_vault = NEW_VAULT
        self.fail_read: set[str] = set()
        self.fail_submit: set[tuple[str, str]] = set()
        self.revert: set[tuple[str, str]] = set()
        self.events: list[tuple[str, str, str]] = []
        self.submitted: list[tuple[str, str, tuple]] = []
        self._pending: dict[str, tuple[str, str, tuple]] = {}

    @property
    def address(self) -> str:
        return self._address

    def reads_of(self, function_name: str) -> int:
        return sum(1 for kind, fn, _ in self.events if kind == "read" and fn == function_name)

    async def call(self, contract_address, abi, function_name, args=()):
        self.events.append(("read", function_name, contract_address.lower()))
        if function_name in self.fail_read:
            raise RuntimeError(f"RPC timeout: {function_name}")
        if function_name == "getVault":
            return self.vaults.get((args[0].lower(), args[1].lower()), ZERO_ADDRESS)
        if function_name == "balanceOf":
            return self.balances.get(contract_address.lower(), 0)
        if function_name == "getActivePositionCount":
            if self.active_count_override is not None:
                return self.active_count_override
            return sum(1 for position in self.positions if position[5])
        if function_name == "getAllPositions":
            return list(self.positions)
        return self.vault_state[function_name]

    async def submit(self, contract_address, abi, function_name, args=()):
        target = contract_address.lower()
        if (target, function_name) in self.fail_submit:
            raise RuntimeError("insufficient funds for gas * price + value")
        tx_hash = f"0x{len(self.submitted) + 1:064x}"
        self.submitted.append((target, function_name, tuple(args)))
        self._pending[tx_hash] = (target, function_name, tuple(args))
        self.events.append(("submit", function_name, target))
        return PendingTransaction(tx_hash=tx_hash, function_name=function_name)

    async def await_finality(self, pending):
        target, function_name, args = self._pending.pop(pending.tx_hash)
        if (target, function_name) in self.revert:
            raise TransactionFailedError(pending.tx_hash)
        if function_name == "createVault":
            self.vaults[(args[0].lower(), self._address.lower())] = self.created_vault
        elif function_name == "deposit":
            token, amount = args
            self.balances[token.lower()] -= amount
            self.vault_state["depositedCapital"] += amount
        self.events.append(("final", function_name, target))
        return Receipt(tx_hash=pending.tx_hash, status=1, block_number=len(self.submitted))

    def submitted_functions(self) -> list[str]:
        return [function_name for _, function_name, _ in self.submitted]


@pytest.fixture()
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture()
def usdc_intent() -> AssetDepositIntent:
    return AssetDepositIntent(token_address=USDC, amount=2, label="USDC", decimals=6)


@pytest.fixture()
def weth_intent() -> AssetDepositIntent:
    return AssetDepositIntent(token_address=WETH, amount=50_000_000_000_000, label="WETH", decimals=18)
