import asyncio
import logging

import pytest
from web3 import Web3
from web3.exceptions import TransactionNotFound

from tribe.onchain.chain import (
    PendingTransaction,
    TransactionFailedError,
    Web3ChainReader,
    Web3ChainWriter,
)
from tribe.onchain.wallet import WalletManager

TOKEN = "0x" + "0" * 39 + "1"
HOLDER = "0x" + "0" * 38 + "ab"


class DummyCall:
    def __init__(self, value, counter=None, failures=0, log=None):
        self._value = value
        self._log = log if log is not None else []
        self._counter = counter if counter is not None else {"count": 0}
        self._failures = failures

    def call(self):
        self._counter["count"] += 1
        if self._counter["count"] <= self._failures:
            raise RuntimeError("read timeout")
        if isinstance(self._value, Exception):
            raise self._value
        return self._value

    def build_transaction(self, tx):
        built = dict(tx)
        built.update({"to": TOKEN, "data": "0x", "value": 0})
        self._log.append(("build", built["nonce"]))
        return built


class DummyFunctions:
    def __init__(self, state):
        self._state = state

    def balanceOf(self, account):
        self._state["args"] = (account,)
        return DummyCall(self._state["balance"], self._state["counter"], self._state["failures"])

    def approve(self, spender, amount):
        self._state["args"] = (spender, amount)
        return DummyCall(True, log=self._state["log"])


class DummyContract:
    def __init__(self, state):
        self.functions = DummyFunctions(state)


class DummyEth:
    def __init__(self, state):
        self._state = state
        self.gas_price = 1_000_000_000
        self.sent = []
        self.receipts = []
        self.nonce_blocks = []

    def contract(self, address=None, abi=None):
        self._state["address"] = address
        return DummyContract(self._state)

    def get_transaction_count(self, _addr, block="latest"):
        self.nonce_blocks.append(block)
        return 3 + len(self.sent)

    def estimate_gas(self, _tx):
        return 50_000

    def send_raw_transaction(self, raw):
        self.sent.append(raw)
        self._state["log"].append(("send", len(self.sent)))
        return bytes.fromhex("ab" * 32)

    def get_transaction_receipt(self, _tx_hash):
        if not self.receipts:
            return None
        item = self.receipts.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class DummyWeb3:
    def __init__(self, balance=0, failures=0, error=None):
        self.state = {
            "balance": error or balance,
            "counter": {"count": 0},
            "failures": failures,
            "log": [],
        }
        self.eth = DummyEth(self.state)


def _writer(web3, timeout=1):
    wallet = WalletManager(web3=web3, private_key="0x" + "a" * 64, chain_id=84532)
    return Web3ChainWriter(wallet, timeout=timeout, poll_interval=0)


@pytest.mark.asyncio
async def test_reader_calls_view_function_with_checksummed_args():
    web3 = DummyWeb3(balance=100)
    reader = Web3ChainReader(web3, max_retries=0)

    assert await reader.call(TOKEN, [], "balanceOf", (HOLDER,)) == 100
    assert web3.state["args"][0] == Web3.to_checksum_address(HOLDER)
    assert web3.state["address"].lower() == TOKEN


@pytest.mark.asyncio
async def test_reader_rejects_invalid_address():
    reader = Web3ChainReader(DummyWeb3(), max_retries=0)
    with pytest.raises(ValueError):
        await reader.call("not-an-address", [], "balanceOf", (HOLDER,))


@pytest.mark.asyncio
async def test_reader_retries_transient_errors():
    web3 = DummyWeb3(balance=7, failures=1)
    reader = Web3ChainReader(web3, max_retries=1, backoff_seconds=0)

    assert await reader.call(TOKEN, [], "balanceOf", (HOLDER,)) == 7
    assert web3.state["counter"]["count"] == 2


@pytest.mark.asyncio
async def test_reader_does_not_retry_reverts():
    web3 = DummyWeb3(error=RuntimeError("execution reverted: nope"))
    reader = Web3ChainReader(web3, max_retries=3, backoff_seconds=0)

    with pytest.raises(RuntimeError, match="execution reverted"):
        await reader.call(TOKEN, [], "balanceOf", (HOLDER,))
    assert web3.state["counter"]["count"] == 1


@pytest.mark.asyncio
async def test_reader_gives_up_after_retries():
    web3 = DummyWeb3(failures=5)
    reader = Web3ChainReader(web3, max_retries=2, backoff_seconds=0)

    with pytest.raises(RuntimeError, match="RPC timeout"):
        await reader.call(TOKEN, [], "balanceOf", (HOLDER,))
    assert web3.state["counter"]["count"] == 3


@pytest.mark.asyncio
async def test_writer_signs_and_sends():
    web3 = DummyWeb3()
    writer = _writer(web3)

    pending = await writer.submit(TOKEN, [], "approve", (HOLDER, 2))

    assert pending.tx_hash == "0x" + "ab" * 32
    assert pending.function_name == "approve"
    assert len(web3.eth.sent) == 1
    assert web3.state["args"] == (Web3.to_checksum_address(HOLDER), 2)


@pytest.mark.asyncio
async def test_writer_signs_with_pending_nonce():
    web3 = DummyWeb3()
    writer = _writer(web3)
    signed_txs = []
    sign = writer.wallet.sign_transaction

    def _record(tx):
        signed_txs.append(tx)
        return sign(tx)

    writer.wallet.sign_transaction = _record

    await writer.submit(TOKEN, [], "approve", (HOLDER, 2))

    assert web3.eth.nonce_blocks == ["pending"]
    assert signed_txs[0]["nonce"] == 3
    assert signed_txs[0]["chainId"] == 84532
    assert signed_txs[0]["from"] == writer.address


@pytest.mark.asyncio
async def test_concurrent_submits_do_not_interleave():
    web3 = DummyWeb3()
    writer = _writer(web3)
    held = []
    send = web3.eth.send_raw_transaction

    def _send(raw):
        held.append(writer._submit_lock.locked())
        return send(raw)

    web3.eth.send_raw_transaction = _send

    await asyncio.gather(
        writer.submit(TOKEN, [], "approve", (HOLDER, 1)),
        writer.submit(TOKEN, [], "approve", (HOLDER, 2)),
    )

    assert held == [True, True]
    assert web3.state["log"] == [("build", 3), ("send", 1), ("build", 4), ("send", 2)]


@pytest.mark.asyncio
async def test_writer_logs_locally_signed_hash(caplog):
    writer = _writer(DummyWeb3())

    with caplog.at_level(logging.DEBUG, logger="tribe.onchain.chain"):
        await writer.submit(TOKEN, [], "approve", (HOLDER, 2))

    assert "Submitted approve" in caplog.text
    assert "signed=0x" in caplog.text


@pytest.mark.asyncio
async def test_writer_wraps_send_errors():
    web3 = DummyWeb3()

    def _fail(_raw):
        raise ValueError("insufficient funds for gas * price + value")

    web3.eth.send_raw_transaction = _fail
    writer = _writer(web3)

    with pytest.raises(RuntimeError, match="Insufficient funds for gas"):
        await writer.submit(TOKEN, [], "approve", (HOLDER, 2))


@pytest.mark.asyncio
async def test_await_finality_returns_receipt():
    web3 = DummyWeb3()
    web3.eth.receipts = [
        TransactionNotFound("pending"),
        None,
        {"status": 1, "gasUsed": 123, "blockNumber": 9, "logs": []},
    ]
    writer = _writer(web3)

    receipt = await writer.await_finality(PendingTransaction("0xhash", "approve"))

    assert receipt.succeeded
    assert receipt.gas_used == 123
    assert receipt.block_number == 9


@pytest.mark.asyncio
async def test_await_finality_reverted_raises():
    web3 = DummyWeb3()
    web3.eth.receipts = [{"status": 0}]
    writer = _writer(web3)

    with pytest.raises(TransactionFailedError, match="Transaction reverted"):
        await writer.await_finality(PendingTransaction("0xhash", "deposit"))


@pytest.mark.asyncio
async def test_await_finality_timeout():
    writer = _writer(DummyWeb3(), timeout=0)

    with pytest.raises(TimeoutError, match="Transaction confirmation timeout"):
        await writer.await_finality(PendingTransaction("0xhash", "deposit"))
