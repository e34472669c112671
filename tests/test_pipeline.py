import asyncio
from unittest.mock import AsyncMock, Mock

import pytest
from eth_account import Account

from fxprotocol.errors import (
    ApiError,
    InvalidAddressError,
    NetworkError,
    SigningError,
    TransactionFailedError,
    WalletNotFoundError,
)
from fxprotocol.models import TransactionResponse, UnsignedTransaction
from fxprotocol.pipeline import TransactionPipeline, balance_patterns
from fxprotocol.security import EncryptedFileKeyStore, MemoryKeyStore, SecureKeyStore
from fxprotocol.signer import TransactionSigner

from conftest import MARKET_ADDRESS, PRIVATE_KEY, PRIVATE_KEY_ADDRESS, WALLET_ADDRESS

UNSIGNED_TX = UnsignedTransaction(
    to=MARKET_ADDRESS,
    data="0x",
    value="0",
    gas=21000,
    gasPrice="20000000000",
    nonce=0,
    chainId=1,
)

BROADCAST_OK = TransactionResponse(success=True, transaction_hash="0xabc", status="pending")


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def key_store():
    store = Mock(spec=SecureKeyStore)
    store.fetch.return_value = PRIVATE_KEY
    return store


@pytest.fixture
def api():
    transport = Mock()
    transport.broadcast_transaction = AsyncMock(return_value=BROADCAST_OK)
    return transport


@pytest.fixture
def signer():
    mock_signer = Mock(spec=TransactionSigner)
    mock_signer.sign_transaction.return_value = "0x02f86b"
    return mock_signer


@pytest.fixture
def prepare():
    return AsyncMock(return_value=UNSIGNED_TX)


@pytest.fixture
def pipeline(key_store, api, signer, cache_manager):
    return TransactionPipeline(key_store=key_store, api=api, signer=signer, cache_manager=cache_manager)


def assert_nothing_after_validation(key_store, prepare, signer, api):
    key_store.fetch.assert_not_called()
    prepare.assert_not_awaited()
    signer.sign_transaction.assert_not_called()
    api.broadcast_transaction.assert_not_awaited()


def test_successful_run(pipeline, key_store, api, signer, prepare):
    """Test each step runs once, in order, with the previous step's output."""
    response = run(pipeline.execute(WALLET_ADDRESS, prepare, addresses=[MARKET_ADDRESS, None]))

    assert response == BROADCAST_OK
    key_store.fetch.assert_called_once_with(WALLET_ADDRESS)
    prepare.assert_awaited_once()
    signer.sign_transaction.assert_called_once_with(UNSIGNED_TX, PRIVATE_KEY)
    api.broadcast_transaction.assert_awaited_once_with("0x02f86b")


def test_invalid_wallet_address_aborts_before_io(pipeline, key_store, api, signer, prepare):
    with pytest.raises(InvalidAddressError) as exc_info:
        run(pipeline.execute("0x1234", prepare))

    assert exc_info.value.address == "0x1234"
    assert_nothing_after_validation(key_store, prepare, signer, api)


def test_invalid_argument_address_aborts_before_io(pipeline, key_store, api, signer, prepare):
    with pytest.raises(InvalidAddressError):
        run(pipeline.execute(WALLET_ADDRESS, prepare, addresses=[MARKET_ADDRESS, "not-an-address"]))

    assert_nothing_after_validation(key_store, prepare, signer, api)


def test_missing_key_aborts_before_prepare(pipeline, key_store, api, signer, prepare):
    key_store.fetch.return_value = None

    with pytest.raises(WalletNotFoundError):
        run(pipeline.execute(WALLET_ADDRESS, prepare))

    key_store.fetch.assert_called_once_with(WALLET_ADDRESS)
    prepare.assert_not_awaited()
    signer.sign_transaction.assert_not_called()
    api.broadcast_transaction.assert_not_awaited()


def test_prepare_failure_never_signs(pipeline, api, signer, prepare):
    """Test a failed prepare call is surfaced unchanged and nothing is submitted."""
    error = NetworkError(503)
    prepare.side_effect = error

    with pytest.raises(NetworkError) as exc_info:
        run(pipeline.execute(WALLET_ADDRESS, prepare))

    assert exc_info.value is error
    signer.sign_transaction.assert_not_called()
    api.broadcast_transaction.assert_not_awaited()


def test_signing_failure_never_broadcasts(pipeline, api, signer, prepare):
    signer.sign_transaction.side_effect = SigningError("Invalid gas price in transaction: 'x'.")

    with pytest.raises(SigningError):
        run(pipeline.execute(WALLET_ADDRESS, prepare))

    api.broadcast_transaction.assert_not_awaited()


def test_broadcast_failure_keeps_cache(pipeline, api, prepare, cache_manager):
    key = f"balance:all:{WALLET_ADDRESS.lower()}"
    api.broadcast_transaction.side_effect = ApiError("INSUFFICIENT_BALANCE", "not enough")

    async def scenario():
        await cache_manager.set(key, {"balances": {}})
        with pytest.raises(ApiError):
            await pipeline.execute(WALLET_ADDRESS, prepare)
        return await cache_manager.get(key)

    assert run(scenario()) == {"balances": {}}
    api.broadcast_transaction.assert_awaited_once()


def test_unsuccessful_broadcast_raises(pipeline, api, prepare, cache_manager):
    """Test success == false is reported as a failed transaction."""
    key = f"balance:all:{WALLET_ADDRESS.lower()}"
    api.broadcast_transaction.return_value = TransactionResponse(
        success=False, transaction_hash="0xdead", status="reverted"
    )

    async def scenario():
        await cache_manager.set(key, {"balances": {}})
        with pytest.raises(TransactionFailedError) as exc_info:
            await pipeline.execute(WALLET_ADDRESS, prepare)
        return exc_info.value, await cache_manager.get(key)

    error, cached = run(scenario())
    assert error.transaction_hash == "0xdead"
    assert error.kind == "transaction_failed"
    assert cached is not None


def test_success_invalidates_wallet_balances(pipeline, prepare, cache_manager):
    """Test a broadcast clears the wallet's cached balances and nothing else."""
    wallet = WALLET_ADDRESS.lower()
    other = MARKET_ADDRESS.lower()

    async def scenario():
        await cache_manager.set(f"balance:all:{wallet}", {"a": 1})
        await cache_manager.set(f"balance:token:{wallet}:fxusd", {"b": 2})
        await cache_manager.set(f"balance:all:{other}", {"c": 3})
        await cache_manager.set("protocol:nav", {"nav": "1"})
        await pipeline.execute(WALLET_ADDRESS, prepare)
        return sorted(cache_manager.memory_keys())

    assert run(scenario()) == sorted([f"balance:all:{other}", "protocol:nav"])


def test_invalidation_failure_is_swallowed(key_store, api, signer, prepare):
    cache_manager = Mock()
    cache_manager.invalidate = AsyncMock(side_effect=RuntimeError("cache down"))
    pipeline = TransactionPipeline(key_store=key_store, api=api, signer=signer, cache_manager=cache_manager)

    assert run(pipeline.execute(WALLET_ADDRESS, prepare)) == BROADCAST_OK
    assert cache_manager.invalidate.await_count == 2


def test_balance_patterns():
    assert balance_patterns("0xABCD") == ["balance:*:0xabcd", "balance:token:0xabcd:*"]


def test_end_to_end_with_real_signer(api, cache_manager, prepare):
    """Test the broadcast payload is signed by the stored key."""
    key_store = MemoryKeyStore()
    key_store.store(PRIVATE_KEY, PRIVATE_KEY_ADDRESS)
    pipeline = TransactionPipeline(
        key_store=key_store, api=api, signer=TransactionSigner(), cache_manager=cache_manager
    )

    run(pipeline.execute(PRIVATE_KEY_ADDRESS, prepare))

    raw = api.broadcast_transaction.await_args.args[0]
    assert Account.recover_transaction(raw) == PRIVATE_KEY_ADDRESS


def test_signing_failure_releases_private_key(pipeline, signer, prepare):
    """Test the decrypted key is not left in the frame carried by the raised error."""
    signer.sign_transaction.side_effect = SigningError("Invalid nonce in transaction: -1.")

    with pytest.raises(SigningError) as exc_info:
        run(pipeline.execute(WALLET_ADDRESS, prepare))

    frames = []
    tb = exc_info.tb
    while tb is not None:
        if tb.tb_frame.f_code.co_name == "execute":
            frames.append(tb.tb_frame)
        tb = tb.tb_next

    assert frames
    for frame in frames:
        assert "private_key" not in frame.f_locals
        assert PRIVATE_KEY not in frame.f_locals.values()


def test_key_fetch_does_not_block_event_loop(api, signer, prepare, cache_manager, tmp_path):
    """Test other tasks keep running while an encrypted key is decrypted."""
    ticks = []
    ticks_during_fetch = []

    class CountingKeyStore(EncryptedFileKeyStore):
        def fetch(self, address):
            start = len(ticks)
            try:
                return super().fetch(address)
            finally:
                ticks_during_fetch.append(len(ticks) - start)

    key_store = CountingKeyStore(
        str(tmp_path / "keys"), "correct horse battery staple", iterations=200_000
    )
    key_store.store(PRIVATE_KEY, WALLET_ADDRESS)
    pipeline = TransactionPipeline(
        key_store=key_store, api=api, signer=signer, cache_manager=cache_manager
    )

    async def ticker():
        while True:
            ticks.append(None)
            await asyncio.sleep(0.001)

    async def scenario():
        task = asyncio.create_task(ticker())
        await asyncio.sleep(0)
        try:
            return await pipeline.execute(WALLET_ADDRESS, prepare)
        finally:
            task.cancel()

    assert run(scenario()) == BROADCAST_OK
    assert ticks_during_fetch[0] >= 1
    signer.sign_transaction.assert_called_once_with(UNSIGNED_TX, PRIVATE_KEY)
