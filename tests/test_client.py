import asyncio
from unittest.mock import AsyncMock

import pytest
from eth_account import Account

from fxprotocol import FXClient
from fxprotocol.api import APIClient
from fxprotocol.cache import RedisDiskCache, SQLDiskCache
from fxprotocol.config import FXSettings
from fxprotocol.errors import InvalidAddressError, SecureStorageError, WalletNotFoundError
from fxprotocol.models import TransactionResponse, UnsignedTransaction
from fxprotocol.security import EncryptedFileKeyStore, MemoryKeyStore

from conftest import MARKET_ADDRESS, PRIVATE_KEY, PRIVATE_KEY_ADDRESS, TOKEN_ADDRESS, WALLET_ADDRESS

UNSIGNED_TX = UnsignedTransaction(
    to=TOKEN_ADDRESS,
    data="0xa9059cbb",
    value="0",
    gas=60000,
    gasPrice="0x4a817c800",
    nonce=3,
    chainId=1,
)


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def api(cache_manager):
    transport = APIClient(base_url="http://api.invalid/v1", cache_manager=cache_manager)
    transport.get_all_balances = AsyncMock()
    transport.broadcast_transaction = AsyncMock(return_value=TransactionResponse(
        success=True, transaction_hash="0xfeed", status="pending",
    ))
    return transport


@pytest.fixture
def client(api):
    fx = FXClient(api=api)
    fx.import_wallet(PRIVATE_KEY, PRIVATE_KEY_ADDRESS)
    return fx


def test_client_shares_the_transport_cache(client, api, cache_manager):
    assert client.api is api
    assert client.cache_manager is cache_manager
    assert isinstance(client.key_store, MemoryKeyStore)


@pytest.mark.parametrize("address", ["", "0x123", WALLET_ADDRESS + "0", "742d35Cc6634C0532925a3b844Bc9e7595f0bEb0ab"])
def test_read_validates_before_request(client, api, address):
    """Test a malformed address never reaches the transport."""
    with pytest.raises(InvalidAddressError):
        run(client.get_all_balances(address))
    api.get_all_balances.assert_not_awaited()


def test_read_delegates_to_transport(client, api):
    run(client.get_all_balances(WALLET_ADDRESS, use_cache=False))
    api.get_all_balances.assert_awaited_once_with(WALLET_ADDRESS, use_cache=False)


def test_read_with_two_addresses_validates_both(client, api):
    api.get_token_balance = AsyncMock()
    with pytest.raises(InvalidAddressError) as exc_info:
        run(client.get_token_balance(WALLET_ADDRESS, "token"))
    assert exc_info.value.address == "token"
    api.get_token_balance.assert_not_awaited()


def test_wallet_management(client):
    assert client.has_wallet(PRIVATE_KEY_ADDRESS)
    assert client.has_wallet(PRIVATE_KEY_ADDRESS.lower())
    assert not client.has_wallet(WALLET_ADDRESS)

    client.remove_wallet(PRIVATE_KEY_ADDRESS)
    assert not client.has_wallet(PRIVATE_KEY_ADDRESS)


def test_import_wallet_rejects_bad_input(client):
    with pytest.raises(InvalidAddressError):
        client.import_wallet(PRIVATE_KEY, "0xnope")
    with pytest.raises(SecureStorageError):
        client.import_wallet("not-a-key", WALLET_ADDRESS)


def test_transfer_is_prepared_signed_and_broadcast(client, api):
    """Test a write operation from prepare through broadcast."""
    api.prepare_transfer = AsyncMock(return_value=UNSIGNED_TX)

    response = run(client.transfer(TOKEN_ADDRESS, MARKET_ADDRESS, "100", PRIVATE_KEY_ADDRESS))

    assert response.transaction_hash == "0xfeed"
    api.prepare_transfer.assert_awaited_once_with(TOKEN_ADDRESS, MARKET_ADDRESS, "100")
    raw = api.broadcast_transaction.await_args.args[0]
    assert Account.recover_transaction(raw) == PRIVATE_KEY_ADDRESS


def test_mint_defaults_recipient_to_wallet(client, api):
    api.prepare_mint_f_token = AsyncMock(return_value=UNSIGNED_TX)

    run(client.mint_f_token(MARKET_ADDRESS, "1000", PRIVATE_KEY_ADDRESS, estimate_gas=True))

    api.prepare_mint_f_token.assert_awaited_once_with(
        market_address=MARKET_ADDRESS,
        base_in="1000",
        recipient=PRIVATE_KEY_ADDRESS,
        min_f_token_out="0",
        estimate_gas=True,
        from_address=PRIVATE_KEY_ADDRESS,
    )


def test_explicit_recipient_is_validated(client, api):
    api.prepare_mint_x_token = AsyncMock(return_value=UNSIGNED_TX)

    with pytest.raises(InvalidAddressError):
        run(client.mint_x_token(MARKET_ADDRESS, "1000", PRIVATE_KEY_ADDRESS, recipient="0xbad"))

    api.prepare_mint_x_token.assert_not_awaited()
    api.broadcast_transaction.assert_not_awaited()


def test_write_without_wallet(client, api):
    api.prepare_savings_deposit = AsyncMock(return_value=UNSIGNED_TX)

    with pytest.raises(WalletNotFoundError):
        run(client.deposit_to_savings("100", WALLET_ADDRESS))

    api.prepare_savings_deposit.assert_not_awaited()


def test_write_invalidates_balances(client, api, cache_manager):
    """Test cached balances of the signing wallet are dropped after a broadcast."""
    api.prepare_approve = AsyncMock(return_value=UNSIGNED_TX)
    balance_key = f"balance:all:{PRIVATE_KEY_ADDRESS.lower()}"

    async def scenario():
        await cache_manager.set(balance_key, {"balances": {}})
        await cache_manager.set("protocol:nav", {"base_nav": "1"})
        await client.approve(TOKEN_ADDRESS, MARKET_ADDRESS, "1", PRIVATE_KEY_ADDRESS)
        return await cache_manager.get(balance_key), await cache_manager.get("protocol:nav")

    balance, nav = run(scenario())
    assert balance is None
    assert nav == {"base_nav": "1"}


def test_cache_stats_and_clear(client, cache_manager):
    async def scenario():
        await cache_manager.set("protocol:nav", {"base_nav": "1"})
        await cache_manager.get("protocol:nav")
        before = await client.get_cache_stats()
        await client.clear_cache()
        return before, await client.get_cache_stats()

    before, after = run(scenario())
    assert before.memory_hits == 1
    assert after.memory_hits == 0
    assert cache_manager.memory_size == 0


def test_from_settings_uses_sql_cache_and_file_key_store(tmp_path):
    settings = FXSettings(
        base_url="http://localhost:8000/v1",
        api_key="k",
        cache_url=f"sqlite:///{tmp_path / 'cache.db'}",
        key_store_dir=str(tmp_path / "keys"),
        key_store_passphrase="correct horse battery staple",
    )
    fx = FXClient.from_settings(settings)

    assert isinstance(fx.cache_manager.disk_cache, SQLDiskCache)
    assert isinstance(fx.key_store, EncryptedFileKeyStore)
    assert fx.api.base_url == "http://localhost:8000/v1"
    assert fx.api.api_key == "k"
    run(fx.close())


def test_from_settings_redis_and_memory_keys(tmp_path):
    settings = FXSettings(redis_url="redis://localhost:6379/1", cache_namespace="fx_test")
    fx = FXClient.from_settings(settings)

    assert isinstance(fx.cache_manager.disk_cache, RedisDiskCache)
    assert fx.cache_manager.disk_cache.namespace == "fx_test"
    assert isinstance(fx.key_store, MemoryKeyStore)


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("FX_BASE_URL", "http://example.test/v1")
    monkeypatch.setenv("FX_TIMEOUT", "5")
    monkeypatch.setenv("FX_MAX_MEMORY_ENTRIES", "10")

    settings = FXSettings()
    assert settings.base_url == "http://example.test/v1"
    assert settings.timeout == 5.0
    assert settings.max_memory_entries == 10


def test_async_context_manager_closes(api):
    api.close = AsyncMock()
    api.cache_manager.close = AsyncMock()

    async def scenario():
        async with FXClient(api=api) as fx:
            assert fx.api is api

    run(scenario())
    api.close.assert_awaited_once()
    api.cache_manager.close.assert_awaited_once()
