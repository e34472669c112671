import json
import os
import stat

import pytest

from fxprotocol.errors import SecureStorageError
from fxprotocol.security import EncryptedFileKeyStore, MemoryKeyStore, key_for_address

from conftest import PRIVATE_KEY, WALLET_ADDRESS

PASSPHRASE = "correct horse battery staple"


@pytest.fixture
def file_store(tmp_path):
    """Encrypted store with a low iteration count to keep tests fast."""
    return EncryptedFileKeyStore(str(tmp_path / "keys"), PASSPHRASE, iterations=1000)


@pytest.fixture(params=["memory", "file"])
def key_store(request, tmp_path):
    if request.param == "memory":
        return MemoryKeyStore()
    return EncryptedFileKeyStore(str(tmp_path / "keys"), PASSPHRASE, iterations=1000)


def test_key_name_is_lowercased():
    assert key_for_address(WALLET_ADDRESS) == "private_key_" + WALLET_ADDRESS.lower()


def test_store_fetch_delete(key_store):
    """Test the full key lifecycle."""
    assert key_store.fetch(WALLET_ADDRESS) is None
    assert not key_store.exists(WALLET_ADDRESS)

    key_store.store(PRIVATE_KEY, WALLET_ADDRESS)
    assert key_store.exists(WALLET_ADDRESS)
    assert key_store.fetch(WALLET_ADDRESS) == PRIVATE_KEY
    # Lookups ignore address case
    assert key_store.fetch(WALLET_ADDRESS.lower()) == PRIVATE_KEY

    key_store.delete(WALLET_ADDRESS)
    assert key_store.fetch(WALLET_ADDRESS) is None
    assert not key_store.exists(WALLET_ADDRESS)


def test_store_replaces_existing_key(key_store):
    other_key = "0x" + "11" * 32
    key_store.store(PRIVATE_KEY, WALLET_ADDRESS)
    key_store.store(other_key, WALLET_ADDRESS)
    assert key_store.fetch(WALLET_ADDRESS) == other_key


def test_delete_absent_key_is_noop(key_store):
    key_store.delete(WALLET_ADDRESS)


@pytest.mark.parametrize("private_key", [
    PRIVATE_KEY[2:],
    PRIVATE_KEY[:-1],
    PRIVATE_KEY + "00",
    "0x" + "z" * 64,
])
def test_store_rejects_malformed_keys(key_store, private_key):
    with pytest.raises(SecureStorageError) as exc_info:
        key_store.store(private_key, WALLET_ADDRESS)
    assert exc_info.value.kind == "secure_storage_error"
    assert not key_store.exists(WALLET_ADDRESS)


def test_key_file_is_encrypted(file_store):
    """Test the private key never appears in plaintext on disk."""
    file_store.store(PRIVATE_KEY, WALLET_ADDRESS)

    path = os.path.join(file_store.directory, key_for_address(WALLET_ADDRESS) + ".json")
    with open(path) as f:
        contents = f.read()
    assert PRIVATE_KEY[2:] not in contents

    data = json.loads(contents)
    assert data["version"] == "1.0"
    assert set(data["encrypted_private_key"]) == {"salt", "iv", "encrypted_key"}


@pytest.mark.skipif(os.name != "posix", reason="POSIX permissions")
def test_key_file_permissions(file_store):
    file_store.store(PRIVATE_KEY, WALLET_ADDRESS)

    path = os.path.join(file_store.directory, key_for_address(WALLET_ADDRESS) + ".json")
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o600
    assert stat.S_IMODE(os.stat(file_store.directory).st_mode) == 0o700


def test_wrong_passphrase(file_store):
    file_store.store(PRIVATE_KEY, WALLET_ADDRESS)
    other = EncryptedFileKeyStore(file_store.directory, "a different passphrase", iterations=1000)

    with pytest.raises(SecureStorageError):
        other.fetch(WALLET_ADDRESS)


def test_corrupted_key_file(file_store):
    path = os.path.join(file_store.directory, key_for_address(WALLET_ADDRESS) + ".json")
    with open(path, "w") as f:
        f.write("{not json")

    with pytest.raises(SecureStorageError):
        file_store.fetch(WALLET_ADDRESS)


def test_short_passphrase_rejected(tmp_path):
    with pytest.raises(SecureStorageError):
        EncryptedFileKeyStore(str(tmp_path / "keys"), "short")


def test_path_traversal_rejected(file_store):
    with pytest.raises(SecureStorageError):
        file_store.store(PRIVATE_KEY, "../../etc/passwd")
