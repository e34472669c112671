"""
Secure storage for wallet private keys.

Keys are stored per wallet address under ``private_key_<address>`` (address
lowercased). EncryptedFileKeyStore keeps one JSON file per wallet with the
private key encrypted by AES-CBC under a PBKDF2-derived key; MemoryKeyStore
keeps keys for the lifetime of the process only.
"""
import abc
import base64
import json
import os
import time
from typing import Dict, Optional

import structlog
from Crypto.Cipher import AES
from Crypto.Protocol.KDF import PBKDF2
from Crypto.Random import get_random_bytes
from Crypto.Util.Padding import pad, unpad

from ..constants import KEY_STORE_PREFIX, MIN_PASSPHRASE_LENGTH, PBKDF2_ITERATIONS
from ..errors import SecureStorageError
from ..validation import is_valid_private_key

logger = structlog.get_logger()


def key_for_address(address: str) -> str:
    return f"{KEY_STORE_PREFIX}{address.lower()}"


class SecureKeyStore(abc.ABC):
    """Contract for private key storage: store / fetch / delete / exists."""

    def store(self, private_key: str, address: str) -> None:
        """
        Store a private key for a wallet address, replacing any existing key.

        Raises:
            SecureStorageError: If the key is not '0x' + 64 hex characters
                or the backend fails to persist it
        """
        if not isinstance(private_key, str) or not private_key.startswith("0x"):
            raise SecureStorageError(
                "Invalid private key format: Private key must start with '0x' prefix."
            )
        if not is_valid_private_key(private_key):
            raise SecureStorageError(
                "Invalid private key format: Private key must be 66 characters long "
                "(64 hex characters + '0x' prefix)."
            )
        self._store(key_for_address(address), private_key)
        logger.info("private_key_stored", address=address.lower())

    def fetch(self, address: str) -> Optional[str]:
        """Return the private key for the address, or None if none is stored."""
        return self._fetch(key_for_address(address))

    def delete(self, address: str) -> None:
        """Delete the key for the address; no-op if absent."""
        self._delete(key_for_address(address))
        logger.info("private_key_deleted", address=address.lower())

    def exists(self, address: str) -> bool:
        return self._exists(key_for_address(address))

    @abc.abstractmethod
    def _store(self, name: str, private_key: str) -> None:
        ...

    @abc.abstractmethod
    def _fetch(self, name: str) -> Optional[str]:
        ...

    @abc.abstractmethod
    def _delete(self, name: str) -> None:
        ...

    def _exists(self, name: str) -> bool:
        return self._fetch(name) is not None


class MemoryKeyStore(SecureKeyStore):
    """In-process key store; nothing is written to disk."""

    def __init__(self):
        self._keys: Dict[str, str] = {}

    def _store(self, name: str, private_key: str) -> None:
        self._keys[name] = private_key

    def _fetch(self, name: str) -> Optional[str]:
        return self._keys.get(name)

    def _delete(self, name: str) -> None:
        self._keys.pop(name, None)

    def _exists(self, name: str) -> bool:
        return name in self._keys


class EncryptedFileKeyStore(SecureKeyStore):
    """Passphrase-protected key files in a private directory."""

    def __init__(self, directory: str, passphrase: str, iterations: int = PBKDF2_ITERATIONS):
        """
        Initialize the key store.

        Args:
            directory: Directory holding the key files (created with mode 0700)
            passphrase: Passphrase the encryption keys are derived from
            iterations: PBKDF2 iteration count
        """
        if len(passphrase) < MIN_PASSPHRASE_LENGTH:
            raise SecureStorageError(
                f"Passphrase must be at least {MIN_PASSPHRASE_LENGTH} characters."
            )
        self.directory = os.path.expanduser(directory)
        self._passphrase = passphrase
        self.iterations = iterations
        try:
            os.makedirs(self.directory, mode=0o700, exist_ok=True)
        except OSError as e:
            raise SecureStorageError(f"Unable to create key store directory: {e}")

    def _path(self, name: str) -> str:
        # Prevent path traversal attacks
        if os.path.sep in name or (os.path.altsep and os.path.altsep in name):
            raise SecureStorageError("Invalid wallet address: path traversal detected.")
        return os.path.join(self.directory, f"{name}.json")

    def _derive_key(self, salt: bytes) -> bytes:
        return PBKDF2(self._passphrase.encode("utf-8"), salt, dkLen=32, count=self.iterations)

    def _encrypt(self, private_key: str) -> Dict[str, str]:
        salt = get_random_bytes(16)
        iv = get_random_bytes(16)
        cipher = AES.new(self._derive_key(salt), AES.MODE_CBC, iv)
        encrypted_key = cipher.encrypt(pad(private_key.encode("utf-8"), AES.block_size))
        return {
            "salt": base64.b64encode(salt).decode("utf-8"),
            "iv": base64.b64encode(iv).decode("utf-8"),
            "encrypted_key": base64.b64encode(encrypted_key).decode("utf-8"),
        }

    def _decrypt(self, encrypted_data: Dict[str, str]) -> str:
        salt = base64.b64decode(encrypted_data["salt"])
        iv = base64.b64decode(encrypted_data["iv"])
        encrypted_key = base64.b64decode(encrypted_data["encrypted_key"])
        cipher = AES.new(self._derive_key(salt), AES.MODE_CBC, iv)
        private_key = unpad(cipher.decrypt(encrypted_key), AES.block_size).decode("utf-8")
        if not is_valid_private_key(private_key):
            raise ValueError("decrypted key has an unexpected format")
        return private_key

    def _store(self, name: str, private_key: str) -> None:
        path = self._path(name)
        storage_data = {
            "name": name,
            "encrypted_private_key": self._encrypt(private_key),
            "version": "1.0",
            "creation_time": int(time.time()),
        }
        try:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w") as f:
                json.dump(storage_data, f, indent=2)
        except OSError as e:
            raise SecureStorageError(f"Failed to store private key: {e}")

    def _fetch(self, name: str) -> Optional[str]:
        path = self._path(name)
        if not os.path.exists(path):
            return None
        try:
            with open(path, "r") as f:
                storage_data = json.load(f)
            return self._decrypt(storage_data["encrypted_private_key"])
        except OSError as e:
            raise SecureStorageError(f"Failed to retrieve private key: {e}")
        except (ValueError, KeyError, TypeError, UnicodeDecodeError):
            raise SecureStorageError(
                "Failed to retrieve private key: incorrect passphrase or corrupted key file."
            )

    def _delete(self, name: str) -> None:
        try:
            os.remove(self._path(name))
        except FileNotFoundError:
            pass
        except OSError as e:
            raise SecureStorageError(f"Failed to delete private key: {e}")

    def _exists(self, name: str) -> bool:
        return os.path.exists(self._path(name))
