"""Secure private key storage."""

from .key_store import EncryptedFileKeyStore, MemoryKeyStore, SecureKeyStore, key_for_address

__all__ = [
    'EncryptedFileKeyStore',
    'MemoryKeyStore',
    'SecureKeyStore',
    'key_for_address',
]
