"""
f(x) Protocol client.

Read protocol state through the REST API with a two-tier response cache,
and submit transactions that are prepared by the API, signed locally and
broadcast back through the API.
"""

from .api import APIClient
from .cache import CacheManager, CacheStats
from .client import FXClient
from .config import FXSettings, configure_logging
from .errors import (
    ApiError,
    DecodingError,
    EncodingError,
    FXError,
    InvalidAddressError,
    InvalidResponseError,
    NetworkError,
    SecureStorageError,
    SigningError,
    TransactionFailedError,
    WalletNotFoundError,
)
from .models import TransactionResponse, UnsignedTransaction
from .pipeline import TransactionPipeline
from .security import EncryptedFileKeyStore, MemoryKeyStore, SecureKeyStore
from .signer import TransactionSigner

__version__ = "1.0.0"

__all__ = [
    'FXClient',
    'APIClient',
    'CacheManager',
    'CacheStats',
    'FXSettings',
    'configure_logging',
    'TransactionPipeline',
    'TransactionSigner',
    'SecureKeyStore',
    'MemoryKeyStore',
    'EncryptedFileKeyStore',
    'TransactionResponse',
    'UnsignedTransaction',
    'FXError',
    'InvalidAddressError',
    'WalletNotFoundError',
    'NetworkError',
    'ApiError',
    'InvalidResponseError',
    'EncodingError',
    'DecodingError',
    'SecureStorageError',
    'SigningError',
    'TransactionFailedError',
]
