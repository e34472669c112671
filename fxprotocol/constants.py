"""Constants for the f(x) Protocol client."""
import os

# API constants
DEFAULT_BASE_URL = "https://fx-api-production.up.railway.app/v1"
DEFAULT_TIMEOUT = 30.0  # Request timeout in seconds

# Cache constants
DEFAULT_CACHE_URL = "sqlite:///" + os.path.join(os.path.expanduser("~"), ".fxprotocol", "cache.db")
CACHE_NAMESPACE = "fx_sdk_cache"  # Reserved prefix for persisted cache entries
MAX_MEMORY_ENTRIES = 100  # Memory tier bound (entries)
MEMORY_CACHE_TTL = 60  # Memory tier default TTL: 1 minute
DISK_CACHE_TTL = 300  # Disk tier default TTL: 5 minutes

# Key store constants
KEY_STORE_PREFIX = "private_key_"
PBKDF2_ITERATIONS = 600_000
MIN_PASSPHRASE_LENGTH = 12

# Format patterns
ADDRESS_PATTERN = r"^0x[a-fA-F0-9]{40}$"
PRIVATE_KEY_PATTERN = r"^0x[a-fA-F0-9]{64}$"


class CacheTTL:
    """Default time-to-live values (seconds) per cache category."""
    BALANCE = 60  # Balance queries: 1 minute
    PROTOCOL_INFO = 300  # Protocol information: 5 minutes
    POOL_INFO = 180  # Pool information: 3 minutes
    VAULT_INFO = 180  # Vault information: 3 minutes
    GAUGE_INFO = 120  # Gauge information: 2 minutes
    TRANSACTION = 30  # Transaction data: 30 seconds
    PRICE = 60  # Price data: 1 minute
    DEFAULT = 60
