"""Format checks for addresses and private keys."""
import re
from typing import Iterable, Optional

from .constants import ADDRESS_PATTERN, PRIVATE_KEY_PATTERN
from .errors import InvalidAddressError

_ADDRESS_RE = re.compile(ADDRESS_PATTERN)
_PRIVATE_KEY_RE = re.compile(PRIVATE_KEY_PATTERN)


def is_valid_address(address: str) -> bool:
    """Check for '0x' followed by exactly 40 hex characters."""
    return isinstance(address, str) and _ADDRESS_RE.fullmatch(address) is not None


def is_valid_private_key(private_key: str) -> bool:
    """Check for '0x' followed by exactly 64 hex characters."""
    return isinstance(private_key, str) and _PRIVATE_KEY_RE.fullmatch(private_key) is not None


def require_address(address: str) -> str:
    """Return the address unchanged, raising InvalidAddressError if malformed."""
    if not is_valid_address(address):
        raise InvalidAddressError(address)
    return address


def require_addresses(addresses: Iterable[Optional[str]]) -> None:
    """Validate each address in order; None entries are optional arguments left unset."""
    for address in addresses:
        if address is not None:
            require_address(address)
