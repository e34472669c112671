"""
Error types raised by the f(x) Protocol client.

Every error derives from FXError and carries a ``kind`` tag so callers can
branch on the category without inspecting internals. ``str(error)`` is a
human-readable message that is safe to show to end users.
"""
from typing import Any, Dict, Optional


class FXError(Exception):
    """Base class for all client errors."""

    kind = "error"

    def __init__(self, message: Optional[str] = None):
        self.message = message
        super().__init__(self.describe())

    def describe(self) -> str:
        return self.message or "An unexpected error occurred."


class InvalidAddressError(FXError):
    """An address-shaped argument failed format validation."""

    kind = "invalid_address"

    def __init__(self, address: str):
        self.address = address
        super().__init__()

    def describe(self) -> str:
        return (
            f"Invalid Ethereum address format: '{self.address}'. Address must start "
            "with '0x' and be 42 characters long "
            "(e.g., '0x742d35Cc6634C0532925a3b844Bc9e7595f0bEb0')."
        )


class WalletNotFoundError(FXError):
    """No signing key is stored for the wallet address."""

    kind = "wallet_not_found"

    def __init__(self, address: Optional[str] = None):
        self.address = address
        super().__init__()

    def describe(self) -> str:
        return (
            "Wallet not found. Please import your wallet first using "
            "import_wallet(private_key, address)."
        )


class NetworkError(FXError):
    """Transport failure or a non-2xx response without a structured body."""

    kind = "network_error"

    STATUS_MESSAGES = {
        400: "Bad request (HTTP 400). Please check your request parameters and try again.",
        401: "Unauthorized (HTTP 401). Please check your API key if required.",
        403: "Forbidden (HTTP 403). You don't have permission to access this resource.",
        404: "Not found (HTTP 404). The requested resource was not found.",
        429: (
            "Rate limit exceeded (HTTP 429). Please wait a moment and try again. "
            "Rate limits: 100 requests/minute, 5000 requests/hour."
        ),
    }

    def __init__(self, status_code: Optional[int] = None, message: Optional[str] = None):
        self.status_code = status_code
        super().__init__(message)

    @property
    def category(self) -> str:
        """Coarse category for the HTTP status code."""
        code = self.status_code
        if code is None:
            return "connection"
        if code == 400:
            return "bad_request"
        if code in (401, 403):
            return "auth"
        if code == 404:
            return "not_found"
        if code == 429:
            return "rate_limited"
        if 500 <= code <= 599:
            return "server_error"
        return "http_error"

    def describe(self) -> str:
        code = self.status_code
        if code is not None:
            if code in self.STATUS_MESSAGES:
                return self.STATUS_MESSAGES[code]
            if 500 <= code <= 599:
                return (
                    f"Server error (HTTP {code}). The API is experiencing issues. "
                    "Please try again later."
                )
            if self.message:
                return (
                    f"Network error (HTTP {code}): {self.message}. Please check your "
                    "internet connection and try again."
                )
            return f"Network error (HTTP {code}). Please check your internet connection and try again."
        if self.message:
            return f"Network error: {self.message}"
        return "Network error. Please check your internet connection and try again."


class ApiError(FXError):
    """Structured error returned in the body of a failed API response."""

    kind = "api_error"

    CODE_MESSAGES = {
        "RATE_LIMIT_EXCEEDED": (
            "Rate limit exceeded. Please wait a moment and try again. "
            "Limits: 100 requests/minute, 5000 requests/hour."
        ),
        "TOO_MANY_REQUESTS": (
            "Rate limit exceeded. Please wait a moment and try again. "
            "Limits: 100 requests/minute, 5000 requests/hour."
        ),
        "INVALID_ADDRESS": "Invalid address format. Please check the address and try again.",
        "INSUFFICIENT_BALANCE": "Insufficient balance. Please check your account balance and try again.",
        "TRANSACTION_FAILED": (
            "Transaction failed on the blockchain. Please check the transaction "
            "details and try again."
        ),
        "INTERNAL_ERROR": (
            "API internal error. The server encountered an issue. Please try again later."
        ),
    }

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.details = details
        super().__init__(message)

    def describe(self) -> str:
        friendly = self.CODE_MESSAGES.get(self.code.upper())
        if friendly is None:
            friendly = self.message or "An error occurred"
        return f"API error ({self.code}): {friendly}"


class InvalidResponseError(FXError):
    """The server returned a success status with an unusable body."""

    kind = "invalid_response"

    def describe(self) -> str:
        if self.message:
            return (
                f"Invalid response from server: {self.message}. Please try again or "
                "contact support if the issue persists."
            )
        return "Invalid response from server. Please try again or contact support if the issue persists."


class EncodingError(FXError):
    """A request body could not be serialized."""

    kind = "encoding_error"

    def describe(self) -> str:
        return (
            f"Failed to prepare request data: {self.message}. This is usually a "
            "temporary issue. Please try again."
        )


class DecodingError(FXError):
    """A response body could not be deserialized."""

    kind = "decoding_error"

    def describe(self) -> str:
        return f"Failed to process server response: {self.message}"


class SecureStorageError(FXError):
    """The secure key store rejected or failed an operation."""

    kind = "secure_storage_error"

    def describe(self) -> str:
        return f"Secure storage error: {self.message}"


class SigningError(FXError):
    """The unsigned transaction or private key could not be signed."""

    kind = "signing_error"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)

    def describe(self) -> str:
        return f"Transaction signing failed: {self.reason}"


class TransactionFailedError(FXError):
    """The API reported that a broadcast transaction was not accepted."""

    kind = "transaction_failed"

    def __init__(self, message: Optional[str] = None, transaction_hash: Optional[str] = None):
        self.transaction_hash = transaction_hash
        super().__init__(message)

    def describe(self) -> str:
        if self.message:
            return (
                f"Transaction failed: {self.message}. Please check the transaction "
                "details and try again."
            )
        return (
            "Transaction failed. Please check your network connection and transaction "
            "parameters, then try again."
        )
