"""
Client-side transaction signing.

The RLP encoding and secp256k1 signing are delegated to eth-account; this
module only converts the API's unsigned transaction into the shape
eth-account expects and maps every failure to SigningError.
"""
from typing import Any, Dict

import structlog
from eth_account import Account
from eth_utils import to_checksum_address

from .errors import SigningError
from .models import UnsignedTransaction
from .validation import is_valid_address, is_valid_private_key

logger = structlog.get_logger()


def _parse_quantity(raw: str, label: str) -> int:
    """Parse a quantity string: hex when 0x-prefixed, decimal otherwise."""
    try:
        if raw.lower().startswith("0x"):
            quantity = int(raw, 16)
        else:
            quantity = int(raw, 10)
    except (TypeError, ValueError):
        raise SigningError(f"Invalid {label} in transaction: '{raw}'.")
    if quantity < 0:
        raise SigningError(f"Invalid {label} in transaction: '{raw}'.")
    return quantity


def _parse_int(raw: int, label: str) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int) or raw < 0:
        raise SigningError(f"Invalid {label} in transaction: '{raw}'.")
    return raw


def _parse_data(raw: str) -> bytes:
    payload = raw[2:] if raw.startswith("0x") else raw
    try:
        return bytes.fromhex(payload)
    except ValueError:
        raise SigningError("Invalid call data in transaction. Please check the transaction data.")


class TransactionSigner:
    """Signs unsigned transactions with a hex private key. Performs no I/O."""

    def build_transaction(self, transaction: UnsignedTransaction) -> Dict[str, Any]:
        """
        Convert an unsigned API transaction into an eth-account transaction dict.

        Raises:
            SigningError: On a malformed recipient, numeric field or call data,
                or when neither gas pricing scheme is present
        """
        if not is_valid_address(transaction.to):
            raise SigningError(
                f"Invalid recipient address in transaction: '{transaction.to}'. "
                "Please check the transaction data."
            )

        tx: Dict[str, Any] = {
            "to": to_checksum_address(transaction.to),
            "value": _parse_quantity(transaction.value, "transaction amount"),
            "nonce": _parse_int(transaction.nonce, "nonce"),
            "gas": _parse_int(transaction.gas, "gas limit"),
            "chainId": _parse_int(transaction.chain_id, "chain id"),
            "data": _parse_data(transaction.data),
        }

        if transaction.is_fee_market:
            tx["maxFeePerGas"] = _parse_quantity(transaction.max_fee_per_gas, "gas fee")
            tx["maxPriorityFeePerGas"] = _parse_quantity(
                transaction.max_priority_fee_per_gas, "priority gas fee"
            )
            tx["type"] = 2
        elif transaction.gas_price is not None:
            tx["gasPrice"] = _parse_quantity(transaction.gas_price, "gas price")
        else:
            raise SigningError(
                "Transaction missing gas price information. This may be a temporary "
                "API issue. Please try again."
            )
        return tx

    def sign_transaction(self, transaction: UnsignedTransaction, private_key: str) -> str:
        """
        Sign an unsigned transaction.

        Args:
            transaction: The unsigned transaction from a prepare endpoint
            private_key: Hex private key with 0x prefix

        Returns:
            Raw signed transaction as 0x-prefixed hex, ready for broadcasting
        """
        if not isinstance(private_key, str) or not private_key.startswith("0x"):
            raise SigningError("Private key must start with '0x' prefix.")
        if not is_valid_private_key(private_key):
            raise SigningError(
                "Invalid private key length. Private key must be 66 characters "
                "(64 hex characters + '0x' prefix)."
            )

        tx = self.build_transaction(transaction)

        try:
            signed = Account.sign_transaction(tx, private_key)
        except Exception as e:
            logger.warning("transaction_signing_failed", error_type=type(e).__name__)
            raise SigningError(
                "Unable to sign transaction. Please ensure your wallet is properly "
                "imported and the transaction parameters are valid."
            ) from e

        return "0x" + bytes(signed.raw_transaction).hex()
