"""
Write-transaction pipeline.

Every write operation runs the same strictly sequential steps:

    validate -> fetch key -> prepare -> sign -> broadcast -> invalidate

A failure at any step aborts the run and propagates unchanged; later steps
are never reached. Nothing is retried, so a run submits at most one signed
transaction. Concurrent runs for the same wallet are not coordinated and
may race on nonce assignment at the API.
"""
import asyncio
from enum import Enum
from typing import Awaitable, Callable, Iterable, List, Optional

import structlog

from .api import APIClient
from .cache import CacheManager, cache_key
from .config.logging import log_error
from .errors import TransactionFailedError, WalletNotFoundError
from .models import TransactionResponse, UnsignedTransaction
from .security import SecureKeyStore
from .signer import TransactionSigner
from .validation import require_address, require_addresses

logger = structlog.get_logger()

PrepareCall = Callable[[], Awaitable[UnsignedTransaction]]


class PipelineStage(str, Enum):
    VALIDATE = "validate"
    FETCH_KEY = "fetch_key"
    PREPARE = "prepare"
    SIGN = "sign"
    BROADCAST = "broadcast"
    INVALIDATE = "invalidate"
    DONE = "done"


def balance_patterns(wallet_address: str) -> List[str]:
    """Invalidation patterns covering every cached balance of a wallet."""
    address = wallet_address.lower()
    return [
        cache_key("balance", "*", address),
        cache_key("balance", "token", address, "*"),
    ]


class TransactionPipeline:
    """Prepares, signs and broadcasts one transaction per call to ``execute``."""

    def __init__(
        self,
        key_store: SecureKeyStore,
        api: APIClient,
        signer: TransactionSigner,
        cache_manager: CacheManager,
    ):
        self.key_store = key_store
        self.api = api
        self.signer = signer
        self.cache_manager = cache_manager

    async def execute(
        self,
        wallet_address: str,
        prepare: PrepareCall,
        addresses: Iterable[Optional[str]] = (),
    ) -> TransactionResponse:
        """
        Run the pipeline for one write operation.

        Args:
            wallet_address: Wallet that signs and pays for the transaction
            prepare: Calls the operation's prepare endpoint
            addresses: Other address arguments of the operation; None
                entries are unset optional arguments and are skipped

        Returns:
            The broadcast result

        Raises:
            InvalidAddressError: Before any storage or network access
            WalletNotFoundError: If no key is stored for the wallet
            TransactionFailedError: If the API reports an unsuccessful broadcast
            FXError: Transport and signing errors, unchanged
        """
        stage = PipelineStage.VALIDATE
        try:
            require_address(wallet_address)
            require_addresses(addresses)

            stage = PipelineStage.FETCH_KEY
            # Key stores may read files and derive keys; keep that off the event loop.
            private_key = await asyncio.get_running_loop().run_in_executor(
                None, self.key_store.fetch, wallet_address
            )
            if private_key is None:
                raise WalletNotFoundError(wallet_address)

            try:
                stage = PipelineStage.PREPARE
                unsigned_tx = await prepare()

                stage = PipelineStage.SIGN
                raw_transaction = self.signer.sign_transaction(unsigned_tx, private_key)
            finally:
                del private_key

            stage = PipelineStage.BROADCAST
            response = await self.api.broadcast_transaction(raw_transaction)
            if not response.success:
                raise TransactionFailedError(response.status, response.transaction_hash)
        except Exception as e:
            log_error(logger, e, {
                "event_context": "transaction_pipeline",
                "stage": stage.value,
                "wallet": str(wallet_address).lower(),
            })
            raise

        logger.info(
            "transaction_broadcast",
            wallet=wallet_address.lower(),
            transaction_hash=response.transaction_hash,
            status=response.status,
            stage=PipelineStage.DONE.value,
        )

        await self._invalidate_balances(wallet_address)
        return response

    async def _invalidate_balances(self, wallet_address: str) -> None:
        # The transaction is already submitted; a failure here must not mask it.
        for pattern in balance_patterns(wallet_address):
            try:
                await self.cache_manager.invalidate(pattern)
            except Exception as e:
                logger.warning(
                    "balance_invalidation_failed",
                    stage=PipelineStage.INVALIDATE.value,
                    pattern=pattern,
                    error=str(e),
                )
