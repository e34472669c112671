"""
FXClient: the public entry point of the f(x) Protocol client.

Read operations validate their address arguments and delegate to the
APIClient. Write operations run through the TransactionPipeline: the
transaction is prepared by the API, signed locally with the wallet's
stored key, and broadcast back through the API.
"""
from typing import Any, Dict, List, Optional

import structlog

from .api import APIClient
from .cache import CacheManager, CacheStats, RedisDiskCache, SQLDiskCache
from .config.settings import FXSettings
from .constants import DEFAULT_BASE_URL, DEFAULT_TIMEOUT
from .models import (
    AllBalancesResponse,
    BalanceResponse,
    HealthResponse,
    ProtocolInfoResponse,
    StatusResponse,
    TokenNavResponse,
    TransactionResponse,
    TransactionStatusResponse,
)
from .pipeline import TransactionPipeline
from .security import EncryptedFileKeyStore, MemoryKeyStore, SecureKeyStore
from .signer import TransactionSigner
from .validation import require_address, require_addresses

logger = structlog.get_logger()

JSONDict = Dict[str, Any]


class FXClient:
    """Async client for reading f(x) Protocol state and submitting transactions."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        cache_manager: Optional[CacheManager] = None,
        key_store: Optional[SecureKeyStore] = None,
        signer: Optional[TransactionSigner] = None,
        api: Optional[APIClient] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Base URL of the REST API
            api_key: Optional API key
            timeout: Request timeout in seconds
            cache_manager: Response cache, defaults to memory + SQLite under ~/.fxprotocol
            key_store: Private key storage, defaults to an in-memory store
            signer: Transaction signer
            api: Preconfigured transport; base_url, api_key and timeout are
                ignored when given
        """
        if api is None:
            api = APIClient(
                base_url=base_url,
                api_key=api_key,
                timeout=timeout,
                cache_manager=cache_manager,
            )
        self.api = api
        self.cache_manager = api.cache_manager
        self.key_store = key_store if key_store is not None else MemoryKeyStore()
        self.signer = signer or TransactionSigner()
        self.pipeline = TransactionPipeline(
            key_store=self.key_store,
            api=self.api,
            signer=self.signer,
            cache_manager=self.cache_manager,
        )

    @classmethod
    def from_settings(cls, settings: Optional[FXSettings] = None) -> "FXClient":
        """Build a client and its collaborators from FXSettings (or the environment)."""
        settings = settings or FXSettings()

        if settings.redis_url:
            disk_cache = RedisDiskCache(settings.redis_url, namespace=settings.cache_namespace)
        else:
            disk_cache = SQLDiskCache(settings.cache_url, namespace=settings.cache_namespace)

        cache_manager = CacheManager(
            disk_cache=disk_cache,
            max_memory_entries=settings.max_memory_entries,
            memory_ttl=settings.memory_ttl,
            disk_ttl=settings.disk_ttl,
        )

        if settings.key_store_passphrase:
            key_store: SecureKeyStore = EncryptedFileKeyStore(
                settings.key_store_dir, settings.key_store_passphrase
            )
        else:
            key_store = MemoryKeyStore()

        logger.info(
            "fx_client_configured",
            base_url=settings.base_url,
            disk_cache=type(disk_cache).__name__,
            key_store=type(key_store).__name__,
        )
        return cls(
            base_url=settings.base_url,
            api_key=settings.api_key,
            timeout=settings.timeout,
            cache_manager=cache_manager,
            key_store=key_store,
        )

    async def close(self) -> None:
        await self.api.close()
        await self.cache_manager.close()

    async def __aenter__(self) -> "FXClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # Health & status

    async def get_health(self) -> HealthResponse:
        return await self.api.get_health()

    async def get_status(self) -> StatusResponse:
        return await self.api.get_status()

    # Balances

    async def get_all_balances(self, address: str, use_cache: bool = True) -> AllBalancesResponse:
        """
        Get all token balances for an address.

        Args:
            address: Ethereum address
            use_cache: Whether to serve and store the response in the cache
        """
        require_address(address)
        return await self.api.get_all_balances(address, use_cache=use_cache)

    async def get_balance(self, address: str, token: str, use_cache: bool = True) -> BalanceResponse:
        """Get a balance by token name (fxusd, fxn, feth, xeth, vefxn, ...)."""
        require_address(address)
        return await self.api.get_balance(address, token, use_cache=use_cache)

    async def get_fxusd_balance(self, address: str) -> BalanceResponse:
        require_address(address)
        return await self.api.get_fxusd_balance(address)

    async def get_fxn_balance(self, address: str) -> BalanceResponse:
        require_address(address)
        return await self.api.get_fxn_balance(address)

    async def get_feth_balance(self, address: str) -> BalanceResponse:
        require_address(address)
        return await self.api.get_feth_balance(address)

    async def get_xeth_balance(self, address: str) -> BalanceResponse:
        require_address(address)
        return await self.api.get_xeth_balance(address)

    async def get_vefxn_balance(self, address: str) -> BalanceResponse:
        require_address(address)
        return await self.api.get_vefxn_balance(address)

    async def get_token_balance(self, address: str, token_address: str) -> BalanceResponse:
        require_addresses([address, token_address])
        return await self.api.get_token_balance(address, token_address)

    # Protocol

    async def get_protocol_nav(self) -> ProtocolInfoResponse:
        return await self.api.get_protocol_nav()

    async def get_token_nav(self, token: str) -> TokenNavResponse:
        return await self.api.get_token_nav(token)

    async def get_steth_price(self) -> BalanceResponse:
        return await self.api.get_steth_price()

    async def get_fxusd_supply(self) -> BalanceResponse:
        return await self.api.get_fxusd_supply()

    async def get_pool_info(self, pool_address: str) -> JSONDict:
        require_address(pool_address)
        return await self.api.get_pool_info(pool_address)

    async def get_market_info(self, market_address: str) -> JSONDict:
        require_address(market_address)
        return await self.api.get_market_info(market_address)

    async def get_treasury_info(self) -> JSONDict:
        return await self.api.get_treasury_info()

    async def get_v1_nav(self) -> JSONDict:
        return await self.api.get_v1_nav()

    async def get_v1_collateral_ratio(self) -> BalanceResponse:
        return await self.api.get_v1_collateral_ratio()

    async def get_v1_rebalance_pools(self) -> List[str]:
        return await self.api.get_v1_rebalance_pools()

    async def get_rebalance_pool_balances(self, pool_address: str, address: str) -> JSONDict:
        require_addresses([pool_address, address])
        return await self.api.get_rebalance_pool_balances(pool_address, address)

    async def get_peg_keeper_info(self) -> JSONDict:
        return await self.api.get_peg_keeper_info()

    # V2

    async def get_v2_pool_info(self, pool_address: str) -> JSONDict:
        require_address(pool_address)
        return await self.api.get_v2_pool_info(pool_address)

    async def get_v2_position_info(self, position_id: int) -> JSONDict:
        return await self.api.get_v2_position_info(position_id)

    async def get_v2_pool_manager_info(self, pool_address: str) -> JSONDict:
        require_address(pool_address)
        return await self.api.get_v2_pool_manager_info(pool_address)

    async def get_v2_reserve_pool_info(self, token_address: str) -> JSONDict:
        require_address(token_address)
        return await self.api.get_v2_reserve_pool_info(token_address)

    # Convex & Curve

    async def get_all_convex_pools(self, page: int = 1, limit: int = 50) -> JSONDict:
        return await self.api.get_all_convex_pools(page, limit)

    async def get_convex_pool_info(self, pool_id: int) -> JSONDict:
        return await self.api.get_convex_pool_info(pool_id)

    async def get_convex_vault_info(self, vault_address: str) -> JSONDict:
        require_address(vault_address)
        return await self.api.get_convex_vault_info(vault_address)

    async def get_convex_vault_balance(self, vault_address: str) -> BalanceResponse:
        require_address(vault_address)
        return await self.api.get_convex_vault_balance(vault_address)

    async def get_convex_vault_rewards(self, vault_address: str) -> JSONDict:
        require_address(vault_address)
        return await self.api.get_convex_vault_rewards(vault_address)

    async def get_user_convex_vaults(self, address: str) -> JSONDict:
        require_address(address)
        return await self.api.get_user_convex_vaults(address)

    async def get_curve_pools(self, page: int = 1, limit: int = 50) -> JSONDict:
        return await self.api.get_curve_pools(page, limit)

    async def get_curve_pool_info(self, pool_address: str) -> JSONDict:
        require_address(pool_address)
        return await self.api.get_curve_pool_info(pool_address)

    async def get_curve_gauge_balance(self, gauge_address: str, user_address: str) -> JSONDict:
        require_addresses([gauge_address, user_address])
        return await self.api.get_curve_gauge_balance(gauge_address, user_address)

    async def get_curve_gauge_rewards(self, gauge_address: str, user_address: str) -> JSONDict:
        require_addresses([gauge_address, user_address])
        return await self.api.get_curve_gauge_rewards(gauge_address, user_address)

    # Gauges & veFXN

    async def get_gauge_weight(self, gauge_address: str) -> JSONDict:
        require_address(gauge_address)
        return await self.api.get_gauge_weight(gauge_address)

    async def get_gauge_relative_weight(self, gauge_address: str) -> JSONDict:
        require_address(gauge_address)
        return await self.api.get_gauge_relative_weight(gauge_address)

    async def get_gauge_rewards(self, gauge_address: str, address: str) -> JSONDict:
        require_addresses([gauge_address, address])
        return await self.api.get_gauge_rewards(gauge_address, address)

    async def get_all_gauge_rewards(self, address: str) -> JSONDict:
        require_address(address)
        return await self.api.get_all_gauge_rewards(address)

    async def get_vefxn_info(self, address: str) -> JSONDict:
        require_address(address)
        return await self.api.get_vefxn_info(address)

    # Cache

    async def get_cache_stats(self) -> CacheStats:
        return await self.cache_manager.get_stats()

    async def clear_cache(self) -> None:
        await self.cache_manager.clear()

    # Wallet management

    def import_wallet(self, private_key: str, address: str) -> None:
        """
        Store the private key that signs transactions for ``address``.

        Raises:
            InvalidAddressError: If the address is malformed
            SecureStorageError: If the key is malformed or cannot be stored
        """
        require_address(address)
        self.key_store.store(private_key, address)

    def remove_wallet(self, address: str) -> None:
        require_address(address)
        self.key_store.delete(address)

    def has_wallet(self, address: str) -> bool:
        require_address(address)
        return self.key_store.exists(address)

    # Token operations

    async def mint_f_token(
        self,
        market_address: str,
        base_in: str,
        wallet_address: str,
        recipient: Optional[str] = None,
        min_f_token_out: str = "0",
        estimate_gas: bool = False,
    ) -> TransactionResponse:
        """
        Mint f-token (e.g. fxUSD) from base token.

        Args:
            market_address: Market contract
            base_in: Base token amount in wei, as a decimal string
            wallet_address: Signing wallet
            recipient: Receiver of the minted tokens, defaults to the wallet
            min_f_token_out: Slippage bound in wei
            estimate_gas: Ask the API to simulate the call and estimate gas
        """
        return await self.pipeline.execute(
            wallet_address,
            lambda: self.api.prepare_mint_f_token(
                market_address=market_address,
                base_in=base_in,
                recipient=recipient or wallet_address,
                min_f_token_out=min_f_token_out,
                estimate_gas=estimate_gas,
                from_address=wallet_address if estimate_gas else None,
            ),
            addresses=[market_address, recipient],
        )

    async def mint_x_token(self, market_address: str, base_in: str, wallet_address: str,
                           recipient: Optional[str] = None,
                           min_x_token_out: str = "0") -> TransactionResponse:
        """Mint x-token (e.g. xETH) from base token."""
        return await self.pipeline.execute(
            wallet_address,
            lambda: self.api.prepare_mint_x_token(
                market_address=market_address,
                base_in=base_in,
                recipient=recipient or wallet_address,
                min_x_token_out=min_x_token_out,
            ),
            addresses=[market_address, recipient],
        )

    async def mint_both_tokens(self, market_address: str, base_in: str, wallet_address: str,
                               recipient: Optional[str] = None, min_f_token_out: str = "0",
                               min_x_token_out: str = "0") -> TransactionResponse:
        return await self.pipeline.execute(
            wallet_address,
            lambda: self.api.prepare_mint_both_tokens(
                market_address=market_address,
                base_in=base_in,
                recipient=recipient or wallet_address,
                min_f_token_out=min_f_token_out,
                min_x_token_out=min_x_token_out,
            ),
            addresses=[market_address, recipient],
        )

    async def approve(self, token_address: str, spender_address: str, amount: str,
                      wallet_address: str) -> TransactionResponse:
        """Approve ``spender_address`` to spend ``amount`` of a token."""
        return await self.pipeline.execute(
            wallet_address,
            lambda: self.api.prepare_approve(token_address, spender_address, amount),
            addresses=[token_address, spender_address],
        )

    async def transfer(self, token_address: str, recipient_address: str, amount: str,
                       wallet_address: str) -> TransactionResponse:
        return await self.pipeline.execute(
            wallet_address,
            lambda: self.api.prepare_transfer(token_address, recipient_address, amount),
            addresses=[token_address, recipient_address],
        )

    async def redeem(self, market_address: str, wallet_address: str, f_token_in: str = "0",
                     x_token_in: str = "0", recipient: Optional[str] = None,
                     min_base_out: str = "0") -> TransactionResponse:
        """Redeem f-token and/or x-token for base token."""
        return await self.pipeline.execute(
            wallet_address,
            lambda: self.api.prepare_redeem(
                market_address=market_address,
                f_token_in=f_token_in,
                x_token_in=x_token_in,
                recipient=recipient or wallet_address,
                min_base_out=min_base_out,
            ),
            addresses=[market_address, recipient],
        )

    async def redeem_via_treasury(self, wallet_address: str, f_token_in: str = "0",
                                  x_token_in: str = "0",
                                  owner: Optional[str] = None) -> TransactionResponse:
        return await self.pipeline.execute(
            wallet_address,
            lambda: self.api.prepare_redeem_via_treasury(
                f_token_in=f_token_in,
                x_token_in=x_token_in,
                owner=owner or wallet_address,
            ),
            addresses=[owner],
        )

    # V1 rebalance pools

    async def deposit_to_rebalance_pool(self, pool_address: str, amount: str, wallet_address: str,
                                        recipient: Optional[str] = None) -> TransactionResponse:
        return await self.pipeline.execute(
            wallet_address,
            lambda: self.api.prepare_rebalance_pool_deposit(
                pool_address, amount, recipient=recipient or wallet_address
            ),
            addresses=[pool_address, recipient],
        )

    async def withdraw_from_rebalance_pool(self, pool_address: str, wallet_address: str,
                                           claim_rewards: bool = True) -> TransactionResponse:
        return await self.pipeline.execute(
            wallet_address,
            lambda: self.api.prepare_rebalance_pool_withdraw(pool_address, claim_rewards),
            addresses=[pool_address],
        )

    async def unlock_from_rebalance_pool(self, pool_address: str, amount: str,
                                         wallet_address: str) -> TransactionResponse:
        return await self.pipeline.execute(
            wallet_address,
            lambda: self.api.prepare_rebalance_pool_unlock(pool_address, amount),
            addresses=[pool_address],
        )

    async def claim_rebalance_pool_rewards(self, pool_address: str, tokens: List[str],
                                           wallet_address: str) -> TransactionResponse:
        """Claim the listed reward tokens from a rebalance pool."""
        return await self.pipeline.execute(
            wallet_address,
            lambda: self.api.prepare_rebalance_pool_claim(pool_address, tokens),
            addresses=[pool_address],
        )

    # Savings & stability pool

    async def deposit_to_savings(self, amount: str, wallet_address: str) -> TransactionResponse:
        """Deposit fxUSD into fxSAVE."""
        return await self.pipeline.execute(
            wallet_address, lambda: self.api.prepare_savings_deposit(amount)
        )

    async def redeem_from_savings(self, amount: str, wallet_address: str) -> TransactionResponse:
        return await self.pipeline.execute(
            wallet_address, lambda: self.api.prepare_savings_redeem(amount)
        )

    async def deposit_to_stability_pool(self, amount: str,
                                        wallet_address: str) -> TransactionResponse:
        return await self.pipeline.execute(
            wallet_address, lambda: self.api.prepare_stability_pool_deposit(amount)
        )

    async def withdraw_from_stability_pool(self, amount: str,
                                           wallet_address: str) -> TransactionResponse:
        return await self.pipeline.execute(
            wallet_address, lambda: self.api.prepare_stability_pool_withdraw(amount)
        )

    # V2 positions

    async def operate_position(self, position_id: int, pool_address: str, new_collateral: str,
                               new_debt: str, wallet_address: str) -> TransactionResponse:
        """Set a v2 position's collateral and debt to the given amounts."""
        return await self.pipeline.execute(
            wallet_address,
            lambda: self.api.prepare_operate_position(
                position_id, pool_address, new_collateral, new_debt
            ),
            addresses=[pool_address],
        )

    async def rebalance_position(self, position_id: int, pool_address: str, wallet_address: str,
                                 receiver: Optional[str] = None) -> TransactionResponse:
        return await self.pipeline.execute(
            wallet_address,
            lambda: self.api.prepare_rebalance_position(
                position_id, pool_address, receiver=receiver or wallet_address
            ),
            addresses=[pool_address, receiver],
        )

    async def liquidate_position(self, position_id: int, pool_address: str, wallet_address: str,
                                 receiver: Optional[str] = None) -> TransactionResponse:
        return await self.pipeline.execute(
            wallet_address,
            lambda: self.api.prepare_liquidate_position(
                position_id, pool_address, receiver=receiver or wallet_address
            ),
            addresses=[pool_address, receiver],
        )

    # Governance

    async def vote_for_gauge(self, gauge_address: str, weight: str,
                             wallet_address: str) -> TransactionResponse:
        return await self.pipeline.execute(
            wallet_address,
            lambda: self.api.prepare_gauge_vote(gauge_address, weight),
            addresses=[gauge_address],
        )

    async def claim_gauge_rewards(self, gauge_address: str, wallet_address: str,
                                  token_address: Optional[str] = None) -> TransactionResponse:
        return await self.pipeline.execute(
            wallet_address,
            lambda: self.api.prepare_gauge_claim(gauge_address, token_address),
            addresses=[gauge_address, token_address],
        )

    async def lock_fxn(self, amount: str, unlock_time: int,
                       wallet_address: str) -> TransactionResponse:
        """Lock FXN into veFXN until ``unlock_time`` (unix seconds)."""
        return await self.pipeline.execute(
            wallet_address, lambda: self.api.prepare_vefxn_deposit(amount, unlock_time)
        )

    async def claim_vesting(self, token_type: str, wallet_address: str) -> TransactionResponse:
        return await self.pipeline.execute(
            wallet_address, lambda: self.api.prepare_vesting_claim(token_type)
        )

    # Advanced operations

    async def harvest_pool_manager(self, pool_address: str,
                                   wallet_address: str) -> TransactionResponse:
        return await self.pipeline.execute(
            wallet_address,
            lambda: self.api.prepare_harvest(pool_address),
            addresses=[pool_address],
        )

    async def request_bonus(self, token_address: str, amount: str, wallet_address: str,
                            recipient: Optional[str] = None) -> TransactionResponse:
        """Request a bonus from the v2 reserve pool."""
        return await self.pipeline.execute(
            wallet_address,
            lambda: self.api.prepare_request_bonus(
                token_address, amount, recipient=recipient or wallet_address
            ),
            addresses=[token_address, recipient],
        )

    async def mint_via_treasury(self, base_in: str, wallet_address: str,
                                recipient: Optional[str] = None,
                                option: int = 0) -> TransactionResponse:
        return await self.pipeline.execute(
            wallet_address,
            lambda: self.api.prepare_mint_via_treasury(
                base_in, recipient=recipient or wallet_address, option=option
            ),
            addresses=[recipient],
        )

    async def mint_via_gateway(self, amount_eth: str, token_type: str, wallet_address: str,
                               min_token_out: str = "0") -> TransactionResponse:
        """Mint from ETH through the gateway; ``token_type`` is 'f' or 'x'."""
        return await self.pipeline.execute(
            wallet_address,
            lambda: self.api.prepare_mint_via_gateway(
                amount_eth, token_type, min_token_out=min_token_out
            ),
        )

    async def harvest_treasury(self, wallet_address: str) -> TransactionResponse:
        return await self.pipeline.execute(
            wallet_address, lambda: self.api.prepare_treasury_harvest()
        )

    async def swap(self, token_in: str, amount_in: str, encoding: int, routes: List[int],
                   wallet_address: str) -> TransactionResponse:
        """Swap through the protocol's multi-path converter."""
        return await self.pipeline.execute(
            wallet_address,
            lambda: self.api.prepare_swap(token_in, amount_in, encoding, routes),
            addresses=[token_in],
        )

    async def flash_loan(self, token_address: str, amount: str, receiver: str,
                         wallet_address: str, data: str = "0x") -> TransactionResponse:
        return await self.pipeline.execute(
            wallet_address,
            lambda: self.api.prepare_flash_loan(token_address, amount, receiver, data),
            addresses=[token_address, receiver],
        )

    # Transaction status

    async def get_transaction_status(self, tx_hash: str) -> TransactionStatusResponse:
        return await self.api.get_transaction_status(tx_hash)
