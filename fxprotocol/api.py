"""
HTTP transport for the f(x) Protocol REST API.

APIClient owns the aiohttp session, maps transport and HTTP failures to
FXError subclasses, and wraps the cacheable read endpoints in a
read-through cache. It never retries: every failure surfaces to the caller.
"""
import asyncio
import json
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

import aiohttp
import structlog

from .cache import CacheManager, cache_key
from .cache.entry import decode_value
from .constants import DEFAULT_BASE_URL, DEFAULT_TIMEOUT, CacheTTL
from .errors import ApiError, DecodingError, EncodingError, InvalidResponseError, NetworkError
from .models import (
    AllBalancesResponse,
    AmountRequest,
    APIModel,
    ApproveRequest,
    BalanceResponse,
    BroadcastTransactionRequest,
    ClaimAllGaugeRewardsRequest,
    EmptyRequest,
    ErrorResponse,
    FlashLoanRequest,
    GaugeClaimRequest,
    GaugeVoteRequest,
    HealthResponse,
    MintBothTokensRequest,
    MintFTokenRequest,
    MintViaGatewayRequest,
    MintViaTreasuryRequest,
    MintXTokenRequest,
    OperatePositionRequest,
    PositionReceiverRequest,
    PreparedTransactionsResponse,
    ProtocolInfoResponse,
    RebalancePoolClaimRequest,
    RebalancePoolDepositRequest,
    RebalancePoolsResponse,
    RebalancePoolWithdrawRequest,
    RedeemRequest,
    RedeemViaTreasuryRequest,
    RequestBonusRequest,
    StatusResponse,
    SwapRequest,
    TokenNavResponse,
    TransactionResponse,
    TransactionStatusResponse,
    TransferRequest,
    UnsignedTransaction,
    VeFxnDepositRequest,
)

logger = structlog.get_logger()

JSONDict = Dict[str, Any]


class HTTPMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


class APIClient:
    """Client for the f(x) Protocol REST API."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        cache_manager: Optional[CacheManager] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize the API client.

        Args:
            base_url: API root, e.g. https://fx-api-production.up.railway.app/v1
            api_key: Optional key sent as the X-API-Key header
            timeout: Per-request timeout in seconds
            cache_manager: Cache for read endpoints, defaults to a new CacheManager
            session: Existing aiohttp session; one is created lazily otherwise
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.cache_manager = cache_manager if cache_manager is not None else CacheManager()
        self.session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
            self._owns_session = True
        return self.session

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self.session is not None and self._owns_session and not self.session.closed:
            await self.session.close()
        self.session = None

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.api_key:
            headers["X-API-Key"] = self.api_key
        return headers

    # Generic request

    async def request(
        self,
        endpoint: str,
        method: HTTPMethod = HTTPMethod.GET,
        body: Optional[APIModel] = None,
        params: Optional[Dict[str, Any]] = None,
        response_model: Optional[Type] = None,
    ) -> Any:
        """
        Perform one request and decode the response.

        Args:
            endpoint: Path below the base URL, starting with '/'
            method: HTTP method
            body: Request model, serialized with its wire names
            params: Query string parameters
            response_model: Type the JSON body is validated into; the raw
                JSON value is returned when omitted

        Raises:
            EncodingError: If the request body cannot be serialized
            NetworkError: On transport failures and non-2xx responses
                without a structured error body
            ApiError: On non-2xx responses carrying {error, code, message}
            InvalidResponseError: If a 2xx body is empty but a model was expected
            DecodingError: If a 2xx body is not JSON or does not fit the model
        """
        url = f"{self.base_url}{endpoint}"

        payload = None
        if body is not None:
            try:
                payload = json.dumps(body.to_wire())
            except (TypeError, ValueError) as e:
                logger.error("request_encoding_failed", endpoint=endpoint, error=str(e))
                raise EncodingError(
                    "Unable to prepare request data. Please check your input parameters."
                ) from e

        if params:
            params = {k: str(v).lower() if isinstance(v, bool) else v for k, v in params.items()}

        session = await self._get_session()
        logger.debug("api_request", method=method.value, endpoint=endpoint)
        try:
            async with session.request(
                method.value,
                url,
                data=payload,
                params=params,
                headers=self._headers(),
            ) as response:
                status = response.status
                reason = response.reason
                raw = await response.read()
        except asyncio.TimeoutError as e:
            logger.warning("api_request_timeout", endpoint=endpoint)
            raise NetworkError(
                None,
                "Request timed out. The server took too long to respond. Please try again.",
            ) from e
        except aiohttp.ClientConnectorError as e:
            logger.warning("api_connection_failed", endpoint=endpoint, error=str(e))
            raise NetworkError(
                None, "Cannot connect to server. Please check your internet connection and API URL."
            ) from e
        except aiohttp.ServerDisconnectedError as e:
            logger.warning("api_connection_lost", endpoint=endpoint)
            raise NetworkError(
                None,
                "Network connection lost. Please check your internet connection and try again.",
            ) from e
        except aiohttp.ClientError as e:
            logger.warning("api_request_failed", endpoint=endpoint, error=str(e))
            raise NetworkError(
                None, f"{e}. Please check your connection and try again."
            ) from e

        if not 200 <= status <= 299:
            try:
                error = ErrorResponse.model_validate_json(raw)
            except ValueError:
                logger.warning("api_http_error", endpoint=endpoint, status=status)
                raise NetworkError(status, reason)
            logger.warning("api_error_response", endpoint=endpoint, status=status, code=error.code)
            raise ApiError(error.code, error.message, error.details)

        if not raw.strip() and response_model is not None:
            logger.warning("api_empty_response", endpoint=endpoint, status=status)
            raise InvalidResponseError("empty response body")

        try:
            data = json.loads(raw) if raw else None
            return decode_value(data, response_model)
        except ValueError as e:
            logger.warning("api_response_decoding_failed", endpoint=endpoint, error=str(e))
            raise DecodingError(
                "Unable to process server response. Please try again or contact "
                "support if the issue persists."
            ) from e

    async def get_json(self, endpoint: str, response_model: Optional[Type] = None,
                       params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request(endpoint, HTTPMethod.GET, params=params,
                                  response_model=response_model)

    async def post_json(self, endpoint: str, body: APIModel, response_model: Optional[Type] = None,
                        params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request(endpoint, HTTPMethod.POST, body=body, params=params,
                                  response_model=response_model)

    async def _cached(
        self,
        key: str,
        ttl: float,
        use_cache: bool,
        response_model: Type,
        fetch: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Read-through cache: return a live entry, otherwise fetch and store."""
        if use_cache:
            cached = await self.cache_manager.get(key, as_type=response_model)
            if cached is not None:
                return cached

        response = await fetch()

        if use_cache:
            await self.cache_manager.set(key, response, ttl=ttl)
        return response

    # Health

    async def get_health(self) -> HealthResponse:
        return await self.get_json("/health", HealthResponse)

    async def get_status(self) -> StatusResponse:
        return await self.get_json("/status", StatusResponse)

    # Balances

    async def get_all_balances(self, address: str, use_cache: bool = True) -> AllBalancesResponse:
        """Get every token balance for an address (cached under balance:all:<address>)."""
        return await self._cached(
            cache_key("balance", "all", address.lower()),
            CacheTTL.BALANCE,
            use_cache,
            AllBalancesResponse,
            lambda: self.get_json(f"/balances/{address}", AllBalancesResponse),
        )

    async def get_balance(self, address: str, token: str, use_cache: bool = True) -> BalanceResponse:
        """Get one named token balance (cached under balance:token:<address>:<token>)."""
        return await self._cached(
            cache_key("balance", "token", address.lower(), token.lower()),
            CacheTTL.BALANCE,
            use_cache,
            BalanceResponse,
            lambda: self.get_json(f"/balances/{address}/{token}", BalanceResponse),
        )

    async def get_fxusd_balance(self, address: str, use_cache: bool = True) -> BalanceResponse:
        return await self.get_balance(address, "fxusd", use_cache)

    async def get_fxn_balance(self, address: str, use_cache: bool = True) -> BalanceResponse:
        return await self.get_balance(address, "fxn", use_cache)

    async def get_feth_balance(self, address: str, use_cache: bool = True) -> BalanceResponse:
        return await self.get_balance(address, "feth", use_cache)

    async def get_xeth_balance(self, address: str, use_cache: bool = True) -> BalanceResponse:
        return await self.get_balance(address, "xeth", use_cache)

    async def get_vefxn_balance(self, address: str, use_cache: bool = True) -> BalanceResponse:
        return await self.get_balance(address, "vefxn", use_cache)

    async def get_token_balance(self, address: str, token_address: str,
                                use_cache: bool = True) -> BalanceResponse:
        """Get the balance of an arbitrary ERC-20 contract."""
        return await self._cached(
            cache_key("balance", "token", address.lower(), token_address.lower()),
            CacheTTL.BALANCE,
            use_cache,
            BalanceResponse,
            lambda: self.get_json(f"/balances/{address}/token/{token_address}", BalanceResponse),
        )

    # Protocol

    async def get_protocol_nav(self, use_cache: bool = True) -> ProtocolInfoResponse:
        return await self._cached(
            cache_key("protocol", "nav"),
            CacheTTL.PROTOCOL_INFO,
            use_cache,
            ProtocolInfoResponse,
            lambda: self.get_json("/protocol/nav", ProtocolInfoResponse),
        )

    async def get_token_nav(self, token: str, use_cache: bool = True) -> TokenNavResponse:
        return await self._cached(
            cache_key("protocol", "token_nav", token.lower()),
            CacheTTL.PROTOCOL_INFO,
            use_cache,
            TokenNavResponse,
            lambda: self.get_json(f"/protocol/nav/{token}", TokenNavResponse),
        )

    async def get_steth_price(self, use_cache: bool = True) -> BalanceResponse:
        return await self._cached(
            cache_key("protocol", "steth_price"),
            CacheTTL.PRICE,
            use_cache,
            BalanceResponse,
            lambda: self.get_json("/protocol/steth-price", BalanceResponse),
        )

    async def get_fxusd_supply(self, use_cache: bool = True) -> BalanceResponse:
        return await self._cached(
            cache_key("protocol", "fxusd_supply"),
            CacheTTL.PROTOCOL_INFO,
            use_cache,
            BalanceResponse,
            lambda: self.get_json("/protocol/fxusd/supply", BalanceResponse),
        )

    async def get_pool_info(self, pool_address: str) -> JSONDict:
        return await self.get_json(f"/protocol/pool-info/{pool_address}", dict)

    async def get_market_info(self, market_address: str) -> JSONDict:
        return await self.get_json(f"/protocol/market-info/{market_address}", dict)

    async def get_treasury_info(self) -> JSONDict:
        return await self.get_json("/protocol/treasury-info", dict)

    async def get_v1_nav(self) -> JSONDict:
        return await self.get_json("/protocol/v1/nav", dict)

    async def get_v1_collateral_ratio(self) -> BalanceResponse:
        return await self.get_json("/protocol/v1/collateral-ratio", BalanceResponse)

    async def get_v1_rebalance_pools(self) -> List[str]:
        """List the v1 rebalance pool addresses."""
        response = await self.get_json("/protocol/v1/rebalance-pools", RebalancePoolsResponse)
        return response.rebalance_pools

    async def get_rebalance_pool_balances(self, pool_address: str, address: str) -> JSONDict:
        return await self.get_json(
            f"/protocol/v1/rebalance-pool/{pool_address}/balances/{address}", dict
        )

    async def get_peg_keeper_info(self) -> JSONDict:
        return await self.get_json("/protocol/peg-keeper", dict)

    # V2

    async def get_v2_pool_info(self, pool_address: str) -> JSONDict:
        return await self.get_json("/v2/pool", dict, params={"pool_address": pool_address})

    async def get_v2_position_info(self, position_id: int) -> JSONDict:
        return await self.get_json(f"/v2/position/{position_id}", dict)

    async def get_v2_pool_manager_info(self, pool_address: str) -> JSONDict:
        return await self.get_json(f"/v2/pool-manager/{pool_address}", dict)

    async def get_v2_reserve_pool_info(self, token_address: str) -> JSONDict:
        return await self.get_json(f"/v2/reserve-pool/{token_address}", dict)

    # Convex

    async def get_all_convex_pools(self, page: int = 1, limit: int = 50) -> JSONDict:
        return await self.get_json("/convex/pools", dict, params={"page": page, "limit": limit})

    async def get_convex_pool_info(self, pool_id: int) -> JSONDict:
        return await self.get_json(f"/convex/pool/{pool_id}", dict)

    async def get_convex_vault_info(self, vault_address: str) -> JSONDict:
        return await self.get_json(f"/convex/vault/{vault_address}/info", dict)

    async def get_convex_vault_balance(self, vault_address: str) -> BalanceResponse:
        return await self.get_json(f"/convex/vault/{vault_address}/balance", BalanceResponse)

    async def get_convex_vault_rewards(self, vault_address: str) -> JSONDict:
        return await self.get_json(f"/convex/vault/{vault_address}/rewards", dict)

    async def get_user_convex_vaults(self, address: str) -> JSONDict:
        return await self.get_json(f"/convex/user/{address}/vaults", dict)

    # Curve

    async def get_curve_pools(self, page: int = 1, limit: int = 50) -> JSONDict:
        return await self.get_json("/curve/pools", dict, params={"page": page, "limit": limit})

    async def get_curve_pool_info(self, pool_address: str) -> JSONDict:
        return await self.get_json(f"/curve/pool/{pool_address}", dict)

    async def get_curve_gauge_balance(self, gauge_address: str, user_address: str) -> JSONDict:
        return await self.get_json(
            f"/curve/gauge/{gauge_address}/balance", dict, params={"user": user_address}
        )

    async def get_curve_gauge_rewards(self, gauge_address: str, user_address: str) -> JSONDict:
        return await self.get_json(
            f"/curve/gauge/{gauge_address}/rewards", dict, params={"user": user_address}
        )

    # Gauges and veFXN

    async def get_gauge_weight(self, gauge_address: str) -> JSONDict:
        return await self.get_json(f"/gauges/{gauge_address}/weight", dict)

    async def get_gauge_relative_weight(self, gauge_address: str) -> JSONDict:
        return await self.get_json(f"/gauges/{gauge_address}/relative-weight", dict)

    async def get_gauge_rewards(self, gauge_address: str, address: str) -> JSONDict:
        return await self.get_json(f"/gauges/{gauge_address}/rewards/{address}", dict)

    async def get_all_gauge_rewards(self, address: str) -> JSONDict:
        return await self.get_json(f"/gauges/{address}/all", dict)

    async def get_vefxn_info(self, address: str) -> JSONDict:
        return await self.get_json(f"/vefxn/{address}/info", dict)

    # Transaction preparation

    async def _prepare(self, endpoint: str, body: APIModel,
                       params: Optional[Dict[str, Any]] = None) -> UnsignedTransaction:
        return await self.post_json(endpoint, body, UnsignedTransaction, params=params)

    async def prepare_mint_f_token(
        self,
        market_address: str,
        base_in: str,
        recipient: Optional[str] = None,
        min_f_token_out: str = "0",
        estimate_gas: bool = False,
        from_address: Optional[str] = None,
    ) -> UnsignedTransaction:
        """
        Prepare an f-token mint.

        With ``estimate_gas`` the API simulates the call from ``from_address``
        and fills ``estimated_gas`` / ``estimated_gas_cost_wei``.
        """
        params = None
        if estimate_gas:
            params = {"estimate_gas": True}
            if from_address is not None:
                params["from_address"] = from_address
        body = MintFTokenRequest(
            market_address=market_address,
            base_in=base_in,
            recipient=recipient,
            min_f_token_out=min_f_token_out,
        )
        return await self._prepare("/transactions/mint/f-token/prepare", body, params)

    async def prepare_mint_x_token(self, market_address: str, base_in: str,
                                   recipient: Optional[str] = None,
                                   min_x_token_out: str = "0") -> UnsignedTransaction:
        body = MintXTokenRequest(
            market_address=market_address,
            base_in=base_in,
            recipient=recipient,
            min_x_token_out=min_x_token_out,
        )
        return await self._prepare("/transactions/mint/x-token/prepare", body)

    async def prepare_mint_both_tokens(self, market_address: str, base_in: str,
                                       recipient: Optional[str] = None,
                                       min_f_token_out: str = "0",
                                       min_x_token_out: str = "0") -> UnsignedTransaction:
        body = MintBothTokensRequest(
            market_address=market_address,
            base_in=base_in,
            recipient=recipient,
            min_f_token_out=min_f_token_out,
            min_x_token_out=min_x_token_out,
        )
        return await self._prepare("/transactions/mint/both/prepare", body)

    async def prepare_approve(self, token_address: str, spender_address: str,
                              amount: str) -> UnsignedTransaction:
        body = ApproveRequest(
            token_address=token_address, spender_address=spender_address, amount=amount
        )
        return await self._prepare("/transactions/approve/prepare", body)

    async def prepare_transfer(self, token_address: str, recipient_address: str,
                               amount: str) -> UnsignedTransaction:
        body = TransferRequest(
            token_address=token_address, recipient_address=recipient_address, amount=amount
        )
        return await self._prepare("/transactions/transfer/prepare", body)

    async def prepare_redeem(self, market_address: str, f_token_in: str = "0",
                             x_token_in: str = "0", recipient: Optional[str] = None,
                             min_base_out: str = "0") -> UnsignedTransaction:
        body = RedeemRequest(
            market_address=market_address,
            f_token_in=f_token_in,
            x_token_in=x_token_in,
            recipient=recipient,
            min_base_out=min_base_out,
        )
        return await self._prepare("/transactions/redeem/prepare", body)

    async def prepare_redeem_via_treasury(self, f_token_in: str = "0", x_token_in: str = "0",
                                          owner: Optional[str] = None) -> UnsignedTransaction:
        body = RedeemViaTreasuryRequest(f_token_in=f_token_in, x_token_in=x_token_in, owner=owner)
        return await self._prepare("/transactions/redeem/treasury/prepare", body)

    async def prepare_rebalance_pool_deposit(self, pool_address: str, amount: str,
                                             recipient: Optional[str] = None) -> UnsignedTransaction:
        body = RebalancePoolDepositRequest(amount=amount, recipient=recipient)
        return await self._prepare(
            f"/transactions/v1/rebalance-pool/{pool_address}/deposit/prepare", body
        )

    async def prepare_rebalance_pool_withdraw(self, pool_address: str,
                                              claim_rewards: bool = True) -> UnsignedTransaction:
        body = RebalancePoolWithdrawRequest(claim_rewards=claim_rewards)
        return await self._prepare(
            f"/transactions/v1/rebalance-pool/{pool_address}/withdraw/prepare", body
        )

    async def prepare_rebalance_pool_unlock(self, pool_address: str,
                                            amount: str) -> UnsignedTransaction:
        return await self._prepare(
            f"/transactions/v1/rebalance-pool/{pool_address}/unlock/prepare",
            AmountRequest(amount=amount),
        )

    async def prepare_rebalance_pool_claim(self, pool_address: str,
                                           tokens: List[str]) -> UnsignedTransaction:
        return await self._prepare(
            f"/transactions/v1/rebalance-pool/{pool_address}/claim/prepare",
            RebalancePoolClaimRequest(tokens=tokens),
        )

    async def prepare_savings_deposit(self, amount: str) -> UnsignedTransaction:
        return await self._prepare("/transactions/savings/deposit/prepare", AmountRequest(amount=amount))

    async def prepare_savings_redeem(self, amount: str) -> UnsignedTransaction:
        return await self._prepare("/transactions/savings/redeem/prepare", AmountRequest(amount=amount))

    async def prepare_stability_pool_deposit(self, amount: str) -> UnsignedTransaction:
        return await self._prepare(
            "/transactions/stability-pool/deposit/prepare", AmountRequest(amount=amount)
        )

    async def prepare_stability_pool_withdraw(self, amount: str) -> UnsignedTransaction:
        return await self._prepare(
            "/transactions/stability-pool/withdraw/prepare", AmountRequest(amount=amount)
        )

    async def prepare_operate_position(self, position_id: int, pool_address: str,
                                       new_collateral: str, new_debt: str) -> UnsignedTransaction:
        body = OperatePositionRequest(
            pool_address=pool_address, new_collateral=new_collateral, new_debt=new_debt
        )
        return await self._prepare(f"/transactions/v2/position/{position_id}/operate/prepare", body)

    async def prepare_rebalance_position(self, position_id: int, pool_address: str,
                                         receiver: Optional[str] = None) -> UnsignedTransaction:
        body = PositionReceiverRequest(pool_address=pool_address, receiver=receiver)
        return await self._prepare(f"/transactions/v2/position/{position_id}/rebalance/prepare", body)

    async def prepare_liquidate_position(self, position_id: int, pool_address: str,
                                         receiver: Optional[str] = None) -> UnsignedTransaction:
        body = PositionReceiverRequest(pool_address=pool_address, receiver=receiver)
        return await self._prepare(f"/transactions/v2/position/{position_id}/liquidate/prepare", body)

    async def prepare_gauge_vote(self, gauge_address: str, weight: str) -> UnsignedTransaction:
        return await self._prepare(
            f"/transactions/gauges/{gauge_address}/vote/prepare", GaugeVoteRequest(weight=weight)
        )

    async def prepare_gauge_claim(self, gauge_address: str,
                                  token_address: Optional[str] = None) -> UnsignedTransaction:
        return await self._prepare(
            f"/transactions/gauges/{gauge_address}/claim/prepare",
            GaugeClaimRequest(token_address=token_address),
        )

    async def prepare_claim_all_gauge_rewards(
        self, gauge_addresses: Optional[List[str]] = None
    ) -> PreparedTransactionsResponse:
        """Prepare one claim transaction per gauge; all gauges when none are given."""
        return await self.post_json(
            "/transactions/gauges/claim-all/prepare",
            ClaimAllGaugeRewardsRequest(gauge_addresses=gauge_addresses),
            PreparedTransactionsResponse,
        )

    async def prepare_vefxn_deposit(self, amount: str, unlock_time: int) -> UnsignedTransaction:
        return await self._prepare(
            "/transactions/vefxn/deposit/prepare",
            VeFxnDepositRequest(amount=amount, unlock_time=unlock_time),
        )

    async def prepare_harvest(self, pool_address: str) -> UnsignedTransaction:
        return await self._prepare(
            f"/transactions/pool-manager/{pool_address}/harvest/prepare", EmptyRequest()
        )

    async def prepare_request_bonus(self, token_address: str, amount: str,
                                    recipient: Optional[str] = None) -> UnsignedTransaction:
        body = RequestBonusRequest(token_address=token_address, amount=amount, recipient=recipient)
        return await self._prepare("/transactions/reserve-pool/request-bonus/prepare", body)

    async def prepare_mint_via_treasury(self, base_in: str, recipient: Optional[str] = None,
                                        option: int = 0) -> UnsignedTransaction:
        body = MintViaTreasuryRequest(base_in=base_in, recipient=recipient, option=option)
        return await self._prepare("/transactions/mint/treasury/prepare", body)

    async def prepare_mint_via_gateway(self, amount_eth: str, token_type: str,
                                       min_token_out: str = "0") -> UnsignedTransaction:
        body = MintViaGatewayRequest(
            amount_eth=amount_eth, min_token_out=min_token_out, token_type=token_type
        )
        return await self._prepare("/transactions/mint/gateway/prepare", body)

    async def prepare_swap(self, token_in: str, amount_in: str, encoding: int,
                           routes: List[int]) -> UnsignedTransaction:
        body = SwapRequest(token_in=token_in, amount_in=amount_in, encoding=encoding, routes=routes)
        return await self._prepare("/transactions/swap/prepare", body)

    async def prepare_flash_loan(self, token_address: str, amount: str, receiver: str,
                                 data: str = "0x") -> UnsignedTransaction:
        body = FlashLoanRequest(
            token_address=token_address, amount=amount, receiver=receiver, data=data
        )
        return await self._prepare("/transactions/flash-loan/prepare", body)

    async def prepare_treasury_harvest(self) -> UnsignedTransaction:
        return await self._prepare("/transactions/treasury/harvest/prepare", EmptyRequest())

    async def prepare_vesting_claim(self, token_type: str) -> UnsignedTransaction:
        return await self._prepare(
            f"/transactions/vesting/{token_type}/claim/prepare", EmptyRequest()
        )

    # Broadcast and status

    async def broadcast_transaction(self, raw_transaction: str) -> TransactionResponse:
        """Submit a signed raw transaction (0x-prefixed hex)."""
        return await self.post_json(
            "/transactions/broadcast",
            BroadcastTransactionRequest(raw_transaction=raw_transaction),
            TransactionResponse,
        )

    async def get_transaction_status(self, tx_hash: str) -> TransactionStatusResponse:
        return await self.get_json(f"/transactions/{tx_hash}/status", TransactionStatusResponse)
