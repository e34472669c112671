"""Request and response models for the f(x) Protocol REST API."""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class APIModel(BaseModel):
    """Base model: accepts wire aliases or field names, ignores unknown fields."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_wire(self) -> Dict[str, Any]:
        """Serialize using wire names, omitting unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


# Balance models

class AllBalancesResponse(APIModel):
    address: str
    balances: Dict[str, str]  # token name -> balance as decimal string
    total_usd_value: Optional[str] = None


class BalanceResponse(APIModel):
    address: str
    token: str
    balance: str
    token_address: Optional[str] = None


# Protocol models

class ProtocolInfoResponse(APIModel):
    base_nav: str
    f_nav: str
    x_nav: str
    source: str
    note: Optional[str] = None


class TokenNavResponse(APIModel):
    token: str
    nav: str
    source: str
    note: Optional[str] = None


class RebalancePoolsResponse(APIModel):
    rebalance_pools: List[str]


class HealthResponse(APIModel):
    status: str
    version: str


class StatusResponse(APIModel):
    status: str
    version: str
    environment: str
    rpc_connected: bool
    components: Optional[Dict[str, Any]] = None


# Transaction models

class UnsignedTransaction(APIModel):
    """
    Unsigned transaction returned by a prepare endpoint.

    ``value`` and the gas price fields are quantity strings (hex when
    0x-prefixed, decimal otherwise). Either
    ``gas_price`` (legacy) or both fee-market fields are expected; the signer
    rejects a transaction carrying neither.
    """

    to: str
    data: str
    value: str
    gas: int
    gas_price: Optional[str] = Field(default=None, alias="gasPrice")
    max_fee_per_gas: Optional[str] = Field(default=None, alias="maxFeePerGas")
    max_priority_fee_per_gas: Optional[str] = Field(default=None, alias="maxPriorityFeePerGas")
    nonce: int
    chain_id: int = Field(alias="chainId")
    estimated_gas: Optional[int] = None
    estimated_gas_cost_wei: Optional[str] = None

    @property
    def is_fee_market(self) -> bool:
        return self.max_fee_per_gas is not None and self.max_priority_fee_per_gas is not None


class PreparedTransactionsResponse(APIModel):
    transactions: List[UnsignedTransaction]
    count: int


class BroadcastTransactionRequest(APIModel):
    raw_transaction: str = Field(alias="rawTransaction")


class TransactionResponse(APIModel):
    success: bool
    transaction_hash: str
    status: str
    gas_estimate: Optional[int] = None
    block_number: Optional[int] = None


class TransactionStatusResponse(APIModel):
    transaction_hash: str
    status: str
    block_number: Optional[int] = None
    confirmations: Optional[int] = None
    gas_used: Optional[int] = None
    effective_gas_price: Optional[str] = None
    error: Optional[str] = None


class ErrorResponse(APIModel):
    error: bool
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None


# Request models

class MintFTokenRequest(APIModel):
    market_address: str
    base_in: str
    recipient: Optional[str] = None
    min_f_token_out: str = "0"


class MintXTokenRequest(APIModel):
    market_address: str
    base_in: str
    recipient: Optional[str] = None
    min_x_token_out: str = "0"


class MintBothTokensRequest(APIModel):
    market_address: str
    base_in: str
    recipient: Optional[str] = None
    min_f_token_out: str = "0"
    min_x_token_out: str = "0"


class ApproveRequest(APIModel):
    token_address: str
    spender_address: str
    amount: str


class TransferRequest(APIModel):
    token_address: str
    recipient_address: str
    amount: str


class RedeemRequest(APIModel):
    market_address: str
    f_token_in: str = "0"
    x_token_in: str = "0"
    recipient: Optional[str] = None
    min_base_out: str = "0"


class RedeemViaTreasuryRequest(APIModel):
    f_token_in: str = "0"
    x_token_in: str = "0"
    owner: Optional[str] = None


class RebalancePoolDepositRequest(APIModel):
    amount: str
    recipient: Optional[str] = None


class RebalancePoolWithdrawRequest(APIModel):
    claim_rewards: bool = True


class AmountRequest(APIModel):
    """Body for endpoints that only take an amount (unlock, savings, stability pool)."""

    amount: str


class RebalancePoolClaimRequest(APIModel):
    tokens: List[str]


class OperatePositionRequest(APIModel):
    pool_address: str
    new_collateral: str
    new_debt: str


class PositionReceiverRequest(APIModel):
    """Body for rebalance and liquidate position."""

    pool_address: str
    receiver: Optional[str] = None


class GaugeVoteRequest(APIModel):
    weight: str


class GaugeClaimRequest(APIModel):
    token_address: Optional[str] = None


class ClaimAllGaugeRewardsRequest(APIModel):
    gauge_addresses: Optional[List[str]] = None


class VeFxnDepositRequest(APIModel):
    amount: str
    unlock_time: int


class EmptyRequest(APIModel):
    """Body for endpoints whose parameters are all in the path."""


class RequestBonusRequest(APIModel):
    token_address: str
    amount: str
    recipient: Optional[str] = None


class MintViaTreasuryRequest(APIModel):
    base_in: str
    recipient: Optional[str] = None
    option: int = 0


class MintViaGatewayRequest(APIModel):
    amount_eth: str
    min_token_out: str = "0"
    token_type: str


class SwapRequest(APIModel):
    token_in: str
    amount_in: str
    encoding: int
    routes: List[int]


class FlashLoanRequest(APIModel):
    token_address: str
    amount: str
    receiver: str
    data: str = "0x"
