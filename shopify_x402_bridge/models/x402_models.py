"""Pydantic models for the x402 payment protocol."""

from typing import Optional, List, Dict, Any, Literal
from pydantic import BaseModel, Field, ConfigDict


class TransactionInfo(BaseModel):
    """On-chain transfer as reported by the facilitator."""
    hash: str
    from_: str = Field(alias="from")
    to: str
    value: str
    token: str
    block_number: int = Field(0, alias="blockNumber")
    timestamp: int = 0

    # amounts and hashes may arrive as JSON numbers
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)


class VerificationResult(BaseModel):
    """Outcome of a facilitator verification call."""
    verified: bool
    transaction: TransactionInfo
    status: str


class PaymentRequestMetadata(BaseModel):
    productId: Optional[str] = None
    productTitle: Optional[str] = None
    timestamp: int


class PaymentRequestInfo(BaseModel):
    """Payment request handed to the storefront wallet."""
    protocol: Literal["x402"] = "x402"
    version: str = "2.0"
    recipient: str
    token: str
    amount: str
    network: str
    metadata: PaymentRequestMetadata


class PaymentRequirement(BaseModel):
    """x402 payment requirement advertised in a 402 challenge."""
    scheme: Literal["exact"] = "exact"
    network: str
    max_amount_required: str = Field(alias="maxAmountRequired")
    pay_to: str = Field(alias="payTo")
    asset: str
    resource: str
    description: str = ""
    mime_type: str = Field("application/json", alias="mimeType")
    max_timeout_seconds: int = Field(60, alias="maxTimeoutSeconds")
    extra: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(populate_by_name=True)


class PaymentRequiredResponse(BaseModel):
    x402_version: int = Field(2, alias="x402Version")
    error: str
    accepts: List[PaymentRequirement]

    model_config = ConfigDict(populate_by_name=True)


class PaymentProof(BaseModel):
    """Decoded X-PAYMENT header: which transfer the buyer claims to have made."""
    tx_hash: str = Field(alias="txHash", min_length=1)
    from_address: str = Field(alias="fromAddress", min_length=1)

    model_config = ConfigDict(populate_by_name=True)
