"""Data models: database tables, Shopify resources and x402 messages."""

from .db_models import Shop, Payment, PaymentStatus
from .shopify_models import (
    ShopifyProduct,
    ShopifyVariant,
    ShopifyImage,
    ProductSummary,
    OrderReceipt,
)
from .x402_models import (
    TransactionInfo,
    VerificationResult,
    PaymentRequestInfo,
    PaymentRequestMetadata,
    PaymentRequirement,
    PaymentRequiredResponse,
    PaymentProof,
)

__all__ = [
    "Shop",
    "Payment",
    "PaymentStatus",
    "ShopifyProduct",
    "ShopifyVariant",
    "ShopifyImage",
    "ProductSummary",
    "OrderReceipt",
    "TransactionInfo",
    "VerificationResult",
    "PaymentRequestInfo",
    "PaymentRequestMetadata",
    "PaymentRequirement",
    "PaymentRequiredResponse",
    "PaymentProof",
]
