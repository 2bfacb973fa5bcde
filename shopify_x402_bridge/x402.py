"""x402 payment requests, requirements and header codecs."""

import base64
import binascii
import json
import time
from typing import Optional

from pydantic import ValidationError

from .errors import InvalidPaymentHeaderError, ShopNotConfiguredError
from .models.db_models import Shop
from .models.x402_models import (
    PaymentProof,
    PaymentRequestInfo,
    PaymentRequestMetadata,
    PaymentRequirement,
    TransactionInfo,
)

PROTOCOL_VERSION = "2.0"
PAYMENT_HEADER = "X-PAYMENT"
PAYMENT_RESPONSE_HEADER = "X-PAYMENT-RESPONSE"


def require_configured(shop: Shop) -> None:
    if not shop.is_configured:
        raise ShopNotConfiguredError(
            "Payment settings incomplete: wallet address, token and network are required"
        )


def generate_payment_request(
    shop: Shop,
    amount: str,
    product_id: Optional[str] = None,
    product_title: Optional[str] = None,
) -> PaymentRequestInfo:
    """Build the payment request the storefront hands to the buyer's wallet."""
    require_configured(shop)
    return PaymentRequestInfo(
        version=PROTOCOL_VERSION,
        recipient=shop.wallet_address,
        token=shop.accepted_token,
        amount=amount,
        network=shop.accepted_network,
        metadata=PaymentRequestMetadata(
            productId=product_id,
            productTitle=product_title,
            timestamp=int(time.time() * 1000),
        ),
    )


def build_verification_requirement(
    shop: Shop,
    amount: str,
    description: str,
    resource: str = "",
    max_timeout_seconds: int = 60,
) -> PaymentRequirement:
    """
    Describe what a buyer must pay to unlock `resource`.

    Pure function of the shop settings; the same requirement is used for the
    402 challenge and for the later verification call.
    """
    require_configured(shop)
    return PaymentRequirement(
        network=shop.accepted_network,
        max_amount_required=amount,
        pay_to=shop.wallet_address,
        asset=shop.accepted_token,
        resource=resource,
        description=description,
        max_timeout_seconds=max_timeout_seconds,
        extra={"shop": shop.shop_domain},
    )


def decode_payment_header(value: str) -> PaymentProof:
    """Decode a base64 JSON X-PAYMENT header."""
    try:
        raw = base64.b64decode(value, validate=True)
        data = json.loads(raw)
        return PaymentProof(**data)
    except (binascii.Error, ValueError, TypeError, ValidationError) as exc:
        raise InvalidPaymentHeaderError(f"Invalid {PAYMENT_HEADER} header") from exc


def encode_payment_header(tx_hash: str, from_address: str) -> str:
    payload = {"txHash": tx_hash, "fromAddress": from_address}
    return base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")


def encode_payment_response(verified: bool, transaction: TransactionInfo, network: str) -> str:
    """Settlement summary returned to the client in X-PAYMENT-RESPONSE."""
    payload = {
        "success": verified,
        "transaction": transaction.hash,
        "network": network,
        "payer": transaction.from_,
    }
    return base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")
