"""Checkout flow: resolve shop, verify payment, record it, create the order."""

import logging
from time import perf_counter
from typing import Any, List, Optional

from pydantic import BaseModel, Field, ConfigDict

from .errors import (
    DuplicatePaymentError,
    MissingParameterError,
    PaymentsDisabledError,
    PaymentVerificationError,
    ShopifyAPIError,
)
from .facilitator import FacilitatorClient
from .models.db_models import Payment, PaymentStatus, Shop
from .models.shopify_models import OrderReceipt, ProductSummary
from .models.x402_models import PaymentRequestInfo, PaymentRequirement, TransactionInfo
from .shopify_client import ShopifyOrderClient
from .storage import PaymentStore, ShopConfigStore
from .x402 import build_verification_requirement, generate_payment_request, require_configured

logger = logging.getLogger(__name__)


class CheckoutResult(BaseModel):
    """Response of a payment verification."""
    verified: bool
    payment_id: str = Field(alias="paymentId")
    status: str
    transaction: TransactionInfo
    order: Optional[OrderReceipt] = None

    model_config = ConfigDict(populate_by_name=True)

    def to_response(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


def _require(**fields: Any) -> None:
    missing = [name for name, value in fields.items() if value in (None, "")]
    if missing:
        raise MissingParameterError(
            "Missing required parameters", payload={"missing": missing}
        )


class CheckoutOrchestrator:
    """
    Ties the shop store, payment store, facilitator and Shopify client together.

    Each public method handles one HTTP request from start to finish. There is
    no compensation: a payment recorded as completed stays completed even if
    the Shopify order cannot be created.
    """

    def __init__(
        self,
        shops: ShopConfigStore,
        payments: PaymentStore,
        facilitator: FacilitatorClient,
        orders: ShopifyOrderClient,
        duration_histogram: Optional[Any] = None,
        payments_page_size: int = 50,
    ):
        self.shops = shops
        self.payments = payments
        self.facilitator = facilitator
        self.orders = orders
        self.duration_histogram = duration_histogram
        self.payments_page_size = payments_page_size

    # Merchant configuration

    def get_config(self, shop_domain: Optional[str]) -> dict:
        _require(shop=shop_domain)
        return self.shops.get(shop_domain).config_dict()

    def get_proxy_config(self, shop_domain: Optional[str]) -> dict:
        """Storefront view of the config; disabled shops are refused."""
        _require(shop=shop_domain)
        shop = self.shops.get(shop_domain)
        if not shop.is_x402_enabled:
            raise PaymentsDisabledError(
                "x402 payments not enabled. Please enable in app settings.",
                payload={"enabled": False},
            )
        return shop.config_dict()

    def update_config(
        self,
        shop_domain: Optional[str],
        wallet_address: Optional[str] = None,
        accepted_token: Optional[str] = None,
        accepted_network: Optional[str] = None,
        is_x402_enabled: Optional[bool] = None,
    ) -> dict:
        _require(shop=shop_domain)
        shop = self.shops.update(
            shop_domain,
            wallet_address=wallet_address,
            accepted_token=accepted_token,
            accepted_network=accepted_network,
            is_x402_enabled=is_x402_enabled,
        )
        return shop.config_dict()

    def _payable_shop(self, shop_domain: str) -> Shop:
        shop = self.shops.get(shop_domain)
        if not shop.is_x402_enabled:
            raise PaymentsDisabledError("x402 payments not enabled")
        return shop

    # Payments

    def create_payment_request(
        self,
        shop_domain: Optional[str],
        product_id: Optional[str],
        product_title: Optional[str],
        amount: Optional[str],
    ) -> PaymentRequestInfo:
        _require(shop=shop_domain, productId=product_id, amount=amount)
        shop = self._payable_shop(shop_domain)
        return generate_payment_request(shop, amount, product_id, product_title)

    def build_requirement(
        self, shop_domain: str, amount: str, description: str, resource: str = ""
    ) -> PaymentRequirement:
        shop = self._payable_shop(shop_domain)
        return build_verification_requirement(shop, amount, description, resource)

    async def verify_payment(
        self,
        shop_domain: Optional[str],
        tx_hash: Optional[str],
        from_address: Optional[str],
        amount: Optional[str],
        product_id: Optional[str] = None,
        product_title: Optional[str] = None,
        product_price: Optional[str] = None,
    ) -> CheckoutResult:
        """
        Verify a buyer's transfer, record it, and create the Shopify order.

        Raises:
            PaymentVerificationError: the facilitator did not confirm the
                transfer; the failed payment is still recorded
            DuplicatePaymentError: the transaction hash was already recorded
            ShopifyAPIError: the order could not be created after the payment
                was recorded as completed
        """
        _require(shop=shop_domain, txHash=tx_hash, fromAddress=from_address, amount=amount)
        shop = self._payable_shop(shop_domain)
        require_configured(shop)

        if self.payments.find_by_tx_hash(tx_hash) is not None:
            raise DuplicatePaymentError(tx_hash)

        start = perf_counter()
        verification = await self.facilitator.verify(
            tx_hash=tx_hash,
            network=shop.accepted_network,
            from_address=from_address,
            to_address=shop.wallet_address,
            token_address=shop.accepted_token,
            amount=amount,
        )
        duration_ms = (perf_counter() - start) * 1000
        if self.duration_histogram:
            self.duration_histogram.record(
                duration_ms, attributes={"network": shop.accepted_network, "verified": verification.verified}
            )

        if verification.verified:
            status, facilitator_status = PaymentStatus.COMPLETED, PaymentStatus.VERIFIED
        else:
            facilitator_status = verification.status
            if facilitator_status == PaymentStatus.VERIFIED:
                facilitator_status = PaymentStatus.FAILED
            status = PaymentStatus.FAILED

        payment = self.payments.create(
            shop,
            tx_hash=tx_hash,
            amount=amount,
            from_address=from_address,
            status=status,
            facilitator_status=facilitator_status,
            verification_data=verification.model_dump(mode="json", by_alias=True),
            product_id=product_id,
            product_title=product_title,
        )
        logger.info(
            "payment_verification_finished",
            extra={"shop": shop.shop_domain, "payment_id": payment.id, "verified": verification.verified,
                   "duration_ms": duration_ms},
        )

        result = CheckoutResult(
            verified=verification.verified,
            payment_id=payment.id,
            status=payment.status,
            transaction=verification.transaction,
        )
        if not verification.verified:
            raise PaymentVerificationError("Payment verification failed", payload=result.to_response())

        try:
            result.order = await self.orders.create_order(
                shop_domain=shop.shop_domain,
                product_id=product_id,
                product_title=product_title or payment.product_title,
                product_price=product_price or amount,
                customer_address=from_address,
                tx_hash=tx_hash,
                payment_amount=amount,
            )
        except ShopifyAPIError as exc:
            # Payment stays completed; the id lets the merchant reconcile by hand
            logger.error(
                "order_creation_failed_after_payment",
                extra={"shop": shop.shop_domain, "payment_id": payment.id},
            )
            exc.payload.update({"paymentId": payment.id, "verified": True, "status": payment.status})
            raise
        return result

    def list_payments(self, shop_domain: Optional[str], limit: Optional[int] = None) -> List[Payment]:
        _require(shop=shop_domain)
        shop = self.shops.get(shop_domain)
        return self.payments.list_for_shop(shop, limit or self.payments_page_size)

    # Catalog

    async def list_products(self, shop_domain: Optional[str], limit: int = 20) -> List[ProductSummary]:
        _require(shop=shop_domain)
        return await self.orders.list_products(shop_domain, limit)

    async def get_product(self, shop_domain: Optional[str], product_id: Optional[str]) -> ProductSummary:
        _require(shop=shop_domain, productId=product_id)
        return await self.orders.get_product(shop_domain, product_id)
