"""Shopify Admin REST client for orders and products."""

from typing import List, Optional, Dict, Any
import logging
import re
import httpx

from .config import ShopifyAppConfig
from .errors import ShopifyAPIError
from .models.shopify_models import ShopifyProduct, ProductSummary, OrderReceipt
from .storage import ShopConfigStore

logger = logging.getLogger(__name__)

ORDER_GATEWAY = "x402 v2 Protocol"
ORDER_SOURCE = "x402-payment-bridge"
ORDER_TAGS = "x402, crypto, web3"


class ShopifyOrderClient:
    """
    Create orders and read products for any installed shop.

    Every call looks up the shop's stored access token and makes exactly one
    Admin API request. Errors surface as ShopifyAPIError; nothing is retried.
    """

    def __init__(self, config: ShopifyAppConfig, shops: ShopConfigStore, client: Optional[Any] = None):
        """
        Initialize the client.

        Args:
            config: Shopify app configuration (API version)
            shops: Store holding per-shop access tokens
            client: Optional HTTP client shared by all shops (e.g., MockShopifyClient)
        """
        self.config = config
        self.shops = shops
        self.client = client

    def _url(self, shop_domain: str, resource: str) -> str:
        return f"https://{shop_domain}/admin/api/{self.config.api_version}/{resource}.json"

    async def _make_request(self, shop_domain: str, method: str, resource: str, **kwargs) -> Dict[str, Any]:
        """
        Make an authenticated Admin API request for a shop.

        Args:
            shop_domain: Shop the request is made for
            method: HTTP method
            resource: Resource path without API prefix or `.json`
            **kwargs: Additional request parameters

        Returns:
            JSON response data
        """
        shop = self.shops.get(shop_domain)
        headers = {
            "X-Shopify-Access-Token": shop.access_token,
            "Content-Type": "application/json",
        }
        url = self._url(shop.shop_domain, resource)

        if self.client is not None:
            response = await self.client.request(method, url, headers=headers, **kwargs)
            response.raise_for_status()
            return response.json()

        async with httpx.AsyncClient(headers=headers) as client:
            response = await client.request(method, url, **kwargs)
            response.raise_for_status()
            return response.json()

    async def create_order(
        self,
        shop_domain: str,
        product_id: Optional[str],
        product_title: str,
        product_price: str,
        customer_address: str,
        tx_hash: str,
        payment_amount: str,
    ) -> OrderReceipt:
        """
        Create a paid order recording an x402 payment.

        The order note carries the chain transaction hash and payer wallet;
        that note is the only link between the order and the on-chain proof.
        """
        order = {
            "line_items": [
                {
                    "title": product_title,
                    "price": product_price,
                    "quantity": 1,
                }
            ],
            "customer": {"email": f"{customer_address[:10]}@x402.crypto"},
            "financial_status": "paid",
            "transactions": [
                {
                    "kind": "sale",
                    "status": "success",
                    "amount": product_price,
                    "gateway": ORDER_GATEWAY,
                }
            ],
            "note": f"Paid via {ORDER_GATEWAY}\nTransaction: {tx_hash}\nWallet: {customer_address}",
            "note_attributes": [
                {"name": "x402_tx_hash", "value": tx_hash},
                {"name": "x402_amount", "value": payment_amount},
            ],
            "tags": ORDER_TAGS,
            "source_name": ORDER_SOURCE,
        }
        if product_id:
            order["note_attributes"].append({"name": "x402_product_id", "value": str(product_id)})

        try:
            data = await self._make_request(shop_domain, "POST", "orders", json={"order": order})
            created = data["order"]
        except (httpx.HTTPError, KeyError, ValueError, RuntimeError) as exc:
            logger.error("shopify_order_error", extra={"shop": shop_domain, "tx_hash": tx_hash})
            raise ShopifyAPIError(f"Failed to create order: {_describe(exc)}") from exc

        logger.info("shopify_order_created", extra={"shop": shop_domain, "order_id": created.get("id")})
        return OrderReceipt(
            order_id=created["id"],
            order_number=created.get("order_number"),
            order_name=created.get("name"),
            total_price=created.get("total_price"),
            created_at=created.get("created_at"),
        )

    async def list_products(self, shop_domain: str, limit: int = 20) -> List[ProductSummary]:
        """
        Fetch active products for the storefront.

        Args:
            shop_domain: Shop to query
            limit: Maximum number of products to fetch

        Returns:
            Product summaries
        """
        try:
            data = await self._make_request(
                shop_domain, "GET", "products", params={"limit": str(limit), "status": "active"}
            )
            products = [ShopifyProduct(**p) for p in data["products"]]
        except (httpx.HTTPError, KeyError, ValueError, RuntimeError) as exc:
            raise ShopifyAPIError(f"Failed to fetch products: {_describe(exc)}") from exc
        return [summarize_product(p, description_limit=150) for p in products]

    async def get_product(self, shop_domain: str, product_id: str) -> ProductSummary:
        """
        Fetch a single product.

        Args:
            shop_domain: Shop to query
            product_id: Shopify product ID

        Returns:
            Product summary
        """
        try:
            data = await self._make_request(shop_domain, "GET", f"products/{product_id}")
            product = ShopifyProduct(**data["product"])
        except (httpx.HTTPError, KeyError, ValueError, RuntimeError) as exc:
            raise ShopifyAPIError(f"Failed to fetch product: {_describe(exc)}") from exc
        return summarize_product(product)


def html_to_text(value: Optional[str]) -> str:
    """Strip tags from Shopify body HTML."""
    if not value:
        return ""
    return re.sub(r"<[^>]*>", "", value)


def summarize_product(product: ShopifyProduct, description_limit: Optional[int] = None) -> ProductSummary:
    """Reduce a Shopify product to what the storefront shows, using its first variant."""
    description = html_to_text(product.body_html)
    if description_limit is not None:
        description = description[:description_limit]
    variant = product.variants[0] if product.variants else None
    image = product.images[0].src if product.images else None
    return ProductSummary(
        id=str(product.id),
        title=product.title,
        description=description,
        price=variant.price if variant else "0",
        compare_at_price=variant.compare_at_price if variant else None,
        image=image,
        variant_id=variant.id if variant else None,
        available=bool(variant and (variant.inventory_quantity or 0) > 0),
    )


def _describe(exc: Exception) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            body = exc.response.json()
        except ValueError:
            body = None
        errors = body.get("errors") if isinstance(body, dict) else None
        return str(errors or f"HTTP {exc.response.status_code}")
    return str(exc) or exc.__class__.__name__
