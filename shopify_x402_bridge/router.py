"""FastAPI routers for the merchant API, the storefront proxy and OAuth."""

from typing import Optional
import logging
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel, Field, ConfigDict

from .config import ShopifyAppConfig
from .errors import InvalidSignatureError, PaymentVerificationError
from .oauth import STATE_COOKIE, ShopifyOAuth, verify_proxy_signature
from .orchestrator import CheckoutOrchestrator
from .models.x402_models import PaymentRequiredResponse
from .x402 import PAYMENT_HEADER, PAYMENT_RESPONSE_HEADER, decode_payment_header, encode_payment_response

logger = logging.getLogger(__name__)

SHOP_HEADER = "X-Shopify-Shop-Domain"


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ConfigUpdateRequest(_Body):
    shop: Optional[str] = None
    wallet_address: Optional[str] = Field(None, alias="walletAddress")
    accepted_token: Optional[str] = Field(None, alias="acceptedToken")
    accepted_network: Optional[str] = Field(None, alias="acceptedNetwork")
    is_x402_enabled: Optional[bool] = Field(None, alias="isX402Enabled")


class PaymentRequestBody(_Body):
    shop: Optional[str] = None
    product_id: Optional[str] = Field(None, alias="productId")
    product_title: Optional[str] = Field(None, alias="productTitle")
    amount: Optional[str] = None


class VerifyPaymentBody(_Body):
    shop: Optional[str] = None
    tx_hash: Optional[str] = Field(None, alias="txHash")
    from_address: Optional[str] = Field(None, alias="fromAddress")
    amount: Optional[str] = None
    product_id: Optional[str] = Field(None, alias="productId")
    product_title: Optional[str] = Field(None, alias="productTitle")
    product_price: Optional[str] = Field(None, alias="productPrice")


class CheckoutBody(_Body):
    shop: Optional[str] = None
    product_id: Optional[str] = Field(None, alias="productId")


def resolve_shop(
    request: Request, body_shop: Optional[str] = None, signed_only: bool = False
) -> Optional[str]:
    """
    Shop identity for a request: `shop` query parameter, then the body's
    `shop` field, then the X-Shopify-Shop-Domain header.

    With `signed_only` only the query parameter counts; it is the only
    source covered by the app proxy signature.
    """
    if signed_only:
        return request.query_params.get("shop") or None
    return request.query_params.get("shop") or body_shop or request.headers.get(SHOP_HEADER) or None


def get_admin_router(orchestrator: CheckoutOrchestrator) -> APIRouter:
    """
    Create the merchant-facing router under /api.

    Args:
        orchestrator: Checkout orchestrator handling each request

    Returns:
        APIRouter with config and payment endpoints
    """
    router = APIRouter(prefix="/api", tags=["x402"])

    @router.get("/config")
    async def get_config(request: Request):
        """Payment settings for a shop."""
        return orchestrator.get_config(resolve_shop(request))

    @router.post("/config")
    async def update_config(request: Request, body: ConfigUpdateRequest):
        """Update wallet, token, network or the enabled flag."""
        config = orchestrator.update_config(
            resolve_shop(request, body.shop),
            wallet_address=body.wallet_address,
            accepted_token=body.accepted_token,
            accepted_network=body.accepted_network,
            is_x402_enabled=body.is_x402_enabled,
        )
        return {"success": True, "config": config}

    @router.post("/payment/request")
    async def payment_request(request: Request, body: PaymentRequestBody):
        """Create x402 payment request metadata for a product."""
        info = orchestrator.create_payment_request(
            resolve_shop(request, body.shop), body.product_id, body.product_title, body.amount
        )
        return info.model_dump(mode="json")

    @router.post("/payment/verify")
    async def payment_verify(request: Request, body: VerifyPaymentBody):
        """Verify a transaction, record the payment and create the order."""
        result = await orchestrator.verify_payment(
            resolve_shop(request, body.shop),
            body.tx_hash,
            body.from_address,
            body.amount,
            product_id=body.product_id,
            product_title=body.product_title,
            product_price=body.product_price,
        )
        return result.to_response()

    @router.get("/payments")
    async def list_payments(request: Request):
        """Most recent payments for a shop, newest first."""
        payments = orchestrator.list_payments(resolve_shop(request))
        return {"success": True, "payments": [p.to_dict() for p in payments]}

    return router


def get_proxy_router(orchestrator: CheckoutOrchestrator, config: ShopifyAppConfig) -> APIRouter:
    """
    Create the storefront router served through the Shopify app proxy.

    Args:
        orchestrator: Checkout orchestrator handling each request
        config: Shopify app configuration (proxy signature settings)

    Returns:
        APIRouter under /shopify-proxy/api
    """
    dependencies = []
    if config.verify_proxy_signature:
        async def check_proxy_signature(request: Request):
            if not verify_proxy_signature(request.query_params.multi_items(), config.api_secret):
                raise InvalidSignatureError("Invalid app proxy signature")
        dependencies.append(Depends(check_proxy_signature))

    router = APIRouter(prefix="/shopify-proxy/api", tags=["x402-proxy"], dependencies=dependencies)

    def shop_for(request: Request, body_shop: Optional[str] = None) -> Optional[str]:
        return resolve_shop(request, body_shop, signed_only=config.verify_proxy_signature)

    @router.get("/config")
    async def proxy_config(request: Request):
        config_data = orchestrator.get_proxy_config(shop_for(request))
        return {"success": True, "enabled": True, "config": config_data}

    @router.get("/products")
    async def proxy_products(request: Request, limit: int = 20):
        shop = shop_for(request)
        products = await orchestrator.list_products(shop, limit)
        logger.info("proxy_products_listed", extra={"shop": shop, "count": len(products)})
        return {"success": True, "products": [p.model_dump(mode="json", by_alias=True) for p in products]}

    @router.get("/products/{product_id}")
    async def proxy_product(request: Request, product_id: str):
        product = await orchestrator.get_product(shop_for(request), product_id)
        return {"success": True, "product": product.model_dump(mode="json", by_alias=True)}

    @router.post("/payment/request")
    async def proxy_payment_request(request: Request, body: PaymentRequestBody):
        info = orchestrator.create_payment_request(
            shop_for(request, body.shop), body.product_id, body.product_title, body.amount
        )
        return info.model_dump(mode="json")

    @router.post("/payment/verify")
    async def proxy_payment_verify(request: Request, body: VerifyPaymentBody):
        result = await orchestrator.verify_payment(
            shop_for(request, body.shop),
            body.tx_hash,
            body.from_address,
            body.amount,
            product_id=body.product_id,
            product_title=body.product_title,
            product_price=body.product_price,
        )
        return result.to_response()

    @router.post("/checkout")
    async def proxy_checkout(request: Request, body: CheckoutBody):
        """
        Pay for a product with an X-PAYMENT header.

        Without the header the response is a 402 challenge describing what to
        pay; the price always comes from the Shopify product.
        """
        shop = shop_for(request, body.shop)
        product = await orchestrator.get_product(shop, body.product_id)
        requirement = orchestrator.build_requirement(
            shop, product.price, f"Purchase of {product.title}", resource=str(request.url)
        )

        header = request.headers.get(PAYMENT_HEADER)
        if not header:
            challenge = PaymentRequiredResponse(
                error=f"{PAYMENT_HEADER} header is required", accepts=[requirement]
            )
            return JSONResponse(status_code=402, content=challenge.model_dump(mode="json", by_alias=True))

        proof = decode_payment_header(header)
        try:
            result = await orchestrator.verify_payment(
                shop,
                proof.tx_hash,
                proof.from_address,
                product.price,
                product_id=product.id,
                product_title=product.title,
                product_price=product.price,
            )
        except PaymentVerificationError as exc:
            challenge = PaymentRequiredResponse(error=exc.message, accepts=[requirement])
            content = {**exc.payload, **challenge.model_dump(mode="json", by_alias=True)}
            return JSONResponse(status_code=402, content=content)

        return JSONResponse(
            content=result.to_response(),
            headers={PAYMENT_RESPONSE_HEADER: encode_payment_response(
                result.verified, result.transaction, requirement.network
            )},
        )

    return router


def get_auth_router(oauth: ShopifyOAuth) -> APIRouter:
    """Create the OAuth install routes."""
    router = APIRouter(prefix="/api/auth", tags=["auth"])

    @router.get("")
    async def auth_begin(request: Request):
        url, state = oauth.begin(request.query_params.get("shop"))
        response = RedirectResponse(url, status_code=302)
        response.set_cookie(STATE_COOKIE, state, httponly=True, secure=True, samesite="lax", max_age=600)
        return response

    @router.get("/callback")
    async def auth_callback(request: Request):
        shop = await oauth.callback(request.query_params.multi_items(), request.cookies.get(STATE_COOKIE))
        host = request.query_params.get("host", "")
        response = RedirectResponse(f"/?shop={shop.shop_domain}&host={host}", status_code=302)
        response.delete_cookie(STATE_COOKIE)
        return response

    return router
