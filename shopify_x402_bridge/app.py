"""FastAPI application wiring."""

from contextlib import asynccontextmanager
from typing import Any, Optional
import logging
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.orm import sessionmaker

from .config import BridgeConfig
from .database import create_db_engine, create_session_factory, init_db
from .errors import BridgeError
from .facilitator import FacilitatorClient
from .mock_client import MockShopifyClient
from .oauth import ShopifyOAuth
from .orchestrator import CheckoutOrchestrator
from .router import get_admin_router, get_auth_router, get_proxy_router
from .shopify_client import ShopifyOrderClient
from .storage import PaymentStore, ShopConfigStore
from .telemetry import get_verification_duration_histogram

logger = logging.getLogger(__name__)


def install_error_handlers(app: FastAPI) -> None:
    """Render every failure as a JSON error body instead of crashing the request."""

    @app.exception_handler(BridgeError)
    async def bridge_error_handler(_request: Request, exc: BridgeError):
        if exc.status_code >= 500:
            logger.error("request_failed", extra={"error": exc.message})
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(_request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid request body", "success": False, "details": jsonable_errors(exc)},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(_request: Request, exc: Exception):
        logger.exception("unhandled_error")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": str(exc) or exc.__class__.__name__, "success": False},
        )


def jsonable_errors(exc: RequestValidationError) -> list:
    return [{"loc": list(err.get("loc", ())), "msg": err.get("msg")} for err in exc.errors()]


def create_app(
    config: BridgeConfig,
    session_factory: Optional[sessionmaker] = None,
    facilitator: Optional[FacilitatorClient] = None,
    shopify_client: Optional[Any] = None,
    oauth_client: Optional[Any] = None,
) -> FastAPI:
    """
    Build the bridge application.

    Args:
        config: Bridge configuration
        session_factory: Optional SQLAlchemy session factory (tables must exist)
        facilitator: Optional facilitator client
        shopify_client: Optional HTTP client for the Shopify Admin API
        oauth_client: Optional HTTP client for the OAuth token exchange

    Returns:
        FastAPI app

    Example:
        app = create_app(BridgeConfig.from_env())

        # Run with uvicorn:
        # uvicorn app:app --host 0.0.0.0 --port 3000
    """
    if session_factory is None:
        engine = create_db_engine(config.database)
        init_db(engine)
        session_factory = create_session_factory(engine)

    if shopify_client is None and config.sandbox:
        shopify_client = MockShopifyClient()

    shops = ShopConfigStore(session_factory)
    payments = PaymentStore(session_factory)
    orchestrator = CheckoutOrchestrator(
        shops=shops,
        payments=payments,
        facilitator=facilitator or FacilitatorClient(config.facilitator),
        orders=ShopifyOrderClient(config.shopify, shops, client=shopify_client),
        duration_histogram=get_verification_duration_histogram() if config.enable_metrics else None,
        payments_page_size=config.payments_page_size,
    )
    oauth = ShopifyOAuth(config.shopify, shops, client=oauth_client)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        await orchestrator.facilitator.close()

    app = FastAPI(title="Shopify x402 Payment Bridge", lifespan=lifespan)
    app.state.config = config
    app.state.orchestrator = orchestrator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-PAYMENT-RESPONSE"],
    )
    install_error_handlers(app)

    app.include_router(get_auth_router(oauth))
    app.include_router(get_admin_router(orchestrator))
    app.include_router(get_proxy_router(orchestrator, config.shopify))

    @app.get("/", response_class=PlainTextResponse)
    async def root():
        return "Shopify x402 Bridge - Running"

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app
