import json

import httpx
import pytest

from shopify_x402_bridge.config import BridgeConfig
from shopify_x402_bridge.database import create_db_engine, create_session_factory, init_db
from shopify_x402_bridge.facilitator import FacilitatorClient
from shopify_x402_bridge.storage import PaymentStore, ShopConfigStore

DEMO_SHOP = "demo.myshopify.com"


def make_config(db_url: str = "sqlite://", **overrides) -> BridgeConfig:
    data = {
        "shopify": {
            "api_key": "test_key",
            "api_secret": "test_secret",
            "host": "https://bridge.test",
            "api_version": "2025-07",
        },
        "database": {"url": db_url},
    }
    data.update(overrides)
    return BridgeConfig(**data)


def verified_payload(tx_hash="0xdeadbeef", sender="0xBuyer", amount="10"):
    return {
        "verified": True,
        "status": "verified",
        "transaction": {
            "hash": tx_hash,
            "from": sender,
            "to": "0xWallet",
            "value": amount,
            "token": "USDC",
            "blockNumber": 123456,
            "timestamp": 1767225600000,
        },
    }


class FakeFacilitator:
    """Facilitator double served through httpx.MockTransport."""

    def __init__(self, payload=None, status_code=200, error=None):
        self.payload = payload if payload is not None else verified_payload()
        self.status_code = status_code
        self.error = error
        self.calls = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(json.loads(request.content))
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, json=self.payload)

    def client(self, config) -> FacilitatorClient:
        http = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return FacilitatorClient(config.facilitator, client=http)


class FakeShopify:
    """Shopify Admin API double served through httpx.MockTransport."""

    def __init__(self, order_status=201):
        self.order_status = order_status
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.method == "POST" and path.endswith("/orders.json"):
            if self.order_status >= 400:
                return httpx.Response(self.order_status, json={"errors": "Order could not be created"})
            order = json.loads(request.content)["order"]
            return httpx.Response(201, json={
                "order": {
                    "id": 5001,
                    "order_number": 1001,
                    "name": "#1001",
                    "total_price": order["line_items"][0]["price"],
                    "created_at": "2026-01-01T00:00:00Z",
                }
            })
        if request.method == "GET" and path.endswith("/products.json"):
            return httpx.Response(200, json={"products": [sample_product()]})
        if request.method == "GET" and path.endswith("/products/42.json"):
            return httpx.Response(200, json={"product": sample_product()})
        return httpx.Response(404, json={"errors": "Not Found"})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @property
    def orders(self):
        return [json.loads(r.content)["order"] for r in self.requests if r.method == "POST"]


def sample_product():
    return {
        "id": 42,
        "title": "Hoodie",
        "body_html": "<p>Warm <strong>fleece</strong> hoodie</p>",
        "status": "active",
        "images": [{"id": 7, "src": "https://cdn.example.com/hoodie.jpg"}],
        "variants": [
            {"id": 420, "title": "Default Title", "price": "25.00", "compare_at_price": "30.00",
             "inventory_quantity": 3}
        ],
    }


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'bridge.db'}"


@pytest.fixture
def config(db_url):
    return make_config(db_url)


@pytest.fixture
def session_factory(config):
    engine = create_db_engine(config.database)
    init_db(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def shops(session_factory):
    return ShopConfigStore(session_factory)


@pytest.fixture
def payments(session_factory):
    return PaymentStore(session_factory)


@pytest.fixture
def demo_shop(shops):
    shops.upsert(DEMO_SHOP, "shpat_demo", "write_orders,read_products")
    return shops.update(
        DEMO_SHOP,
        wallet_address="0xWallet",
        accepted_token="USDC",
        accepted_network="base",
        is_x402_enabled=True,
    )
