"""Mock Shopify client for sandbox mode."""

from itertools import count
from typing import Any, Dict, Optional
from urllib.parse import urlparse


class MockResponse:
    """Minimal response object compatible with ShopifyOrderClient usage."""

    def __init__(self, data: Dict[str, Any], status_code: int = 200, headers: Optional[Dict[str, str]] = None):
        self._data = data
        self.status_code = status_code
        self.headers = headers or {}

    def json(self) -> Dict[str, Any]:
        return self._data

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise RuntimeError(f"Mock HTTP error {self.status_code}")


class MockShopifyClient:
    """Mock Shopify client that serves one sample product and accepts any order."""

    def __init__(self):
        self._order_numbers = count(1001)
        self._product = {
            "id": 123,
            "title": "Mock T-Shirt",
            "body_html": "<p>Soft cotton t-shirt</p>",
            "handle": "mock-t-shirt",
            "status": "active",
            "images": [
                {"id": 1, "src": "https://example.com/img1.jpg", "alt": "Front"}
            ],
            "variants": [
                {
                    "id": 1,
                    "title": "Default Title",
                    "price": "10.00",
                    "compare_at_price": None,
                    "sku": "TS",
                    "inventory_quantity": 10,
                }
            ],
        }

    async def request(self, method: str, url: str, **kwargs) -> MockResponse:
        path = urlparse(url).path
        if method == "POST" and path.endswith("/orders.json"):
            return MockResponse({"order": self._order(kwargs.get("json") or {})}, status_code=201)
        if method == "GET" and path.endswith("/products.json"):
            return MockResponse({"products": [self._product]})
        if method == "GET" and path.endswith(f"/products/{self._product['id']}.json"):
            return MockResponse({"product": self._product})
        return MockResponse({"errors": "Not Found"}, status_code=404)

    def _order(self, body: Dict[str, Any]) -> Dict[str, Any]:
        order = body.get("order", {})
        number = next(self._order_numbers)
        line_items = order.get("line_items") or [{}]
        return {
            "id": 450789469 + number,
            "order_number": number,
            "name": f"#{number}",
            "total_price": line_items[0].get("price", "0.00"),
            "created_at": "2026-01-01T00:00:00-00:00",
            "note": order.get("note"),
        }

    async def aclose(self) -> None:
        return None
