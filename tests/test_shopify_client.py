import pytest

from shopify_x402_bridge.config import ShopifyAppConfig
from shopify_x402_bridge.errors import ShopifyAPIError, ShopNotFoundError
from shopify_x402_bridge.mock_client import MockShopifyClient
from shopify_x402_bridge.shopify_client import ORDER_GATEWAY, ShopifyOrderClient, html_to_text

from conftest import DEMO_SHOP, FakeShopify


def make_app_config():
    return ShopifyAppConfig(api_key="key", api_secret="secret", host="https://bridge.test", api_version="2025-07")


def order_kwargs(**overrides):
    kwargs = dict(
        shop_domain=DEMO_SHOP,
        product_id="42",
        product_title="Hoodie",
        product_price="25.00",
        customer_address="0xBuyerWalletAddress",
        tx_hash="0xdeadbeef",
        payment_amount="25",
    )
    kwargs.update(overrides)
    return kwargs


@pytest.mark.asyncio
async def test_create_order_marks_paid_and_links_transaction(shops, demo_shop):
    fake = FakeShopify()
    client = ShopifyOrderClient(make_app_config(), shops, client=fake.client())

    receipt = await client.create_order(**order_kwargs())

    assert receipt.order_id == 5001
    assert receipt.order_name == "#1001"
    request = fake.requests[0]
    assert str(request.url) == f"https://{DEMO_SHOP}/admin/api/2025-07/orders.json"
    assert request.headers["X-Shopify-Access-Token"] == "shpat_demo"

    order = fake.orders[0]
    assert order["financial_status"] == "paid"
    assert order["line_items"] == [{"title": "Hoodie", "price": "25.00", "quantity": 1}]
    assert order["customer"] == {"email": "0xBuyerWal@x402.crypto"}
    assert order["transactions"] == [
        {"kind": "sale", "status": "success", "amount": "25.00", "gateway": ORDER_GATEWAY}
    ]
    assert "Transaction: 0xdeadbeef" in order["note"]
    assert "Wallet: 0xBuyerWalletAddress" in order["note"]
    assert order["source_name"] == "x402-payment-bridge"


@pytest.mark.asyncio
async def test_create_order_failure_carries_remote_message(shops, demo_shop):
    client = ShopifyOrderClient(make_app_config(), shops, client=FakeShopify(order_status=422).client())

    with pytest.raises(ShopifyAPIError) as excinfo:
        await client.create_order(**order_kwargs())

    assert excinfo.value.status_code == 500
    assert "Failed to create order" in excinfo.value.message
    assert "Order could not be created" in excinfo.value.message


@pytest.mark.asyncio
async def test_unknown_shop_is_not_found(shops):
    client = ShopifyOrderClient(make_app_config(), shops, client=FakeShopify().client())

    with pytest.raises(ShopNotFoundError):
        await client.list_products("nobody.myshopify.com")


@pytest.mark.asyncio
async def test_list_products_summarizes_first_variant(shops, demo_shop):
    fake = FakeShopify()
    client = ShopifyOrderClient(make_app_config(), shops, client=fake.client())

    products = await client.list_products(DEMO_SHOP, limit=5)

    assert fake.requests[0].url.params["limit"] == "5"
    assert fake.requests[0].url.params["status"] == "active"
    product = products[0]
    assert product.id == "42"
    assert product.description == "Warm fleece hoodie"
    assert product.price == "25.00"
    assert product.compare_at_price == "30.00"
    assert product.variant_id == 420
    assert product.image == "https://cdn.example.com/hoodie.jpg"
    assert product.available is True


@pytest.mark.asyncio
async def test_get_product_not_found(shops, demo_shop):
    client = ShopifyOrderClient(make_app_config(), shops, client=FakeShopify().client())

    with pytest.raises(ShopifyAPIError) as excinfo:
        await client.get_product(DEMO_SHOP, "999")

    assert "Failed to fetch product" in excinfo.value.message


@pytest.mark.asyncio
async def test_sandbox_mock_client(shops, demo_shop):
    client = ShopifyOrderClient(make_app_config(), shops, client=MockShopifyClient())

    product = await client.get_product(DEMO_SHOP, "123")
    receipt = await client.create_order(**order_kwargs(product_price=product.price))

    assert product.title == "Mock T-Shirt"
    assert receipt.total_price == "10.00"
    assert receipt.order_number == 1001


def test_html_to_text():
    assert html_to_text("<p>Hello <b>world</b></p>") == "Hello world"
    assert html_to_text(None) == ""
