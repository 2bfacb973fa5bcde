import pytest

from shopify_x402_bridge.facilitator import FacilitatorClient
from shopify_x402_bridge.mock_client import MockShopifyClient
from shopify_x402_bridge.orchestrator import CheckoutOrchestrator
from shopify_x402_bridge.shopify_client import ShopifyOrderClient
from shopify_x402_bridge.telemetry import get_verification_duration_histogram

from conftest import DEMO_SHOP, FakeFacilitator


class RecordingHistogram:
    def __init__(self):
        self.records = []

    def record(self, value, attributes=None):
        self.records.append((value, attributes))


def test_histogram_can_record():
    histogram = get_verification_duration_histogram()
    histogram.record(12.5, attributes={"network": "base", "verified": True})


@pytest.mark.asyncio
async def test_verification_duration_is_recorded(config, shops, payments, demo_shop):
    histogram = RecordingHistogram()
    facilitator: FacilitatorClient = FakeFacilitator().client(config)
    orchestrator = CheckoutOrchestrator(
        shops=shops,
        payments=payments,
        facilitator=facilitator,
        orders=ShopifyOrderClient(config.shopify, shops, client=MockShopifyClient()),
        duration_histogram=histogram,
    )

    result = await orchestrator.verify_payment(DEMO_SHOP, "0xtimed", "0xBuyer", "10")

    assert result.order.order_number == 1001
    value, attributes = histogram.records[0]
    assert value >= 0
    assert attributes == {"network": "base", "verified": True}
