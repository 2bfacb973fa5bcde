import httpx
import pytest

from shopify_x402_bridge.config import FacilitatorConfig
from shopify_x402_bridge.facilitator import FacilitatorClient

from conftest import FakeFacilitator, make_config, verified_payload

VERIFY_ARGS = dict(
    tx_hash="0xdeadbeef",
    network="base",
    from_address="0xBuyer",
    to_address="0xWallet",
    token_address="USDC",
    amount="10",
)


@pytest.mark.asyncio
async def test_verified_response_is_passed_through():
    fake = FakeFacilitator()
    client = fake.client(make_config())

    result = await client.verify(**VERIFY_ARGS)

    assert result.verified is True
    assert result.status == "verified"
    assert result.transaction.block_number == 123456
    assert fake.calls == [{
        "transaction_hash": "0xdeadbeef",
        "network": "base",
        "expected_from": "0xBuyer",
        "expected_to": "0xWallet",
        "expected_token": "USDC",
        "expected_amount": "10",
        "version": "2.0",
    }]


@pytest.mark.asyncio
async def test_request_carries_protocol_header_and_configured_url():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["version"] = request.headers.get("X-Protocol-Version")
        return httpx.Response(200, json=verified_payload())

    config = FacilitatorConfig(url="https://facilitator.test/verify")
    client = FacilitatorClient(config, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    await client.verify(**VERIFY_ARGS)

    assert seen == {"url": "https://facilitator.test/verify", "version": "2.0"}


@pytest.mark.asyncio
async def test_only_literal_true_counts_as_verified():
    fake = FakeFacilitator(payload={"verified": "yes", "status": "pending"})

    result = await fake.client(make_config()).verify(**VERIFY_ARGS)

    assert result.verified is False
    assert result.status == "pending"
    # no transaction in the response: echo the request
    assert result.transaction.hash == "0xdeadbeef"
    assert result.transaction.value == "10"


@pytest.mark.asyncio
async def test_missing_status_defaults_to_verified():
    payload = verified_payload()
    del payload["status"]

    result = await FakeFacilitator(payload=payload).client(make_config()).verify(**VERIFY_ARGS)

    assert result.status == "verified"


@pytest.mark.asyncio
async def test_http_error_fails_closed():
    fake = FakeFacilitator(payload={"error": "bad tx"}, status_code=422)

    result = await fake.client(make_config()).verify(**VERIFY_ARGS)

    assert result.verified is False
    assert result.status == "failed"
    assert result.transaction.from_ == "0xBuyer"
    assert result.transaction.to == "0xWallet"
    assert result.transaction.block_number == 0
    assert result.transaction.timestamp > 0


@pytest.mark.asyncio
async def test_unreachable_facilitator_fails_closed():
    fake = FakeFacilitator(error=httpx.ConnectError("connection refused"))

    result = await fake.client(make_config()).verify(**VERIFY_ARGS)

    assert result.verified is False
    assert result.status == "failed"
    assert len(fake.calls) == 1


@pytest.mark.asyncio
async def test_timeout_fails_closed():
    fake = FakeFacilitator(error=httpx.ReadTimeout("timed out"))

    result = await fake.client(make_config()).verify(**VERIFY_ARGS)

    assert result.verified is False


@pytest.mark.asyncio
async def test_numeric_transaction_fields_are_accepted():
    payload = verified_payload()
    payload["transaction"]["value"] = 10000000

    result = await FakeFacilitator(payload=payload).client(make_config()).verify(**VERIFY_ARGS)

    assert result.verified is True
    assert result.transaction.value == "10000000"


@pytest.mark.asyncio
async def test_unreadable_transaction_keeps_the_verdict():
    payload = verified_payload()
    payload["transaction"]["blockNumber"] = "latest"

    result = await FakeFacilitator(payload=payload).client(make_config()).verify(**VERIFY_ARGS)

    assert result.verified is True
    assert result.status == "verified"
    assert result.transaction.hash == "0xdeadbeef"
    assert result.transaction.block_number == 0


@pytest.mark.asyncio
async def test_rejection_without_status_is_failed():
    result = await FakeFacilitator(payload={"verified": False}).client(make_config()).verify(**VERIFY_ARGS)

    assert result.verified is False
    assert result.status == "failed"
