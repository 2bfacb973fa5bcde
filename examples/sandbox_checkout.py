"""Example: pay for the sandbox product through the 402 checkout flow."""

import asyncio
import json
import secrets

import httpx

from shopify_x402_bridge import BridgeConfig, FacilitatorClient, create_app
from shopify_x402_bridge.x402 import encode_payment_header


def approve_everything(request: httpx.Request) -> httpx.Response:
    """Stand-in facilitator that confirms any transfer."""
    body = json.loads(request.content)
    return httpx.Response(200, json={
        "verified": True,
        "status": "verified",
        "transaction": {
            "hash": body["transaction_hash"],
            "from": body["expected_from"],
            "to": body["expected_to"],
            "value": body["expected_amount"],
            "token": body["expected_token"],
            "blockNumber": 1,
            "timestamp": 0,
        },
    })


async def main():
    config = BridgeConfig(
        shopify={
            "api_key": "sandbox",
            "api_secret": "sandbox",
            "host": "http://localhost:3000",
        },
        database={"url": "sqlite:///sandbox.db"},
        sandbox=True,
    )
    facilitator = FacilitatorClient(
        config.facilitator,
        client=httpx.AsyncClient(transport=httpx.MockTransport(approve_everything)),
    )
    app = create_app(config, facilitator=facilitator)
    shop = "sandbox.myshopify.com"
    app.state.orchestrator.shops.upsert(shop, "shpat_sandbox", "write_orders")
    app.state.orchestrator.shops.update(
        shop, wallet_address="0xWallet", accepted_token="USDC", accepted_network="base", is_x402_enabled=True
    )

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://sandbox") as client:
        challenge = await client.post("/shopify-proxy/api/checkout", params={"shop": shop}, json={"productId": "123"})
        print(f"Without payment: {challenge.status_code}")
        print(json.dumps(challenge.json()["accepts"][0], indent=2))

        # a fresh hash per run; a reused one is rejected as a duplicate
        tx_hash = f"0x{secrets.token_hex(32)}"

        paid = await client.post(
            "/shopify-proxy/api/checkout",
            params={"shop": shop},
            json={"productId": "123"},
            headers={"X-PAYMENT": encode_payment_header(tx_hash, "0xBuyer")},
        )
        print(f"\nWith payment: {paid.status_code}")
        print(json.dumps(paid.json(), indent=2))
        return paid.status_code


if __name__ == "__main__":
    asyncio.run(main())
