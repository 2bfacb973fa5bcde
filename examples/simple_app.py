from shopify_x402_bridge import BridgeConfig, create_app

config = BridgeConfig.from_env()

app = create_app(config)

# Run: uvicorn examples.simple_app:app --reload
