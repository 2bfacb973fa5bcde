"""
Shopify x402 Payment Bridge

Accept wallet-signed token payments ("x402") in a Shopify store: payments
are verified by an x402 facilitator, recorded, and turned into paid
Shopify orders.
"""

__version__ = "0.1.0"

from .app import create_app
from .config import BridgeConfig
from .facilitator import FacilitatorClient
from .mock_client import MockShopifyClient
from .orchestrator import CheckoutOrchestrator
from .shopify_client import ShopifyOrderClient

__all__ = [
    "create_app",
    "BridgeConfig",
    "FacilitatorClient",
    "MockShopifyClient",
    "CheckoutOrchestrator",
    "ShopifyOrderClient",
]
