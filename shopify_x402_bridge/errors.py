"""Exceptions raised by the bridge, each mapped to an HTTP status."""

from typing import Any, Dict, Optional


class BridgeError(Exception):
    """Base error. Rendered as a JSON body by the app's exception handler."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "success": False, **self.payload}


class MissingParameterError(BridgeError):
    """A required request field is absent."""
    status_code = 400


class ShopNotFoundError(BridgeError):
    """No shop is stored for the given domain."""
    status_code = 404

    def __init__(self, shop_domain: str, message: str = "Shop not found"):
        super().__init__(message)
        self.shop_domain = shop_domain


class PaymentsDisabledError(BridgeError):
    status_code = 400


class ShopNotConfiguredError(BridgeError):
    """Wallet address, token or network is missing for the shop."""
    status_code = 400


class InvalidPaymentHeaderError(BridgeError):
    status_code = 400


class PaymentVerificationError(BridgeError):
    """The facilitator did not confirm the transaction."""
    status_code = 400


class DuplicatePaymentError(BridgeError):
    """The transaction hash has already been recorded."""
    status_code = 409

    def __init__(self, tx_hash: str):
        super().__init__("Transaction has already been recorded", payload={"txHash": tx_hash})
        self.tx_hash = tx_hash


class InvalidSignatureError(BridgeError):
    status_code = 401


class ShopifyAPIError(BridgeError):
    """A Shopify Admin API call failed."""
    status_code = 500


class OAuthError(BridgeError):
    status_code = 500
