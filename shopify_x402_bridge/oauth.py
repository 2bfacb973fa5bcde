"""Shopify OAuth install flow and request signature checks."""

import hashlib
import hmac
import logging
import re
import secrets
from typing import Any, Iterable, Optional, Tuple
from urllib.parse import urlencode

import httpx

from .config import ShopifyAppConfig
from .errors import InvalidSignatureError, MissingParameterError, OAuthError
from .models.db_models import Shop
from .storage import ShopConfigStore

logger = logging.getLogger(__name__)

CALLBACK_PATH = "/api/auth/callback"
STATE_COOKIE = "shopify_oauth_state"

_SHOP_DOMAIN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9\-]*\.myshopify\.com$")


def sanitize_shop(shop: Optional[str]) -> str:
    """
    Normalize a shop parameter to `name.myshopify.com`.

    Raises:
        MissingParameterError: if the value is empty or not a myshopify domain
    """
    if not shop:
        raise MissingParameterError("Missing shop parameter")
    candidate = re.sub(r"^https?://", "", shop.strip().lower()).rstrip("/")
    if not _SHOP_DOMAIN.match(candidate):
        raise MissingParameterError(f"Invalid shop domain: {shop}")
    return candidate


def compute_hmac(secret: str, message: str) -> str:
    return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


def verify_oauth_hmac(params: Iterable[Tuple[str, str]], secret: str) -> bool:
    """
    Verify the `hmac` parameter Shopify appends to OAuth redirects.

    The message is every other parameter as `key=value`, sorted and joined with `&`.
    """
    items = list(params)
    received = next((value for key, value in items if key == "hmac"), "")
    if not received:
        return False
    message = "&".join(
        f"{key}={value}" for key, value in sorted(items) if key not in ("hmac", "signature")
    )
    return hmac.compare_digest(compute_hmac(secret, message), received)


def verify_proxy_signature(params: Iterable[Tuple[str, str]], secret: str) -> bool:
    """
    Verify the `signature` parameter on Shopify app-proxy requests.

    Repeated keys are joined with commas; pairs are sorted and concatenated
    without a separator.
    """
    grouped: dict = {}
    received = ""
    for key, value in params:
        if key == "signature":
            received = value
            continue
        grouped.setdefault(key, []).append(value)
    if not received:
        return False
    message = "".join(sorted(f"{key}={','.join(values)}" for key, values in grouped.items()))
    return hmac.compare_digest(compute_hmac(secret, message), received)


class ShopifyOAuth:
    """
    Offline-token OAuth for installing the app on a shop.

    On a successful callback the shop's access token and scope are stored.
    """

    def __init__(self, config: ShopifyAppConfig, shops: ShopConfigStore, client: Optional[Any] = None):
        """
        Args:
            config: Shopify app configuration
            shops: Shop store receiving the access token
            client: Optional HTTP client for the token exchange
        """
        self.config = config
        self.shops = shops
        self.client = client

    @property
    def redirect_uri(self) -> str:
        return f"{self.config.host.rstrip('/')}{CALLBACK_PATH}"

    def begin(self, shop: Optional[str]) -> Tuple[str, str]:
        """
        Start the install flow.

        Returns:
            Authorization URL to redirect to, and the state nonce to remember
        """
        shop_domain = sanitize_shop(shop)
        state = secrets.token_urlsafe(16)
        query = urlencode(
            {
                "client_id": self.config.api_key,
                "scope": ",".join(self.config.scopes),
                "redirect_uri": self.redirect_uri,
                "state": state,
            }
        )
        logger.info("oauth_begin", extra={"shop": shop_domain})
        return f"https://{shop_domain}/admin/oauth/authorize?{query}", state

    async def callback(self, params: Iterable[Tuple[str, str]], expected_state: Optional[str]) -> Shop:
        """
        Complete the install flow and store the shop's offline access token.

        Args:
            params: Callback query parameters
            expected_state: State nonce issued by `begin`
        """
        items = list(params)
        query = dict(items)

        if not verify_oauth_hmac(items, self.config.api_secret):
            raise InvalidSignatureError("Invalid OAuth callback signature")
        if not expected_state or not hmac.compare_digest(query.get("state", ""), expected_state):
            raise InvalidSignatureError("OAuth state mismatch")

        shop_domain = sanitize_shop(query.get("shop"))
        code = query.get("code")
        if not code:
            raise MissingParameterError("Missing code parameter")

        token_url = f"https://{shop_domain}/admin/oauth/access_token"
        body = {
            "client_id": self.config.api_key,
            "client_secret": self.config.api_secret,
            "code": code,
        }
        try:
            if self.client is not None:
                response = await self.client.post(token_url, json=body)
            else:
                async with httpx.AsyncClient(timeout=30.0) as client:
                    response = await client.post(token_url, json=body)
            response.raise_for_status()
            data = response.json()
            access_token = data["access_token"]
        except (httpx.HTTPError, KeyError, ValueError) as exc:
            logger.error("oauth_token_exchange_failed", extra={"shop": shop_domain})
            raise OAuthError("Authentication callback failed") from exc

        return self.shops.upsert(shop_domain, access_token, data.get("scope"))
