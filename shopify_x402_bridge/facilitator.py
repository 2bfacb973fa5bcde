"""Client for the x402 facilitator's verification endpoint."""

import logging
import time
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from .config import FacilitatorConfig
from .models.x402_models import TransactionInfo, VerificationResult

logger = logging.getLogger(__name__)


class FacilitatorClient:
    """
    Ask a remote facilitator whether an on-chain transfer matches a payment.

    The bridge never approves a payment on its own: any error talking to the
    facilitator produces an unverified result instead of an exception.
    """

    def __init__(self, config: FacilitatorConfig, client: Optional[Any] = None):
        """
        Args:
            config: Facilitator settings
            client: Optional HTTP client (e.g., an httpx.AsyncClient with a mock transport)
        """
        self.config = config
        if client is not None:
            self.client = client
            self._owns_client = False
        else:
            self.client = httpx.AsyncClient(timeout=config.timeout_seconds)
            self._owns_client = True

    async def close(self):
        """Close HTTP client."""
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def verify(
        self,
        tx_hash: str,
        network: str,
        from_address: str,
        to_address: str,
        token_address: str,
        amount: str,
    ) -> VerificationResult:
        """
        Verify that `tx_hash` moved `amount` of `token_address` from
        `from_address` to `to_address` on `network`.

        Returns:
            Verification result; `verified` is False on any failure
        """
        body = {
            "transaction_hash": tx_hash,
            "network": network,
            "expected_from": from_address,
            "expected_to": to_address,
            "expected_token": token_address,
            "expected_amount": amount,
            "version": self.config.protocol_version,
        }
        fallback = TransactionInfo(
            hash=tx_hash,
            from_=from_address,
            to=to_address,
            value=amount,
            token=token_address,
            block_number=0,
            timestamp=int(time.time() * 1000),
        )

        try:
            response = await self.client.post(
                self.config.url,
                json=body,
                headers={
                    "Content-Type": "application/json",
                    "X-Protocol-Version": self.config.protocol_version,
                },
                timeout=self.config.timeout_seconds,
            )
            response.raise_for_status()
            data = response.json()
            verified = data.get("verified") is True
        except (httpx.HTTPError, ValueError, AttributeError) as exc:
            logger.warning(
                "facilitator_verification_error",
                extra={"tx_hash": tx_hash, "error": _describe(exc)},
            )
            return VerificationResult(verified=False, transaction=fallback, status="failed")

        # The verdict stands even when the transaction details are unreadable
        transaction = fallback
        if isinstance(data.get("transaction"), dict):
            try:
                transaction = TransactionInfo(**data["transaction"])
            except ValidationError as exc:
                logger.warning(
                    "facilitator_transaction_unparsed",
                    extra={"tx_hash": tx_hash, "error": _describe(exc)},
                )

        status = data.get("status")
        if not isinstance(status, str) or not status:
            status = "verified" if verified else "failed"
        return VerificationResult(verified=verified, transaction=transaction, status=status)


def _describe(exc: Exception) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code}: {exc.response.text[:200]}"
    return str(exc) or exc.__class__.__name__
