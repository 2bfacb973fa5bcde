"""Persistence for shop configuration and payment records."""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from .errors import DuplicatePaymentError, ShopNotFoundError
from .models.db_models import Payment, Shop

logger = logging.getLogger(__name__)


class ShopConfigStore:
    """Shop records keyed by shop domain."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def find(self, shop_domain: str) -> Optional[Shop]:
        with self._session_factory() as db:
            return db.query(Shop).filter_by(shop_domain=shop_domain).first()

    def get(self, shop_domain: str) -> Shop:
        shop = self.find(shop_domain)
        if shop is None:
            raise ShopNotFoundError(shop_domain)
        return shop

    def upsert(self, shop_domain: str, access_token: str, scope: Optional[str] = None) -> Shop:
        """Create the shop or refresh its OAuth token fields."""
        with self._session_factory() as db:
            shop = db.query(Shop).filter_by(shop_domain=shop_domain).first()
            if shop is None:
                shop = Shop(shop_domain=shop_domain, access_token=access_token, scope=scope)
                db.add(shop)
            else:
                shop.access_token = access_token
                shop.scope = scope
            db.commit()
            logger.info("shop_upserted", extra={"shop": shop_domain})
            return shop

    def update(
        self,
        shop_domain: str,
        wallet_address: Optional[str] = None,
        accepted_token: Optional[str] = None,
        accepted_network: Optional[str] = None,
        is_x402_enabled: Optional[bool] = None,
    ) -> Shop:
        """Update payment settings. Fields left as None keep their stored value."""
        changes = {
            "wallet_address": wallet_address,
            "accepted_token": accepted_token,
            "accepted_network": accepted_network,
            "is_x402_enabled": is_x402_enabled,
        }
        with self._session_factory() as db:
            shop = db.query(Shop).filter_by(shop_domain=shop_domain).first()
            if shop is None:
                raise ShopNotFoundError(shop_domain)
            for field, value in changes.items():
                if value is not None:
                    setattr(shop, field, value)
            db.commit()
            logger.info("shop_config_updated", extra={"shop": shop_domain})
            return shop


class PaymentStore:
    """Append-only payment records. `tx_hash` is unique across all shops."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def create(
        self,
        shop: Shop,
        *,
        tx_hash: str,
        amount: str,
        from_address: str,
        status: str,
        facilitator_status: str,
        verification_data: Optional[Dict[str, Any]] = None,
        product_id: Optional[str] = None,
        product_title: Optional[str] = None,
    ) -> Payment:
        payment = Payment(
            shop_id=shop.id,
            product_id=product_id,
            product_title=product_title or "Unknown Product",
            amount=amount,
            tx_hash=tx_hash,
            from_address=from_address,
            to_address=shop.wallet_address,
            token_address=shop.accepted_token,
            network=shop.accepted_network,
            facilitator_status=facilitator_status,
            verification_data=verification_data,
            status=status,
        )
        with self._session_factory() as db:
            db.add(payment)
            try:
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                if self._tx_hash_exists(db, tx_hash):
                    raise DuplicatePaymentError(tx_hash) from exc
                raise
        logger.info(
            "payment_recorded",
            extra={"shop": shop.shop_domain, "payment_id": payment.id, "status": status},
        )
        return payment

    def find_by_tx_hash(self, tx_hash: str) -> Optional[Payment]:
        with self._session_factory() as db:
            return db.query(Payment).filter_by(tx_hash=tx_hash).first()

    def list_for_shop(self, shop: Shop, limit: int = 50) -> List[Payment]:
        """Most recent payments first."""
        with self._session_factory() as db:
            return (
                db.query(Payment)
                .filter_by(shop_id=shop.id)
                .order_by(Payment.created_at.desc())
                .limit(limit)
                .all()
            )

    @staticmethod
    def _tx_hash_exists(db, tx_hash: str) -> bool:
        return db.query(Payment.id).filter_by(tx_hash=tx_hash).first() is not None
