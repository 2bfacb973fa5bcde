"""SQLAlchemy tables for shops and payments."""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, String, Boolean, DateTime, JSON, ForeignKey, Text
from sqlalchemy.orm import relationship

from ..database import Base


def _new_id() -> str:
    return uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaymentStatus:
    PENDING = "pending"
    VERIFIED = "verified"
    FAILED = "failed"
    COMPLETED = "completed"


class Shop(Base):
    __tablename__ = "shops"

    id = Column(String, primary_key=True, default=_new_id)
    shop_domain = Column(String, unique=True, index=True, nullable=False)
    access_token = Column(Text, nullable=False)
    scope = Column(String)
    wallet_address = Column(String)
    accepted_token = Column(String)
    accepted_network = Column(String)
    is_x402_enabled = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    payments = relationship("Payment", back_populates="shop", passive_deletes="all")

    @property
    def is_configured(self) -> bool:
        """Wallet, token and network are all set."""
        return bool(self.wallet_address and self.accepted_token and self.accepted_network)

    @property
    def accepts_payments(self) -> bool:
        return bool(self.is_x402_enabled) and self.is_configured

    def config_dict(self) -> dict:
        return {
            "walletAddress": self.wallet_address,
            "acceptedToken": self.accepted_token,
            "acceptedNetwork": self.accepted_network,
            "isX402Enabled": bool(self.is_x402_enabled),
        }


class Payment(Base):
    __tablename__ = "payments"

    id = Column(String, primary_key=True, default=_new_id)
    shop_id = Column(String, ForeignKey("shops.id", ondelete="RESTRICT"), index=True, nullable=False)
    product_id = Column(String)
    product_title = Column(String, nullable=False, default="Unknown Product")
    amount = Column(String, nullable=False)                 # as sent by the buyer, token units
    tx_hash = Column(String, unique=True, index=True, nullable=False)
    from_address = Column(String, nullable=False)
    to_address = Column(String, nullable=False)
    token_address = Column(String, nullable=False)
    network = Column(String, nullable=False)
    facilitator_status = Column(String, nullable=False, default=PaymentStatus.PENDING)
    verification_data = Column(JSON)
    status = Column(String, index=True, nullable=False, default=PaymentStatus.PENDING)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    shop = relationship("Shop", back_populates="payments")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "productTitle": self.product_title,
            "amount": self.amount,
            "txHash": self.tx_hash,
            "fromAddress": self.from_address,
            "toAddress": self.to_address,
            "tokenAddress": self.token_address,
            "network": self.network,
            "facilitatorStatus": self.facilitator_status,
            "status": self.status,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
