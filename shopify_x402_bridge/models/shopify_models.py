"""Pydantic models for Shopify Admin REST resources."""

from typing import Optional, List, Any
from pydantic import BaseModel, Field, ConfigDict


class ShopifyImage(BaseModel):
    """Shopify image data."""
    id: Optional[int] = None
    src: str
    alt: Optional[str] = None


class ShopifyVariant(BaseModel):
    """Shopify product variant."""
    id: int
    title: Optional[str] = None
    price: str = "0"
    compare_at_price: Optional[str] = None
    sku: Optional[str] = None
    inventory_quantity: Optional[int] = None


class ShopifyProduct(BaseModel):
    """Shopify product as returned by the REST Admin API."""
    id: int
    title: str
    body_html: Optional[str] = None
    handle: Optional[str] = None
    status: Optional[str] = None
    images: List[ShopifyImage] = Field(default_factory=list)
    variants: List[ShopifyVariant] = Field(default_factory=list)


class ProductSummary(BaseModel):
    """Storefront-facing product view."""
    id: str
    title: str
    description: str = ""
    price: str = "0"
    compare_at_price: Optional[str] = Field(None, alias="compareAtPrice")
    image: Optional[str] = None
    variant_id: Optional[int] = Field(None, alias="variantId")
    available: bool = False

    model_config = ConfigDict(populate_by_name=True)


class OrderReceipt(BaseModel):
    """Subset of a created Shopify order returned to the buyer."""
    success: bool = True
    order_id: Any = Field(alias="orderId")
    order_number: Optional[int] = Field(None, alias="orderNumber")
    order_name: Optional[str] = Field(None, alias="orderName")
    total_price: Optional[str] = Field(None, alias="totalPrice")
    created_at: Optional[str] = Field(None, alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)
