"""Cart models for the storefront"""

from typing import NamedTuple, Optional

from pydantic import BaseModel, Field, computed_field, model_validator

from .notification import Notification
from .product import Product

DEFAULT_VARIANT = "default"


class CartKey(NamedTuple):
    """Composite identity of a cart line"""
    product_id: str
    color: str = DEFAULT_VARIANT
    size: str = DEFAULT_VARIANT


class CartItem(BaseModel):
    """One product variant in a shopping cart"""
    product_id: str = Field(min_length=1)
    color: str = DEFAULT_VARIANT
    size: str = DEFAULT_VARIANT
    quantity: int = Field(ge=1)
    unit_price: float = Field(ge=0)
    name: str = ""
    image: str = ""
    shop_id: Optional[str] = None
    stock: Optional[int] = None

    @property
    def key(self) -> CartKey:
        return CartKey(self.product_id, self.color, self.size)

    @computed_field
    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity


class AddToCartRequest(BaseModel):
    """
    Validated input for adding a product variant to a cart.

    Omitted variant attributes resolve to "default" when the product has
    no variants of that kind, otherwise to the first value it offers.
    A variant the product does not offer is rejected.
    """
    product: Product
    quantity: int = Field(default=1, ge=1)
    color: Optional[str] = None
    size: Optional[str] = None

    @model_validator(mode="after")
    def resolve_variants(self) -> "AddToCartRequest":
        self.color = _resolve_variant("color", self.color, self.product.colors)
        self.size = _resolve_variant("size", self.size, self.product.sizes)
        return self

    @property
    def key(self) -> CartKey:
        return CartKey(self.product.id, self.color, self.size)

    def to_item(self) -> CartItem:
        """Build a new cart line, capturing the price at this moment"""
        return CartItem(
            product_id=self.product.id,
            color=self.color,
            size=self.size,
            quantity=self.quantity,
            unit_price=self.product.effective_price,
            name=self.product.name,
            image=self.product.images[0] if self.product.images else "",
            shop_id=self.product.shop_id,
            stock=self.product.stock,
        )


def _resolve_variant(attribute: str, value: Optional[str], offered: list[str]) -> str:
    if not offered:
        if value in (None, "", DEFAULT_VARIANT):
            return DEFAULT_VARIANT
        raise ValueError(f"product has no {attribute} variants, got {value!r}")
    if value in (None, "", DEFAULT_VARIANT):
        return offered[0]
    if value not in offered:
        raise ValueError(f"{attribute} {value!r} is not offered, choose from {offered}")
    return value


class CartSnapshot(BaseModel):
    """Persisted cart contents"""
    version: int = 1
    items: list[CartItem] = []
    saved_for_later: list[CartItem] = []


class AddItemRequest(BaseModel):
    """Request to add a catalog product to a cart"""
    product_id: str
    quantity: int = Field(default=1, gt=0)
    color: Optional[str] = None
    size: Optional[str] = None


class UpdateCartItemRequest(BaseModel):
    """Request to update cart item quantity"""
    quantity: int


class CartView(BaseModel):
    """Cart API response"""
    session_id: str
    items: list[CartItem] = []
    saved_for_later: list[CartItem] = []
    item_count: int = 0
    subtotal: float = 0.0
    subtotal_display: str = ""
    shipping_estimate: float = 0.0
    currency: str = "INR"
    notifications: list[Notification] = []
    message: Optional[str] = None


class CartValidationResponse(BaseModel):
    """Result of checking a cart against the catalog"""
    valid: bool
    invalid_items: list[CartItem] = []
