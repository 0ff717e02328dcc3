# Storefront Models

from .product import Product, ProductSearchResponse
from .notification import Notification, NotificationKind
from .cart import (
    DEFAULT_VARIANT,
    CartKey,
    CartItem,
    AddToCartRequest,
    CartSnapshot,
    AddItemRequest,
    UpdateCartItemRequest,
    CartView,
    CartValidationResponse,
)

__all__ = [
    "Product",
    "ProductSearchResponse",
    "Notification",
    "NotificationKind",
    "DEFAULT_VARIANT",
    "CartKey",
    "CartItem",
    "AddToCartRequest",
    "CartSnapshot",
    "AddItemRequest",
    "UpdateCartItemRequest",
    "CartView",
    "CartValidationResponse",
]
