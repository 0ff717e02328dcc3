"""Cart API routes for the storefront"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from pydantic import ValidationError

from ..core.config import Settings
from ..core.exceptions import SessionUserMismatch
from ..core.session import SAFE_ID_PATTERN, CartSession, CartSessionManager
from ..database.products import ProductCatalog
from ..models.cart import (
    DEFAULT_VARIANT,
    AddItemRequest,
    AddToCartRequest,
    CartKey,
    CartValidationResponse,
    CartView,
    UpdateCartItemRequest,
)
from ..models.notification import NotificationKind
from ..services.pricing import estimate_shipping, format_price, validate_against_catalog
from .dependencies import get_app_settings, get_cart_session, get_catalog, get_sessions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cart", tags=["Cart"])


def build_cart_view(
    session: CartSession,
    settings: Settings,
    message: Optional[str] = None,
    distance_km: float = 5,
) -> CartView:
    """Render a session's cart and hand over its pending toasts"""
    store = session.store
    items = store.items
    subtotal = store.subtotal
    return CartView(
        session_id=session.session_id,
        items=items,
        saved_for_later=store.saved_items,
        item_count=store.item_count,
        subtotal=subtotal,
        subtotal_display=format_price(subtotal, settings.currency),
        shipping_estimate=estimate_shipping(
            items, distance_km=distance_km, base_cost=settings.base_shipping_cost
        ),
        currency=settings.currency,
        notifications=session.notifier.drain(),
        message=message,
    )


def _key(product_id: str, color: str, size: str) -> CartKey:
    return CartKey(product_id, color, size)


@router.post("", response_model=CartView)
async def open_cart(
    x_session_id: Optional[str] = Header(None, pattern=SAFE_ID_PATTERN),
    x_user_id: Optional[str] = Header(None, pattern=SAFE_ID_PATTERN),
    sessions: CartSessionManager = Depends(get_sessions),
    settings: Settings = Depends(get_app_settings),
):
    """Open (or resume) a cart session"""
    try:
        session = await sessions.open_session(session_id=x_session_id, user_id=x_user_id)
    except SessionUserMismatch:
        raise HTTPException(status_code=409, detail="Cart session belongs to another user")
    return build_cart_view(session, settings, message="Cart ready")


@router.get("/{session_id}", response_model=CartView)
async def get_cart(
    distance_km: float = Query(5, gt=0, description="Delivery distance for the shipping estimate"),
    session: CartSession = Depends(get_cart_session),
    settings: Settings = Depends(get_app_settings),
):
    """Get cart for a session"""
    return build_cart_view(session, settings, distance_km=distance_km)


@router.post("/{session_id}/items", response_model=CartView)
async def add_to_cart(
    request: AddItemRequest,
    session: CartSession = Depends(get_cart_session),
    catalog: ProductCatalog = Depends(get_catalog),
    settings: Settings = Depends(get_app_settings),
):
    """Add a catalog product to the cart"""
    product = catalog.get_product(request.product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    try:
        add_request = AddToCartRequest(
            product=product,
            quantity=request.quantity,
            color=request.color,
            size=request.size,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.errors()[0]["msg"])

    # Stock is shared by all variants of a product
    in_cart = session.store.get_item_quantity(product.id)
    if in_cart + add_request.quantity > product.stock:
        logger.info(
            f"Rejected {add_request.quantity}x {product.id} for session {session.session_id}: "
            f"{in_cart} in cart, {product.stock} in stock"
        )
        raise HTTPException(
            status_code=400,
            detail=f"Insufficient stock. Available: {product.stock}",
        )

    await session.store.add_to_cart(
        product, add_request.quantity, add_request.color, add_request.size
    )
    session.notifier.notify(NotificationKind.SUCCESS, f"{product.name} added to cart")
    return build_cart_view(
        session,
        settings,
        message=f"Added {add_request.quantity}x {product.name} to cart",
    )


@router.put("/{session_id}/items/{product_id}", response_model=CartView)
async def update_cart_item(
    product_id: str,
    request: UpdateCartItemRequest,
    color: str = Query(DEFAULT_VARIANT),
    size: str = Query(DEFAULT_VARIANT),
    session: CartSession = Depends(get_cart_session),
    catalog: ProductCatalog = Depends(get_catalog),
    settings: Settings = Depends(get_app_settings),
):
    """
    Update item quantity in cart.

    Quantities below 1 and lines no longer in the cart leave the cart as it
    is; the response message says so.
    """
    key = _key(product_id, color, size)
    item = session.store.get_item(key)
    product = catalog.get_product(product_id)

    if item and product:
        others = session.store.get_item_quantity(product_id) - item.quantity
        if others + request.quantity > product.stock:
            raise HTTPException(
                status_code=400,
                detail=f"Insufficient stock. Available: {product.stock}",
            )

    updated = await session.store.update_quantity(key, request.quantity)
    if updated:
        message = "Cart updated"
    elif item is None:
        message = "Item not in cart"
    else:
        message = "Quantity must be at least 1"
    return build_cart_view(session, settings, message=message)


@router.delete("/{session_id}/items/{product_id}", response_model=CartView)
async def remove_from_cart(
    product_id: str,
    color: str = Query(DEFAULT_VARIANT),
    size: str = Query(DEFAULT_VARIANT),
    session: CartSession = Depends(get_cart_session),
    settings: Settings = Depends(get_app_settings),
):
    """Remove an item from the cart"""
    removed = await session.store.remove_from_cart(_key(product_id, color, size))
    return build_cart_view(
        session, settings, message="Item removed" if removed else "Item not in cart"
    )


@router.post("/{session_id}/items/{product_id}/save-for-later", response_model=CartView)
async def save_for_later(
    product_id: str,
    color: str = Query(DEFAULT_VARIANT),
    size: str = Query(DEFAULT_VARIANT),
    session: CartSession = Depends(get_cart_session),
    settings: Settings = Depends(get_app_settings),
):
    """Move a cart line to the saved-for-later list"""
    moved = await session.store.save_for_later(_key(product_id, color, size))
    return build_cart_view(
        session, settings, message="Saved for later" if moved else "Item not in cart"
    )


@router.post("/{session_id}/saved/{product_id}/move-to-cart", response_model=CartView)
async def move_to_cart(
    product_id: str,
    color: str = Query(DEFAULT_VARIANT),
    size: str = Query(DEFAULT_VARIANT),
    session: CartSession = Depends(get_cart_session),
    settings: Settings = Depends(get_app_settings),
):
    """Move a saved item back into the cart"""
    moved = await session.store.move_to_cart(_key(product_id, color, size))
    return build_cart_view(
        session, settings, message="Moved to cart" if moved else "Item not saved"
    )


@router.delete("/{session_id}", response_model=CartView)
async def clear_cart(
    session: CartSession = Depends(get_cart_session),
    settings: Settings = Depends(get_app_settings),
):
    """Clear all items from cart"""
    await session.store.clear_cart()
    return build_cart_view(session, settings, message="Cart cleared")


@router.post("/{session_id}/validate", response_model=CartValidationResponse)
async def validate_cart(
    session: CartSession = Depends(get_cart_session),
    catalog: ProductCatalog = Depends(get_catalog),
):
    """Check cart lines against current stock before checkout"""
    result = validate_against_catalog(session.store.items, catalog.products)
    return CartValidationResponse(valid=result.valid, invalid_items=result.invalid_items)


@router.post("/{session_id}/logout")
async def logout(
    session: CartSession = Depends(get_cart_session),
    sessions: CartSessionManager = Depends(get_sessions),
    settings: Settings = Depends(get_app_settings),
):
    """End the session; the cart is cleared only if configured to be"""
    await sessions.end_session(session.session_id)
    return {
        "session_id": session.session_id,
        "ended": True,
        "cart_cleared": settings.clear_cart_on_logout,
    }
