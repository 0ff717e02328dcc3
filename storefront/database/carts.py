"""Cart store for the storefront"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional, Union

from pydantic import ValidationError

from ..core.exceptions import CartPersistenceError, InvalidCartInput
from ..models.cart import AddToCartRequest, CartItem, CartKey, CartSnapshot
from ..models.notification import NotificationKind
from ..models.product import Product
from ..services.notifications import LoggingNotifier, Notifier
from ..services.pricing import calculate_item_count, calculate_subtotal
from .storage import CartStorage

logger = logging.getLogger(__name__)

CartListener = Callable[[list[CartItem]], None]


class CartStore:
    """
    Single source of truth for one shopper's cart.

    Lines are keyed by (product_id, color, size) and kept in insertion
    order. Every mutation takes effect in memory before the first await, so
    readers never see a stale cart while a save is in flight. Saves are
    best-effort: a failed save keeps the in-memory cart and tells the
    shopper once, until a later save succeeds.
    """

    def __init__(
        self,
        storage: CartStorage,
        notifier: Optional[Notifier] = None,
        strict: bool = False,
        fallback: Optional[CartStorage] = None,
    ):
        """
        Args:
            storage: Persistence backend for this cart
            notifier: Where user-visible messages go
            strict: Raise InvalidCartInput on malformed adds instead of
                logging and ignoring them
            fallback: Read-only source for load() when storage cannot be read
        """
        self.storage = storage
        self.notifier = notifier or LoggingNotifier()
        self.strict = strict
        self.fallback = fallback
        self.updated_at = datetime.now(timezone.utc)
        self._items: dict[CartKey, CartItem] = {}
        self._saved: dict[CartKey, CartItem] = {}
        self._listeners: list[CartListener] = []
        self._save_lock = asyncio.Lock()
        self._persist_failed = False

    # Reads

    @property
    def items(self) -> list[CartItem]:
        return list(self._items.values())

    @property
    def saved_items(self) -> list[CartItem]:
        return list(self._saved.values())

    @property
    def item_count(self) -> int:
        return calculate_item_count(self._items.values())

    @property
    def subtotal(self) -> float:
        return calculate_subtotal(self._items.values())

    def get_item(self, key: tuple) -> Optional[CartItem]:
        return self._items.get(CartKey(*key))

    def is_in_cart(
        self,
        product_id: str,
        color: Optional[str] = None,
        size: Optional[str] = None,
    ) -> bool:
        """Check for a line; an omitted color or size matches any value"""
        return any(
            key.product_id == product_id
            and (color is None or key.color == color)
            and (size is None or key.size == size)
            for key in self._items
        )

    def get_item_quantity(self, product_id: str) -> int:
        """Units of a product in the cart across all its variants"""
        return sum(
            item.quantity for item in self._items.values()
            if item.product_id == product_id
        )

    def snapshot(self) -> CartSnapshot:
        return CartSnapshot(items=self.items, saved_for_later=self.saved_items)

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        """Call listener with the new items after every change"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Mutations

    async def add_to_cart(
        self,
        product: Union[Product, Mapping[str, Any]],
        quantity: int = 1,
        color: Optional[str] = None,
        size: Optional[str] = None,
    ) -> bool:
        """
        Add a product variant, merging into an existing line with the same key.

        Stock limits are not enforced here; callers bound the quantity.

        Returns:
            True if the cart changed
        """
        try:
            request = AddToCartRequest(
                product=product, quantity=quantity, color=color, size=size
            )
        except ValidationError as e:
            self._reject(_describe(e), _product_id(product))
            return False

        existing = self._items.get(request.key)
        if existing:
            self._items[request.key] = existing.model_copy(
                update={"quantity": existing.quantity + request.quantity}
            )
        else:
            self._items[request.key] = request.to_item()

        logger.debug(f"Added {request.quantity}x {request.key} to cart")
        await self._commit()
        return True

    async def update_quantity(self, key: tuple, quantity: int) -> bool:
        """
        Set a line's quantity.

        Quantities below 1 are ignored rather than treated as removal, and
        unknown keys are ignored so stale UI rows cannot fail.
        """
        key = CartKey(*key)
        item = self._items.get(key)
        if item is None:
            logger.debug(f"Ignoring quantity update for missing line {key}")
            return False
        if quantity < 1:
            logger.debug(f"Ignoring quantity {quantity} for {key}")
            return False

        self._items[key] = item.model_copy(update={"quantity": quantity})
        await self._commit()
        return True

    async def increase_quantity(self, key: tuple) -> bool:
        item = self.get_item(key)
        if item is None:
            return False
        return await self.update_quantity(key, item.quantity + 1)

    async def decrease_quantity(self, key: tuple) -> bool:
        item = self.get_item(key)
        if item is None or item.quantity <= 1:
            return False
        return await self.update_quantity(key, item.quantity - 1)

    async def remove_from_cart(self, key: tuple) -> bool:
        if self._items.pop(CartKey(*key), None) is None:
            return False
        await self._commit()
        return True

    async def clear_cart(self) -> None:
        """Empty the cart; saved-for-later items are kept"""
        self._items.clear()
        await self._commit()

    async def save_for_later(self, key: tuple) -> bool:
        item = self._items.pop(CartKey(*key), None)
        if item is None:
            return False
        _merge(self._saved, item)
        await self._commit()
        return True

    async def move_to_cart(self, key: tuple) -> bool:
        item = self._saved.pop(CartKey(*key), None)
        if item is None:
            return False
        _merge(self._items, item)
        await self._commit()
        return True

    async def load(self) -> None:
        """
        Replace the in-memory cart with the stored one.

        If storage cannot be read, the fallback's cart is used instead when
        one is configured; otherwise the in-memory cart is left as it is.
        """
        try:
            snapshot = await self.storage.load()
        except CartPersistenceError as e:
            logger.error(f"Cart load failed: {e}")
            self.notifier.notify(NotificationKind.ERROR, "Failed to load your cart")
            if self.fallback is None:
                return
            try:
                snapshot = await self.fallback.load()
            except CartPersistenceError as e:
                logger.error(f"Fallback cart load failed: {e}")
                return
            logger.info(f"Loaded {len(snapshot.items)} cart lines from fallback storage")

        self._items, self._saved = {}, {}
        for item in snapshot.items:
            _merge(self._items, item)
        for item in snapshot.saved_for_later:
            _merge(self._saved, item)
        self._publish()

    # Internals

    def _reject(self, reason: str, product_id: Optional[str]) -> None:
        if self.strict:
            raise InvalidCartInput(reason, product_id)
        logger.warning(f"Rejected add to cart for product {product_id}: {reason}")
        self.notifier.notify(NotificationKind.ERROR, "This item could not be added to your cart")

    def _publish(self) -> None:
        self.updated_at = datetime.now(timezone.utc)
        items = self.items
        for listener in list(self._listeners):
            try:
                listener(items)
            except Exception:
                logger.exception(f"Cart listener {listener!r} failed")

    async def _commit(self) -> None:
        self._publish()
        await self._persist()

    async def _persist(self) -> None:
        # The snapshot is taken under the lock, so the last save to finish
        # always carries the newest state.
        async with self._save_lock:
            try:
                await self.storage.save(self.snapshot())
            except CartPersistenceError as e:
                logger.error(f"Cart save failed: {e}")
                if not self._persist_failed:
                    self._persist_failed = True
                    self.notifier.notify(
                        NotificationKind.ERROR,
                        "We couldn't save your cart. Your changes are kept for this visit.",
                    )
                return

            if self._persist_failed:
                logger.info("Cart save recovered")
                self._persist_failed = False


def _merge(target: dict[CartKey, CartItem], item: CartItem) -> None:
    existing = target.get(item.key)
    if existing:
        target[item.key] = existing.model_copy(
            update={"quantity": existing.quantity + item.quantity}
        )
    else:
        target[item.key] = item


def _product_id(product: Any) -> Optional[str]:
    if isinstance(product, Mapping):
        return product.get("id")
    return getattr(product, "id", None)


def _describe(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'request'}: {err['msg']}"
        for err in error.errors()
    )
