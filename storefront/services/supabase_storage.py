"""
Remote cart storage for signed-in shoppers.

Carts live in the backend's ``user_cart_items`` table, reached through its
PostgREST endpoint. Rows carry no price, so a cart loaded from the backend
is priced from the joined product row at load time.
"""

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from ..core.exceptions import CartPersistenceError
from ..models.cart import DEFAULT_VARIANT, CartItem, CartSnapshot
from ..models.product import Product

logger = logging.getLogger(__name__)

CART_TABLE = "user_cart_items"


class SupabaseClient:
    """
    Thin client for the backend's REST endpoint.

    One instance is shared by every signed-in session and closed on shutdown.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
    ):
        """
        Initialize the client.

        Args:
            base_url: Project URL, e.g. https://xyz.supabase.co
            api_key: Anon or service key sent with every request
            timeout: Per-request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self._http_client = httpx.AsyncClient(
            base_url=f"{self.base_url}/rest/v1",
            timeout=timeout,
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
            },
        )

    async def close(self) -> None:
        """Close HTTP client"""
        await self._http_client.aclose()

    async def request(
        self,
        method: str,
        table: str,
        params: Optional[dict[str, str]] = None,
        body: Optional[Any] = None,
        prefer: Optional[str] = None,
    ) -> Any:
        """Make a request against a table; returns decoded JSON or None"""
        headers = {"Prefer": prefer} if prefer else None
        response = await self._http_client.request(
            method,
            f"/{table}",
            params=params,
            json=body,
            headers=headers,
        )

        if response.status_code >= 400:
            logger.error(f"{method} {table} failed: {response.status_code} - {response.text}")
            response.raise_for_status()

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"{method} {table} returned a body that is not JSON: {e}")
            raise httpx.DecodingError(
                f"Invalid JSON from {table}", request=response.request
            ) from e


class SupabaseCartStorage:
    """Cart storage backed by one user's rows in ``user_cart_items``"""

    def __init__(self, client: SupabaseClient, user_id: str):
        self.client = client
        self.user_id = user_id

    async def load(self) -> CartSnapshot:
        try:
            rows = await self.client.request(
                "GET",
                CART_TABLE,
                params={
                    "select": "*,product:products(*)",
                    "user_id": f"eq.{self.user_id}",
                    "order": "created_at.asc",
                },
            )
        except httpx.HTTPError as e:
            raise CartPersistenceError("load", str(e)) from e

        if rows is not None and not isinstance(rows, list):
            raise CartPersistenceError("load", f"expected a list of rows, got {type(rows).__name__}")

        snapshot = CartSnapshot()
        for row in rows or []:
            if not isinstance(row, dict):
                logger.warning(f"Skipping cart row that is not an object: {row!r}")
                continue
            item = self._row_to_item(row)
            if item is None:
                continue
            if row.get("saved_for_later"):
                snapshot.saved_for_later.append(item)
            else:
                snapshot.items.append(item)
        return snapshot

    async def save(self, snapshot: CartSnapshot) -> None:
        """
        Replace the user's rows with the snapshot.

        Not atomic: if the insert fails after the delete, the remote cart
        stays empty until the next successful save.
        """
        rows = [self._item_to_row(item, False) for item in snapshot.items]
        rows += [self._item_to_row(item, True) for item in snapshot.saved_for_later]

        try:
            await self.client.request(
                "DELETE",
                CART_TABLE,
                params={"user_id": f"eq.{self.user_id}"},
            )
            if rows:
                await self.client.request(
                    "POST",
                    CART_TABLE,
                    body=rows,
                    prefer="return=minimal",
                )
        except httpx.HTTPError as e:
            raise CartPersistenceError("save", str(e)) from e

    def _row_to_item(self, row: dict) -> Optional[CartItem]:
        product_row = row.get("product")
        if not isinstance(product_row, dict) or not product_row:
            logger.warning(f"Product not found for ID: {row.get('product_id')}")
            return None

        try:
            product = Product(
                id=product_row["id"],
                name=product_row.get("name") or "",
                description=product_row.get("description") or "",
                price=product_row["price"],
                sale_price=product_row.get("sale_price"),
                images=product_row.get("images") or [],
                colors=product_row.get("colors") or [],
                sizes=product_row.get("sizes") or [],
                stock=product_row.get("stock") or 0,
                shop_id=product_row.get("shop_id"),
            )
            return CartItem(
                product_id=product.id,
                color=row.get("color") or DEFAULT_VARIANT,
                size=row.get("size") or DEFAULT_VARIANT,
                quantity=row["quantity"],
                unit_price=product.effective_price,
                name=product.name,
                image=product.images[0] if product.images else "",
                shop_id=product.shop_id,
                stock=product.stock,
            )
        except (KeyError, ValidationError) as e:
            logger.warning(f"Skipping malformed cart row for product {row.get('product_id')}: {e}")
            return None

    def _item_to_row(self, item: CartItem, saved_for_later: bool) -> dict:
        return {
            "user_id": self.user_id,
            "product_id": item.product_id,
            "quantity": item.quantity,
            # Other clients of the table store "no variant" as an empty string
            "color": "" if item.color == DEFAULT_VARIANT else item.color,
            "size": "" if item.size == DEFAULT_VARIANT else item.size,
            "saved_for_later": saved_for_later,
        }
