"""
Unit Tests: SupabaseCartStorage

The backend's REST endpoint is mocked with respx.
"""

import json

import httpx
import pytest
import pytest_asyncio
from httpx import Response

from storefront.core.exceptions import CartPersistenceError
from storefront.models.cart import CartItem, CartSnapshot
from storefront.services.supabase_storage import SupabaseCartStorage, SupabaseClient

BASE_URL = "https://test.supabase.co"
TABLE_URL = f"{BASE_URL}/rest/v1/user_cart_items"


def _product_row(product_id: str, **overrides) -> dict:
    row = {
        "id": product_id,
        "name": f"Product {product_id}",
        "description": None,
        "price": 100,
        "sale_price": None,
        "images": ["/img/a.jpg", "/img/b.jpg"],
        "colors": ["blue"],
        "sizes": [],
        "stock": None,
        "shop_id": "shop-a",
    }
    row.update(overrides)
    return row


@pytest_asyncio.fixture
async def client():
    client = SupabaseClient(BASE_URL, "anon-key")
    yield client
    await client.close()


@pytest.fixture
def storage(client):
    return SupabaseCartStorage(client, "user-42")


class TestLoad:

    @pytest.mark.asyncio
    async def test_rows_become_priced_items(self, respx_mock, storage):
        route = respx_mock.get(TABLE_URL).mock(return_value=Response(200, json=[
            {"product_id": "p1", "quantity": 2, "color": "blue", "size": "",
             "saved_for_later": False, "product": _product_row("p1", sale_price=80)},
            {"product_id": "p2", "quantity": 1, "color": "", "size": "",
             "saved_for_later": True, "product": _product_row("p2", colors=[])},
        ]))

        snapshot = await storage.load()

        request = route.calls.last.request
        assert request.url.params["user_id"] == "eq.user-42"
        assert request.url.params["select"] == "*,product:products(*)"
        assert request.headers["apikey"] == "anon-key"
        assert request.headers["authorization"] == "Bearer anon-key"

        item = snapshot.items[0]
        assert (item.product_id, item.color, item.size) == ("p1", "blue", "default")
        assert item.unit_price == 80
        assert item.line_total == 160
        assert item.image == "/img/a.jpg"
        assert item.stock == 0
        assert [i.product_id for i in snapshot.saved_for_later] == ["p2"]
        assert snapshot.saved_for_later[0].color == "default"

    @pytest.mark.asyncio
    async def test_rows_without_product_are_skipped(self, respx_mock, storage):
        respx_mock.get(TABLE_URL).mock(return_value=Response(200, json=[
            {"product_id": "gone", "quantity": 1, "color": "", "size": "",
             "saved_for_later": False, "product": None},
            {"product_id": "p1", "quantity": 1, "color": "", "size": "",
             "saved_for_later": False, "product": _product_row("p1", colors=[])},
        ]))

        snapshot = await storage.load()

        assert [i.product_id for i in snapshot.items] == ["p1"]

    @pytest.mark.asyncio
    async def test_http_error_raises(self, respx_mock, storage):
        respx_mock.get(TABLE_URL).mock(return_value=Response(500, text="boom"))

        with pytest.raises(CartPersistenceError):
            await storage.load()


    @pytest.mark.asyncio
    async def test_non_json_body_raises(self, respx_mock, storage):
        respx_mock.get(TABLE_URL).mock(return_value=Response(200, text="<html>maintenance</html>"))

        with pytest.raises(CartPersistenceError) as exc_info:
            await storage.load()
        assert exc_info.value.operation == "load"

    @pytest.mark.asyncio
    async def test_unexpected_shape_raises(self, respx_mock, storage):
        respx_mock.get(TABLE_URL).mock(return_value=Response(200, json={"message": "ok"}))

        with pytest.raises(CartPersistenceError):
            await storage.load()


class TestSave:

    @pytest.mark.asyncio
    async def test_replaces_user_rows(self, respx_mock, storage):
        delete = respx_mock.delete(TABLE_URL).mock(return_value=Response(204))
        insert = respx_mock.post(TABLE_URL).mock(return_value=Response(201))
        snapshot = CartSnapshot(
            items=[CartItem(product_id="p1", color="blue", quantity=2, unit_price=80)],
            saved_for_later=[CartItem(product_id="p2", quantity=1, unit_price=25)],
        )

        await storage.save(snapshot)

        assert delete.calls.last.request.url.params["user_id"] == "eq.user-42"
        request = insert.calls.last.request
        assert request.headers["prefer"] == "return=minimal"
        assert json.loads(request.content) == [
            {"user_id": "user-42", "product_id": "p1", "quantity": 2,
             "color": "blue", "size": "", "saved_for_later": False},
            {"user_id": "user-42", "product_id": "p2", "quantity": 1,
             "color": "", "size": "", "saved_for_later": True},
        ]

    @pytest.mark.asyncio
    async def test_empty_cart_only_deletes(self, respx_mock, storage):
        delete = respx_mock.delete(TABLE_URL).mock(return_value=Response(204))
        insert = respx_mock.post(TABLE_URL).mock(return_value=Response(201))

        await storage.save(CartSnapshot())

        assert delete.called
        assert not insert.called

    @pytest.mark.asyncio
    async def test_transport_error_raises(self, respx_mock, storage):
        respx_mock.delete(TABLE_URL).mock(side_effect=httpx.ConnectError("unreachable"))

        with pytest.raises(CartPersistenceError) as exc_info:
            await storage.save(CartSnapshot())
        assert exc_info.value.operation == "save"
