"""
Unit Tests: CartStore

Covers identity merging, quantity rules, removal, clearing, derived totals,
saved-for-later, listeners and persistence failure handling.
"""

import pytest

from storefront.core.exceptions import CartPersistenceError, InvalidCartInput
from storefront.database.carts import CartStore
from storefront.database.storage import MemoryCartStorage
from storefront.models.cart import CartKey
from storefront.models.notification import NotificationKind


@pytest.mark.asyncio
async def test_example_scenario(store, sale_product):
    key = CartKey("p1", "blue", "M")

    await store.add_to_cart(sale_product, 2, "blue", "M")
    assert len(store.items) == 1
    item = store.get_item(key)
    assert item.quantity == 2
    assert item.unit_price == 80
    assert item.line_total == 160

    await store.add_to_cart(sale_product, 1, "blue", "M")
    assert len(store.items) == 1
    assert store.get_item(key).quantity == 3
    assert store.get_item(key).line_total == 240

    await store.update_quantity(key, 5)
    assert store.get_item(key).line_total == 400

    await store.remove_from_cart(key)
    assert store.items == []
    assert store.subtotal == 0


class TestIdentity:

    @pytest.mark.asyncio
    async def test_same_key_merges_quantities(self, store, sale_product):
        await store.add_to_cart(sale_product, 2, "red", "M")
        await store.add_to_cart(sale_product, 4, "red", "M")

        assert len(store.items) == 1
        assert store.items[0].quantity == 6

    @pytest.mark.asyncio
    async def test_different_size_is_a_separate_line(self, store, sale_product):
        await store.add_to_cart(sale_product, 1, "red", "M")
        await store.add_to_cart(sale_product, 1, "red", "L")

        assert [item.key for item in store.items] == [
            CartKey("p1", "red", "M"),
            CartKey("p1", "red", "L"),
        ]

    @pytest.mark.asyncio
    async def test_product_without_variants_uses_default(self, store, plain_product):
        await store.add_to_cart(plain_product)

        assert store.items[0].key == CartKey("p2", "default", "default")

    @pytest.mark.asyncio
    async def test_accepts_product_mapping(self, store):
        await store.add_to_cart({"id": "p9", "name": "Mug", "price": 12.5}, 2)

        assert store.get_item(("p9",)).line_total == 25.0

    @pytest.mark.asyncio
    async def test_accepts_mapping_without_name(self, store):
        added = await store.add_to_cart({"id": "p1", "price": 100, "sale_price": 80}, 2)

        assert added is True
        item = store.get_item(("p1",))
        assert item.name == ""
        assert item.unit_price == 80
        assert item.line_total == 160

    @pytest.mark.asyncio
    async def test_price_captured_at_add_time(self, store, sale_product):
        await store.add_to_cart(sale_product, 1, "blue", "M")
        repriced = sale_product.model_copy(update={"sale_price": 50})

        await store.add_to_cart(repriced, 1, "blue", "M")

        item = store.get_item(("p1", "blue", "M"))
        assert item.unit_price == 80
        assert item.line_total == 160


class TestUpdateQuantity:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("quantity", [0, -1, -10])
    async def test_below_one_is_ignored(self, store, sale_product, quantity):
        await store.add_to_cart(sale_product, 3, "blue", "M")

        changed = await store.update_quantity(("p1", "blue", "M"), quantity)

        assert changed is False
        assert store.get_item(("p1", "blue", "M")).quantity == 3

    @pytest.mark.asyncio
    async def test_unknown_key_is_ignored(self, store, sale_product):
        await store.add_to_cart(sale_product, 1, "blue", "M")

        changed = await store.update_quantity(("p1", "blue", "L"), 4)

        assert changed is False
        assert store.item_count == 1

    @pytest.mark.asyncio
    async def test_update_keeps_position(self, store, sale_product, plain_product):
        await store.add_to_cart(sale_product, 1, "blue", "M")
        await store.add_to_cart(plain_product, 1)
        await store.add_to_cart(sale_product, 1, "red", "L")

        await store.update_quantity(("p2",), 7)

        assert [item.product_id for item in store.items] == ["p1", "p2", "p1"]
        assert store.items[1].quantity == 7

    @pytest.mark.asyncio
    async def test_decrease_stops_at_one(self, store, plain_product):
        await store.add_to_cart(plain_product, 2)
        key = ("p2",)

        assert await store.decrease_quantity(key) is True
        assert await store.decrease_quantity(key) is False
        assert store.get_item(key).quantity == 1

    @pytest.mark.asyncio
    async def test_increase(self, store, plain_product):
        await store.add_to_cart(plain_product, 1)

        await store.increase_quantity(("p2",))
        await store.increase_quantity(("p2",))

        assert store.get_item(("p2",)).quantity == 3


class TestRemoveAndClear:

    @pytest.mark.asyncio
    async def test_remove_twice_is_safe(self, store, sale_product, plain_product):
        await store.add_to_cart(sale_product, 1, "blue", "M")
        await store.add_to_cart(plain_product, 1)

        assert await store.remove_from_cart(("p1", "blue", "M")) is True
        assert await store.remove_from_cart(("p1", "blue", "M")) is False
        assert [item.product_id for item in store.items] == ["p2"]

    @pytest.mark.asyncio
    async def test_clear_keeps_saved_items(self, store, sale_product, plain_product):
        await store.add_to_cart(sale_product, 1, "blue", "M")
        await store.add_to_cart(plain_product, 1)
        await store.save_for_later(("p2",))

        await store.clear_cart()

        assert store.items == []
        assert [item.product_id for item in store.saved_items] == ["p2"]


class TestDerivedReads:

    @pytest.mark.asyncio
    async def test_item_count_and_subtotal(self, store, sale_product, plain_product):
        await store.add_to_cart(sale_product, 2, "blue", "M")
        await store.add_to_cart(plain_product, 3)

        assert store.item_count == 5
        assert store.subtotal == 2 * 80 + 3 * 25

    @pytest.mark.asyncio
    async def test_is_in_cart(self, store, sale_product):
        await store.add_to_cart(sale_product, 1, "blue", "M")

        assert store.is_in_cart("p1", "blue", "M")
        assert not store.is_in_cart("p1", "blue", "L")
        assert store.is_in_cart("p1")
        assert store.is_in_cart("p1", color="blue")
        assert not store.is_in_cart("p2")

    @pytest.mark.asyncio
    async def test_item_quantity_spans_variants(self, store, sale_product):
        await store.add_to_cart(sale_product, 2, "blue", "M")
        await store.add_to_cart(sale_product, 3, "red", "L")

        assert store.get_item_quantity("p1") == 5

    @pytest.mark.asyncio
    async def test_items_are_copies(self, store, plain_product):
        await store.add_to_cart(plain_product, 1)
        before = store.items

        await store.update_quantity(("p2",), 4)

        assert before[0].quantity == 1
        assert store.items[0].quantity == 4


class TestSavedForLater:

    @pytest.mark.asyncio
    async def test_round_trip_merges_by_identity(self, store, sale_product):
        await store.add_to_cart(sale_product, 2, "blue", "M")
        await store.save_for_later(("p1", "blue", "M"))
        await store.add_to_cart(sale_product, 1, "blue", "M")

        assert await store.move_to_cart(("p1", "blue", "M")) is True

        assert store.saved_items == []
        assert store.get_item(("p1", "blue", "M")).quantity == 3

    @pytest.mark.asyncio
    async def test_unknown_keys_are_ignored(self, store):
        assert await store.save_for_later(("nope",)) is False
        assert await store.move_to_cart(("nope",)) is False


class TestInvalidInput:

    @pytest.mark.asyncio
    async def test_lenient_mode_notifies_and_ignores(self, store, notifier, sale_product):
        added = await store.add_to_cart(sale_product, 1, "green", "M")

        assert added is False
        assert store.items == []
        assert [n.kind for n in notifier.drain()] == [NotificationKind.ERROR]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("product, quantity", [
        ({"name": "No id", "price": 10}, 1),
        ({"id": "", "name": "Empty id", "price": 10}, 1),
        ({"id": "p3", "name": "Negative", "price": -1}, 1),
        ({"id": "p3", "name": "Zero qty", "price": 10}, 0),
    ])
    async def test_strict_mode_raises(self, storage, product, quantity):
        store = CartStore(storage=storage, strict=True)

        with pytest.raises(InvalidCartInput):
            await store.add_to_cart(product, quantity)
        assert store.items == []


class TestPersistence:

    @pytest.mark.asyncio
    async def test_every_mutation_is_saved(self, store, storage, plain_product):
        await store.add_to_cart(plain_product, 1)
        await store.update_quantity(("p2",), 3)
        await store.remove_from_cart(("p2",))

        assert [len(s.items) for s in storage.saves] == [1, 1, 0]
        assert storage.saves[1].items[0].quantity == 3

    @pytest.mark.asyncio
    async def test_failure_keeps_state_and_notifies_once(
        self, store, storage, notifier, plain_product
    ):
        storage.failing = True

        await store.add_to_cart(plain_product, 1)
        await store.increase_quantity(("p2",))

        assert store.get_item(("p2",)).quantity == 2
        errors = [n for n in notifier.drain() if n.kind == NotificationKind.ERROR]
        assert len(errors) == 1

    @pytest.mark.asyncio
    async def test_notifies_again_after_recovery(self, store, storage, notifier, plain_product):
        storage.failing = True
        await store.add_to_cart(plain_product, 1)
        storage.failing = False
        await store.add_to_cart(plain_product, 1)
        storage.failing = True
        await store.add_to_cart(plain_product, 1)

        assert len(notifier.drain()) == 2
        assert storage.saves[-1].items[0].quantity == 2

    @pytest.mark.asyncio
    async def test_load_restores_saved_cart(self, storage, sale_product, plain_product):
        first = CartStore(storage=storage)
        await first.add_to_cart(plain_product, 2)
        await first.add_to_cart(sale_product, 1, "red", "L")
        await first.save_for_later(("p2",))

        second = CartStore(storage=storage)
        await second.load()

        assert second.items == first.items
        assert second.saved_items == first.saved_items

    @pytest.mark.asyncio
    async def test_load_falls_back_when_storage_unreadable(self, notifier, plain_product):
        class Unreadable(MemoryCartStorage):
            async def load(self):
                raise CartPersistenceError("load", "backend down")

        local = MemoryCartStorage()
        await CartStore(storage=local).add_to_cart(plain_product, 3)
        store = CartStore(storage=Unreadable(), notifier=notifier, fallback=local)

        await store.load()

        assert store.item_count == 3
        assert [n.message for n in notifier.drain()] == ["Failed to load your cart"]

    @pytest.mark.asyncio
    async def test_load_failure_without_fallback_keeps_cart(self, notifier, plain_product):
        class Unreadable(MemoryCartStorage):
            async def load(self):
                raise CartPersistenceError("load", "backend down")

        store = CartStore(storage=Unreadable(), notifier=notifier)
        await store.add_to_cart(plain_product, 1)

        await store.load()

        assert store.item_count == 1


class TestListeners:

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_block_save(self, store, storage, plain_product):
        def broken(items):
            raise RuntimeError("render failed")

        seen = []
        store.subscribe(broken)
        store.subscribe(seen.append)

        assert await store.add_to_cart(plain_product, 1) is True

        assert store.item_count == 1
        assert len(seen) == 1
        assert storage.saves[-1].items[0].product_id == "p2"

    @pytest.mark.asyncio
    async def test_listener_sees_each_change(self, store, plain_product):
        seen = []
        unsubscribe = store.subscribe(lambda items: seen.append(sum(i.quantity for i in items)))

        await store.add_to_cart(plain_product, 1)
        await store.increase_quantity(("p2",))
        unsubscribe()
        await store.increase_quantity(("p2",))

        assert seen == [1, 2]
