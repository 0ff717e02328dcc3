import pytest

from storefront.core.exceptions import CartPersistenceError
from storefront.database.carts import CartStore
from storefront.database.storage import MemoryCartStorage
from storefront.models.cart import CartSnapshot
from storefront.models.product import Product
from storefront.services.notifications import QueueNotifier


class FlakyStorage(MemoryCartStorage):
    """Memory storage whose saves fail while ``failing`` is set"""

    def __init__(self):
        super().__init__()
        self.failing = False
        self.saves: list[CartSnapshot] = []

    async def save(self, snapshot: CartSnapshot) -> None:
        if self.failing:
            raise CartPersistenceError("save", "storage unavailable")
        self.saves.append(snapshot)
        await super().save(snapshot)


@pytest.fixture
def sale_product():
    return Product(id="p1", name="Linen Shirt", price=100, sale_price=80,
                   images=["/img/shirt.jpg"], colors=["blue", "red"],
                   sizes=["M", "L"], stock=20, shop_id="shop-a")


@pytest.fixture
def plain_product():
    return Product(id="p2", name="Notebook", price=25, stock=50, shop_id="shop-b")


@pytest.fixture
def storage():
    return FlakyStorage()


@pytest.fixture
def notifier():
    return QueueNotifier()


@pytest.fixture
def store(storage, notifier):
    return CartStore(storage=storage, notifier=notifier)
