# Database modules

from .products import ProductCatalog
from .carts import CartStore
from .storage import CartStorage, MemoryCartStorage, JsonFileCartStorage

__all__ = [
    "ProductCatalog",
    "CartStore",
    "CartStorage",
    "MemoryCartStorage",
    "JsonFileCartStorage",
]
