"""Product models for the storefront catalog"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class Product(BaseModel):
    """Product as supplied by the catalog"""
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(min_length=1)
    name: str = ""
    description: str = ""
    price: float = Field(ge=0)
    sale_price: Optional[float] = Field(default=None, ge=0)
    images: list[str] = []
    colors: list[str] = []
    sizes: list[str] = []
    stock: int = Field(ge=0, default=0)
    shop_id: Optional[str] = None

    @property
    def effective_price(self) -> float:
        """Sale price when it undercuts the list price, else the list price"""
        if self.sale_price is not None and self.sale_price < self.price:
            return self.sale_price
        return self.price

    @property
    def in_stock(self) -> bool:
        return self.stock > 0


class ProductSearchResponse(BaseModel):
    """Response from product search"""
    products: list[Product]
    total: int
    limit: int
    offset: int
