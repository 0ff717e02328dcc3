"""Read-only product catalog"""

from typing import Iterable, Optional

from ..models.product import Product

# Demo catalog spanning two shops; some products carry variants and sale prices
PRODUCTS: dict[str, Product] = {
    product.id: product
    for product in [
        Product(
            id="prod-001",
            name="Cotton Crew Neck T-Shirt",
            description="Soft combed cotton tee with a relaxed fit.",
            price=799.0,
            sale_price=599.0,
            images=["/static/images/crew-tee-white.jpg", "/static/images/crew-tee-black.jpg"],
            colors=["white", "black", "navy"],
            sizes=["S", "M", "L", "XL"],
            stock=40,
            shop_id="shop-urban-threads",
        ),
        Product(
            id="prod-002",
            name="Slim Fit Denim Jeans",
            description="Stretch denim with a tapered leg.",
            price=1999.0,
            images=["/static/images/slim-jeans.jpg"],
            colors=["indigo", "charcoal"],
            sizes=["30", "32", "34", "36"],
            stock=25,
            shop_id="shop-urban-threads",
        ),
        Product(
            id="prod-003",
            name="Canvas Tote Bag",
            description="Heavy canvas tote with an inner zip pocket.",
            price=499.0,
            sale_price=549.0,
            images=["/static/images/canvas-tote.jpg"],
            stock=100,
            shop_id="shop-urban-threads",
        ),
        Product(
            id="prod-004",
            name="Wireless Earbuds",
            description="Bluetooth 5.3 earbuds with 24-hour charging case.",
            price=2999.0,
            sale_price=2499.0,
            images=["/static/images/earbuds.jpg"],
            colors=["black", "white"],
            stock=15,
            shop_id="shop-gadget-hub",
        ),
        Product(
            id="prod-005",
            name="Stainless Steel Water Bottle",
            description="Double-walled, keeps drinks cold for 24 hours.",
            price=899.0,
            images=["/static/images/bottle.jpg"],
            sizes=["500ml", "750ml", "1L"],
            stock=60,
            shop_id="shop-gadget-hub",
        ),
        Product(
            id="prod-006",
            name="USB-C Fast Charger",
            description="65W GaN charger with two USB-C ports.",
            price=1499.0,
            images=["/static/images/charger.jpg"],
            stock=0,
            shop_id="shop-gadget-hub",
        ),
    ]
}


class ProductCatalog:
    """In-memory product catalog"""

    def __init__(self, products: Optional[Iterable[Product]] = None):
        if products is None:
            self.products = PRODUCTS.copy()
        else:
            self.products = {p.id: p for p in products}

    def get_product(self, product_id: str) -> Optional[Product]:
        """Get a product by ID"""
        return self.products.get(product_id)

    def search_products(
        self,
        query: Optional[str] = None,
        shop_id: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        in_stock_only: bool = True,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Product], int]:
        """
        Search products with filters.

        Price filters apply to the price a shopper would pay.

        Returns:
            Tuple of (matching products, total count)
        """
        results = list(self.products.values())

        if query:
            query_lower = query.lower()
            results = [
                p for p in results
                if query_lower in p.name.lower() or query_lower in p.description.lower()
            ]

        if shop_id:
            results = [p for p in results if p.shop_id == shop_id]

        if min_price is not None:
            results = [p for p in results if p.effective_price >= min_price]
        if max_price is not None:
            results = [p for p in results if p.effective_price <= max_price]

        if in_stock_only:
            results = [p for p in results if p.in_stock]

        total = len(results)
        return results[offset : offset + limit], total

    def get_all_products(self) -> list[Product]:
        """Get all products"""
        return list(self.products.values())
