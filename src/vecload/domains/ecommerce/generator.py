import logging
from datetime import datetime, timedelta
from typing import Dict

from vecload.core.batch import BatchConfig, BatchInserter
from vecload.core.embeddings import format_embedding
from vecload.core.estimator import TableSizeInfo
from vecload.core.random import Randomizer

logger = logging.getLogger(__name__)

TABLE_SIZES = [
    TableSizeInfo("category", 150, 100, 1.1),
    TableSizeInfo("brand", 150, 50, 1.1),
    TableSizeInfo("product", 2000, 10000, 1.5),
    TableSizeInfo("inventory", 50, 20000, 1.2),
    TableSizeInfo("customer", 300, 50000, 1.2),
    TableSizeInfo("cart", 50, 10000, 1.2),
    TableSizeInfo("cart_item", 30, 30000, 1.2),
    TableSizeInfo("orders", 200, 100000, 1.3),
    TableSizeInfo("order_item", 50, 300000, 1.3),
    TableSizeInfo("product_review", 2000, 50000, 1.5),
]

VECTOR_TABLES = ["product", "product_review"]

PRODUCT_CATEGORIES = [
    "Electronics", "Clothing", "Home & Garden", "Sports", "Toys",
    "Books", "Health", "Automotive", "Jewelry", "Food",
]

PRODUCT_ADJECTIVES = [
    "Premium", "Professional", "Deluxe", "Essential", "Ultimate",
    "Classic", "Modern", "Vintage", "Eco-friendly", "Smart",
]

WAREHOUSES = ["EAST", "WEST", "CENTRAL"]

US_STATES = ["AL", "AK", "AZ", "CA", "CO", "FL", "GA", "IL", "NY", "TX", "WA"]

ORDER_STATUSES = ["pending", "processing", "shipped", "delivered", "cancelled"]

REVIEW_TITLES = [
    "Great product!", "Disappointed", "Exactly what I needed",
    "Good value", "Not as described", "Highly recommend", "Average quality",
]

MAX_ITEMS_PER_ORDER = 5
TAX_RATE = 0.08
ORDER_HISTORY_START = datetime(2022, 1, 1)


class EcommerceGenerator:
    """
    Genera el catalogo, clientes, pedidos y reseñas.
    Carritos y sus items los crea el propio workload en ejecucion.
    """

    def __init__(self, workload, db, batch: BatchConfig, rng: Randomizer):
        self.workload = workload
        self.db = db
        self.batch = batch
        self.rng = rng
        self.embedder = workload.embedder

    def _load(self, table: str, columns, rows, total: int = None) -> int:
        logger.info("Generating %s", table)
        inserter = self.workload.inserter(self.db, table, columns, self.batch, total_rows=total)
        return inserter.insert_all(rows)

    def _vector(self, text: str) -> str:
        return format_embedding(self.embedder.embed(text))

    def run(self, counts: Dict[str, int]) -> Dict[str, int]:
        n_categories = counts["category"]
        n_brands = counts["brand"]
        n_products = counts["product"]
        n_customers = counts["customer"]

        written = {
            "category": self.categories(n_categories),
            "brand": self.brands(n_brands),
            "product": self.products(n_products, n_categories, n_brands),
            "inventory": self.inventory(n_products),
            "customer": self.customers(n_customers),
        }
        written.update(self.orders(counts["orders"], n_customers, n_products))
        written["product_review"] = self.reviews(counts["product_review"], n_products, n_customers)
        return written

    def categories(self, count: int) -> int:
        def rows():
            for i in range(1, count + 1):
                base = PRODUCT_CATEGORIES[(i - 1) % len(PRODUCT_CATEGORIES)]
                parent_id = None
                if i > len(PRODUCT_CATEGORIES) and self.rng.int_between(1, 3) == 1:
                    parent_id = self.rng.int_between(1, len(PRODUCT_CATEGORIES))
                yield (f"{self.rng.choice(PRODUCT_ADJECTIVES)} {base}",
                       self.rng.sentence(10), parent_id)

        return self._load("category", ["name", "description", "parent_id"], rows(), count)

    def brands(self, count: int) -> int:
        def rows():
            for _ in range(count):
                name = self.rng.company()[:100]
                domain = name.replace(" ", "").replace("'", "").replace(",", "").lower()
                yield (name, self.rng.sentence(8), f"https://www.{domain}.com")

        return self._load("brand", ["name", "description", "website"], rows(), count)

    def products(self, count: int, n_categories: int, n_brands: int) -> int:
        def rows():
            for i in range(1, count + 1):
                name = self.rng.product_name()[:200]
                description = self.rng.sentence(25)
                price = self.rng.uniform(5, 2000)
                cost = price * self.rng.uniform(0.3, 0.7)
                yield (
                    f"SKU-{i:08d}", name, description,
                    self.rng.int_between(1, n_categories),
                    self.rng.int_between(1, n_brands),
                    round(price, 2), round(cost, 2),
                    round(self.rng.uniform(0.1, 50), 2),
                    True,
                    self._vector(f"{name} {description}"),
                )

        return self._load(
            "product",
            ["sku", "name", "description", "category_id", "brand_id", "price", "cost",
             "weight", "is_active", "embedding"],
            rows(), count)

    def inventory(self, n_products: int) -> int:
        def rows():
            for product_id in range(1, n_products + 1):
                for warehouse in WAREHOUSES:
                    qty = self.rng.int_between(0, 1000)
                    yield (product_id, warehouse, qty, self.rng.int_between(0, qty // 10))

        return self._load(
            "inventory", ["product_id", "warehouse", "quantity", "reserved"],
            rows(), n_products * len(WAREHOUSES))

    def customers(self, count: int) -> int:
        def rows():
            for i in range(1, count + 1):
                yield (
                    f"customer{i}@example.com",
                    self.rng.first_name(), self.rng.last_name(),
                    self.rng.phone(), self.rng.street(), None,
                    self.rng.city(), self.rng.choice(US_STATES),
                    self.rng.zip_code(), "USA",
                )

        return self._load(
            "customer",
            ["email", "first_name", "last_name", "phone", "address_line1", "address_line2",
             "city", "state", "postal_code", "country"],
            rows(), count)

    def orders(self, count: int, n_customers: int, n_products: int) -> Dict[str, int]:
        """
        Pedidos y sus lineas. Las lineas solo se escriben despues de que
        el batch de pedidos que las contiene quedo confirmado.
        """
        logger.info("Generating orders")
        order_batch = self.batch.for_vectors()
        items = BatchInserter(
            self.db, "order_item",
            ["order_id", "product_id", "quantity", "unit_price", "total_price"],
            BatchConfig(order_batch.batch_size * MAX_ITEMS_PER_ORDER + 1, self.batch.progress_interval),
        )
        orders = BatchInserter(
            self.db, "orders",
            ["customer_id", "status", "subtotal", "tax", "shipping", "total",
             "shipping_address", "billing_address", "created_at"],
            order_batch, total_rows=count,
            after_flush=lambda _: items.flush(),
        )

        for order_id in range(1, count + 1):
            subtotal = 0.0
            for _ in range(self.rng.int_between(1, MAX_ITEMS_PER_ORDER)):
                qty = self.rng.int_between(1, 3)
                unit_price = self.rng.uniform(10, 500)
                line_total = qty * unit_price
                subtotal += line_total
                items.add((order_id, self.rng.int_between(1, n_products), qty,
                           round(unit_price, 2), round(line_total, 2)))

            tax = subtotal * TAX_RATE
            shipping = self.rng.uniform(0, 20)
            created_at = ORDER_HISTORY_START + timedelta(hours=self.rng.int_between(0, 365 * 2 * 24))
            orders.add((
                self.rng.int_between(1, n_customers),
                self.rng.choice(ORDER_STATUSES),
                round(subtotal, 2), round(tax, 2), round(shipping, 2),
                round(subtotal + tax + shipping, 2),
                f"{self.rng.street()} {self.rng.city()}",
                f"{self.rng.street()} {self.rng.city()}",
                created_at,
            ))

        orders.flush()
        orders.progress.done()
        items.progress.done()
        return {"orders": orders.rows_written, "order_item": items.rows_written}

    def reviews(self, count: int, n_products: int, n_customers: int) -> int:
        def rows():
            for _ in range(count):
                title = self.rng.choice(REVIEW_TITLES)
                text = self.rng.sentence(20)
                yield (
                    self.rng.int_between(1, n_products),
                    self.rng.int_between(1, n_customers),
                    self.rng.int_between(1, 5),
                    title, text,
                    self.rng.int_between(0, 100),
                    self.rng.chance(0.5),
                    self._vector(f"{title} {text}"),
                )

        return self._load(
            "product_review",
            ["product_id", "customer_id", "rating", "title", "review_text", "helpful_votes",
             "verified", "embedding"],
            rows(), count)
