from typing import Callable, Dict, List

from vecload.core.dispatcher import QueryDefinition, QueryKind
from vecload.core.embeddings import format_embedding
from vecload.core.random import Randomizer

QUERIES: List[QueryDefinition] = [
    QueryDefinition("semantic_search", "Vector search over active products", 30, QueryKind.READ),
    QueryDefinition("category_browse", "List products of a category with ratings", 20, QueryKind.READ),
    QueryDefinition("similar_products", "Nearest products to a given product", 15, QueryKind.READ),
    QueryDefinition("add_to_cart", "Add a product to a customer cart", 10, QueryKind.WRITE),
    QueryDefinition("checkout", "Turn a cart into an order", 5, QueryKind.WRITE),
    QueryDefinition("submit_review", "Write a product review with its embedding", 5, QueryKind.WRITE),
    QueryDefinition("order_history", "Recent orders of a customer", 10, QueryKind.READ),
    QueryDefinition("inventory_check", "Stock levels of a product across warehouses", 5, QueryKind.READ),
]

SEARCH_TERMS = [
    "comfortable running shoes", "waterproof outdoor jacket",
    "wireless bluetooth headphones", "organic cotton t-shirt",
    "stainless steel water bottle", "ergonomic office chair",
    "portable power bank", "lightweight laptop bag",
]

REVIEW_TITLES = ["Great!", "Good value", "Disappointed", "Highly recommend", "Average"]

SHIPPING_FLAT = 9.99
TAX_RATE = 0.08

SEMANTIC_SEARCH_SQL = """
    SELECT p.id, p.name, p.description, p.price, c.name AS category,
           1 - (p.embedding <=> %(embedding)s::vector) AS similarity
    FROM product p
    JOIN category c ON p.category_id = c.id
    WHERE p.is_active = TRUE
    ORDER BY p.embedding <=> %(embedding)s::vector
    LIMIT 20
"""

CATEGORY_BROWSE_SQL = """
    SELECT p.id, p.name, p.price, b.name AS brand,
           COALESCE(AVG(r.rating), 0) AS avg_rating,
           COUNT(r.id) AS review_count
    FROM product p
    LEFT JOIN brand b ON p.brand_id = b.id
    LEFT JOIN product_review r ON p.id = r.product_id
    WHERE p.category_id = %s AND p.is_active = TRUE
    GROUP BY p.id, p.name, p.price, b.name
    ORDER BY p.price
    LIMIT 50
"""

SIMILAR_PRODUCTS_SQL = """
    SELECT p2.id, p2.name, p2.price,
           1 - (p2.embedding <=> p1.embedding) AS similarity
    FROM product p1, product p2
    WHERE p1.id = %s
        AND p2.id != p1.id
        AND p2.is_active = TRUE
    ORDER BY p2.embedding <=> p1.embedding
    LIMIT 10
"""

CREATE_CART_SQL = """
    INSERT INTO cart (customer_id)
    VALUES (%s)
    ON CONFLICT DO NOTHING
    RETURNING id
"""

LATEST_CART_SQL = "SELECT id FROM cart WHERE customer_id = %s ORDER BY id DESC LIMIT 1"

ADD_CART_ITEM_SQL = """
    INSERT INTO cart_item (cart_id, product_id, quantity)
    VALUES (%(cart_id)s, %(product_id)s, %(quantity)s)
    ON CONFLICT (cart_id, product_id)
    DO UPDATE SET quantity = cart_item.quantity + %(quantity)s, added_at = NOW()
"""

CART_SUMMARY_SQL = """
    SELECT c.id, COUNT(ci.id)
    FROM cart c
    LEFT JOIN cart_item ci ON c.id = ci.cart_id
    WHERE c.customer_id = %s
    GROUP BY c.id
    ORDER BY c.id DESC
    LIMIT 1
"""

CART_SUBTOTAL_SQL = """
    SELECT COALESCE(SUM(p.price * ci.quantity), 0)
    FROM cart_item ci
    JOIN product p ON ci.product_id = p.id
    WHERE ci.cart_id = %s
"""

CREATE_ORDER_SQL = """
    INSERT INTO orders (customer_id, status, subtotal, tax, shipping, total, shipping_address, billing_address)
    VALUES (%s, 'pending', %s, %s, %s, %s, 'Default Address', 'Default Address')
    RETURNING id
"""

COPY_CART_ITEMS_SQL = """
    INSERT INTO order_item (order_id, product_id, quantity, unit_price, total_price)
    SELECT %s, ci.product_id, ci.quantity, p.price, p.price * ci.quantity
    FROM cart_item ci
    JOIN product p ON ci.product_id = p.id
    WHERE ci.cart_id = %s
"""

CLEAR_CART_SQL = "DELETE FROM cart_item WHERE cart_id = %s"

INSERT_REVIEW_SQL = """
    INSERT INTO product_review (product_id, customer_id, rating, title, review_text, verified, embedding)
    VALUES (%s, %s, %s, %s, %s, %s, %s::vector)
"""

ORDER_HISTORY_SQL = """
    SELECT o.id, o.status, o.total, o.created_at,
           COUNT(oi.id) AS item_count
    FROM orders o
    LEFT JOIN order_item oi ON o.id = oi.order_id
    WHERE o.customer_id = %s
    GROUP BY o.id, o.status, o.total, o.created_at
    ORDER BY o.created_at DESC
    LIMIT 20
"""

INVENTORY_CHECK_SQL = """
    SELECT i.warehouse, i.quantity, i.reserved,
           (i.quantity - i.reserved) AS available
    FROM inventory i
    WHERE i.product_id = %s
"""


class EcommerceQueries:
    def __init__(self, embedder, bounds: Dict[str, int], rng: Randomizer):
        self.embedder = embedder
        self.rng = rng
        self.num_products = max(1, bounds.get("product", 1))
        self.num_customers = max(1, bounds.get("customer", 1))
        self.num_categories = max(1, bounds.get("category", 1))
        self.num_orders = max(1, bounds.get("orders", 1))

    def handlers(self) -> Dict[str, Callable]:
        return {
            "semantic_search": self.semantic_search,
            "category_browse": self.category_browse,
            "similar_products": self.similar_products,
            "add_to_cart": self.add_to_cart,
            "checkout": self.checkout,
            "submit_review": self.submit_review,
            "order_history": self.order_history,
            "inventory_check": self.inventory_check,
        }

    def _customer(self) -> int:
        return self.rng.int_between(1, self.num_customers)

    def _product(self) -> int:
        return self.rng.int_between(1, self.num_products)

    def semantic_search(self, db) -> int:
        vector = format_embedding(self.embedder.embed(self.rng.choice(SEARCH_TERMS)))
        return len(db.query(SEMANTIC_SEARCH_SQL, {"embedding": vector}))

    def category_browse(self, db) -> int:
        category_id = self.rng.int_between(1, self.num_categories)
        return len(db.query(CATEGORY_BROWSE_SQL, (category_id,)))

    def similar_products(self, db) -> int:
        return len(db.query(SIMILAR_PRODUCTS_SQL, (self._product(),)))

    def add_to_cart(self, db) -> int:
        customer_id = self._customer()
        row = db.query_row(CREATE_CART_SQL, (customer_id,))
        if row is None:
            row = db.query_row(LATEST_CART_SQL, (customer_id,))
            if row is None:
                raise LookupError(f"no cart available for customer {customer_id}")

        db.exec(ADD_CART_ITEM_SQL, {
            "cart_id": row[0],
            "product_id": self._product(),
            "quantity": self.rng.int_between(1, 3),
        })
        return 1

    def checkout(self, db) -> int:
        customer_id = self._customer()
        cart = db.query_row(CART_SUMMARY_SQL, (customer_id,))
        if cart is None or cart[1] == 0:
            # Nothing to buy
            return 0
        cart_id = cart[0]

        subtotal = float(db.query_row(CART_SUBTOTAL_SQL, (cart_id,))[0])
        if subtotal == 0:
            return 0

        tax = subtotal * TAX_RATE
        total = subtotal + tax + SHIPPING_FLAT
        order = db.query_row(CREATE_ORDER_SQL, (customer_id, round(subtotal, 2), round(tax, 2),
                                                SHIPPING_FLAT, round(total, 2)))
        db.exec(COPY_CART_ITEMS_SQL, (order[0], cart_id))
        db.exec(CLEAR_CART_SQL, (cart_id,))
        return 1

    def submit_review(self, db) -> int:
        title = self.rng.choice(REVIEW_TITLES)
        text = self.rng.sentence(15)
        vector = format_embedding(self.embedder.embed(f"{title} {text}"))
        db.exec(INSERT_REVIEW_SQL, (self._product(), self._customer(), self.rng.int_between(1, 5),
                                    title, text, self.rng.chance(0.5), vector))
        return 1

    def order_history(self, db) -> int:
        return len(db.query(ORDER_HISTORY_SQL, (self._customer(),)))

    def inventory_check(self, db) -> int:
        return len(db.query(INVENTORY_CHECK_SQL, (self._product(),)))
