from vecload.core.workload import Workload
from vecload.domains.ecommerce.generator import EcommerceGenerator, TABLE_SIZES, VECTOR_TABLES
from vecload.domains.ecommerce.queries import EcommerceQueries, QUERIES
from vecload.domains.ecommerce.schema import DROP_SCHEMA_SQL, render_schema


class EcommerceWorkload(Workload):
    """Tienda online con busqueda semantica de productos."""

    name = "ecommerce"
    description = "Online store with semantic product search, carts, orders and reviews"
    workload_type = "Hybrid (Vector + OLTP)"
    requires_vector_extension = True

    table_sizes = TABLE_SIZES
    vector_tables = VECTOR_TABLES
    bound_tables = ["product", "customer", "category", "orders"]

    def schema_sql(self, dimensions):
        return render_schema(dimensions)

    def drop_sql(self):
        return DROP_SCHEMA_SQL

    def populate(self, db, row_counts, batch, rng):
        return EcommerceGenerator(self, db, batch, rng).run(row_counts)

    def get_queries(self):
        return list(QUERIES)

    def query_handlers(self, bounds, rng):
        return EcommerceQueries(self.embedder, bounds, rng).handlers()
