from vecload.core.workload import Workload
from vecload.domains.knowledgebase.generator import KnowledgeBaseGenerator, TABLE_SIZES, VECTOR_TABLES
from vecload.domains.knowledgebase.queries import KnowledgeBaseQueries, QUERIES
from vecload.domains.knowledgebase.schema import DROP_SCHEMA_SQL, render_schema


class KnowledgeBaseWorkload(Workload):
    """Base de conocimiento de soporte con busqueda semantica."""

    name = "knowledgebase"
    description = "Knowledge base with semantic article search and helpfulness feedback"
    workload_type = "Hybrid (Vector + OLTP)"
    requires_vector_extension = True

    table_sizes = TABLE_SIZES
    vector_tables = VECTOR_TABLES
    bound_tables = ["article", "kb_user", "category", "search_log"]

    def schema_sql(self, dimensions):
        return render_schema(dimensions)

    def drop_sql(self):
        return DROP_SCHEMA_SQL

    def populate(self, db, row_counts, batch, rng):
        return KnowledgeBaseGenerator(self, db, batch, rng).run(row_counts)

    def get_queries(self):
        return list(QUERIES)

    def query_handlers(self, bounds, rng):
        return KnowledgeBaseQueries(self.embedder, bounds, rng).handlers()
