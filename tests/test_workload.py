import threading
import time

import pytest

from conftest import FakeDatabase
from vecload.core.batch import BatchConfig
from vecload.core.embeddings import EmbeddingMode, RandomEmbedder
from vecload.core.errors import ConfigurationError, SchemaError
from vecload.core.workload import GeneratorConfig
from vecload.domains.knowledgebase.app import KnowledgeBaseWorkload


class SlowCountDatabase(FakeDatabase):
    """Cuenta despacio para que varios hilos choquen en la inicializacion."""

    def query_row(self, sql, params=None):
        if sql.startswith("SELECT COUNT(*)"):
            time.sleep(0.05)
        return super().query_row(sql, params)


def _count_queries(db):
    return [sql for sql, _ in db.queries if sql.startswith("SELECT COUNT(*)")]


def test_concurrent_first_calls_prepare_once():
    workload = KnowledgeBaseWorkload(embedder=RandomEmbedder(8), seed=3)
    db = SlowCountDatabase(counts={"article": 50, "kb_user": 10, "category": 4, "search_log": 20})
    barrier = threading.Barrier(8)
    results = []

    def call():
        barrier.wait()
        results.append(workload.execute_query(db))

    threads = [threading.Thread(target=call) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == 8
    assert all(r.query_name != "initialize" for r in results)
    assert len(_count_queries(db)) == len(workload.bound_tables)
    assert workload.bounds == {"article": 50, "kb_user": 10, "category": 4, "search_log": 20}


def test_bounds_are_not_refreshed(fake_db_factory):
    workload = KnowledgeBaseWorkload(embedder=RandomEmbedder(8))
    db = fake_db_factory(counts={"article": 5})
    workload.execute_query(db)
    db.counts["article"] = 500
    workload.execute_query_conn(db)
    assert workload.bounds["article"] == 5
    assert len(_count_queries(db)) == len(workload.bound_tables)


def test_failed_counts_fall_back_to_one(fake_db_factory, caplog):
    workload = KnowledgeBaseWorkload(embedder=RandomEmbedder(8))
    db = fake_db_factory(fail_counts=True)
    with caplog.at_level("WARNING"):
        workload.prepare(db)
    assert workload.is_prepared
    assert set(workload.bounds.values()) == {1}
    assert "could not count rows" in caplog.text


def test_empty_tables_count_as_one(fake_db):
    workload = KnowledgeBaseWorkload(embedder=RandomEmbedder(8))
    workload.prepare(fake_db)
    assert all(v == 1 for v in workload.bounds.values())


def test_unusable_target_reports_initialize_error():
    workload = KnowledgeBaseWorkload(embedder=RandomEmbedder(8))
    result = workload.execute_query(object())
    assert result.query_name == "initialize"
    assert isinstance(result.error, TypeError)
    assert not workload.is_prepared


def test_schema_errors_name_the_application(fake_db_factory):
    workload = KnowledgeBaseWorkload(embedder=RandomEmbedder(8))
    with pytest.raises(SchemaError, match="knowledgebase"):
        workload.create_schema(fake_db_factory(fail_on_exec=1))


def test_create_schema_uses_embedder_dimensions(fake_db):
    workload = KnowledgeBaseWorkload(embedder=RandomEmbedder(12))
    workload.create_schema(fake_db)
    ddl = fake_db.executed[0][0]
    assert "vector(12)" in ddl
    assert "{dimensions}" not in ddl


def test_configure_replaces_embedder():
    workload = KnowledgeBaseWorkload()
    assert workload.dimensions == 384
    workload.configure(GeneratorConfig(target_size=1024, embedding_dimensions=64, seed=9))
    assert workload.dimensions == 64
    assert workload.seed == 9


def test_vector_tables_get_cast_and_smaller_batches(fake_db):
    workload = KnowledgeBaseWorkload()
    batch = BatchConfig(batch_size=1000)
    article = workload.inserter(fake_db, "article", ["title", "embedding"], batch)
    tag = workload.inserter(fake_db, "tag", ["name", "slug"], batch)
    assert article.config.batch_size == 100
    assert "%s::vector" in article.build_statement(1)
    assert tag.config.batch_size == 1000


def test_generator_config_defaults():
    config = GeneratorConfig(target_size=10)
    assert config.embedding_mode is EmbeddingMode.RANDOM
    assert config.embedding_dimensions == 384
    assert config.batch.batch_size == 1000


@pytest.mark.parametrize("kwargs", [
    {"embedding_mode": "bert"},
    {"embedding_dimensions": 0},
    {"embedding_mode": "vectorizer"},
])
def test_generator_config_validation(kwargs):
    with pytest.raises(ConfigurationError):
        GeneratorConfig(target_size=10, **kwargs)
