import re

import pytest

from vecload.core.batch import BatchConfig
from vecload.core.embeddings import RandomEmbedder
from vecload.core.estimator import TableSizeInfo
from vecload.core.random import Randomizer
from vecload.core.workload import GeneratorConfig
from vecload.domains.knowledgebase.app import KnowledgeBaseWorkload
from vecload.domains.knowledgebase.queries import KnowledgeBaseQueries

FK_ORDER = ["category", "tag", "kb_user", "article", "article_section", "article_tag",
            "search_log", "feedback", "related_article"]


class TinyKnowledgeBase(KnowledgeBaseWorkload):
    table_sizes = [
        TableSizeInfo("category", 200, 3, 1.1),
        TableSizeInfo("tag", 100, 5, 1.1),
        TableSizeInfo("kb_user", 200, 4, 1.2),
        TableSizeInfo("article", 3000, 6, 1.5),
        TableSizeInfo("article_section", 2000, 20, 1.5),
        TableSizeInfo("article_tag", 20, 15, 1.1),
        TableSizeInfo("search_log", 2000, 7, 1.5),
        TableSizeInfo("feedback", 150, 5, 1.2),
        TableSizeInfo("related_article", 30, 20, 1.1),
    ]


@pytest.fixture
def populated(fake_db):
    workload = TinyKnowledgeBase(embedder=RandomEmbedder(8))
    config = GeneratorConfig(target_size=1, embedding_dimensions=8,
                             batch=BatchConfig(batch_size=20), seed=42)
    written = workload.generate_data(fake_db, config)
    return workload, fake_db, written


def test_tables_are_written_in_foreign_key_order(populated):
    _, db, written = populated
    assert list(written) == FK_ORDER
    assert db.inserted_tables() == FK_ORDER


def test_planned_counts_are_honoured(populated):
    _, _, written = populated
    assert written["category"] == 3
    assert written["article"] == 6
    assert written["search_log"] == 7
    # Child rows per article are random
    assert 12 <= written["article_section"] <= 36
    assert 1 <= written["article_tag"] <= 30


def test_rows_are_parameterized_with_vector_literals(populated):
    _, db, _ = populated
    vector = re.compile(r"^\[(-?\d+\.\d{6},){7}-?\d+\.\d{6}\]$")
    for sql, params in db.executed:
        assert "'" not in sql
        if sql.startswith("INSERT INTO article "):
            assert sql.count("%s::vector") == len(params) // 11
            assert vector.match(params[10])


def test_foreign_keys_stay_in_range(populated):
    _, db, _ = populated
    for sql, params in db.executed:
        if sql.startswith("INSERT INTO article_tag"):
            tag_ids = params[1::2]
            assert all(1 <= t <= 5 for t in tag_ids)
        if sql.startswith("INSERT INTO related_article"):
            pairs = list(zip(params[0::3], params[1::3]))
            assert all(a != b and 1 <= b <= 6 for a, b in pairs)


def test_same_seed_same_data(fake_db_factory):
    config = GeneratorConfig(target_size=1, embedding_dimensions=8, seed=7)
    runs = []
    for _ in range(2):
        db = fake_db_factory()
        TinyKnowledgeBase(embedder=RandomEmbedder(8)).generate_data(db, config)
        runs.append([params for sql, params in db.executed if sql.startswith("INSERT INTO kb_user")])
    assert runs[0] == runs[1]


def test_every_handler_runs(fake_db):
    queries = KnowledgeBaseQueries(RandomEmbedder(8), {"article": 10, "kb_user": 3}, Randomizer(1))
    for name, handler in queries.handlers().items():
        assert handler(fake_db) >= 0, name


def test_semantic_search_logs_the_search(fake_db):
    queries = KnowledgeBaseQueries(RandomEmbedder(8), {}, Randomizer(1))
    assert queries.semantic_search(fake_db) == 2
    sql, params = fake_db.executed[-1]
    assert "INSERT INTO search_log" in sql
    assert params[2] == 2
    assert params[3].startswith("sess_")


def test_dispatcher_uses_all_six_queries(fake_db):
    workload = KnowledgeBaseWorkload(embedder=RandomEmbedder(8), seed=5)
    seen = {workload.execute_query(fake_db).query_name for _ in range(400)}
    assert seen == {q.name for q in workload.get_queries()}


def test_generate_data_follows_config_after_schema(fake_db):
    """create_schema primero instala el embedder por defecto; la config debe ganar."""
    workload = TinyKnowledgeBase()
    workload.create_schema(fake_db)
    assert "vector(384)" in fake_db.executed[0][0]

    workload.generate_data(fake_db, GeneratorConfig(target_size=1, embedding_dimensions=8))

    assert workload.dimensions == 8
    article = next(p for sql, p in fake_db.executed if sql.startswith("INSERT INTO article "))
    assert article[10].count(",") + 1 == 8


def test_generate_data_keeps_a_configured_embedder(fake_db):
    workload = TinyKnowledgeBase()
    config = GeneratorConfig(target_size=1, embedding_dimensions=16)
    workload.configure(config)
    embedder = workload.embedder
    workload.generate_data(fake_db, config)
    assert workload.embedder is embedder
