import random
from collections import Counter

import pytest

from vecload.core.dispatcher import QueryDefinition, QueryKind, WeightedQueryDispatcher
from vecload.core.errors import ConfigurationError
from vecload.domains.knowledgebase.queries import QUERIES as KB_QUERIES


def _handlers(names, rows=1):
    return {name: (lambda db, _rows=rows: _rows) for name in names}


def test_selection_follows_weights():
    queries = [
        QueryDefinition("a", "", 40),
        QueryDefinition("b", "", 20),
        QueryDefinition("c", "", 15),
        QueryDefinition("d", "", 10, QueryKind.WRITE),
        QueryDefinition("e", "", 10, QueryKind.WRITE),
        QueryDefinition("f", "", 5, QueryKind.WRITE),
    ]
    dispatcher = WeightedQueryDispatcher(queries, _handlers("abcdef"), rng=random.Random(1234))

    draws = Counter(dispatcher.select_query_type() for _ in range(100_000))
    assert set(draws) == set("abcdef")
    assert abs(draws["a"] / 100_000 - 0.40) <= 0.01
    assert abs(draws["f"] / 100_000 - 0.05) <= 0.01


def test_probability_is_relative_weight():
    queries = [QueryDefinition("add_to_cart", "", 10, QueryKind.WRITE),
               QueryDefinition("checkout", "", 5, QueryKind.WRITE)]
    dispatcher = WeightedQueryDispatcher(queries, _handlers(["add_to_cart", "checkout"]))
    assert dispatcher.total_weight == 15
    assert dispatcher.probability("add_to_cart") == pytest.approx(10 / 15)
    assert dispatcher.probability("checkout") == pytest.approx(5 / 15)


def test_knowledgebase_mix_sums_to_one_hundred():
    assert sum(q.weight for q in KB_QUERIES) == 100


def test_failing_handler_does_not_stop_dispatch(fake_db):
    def broken(db):
        raise RuntimeError("connection reset")

    queries = [QueryDefinition("broken", "", 1), QueryDefinition("fine", "", 1)]
    dispatcher = WeightedQueryDispatcher(queries, {"broken": broken, "fine": lambda db: 7})

    failed = dispatcher.execute("broken", fake_db)
    assert not failed.ok
    assert failed.rows_affected == 0
    assert isinstance(failed.error, RuntimeError)
    assert failed.duration_ns >= 0

    # The next call goes through normally
    passed = dispatcher.execute("fine", fake_db)
    assert passed.ok
    assert passed.rows_affected == 7


def test_bad_row_count_becomes_an_error_result(fake_db):
    queries = [QueryDefinition("q", "", 1)]
    dispatcher = WeightedQueryDispatcher(queries, {"q": lambda db: "n/a"})

    result = dispatcher.execute_random_query(fake_db)
    assert result.query_name == "q"
    assert not result.ok
    assert isinstance(result.error, ValueError)
    assert result.rows_affected == 0


def test_execute_random_query_returns_a_result(fake_db):
    queries = [QueryDefinition("only", "", 3)]
    dispatcher = WeightedQueryDispatcher(queries, _handlers(["only"], rows=2))
    result = dispatcher.execute_random_query(fake_db)
    assert result.query_name == "only"
    assert result.rows_affected == 2


@pytest.mark.parametrize("queries,handlers,message", [
    ([], {}, "at least one"),
    ([QueryDefinition("a", "", 1), QueryDefinition("a", "", 2)], _handlers("a"), "duplicate"),
    ([QueryDefinition("a", "", 0)], _handlers("a"), "positive integer"),
    ([QueryDefinition("a", "", -3)], _handlers("a"), "positive integer"),
    ([QueryDefinition("a", "", 1.5)], _handlers("a"), "positive integer"),
    ([QueryDefinition("a", "", 1)], {}, "no handler"),
])
def test_invalid_definitions_are_rejected(queries, handlers, message):
    with pytest.raises(ConfigurationError, match=message):
        WeightedQueryDispatcher(queries, handlers)
