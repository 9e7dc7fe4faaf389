import sys
from pathlib import Path

import pytest

# Add src to sys.path so we can import vecload even if not installed
src_path = str(Path(__file__).parent.parent / "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)


class FakeDatabase:
    """
    In-memory stand-in for the Database capability.
    Records every statement; COUNT(*) queries answer from `counts`.
    """

    def __init__(self, counts=None, fail_on_exec=None, fail_counts=False):
        self.counts = counts or {}
        self.fail_on_exec = fail_on_exec
        self.fail_counts = fail_counts
        self.executed = []
        self.queries = []
        self.exec_calls = 0

    def query(self, sql, params=None):
        self.queries.append((sql, params))
        return [(1,), (2,)]

    def query_row(self, sql, params=None):
        self.queries.append((sql, params))
        if sql.startswith("SELECT COUNT(*) FROM "):
            if self.fail_counts:
                raise RuntimeError("relation does not exist")
            table = sql[len("SELECT COUNT(*) FROM "):].strip()
            return (self.counts.get(table, 0),)
        return (1, 1)

    def exec(self, sql, params=None):
        self.exec_calls += 1
        if self.fail_on_exec is not None and self.exec_calls == self.fail_on_exec:
            raise RuntimeError("simulated failure")
        self.executed.append((sql, params))
        return 1

    def inserted_tables(self):
        tables = []
        for sql, _ in self.executed:
            if sql.startswith("INSERT INTO "):
                table = sql.split()[2]
                if not tables or tables[-1] != table:
                    tables.append(table)
        return tables


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def fake_db_factory():
    return FakeDatabase
