import bisect
import logging
import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from vecload.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


class QueryKind(str, Enum):
    READ = "read"
    WRITE = "write"


@dataclass(frozen=True)
class QueryDefinition:
    name: str
    description: str
    weight: int
    kind: QueryKind = QueryKind.READ


@dataclass(frozen=True)
class QueryResult:
    """Resultado de una llamada de despacho. Se produce una vez, nunca se reintenta."""
    query_name: str
    duration_ns: int
    rows_affected: int = 0
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def duration_ms(self) -> float:
        return self.duration_ns / 1_000_000


# handler(db) -> filas devueltas o modificadas
QueryHandler = Callable[[object], int]


class WeightedQueryDispatcher:
    """
    Elige una consulta segun su peso relativo, la ejecuta y la cronometra.

    execute_random_query nunca lanza: cualquier error del handler queda en
    QueryResult.error, para que un tipo de consulta roto no detenga la carga.
    """

    def __init__(self, queries: Sequence[QueryDefinition], handlers: Dict[str, QueryHandler],
                 rng: random.Random = None):
        if not queries:
            raise ConfigurationError("a dispatcher needs at least one query definition")

        seen = set()
        for q in queries:
            if q.name in seen:
                raise ConfigurationError(f"duplicate query name: {q.name}")
            seen.add(q.name)
            if not isinstance(q.weight, int) or q.weight <= 0:
                raise ConfigurationError(
                    f"query '{q.name}' must have a positive integer weight, got {q.weight!r}")
            if q.name not in handlers:
                raise ConfigurationError(f"no handler registered for query '{q.name}'")

        self.queries: List[QueryDefinition] = list(queries)
        self.handlers = dict(handlers)
        self.rng = rng or random.Random()

        self._cumulative: List[int] = []
        running = 0
        for q in self.queries:
            running += q.weight
            self._cumulative.append(running)
        self.total_weight = running

    def probability(self, name: str) -> float:
        for q in self.queries:
            if q.name == name:
                return q.weight / self.total_weight
        raise KeyError(name)

    def select_query_type(self) -> str:
        r = self.rng.randrange(self.total_weight)
        # First entry whose cumulative weight exceeds r
        idx = bisect.bisect_right(self._cumulative, r)
        return self.queries[idx].name

    def execute(self, name: str, db) -> QueryResult:
        handler = self.handlers[name]
        start = time.perf_counter_ns()
        try:
            rows = int(handler(db) or 0)
        except Exception as e:
            duration = time.perf_counter_ns() - start
            logger.debug("query %s failed: %s", name, e)
            return QueryResult(name, duration, 0, e)
        duration = time.perf_counter_ns() - start
        return QueryResult(name, duration, rows, None)

    def execute_random_query(self, db) -> QueryResult:
        return self.execute(self.select_query_type(), db)
