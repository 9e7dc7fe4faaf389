import logging
import random
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

import polars as pl

from vecload.core.dispatcher import QueryResult
from vecload.core.errors import ConfigurationError
from vecload.core.system import MemoryGuard

logger = logging.getLogger(__name__)


class ConnectionMode(str, Enum):
    POOL = "pool"        # conexiones compartidas, reuso rapido (apps web)
    SESSION = "session"  # una conexion por usuario simulado con think time


@dataclass
class RunConfig:
    connections: int = 10
    duration: float = 0              # minutos, 0 = sin limite
    connection_mode: ConnectionMode = ConnectionMode.POOL
    report_interval: float = 60      # segundos
    session_min_duration: float = 300
    session_max_duration: float = 1800
    think_time_min: int = 1000       # milisegundos
    think_time_max: int = 5000

    @property
    def duration_seconds(self) -> Optional[float]:
        return self.duration * 60 if self.duration > 0 else None

    def validate(self) -> None:
        if self.connections < 1:
            raise ConfigurationError("connections must be at least 1")
        if self.duration < 0:
            raise ConfigurationError("duration cannot be negative")
        if self.report_interval <= 0:
            raise ConfigurationError("report_interval must be greater than zero")
        if self.connection_mode is ConnectionMode.SESSION:
            if self.session_min_duration < 1:
                raise ConfigurationError("session_min_duration must be at least 1 second")
            if self.session_max_duration < self.session_min_duration:
                raise ConfigurationError("session_max_duration must be >= session_min_duration")
            if self.think_time_min < 0:
                raise ConfigurationError("think_time_min cannot be negative")
            if self.think_time_max < self.think_time_min:
                raise ConfigurationError("think_time_max must be >= think_time_min")


@dataclass
class QueryStats:
    count: int = 0
    errors: int = 0
    total_ns: int = 0
    min_ns: int = 0
    max_ns: int = 0
    rows: int = 0
    last_error: Optional[str] = None

    def record(self, result: QueryResult) -> None:
        self.count += 1
        self.total_ns += result.duration_ns
        self.rows += result.rows_affected
        if self.count == 1 or result.duration_ns < self.min_ns:
            self.min_ns = result.duration_ns
        if result.duration_ns > self.max_ns:
            self.max_ns = result.duration_ns
        if not result.ok:
            self.errors += 1
            self.last_error = str(result.error)

    @property
    def avg_ms(self) -> float:
        return self.total_ns / self.count / 1_000_000 if self.count else 0.0


class RunStats:
    """
    Contadores de la corrida, compartidos por todos los workers.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.per_query: Dict[str, QueryStats] = {}
        self.started_at = time.monotonic()

    def record(self, result: QueryResult) -> None:
        with self._lock:
            stats = self.per_query.get(result.query_name)
            if stats is None:
                stats = self.per_query[result.query_name] = QueryStats()
            stats.record(result)

    def totals(self) -> Dict[str, float]:
        with self._lock:
            total = sum(s.count for s in self.per_query.values())
            failed = sum(s.errors for s in self.per_query.values())
            total_ns = sum(s.total_ns for s in self.per_query.values())
        return {
            "total": total,
            "success": total - failed,
            "failed": failed,
            "avg_ms": total_ns / total / 1_000_000 if total else 0.0,
            "elapsed": time.monotonic() - self.started_at,
        }

    def to_frame(self) -> pl.DataFrame:
        with self._lock:
            items = sorted(self.per_query.items())
            total = sum(s.count for _, s in items) or 1
            data = {
                "query": [name for name, _ in items],
                "count": [s.count for _, s in items],
                "errors": [s.errors for _, s in items],
                "share_pct": [round(s.count / total * 100, 2) for _, s in items],
                "avg_ms": [round(s.avg_ms, 3) for _, s in items],
                "min_ms": [round(s.min_ns / 1_000_000, 3) for _, s in items],
                "max_ms": [round(s.max_ns / 1_000_000, 3) for _, s in items],
                "rows": [s.rows for _, s in items],
                "last_error": [s.last_error for _, s in items],
            }
        return pl.DataFrame(data, schema={
            "query": pl.Utf8, "count": pl.Int64, "errors": pl.Int64, "share_pct": pl.Float64,
            "avg_ms": pl.Float64, "min_ms": pl.Float64, "max_ms": pl.Float64,
            "rows": pl.Int64, "last_error": pl.Utf8,
        })


class WorkloadRunner:
    """
    Lanza N workers que llaman al despacho del workload hasta que se
    cumple la duracion o alguien llama a stop().

    pool: objeto compartido por todos los workers en modo pool.
    connect: fabrica de conexiones (worker_id -> conexion) para el modo sesion.
    """

    def __init__(self, workload, config: RunConfig, pool=None,
                 connect: Callable[[int], object] = None,
                 on_report: Callable[[Dict[str, float]], None] = None,
                 rng: random.Random = None):
        config.validate()
        if config.connection_mode is ConnectionMode.POOL and pool is None:
            raise ConfigurationError("pool mode requires a connection pool")
        if config.connection_mode is ConnectionMode.SESSION and connect is None:
            raise ConfigurationError("session mode requires a connection factory")

        self.workload = workload
        self.config = config
        self.pool = pool
        self.connect = connect
        self.on_report = on_report
        self.rng = rng or random.Random()
        self.stats = RunStats()
        self._stop = threading.Event()
        self._threads: List[threading.Thread] = []
        self._last_total = 0

    def stop(self) -> None:
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def prepare(self) -> None:
        """Fija los limites del dispatcher antes de arrancar workers concurrentes."""
        if self.pool is not None:
            self.workload.prepare(self.pool)
            return
        conn = self.connect(0)
        try:
            self.workload.prepare(conn)
        finally:
            _close(conn)

    def run(self) -> RunStats:
        self.prepare()
        MemoryGuard.initialize_budget()
        self.stats = RunStats()

        target = self._pool_worker if self.config.connection_mode is ConnectionMode.POOL else self._session_worker
        for worker_id in range(1, self.config.connections + 1):
            t = threading.Thread(target=target, args=(worker_id,), name=f"vecload-worker-{worker_id}", daemon=True)
            self._threads.append(t)

        reporter = threading.Thread(target=self._report_loop, name="vecload-reporter", daemon=True)

        logger.info("Starting %d workers in %s mode", self.config.connections, self.config.connection_mode.value)
        for t in self._threads:
            t.start()
        reporter.start()

        try:
            self._stop.wait(self.config.duration_seconds)
        finally:
            self.stop()
            for t in self._threads:
                t.join()
            reporter.join()
        return self.stats

    # --- workers ---

    def _pool_worker(self, worker_id: int) -> None:
        while not self._stop.is_set():
            self.stats.record(self.workload.execute_query(self.pool))

    def _session_worker(self, worker_id: int) -> None:
        rng = random.Random(self.rng.random())
        while not self._stop.is_set():
            try:
                conn = self.connect(worker_id)
            except Exception as e:
                logger.warning("worker %d could not connect: %s", worker_id, e)
                self._stop.wait(1.0)
                continue

            session_end = time.monotonic() + rng.uniform(self.config.session_min_duration,
                                                         self.config.session_max_duration)
            try:
                while not self._stop.is_set() and time.monotonic() < session_end:
                    self.stats.record(self.workload.execute_query_conn(conn))
                    think_ms = rng.randint(self.config.think_time_min, self.config.think_time_max)
                    self._stop.wait(think_ms / 1000)
            finally:
                _close(conn)
            # Pause between sessions
            self._stop.wait(rng.uniform(1.0, 5.0))

    def _report_loop(self) -> None:
        while not self._stop.wait(self.config.report_interval):
            self.report()

    def report(self) -> Dict[str, float]:
        totals = self.stats.totals()
        delta = totals["total"] - self._last_total
        self._last_total = totals["total"]
        totals["qps"] = delta / self.config.report_interval
        totals["rss_mb"] = MemoryGuard.get_process_rss_mb()
        totals["ram_pct"] = MemoryGuard.get_ram_usage_pct()
        totals["cpu_pct"] = MemoryGuard.get_cpu_pct()

        logger.info(
            "total=%d success=%d failed=%d qps=%.1f avg=%.2fms client_rss=%.0fMB ram=%.0f%% cpu=%.0f%%",
            totals["total"], totals["success"], totals["failed"], totals["qps"],
            totals["avg_ms"], totals["rss_mb"], totals["ram_pct"], totals["cpu_pct"])
        if self.on_report is not None:
            self.on_report(totals)
        return totals


def _close(conn) -> None:
    close = getattr(conn, "close", None)
    if close is not None:
        close()
