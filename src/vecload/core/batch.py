import logging
from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterable, List, Sequence

from vecload.core.errors import GenerationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchConfig:
    batch_size: int = 1000
    progress_interval: int = 100_000

    # Tables carrying embeddings use smaller statements
    VECTOR_DIVISOR = 10

    def for_vectors(self) -> "BatchConfig":
        return replace(self, batch_size=max(1, self.batch_size // self.VECTOR_DIVISOR))


class ProgressReporter:
    """
    Reporta avance de carga cada vez que el acumulado cruza un multiplo del intervalo.
    """

    def __init__(self, table: str, total: int = None, interval: int = 100_000):
        self.table = table
        self.total = total
        self.interval = max(1, interval)
        self.current = 0
        self._last_reported = 0

    def update(self, rows: int) -> None:
        self.current += rows
        if self.current // self.interval > self._last_reported // self.interval:
            self._last_reported = self.current
            if self.total:
                pct = self.current / self.total * 100
                logger.info("%s: %s/%s rows (%.1f%%)", self.table,
                            f"{self.current:,}", f"{self.total:,}", pct)
            else:
                logger.info("%s: %s rows", self.table, f"{self.current:,}")

    def done(self) -> None:
        logger.info("%s: completed %s rows", self.table, f"{self.current:,}")


class BatchInserter:
    """
    Acumula filas de una tabla y las escribe como INSERT multi-fila parametrizado.

    Un fallo en un flush corta la carga de la tabla: los batches anteriores
    quedan confirmados y los siguientes no se intentan.
    """

    def __init__(self, db, table: str, columns: Sequence[str], config: BatchConfig = None,
                 casts: Dict[str, str] = None, total_rows: int = None,
                 after_flush: Callable[[int], None] = None):
        self.db = db
        self.table = table
        self.columns = list(columns)
        self.config = config or BatchConfig()
        self.casts = casts or {}
        self.after_flush = after_flush
        self.progress = ProgressReporter(table, total_rows, self.config.progress_interval)

        self._rows: List[tuple] = []
        self.rows_written = 0
        self.batches_flushed = 0

        unknown = set(self.casts) - set(self.columns)
        if unknown:
            raise ValueError(f"casts for unknown columns: {sorted(unknown)}")

        placeholders = ", ".join(
            f"%s::{self.casts[c]}" if c in self.casts else "%s"
            for c in self.columns
        )
        self._row_template = f"({placeholders})"
        self._prefix = f"INSERT INTO {table} ({', '.join(self.columns)}) VALUES "

    def build_statement(self, row_count: int) -> str:
        return self._prefix + ", ".join([self._row_template] * row_count)

    def add(self, row: Sequence) -> None:
        if len(row) != len(self.columns):
            raise ValueError(
                f"{self.table}: expected {len(self.columns)} values per row, got {len(row)}")
        self._rows.append(tuple(row))
        if len(self._rows) >= self.config.batch_size:
            self.flush()

    def flush(self) -> int:
        if not self._rows:
            return 0

        rows = self._rows
        self._rows = []
        batch_no = self.batches_flushed + 1
        params = [value for row in rows for value in row]

        try:
            self.db.exec(self.build_statement(len(rows)), params)
        except Exception as e:
            raise GenerationError(
                self.table, f"bulk insert of {len(rows)} rows failed: {e}", batch=batch_no) from e

        self.batches_flushed = batch_no
        self.rows_written += len(rows)
        self.progress.update(len(rows))
        if self.after_flush is not None:
            self.after_flush(batch_no)
        return len(rows)

    def insert_all(self, rows: Iterable[Sequence]) -> int:
        for row in rows:
            self.add(row)
        self.flush()
        self.progress.done()
        return self.rows_written

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.flush()
            self.progress.done()
        return False
