import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from vecload.core.batch import BatchConfig, BatchInserter
from vecload.core.database import as_database
from vecload.core.dispatcher import QueryDefinition, QueryResult, WeightedQueryDispatcher
from vecload.core.embeddings import (DEFAULT_DIMENSIONS, DEFAULT_OPENAI_MODEL, DEFAULT_OPENAI_URL,
                                     Embedder, EmbedderFactory, EmbeddingMode, RandomEmbedder)
from vecload.core.errors import ConfigurationError, SchemaError
from vecload.core.estimator import SizeCalculator, TableSizeInfo, format_size, inflate_for_vectors
from vecload.core.random import Randomizer

logger = logging.getLogger(__name__)


@dataclass
class GeneratorConfig:
    target_size: int
    embedding_mode: EmbeddingMode = EmbeddingMode.RANDOM
    embedding_dimensions: int = DEFAULT_DIMENSIONS
    openai_api_key: Optional[str] = None
    openai_model: str = DEFAULT_OPENAI_MODEL
    openai_base_url: str = DEFAULT_OPENAI_URL
    vectorizer_url: Optional[str] = None
    request_timeout: float = 30.0
    batch: BatchConfig = field(default_factory=BatchConfig)
    seed: Optional[int] = None

    def __post_init__(self):
        self.embedding_mode = EmbeddingMode.parse(self.embedding_mode)
        if self.embedding_dimensions <= 0:
            raise ConfigurationError(
                f"embedding dimensions must be positive, got {self.embedding_dimensions}")
        if self.embedding_mode is EmbeddingMode.VECTORIZER and not self.vectorizer_url:
            raise ConfigurationError("vectorizer embedding mode requires a vectorizer URL")


class Workload(ABC):
    """
    Contrato de una aplicacion simulada: identidad, ciclo de vida del esquema,
    generacion de datos, catalogo de consultas y ejecucion de consultas.

    Las subclases declaran table_sizes (en orden de claves foraneas),
    vector_tables y bound_tables (tablas cuyo conteo acota los ids aleatorios).
    """

    name: str = ""
    description: str = ""
    workload_type: str = ""
    requires_vector_extension: bool = False

    table_sizes: List[TableSizeInfo] = []
    vector_tables: List[str] = []
    bound_tables: List[str] = []

    def __init__(self, embedder: Embedder = None, seed: int = None):
        self._embedder = embedder
        self._config: Optional[GeneratorConfig] = None
        self.seed = seed
        self._dispatcher: Optional[WeightedQueryDispatcher] = None
        self._dispatcher_lock = threading.Lock()
        self.bounds: Dict[str, int] = {}

    # --- Identity ---

    def __repr__(self):
        return f"<{type(self).__name__} {self.name}>"

    @property
    def embedder(self) -> Embedder:
        if self._embedder is None:
            self._embedder = RandomEmbedder(DEFAULT_DIMENSIONS)
        return self._embedder

    @property
    def dimensions(self) -> int:
        return self.embedder.dimensions

    def configure(self, config: GeneratorConfig) -> None:
        """Fija el embedder de esta instancia a partir de la configuracion."""
        if self._embedder is not None:
            self._embedder.close()
        self._embedder = EmbedderFactory.from_config(config)
        self._config = config
        if config.seed is not None:
            self.seed = config.seed

    # --- Schema ---

    @abstractmethod
    def schema_sql(self, dimensions: int) -> str:
        pass

    @abstractmethod
    def drop_sql(self) -> str:
        pass

    def create_schema(self, db) -> None:
        db = as_database(db)
        try:
            db.exec(self.schema_sql(self.dimensions))
        except Exception as e:
            raise SchemaError(self.name, f"create failed: {e}") from e
        logger.info("Schema for %s created (dimensions=%d)", self.name, self.dimensions)

    def drop_schema(self, db) -> None:
        db = as_database(db)
        try:
            db.exec(self.drop_sql())
        except Exception as e:
            raise SchemaError(self.name, f"drop failed: {e}") from e
        logger.info("Schema for %s dropped", self.name)

    # --- Data generation ---

    def plan(self, target_size: int, dimensions: int = None):
        """
        Calcula las filas por tabla para el tamaño objetivo.
        Devuelve (calculator, row_counts).
        """
        dims = dimensions if dimensions is not None else self.dimensions
        tables = inflate_for_vectors(self.table_sizes, self.vector_tables, dims)
        calc = SizeCalculator(tables)
        return calc, calc.calculate_row_counts(target_size)

    def generate_data(self, db, config: GeneratorConfig) -> Dict[str, int]:
        # The rows must carry the vectors this config describes
        if self._config is not config:
            self.configure(config)
        db = as_database(db)
        calc, row_counts = self.plan(config.target_size, config.embedding_dimensions)
        logger.info(
            "Generating %s data: scale factor %d, %d dimensions, estimated %s",
            self.name, calc.scale_factor(config.target_size), config.embedding_dimensions,
            format_size(calc.estimated_size(row_counts)))

        rng = Randomizer(config.seed if config.seed is not None else self.seed)
        written = self.populate(db, row_counts, config.batch, rng)
        logger.info("%s data generation complete", self.name)
        return written

    @abstractmethod
    def populate(self, db, row_counts: Dict[str, int], batch: BatchConfig, rng: Randomizer) -> Dict[str, int]:
        """Escribe las filas en orden de claves foraneas. Devuelve filas escritas por tabla."""

    def inserter(self, db, table: str, columns, batch: BatchConfig, total_rows: int = None) -> BatchInserter:
        casts = {}
        config = batch
        if table in self.vector_tables and "embedding" in columns:
            casts["embedding"] = "vector"
            config = batch.for_vectors()
        return BatchInserter(db, table, columns, config, casts=casts, total_rows=total_rows)

    # --- Queries ---

    @abstractmethod
    def get_queries(self) -> List[QueryDefinition]:
        pass

    @abstractmethod
    def query_handlers(self, bounds: Dict[str, int], rng: Randomizer) -> Dict[str, Callable]:
        pass

    def count_rows(self, db) -> Dict[str, int]:
        bounds = {}
        for table in self.bound_tables:
            try:
                row = db.query_row(f"SELECT COUNT(*) FROM {table}")
                count = int(row[0]) if row else 0
            except Exception as e:
                logger.warning("could not count rows in %s: %s", table, e)
                count = 0
            bounds[table] = max(1, count)
        return bounds

    def build_dispatcher(self, bounds: Dict[str, int]) -> WeightedQueryDispatcher:
        rng = Randomizer(self.seed)
        return WeightedQueryDispatcher(
            self.get_queries(), self.query_handlers(bounds, rng), rng=rng.rng)

    def prepare(self, db) -> WeightedQueryDispatcher:
        """
        Inicializa el dispatcher una sola vez por instancia (lock con doble chequeo).
        Los limites de ids no se refrescan despues.
        """
        dispatcher = self._dispatcher
        if dispatcher is not None:
            return dispatcher
        with self._dispatcher_lock:
            if self._dispatcher is None:
                self.bounds = self.count_rows(as_database(db))
                logger.debug("%s bounds: %s", self.name, self.bounds)
                self._dispatcher = self.build_dispatcher(self.bounds)
            return self._dispatcher

    @property
    def is_prepared(self) -> bool:
        return self._dispatcher is not None

    def _execute(self, target) -> QueryResult:
        try:
            db = as_database(target)
            dispatcher = self.prepare(db)
        except Exception as e:
            logger.debug("%s: dispatcher unavailable: %s", self.name, e)
            return QueryResult("initialize", 0, 0, e)
        return dispatcher.execute_random_query(db)

    def execute_query(self, pool) -> QueryResult:
        """Despacho con conexiones compartidas (pool)."""
        return self._execute(pool)

    def execute_query_conn(self, conn) -> QueryResult:
        """Despacho sobre una conexion dedicada (modo sesion)."""
        return self._execute(conn)
