class VecloadError(Exception):
    """Base de todos los errores de vecload."""


class ConfigurationError(VecloadError):
    """
    Parametros invalidos o faltantes. Se lanza antes de empezar cualquier trabajo.
    """


class GenerationError(VecloadError):
    """
    Fallo durante la generacion de datos (batch insert o paso de generacion).
    Lleva el nombre de la tabla y, si aplica, el numero de batch.
    """

    def __init__(self, table: str, message: str, batch: int = None):
        self.table = table
        self.batch = batch
        where = f"table '{table}'"
        if batch is not None:
            where += f", batch {batch}"
        super().__init__(f"{where}: {message}")


class SchemaError(VecloadError):
    """Fallo al crear o eliminar el esquema de una aplicacion."""

    def __init__(self, app: str, message: str):
        self.app = app
        super().__init__(f"schema for '{app}': {message}")


class EmbeddingError(VecloadError):
    """Fallo de un servicio de embeddings remoto."""
