from pathlib import Path

import polars as pl

from vecload.core.errors import ConfigurationError
from vecload.core.sink import BaseSink


class ParquetSink(BaseSink):
    extension = ".parquet"

    def write(self, name: str, df: pl.DataFrame) -> Path:
        file_path = self.target(name)
        df.write_parquet(file_path)
        return file_path


class CsvSink(BaseSink):
    extension = ".csv"

    def write(self, name: str, df: pl.DataFrame) -> Path:
        file_path = self.target(name)
        df.write_csv(file_path)
        return file_path


class SinkFactory:
    @staticmethod
    def get_sink(format: str, root_path: Path) -> BaseSink:
        if format == "parquet":
            return ParquetSink(root_path)
        elif format == "csv":
            return CsvSink(root_path)
        else:
            raise ConfigurationError(f"unknown output format: {format}")

    @staticmethod
    def for_path(path: Path) -> BaseSink:
        """Elige el formato por la extension del archivo (parquet si no tiene)."""
        suffix = Path(path).suffix.lower().lstrip(".")
        return SinkFactory.get_sink(suffix or "parquet", Path(path))
