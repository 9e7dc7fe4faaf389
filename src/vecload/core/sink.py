from abc import ABC, abstractmethod
from pathlib import Path

import polars as pl


class BaseSink(ABC):
    """
    Responsable de materializar el resumen de una corrida en disco.
    """

    extension = ""

    def __init__(self, root_path: Path):
        self.root_path = Path(root_path)

    def target(self, name: str) -> Path:
        path = self.root_path
        if path.suffix:
            # A full file name was given
            path.parent.mkdir(parents=True, exist_ok=True)
            return path
        path.mkdir(parents=True, exist_ok=True)
        return path / f"{name}{self.extension}"

    @abstractmethod
    def write(self, name: str, df: pl.DataFrame) -> Path:
        pass
