import math
import re
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List

from vecload.core.errors import ConfigurationError


# Bytes per float32 component of a stored vector
VECTOR_COMPONENT_BYTES = 4

_SIZE_UNITS = [
    ("TB", 1024**4),
    ("GB", 1024**3),
    ("MB", 1024**2),
    ("KB", 1024),
]

_SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([KMGT]?B?)\s*$", re.IGNORECASE)


@dataclass(frozen=True)
class TableSizeInfo:
    """
    Storage assumptions for one table.

    base_row_size: average bytes per row (including any vector payload).
    scale_ratio: rows produced per scale unit.
    index_factor: multiplier for secondary index overhead. 0 means default.
    """
    name: str
    base_row_size: int
    scale_ratio: int
    index_factor: float = 0.0

    DEFAULT_INDEX_FACTOR = 1.3

    @property
    def effective_index_factor(self) -> float:
        if self.index_factor == 0:
            return self.DEFAULT_INDEX_FACTOR
        return self.index_factor

    @property
    def unit_cost(self) -> float:
        return self.base_row_size * self.effective_index_factor * self.scale_ratio

    def with_vector_payload(self, dimensions: int) -> "TableSizeInfo":
        return replace(self, base_row_size=self.base_row_size + dimensions * VECTOR_COMPONENT_BYTES)


def inflate_for_vectors(tables: Iterable[TableSizeInfo], vector_tables: Iterable[str], dimensions: int) -> List[TableSizeInfo]:
    """
    Devuelve una copia de las tablas con el costo del vector sumado
    a las tablas que guardan embeddings.
    """
    targets = set(vector_tables)
    return [
        t.with_vector_payload(dimensions) if t.name in targets else t
        for t in tables
    ]


class SizeCalculator:
    """
    Convierte un tamaño objetivo en bytes a un numero de filas por tabla.
    Cada tabla recibe al menos una fila, sin importar el objetivo.
    """

    def __init__(self, tables: Iterable[TableSizeInfo]):
        self.tables = list(tables)

    @property
    def unit_cost(self) -> float:
        return sum(t.unit_cost for t in self.tables)

    def scale_factor(self, target_size: int) -> int:
        unit_cost = self.unit_cost
        if unit_cost <= 0:
            return 1
        # Round half away from zero
        scale = math.floor(target_size / unit_cost + 0.5)
        return max(1, int(scale))

    def calculate_row_counts(self, target_size: int) -> Dict[str, int]:
        scale = self.scale_factor(target_size)
        return {
            t.name: max(1, int(scale * t.scale_ratio))
            for t in self.tables
        }

    def estimated_size(self, row_counts: Dict[str, int]) -> int:
        total = 0.0
        for t in self.tables:
            rows = row_counts.get(t.name, 0)
            total += rows * t.base_row_size * t.effective_index_factor
        return int(total)


def format_size(num_bytes: int) -> str:
    for unit, factor in _SIZE_UNITS:
        if num_bytes >= factor:
            return f"{num_bytes / factor:.2f} {unit}"
    return f"{num_bytes} B"


def parse_size(text: str) -> int:
    """
    Parsea tamaños tipo '500MB', '1.5GB', '10g' o '2048' (bytes).
    """
    match = _SIZE_PATTERN.match(str(text))
    if not match:
        raise ConfigurationError(f"invalid size format: {text!r}")

    value = float(match.group(1))
    unit = match.group(2).upper().rstrip("B")

    multipliers = {"": 1, "K": 1024, "M": 1024**2, "G": 1024**3, "T": 1024**4}
    return int(value * multipliers[unit])
