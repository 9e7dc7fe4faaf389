from typing import Dict, Iterator, List

from vecload.core.errors import ConfigurationError
from vecload.core.workload import Workload


class WorkloadRegistry:
    """
    Registro de aplicaciones disponibles.
    Se llena una vez al arrancar y queda de solo lectura tras freeze().
    """

    def __init__(self):
        self._workloads: Dict[str, Workload] = {}
        self._frozen = False

    def register(self, workload: Workload) -> Workload:
        if self._frozen:
            raise RuntimeError("workload registry is frozen")
        if not workload.name:
            raise ValueError(f"{type(workload).__name__} has no name")
        if workload.name in self._workloads:
            raise ValueError(f"workload already registered: {workload.name}")
        self._workloads[workload.name] = workload
        return workload

    def freeze(self) -> "WorkloadRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, name: str) -> Workload:
        try:
            return self._workloads[name]
        except KeyError:
            available = ", ".join(self.names()) or "none"
            raise ConfigurationError(
                f"unknown application: {name} (available: {available})") from None

    def names(self) -> List[str]:
        return sorted(self._workloads)

    def all(self) -> List[Workload]:
        return [self._workloads[n] for n in self.names()]

    def __contains__(self, name: str) -> bool:
        return name in self._workloads

    def __iter__(self) -> Iterator[Workload]:
        return iter(self.all())

    def __len__(self) -> int:
        return len(self._workloads)


def build_registry() -> WorkloadRegistry:
    """Registro con las aplicaciones incluidas, ya congelado."""
    from vecload.domains.ecommerce.app import EcommerceWorkload
    from vecload.domains.knowledgebase.app import KnowledgeBaseWorkload

    registry = WorkloadRegistry()
    registry.register(KnowledgeBaseWorkload())
    registry.register(EcommerceWorkload())
    return registry.freeze()
