import os

import psutil


class MemoryGuard:
    """
    Mide el consumo de RAM del propio proceso cliente durante una corrida,
    para que los reportes distingan carga del cliente de carga del servidor.
    """
    _baseline_rss_mb = None
    _peak_rss_mb = 0.0
    _peak_system_pct = 0.0
    _initialized = False

    @staticmethod
    def initialize_budget():
        """
        Captura el estado inicial de la RAM.
        """
        vm = psutil.virtual_memory()
        MemoryGuard._baseline_rss_mb = MemoryGuard._rss_mb()
        MemoryGuard._peak_rss_mb = MemoryGuard._baseline_rss_mb
        MemoryGuard._peak_system_pct = vm.percent
        MemoryGuard._initialized = True

    @staticmethod
    def _rss_mb() -> float:
        return psutil.Process(os.getpid()).memory_info().rss / (1024**2)

    @staticmethod
    def get_process_rss_mb() -> float:
        rss_mb = MemoryGuard._rss_mb()
        if rss_mb > MemoryGuard._peak_rss_mb:
            MemoryGuard._peak_rss_mb = rss_mb
        return rss_mb

    @staticmethod
    def get_ram_usage_pct() -> float:
        pct = psutil.virtual_memory().percent
        if pct > MemoryGuard._peak_system_pct:
            MemoryGuard._peak_system_pct = pct
        return pct

    @staticmethod
    def get_cpu_pct() -> float:
        return psutil.cpu_percent(interval=None)

    @staticmethod
    def peak_rss_mb() -> float:
        return MemoryGuard._peak_rss_mb

    @staticmethod
    def peak_system_pct() -> float:
        return MemoryGuard._peak_system_pct
