import logging
import os
import pathlib
from typing import Any, Optional

import yaml

from vecload.core.batch import BatchConfig
from vecload.core.errors import ConfigurationError
from vecload.core.estimator import parse_size
from vecload.core.runner import ConnectionMode, RunConfig
from vecload.core.workload import GeneratorConfig

logger = logging.getLogger(__name__)

PACKAGE_CONFIG_DIR = pathlib.Path(__file__).resolve().parent.parent / "config"


def user_config_candidates() -> list[pathlib.Path]:
    return [
        pathlib.Path.cwd() / "vecload.yaml",
        pathlib.Path.home() / ".config" / "vecload" / "config.yaml",
    ]


class Settings:
    """
    Gestor de configuracion centralizado.
    Orden: defaults.yaml del paquete -> archivo de usuario -> overrides de CLI.
    """

    def __init__(self, config_dir: str = None, user_config: str = None):
        self.config_dir = pathlib.Path(config_dir) if config_dir else PACKAGE_CONFIG_DIR
        self.user_config = pathlib.Path(user_config) if user_config else None

    def load_defaults(self) -> dict[str, Any]:
        return self._read_yaml(self.config_dir / "defaults.yaml")

    def find_user_config(self) -> Optional[pathlib.Path]:
        if self.user_config is not None:
            if not self.user_config.exists():
                raise ConfigurationError(f"config file not found: {self.user_config}")
            return self.user_config
        for candidate in user_config_candidates():
            if candidate.exists():
                return candidate
        return None

    def load_user_config(self) -> dict[str, Any]:
        path = self.find_user_config()
        if path is None:
            return {}
        logger.debug("using config file %s", path)
        return self._read_yaml(path)

    def load(self, overrides: dict = None) -> dict[str, Any]:
        config = self.merge_configs(self.load_defaults(), self.load_user_config())
        # Credentials can come from the environment
        env_key = os.environ.get("OPENAI_API_KEY")
        if env_key and not config.get("embeddings", {}).get("openai_api_key"):
            config.setdefault("embeddings", {})["openai_api_key"] = env_key
        if overrides:
            config = self.merge_configs(config, self.drop_unset(overrides))
        return config

    def _read_yaml(self, path: pathlib.Path) -> dict[str, Any]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"invalid YAML in {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"{path} must contain a mapping at the top level")
        return data

    @staticmethod
    def drop_unset(values: dict) -> dict:
        """Quita las opciones de CLI que no se pasaron (None)."""
        result = {}
        for key, value in values.items():
            if isinstance(value, dict):
                nested = Settings.drop_unset(value)
                if nested:
                    result[key] = nested
            elif value is not None:
                result[key] = value
        return result

    @staticmethod
    def merge_configs(base: dict, override: dict) -> dict:
        """
        Mezcla recursiva de diccionarios de configuracion.
        """
        result = base.copy()
        for key, value in override.items():
            if isinstance(value, dict) and key in result and isinstance(result[key], dict):
                result[key] = Settings.merge_configs(result[key], value)
            else:
                result[key] = value
        return result


def require_connection(config: dict) -> str:
    conninfo = config.get("connection")
    if not conninfo:
        raise ConfigurationError(
            "no database connection given (use --connection or 'connection' in the config file)")
    return conninfo


def build_generator_config(config: dict) -> GeneratorConfig:
    init = config.get("init", {})
    emb = config.get("embeddings", {})
    try:
        target_size = parse_size(init.get("size", "1GB"))
        dimensions = int(init.get("embedding_dimensions", 384))
        batch = BatchConfig(int(init.get("batch_size", 1000)),
                            int(init.get("progress_interval", 100_000)))
        timeout = float(emb.get("request_timeout", 30))
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"invalid init settings: {e}") from e

    if target_size <= 0:
        raise ConfigurationError("target size must be greater than zero")
    if batch.batch_size <= 0:
        raise ConfigurationError("batch_size must be greater than zero")

    return GeneratorConfig(
        target_size=target_size,
        embedding_mode=init.get("embedding_mode", "random"),
        embedding_dimensions=dimensions,
        openai_api_key=emb.get("openai_api_key"),
        openai_model=emb.get("openai_model") or "text-embedding-3-small",
        openai_base_url=emb.get("openai_base_url") or "https://api.openai.com/v1",
        vectorizer_url=emb.get("vectorizer_url"),
        request_timeout=timeout,
        batch=batch,
        seed=init.get("seed"),
    )


def build_run_config(config: dict) -> RunConfig:
    run = config.get("run", {})
    try:
        mode = ConnectionMode(str(run.get("connection_mode", "pool")).lower())
    except ValueError:
        raise ConfigurationError(
            f"invalid connection mode: {run.get('connection_mode')!r} (expected pool or session)") from None

    try:
        rc = RunConfig(
            connections=int(run.get("connections", 10)),
            duration=float(run.get("duration", 0)),
            connection_mode=mode,
            report_interval=float(run.get("report_interval", 60)),
            session_min_duration=float(run.get("session_min_duration", 300)),
            session_max_duration=float(run.get("session_max_duration", 1800)),
            think_time_min=int(run.get("think_time_min", 1000)),
            think_time_max=int(run.get("think_time_max", 5000)),
        )
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"invalid run settings: {e}") from e

    rc.validate()
    return rc
