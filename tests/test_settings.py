import pytest

from vecload.core.embeddings import EmbeddingMode
from vecload.core.errors import ConfigurationError
from vecload.core.runner import ConnectionMode
from vecload.core.settings import (Settings, build_generator_config, build_run_config,
                                   require_connection)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Sin archivos de usuario ni credenciales del entorno real."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)


def test_defaults_load():
    config = Settings().load()
    assert config["init"]["size"] == "1GB"
    assert config["run"]["connection_mode"] == "pool"
    assert config["connection"] is None


def test_merge_is_recursive():
    base = {"init": {"size": "1GB", "seed": None}, "log_level": "INFO"}
    merged = Settings.merge_configs(base, {"init": {"size": "5GB"}})
    assert merged == {"init": {"size": "5GB", "seed": None}, "log_level": "INFO"}
    assert base["init"]["size"] == "1GB"


def test_unset_cli_options_do_not_override():
    assert Settings.drop_unset({"a": None, "b": {"c": None}, "d": {"e": 0, "f": None}}) == {"d": {"e": 0}}


def test_user_file_then_cli_overrides(tmp_path):
    (tmp_path / "vecload.yaml").write_text(
        "connection: postgresql://localhost/test\n"
        "init:\n  size: 200MB\n  embedding_dimensions: 768\n"
    )
    config = Settings().load({"init": {"size": "2GB", "seed": None}})
    assert config["connection"] == "postgresql://localhost/test"
    assert config["init"]["size"] == "2GB"
    assert config["init"]["embedding_dimensions"] == 768
    assert config["init"]["batch_size"] == 1000


def test_explicit_missing_file_is_an_error(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        Settings(user_config=str(tmp_path / "nope.yaml")).load()


def test_invalid_yaml_is_an_error(tmp_path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("init: [unclosed\n")
    with pytest.raises(ConfigurationError, match="invalid YAML"):
        Settings(user_config=str(bad)).load()


def test_api_key_from_environment(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    assert Settings().load()["embeddings"]["openai_api_key"] == "sk-env"


def test_require_connection():
    with pytest.raises(ConfigurationError):
        require_connection({"connection": None})
    assert require_connection({"connection": "dbname=x"}) == "dbname=x"


def test_build_generator_config():
    config = Settings().load({"init": {"size": "500MB", "embedding_mode": "openai", "seed": 3}})
    gen = build_generator_config(config)
    assert gen.target_size == 500 * 1024**2
    assert gen.embedding_mode is EmbeddingMode.OPENAI
    assert gen.embedding_dimensions == 384
    assert gen.seed == 3
    assert gen.batch.batch_size == 1000


@pytest.mark.parametrize("init", [
    {"size": "huge"},
    {"size": "0"},
    {"embedding_mode": "glove"},
    {"embedding_dimensions": -1},
    {"embedding_mode": "vectorizer"},
    {"batch_size": 0},
])
def test_invalid_init_settings(init):
    config = Settings().load({"init": init})
    with pytest.raises(ConfigurationError):
        build_generator_config(config)


def test_build_run_config():
    rc = build_run_config(Settings().load({"run": {"connections": 4, "duration": 2}}))
    assert rc.connections == 4
    assert rc.duration_seconds == 120
    assert rc.connection_mode is ConnectionMode.POOL


@pytest.mark.parametrize("run", [
    {"connection_mode": "threads"},
    {"connections": 0},
    {"duration": -1},
    {"connections": "many"},
    {"connection_mode": "session", "think_time_min": 500, "think_time_max": 100},
])
def test_invalid_run_settings(run):
    with pytest.raises(ConfigurationError):
        build_run_config(Settings().load({"run": run}))
