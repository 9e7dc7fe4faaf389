import pytest
from click.testing import CliRunner

from vecload.cli import main
from vecload.version import __version__


@pytest.fixture
def runner(monkeypatch, tmp_path):
    """
    CliRunner aislado: sin vecload.yaml del usuario ni variables del entorno real.
    """
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    return CliRunner()


def test_version(runner):
    result = runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_apps_lists_builtin_applications(runner):
    result = runner.invoke(main, ["apps"])
    assert result.exit_code == 0, result.output
    assert "knowledgebase" in result.output
    assert "ecommerce" in result.output


def test_queries_shows_the_mix(runner):
    result = runner.invoke(main, ["queries", "knowledgebase"])
    assert result.exit_code == 0, result.output
    for name in ["semantic_search", "similar_questions", "admin_update"]:
        assert name in result.output
    assert "40.0%" in result.output


def test_unknown_application_fails(runner):
    result = runner.invoke(main, ["queries", "chatbot"])
    assert result.exit_code == 1
    assert "unknown application" in result.output


def test_init_without_connection_fails_before_connecting(runner):
    result = runner.invoke(main, ["init", "ecommerce", "--size", "10MB"])
    assert result.exit_code == 1
    assert "no database connection" in result.output


def test_init_rejects_bad_size(runner):
    result = runner.invoke(main, ["init", "ecommerce", "--size", "lots", "-c", "dbname=test"])
    assert result.exit_code == 1
    assert "size" in result.output


def test_run_rejects_bad_connection_count(runner):
    result = runner.invoke(main, ["run", "knowledgebase", "-n", "0", "-c", "dbname=test"])
    assert result.exit_code == 1
    assert "connections must be at least 1" in result.output


def test_missing_config_file(runner, tmp_path):
    result = runner.invoke(main, ["init", "ecommerce", "--config", str(tmp_path / "missing.yaml")])
    assert result.exit_code == 1
    assert "config file not found" in result.output
