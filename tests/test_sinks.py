import polars as pl
import pytest

from vecload.core.errors import ConfigurationError
from vecload.sinks.definitions import CsvSink, ParquetSink, SinkFactory


@pytest.fixture
def summary():
    return pl.DataFrame({"query": ["checkout", "semantic_search"], "count": [3, 40]})


def test_parquet_into_directory(tmp_path, summary):
    path = SinkFactory.get_sink("parquet", tmp_path / "reports").write("ecommerce", summary)
    assert path == tmp_path / "reports" / "ecommerce.parquet"
    assert pl.read_parquet(path).equals(summary)


def test_csv_by_file_name(tmp_path, summary):
    sink = SinkFactory.for_path(tmp_path / "out" / "run.csv")
    assert isinstance(sink, CsvSink)
    path = sink.write("ecommerce", summary)
    assert path == tmp_path / "out" / "run.csv"
    assert pl.read_csv(path)["count"].to_list() == [3, 40]


def test_parquet_is_the_default(tmp_path):
    assert isinstance(SinkFactory.for_path(tmp_path / "reports"), ParquetSink)


def test_unknown_format(tmp_path):
    with pytest.raises(ConfigurationError):
        SinkFactory.for_path(tmp_path / "summary.xlsx")
