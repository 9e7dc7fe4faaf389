import json
import subprocess
import sys
from pathlib import Path

import httpx
import numpy as np
import pytest

from vecload.core.embeddings import (EmbedderFactory, EmbeddingMode, OpenAIEmbedder, RandomEmbedder,
                                     VectorizerEmbedder, fnv1a_64, format_embedding)
from vecload.core.errors import ConfigurationError, EmbeddingError


def test_random_embedding_is_deterministic():
    a = RandomEmbedder(384).embed("how to reset my password")
    b = RandomEmbedder(384).embed("how to reset my password")
    assert a.dtype == np.float32
    assert a.tobytes() == b.tobytes()


def test_random_embedding_depends_on_text():
    e = RandomEmbedder(64)
    assert not np.array_equal(e.embed("alpha"), e.embed("beta"))


@pytest.mark.parametrize("dims", [8, 384, 1536])
def test_random_embedding_is_unit_length(dims):
    e = RandomEmbedder(dims)
    for text in ["", "a", "semantic search over articles", "ñandú ✓"]:
        vec = e.embed(text)
        assert vec.shape == (dims,)
        assert abs(float(np.linalg.norm(vec.astype(np.float64))) - 1.0) < 1e-5


def test_random_embedding_is_stable_across_processes():
    src = Path(__file__).parent.parent / "src"
    code = (
        "import sys; sys.path.insert(0, %r);"
        "from vecload.core.embeddings import RandomEmbedder;"
        "print(RandomEmbedder(16).embed('cross process').tobytes().hex())" % str(src)
    )
    out = subprocess.run([sys.executable, "-c", code], capture_output=True, text=True, check=True)
    assert out.stdout.strip() == RandomEmbedder(16).embed("cross process").tobytes().hex()


def test_fnv1a_known_values():
    assert fnv1a_64(b"") == 0xCBF29CE484222325
    assert fnv1a_64(b"a") == 0xAF63DC4C8601EC8C


def test_format_embedding():
    assert format_embedding([0.123456, -0.654321, 0.0000123]) == "[0.123456,-0.654321,0.000012]"
    assert format_embedding(np.array([1, 0], dtype=np.float32)) == "[1.000000,0.000000]"


def test_openai_without_key_falls_back_to_random(caplog):
    with caplog.at_level("WARNING"):
        e = OpenAIEmbedder(api_key=None, dimensions=32)
    assert "API key not set" in caplog.text
    assert e.dimensions == 32
    assert np.array_equal(e.embed("fallback"), RandomEmbedder(32).embed("fallback"))


def test_openai_without_key_opens_no_http_client():
    e = OpenAIEmbedder(api_key=None, dimensions=8)
    assert e.client is None
    e.close()


def test_openai_with_key_calls_api():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"data": [{"embedding": [0.5, 0.25, 0.125, 0.0]}]})

    client = httpx.Client(transport=httpx.MockTransport(handler))
    e = OpenAIEmbedder(api_key="sk-test", dimensions=4, client=client)
    vec = e.embed("hello")

    assert seen["url"] == "https://api.openai.com/v1/embeddings"
    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"] == {"model": "text-embedding-3-small", "input": "hello", "dimensions": 4}
    assert vec.dtype == np.float32
    assert vec.tolist() == [0.5, 0.25, 0.125, 0.0]


def test_openai_http_error_is_raised():
    client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(401, json={})))
    e = OpenAIEmbedder(api_key="bad", dimensions=4, client=client)
    with pytest.raises(EmbeddingError, match="401"):
        e.embed("hello")


def test_vectorizer_success():
    def handler(request):
        assert request.url.path == "/embed"
        body = json.loads(request.content)
        return httpx.Response(200, json={"embedding": [0.1] * body["dimensions"]})

    client = httpx.Client(transport=httpx.MockTransport(handler))
    e = VectorizerEmbedder("http://vectorizer:8080/", dimensions=8, client=client)
    assert e.embed("text").shape == (8,)


def test_vectorizer_server_error_propagates():
    client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(500, text="boom")))
    e = VectorizerEmbedder("http://vectorizer:8080", dimensions=8, client=client)
    with pytest.raises(EmbeddingError, match="500"):
        e.embed("text")


def test_vectorizer_timeout_propagates():
    def handler(request):
        raise httpx.ReadTimeout("too slow", request=request)

    client = httpx.Client(transport=httpx.MockTransport(handler))
    e = VectorizerEmbedder("http://vectorizer:8080", dimensions=8, client=client)
    with pytest.raises(EmbeddingError, match="timed out"):
        e.embed("text")


def test_vectorizer_wrong_length_is_rejected():
    client = httpx.Client(transport=httpx.MockTransport(
        lambda r: httpx.Response(200, json={"embedding": [0.1, 0.2]})))
    e = VectorizerEmbedder("http://vectorizer:8080", dimensions=8, client=client)
    with pytest.raises(EmbeddingError, match="8 dimensions"):
        e.embed("text")


def test_vectorizer_requires_url():
    with pytest.raises(ConfigurationError):
        VectorizerEmbedder("", dimensions=8)


def test_factory_selects_variant():
    assert isinstance(EmbedderFactory.get_embedder("random", 16), RandomEmbedder)
    assert isinstance(EmbedderFactory.get_embedder(EmbeddingMode.OPENAI, 16), OpenAIEmbedder)
    assert isinstance(
        EmbedderFactory.get_embedder("vectorizer", 16, vectorizer_url="http://x"), VectorizerEmbedder)


def test_factory_rejects_unknown_mode():
    with pytest.raises(ConfigurationError, match="unknown embedding mode"):
        EmbedderFactory.get_embedder("word2vec", 16)
