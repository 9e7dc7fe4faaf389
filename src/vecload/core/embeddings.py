import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict

import httpx
import numpy as np

from vecload.core.errors import ConfigurationError, EmbeddingError

logger = logging.getLogger(__name__)

DEFAULT_DIMENSIONS = 384
DEFAULT_OPENAI_MODEL = "text-embedding-3-small"
DEFAULT_OPENAI_URL = "https://api.openai.com/v1"

_FNV_OFFSET_64 = 0xCBF29CE484222325
_FNV_PRIME_64 = 0x100000001B3
_MASK_64 = 0xFFFFFFFFFFFFFFFF


class EmbeddingMode(str, Enum):
    RANDOM = "random"
    OPENAI = "openai"
    VECTORIZER = "vectorizer"

    @classmethod
    def parse(cls, value) -> "EmbeddingMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            valid = ", ".join(m.value for m in cls)
            raise ConfigurationError(
                f"unknown embedding mode: {value!r} (expected one of: {valid})") from None


def fnv1a_64(data: bytes) -> int:
    h = _FNV_OFFSET_64
    for byte in data:
        h ^= byte
        h = (h * _FNV_PRIME_64) & _MASK_64
    return h


def format_embedding(vector) -> str:
    """
    Serializa un vector al formato de texto de pgvector: [0.123456,-0.654321].
    """
    return "[" + ",".join(f"{float(v):.6f}" for v in vector) + "]"


class Embedder(ABC):
    """
    Produce vectores float32 de longitud fija para un texto.
    """

    @property
    @abstractmethod
    def dimensions(self) -> int:
        pass

    @abstractmethod
    def embed(self, text: str) -> np.ndarray:
        pass

    def close(self) -> None:
        pass


class RandomEmbedder(Embedder):
    """
    Embeddings deterministas: el hash del texto siembra el generador,
    se toma una normal estandar por dimension y se normaliza (L2).
    """

    def __init__(self, dimensions: int = DEFAULT_DIMENSIONS):
        if dimensions <= 0:
            raise ConfigurationError(f"embedding dimensions must be positive, got {dimensions}")
        self._dimensions = dimensions

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def embed(self, text: str) -> np.ndarray:
        seed = fnv1a_64(text.encode("utf-8"))
        rng = np.random.default_rng(seed)
        values = rng.standard_normal(self._dimensions)

        norm = np.linalg.norm(values)
        if norm > 0:
            values = values / norm
        return values.astype(np.float32)


class _HttpEmbedder(Embedder):
    """Base comun para los embedders que hablan HTTP."""

    def __init__(self, dimensions: int, timeout: float = 30.0, client: httpx.Client = None,
                 open_client: bool = True):
        self._dimensions = dimensions
        self._owns_client = client is None and open_client
        self.client = client if not self._owns_client else httpx.Client(timeout=timeout)

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def _post(self, url: str, payload: Dict[str, Any], headers: Dict[str, str] = None) -> Dict[str, Any]:
        try:
            response = self.client.post(url, json=payload, headers=headers)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as e:
            raise EmbeddingError(f"embedding request to {url} timed out") from e
        except httpx.HTTPStatusError as e:
            raise EmbeddingError(
                f"embedding service returned HTTP {e.response.status_code} for {url}") from e
        except httpx.HTTPError as e:
            raise EmbeddingError(f"embedding request to {url} failed: {e}") from e
        except ValueError as e:
            raise EmbeddingError(f"embedding service at {url} returned invalid JSON") from e

    def _to_vector(self, values) -> np.ndarray:
        if not isinstance(values, list) or len(values) != self._dimensions:
            got = len(values) if isinstance(values, list) else type(values).__name__
            raise EmbeddingError(
                f"expected an embedding with {self._dimensions} dimensions, got {got}")
        return np.asarray(values, dtype=np.float32)

    def close(self) -> None:
        if self._owns_client and self.client is not None:
            self.client.close()


class OpenAIEmbedder(_HttpEmbedder):
    """
    Usa la API de embeddings de OpenAI. Sin API key cae a RandomEmbedder
    con la misma dimension, nunca falla por falta de credenciales.
    """

    def __init__(self, api_key: str = None, dimensions: int = DEFAULT_DIMENSIONS,
                 model: str = DEFAULT_OPENAI_MODEL, base_url: str = DEFAULT_OPENAI_URL,
                 timeout: float = 30.0, client: httpx.Client = None):
        # Without a key every call goes to the fallback
        super().__init__(dimensions, timeout=timeout, client=client, open_client=bool(api_key))
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.fallback = None
        if not api_key:
            logger.warning("OpenAI API key not set, using random embeddings")
            self.fallback = RandomEmbedder(dimensions)

    def embed(self, text: str) -> np.ndarray:
        if self.fallback is not None:
            return self.fallback.embed(text)

        body = self._post(
            f"{self.base_url}/embeddings",
            {"model": self.model, "input": text, "dimensions": self._dimensions},
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        try:
            values = body["data"][0]["embedding"]
        except (KeyError, IndexError, TypeError) as e:
            raise EmbeddingError("unexpected response shape from OpenAI embeddings API") from e
        return self._to_vector(values)


class VectorizerEmbedder(_HttpEmbedder):
    """
    Llama a un microservicio interno: POST {url}/embed.
    Timeouts y respuestas no-2xx se propagan como EmbeddingError.
    """

    def __init__(self, url: str, dimensions: int = DEFAULT_DIMENSIONS,
                 timeout: float = 30.0, client: httpx.Client = None):
        if not url:
            raise ConfigurationError("vectorizer embedding mode requires a vectorizer URL")
        super().__init__(dimensions, timeout=timeout, client=client)
        self.url = url.rstrip("/")

    def embed(self, text: str) -> np.ndarray:
        body = self._post(f"{self.url}/embed", {"text": text, "dimensions": self._dimensions})
        if not isinstance(body, dict) or "embedding" not in body:
            raise EmbeddingError(f"vectorizer at {self.url} returned no 'embedding' field")
        return self._to_vector(body["embedding"])


class EmbedderFactory:
    @staticmethod
    def get_embedder(mode, dimensions: int = DEFAULT_DIMENSIONS, **options) -> Embedder:
        mode = EmbeddingMode.parse(mode)
        if mode is EmbeddingMode.RANDOM:
            return RandomEmbedder(dimensions)
        elif mode is EmbeddingMode.OPENAI:
            return OpenAIEmbedder(
                api_key=options.get("openai_api_key"),
                dimensions=dimensions,
                model=options.get("openai_model") or DEFAULT_OPENAI_MODEL,
                base_url=options.get("openai_base_url") or DEFAULT_OPENAI_URL,
                timeout=options.get("request_timeout", 30.0),
                client=options.get("client"),
            )
        elif mode is EmbeddingMode.VECTORIZER:
            return VectorizerEmbedder(
                url=options.get("vectorizer_url"),
                dimensions=dimensions,
                timeout=options.get("request_timeout", 30.0),
                client=options.get("client"),
            )
        raise ConfigurationError(f"unknown embedding mode: {mode}")

    @staticmethod
    def from_config(config) -> Embedder:
        return EmbedderFactory.get_embedder(
            config.embedding_mode,
            config.embedding_dimensions,
            openai_api_key=config.openai_api_key,
            openai_model=config.openai_model,
            openai_base_url=config.openai_base_url,
            vectorizer_url=config.vectorizer_url,
            request_timeout=config.request_timeout,
        )
