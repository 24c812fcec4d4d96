"""Embedding functions for task and query text.

The search core depends only on the ``EmbeddingFunction`` protocol, so a
deterministic stub (tests, benchmarks, offline use) and a real
sentence-transformers model are interchangeable.
"""

import hashlib
from typing import Protocol, runtime_checkable

import numpy as np
from loguru import logger

from ..config.defaults import DEFAULT_EMBEDDING_MODEL, DEFAULT_VECTOR_DIM
from .exceptions import EmbeddingError


@runtime_checkable
class EmbeddingFunction(Protocol):
    """Anything that turns text into fixed-length vectors."""

    @property
    def dimension(self) -> int: ...

    def embed_query(self, text: str) -> list[float]: ...

    def embed_documents(self, texts: list[str]) -> list[list[float]]: ...


def _unit(vector: np.ndarray) -> np.ndarray:
    norm = np.linalg.norm(vector)
    if norm == 0:
        return vector
    return vector / norm


class StubEmbedder:
    """Unit vectors derived from a hash of the text (or random ones).

    With ``deterministic=True`` (the default) the same text always maps to the
    same vector, which keeps hybrid search reproducible. Semantic similarity
    between different texts is meaningless.
    """

    def __init__(
        self,
        dimension: int = DEFAULT_VECTOR_DIM,
        deterministic: bool = True,
        seed: int | None = None,
    ) -> None:
        if dimension <= 0:
            raise EmbeddingError(f"Embedding dimension must be positive, got {dimension}")
        self._dimension = dimension
        self.deterministic = deterministic
        self._rng = np.random.default_rng(seed)

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def name(self) -> str:
        mode = "deterministic" if self.deterministic else "random"
        return f"stub-{mode}-{self._dimension}"

    def _vector(self, text: str) -> np.ndarray:
        if self.deterministic:
            digest = hashlib.sha256(text.encode("utf-8")).digest()
            rng = np.random.default_rng(int.from_bytes(digest[:8], "little"))
        else:
            rng = self._rng
        return _unit(rng.standard_normal(self._dimension).astype(np.float32))

    def embed_query(self, text: str) -> list[float]:
        return self._vector(text).tolist()

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self._vector(text).tolist() for text in texts]


class SentenceTransformerEmbedder:
    """Embeddings from a sentence-transformers model.

    The model is loaded on first use. Requires the ``models`` extra
    (``pip install mcp-local-tasks[models]``).
    """

    def __init__(
        self,
        model_name: str = DEFAULT_EMBEDDING_MODEL,
        dimension: int | None = None,
        batch_size: int = 32,
    ) -> None:
        self.model_name = model_name
        self.batch_size = batch_size
        self._expected_dimension = dimension
        self._model = None

    @property
    def name(self) -> str:
        return self.model_name

    def _load(self):
        if self._model is not None:
            return self._model
        try:
            from sentence_transformers import SentenceTransformer
        except ImportError as e:
            raise EmbeddingError(
                "sentence-transformers is not installed; "
                "install mcp-local-tasks[models] or use the stub embedder"
            ) from e

        logger.info(f"Loading embedding model {self.model_name}")
        try:
            model = SentenceTransformer(self.model_name)
        except Exception as e:
            raise EmbeddingError(
                f"Failed to load embedding model {self.model_name}: {e}"
            ) from e

        actual = model.get_sentence_embedding_dimension()
        if self._expected_dimension is not None and actual != self._expected_dimension:
            raise EmbeddingError(
                f"Model {self.model_name} produces {actual}-d vectors, "
                f"configured dimension is {self._expected_dimension}"
            )
        self._model = model
        return model

    @property
    def dimension(self) -> int:
        if self._expected_dimension is not None:
            return self._expected_dimension
        return self._load().get_sentence_embedding_dimension()

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        model = self._load()
        try:
            embeddings = model.encode(
                texts,
                convert_to_numpy=True,
                batch_size=self.batch_size,
                normalize_embeddings=True,
                show_progress_bar=False,
            )
        except Exception as e:
            logger.error(f"Failed to generate embeddings: {e}")
            raise EmbeddingError(f"Failed to generate embeddings: {e}") from e
        return embeddings.tolist()

    def embed_query(self, text: str) -> list[float]:
        return self.embed_documents([text])[0]


def create_embedding_function(
    kind: str = "stub",
    model_name: str = DEFAULT_EMBEDDING_MODEL,
    dimension: int = DEFAULT_VECTOR_DIM,
) -> EmbeddingFunction:
    """Create an embedding function by name.

    Args:
        kind: ``"stub"`` or ``"sentence-transformers"``
        model_name: Model to load for the sentence-transformers embedder
        dimension: Vector dimension (must match the vector table)

    Returns:
        An ``EmbeddingFunction``
    """
    if kind == "stub":
        return StubEmbedder(dimension=dimension)
    if kind == "sentence-transformers":
        return SentenceTransformerEmbedder(model_name=model_name, dimension=dimension)
    raise EmbeddingError(f"Unknown embedder '{kind}'")
