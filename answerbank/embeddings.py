"""
Deterministic pseudo-embeddings.

Not a learned model: each distinct word is hashed and the hash is spread
across every dimension, then the sum is L2-normalized. Identical text always
yields a bit-identical vector. Similar word sets give similar vectors; there
is no semantic understanding beyond that, and collisions are expected.
"""

import math

from .lexical import query_tokens

DEFAULT_DIMENSION = 64
DEFAULT_PRIME = 997
DEFAULT_MAX_TOKENS = 100

# Dimension stride for spreading one token hash over the vector
_STRIDE = 37


def token_hash(token: str) -> int:
    """32-bit rolling hash (hash*31 + code point), wrapped to a signed int."""
    h = 0
    for ch in token:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return h


def embed(
    text: str,
    dimension: int = DEFAULT_DIMENSION,
    prime: int = DEFAULT_PRIME,
    max_tokens: int = DEFAULT_MAX_TOKENS,
) -> list[float]:
    """
    Generate a pseudo-embedding for text.

    Returns the zero vector (not normalized) when the text has no tokens
    of three or more characters.
    """
    vector = [0.0] * dimension

    for token in query_tokens(text, limit=max_tokens):
        h = token_hash(token)
        for i in range(dimension):
            value = (h + i * _STRIDE) % prime
            vector[i] += (value / prime) * 2 - 1

    norm = math.sqrt(sum(v * v for v in vector))
    if norm > 0:
        vector = [v / norm for v in vector]
    return vector


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """
    Cosine similarity of two vectors; 0.0 when either is all-zero.

    Raises:
        ValueError: If the vectors differ in dimension
    """
    if len(a) != len(b):
        raise ValueError(f"Vectors must share a dimension ({len(a)} != {len(b)})")
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(x * x for x in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


class HashEmbeddingProvider:
    """
    Embedding provider backed by :func:`embed`.

    Same shape as any other embedding provider: ``dimension``, ``embed``,
    ``embed_batch``. The same instance (or the same parameters) must be used
    for indexing and querying.
    """

    model_name = "hash-v1"

    def __init__(
        self,
        dimension: int = DEFAULT_DIMENSION,
        prime: int = DEFAULT_PRIME,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ):
        if dimension <= 0:
            raise ValueError(f"Embedding dimension must be positive: {dimension}")
        self._dimension = dimension
        self._prime = prime
        self._max_tokens = max_tokens

    @property
    def dimension(self) -> int:
        return self._dimension

    def embed(self, text: str) -> list[float]:
        return embed(text, self._dimension, self._prime, self._max_tokens)

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        return [self.embed(t) for t in texts]

    @classmethod
    def from_config(cls, config) -> "HashEmbeddingProvider":
        """Build from an EmbeddingConfig."""
        return cls(config.dimension, config.prime, config.max_tokens)
