"""Embedding abstractions used to key the similarity cache."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from hashlib import blake2b
from math import sqrt

_WORD = re.compile(r"\w+")


class Embedder(ABC):
    """Turns canonical request text into a vector for similarity lookup."""

    @abstractmethod
    def embed_query(self, text: str) -> list[float]:
        """Embed one query."""

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self.embed_query(text) for text in texts]


class PlaceholderEmbedder(Embedder):
    """Single-dimension zero vector.

    Only meaningful together with `PassthroughSimilarityCache`: every query
    maps to the same degenerate vector, so no real cache should be keyed on it.
    """

    def embed_query(self, text: str) -> list[float]:
        del text
        return [0.0]


class HashingEmbedder(Embedder):
    """Deterministic hashed n-gram embedding without external model calls.

    Word unigrams are hashed together with word bigrams and trigrams, so
    requests that share a vocabulary but differ in word order land apart.
    Identical request texts always map to the same unit vector. Intended for
    local runs and tests with `InMemorySimilarityCache`; in production, plug
    in a real embedding model.
    """

    def __init__(self, dimension: int = 512, max_ngram: int = 3) -> None:
        if max_ngram < 1:
            raise ValueError("max_ngram must be at least 1")
        self.dimension = dimension
        self.max_ngram = max_ngram

    def features(self, text: str) -> list[str]:
        words = _WORD.findall(text.lower())
        grams: list[str] = []
        for size in range(1, self.max_ngram + 1):
            for start in range(len(words) - size + 1):
                grams.append(" ".join(words[start : start + size]))
        return grams

    def embed_query(self, text: str) -> list[float]:
        vector = [0.0 for _ in range(self.dimension)]
        for gram in self.features(text):
            digest = blake2b(gram.encode("utf-8"), digest_size=8).digest()
            idx = int.from_bytes(digest[:4], "little") % self.dimension
            sign = -1.0 if digest[4] % 2 else 1.0
            vector[idx] += sign

        norm = sqrt(sum(value * value for value in vector))
        if norm == 0:
            return vector
        return [value / norm for value in vector]
