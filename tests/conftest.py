"""Pytest configuration and in-memory doubles for the external services."""
import re
import zlib
from typing import Dict, List, Optional, Sequence

import numpy as np
import pytest

from tablerag.document import Document
from tablerag.errors import EmbeddingFailed, StoreSearchFailed, StoreWriteFailed
from tablerag.rag.interfaces import IndexedPoint, Message, SearchHit

DIMENSIONS = 16
COLLECTION = "test-csv-files"


class FakeEmbedder:
    """Deterministic bag-of-words hashing embedder."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: List[List[str]] = []

    @staticmethod
    def vectorize(text: str, dimensions: int) -> List[float]:
        vector = np.zeros(dimensions, dtype=np.float64)
        for token in re.findall(r"[a-z0-9]+", text.lower()):
            vector[zlib.crc32(token.encode()) % dimensions] += 1.0
        if not vector.any():
            vector[0] = 1e-3
        return vector.tolist()

    async def embed(self, texts: Sequence[str], dimensions: int) -> List[List[float]]:
        self.calls.append(list(texts))
        if self.fail:
            raise EmbeddingFailed("embedding service unavailable")
        return [self.vectorize(t, dimensions) for t in texts]


class InMemoryVectorStore:
    """Cosine-similarity store keeping points in a dict of lists."""

    def __init__(self, dimension: int = DIMENSIONS, fail_after: Optional[int] = None):
        self.dimension = dimension
        self.fail_after = fail_after
        self.collections: Dict[str, List[IndexedPoint]] = {}
        self.upsert_calls = 0
        self.search_calls: List[dict] = []

    async def create_collection(self, name: str) -> bool:
        if name in self.collections:
            return False
        self.collections[name] = []
        return True

    async def upsert(self, name: str, points: Sequence[IndexedPoint]) -> None:
        if name not in self.collections:
            raise StoreWriteFailed(f"Collection {name!r} does not exist")
        if self.fail_after is not None and self.upsert_calls >= self.fail_after:
            raise StoreWriteFailed("store unavailable")
        self.upsert_calls += 1
        self.collections[name].extend(points)

    async def search(self, name, vector, limit=1, with_payload=True) -> List[SearchHit]:
        self.search_calls.append({"name": name, "limit": limit, "with_payload": with_payload})
        if name not in self.collections:
            raise StoreSearchFailed(f"Collection {name!r} does not exist")

        query = np.asarray(vector)
        scored = []
        for point in self.collections[name]:
            candidate = np.asarray(point.vector)
            score = float(query @ candidate / (np.linalg.norm(query) * np.linalg.norm(candidate)))
            scored.append(SearchHit(id=point.id, score=score, payload=dict(point.payload)))

        scored.sort(key=lambda hit: hit.score, reverse=True)
        return scored[:limit]

    async def count(self, name: str) -> int:
        return len(self.collections[name])


class FakeCompleter:
    """Returns scripted candidate lists and records every request."""

    def __init__(self, candidates: Optional[List[str]] = None, error: Exception = None):
        self.candidates = ["The average of val is 15."] if candidates is None else candidates
        self.error = error
        self.calls: List[dict] = []

    async def complete(self, model: str, messages: Sequence[Message]) -> List[str]:
        self.calls.append({"model": model, "messages": list(messages)})
        if self.error is not None:
            raise self.error
        return list(self.candidates)


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def store() -> InMemoryVectorStore:
    store = InMemoryVectorStore()
    store.collections[COLLECTION] = []
    return store


@pytest.fixture
def completer() -> FakeCompleter:
    return FakeCompleter()


@pytest.fixture
def csv_document() -> Document:
    """The three-line document used by the retrieval scenarios."""
    return Document(path="a.csv", raw_text="id,val\n1,10\n2,20", rows=("id,val", "1,10", "2,20"))
