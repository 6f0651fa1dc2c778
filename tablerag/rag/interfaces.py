"""Capability contracts for the external services used by the pipelines.

The pipelines only depend on these protocols, so any embedding provider,
completion provider or vector database (or an in-memory double) can be
plugged in.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Protocol, Sequence, runtime_checkable
import uuid

Vector = List[float]
Payload = Dict[str, Any]


@dataclass(frozen=True)
class Message:
    """A role-tagged chat message."""

    role: Literal["system", "user"]
    content: str

    def as_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class IndexedPoint:
    """A (vector, payload) pair stored under a fresh random id."""

    vector: Vector
    payload: Payload
    id: str = field(default_factory=lambda: str(uuid.uuid4()))


@dataclass(frozen=True)
class SearchHit:
    """One similarity search result, best first."""

    id: str
    score: float
    payload: Payload


@runtime_checkable
class Embedder(Protocol):
    async def embed(self, texts: Sequence[str], dimensions: int) -> List[Vector]:
        """Return one vector per input text, in input order."""
        ...


@runtime_checkable
class Completer(Protocol):
    async def complete(self, model: str, messages: Sequence[Message]) -> List[str]:
        """Return the candidate texts of a chat completion."""
        ...


@runtime_checkable
class VectorStore(Protocol):
    dimension: int

    async def create_collection(self, name: str) -> bool:
        """Create a cosine collection; False if it already exists."""
        ...

    async def upsert(self, name: str, points: Sequence[IndexedPoint]) -> None:
        ...

    async def search(
        self, name: str, vector: Vector, limit: int = 1, with_payload: bool = True
    ) -> List[SearchHit]:
        ...

    async def count(self, name: str) -> int:
        ...
