"""FAISS vector store for local, offline use.

Handles:
- Cosine similarity via inner product over normalized vectors
- Per-collection index and payload bookkeeping
- Dimension validation on every call
- Optional persistence after each write
"""
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence
import numpy as np
import faiss
import structlog

from tablerag import config
from tablerag.errors import ConfigurationError, StoreSearchFailed, StoreWriteFailed
from tablerag.rag.interfaces import IndexedPoint, SearchHit, Vector

logger = structlog.get_logger()

INDEX_FILE = "vectors.index"
POINTS_FILE = "points.json"


class _Collection:
    """A FAISS index plus the ids and payloads of its rows."""

    def __init__(self, dimension: int):
        self.index = faiss.IndexFlatIP(dimension)
        self.ids: List[str] = []
        self.payloads: List[Dict[str, Any]] = []


class FAISSVectorStore:
    """FAISS-based implementation of the vector store capability."""

    def __init__(self, dimension: int = None, index_dir: Optional[Path] = None):
        """Initialize the FAISS vector store.

        Args:
            dimension: Vector dimension (default from config)
            index_dir: Directory for persisted collections; None keeps
                everything in memory
        """
        self.dimension = dimension or config.EMBEDDING_DIMENSIONS
        self.index_dir = Path(index_dir) if index_dir else None
        self._collections: Dict[str, _Collection] = {}

        logger.info(
            "faiss_store_initialized",
            index_dir=str(self.index_dir) if self.index_dir else None,
            dimension=self.dimension,
        )

    def _paths(self, name: str):
        directory = self.index_dir / name
        return directory, directory / INDEX_FILE, directory / POINTS_FILE

    def _get(self, name: str) -> Optional[_Collection]:
        """Return a collection, loading it from disk on first use."""
        if name in self._collections:
            return self._collections[name]

        if self.index_dir is None:
            return None

        _, index_path, points_path = self._paths(name)
        if not (index_path.exists() and points_path.exists()):
            return None

        try:
            with open(points_path, "r", encoding="utf-8") as f:
                stored = json.load(f)
            stored_dimension, stored_metric = stored["dimension"], stored["metric"]
            ids, payloads = list(stored["ids"]), list(stored["payloads"])
            index = faiss.read_index(str(index_path))
        except (OSError, ValueError, KeyError, TypeError, RuntimeError) as e:
            logger.error("faiss_collection_load_failed", collection=name, error=str(e))
            raise StoreSearchFailed(f"Collection {name!r} on disk is unreadable: {e}") from e

        if stored_dimension != self.dimension or stored_metric != "cosine":
            raise ConfigurationError(
                f"Collection {name!r} on disk has dimension={stored_dimension}, "
                f"metric={stored_metric}; expected dimension={self.dimension}, "
                "metric=cosine"
            )

        if len(ids) != index.ntotal or len(payloads) != index.ntotal:
            raise StoreSearchFailed(
                f"Collection {name!r} on disk has {index.ntotal} vectors but "
                f"{len(ids)} ids and {len(payloads)} payloads"
            )

        collection = _Collection(self.dimension)
        collection.index = index
        collection.ids = ids
        collection.payloads = payloads
        self._collections[name] = collection

        logger.info("faiss_collection_loaded", collection=name, vector_count=collection.index.ntotal)

        return collection

    def _save(self, name: str, collection: _Collection) -> None:
        if self.index_dir is None:
            return

        directory, index_path, points_path = self._paths(name)
        directory.mkdir(parents=True, exist_ok=True)

        faiss.write_index(collection.index, str(index_path))
        with open(points_path, "w", encoding="utf-8") as f:
            json.dump(
                {
                    "dimension": self.dimension,
                    "metric": "cosine",
                    "ids": collection.ids,
                    "payloads": collection.payloads,
                },
                f,
            )

    def _as_matrix(self, vectors: Sequence[Vector]) -> np.ndarray:
        matrix = np.array(vectors, dtype=np.float32)

        if matrix.ndim != 2 or matrix.shape[1] != self.dimension:
            raise ConfigurationError(
                f"Vector dimension mismatch: expected {self.dimension}, "
                f"got {matrix.shape[-1] if matrix.ndim else 0}"
            )

        faiss.normalize_L2(matrix)
        return matrix

    async def create_collection(self, name: str) -> bool:
        if self._get(name) is not None:
            logger.warning("faiss_collection_exists", collection=name)
            return False

        collection = _Collection(self.dimension)
        self._collections[name] = collection
        self._save(name, collection)

        logger.info("faiss_collection_created", collection=name, dimension=self.dimension)
        return True

    async def upsert(self, name: str, points: Sequence[IndexedPoint]) -> None:
        """Add points to a collection.

        Raises:
            ConfigurationError: On a vector dimension mismatch
            StoreWriteFailed: If the collection does not exist or cannot be saved
        """
        collection = self._get(name)
        if collection is None:
            raise StoreWriteFailed(f"Collection {name!r} does not exist")

        if not points:
            return

        matrix = self._as_matrix([p.vector for p in points])

        collection.index.add(matrix)
        collection.ids.extend(p.id for p in points)
        collection.payloads.extend(p.payload for p in points)

        try:
            self._save(name, collection)
        except (OSError, RuntimeError) as e:
            raise StoreWriteFailed(f"Failed to persist collection {name!r}: {e}") from e

        logger.debug("points_upserted", collection=name, points=len(points), total_vectors=collection.index.ntotal)

    async def search(
        self, name: str, vector: Vector, limit: int = 1, with_payload: bool = True
    ) -> List[SearchHit]:
        """Return up to ``limit`` hits ordered by descending cosine similarity.

        Raises:
            ConfigurationError: On a vector dimension mismatch
            StoreSearchFailed: If the collection does not exist
        """
        collection = self._get(name)
        if collection is None:
            raise StoreSearchFailed(f"Collection {name!r} does not exist")

        query = self._as_matrix([vector])

        # Ensure we don't request more results than we have
        top_k = min(limit, collection.index.ntotal)
        if top_k == 0:
            return []

        scores, indices = collection.index.search(query, top_k)

        hits = [
            SearchHit(
                id=collection.ids[i],
                score=float(score),
                payload=dict(collection.payloads[i]) if with_payload else {},
            )
            for score, i in zip(scores[0].tolist(), indices[0].tolist())
            if i >= 0
        ]

        logger.info("vector_search_completed", collection=name, top_k=top_k, results_found=len(hits))

        return hits

    async def count(self, name: str) -> int:
        collection = self._get(name)
        if collection is None:
            raise StoreSearchFailed(f"Collection {name!r} does not exist")
        return collection.index.ntotal
