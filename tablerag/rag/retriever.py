"""Retriever returning the single best-matching document for a query.

Handles:
- Query embedding generation
- Top-1 vector search with payload
- Payload validation
"""
import structlog

from tablerag import config
from tablerag.errors import EmbeddingFailed, MalformedPayload, NoMatch
from tablerag.rag.interfaces import Embedder, VectorStore

logger = structlog.get_logger()


class Retriever:
    """Semantic retriever for the prompting pipeline."""

    def __init__(
        self,
        embedder: Embedder,
        store: VectorStore,
        collection: str = None,
        dimensions: int = None,
    ):
        """Initialize the retriever.

        Args:
            embedder: Embedding capability
            store: Vector store capability
            collection: Collection name (default from config)
            dimensions: Embedding dimension (default from config)
        """
        self.embedder = embedder
        self.store = store
        self.collection = collection or config.COLLECTION_NAME
        self.dimensions = dimensions or config.EMBEDDING_DIMENSIONS

    async def retrieve(self, query: str) -> str:
        """Return the full content of the document nearest to the query.

        Only the closest point is considered, with no score threshold, so
        any non-empty collection yields a result.

        Args:
            query: User query text

        Returns:
            The ``content`` payload field of the nearest point

        Raises:
            EmbeddingFailed: If the query cannot be embedded
            StoreSearchFailed: If the search fails
            NoMatch: If the collection holds no points
            MalformedPayload: If the hit lacks a string ``content`` field
        """
        logger.info("retrieval_started", query_length=len(query), collection=self.collection)

        vectors = await self.embedder.embed([query], self.dimensions)
        if len(vectors) != 1:
            raise EmbeddingFailed(f"Expected 1 query embedding, got {len(vectors)}")

        hits = await self.store.search(self.collection, vectors[0], limit=1, with_payload=True)

        if not hits:
            logger.info("no_results_found", collection=self.collection)
            raise NoMatch("There were no results that matched the query")

        best = hits[0]
        content = best.payload.get("content") if isinstance(best.payload, dict) else None

        if not isinstance(content, str):
            logger.error("malformed_payload", point_id=best.id, keys=sorted(best.payload or {}))
            raise MalformedPayload(f"Point {best.id} has no 'content' text in its payload")

        logger.info(
            "retrieval_completed",
            point_id=best.id,
            source=best.payload.get("id"),
            score=best.score,
            context_length=len(content),
        )

        return content
