"""Indexing pipeline for tabular text documents.

Orchestrates:
- Collection initialization
- Row embedding (one batched request per document)
- One point per row, each carrying the whole document as payload
- Multi-file runs with per-file error reporting
"""
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional, Union
import structlog

from tablerag import config
from tablerag.document import Document, load_document
from tablerag.errors import ConfigurationError, EmbeddingFailed, EmptyDocument, RagError
from tablerag.rag.interfaces import Embedder, IndexedPoint, VectorStore

logger = structlog.get_logger()

ProgressCallback = Callable[[int, int, Path], None]


def build_payload(document: Document) -> Dict[str, Any]:
    """Payload stored with every point of a document."""
    return {
        "id": document.path,
        "content": document.raw_text,
        "rows": list(document.rows),
    }


class IndexingPipeline:
    """Pipeline for embedding documents into a vector collection."""

    def __init__(
        self,
        embedder: Embedder,
        store: VectorStore,
        collection: str = None,
        dimensions: int = None,
    ):
        """Initialize the indexing pipeline.

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

        logger.info(
            "indexing_pipeline_initialized",
            collection=self.collection,
            dimensions=self.dimensions,
        )

    async def initialize_collection(self) -> bool:
        """Create the collection with the configured dimension and cosine metric.

        Returns:
            True if created, False if it already existed

        Raises:
            CollectionInitFailed: If the store rejects the creation
        """
        created = await self.store.create_collection(self.collection)

        logger.info("collection_initialized", collection=self.collection, created=created)

        return created

    async def index(self, document: Document) -> int:
        """Embed every row of a document and store one point per row.

        Points are written one at a time in row order. On the first failed
        write the error is raised and earlier points stay stored.

        Args:
            document: Document to index

        Returns:
            Number of points written

        Raises:
            EmptyDocument: If the document has no rows
            EmbeddingFailed: If the embedding request fails
            StoreWriteFailed: If a point cannot be written
        """
        if not document.rows:
            logger.warning("empty_document_rejected", path=document.path)
            raise EmptyDocument(f"There are no rows in {document.path}")

        logger.info("indexing_document", path=document.path, rows=len(document.rows))

        vectors = await self.embedder.embed(list(document.rows), self.dimensions)

        if len(vectors) != len(document.rows):
            raise EmbeddingFailed(
                f"Expected {len(document.rows)} embeddings, got {len(vectors)}"
            )

        payload = build_payload(document)
        written = 0

        for row_index, vector in enumerate(vectors):
            point = IndexedPoint(vector=vector, payload=dict(payload))
            try:
                await self.store.upsert(self.collection, [point])
            except RagError:
                logger.error(
                    "point_write_failed",
                    path=document.path,
                    row_index=row_index,
                    points_written=written,
                )
                raise
            written += 1

        logger.info("document_indexed", path=document.path, points_written=written)

        return written

    async def index_file(self, path: Union[str, Path]) -> int:
        """Load a document from disk and index it."""
        return await self.index(load_document(path))

    async def index_files(
        self,
        paths: Iterable[Union[str, Path]],
        progress_callback: Optional[ProgressCallback] = None,
    ) -> Dict[str, Any]:
        """Index several files, continuing past per-file failures.

        Args:
            paths: Files to index
            progress_callback: Optional callback function(current, total, file_path)

        Returns:
            Dictionary with indexing statistics and per-file errors
        """
        file_paths = [Path(p) for p in paths]

        stats: Dict[str, Any] = {
            "files_processed": 0,
            "files_failed": 0,
            "points_written": 0,
            "errors": {},
        }

        for idx, file_path in enumerate(file_paths, 1):
            if progress_callback:
                progress_callback(idx, len(file_paths), file_path)

            try:
                stats["points_written"] += await self.index_file(file_path)
                stats["files_processed"] += 1

            except ConfigurationError:
                raise

            except RagError as e:
                logger.error(
                    "file_indexing_failed",
                    path=str(file_path),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                stats["files_failed"] += 1
                stats["errors"][str(file_path)] = f"{type(e).__name__}: {e}"

        logger.info(
            "index_files_completed",
            files_processed=stats["files_processed"],
            files_failed=stats["files_failed"],
            points_written=stats["points_written"],
        )

        return stats
