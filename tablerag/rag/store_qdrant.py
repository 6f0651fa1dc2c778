"""Qdrant vector store over the REST API.

Handles:
- Collection creation with a fixed dimension and cosine distance
- Collection settings verification
- Point upserts
- Top-k similarity search with payloads
"""
from typing import Any, List, Optional, Sequence
import httpx
import structlog

from tablerag import config
from tablerag.errors import (
    CollectionInitFailed,
    ConfigurationError,
    StoreSearchFailed,
    StoreWriteFailed,
)
from tablerag.rag.interfaces import IndexedPoint, SearchHit, Vector

logger = structlog.get_logger()

DISTANCE = "Cosine"


class QdrantVectorStore:
    """Async Qdrant client limited to what the pipelines need."""

    def __init__(
        self,
        url: str,
        api_key: Optional[str] = None,
        dimension: int = None,
        timeout: float = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the store.

        Args:
            url: Qdrant base URL, e.g. https://xyz.cloud.qdrant.io:6333
            api_key: Qdrant API key
            dimension: Vector dimension (default from config)
            timeout: Request timeout in seconds (default from config)
            transport: Optional httpx transport, used by tests
        """
        self.url = url.rstrip("/")
        self.api_key = api_key
        self.dimension = dimension or config.EMBEDDING_DIMENSIONS
        self.timeout = timeout or config.REQUEST_TIMEOUT
        self._transport = transport

        logger.info("qdrant_store_initialized", url=self.url, dimension=self.dimension)

    def _client(self) -> httpx.AsyncClient:
        headers = {"api-key": self.api_key} if self.api_key else {}
        return httpx.AsyncClient(
            base_url=self.url,
            timeout=self.timeout,
            headers=headers,
            transport=self._transport,
        )

    def _check_dimension(self, vector: Vector) -> None:
        if len(vector) != self.dimension:
            raise ConfigurationError(
                f"Vector dimension mismatch: collection expects {self.dimension}, "
                f"got {len(vector)}"
            )

    async def create_collection(self, name: str) -> bool:
        """Create the collection.

        Returns:
            True if created, False if Qdrant reports it already exists

        Raises:
            CollectionInitFailed: On any other failure
        """
        body = {"vectors": {"size": self.dimension, "distance": DISTANCE}}

        try:
            async with self._client() as client:
                response = await client.put(f"/collections/{name}", json=body)
        except httpx.HTTPError as e:
            logger.error("qdrant_create_collection_error", collection=name, error=str(e))
            raise CollectionInitFailed(f"Failed to create collection {name!r}: {e}") from e

        if response.status_code == 409 or (
            response.status_code == 400 and "already exists" in response.text
        ):
            logger.warning("qdrant_collection_exists", collection=name)
            return False

        if response.is_error:
            logger.error(
                "qdrant_create_collection_failed",
                collection=name,
                status_code=response.status_code,
                detail=_error_detail(response),
            )
            raise CollectionInitFailed(
                f"Failed to create collection {name!r}: "
                f"HTTP {response.status_code} {_error_detail(response)}"
            )

        logger.info(
            "qdrant_collection_created",
            collection=name,
            dimension=self.dimension,
            distance=DISTANCE,
        )
        return True

    async def verify_collection(self, name: str) -> None:
        """Check that an existing collection matches our dimension and metric.

        Raises:
            ConfigurationError: If size or distance differ
            CollectionInitFailed: If the collection cannot be read
        """
        try:
            async with self._client() as client:
                response = await client.get(f"/collections/{name}")
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("qdrant_get_collection_error", collection=name, error=str(e))
            raise CollectionInitFailed(f"Failed to read collection {name!r}: {e}") from e

        try:
            params = data["result"]["config"]["params"]["vectors"]
            size, distance = params["size"], params["distance"]
        except (KeyError, TypeError) as e:
            raise CollectionInitFailed(
                f"Collection {name!r} uses an unsupported vectors configuration"
            ) from e

        if size != self.dimension or distance != DISTANCE:
            raise ConfigurationError(
                f"Collection {name!r} is configured with size={size}, "
                f"distance={distance}; expected size={self.dimension}, distance={DISTANCE}"
            )

    async def upsert(self, name: str, points: Sequence[IndexedPoint]) -> None:
        """Write points and wait until they are persisted.

        Raises:
            ConfigurationError: On a vector dimension mismatch
            StoreWriteFailed: On transport or server errors
        """
        for point in points:
            self._check_dimension(point.vector)

        body = {
            "points": [
                {"id": p.id, "vector": p.vector, "payload": p.payload} for p in points
            ]
        }

        try:
            async with self._client() as client:
                response = await client.put(
                    f"/collections/{name}/points",
                    params={"wait": "true"},
                    json=body,
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(
                "qdrant_upsert_error",
                collection=name,
                points=len(points),
                error=str(e),
            )
            raise StoreWriteFailed(f"Failed to upsert into {name!r}: {e}") from e

        logger.debug("points_upserted", collection=name, points=len(points))

    async def search(
        self, name: str, vector: Vector, limit: int = 1, with_payload: bool = True
    ) -> List[SearchHit]:
        """Return the closest points, best first.

        Raises:
            ConfigurationError: On a vector dimension mismatch
            StoreSearchFailed: On transport errors or a malformed response
        """
        self._check_dimension(vector)

        body = {"vector": vector, "limit": limit, "with_payload": with_payload}

        try:
            async with self._client() as client:
                response = await client.post(f"/collections/{name}/points/search", json=body)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("qdrant_search_error", collection=name, error=str(e))
            raise StoreSearchFailed(f"Search in {name!r} failed: {e}") from e

        result = data.get("result") if isinstance(data, dict) else None
        if not isinstance(result, list):
            raise StoreSearchFailed("Search response missing 'result' list")

        hits = []
        for point in result:
            try:
                hits.append(
                    SearchHit(
                        id=str(point["id"]),
                        score=float(point["score"]),
                        payload=point.get("payload") or {},
                    )
                )
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                raise StoreSearchFailed(f"Malformed search hit: {point!r}") from e

        logger.info("vector_search_completed", collection=name, limit=limit, results_found=len(hits))

        return hits

    async def count(self, name: str) -> int:
        """Return the exact number of points in the collection."""
        try:
            async with self._client() as client:
                response = await client.post(
                    f"/collections/{name}/points/count", json={"exact": True}
                )
                response.raise_for_status()
                return int(response.json()["result"]["count"])
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            logger.error("qdrant_count_error", collection=name, error=str(e))
            raise StoreSearchFailed(f"Count in {name!r} failed: {e}") from e


def _error_detail(response: httpx.Response) -> Any:
    try:
        return response.json().get("status", {}).get("error", response.text)
    except (ValueError, AttributeError):
        return response.text
