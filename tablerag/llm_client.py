"""OpenAI-compatible LLM client wrapper with error handling."""
import httpx
from typing import Any, List, Optional, Sequence
import structlog

from tablerag import config
from tablerag.errors import CompletionFailed, EmbeddingFailed
from tablerag.rag.interfaces import Message, Vector

logger = structlog.get_logger()


class OpenAIClient:
    """Async client for the embeddings and chat completions endpoints."""

    def __init__(
        self,
        api_key: str,
        base_url: str = None,
        embedding_model: str = None,
        timeout: float = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            api_key: Provider API key
            base_url: API base URL (defaults to config.OPENAI_BASE_URL)
            embedding_model: Embedding model (defaults to config.EMBEDDING_MODEL)
            timeout: Request timeout in seconds (defaults to config.REQUEST_TIMEOUT)
            transport: Optional httpx transport, used by tests
        """
        self.api_key = api_key
        self.base_url = (base_url or config.OPENAI_BASE_URL).rstrip("/")
        self.embedding_model = embedding_model or config.EMBEDDING_MODEL
        self.timeout = timeout or config.REQUEST_TIMEOUT
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"Authorization": f"Bearer {self.api_key}"},
            transport=self._transport,
        )

    async def embed(self, texts: Sequence[str], dimensions: int) -> List[Vector]:
        """Generate embeddings for a batch of texts in one request.

        Args:
            texts: Texts to embed
            dimensions: Requested vector length

        Returns:
            One vector per input text, in input order

        Raises:
            EmbeddingFailed: On transport errors, timeouts or a malformed response
        """
        if not texts:
            return []

        payload = {
            "model": self.embedding_model,
            "input": list(texts),
            "dimensions": dimensions,
        }

        try:
            async with self._client() as client:
                logger.debug(
                    "embedding_request",
                    model=self.embedding_model,
                    batch_size=len(texts),
                    dimensions=dimensions,
                )
                response = await client.post("/embeddings", json=payload)
                response.raise_for_status()
                data = response.json()

        except (httpx.HTTPError, ValueError) as e:
            logger.error(
                "embedding_http_error",
                error=str(e),
                error_type=type(e).__name__,
                status_code=_status_code(e),
            )
            raise EmbeddingFailed(f"Embedding request failed: {type(e).__name__}: {e}") from e

        vectors = self._extract_embeddings(data, expected=len(texts), dimensions=dimensions)

        logger.debug("embedding_response", count=len(vectors), dimensions=dimensions)

        return vectors

    @staticmethod
    def _extract_embeddings(data: Any, expected: int, dimensions: int) -> List[Vector]:
        """Validate the embeddings response and restore input order.

        The provider tags every record with the ``index`` of its input.
        """
        records = data.get("data") if isinstance(data, dict) else None
        if not isinstance(records, list):
            raise EmbeddingFailed("Embedding response missing 'data' list")

        if len(records) != expected:
            raise EmbeddingFailed(
                f"Embedding response has {len(records)} vectors for {expected} inputs"
            )

        try:
            ordered = sorted(records, key=lambda r: r.get("index", 0))
        except (AttributeError, TypeError) as e:
            raise EmbeddingFailed("Malformed embedding record") from e

        vectors = []
        for position, record in enumerate(ordered):
            embedding = record.get("embedding")
            if not isinstance(embedding, list) or not all(
                isinstance(x, (int, float)) for x in embedding
            ):
                raise EmbeddingFailed(f"Invalid embedding vector at index {position}")
            if len(embedding) != dimensions:
                raise EmbeddingFailed(
                    f"Embedding dimension mismatch: expected {dimensions}, "
                    f"got {len(embedding)}"
                )
            vectors.append([float(x) for x in embedding])

        return vectors

    async def complete(self, model: str, messages: Sequence[Message]) -> List[str]:
        """Send a chat completion request.

        Args:
            model: Chat model identifier
            messages: Ordered role-tagged messages

        Returns:
            Text content of every returned choice (None entries become "")

        Raises:
            CompletionFailed: On transport errors, timeouts or a malformed response
        """
        payload = {
            "model": model,
            "messages": [m.as_dict() for m in messages],
        }

        try:
            async with self._client() as client:
                logger.info(
                    "chat_request",
                    model=model,
                    message_count=len(messages),
                )
                response = await client.post("/chat/completions", json=payload)
                response.raise_for_status()
                data = response.json()

        except (httpx.HTTPError, ValueError) as e:
            logger.error(
                "chat_http_error",
                error=str(e),
                error_type=type(e).__name__,
                status_code=_status_code(e),
            )
            raise CompletionFailed(f"Completion request failed: {type(e).__name__}: {e}") from e

        choices = data.get("choices") if isinstance(data, dict) else None
        if not isinstance(choices, list):
            raise CompletionFailed("Completion response missing 'choices' list")

        candidates = []
        for choice in choices:
            message = choice.get("message") if isinstance(choice, dict) else None
            content = message.get("content") if isinstance(message, dict) else None
            candidates.append(content if isinstance(content, str) else "")

        logger.info(
            "chat_response",
            model=model,
            choices=len(candidates),
            response_length=len(candidates[0]) if candidates else 0,
        )

        return candidates


def _status_code(error: Exception) -> Optional[int]:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    return None
