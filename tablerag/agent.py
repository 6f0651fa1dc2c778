"""Process-wide client construction and the agent façade.

The service clients are built once at startup and injected into the
pipelines, so tests can swap any of them for an in-memory double.
"""
from dataclasses import dataclass
from typing import Optional

import structlog

from tablerag import config
from tablerag.config import Credentials
from tablerag.document import Document
from tablerag.errors import ConfigurationError
from tablerag.llm_client import OpenAIClient
from tablerag.rag.ingest import IndexingPipeline
from tablerag.rag.interfaces import Completer, Embedder, VectorStore
from tablerag.rag.prompting import PromptPipeline
from tablerag.rag.retriever import Retriever

logger = structlog.get_logger()


@dataclass
class Agent:
    """Indexing, retrieval and prompting over one shared set of clients."""

    indexer: IndexingPipeline
    retriever: Retriever
    prompter: PromptPipeline

    @classmethod
    def from_clients(
        cls,
        embedder: Embedder,
        completer: Completer,
        store: VectorStore,
        collection: str = None,
        model: str = None,
    ) -> "Agent":
        dimensions = store.dimension
        retriever = Retriever(embedder, store, collection=collection, dimensions=dimensions)
        return cls(
            indexer=IndexingPipeline(embedder, store, collection=collection, dimensions=dimensions),
            retriever=retriever,
            prompter=PromptPipeline(retriever, completer, model=model),
        )

    @property
    def store(self) -> VectorStore:
        return self.indexer.store

    async def init(self) -> bool:
        """Create the collection, or verify an existing one where supported."""
        created = await self.indexer.initialize_collection()
        verify = getattr(self.store, "verify_collection", None)
        if not created and verify is not None:
            await verify(self.indexer.collection)
        return created

    async def index(self, document: Document) -> int:
        return await self.indexer.index(document)

    async def search(self, query: str) -> str:
        return await self.retriever.retrieve(query)

    async def prompt(self, question: str) -> str:
        return await self.prompter.answer(question)


def build_store(credentials: Credentials, dimension: int = None) -> VectorStore:
    """Construct the configured vector store backend."""
    dimension = dimension or config.EMBEDDING_DIMENSIONS

    if credentials.backend == "qdrant":
        from tablerag.rag.store_qdrant import QdrantVectorStore

        return QdrantVectorStore(
            url=credentials.qdrant_url,
            api_key=credentials.qdrant_api_key,
            dimension=dimension,
        )

    if credentials.backend == "faiss":
        from tablerag.rag.store_faiss import FAISSVectorStore

        return FAISSVectorStore(dimension=dimension, index_dir=config.DATA_DIR)

    raise ConfigurationError(f"Unknown vector backend {credentials.backend!r}")


def build_agent(credentials: Credentials, store: Optional[VectorStore] = None) -> Agent:
    """Build the shared clients and wire them into an Agent."""
    client = OpenAIClient(api_key=credentials.openai_api_key)
    store = store or build_store(credentials)

    logger.info(
        "agent_built",
        backend=credentials.backend,
        collection=config.COLLECTION_NAME,
        chat_model=config.CHAT_MODEL,
        embedding_model=client.embedding_model,
        dimensions=store.dimension,
    )

    return Agent.from_clients(embedder=client, completer=client, store=store)
