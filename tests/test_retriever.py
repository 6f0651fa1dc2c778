"""Tests for top-1 retrieval."""
import pytest

from tablerag.document import Document
from tablerag.errors import EmbeddingFailed, MalformedPayload, NoMatch, StoreSearchFailed
from tablerag.rag.ingest import IndexingPipeline
from tablerag.rag.interfaces import IndexedPoint
from tablerag.rag.retriever import Retriever

from tests.conftest import COLLECTION, DIMENSIONS, FakeEmbedder, InMemoryVectorStore


def make_retriever(embedder, store) -> Retriever:
    return Retriever(embedder, store, collection=COLLECTION, dimensions=DIMENSIONS)


async def index(embedder, store, document):
    pipeline = IndexingPipeline(embedder, store, collection=COLLECTION, dimensions=DIMENSIONS)
    await pipeline.index(document)


@pytest.mark.asyncio
async def test_returns_full_document_text(embedder, store, csv_document):
    await index(embedder, store, csv_document)

    context = await make_retriever(embedder, store).retrieve("what is row 1?")

    assert context == "id,val\n1,10\n2,20"
    assert embedder.calls[-1] == ["what is row 1?"]


@pytest.mark.asyncio
async def test_requests_single_nearest_point_with_payload(embedder, store, csv_document):
    await index(embedder, store, csv_document)

    await make_retriever(embedder, store).retrieve("val")

    assert store.search_calls == [{"name": COLLECTION, "limit": 1, "with_payload": True}]


@pytest.mark.asyncio
async def test_returns_one_document_among_equal_matches(embedder, store):
    first = Document.from_text("first.csv", "color\nred")
    second = Document.from_text("second.csv", "color\nred")
    await index(embedder, store, first)
    await index(embedder, store, second)

    context = await make_retriever(embedder, store).retrieve("red")

    assert context in (first.raw_text, second.raw_text)


@pytest.mark.asyncio
async def test_unrelated_query_still_matches(embedder, store, csv_document):
    await index(embedder, store, csv_document)

    context = await make_retriever(embedder, store).retrieve("completely unrelated words")

    assert context == csv_document.raw_text


@pytest.mark.asyncio
async def test_empty_collection_is_no_match(embedder):
    store = InMemoryVectorStore()
    await store.create_collection(COLLECTION)

    with pytest.raises(NoMatch):
        await make_retriever(embedder, store).retrieve("anything")


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{"id": "a.csv"}, {"id": "a.csv", "content": 42}])
async def test_malformed_payload(embedder, store, payload):
    store.collections[COLLECTION].append(
        IndexedPoint(vector=FakeEmbedder.vectorize("x", DIMENSIONS), payload=payload)
    )

    with pytest.raises(MalformedPayload):
        await make_retriever(embedder, store).retrieve("x")


@pytest.mark.asyncio
async def test_embedding_failure_propagates(store):
    with pytest.raises(EmbeddingFailed):
        await make_retriever(FakeEmbedder(fail=True), store).retrieve("x")

    assert store.search_calls == []


@pytest.mark.asyncio
async def test_search_failure_propagates(embedder):
    with pytest.raises(StoreSearchFailed):
        await make_retriever(embedder, InMemoryVectorStore()).retrieve("x")
