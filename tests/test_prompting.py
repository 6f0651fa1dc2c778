"""Tests for context injection and answer extraction."""
import pytest

from tablerag.errors import CompletionFailed, EmptyCompletion, NoMatch
from tablerag.rag.ingest import IndexingPipeline
from tablerag.rag.prompting import SYSTEM_PROMPT, PromptPipeline, build_messages
from tablerag.rag.retriever import Retriever

from tests.conftest import COLLECTION, DIMENSIONS, FakeCompleter, InMemoryVectorStore


class CountingRetriever(Retriever):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.queries = []

    async def retrieve(self, query: str) -> str:
        self.queries.append(query)
        return await super().retrieve(query)


@pytest.fixture
def retriever(embedder, store) -> CountingRetriever:
    return CountingRetriever(embedder, store, collection=COLLECTION, dimensions=DIMENSIONS)


def test_build_messages_orders_system_then_user():
    messages = build_messages("How many rows?", "id,val\n1,10")

    assert [m.role for m in messages] == ["system", "user"]
    assert messages[0].content == SYSTEM_PROMPT
    assert messages[1].content == "How many rows?\n\nContext:\nid,val\n1,10"


@pytest.mark.asyncio
async def test_answer_injects_question_and_context(embedder, store, csv_document, completer, retriever):
    await IndexingPipeline(embedder, store, collection=COLLECTION, dimensions=DIMENSIONS).index(csv_document)
    pipeline = PromptPipeline(retriever, completer, model="test-model")

    answer = await pipeline.answer("What is the average of val?")

    assert answer == "The average of val is 15."
    assert retriever.queries == ["What is the average of val?"]

    (call,) = completer.calls
    assert call["model"] == "test-model"
    system, user = call["messages"]
    assert system.role == "system"
    assert user.role == "user"
    assert "What is the average of val?" in user.content
    assert csv_document.raw_text in user.content


@pytest.mark.asyncio
async def test_retrieval_failure_skips_completion(embedder, completer):
    store = InMemoryVectorStore()
    await store.create_collection(COLLECTION)
    retriever = Retriever(embedder, store, collection=COLLECTION, dimensions=DIMENSIONS)

    with pytest.raises(NoMatch):
        await PromptPipeline(retriever, completer).answer("anything")

    assert completer.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("candidates", [[], [""], ["   \n"]])
async def test_empty_completion_is_an_error(embedder, store, csv_document, retriever, candidates):
    await IndexingPipeline(embedder, store, collection=COLLECTION, dimensions=DIMENSIONS).index(csv_document)
    pipeline = PromptPipeline(retriever, FakeCompleter(candidates=candidates))

    with pytest.raises(EmptyCompletion):
        await pipeline.answer("What is the average of val?")


@pytest.mark.asyncio
async def test_only_first_choice_is_used(embedder, store, csv_document, retriever):
    await IndexingPipeline(embedder, store, collection=COLLECTION, dimensions=DIMENSIONS).index(csv_document)
    pipeline = PromptPipeline(retriever, FakeCompleter(candidates=["first", "second"]))

    assert await pipeline.answer("val?") == "first"


@pytest.mark.asyncio
async def test_completion_failure_propagates(embedder, store, csv_document, retriever):
    await IndexingPipeline(embedder, store, collection=COLLECTION, dimensions=DIMENSIONS).index(csv_document)
    pipeline = PromptPipeline(retriever, FakeCompleter(error=CompletionFailed("timeout")))

    with pytest.raises(CompletionFailed):
        await pipeline.answer("val?")
