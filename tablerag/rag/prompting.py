"""Prompting pipeline: retrieve context, inject it, ask the chat model."""
from typing import List
import structlog

from tablerag import config
from tablerag.errors import EmptyCompletion
from tablerag.rag.interfaces import Completer, Message
from tablerag.rag.retriever import Retriever

logger = structlog.get_logger()

SYSTEM_PROMPT = (
    "You are a world-class data analyst, specialising in analysing comma-delimited CSV files. "
    "Your job is to analyse some CSV snippets and determine what the results are for the "
    "question that the user is asking. You should aim to be concise. If you don't know "
    "something, don't make it up but say 'I don't know.'."
)

CONTEXT_SEPARATOR = "\n\nContext:\n"


def build_messages(question: str, context: str) -> List[Message]:
    """System instruction followed by the question with its context appended."""
    return [
        Message(role="system", content=SYSTEM_PROMPT),
        Message(role="user", content=f"{question}{CONTEXT_SEPARATOR}{context}"),
    ]


class PromptPipeline:
    """Answers questions from the best-matching indexed document.

    Every call is independent; no conversation history is kept.
    """

    def __init__(self, retriever: Retriever, completer: Completer, model: str = None):
        self.retriever = retriever
        self.completer = completer
        self.model = model or config.CHAT_MODEL

    async def answer(self, question: str) -> str:
        """Answer a question using retrieved context.

        Raises:
            NoMatch, MalformedPayload, EmbeddingFailed, StoreSearchFailed:
                Propagated unchanged from retrieval
            CompletionFailed: If the completion request fails
            EmptyCompletion: If the first choice has no text
        """
        context = await self.retriever.retrieve(question)

        messages = build_messages(question, context)
        candidates = await self.completer.complete(self.model, messages)

        answer = candidates[0] if candidates else None
        if not answer or not answer.strip():
            logger.warning("empty_completion", model=self.model, choices=len(candidates))
            raise EmptyCompletion("The model returned no answer")

        logger.info("question_answered", model=self.model, answer_length=len(answer))

        return answer
