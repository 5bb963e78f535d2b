"""
Capabilities the core consumes from the outside world.

The pipeline only talks to these protocols. Production wiring uses
Embedder, ContentStore (Chroma), OllamaCompletion and JsonAttemptStore; tests
swap in in-memory fakes.
"""

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from bm_tutor.embeddings.vector_store import ContentChunk, RetrievalResult
    from bm_tutor.quiz.models import QuizAttempt


class EmbeddingService(Protocol):
    def embed(self, text: str) -> list[float]:
        """Map text to a fixed-length vector."""
        ...


class CompletionService(Protocol):
    def complete(self, messages: list[dict], response_schema: dict | None = None) -> str:
        """
        Run one chat completion and return the reply text.

        When response_schema is given the reply must be JSON conforming
        to it.
        """
        ...


class ScopedVectorStore(Protocol):
    def insert(self, chunk: "ContentChunk") -> str:
        ...

    def similarity_search(
        self, query_embedding: list[float], subject: str, year: int, limit: int
    ) -> list["RetrievalResult"]:
        ...

    def list_sources(self, subject: str, year: int) -> list[str]:
        ...


class AttemptStore(Protocol):
    def insert(self, attempt: "QuizAttempt") -> str:
        ...

    def get_by_id(self, attempt_id: str) -> "QuizAttempt | None":
        ...

    def update(self, attempt_id: str, **fields) -> None:
        ...

    def list_recent(self, limit: int = 30) -> list["QuizAttempt"]:
        ...
