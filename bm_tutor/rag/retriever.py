"""
Retriever - Finds relevant chunks for a given query.

This module handles the retrieval part of RAG:
1. Takes a pupil's question or a quiz topic
2. Converts it to an embedding
3. Asks the content store for the nearest chunks in one subject/year
4. Optionally narrows the results to one topic (best effort)
5. Returns the top-K chunks, most similar first

Key Concept:
The topic key is a hint, not a constraint. If no retrieved chunk comes
from a source matching the topic, the unfiltered results are returned
instead of nothing.
"""

from bm_tutor.collaborators import EmbeddingService, ScopedVectorStore
from bm_tutor.config import RETRIEVAL_TOP_K
from bm_tutor.embeddings.vector_store import RetrievalResult
from bm_tutor.exceptions import ValidationError
from bm_tutor.logging_utils import get_logger

logger = get_logger(__name__)


def filter_by_topic(results: list[RetrievalResult], topic_key: str) -> list[RetrievalResult]:
    """
    Keep results whose source contains the topic key (case-insensitive).

    Falls back to the unfiltered results when nothing matches.
    """
    key = topic_key.lower()
    filtered = [r for r in results if key in r.source.lower()]
    if filtered:
        return filtered

    logger.debug("Topic key %r matched no sources, using unfiltered results", topic_key)
    return results


def format_context(results: list[RetrievalResult]) -> str:
    """
    Format retrieved chunks for inclusion in a prompt.

    Each chunk is labelled with its rank and source so the model can
    tell the notes apart.
    """
    return "\n\n".join(
        f"[#{i} | {r.source}]\n{r.content}" for i, r in enumerate(results, start=1)
    )


class Retriever:
    """
    Retrieves relevant context from the content store.

    Example:
        retriever = Retriever(embedder, store)
        results = retriever.retrieve("BM", 3, "kata nama am", top_k=6, topic_key="unit 2")
        print(format_context(results))
    """

    def __init__(
        self,
        embedder: EmbeddingService,
        store: ScopedVectorStore,
        top_k: int = RETRIEVAL_TOP_K,
    ):
        self.embedder = embedder
        self.store = store
        self.top_k = top_k

    def retrieve(
        self,
        subject: str,
        year: int,
        query: str,
        top_k: int | None = None,
        topic_key: str | None = None,
    ) -> list[RetrievalResult]:
        """
        Retrieve the chunks most relevant to a query.

        Args:
            subject: Subject scope (exact match)
            year: School year scope (exact match)
            query: The question or topic text
            top_k: Maximum number of results (default from constructor)
            topic_key: Optional topic hint matched against source labels

        Returns:
            Up to top_k RetrievalResult objects, highest similarity first

        Raises:
            ValidationError: If the query is blank or top_k is not positive
            UpstreamFailure: If embedding or search fails
        """
        top_k = self.top_k if top_k is None else top_k
        if top_k < 1:
            raise ValidationError("top_k must be a positive integer")
        if not query or not query.strip():
            raise ValidationError("Query must not be blank")

        query_embedding = self.embedder.embed(query)
        results = self.store.similarity_search(query_embedding, subject, year, top_k)
        results = sorted(results, key=lambda r: r.similarity, reverse=True)

        if topic_key:
            results = filter_by_topic(results, topic_key)

        results = results[:top_k]
        logger.debug(
            "Retrieved %d chunk(s) for %s/Tahun %d: %r", len(results), subject, year, query
        )
        return results
