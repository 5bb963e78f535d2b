"""
Vector Store - Stores content chunks and searches them with ChromaDB.

Every chunk of every subject and year lives in one collection. Subject
and year are stored as metadata and applied as an exact-match `where`
filter at query time, so a search never crosses into another subject
or school year.

How it works:
1. Store: content + embedding + metadata -> ChromaDB
2. Query: query embedding + (subject, year) -> nearest chunks -> results
"""

import uuid
from dataclasses import dataclass
from pathlib import Path

import chromadb

from bm_tutor.config import CHROMA_DB_DIR, CONTENT_COLLECTION
from bm_tutor.exceptions import UpstreamFailure
from bm_tutor.logging_utils import get_logger

logger = get_logger(__name__)


@dataclass
class FileMetadata:
    """Provenance of a chunk that came from an uploaded file."""
    url: str | None
    name: str
    mime_type: str


@dataclass
class ContentChunk:
    """
    A single ingested chunk, as written to the store.

    Attributes:
        subject: Subject code (e.g. "BM")
        year: School year the material belongs to
        source: Human-readable provenance label ("Textbook Part 3")
        chunk_index: Position within the ingestion call (0-indexed)
        content: The chunk text
        embedding: Vector for the content
        file_metadata: Set when the text came from a file
    """
    subject: str
    year: int
    source: str
    chunk_index: int
    content: str
    embedding: list[float]
    file_metadata: FileMetadata | None = None

    def to_metadata(self) -> dict:
        """Flatten into a ChromaDB metadata dict (no None values allowed)."""
        meta = {
            "subject": self.subject,
            "year": self.year,
            "source": self.source,
            "chunk_index": self.chunk_index,
        }
        if self.file_metadata is not None:
            meta["file_name"] = self.file_metadata.name
            meta["file_type"] = self.file_metadata.mime_type
            if self.file_metadata.url:
                meta["file_url"] = self.file_metadata.url
        return meta


@dataclass
class RetrievalResult:
    """
    A chunk returned by a similarity search.

    Attributes:
        id: Store identifier of the chunk
        content: The chunk text
        source: Provenance label of the chunk
        similarity: Similarity to the query, in [0, 1] (higher = closer)
    """
    id: str
    content: str
    source: str
    similarity: float

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content": self.content,
            "source": self.source,
            "similarity": self.similarity,
        }


def scope_filter(subject: str, year: int) -> dict:
    """Build the ChromaDB `where` clause for one subject and year."""
    return {"$and": [{"subject": subject}, {"year": year}]}


class ContentStore:
    """
    ChromaDB-backed store for content chunks.

    Example:
        store = ContentStore()
        store.insert(chunk)
        results = store.similarity_search(query_vector, "BM", 3, limit=6)
        for result in results:
            print(f"{result.similarity:.2f} {result.source}")
    """

    def __init__(
        self,
        collection_name: str | None = None,
        persist_directory: str | Path | None = None,
        client=None,
    ):
        """
        Initialize the store.

        Args:
            collection_name: Name of the collection to use/create
            persist_directory: Where to store the database files
            client: Existing chromadb client (persist_directory is ignored)
        """
        self.collection_name = collection_name or CONTENT_COLLECTION

        if client is None:
            self.persist_directory = Path(persist_directory or CHROMA_DB_DIR)
            self.persist_directory.mkdir(parents=True, exist_ok=True)
            client = chromadb.PersistentClient(path=str(self.persist_directory))
        else:
            self.persist_directory = None
        self._client = client

        # Cosine space: distance = 1 - cosine similarity
        self._collection = self._client.get_or_create_collection(
            name=self.collection_name,
            metadata={
                "description": "Syllabus and textbook content chunks",
                "hnsw:space": "cosine",
            },
        )

    @property
    def count(self) -> int:
        """Get the number of chunks in the collection."""
        return self._collection.count()

    def insert(self, chunk: ContentChunk) -> str:
        """
        Add a single chunk.

        Returns:
            The id assigned to the chunk

        Raises:
            UpstreamFailure: If ChromaDB rejects the write
        """
        chunk_id = uuid.uuid4().hex
        try:
            self._collection.add(
                ids=[chunk_id],
                documents=[chunk.content],
                embeddings=[chunk.embedding],
                metadatas=[chunk.to_metadata()],
            )
        except Exception as e:
            raise UpstreamFailure(str(e), service="vector store") from e
        return chunk_id

    def similarity_search(
        self,
        query_embedding: list[float],
        subject: str,
        year: int,
        limit: int,
    ) -> list[RetrievalResult]:
        """
        Find the chunks closest to a query vector within one subject/year.

        Returns:
            Up to `limit` results, sorted by similarity (highest first)

        Raises:
            UpstreamFailure: If the query fails
        """
        try:
            results = self._collection.query(
                query_embeddings=[query_embedding],
                n_results=limit,
                where=scope_filter(subject, year),
                include=["documents", "metadatas", "distances"],
            )
        except Exception as e:
            raise UpstreamFailure(str(e), service="vector store") from e

        search_results = []
        if results and results["documents"] and results["documents"][0]:
            documents = results["documents"][0]
            metadatas = results["metadatas"][0] if results["metadatas"] else [{}] * len(documents)
            distances = results["distances"][0] if results["distances"] else [1.0] * len(documents)
            ids = results["ids"][0]

            for doc, meta, dist, doc_id in zip(documents, metadatas, distances, ids):
                search_results.append(RetrievalResult(
                    id=doc_id,
                    content=doc,
                    source=(meta or {}).get("source", ""),
                    similarity=min(1.0, max(0.0, 1.0 - dist)),
                ))

        search_results.sort(key=lambda r: r.similarity, reverse=True)
        return search_results

    def list_sources(self, subject: str, year: int) -> list[str]:
        """
        Get the source label of every chunk in one subject/year.

        Labels repeat once per chunk; callers deduplicate.
        """
        try:
            result = self._collection.get(
                where=scope_filter(subject, year),
                include=["metadatas"],
            )
        except Exception as e:
            raise UpstreamFailure(str(e), service="vector store") from e

        return [
            meta["source"]
            for meta in (result["metadatas"] or [])
            if meta and meta.get("source")
        ]

    def get_by_id(self, chunk_id: str) -> dict | None:
        """
        Get a specific chunk by ID.

        Returns:
            Dict with 'content' and 'metadata', or None if not found
        """
        result = self._collection.get(ids=[chunk_id], include=["documents", "metadatas"])
        if result["documents"]:
            return {
                "content": result["documents"][0],
                "metadata": result["metadatas"][0] if result["metadatas"] else {},
            }
        return None
