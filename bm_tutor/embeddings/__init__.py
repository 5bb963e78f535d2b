"""
Embeddings module - Handles embedding generation and vector storage.

This module is responsible for:
1. Converting text chunks to embeddings
2. Storing and searching content chunks in ChromaDB
"""

from .embedder import Embedder
from .vector_store import ContentChunk, ContentStore, FileMetadata, RetrievalResult

__all__ = ["Embedder", "ContentChunk", "ContentStore", "FileMetadata", "RetrievalResult"]
