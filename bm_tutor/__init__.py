"""
BM Tutor - A RAG-based tutor for Malaysian primary school Bahasa Melayu

This package provides:
- Paragraph-aligned chunking of syllabus and textbook text
- Embedding generation using sentence-transformers
- Subject/year scoped vector storage with ChromaDB
- Retrieval with best-effort topic filtering
- Schema-constrained quiz generation with consistency checks and retry
- Hybrid grading (exact match + LLM judgment)
- CLI and JSON web interfaces
"""

__version__ = "0.1.0"
