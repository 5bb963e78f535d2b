"""
Ingestion module - Handles text extraction and chunking.

This module is responsible for:
1. Extracting text from PDF files
2. Splitting text into paragraph-aligned chunks for embedding
3. Ingesting a folder of textbook part PDFs in order
"""

from .batch import PartOutcome, find_part_pdfs, ingest_pdf_parts
from .chunker import TextChunk, TextChunker, chunk_text, split_paragraphs
from .pdf_parser import ExtractedDocument, PDFParser, extract_text_from_pdf

__all__ = [
    "PartOutcome",
    "find_part_pdfs",
    "ingest_pdf_parts",
    "TextChunk",
    "TextChunker",
    "chunk_text",
    "split_paragraphs",
    "ExtractedDocument",
    "PDFParser",
    "extract_text_from_pdf",
]
