"""
Text Chunker - Splits text into paragraph-aligned pieces for embedding.

The chunker never cuts inside a paragraph. Paragraphs (separated by one
or more blank lines) are packed greedily into a buffer until adding the
next one would push the buffer past max_chars; the buffer is then
flushed and the paragraph starts a new one.

Key Concepts:
- Max chars is a SOFT bound: a single paragraph longer than max_chars
  becomes its own (oversized) chunk instead of being cut.
- Order is preserved: joining the chunks with blank lines gives back
  the trimmed paragraphs of the input, in order.
- Greedy packing, not optimal bin-packing.

Example:
    Paragraphs: "AAAA", "BB", "CCCCCC"  (max_chars: 8)

    Chunk 0: "AAAA\\n\\nBB"   <- 8 chars, fits
    Chunk 1: "CCCCCC"         <- would have made chunk 0 16 chars
"""

import re
from dataclasses import dataclass, field

from bm_tutor.config import CHUNK_MAX_CHARS

PARAGRAPH_BREAK = "\n\n"

# A blank line, possibly holding stray spaces/tabs
_PARAGRAPH_SPLIT = re.compile(r"\n\s*\n")


@dataclass
class TextChunk:
    """
    Represents a single chunk of text with metadata.

    Attributes:
        text: The chunk content
        chunk_index: Position of this chunk (0-indexed, dense per call)
        metadata: Additional metadata (source label, file info, etc.)
    """
    text: str
    chunk_index: int
    metadata: dict = field(default_factory=dict)

    @property
    def char_count(self) -> int:
        """Return the number of characters in this chunk."""
        return len(self.text)

    @property
    def paragraph_count(self) -> int:
        """Return the number of paragraphs packed into this chunk."""
        return len(self.text.split(PARAGRAPH_BREAK))


def split_paragraphs(text: str) -> list[str]:
    """
    Split text into trimmed, non-empty paragraphs.

    Line endings are normalised to '\\n' first.
    """
    cleaned = text.replace("\r\n", "\n").strip()
    if not cleaned:
        return []
    parts = (p.strip() for p in _PARAGRAPH_SPLIT.split(cleaned))
    return [p for p in parts if p]


class TextChunker:
    """
    Packs paragraphs into chunks of at most max_chars characters.

    Example:
        chunker = TextChunker(max_chars=900)
        chunks = chunker.chunk_text("Para one.\\n\\nPara two.")
        for chunk in chunks:
            print(f"Chunk {chunk.chunk_index}: {chunk.char_count} chars")
    """

    def __init__(self, max_chars: int = CHUNK_MAX_CHARS):
        """
        Initialize the chunker.

        Args:
            max_chars: Soft upper bound on chunk length

        Raises:
            ValueError: If max_chars is not positive
        """
        if max_chars < 1:
            raise ValueError("max_chars must be a positive integer")
        self.max_chars = max_chars

    def chunk(self, text: str) -> list[str]:
        """
        Split text into chunk strings.

        Blank input gives an empty list.
        """
        chunks: list[str] = []
        buf = ""

        for part in split_paragraphs(text):
            if len(buf + PARAGRAPH_BREAK + part) > self.max_chars:
                if buf:
                    chunks.append(buf)
                buf = part
            else:
                buf = buf + PARAGRAPH_BREAK + part if buf else part

        if buf:
            chunks.append(buf)
        return chunks

    def chunk_text(self, text: str, metadata: dict | None = None) -> list[TextChunk]:
        """
        Split text into TextChunk objects.

        Args:
            text: The text to chunk
            metadata: Optional metadata to attach to all chunks

        Returns:
            List of TextChunk objects, indexed from 0
        """
        metadata = metadata or {}
        return [
            TextChunk(text=piece, chunk_index=i, metadata=metadata.copy())
            for i, piece in enumerate(self.chunk(text))
        ]


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def chunk_text(text: str, max_chars: int = CHUNK_MAX_CHARS) -> list[str]:
    """
    Simple function to chunk text and return just the text strings.

    Example:
        chunks = chunk_text("Your long text...", max_chars=500)
        print(f"Created {len(chunks)} chunks")
    """
    return TextChunker(max_chars=max_chars).chunk(text)
