"""Tests for paragraph-aligned chunking."""

import pytest

from bm_tutor.ingestion.chunker import TextChunker, chunk_text, split_paragraphs


class TestSplitParagraphs:
    def test_blank_input(self):
        assert split_paragraphs("") == []
        assert split_paragraphs("   \n\n  \n") == []

    def test_splits_on_blank_lines_with_stray_whitespace(self):
        text = "Satu.\n \t\nDua.\n\n\n\nTiga."
        assert split_paragraphs(text) == ["Satu.", "Dua.", "Tiga."]

    def test_crlf_line_endings(self):
        assert split_paragraphs("Satu.\r\n\r\nDua.") == ["Satu.", "Dua."]

    def test_single_newline_stays_inside_paragraph(self):
        assert split_paragraphs("Baris satu\nbaris dua") == ["Baris satu\nbaris dua"]


class TestTextChunker:
    def test_empty_text_gives_no_chunks(self):
        assert TextChunker().chunk("") == []
        assert TextChunker().chunk("\n\n   \n") == []

    def test_greedy_packing(self):
        chunks = chunk_text("AAAA\n\nBB\n\nCCCCCC", max_chars=8)
        assert chunks == ["AAAA\n\nBB", "CCCCCC"]

    def test_oversized_paragraph_is_its_own_chunk(self):
        chunks = chunk_text("abcdefghij\n\nxy", max_chars=5)
        assert chunks == ["abcdefghij", "xy"]

    def test_everything_fits_in_one_chunk(self):
        text = "Kata nama.\n\nKata kerja.\n\nKata adjektif."
        assert chunk_text(text, max_chars=900) == [
            "Kata nama.\n\nKata kerja.\n\nKata adjektif."
        ]

    def test_order_preserved_and_nothing_lost(self):
        paragraphs = [f"Perenggan {i} " + "x" * (i * 37 % 200) for i in range(40)]
        text = "\n\n".join(paragraphs)

        chunks = chunk_text(text, max_chars=300)

        assert "\n\n".join(chunks) == "\n\n".join(split_paragraphs(text))

    def test_chunks_respect_max_unless_single_paragraph(self):
        paragraphs = ["a" * 120, "b" * 50, "c" * 400, "d" * 10, "e" * 200]
        chunks = chunk_text("\n\n".join(paragraphs), max_chars=250)

        for chunk in chunks:
            assert len(chunk) <= 250 or "\n\n" not in chunk

    def test_no_chunk_is_empty(self):
        chunks = chunk_text("\n\nSatu.\n\n\n\n\n\nDua.\n\n", max_chars=3)
        assert chunks == ["Satu.", "Dua."]

    @pytest.mark.parametrize("max_chars", [0, -10])
    def test_rejects_non_positive_max_chars(self, max_chars):
        with pytest.raises(ValueError):
            TextChunker(max_chars=max_chars)


class TestChunkText:
    def test_chunk_objects_are_indexed_densely(self):
        chunker = TextChunker(max_chars=8)
        chunks = chunker.chunk_text("AAAA\n\nBB\n\nCCCCCC", metadata={"source": "Nota"})

        assert [c.chunk_index for c in chunks] == [0, 1]
        assert chunks[0].paragraph_count == 2
        assert chunks[1].char_count == 6
        assert all(c.metadata == {"source": "Nota"} for c in chunks)

    def test_metadata_is_copied_per_chunk(self):
        chunks = TextChunker(max_chars=4).chunk_text("AAAA\n\nBBBB", metadata={"k": 1})
        chunks[0].metadata["k"] = 2
        assert chunks[1].metadata["k"] == 1
