"""
PDF Parser - Extracts plain text from syllabus/textbook PDFs.

Uses pymupdf (fitz). Only the text layer is read; scanned pages with no
text layer come back empty and the document is rejected.
"""

import re
from dataclasses import dataclass
from pathlib import Path

import fitz  # pymupdf - the library is called 'fitz' historically

from bm_tutor.exceptions import ValidationError

PDF_MIME_TYPE = "application/pdf"


@dataclass
class ExtractedDocument:
    """
    Text extracted from a PDF, ready for ingestion.

    Attributes:
        filename: Name of the PDF file
        total_pages: Number of pages in the file
        pages_read: Number of pages that had text in the requested range
        text: Page texts joined by blank lines
        mime_type: Always application/pdf
    """
    filename: str
    total_pages: int
    pages_read: int
    text: str
    mime_type: str = PDF_MIME_TYPE


class PDFParser:
    """
    Parses PDF files and extracts text content.

    Example:
        parser = PDFParser()
        doc = parser.parse_pdf("bm_tahun3_part1.pdf", start_page=1, end_page=10)
        print(doc.text[:200])
    """

    def __init__(self, clean_text: bool = True):
        self.clean_text = clean_text

    def _clean_extracted_text(self, text: str) -> str:
        """
        Remove common extraction artifacts.

        Collapses runs of blank lines into a single paragraph break,
        squeezes repeated spaces and drops bare page-number lines.
        """
        if not self.clean_text:
            return text.strip()

        text = text.replace("\r\n", "\n")
        text = re.sub(r"\n{3,}", "\n\n", text)
        text = re.sub(r" {2,}", " ", text)

        lines = [
            line for line in text.split("\n")
            if not (line.strip().isdigit() and len(line.strip()) < 4)
        ]
        return "\n".join(lines).strip()

    def parse_pdf(
        self,
        pdf_path: str | Path,
        start_page: int = 1,
        end_page: int | None = None,
    ) -> ExtractedDocument:
        """
        Extract text from a PDF file.

        Args:
            pdf_path: Path to the PDF file
            start_page: First page to read (1-indexed)
            end_page: Last page to read, inclusive (default: last page)

        Returns:
            ExtractedDocument with the joined page texts

        Raises:
            FileNotFoundError: If the PDF file doesn't exist
            ValidationError: If the file is not a readable PDF or has no text
        """
        pdf_path = Path(pdf_path)

        if not pdf_path.exists():
            raise FileNotFoundError(f"PDF not found: {pdf_path}")
        if start_page < 1:
            raise ValidationError("start_page must be 1 or greater")

        try:
            doc = fitz.open(pdf_path)
        except Exception as e:
            raise ValidationError(f"Failed to open PDF {pdf_path.name}: {e}") from e

        try:
            total_pages = len(doc)
            last = min(end_page or total_pages, total_pages)
            page_texts = []
            for page_num in range(start_page - 1, last):
                cleaned = self._clean_extracted_text(doc[page_num].get_text())
                if cleaned:
                    page_texts.append(cleaned)
        finally:
            doc.close()

        if not page_texts:
            raise ValidationError(
                f"No text found in {pdf_path.name}. It might be scanned images or empty."
            )

        return ExtractedDocument(
            filename=pdf_path.name,
            total_pages=total_pages,
            pages_read=len(page_texts),
            text="\n\n".join(page_texts),
        )


def extract_text_from_pdf(pdf_path: str | Path, clean: bool = True) -> str:
    """
    Simple function to extract all text from a PDF.

    Example:
        text = extract_text_from_pdf("chapter1.pdf")
    """
    return PDFParser(clean_text=clean).parse_pdf(pdf_path).text
