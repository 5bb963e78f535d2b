"""
Batch ingestion - Ingests a folder of textbook PDFs split into parts.

A long textbook is usually split into files such as
`BM-Tahun3-part1.pdf`, `BM-Tahun3-part2.pdf`, ... Each part is ingested
as "Textbook Part N", so topic listing groups the chunks back into
"Part 1", "Part 2", ...

Files are processed in part-number order, one at a time. A part that
fails is recorded and the batch carries on.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from bm_tutor.exceptions import TutorError, ValidationError
from bm_tutor.logging_utils import get_logger

if TYPE_CHECKING:
    from bm_tutor.pipeline import IngestResult, TutorPipeline

logger = get_logger(__name__)

_PART_NUMBER = re.compile(r"part\s*[-_]?\s*(\d+)", re.IGNORECASE)

PART_SOURCE_TEMPLATE = "Textbook Part {number}"


@dataclass
class PartOutcome:
    """Result of ingesting one part file."""
    number: int
    path: Path
    result: "IngestResult | None" = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def find_part_pdfs(folder: str | Path, start: int = 1, end: int | None = None) -> list[tuple[int, Path]]:
    """
    List the numbered part PDFs in a folder, ordered by part number.

    Files without a part number in their name are ignored.

    Raises:
        ValidationError: If the folder does not exist or the range is empty
    """
    folder = Path(folder)
    if not folder.is_dir():
        raise ValidationError(f"Not a folder: {folder}")
    if start < 1 or (end is not None and end < start):
        raise ValidationError("Part range must satisfy 1 <= start <= end")

    parts = []
    for path in folder.iterdir():
        if not path.is_file() or path.suffix.lower() != ".pdf":
            continue
        match = _PART_NUMBER.search(path.stem)
        if not match:
            logger.debug("Skipping %s: no part number in name", path.name)
            continue
        number = int(match.group(1))
        if number >= start and (end is None or number <= end):
            parts.append((number, path))

    return sorted(parts, key=lambda part: (part[0], part[1].name))


def ingest_pdf_parts(
    pipeline: "TutorPipeline",
    subject: str,
    year: int,
    folder: str | Path,
    start: int = 1,
    end: int | None = None,
    on_part: Callable[[PartOutcome], None] | None = None,
) -> list[PartOutcome]:
    """
    Ingest every part PDF in a folder as "Textbook Part N".

    Args:
        pipeline: Pipeline doing the per-file ingestion
        subject: Subject scope for every part
        year: School year scope for every part
        folder: Folder holding the part PDFs
        start: First part number to ingest
        end: Last part number to ingest (inclusive, default: all)
        on_part: Called after each part, e.g. to advance a progress bar

    Returns:
        One outcome per part file, in part order

    Raises:
        ValidationError: If the folder is missing, the range is invalid
            or no part files were found
    """
    parts = find_part_pdfs(folder, start, end)
    if not parts:
        raise ValidationError(f"No part PDFs found in {folder}")

    outcomes = []
    for number, path in parts:
        outcome = PartOutcome(number=number, path=path)
        try:
            outcome.result = pipeline.ingest_pdf(
                subject, year, PART_SOURCE_TEMPLATE.format(number=number), path
            )
        except (TutorError, OSError) as e:
            logger.warning("Part %d (%s) failed: %s", number, path.name, e)
            outcome.error = str(e)
        outcomes.append(outcome)
        if on_part is not None:
            on_part(outcome)

    logger.info(
        "Ingested %d/%d part(s) from %s",
        sum(1 for o in outcomes if o.ok), len(outcomes), folder,
    )
    return outcomes
