"""
Topic derivation - Groups chunk source labels into browsable topics.

Many chunk labels collapse into one topic:

    "Textbook Part 3"                  -> ("part 3", "Part 3")
    "BM Tahun 3 Unit 2 (nota.pdf)"     -> ("unit 2", "Unit 2")
    "Nota Peribahasa (pasted 12 Mar)"  -> ("nota peribahasa", "Nota Peribahasa")

The key doubles as the retriever's topic filter, which matches it
against source labels case-insensitively.
"""

import re
from dataclasses import dataclass

from bm_tutor.collaborators import ScopedVectorStore

_UNIT_PATTERN = re.compile(r"unit\s*(\d+)", re.IGNORECASE)
_PART_PATTERN = re.compile(r"part\s*(\d+)", re.IGNORECASE)
_PASTED_SUFFIX = re.compile(r"\(pasted.*$", re.IGNORECASE | re.DOTALL)


@dataclass(frozen=True)
class Topic:
    key: str
    label: str

    def to_dict(self) -> dict:
        return {"key": self.key, "label": self.label}


def derive_topic(source: str) -> Topic:
    """Derive a stable (key, label) topic from a chunk source label."""
    for pattern, word in ((_UNIT_PATTERN, "Unit"), (_PART_PATTERN, "Part")):
        match = pattern.search(source)
        if match:
            label = f"{word} {match.group(1)}"
            return Topic(key=label.lower(), label=label)

    cleaned = _PASTED_SUFFIX.sub("", source).strip()
    return Topic(key=cleaned.lower(), label=cleaned)


def _sort_key(topic: Topic) -> tuple[str, str]:
    # Case-insensitive first, then exact label for a stable order
    return (topic.label.casefold(), topic.label)


def group_topics(sources: list[str]) -> list[Topic]:
    """
    Turn source labels into a sorted, de-duplicated topic list.

    The first label seen for a key decides its display label.
    """
    buckets: dict[str, Topic] = {}
    for source in sources:
        if not source or not source.strip():
            continue
        topic = derive_topic(source)
        if topic.key and topic.key not in buckets:
            buckets[topic.key] = topic
    return sorted(buckets.values(), key=_sort_key)


def list_topics(store: ScopedVectorStore, subject: str, year: int) -> list[Topic]:
    """List the topics available for one subject and year."""
    return group_topics(store.list_sources(subject, year))
