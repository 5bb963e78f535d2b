"""
Consistency checks for generated quizzes.

A question that says "Berdasarkan petikan, ..." only makes sense if the
quiz carries a passage and the item is flagged requiresPassage. The
detection is lexical: a question references the passage when its
lower-cased text contains one of a fixed set of phrases. Swap the
detector to change the heuristic without touching the checks.
"""

from typing import Protocol

from bm_tutor.config import PASSAGE_REFERENCE_PHRASES
from bm_tutor.quiz.models import Quiz

NO_ITEMS = "quiz contains no items"
MISSING_PASSAGE = "questions reference a passage that was not generated"
MISSING_FLAG = "passage-referencing questions missing the requiresPassage flag"


class SharedContextPredicate(Protocol):
    def references_shared_context(self, question: str) -> bool:
        ...


class PhraseReferenceDetector:
    """
    Flags questions containing any of a list of referential phrases.

    Example:
        detector = PhraseReferenceDetector()
        detector.references_shared_context("Berdasarkan petikan, siapakah Ali?")  # True
    """

    def __init__(self, phrases: tuple[str, ...] | list[str] = PASSAGE_REFERENCE_PHRASES):
        self.phrases = tuple(p.lower() for p in phrases if p.strip())

    def references_shared_context(self, question: str) -> bool:
        text = question.lower()
        return any(phrase in text for phrase in self.phrases)


def check_quiz_consistency(quiz: Quiz, detector: SharedContextPredicate | None = None) -> str | None:
    """
    Check a parsed quiz against the passage consistency rules.

    Returns:
        None when the quiz is valid, otherwise a one-line diagnostic
    """
    detector = detector or PhraseReferenceDetector()

    if not quiz.items:
        return NO_ITEMS

    referencing = [
        item for item in quiz.items
        if detector.references_shared_context(item.question)
    ]
    if not referencing:
        return None

    if not quiz.passage or not quiz.passage.strip():
        ids = ", ".join(item.id for item in referencing)
        return f"{MISSING_PASSAGE} ({ids})"

    unflagged = [item.id for item in referencing if item.requires_passage is not True]
    if unflagged:
        return f"{MISSING_FLAG} ({', '.join(unflagged)})"

    return None
