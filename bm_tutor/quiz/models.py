"""
Quiz data models.

Quiz and QuizItem are pydantic models because they double as the JSON
schema handed to the model for structured output, and as the parser
for what comes back. Keys use the wire names (`requiresPassage`) when
dumped with by_alias=True.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class QuizItem(BaseModel):
    """One question in a quiz."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    type: Literal["mcq", "short"]
    question: str
    choices: list[str] | None = None
    answer: str
    explanation: str
    requires_passage: bool = Field(default=False, alias="requiresPassage")


class Quiz(BaseModel):
    """A generated quiz; immutable once an attempt references it."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    subject: str
    year: int
    passage: str | None = None
    items: list[QuizItem]

    @field_validator("items")
    @classmethod
    def _unique_item_ids(cls, items: list[QuizItem]) -> list[QuizItem]:
        seen = set()
        for item in items:
            if item.id in seen:
                raise ValueError(f"duplicate item id {item.id!r}")
            seen.add(item.id)
        return items

    @classmethod
    def response_schema(cls) -> dict:
        """JSON schema for schema-constrained generation."""
        return cls.model_json_schema(by_alias=True)

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True)


class QuizAttempt(BaseModel):
    """
    A pupil's attempt at a quiz.

    Created with score=0 right after generation, then overwritten by
    grading. Re-grading overwrites again; scores never accumulate.
    """

    id: str
    child_id: str
    subject: str
    year: int
    topic: str
    score: int = 0
    total: int
    payload: Quiz
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def summary(self) -> dict:
        """Compact view used by the progress listing."""
        return {
            "id": self.id,
            "childId": self.child_id,
            "subject": self.subject,
            "year": self.year,
            "topic": self.topic,
            "score": self.score,
            "total": self.total,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass
class GradingResult:
    """Verdict for a single quiz item."""
    id: str
    type: str
    question: str
    user_answer: str
    correct_answer: str
    is_correct: bool
    feedback: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "question": self.question,
            "userAnswer": self.user_answer,
            "correctAnswer": self.correct_answer,
            "isCorrect": self.is_correct,
            "feedback": self.feedback,
        }


@dataclass
class GradeReport:
    """Aggregate outcome of grading one attempt."""
    score: int
    total: int
    percentage: int
    results: list[GradingResult] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "total": self.total,
            "percentage": self.percentage,
            "results": [r.to_dict() for r in self.results],
        }
