"""
Quiz Generator - Builds structured quizzes from retrieved context.

Generation is a small state machine with a hard attempt budget:

    FIRST_ATTEMPT -> validate -> SUCCEEDED
                              -> RETRY -> validate -> SUCCEEDED
                                                   -> FAILED

An attempt fails when the reply is not valid JSON for the Quiz schema,
or when the parsed quiz breaks the passage consistency rules. The retry
prompt names the previous failure, so attempts always run one after the
other. A completion call that errors out (UpstreamFailure) is not
retried here.
"""

import json
import re
from dataclasses import dataclass
from enum import Enum

import pydantic

from bm_tutor.collaborators import CompletionService
from bm_tutor.config import (
    DEFAULT_SUBJECT,
    MAX_QUIZ_ATTEMPTS,
    QUIZ_MCQ_SHARE,
    QUIZ_PROMPT_TEMPLATE,
    QUIZ_RETRY_TEMPLATE,
    QUIZ_SYSTEM_PROMPT,
    QUIZ_TYPE_MIX,
)
from bm_tutor.embeddings.vector_store import RetrievalResult
from bm_tutor.exceptions import GenerationFailure
from bm_tutor.logging_utils import get_logger
from bm_tutor.quiz.models import Quiz
from bm_tutor.quiz.validation import SharedContextPredicate, check_quiz_consistency
from bm_tutor.rag.retriever import format_context

logger = get_logger(__name__)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


class GenerationState(Enum):
    FIRST_ATTEMPT = "first_attempt"
    RETRY = "retry"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class AttemptOutcome:
    """Result of one generation attempt: a quiz or a diagnostic."""
    quiz: Quiz | None = None
    error: str | None = None


def parse_quiz(raw: str) -> Quiz:
    """
    Parse a model reply into a Quiz.

    Tolerates a surrounding markdown code fence.

    Raises:
        pydantic.ValidationError: If the reply is not a valid Quiz
    """
    return Quiz.model_validate_json(_CODE_FENCE.sub("", raw.strip()))


def describe_parse_error(error: pydantic.ValidationError) -> str:
    """One-line summary of the first schema problem."""
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "quiz"
    return f"quiz JSON parse failed at {location}: {first.get('msg', 'invalid')}"


class QuizGenerator:
    """
    Generates schema-constrained quizzes with bounded retry.

    Example:
        generator = QuizGenerator(OllamaCompletion())
        quiz = generator.generate("Peribahasa", year=3, difficulty="easy",
                                  count=6, context=results)
    """

    def __init__(
        self,
        completion: CompletionService,
        detector: SharedContextPredicate | None = None,
        max_attempts: int = MAX_QUIZ_ATTEMPTS,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.completion = completion
        self.detector = detector
        self.max_attempts = max_attempts

    def build_instruction(
        self,
        topic: str,
        year: int,
        difficulty: str,
        count: int,
        context: list[RetrievalResult],
    ) -> str:
        """Build the user prompt: context, question mixture and schema."""
        type_mix = "\n".join(
            f"- {category}: about {round(share * 100)}% of the questions"
            for category, share in QUIZ_TYPE_MIX
        )
        return QUIZ_PROMPT_TEMPLATE.format(
            context=format_context(context) or "(no notes found for this topic)",
            year=year,
            topic=topic,
            difficulty=difficulty,
            count=count,
            type_mix=type_mix,
            mcq_percent=round(QUIZ_MCQ_SHARE * 100),
            schema=json.dumps(Quiz.response_schema()),
        )

    def _run_attempt(self, instruction: str, previous_error: str | None) -> AttemptOutcome:
        if previous_error:
            instruction += QUIZ_RETRY_TEMPLATE.format(error=previous_error)

        raw = self.completion.complete(
            [
                {"role": "system", "content": QUIZ_SYSTEM_PROMPT},
                {"role": "user", "content": instruction},
            ],
            response_schema=Quiz.response_schema(),
        )

        try:
            quiz = parse_quiz(raw)
        except pydantic.ValidationError as e:
            return AttemptOutcome(error=describe_parse_error(e))

        error = check_quiz_consistency(quiz, self.detector)
        if error:
            return AttemptOutcome(error=error)
        return AttemptOutcome(quiz=quiz)

    def generate(
        self,
        topic: str,
        year: int,
        difficulty: str,
        count: int,
        context: list[RetrievalResult],
        subject: str = DEFAULT_SUBJECT,
    ) -> Quiz:
        """
        Generate a quiz that passes schema and consistency validation.

        Returns:
            The validated Quiz, with subject/year set to the requested scope

        Raises:
            GenerationFailure: If every attempt failed (carries the last error)
            UpstreamFailure: If a completion call fails
        """
        instruction = self.build_instruction(topic, year, difficulty, count, context)

        state = GenerationState.FIRST_ATTEMPT
        attempts = 0
        last_error: str | None = None
        quiz: Quiz | None = None

        while state in (GenerationState.FIRST_ATTEMPT, GenerationState.RETRY):
            attempts += 1
            outcome = self._run_attempt(
                instruction,
                last_error if state is GenerationState.RETRY else None,
            )

            if outcome.quiz is not None:
                quiz = outcome.quiz
                state = GenerationState.SUCCEEDED
            else:
                last_error = outcome.error
                logger.warning("Quiz attempt %d/%d rejected: %s",
                               attempts, self.max_attempts, last_error)
                if attempts < self.max_attempts:
                    state = GenerationState.RETRY
                else:
                    state = GenerationState.FAILED

        if state is GenerationState.FAILED:
            raise GenerationFailure(last_error or "unknown error", attempts)

        logger.info("Generated quiz %r with %d item(s) in %d attempt(s)",
                    quiz.title, len(quiz.items), attempts)
        return quiz.model_copy(update={"subject": subject, "year": year})
