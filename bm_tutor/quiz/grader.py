"""
Grader - Scores a submitted quiz attempt.

Each item type has its own judge:
- mcq:   exact match after trimming and case-folding
- short: semantic equivalence judged by the LLM, fail-closed

Adding a judge (e.g. numeric tolerance) means registering it under a
new item type; the aggregation below does not change.

Scoring is deterministic: score = correct items, total = all items,
percentage = 100 * score / total rounded half up. Grading overwrites the stored
attempt's score, so re-grading never accumulates.
"""

from typing import Protocol

from bm_tutor.collaborators import AttemptStore, CompletionService
from bm_tutor.config import (
    GRADING_CORRECT_TOKEN,
    GRADING_PROMPT_TEMPLATE,
    GRADING_SYSTEM_PROMPT,
)
from bm_tutor.exceptions import InvalidAttempt, NotFound
from bm_tutor.logging_utils import get_logger
from bm_tutor.quiz.models import GradeReport, GradingResult, QuizItem

logger = get_logger(__name__)


class Judge(Protocol):
    def judge(self, item: QuizItem, submitted: str) -> bool:
        ...


def normalize_answer(answer: str) -> str:
    return answer.strip().casefold()


class ExactMatchJudge:
    """Correct only if the answers are equal ignoring case and outer whitespace."""

    def judge(self, item: QuizItem, submitted: str) -> bool:
        return normalize_answer(submitted) == normalize_answer(item.answer)


class SemanticJudge:
    """
    Asks the LLM whether a short answer means the same as the reference.

    The reply counts as correct only if it starts with the correct token.
    Any other reply, and any failed call, counts as incorrect.
    """

    def __init__(self, completion: CompletionService, correct_token: str = GRADING_CORRECT_TOKEN):
        self.completion = completion
        self.correct_token = correct_token.upper()

    def judge(self, item: QuizItem, submitted: str) -> bool:
        if not submitted.strip():
            return False

        prompt = GRADING_PROMPT_TEMPLATE.format(
            question=item.question,
            correct_answer=item.answer,
            user_answer=submitted,
        )
        try:
            output = self.completion.complete([
                {"role": "system", "content": GRADING_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ])
            return output.strip().upper().startswith(self.correct_token)
        except Exception as e:
            # Any failure, including an unusable reply, grades as incorrect
            logger.warning("Semantic grading failed for item %s: %s", item.id, e)
            return False


class Grader:
    """
    Grades stored quiz attempts.

    Example:
        grader = Grader(attempt_store, {"mcq": ExactMatchJudge(),
                                        "short": SemanticJudge(llm)})
        report = grader.grade(attempt_id, {"q1": "besar", "q2": "rajin"})
        print(f"{report.score}/{report.total} ({report.percentage}%)")
    """

    def __init__(self, attempts: AttemptStore, judges: dict[str, Judge]):
        self.attempts = attempts
        self.judges = judges

    def _judge_item(self, item: QuizItem, submitted: str) -> bool:
        judge = self.judges.get(item.type)
        if judge is None:
            logger.warning("No judge for item type %r (item %s)", item.type, item.id)
            return False
        return judge.judge(item, submitted)

    def grade(self, attempt_id: str, answers: dict[str, str]) -> GradeReport:
        """
        Grade an attempt and overwrite its stored score.

        Args:
            attempt_id: Id returned when the quiz was generated
            answers: Submitted answers keyed by item id (missing = blank)

        Raises:
            NotFound: If no attempt exists for attempt_id
            InvalidAttempt: If the stored quiz has no items
        """
        attempt = self.attempts.get_by_id(attempt_id)
        if attempt is None:
            raise NotFound(attempt_id)

        items = attempt.payload.items
        if not items:
            raise InvalidAttempt(f"Quiz attempt {attempt_id} has no items to grade")

        results = []
        for item in items:
            submitted = answers.get(item.id) or ""
            results.append(GradingResult(
                id=item.id,
                type=item.type,
                question=item.question,
                user_answer=submitted,
                correct_answer=item.answer,
                is_correct=self._judge_item(item, submitted),
                feedback=item.explanation,
            ))

        score = sum(1 for r in results if r.is_correct)
        total = len(items)
        # round half up: 62.5 -> 63
        percentage = int(100 * score / total + 0.5)

        self.attempts.update(attempt_id, score=score, total=total)
        logger.info("Graded attempt %s: %d/%d", attempt_id, score, total)

        return GradeReport(score=score, total=total, percentage=percentage, results=results)
