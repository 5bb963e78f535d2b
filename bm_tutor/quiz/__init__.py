"""
Quiz module - Generation, validation, grading and attempt storage.

This module is responsible for:
1. Generating schema-constrained quizzes with bounded retry
2. Checking passage consistency of generated quizzes
3. Grading submitted answers (exact match + LLM judgment)
4. Persisting quiz attempts
"""

from .attempt_store import JsonAttemptStore, new_attempt_id
from .generator import GenerationState, QuizGenerator, parse_quiz
from .grader import ExactMatchJudge, Grader, Judge, SemanticJudge
from .models import GradeReport, GradingResult, Quiz, QuizAttempt, QuizItem
from .validation import PhraseReferenceDetector, check_quiz_consistency

__all__ = [
    "JsonAttemptStore",
    "new_attempt_id",
    "GenerationState",
    "QuizGenerator",
    "parse_quiz",
    "ExactMatchJudge",
    "Grader",
    "Judge",
    "SemanticJudge",
    "GradeReport",
    "GradingResult",
    "Quiz",
    "QuizAttempt",
    "QuizItem",
    "PhraseReferenceDetector",
    "check_quiz_consistency",
]
