"""Tests for grading: exact match for MCQ, fail-closed LLM judge for short answers."""

import pytest

from bm_tutor.exceptions import InvalidAttempt, NotFound, UpstreamFailure
from bm_tutor.quiz.grader import ExactMatchJudge, Grader, SemanticJudge, normalize_answer
from bm_tutor.quiz.models import QuizItem

from conftest import FIVE_ITEM_QUIZ, make_attempt, make_item


@pytest.fixture()
def grader(completion, attempt_store):
    return Grader(attempt_store, {
        "mcq": ExactMatchJudge(),
        "short": SemanticJudge(completion),
    })


def _short_item(**overrides):
    fields = make_item("s1", "short", "Apakah maksud 'rajin'?", "suka bekerja kuat", choices=None)
    fields.update(overrides)
    return QuizItem.model_validate(fields)


class TestExactMatchJudge:
    def test_trim_and_case_insensitive(self):
        item = QuizItem.model_validate(make_item(answer="Besar"))
        assert ExactMatchJudge().judge(item, "besar ")

    def test_different_answer(self):
        item = QuizItem.model_validate(make_item(answer="besar"))
        assert not ExactMatchJudge().judge(item, "kecil")

    def test_normalize(self):
        assert normalize_answer("  ÉCOLE ") == "école"


class TestSemanticJudge:
    def test_correct_token(self, completion):
        completion.queue("CORRECT - same meaning")
        assert SemanticJudge(completion).judge(_short_item(), "rajin bekerja")

    def test_lowercase_token_accepted(self, completion):
        completion.queue("  correct")
        assert SemanticJudge(completion).judge(_short_item(), "rajin bekerja")

    def test_incorrect_reply(self, completion):
        completion.queue("INCORRECT")
        assert not SemanticJudge(completion).judge(_short_item(), "malas")

    def test_unrelated_reply_is_incorrect(self, completion):
        completion.queue("I think the pupil is partly right.")
        assert not SemanticJudge(completion).judge(_short_item(), "rajin")

    def test_call_failure_is_incorrect(self, completion):
        completion.queue(UpstreamFailure("timeout", service="completion"))
        assert not SemanticJudge(completion).judge(_short_item(), "rajin bekerja")

    def test_unexpected_error_is_incorrect(self, completion):
        completion.queue(RuntimeError("boom"))
        assert not SemanticJudge(completion).judge(_short_item(), "rajin bekerja")

    @pytest.mark.parametrize("reply", [None, 42, {"verdict": "CORRECT"}])
    def test_unusable_reply_is_incorrect(self, completion, reply):
        completion.queue(reply)
        assert not SemanticJudge(completion).judge(_short_item(), "rajin bekerja")

    def test_blank_answer_skips_model(self, completion):
        assert not SemanticJudge(completion).judge(_short_item(), "   ")
        assert completion.calls == []

    def test_prompt_contains_both_answers(self, completion):
        completion.queue("CORRECT")
        SemanticJudge(completion).judge(_short_item(), "rajin bekerja")

        prompt = completion.calls[0]["messages"][-1]["content"]
        assert "suka bekerja kuat" in prompt
        assert "rajin bekerja" in prompt


class TestGrader:
    def test_three_of_five(self, grader, completion, attempt_store):
        attempt_store.insert(make_attempt(items=FIVE_ITEM_QUIZ))
        completion.queue("CORRECT", "INCORRECT")

        report = grader.grade("a" * 32, {
            "q1": "Besar",
            "q2": "rendah ",
            "q3": "basah",
            "q4": "kuat bekerja",
            "q5": "sedih",
        })

        assert (report.score, report.total, report.percentage) == (3, 5, 60)
        assert [r.is_correct for r in report.results] == [True, True, False, True, False]
        assert attempt_store.get_by_id("a" * 32).score == 3

    def test_results_carry_feedback(self, grader, completion, attempt_store):
        attempt_store.insert(make_attempt(items=[make_item("q1")]))
        report = grader.grade("a" * 32, {"q1": "besar"})

        result = report.results[0]
        assert result.feedback == "Lawan kata kecil ialah besar."
        assert result.correct_answer == "besar"
        assert result.to_dict()["isCorrect"] is True

    def test_judge_failure_does_not_abort(self, grader, completion, attempt_store):
        attempt_store.insert(make_attempt(items=FIVE_ITEM_QUIZ))
        completion.queue(UpstreamFailure("down", service="completion"), "CORRECT")

        report = grader.grade("a" * 32, {
            "q1": "besar", "q2": "rendah", "q3": "sejuk",
            "q4": "kuat bekerja", "q5": "suka hati",
        })

        assert [r.is_correct for r in report.results] == [True, True, True, False, True]
        assert report.score == 4

    def test_missing_answers_are_blank(self, grader, completion, attempt_store):
        attempt_store.insert(make_attempt(items=FIVE_ITEM_QUIZ))
        report = grader.grade("a" * 32, {"q1": "besar"})

        assert report.score == 1
        assert report.results[1].user_answer == ""
        assert completion.calls == []

    def test_regrade_overwrites_score(self, grader, attempt_store):
        attempt_store.insert(make_attempt(items=[make_item("q1")]))

        assert grader.grade("a" * 32, {"q1": "besar"}).score == 1
        assert grader.grade("a" * 32, {"q1": "kecil"}).score == 0
        assert attempt_store.get_by_id("a" * 32).score == 0

    def test_rounding(self, grader, attempt_store):
        items = [make_item(f"q{i}") for i in range(8)]
        attempt_store.insert(make_attempt(items=items))

        report = grader.grade("a" * 32, {"q0": "besar"})
        assert report.percentage == 13

    def test_rounding_half_up(self, grader, attempt_store):
        items = [make_item(f"q{i}") for i in range(8)]
        attempt_store.insert(make_attempt(items=items))

        # 100 * 5 / 8 = 62.5
        report = grader.grade("a" * 32, {f"q{i}": "besar" for i in range(5)})
        assert report.percentage == 63

    def test_unknown_attempt(self, grader):
        with pytest.raises(NotFound):
            grader.grade("f" * 32, {})

    def test_attempt_without_items(self, grader, attempt_store):
        attempt_store.insert(make_attempt(items=[]))
        with pytest.raises(InvalidAttempt):
            grader.grade("a" * 32, {})
        assert attempt_store.update_calls == 0

    def test_item_type_without_judge(self, attempt_store, completion):
        attempt_store.insert(make_attempt(items=FIVE_ITEM_QUIZ))
        grader = Grader(attempt_store, {"mcq": ExactMatchJudge()})

        report = grader.grade("a" * 32, {"q1": "besar", "q4": "suka bekerja kuat"})
        assert report.score == 1
