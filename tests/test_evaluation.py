from __future__ import annotations

import pytest

from assess_core.errors import EvaluationFailed
from assess_core.evaluation import MISSING_FEEDBACK, align_evaluations, evaluate_submission, finalize_result
from assess_core.schemas import EvaluationSchema
from assess_core.types import EvaluationSubmission
from tests.conftest import FakeBackend, build_test_config


def _submission(answers) -> EvaluationSubmission:
    config = build_test_config()
    return EvaluationSubmission(
        test_id=config.id,
        candidate_name="Ada",
        title=config.title,
        description=config.description,
        questions=config.selected_questions,
        answers=answers,
    )


def test_three_question_thirty_point_test():
    draft = evaluate_submission(FakeBackend(), _submission({"q1": "a", "q2": "b"}))
    assert draft.total_points == 30
    assert draft.earned_points == 20
    assert 0 <= draft.overall_score <= 100
    assert [e.question_id for e in draft.question_evaluations] == ["q1", "q2", "q3"]
    assert draft.question_evaluations[2].score == 0


def test_empty_answers_still_get_one_evaluation_each():
    backend = FakeBackend()
    draft = evaluate_submission(backend, _submission({}))
    assert len(draft.question_evaluations) == 3
    assert all(e.score == 0 for e in draft.question_evaluations)
    assert backend.submissions[0].answers == {}


def test_missing_evaluations_are_filled_in_order():
    sub = _submission({"q1": "a", "q2": "b", "q3": "c"})
    draft = evaluate_submission(FakeBackend(skip_evaluations={"q2"}), sub)
    ids = [e.question_id for e in draft.question_evaluations]
    assert ids == ["q1", "q2", "q3"]
    filled = draft.question_evaluations[1]
    assert filled.score == 0 and filled.feedback == MISSING_FEEDBACK


def test_unknown_evaluations_are_dropped():
    sub = _submission({"q1": "a"})
    draft = FakeBackend().evaluate(_submission({"q1": "a"}))
    stray = EvaluationSchema.model_validate({
        "overallScore": 50, "totalPoints": 30, "earnedPoints": 10,
        "questionEvaluations": [{"questionId": "zz", "score": 5, "feedback": "", "suggestions": ""}],
        "globalFeedback": "", "strengths": [], "areasForImprovement": [], "recommendations": [],
    }).to_draft(test_id=sub.test_id, candidate_name="Ada")
    draft.question_evaluations.extend(stray.question_evaluations)
    aligned = align_evaluations(draft, sub)
    assert [e.question_id for e in aligned.question_evaluations] == ["q1", "q2", "q3"]


def test_backend_failure_collapses():
    with pytest.raises(EvaluationFailed) as ei:
        evaluate_submission(FakeBackend(fail_evaluate=True), _submission({}))
    assert str(ei.value) == "Failed to evaluate test"


def test_finalize_assigns_identity():
    draft = evaluate_submission(FakeBackend(), _submission({"q1": "a"}))
    a = finalize_result(draft)
    b = finalize_result(draft)
    assert a.id.startswith("eval_") and a.id != b.id
    assert a.completed_at
    assert a.overall_score == draft.overall_score


def test_overall_score_is_schema_bounded():
    with pytest.raises(ValueError):
        EvaluationSchema.model_validate({
            "overallScore": 140, "totalPoints": 30, "earnedPoints": 30,
            "questionEvaluations": [], "globalFeedback": "",
            "strengths": [], "areasForImprovement": [], "recommendations": [],
        })
