"""Evaluation service: grade one submission through the model.

Scores are the model's: ``overallScore`` is schema-bounded to [0, 100], but
``earnedPoints``/``totalPoints``/``overallScore`` are not reconciled with each
other or with the per-question scores. Only the per-question list is
normalised so that every original question appears exactly once, in order.
"""
from __future__ import annotations

import logging
from typing import Dict, List

from .errors import EvaluationFailed
from .llm_bridge import ModelBackend
from .records import new_record_id, utcnow_iso
from .types import (
    EvaluationDraft,
    EvaluationResult,
    EvaluationSubmission,
    QuestionEvaluation,
)

log = logging.getLogger(__name__)

MISSING_FEEDBACK = "No evaluation was returned for this question."


def align_evaluations(draft: EvaluationDraft, submission: EvaluationSubmission) -> EvaluationDraft:
    by_id: Dict[str, QuestionEvaluation] = {}
    for ev in draft.question_evaluations:
        by_id.setdefault(ev.question_id, ev)
    aligned: List[QuestionEvaluation] = []
    for q in submission.questions:
        ev = by_id.get(q.id)
        if ev is None:
            log.warning("no evaluation returned for question %s; scoring it 0", q.id)
            ev = QuestionEvaluation(question_id=q.id, score=0.0, feedback=MISSING_FEEDBACK, suggestions="")
        aligned.append(ev)
    extra = set(by_id) - {q.id for q in submission.questions}
    if extra:
        log.warning("dropping evaluations for unknown question ids: %s", ", ".join(sorted(extra)))
    return EvaluationDraft(
        test_id=draft.test_id,
        candidate_name=draft.candidate_name,
        overall_score=draft.overall_score,
        total_points=draft.total_points,
        earned_points=draft.earned_points,
        question_evaluations=aligned,
        global_feedback=draft.global_feedback,
        strengths=list(draft.strengths),
        areas_for_improvement=list(draft.areas_for_improvement),
        recommendations=list(draft.recommendations),
    )


def evaluate_submission(backend: ModelBackend, submission: EvaluationSubmission) -> EvaluationDraft:
    log.info(
        "evaluate test=%s candidate=%r questions=%d answered=%d",
        submission.test_id,
        submission.candidate_name,
        len(submission.questions),
        sum(1 for q in submission.questions if submission.answer_for(q.id).strip()),
    )
    try:
        draft = backend.evaluate(submission)
    except Exception as e:
        log.exception("evaluation call failed for test %s", submission.test_id)
        raise EvaluationFailed() from e
    return align_evaluations(draft, submission)


def finalize_result(draft: EvaluationDraft) -> EvaluationResult:
    return EvaluationResult.from_draft(draft, result_id=new_record_id("eval"), completed_at=utcnow_iso())


__all__ = [
    "evaluate_submission",
    "align_evaluations",
    "finalize_result",
]
