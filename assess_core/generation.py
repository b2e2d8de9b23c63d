"""Generation service: one stateless call per plan or question request."""
from __future__ import annotations

import logging
import uuid
from collections import Counter
from typing import Iterable, List, Optional

from .errors import GenerationFailed
from .llm_bridge import ModelBackend
from .types import (
    GeneratedQuestion,
    GenerationMode,
    GenerationRequest,
    GenerationResult,
    TestSpecification,
)

log = logging.getLogger(__name__)


def _fresh_id(taken: set[str]) -> str:
    while True:
        qid = f"q_{uuid.uuid4().hex[:8]}"
        if qid not in taken:
            return qid


def rekey_if_taken(question: GeneratedQuestion, taken: Iterable[str]) -> GeneratedQuestion:
    """Return ``question`` with a new id when its id collides with ``taken``."""
    taken_set = set(taken)
    if question.id and question.id not in taken_set:
        return question
    new_id = _fresh_id(taken_set)
    log.info("re-keyed generated question %r -> %r", question.id, new_id)
    return GeneratedQuestion(
        id=new_id,
        content=question.content,
        type=question.type,
        category=question.category,
        points=question.points,
        ai_rationale=question.ai_rationale,
        expected_answer=question.expected_answer,
    )


def check_generation(result: GenerationResult, spec: Optional[TestSpecification] = None) -> List[str]:
    """List boundary mismatches in a generation result.

    The model is asked for consistent counts and categories but nothing on its
    side enforces them; callers get the mismatches as strings (also logged)
    and decide what to do with them.
    """
    issues: List[str] = []
    plan = result.plan
    suggested = sum(c.suggested_count for c in plan.categories)
    if suggested != plan.total_questions:
        issues.append(f"category counts sum to {suggested}, plan says {plan.total_questions}")
    if len(result.questions) != plan.total_questions:
        issues.append(f"{len(result.questions)} questions returned, plan says {plan.total_questions}")
    if spec is not None and plan.total_questions != spec.question_count:
        issues.append(f"plan total {plan.total_questions} differs from requested {spec.question_count}")
    known = set(plan.category_names())
    for q in result.questions:
        if q.category not in known:
            issues.append(f"question {q.id} has unknown category {q.category!r}")
    dupes = [qid for qid, n in Counter(q.id for q in result.questions).items() if n > 1]
    if dupes:
        issues.append(f"duplicate question ids: {', '.join(sorted(dupes))}")
    for msg in issues:
        log.warning("generation mismatch: %s", msg)
    return issues


def _check_single(result: GenerationResult, replaced: GeneratedQuestion) -> GeneratedQuestion:
    if len(result.questions) != 1:
        raise GenerationFailed(f"expected exactly one question, got {len(result.questions)}")
    new_q = result.questions[0]
    if new_q.category != replaced.category:
        raise GenerationFailed(
            f"replacement category {new_q.category!r} differs from {replaced.category!r}"
        )
    return new_q


def generate_questions(backend: ModelBackend, request: GenerationRequest) -> GenerationResult:
    """Run one generation call; any failure collapses into ``GenerationFailed``.

    In single-question mode the result holds exactly one question whose
    category equals the replaced one and whose id differs from it.
    """
    spec = request.spec
    replaced = request.question_to_replace
    if request.mode is GenerationMode.SINGLE_QUESTION and replaced is None:
        raise GenerationFailed("single-question regeneration without a question to replace")
    log.info(
        "generate mode=%s backend=%s theme=%r count=%s",
        request.mode.value, getattr(backend, "name", "?"), spec.theme, spec.question_count,
    )
    try:
        result = backend.generate(request)
    except GenerationFailed:
        raise
    except Exception as e:
        log.exception("generation call failed (mode=%s)", request.mode.value)
        raise GenerationFailed() from e

    if replaced is not None and request.mode is GenerationMode.SINGLE_QUESTION:
        new_q = rekey_if_taken(_check_single(result, replaced), [replaced.id])
        return GenerationResult(plan=result.plan, questions=[new_q])

    check_generation(result, spec)
    return result


__all__ = ["generate_questions", "check_generation", "rekey_if_taken"]
