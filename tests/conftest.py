from __future__ import annotations

import pytest

from api.storage import FileRecordStore
from assess_core.records import save_test
from assess_core.types import (
    EvaluationDraft,
    GeneratedQuestion,
    GenerationMode,
    GenerationResult,
    QuestionCategory,
    QuestionEvaluation,
    QuestionPlan,
    TestConfig,
    TestSpecification,
)


def build_plan(total: int, categories: tuple[str, ...] = ("Theory", "Practice")) -> QuestionPlan:
    """Split ``total`` over ``categories``, remainder on the last one."""
    base = total // len(categories)
    counts = [base] * len(categories)
    counts[-1] += total - base * len(categories)
    return QuestionPlan(
        introduction=f"A {total}-question plan.",
        categories=[
            QuestionCategory(category=c, description=f"{c} questions", suggested_count=n, rationale=f"{c} matters")
            for c, n in zip(categories, counts)
        ],
        total_questions=total,
    )


def build_questions(plan: QuestionPlan, *, batch: int = 1, points: float = 10.0) -> list[GeneratedQuestion]:
    out: list[GeneratedQuestion] = []
    for cat in plan.categories:
        for _ in range(cat.suggested_count):
            n = len(out) + 1
            out.append(
                GeneratedQuestion(
                    id=f"q{n}",
                    content=f"{cat.category} question {n} (batch {batch})",
                    type="free answer",
                    category=cat.category,
                    points=points,
                    ai_rationale=f"covers {cat.category.lower()}",
                )
            )
    return out


class FakeBackend:
    """Deterministic stand-in for the model: records every request it gets."""

    name = "fake"

    def __init__(self, *, fail_generate: bool = False, fail_evaluate: bool = False, skip_evaluations=()):
        self.fail_generate = fail_generate
        self.fail_evaluate = fail_evaluate
        self.skip_evaluations = set(skip_evaluations)
        self.requests: list = []
        self.submissions: list = []
        self.batches = 0
        self.replacements = 0

    def generate(self, request):
        self.requests.append(request)
        if self.fail_generate:
            raise RuntimeError("model unavailable")
        plan = build_plan(request.spec.question_count)
        if request.mode is GenerationMode.SINGLE_QUESTION:
            old = request.question_to_replace
            self.replacements += 1
            new_q = GeneratedQuestion(
                id=f"{old.id}_r{self.replacements}",
                content=f"Reworked {old.category} question: {request.regeneration_feedback}",
                type=old.type,
                category=old.category,
                points=old.points,
                ai_rationale="addresses the feedback",
            )
            return GenerationResult(plan=plan, questions=[new_q])
        self.batches += 1
        return GenerationResult(plan=plan, questions=build_questions(plan, batch=self.batches))

    def evaluate(self, submission):
        self.submissions.append(submission)
        if self.fail_evaluate:
            raise RuntimeError("model unavailable")
        evals = []
        earned = total = 0.0
        for q in submission.questions:
            total += q.points
            answered = bool(submission.answer_for(q.id).strip())
            score = q.points if answered else 0.0
            earned += score
            if q.id in self.skip_evaluations:
                continue
            evals.append(
                QuestionEvaluation(
                    question_id=q.id,
                    score=score,
                    feedback="Correct" if answered else "No answer given",
                    suggestions="" if answered else "Attempt every question",
                )
            )
        return EvaluationDraft(
            test_id=submission.test_id,
            candidate_name=submission.candidate_name,
            overall_score=round(100.0 * earned / total, 2) if total else 0.0,
            total_points=total,
            earned_points=earned,
            question_evaluations=evals,
            global_feedback="Solid attempt.",
            strengths=["clarity"],
            areas_for_improvement=["completeness"],
            recommendations=["practice more"],
        )


def build_test_config(test_id: str = "test_1_abc", n: int = 3) -> TestConfig:
    spec = TestSpecification(objective="Assess Go developers", theme="Go concurrency", question_count=max(n, 5))
    plan = build_plan(n)
    return TestConfig(
        id=test_id,
        spec=spec,
        selected_questions=build_questions(plan),
        created_at="2026-01-01T00:00:00+00:00",
        question_plan=plan,
        share_link=f"http://localhost:3000/test/{test_id}",
    )


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def go_spec() -> TestSpecification:
    return TestSpecification(
        objective="Assess Go developers",
        theme="Go concurrency",
        grading_description="Points per question",
        question_count=5,
    )


@pytest.fixture
def store(tmp_path) -> FileRecordStore:
    return FileRecordStore(tmp_path)


@pytest.fixture
def published_test(store) -> TestConfig:
    config = build_test_config()
    save_test(store, config)
    return config
