"""Test authoring wizard.

Four editable steps followed by a terminal published state::

    SPEC -> PLAN_REVIEW -> RESULTS_CONFIG -> DASHBOARD_CONFIG -> PUBLISHED

All state lives in an explicit :class:`AuthoringContext`. Model calls run
outside the context lock; each target (the plan, or one question id) can
only have one call in flight, and a second request for the same target is
refused with :class:`RegenerationPending`.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, fields, replace
from enum import IntEnum
from typing import Any, Dict, List, Optional, Sequence, Set

from . import config as cfg_defaults
from .errors import GuardFailed, PersistenceFailed, RegenerationPending
from .generation import generate_questions, rekey_if_taken
from .llm_bridge import ModelBackend
from .records import RecordStore, new_record_id, save_test, utcnow_iso
from .types import (
    GeneratedQuestion,
    GenerationMode,
    GenerationRequest,
    GenerationResult,
    QuestionPlan,
    TestConfig,
    TestSpecification,
)

log = logging.getLogger(__name__)


class WizardStep(IntEnum):
    SPEC = 1
    PLAN_REVIEW = 2
    RESULTS_CONFIG = 3
    DASHBOARD_CONFIG = 4
    PUBLISHED = 5


# spec fields editable per step; the first group locks once a generation succeeded
_SPEC_FIELDS = {
    "objective",
    "theme",
    "grading_description",
    "question_count",
    "additional_requirements",
}
_STEP_FIELDS: Dict[WizardStep, Set[str]] = {
    WizardStep.SPEC: _SPEC_FIELDS | {"candidate_results_description", "admin_dashboard_description"},
    WizardStep.PLAN_REVIEW: set(),
    WizardStep.RESULTS_CONFIG: {"candidate_results_description"},
    WizardStep.DASHBOARD_CONFIG: {"admin_dashboard_description"},
    WizardStep.PUBLISHED: set(),
}


def index_of(questions: Sequence[GeneratedQuestion], question_id: str) -> Optional[int]:
    for i, q in enumerate(questions):
        if q.id == question_id:
            return i
    return None


@dataclass
class AuthoringContext:
    spec: TestSpecification = field(default_factory=TestSpecification)
    step: WizardStep = WizardStep.SPEC
    plan: Optional[QuestionPlan] = None
    pool: List[GeneratedQuestion] = field(default_factory=list)
    selection: List[GeneratedQuestion] = field(default_factory=list)
    generated: bool = False
    plan_pending: bool = False
    pending_questions: Set[str] = field(default_factory=set)
    published: Optional[TestConfig] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": self.step.name.lower(),
            "stepNumber": int(self.step),
            "spec": self.spec.to_dict(),
            "plan": self.plan.to_dict() if self.plan else None,
            "questions": [q.to_dict() for q in self.pool],
            "selectedQuestions": [q.to_dict() for q in self.selection],
            "generated": self.generated,
            "planPending": self.plan_pending,
            "pendingQuestions": sorted(self.pending_questions),
            "published": self.published.to_dict() if self.published else None,
        }


class AuthoringWorkflow:
    def __init__(self, backend: ModelBackend, context: Optional[AuthoringContext] = None) -> None:
        self.backend = backend
        self.ctx = context or AuthoringContext()
        self._lock = threading.RLock()

    # ---- guards ----
    def _require_step(self, *steps: WizardStep) -> None:
        if self.ctx.step not in steps:
            names = ", ".join(s.name for s in steps)
            raise GuardFailed(f"expected step {names}, workflow is at {self.ctx.step.name}")

    def can_advance(self) -> bool:
        ctx = self.ctx
        if ctx.step is WizardStep.SPEC:
            return bool(ctx.spec.objective.strip() and ctx.spec.theme.strip())
        if ctx.step is WizardStep.PLAN_REVIEW:
            return ctx.generated and bool(ctx.selection)
        return ctx.step is WizardStep.RESULTS_CONFIG

    # ---- navigation ----
    def advance(self) -> WizardStep:
        with self._lock:
            if self.ctx.step is WizardStep.DASHBOARD_CONFIG:
                raise GuardFailed("publishing goes through finish()")
            if not self.can_advance():
                raise GuardFailed(f"cannot leave step {self.ctx.step.name} yet")
            self.ctx.step = WizardStep(self.ctx.step + 1)
            return self.ctx.step

    def back(self) -> WizardStep:
        with self._lock:
            if self.ctx.step is WizardStep.PUBLISHED:
                raise GuardFailed("a published test can no longer be edited")
            if self.ctx.step is not WizardStep.SPEC:
                self.ctx.step = WizardStep(self.ctx.step - 1)
            return self.ctx.step

    def update_spec(self, **changes: Any) -> TestSpecification:
        known = {f.name for f in fields(TestSpecification)}
        unknown = set(changes) - known
        if unknown:
            raise ValueError(f"unknown specification fields: {', '.join(sorted(unknown))}")
        with self._lock:
            allowed = _STEP_FIELDS[self.ctx.step]
            if self.ctx.generated:
                allowed = allowed - _SPEC_FIELDS
            refused = set(changes) - allowed
            if refused:
                raise GuardFailed(f"fields not editable now: {', '.join(sorted(refused))}")
            if "question_count" in changes:
                changes["question_count"] = cfg_defaults.clamp_question_count(changes["question_count"])
            self.ctx.spec = replace(self.ctx.spec, **changes)
            return self.ctx.spec

    # ---- generation ----
    def _store_batch(self, result: GenerationResult) -> None:
        seen: Set[str] = set()
        pool: List[GeneratedQuestion] = []
        for q in result.questions:
            q = rekey_if_taken(q, seen)
            seen.add(q.id)
            pool.append(q)
        self.ctx.plan = result.plan
        self.ctx.pool = pool
        self.ctx.selection = []
        self.ctx.generated = True

    def _generate_plan(self, feedback: Optional[str]) -> GenerationResult:
        with self._lock:
            self._require_step(WizardStep.PLAN_REVIEW)
            if self.ctx.plan_pending:
                raise RegenerationPending("plan generation already in progress")
            self.ctx.plan_pending = True
            request = GenerationRequest(
                spec=replace(self.ctx.spec),
                mode=GenerationMode.PLAN_REGENERATION if feedback else GenerationMode.FULL,
                regeneration_feedback=feedback,
            )
        try:
            result = generate_questions(self.backend, request)
        finally:
            with self._lock:
                self.ctx.plan_pending = False
        with self._lock:
            self._store_batch(result)
            log.info("plan stored: %d categories, %d questions", len(result.plan.categories), len(self.ctx.pool))
        return result

    def generate(self) -> GenerationResult:
        """First generation; also usable to retry after a failure."""
        return self._generate_plan(None)

    def regenerate_plan(self, feedback: str) -> GenerationResult:
        """Replace plan and pool wholesale; the selection is cleared."""
        if not (feedback or "").strip():
            raise GuardFailed("regeneration feedback is required")
        return self._generate_plan(feedback.strip())

    def regenerate_question(self, question_id: str, feedback: str) -> GeneratedQuestion:
        if not (feedback or "").strip():
            raise GuardFailed("regeneration feedback is required")
        with self._lock:
            self._require_step(WizardStep.PLAN_REVIEW)
            idx = index_of(self.ctx.pool, question_id)
            if idx is None:
                raise GuardFailed(f"question {question_id} is not in the pool")
            if question_id in self.ctx.pending_questions:
                raise RegenerationPending(f"question {question_id} is already being regenerated")
            self.ctx.pending_questions.add(question_id)
            request = GenerationRequest(
                spec=replace(self.ctx.spec),
                mode=GenerationMode.SINGLE_QUESTION,
                regeneration_feedback=feedback.strip(),
                question_to_replace=self.ctx.pool[idx],
            )
        try:
            result = generate_questions(self.backend, request)
        finally:
            with self._lock:
                self.ctx.pending_questions.discard(question_id)
        with self._lock:
            idx = index_of(self.ctx.pool, question_id)
            if idx is None:
                # the plan was regenerated while this call was in flight
                raise GuardFailed(f"question {question_id} left the pool during regeneration")
            taken = {q.id for q in self.ctx.pool} | {q.id for q in self.ctx.selection}
            new_q = rekey_if_taken(result.questions[0], taken)
            self.ctx.pool[idx] = new_q
            sel_idx = index_of(self.ctx.selection, question_id)
            if sel_idx is not None:
                self.ctx.selection[sel_idx] = new_q
            log.info("question %s replaced by %s", question_id, new_q.id)
            return new_q

    # ---- selection ----
    def add_question(self, question_id: str) -> bool:
        """Append a pool question to the selection; no-op if already selected."""
        with self._lock:
            self._require_step(WizardStep.PLAN_REVIEW)
            idx = index_of(self.ctx.pool, question_id)
            if idx is None:
                raise GuardFailed(f"question {question_id} is not in the pool")
            if index_of(self.ctx.selection, question_id) is not None:
                return False
            self.ctx.selection.append(self.ctx.pool[idx])
            return True

    def remove_question(self, question_id: str) -> bool:
        with self._lock:
            self._require_step(WizardStep.PLAN_REVIEW)
            idx = index_of(self.ctx.selection, question_id)
            if idx is None:
                return False
            del self.ctx.selection[idx]
            return True

    def move_question(self, question_id: str, direction: str) -> bool:
        if direction not in ("up", "down"):
            raise ValueError(f"direction must be 'up' or 'down', got {direction!r}")
        with self._lock:
            self._require_step(WizardStep.PLAN_REVIEW)
            sel = self.ctx.selection
            idx = index_of(sel, question_id)
            if idx is None:
                return False
            target = idx - 1 if direction == "up" else idx + 1
            if target < 0 or target >= len(sel):
                return False
            sel[idx], sel[target] = sel[target], sel[idx]
            return True

    def questions_by_category(self) -> Dict[str, List[GeneratedQuestion]]:
        grouped: Dict[str, List[GeneratedQuestion]] = {}
        if self.ctx.plan is not None:
            for name in self.ctx.plan.category_names():
                grouped.setdefault(name, [])
        for q in self.ctx.pool:
            grouped.setdefault(q.category, []).append(q)
        return grouped

    # ---- publishing ----
    def finish(self, store: RecordStore, base_url: Optional[str] = None) -> TestConfig:
        with self._lock:
            self._require_step(WizardStep.DASHBOARD_CONFIG)
            test_id = new_record_id("test")
            base = (base_url or cfg_defaults.PUBLIC_BASE_URL).rstrip("/")
            config = TestConfig(
                id=test_id,
                spec=replace(self.ctx.spec),
                selected_questions=list(self.ctx.selection),
                created_at=utcnow_iso(),
                question_plan=self.ctx.plan,
                share_link=f"{base}/test/{test_id}",
            )
            try:
                save_test(store, config)
            except Exception as e:
                log.exception("could not persist test %s", test_id)
                raise PersistenceFailed("Failed to create the test") from e
            self.ctx.published = config
            self.ctx.step = WizardStep.PUBLISHED
            log.info("test published: %s (%d questions)", test_id, len(config.selected_questions))
            return config


__all__ = ["WizardStep", "AuthoringContext", "AuthoringWorkflow", "index_of"]
