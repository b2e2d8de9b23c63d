"""Candidate-side session over a published test.

States: ``NOT_FOUND`` (terminal), ``NOT_STARTED -> IN_PROGRESS -> SUBMITTED``.
Answers are always free text, whatever format the question type names.
"""
from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import GuardFailed, SubmissionFailed
from .evaluation import evaluate_submission, finalize_result
from .llm_bridge import ModelBackend
from .records import RecordStore, load_test, save_result
from .types import EvaluationResult, EvaluationSubmission, GeneratedQuestion, TestConfig

log = logging.getLogger(__name__)

_CHOICE_MARKERS = ("qcm", "choix", "choice", "mcq")
_AUDIO_MARKERS = ("audio",)

CHOICE_NOTICE = (
    "This question was meant as multiple choice but no options are available. "
    "Answer in free text."
)
AUDIO_NOTICE = (
    "This question relies on an audio file that is not available. "
    "Answer based on your understanding."
)


def format_notice(question_type: Optional[str]) -> Optional[str]:
    """Warning shown when the declared format cannot be honoured."""
    t = (question_type or "").lower()
    if any(m in t for m in _CHOICE_MARKERS):
        return CHOICE_NOTICE
    if any(m in t for m in _AUDIO_MARKERS):
        return AUDIO_NOTICE
    return None


class SessionState(str, Enum):
    NOT_FOUND = "not_found"
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"


class TestSession:
    __test__ = False

    def __init__(self, test_id: str, config: Optional[TestConfig]) -> None:
        self.test_id = test_id
        self.config = config
        self.state = SessionState.NOT_STARTED if config is not None else SessionState.NOT_FOUND
        self.candidate_name = ""
        self.cursor = 0
        self.answers: Dict[str, str] = {}
        self.result: Optional[EvaluationResult] = None
        self._submitting = False
        self._lock = threading.Lock()

    @classmethod
    def load(cls, store: RecordStore, test_id: str) -> "TestSession":
        config = load_test(store, test_id)
        if config is None:
            log.info("test %s not found", test_id)
        return cls(test_id, config)

    @property
    def found(self) -> bool:
        return self.state is not SessionState.NOT_FOUND

    @property
    def questions(self) -> List[GeneratedQuestion]:
        return list(self.config.selected_questions) if self.config else []

    @property
    def current_question(self) -> Optional[GeneratedQuestion]:
        qs = self.questions
        if self.state is not SessionState.IN_PROGRESS or not qs:
            return None
        return qs[self.cursor]

    @property
    def is_last(self) -> bool:
        return bool(self.questions) and self.cursor == len(self.questions) - 1

    def _require(self, state: SessionState) -> None:
        if self.state is not state:
            raise GuardFailed(f"session is {self.state.value}, expected {state.value}")

    def start(self, candidate_name: str) -> None:
        with self._lock:
            self._require(SessionState.NOT_STARTED)
            name = (candidate_name or "").strip()
            if not name:
                raise GuardFailed("candidate name is required")
            if not self.questions:
                raise GuardFailed("this test has no questions")
            self.candidate_name = name
            self.cursor = 0
            self.state = SessionState.IN_PROGRESS

    def next(self) -> int:
        with self._lock:
            self._require(SessionState.IN_PROGRESS)
            if self.cursor < len(self.questions) - 1:
                self.cursor += 1
            return self.cursor

    def previous(self) -> int:
        with self._lock:
            self._require(SessionState.IN_PROGRESS)
            if self.cursor > 0:
                self.cursor -= 1
            return self.cursor

    def answer(self, text: str) -> None:
        q = self.current_question
        if q is None:
            raise GuardFailed("no question is being answered")
        self.answer_for(q.id, text)

    def answer_for(self, question_id: str, text: str) -> None:
        with self._lock:
            self._require(SessionState.IN_PROGRESS)
            if question_id not in {q.id for q in self.questions}:
                raise GuardFailed(f"question {question_id} is not part of this test")
            self.answers[question_id] = text or ""

    def submission(self) -> EvaluationSubmission:
        if self.config is None:
            raise GuardFailed("test not found")
        return EvaluationSubmission(
            test_id=self.test_id,
            candidate_name=self.candidate_name,
            title=self.config.title,
            description=self.config.description,
            questions=self.questions,
            answers=dict(self.answers),
        )

    def submit(self, backend: ModelBackend, store: RecordStore) -> EvaluationResult:
        """Grade and persist; only available from the last question."""
        with self._lock:
            self._require(SessionState.IN_PROGRESS)
            if not self.is_last:
                raise GuardFailed("submission is only available from the last question")
            if self._submitting:
                raise GuardFailed("submission already in progress")
            self._submitting = True
            submission = self.submission()
        try:
            draft = evaluate_submission(backend, submission)
            result = finalize_result(draft)
            save_result(store, result)
        except Exception as e:
            log.warning("submission failed for test %s: %s", self.test_id, e)
            raise SubmissionFailed() from e
        finally:
            with self._lock:
                self._submitting = False
        with self._lock:
            self.result = result
            self.state = SessionState.SUBMITTED
        log.info("test %s submitted by %r -> %s", self.test_id, self.candidate_name, result.id)
        return result

    def to_dict(self) -> Dict[str, Any]:
        q = self.current_question
        current = None
        if q is not None:
            current = {
                **q.to_dict(),
                "answer": self.answers.get(q.id, ""),
                "notice": format_notice(q.type),
            }
        return {
            "testId": self.test_id,
            "state": self.state.value,
            "title": self.config.title if self.config else None,
            "description": self.config.description if self.config else None,
            "candidateName": self.candidate_name,
            "cursor": self.cursor,
            "totalQuestions": len(self.questions),
            "isLast": self.is_last,
            "currentQuestion": current,
            "answers": dict(self.answers),
            "resultId": self.result.id if self.result else None,
        }


__all__ = ["SessionState", "TestSession", "format_notice", "CHOICE_NOTICE", "AUDIO_NOTICE"]
