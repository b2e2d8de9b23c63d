"""Read-only view over one persisted evaluation result."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .config import score_label
from .records import RecordStore, load_result, load_test
from .types import EvaluationResult, GeneratedQuestion, TestConfig

log = logging.getLogger(__name__)


@dataclass
class QuestionRow:
    question_id: str
    score: float
    feedback: str
    suggestions: str
    content: Optional[str] = None
    category: Optional[str] = None
    points: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "questionId": self.question_id,
            "score": self.score,
            "feedback": self.feedback,
            "suggestions": self.suggestions,
            "content": self.content,
            "category": self.category,
            "points": self.points,
        }


@dataclass
class ResultView:
    result_id: str
    result: Optional[EvaluationResult] = None
    test: Optional[TestConfig] = None
    rows: List[QuestionRow] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.result is not None

    @property
    def score_label(self) -> Optional[str]:
        return score_label(self.result.overall_score) if self.result else None

    @property
    def test_title(self) -> Optional[str]:
        return self.test.title if self.test else None

    @classmethod
    def load(cls, store: RecordStore, result_id: str) -> "ResultView":
        """Absent or unreadable records give a not-found view, never an error."""
        result = load_result(store, result_id)
        if result is None:
            log.info("result %s not found", result_id)
            return cls(result_id=result_id)
        test = load_test(store, result.test_id)
        by_id: Dict[str, GeneratedQuestion] = {}
        if test is not None:
            by_id = {q.id: q for q in test.selected_questions}
        rows = []
        for ev in result.question_evaluations:
            q = by_id.get(ev.question_id)
            rows.append(
                QuestionRow(
                    question_id=ev.question_id,
                    score=ev.score,
                    feedback=ev.feedback,
                    suggestions=ev.suggestions,
                    content=q.content if q else None,
                    category=q.category if q else None,
                    points=q.points if q else None,
                )
            )
        return cls(result_id=result_id, result=result, test=test, rows=rows)

    def to_dict(self) -> Dict[str, Any]:
        if self.result is None:
            return {"found": False, "resultId": self.result_id}
        return {
            "found": True,
            "resultId": self.result_id,
            "scoreLabel": self.score_label,
            "testTitle": self.test_title,
            "evaluation": self.result.to_dict(),
            "questions": [r.to_dict() for r in self.rows],
        }


__all__ = ["ResultView", "QuestionRow"]
