from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from .config import QUESTION_COUNT_DEFAULT, clamp_question_count


def _str(raw: Mapping[str, Any], key: str, default: str = "") -> str:
    val = raw.get(key)
    return default if val is None else str(val)


def _num(raw: Mapping[str, Any], key: str, default: float = 0.0) -> float:
    try:
        return float(raw.get(key, default))
    except (TypeError, ValueError):
        return default


def _str_list(raw: Mapping[str, Any], key: str) -> List[str]:
    return [str(v) for v in (raw.get(key) or [])]


@dataclass
class TestSpecification:
    __test__ = False  # not a pytest class

    objective: str = ""
    theme: str = ""
    grading_description: str = ""
    question_count: int = 10
    additional_requirements: str = ""
    candidate_results_description: str = ""
    admin_dashboard_description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "objective": self.objective,
            "theme": self.theme,
            "gradingDescription": self.grading_description,
            "questionCount": self.question_count,
            "additionalRequirements": self.additional_requirements,
            "candidateResultsDescription": self.candidate_results_description,
            "adminDashboardDescription": self.admin_dashboard_description,
        }

    @staticmethod
    def from_dict(raw: Mapping[str, Any]) -> "TestSpecification":
        count = clamp_question_count(raw.get("questionCount", QUESTION_COUNT_DEFAULT))
        return TestSpecification(
            objective=_str(raw, "objective"),
            theme=_str(raw, "theme"),
            grading_description=_str(raw, "gradingDescription"),
            question_count=count,
            additional_requirements=_str(raw, "additionalRequirements"),
            candidate_results_description=_str(raw, "candidateResultsDescription"),
            admin_dashboard_description=_str(raw, "adminDashboardDescription"),
        )


@dataclass(frozen=True)
class QuestionCategory:
    category: str
    description: str
    suggested_count: int
    rationale: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "description": self.description,
            "suggestedCount": self.suggested_count,
            "rationale": self.rationale,
        }

    @staticmethod
    def from_dict(raw: Mapping[str, Any]) -> "QuestionCategory":
        return QuestionCategory(
            category=_str(raw, "category"),
            description=_str(raw, "description"),
            suggested_count=int(_num(raw, "suggestedCount")),
            rationale=_str(raw, "rationale"),
        )


@dataclass(frozen=True)
class QuestionPlan:
    introduction: str
    categories: List[QuestionCategory]
    total_questions: int

    def category_names(self) -> List[str]:
        return [c.category for c in self.categories]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "introduction": self.introduction,
            "categories": [c.to_dict() for c in self.categories],
            "totalQuestions": self.total_questions,
        }

    @staticmethod
    def from_dict(raw: Mapping[str, Any]) -> "QuestionPlan":
        return QuestionPlan(
            introduction=_str(raw, "introduction"),
            categories=[QuestionCategory.from_dict(c) for c in raw.get("categories") or []],
            total_questions=int(_num(raw, "totalQuestions")),
        )


@dataclass(frozen=True)
class GeneratedQuestion:
    id: str
    content: str
    type: str
    category: str
    points: float
    ai_rationale: str
    expected_answer: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "content": self.content,
            "type": self.type,
            "category": self.category,
            "points": self.points,
            "aiRationale": self.ai_rationale,
        }
        if self.expected_answer is not None:
            out["expectedAnswer"] = self.expected_answer
        return out

    @staticmethod
    def from_dict(raw: Mapping[str, Any]) -> "GeneratedQuestion":
        expected = raw.get("expectedAnswer")
        return GeneratedQuestion(
            id=_str(raw, "id"),
            content=_str(raw, "content"),
            type=_str(raw, "type"),
            category=_str(raw, "category"),
            points=_num(raw, "points"),
            ai_rationale=_str(raw, "aiRationale"),
            expected_answer=None if expected is None else str(expected),
        )


@dataclass(frozen=True)
class GenerationResult:
    plan: QuestionPlan
    questions: List[GeneratedQuestion]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "plan": self.plan.to_dict(),
            "questions": [q.to_dict() for q in self.questions],
        }


@dataclass
class TestConfig:
    """A published test: the specification plus the curated question list."""

    __test__ = False

    id: str
    spec: TestSpecification
    selected_questions: List[GeneratedQuestion]
    created_at: str
    question_plan: Optional[QuestionPlan] = None
    share_link: Optional[str] = None

    @property
    def title(self) -> str:
        return self.spec.objective or "Custom test"

    @property
    def description(self) -> str:
        return self.spec.theme or "Test created with AI"

    def to_dict(self) -> Dict[str, Any]:
        out = {"id": self.id, **self.spec.to_dict()}
        out["selectedQuestions"] = [q.to_dict() for q in self.selected_questions]
        if self.question_plan is not None:
            out["questionPlan"] = self.question_plan.to_dict()
        out["createdAt"] = self.created_at
        if self.share_link:
            out["shareLink"] = self.share_link
        return out

    @staticmethod
    def from_dict(raw: Mapping[str, Any]) -> "TestConfig":
        plan_raw = raw.get("questionPlan")
        return TestConfig(
            id=_str(raw, "id"),
            spec=TestSpecification.from_dict(raw),
            selected_questions=[GeneratedQuestion.from_dict(q) for q in raw.get("selectedQuestions") or []],
            created_at=_str(raw, "createdAt"),
            question_plan=QuestionPlan.from_dict(plan_raw) if isinstance(plan_raw, Mapping) else None,
            share_link=raw.get("shareLink") or None,
        )


@dataclass(frozen=True)
class QuestionEvaluation:
    question_id: str
    score: float
    feedback: str
    suggestions: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "questionId": self.question_id,
            "score": self.score,
            "feedback": self.feedback,
            "suggestions": self.suggestions,
        }

    @staticmethod
    def from_dict(raw: Mapping[str, Any]) -> "QuestionEvaluation":
        return QuestionEvaluation(
            question_id=_str(raw, "questionId"),
            score=_num(raw, "score"),
            feedback=_str(raw, "feedback"),
            suggestions=_str(raw, "suggestions"),
        )


@dataclass(frozen=True)
class EvaluationDraft:
    """Model verdict for one submission, before an id and timestamp are assigned."""

    test_id: str
    candidate_name: str
    overall_score: float
    total_points: float
    earned_points: float
    question_evaluations: List[QuestionEvaluation]
    global_feedback: str
    strengths: List[str] = field(default_factory=list)
    areas_for_improvement: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class EvaluationResult:
    id: str
    test_id: str
    candidate_name: str
    overall_score: float
    total_points: float
    earned_points: float
    question_evaluations: List[QuestionEvaluation]
    global_feedback: str
    strengths: List[str]
    areas_for_improvement: List[str]
    recommendations: List[str]
    completed_at: str

    @staticmethod
    def from_draft(draft: EvaluationDraft, *, result_id: str, completed_at: str) -> "EvaluationResult":
        return EvaluationResult(
            id=result_id,
            test_id=draft.test_id,
            candidate_name=draft.candidate_name,
            overall_score=draft.overall_score,
            total_points=draft.total_points,
            earned_points=draft.earned_points,
            question_evaluations=list(draft.question_evaluations),
            global_feedback=draft.global_feedback,
            strengths=list(draft.strengths),
            areas_for_improvement=list(draft.areas_for_improvement),
            recommendations=list(draft.recommendations),
            completed_at=completed_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "testId": self.test_id,
            "candidateName": self.candidate_name,
            "overallScore": self.overall_score,
            "totalPoints": self.total_points,
            "earnedPoints": self.earned_points,
            "questionEvaluations": [e.to_dict() for e in self.question_evaluations],
            "globalFeedback": self.global_feedback,
            "strengths": list(self.strengths),
            "areasForImprovement": list(self.areas_for_improvement),
            "recommendations": list(self.recommendations),
            "completedAt": self.completed_at,
        }

    @staticmethod
    def from_dict(raw: Mapping[str, Any]) -> "EvaluationResult":
        return EvaluationResult(
            id=_str(raw, "id"),
            test_id=_str(raw, "testId"),
            candidate_name=_str(raw, "candidateName"),
            overall_score=_num(raw, "overallScore"),
            total_points=_num(raw, "totalPoints"),
            earned_points=_num(raw, "earnedPoints"),
            question_evaluations=[QuestionEvaluation.from_dict(e) for e in raw.get("questionEvaluations") or []],
            global_feedback=_str(raw, "globalFeedback"),
            strengths=_str_list(raw, "strengths"),
            areas_for_improvement=_str_list(raw, "areasForImprovement"),
            recommendations=_str_list(raw, "recommendations"),
            completed_at=_str(raw, "completedAt"),
        )


class GenerationMode(str, Enum):
    FULL = "full"
    PLAN_REGENERATION = "plan_regeneration"
    SINGLE_QUESTION = "single_question"


@dataclass(frozen=True)
class GenerationRequest:
    spec: TestSpecification
    mode: GenerationMode = GenerationMode.FULL
    regeneration_feedback: Optional[str] = None
    question_to_replace: Optional[GeneratedQuestion] = None

    @staticmethod
    def from_payload(raw: Mapping[str, Any]) -> "GenerationRequest":
        """Derive the mode from the wire flags of a generate call."""
        feedback = raw.get("regenerationFeedback")
        feedback = str(feedback) if feedback else None
        replace_raw = raw.get("questionToReplace")
        if raw.get("regenerateSpecificQuestion") and isinstance(replace_raw, Mapping):
            return GenerationRequest(
                spec=TestSpecification.from_dict(raw),
                mode=GenerationMode.SINGLE_QUESTION,
                regeneration_feedback=feedback,
                question_to_replace=GeneratedQuestion.from_dict(replace_raw),
            )
        mode = GenerationMode.PLAN_REGENERATION if feedback and feedback.strip() else GenerationMode.FULL
        return GenerationRequest(spec=TestSpecification.from_dict(raw), mode=mode, regeneration_feedback=feedback)


@dataclass(frozen=True)
class EvaluationSubmission:
    test_id: str
    candidate_name: str
    title: str
    description: str
    questions: List[GeneratedQuestion]
    answers: Dict[str, str] = field(default_factory=dict)

    def answer_for(self, question_id: str) -> str:
        return self.answers.get(question_id) or ""


__all__ = [
    "TestSpecification",
    "QuestionCategory",
    "QuestionPlan",
    "GeneratedQuestion",
    "GenerationResult",
    "TestConfig",
    "QuestionEvaluation",
    "EvaluationDraft",
    "EvaluationResult",
    "GenerationMode",
    "GenerationRequest",
    "EvaluationSubmission",
]
