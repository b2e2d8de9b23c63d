"""Structured-output schemas declared to the model and used to validate its replies.

Field names follow the JSON wire format (camelCase) so the same models can
be handed to the model as a JSON schema and parsed back without aliasing.
"""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .types import (
    EvaluationDraft,
    GeneratedQuestion,
    GenerationResult,
    QuestionCategory,
    QuestionEvaluation,
    QuestionPlan,
)


class _Schema(BaseModel):
    model_config = ConfigDict(extra="ignore")


class QuestionCategorySchema(_Schema):
    category: str
    description: str
    suggestedCount: int
    rationale: str


class QuestionPlanSchema(_Schema):
    introduction: str
    categories: List[QuestionCategorySchema]
    totalQuestions: int


class QuestionSchema(_Schema):
    id: str
    content: str
    type: str
    category: str
    expectedAnswer: Optional[str] = None
    points: float = Field(gt=0)
    aiRationale: str

    def to_domain(self) -> GeneratedQuestion:
        return GeneratedQuestion(
            id=self.id,
            content=self.content,
            type=self.type,
            category=self.category,
            points=self.points,
            ai_rationale=self.aiRationale,
            expected_answer=self.expectedAnswer,
        )


class QuestionsResponseSchema(_Schema):
    plan: QuestionPlanSchema
    questions: List[QuestionSchema]

    def to_domain(self) -> GenerationResult:
        plan = QuestionPlan(
            introduction=self.plan.introduction,
            categories=[
                QuestionCategory(
                    category=c.category,
                    description=c.description,
                    suggested_count=c.suggestedCount,
                    rationale=c.rationale,
                )
                for c in self.plan.categories
            ],
            total_questions=self.plan.totalQuestions,
        )
        return GenerationResult(plan=plan, questions=[q.to_domain() for q in self.questions])


class SingleQuestionResponseSchema(QuestionsResponseSchema):
    questions: List[QuestionSchema] = Field(min_length=1, max_length=1)


class QuestionEvaluationSchema(_Schema):
    questionId: str
    score: float
    feedback: str
    suggestions: str


class EvaluationSchema(_Schema):
    # earnedPoints/totalPoints/overallScore are taken as returned; nothing
    # here reconciles them with each other.
    overallScore: float = Field(ge=0, le=100)
    totalPoints: float
    earnedPoints: float
    questionEvaluations: List[QuestionEvaluationSchema]
    globalFeedback: str
    strengths: List[str]
    areasForImprovement: List[str]
    recommendations: List[str]

    def to_draft(self, *, test_id: str, candidate_name: str) -> EvaluationDraft:
        return EvaluationDraft(
            test_id=test_id,
            candidate_name=candidate_name,
            overall_score=self.overallScore,
            total_points=self.totalPoints,
            earned_points=self.earnedPoints,
            question_evaluations=[
                QuestionEvaluation(
                    question_id=e.questionId,
                    score=e.score,
                    feedback=e.feedback,
                    suggestions=e.suggestions,
                )
                for e in self.questionEvaluations
            ],
            global_feedback=self.globalFeedback,
            strengths=list(self.strengths),
            areas_for_improvement=list(self.areasForImprovement),
            recommendations=list(self.recommendations),
        )


__all__ = [
    "QuestionCategorySchema",
    "QuestionPlanSchema",
    "QuestionSchema",
    "QuestionsResponseSchema",
    "SingleQuestionResponseSchema",
    "QuestionEvaluationSchema",
    "EvaluationSchema",
]
