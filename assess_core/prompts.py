"""Prompt assembly for question generation and answer evaluation.

All functions are pure: they only format their inputs into instruction text.
The matching output schemas live in :mod:`assess_core.schemas`.
"""
from __future__ import annotations

from typing import Mapping, Optional, Sequence

from .config import NO_ANSWER_TEXT
from .types import GeneratedQuestion, TestSpecification

AUTHOR_SYSTEM = (
    "You are an expert in designing educational and professional tests. "
    "Reply only with a JSON object matching the requested schema."
)

GRADER_SYSTEM = (
    "You are an expert evaluator. Grade objectively and constructively. "
    "Reply only with a JSON object matching the requested schema."
)


def build_generation_prompt(spec: TestSpecification, feedback: Optional[str] = None) -> str:
    """Instruction for a full plan + question batch, optionally revised by feedback."""
    n = spec.question_count
    extra = (spec.additional_requirements or "").strip() or "No additional requirements"
    revision = ""
    if feedback and feedback.strip():
        revision = (
            f"\n\nUSER FEEDBACK FOR IMPROVEMENT: {feedback.strip()}\n"
            "Take this feedback into account when adjusting the plan and the questions."
        )
    return f"""Create a structured test plan and {n} tailored questions based on these criteria:

OBJECTIVE: {spec.objective}
THEME: {spec.theme}
GRADING SYSTEM: {spec.grading_description}
REQUIREMENTS: {extra}{revision}

STEP 1 - TEST PLAN:
Propose a structured plan with:
- An introduction explaining your approach (2-3 sentences)
- Question categories relevant to the objective (e.g. "Theory", "Practice", "Case analysis")
- For each category: a description, a suggested number of questions and a rationale
- The suggested counts must add up to {n} questions, and totalQuestions must be {n}

STEP 2 - QUESTIONS:
For each question:
1. Assign it to one of the plan categories, using the category name exactly
2. Pick a question type suited to the context (QCM, free answer, analysis, ...)
3. Set the number of points according to its importance
4. Explain why the question is relevant (aiRationale)
5. For closed questions, give the expected answer
6. Give it an id that is unique within this batch

Vary question types and difficulty levels to fit the professional context."""


def build_question_regeneration_prompt(
    spec: TestSpecification,
    question: GeneratedQuestion,
    feedback: str,
) -> str:
    """Instruction for replacing exactly one question, keeping its category."""
    return f"""Generate ONE new question to replace this one:

QUESTION TO REPLACE:
- Content: {question.content}
- Type: {question.type}
- Category: {question.category}
- Points: {question.points:g}

TEST CONTEXT:
- Objective: {spec.objective}
- Theme: {spec.theme}
- Grading system: {spec.grading_description}

USER FEEDBACK: {feedback.strip()}

Write a new question in the same category ({question.category}) that addresses the feedback.
The new question must:
1. Stay in the category "{question.category}"
2. Keep a similar difficulty level
3. Follow the feedback provided
4. Have a new unique id, different from "{question.id}"

Return the plan unchanged in spirit and a questions list holding only this new question."""


def _answer_text(answers: Mapping[str, str], question_id: str) -> str:
    text = answers.get(question_id) or ""
    return text if text.strip() else NO_ANSWER_TEXT


def build_evaluation_prompt(
    *,
    candidate_name: str,
    title: str,
    description: str,
    questions: Sequence[GeneratedQuestion],
    answers: Mapping[str, str],
) -> str:
    blocks = []
    for i, q in enumerate(questions, start=1):
        expected = f"\nExpected answer: {q.expected_answer}" if q.expected_answer else ""
        blocks.append(
            f"Question {i} (id: {q.id}, type: {q.type}, {q.points:g} points):\n"
            f"{q.content}\n\n"
            f"Candidate answer:\n{_answer_text(answers, q.id)}"
            f"{expected}"
        )
    body = "\n---\n".join(blocks)
    return f"""Evaluate this test objectively and with goodwill.

CANDIDATE: {candidate_name}
TEST TITLE: {title}
DESCRIPTION: {description}

QUESTIONS AND ANSWERS:
{body}

EVALUATION GUIDELINES:
1. Score every answer from 0 to the question's maximum points
2. Return exactly one questionEvaluations entry per question, using its id as questionId, including unanswered ones
3. Be supportive but objective, and give constructive feedback
4. Identify strengths and areas for improvement
5. Propose concrete recommendations
6. Compute an overall score out of 100 that reflects the overall performance"""


__all__ = [
    "AUTHOR_SYSTEM",
    "GRADER_SYSTEM",
    "build_generation_prompt",
    "build_question_regeneration_prompt",
    "build_evaluation_prompt",
]
