from __future__ import annotations

from assess_core.config import NO_ANSWER_TEXT
from assess_core.prompts import (
    build_evaluation_prompt,
    build_generation_prompt,
    build_question_regeneration_prompt,
)
from assess_core.types import GeneratedQuestion
from tests.conftest import build_plan, build_questions


def test_generation_prompt_carries_spec(go_spec):
    prompt = build_generation_prompt(go_spec)
    assert "Assess Go developers" in prompt
    assert "Go concurrency" in prompt
    assert "5 tailored questions" in prompt
    assert "No additional requirements" in prompt
    assert "USER FEEDBACK" not in prompt


def test_generation_prompt_with_feedback(go_spec):
    prompt = build_generation_prompt(go_spec, "  more practical questions ")
    assert "USER FEEDBACK FOR IMPROVEMENT: more practical questions" in prompt
    # blank feedback is the same as none
    assert "USER FEEDBACK" not in build_generation_prompt(go_spec, "   ")


def test_regeneration_prompt_pins_category_and_id(go_spec):
    q = GeneratedQuestion(id="q3", content="Explain channels", type="free answer",
                          category="Practice", points=4, ai_rationale="core")
    prompt = build_question_regeneration_prompt(go_spec, q, "make it harder")
    assert "Explain channels" in prompt
    assert 'Stay in the category "Practice"' in prompt
    assert 'different from "q3"' in prompt
    assert "USER FEEDBACK: make it harder" in prompt


def test_evaluation_prompt_marks_missing_answers():
    questions = build_questions(build_plan(3))
    prompt = build_evaluation_prompt(
        candidate_name="Ada",
        title="Go test",
        description="Concurrency",
        questions=questions,
        answers={"q1": "goroutines", "q2": "   "},
    )
    assert "CANDIDATE: Ada" in prompt
    assert prompt.count(NO_ANSWER_TEXT) == 2
    for q in questions:
        assert f"id: {q.id}" in prompt
