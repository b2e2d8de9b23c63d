from __future__ import annotations

import pytest

from assess_core.errors import GuardFailed, SubmissionFailed
from assess_core.records import load_result
from assess_core.session import AUDIO_NOTICE, CHOICE_NOTICE, SessionState, TestSession, format_notice
from tests.conftest import FakeBackend


def test_unknown_test_is_not_found(store):
    sess = TestSession.load(store, "test_missing")
    assert sess.state is SessionState.NOT_FOUND
    assert not sess.found
    with pytest.raises(GuardFailed):
        sess.start("Ada")
    with pytest.raises(GuardFailed):
        sess.submission()


def test_start_requires_name(store, published_test):
    sess = TestSession.load(store, published_test.id)
    assert sess.state is SessionState.NOT_STARTED
    with pytest.raises(GuardFailed):
        sess.start("   ")
    sess.start(" Ada ")
    assert sess.state is SessionState.IN_PROGRESS
    assert sess.candidate_name == "Ada"
    assert sess.current_question.id == "q1"


def test_cursor_is_clamped(store, published_test):
    sess = TestSession.load(store, published_test.id)
    sess.start("Ada")
    assert sess.previous() == 0
    assert sess.next() == 1
    assert sess.next() == 2
    assert sess.next() == 2
    assert sess.is_last


def test_answers_survive_navigation(store, published_test):
    sess = TestSession.load(store, published_test.id)
    sess.start("Ada")
    sess.answer("first")
    sess.next()
    sess.answer("second")
    sess.previous()
    assert sess.to_dict()["currentQuestion"]["answer"] == "first"
    sess.answer_for("q3", "third")
    assert sess.answers == {"q1": "first", "q2": "second", "q3": "third"}
    with pytest.raises(GuardFailed):
        sess.answer_for("q9", "nope")


def test_submit_only_from_last_question(store, published_test, fake_backend):
    sess = TestSession.load(store, published_test.id)
    sess.start("Ada")
    with pytest.raises(GuardFailed):
        sess.submit(fake_backend, store)
    assert fake_backend.submissions == []


def test_submit_persists_result(store, published_test, fake_backend):
    sess = TestSession.load(store, published_test.id)
    sess.start("Ada")
    sess.answer("goroutines")
    sess.next()
    sess.next()
    sess.answer("select")
    result = sess.submit(fake_backend, store)
    assert sess.state is SessionState.SUBMITTED
    assert result.id.startswith("eval_")
    sent = fake_backend.submissions[0]
    assert sent.title == "Assess Go developers"
    assert sent.description == "Go concurrency"
    assert [q.id for q in sent.questions] == ["q1", "q2", "q3"]
    stored = load_result(store, result.id)
    assert stored is not None and stored.candidate_name == "Ada"
    assert [e.question_id for e in stored.question_evaluations] == ["q1", "q2", "q3"]
    with pytest.raises(GuardFailed):
        sess.answer("late")


def test_failed_submit_keeps_answers(store, published_test):
    backend = FakeBackend(fail_evaluate=True)
    sess = TestSession.load(store, published_test.id)
    sess.start("Ada")
    sess.answer("goroutines")
    sess.next()
    sess.next()
    with pytest.raises(SubmissionFailed):
        sess.submit(backend, store)
    assert sess.state is SessionState.IN_PROGRESS
    assert sess.answers == {"q1": "goroutines"}
    backend.fail_evaluate = False
    assert sess.submit(backend, store).candidate_name == "Ada"


def test_format_notice():
    assert format_notice("QCM") == CHOICE_NOTICE
    assert format_notice("Choix multiple") == CHOICE_NOTICE
    assert format_notice("audio comprehension") == AUDIO_NOTICE
    assert format_notice("free answer") is None
    assert format_notice(None) is None
