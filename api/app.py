from __future__ import annotations
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
import logging, uuid, typing as t

from assess_core import config as cfg_defaults
from assess_core.llm_clients import configured
from assess_core.errors import AssessError, EvaluationFailed, GuardFailed, NotFound
from assess_core.evaluation import evaluate_submission, finalize_result
from assess_core.generation import generate_questions
from assess_core.llm_bridge import ModelBackend, backend_from_config, backend_in_use
from assess_core.records import load_test, save_result
from assess_core.report_html import export_result_html
from assess_core.results import ResultView
from assess_core.session import TestSession
from assess_core.types import EvaluationSubmission, GeneratedQuestion, GenerationRequest
from assess_core.workflow import AuthoringWorkflow
from .storage import FileRecordStore

log = logging.getLogger(__name__)

STORE = FileRecordStore()
AUTHORING: dict[str, AuthoringWorkflow] = {}
SESSIONS: dict[str, TestSession] = {}
BACKEND: ModelBackend | None = None


def get_backend() -> ModelBackend:
    """Process-wide model backend, built from config on first use."""
    global BACKEND
    if BACKEND is None:
        BACKEND = backend_from_config()
    return BACKEND


app = FastAPI(title="Assessment Builder API")


@app.get("/")
def root():
    return {"status": "ok", "service": "assess-builder-api"}


app.add_middleware(
    CORSMiddleware,
    allow_origins=list(cfg_defaults.ALLOWED_ORIGINS),
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)


@app.exception_handler(AssessError)
async def _assess_error(request, exc: AssessError):
    if isinstance(exc, GuardFailed):
        return JSONResponse(status_code=409, content={"error": str(exc)})
    if isinstance(exc, NotFound):
        return JSONResponse(status_code=404, content={"error": str(exc)})
    # cause is already logged where it was raised
    return JSONResponse(status_code=500, content={"error": exc.public_message})


# ---- Schemas ----
class SpecFields(BaseModel):
    objective: str | None = None
    theme: str | None = None
    gradingDescription: str | None = None
    questionCount: int | None = None
    additionalRequirements: str | None = None
    candidateResultsDescription: str | None = None
    adminDashboardDescription: str | None = None


class GenerateReq(BaseModel):
    objective: str = ""
    theme: str = ""
    gradingDescription: str = ""
    questionCount: int = cfg_defaults.QUESTION_COUNT_DEFAULT
    additionalRequirements: str = ""
    regenerationFeedback: str | None = None
    regenerateSpecificQuestion: bool = False
    questionToReplace: dict[str, t.Any] | None = None


class TestDataReq(BaseModel):
    title: str = ""
    description: str = ""
    questions: list[dict[str, t.Any]] = Field(default_factory=list)


class EvaluateReq(BaseModel):
    testId: str
    candidateName: str
    answers: dict[str, str] = Field(default_factory=dict)
    testData: TestDataReq


class FeedbackReq(BaseModel):
    feedback: str


class SelectReq(BaseModel):
    questionId: str


class MoveReq(BaseModel):
    direction: t.Literal["up", "down"]


class FinishReq(BaseModel):
    baseUrl: str | None = None


class StartSessionReq(BaseModel):
    candidateName: str


class AnswerReq(BaseModel):
    answer: str
    questionId: str | None = None


# ---- Helpers ----
_SPEC_FIELD_NAMES = {
    "objective": "objective",
    "theme": "theme",
    "gradingDescription": "grading_description",
    "questionCount": "question_count",
    "additionalRequirements": "additional_requirements",
    "candidateResultsDescription": "candidate_results_description",
    "adminDashboardDescription": "admin_dashboard_description",
}


def _spec_changes(req: SpecFields) -> dict[str, t.Any]:
    return {_SPEC_FIELD_NAMES[k]: v for k, v in req.model_dump(exclude_none=True).items()}


def _workflow(sid: str) -> AuthoringWorkflow:
    wf = AUTHORING.get(sid)
    if not wf:
        raise HTTPException(404, "authoring session not found")
    return wf


def _authoring_state(sid: str, wf: AuthoringWorkflow) -> dict[str, t.Any]:
    return {
        "authoringId": sid,
        "canAdvance": wf.can_advance(),
        **wf.ctx.to_dict(),
        "questionsByCategory": {
            cat: [q.id for q in qs] for cat, qs in wf.questions_by_category().items()
        },
    }


def _session(sid: str) -> TestSession:
    sess = SESSIONS.get(sid)
    if not sess:
        raise HTTPException(404, "session not found")
    return sess


# ---- Health ----
@app.get("/health")
def health():
    cfg = cfg_defaults.load_config()
    return {
        "llm_backend": backend_in_use(cfg),
        "generation_model": cfg_defaults.GENERATION_MODEL,
        "evaluation_model": cfg_defaults.EVALUATION_MODEL,
        "openai_config_present": configured("openai", cfg),
        "azure_config_present": configured("azure"),
    }


# ---- Stateless model endpoints ----
@app.post("/api/generate-questions")
def api_generate_questions(req: GenerateReq):
    request = GenerationRequest.from_payload(req.model_dump())
    result = generate_questions(get_backend(), request)
    return result.to_dict()


@app.post("/api/evaluate-test")
def api_evaluate_test(req: EvaluateReq):
    try:
        questions = [GeneratedQuestion.from_dict(q) for q in req.testData.questions]
    except Exception as e:
        raise HTTPException(422, f"invalid question payload: {e}")
    submission = EvaluationSubmission(
        test_id=req.testId,
        candidate_name=req.candidateName,
        title=req.testData.title,
        description=req.testData.description,
        questions=questions,
        answers=dict(req.answers),
    )
    result = finalize_result(evaluate_submission(get_backend(), submission))
    try:
        save_result(STORE, result)
    except Exception as e:
        log.exception("could not persist result %s", result.id)
        raise EvaluationFailed() from e
    return {"success": True, "evaluationId": result.id, "evaluation": result.to_dict()}


# ---- Authoring ----
@app.post("/authoring/start")
def authoring_start(req: SpecFields | None = None):
    sid = str(uuid.uuid4())
    wf = AuthoringWorkflow(get_backend())
    changes = _spec_changes(req or SpecFields())
    if changes:
        wf.update_spec(**changes)
    AUTHORING[sid] = wf
    log.info("authoring session %s started", sid)
    return _authoring_state(sid, wf)


@app.get("/authoring/{sid}")
def authoring_get(sid: str):
    return _authoring_state(sid, _workflow(sid))


@app.patch("/authoring/{sid}/spec")
def authoring_update_spec(sid: str, req: SpecFields):
    wf = _workflow(sid)
    wf.update_spec(**_spec_changes(req))
    return _authoring_state(sid, wf)


@app.post("/authoring/{sid}/next")
def authoring_next(sid: str):
    wf = _workflow(sid)
    wf.advance()
    return _authoring_state(sid, wf)


@app.post("/authoring/{sid}/back")
def authoring_back(sid: str):
    wf = _workflow(sid)
    wf.back()
    return _authoring_state(sid, wf)


@app.post("/authoring/{sid}/generate")
def authoring_generate(sid: str):
    wf = _workflow(sid)
    wf.generate()
    return _authoring_state(sid, wf)


@app.post("/authoring/{sid}/regenerate")
def authoring_regenerate(sid: str, req: FeedbackReq):
    wf = _workflow(sid)
    wf.regenerate_plan(req.feedback)
    return _authoring_state(sid, wf)


@app.post("/authoring/{sid}/questions/{qid}/regenerate")
def authoring_regenerate_question(sid: str, qid: str, req: FeedbackReq):
    wf = _workflow(sid)
    new_q = wf.regenerate_question(qid, req.feedback)
    return {"replaced": qid, "question": new_q.to_dict(), **_authoring_state(sid, wf)}


@app.post("/authoring/{sid}/selection")
def authoring_select(sid: str, req: SelectReq):
    wf = _workflow(sid)
    added = wf.add_question(req.questionId)
    return {"changed": added, **_authoring_state(sid, wf)}


@app.delete("/authoring/{sid}/selection/{qid}")
def authoring_unselect(sid: str, qid: str):
    wf = _workflow(sid)
    removed = wf.remove_question(qid)
    return {"changed": removed, **_authoring_state(sid, wf)}


@app.post("/authoring/{sid}/selection/{qid}/move")
def authoring_move(sid: str, qid: str, req: MoveReq):
    wf = _workflow(sid)
    moved = wf.move_question(qid, req.direction)
    return {"changed": moved, **_authoring_state(sid, wf)}


@app.post("/authoring/{sid}/finish")
def authoring_finish(sid: str, req: FinishReq | None = None):
    wf = _workflow(sid)
    config = wf.finish(STORE, req.baseUrl if req else None)
    state = _authoring_state(sid, wf)
    # published; nothing left to edit
    AUTHORING.pop(sid, None)
    return {"testId": config.id, "shareLink": config.share_link, "test": config.to_dict(), **state}


# ---- Test taking ----
@app.get("/tests/{test_id}")
def get_test(test_id: str):
    config = load_test(STORE, test_id)
    if config is None:
        raise HTTPException(404, "test not found")
    return {
        "testId": config.id,
        "title": config.title,
        "description": config.description,
        "totalQuestions": len(config.selected_questions),
        "createdAt": config.created_at,
        "shareLink": config.share_link,
    }


@app.post("/tests/{test_id}/sessions")
def start_session(test_id: str, req: StartSessionReq):
    sess = TestSession.load(STORE, test_id)
    if not sess.found:
        raise HTTPException(404, "test not found")
    sess.start(req.candidateName)
    sid = str(uuid.uuid4())
    SESSIONS[sid] = sess
    log.info("test session %s started for %s", sid, test_id)
    return {"sessionId": sid, **sess.to_dict()}


@app.get("/sessions/{sid}")
def get_session(sid: str):
    return {"sessionId": sid, **_session(sid).to_dict()}


@app.post("/sessions/{sid}/answer")
def session_answer(sid: str, req: AnswerReq):
    sess = _session(sid)
    if req.questionId:
        sess.answer_for(req.questionId, req.answer)
    else:
        sess.answer(req.answer)
    return {"sessionId": sid, **sess.to_dict()}


@app.post("/sessions/{sid}/next")
def session_next(sid: str):
    sess = _session(sid)
    sess.next()
    return {"sessionId": sid, **sess.to_dict()}


@app.post("/sessions/{sid}/previous")
def session_previous(sid: str):
    sess = _session(sid)
    sess.previous()
    return {"sessionId": sid, **sess.to_dict()}


@app.post("/sessions/{sid}/submit")
def session_submit(sid: str):
    sess = _session(sid)
    result = sess.submit(get_backend(), STORE)
    SESSIONS.pop(sid, None)
    return {"success": True, "evaluationId": result.id, "evaluation": result.to_dict()}


# ---- Results ----
@app.get("/results/{result_id}")
def get_result(result_id: str):
    view = ResultView.load(STORE, result_id)
    if not view.found:
        return JSONResponse(status_code=404, content=view.to_dict())
    return view.to_dict()


@app.get("/results/{result_id}/html")
def get_result_html(result_id: str):
    view = ResultView.load(STORE, result_id)
    if not view.found:
        raise HTTPException(404, "result not found")
    return {"html": export_result_html(view)}


@app.get("/tests/{test_id}/results")
def list_test_results(test_id: str):
    return {"testId": test_id, "results": STORE.list_records(kind="result", test_id=test_id)}
