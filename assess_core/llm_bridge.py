from __future__ import annotations
import json, logging, time
from typing import Any, Dict, Optional, Protocol, Type, TypeVar

from pydantic import BaseModel

from . import config as cfg_defaults
from .llm_clients import make_client
from .prompts import (
    AUTHOR_SYSTEM,
    GRADER_SYSTEM,
    build_evaluation_prompt,
    build_generation_prompt,
    build_question_regeneration_prompt,
)
from .schemas import EvaluationSchema, QuestionsResponseSchema, SingleQuestionResponseSchema
from .types import (
    EvaluationDraft,
    EvaluationSubmission,
    GenerationMode,
    GenerationRequest,
    GenerationResult,
)

log = logging.getLogger(__name__)

S = TypeVar("S", bound=BaseModel)


class ModelBackend(Protocol):
    """What the services need from a generative model: one method per contract."""

    name: str

    def generate(self, request: GenerationRequest) -> GenerationResult: ...

    def evaluate(self, submission: EvaluationSubmission) -> EvaluationDraft: ...


def _log_call(record: Dict[str, Any]) -> None:
    path = cfg_defaults.LLM_LOG_PATH
    if not path:
        return
    try:
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False) + "\n")
    except Exception:
        pass


def _response_format(schema: Type[BaseModel]) -> Dict[str, Any]:
    return {
        "type": "json_schema",
        "json_schema": {
            "name": schema.__name__,
            "schema": schema.model_json_schema(),
            "strict": False,
        },
    }


def generation_prompt(request: GenerationRequest) -> str:
    if request.mode is GenerationMode.SINGLE_QUESTION:
        if request.question_to_replace is None:
            raise ValueError("single-question regeneration needs the question to replace")
        return build_question_regeneration_prompt(
            request.spec, request.question_to_replace, request.regeneration_feedback or ""
        )
    feedback = request.regeneration_feedback if request.mode is GenerationMode.PLAN_REGENERATION else None
    return build_generation_prompt(request.spec, feedback)


class OpenAIBackend:
    """Chat-completions backend with a declared JSON schema (OpenAI or Azure OpenAI).

    ``client`` is created lazily so the API can start without credentials; on
    Azure the deployment name is sent as the model for both contracts.
    """

    def __init__(
        self,
        kind: str = "openai",
        *,
        client: Any = None,
        generation_model: Optional[str] = None,
        evaluation_model: Optional[str] = None,
        temperature: Optional[float] = None,
        evaluation_temperature: Optional[float] = None,
        cfg: Optional[dict] = None,
    ) -> None:
        self.name = kind
        self.cfg = cfg or {}
        self._client = client
        self.generation_model = generation_model or cfg_defaults.GENERATION_MODEL
        self.evaluation_model = evaluation_model or cfg_defaults.EVALUATION_MODEL
        self.temperature = cfg_defaults.LLM_TEMPERATURE if temperature is None else temperature
        self.evaluation_temperature = (
            cfg_defaults.EVALUATION_TEMPERATURE if evaluation_temperature is None else evaluation_temperature
        )

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client, forced_model = make_client(self.name, self.cfg)
            if forced_model:
                self.generation_model = self.evaluation_model = forced_model
        return self._client

    def _complete(self, *, system: str, prompt: str, schema: Type[S], model: str, temperature: float) -> S:
        t0 = time.time()
        raw: Optional[str] = None
        error: Optional[str] = None
        try:
            resp = self.client.chat.completions.create(
                model=model,
                messages=[{"role": "system", "content": system}, {"role": "user", "content": prompt}],
                temperature=temperature,
                response_format=_response_format(schema),
            )
            raw = resp.choices[0].message.content or "{}"
            return schema.model_validate_json(raw)
        except Exception as e:
            error = f"{type(e).__name__}: {e}"
            raise
        finally:
            _log_call({
                "ts": round(time.time(), 3),
                "backend": self.name,
                "model": model,
                "schema": schema.__name__,
                "prompt": prompt[:800],
                "raw": (raw or "")[:2000],
                "error": error,
                "rt_ms": int((time.time() - t0) * 1000),
            })

    def generate(self, request: GenerationRequest) -> GenerationResult:
        schema = (
            SingleQuestionResponseSchema
            if request.mode is GenerationMode.SINGLE_QUESTION
            else QuestionsResponseSchema
        )
        parsed = self._complete(
            system=AUTHOR_SYSTEM,
            prompt=generation_prompt(request),
            schema=schema,
            model=self.generation_model,
            temperature=self.temperature,
        )
        return parsed.to_domain()

    def evaluate(self, submission: EvaluationSubmission) -> EvaluationDraft:
        prompt = build_evaluation_prompt(
            candidate_name=submission.candidate_name,
            title=submission.title,
            description=submission.description,
            questions=submission.questions,
            answers=submission.answers,
        )
        parsed = self._complete(
            system=GRADER_SYSTEM,
            prompt=prompt,
            schema=EvaluationSchema,
            model=self.evaluation_model,
            temperature=self.evaluation_temperature,
        )
        return parsed.to_draft(test_id=submission.test_id, candidate_name=submission.candidate_name)


class DisabledBackend:
    """Backend used when LLM_BACKEND=none: every call fails."""

    name = "none"

    def generate(self, request: GenerationRequest) -> GenerationResult:
        raise RuntimeError("No LLM backend configured (LLM_BACKEND=none)")

    def evaluate(self, submission: EvaluationSubmission) -> EvaluationDraft:
        raise RuntimeError("No LLM backend configured (LLM_BACKEND=none)")


def backend_in_use(cfg: Optional[dict] = None) -> str:
    return cfg_defaults.get_backend(cfg if cfg is not None else cfg_defaults.load_config()) or "none"


def backend_from_config(cfg: Optional[dict] = None) -> ModelBackend:
    cfg = cfg if cfg is not None else cfg_defaults.load_config()
    kind = cfg_defaults.get_backend(cfg)
    if kind is None:
        log.warning("LLM backend disabled; generation and evaluation calls will fail")
        return DisabledBackend()
    return OpenAIBackend(
        kind,
        generation_model=cfg.get("GENERATION_MODEL"),
        evaluation_model=cfg.get("EVALUATION_MODEL"),
        temperature=float(cfg.get("LLM_TEMPERATURE", cfg_defaults.LLM_TEMPERATURE)),
        evaluation_temperature=float(cfg.get("EVALUATION_TEMPERATURE", cfg_defaults.EVALUATION_TEMPERATURE)),
        cfg=cfg,
    )
