# assess_core/llm_clients.py
from __future__ import annotations
import os, json, pathlib
from dataclasses import dataclass
from typing import Optional, Tuple, Union
from openai import AzureOpenAI, OpenAI

from .config import LLM_TIMEOUT

AZURE_JSON = ".azure_config.json"
# settings field -> environment variable
_AZURE_KEYS = {
    "endpoint": "AZURE_OPENAI_ENDPOINT",
    "api_key": "AZURE_OPENAI_API_KEY",
    "api_version": "AZURE_OPENAI_API_VERSION",
    "deployment": "AZURE_OPENAI_DEPLOYMENT",
}

@dataclass(frozen=True)
class AzureSettings:
    endpoint: str
    api_key: str
    deployment: str
    api_version: str

@dataclass(frozen=True)
class OpenAISettings:
    api_key: str
    base_url: Optional[str] = None

def _azure_json(path: str = AZURE_JSON) -> dict[str, str]:
    p = pathlib.Path(path)
    if not p.exists(): return {}
    try:
        j = json.loads(p.read_text(encoding="utf-8"))
    except Exception:
        return {}
    return {k: str(j.get(k) or "") for k in _AZURE_KEYS}

def azure_settings(path: str = AZURE_JSON) -> AzureSettings:
    """Environment first, ``.azure_config.json`` fills whatever is left empty."""
    vals = {k: os.getenv(env, "") for k, env in _AZURE_KEYS.items()}
    if not all(vals.values()):
        for k, v in _azure_json(path).items():
            vals[k] = vals[k] or v
    missing = [_AZURE_KEYS[k] for k, v in vals.items() if not v]
    if missing:
        raise RuntimeError(f"Azure OpenAI not configured. Missing: {', '.join(missing)}")
    return AzureSettings(**vals)

def openai_settings(cfg: Optional[dict] = None) -> OpenAISettings:
    """``cfg`` (see ``config.load_config``) first, then the environment."""
    cfg = cfg or {}
    key = cfg.get("OPENAI_API_KEY") or os.getenv("OPENAI_API_KEY", "")
    if not key:
        raise RuntimeError("OpenAI not configured. Missing: OPENAI_API_KEY")
    return OpenAISettings(api_key=key, base_url=cfg.get("OPENAI_BASE_URL") or os.getenv("OPENAI_BASE_URL") or None)

def configured(kind: str, cfg: Optional[dict] = None) -> bool:
    try:
        azure_settings() if kind == "azure" else openai_settings(cfg)
    except RuntimeError:
        return False
    return True

def make_client(kind: str, cfg: Optional[dict] = None) -> Tuple[Union[OpenAI, AzureOpenAI], Optional[str]]:
    """Client for ``kind`` plus the model name it forces (Azure: the deployment)."""
    if kind == "azure":
        s = azure_settings()
        cli = AzureOpenAI(azure_endpoint=s.endpoint, api_key=s.api_key, api_version=s.api_version, timeout=LLM_TIMEOUT)
        return cli, s.deployment
    o = openai_settings(cfg)
    return OpenAI(api_key=o.api_key, base_url=o.base_url, timeout=LLM_TIMEOUT), None
