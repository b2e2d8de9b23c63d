# tools/llm_smoke.py
from __future__ import annotations
import logging
from openai import NotFoundError
from assess_core.config import load_config, get_backend
from assess_core.llm_clients import azure_settings, make_client

def main():
    logging.basicConfig(level=logging.INFO)
    cfg = load_config()
    kind = get_backend(cfg)
    print("Backend  :", kind or "none")
    if kind is None:
        print("LLM_BACKEND is 'none'; nothing to check.")
        return
    if kind == "azure":
        s = azure_settings()
        print("Endpoint :", s.endpoint)
        print("Deploy   :", s.deployment, "(deployment name passed as model=)")
        print("API ver  :", s.api_version)
    cli, forced = make_client(kind, cfg)
    model = forced or cfg.get("GENERATION_MODEL")
    print("Model    :", model)
    try:
        r = cli.chat.completions.create(
            model=model,
            messages=[{"role":"user","content":"Say 'pong' only."}],
            temperature=0.0,
            max_tokens=5,
        )
        print("Reply    :", r.choices[0].message.content)
    except NotFoundError:
        print("ERROR 404: the model or deployment was not found.")
        print("→ Check GENERATION_MODEL, or the Azure deployment name and api_version.")
        raise
    except Exception as e:
        print("LLM call failed:", e)
        raise

if __name__ == "__main__":
    main()
