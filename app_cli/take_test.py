
from __future__ import annotations
import argparse, datetime, logging, os, sys
from assess_core.errors import AssessError
from assess_core.llm_bridge import backend_from_config
from assess_core.report_html import export_result_html
from assess_core.results import ResultView
from assess_core.session import SessionState, TestSession
from api.storage import FileRecordStore

HELP = "Commands: :n next, :p previous, :s submit (last question only), :q quit. Anything else is your answer."

def ask(prompt: str) -> str:
    return input(prompt + " ").strip()

def show(session: TestSession) -> None:
    q = session.current_question
    if q is None: return
    print(f"\n[{session.cursor + 1}/{len(session.questions)}] {q.category} · {q.points:g} pts")
    print(q.content)
    d = session.to_dict()["currentQuestion"]
    if d.get("notice"): print(f"  ! {d['notice']}")
    if d.get("answer"): print(f"  current answer: {d['answer']}")

def main(argv=None):
    ap = argparse.ArgumentParser(description="Take a published test in the terminal.")
    ap.add_argument("test_id")
    ap.add_argument("--data-dir", default=os.getenv("DATA_DIR", "data"))
    ap.add_argument("--name", default=None)
    args = ap.parse_args(argv)
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "WARNING"))

    store = FileRecordStore(args.data_dir)
    session = TestSession.load(store, args.test_id)
    if session.state is SessionState.NOT_FOUND:
        print(f"Test {args.test_id} not found."); return 1
    print(session.config.title); print(session.config.description)
    name = args.name or ask("Your name:")
    try:
        session.start(name)
    except AssessError as e:
        print(e); return 1
    print(HELP)
    backend = backend_from_config()
    while session.state is SessionState.IN_PROGRESS:
        show(session)
        v = ask(">")
        if v == ":q": return 1
        if v == ":n": session.next(); continue
        if v == ":p": session.previous(); continue
        if v == ":s":
            try:
                session.submit(backend, store)
            except AssessError as e:
                print(f"{e.public_message}: {e}"); continue
            break
        session.answer(v)
        if not session.is_last: session.next()
    view = ResultView.load(store, session.result.id)
    os.makedirs("reports", exist_ok=True)
    ts = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    path = os.path.join("reports", f"result_{ts}.html")
    export_result_html(view, path)
    print(f"Done. Score {view.result.overall_score:.0f}% ({view.score_label}). Report saved to: {path}")
    return 0

if __name__ == "__main__": sys.exit(main())
