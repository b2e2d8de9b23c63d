from __future__ import annotations
from html import escape
from typing import List, Optional

from .results import QuestionRow, ResultView


def _e(value: object) -> str:
    return escape("" if value is None else str(value))


def _row(r: QuestionRow) -> str:
    pts = f"{r.points:g}" if r.points is not None else "-"
    return (
        f"<tr><td>{_e(r.category or '-')}</td><td>{_e(r.content or r.question_id)}</td>"
        f"<td>{r.score:g} / {pts}</td><td>{_e(r.feedback)}</td><td>{_e(r.suggestions)}</td></tr>"
    )


def _bullets(title: str, items: List[str]) -> str:
    if not items:
        return ""
    lis = "".join(f"<li>{_e(i)}</li>" for i in items)
    return f"<h3>{_e(title)}</h3><ul>{lis}</ul>"


def export_result_html(view: ResultView, path: Optional[str] = None) -> str:
    """Standalone HTML page for one result; also written to ``path`` when given."""
    res = view.result
    if not view.found or res is None:
        body = f"<h1>Result not found</h1><p>No result is recorded under {_e(view.result_id)}.</p>"
        title = "Result not found"
    else:
        rows = "\n".join(_row(r) for r in view.rows)
        title = f"Results: {view.test_title}" if view.test_title else "Test results"
        body = f"""
  <h1>{_e(title)}</h1>
  <p>Candidate: <b>{_e(res.candidate_name)}</b> · completed {_e(res.completed_at)}</p>
  <div class="overall"><b>Overall:</b> {res.overall_score:.0f}% <span class="band">{_e(view.score_label)}</span></div>
  <p>{res.earned_points:g} / {res.total_points:g} points</p>

  <h3>Overall feedback</h3>
  <p>{_e(res.global_feedback)}</p>
  {_bullets("Strengths", res.strengths)}
  {_bullets("Areas for improvement", res.areas_for_improvement)}
  {_bullets("Recommendations", res.recommendations)}

  <h3>Per-question detail</h3>
  <table border='1' cellpadding='6' cellspacing='0'>
    <thead><tr><th>Category</th><th>Question</th><th>Score</th><th>Feedback</th><th>Suggestions</th></tr></thead>
    <tbody>{rows}</tbody>
  </table>"""

    html = f"""<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8"/>
<title>{_e(title)}</title>
<style>
 body{{font-family:system-ui,-apple-system,Segoe UI,Roboto,Ubuntu,'Helvetica Neue',Arial}}
 .wrap{{max-width:960px;margin:40px auto;padding:0 16px}}
 h1{{margin:0 0 16px}}
 .overall{{font-size:1.1rem;margin:8px 0 16px}}
 .band{{margin-left:8px;padding:2px 8px;border-radius:6px;background:#eef}}
 table{{border-collapse:collapse;width:100%}}
 th,td{{text-align:left;vertical-align:top}}
</style>
</head>
<body>
<div class="wrap">{body}
</div>
</body>
</html>"""
    if path:
        with open(path, "w", encoding="utf-8") as f:
            f.write(html)
    return html
