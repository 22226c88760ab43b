from __future__ import annotations
from html import escape
from typing import Any, Dict, List
import re

_SEVERITY_CLASS = {"none": "ok", "mild": "mild", "moderate": "moderate", "severe": "severe"}
_TYPE_LABEL = {
    "none": "None",
    "protanopia": "Protanopia (Red)",
    "deuteranopia": "Deuteranopia (Green)",
    "general": "General (Red-Green)",
}


def _answer_row(a: Dict[str, Any]) -> str:
    ok = "&#10003;" if a.get("is_correct") else "&#10007;"
    rt = float(a.get("response_time_s", 0.0) or 0.0)
    return (
        f"<tr><td>{int(a.get('plate_id', 0) or 0)}</td><td>{escape(str(a.get('user_answer', '')))}</td>"
        f"<td>{escape(str(a.get('expected_answer') or ''))}</td><td>{ok}</td><td>{rt:.0f}s</td></tr>"
    )


def _markdown_lite(text: str) -> str:
    out: List[str] = []
    in_list = False
    for line in (text or "").splitlines():
        line = line.strip()
        if not line:
            continue
        if line.startswith("- "):
            if not in_list:
                out.append("<ul>"); in_list = True
            out.append(f"<li>{escape(line[2:])}</li>")
            continue
        if in_list:
            out.append("</ul>"); in_list = False
        if line.startswith("## "):
            title = re.sub(r"\*\*(.*?)\*\*", r"\1", line[3:])
            out.append(f"<h4>{escape(title)}</h4>")
        else:
            out.append(f"<p>{escape(line)}</p>")
    if in_list:
        out.append("</ul>")
    return "".join(out)


def render_result_html(record: Dict[str, Any]) -> str:
    summ = record.get("summary", {}) or {}
    answers = [a for a in (record.get("answers") or []) if isinstance(a, dict)]
    severity = str(summ.get("severity") or "none")
    dtype = str(summ.get("deficiency_type") or "none")
    details = "".join(f"<li>{escape(str(d))}</li>" for d in (summ.get("details") or []))
    rows = "\n".join(_answer_row(a) for a in answers)

    career = record.get("career_recommendation") or {}
    career_html = ""
    if isinstance(career, dict) and career.get("recommendation") and severity != "none":
        career_html = "<h3>Career guidance</h3>" + _markdown_lite(str(career["recommendation"]))

    export_links = ""
    rid = record.get("id")
    if rid:
        rid = escape(str(rid))
        export_links = (
            "<p class=\"exports\">"
            f"<a href=\"/results/{rid}/answers.json\">Download answers (JSON)</a> · "
            f"<a href=\"/results/{rid}/answers.csv\">Download answers (CSV)</a>"
            "</p>"
        )

    return f"""<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8"/>
<title>Color Vision Screening Result</title>
<style>
 body{{font-family:system-ui,-apple-system,Segoe UI,Roboto,Ubuntu,'Helvetica Neue',Arial}}
 .wrap{{max-width:960px;margin:40px auto;padding:0 16px}}
 h1{{margin:0 0 16px}}
 .banner{{padding:12px 16px;border-radius:6px;margin:16px 0}}
 .banner.ok{{background:#e6f6ea;border:1px solid #3a9d5d}}
 .banner.mild{{background:#fff8db;border:1px solid #d4a600}}
 .banner.moderate{{background:#ffe7d9;border:1px solid #f5a623}}
 .banner.severe{{background:#fde2e2;border:1px solid #d0021b}}
 table{{border-collapse:collapse;width:100%}}
 th,td{{text-align:left}}
</style>
</head>
<body>
<div class="wrap">
  <h1>Color Vision Screening Result</h1>
  <div class="banner {_SEVERITY_CLASS.get(severity, 'severe')}"><b>{escape(str(summ.get('conclusion', '')))}</b></div>
  <ul>
    <li><b>Severity</b>: {escape(severity)}</li>
    <li><b>Deficiency type</b>: {escape(_TYPE_LABEL.get(dtype, dtype))}</li>
    <li><b>Confidence</b>: {int(summ.get('confidence', 0) or 0)}%</li>
    <li><b>Accuracy</b>: {int(summ.get('correct_answers', 0) or 0)}/{int(summ.get('total_questions', len(answers)) or 0)} ({float(summ.get('accuracy_percent', 0.0) or 0.0):.0f}%)</li>
    <li><b>Total time</b>: {float(summ.get('total_time_s', 0.0) or 0.0):.0f}s</li>
  </ul>

  <h3>Analysis details</h3>
  <ul>{details}</ul>
  <p><b>Recommendation:</b> {escape(str(summ.get('recommendation', '')))}</p>

  <h3>Answers</h3>
  <table border='1' cellpadding='6' cellspacing='0'>
    <thead><tr><th>Plate</th><th>Answer</th><th>Expected</th><th>Correct</th><th>Time</th></tr></thead>
    <tbody>{rows}</tbody>
  </table>

  {career_html}

  <p><i>This is a screening test and not a substitute for professional diagnosis.</i></p>
  {export_links}
</div>
</body>
</html>"""


def export_result_html(record: Dict[str, Any], path: str) -> str:
    with open(path, "w", encoding="utf-8") as f:
        f.write(render_result_html(record))
    return path
