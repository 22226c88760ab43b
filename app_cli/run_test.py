from __future__ import annotations
import argparse, os, datetime, time, uuid
from vision_core.session import TestSession, to_record
from vision_core.report_html import export_result_html
from vision_core.config import QUESTION_TIME_LIMIT_S


def ask(prompt: str) -> str:
    return input(prompt + " ").strip()


def main():
    ap = argparse.ArgumentParser(description="Administer the color vision screening in the terminal.")
    ap.add_argument("--mode", choices=["basic", "advanced"], default="basic")
    a = ap.parse_args()

    print("Color Vision Screening")
    print(f"Type the number you see. Leave blank or type \"can't see\" if there is none. "
          f"Answers after {QUESTION_TIME_LIMIT_S:.0f}s count as timeouts.")
    session = TestSession(mode=a.mode)
    while True:
        plate = session.next_plate()
        if plate is None: break
        t0 = time.perf_counter()
        v = ask(f"[{len(session.answers) + 1}/{len(session.plates)}] Plate {plate.id} ({plate.image}):")
        session.answer_current(v, time.perf_counter() - t0)

    res = session.finalize()
    v = res.verdict
    print(f"\n{v.conclusion.upper()}  (confidence {v.confidence}%)")
    print(f"Type: {v.deficiency_type}  Severity: {v.severity}  Accuracy: {v.accuracy_percent:.0f}%")
    for line in v.details: print(f"  - {line}")
    print(v.recommendation)

    os.makedirs("reports", exist_ok=True)
    ts = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    record = to_record(res, record_id=str(uuid.uuid4()), created_at=datetime.datetime.now(datetime.timezone.utc).isoformat())
    path = export_result_html(record, os.path.join("reports", f"result_{a.mode}_{ts}.html"))
    print(f"Done. Report saved to: {path}")


if __name__ == "__main__": main()
