# autoplay.py
from __future__ import annotations
import argparse, os, json, random, datetime, uuid
from typing import Optional
from vision_core.plate_catalog import load_catalog
from vision_core.report_html import export_result_html
from vision_core.session import TestSession, to_record
from vision_core.types import Plate

PROFILES = ("normal", "protan", "deutan", "cant-see", "mild", "random")

# confirmation plates a "mild" viewer misses
MILD_MISSES = {9, 12}


def _answer_for(plate: Plate, profile: str, rng: random.Random) -> str:
    if plate.group == "control":
        return plate.normal_answer or ""
    if profile == "normal":
        return plate.normal_answer if plate.normal_answer is not None else "can't see"
    if profile == "mild":
        if plate.group == "confirmation" and plate.id in MILD_MISSES:
            return "can't see"
        return plate.normal_answer if plate.normal_answer is not None else "can't see"
    if profile == "cant-see":
        return "can't see"
    if profile in ("protan", "deutan"):
        if plate.group == "diagnostic":
            return (plate.protan_answer if profile == "protan" else plate.deutan_answer) or ""
        if plate.group == "confirmation":
            return "nothing"
        return plate.deficient_answer or "can't see"
    choices = [x for x in (plate.normal_answer, plate.deficient_answer, "can't see") if x]
    return rng.choice(choices)


def run(mode: str, profile: str, seed: Optional[int]) -> str:
    rng = random.Random(seed or 1234)
    sess = TestSession(load_catalog(), mode=mode)

    answered = 0
    while True:
        plate = sess.next_plate()
        if plate is None: break
        sess.answer_current(_answer_for(plate, profile, rng), rt_sec=round(rng.uniform(1.5, 12.0), 1)); answered += 1
    if answered <= 0: raise RuntimeError("Driver answered 0 plates.")

    res = sess.finalize()
    now = datetime.datetime.now(datetime.timezone.utc)
    record = to_record(res, record_id=str(uuid.uuid4()), created_at=now.isoformat(), meta={"profile": profile})
    os.makedirs("reports", exist_ok=True)
    base = f"auto_{mode}_{profile}_{now.strftime('%Y%m%d_%H%M%S')}"
    with open(os.path.join("reports", base + ".json"), "w", encoding="utf-8") as f:
        json.dump(record, f, ensure_ascii=False, indent=2)
    path = export_result_html(record, os.path.join("reports", base + ".html"))
    print(f"{profile}: {res.verdict.conclusion} ({res.verdict.deficiency_type}, {res.verdict.severity})")
    print(f"Report: {path}")
    return path


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--mode", choices=["basic", "advanced"], default="basic")
    ap.add_argument("--profile", choices=PROFILES, default="normal")
    ap.add_argument("--seed", type=int, default=1337)
    a = ap.parse_args()
    run(a.mode, a.profile, a.seed)

if __name__ == "__main__":
    main()
