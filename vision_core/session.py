from __future__ import annotations
from dataclasses import asdict
from typing import Any, Dict, Iterable, List, Optional, Sequence
import logging

from .types import Answer, AnswerKind, Plate, SessionResult, Verdict
from .plate_catalog import advanced_plates, basic_plates, load_catalog, plate_by_id
from .config import CANT_SEE_ANSWER, CANT_SEE_PHRASES, TIMEOUT_ANSWER
from . import config as cfg_defaults
from .engine import DecisionRules, evaluate


log = logging.getLogger(__name__)


def classify_response(text: str) -> AnswerKind:
    t = (text or "").strip().lower()
    if t == TIMEOUT_ANSWER:
        return "timeout"
    if not t or any(p and p in t for p in CANT_SEE_PHRASES):
        return "unanswerable"
    return "value"


def clamp_response_time(rt_sec: Optional[float]) -> float:
    if rt_sec is None:
        return 0.0
    try:
        rt = float(rt_sec)
    except (TypeError, ValueError):
        return 0.0
    return max(0.0, min(cfg_defaults.QUESTION_TIME_LIMIT_S, rt))


def make_answer(plate: Plate, value: Any, rt_sec: Optional[float] = None) -> Answer:
    """Record one response against its plate, deriving expected/is_correct."""
    text = "" if value is None else str(value).strip()
    kind = classify_response(text)
    if plate.normal_answer is not None:
        expected = plate.normal_answer
        correct = kind == "value" and text == plate.normal_answer
    else:
        # hidden plates: a typical viewer sees nothing
        expected = CANT_SEE_ANSWER
        correct = kind == "unanswerable"
    return Answer(
        plate_id=plate.id,
        user_answer=text,
        expected_answer=expected,
        is_correct=correct,
        response_time_s=clamp_response_time(rt_sec),
        kind=kind,
    )


def answers_from_payload(catalog: Sequence[Plate], rows: Iterable[Dict[str, Any]]) -> List[Answer]:
    """Rebuild Answer records from client rows; rows for unknown plates are dropped."""
    out: List[Answer] = []
    for row in rows or []:
        if not isinstance(row, dict):
            continue
        try:
            pid = int(row.get("plate_id", row.get("questionId")))
        except (TypeError, ValueError):
            continue
        plate = plate_by_id(catalog, pid)
        if plate is None:
            log.debug("dropping answer for unknown plate %s", pid)
            continue
        value = row.get("user_answer", row.get("userAnswer", ""))
        rt = row.get("response_time_s", row.get("timeToAnswer"))
        out.append(make_answer(plate, value, rt))
    return out


def build_summary(verdict: Verdict, answers: Sequence[Answer], mode: str = "basic") -> Dict[str, object]:
    summary = verdict.to_dict()
    summary["diagnosis"] = verdict.conclusion
    summary["total_questions"] = len(answers)
    summary["total_time_s"] = round(sum(a.response_time_s for a in answers), 1)
    summary["mode"] = mode
    return summary


def to_record(
    result: SessionResult,
    *,
    record_id: str,
    created_at: str,
    meta: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Shape a finished session the way the result store keeps it."""
    return {
        "id": record_id,
        "test_date": created_at,
        "created_at": created_at,
        "answers": [asdict(a) for a in result.answers],
        "summary": dict(result.summary),
        "career_recommendation": None,
        "meta": dict(meta or {}, mode=result.mode),
    }


class TestSession:
    """Serves plates in catalog order and collects one answer per plate."""

    __test__ = False  # not a pytest class

    def __init__(self, catalog: Optional[Sequence[Plate]] = None, mode: str = "basic"):
        self.catalog = tuple(catalog) if catalog is not None else load_catalog()
        self.mode = "advanced" if mode == "advanced" else "basic"
        self.plates: List[Plate] = (
            advanced_plates(self.catalog) if self.mode == "advanced" else basic_plates(self.catalog)
        )
        self.answers: List[Answer] = []
        self._step = 0

    @property
    def done(self) -> bool:
        return self._step >= len(self.plates)

    def next_plate(self) -> Optional[Plate]:
        if self.done:
            return None
        return self.plates[self._step]

    def answer_current(self, value: Any, rt_sec: Optional[float] = None) -> Answer:
        plate = self.next_plate()
        if plate is None:
            raise RuntimeError("test already complete")
        ans = make_answer(plate, value, rt_sec)
        self.answers.append(ans)
        self._step += 1
        return ans

    def timeout_current(self) -> Answer:
        return self.answer_current(TIMEOUT_ANSWER, cfg_defaults.QUESTION_TIME_LIMIT_S)

    def finalize(self, rules: DecisionRules | None = None) -> SessionResult:
        verdict = evaluate(self.catalog, self.answers, rules)
        log.info(
            "session finalized mode=%s answers=%d conclusion=%s",
            self.mode, len(self.answers), verdict.conclusion,
        )
        return SessionResult(
            mode=self.mode,  # type: ignore[arg-type]
            verdict=verdict,
            answers=list(self.answers),
            summary=build_summary(verdict, self.answers, self.mode),
        )
