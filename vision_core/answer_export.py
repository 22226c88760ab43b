"""Per-plate answer log export in JSON/CSV formats."""
from __future__ import annotations

from dataclasses import asdict, is_dataclass
from typing import Any, Dict, Iterable, List
import csv
import io

_FIELDS: tuple[str, ...] = (
    "plate_id",
    "user_answer",
    "expected_answer",
    "is_correct",
    "response_time_s",
    "kind",
)


def _normalize_answer(row: Any) -> Dict[str, Any]:
    if is_dataclass(row) and not isinstance(row, type):
        row = asdict(row)
    if not isinstance(row, dict):
        row = {}
    out: Dict[str, Any] = {}
    for key in _FIELDS:
        val = row.get(key)
        if key == "plate_id":
            try:
                out[key] = int(val)
            except (TypeError, ValueError):
                out[key] = 0
        elif key == "response_time_s":
            try:
                out[key] = float(val)
            except (TypeError, ValueError):
                out[key] = 0.0
        elif key == "is_correct":
            out[key] = bool(val)
        elif key == "kind":
            out[key] = str(val) if val else "value"
        else:
            out[key] = "" if val is None else str(val)
    return out


def to_json(answers: Iterable[Any]) -> Dict[str, Any]:
    """Return a JSON-safe payload for the answer log."""

    normalized: List[Dict[str, Any]] = [_normalize_answer(a) for a in answers]
    return {"answers": normalized}


def to_csv(answers: Iterable[Any]) -> str:
    """Render answers as CSV with a fixed header."""

    normalized = [_normalize_answer(a) for a in answers]
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=_FIELDS)
    writer.writeheader()
    for row in normalized:
        writer.writerow(row)
    return buf.getvalue()


__all__ = ["to_json", "to_csv"]
