from __future__ import annotations

from collections import Counter, defaultdict
from datetime import datetime, timedelta, timezone
from statistics import mean
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from . import config as cfg_defaults

ACCURACY_BUCKETS: Tuple[Tuple[int, int], ...] = ((0, 20), (20, 40), (40, 60), (60, 80), (80, 100))


def _parse_ts(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, str) and value:
        try:
            ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def _summary(rec: Mapping[str, Any]) -> Mapping[str, Any]:
    s = rec.get("summary")
    return s if isinstance(s, Mapping) else {}


def _accuracy(rec: Mapping[str, Any]) -> float:
    try:
        return float(_summary(rec).get("accuracy_percent", 0.0) or 0.0)
    except (TypeError, ValueError):
        return 0.0


def _distribution(values: Iterable[str]) -> List[Dict[str, Any]]:
    counts = Counter(values)
    return [{"name": k, "value": v} for k, v in sorted(counts.items())]


def _bucket_label(lo: int, hi: int) -> str:
    return f"{lo}-{hi}%"


def _has_recommendation(rec: Mapping[str, Any]) -> bool:
    career = rec.get("career_recommendation")
    return isinstance(career, Mapping) and bool(career.get("recommendation"))


def compute_analytics(
    records: Iterable[Mapping[str, Any]],
    range_days: int = cfg_defaults.ANALYTICS_RANGE_DAYS,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Aggregate stored results from the last ``range_days`` days."""

    now = now or datetime.now(timezone.utc)
    start = now - timedelta(days=max(0, int(range_days)))

    window: List[Tuple[datetime, Mapping[str, Any]]] = []
    for rec in records:
        if not isinstance(rec, Mapping):
            continue
        ts = _parse_ts(rec.get("test_date") or rec.get("created_at"))
        if ts is None or ts < start:
            continue
        window.append((ts, rec))
    window.sort(key=lambda pair: pair[0])

    total = len(window)
    by_date = Counter(ts.date().isoformat() for ts, _ in window)
    accuracies = [_accuracy(rec) for _, rec in window]

    completed = sum(
        1 for _, rec in window if len(rec.get("answers") or []) >= cfg_defaults.COMPLETE_MIN_ANSWERS
    )
    completion_rate = (completed / total * 100) if total else 0.0

    buckets = [0] * len(ACCURACY_BUCKETS)
    for acc in accuracies:
        idx = min(max(int(acc // 20), 0), len(ACCURACY_BUCKETS) - 1)
        buckets[idx] += 1

    times: Dict[str, List[float]] = defaultdict(list)
    for _, rec in window:
        sev = str(_summary(rec).get("severity") or "unknown")
        try:
            times[sev].append(float(_summary(rec).get("total_time_s", 0.0) or 0.0))
        except (TypeError, ValueError):
            times[sev].append(0.0)

    recent = []
    for ts, rec in sorted(window, key=lambda pair: pair[0], reverse=True)[: cfg_defaults.RECENT_LIMIT]:
        s = _summary(rec)
        recent.append({
            "id": rec.get("id"),
            "date": ts.isoformat(),
            "diagnosis": s.get("diagnosis") or s.get("conclusion") or "unknown",
            "severity": s.get("severity") or "unknown",
            "accuracy": _accuracy(rec),
            "deficiency_type": s.get("deficiency_type") or "unknown",
        })

    return {
        "overview": {
            "total_tests": total,
            "avg_accuracy": mean(accuracies) if accuracies else 0.0,
            "completion_rate": f"{completion_rate:.1f}",
            "recommendations_generated": sum(1 for _, rec in window if _has_recommendation(rec)),
        },
        "trends": {
            "tests_by_date": [{"date": d, "count": c} for d, c in sorted(by_date.items())],
        },
        "distributions": {
            "severity": _distribution(str(_summary(rec).get("severity") or "unknown") for _, rec in window),
            "deficiency_type": _distribution(
                str(_summary(rec).get("deficiency_type") or "unknown") for _, rec in window
            ),
            "accuracy_ranges": [
                {"range": _bucket_label(lo, hi), "count": n} for (lo, hi), n in zip(ACCURACY_BUCKETS, buckets)
            ],
        },
        "performance": {
            "accuracy_stats": {
                "average": mean(accuracies) if accuracies else 0.0,
                "max": max(accuracies) if accuracies else 0.0,
                "min": min(accuracies) if accuracies else 0.0,
            },
            "time_by_severity": [
                {"severity": sev, "avg_time": mean(vals), "count": len(vals)}
                for sev, vals in sorted(times.items())
            ],
        },
        "recent_tests": recent,
    }
