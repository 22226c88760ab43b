from __future__ import annotations

from datetime import datetime, timezone

from vision_core.analytics import compute_analytics

NOW = datetime(2026, 3, 31, 12, 0, tzinfo=timezone.utc)


def _record(rid: str, date: str, accuracy: float, severity: str, dtype: str, answers: int = 17,
            time_s: float = 60.0, career: bool = False) -> dict:
    return {
        "id": rid,
        "test_date": date,
        "answers": [{"plate_id": i + 1} for i in range(answers)],
        "summary": {
            "conclusion": "deficiency detected" if severity != "none" else "normal color vision",
            "accuracy_percent": accuracy,
            "severity": severity,
            "deficiency_type": dtype,
            "total_time_s": time_s,
        },
        "career_recommendation": {"recommendation": "## text"} if career else None,
    }


def _records() -> list[dict]:
    return [
        _record("a", "2026-03-30T10:00:00+00:00", 100.0, "none", "none", time_s=40.0),
        _record("b", "2026-03-30T11:00:00Z", 35.0, "severe", "protanopia", time_s=90.0, career=True),
        _record("c", "2026-03-20T09:00:00+00:00", 80.0, "mild", "general", answers=10, time_s=70.0),
        _record("d", "2026-01-01T09:00:00+00:00", 50.0, "moderate", "deuteranopia"),
        {"id": "broken", "test_date": "not a date"},
    ]


def test_overview_and_window():
    data = compute_analytics(_records(), range_days=30, now=NOW)
    overview = data["overview"]
    assert overview["total_tests"] == 3
    assert overview["avg_accuracy"] == (100.0 + 35.0 + 80.0) / 3
    assert overview["completion_rate"] == "66.7"
    assert overview["recommendations_generated"] == 1


def test_trends_and_distributions():
    data = compute_analytics(_records(), range_days=30, now=NOW)
    assert data["trends"]["tests_by_date"] == [
        {"date": "2026-03-20", "count": 1},
        {"date": "2026-03-30", "count": 2},
    ]
    assert {"name": "severe", "value": 1} in data["distributions"]["severity"]
    ranges = {r["range"]: r["count"] for r in data["distributions"]["accuracy_ranges"]}
    assert ranges == {"0-20%": 0, "20-40%": 1, "40-60%": 0, "60-80%": 0, "80-100%": 2}


def test_performance_and_recent():
    data = compute_analytics(_records(), range_days=365, now=NOW)
    stats = data["performance"]["accuracy_stats"]
    assert (stats["max"], stats["min"]) == (100.0, 35.0)
    by_sev = {row["severity"]: row for row in data["performance"]["time_by_severity"]}
    assert by_sev["severe"]["avg_time"] == 90.0
    assert by_sev["moderate"]["count"] == 1
    recent = data["recent_tests"]
    assert [r["id"] for r in recent] == ["b", "a", "c", "d"]
    assert recent[0]["diagnosis"] == "deficiency detected"


def test_empty_store():
    data = compute_analytics([], now=NOW)
    assert data["overview"]["total_tests"] == 0
    assert data["overview"]["avg_accuracy"] == 0.0
    assert data["overview"]["completion_rate"] == "0.0"
    assert data["recent_tests"] == []
