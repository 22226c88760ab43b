"""Utility helpers for persisting screening results and session metadata.

Results are stored as one JSON file each under ``DATA_DIR/results`` plus a
small index used for listing and lookups. Swap this module for a database
backed implementation when the deployment needs one.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional


log = logging.getLogger(__name__)

DATA_ROOT = Path(os.getenv("DATA_DIR", "data")).resolve()
RESULTS_DIR = DATA_ROOT / "results"
RESULT_INDEX_PATH = DATA_ROOT / "results_index.json"
ACTIVE_SESSIONS_PATH = DATA_ROOT / "sessions_active.json"

_LOCK = threading.Lock()


def _ensure_dirs() -> None:
    RESULTS_DIR.mkdir(parents=True, exist_ok=True)


def _read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        log.warning("unreadable json at %s: %s", path, exc)
        return default


def _write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
    tmp.replace(path)


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def save_result(result_id: str, record: Dict[str, Any], metadata: Dict[str, Any]) -> None:
    """Persist the result JSON and its index metadata."""

    _ensure_dirs()
    with _LOCK:
        index: Dict[str, Dict[str, Any]] = _read_json(RESULT_INDEX_PATH, {})
        index[result_id] = metadata
        _write_json(RESULT_INDEX_PATH, index)

    _write_json(RESULTS_DIR / f"{result_id}.json", record)


def load_result(result_id: str) -> Optional[Dict[str, Any]]:
    path = RESULTS_DIR / f"{result_id}.json"
    if not path.exists():
        return None
    return _read_json(path, None)


def delete_result(result_id: str) -> bool:
    removed = False
    with _LOCK:
        index: Dict[str, Dict[str, Any]] = _read_json(RESULT_INDEX_PATH, {})
        if result_id in index:
            index.pop(result_id, None)
            _write_json(RESULT_INDEX_PATH, index)
            removed = True
    path = RESULTS_DIR / f"{result_id}.json"
    if path.exists():
        path.unlink()
        removed = True
    return removed


def _index_rows(predicate=None) -> List[Dict[str, Any]]:
    index: Dict[str, Dict[str, Any]] = _read_json(RESULT_INDEX_PATH, {})
    out: List[Dict[str, Any]] = []
    for rid, meta in index.items():
        if predicate is not None and not predicate(meta):
            continue
        item = {"id": rid}
        item.update({k: v for k, v in meta.items() if k != "id"})
        out.append(item)
    out.sort(key=lambda r: r.get("createdAt", ""), reverse=True)
    return out


def list_recent_results(limit: int = 10) -> List[Dict[str, Any]]:
    return _index_rows()[: max(0, limit)]


def list_results_for_user(user_id: str) -> List[Dict[str, Any]]:
    return _index_rows(lambda meta: meta.get("userId") == user_id)


def find_result_by_session(session_id: str) -> Optional[Dict[str, Any]]:
    for row in _index_rows(lambda meta: meta.get("sessionId") == session_id):
        record = load_result(row["id"])
        if record:
            return record
    return None


def load_all_results() -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for row in _index_rows():
        record = load_result(row["id"])
        if record:
            out.append(record)
    return out


# ---- In-progress screenings ----
def _mutate_sessions(fn: Callable[[Dict[str, Dict[str, Any]]], bool]) -> None:
    """Apply ``fn`` to the active-session map; persist only when it reports a change."""
    with _LOCK:
        sessions: Dict[str, Dict[str, Any]] = _read_json(ACTIVE_SESSIONS_PATH, {})
        if fn(sessions):
            _write_json(ACTIVE_SESSIONS_PATH, sessions)


def record_active_session(session_id: str, payload: Dict[str, Any]) -> None:
    if not payload.get("userId"):
        return

    def _add(sessions: Dict[str, Dict[str, Any]]) -> bool:
        sessions[session_id] = dict(payload)
        return True

    _mutate_sessions(_add)


def update_active_session(session_id: str, updates: Dict[str, Any]) -> None:
    def _update(sessions: Dict[str, Dict[str, Any]]) -> bool:
        entry = sessions.get(session_id)
        if entry is None:
            return False
        entry.update(updates)
        if entry.get("total"):
            entry["progress"] = round(100 * int(entry.get("answered", 0)) / int(entry["total"]), 1)
        return True

    _mutate_sessions(_update)


def clear_active_session(session_id: str) -> None:
    _mutate_sessions(lambda sessions: sessions.pop(session_id, None) is not None)


def active_sessions_for_user(user_id: str) -> List[Dict[str, Any]]:
    sessions: Dict[str, Dict[str, Any]] = _read_json(ACTIVE_SESSIONS_PATH, {})
    mine = [entry for entry in sessions.values() if entry.get("userId") == user_id]
    return sorted(mine, key=lambda entry: entry.get("lastUpdated") or entry.get("startedAt", ""), reverse=True)
