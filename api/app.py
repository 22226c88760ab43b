from __future__ import annotations
from fastapi import FastAPI, HTTPException, Body, Query, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import AliasChoices, BaseModel, Field
import logging, uuid, os, pathlib, typing as t

# ---- LLM backend default when a local Azure config file is present ----
def _default_backend_from_json(path: str = ".azure_config.json") -> None:
    if os.getenv("LLM_BACKEND") or not pathlib.Path(path).exists():
        return
    os.environ.setdefault("LLM_BACKEND", "azure")

_default_backend_from_json()

# ---- Engine imports ----
from vision_core.plate_catalog import load_catalog
from vision_core.session import TestSession, answers_from_payload, build_summary, to_record
from vision_core.engine import evaluate
from vision_core.types import SessionResult
from vision_core.career import generate_guidance
from vision_core.chat import chat_reply, greeting
from vision_core.analytics import compute_analytics
from vision_core.answer_export import to_json as answers_to_json, to_csv as answers_to_csv
from vision_core.report_html import render_result_html
from vision_core.config import load_config, ANALYTICS_RANGE_DAYS, RECENT_LIMIT
from vision_core import llm_bridge
from .storage import (
    active_sessions_for_user,
    clear_active_session,
    delete_result,
    find_result_by_session,
    list_recent_results,
    list_results_for_user,
    load_all_results,
    load_result,
    record_active_session,
    save_result,
    update_active_session,
    utcnow_iso,
)

log = logging.getLogger(__name__)

CATALOG = load_catalog()
SESS: dict[str, TestSession] = {}
SESSION_INFO: dict[str, dict[str, t.Any]] = {}

app = FastAPI(title="Color Vision Screening API")

ALLOWED_ORIGINS = [
    o.strip() for o in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",") if o.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)

# ---- Schemas ----
class StartReq(BaseModel):
    mode: str = "basic"     # "basic" | "advanced"
    user_id: str | None = None

class FEAnswer(BaseModel):
    session_id: str
    plate_id: int
    answer: str | int
    rt_ms: int | None = None
    started_at: float | None = None
    submitted_at: float | None = None

class FESession(BaseModel):
    session_id: str

class AnswerRow(BaseModel):
    plate_id: int = Field(validation_alias=AliasChoices("plate_id", "questionId"))
    user_answer: str | int = Field("", validation_alias=AliasChoices("user_answer", "userAnswer"))
    response_time_s: float | None = Field(None, validation_alias=AliasChoices("response_time_s", "timeToAnswer"))

class ResultReq(BaseModel):
    answers: list[AnswerRow]
    mode: str = "basic"
    user_id: str | None = None

class ChatMessage(BaseModel):
    role: str
    content: str

class ChatContext(BaseModel):
    diagnosis: str = ""
    deficiency_type: str = ""
    severity: str = ""

class ChatReq(BaseModel):
    messages: list[ChatMessage] = Field(default_factory=list)
    context: ChatContext

# ---- Helpers ----
def _serialize_plate(p) -> dict[str, t.Any] | None:
    if p is None:
        return None
    return {"id": p.id, "image": p.image, "role": p.role, "description": p.description}


def _index_metadata(record: dict[str, t.Any]) -> dict[str, t.Any]:
    meta = record.get("meta") or {}
    summary = record.get("summary") or {}
    return {
        "sessionId": meta.get("sessionId"),
        "userId": meta.get("userId"),
        "createdAt": record.get("created_at"),
        "mode": meta.get("mode"),
        "conclusion": summary.get("conclusion"),
        "severity": summary.get("severity"),
        "deficiencyType": summary.get("deficiency_type"),
    }


def _store(result: SessionResult, meta: dict[str, t.Any]) -> dict[str, t.Any]:
    record = to_record(result, record_id=str(uuid.uuid4()), created_at=utcnow_iso(), meta=meta)
    save_result(record["id"], record, _index_metadata(record))
    return record


def _get_session(sid: str) -> TestSession:
    sess = SESS.get(sid)
    if not sess:
        raise HTTPException(404, "session not found")
    return sess


def _get_result(result_id: str) -> dict[str, t.Any]:
    record = load_result(result_id)
    if not record:
        raise HTTPException(404, "result not found")
    return record

# ---- Health ----
@app.get("/")
def root():
    return {"status": "ok", "service": "color-vision-screening-api"}


@app.get("/health")
def health():
    return {"plates": len(CATALOG), "active_sessions": len(SESS), "llm": llm_bridge.status()}

# ---- Test administration ----
@app.post("/session/start")
def start(req: StartReq):
    sid = str(uuid.uuid4())
    sess = TestSession(CATALOG, mode=req.mode)
    SESS[sid] = sess
    started_at = utcnow_iso()
    SESSION_INFO[sid] = {"user_id": req.user_id, "mode": sess.mode, "started_at": started_at}
    if req.user_id:
        record_active_session(
            sid,
            {
                "sessionId": sid,
                "userId": req.user_id,
                "mode": sess.mode,
                "startedAt": started_at,
                "lastUpdated": started_at,
                "lastPlate": 0,
                "answered": 0,
                "total": len(sess.plates),
                "progress": 0.0,
            },
        )
    log.info("session started sid=%s mode=%s", sid, sess.mode)
    return {"session_id": sid, "total": len(sess.plates), "plate": _serialize_plate(sess.next_plate())}


@app.get("/api/test/next")
def test_next(session_id: str):
    sess = _get_session(session_id)
    return {"plate": _serialize_plate(sess.next_plate()), "answered": len(sess.answers), "total": len(sess.plates)}


@app.post("/api/test/answer")
def test_answer(payload: FEAnswer = Body(...)):
    sess = _get_session(payload.session_id)
    current = sess.next_plate()
    if current is None:
        raise HTTPException(400, "test already complete")
    if current.id != payload.plate_id:
        raise HTTPException(400, f"expected an answer for plate {current.id}")
    rt_sec = None
    if payload.rt_ms is not None:
        rt_sec = max(0, payload.rt_ms) / 1000.0
    elif payload.started_at is not None and payload.submitted_at is not None:
        rt_sec = max(0.0, payload.submitted_at - payload.started_at)
    sess.answer_current(payload.answer, rt_sec)
    if SESSION_INFO.get(payload.session_id, {}).get("user_id"):
        update_active_session(
            payload.session_id,
            {"lastUpdated": utcnow_iso(), "lastPlate": current.id, "answered": len(sess.answers)},
        )
    return {"ok": True, "next_available": not sess.done}


@app.post("/api/test/timeout")
def test_timeout(payload: FESession):
    sess = _get_session(payload.session_id)
    if sess.done:
        raise HTTPException(400, "test already complete")
    ans = sess.timeout_current()
    return {"ok": True, "plate_id": ans.plate_id, "next_available": not sess.done}


@app.post("/api/test/finish")
def test_finish(payload: FESession):
    stored = find_result_by_session(payload.session_id)
    if stored:
        return stored
    sess = _get_session(payload.session_id)
    info = SESSION_INFO.get(payload.session_id, {})
    record = _store(sess.finalize(), {"sessionId": payload.session_id, "userId": info.get("user_id")})
    if info.get("user_id"):
        clear_active_session(payload.session_id)
    SESS.pop(payload.session_id, None)
    SESSION_INFO.pop(payload.session_id, None)
    return record

# ---- Results ----
@app.post("/test-results", status_code=201)
def create_result(req: ResultReq):
    answers = answers_from_payload(CATALOG, [row.model_dump() for row in req.answers])
    mode = "advanced" if req.mode == "advanced" else "basic"
    verdict = evaluate(CATALOG, answers)
    result = SessionResult(mode=mode, verdict=verdict, answers=answers, summary=build_summary(verdict, answers, mode))
    record = _store(result, {"userId": req.user_id})
    return {"success": True, "message": "Test result saved successfully", "id": record["id"], "result": record}


@app.get("/test-results")
def recent_results(limit: int = Query(RECENT_LIMIT, ge=1, le=100)):
    rows = list_recent_results(limit)
    data = [rec for rec in (load_result(r["id"]) for r in rows) if rec]
    return {"success": True, "data": data}


@app.get("/results/{result_id}")
def get_result(result_id: str):
    return _get_result(result_id)


@app.delete("/results/{result_id}")
def delete_result_endpoint(result_id: str):
    if not delete_result(result_id):
        raise HTTPException(404, "result not found")
    return {"ok": True}


@app.get("/results/{result_id}/html")
def result_html(result_id: str):
    return Response(content=render_result_html(_get_result(result_id)), media_type="text/html")


@app.get("/results/{result_id}/answers.json")
def get_answers_json(result_id: str):
    record = _get_result(result_id)
    return {"result_id": result_id, **answers_to_json(record.get("answers") or [])}


@app.get("/results/{result_id}/answers.csv")
def get_answers_csv(result_id: str):
    record = _get_result(result_id)
    body = answers_to_csv(record.get("answers") or [])
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=\"{result_id}_answers.csv\""},
    )


@app.post("/results/{result_id}/career")
def create_career(result_id: str, force: bool = Query(False, description="Regenerate even if cached")):
    record = _get_result(result_id)
    existing = record.get("career_recommendation")
    if existing and not force:
        return {"result_id": result_id, "career": existing}

    guidance = generate_guidance(record.get("summary") or {}, load_config())
    if not guidance.get("skipped"):
        record["career_recommendation"] = guidance
        save_result(result_id, record, _index_metadata(record))
    return {"result_id": result_id, "career": guidance}

# ---- LLM ----
@app.get("/llm/status")
def llm_status():
    return {"success": True, "message": "Career recommendation API is active", **llm_bridge.status(), "timestamp": utcnow_iso()}


@app.post("/chat")
def chat(req: ChatReq):
    if not req.messages:
        return {"success": True, "reply": greeting(req.context.model_dump())["content"]}
    try:
        reply = chat_reply([m.model_dump() for m in req.messages], req.context.model_dump())
    except llm_bridge.LLMUnavailable as exc:
        log.warning("chat unavailable: %s", exc)
        raise HTTPException(503, "Failed to generate reply")
    return {"success": True, "reply": reply}

# ---- Analytics ----
@app.get("/analytics")
def analytics(range_days: int = Query(ANALYTICS_RANGE_DAYS, alias="range", ge=1, le=3650)):
    data = compute_analytics(load_all_results(), range_days=range_days)
    return {"success": True, "data": data, "timestamp": utcnow_iso()}

# ---- Users ----
@app.get("/users/{user_id}/results")
def list_user_results(user_id: str):
    return {"results": list_results_for_user(user_id)}


@app.get("/users/{user_id}/sessions/active")
def list_active_sessions(user_id: str):
    return {"sessions": active_sessions_for_user(user_id)}
