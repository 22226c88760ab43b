from __future__ import annotations

import pytest

from vision_core.engine import CONCLUSION_DEFICIENT, CONCLUSION_NORMAL
from vision_core.plate_catalog import plate_by_id
from vision_core.session import TestSession, answers_from_payload, make_answer, to_record

from tests.conftest import DEFICIENT_STANDARD, DIAGNOSTIC_PROTAN


def _normal_reply(plate) -> str:
    if plate.normal_answer is None:
        return "can't see"
    return plate.normal_answer


def test_make_answer_derives_correctness(catalog):
    plate = plate_by_id(catalog, 2)
    ans = make_answer(plate, " 8 ", 3.2)
    assert ans.user_answer == "8"
    assert ans.expected_answer == "8"
    assert ans.is_correct
    assert ans.kind == "value"
    assert ans.response_time_s == pytest.approx(3.2)

    wrong = make_answer(plate, 3, 1.0)
    assert wrong.user_answer == "3"
    assert not wrong.is_correct


def test_cant_see_and_slow_answers(catalog):
    plate = plate_by_id(catalog, 2)
    assert make_answer(plate, "Can't See", 2.0).kind == "unanswerable"
    assert make_answer(plate, "", 2.0).kind == "unanswerable"

    slow = make_answer(plate, "8", 31.0)
    assert slow.user_answer == "8"
    assert slow.kind == "value"
    assert slow.is_correct
    assert slow.response_time_s == 30.0
    assert make_answer(plate, "8", -4).response_time_s == 0.0

    expired = make_answer(plate, "timeout", 30.0)
    assert expired.kind == "timeout"
    assert not expired.is_correct


def test_slow_control_answer_still_counts(catalog):
    sess = TestSession(catalog)
    while not sess.done:
        plate = sess.next_plate()
        sess.answer_current(_normal_reply(plate), 30.0 if plate.group == "control" else 3.0)
    res = sess.finalize()
    assert res.answers[0].user_answer == "12"
    assert res.answers[0].response_time_s == 30.0
    assert res.verdict.conclusion == CONCLUSION_NORMAL


def test_hidden_plates_expect_nothing(catalog):
    hidden = plate_by_id(catalog, 19)
    assert make_answer(hidden, "can't see", 2.0).is_correct
    seen = make_answer(hidden, "2", 2.0)
    assert not seen.is_correct
    assert seen.expected_answer == "can't see"


def test_basic_session_runs_seventeen_plates(catalog):
    sess = TestSession(catalog)
    assert sess.mode == "basic"
    assert len(sess.plates) == 17
    while not sess.done:
        sess.answer_current(_normal_reply(sess.next_plate()), 2.5)
    assert sess.next_plate() is None
    with pytest.raises(RuntimeError):
        sess.answer_current("8")

    res = sess.finalize()
    assert res.verdict.conclusion == CONCLUSION_NORMAL
    assert res.summary["total_questions"] == 17
    assert res.summary["total_time_s"] == pytest.approx(42.5)
    assert res.summary["diagnosis"] == CONCLUSION_NORMAL
    assert res.summary["mode"] == "basic"


def test_advanced_session_and_timeouts(catalog):
    sess = TestSession(catalog, mode="advanced")
    assert len(sess.plates) == 24
    replies = {**DEFICIENT_STANDARD, **DIAGNOSTIC_PROTAN, 1: "12"}
    while not sess.done:
        plate = sess.next_plate()
        if plate.group == "confirmation":
            ans = sess.timeout_current()
            assert ans.kind == "timeout"
            continue
        sess.answer_current(replies.get(plate.id, "can't see"), 4.0)

    res = sess.finalize()
    assert res.mode == "advanced"
    assert res.verdict.conclusion == CONCLUSION_DEFICIENT
    assert res.verdict.deficiency_type == "protanopia"
    assert res.verdict.severity == "severe"


def test_unknown_mode_falls_back_to_basic(catalog):
    assert TestSession(catalog, mode="express").mode == "basic"


def test_answers_from_payload_accepts_client_rows(catalog):
    rows = [
        {"questionId": 1, "userAnswer": "12", "timeToAnswer": 3},
        {"plate_id": 2, "user_answer": "8", "response_time_s": 2.0},
        {"plate_id": 404, "user_answer": "8"},
        {"plate_id": "x"},
        "junk",
    ]
    answers = answers_from_payload(catalog, rows)
    assert [a.plate_id for a in answers] == [1, 2]
    assert all(a.is_correct for a in answers)


def test_to_record_shape(catalog):
    sess = TestSession(catalog)
    for _ in range(5):
        sess.answer_current(_normal_reply(sess.next_plate()), 1.0)
    record = to_record(sess.finalize(), record_id="r1", created_at="2026-01-01T00:00:00+00:00", meta={"userId": "u1"})
    assert record["id"] == "r1"
    assert record["career_recommendation"] is None
    assert record["meta"] == {"userId": "u1", "mode": "basic"}
    assert record["answers"][0]["plate_id"] == 1
    assert record["summary"]["conclusion"] == record["summary"]["diagnosis"]
