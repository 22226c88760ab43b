from __future__ import annotations

import pytest

from vision_core.plate_catalog import load_catalog
from vision_core.session import make_answer
from vision_core.types import Answer, Plate

NORMAL_STANDARD = {2: "8", 3: "29", 4: "5", 5: "3", 6: "15", 7: "74"}
DEFICIENT_STANDARD = {2: "3", 3: "70", 4: "2", 5: "5", 6: "17", 7: "21"}
CONFIRMATION_NORMAL = {8: "6", 9: "45", 10: "5", 11: "7", 12: "16", 13: "73", 16: "2", 17: "6"}
DIAGNOSTIC_NORMAL = {14: "26", 15: "42"}
DIAGNOSTIC_PROTAN = {14: "6", 15: "2"}
DIAGNOSTIC_DEUTAN = {14: "2", 15: "4"}


def build_answers(
    catalog: tuple[Plate, ...],
    responses: dict[int, str],
    *,
    control: str | None = "12",
    rt_sec: float = 4.0,
) -> list[Answer]:
    """Answers in catalog order for the plates named in ``responses``."""

    merged = dict(responses)
    if control is not None:
        merged[1] = control
    out: list[Answer] = []
    for plate in catalog:
        if plate.id in merged:
            out.append(make_answer(plate, merged[plate.id], rt_sec))
    return out


def confirmation_with_misses(misses: int, wrong: str = "0") -> dict[int, str]:
    rows = dict(CONFIRMATION_NORMAL)
    for pid in list(rows)[:misses]:
        rows[pid] = wrong
    return rows


@pytest.fixture
def catalog() -> tuple[Plate, ...]:
    return load_catalog()


@pytest.fixture
def normal_answers(catalog) -> list[Answer]:
    return build_answers(catalog, {**NORMAL_STANDARD, **CONFIRMATION_NORMAL, **DIAGNOSTIC_NORMAL})


@pytest.fixture
def no_llm(monkeypatch):
    monkeypatch.delenv("LLM_BACKEND", raising=False)
    monkeypatch.delenv("USE_LLM_CAREER", raising=False)
