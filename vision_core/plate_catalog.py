from __future__ import annotations
import json, importlib.resources as ir
from collections import Counter
from typing import Iterable, List, Optional, Sequence, Tuple
from .types import Answer, Plate, PlateGroup

GROUPS: tuple[str, ...] = ("control", "standard", "confirmation", "diagnostic", "hidden", "tracing")
BASIC_EXCLUDED_ROLES: tuple[str, ...] = ("trace", "hidden_number")


def load_catalog() -> Tuple[Plate, ...]:
    data = ir.files(__package__).joinpath("data").joinpath("plates.json").read_text(encoding="utf-8")
    raw = json.loads(data)
    return tuple(Plate(**r) for r in raw)


def plate_by_id(catalog: Iterable[Plate], plate_id: int) -> Optional[Plate]:
    for p in catalog:
        if p.id == plate_id:
            return p
    return None


def plates_in_group(catalog: Iterable[Plate], group: PlateGroup) -> List[Plate]:
    return [p for p in catalog if p.group == group]


def answer_for(answers: Iterable[Answer], plate_id: int) -> Optional[Answer]:
    for a in answers:
        if a.plate_id == plate_id:
            return a
    return None


def basic_plates(catalog: Sequence[Plate]) -> List[Plate]:
    """Plates answerable with the numeric keypad (no tracing, no hidden numbers)."""
    return [p for p in catalog if p.role not in BASIC_EXCLUDED_ROLES]


def advanced_plates(catalog: Sequence[Plate]) -> List[Plate]:
    return list(catalog)


def catalog_problems(catalog: Sequence[Plate]) -> List[str]:
    problems: List[str] = []
    dupes = [pid for pid, n in Counter(p.id for p in catalog).items() if n > 1]
    for pid in sorted(dupes):
        problems.append(f"plate {pid}: duplicate id")
    for p in catalog:
        if p.normal_answer is None and p.deficient_answer is None:
            problems.append(f"plate {p.id}: no normal or deficient answer")
        if p.group not in GROUPS:
            problems.append(f"plate {p.id}: unknown group {p.group!r}")
        if p.group == "diagnostic" and (not p.protan_answer or not p.deutan_answer):
            problems.append(f"plate {p.id}: diagnostic plate without protan/deutan values")
        if p.group == "standard" and (p.normal_answer is None or p.deficient_answer is None):
            problems.append(f"plate {p.id}: standard plate needs both answers")
        if p.group == "confirmation" and p.normal_answer is None:
            problems.append(f"plate {p.id}: confirmation plate without normal answer")
    if len(plates_in_group(catalog, "control")) != 1:
        problems.append("catalog must have exactly one control plate")
    return problems
