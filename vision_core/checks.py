"""Node checks for the plate decision tree.

Every function here is a pure read over the catalog and the answer list.
Lookups that find nothing degrade to "no match"; none of them raise on
unmatched plate ids or unexpected answer text.
"""
from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from .config import CANT_SEE_PHRASES, TIMEOUT_ANSWER
from .plate_catalog import answer_for, plates_in_group
from .types import Answer, DeficiencyType, Plate, Severity


def is_cant_see(answer: Optional[Answer]) -> bool:
    """True when the viewer reported that no figure was visible."""
    if answer is None:
        return False
    if answer.kind == "unanswerable":
        return True
    if answer.kind == "timeout":
        return False
    text = str(answer.user_answer or "").strip().lower()
    if not text:
        return True
    return any(phrase and phrase in text for phrase in CANT_SEE_PHRASES)


def is_timeout(answer: Optional[Answer]) -> bool:
    if answer is None:
        return False
    return answer.kind == "timeout" or answer.user_answer == TIMEOUT_ANSWER


def check_control(catalog: Sequence[Plate], answers: Sequence[Answer]) -> bool:
    controls = plates_in_group(catalog, "control")
    if not controls:
        return False
    plate = controls[0]
    ans = answer_for(answers, plate.id)
    if ans is None or plate.normal_answer is None:
        return False
    return ans.user_answer == plate.normal_answer


def tally_standard(catalog: Sequence[Plate], answers: Sequence[Answer]) -> Tuple[int, int, int]:
    """Return (normal_count, deficient_count, plate_count) over the standard plates."""
    plates = plates_in_group(catalog, "standard")
    normal = deficient = 0
    for p in plates:
        ans = answer_for(answers, p.id)
        if ans is None:
            continue
        if ans.user_answer == p.normal_answer:
            normal += 1
        elif ans.user_answer == p.deficient_answer:
            deficient += 1
    return normal, deficient, len(plates)


def answer_statistics(answers: Sequence[Answer]) -> Tuple[int, float]:
    correct = sum(1 for a in answers if a.is_correct)
    if not answers:
        return correct, 0.0
    return correct, correct / len(answers) * 100


def check_confirmation(
    catalog: Sequence[Plate],
    answers: Sequence[Answer],
    cant_see_is_pattern: bool = False,
) -> Tuple[int, int]:
    """Return (normal_visible_count, deficiency_pattern_count).

    On plates without a deficient reading, the default counts a reported
    figure that is not the normal one as deficiency evidence. With
    ``cant_see_is_pattern`` the count flips to "can't see" responses instead.
    """
    visible = pattern = 0
    for p in plates_in_group(catalog, "confirmation"):
        ans = answer_for(answers, p.id)
        if ans is None:
            continue
        if ans.user_answer == p.normal_answer:
            visible += 1
        elif p.deficient_answer is None:
            if cant_see_is_pattern:
                if is_cant_see(ans):
                    pattern += 1
            elif not is_cant_see(ans) and not is_timeout(ans):
                pattern += 1
        elif ans.user_answer == p.deficient_answer:
            pattern += 1
    return visible, pattern


def resolve_deficiency_type(
    catalog: Sequence[Plate],
    answers: Sequence[Answer],
    absent_type: DeficiencyType = "general",
) -> Tuple[DeficiencyType, str]:
    """Score protan vs deutan readings on the diagnostic plates."""
    diag = plates_in_group(catalog, "diagnostic")
    answered = [(p, answer_for(answers, p.id)) for p in diag]
    answered = [(p, a) for p, a in answered if a is not None]
    if not answered:
        if absent_type == "none":
            return "none", ""
        return absent_type, "Diagnostic plates not answered; red-green type unresolved"

    protan = deutan = 0
    for p, a in answered:
        if p.protan_answer is not None and a.user_answer == p.protan_answer:
            protan += 1
        if p.deutan_answer is not None and a.user_answer == p.deutan_answer:
            deutan += 1

    if protan > deutan:
        return "protanopia", "Protanopia detected (red deficiency)"
    if deutan > protan:
        return "deuteranopia", "Deuteranopia detected (green deficiency)"
    return "general", "General color deficiency (red-green)"


def check_visibility(catalog: Sequence[Plate], answers: Sequence[Answer]) -> Tuple[int, int]:
    """Return (missed_count, total_plates) over the confirmation plates.

    Missing answers count as missed. total_plates is the number answered,
    or the catalog count when nothing was answered.
    """
    plates = plates_in_group(catalog, "confirmation")
    missed = tested = 0
    for p in plates:
        ans = answer_for(answers, p.id)
        if ans is None:
            missed += 1
            continue
        tested += 1
        if ans.user_answer != p.normal_answer:
            missed += 1
    return missed, (tested if tested > 0 else len(plates))


def resolve_severity(
    missed: int,
    total: int,
    mild_max_pct: float = 30.0,
    moderate_max_pct: float = 60.0,
) -> Tuple[Severity, float]:
    if total <= 0:
        return "mild", 0.0
    pct = missed / total * 100
    if pct <= mild_max_pct:
        return "mild", pct
    if pct <= moderate_max_pct:
        return "moderate", pct
    return "severe", pct


def cant_see_plates(answers: Sequence[Answer]) -> List[int]:
    return [a.plate_id for a in answers if is_cant_see(a)]


def count_hidden_read(catalog: Sequence[Plate], answers: Sequence[Answer]) -> Tuple[int, int]:
    """Hidden-number plates read with their deficient figure: (read, presented)."""
    read = presented = 0
    for p in plates_in_group(catalog, "hidden"):
        ans = answer_for(answers, p.id)
        if ans is None:
            continue
        presented += 1
        if p.deficient_answer is not None and ans.user_answer == p.deficient_answer:
            read += 1
    return read, presented
