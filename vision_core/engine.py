# vision_core/engine.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence
import logging

from .types import Answer, DeficiencyType, Plate, Severity, Verdict
from . import checks
from . import config as cfg_defaults


log = logging.getLogger(__name__)

CONCLUSION_INVALID = "invalid"
CONCLUSION_NORMAL = "normal color vision"
CONCLUSION_DEFICIENT = "deficiency detected"
CONCLUSION_BORDERLINE = "possible mild color deficiency"
CONCLUSION_INCONCLUSIVE = "inconclusive"

RECOMMEND_RETEST_CONDITIONS = (
    "Please retake the test in good lighting conditions and ensure you understand the instructions."
)
RECOMMEND_NORMAL = "Your color vision is normal. No further testing required."
RECOMMEND_BY_SEVERITY = {
    "mild": "Mild color deficiency detected. Consultation with a professional is recommended for further evaluation.",
    "moderate": "Moderate color deficiency detected. It is strongly recommended to consult an eye care professional.",
    "severe": "Significant color deficiency detected. Please consult an eye care professional immediately for comprehensive examination.",
}
RECOMMEND_CANT_SEE = (
    "Significant difficulty reading color plates detected. "
    "Please consult an eye care professional for comprehensive evaluation."
)
RECOMMEND_BORDERLINE = "It is recommended to retest or consult with a professional for more accurate evaluation."
RECOMMEND_INCONCLUSIVE = (
    "Results are inconclusive. Please retake the test in good lighting conditions with full concentration."
)


@dataclass(frozen=True)
class DecisionRules:
    normal_standard_min: int
    deficient_standard_min: int
    normal_visible_min: int
    pattern_max: int
    cant_see_min: int
    borderline_missed: tuple[int, int]
    mild_max_pct: float
    moderate_max_pct: float
    cant_see_is_pattern: bool
    absent_diagnostic_type: DeficiencyType

    @staticmethod
    def from_cfg(cfg: Mapping[str, Any] | None) -> "DecisionRules":
        def _cfg_value(name: str, default: Any) -> Any:
            if isinstance(cfg, Mapping) and name in cfg:
                return cfg[name]
            return default

        absent = str(_cfg_value("ABSENT_DIAGNOSTIC_TYPE", cfg_defaults.ABSENT_DIAGNOSTIC_TYPE)).lower()
        if absent not in ("none", "general"):
            absent = "general"
        lo, hi = _cfg_value("BORDERLINE_MISSED", cfg_defaults.BORDERLINE_MISSED)

        return DecisionRules(
            normal_standard_min=int(_cfg_value("NORMAL_STANDARD_MIN", cfg_defaults.NORMAL_STANDARD_MIN)),
            deficient_standard_min=int(_cfg_value("DEFICIENT_STANDARD_MIN", cfg_defaults.DEFICIENT_STANDARD_MIN)),
            normal_visible_min=int(_cfg_value("NORMAL_VISIBLE_MIN", cfg_defaults.NORMAL_VISIBLE_MIN)),
            pattern_max=int(_cfg_value("PATTERN_MAX", cfg_defaults.PATTERN_MAX)),
            cant_see_min=int(_cfg_value("CANT_SEE_MIN", cfg_defaults.CANT_SEE_MIN)),
            borderline_missed=(int(lo), int(hi)),
            mild_max_pct=float(_cfg_value("SEVERITY_MILD_MAX_PCT", cfg_defaults.SEVERITY_MILD_MAX_PCT)),
            moderate_max_pct=float(_cfg_value("SEVERITY_MODERATE_MAX_PCT", cfg_defaults.SEVERITY_MODERATE_MAX_PCT)),
            cant_see_is_pattern=bool(_cfg_value("CANT_SEE_IS_PATTERN", cfg_defaults.CANT_SEE_IS_PATTERN)),
            absent_diagnostic_type=absent,  # type: ignore[arg-type]
        )


def _trace(node: str, **values: object) -> None:
    if not cfg_defaults.DEBUG_TRACE:
        return
    log.info("node=%s %s", node, " ".join(f"{k}={v}" for k, v in values.items()))


def _verdict(
    conclusion: str,
    confidence: int,
    deficiency_type: DeficiencyType,
    severity: Severity,
    details: List[str],
    correct: int,
    accuracy: float,
    recommendation: str,
) -> Verdict:
    return Verdict(
        conclusion=conclusion,
        confidence=confidence,
        deficiency_type=deficiency_type,
        severity=severity,
        details=tuple(details),
        correct_answers=correct,
        accuracy_percent=accuracy,
        recommendation=recommendation,
    )


def _hidden_detail(catalog: Sequence[Plate], answers: Sequence[Answer]) -> Optional[str]:
    read, presented = checks.count_hidden_read(catalog, answers)
    if not presented:
        return None
    return f"Hidden-number plates read: {read}/{presented}"


def evaluate(
    catalog: Sequence[Plate],
    answers: Sequence[Answer],
    rules: DecisionRules | None = None,
) -> Verdict:
    """Run the plate decision tree and return a single verdict.

    Nodes run top to bottom; the first one that matches returns. Anything
    that cannot be matched against the catalog counts as absent.
    """
    rules = rules or DecisionRules.from_cfg(None)
    catalog = tuple(p for p in (catalog or ()) if isinstance(p, Plate))
    answers = [a for a in (answers or []) if isinstance(a, Answer)]
    details: List[str] = []

    if not checks.check_control(catalog, answers):
        _trace("control", passed=False)
        return _verdict(
            CONCLUSION_INVALID, cfg_defaults.CONFIDENCE_INVALID, "none", "none",
            ["Failed to read control plate. Possible poor lighting or misunderstanding of instructions."],
            0, 0.0, RECOMMEND_RETEST_CONDITIONS,
        )
    details.append("Control plate read correctly")

    normal_count, deficient_count, standard_n = checks.tally_standard(catalog, answers)
    details.append(
        f"Standard plates: {normal_count} normal, {deficient_count} deficient out of {standard_n} plates"
    )
    correct, accuracy = checks.answer_statistics(answers)
    _trace("standard", normal=normal_count, deficient=deficient_count, correct=correct)

    if normal_count >= rules.normal_standard_min:
        visible, pattern = checks.check_confirmation(catalog, answers, rules.cant_see_is_pattern)
        _trace("normal", visible=visible, pattern=pattern)
        if visible >= rules.normal_visible_min and pattern < rules.pattern_max:
            details.extend([
                "Standard plates read as normal",
                "No color deficiency pattern detected",
                "Visibility plates read correctly",
            ])
            return _verdict(
                CONCLUSION_NORMAL, cfg_defaults.CONFIDENCE_NORMAL, "none", "none",
                details, correct, accuracy, RECOMMEND_NORMAL,
            )
        details.append("Some inconsistencies detected")

    if deficient_count >= rules.deficient_standard_min:
        details.append("Color deficiency pattern detected")
        dtype, explanation = checks.resolve_deficiency_type(catalog, answers, rules.absent_diagnostic_type)
        if dtype != "none":
            details.append(explanation)
        hidden = _hidden_detail(catalog, answers)
        if hidden:
            details.append(hidden)
        missed, total = checks.check_visibility(catalog, answers)
        severity, _pct = checks.resolve_severity(missed, total, rules.mild_max_pct, rules.moderate_max_pct)
        details.append(f"Severity: {severity.upper()} ({missed}/{total} plates missed)")
        _trace("deficient", type=dtype, severity=severity, missed=missed, total=total)
        return _verdict(
            CONCLUSION_DEFICIENT, cfg_defaults.CONFIDENCE_DEFICIENT, dtype, severity,
            details, correct, accuracy, RECOMMEND_BY_SEVERITY[severity],
        )

    cant_see = checks.cant_see_plates(answers)
    if len(cant_see) >= rules.cant_see_min:
        details.append(f"Multiple \"can't see\" responses detected ({len(cant_see)} plates)")
        dtype, explanation = checks.resolve_deficiency_type(catalog, answers, rules.absent_diagnostic_type)
        missed, total = checks.check_visibility(catalog, answers)
        severity, _pct = checks.resolve_severity(missed, total, rules.mild_max_pct, rules.moderate_max_pct)
        details.append("Unable to see numbers on multiple plates (deficiency indicator)")
        if dtype != "none":
            details.append(explanation)
        hidden = _hidden_detail(catalog, answers)
        if hidden:
            details.append(hidden)
        _trace("cant_see", count=len(cant_see), type=dtype, severity=severity)
        return _verdict(
            CONCLUSION_DEFICIENT, cfg_defaults.CONFIDENCE_CANT_SEE, dtype, severity,
            details, correct, accuracy, RECOMMEND_CANT_SEE,
        )

    missed, total = checks.check_visibility(catalog, answers)
    lo, hi = rules.borderline_missed
    if lo <= missed <= hi:
        details.extend([
            f"Some plates not read correctly ({missed}/{total})",
            "Results show inconsistent pattern",
            "Possible mild deficiency or suboptimal testing conditions",
        ])
        _trace("borderline", missed=missed, total=total)
        return _verdict(
            CONCLUSION_BORDERLINE, cfg_defaults.CONFIDENCE_BORDERLINE, "general", "mild",
            details, correct, accuracy, RECOMMEND_BORDERLINE,
        )

    details.extend(["Inconsistent answer pattern", "Recommend retaking the test"])
    _trace("inconclusive", missed=missed, total=total)
    return _verdict(
        CONCLUSION_INCONCLUSIVE, cfg_defaults.CONFIDENCE_INCONCLUSIVE, "none", "none",
        details, correct, accuracy, RECOMMEND_INCONCLUSIVE,
    )
