from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Literal, Tuple

PlateRole = Literal["control", "number", "diagnostic", "hidden_number", "trace"]
PlateGroup = Literal["control", "standard", "confirmation", "diagnostic", "hidden", "tracing"]
AnswerKind = Literal["value", "unanswerable", "timeout"]
DeficiencyType = Literal["none", "protanopia", "deuteranopia", "general"]
Severity = Literal["none", "mild", "moderate", "severe"]


@dataclass(frozen=True)
class Plate:
    id: int; role: PlateRole; group: PlateGroup
    normal_answer: Optional[str] = None
    deficient_answer: Optional[str] = None
    image: str = ""
    protan_answer: Optional[str] = None
    deutan_answer: Optional[str] = None
    description: str = ""


@dataclass
class Answer:
    plate_id: int; user_answer: str
    expected_answer: Optional[str] = None
    is_correct: bool = False
    response_time_s: float = 0.0
    kind: AnswerKind = "value"


@dataclass(frozen=True)
class Verdict:
    conclusion: str
    confidence: int
    deficiency_type: DeficiencyType
    severity: Severity
    details: Tuple[str, ...]
    correct_answers: int
    accuracy_percent: float
    recommendation: str

    def to_dict(self) -> Dict[str, object]:
        return {
            "conclusion": self.conclusion,
            "confidence": self.confidence,
            "deficiency_type": self.deficiency_type,
            "severity": self.severity,
            "details": list(self.details),
            "correct_answers": self.correct_answers,
            "accuracy_percent": self.accuracy_percent,
            "recommendation": self.recommendation,
        }


@dataclass
class SessionResult:
    mode: Literal["basic", "advanced"]
    verdict: Verdict
    answers: List[Answer]
    summary: Dict[str, object] = field(default_factory=dict)
