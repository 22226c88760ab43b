from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Sequence

from . import config as cfg_defaults
from . import llm_bridge

log = logging.getLogger(__name__)


REQUIRED_SECTIONS: Sequence[str] = (
    "## **1. Personalized Assessment**",
    "## **2. Understanding Your Condition**",
    "## **3. Career Paths - Highly Recommended**",
    "## **4. Careers Requiring Accommodations**",
    "## **5. Careers to Avoid**",
    "## **6. Assistive Technology & Tools**",
    "## **7. Success Strategies**",
    "## **8. Closing Encouragement**",
)

_SEVERITY_ORDER: Dict[str, int] = {"none": 0, "mild": 1, "moderate": 2, "severe": 3}

_CONDITION_TEXT: Dict[str, str] = {
    "protanopia": (
        "Protan deficiency means the red-sensitive cones respond weakly, so reds look darker and "
        "can blend with greens, browns and greys. Traffic lights are usually told apart by position, "
        "but red text on dark backgrounds and status LEDs can be hard to read."
    ),
    "deuteranopia": (
        "Deutan deficiency means the green-sensitive cones respond weakly, so greens, yellows, oranges "
        "and reds drift toward each other. It is the most common form, and most people notice it with "
        "colour-coded charts, ripe-versus-unripe produce or map legends."
    ),
    "general": (
        "The screening shows a red-green pattern without a clear lean toward red or green. In practice "
        "that means similar everyday effects: colour-coded information needs a second cue such as a "
        "label, shape or position."
    ),
}

_RECOMMENDED: Sequence[str] = (
    "Software Engineer: Work is text and logic driven; themes and contrast are fully configurable.",
    "Data Analyst: Charts can use patterns and labelled series; colour-safe palettes are standard.",
    "Teacher: Communication-centred; colour rarely carries critical meaning.",
    "Writer or Editor: Language-focused work with no colour dependency.",
    "Accountant: Numeric accuracy matters, not colour recognition.",
    "Lawyer: Analytical, document-centred work.",
    "Mechanical Engineer: Drawings rely on dimensions and annotations.",
    "Psychologist or Counsellor: People-focused; strong listening skills matter most.",
    "Musician or Sound Engineer: Auditory craft with meters that have numeric scales.",
    "Project Manager: Coordination and planning; dashboards can use icons and text states.",
)

_ACCOMMODATED: Sequence[str] = (
    "Graphic Designer: Challenges with colour selection. Accommodations: colour picker tools, colleague verification, accessibility plugins.",
    "UX/UI Designer: Challenges with colour contrast. Accommodations: WCAG guidelines, contrast checkers, automated tools.",
    "Lab Technician: Challenges with colour-coded tests. Accommodations: digital instruments, labelled samples.",
    "Chef: Challenges judging doneness by colour. Accommodations: thermometers, timers, texture cues.",
    "Photographer: Challenges with white balance. Accommodations: histogram and eyedropper readouts.",
)

_AVOID: Dict[str, Sequence[str]] = {
    "mild": (
        "Commercial Pilot: Strict aviation colour vision requirements; check the exact standard before committing.",
    ),
    "moderate": (
        "Commercial Pilot: Strict aviation colour vision requirements for safety.",
        "Electrician: Colour-coded wiring systems pose safety risks.",
        "Train Driver: Signal colours must be identified at distance.",
    ),
    "severe": (
        "Commercial Pilot: Strict aviation colour vision requirements for safety.",
        "Electrician: Colour-coded wiring systems pose safety risks.",
        "Firefighter: Emergency situations require quick colour identification.",
        "Train Driver: Signal colours must be identified at distance.",
        "Marine Navigator: Navigation lights are distinguished by colour.",
    ),
}

_TOOLS: Sequence[str] = (
    "ColorBlind Pal: Mobile app that identifies colours using the camera.",
    "Colorblindly: Browser extension that adjusts website colours.",
    "Operating-system colour filters: Built-in protan/deutan filters on desktop and mobile.",
    "EnChroma glasses: Can enhance colour contrast for some users.",
)

_STRATEGIES: Sequence[str] = (
    "Leverage your strengths in pattern recognition and attention to detail.",
    "Be proactive about discussing accommodations with employers.",
    "Use technology tools to assist with colour-related tasks.",
    "Ask for labels, icons or patterns alongside colour in shared documents.",
)


@dataclass(frozen=True)
class CareerSettings:
    enabled: bool
    llm_enabled: bool
    temperature: float
    max_tokens: int
    min_severity: str

    @staticmethod
    def from_cfg(cfg: Mapping[str, Any] | None) -> "CareerSettings":
        def _cfg_value(name: str, default: Any) -> Any:
            if isinstance(cfg, Mapping) and name in cfg:
                return cfg[name]
            return default

        min_sev = str(_cfg_value("CAREER_MIN_SEVERITY", "mild")).lower()
        if min_sev not in _SEVERITY_ORDER:
            min_sev = "mild"
        return CareerSettings(
            enabled=bool(_cfg_value("CAREER_ENABLED", cfg_defaults.CAREER_ENABLED)),
            llm_enabled=bool(_cfg_value("CAREER_LLM_ENABLED", cfg_defaults.CAREER_LLM_ENABLED)),
            temperature=float(_cfg_value("CAREER_TEMPERATURE", cfg_defaults.CAREER_TEMPERATURE)),
            max_tokens=int(_cfg_value("CAREER_MAX_TOKENS", cfg_defaults.CAREER_MAX_TOKENS)),
            min_severity=min_sev,
        )


def build_prompt(diagnosis: str, severity: str, deficiency_type: str) -> str:
    return f"""
You are a compassionate career counselor specializing in color vision deficiency.
A person has just received their color vision test results and needs personalized career guidance.

TEST RESULTS:
- Diagnosis: {diagnosis}
- Severity: {severity}
- Deficiency Type: {deficiency_type}

IMPORTANT: You MUST use EXACTLY this format with these exact section headers. Do not add extra sections or change the header names.

## **1. Personalized Assessment**
Start with a warm, empathetic greeting. Acknowledge their results and explain what they mean in simple terms. Reassure them that this doesn't limit their potential. Mention that approximately 8% of men and 0.5% of women have color vision deficiency. Keep this section to 150-200 words.

## **2. Understanding Your Condition**
Explain {deficiency_type} in simple, clear terms. Describe how it affects daily life and what specific challenges they might face. Keep this section to 100-150 words.

## **3. Career Paths - Highly Recommended**
List 10-15 careers that are EXCELLENT matches, one bullet each: "- [Career Name]: Why it's suitable; Accessibility features." Keep this section to 300-400 words.

## **4. Careers Requiring Accommodations**
List 5-8 careers that are possible with tools and accommodations, explaining the challenge and the accommodation. Use bullet points with - for each career.

## **5. Careers to Avoid**
List 5-7 careers not recommended due to safety concerns or strict color vision requirements. Be honest but gentle. Use bullet points with - for each career.

## **6. Assistive Technology & Tools**
List helpful apps, browser extensions and workplace accommodations. Use bullet points with - for each tool.

## **7. Success Strategies**
Provide actionable advice focused on strengths, communication and confidence. Use bullet points with - for each strategy.

## **8. Closing Encouragement**
End with an uplifting message of about 100 words.

Remember to use the EXACT section headers above, a warm professional tone, and bullet points with - for all lists.

Begin your response now:
""".strip()


def clean_guidance(text: str) -> str:
    out = (text or "").replace("###", "##")
    out = re.sub(r"\n{3,}", "\n\n", out)
    out = re.sub(r"##\s+\*\*", "## **", out)
    return out.strip()


def sections_present(text: str) -> bool:
    return all(section in text for section in REQUIRED_SECTIONS)


def _bullets(lines: Sequence[str]) -> str:
    return "\n".join(f"- {line}" for line in lines)


def fallback_guidance(diagnosis: str, severity: str, deficiency_type: str) -> str:
    """Template guidance used when the model is disabled or unavailable."""
    condition = _CONDITION_TEXT.get(deficiency_type, _CONDITION_TEXT["general"])
    avoid = _AVOID.get(severity, _AVOID["mild"])
    parts: List[str] = [
        REQUIRED_SECTIONS[0],
        (
            f"Your screening result is \"{diagnosis}\" with {severity} severity. "
            "Roughly 8% of men and 0.5% of women have a colour vision deficiency, and the large majority "
            "build careers without limits. This result is a screening outcome, not a medical diagnosis."
        ),
        REQUIRED_SECTIONS[1],
        condition,
        REQUIRED_SECTIONS[2],
        _bullets(_RECOMMENDED),
        REQUIRED_SECTIONS[3],
        _bullets(_ACCOMMODATED),
        REQUIRED_SECTIONS[4],
        _bullets(avoid),
        REQUIRED_SECTIONS[5],
        _bullets(_TOOLS),
        REQUIRED_SECTIONS[6],
        _bullets(_STRATEGIES),
        REQUIRED_SECTIONS[7],
        (
            "Colour vision is one input among many. Plenty of engineers, artists and scientists work with a "
            "red-green deficiency every day; with the right tools it shapes how you work, not what you can do."
        ),
    ]
    return "\n\n".join(parts)


def generate_guidance(summary: Mapping[str, Any], cfg: Mapping[str, Any] | None) -> Dict[str, Any]:
    """Career guidance for a stored result summary.

    Returns a payload with the Markdown text, its source ("azure" or
    "template") and whether all required sections are present. Results whose
    severity is below the configured minimum are skipped.
    """
    settings = CareerSettings.from_cfg(cfg)
    severity = str(summary.get("severity") or "none").lower()
    dtype = str(summary.get("deficiency_type") or "general").lower()
    diagnosis = str(summary.get("diagnosis") or summary.get("conclusion") or "")

    if not settings.enabled:
        return {"skipped": True, "reason": "disabled"}
    if _SEVERITY_ORDER.get(severity, 0) < max(1, _SEVERITY_ORDER[settings.min_severity]):
        return {"skipped": True, "reason": "no deficiency"}

    text = ""
    source = "template"
    model = "template"
    if settings.llm_enabled:
        try:
            raw = llm_bridge.complete(
                "You write career guidance for people with color vision deficiency.",
                build_prompt(diagnosis, severity, dtype),
                kind="career",
                temperature=settings.temperature,
                max_tokens=settings.max_tokens,
            )
            text = clean_guidance(raw)
            source = "azure"
            model = llm_bridge.azure_settings().deployment
        except llm_bridge.LLMUnavailable as exc:
            log.warning("career guidance fallback: %s", exc)
            text = ""
    if not text:
        text = fallback_guidance(diagnosis, severity, dtype)

    complete = sections_present(text)
    if not complete:
        log.warning("career guidance missing some sections, keeping response")
    return {
        "skipped": False,
        "recommendation": text,
        "source": source,
        "model": model,
        "sections_present": complete,
        "content_length": len(text),
        "generated_at": datetime.now(timezone.utc).isoformat(),
    }
