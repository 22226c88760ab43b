"""Follow-up assistant scoped to the user's colour vision result."""
from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping

from . import config as cfg_defaults
from . import llm_bridge

GREETING = (
    "Hello! I see you have **{deficiency_type}** ({severity}). Do you have any specific questions "
    "about how this affects your daily life or career plans?"
)


def system_prompt(context: Mapping[str, Any]) -> str:
    return (
        "You are an expert AI assistant embedded in a Color Vision Test application.\n\n"
        "User Context:\n"
        f"- Diagnosis: {context.get('diagnosis', '')}\n"
        f"- Type: {context.get('deficiency_type', '')}\n"
        f"- Severity: {context.get('severity', '')}\n\n"
        "Your STRICT Instructions:\n"
        "1. Your ONLY purpose is to interpret the user's color vision test results and answer questions "
        "related to Color Vision Deficiency (CVD), eye health, and how it impacts daily life or careers.\n"
        "2. If the user asks about ANY topic unrelated to vision, you MUST politely DECLINE to answer.\n"
        "3. Say something like: \"I apologize, but my expertise is strictly limited to color vision analysis. "
        "I cannot assist with general topics.\"\n"
        "4. DO NOT attempt to answer the general question even briefly.\n"
        "5. Keep your tone professional, medical, and supportive."
    )


def format_history(messages: Iterable[Mapping[str, Any]]) -> str:
    lines = ["Current Conversation:"]
    for msg in messages or []:
        role = "User" if msg.get("role") == "user" else "Assistant"
        lines.append(f"{role}: {msg.get('content', '')}")
    lines.append("Assistant:")
    return "\n".join(lines)


def greeting(context: Mapping[str, Any]) -> Dict[str, str]:
    return {
        "role": "assistant",
        "content": GREETING.format(
            deficiency_type=context.get("deficiency_type") or "a color vision deficiency",
            severity=context.get("severity") or "unknown",
        ),
    }


def chat_reply(messages: Iterable[Mapping[str, Any]], context: Mapping[str, Any]) -> str:
    """Raises llm_bridge.LLMUnavailable when no backend can answer."""
    return llm_bridge.complete(
        system_prompt(context),
        format_history(messages),
        kind="chat",
        temperature=0.4,
        max_tokens=cfg_defaults.CHAT_MAX_TOKENS,
    ).strip()
