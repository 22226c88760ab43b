from __future__ import annotations

import pytest

from vision_core import career, chat, llm_bridge

DEFICIENT_SUMMARY = {
    "conclusion": "deficiency detected",
    "diagnosis": "deficiency detected",
    "severity": "moderate",
    "deficiency_type": "deuteranopia",
}


def test_no_guidance_for_normal_vision(no_llm):
    out = career.generate_guidance({"severity": "none", "deficiency_type": "none"}, {})
    assert out == {"skipped": True, "reason": "no deficiency"}


def test_guidance_can_be_disabled(no_llm):
    out = career.generate_guidance(DEFICIENT_SUMMARY, {"CAREER_ENABLED": False})
    assert out == {"skipped": True, "reason": "disabled"}


def test_template_guidance_has_every_section(no_llm):
    out = career.generate_guidance(DEFICIENT_SUMMARY, {})
    assert out["skipped"] is False
    assert out["source"] == "template"
    assert out["sections_present"] is True
    assert "Train Driver" in out["recommendation"]
    assert out["content_length"] == len(out["recommendation"])


def test_llm_guidance_is_cleaned(monkeypatch):
    raw = "\n\n\n".join(s.replace("##", "###") for s in career.REQUIRED_SECTIONS)
    monkeypatch.setattr(llm_bridge, "complete", lambda *a, **k: raw)
    monkeypatch.setattr(
        llm_bridge,
        "azure_settings",
        lambda: llm_bridge.AzureSettings(endpoint="https://x", api_key="k", deployment="gpt-test", api_version="v"),
    )
    out = career.generate_guidance(DEFICIENT_SUMMARY, {"CAREER_LLM_ENABLED": True})
    assert out["source"] == "azure"
    assert out["model"] == "gpt-test"
    assert out["sections_present"] is True
    assert "###" not in out["recommendation"]
    assert "\n\n\n" not in out["recommendation"]


def test_llm_failure_falls_back_to_template(monkeypatch):
    def boom(*_a, **_k):
        raise llm_bridge.LLMUnavailable("quota")

    monkeypatch.setattr(llm_bridge, "complete", boom)
    out = career.generate_guidance(DEFICIENT_SUMMARY, {"CAREER_LLM_ENABLED": True})
    assert out["source"] == "template"
    assert out["sections_present"] is True


def test_prompt_names_the_result():
    prompt = career.build_prompt("deficiency detected", "mild", "protanopia")
    assert "- Severity: mild" in prompt
    assert all(section in prompt for section in career.REQUIRED_SECTIONS)


def test_chat_requires_backend(no_llm):
    with pytest.raises(llm_bridge.LLMUnavailable):
        chat.chat_reply([{"role": "user", "content": "Can I be a pilot?"}], DEFICIENT_SUMMARY)
    assert llm_bridge.status()["backend"] == "none"


def test_chat_history_and_prompt(monkeypatch):
    seen = {}

    def fake_complete(system, user, **kwargs):
        seen.update(system=system, user=user, kind=kwargs.get("kind"))
        return "  Pilots need a specialist exam.  "

    monkeypatch.setattr(llm_bridge, "complete", fake_complete)
    history = [
        {"role": "assistant", "content": "Hello!"},
        {"role": "user", "content": "Can I be a pilot?"},
    ]
    reply = chat.chat_reply(history, DEFICIENT_SUMMARY)
    assert reply == "Pilots need a specialist exam."
    assert seen["kind"] == "chat"
    assert "- Type: deuteranopia" in seen["system"]
    assert seen["user"].splitlines() == [
        "Current Conversation:",
        "Assistant: Hello!",
        "User: Can I be a pilot?",
        "Assistant:",
    ]


def test_greeting_mentions_context():
    msg = chat.greeting({"deficiency_type": "protanopia", "severity": "mild"})
    assert msg["role"] == "assistant"
    assert "**protanopia** (mild)" in msg["content"]
