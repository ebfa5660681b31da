from __future__ import annotations

from typing import Any, Dict, Optional

from src.featureboard.services import llm as llm_module


def install_stub_llm(
    monkeypatch,
    content: Optional[str] = None,
    *,
    error: Optional[Exception] = None,
    captured: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Configure a dummy key and replace ChatOpenAI with a stub returning ``content``."""
    monkeypatch.setenv("OPENAI_API_KEY", "dummy")
    captured = captured if captured is not None else {}
    captured.setdefault("calls", 0)

    class StubLLM:
        def __init__(self, *args, **kwargs):
            captured["init"] = kwargs

        def invoke(self, msgs, **kwargs):
            captured["calls"] += 1
            captured["msgs"] = msgs
            captured["invoke_kwargs"] = kwargs
            if error is not None:
                raise error
            return type("Resp", (), {"content": content})()

    monkeypatch.setattr(llm_module, "ChatOpenAI", StubLLM)
    return captured


def install_exploding_llm(monkeypatch) -> None:
    """A key is configured but constructing a client fails the test."""
    monkeypatch.setenv("OPENAI_API_KEY", "dummy")

    class ExplodingLLM:
        def __init__(self, *args, **kwargs):
            raise AssertionError("LLM must not be called")

    monkeypatch.setattr(llm_module, "ChatOpenAI", ExplodingLLM)
