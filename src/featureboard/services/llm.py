"""Single-shot JSON completion calls against an OpenAI-compatible API.

Callers get raw response text or an :class:`LLMUnavailable` carrying the
reason; deciding what to return instead is left to the calling service.
"""

from __future__ import annotations

import json
import logging
import os
import re
from typing import Any, Dict, List, Optional

from langchain_openai import ChatOpenAI

from .model_router import ModelRouter

LOG = logging.getLogger("featureboard.llm")

NO_CREDENTIALS = "no_credentials"
CALL_FAILED = "call_failed"
EMPTY_RESPONSE = "empty_response"

JSON_RESPONSE_FORMAT = {"type": "json_object"}
# Outermost embedded object, then outermost embedded array
JSON_PATTERNS = (r"\{[\s\S]*\}", r"\[[\s\S]*\]")


class LLMUnavailable(RuntimeError):
    """The completion API could not produce a usable response."""

    def __init__(self, reason: str, detail: str = "") -> None:
        super().__init__(f"{reason}: {detail}" if detail else reason)
        self.reason = reason
        self.detail = detail


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except ValueError:
        return default


def llm_configured() -> bool:
    return ModelRouter().maybe_select_provider() is not None


def _get_llm() -> ChatOpenAI:
    selection = ModelRouter().maybe_select_provider()
    if selection is None:
        raise LLMUnavailable(NO_CREDENTIALS)
    LOG.debug("Using LLM provider name=%s model=%s base_url=%s", selection.name, selection.model, selection.base_url)
    return ChatOpenAI(
        api_key=os.getenv(selection.api_key_env),
        base_url=selection.base_url,
        model=selection.model,
        temperature=_float_env("FEATUREBOARD_LLM_TEMPERATURE", 0.7),
        timeout=_float_env("FEATUREBOARD_LLM_TIMEOUT", 30.0),
        max_retries=0,
    )


def complete_json(prompt: str, system: Optional[str] = None) -> str:
    """Send one prompt and return the raw text of a JSON-mode completion.

    Raises
    ------
    LLMUnavailable
        With ``reason`` set to ``no_credentials`` (no call made),
        ``call_failed`` (transport or API error) or ``empty_response``.
    """

    llm = _get_llm()
    msgs: List[Dict[str, str]] = []
    if system:
        msgs.append({"role": "system", "content": system})
    msgs.append({"role": "user", "content": prompt})
    try:
        res = llm.invoke(msgs, response_format=JSON_RESPONSE_FORMAT)
    except Exception as exc:
        raise LLMUnavailable(CALL_FAILED, str(exc)) from exc
    text = res.content if hasattr(res, "content") else str(res)
    if not isinstance(text, str) or not text.strip():
        raise LLMUnavailable(EMPTY_RESPONSE)
    return text


def load_json(text: str) -> Any:
    """Parse model output as JSON, tolerating prose or code fences around it.

    Raises ``ValueError`` when no JSON value can be recovered.
    """

    try:
        return json.loads(text)
    except ValueError:
        pass
    # Objects first: prose such as "[note]" before an object must not win
    for pattern in JSON_PATTERNS:
        m = re.search(pattern, text or "")
        if not m:
            continue
        try:
            return json.loads(m.group(0))
        except ValueError:
            continue
    raise ValueError("No JSON found in model output")
