"""Selection of the OpenAI-compatible provider used for AI suggestions.

The router does not couple directly to concrete SDK clients; it returns a
provider configuration that :mod:`.llm` turns into a chat client. Keeping
the policy here makes credential handling unit-testable without any SDK.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, Mapping, Optional


@dataclass(frozen=True)
class ProviderSelection:
    """Returned details about the provider that should handle a call."""

    name: str
    model: str
    api_key_env: str
    base_url: str


class ModelRouter:
    """Pick the first provider whose credential is present in the environment."""

    DEFAULT_MODEL = "gpt-4o"

    PROVIDER_CONFIG: Dict[str, Dict[str, str]] = {
        "xai": {
            "api_key_env": "XAI_API_KEY",
            "base_url_env": "XAI_BASE_URL",
            "default_model": "grok-2-latest",
            "default_base_url": "https://api.x.ai/v1",
        },
        "openai": {
            "api_key_env": "OPENAI_API_KEY",
            "base_url_env": "OPENAI_BASE_URL",
            "default_model": DEFAULT_MODEL,
            "default_base_url": "https://api.openai.com/v1",
        },
    }

    PRIORITY: tuple[str, ...] = ("openai", "xai")

    def __init__(self, env: Optional[Mapping[str, str]] = None) -> None:
        self._env = env if env is not None else os.environ
        preferred = (self._env.get("FEATUREBOARD_MODEL_PROVIDER") or "").strip().lower()
        self._preferred_provider = preferred if preferred in self.PROVIDER_CONFIG else None

    def _provider_available(self, provider: str) -> bool:
        cfg = self.PROVIDER_CONFIG[provider]
        return bool((self._env.get(cfg["api_key_env"]) or "").strip())

    def _resolve_selection(self, provider: str) -> ProviderSelection:
        cfg = self.PROVIDER_CONFIG[provider]
        model = (self._env.get("FEATUREBOARD_LLM_MODEL") or "").strip() or cfg["default_model"]
        base_url = (self._env.get(cfg["base_url_env"]) or "").strip() or cfg["default_base_url"]
        return ProviderSelection(
            name=provider,
            model=model,
            api_key_env=cfg["api_key_env"],
            base_url=base_url,
        )

    def maybe_select_provider(self) -> Optional[ProviderSelection]:
        """Return the provider to call, or ``None`` when no credential is configured."""

        priority = list(self.PRIORITY)
        if self._preferred_provider:
            priority = [self._preferred_provider] + [p for p in priority if p != self._preferred_provider]
        for provider in priority:
            if self._provider_available(provider):
                return self._resolve_selection(provider)
        return None

    def describe(self) -> Dict[str, object]:
        """Non-secret summary of the current configuration for diagnostics."""

        selection = self.maybe_select_provider()
        if selection is None:
            fallback = self._resolve_selection(self._preferred_provider or "openai")
            return {
                "provider": "none",
                "model": fallback.model,
                "base_url": fallback.base_url,
                "has_api_key": False,
            }
        return {
            "provider": selection.name,
            "model": selection.model,
            "base_url": selection.base_url,
            "has_api_key": True,
        }
