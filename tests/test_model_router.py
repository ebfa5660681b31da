"""Unit tests for `ModelRouter` provider selection and diagnostics."""

from __future__ import annotations

from src.featureboard.services.model_router import ModelRouter, ProviderSelection


def test_no_credentials_selects_nothing():
    router = ModelRouter(env={})
    assert router.maybe_select_provider() is None
    info = router.describe()
    assert info["provider"] == "none"
    assert info["has_api_key"] is False
    assert info["model"] == ModelRouter.DEFAULT_MODEL


def test_openai_preferred_when_both_keys_present():
    selection = ModelRouter(env={"OPENAI_API_KEY": "o", "XAI_API_KEY": "x"}).maybe_select_provider()
    assert isinstance(selection, ProviderSelection)
    assert selection.name == "openai"
    assert selection.model == "gpt-4o"
    assert selection.api_key_env == "OPENAI_API_KEY"


def test_xai_used_when_only_xai_key_present():
    selection = ModelRouter(env={"XAI_API_KEY": "x"}).maybe_select_provider()
    assert selection.name == "xai"
    assert selection.base_url == "https://api.x.ai/v1"


def test_preferred_provider_and_model_override():
    env = {
        "OPENAI_API_KEY": "o",
        "XAI_API_KEY": "x",
        "FEATUREBOARD_MODEL_PROVIDER": "XAI",
        "FEATUREBOARD_LLM_MODEL": "grok-beta",
    }
    selection = ModelRouter(env=env).maybe_select_provider()
    assert selection.name == "xai"
    assert selection.model == "grok-beta"


def test_preferred_provider_without_key_falls_through():
    env = {"OPENAI_API_KEY": "o", "FEATUREBOARD_MODEL_PROVIDER": "xai"}
    assert ModelRouter(env=env).maybe_select_provider().name == "openai"


def test_blank_key_counts_as_missing():
    assert ModelRouter(env={"OPENAI_API_KEY": "   "}).maybe_select_provider() is None


def test_describe_never_exposes_key():
    info = ModelRouter(env={"OPENAI_API_KEY": "sk-secret", "OPENAI_BASE_URL": "http://proxy/v1"}).describe()
    assert info["base_url"] == "http://proxy/v1"
    assert "sk-secret" not in str(info)
