import json

from src.featureboard.services import feature_ai

from .utils import install_exploding_llm, install_stub_llm


NEW = [{"name": "Crypto Wallet", "description": "Hold tokens"}]
EXISTING = [{"name": "Task List", "description": "Track todos"}]


def test_branching_without_existing_features_never_calls_llm(monkeypatch):
    install_exploding_llm(monkeypatch)
    rec = feature_ai.analyze_for_branching("Todo", "A todo app", NEW, [])
    assert rec.should_branch is False
    assert rec.reason == feature_ai.NOT_ENOUGH_FEATURES_REASON
    assert rec.suggested_name is None


def test_branching_without_credentials_returns_fallback():
    rec = feature_ai.analyze_for_branching("Todo", "A todo app", NEW, EXISTING)
    assert rec.should_branch is False
    assert rec.reason == feature_ai.BRANCH_FALLBACK_REASON


def test_branching_parses_camel_case_response(monkeypatch):
    captured = install_stub_llm(
        monkeypatch,
        json.dumps({"shouldBranch": True, "reason": "Different market", "suggestedName": "Todo Finance"}),
    )
    rec = feature_ai.analyze_for_branching("Todo", "A todo app", NEW, EXISTING)
    assert rec.should_branch is True
    assert rec.reason == "Different market"
    assert rec.suggested_name == "Todo Finance"
    prompt = captured["msgs"][-1]["content"]
    assert "- Task List: Track todos" in prompt
    assert "- Crypto Wallet: Hold tokens" in prompt


def test_branching_drops_name_when_not_branching(monkeypatch):
    install_stub_llm(
        monkeypatch,
        json.dumps({"should_branch": False, "reason": "Same scope", "suggested_name": "Ignored"}),
    )
    rec = feature_ai.analyze_for_branching("Todo", None, NEW, EXISTING)
    assert rec.should_branch is False
    assert rec.suggested_name is None


def test_branching_missing_fields_fall_back(monkeypatch):
    install_stub_llm(monkeypatch, json.dumps({"shouldBranch": "maybe"}))
    rec = feature_ai.analyze_for_branching("Todo", None, NEW, EXISTING)
    assert rec.reason == feature_ai.BRANCH_FALLBACK_REASON


def test_branching_call_error_falls_back(monkeypatch):
    install_stub_llm(monkeypatch, error=TimeoutError("slow"))
    rec = feature_ai.analyze_for_branching("Todo", None, NEW, EXISTING)
    assert rec.should_branch is False
    assert rec.reason == feature_ai.BRANCH_FALLBACK_REASON


def test_enhance_description_returns_original_on_failure(monkeypatch):
    assert feature_ai.enhance_feature_description("Login", "Users sign in") == "Users sign in"
    install_stub_llm(monkeypatch, "not json at all")
    assert feature_ai.enhance_feature_description("Login", "Users sign in") == "Users sign in"


def test_enhance_description_uses_model_output(monkeypatch):
    install_stub_llm(monkeypatch, json.dumps({"enhancedDescription": "  Users sign in with SSO.  "}))
    assert feature_ai.enhance_feature_description("Login", "Users sign in") == "Users sign in with SSO."


def test_generate_tags_cleans_and_caps(monkeypatch):
    tags = ["Auth", "auth", " ", 5, "SSO", "security", "ux", "mobile", "web", "api", "extra"]
    install_stub_llm(monkeypatch, json.dumps({"tags": tags, "rationale": "r"}))
    out = feature_ai.generate_tags("Login", "Users sign in")
    assert out == ["Auth", "SSO", "security", "ux", "mobile", "web", "api"]


def test_generate_tags_empty_on_failure(monkeypatch):
    assert feature_ai.generate_tags("Login", "Users sign in") == []
    install_stub_llm(monkeypatch, json.dumps(["a", "b"]))
    assert feature_ai.generate_tags("Login", "Users sign in") == []


def test_analyze_feature_coerces_category(monkeypatch):
    install_stub_llm(monkeypatch, json.dumps({"suggestedCategory": "v9", "rationale": "Later"}))
    res = feature_ai.analyze_feature("Login", "Users sign in", "Todo app")
    assert res.suggested_category == "mvp"
    assert res.rationale == "Later"


def test_analyze_feature_accepts_valid_category(monkeypatch):
    install_stub_llm(monkeypatch, json.dumps({"suggestedCategory": "v2.0", "rationale": "Big"}))
    res = feature_ai.analyze_feature("Login", "Users sign in")
    assert res.suggested_category == "v2.0"


def test_analyze_feature_fallback_without_credentials():
    res = feature_ai.analyze_feature("Login", "Users sign in")
    assert res.suggested_category == "mvp"
    assert res.rationale == feature_ai.ANALYSIS_FALLBACK_RATIONALE
