"""AI helpers for individual features and scope drift.

Same shape as :mod:`.suggestion_ai`: one JSON completion, defensive parsing,
and a fixed safe answer whenever the model cannot be used.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from ..domain.ai_models import BranchRecommendation, FeatureAnalysis
from ..domain.models import SUGGESTED_CATEGORIES
from ..observability.metrics import record_llm_outcome
from .llm import LLMUnavailable, complete_json, load_json

logger = logging.getLogger("featureboard.feature_ai")
LOG = logging.getLogger("featureboard.llm")

NOT_ENOUGH_FEATURES_REASON = "Not enough existing features to analyze for branching"
BRANCH_FALLBACK_REASON = "Unable to analyze features with AI. Please review manually."
ANALYSIS_FALLBACK_RATIONALE = (
    "Unable to analyze feature with AI. Default recommendation to MVP for manual review."
)
DEFAULT_PROJECT_CONTEXT = "General software project"
MAX_TAGS = 7


def _ask(operation: str, prompt: str) -> Optional[Dict[str, Any]]:
    """Return the parsed JSON object, or ``None`` when the caller should use its default."""
    try:
        data = load_json(complete_json(prompt))
    except LLMUnavailable as exc:
        record_llm_outcome(operation, exc.reason)
        LOG.info("llm_fallback", extra={"operation": operation, "reason": exc.reason})
        return None
    except ValueError as exc:
        record_llm_outcome(operation, "malformed")
        LOG.warning("llm_malformed_response", extra={"operation": operation, "detail": str(exc)})
        return None
    if not isinstance(data, dict):
        record_llm_outcome(operation, "malformed")
        LOG.warning("llm_malformed_response", extra={"operation": operation, "detail": "expected a JSON object"})
        return None
    record_llm_outcome(operation, "success")
    return data


def _feature_lines(features: Sequence[Dict[str, str]]) -> str:
    return "\n".join(f"- {f.get('name', '')}: {f.get('description', '')}" for f in features)


def analyze_for_branching(
    project_name: str,
    project_description: Optional[str],
    new_features: Sequence[Dict[str, str]],
    existing_features: Sequence[Dict[str, str]],
) -> BranchRecommendation:
    """Decide whether ``new_features`` drift far enough to spin off a branch project.

    With nothing to compare against the answer is always negative and the
    model is not consulted. Any failure also yields a negative answer.
    """
    if not existing_features:
        return BranchRecommendation(should_branch=False, reason=NOT_ENOUGH_FEATURES_REASON)

    prompt = (
        "As a product management expert, analyze whether the following new features are "
        "drifting from the original project scope.\n\n"
        f"Project Name: {project_name}\n"
        f"Project Description: {project_description or ''}\n\n"
        f"Existing Features:\n{_feature_lines(existing_features)}\n\n"
        f"New Features:\n{_feature_lines(new_features)}\n\n"
        "Analyze if these new features represent a significant direction change or scope "
        "change that would warrant creating a new project branch.\n\n"
        "Return your analysis in JSON format:\n"
        "{\n"
        '  "shouldBranch": true/false,\n'
        '  "reason": "Your explanation of why these features should or should not be branched",\n'
        '  "suggestedName": "Suggested name for new branch project (if branching is recommended)"\n'
        "}"
    )
    data = _ask("analyze_branching", prompt)
    if data is None:
        return BranchRecommendation(should_branch=False, reason=BRANCH_FALLBACK_REASON)

    should_branch = data.get("shouldBranch", data.get("should_branch"))
    reason = data.get("reason")
    if not isinstance(should_branch, bool) or not isinstance(reason, str) or not reason.strip():
        LOG.warning("llm_malformed_response", extra={"operation": "analyze_branching", "detail": "missing fields"})
        return BranchRecommendation(should_branch=False, reason=BRANCH_FALLBACK_REASON)
    suggested = data.get("suggestedName", data.get("suggested_name"))
    return BranchRecommendation(
        should_branch=should_branch,
        reason=reason.strip(),
        suggested_name=suggested.strip() if should_branch and isinstance(suggested, str) and suggested.strip() else None,
    )


def enhance_feature_description(name: str, description: str) -> str:
    """Return an expanded description, or the original one when the model is unusable."""
    prompt = (
        "Enhance and expand the following feature description with more details, technical "
        "considerations, or implementation notes:\n\n"
        f"Feature Name: {name}\n"
        f"Current Description: {description}\n\n"
        "Provide the enhanced description in JSON format:\n"
        '{\n  "enhancedDescription": "Your enhanced description..."\n}'
    )
    data = _ask("enhance_description", prompt)
    if data is None:
        return description
    enhanced = data.get("enhancedDescription", data.get("enhanced_description"))
    if not isinstance(enhanced, str) or not enhanced.strip():
        return description
    return enhanced.strip()


def _clean_tags(raw: Any) -> List[str]:
    if not isinstance(raw, list):
        return []
    tags: List[str] = []
    seen = set()
    for t in raw:
        if not isinstance(t, str):
            continue
        tag = t.strip()
        if not tag or tag.lower() in seen:
            continue
        seen.add(tag.lower())
        tags.append(tag)
    return tags[:MAX_TAGS]


def generate_tags(feature_name: str, feature_description: str, project_context: Optional[str] = None) -> List[str]:
    """Return 3-7 short tags for a feature; empty when the model is unusable."""
    prompt = (
        "You are an expert product tagger helping to categorize features for a software project.\n"
        "Given the information about a feature, generate 3-7 relevant tags.\n\n"
        f"Project Context: {project_context or DEFAULT_PROJECT_CONTEXT}\n\n"
        f"Feature Name: {feature_name}\n"
        f"Feature Description: {feature_description}\n\n"
        "Tags should be single words or short phrases (1-3 words) that capture key concepts, "
        "technologies, domains, or user needs.\n\n"
        "Format your response as a JSON object with this exact structure:\n"
        '{\n  "tags": ["tag1", "tag2", "tag3"],\n'
        '  "rationale": "Brief explanation of why these tags were chosen"\n}'
    )
    data = _ask("generate_tags", prompt)
    if data is None:
        return []
    return _clean_tags(data.get("tags"))


def analyze_feature(name: str, description: str, project_context: Optional[str] = None) -> FeatureAnalysis:
    """Recommend a category lane for a feature, defaulting to MVP."""
    context_line = f"Project Context: {project_context}\n" if project_context else ""
    prompt = (
        "As a product development expert, analyze the following feature request for categorization:\n\n"
        f"Feature Name: {name}\n"
        f"Feature Description: {description}\n"
        f"{context_line}\n"
        "Please assign this feature to one of these categories:\n"
        "- mvp (Must Have): Core features required for initial launch\n"
        "- launch: Important features for initial public release\n"
        "- v1.5: Enhancement features for mid-term update\n"
        "- v2.0: Future features for major update\n\n"
        "Provide your categorization and rationale in JSON format:\n"
        '{\n  "suggestedCategory": "mvp"|"launch"|"v1.5"|"v2.0",\n'
        '  "rationale": "Your justification for this categorization..."\n}'
    )
    data = _ask("analyze_feature", prompt)
    if data is None:
        return FeatureAnalysis(suggested_category="mvp", rationale=ANALYSIS_FALLBACK_RATIONALE)
    category = data.get("suggestedCategory", data.get("suggested_category"))
    if category not in SUGGESTED_CATEGORIES:
        category = "mvp"
    rationale = data.get("rationale")
    if not isinstance(rationale, str) or not rationale.strip():
        rationale = ANALYSIS_FALLBACK_RATIONALE
    return FeatureAnalysis(suggested_category=category, rationale=rationale.strip())
