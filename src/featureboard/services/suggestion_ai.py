"""AI feature suggestions for projects.

If an API key is available (OPENAI_API_KEY or XAI_API_KEY) we ask the model
for suggestions in JSON and normalize whatever shape comes back. Without a
key, on a failed call, or on an unusable response we return canned
suggestions for the requested perspective instead. The public generators
never raise.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..domain.ai_models import MalformedResponse, ParsedSuggestions, ParseResult, SuggestionDraft
from ..domain.models import PERSPECTIVES, SUGGESTED_CATEGORIES, AiSuggestion, Feature, FeatureCreate
from ..infrastructure.repository import BrainstormRepository
from ..observability.metrics import record_llm_outcome
from .llm import NO_CREDENTIALS, LLMUnavailable, complete_json, load_json

logger = logging.getLogger("featureboard.suggestions")
LOG = logging.getLogger("featureboard.llm")

DEFAULT_NAME = "Unnamed Feature"
DEFAULT_DESCRIPTION = "No description provided"
DEFAULT_CATEGORY = "mvp"
# Used in free-form mode when the model's perspective is not one of the four lenses
DEFAULT_PERSPECTIVE = "technical"

PERSPECTIVE_COUNT = 3
FROM_INFO_COUNT = "5-8"

SYSTEM_PROMPT = (
    "You are a product feature generator. You ONLY output valid JSON objects "
    "containing feature suggestions. Do not include explanations outside the JSON."
)

FALLBACK_SUGGESTIONS: Dict[str, List[Tuple[str, str, str]]] = {
    "technical": [
        (
            "Automated Testing Framework",
            "Implement comprehensive test suite with unit, integration, and E2E tests. "
            "Includes CI integration and detailed reporting.",
            "mvp",
        ),
        (
            "API Rate Limiting",
            "Add request throttling to prevent abuse. Includes configurable limits per "
            "endpoint and proper 429 responses.",
            "launch",
        ),
        (
            "Performance Monitoring",
            "Implement detailed metrics tracking for application performance. Includes "
            "dashboards and automated alerts for anomalies.",
            "v1.5",
        ),
    ],
    "business": [
        (
            "Customer Analytics Dashboard",
            "Create a comprehensive view of user metrics and ROI calculations. Helps track "
            "business value and conversion rates.",
            "mvp",
        ),
        (
            "Subscription Management",
            "Implement tiered pricing model with automated billing. Includes upgrade paths "
            "and usage analytics.",
            "launch",
        ),
        (
            "Partner Integration API",
            "Develop secure API for third-party integrations. Expands ecosystem and creates "
            "new revenue opportunities.",
            "v2.0",
        ),
    ],
    "ux": [
        (
            "Personalized Onboarding Flow",
            "Create adaptive first-time user experience based on user role. Ensures feature "
            "discovery and reduces learning curve.",
            "mvp",
        ),
        (
            "Customizable Dashboard",
            "Allow users to arrange and select widgets for their main view. Settings sync "
            "across devices for consistent experience.",
            "v1.5",
        ),
        (
            "Accessibility Enhancements",
            "Implement WCAG compliance features including keyboard navigation and screen "
            "reader support. Makes product usable for all users.",
            "launch",
        ),
    ],
    "security": [
        (
            "Two-Factor Authentication",
            "Add extra security layer with app and SMS verification options. Includes "
            "recovery mechanisms and session management.",
            "mvp",
        ),
        (
            "Data Encryption",
            "Implement end-to-end encryption for sensitive information. Uses industry "
            "standard algorithms with regular key rotation.",
            "launch",
        ),
        (
            "Security Audit Logging",
            "Create detailed logs of security-relevant events with tamper-proof storage. "
            "Includes suspicious activity detection and alerts.",
            "v1.5",
        ),
    ],
}


# ---------------------------------------------------------------------------
# Prompt builder
# ---------------------------------------------------------------------------
def _bullets(items: Optional[Sequence[str]]) -> str:
    return ", ".join(str(x).strip() for x in (items or []) if str(x).strip())


def build_suggestion_prompt(
    project_name: str,
    *,
    perspective: Optional[str] = None,
    description: Optional[str] = None,
    mission: Optional[str] = None,
    goals: Optional[Sequence[str]] = None,
    in_scope: Optional[Sequence[str]] = None,
    out_of_scope: Optional[Sequence[str]] = None,
    existing_features: Optional[Sequence[Dict[str, str]]] = None,
) -> str:
    """Return the instruction text for perspective mode or, without a perspective, free-form mode."""

    count = str(PERSPECTIVE_COUNT) if perspective else FROM_INFO_COUNT
    categories = ", ".join(f'"{c}"' for c in SUGGESTED_CATEGORIES)
    lines: List[str] = []
    if perspective:
        lines.append(
            f"As a product development expert focusing on the {perspective} perspective, "
            f"suggest exactly {count} new features for this project."
        )
    else:
        lines.append(
            f"As an expert product manager, generate {count} feature suggestions for a "
            "software project based on the following information."
        )

    lines += ["", "PROJECT DETAILS:", f"Project Name: {project_name}"]
    if description:
        lines.append(f"Project Description: {description}")
    if mission:
        lines.append(f"Project Mission: {mission}")
    if _bullets(goals):
        lines.append(f"Goals: {_bullets(goals)}")
    if _bullets(in_scope):
        lines.append(f"In Scope: {_bullets(in_scope)}")
    if _bullets(out_of_scope):
        lines.append(f"Out of Scope: {_bullets(out_of_scope)}")

    lines.append("")
    if existing_features:
        lines.append("EXISTING FEATURES:")
        for f in existing_features:
            lines.append(f"- {f.get('name', '')}: {f.get('description', '')}")
        lines.append("Do not duplicate existing features.")
    else:
        lines.append("No existing features yet.")

    lines += ["", "For each feature provide:", "1. name: a clear and concise name"]
    lines.append("2. description: 2-3 sentences explaining its purpose and value")
    if perspective:
        lines.append(f'3. perspective: always "{perspective}"')
    else:
        lines.append("3. perspective: one of " + ", ".join(f'"{p}"' for p in PERSPECTIVES))
        lines.append("Cover a diverse mix of perspectives, from essential features to innovative ideas.")
    lines.append(f"4. suggestedCategory: one of {categories}")
    lines += [
        "",
        "Respond with a JSON object of this exact structure:",
        '{"suggestions": [{"name": "...", "description": "...", '
        f'"perspective": "{perspective or "technical"}", "suggestedCategory": "mvp"}}]}}',
    ]
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Response normalizer
# ---------------------------------------------------------------------------
def _pick_items(data: Any) -> Optional[List[Any]]:
    if isinstance(data, dict) and isinstance(data.get("suggestions"), list):
        return data["suggestions"]
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for value in data.values():
            if isinstance(value, list) and value:
                return value
    return None


def _text(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def coerce_suggestion(item: Any, perspective: Optional[str] = None) -> SuggestionDraft:
    """Map one model-produced element onto a canonical suggestion.

    The requested perspective always wins over the model's; the category is
    the model's call but must be one of the suggestible buckets.
    """
    if not isinstance(item, dict):
        item = {}
    if perspective:
        lens = perspective
    else:
        lens = item.get("perspective") if item.get("perspective") in PERSPECTIVES else DEFAULT_PERSPECTIVE
    category = item.get("suggestedCategory", item.get("suggested_category"))
    if category not in SUGGESTED_CATEGORIES:
        category = DEFAULT_CATEGORY
    return SuggestionDraft(
        name=_text(item.get("name"), DEFAULT_NAME),
        description=_text(item.get("description"), DEFAULT_DESCRIPTION),
        perspective=lens,
        suggested_category=category,
    )


def normalize_suggestions(raw_text: str, perspective: Optional[str] = None) -> ParseResult:
    try:
        data = load_json(raw_text)
    except ValueError as exc:
        return MalformedResponse(raw_text=raw_text, detail=str(exc))
    items = _pick_items(data)
    if items is None:
        return MalformedResponse(raw_text=raw_text, detail="no suggestion array in response")
    return ParsedSuggestions(items=[coerce_suggestion(item, perspective) for item in items])


# ---------------------------------------------------------------------------
# Fallback table
# ---------------------------------------------------------------------------
def fallback_suggestions(perspective: str) -> List[SuggestionDraft]:
    return [
        SuggestionDraft(name=name, description=desc, perspective=perspective, suggested_category=cat)
        for name, desc, cat in FALLBACK_SUGGESTIONS.get(perspective, [])
    ]


# ---------------------------------------------------------------------------
# Generators
# ---------------------------------------------------------------------------
def _suggest(operation: str, prompt: str, perspective: Optional[str]) -> Optional[List[SuggestionDraft]]:
    """Run one LLM round trip; ``None`` means the caller should fall back."""
    try:
        text = complete_json(prompt, system=SYSTEM_PROMPT)
    except LLMUnavailable as exc:
        record_llm_outcome(operation, exc.reason)
        LOG.info("llm_fallback", extra={"operation": operation, "reason": exc.reason})
        if exc.reason != NO_CREDENTIALS:
            logger.warning("Suggestion call failed (%s); using fallback suggestions", exc)
        return None
    result = normalize_suggestions(text, perspective)
    if isinstance(result, MalformedResponse):
        record_llm_outcome(operation, "malformed")
        LOG.warning(
            "llm_malformed_response",
            extra={"operation": operation, "detail": result.detail, "content": result.raw_text[:200]},
        )
        return None
    record_llm_outcome(operation, "success")
    logger.info("Parsed %d suggestions for operation=%s", len(result.items), operation)
    return result.items


def generate_feature_suggestions(
    project_name: str,
    project_description: Optional[str],
    existing_features: Sequence[Dict[str, str]],
    perspective: str,
) -> List[SuggestionDraft]:
    """Return three suggestions for ``perspective``; canned ones when the model is unusable."""
    if perspective not in PERSPECTIVES:
        logger.warning("Unknown perspective %r; no suggestions generated", perspective)
        return fallback_suggestions(perspective)
    prompt = build_suggestion_prompt(
        project_name or "Untitled Project",
        perspective=perspective,
        description=project_description or "No description provided",
        existing_features=existing_features,
    )
    items = _suggest("suggest_features", prompt, perspective)
    if items is None:
        return fallback_suggestions(perspective)
    return items


def generate_features_from_project_info(
    project_name: str,
    mission: Optional[str] = None,
    goals: Optional[Sequence[str]] = None,
    in_scope: Optional[Sequence[str]] = None,
    out_of_scope: Optional[Sequence[str]] = None,
    description: Optional[str] = None,
) -> List[SuggestionDraft]:
    """Whole-project suggestions across all perspectives; empty when the model is unusable."""
    prompt = build_suggestion_prompt(
        project_name,
        description=description,
        mission=mission,
        goals=goals,
        in_scope=in_scope,
        out_of_scope=out_of_scope,
    )
    items = _suggest("suggest_from_info", prompt, None)
    return items or []


# ---------------------------------------------------------------------------
# Persistence glue
# ---------------------------------------------------------------------------
def store_suggestions(
    repo: BrainstormRepository, project_id: int, drafts: Sequence[SuggestionDraft]
) -> List[AiSuggestion]:
    # One insert per suggestion; a failure part-way leaves the earlier ones stored
    return [repo.create_suggestion(project_id, draft) for draft in drafts]


def accept_suggestion(repo: BrainstormRepository, suggestion_id: int) -> Optional[Feature]:
    """Turn a pending suggestion into a feature and drop the suggestion."""
    suggestion = repo.get_suggestion(suggestion_id)
    if suggestion is None:
        return None
    # Claim before creating so concurrent accepts yield one feature
    if not repo.delete_suggestion(suggestion_id):
        return None
    return repo.create_feature(
        suggestion.project_id,
        FeatureCreate(
            name=suggestion.name,
            description=suggestion.description,
            perspective=suggestion.perspective,
            category=suggestion.suggested_category,
            ai_enhanced=None,
        ),
    )
