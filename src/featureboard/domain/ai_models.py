from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Union
from pydantic import BaseModel, Field

from .models import Category, Perspective


class SuggestionDraft(BaseModel):
    """A normalized suggestion before it is stored."""

    name: str
    description: str
    perspective: Perspective
    suggested_category: Category


@dataclass(frozen=True)
class ParsedSuggestions:
    items: List[SuggestionDraft] = field(default_factory=list)


@dataclass(frozen=True)
class MalformedResponse:
    raw_text: str
    detail: str = ""


ParseResult = Union[ParsedSuggestions, MalformedResponse]


class SuggestFeaturesRequest(BaseModel):
    # Validated by the route so an unknown lens returns 400 with a readable message
    perspective: Optional[str] = None


class SuggestFromInfoRequest(BaseModel):
    mission: Optional[str] = None
    goals: List[str] = Field(default_factory=list)
    in_scope: List[str] = Field(default_factory=list)
    out_of_scope: List[str] = Field(default_factory=list)


class SuggestFromInfoResponse(BaseModel):
    suggestions: List[SuggestionDraft]


class EnhanceDescriptionRequest(BaseModel):
    name: str = Field(min_length=1)
    description: str = Field(min_length=1)


class EnhanceDescriptionResponse(BaseModel):
    enhanced_description: str


class GenerateTagsRequest(BaseModel):
    feature_name: str = Field(min_length=1)
    feature_description: str = Field(min_length=1)
    project_context: Optional[str] = None


class GenerateTagsResponse(BaseModel):
    tags: List[str]


class AnalyzeFeatureRequest(BaseModel):
    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    project_context: Optional[str] = None


class FeatureAnalysis(BaseModel):
    suggested_category: Category
    rationale: str


class AnalyzeBranchingRequest(BaseModel):
    new_feature_ids: List[int] = Field(min_length=1)


class BranchRecommendation(BaseModel):
    should_branch: bool
    reason: str
    suggested_name: Optional[str] = None
