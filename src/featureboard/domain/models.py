from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, get_args
from pydantic import BaseModel, Field


Perspective = Literal["technical", "business", "ux", "security"]
Category = Literal["mvp", "launch", "v1.5", "v2.0", "rejected"]

PERSPECTIVES: tuple[str, ...] = get_args(Perspective)
CATEGORIES: tuple[str, ...] = get_args(Category)
# Categories a suggestion may land in; "rejected" is a user decision only.
SUGGESTED_CATEGORIES: tuple[str, ...] = ("mvp", "launch", "v1.5", "v2.0")


class ProjectCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    mission: Optional[str] = None
    goals: List[str] = Field(default_factory=list)
    in_scope: List[str] = Field(default_factory=list)
    out_of_scope: List[str] = Field(default_factory=list)
    constraints: List[str] = Field(default_factory=list)
    branch_reason: Optional[str] = Field(default=None, description="Why this project was branched off its parent")
    is_auto_branched: bool = False


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    mission: Optional[str] = None
    goals: Optional[List[str]] = None
    in_scope: Optional[List[str]] = None
    out_of_scope: Optional[List[str]] = None
    constraints: Optional[List[str]] = None
    parent_id: Optional[int] = None
    branch_reason: Optional[str] = None
    is_auto_branched: Optional[bool] = None


class Project(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    mission: Optional[str] = None
    goals: List[str] = Field(default_factory=list)
    in_scope: List[str] = Field(default_factory=list)
    out_of_scope: List[str] = Field(default_factory=list)
    constraints: List[str] = Field(default_factory=list)
    parent_id: Optional[int] = None
    branch_reason: Optional[str] = None
    is_auto_branched: bool = False
    created_at: datetime
    updated_at: Optional[datetime] = None


class FeatureCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    perspective: Perspective
    category: Category = "mvp"
    tags: List[str] = Field(default_factory=list)
    ai_enhanced: Optional[Dict[str, Any]] = None


class FeatureUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    perspective: Optional[Perspective] = None
    category: Optional[Category] = None
    tags: Optional[List[str]] = None
    ai_enhanced: Optional[Dict[str, Any]] = None


class CategoryMove(BaseModel):
    category: Category


class Feature(BaseModel):
    id: int
    project_id: int
    name: str
    description: str = ""
    perspective: Perspective
    category: Category
    tags: List[str] = Field(default_factory=list)
    ai_enhanced: Optional[Dict[str, Any]] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class AiSuggestion(BaseModel):
    id: int
    project_id: int
    name: str
    description: str
    perspective: Perspective
    suggested_category: Category
    created_at: datetime


class ConceptCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str
    concept_category: str = "other"
    target_audience: Optional[str] = None
    inspirations: List[str] = Field(default_factory=list)
    potential_features: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)


class ConceptUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    concept_category: Optional[str] = None
    target_audience: Optional[str] = None
    inspirations: Optional[List[str]] = None
    potential_features: Optional[List[str]] = None
    tags: Optional[List[str]] = None


class Concept(BaseModel):
    id: int
    name: str
    description: str
    concept_category: str = "other"
    target_audience: Optional[str] = None
    inspirations: List[str] = Field(default_factory=list)
    potential_features: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: Optional[datetime] = None
