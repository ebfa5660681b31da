from __future__ import annotations

from typing import List
import logging
from fastapi import APIRouter, Depends, HTTPException, Response, status

from ...domain.ai_models import (
    AnalyzeBranchingRequest,
    AnalyzeFeatureRequest,
    BranchRecommendation,
    EnhanceDescriptionRequest,
    EnhanceDescriptionResponse,
    FeatureAnalysis,
    GenerateTagsRequest,
    GenerateTagsResponse,
    SuggestFeaturesRequest,
    SuggestFromInfoRequest,
    SuggestFromInfoResponse,
    SuggestionDraft,
)
from ...domain.models import PERSPECTIVES, AiSuggestion, Feature
from ...infrastructure.repository import BrainstormRepository, get_repo
from ...services.feature_ai import analyze_feature, analyze_for_branching, enhance_feature_description, generate_tags
from ...services.suggestion_ai import (
    accept_suggestion,
    generate_feature_suggestions,
    generate_features_from_project_info,
    store_suggestions,
)
from .projects import require_project


logger = logging.getLogger("featureboard.api.ai")

router = APIRouter(tags=["ai"])


def _feature_pairs(features: List[Feature]) -> List[dict]:
    return [{"name": f.name, "description": f.description or ""} for f in features]


@router.post("/projects/{project_id}/ai/suggest-features", response_model=List[AiSuggestion])
def suggest_features(
    project_id: int,
    req: SuggestFeaturesRequest,
    repo: BrainstormRepository = Depends(get_repo),
) -> List[AiSuggestion]:
    proj = require_project(project_id, repo)
    if req.perspective not in PERSPECTIVES:
        raise HTTPException(
            status_code=400,
            detail="Invalid perspective. Must be technical, business, ux, or security.",
        )
    logger.info("Generating %s suggestions for project %s", req.perspective, project_id)
    try:
        drafts = generate_feature_suggestions(
            proj.name,
            proj.description,
            _feature_pairs(repo.list_features(project_id)),
            req.perspective,
        )
        return store_suggestions(repo, project_id, drafts)
    except Exception:
        logger.exception("Suggestion generation failed for project %s", project_id)
        raise HTTPException(status_code=500, detail="Failed to generate suggestions")


@router.post("/projects/{project_id}/ai/suggest-features-from-info", response_model=SuggestFromInfoResponse)
def suggest_features_from_info(
    project_id: int,
    req: SuggestFromInfoRequest,
    repo: BrainstormRepository = Depends(get_repo),
) -> SuggestFromInfoResponse:
    proj = require_project(project_id, repo)
    try:
        drafts = generate_features_from_project_info(
            proj.name,
            mission=req.mission or proj.mission,
            goals=req.goals or proj.goals,
            in_scope=req.in_scope or proj.in_scope,
            out_of_scope=req.out_of_scope or proj.out_of_scope,
            description=proj.description,
        )
        stored = store_suggestions(repo, project_id, drafts)
    except Exception:
        logger.exception("Project-info suggestion generation failed for project %s", project_id)
        raise HTTPException(status_code=500, detail="Failed to generate feature suggestions from project info")
    return SuggestFromInfoResponse(
        suggestions=[
            SuggestionDraft(
                name=s.name,
                description=s.description,
                perspective=s.perspective,
                suggested_category=s.suggested_category,
            )
            for s in stored
        ]
    )


@router.get("/projects/{project_id}/ai/suggestions", response_model=List[AiSuggestion])
def list_suggestions(project_id: int, repo: BrainstormRepository = Depends(get_repo)) -> List[AiSuggestion]:
    require_project(project_id, repo)
    return repo.list_suggestions(project_id)


@router.post("/ai/suggestions/{suggestion_id}/accept", response_model=Feature, status_code=status.HTTP_201_CREATED)
def accept(suggestion_id: int, repo: BrainstormRepository = Depends(get_repo)) -> Feature:
    feature = accept_suggestion(repo, suggestion_id)
    if feature is None:
        raise HTTPException(status_code=404, detail="Suggestion not found")
    return feature


@router.delete("/ai/suggestions/{suggestion_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
def reject(suggestion_id: int, repo: BrainstormRepository = Depends(get_repo)) -> Response:
    if not repo.delete_suggestion(suggestion_id):
        raise HTTPException(status_code=404, detail="Suggestion not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/ai/enhance-description", response_model=EnhanceDescriptionResponse)
def enhance_description(req: EnhanceDescriptionRequest) -> EnhanceDescriptionResponse:
    return EnhanceDescriptionResponse(enhanced_description=enhance_feature_description(req.name, req.description))


@router.post("/ai/generate-tags", response_model=GenerateTagsResponse)
def generate_feature_tags(req: GenerateTagsRequest) -> GenerateTagsResponse:
    return GenerateTagsResponse(
        tags=generate_tags(req.feature_name, req.feature_description, req.project_context)
    )


@router.post("/ai/analyze-feature", response_model=FeatureAnalysis)
def analyze(req: AnalyzeFeatureRequest) -> FeatureAnalysis:
    return analyze_feature(req.name, req.description, req.project_context)


@router.post("/projects/{project_id}/ai/analyze-branching", response_model=BranchRecommendation)
def analyze_branching(
    project_id: int,
    req: AnalyzeBranchingRequest,
    repo: BrainstormRepository = Depends(get_repo),
) -> BranchRecommendation:
    proj = require_project(project_id, repo)
    wanted = set(req.new_feature_ids)
    features = repo.list_features(project_id)
    new_features = [f for f in features if f.id in wanted]
    existing = [f for f in features if f.id not in wanted]
    return analyze_for_branching(
        proj.name,
        proj.description,
        _feature_pairs(new_features),
        _feature_pairs(existing),
    )
