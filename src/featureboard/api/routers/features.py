from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status

from ...domain.models import CategoryMove, Feature, FeatureUpdate
from ...infrastructure.repository import BrainstormRepository, get_repo


router = APIRouter(prefix="/features", tags=["features"])


@router.get("/{feature_id}", response_model=Feature)
def get_feature(feature_id: int, repo: BrainstormRepository = Depends(get_repo)) -> Feature:
    feat = repo.get_feature(feature_id)
    if not feat:
        raise HTTPException(status_code=404, detail="Feature not found")
    return feat


@router.put("/{feature_id}", response_model=Feature)
def update_feature(
    feature_id: int,
    payload: FeatureUpdate,
    repo: BrainstormRepository = Depends(get_repo),
) -> Feature:
    updated = repo.update_feature(feature_id, payload)
    if not updated:
        raise HTTPException(status_code=404, detail="Feature not found")
    return updated


@router.put("/{feature_id}/category", response_model=Feature)
def move_feature(
    feature_id: int,
    payload: CategoryMove,
    repo: BrainstormRepository = Depends(get_repo),
) -> Feature:
    """Move a feature to another category lane (drag and drop on the board)."""
    updated = repo.update_feature_category(feature_id, payload.category)
    if not updated:
        raise HTTPException(status_code=404, detail="Feature not found")
    return updated


@router.delete("/{feature_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
def delete_feature(feature_id: int, repo: BrainstormRepository = Depends(get_repo)) -> Response:
    if not repo.delete_feature(feature_id):
        raise HTTPException(status_code=404, detail="Feature not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
