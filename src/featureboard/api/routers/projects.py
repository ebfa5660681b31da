from __future__ import annotations

from typing import List
from fastapi import APIRouter, Depends, HTTPException, Response, status

from ...domain.models import Feature, FeatureCreate, Project, ProjectCreate, ProjectUpdate
from ...infrastructure.repository import BrainstormRepository, ParentProjectNotFound, get_repo


router = APIRouter(prefix="/projects", tags=["projects"])


def require_project(project_id: int, repo: BrainstormRepository) -> Project:
    proj = repo.get_project(project_id)
    if not proj:
        raise HTTPException(status_code=404, detail="Project not found")
    return proj


@router.get("", response_model=List[Project])
def list_projects(repo: BrainstormRepository = Depends(get_repo)) -> List[Project]:
    return repo.list_projects()


@router.post("", response_model=Project, status_code=status.HTTP_201_CREATED)
def create_project(payload: ProjectCreate, repo: BrainstormRepository = Depends(get_repo)) -> Project:
    return repo.create_project(payload)


@router.get("/{project_id}", response_model=Project)
def get_project(project_id: int, repo: BrainstormRepository = Depends(get_repo)) -> Project:
    return require_project(project_id, repo)


@router.put("/{project_id}", response_model=Project)
def update_project(
    project_id: int,
    payload: ProjectUpdate,
    repo: BrainstormRepository = Depends(get_repo),
) -> Project:
    require_project(project_id, repo)
    if payload.parent_id is not None:
        if payload.parent_id == project_id:
            raise HTTPException(status_code=400, detail="A project cannot be its own parent")
        if repo.get_project(payload.parent_id) is None:
            raise HTTPException(status_code=400, detail="Parent project not found")
    updated = repo.update_project(project_id, payload)
    if not updated:
        raise HTTPException(status_code=404, detail="Project not found")
    return updated


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
def delete_project(project_id: int, repo: BrainstormRepository = Depends(get_repo)) -> Response:
    ok = repo.delete_project(project_id)
    if not ok:
        raise HTTPException(status_code=404, detail="Project not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{project_id}/branches", response_model=List[Project])
def list_branches(project_id: int, repo: BrainstormRepository = Depends(get_repo)) -> List[Project]:
    if not repo.get_project(project_id):
        raise HTTPException(status_code=404, detail="Parent project not found")
    return repo.list_child_projects(project_id)


@router.post("/{project_id}/branch", response_model=Project, status_code=status.HTTP_201_CREATED)
def create_branch(
    project_id: int,
    payload: ProjectCreate,
    repo: BrainstormRepository = Depends(get_repo),
) -> Project:
    try:
        return repo.create_project(payload, parent_id=project_id)
    except ParentProjectNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{project_id}/features", response_model=List[Feature])
def list_project_features(project_id: int, repo: BrainstormRepository = Depends(get_repo)) -> List[Feature]:
    require_project(project_id, repo)
    return repo.list_features(project_id)


@router.post("/{project_id}/features", response_model=Feature, status_code=status.HTTP_201_CREATED)
def create_project_feature(
    project_id: int,
    payload: FeatureCreate,
    repo: BrainstormRepository = Depends(get_repo),
) -> Feature:
    require_project(project_id, repo)
    return repo.create_feature(project_id, payload)
