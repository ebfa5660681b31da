from __future__ import annotations

from typing import List
from fastapi import APIRouter, Depends, HTTPException, Response, status

from ...domain.models import Concept, ConceptCreate, ConceptUpdate
from ...infrastructure.repository import BrainstormRepository, get_repo


router = APIRouter(prefix="/concepts", tags=["concepts"])


@router.get("", response_model=List[Concept])
def list_concepts(repo: BrainstormRepository = Depends(get_repo)) -> List[Concept]:
    return repo.list_concepts()


@router.post("", response_model=Concept, status_code=status.HTTP_201_CREATED)
def create_concept(payload: ConceptCreate, repo: BrainstormRepository = Depends(get_repo)) -> Concept:
    return repo.create_concept(payload)


@router.get("/{concept_id}", response_model=Concept)
def get_concept(concept_id: int, repo: BrainstormRepository = Depends(get_repo)) -> Concept:
    concept = repo.get_concept(concept_id)
    if not concept:
        raise HTTPException(status_code=404, detail="Concept not found")
    return concept


@router.put("/{concept_id}", response_model=Concept)
def update_concept(
    concept_id: int,
    payload: ConceptUpdate,
    repo: BrainstormRepository = Depends(get_repo),
) -> Concept:
    updated = repo.update_concept(concept_id, payload)
    if not updated:
        raise HTTPException(status_code=404, detail="Concept not found")
    return updated


@router.delete("/{concept_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
def delete_concept(concept_id: int, repo: BrainstormRepository = Depends(get_repo)) -> Response:
    if not repo.delete_concept(concept_id):
        raise HTTPException(status_code=404, detail="Concept not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
