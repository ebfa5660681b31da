from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime
from pathlib import Path
from threading import RLock
from typing import Dict, Iterable, List, Optional, Protocol, Type

from pydantic import BaseModel

from ..domain.ai_models import SuggestionDraft
from ..domain.models import (
    AiSuggestion,
    Category,
    Concept,
    ConceptCreate,
    ConceptUpdate,
    Feature,
    FeatureCreate,
    FeatureUpdate,
    Project,
    ProjectCreate,
    ProjectUpdate,
)

logger = logging.getLogger("featureboard.repository")

# Fields that an update may explicitly reset to null; other fields ignore a null value.
PROJECT_NULLABLE = frozenset({"description", "mission", "parent_id", "branch_reason"})
FEATURE_NULLABLE = frozenset({"ai_enhanced"})
CONCEPT_NULLABLE = frozenset({"target_audience"})

TABLES = ("projects", "features", "suggestions", "concepts")


class ParentProjectNotFound(LookupError):
    """Raised when a branch is requested under a project that does not exist."""


class BrainstormRepository(Protocol):
    @property
    def backend(self) -> str: ...

    def list_projects(self) -> List[Project]: ...
    def get_project(self, project_id: int) -> Optional[Project]: ...
    def list_child_projects(self, parent_id: int) -> List[Project]: ...
    def create_project(self, payload: ProjectCreate, parent_id: Optional[int] = None) -> Project: ...
    def update_project(self, project_id: int, payload: ProjectUpdate) -> Optional[Project]: ...
    def delete_project(self, project_id: int) -> bool: ...

    def list_features(self, project_id: int) -> List[Feature]: ...
    def get_feature(self, feature_id: int) -> Optional[Feature]: ...
    def create_feature(self, project_id: int, payload: FeatureCreate) -> Feature: ...
    def update_feature(self, feature_id: int, payload: FeatureUpdate) -> Optional[Feature]: ...
    def update_feature_category(self, feature_id: int, category: Category) -> Optional[Feature]: ...
    def delete_feature(self, feature_id: int) -> bool: ...

    def list_suggestions(self, project_id: int) -> List[AiSuggestion]: ...
    def get_suggestion(self, suggestion_id: int) -> Optional[AiSuggestion]: ...
    def create_suggestion(self, project_id: int, draft: SuggestionDraft) -> AiSuggestion: ...
    def delete_suggestion(self, suggestion_id: int) -> bool: ...

    def list_concepts(self) -> List[Concept]: ...
    def get_concept(self, concept_id: int) -> Optional[Concept]: ...
    def create_concept(self, payload: ConceptCreate) -> Concept: ...
    def update_concept(self, concept_id: int, payload: ConceptUpdate) -> Optional[Concept]: ...
    def delete_concept(self, concept_id: int) -> bool: ...


def _utc_now() -> datetime:
    return datetime.now(UTC)


def changes_from(payload: BaseModel, nullable: Iterable[str] = ()) -> Dict[str, object]:
    """Return the fields the client actually sent, dropping nulls for non-nullable fields."""
    allowed = set(nullable)
    data = payload.model_dump(exclude_unset=True)
    return {k: v for k, v in data.items() if v is not None or k in allowed}


class InMemoryRepository:
    """In-memory store for projects, features, suggestions and concepts.

    Ids are per-table integers. Every public method takes the lock so the
    repository can be shared by the threadpool that serves sync routes.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._projects: Dict[int, Project] = {}
        self._features: Dict[int, Feature] = {}
        self._suggestions: Dict[int, AiSuggestion] = {}
        self._concepts: Dict[int, Concept] = {}
        self._counters: Dict[str, int] = {name: 0 for name in TABLES}

    @property
    def backend(self) -> str:
        return "memory"

    def _next_id(self, table: str) -> int:
        self._counters[table] += 1
        return self._counters[table]

    def _changed(self) -> None:
        """Hook for persistent subclasses; called after every mutation."""

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------
    def list_projects(self) -> List[Project]:
        with self._lock:
            return list(self._projects.values())

    def get_project(self, project_id: int) -> Optional[Project]:
        with self._lock:
            return self._projects.get(project_id)

    def list_child_projects(self, parent_id: int) -> List[Project]:
        with self._lock:
            return [p for p in self._projects.values() if p.parent_id == parent_id]

    def create_project(self, payload: ProjectCreate, parent_id: Optional[int] = None) -> Project:
        with self._lock:
            if parent_id is not None and parent_id not in self._projects:
                raise ParentProjectNotFound("Parent project not found")
            now = _utc_now()
            project = Project(
                id=self._next_id("projects"),
                parent_id=parent_id,
                created_at=now,
                updated_at=now,
                **payload.model_dump(),
            )
            self._projects[project.id] = project
            self._changed()
            return project

    def update_project(self, project_id: int, payload: ProjectUpdate) -> Optional[Project]:
        with self._lock:
            proj = self._projects.get(project_id)
            if not proj:
                return None
            changes = changes_from(payload, PROJECT_NULLABLE)
            changes["updated_at"] = _utc_now()
            updated = proj.model_copy(update=changes)
            self._projects[project_id] = updated
            self._changed()
            return updated

    def delete_project(self, project_id: int) -> bool:
        """Delete a project with its features and suggestions; detach its branches."""
        with self._lock:
            if self._projects.pop(project_id, None) is None:
                return False
            self._features = {k: f for k, f in self._features.items() if f.project_id != project_id}
            self._suggestions = {k: s for k, s in self._suggestions.items() if s.project_id != project_id}
            for pid, child in list(self._projects.items()):
                if child.parent_id == project_id:
                    self._projects[pid] = child.model_copy(update={"parent_id": None})
            self._changed()
            return True

    # ------------------------------------------------------------------
    # Features
    # ------------------------------------------------------------------
    def list_features(self, project_id: int) -> List[Feature]:
        with self._lock:
            return [f for f in self._features.values() if f.project_id == project_id]

    def get_feature(self, feature_id: int) -> Optional[Feature]:
        with self._lock:
            return self._features.get(feature_id)

    def create_feature(self, project_id: int, payload: FeatureCreate) -> Feature:
        with self._lock:
            now = _utc_now()
            feature = Feature(
                id=self._next_id("features"),
                project_id=project_id,
                created_at=now,
                updated_at=now,
                **payload.model_dump(),
            )
            self._features[feature.id] = feature
            self._changed()
            return feature

    def update_feature(self, feature_id: int, payload: FeatureUpdate) -> Optional[Feature]:
        with self._lock:
            feat = self._features.get(feature_id)
            if not feat:
                return None
            changes = changes_from(payload, FEATURE_NULLABLE)
            changes["updated_at"] = _utc_now()
            updated = feat.model_copy(update=changes)
            self._features[feature_id] = updated
            self._changed()
            return updated

    def update_feature_category(self, feature_id: int, category: Category) -> Optional[Feature]:
        return self.update_feature(feature_id, FeatureUpdate(category=category))

    def delete_feature(self, feature_id: int) -> bool:
        with self._lock:
            ok = self._features.pop(feature_id, None) is not None
            if ok:
                self._changed()
            return ok

    # ------------------------------------------------------------------
    # AI suggestions
    # ------------------------------------------------------------------
    def list_suggestions(self, project_id: int) -> List[AiSuggestion]:
        with self._lock:
            return [s for s in self._suggestions.values() if s.project_id == project_id]

    def get_suggestion(self, suggestion_id: int) -> Optional[AiSuggestion]:
        with self._lock:
            return self._suggestions.get(suggestion_id)

    def create_suggestion(self, project_id: int, draft: SuggestionDraft) -> AiSuggestion:
        with self._lock:
            suggestion = AiSuggestion(
                id=self._next_id("suggestions"),
                project_id=project_id,
                created_at=_utc_now(),
                **draft.model_dump(),
            )
            self._suggestions[suggestion.id] = suggestion
            self._changed()
            return suggestion

    def delete_suggestion(self, suggestion_id: int) -> bool:
        with self._lock:
            ok = self._suggestions.pop(suggestion_id, None) is not None
            if ok:
                self._changed()
            return ok

    # ------------------------------------------------------------------
    # Concepts
    # ------------------------------------------------------------------
    def list_concepts(self) -> List[Concept]:
        with self._lock:
            return list(self._concepts.values())

    def get_concept(self, concept_id: int) -> Optional[Concept]:
        with self._lock:
            return self._concepts.get(concept_id)

    def create_concept(self, payload: ConceptCreate) -> Concept:
        with self._lock:
            now = _utc_now()
            concept = Concept(
                id=self._next_id("concepts"),
                created_at=now,
                updated_at=now,
                **payload.model_dump(),
            )
            self._concepts[concept.id] = concept
            self._changed()
            return concept

    def update_concept(self, concept_id: int, payload: ConceptUpdate) -> Optional[Concept]:
        with self._lock:
            concept = self._concepts.get(concept_id)
            if not concept:
                return None
            changes = changes_from(payload, CONCEPT_NULLABLE)
            changes["updated_at"] = _utc_now()
            updated = concept.model_copy(update=changes)
            self._concepts[concept_id] = updated
            self._changed()
            return updated

    def delete_concept(self, concept_id: int) -> bool:
        with self._lock:
            ok = self._concepts.pop(concept_id, None) is not None
            if ok:
                self._changed()
            return ok


class FileRepository(InMemoryRepository):
    """JSON file-backed repository for development persistence.

    Structure: one JSON object with a ``counters`` map and one
    ``{id: record}`` map per table. Suitable for dev/test, not high concurrency.
    """

    _MODELS: Dict[str, Type[BaseModel]] = {
        "projects": Project,
        "features": Feature,
        "suggestions": AiSuggestion,
        "concepts": Concept,
    }

    def __init__(self, file_path: Optional[str] = None) -> None:
        super().__init__()
        # Default to run/featureboard.json at repo root
        root = Path(__file__).resolve().parents[3]
        default_path = root / "run" / "featureboard.json"
        self._path = Path(file_path or os.getenv("FEATUREBOARD_DATA_FILE", str(default_path)))
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._load()

    @property
    def backend(self) -> str:
        return "file"

    def _table(self, name: str) -> Dict[int, BaseModel]:
        return getattr(self, f"_{name}")

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8")) or {}
        except (OSError, ValueError):
            # Unreadable file: start clean (dev-friendly)
            logger.warning("Could not read %s; starting with an empty store", self._path, exc_info=True)
            return
        for name, model in self._MODELS.items():
            table = self._table(name)
            max_id = 0
            for raw_id, record in (data.get(name) or {}).items():
                try:
                    item = model(**record)
                except ValueError:
                    logger.warning("Skipping unreadable %s record %s", name, raw_id)
                    continue
                table[item.id] = item
                max_id = max(max_id, item.id)
            # Counters never move backwards even if the newest rows were deleted
            saved = int((data.get("counters") or {}).get(name, 0))
            self._counters[name] = max(saved, max_id)

    def _save(self) -> None:
        obj: Dict[str, object] = {"counters": dict(self._counters)}
        for name in self._MODELS:
            obj[name] = {str(k): v.model_dump(mode="json") for k, v in self._table(name).items()}
        try:
            self._path.write_text(json.dumps(obj, indent=2), encoding="utf-8")
        except OSError:
            # Best-effort save; in dev we avoid crashing the app
            logger.warning("Failed to persist repository to %s", self._path, exc_info=True)

    def _changed(self) -> None:
        self._save()


_repo: BrainstormRepository = InMemoryRepository()
_mongo_repo: BrainstormRepository | None = None
_file_repo: BrainstormRepository | None = None


def get_repo() -> BrainstormRepository:
    """Return the configured repository; also used as the FastAPI dependency."""
    global _mongo_repo
    global _file_repo
    impl = os.getenv("FEATUREBOARD_REPO_IMPL", "memory").lower()
    if impl == "mongo":
        if _mongo_repo is None:
            from .repository_mongo import MongoRepository

            _mongo_repo = MongoRepository()
        return _mongo_repo
    if impl == "file":
        if _file_repo is None:
            _file_repo = FileRepository()
        return _file_repo
    return _repo
