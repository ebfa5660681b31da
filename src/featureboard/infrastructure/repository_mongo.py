from __future__ import annotations

import logging
import os
from datetime import UTC, datetime
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel
from pymongo import MongoClient, ReturnDocument
from pymongo.errors import PyMongoError

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
from .repository import (
    CONCEPT_NULLABLE,
    FEATURE_NULLABLE,
    PROJECT_NULLABLE,
    TABLES,
    InMemoryRepository,
    ParentProjectNotFound,
    changes_from,
)

logger = logging.getLogger("featureboard.repository")

M = TypeVar("M", bound=BaseModel)

_SHARED_FALLBACK_REPO: InMemoryRepository | None = None


class MongoRepository:
    """MongoDB-backed repository.

    One collection per table plus a ``counters`` collection for integer ids.
    When the server is unreachable every call is served by a shared
    in-memory repository so local development keeps working.
    """

    def __init__(self) -> None:
        self._client: MongoClient | None = None
        self._db = None
        self._fallback: InMemoryRepository | None = None
        self._connect()

    @property
    def backend(self) -> str:
        # Reports the store actually serving calls, not the configured one
        return "mongo" if self._db is not None else "memory"

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------
    def list_projects(self) -> List[Project]:
        if self._db is None:
            return self._fallback_repo().list_projects()
        return self._find("projects", Project, {})

    def get_project(self, project_id: int) -> Optional[Project]:
        if self._db is None:
            return self._fallback_repo().get_project(project_id)
        return self._find_one("projects", Project, project_id)

    def list_child_projects(self, parent_id: int) -> List[Project]:
        if self._db is None:
            return self._fallback_repo().list_child_projects(parent_id)
        return self._find("projects", Project, {"parent_id": parent_id})

    def create_project(self, payload: ProjectCreate, parent_id: Optional[int] = None) -> Project:
        if self._db is None:
            return self._fallback_repo().create_project(payload, parent_id)
        if parent_id is not None and self.get_project(parent_id) is None:
            raise ParentProjectNotFound("Parent project not found")
        now = datetime.now(UTC)
        project = Project(
            id=self._next_id("projects"),
            parent_id=parent_id,
            created_at=now,
            updated_at=now,
            **payload.model_dump(),
        )
        self._db["projects"].insert_one(self._from_model(project))
        return project

    def update_project(self, project_id: int, payload: ProjectUpdate) -> Optional[Project]:
        if self._db is None:
            return self._fallback_repo().update_project(project_id, payload)
        return self._update("projects", Project, project_id, changes_from(payload, PROJECT_NULLABLE))

    def delete_project(self, project_id: int) -> bool:
        if self._db is None:
            return self._fallback_repo().delete_project(project_id)
        res = self._db["projects"].delete_one({"id": project_id})
        if not res.deleted_count:
            return False
        self._db["features"].delete_many({"project_id": project_id})
        self._db["suggestions"].delete_many({"project_id": project_id})
        self._db["projects"].update_many({"parent_id": project_id}, {"$set": {"parent_id": None}})
        return True

    # ------------------------------------------------------------------
    # Features
    # ------------------------------------------------------------------
    def list_features(self, project_id: int) -> List[Feature]:
        if self._db is None:
            return self._fallback_repo().list_features(project_id)
        return self._find("features", Feature, {"project_id": project_id})

    def get_feature(self, feature_id: int) -> Optional[Feature]:
        if self._db is None:
            return self._fallback_repo().get_feature(feature_id)
        return self._find_one("features", Feature, feature_id)

    def create_feature(self, project_id: int, payload: FeatureCreate) -> Feature:
        if self._db is None:
            return self._fallback_repo().create_feature(project_id, payload)
        now = datetime.now(UTC)
        feature = Feature(
            id=self._next_id("features"),
            project_id=project_id,
            created_at=now,
            updated_at=now,
            **payload.model_dump(),
        )
        self._db["features"].insert_one(self._from_model(feature))
        return feature

    def update_feature(self, feature_id: int, payload: FeatureUpdate) -> Optional[Feature]:
        if self._db is None:
            return self._fallback_repo().update_feature(feature_id, payload)
        return self._update("features", Feature, feature_id, changes_from(payload, FEATURE_NULLABLE))

    def update_feature_category(self, feature_id: int, category: Category) -> Optional[Feature]:
        return self.update_feature(feature_id, FeatureUpdate(category=category))

    def delete_feature(self, feature_id: int) -> bool:
        if self._db is None:
            return self._fallback_repo().delete_feature(feature_id)
        return bool(self._db["features"].delete_one({"id": feature_id}).deleted_count)

    # ------------------------------------------------------------------
    # AI suggestions
    # ------------------------------------------------------------------
    def list_suggestions(self, project_id: int) -> List[AiSuggestion]:
        if self._db is None:
            return self._fallback_repo().list_suggestions(project_id)
        return self._find("suggestions", AiSuggestion, {"project_id": project_id})

    def get_suggestion(self, suggestion_id: int) -> Optional[AiSuggestion]:
        if self._db is None:
            return self._fallback_repo().get_suggestion(suggestion_id)
        return self._find_one("suggestions", AiSuggestion, suggestion_id)

    def create_suggestion(self, project_id: int, draft: SuggestionDraft) -> AiSuggestion:
        if self._db is None:
            return self._fallback_repo().create_suggestion(project_id, draft)
        suggestion = AiSuggestion(
            id=self._next_id("suggestions"),
            project_id=project_id,
            created_at=datetime.now(UTC),
            **draft.model_dump(),
        )
        self._db["suggestions"].insert_one(self._from_model(suggestion))
        return suggestion

    def delete_suggestion(self, suggestion_id: int) -> bool:
        if self._db is None:
            return self._fallback_repo().delete_suggestion(suggestion_id)
        return bool(self._db["suggestions"].delete_one({"id": suggestion_id}).deleted_count)

    # ------------------------------------------------------------------
    # Concepts
    # ------------------------------------------------------------------
    def list_concepts(self) -> List[Concept]:
        if self._db is None:
            return self._fallback_repo().list_concepts()
        return self._find("concepts", Concept, {})

    def get_concept(self, concept_id: int) -> Optional[Concept]:
        if self._db is None:
            return self._fallback_repo().get_concept(concept_id)
        return self._find_one("concepts", Concept, concept_id)

    def create_concept(self, payload: ConceptCreate) -> Concept:
        if self._db is None:
            return self._fallback_repo().create_concept(payload)
        now = datetime.now(UTC)
        concept = Concept(id=self._next_id("concepts"), created_at=now, updated_at=now, **payload.model_dump())
        self._db["concepts"].insert_one(self._from_model(concept))
        return concept

    def update_concept(self, concept_id: int, payload: ConceptUpdate) -> Optional[Concept]:
        if self._db is None:
            return self._fallback_repo().update_concept(concept_id, payload)
        return self._update("concepts", Concept, concept_id, changes_from(payload, CONCEPT_NULLABLE))

    def delete_concept(self, concept_id: int) -> bool:
        if self._db is None:
            return self._fallback_repo().delete_concept(concept_id)
        return bool(self._db["concepts"].delete_one({"id": concept_id}).deleted_count)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _connect(self) -> None:
        mongo_url = os.getenv("MONGO_URL", "mongodb://localhost:27017")
        mongo_db = os.getenv("MONGO_DB", "featureboard")
        try:
            client: MongoClient = MongoClient(mongo_url, serverSelectionTimeoutMS=500)
            client.server_info()
            db = client[mongo_db]
            for name in TABLES:
                db[name].create_index("id", unique=True)
            db["features"].create_index("project_id")
            db["suggestions"].create_index("project_id")
        except PyMongoError:
            logger.warning("MongoDB unavailable at %s; using in-memory repository", mongo_url)
            self._client = None
            self._db = None
            return
        self._client = client
        self._db = db

    def _fallback_repo(self) -> InMemoryRepository:
        global _SHARED_FALLBACK_REPO
        if _SHARED_FALLBACK_REPO is None:
            _SHARED_FALLBACK_REPO = InMemoryRepository()
        if self._fallback is None:
            self._fallback = _SHARED_FALLBACK_REPO
        return self._fallback

    def _next_id(self, table: str) -> int:
        doc = self._db["counters"].find_one_and_update(
            {"_id": table},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return int(doc["seq"])

    def _find(self, table: str, model: Type[M], query: Dict[str, Any]) -> List[M]:
        docs = self._db[table].find(query).sort("id", 1)
        return [self._to_model(model, doc) for doc in docs]

    def _find_one(self, table: str, model: Type[M], item_id: int) -> Optional[M]:
        doc = self._db[table].find_one({"id": item_id})
        if not doc:
            return None
        return self._to_model(model, doc)

    def _update(self, table: str, model: Type[M], item_id: int, changes: Dict[str, Any]) -> Optional[M]:
        changes["updated_at"] = datetime.now(UTC)
        result = self._db[table].find_one_and_update(
            {"id": item_id},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        if not result:
            return None
        return self._to_model(model, result)

    @staticmethod
    def _to_model(model: Type[M], doc: Dict[str, Any]) -> M:
        doc = dict(doc)
        doc.pop("_id", None)
        return model(**doc)

    @staticmethod
    def _from_model(item: BaseModel) -> Dict[str, Any]:
        # Keep datetimes native so Mongo stores them as dates
        return item.model_dump()
