import json

import pytest

from src.featureboard.domain.ai_models import SuggestionDraft
from src.featureboard.domain.models import (
    ConceptCreate,
    ConceptUpdate,
    FeatureCreate,
    FeatureUpdate,
    ProjectCreate,
    ProjectUpdate,
)
from src.featureboard.infrastructure import repository as repository_module
from src.featureboard.infrastructure.repository import (
    FileRepository,
    InMemoryRepository,
    ParentProjectNotFound,
)


def _draft(name="Idea"):
    return SuggestionDraft(name=name, description="d", perspective="ux", suggested_category="launch")


def test_ids_are_per_table_and_increasing(repo):
    p1 = repo.create_project(ProjectCreate(name="A"))
    p2 = repo.create_project(ProjectCreate(name="B"))
    f1 = repo.create_feature(p1.id, FeatureCreate(name="F", perspective="technical"))
    assert (p1.id, p2.id, f1.id) == (1, 2, 1)
    assert f1.category == "mvp"


def test_update_project_partial_and_nullable(repo):
    p = repo.create_project(ProjectCreate(name="A", description="old", goals=["g"]))
    updated = repo.update_project(p.id, ProjectUpdate(description=None, name=None))
    assert updated.description is None
    assert updated.name == "A"
    assert updated.goals == ["g"]
    assert repo.update_project(999, ProjectUpdate(name="x")) is None


def test_delete_project_cascades_and_detaches_branches(repo):
    parent = repo.create_project(ProjectCreate(name="Parent"))
    child = repo.create_project(ProjectCreate(name="Child", branch_reason="drift"), parent_id=parent.id)
    other = repo.create_project(ProjectCreate(name="Other"))
    repo.create_feature(parent.id, FeatureCreate(name="F", perspective="ux"))
    kept = repo.create_feature(other.id, FeatureCreate(name="K", perspective="ux"))
    repo.create_suggestion(parent.id, _draft())

    assert repo.list_child_projects(parent.id) == [child]
    assert repo.delete_project(parent.id) is True
    assert repo.list_features(parent.id) == []
    assert repo.list_suggestions(parent.id) == []
    assert repo.get_feature(kept.id) is not None
    assert repo.get_project(child.id).parent_id is None
    assert repo.delete_project(parent.id) is False


def test_branch_under_missing_parent_raises(repo):
    with pytest.raises(ParentProjectNotFound):
        repo.create_project(ProjectCreate(name="Orphan"), parent_id=42)


def test_feature_update_and_category_move(repo):
    p = repo.create_project(ProjectCreate(name="A"))
    f = repo.create_feature(p.id, FeatureCreate(name="F", perspective="ux", tags=["t"]))
    moved = repo.update_feature_category(f.id, "rejected")
    assert moved.category == "rejected"
    assert moved.tags == ["t"]
    edited = repo.update_feature(f.id, FeatureUpdate(description="new"))
    assert edited.description == "new"
    assert edited.category == "rejected"
    assert repo.update_feature_category(999, "mvp") is None
    assert repo.delete_feature(f.id) is True
    assert repo.delete_feature(f.id) is False


def test_suggestion_lifecycle(repo):
    p = repo.create_project(ProjectCreate(name="A"))
    s = repo.create_suggestion(p.id, _draft("One"))
    assert s.suggested_category == "launch"
    assert repo.get_suggestion(s.id) == s
    assert repo.delete_suggestion(s.id) is True
    assert repo.get_suggestion(s.id) is None


def test_concept_crud(repo):
    c = repo.create_concept(ConceptCreate(name="Idea", description="d", target_audience="devs"))
    assert c.concept_category == "other"
    updated = repo.update_concept(c.id, ConceptUpdate(target_audience=None, tags=["x"]))
    assert updated.target_audience is None
    assert updated.tags == ["x"]
    assert repo.list_concepts() == [updated]
    assert repo.delete_concept(c.id) is True
    assert repo.get_concept(c.id) is None


def test_file_repository_persists_across_instances(tmp_path):
    path = tmp_path / "store.json"
    repo = FileRepository(str(path))
    p = repo.create_project(ProjectCreate(name="Saved", goals=["g1"]))
    f = repo.create_feature(p.id, FeatureCreate(name="F", perspective="security", category="v1.5"))
    repo.create_concept(ConceptCreate(name="C", description="d"))

    reloaded = FileRepository(str(path))
    assert reloaded.get_project(p.id).goals == ["g1"]
    assert reloaded.get_feature(f.id).category == "v1.5"
    assert len(reloaded.list_concepts()) == 1


def test_file_repository_counters_survive_deletes(tmp_path):
    path = tmp_path / "store.json"
    repo = FileRepository(str(path))
    repo.create_project(ProjectCreate(name="A"))
    p2 = repo.create_project(ProjectCreate(name="B"))
    repo.delete_project(p2.id)

    reloaded = FileRepository(str(path))
    p3 = reloaded.create_project(ProjectCreate(name="C"))
    assert p3.id == 3


def test_file_repository_skips_bad_records(tmp_path):
    path = tmp_path / "store.json"
    good = {"id": 5, "name": "Good", "created_at": "2024-01-01T00:00:00Z"}
    path.write_text(json.dumps({"projects": {"5": good, "6": {"id": 6}}}), encoding="utf-8")
    repo = FileRepository(str(path))
    assert [p.id for p in repo.list_projects()] == [5]
    assert repo.create_project(ProjectCreate(name="Next")).id == 6


def test_file_repository_unreadable_file_starts_empty(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("{broken", encoding="utf-8")
    assert FileRepository(str(path)).list_projects() == []


def test_get_repo_defaults_to_memory(monkeypatch):
    monkeypatch.delenv("FEATUREBOARD_REPO_IMPL", raising=False)
    fresh = InMemoryRepository()
    monkeypatch.setattr(repository_module, "_repo", fresh)
    assert repository_module.get_repo() is fresh
    assert fresh.backend == "memory"


def test_get_repo_file_impl(monkeypatch, tmp_path):
    monkeypatch.setenv("FEATUREBOARD_REPO_IMPL", "file")
    monkeypatch.setenv("FEATUREBOARD_DATA_FILE", str(tmp_path / "data.json"))
    monkeypatch.setattr(repository_module, "_file_repo", None)
    repo = repository_module.get_repo()
    assert isinstance(repo, FileRepository)
    assert repo.backend == "file"
    assert repository_module.get_repo() is repo


def test_get_repo_mongo_falls_back_to_memory(monkeypatch):
    from src.featureboard.infrastructure import repository_mongo

    def _offline(self):
        self._client = None
        self._db = None

    monkeypatch.setenv("FEATUREBOARD_REPO_IMPL", "mongo")
    monkeypatch.setattr(repository_module, "_mongo_repo", None)
    monkeypatch.setattr(repository_mongo.MongoRepository, "_connect", _offline)
    monkeypatch.setattr(repository_mongo, "_SHARED_FALLBACK_REPO", None)

    repo = repository_module.get_repo()
    assert isinstance(repo, repository_mongo.MongoRepository)
    assert repo.backend == "memory"
    p = repo.create_project(ProjectCreate(name="Fallback"))
    assert repo.get_project(p.id).name == "Fallback"
    assert repository_mongo._SHARED_FALLBACK_REPO.get_project(p.id) is not None
