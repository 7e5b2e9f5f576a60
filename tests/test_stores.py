"""Tests for the document stores and store configuration.

The same contract tests run against MemoryStore and SQLStore (SQLite).
"""

from datetime import UTC, datetime

import pytest

from restactions import define_model
from restactions.errors import DuplicateKeyError, StoreError
from restactions.persistence import (
    DocumentStore,
    MemoryStore,
    SQLStore,
    StoreConfig,
    create_store,
)
from restactions.persistence.sql import dumps, loads


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(params=["memory", "sqlite"])
def any_store(request, tmp_path):
    """Each store backend, connected and empty."""
    if request.param == "memory":
        store = MemoryStore()
    else:
        store = SQLStore(f"sqlite:///{tmp_path / 'documents.db'}")
    store.connect()
    yield store
    store.close()


async def insert_people(store):
    for n, name in enumerate(["Ann", "Bob", "Cat", "Dan"], start=1):
        await store.insert(
            "people",
            {"_id": f"p{n}", "name": name, "age": 20 + n, "team": "a" if n % 2 else "b"},
        )


# =============================================================================
# Store contract
# =============================================================================


class TestStoreContract:
    def test_implements_protocol(self, any_store):
        assert isinstance(any_store, DocumentStore)

    @pytest.mark.asyncio
    async def test_insert_and_find_by_id(self, any_store):
        created = datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)
        await any_store.insert("people", {"_id": "p1", "name": "Ann", "createdAt": created})
        found = await any_store.find_by_id("people", "p1")
        assert found == {"_id": "p1", "name": "Ann", "createdAt": created}

    @pytest.mark.asyncio
    async def test_find_by_id_missing(self, any_store):
        assert await any_store.find_by_id("people", "nope") is None

    @pytest.mark.asyncio
    async def test_duplicate_insert(self, any_store):
        await any_store.insert("people", {"_id": "p1"})
        with pytest.raises(DuplicateKeyError) as info:
            await any_store.insert("people", {"_id": "p1"})
        assert info.value.status is None

    @pytest.mark.asyncio
    async def test_insert_requires_id(self, any_store):
        with pytest.raises(StoreError):
            await any_store.insert("people", {"name": "Ann"})

    @pytest.mark.asyncio
    async def test_collections_are_isolated(self, any_store):
        await any_store.insert("people", {"_id": "x"})
        await any_store.insert("pets", {"_id": "x"})
        assert await any_store.count_documents("people") == 1
        assert await any_store.count_documents("pets") == 1

    @pytest.mark.asyncio
    async def test_find_filter_sort_skip_limit(self, any_store):
        await insert_people(any_store)
        found = await any_store.find(
            "people", {"team": "a"}, sort={"age": -1}, skip=0, limit=1
        )
        assert [d["name"] for d in found] == ["Cat"]

        page = await any_store.find("people", None, sort="name", skip=1, limit=2)
        assert [d["name"] for d in page] == ["Bob", "Cat"]

    @pytest.mark.asyncio
    async def test_search(self, any_store):
        await insert_people(any_store)
        found = await any_store.find("people", {}, q="a", search_fields=("name",))
        assert sorted(d["name"] for d in found) == ["Ann", "Cat", "Dan"]
        assert await any_store.count_documents("people", {}, q="a", search_fields=()) == 4

    @pytest.mark.asyncio
    async def test_count_with_filter(self, any_store):
        await insert_people(any_store)
        assert await any_store.count_documents("people", {"age": {"$gte": 23}}) == 2

    @pytest.mark.asyncio
    async def test_save_upserts(self, any_store):
        await any_store.save("people", {"_id": "p1", "name": "Ann"})
        await any_store.save("people", {"_id": "p1", "name": "Anne"})
        assert (await any_store.find_by_id("people", "p1"))["name"] == "Anne"
        assert await any_store.count_documents("people") == 1

    @pytest.mark.asyncio
    async def test_delete(self, any_store):
        await any_store.insert("people", {"_id": "p1", "name": "Ann"})
        removed = await any_store.delete("people", "p1")
        assert removed["name"] == "Ann"
        assert await any_store.find_by_id("people", "p1") is None
        assert await any_store.delete("people", "p1") is None

    @pytest.mark.asyncio
    async def test_drop(self, any_store):
        await insert_people(any_store)
        await any_store.drop("people")
        assert await any_store.count_documents("people") == 0

    @pytest.mark.asyncio
    async def test_returns_copies(self, any_store):
        document = {"_id": "p1", "tags": ["a"]}
        await any_store.insert("people", document)
        document["tags"].append("b")
        found = await any_store.find_by_id("people", "p1")
        found["tags"].append("c")
        assert (await any_store.find_by_id("people", "p1"))["tags"] == ["a"]


# =============================================================================
# Saving partially loaded records
# =============================================================================


@pytest.fixture
def models(any_store):
    """A pair of plugged models (people referencing pets) on each backend."""
    Pets = define_model("pets", store=any_store)
    People = define_model("people", refs={"pet": Pets}, store=any_store)
    return People, Pets


class TestPartialRecords:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("verb", ["put", "patch"])
    async def test_update_selected_record(self, models, any_store, verb):
        People, _ = models
        ann = await People.post({"name": "Ann", "email": "ann@x", "age": 30})
        partial = await People.get_by_id({"_id": ann.id, "select": "name"})
        assert partial.is_projected

        await getattr(partial, verb)({"name": "Ann B"})

        stored = await any_store.find_by_id("people", ann.id)
        assert stored["name"] == "Ann B"
        assert stored["email"] == "ann@x"
        assert stored["age"] == 30
        assert stored["createdAt"] == ann.createdAt
        assert stored["updatedAt"] >= ann.createdAt

    @pytest.mark.asyncio
    async def test_soft_delete_excluding_projection(self, models, any_store):
        People, _ = models
        ann = await People.post({"name": "Ann", "secret": "s"})
        partial = await People.get_by_id({"_id": ann.id, "select": "-secret"})

        await partial.delete(soft=True)

        stored = await any_store.find_by_id("people", ann.id)
        assert stored["secret"] == "s"
        assert "deletedAt" in stored

    @pytest.mark.asyncio
    async def test_full_record_is_not_projected(self, models):
        People, _ = models
        ann = await People.post({"name": "Ann"})
        assert not (await People.get_by_id(ann.id)).is_projected

    @pytest.mark.asyncio
    @pytest.mark.parametrize("verb", ["put", "patch"])
    async def test_update_populated_record(self, models, any_store, verb):
        People, Pets = models
        rex = await Pets.post({"name": "Rex"})
        ann = await People.post({"name": "Ann", "pet": rex.id})
        populated = await People.get_by_id({"_id": ann.id, "populate": "pet"})

        await getattr(People, verb)(populated)
        await populated.patch({"name": "Ann B"})

        stored = await any_store.find_by_id("people", ann.id)
        assert stored["pet"] == rex.id
        assert stored["name"] == "Ann B"


class TestSQLStore:
    def test_json_round_trip_tags_dates(self):
        when = datetime(2024, 1, 1, tzinfo=UTC)
        body = dumps({"at": when, "nested": {"at": when}})
        assert '"$date"' in body
        assert loads(body) == {"at": when, "nested": {"at": when}}

    @pytest.mark.asyncio
    async def test_persists_across_connections(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'documents.db'}"
        first = SQLStore(url)
        first.connect()
        await first.insert("people", {"_id": "p1", "name": "Ann"})
        first.close()

        second = SQLStore(url)
        second.connect()
        try:
            assert (await second.find_by_id("people", "p1"))["name"] == "Ann"
        finally:
            second.close()


# =============================================================================
# Configuration
# =============================================================================


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("RESTACTIONS_DATABASE_URL", "DATABASE_URL", "RESTACTIONS_DB_PATH"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestStoreConfig:
    def test_default_is_memory(self, clean_env):
        config = StoreConfig.from_env()
        assert config.url == "memory://"
        assert config.is_memory
        assert not config.is_sql

    def test_restactions_url_wins(self, clean_env):
        clean_env.setenv("RESTACTIONS_DATABASE_URL", "sqlite:///a.db")
        clean_env.setenv("DATABASE_URL", "sqlite:///b.db")
        assert StoreConfig.from_env().url == "sqlite:///a.db"

    def test_database_url(self, clean_env):
        clean_env.setenv("DATABASE_URL", "postgresql://u:p@host/db")
        config = StoreConfig.from_env()
        assert config.is_postgresql
        assert config.sqlalchemy_url == "postgresql+psycopg://u:p@host/db"

    def test_db_path(self, clean_env, tmp_path):
        clean_env.setenv("RESTACTIONS_DB_PATH", str(tmp_path / "x.db"))
        config = StoreConfig.from_env()
        assert config.is_sqlite
        assert config.url == f"sqlite:///{tmp_path / 'x.db'}"


class TestCreateStore:
    def test_memory(self):
        assert isinstance(create_store(StoreConfig("memory://")), MemoryStore)

    def test_sqlite_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "documents.db"
        store = create_store(StoreConfig(f"sqlite:///{path}"))
        assert isinstance(store, SQLStore)
        assert path.parent.is_dir()

    def test_unsupported_scheme(self):
        with pytest.raises(ValueError, match="Unsupported"):
            create_store(StoreConfig("redis://localhost"))
