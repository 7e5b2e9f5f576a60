"""Shared fixtures for restactions tests."""

import pytest

from restactions import Document, MemoryStore, rest_actions
from restactions.hooks import hook
from restactions.types import Verb


@pytest.fixture
def store():
    """A fresh in-memory document store."""
    store = MemoryStore()
    store.connect()
    yield store
    store.close()


@pytest.fixture
def Guardian(store):
    """Plugged model without hooks, bound to the memory store."""

    @rest_actions
    class Guardian(Document):
        __collection__ = "guardians"
        __searchable__ = ("name", "email")
        __refs__ = {"ward": "Ward", "wards": "Ward"}

    Guardian.bind(store)
    return Guardian


@pytest.fixture
def Ward(store):
    @rest_actions
    class Ward(Document):
        __collection__ = "wards"

    Ward.bind(store)
    return Ward


@pytest.fixture
def calls():
    """Records hook invocations as (name, args) in call order."""
    return []


@pytest.fixture
def Hooked(store, calls):
    """Plugged model with before/after hooks on every verb."""

    @rest_actions
    class Hooked(Document):
        __collection__ = "hooked"

        async def before_post(self):
            calls.append(("before_post", ()))

        async def after_post(self):
            calls.append(("after_post", ()))

        @classmethod
        async def before_get_by_id(cls):
            calls.append(("before_get_by_id", ()))

        @classmethod
        async def after_get_by_id(cls, record):
            calls.append(("after_get_by_id", (record.id,)))

        @classmethod
        def pre_get(cls, options):
            calls.append(("pre_get", (options.page,)))

        @classmethod
        def post_get(cls, options, envelope):
            calls.append(("post_get", (envelope.total,)))

        async def before_put(self, updates):
            calls.append(("before_put", (dict(updates),)))

        async def after_put(self, updates):
            calls.append(("after_put", (dict(updates),)))

        async def pre_patch(self, updates):
            calls.append(("pre_patch", (dict(updates),)))

        async def post_patch(self, updates):
            calls.append(("post_patch", (dict(updates),)))

        @hook(Verb.DELETE, "before")
        async def audit_delete(self):
            calls.append(("audit_delete", ()))

        async def after_delete(self):
            calls.append(("after_delete", ()))

    Hooked.bind(store)
    return Hooked


async def seed(model, count, **fields):
    """Post ``count`` records numbered from 1."""
    records = []
    for n in range(1, count + 1):
        records.append(await model.post({"name": f"record {n:02d}", "n": n, **fields}))
    return records
