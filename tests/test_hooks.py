"""Tests for hook resolution and execution."""

from unittest.mock import AsyncMock, Mock

import pytest

from restactions import Document
from restactions.hooks import HOOK_POINTS, HookPhase, HookRegistry, HookService, HookSlots, hook
from restactions.hooks.registry import SLOTS_ATTRIBUTE
from restactions.types import Verb


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def hook_service():
    return HookService()


# =============================================================================
# Hook points
# =============================================================================


class TestHookPoints:
    def test_every_verb_has_hook_points(self):
        assert set(HOOK_POINTS) == set(Verb)

    def test_alias_priority(self):
        point = HOOK_POINTS[Verb.PATCH]
        assert point.aliases(HookPhase.BEFORE) == (
            "before_patch",
            "pre_patch",
            "before_update",
            "pre_update",
        )
        assert point.aliases(HookPhase.AFTER)[0] == "after_patch"

    def test_save_aliases_for_post(self):
        assert "before_save" in HOOK_POINTS[Verb.CREATE].before
        assert "post_save" in HOOK_POINTS[Verb.CREATE].after


# =============================================================================
# HookRegistry
# =============================================================================


class TestHookRegistry:
    def test_resolves_first_defined_alias(self):
        class Model:
            def pre_patch(self, updates): ...
            def before_update(self, updates): ...

        slots = HookRegistry.resolve(Model)
        assert slots[Verb.PATCH] == HookSlots(before="pre_patch", after=None)
        assert slots[Verb.REPLACE].before == "before_update"

    def test_generic_update_hooks_cover_put_and_patch(self):
        class Model:
            def after_update(self, updates): ...

        slots = HookRegistry.resolve(Model)
        assert slots[Verb.PATCH].after == "after_update"
        assert slots[Verb.REPLACE].after == "after_update"

    def test_ignores_non_callables(self):
        class Model:
            before_post = "not a hook"

        assert HookRegistry.resolve(Model)[Verb.CREATE].before is None

    def test_marked_hook_wins_over_alias(self):
        class Model:
            def before_patch(self, updates): ...

            @hook(Verb.PATCH, "before")
            def stamp(self, updates): ...

        assert HookRegistry.resolve(Model)[Verb.PATCH].before == "stamp"

    def test_marked_classmethod(self):
        class Model:
            @hook(Verb.READ_MANY, HookPhase.AFTER)
            @classmethod
            def audit(cls, options, envelope): ...

        assert HookRegistry.resolve(Model)[Verb.READ_MANY].after == "audit"

    def test_caches_on_model(self):
        class Model:
            def before_delete(self): ...

        resolved = HookRegistry.resolve(Model)
        assert Model.__dict__[SLOTS_ATTRIBUTE] is resolved

    def test_slots_resolve_lazily(self):
        class Model:
            def after_delete(self): ...

        assert HookRegistry.slots(Model, Verb.DELETE).after == "after_delete"

    def test_resolved_once_not_per_call(self):
        class Model:
            pass

        HookRegistry.resolve(Model)
        Model.before_post = lambda self: None
        assert HookRegistry.slots(Model, Verb.CREATE).before is None

        HookRegistry.clear(Model)
        assert HookRegistry.slots(Model, Verb.CREATE).before == "before_post"

    def test_plugged_subclass_gets_own_resolution(self, Guardian):
        class Admin(Guardian):
            async def before_post(self): ...

        assert HookRegistry.slots(Admin, Verb.CREATE).before == "before_post"
        assert HookRegistry.slots(Guardian, Verb.CREATE).before is None

    def test_plain_document_has_no_hooks(self):
        class Plain(Document):
            pass

        assert HookRegistry.slots(Plain, Verb.PATCH) == HookSlots()

    def test_invalid_phase(self):
        with pytest.raises(ValueError):
            hook(Verb.PATCH, "during")


# =============================================================================
# HookService
# =============================================================================


class TestHookService:
    @pytest.mark.asyncio
    async def test_passes_context_through_without_hook(self, hook_service):
        context = {"a": 1}
        assert await hook_service.run(object(), None, context=context) is context

    @pytest.mark.asyncio
    async def test_calls_async_hook_with_args(self, hook_service):
        owner = Mock()
        owner.before_patch = AsyncMock(return_value=None)

        result = await hook_service.run(owner, "before_patch", {"a": 1}, context="ctx")

        owner.before_patch.assert_awaited_once_with({"a": 1})
        assert result == "ctx"

    @pytest.mark.asyncio
    async def test_calls_sync_hook(self, hook_service):
        owner = Mock()
        owner.pre_get = Mock(return_value=None)

        assert await hook_service.run(owner, "pre_get", context=5) == 5
        owner.pre_get.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_substitutes_context(self, hook_service):
        owner = Mock()
        owner.after_get = AsyncMock(return_value={"replaced": True})

        result = await hook_service.run(owner, "after_get", context={"original": True})
        assert result == {"replaced": True}

    @pytest.mark.asyncio
    async def test_hook_errors_propagate(self, hook_service):
        owner = Mock()
        owner.before_delete = AsyncMock(side_effect=PermissionError("locked"))

        with pytest.raises(PermissionError, match="locked"):
            await hook_service.run(owner, "before_delete")
