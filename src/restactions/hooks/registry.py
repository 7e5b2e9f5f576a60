"""Hook resolution for rest actions.

Hooks are resolved once per model class, when rest actions are attached
(or when a plugged model is subclassed), never per call. A method marked
with the ``@hook`` decorator wins over the conventional alias names.
"""

import inspect
import logging
from collections.abc import Callable
from typing import Any, TypeVar

from restactions.hooks.types import HOOK_POINTS, HookPhase, HookSlots
from restactions.types import Verb

logger = logging.getLogger(__name__)

HOOK_MARKER = "__rest_hook__"
SLOTS_ATTRIBUTE = "__rest_hooks__"

F = TypeVar("F")


def _marked(attribute: Any) -> tuple[Verb, HookPhase] | None:
    fn = getattr(attribute, "__func__", attribute)
    return getattr(fn, HOOK_MARKER, None)


class HookRegistry:
    """Resolves and caches the hook slots of model classes.

    Example:
        class Guardian(Document):
            async def before_patch(self, updates):
                ...

        HookRegistry.resolve(Guardian)[Verb.PATCH].before  # "before_patch"
    """

    @classmethod
    def resolve(cls, model: type) -> dict[Verb, HookSlots]:
        """Resolve the hook slots of every verb and cache them on the model.

        Args:
            model: The model class

        Returns:
            Mapping of verb to resolved slots
        """
        marked: dict[tuple[Verb, HookPhase], str] = {}
        for name in dir(model):
            if name.startswith("__"):
                continue
            marker = _marked(inspect.getattr_static(model, name, None))
            if marker is not None:
                marked.setdefault(marker, name)

        resolved: dict[Verb, HookSlots] = {}
        for verb, point in HOOK_POINTS.items():
            names: dict[HookPhase, str | None] = {}
            for phase in HookPhase:
                names[phase] = marked.get((verb, phase)) or next(
                    (
                        alias
                        for alias in point.aliases(phase)
                        if callable(getattr(model, alias, None))
                    ),
                    None,
                )
            resolved[verb] = HookSlots(
                before=names[HookPhase.BEFORE], after=names[HookPhase.AFTER]
            )

        setattr(model, SLOTS_ATTRIBUTE, resolved)
        logger.debug(
            "Resolved hooks for %s: %s",
            model.__name__,
            {
                verb.value: (slots.before, slots.after)
                for verb, slots in resolved.items()
                if slots.before or slots.after
            },
        )
        return resolved

    @classmethod
    def slots(cls, model: type, verb: Verb) -> HookSlots:
        """Get the resolved slots of a verb, resolving the model on first use."""
        resolved = model.__dict__.get(SLOTS_ATTRIBUTE)
        if resolved is None:
            resolved = cls.resolve(model)
        return resolved.get(verb, HookSlots())

    @classmethod
    def clear(cls, model: type) -> None:
        """Drop the cached slots of a model. Primarily for testing."""
        if SLOTS_ATTRIBUTE in model.__dict__:
            delattr(model, SLOTS_ATTRIBUTE)


def hook(verb: Verb, phase: str | HookPhase = HookPhase.BEFORE) -> Callable[[F], F]:
    """Decorator to mark a model method as a verb hook.

    Usage:
        class Guardian(Document):
            @hook(Verb.PATCH, "before")
            async def stamp_editor(self, updates):
                ...
    """
    marker = (verb, HookPhase(phase))

    def decorator(fn: F) -> F:
        setattr(getattr(fn, "__func__", fn), HOOK_MARKER, marker)
        return fn

    return decorator
