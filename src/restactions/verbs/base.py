"""Shared plumbing for the verb pipelines."""

import logging
from typing import Any

from restactions.hooks.registry import HookRegistry
from restactions.hooks.service import HookService
from restactions.hooks.types import HookPhase
from restactions.types import PluginOptions, Verb

logger = logging.getLogger(__name__)

hook_service = HookService()


def plugin_options(model: type) -> PluginOptions:
    """Options the model was plugged with (defaults when it never was)."""
    return getattr(model, "__rest_actions__", None) or PluginOptions()


async def run_hook(
    owner: Any,
    verb: Verb,
    phase: HookPhase,
    *args: Any,
    context: Any = None,
) -> Any:
    """Run the hook resolved for ``verb``/``phase`` on ``owner``.

    Slots are looked up on the model class: ``owner`` itself for static
    verbs, the record's class for instance verbs.
    """
    model = owner if isinstance(owner, type) else type(owner)
    name = HookRegistry.slots(model, verb).name(phase)
    return await hook_service.run(owner, name, *args, context=context)
