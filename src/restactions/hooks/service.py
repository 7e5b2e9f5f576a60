"""Hook execution service for rest actions.

Runs a resolved hook around a verb's store operation. A hook may be a
plain or a coroutine method. Returning a value substitutes the pipeline
context; returning None keeps it. Raising aborts the pipeline.
"""

import inspect
import logging
from typing import Any

logger = logging.getLogger(__name__)


class HookService:
    """Invokes verb hooks on models and records."""

    async def run(self, owner: Any, name: str | None, *args: Any, context: Any = None) -> Any:
        """Run the hook ``name`` on ``owner`` if one was resolved.

        Args:
            owner: Record (instance verbs) or model class (static verbs)
            name: Resolved hook method name, or None when the model has none
            *args: Contextual arguments passed to the hook (e.g. pending updates)
            context: Value flowing through the pipeline

        Returns:
            The hook's substitute for the context, or the context unchanged
        """
        if name is None:
            return context

        label = getattr(owner, "__name__", type(owner).__name__)
        logger.debug("Running hook %s.%s", label, name)

        result = getattr(owner, name)(*args)
        if inspect.isawaitable(result):
            result = await result

        return context if result is None else result
