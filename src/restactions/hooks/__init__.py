"""Rest actions verb hook system.

Provides extension points around every verb's store operation:
- before<Verb>: Before the store operation (can substitute the context, can abort)
- after<Verb>: After the store operation (can substitute the result, can abort;
  the store operation is already committed)

Hooks are methods on the model, named by convention (``before_patch``,
``pre_patch``, ``before_update``, ...) or marked explicitly:

    from restactions.hooks import hook
    from restactions.types import Verb

    class Guardian(Document):
        @hook(Verb.CREATE, "before")
        async def normalize_email(self):
            self.email = self.email.lower()
"""

from restactions.hooks.registry import HookRegistry, hook
from restactions.hooks.service import HookService
from restactions.hooks.types import HOOK_POINTS, HookPhase, HookPoint, HookSlots

__all__ = [
    "HOOK_POINTS",
    "HookPhase",
    "HookPoint",
    "HookRegistry",
    "HookService",
    "HookSlots",
    "hook",
]
