"""Hook system types for rest actions.

Defines the extension points each verb offers:
- HookPhase: before or after the store operation
- HookPoint: the alias names a model may use for a verb's hooks
- HookSlots: the hook method names resolved for one model and verb
"""

from dataclasses import dataclass
from enum import Enum

from restactions.types import Verb


class HookPhase(Enum):
    BEFORE = "before"
    AFTER = "after"


@dataclass(frozen=True)
class HookPoint:
    """Alias names for a verb's hooks, in priority order.

    Attributes:
        verb: The verb these hooks wrap
        before: Candidate names for the before hook
        after: Candidate names for the after hook
    """

    verb: Verb
    before: tuple[str, ...]
    after: tuple[str, ...]

    def aliases(self, phase: HookPhase) -> tuple[str, ...]:
        return self.before if phase is HookPhase.BEFORE else self.after


@dataclass(frozen=True)
class HookSlots:
    """Resolved hook method names for one model and verb (None when absent)."""

    before: str | None = None
    after: str | None = None

    def name(self, phase: HookPhase) -> str | None:
        return self.before if phase is HookPhase.BEFORE else self.after


HOOK_POINTS: dict[Verb, HookPoint] = {
    Verb.CREATE: HookPoint(
        Verb.CREATE,
        before=("before_post", "pre_post", "before_save", "pre_save"),
        after=("after_post", "post_post", "after_save", "post_save"),
    ),
    Verb.READ: HookPoint(
        Verb.READ,
        before=("before_get_by_id", "pre_get_by_id"),
        after=("after_get_by_id", "post_get_by_id"),
    ),
    Verb.READ_MANY: HookPoint(
        Verb.READ_MANY,
        before=("before_get", "pre_get"),
        after=("after_get", "post_get"),
    ),
    Verb.REPLACE: HookPoint(
        Verb.REPLACE,
        before=("before_put", "pre_put", "before_update", "pre_update"),
        after=("after_put", "post_put", "after_update", "post_update"),
    ),
    Verb.PATCH: HookPoint(
        Verb.PATCH,
        before=("before_patch", "pre_patch", "before_update", "pre_update"),
        after=("after_patch", "post_patch", "after_update", "post_update"),
    ),
    Verb.DELETE: HookPoint(
        Verb.DELETE,
        before=("before_delete", "pre_delete"),
        after=("after_delete", "post_delete"),
    ),
}
