"""Per-step results of creating or deleting a spoke cluster group."""

from __future__ import annotations

import dataclasses as dc
import enum
import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from spoke_cluster.errors import SpokeClusterError
    from spoke_cluster.resources import ResourceHandle, ResourceKind


class Operation(enum.StrEnum):
    """Remote operation attempted for a slot."""

    CREATE = "create"
    DELETE = "delete"


@dc.dataclass(frozen=True, slots=True)
class StepOutcome:
    """Result of one remote operation on one slot.

    Exactly one of ``handle`` (successful create) or ``error`` is set for
    creates; deletes carry the handle that was deleted and an optional error.

    Attributes
    ----------
    slot
        Slot the step ran for.
    operation
        Whether the step created or deleted the resource.
    handle
        Handle returned by create, or the handle deleted.
    error
        Failure raised by the step, ``None`` on success.

    """

    slot: ResourceKind
    operation: Operation
    handle: ResourceHandle | None = None
    error: SpokeClusterError | None = None

    @property
    def ok(self) -> bool:
        """Return True when the step succeeded."""
        return self.error is None


def first_error(outcomes: cabc.Iterable[StepOutcome]) -> SpokeClusterError | None:
    """Return the error of the first failed outcome, if any."""
    return next((o.error for o in outcomes if o.error is not None), None)


def last_error(outcomes: cabc.Sequence[StepOutcome]) -> SpokeClusterError | None:
    """Return the error carried by the final outcome.

    Earlier failures are masked by a later success; callers needing every
    failure should inspect the outcomes directly.
    """
    if not outcomes:
        return None
    return outcomes[-1].error
