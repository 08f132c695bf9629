"""Run status transition rules."""

from __future__ import annotations

from core.runs.models import RunStatus
from core.utils.errors import InvalidTransitionError

_RANK = {
    RunStatus.PENDING: 0,
    RunStatus.RUNNING: 1,
    RunStatus.COMPLETED: 2,
    RunStatus.FAILED: 2,
}


def can_transition(current: RunStatus, requested: RunStatus) -> bool:
    """True when ``requested`` is the same status or a later, reachable one.

    Terminal statuses only accept themselves. Skipping RUNNING is allowed
    because a poller may never observe it.
    """

    if current == requested:
        return True
    if current.is_terminal:
        return False
    return _RANK[requested] > _RANK[current]


def ensure_transition(run_id: str, current: RunStatus, requested: RunStatus) -> None:
    """Raise ``InvalidTransitionError`` when the move is not allowed."""

    if not can_transition(current, requested):
        raise InvalidTransitionError(run_id, current=current, requested=requested)
