"""
Job status rules.

The two classifiers below are the single source of truth for "done" and
"being worked on"; the transition table lists every legal status move.
"""
from typing import Dict, FrozenSet, Optional, Union

from app.core.exceptions import ConflictError
from app.models.job import JobStatus

StatusLike = Union[JobStatus, str, None]

COMPLETED_STATUSES: FrozenSet[JobStatus] = frozenset({
    JobStatus.completed,
    JobStatus.invoiced,
    JobStatus.first_reminder,
    JobStatus.second_reminder,
    JobStatus.paid,
})

# Statuses from which an engineer may (re)start the timer
STARTABLE_STATUSES: FrozenSet[JobStatus] = frozenset({
    JobStatus.new,
    JobStatus.assigned,
    JobStatus.in_progress,
    JobStatus.approved,
    JobStatus.working,
})

# Statuses that can still be holding an open time-tracking session
ENDABLE_STATUSES: FrozenSet[JobStatus] = frozenset({
    JobStatus.in_progress,
    JobStatus.quoted,
    JobStatus.approved,
    JobStatus.working,
})

# Job statuses that still leave their route free to cancel
ROUTE_CANCELLABLE_STATUSES: FrozenSet[JobStatus] = frozenset({
    JobStatus.new,
    JobStatus.assigned,
    JobStatus.cancelled,
})

# Targets an admin may set directly; the rest follow engineer actions
ADMIN_TARGETS: FrozenSet[JobStatus] = frozenset({
    JobStatus.approved,
    JobStatus.invoiced,
    JobStatus.first_reminder,
    JobStatus.second_reminder,
    JobStatus.paid,
    JobStatus.cancelled,
})

ALLOWED_TRANSITIONS: Dict[JobStatus, FrozenSet[JobStatus]] = {
    JobStatus.new: frozenset({JobStatus.assigned, JobStatus.in_progress, JobStatus.cancelled}),
    JobStatus.assigned: frozenset({JobStatus.in_progress, JobStatus.cancelled}),
    JobStatus.in_progress: frozenset({
        JobStatus.in_progress, JobStatus.quoted, JobStatus.completed, JobStatus.cancelled,
    }),
    JobStatus.quoted: frozenset({JobStatus.approved, JobStatus.completed, JobStatus.cancelled}),
    JobStatus.approved: frozenset({
        JobStatus.in_progress, JobStatus.working, JobStatus.completed, JobStatus.cancelled,
    }),
    JobStatus.working: frozenset({
        JobStatus.in_progress, JobStatus.working, JobStatus.completed, JobStatus.cancelled,
    }),
    JobStatus.completed: frozenset({JobStatus.invoiced, JobStatus.paid}),
    JobStatus.invoiced: frozenset({JobStatus.first_reminder, JobStatus.paid}),
    JobStatus.first_reminder: frozenset({JobStatus.second_reminder, JobStatus.paid}),
    JobStatus.second_reminder: frozenset({JobStatus.paid}),
    JobStatus.paid: frozenset(),
    JobStatus.cancelled: frozenset(),
}


def is_job_completed(status: StatusLike) -> bool:
    """True for completed, invoiced, paid and the reminder states."""
    return JobStatus.parse(status) in COMPLETED_STATUSES


def is_job_in_progress(status: StatusLike) -> bool:
    return JobStatus.parse(status) == JobStatus.in_progress


def can_transition(current: StatusLike, target: StatusLike) -> bool:
    current, target = JobStatus.parse(current), JobStatus.parse(target)
    if current is None or target is None:
        return False
    return target in ALLOWED_TRANSITIONS[current]


def ensure_transition(current: StatusLike, target: StatusLike) -> None:
    if not can_transition(current, target):
        raise ConflictError(
            f"Cannot move job from '{_label(current)}' to '{_label(target)}'",
            details={"job_status": _label(current)},
        )


def _label(status: StatusLike) -> Optional[str]:
    parsed = JobStatus.parse(status)
    return parsed.value if parsed else status
