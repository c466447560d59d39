"""
PaymentJob state machine. Every status change in QueueStore goes through
ensure_transition; nothing leaves expired except an administrative delete.
"""
from hotspot.core.errors import WrongState
from hotspot.models.payment_job import JobStatus


ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    JobStatus.PENDING: frozenset({JobStatus.PROCESSED, JobStatus.EXPIRED}),
    JobStatus.PROCESSED: frozenset({JobStatus.SUSPENDED, JobStatus.EXPIRED}),
    JobStatus.SUSPENDED: frozenset({JobStatus.PROCESSED}),
    JobStatus.EXPIRED: frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def ensure_transition(current: str, target: str) -> None:
    if not can_transition(current, target):
        raise WrongState(current, target)
