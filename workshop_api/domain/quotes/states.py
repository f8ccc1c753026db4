"""Quote statuses and the one table of legal moves between them"""

import enum

from ...errors import InvalidTransition


class QuoteStatus(str, enum.Enum):
    DRAFT = "draft"
    PENDING_DIAGNOSIS = "pending_diagnosis"
    DIAGNOSIS_COMPLETE = "diagnosis_complete"
    AWAITING_APPROVAL = "awaiting_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    CONVERTED = "converted"


TRANSITIONS: dict[QuoteStatus, frozenset[QuoteStatus]] = {
    QuoteStatus.DRAFT: frozenset({QuoteStatus.PENDING_DIAGNOSIS}),
    QuoteStatus.PENDING_DIAGNOSIS: frozenset({QuoteStatus.DIAGNOSIS_COMPLETE}),
    QuoteStatus.DIAGNOSIS_COMPLETE: frozenset({QuoteStatus.AWAITING_APPROVAL}),
    QuoteStatus.AWAITING_APPROVAL: frozenset({QuoteStatus.APPROVED, QuoteStatus.REJECTED}),
    QuoteStatus.APPROVED: frozenset({QuoteStatus.CONVERTED}),
    QuoteStatus.REJECTED: frozenset(),
    QuoteStatus.CONVERTED: frozenset(),
}

# Content (problem, prices, references) can still change
EDITABLE_STATUSES = frozenset(
    {QuoteStatus.DRAFT, QuoteStatus.PENDING_DIAGNOSIS, QuoteStatus.DIAGNOSIS_COMPLETE}
)

# A mechanic can be (re)assigned before the diagnosis is done
ASSIGNABLE_STATUSES = frozenset({QuoteStatus.DRAFT, QuoteStatus.PENDING_DIAGNOSIS})


def can_transition(current: QuoteStatus, requested: QuoteStatus) -> bool:
    return requested in TRANSITIONS[current]


def require_transition(current: QuoteStatus, requested: QuoteStatus) -> None:
    """Raise InvalidTransition naming both states unless the move is legal"""
    if not can_transition(current, requested):
        raise InvalidTransition("quote", current.value, requested.value)
