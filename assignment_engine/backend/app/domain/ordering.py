from __future__ import annotations

from datetime import datetime
from typing import Callable, Iterable, Optional, Sequence

from .records import COMPLETED, UNASSIGNED, AssignmentRecord, Candidate, ItemRecord

# -----------------------------------------------------------------------------
# Selection policy
# -----------------------------------------------------------------------------
# Policies:
#   oldest_first   created_at ascending
#   priority       priority class ascending, then created_at ascending
#   requeue_first  unassigned-and-requeued items first (by unassignment time),
#                  then everything else in priority order
#
# Requeued items take absolute precedence over priority class.
# Every key ends with the item's insertion sequence so equal keys keep the
# order the store holds them in.
# -----------------------------------------------------------------------------

# missing creation dates sort after every real one
_FAR_FUTURE = datetime.max

SortKey = Callable[[Candidate], tuple]


def _created(item: ItemRecord) -> datetime:
    return item.created_at or _FAR_FUTURE


def _oldest_first_key(c: Candidate) -> tuple:
    return (_created(c.item), c.item.seq)


def _priority_key(c: Candidate) -> tuple:
    return (int(c.item.priority_class), _created(c.item), c.item.seq)


def _requeue_first_key(c: Candidate) -> tuple:
    if c.requeued_at is not None:
        return (0, c.requeued_at) + _priority_key(c)
    return (1, _FAR_FUTURE) + _priority_key(c)


POLICIES: dict[str, SortKey] = {
    "oldest_first": _oldest_first_key,
    "priority": _priority_key,
    "requeue_first": _requeue_first_key,
}


def sort_key_for(policy: str) -> SortKey:
    try:
        return POLICIES[policy]
    except KeyError:
        raise ValueError(f"unknown assignment policy: {policy}") from None


def order_candidates(candidates: Iterable[Candidate], policy: str) -> list[Candidate]:
    return sorted(candidates, key=sort_key_for(policy))


def pick_next(candidates: Iterable[Candidate], policy: str) -> Optional[Candidate]:
    ordered = order_candidates(candidates, policy)
    return ordered[0] if ordered else None


# -----------------------------------------------------------------------------
# Eligibility
# -----------------------------------------------------------------------------


def latest_closed(history: Sequence[AssignmentRecord]) -> Optional[AssignmentRecord]:
    closed = [a for a in history if a.closed_at is not None]
    if not closed:
        return None
    return max(closed, key=lambda a: (a.closed_at, a.id))


def build_candidate(item: ItemRecord, history: Sequence[AssignmentRecord]) -> Optional[Candidate]:
    """
    Decide whether an item may be offered, given its full assignment history.

    Returns None when the item is not eligible:
      - available flag is false
      - some assignment is still active (stale flag)
      - the latest close was a completion since the item was last queued
    """
    if not item.available:
        return None
    if any(a.is_active for a in history):
        return None

    last = latest_closed(history)
    if last is None:
        return Candidate(item=item)

    if last.status == COMPLETED:
        if last.completed_at is not None and last.completed_at >= item.queued_at:
            return None
        return Candidate(item=item)

    if last.status == UNASSIGNED:
        return Candidate(item=item, requeued_at=last.unassigned_at)

    return Candidate(item=item)
