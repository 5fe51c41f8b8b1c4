"""
Slot mutation.

The only module that changes ``slot.occupants`` and ``slot.waitlist``.
Callers must serialize calls per slot; nothing here locks.
"""

from dataclasses import dataclass
from typing import List, Optional

from domain import (
    AllocationDecision,
    Allocated,
    Displaced,
    Rejected,
    Slot,
    Token,
    Waitlisted,
)


@dataclass
class CancelResult:
    removed: Optional[Token] = None
    promoted: Optional[Token] = None


def _remove_by_id(tokens: List[Token], token_id: str) -> Optional[Token]:
    for index, token in enumerate(tokens):
        if token.id == token_id:
            return tokens.pop(index)
    return None


def _highest_priority_index(waitlist: List[Token]) -> Optional[int]:
    best: Optional[int] = None
    for index, token in enumerate(waitlist):
        if best is None or token.priority > waitlist[best].priority:
            best = index
    return best


def promote_from_waitlist(slot: Slot) -> Optional[Token]:
    """Move the highest-priority waitlisted token (earliest on ties) into the slot."""
    index = _highest_priority_index(slot.waitlist)
    if index is None:
        return None
    promoted = slot.waitlist.pop(index)
    slot.occupants.append(promoted)
    return promoted


def apply(slot: Slot, decision: AllocationDecision) -> None:
    """
    Apply a decision from ``allocation.decide``.

    Not idempotent: applying the same decision twice appends the token twice.
    """
    if isinstance(decision, Allocated):
        slot.occupants.append(decision.token)
    elif isinstance(decision, Displaced):
        _remove_by_id(slot.occupants, decision.displaced_token.id)
        slot.occupants.append(decision.token)
        slot.waitlist.append(decision.displaced_token)
    elif isinstance(decision, Waitlisted):
        slot.waitlist.append(decision.token)
    elif isinstance(decision, Rejected):
        pass
    else:
        raise TypeError(f"Not an allocation decision: {decision!r}")


def cancel(slot: Slot, token_id: str) -> CancelResult:
    # Waitlisted tokens are left where they are; only occupants free a place.
    removed = _remove_by_id(slot.occupants, token_id)
    if removed is None:
        return CancelResult()
    return CancelResult(removed=removed, promoted=promote_from_waitlist(slot))


def no_show(slot: Slot, token_id: str) -> CancelResult:
    return cancel(slot, token_id)
