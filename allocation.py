"""
Allocation decisions.

``decide`` only says what should happen to a token; ``mutator.apply`` makes
it happen. No mutation, no clock, no randomness in here.
"""

from typing import Optional, Union

from capacity import can_admit
from domain import (
    AllocationDecision,
    Allocated,
    Displaced,
    PriorityLevel,
    Rejected,
    Slot,
    SlotView,
    Token,
    TokenSource,
    Waitlisted,
)

WAITLIST_THRESHOLD = PriorityLevel.MEDIUM


def _as_view(slot: Union[Slot, SlotView]) -> SlotView:
    return slot.view() if isinstance(slot, Slot) else slot


def find_displacement_candidate(slot: Union[Slot, SlotView]) -> Optional[Token]:
    """
    Lowest-priority occupant that may be displaced.

    Only movable, non-emergency occupants qualify. Ties go to the earliest
    occupant.
    """
    candidate: Optional[Token] = None
    for token in _as_view(slot).occupants:
        if not token.movable or token.source == TokenSource.EMERGENCY:
            continue
        if candidate is None or token.priority < candidate.priority:
            candidate = token
    return candidate


def decide(slot: Union[Slot, SlotView], token: Token) -> AllocationDecision:
    view = _as_view(slot)

    if can_admit(view, token):
        return Allocated(token=token)

    candidate = find_displacement_candidate(view)
    if candidate is not None and token.priority > candidate.priority:
        return Displaced(
            token=token,
            displaced_token=candidate,
            reason=(
                f"Token can displace lower-priority token "
                f"({int(candidate.priority)} < {int(token.priority)})"
            ),
        )

    if token.priority >= WAITLIST_THRESHOLD:
        return Waitlisted(token=token)

    return Rejected()
