"""
Slot capacity evaluation.

Pure functions over a ``Slot`` or ``SlotView``. Nothing here mutates a slot.
"""

from typing import Union

from domain import Slot, SlotView, SourceClass, Token, source_class

SlotLike = Union[Slot, SlotView]


def occupant_count(slot: SlotLike) -> int:
    return len(slot.occupants)


def count_by_class(slot: SlotLike, klass: SourceClass) -> int:
    return sum(1 for token in slot.occupants if source_class(token.source) is klass)


def emergency_count(slot: SlotLike) -> int:
    return count_by_class(slot, SourceClass.EMERGENCY)


def priority_count(slot: SlotLike) -> int:
    """PRIORITY and FOLLOW_UP occupants."""
    return count_by_class(slot, SourceClass.PRIORITY)


def general_count(slot: SlotLike) -> int:
    """ONLINE and WALK_IN occupants."""
    return count_by_class(slot, SourceClass.GENERAL)


def general_capacity(slot: SlotLike) -> int:
    return slot.capacity.general_capacity


def has_hard_capacity(slot: SlotLike) -> bool:
    return occupant_count(slot) < slot.capacity.max


def can_consume_emergency_buffer(slot: SlotLike) -> bool:
    return emergency_count(slot) < slot.capacity.emergency_buffer


def can_consume_priority_buffer(slot: SlotLike) -> bool:
    return priority_count(slot) < slot.capacity.priority_buffer


def can_admit(slot: SlotLike, token: Token) -> bool:
    """
    Whether ``token`` fits into ``slot`` right now.

    Rules:
    - Nothing is admitted once the hard max is reached.
    - EMERGENCY uses the emergency buffer, then overflows into general capacity.
    - PRIORITY / FOLLOW_UP use the priority buffer, then overflow into general.
    - ONLINE / WALK_IN only ever use general capacity.
    - Unknown sources are never admitted.
    """
    if not has_hard_capacity(slot):
        return False

    general_room = general_count(slot) < general_capacity(slot)
    klass = source_class(token.source)

    if klass is SourceClass.EMERGENCY:
        return can_consume_emergency_buffer(slot) or general_room
    if klass is SourceClass.PRIORITY:
        return can_consume_priority_buffer(slot) or general_room
    if klass is SourceClass.GENERAL:
        return general_room
    return False
