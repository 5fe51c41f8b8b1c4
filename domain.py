from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import List, Optional, Tuple, Union


class TokenSource(str, Enum):
    ONLINE = "ONLINE"
    WALK_IN = "WALK_IN"
    PRIORITY = "PRIORITY"
    FOLLOW_UP = "FOLLOW_UP"
    EMERGENCY = "EMERGENCY"


class TokenStatus(str, Enum):
    CREATED = "CREATED"
    CONFIRMED = "CONFIRMED"
    CHECKED_IN = "CHECKED_IN"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class PriorityLevel(IntEnum):
    """Higher value = more urgent."""

    LOW = 20
    MEDIUM = 40
    HIGH = 60
    VERY_HIGH = 80
    EMERGENCY = 100


class SourceClass(str, Enum):
    """Capacity bucket a source is counted against."""

    EMERGENCY = "emergency"
    PRIORITY = "priority"
    GENERAL = "general"


SOURCE_CLASSES = {
    TokenSource.EMERGENCY: SourceClass.EMERGENCY,
    TokenSource.PRIORITY: SourceClass.PRIORITY,
    TokenSource.FOLLOW_UP: SourceClass.PRIORITY,
    TokenSource.ONLINE: SourceClass.GENERAL,
    TokenSource.WALK_IN: SourceClass.GENERAL,
}


def source_class(source) -> Optional[SourceClass]:
    """Bucket for ``source``, or None when the source is not recognised."""
    return SOURCE_CLASSES.get(source)


class AllocationOutcome(str, Enum):
    ALLOCATED = "ALLOCATED"
    DISPLACED = "DISPLACED"
    WAITLISTED = "WAITLISTED"
    REJECTED = "REJECTED"


@dataclass
class Token:
    id: str
    patient_id: str
    doctor_id: str
    slot_id: str
    source: TokenSource
    priority: int
    movable: bool = True
    status: TokenStatus = TokenStatus.CREATED
    created_at: datetime = field(default_factory=datetime.now)
    checked_in_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


@dataclass(frozen=True)
class SlotCapacity:
    max: int
    emergency_buffer: int = 0
    priority_buffer: int = 0

    @property
    def general_capacity(self) -> int:
        # Over-subscribed buffers leave no general room rather than an error
        return max(0, self.max - self.emergency_buffer - self.priority_buffer)


@dataclass(frozen=True)
class SlotView:
    """Read-only snapshot of a slot, used by the decision phase."""

    id: str
    capacity: SlotCapacity
    occupants: Tuple[Token, ...] = ()
    waitlist: Tuple[Token, ...] = ()


@dataclass
class Slot:
    id: str
    doctor_id: str
    start_time: datetime
    end_time: datetime
    capacity: SlotCapacity
    occupants: List[Token] = field(default_factory=list)
    waitlist: List[Token] = field(default_factory=list)

    def view(self) -> SlotView:
        return SlotView(
            id=self.id,
            capacity=self.capacity,
            occupants=tuple(self.occupants),
            waitlist=tuple(self.waitlist),
        )

    @property
    def label(self) -> str:
        return f"{self.start_time:%H:%M}-{self.end_time:%H:%M}"


@dataclass
class Doctor:
    id: str
    name: str
    department: str
    slots: List[Slot] = field(default_factory=list)


@dataclass(frozen=True)
class Allocated:
    token: Token
    reason: str = "Slot has available capacity for this token"
    outcome = AllocationOutcome.ALLOCATED


@dataclass(frozen=True)
class Displaced:
    token: Token
    displaced_token: Token
    reason: str = ""
    outcome = AllocationOutcome.DISPLACED


@dataclass(frozen=True)
class Waitlisted:
    token: Token
    reason: str = "Slot full, token added to waitlist due to sufficient priority"
    outcome = AllocationOutcome.WAITLISTED


@dataclass(frozen=True)
class Rejected:
    reason: str = "Slot full and token priority too low for waitlist"
    outcome = AllocationOutcome.REJECTED


AllocationDecision = Union[Allocated, Displaced, Waitlisted, Rejected]
