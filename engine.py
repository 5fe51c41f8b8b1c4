from __future__ import annotations

import itertools
import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Dict, List, Optional

import allocation
import mutator
from domain import (
    AllocationDecision,
    Allocated,
    Displaced,
    Doctor,
    PriorityLevel,
    Slot,
    Token,
    TokenSource,
    TokenStatus,
)
from store import InMemoryStore, TokenNotFound

logger = logging.getLogger(__name__)

PRIORITY_BY_SOURCE = {
    TokenSource.EMERGENCY: PriorityLevel.EMERGENCY,
    TokenSource.PRIORITY: PriorityLevel.VERY_HIGH,
    TokenSource.FOLLOW_UP: PriorityLevel.HIGH,
    TokenSource.ONLINE: PriorityLevel.MEDIUM,
    TokenSource.WALK_IN: PriorityLevel.LOW,
}

# Sources whose tokens cannot be displaced by default
FIXED_SOURCES = {TokenSource.EMERGENCY, TokenSource.PRIORITY}


def default_priority(source: TokenSource) -> PriorityLevel:
    return PRIORITY_BY_SOURCE.get(source, PriorityLevel.LOW)


def default_movable(source: TokenSource) -> bool:
    return source not in FIXED_SOURCES


def coerce_source(source):
    """Plain strings naming a known source become ``TokenSource``; anything else is kept as given."""
    if isinstance(source, TokenSource):
        return source
    try:
        return TokenSource(source)
    except ValueError:
        # unknown sources are inadmissible, not an error
        return source


def source_label(source) -> str:
    return source.value if isinstance(source, TokenSource) else str(source)


@dataclass
class BookingResult:
    token: Token
    decision: AllocationDecision
    slot: Slot


@dataclass
class CancellationResult:
    token: Token
    slot: Slot
    removed: bool
    promoted: Optional[Token] = None


class TokenEngine:
    """
    Books, cancels and tracks tokens against the slots of an ``InMemoryStore``.

    Decide and apply run under the slot lock; token status is kept in step
    with whether the token occupies the slot or waits for it.
    """

    def __init__(self, store: InMemoryStore) -> None:
        self.store = store
        self._token_ids = itertools.count(1)

    def reset(self) -> None:
        self.store.reset()
        self._token_ids = itertools.count(1)

    def list_doctors(self) -> List[Doctor]:
        return self.store.list_doctors()

    def get_doctor(self, doctor_id: str) -> Doctor:
        return self.store.get_doctor(doctor_id)

    def book_token(
        self,
        doctor_id: str,
        slot_id: str,
        source: TokenSource,
        priority: Optional[int] = None,
        movable: Optional[bool] = None,
        patient_id: Optional[str] = None,
    ) -> BookingResult:
        slot = self.store.get_slot(doctor_id, slot_id)
        source = coerce_source(source)

        number = next(self._token_ids)
        token = Token(
            id=f"{slot_id}-token-{number}",
            patient_id=patient_id or f"patient-{number}",
            doctor_id=doctor_id,
            slot_id=slot_id,
            source=source,
            priority=default_priority(source) if priority is None else priority,
            movable=default_movable(source) if movable is None else movable,
        )

        with self.store.lock_for(slot.id):
            decision = allocation.decide(slot.view(), token)
            mutator.apply(slot, decision)

        if isinstance(decision, (Allocated, Displaced)):
            token.status = TokenStatus.CONFIRMED
        if isinstance(decision, Displaced):
            decision.displaced_token.status = TokenStatus.CREATED
            logger.info(
                "Token %s displaced %s in slot %s",
                token.id,
                decision.displaced_token.id,
                slot.id,
            )

        logger.info(
            "Token %s [%s/%d] -> %s in slot %s",
            token.id,
            source_label(token.source),
            token.priority,
            decision.outcome.value,
            slot.id,
        )
        return BookingResult(token=token, decision=decision, slot=slot)

    def _find(self, token_id: str):
        try:
            slot, _ = self.store.find_slot_by_token_id(token_id)
        except TokenNotFound:
            logger.warning("Token %s not found in any slot", token_id)
            raise
        for token in itertools.chain(slot.occupants, slot.waitlist):
            if token.id == token_id:
                return slot, token
        raise TokenNotFound(token_id)

    def _release(self, token_id: str, status: TokenStatus) -> CancellationResult:
        slot, token = self._find(token_id)

        with self.store.lock_for(slot.id):
            if status is TokenStatus.NO_SHOW:
                outcome = mutator.no_show(slot, token_id)
            else:
                outcome = mutator.cancel(slot, token_id)

        removed = outcome.removed is not None
        if removed:
            token.status = status
        else:
            logger.info(
                "Token %s is waitlisted in slot %s; nothing to release",
                token_id,
                slot.id,
            )
        if outcome.promoted is not None:
            outcome.promoted.status = TokenStatus.CONFIRMED
            logger.info(
                "Promoted %s from waitlist in slot %s", outcome.promoted.id, slot.id
            )

        return CancellationResult(
            token=token, slot=slot, removed=removed, promoted=outcome.promoted
        )

    def cancel_token(self, token_id: str) -> CancellationResult:
        return self._release(token_id, TokenStatus.CANCELLED)

    def mark_no_show(self, token_id: str) -> CancellationResult:
        return self._release(token_id, TokenStatus.NO_SHOW)

    def check_in(self, token_id: str) -> Token:
        _, token = self._find(token_id)
        token.status = TokenStatus.CHECKED_IN
        token.checked_in_at = datetime.now()
        return token

    def complete(self, token_id: str) -> Token:
        _, token = self._find(token_id)
        token.status = TokenStatus.COMPLETED
        token.completed_at = datetime.now()
        return token

    def get_schedule_for_doctor(self, doctor_id: str) -> Dict:
        doctor = self.get_doctor(doctor_id)
        result_slots = []

        for slot in doctor.slots:
            result_slots.append(
                {
                    "id": slot.id,
                    "label": slot.label,
                    "start_time": slot.start_time,
                    "end_time": slot.end_time,
                    "capacity": asdict(slot.capacity),
                    "occupants": [asdict(t) for t in slot.occupants],
                    "waitlist": [asdict(t) for t in slot.waitlist],
                }
            )

        return {
            "doctor_id": doctor.id,
            "doctor_name": doctor.name,
            "department": doctor.department,
            "slots": result_slots,
        }
