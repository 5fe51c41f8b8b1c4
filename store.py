from __future__ import annotations

import threading
from datetime import datetime, time
from typing import Dict, List, Optional, Tuple

import config
from domain import Doctor, Slot, SlotCapacity


class NotFoundError(ValueError):
    pass


class DoctorNotFound(NotFoundError):
    def __init__(self, doctor_id: str) -> None:
        super().__init__(f"Doctor {doctor_id} not found")
        self.doctor_id = doctor_id


class SlotNotFound(NotFoundError):
    def __init__(self, doctor_id: str, slot_id: str) -> None:
        super().__init__(f"Slot {slot_id} not found for doctor {doctor_id}")
        self.doctor_id = doctor_id
        self.slot_id = slot_id


class TokenNotFound(NotFoundError):
    def __init__(self, token_id: str) -> None:
        super().__init__(f"Token {token_id} not found")
        self.token_id = token_id


def default_capacity() -> SlotCapacity:
    return SlotCapacity(
        max=config.DEFAULT_SLOT_MAX,
        emergency_buffer=config.DEFAULT_EMERGENCY_BUFFER,
        priority_buffer=config.DEFAULT_PRIORITY_BUFFER,
    )


def build_doctor(
    doctor_id: str,
    name: str,
    department: str,
    hours: Optional[List[Tuple[int, int]]] = None,
    capacity: Optional[SlotCapacity] = None,
) -> Doctor:
    """Doctor with one slot per (start_hour, end_hour) pair, dated today."""
    today = datetime.now().date()
    capacity = capacity or default_capacity()
    slots = [
        Slot(
            id=f"{doctor_id}-slot-{n}",
            doctor_id=doctor_id,
            start_time=datetime.combine(today, time(start)),
            end_time=datetime.combine(today, time(end)),
            capacity=capacity,
        )
        for n, (start, end) in enumerate(hours or config.SLOT_HOURS, start=1)
    ]
    return Doctor(id=doctor_id, name=name, department=department, slots=slots)


class InMemoryStore:
    """
    Registry of doctors and their slots.

    Slot state lives here and nowhere else; callers get slots by reference
    and must hold ``lock_for(slot.id)`` while mutating one.
    """

    def __init__(self) -> None:
        self.doctors: Dict[str, Doctor] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @classmethod
    def with_fixtures(cls) -> "InMemoryStore":
        store = cls()
        store.seed()
        return store

    def seed(self) -> None:
        for doctor_id, name, department in config.FIXTURE_DOCTORS:
            self.add_doctor(build_doctor(doctor_id, name, department))

    def reset(self) -> None:
        self.doctors.clear()
        with self._locks_guard:
            self._locks.clear()
        self.seed()

    def add_doctor(self, doctor: Doctor) -> Doctor:
        self.doctors[doctor.id] = doctor
        return doctor

    def list_doctors(self) -> List[Doctor]:
        return list(self.doctors.values())

    def get_doctor(self, doctor_id: str) -> Doctor:
        if doctor_id not in self.doctors:
            raise DoctorNotFound(doctor_id)
        return self.doctors[doctor_id]

    def get_slot(self, doctor_id: str, slot_id: str) -> Slot:
        doctor = self.get_doctor(doctor_id)
        for slot in doctor.slots:
            if slot.id == slot_id:
                return slot
        raise SlotNotFound(doctor_id, slot_id)

    def find_slot_by_token_id(self, token_id: str) -> Tuple[Slot, Doctor]:
        """Slot holding ``token_id`` as an occupant or on its waitlist."""
        for doctor in self.doctors.values():
            for slot in doctor.slots:
                if any(t.id == token_id for t in slot.occupants) or any(
                    t.id == token_id for t in slot.waitlist
                ):
                    return slot, doctor
        raise TokenNotFound(token_id)

    def lock_for(self, slot_id: str) -> threading.Lock:
        with self._locks_guard:
            if slot_id not in self._locks:
                self._locks[slot_id] = threading.Lock()
            return self._locks[slot_id]
