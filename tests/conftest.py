from datetime import datetime

import pytest

from domain import PriorityLevel, Slot, SlotCapacity, Token, TokenSource


def _make_token(id, source=TokenSource.ONLINE, priority=PriorityLevel.MEDIUM, movable=True):
    return Token(
        id=id,
        patient_id="patient-1",
        doctor_id="test-doctor",
        slot_id="test-slot",
        source=source,
        priority=priority,
        movable=movable,
    )


def _make_slot(occupants=None, waitlist=None, max=5, emergency_buffer=1, priority_buffer=1):
    return Slot(
        id="test-slot",
        doctor_id="test-doctor",
        start_time=datetime(2026, 1, 1, 9),
        end_time=datetime(2026, 1, 1, 10),
        capacity=SlotCapacity(
            max=max, emergency_buffer=emergency_buffer, priority_buffer=priority_buffer
        ),
        occupants=list(occupants or []),
        waitlist=list(waitlist or []),
    )


@pytest.fixture
def make_token():
    return _make_token


@pytest.fixture
def make_slot():
    return _make_slot
