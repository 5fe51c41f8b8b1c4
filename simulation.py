import logging
import random
from dataclasses import dataclass
from typing import Callable, Optional

import config
from domain import AllocationOutcome, Doctor, Slot, TokenSource
from engine import TokenEngine
from store import InMemoryStore

logger = logging.getLogger(__name__)

REGULAR_SOURCES = [
    TokenSource.ONLINE,
    TokenSource.WALK_IN,
    TokenSource.PRIORITY,
    TokenSource.FOLLOW_UP,
]

STATUS_ICONS = {
    AllocationOutcome.ALLOCATED: "✅",
    AllocationOutcome.DISPLACED: "🔄",
    AllocationOutcome.WAITLISTED: "⏳",
    AllocationOutcome.REJECTED: "🚫",
}


@dataclass
class DaySummary:
    processed: int = 0
    allocated: int = 0  # includes displacements
    emergencies: int = 0
    displaced: int = 0
    waitlisted: int = 0
    rejected: int = 0

    def record(self, outcome: AllocationOutcome) -> None:
        self.processed += 1
        if outcome is AllocationOutcome.ALLOCATED:
            self.allocated += 1
        elif outcome is AllocationOutcome.DISPLACED:
            self.displaced += 1
            self.allocated += 1
        elif outcome is AllocationOutcome.WAITLISTED:
            self.waitlisted += 1
        else:
            self.rejected += 1


class DaySimulation:
    """
    Plays one OPD day against every doctor in the store.

    Demonstrates:
    - Slot capacity limits and reserved buffers.
    - Prioritisation between sources.
    - Displacing lower-priority patients.
    - Waitlisting and promotion after cancellation / no-show.
    """

    def __init__(
        self,
        engine: TokenEngine,
        rng: random.Random,
        out: Callable[[str], None] = print,
    ) -> None:
        self.engine = engine
        self.rng = rng
        self.out = out
        self.summary = DaySummary()

    def process(self, doctor: Doctor, slot: Slot, source: TokenSource) -> None:
        result = self.engine.book_token(
            doctor.id,
            slot.id,
            source,
            patient_id=f"patient-{self.rng.randint(1000, 9999)}",
        )
        outcome = result.decision.outcome
        self.summary.record(outcome)
        self.out(
            f"    {STATUS_ICONS[outcome]} [{source.value}] Token {result.token.id} "
            f"→ {outcome.value} ({result.decision.reason})"
        )

    def simulate_slot(self, doctor: Doctor, slot: Slot) -> None:
        self.out(f"\n  📅 Slot: {slot.label}")

        for _ in range(self.rng.randint(4, 7)):
            self.process(doctor, slot, self.rng.choice(REGULAR_SOURCES))

        for _ in range(self.rng.randint(0, 2)):
            self.summary.emergencies += 1
            self.process(doctor, slot, TokenSource.EMERGENCY)

        if self.rng.random() < 0.3 and slot.occupants:
            token = self.rng.choice(slot.occupants)
            self.out(f"    ❌ Cancelling token: {token.id}")
            self.engine.cancel_token(token.id)

        if self.rng.random() < 0.2 and slot.occupants:
            token = self.rng.choice(slot.occupants)
            self.out(f"    👻 No-show: {token.id}")
            self.engine.mark_no_show(token.id)

        emergency_in_slot = sum(
            1 for t in slot.occupants if t.source == TokenSource.EMERGENCY
        )
        self.out("    " + "─" * 32)
        self.out(f"    📊 Tokens: {len(slot.occupants)}/{slot.capacity.max}")
        self.out(f"    🚨 Emergency: {emergency_in_slot}")
        self.out(f"    📋 Waitlist: {len(slot.waitlist)}")

    def simulate_doctor(self, doctor: Doctor) -> None:
        self.out("\n" + "═" * 60)
        self.out(f"👨‍⚕️ {doctor.name} ({doctor.department})")
        self.out("═" * 60)

        for slot in doctor.slots:
            self.simulate_slot(doctor, slot)

        self.out("\n  📈 Doctor Summary:")
        self.out(f"     Total tokens allocated: {sum(len(s.occupants) for s in doctor.slots)}")
        self.out(
            "     Total emergencies handled: "
            f"{sum(1 for s in doctor.slots for t in s.occupants if t.source == TokenSource.EMERGENCY)}"
        )
        self.out(f"     Total in waitlist: {sum(len(s.waitlist) for s in doctor.slots)}")

    def run(self) -> DaySummary:
        self.out("\n" + "═" * 60)
        self.out("🏥 OPD TOKEN ALLOCATION SIMULATION")
        self.out("═" * 60)

        for doctor in self.engine.list_doctors():
            self.simulate_doctor(doctor)

        s = self.summary
        self.out("\n" + "═" * 60)
        self.out("📊 END OF DAY SUMMARY")
        self.out("═" * 60)
        self.out(f"  Total tokens processed:  {s.processed}")
        self.out(f"  Total allocated:         {s.allocated}")
        self.out(f"  Total emergencies:       {s.emergencies}")
        self.out(f"  Total displaced:         {s.displaced}")
        self.out(f"  Total waitlisted:        {s.waitlisted}")
        self.out(f"  Total rejected:          {s.rejected}")
        self.out("═" * 60 + "\n")
        return s


def run_simulation(
    seed: Optional[int] = None,
    out: Callable[[str], None] = print,
    store: Optional[InMemoryStore] = None,
) -> DaySummary:
    if seed is None:
        seed = config.SIMULATION_SEED
    logger.debug("Simulation seed: %s", seed)
    engine = TokenEngine(store or InMemoryStore.with_fixtures())
    return DaySimulation(engine, random.Random(seed), out=out).run()


def main() -> None:
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
    run_simulation()


if __name__ == "__main__":
    main()
