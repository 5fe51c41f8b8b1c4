import os
from typing import List, Optional, Tuple

APP_TITLE = "OPD Token Allocation Engine"

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))

LOG_LEVEL = os.getenv("OPD_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Capacity applied to every seeded slot
DEFAULT_SLOT_MAX = int(os.getenv("OPD_SLOT_MAX", "5"))
DEFAULT_EMERGENCY_BUFFER = int(os.getenv("OPD_EMERGENCY_BUFFER", "1"))
DEFAULT_PRIORITY_BUFFER = int(os.getenv("OPD_PRIORITY_BUFFER", "1"))

# (start_hour, end_hour) for each seeded slot of a doctor
SLOT_HOURS: List[Tuple[int, int]] = [(9, 10), (10, 11), (11, 12)]

FIXTURE_DOCTORS: List[Tuple[str, str, str]] = [
    ("doc-A", "Dr. Sharma", "General Medicine"),
    ("doc-B", "Dr. Patel", "Pediatrics"),
    ("doc-C", "Dr. Reddy", "Orthopedics"),
]


def _optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    if value is None or value == "":
        return None
    return int(value)


SIMULATION_SEED: Optional[int] = _optional_int("OPD_SIMULATION_SEED")
