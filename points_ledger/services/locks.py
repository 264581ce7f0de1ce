"""
Per-student locks for the in-process engine.

At most one mutating operation per student runs at a time; different
students never wait on each other. A lock lives in the table only
while someone holds or waits for it, so the table does not grow with
the number of students ever seen.
"""

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field


@dataclass
class _Slot:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


class StudentLockTable:

    def __init__(self):
        self._guard = threading.Lock()
        self._slots: dict[str, _Slot] = {}

    @contextmanager
    def hold(self, student_id: str):
        with self._guard:
            slot = self._slots.setdefault(student_id, _Slot())
            slot.users += 1
        try:
            with slot.lock:
                yield
        finally:
            with self._guard:
                slot.users -= 1
                if slot.users == 0:
                    del self._slots[student_id]

    def __len__(self) -> int:
        with self._guard:
            return len(self._slots)
