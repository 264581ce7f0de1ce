"""
Tests for the per-student lock table.
"""

import threading
import time

from points_ledger.services.locks import StudentLockTable


class TestStudentLockTable:

    def test_lock_is_removed_after_use(self):
        locks = StudentLockTable()
        with locks.hold("stu-1"):
            assert len(locks) == 1
        assert len(locks) == 0

    def test_lock_is_removed_after_error(self):
        locks = StudentLockTable()
        try:
            with locks.hold("stu-1"):
                raise RuntimeError("boom")
        except RuntimeError:
            pass
        assert len(locks) == 0

    def test_same_student_is_serialized(self):
        locks = StudentLockTable()
        inside = []
        overlap = []

        def worker():
            with locks.hold("stu-1"):
                inside.append(1)
                overlap.append(len(inside))
                time.sleep(0.01)
                inside.pop()

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert max(overlap) == 1
        assert len(locks) == 0

    def test_different_students_do_not_block(self):
        locks = StudentLockTable()
        other_done = threading.Event()

        def other_student():
            with locks.hold("stu-2"):
                other_done.set()

        with locks.hold("stu-1"):
            thread = threading.Thread(target=other_student)
            thread.start()
            assert other_done.wait(timeout=2)
        thread.join()
