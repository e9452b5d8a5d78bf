from __future__ import annotations

import threading
import unittest

from zastepstwa.util.locks import KeyedLocks


class KeyedLocksTests(unittest.TestCase):
    def test_entries_are_reclaimed_after_release(self) -> None:
        locks = KeyedLocks()
        with locks.hold("a") as acquired:
            self.assertTrue(acquired)
            self.assertEqual(len(locks), 1)
        self.assertEqual(len(locks), 0)

    def test_same_key_is_exclusive(self) -> None:
        locks = KeyedLocks()
        held = threading.Event()
        release = threading.Event()

        def holder() -> None:
            with locks.hold("a"):
                held.set()
                release.wait(timeout=5)

        thread = threading.Thread(target=holder)
        thread.start()
        try:
            self.assertTrue(held.wait(timeout=5))
            with locks.hold("a", timeout=0.05) as acquired:
                self.assertFalse(acquired)
            with locks.hold("b", timeout=0.05) as acquired:
                self.assertTrue(acquired)
        finally:
            release.set()
            thread.join(timeout=5)

        self.assertEqual(len(locks), 0)

    def test_release_on_exception(self) -> None:
        locks = KeyedLocks()
        with self.assertRaises(RuntimeError):
            with locks.hold("a"):
                raise RuntimeError("boom")
        with locks.hold("a", timeout=0.01) as acquired:
            self.assertTrue(acquired)


if __name__ == "__main__":
    unittest.main()
