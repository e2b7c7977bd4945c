"""Tests for prompt dispatchers."""

from __future__ import annotations

import threading
import unittest

from permission_broker.dispatch import (
    InlineDispatcher,
    InteractionDispatcher,
    ThreadDispatcher,
)


class InteractionDispatcherTests(unittest.TestCase):
    """Validate that queued callables run on the draining thread."""

    def test_run_pending_executes_on_calling_thread(self) -> None:
        dispatcher = InteractionDispatcher()
        future = dispatcher.submit(lambda: threading.current_thread().name)
        self.assertEqual(dispatcher.pending(), 1)

        self.assertEqual(dispatcher.run_pending(), 1)
        self.assertEqual(future.result(timeout=1), threading.current_thread().name)

    def test_exceptions_are_forwarded(self) -> None:
        dispatcher = InteractionDispatcher()

        def _fail() -> int:
            raise ValueError("dialog crashed")

        future = dispatcher.submit(_fail)
        dispatcher.run_pending()
        with self.assertRaises(ValueError):
            future.result(timeout=1)

    def test_run_drains_until_stopped(self) -> None:
        dispatcher = InteractionDispatcher(poll_interval=0.01)
        stop_event = threading.Event()
        owner = threading.Thread(target=dispatcher.run, args=(stop_event,), name="ui-owner")
        owner.start()
        try:
            future = dispatcher.submit(lambda: threading.current_thread().name)
            self.assertEqual(future.result(timeout=2), "ui-owner")
        finally:
            stop_event.set()
            owner.join(timeout=2)
        self.assertFalse(owner.is_alive())

    def test_cancelled_submission_is_skipped(self) -> None:
        dispatcher = InteractionDispatcher()
        calls: list[int] = []
        future = dispatcher.submit(lambda: calls.append(1))
        future.cancel()
        dispatcher.run_pending()
        self.assertEqual(calls, [])


class ThreadDispatcherTests(unittest.TestCase):
    def test_runs_on_a_separate_thread(self) -> None:
        future = ThreadDispatcher().submit(lambda: threading.current_thread().name)
        self.assertEqual(future.result(timeout=2), ThreadDispatcher.THREAD_NAME)


class InlineDispatcherTests(unittest.TestCase):
    def test_runs_immediately(self) -> None:
        future = InlineDispatcher().submit(lambda: 42)
        self.assertTrue(future.done())
        self.assertEqual(future.result(), 42)


if __name__ == "__main__":
    unittest.main()
