"""
Tests for keyed delayed tasks.
"""

import threading
import time

from beat_montage.core.scheduler import DelayedTaskScheduler


def test_task_fires_after_delay():
    scheduler = DelayedTaskScheduler("test")
    fired = threading.Event()

    scheduler.schedule("a", 0.01, fired.set)

    assert fired.wait(2)
    assert not scheduler.is_scheduled("a")


def test_rescheduling_replaces_previous_task():
    scheduler = DelayedTaskScheduler("test")
    calls = []
    done = threading.Event()

    scheduler.schedule("a", 0.05, lambda: calls.append("first"))
    scheduler.schedule("a", 0.05, lambda: (calls.append("second"), done.set()))

    assert done.wait(2)
    time.sleep(0.1)
    assert calls == ["second"]


def test_cancel():
    scheduler = DelayedTaskScheduler("test")
    calls = []

    scheduler.schedule("a", 0.05, lambda: calls.append("a"))
    assert scheduler.pending() == 1
    assert scheduler.cancel("a") is True
    assert scheduler.cancel("a") is False

    time.sleep(0.1)
    assert calls == []
    assert scheduler.pending() == 0


def test_failing_task_does_not_break_scheduler():
    scheduler = DelayedTaskScheduler("test")
    fired = threading.Event()

    def boom():
        raise RuntimeError("boom")

    scheduler.schedule("bad", 0, boom)
    scheduler.schedule("good", 0.02, fired.set)

    assert fired.wait(2)


def test_shutdown_cancels_and_refuses_new_tasks():
    scheduler = DelayedTaskScheduler("test")
    calls = []

    scheduler.schedule("a", 0.05, lambda: calls.append("a"))
    scheduler.shutdown()
    scheduler.schedule("b", 0, lambda: calls.append("b"))

    time.sleep(0.1)
    assert calls == []
    assert scheduler.pending() == 0


def test_many_pending_tasks_share_one_worker_thread():
    scheduler = DelayedTaskScheduler("fanout")
    try:
        for index in range(50):
            scheduler.schedule(f"run:{index}", 60, lambda: None)

        workers = [t for t in threading.enumerate() if t.name.startswith("fanout")]
        assert len(workers) == 1
        assert scheduler.pending() == 50
    finally:
        scheduler.shutdown()


def test_earlier_deadline_scheduled_later_fires_first():
    scheduler = DelayedTaskScheduler("test")
    order = []
    done = threading.Event()

    scheduler.schedule("late", 0.2, lambda: (order.append("late"), done.set()))
    scheduler.schedule("early", 0.01, lambda: order.append("early"))

    assert done.wait(2)
    assert order == ["early", "late"]


def test_shutdown_stops_worker_thread():
    scheduler = DelayedTaskScheduler("stopping")
    scheduler.schedule("a", 60, lambda: None)
    worker = next(t for t in threading.enumerate() if t.name == "stopping-worker")

    scheduler.shutdown()
    worker.join(2)

    assert not worker.is_alive()
