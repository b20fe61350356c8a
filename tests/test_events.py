"""Tests for the cooperative event queue."""

import threading

from scene_reader.events import EventQueue


def test_drain_runs_in_order():
    events = EventQueue()
    seen = []
    events.post(seen.append, 1)
    events.post(seen.append, 2)
    assert seen == []
    assert events.drain() == 2
    assert seen == [1, 2]
    assert events.drain() == 0


def test_post_from_worker_runs_on_caller_thread():
    events = EventQueue()
    ran_on = []
    worker = threading.Thread(target=lambda: events.post(lambda: ran_on.append(threading.current_thread())))
    worker.start()
    worker.join()
    events.drain()
    assert ran_on == [threading.current_thread()]


def test_run_until_predicate():
    events = EventQueue()
    done = []
    timer = threading.Timer(0.05, lambda: events.post(done.append, True))
    timer.start()
    assert events.run_until(lambda: bool(done), timeout=5) is True
    timer.join()


def test_run_until_timeout():
    events = EventQueue()
    assert events.run_until(lambda: False, timeout=0.1, poll=0.01) is False
