import threading

import pytest

from tick_driver import TickDriver


def test_manual_steps_need_no_clock():
    calls = []
    driver = TickDriver(lambda: calls.append(len(calls)), period=3600)
    driver.step(4)
    assert calls == [0, 1, 2, 3]
    assert driver.ticks == 4
    assert not driver.running


def test_period_must_be_positive():
    with pytest.raises(ValueError):
        TickDriver(lambda: None, period=0)


def test_background_ticks_run_one_at_a_time_and_stop():
    active = []
    overlaps = []
    done = threading.Event()

    def tick():
        if active:
            overlaps.append(True)
        active.append(1)
        if driver.ticks >= 2:
            done.set()
        active.pop()

    driver = TickDriver(tick, period=0.01)
    driver.start()
    assert done.wait(5)
    driver.stop()
    count = driver.ticks
    assert not driver.running
    assert overlaps == []
    assert driver.ticks == count


def test_stop_from_inside_a_tick_does_not_deadlock():
    stopped = threading.Event()

    def tick():
        driver.stop()
        stopped.set()

    driver = TickDriver(tick, period=0.01)
    driver.start()
    assert stopped.wait(5)


def test_manual_step_is_refused_while_running():
    driver = TickDriver(lambda: None, period=10)
    driver.start()
    try:
        with pytest.raises(RuntimeError):
            driver.step()
    finally:
        driver.stop()


def test_failing_tick_stops_the_background_loop():
    calls = []
    failed = threading.Event()

    def tick():
        calls.append(1)
        failed.set()
        raise ValueError("boom")

    driver = TickDriver(tick, period=0.01)
    driver.start()
    assert failed.wait(5)
    thread = driver._thread
    if thread is not None:
        thread.join(5)
    assert calls == [1]
    driver.stop()
