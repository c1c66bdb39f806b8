import os
import threading

import pytest

from flowboard.state import Debouncer
from flowboard.watch import watch_file

SECOND_NS = 1_000_000_000


class FakeTime:
    """Clock advanced by sleep(); ``actions`` run after the given poll number."""

    def __init__(self, actions=None) -> None:
        self.now = 0.0
        self.polls = 0
        self.actions = actions or {}

    def clock(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.now += seconds
        self.polls += 1
        action = self.actions.get(self.polls)
        if action is not None:
            action()


def _touch(path, seconds: int):
    def action() -> None:
        path.write_text(f"version {seconds}\n", encoding="utf-8")
        os.utime(path, ns=(seconds * SECOND_NS, seconds * SECOND_NS))

    return action


def _start(tmp_path):
    path = tmp_path / "flujo.csv"
    path.write_text("version 0\n", encoding="utf-8")
    os.utime(path, ns=(1000 * SECOND_NS, 1000 * SECOND_NS))
    return path


def test_burst_of_writes_triggers_one_reload(tmp_path) -> None:
    path = _start(tmp_path)
    fake = FakeTime({1: _touch(path, 1001), 2: _touch(path, 1002)})
    reloads = []

    calls = watch_file(
        path,
        reloads.append,
        Debouncer(1.0, clock=fake.clock),
        poll_interval=0.5,
        sleep=fake.sleep,
        max_polls=8,
    )

    assert calls == 1
    assert reloads == [path]
    assert fake.polls == 8


def test_reload_waits_for_quiet_period(tmp_path) -> None:
    path = _start(tmp_path)
    fake = FakeTime({1: _touch(path, 1001)})
    reloads = []

    watch_file(
        path,
        reloads.append,
        Debouncer(1.0, clock=fake.clock),
        poll_interval=0.5,
        sleep=fake.sleep,
        max_polls=2,
    )

    assert reloads == []


def test_separate_changes_reload_separately(tmp_path) -> None:
    path = _start(tmp_path)
    fake = FakeTime({1: _touch(path, 1001), 6: _touch(path, 1002)})

    calls = watch_file(
        path,
        lambda p: None,
        Debouncer(1.0, clock=fake.clock),
        poll_interval=0.5,
        sleep=fake.sleep,
        max_polls=10,
    )

    assert calls == 2


def test_unchanged_or_missing_file_does_not_reload(tmp_path) -> None:
    path = _start(tmp_path)
    fake = FakeTime({2: path.unlink})

    calls = watch_file(
        path,
        lambda p: None,
        Debouncer(0.0, clock=fake.clock),
        poll_interval=0.5,
        sleep=fake.sleep,
        max_polls=5,
    )

    assert calls == 0


def test_stop_event_ends_watching(tmp_path) -> None:
    path = _start(tmp_path)
    stop = threading.Event()
    fake = FakeTime({3: stop.set})

    watch_file(
        path,
        lambda p: None,
        Debouncer(0.0, clock=fake.clock),
        poll_interval=0.5,
        stop_event=stop,
        sleep=fake.sleep,
    )

    assert fake.polls == 3


def test_invalid_poll_interval(tmp_path) -> None:
    with pytest.raises(ValueError):
        watch_file(tmp_path / "x.csv", lambda p: None, Debouncer(), poll_interval=0)
