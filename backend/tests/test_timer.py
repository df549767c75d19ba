import pytest

from versequest.engine.timer import LevelTimer, TimerState


def test_starts_idle_and_ticks_are_ignored():
    timer = LevelTimer()
    assert timer.state is TimerState.IDLE
    assert timer.tick() is False
    assert timer.remaining == 0


def test_counts_down_and_expires_once():
    timer = LevelTimer()
    timer.start(3)
    assert timer.running
    assert [timer.tick(), timer.tick()] == [False, False]
    assert timer.remaining == 1
    assert timer.tick() is True
    assert timer.state is TimerState.EXPIRED
    # A second zero tick must not re-fire
    assert timer.tick() is False
    assert timer.remaining == 0


def test_cancel_freezes_remaining_time():
    timer = LevelTimer()
    timer.start(10)
    timer.tick()
    assert timer.cancel() == 9
    assert timer.state is TimerState.CANCELLED
    assert timer.tick() is False
    assert timer.remaining == 9
    assert timer.elapsed == 1


def test_only_start_rearms():
    timer = LevelTimer()
    timer.start(1)
    assert timer.tick() is True
    timer.start(5)
    assert timer.state is TimerState.RUNNING
    assert timer.remaining == 5


def test_rejects_non_positive_duration():
    with pytest.raises(ValueError):
        LevelTimer().start(0)
