import pytest

from nestnet.timing_wheel import CallbackEntry, TimingWheel


class Clock:
    def __init__(self, wheel):
        self.wheel = wheel
        self.now = 1000
        wheel.on_timer(self.now)

    def advance(self, ticks=1):
        for _ in range(ticks):
            self.now += 1000
            self.wheel.on_timer(self.now)


def test_callback_entry_fires_once():
    calls = []
    entry = CallbackEntry(lambda: calls.append("x"))
    entry.fire()
    entry.fire()
    assert calls == ["x"]


def test_run_after_fires_after_delay_ticks():
    wheel = TimingWheel()
    clock = Clock(wheel)
    fired = []
    wheel.run_after(3, lambda: fired.append("a"))
    clock.advance(2)
    assert fired == []
    clock.advance()
    assert fired == ["a"]


def test_sub_second_steps_do_not_tick():
    wheel = TimingWheel()
    clock = Clock(wheel)
    fired = []
    wheel.run_after(1, lambda: fired.append("a"))
    wheel.on_timer(clock.now + 500)
    assert fired == []
    assert wheel.tick == 0
    wheel.on_timer(clock.now + 1000)
    assert fired == ["a"]
    assert wheel.tick == 1


def test_zero_delay_fires_immediately():
    wheel = TimingWheel()
    fired = []
    wheel.run_after(0, lambda: fired.append("now"))
    assert fired == ["now"]


def test_fractional_delay_is_truncated():
    wheel = TimingWheel()
    fired = []
    wheel.run_after(0.5, lambda: fired.append("now"))
    assert fired == ["now"]


def test_reinserted_entry_fires_at_latest_slot():
    wheel = TimingWheel()
    clock = Clock(wheel)
    fired = []
    entry = CallbackEntry(lambda: fired.append("e"))
    wheel.insert_entry(2, entry)
    clock.advance()
    wheel.insert_entry(2, entry)
    clock.advance()
    assert fired == []
    clock.advance()
    assert fired == ["e"]


def test_same_slot_twice_fires_once():
    wheel = TimingWheel()
    clock = Clock(wheel)
    fired = []
    entry = CallbackEntry(lambda: fired.append("e"))
    wheel.insert_entry(1, entry)
    wheel.insert_entry(1, entry)
    clock.advance(5)
    assert fired == ["e"]


def test_minute_delay_cascades_into_seconds():
    wheel = TimingWheel()
    clock = Clock(wheel)
    fired = []
    wheel.run_after(61, lambda: fired.append("m"))
    clock.advance(60)
    assert fired == []
    clock.advance()
    assert fired == ["m"]


def test_exact_minute_fires_on_minute_tick():
    wheel = TimingWheel()
    clock = Clock(wheel)
    fired = []
    wheel.run_after(60, lambda: fired.append("m"))
    clock.advance(59)
    assert fired == []
    clock.advance()
    assert fired == ["m"]


def test_run_every_repeats():
    wheel = TimingWheel()
    clock = Clock(wheel)
    fired = []
    wheel.run_every(2, lambda: fired.append(wheel.tick))
    clock.advance(6)
    assert len(fired) == 3
    assert all(tick % 2 == 0 for tick in fired)


def test_run_every_rejects_zero_interval():
    with pytest.raises(ValueError):
        TimingWheel().run_every(0, lambda: None)


def test_delay_over_thirty_days_raises():
    wheel = TimingWheel()
    with pytest.raises(ValueError):
        wheel.insert_entry(31 * 86400, CallbackEntry(lambda: None))