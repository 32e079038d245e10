import threading

import pytest

from core.trigger_counter import COUNTER_CEILING, TriggerCounter


@pytest.mark.parametrize("threshold", [1, 2, 5, 10])
def test_triggers_after_threshold_increments(threshold):
    counter = TriggerCounter(threshold)
    for _ in range(threshold - 1):
        counter.increment()
        assert not counter.should_trigger()
    counter.increment()
    assert counter.should_trigger()


def test_reset_starts_a_new_cycle():
    counter = TriggerCounter(4)
    for _ in range(4):
        counter.increment()
    assert counter.should_trigger()
    counter.reset()

    for _ in range(3):
        counter.increment()
        assert not counter.should_trigger()
    counter.increment()
    assert counter.should_trigger()


def test_zero_threshold_is_inactive():
    counter = TriggerCounter(0)
    assert not counter.active
    counter.increment()
    assert not counter.should_trigger()


def test_wraps_at_ceiling():
    counter = TriggerCounter(COUNTER_CEILING + 5)
    for _ in range(COUNTER_CEILING + 3):
        counter.increment()
    assert 1 <= counter.get_count() < COUNTER_CEILING
    assert counter.get_count() == 4


def test_hit_fires_every_nth_call():
    counter = TriggerCounter(3)
    fired = [counter.hit() for _ in range(9)]
    assert fired == [False, False, True] * 3
    assert counter.get_count() == 0


def test_concurrent_increments_are_not_lost():
    counter = TriggerCounter(COUNTER_CEILING)

    def work():
        for _ in range(50):
            counter.increment()

    threads = [threading.Thread(target=work) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert counter.get_count() == 500
