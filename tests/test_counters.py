import numpy as np
import pytest

from branch_sim.components.counters import CounterTable, SaturatingCounter
from branch_sim.errors import ConfigError


def test_default_counter_is_weakly_taken():
    counter = SaturatingCounter()
    assert counter.state == 2
    assert counter.predict() is True


def test_counter_saturates_at_both_ends():
    counter = SaturatingCounter()
    for _ in range(5):
        counter.update(True)
    assert counter.state == 3

    for _ in range(5):
        counter.update(False)
    assert counter.state == 0
    assert counter.predict() is False


def test_counter_hysteresis():
    counter = SaturatingCounter(state=3)
    counter.update(False)
    assert counter.predict() is True
    counter.update(False)
    assert counter.predict() is False


def test_wider_counter():
    counter = SaturatingCounter(bits=3)
    assert counter.max_state == 7
    assert counter.threshold == 4
    assert counter.update(False).predict() is False


def test_from_direction():
    assert SaturatingCounter.from_direction(True).state == 2
    assert SaturatingCounter.from_direction(False).state == 1
    assert SaturatingCounter.from_direction(False, bits=3).state == 3


@pytest.mark.parametrize("bits", [0, -1, 8, 2.0, True])
def test_invalid_counter_bits(bits):
    with pytest.raises(ConfigError):
        SaturatingCounter(bits=bits)


def test_invalid_initial_state():
    with pytest.raises(ConfigError):
        SaturatingCounter(bits=2, state=4)


def test_counter_table_starts_weakly_taken():
    table = CounterTable(16)
    assert all(table.predict(i) for i in range(16))
    assert len(table) == 16
    assert table.mask == 15


def test_counter_table_entries_are_independent():
    table = CounterTable(16)
    table.update(3, False)
    assert table.predict(3) is False
    assert table.predict(4) is True

    table.reset()
    assert table.state(3) == 2


def test_counter_table_seed():
    table = CounterTable(4, bits=3)
    table.seed(1, False)
    table.seed(2, True)
    assert table.state(1) == 3
    assert table.state(2) == 4


def test_counter_table_storage_bits():
    assert CounterTable(4096).storage_bits() == 8192
    assert CounterTable(1024, bits=3).storage_bits() == 3072


@pytest.mark.parametrize("size", [0, 3, 12, 1000, -4])
def test_counter_table_size_must_be_power_of_two(size):
    with pytest.raises(ConfigError):
        CounterTable(size)


@pytest.mark.parametrize("bits", [1, 2, 3, 7])
def test_counter_state_stays_in_range(bits):
    rng = np.random.default_rng(bits)
    table = CounterTable(4, bits)
    counter = SaturatingCounter(bits)

    for taken, index in zip(rng.random(2000) < 0.5, rng.integers(0, 4, 2000)):
        table.update(int(index), bool(taken))
        counter.update(bool(taken))
        assert 0 <= table.state(int(index)) <= table.max_state
        assert 0 <= counter.state <= counter.max_state
