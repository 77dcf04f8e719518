import pytest

from memora.domain.rng import SplitMix64


def test_known_first_output_for_seed_zero():
    assert SplitMix64(0).next_rand() == 0xE220A8397B1DCDAF


def test_same_seed_same_sequence():
    a = SplitMix64.from_seed(1234)
    b = SplitMix64.from_seed(1234)
    assert [a.next_rand() for _ in range(20)] == [b.next_rand() for _ in range(20)]


def test_reseed_restarts_sequence():
    rng = SplitMix64(7)
    first = [rng.next_rand() for _ in range(3)]
    rng.reseed(7)
    assert [rng.next_rand() for _ in range(3)] == first


def test_outputs_are_64_bit():
    rng = SplitMix64(2**64 + 5)
    for _ in range(100):
        assert 0 <= rng.next_rand() < 2**64


def test_next_below_range():
    rng = SplitMix64(42)
    values = [rng.next_below(5) for _ in range(500)]
    assert set(values) == {0, 1, 2, 3, 4}


def test_next_below_rejects_empty_range():
    with pytest.raises(ValueError):
        SplitMix64(1).next_below(0)


def test_next_float_range():
    rng = SplitMix64(99)
    for _ in range(500):
        value = rng.next_float(0.9, 1.1)
        assert 0.9 <= value < 1.1


def test_copy_is_independent():
    rng = SplitMix64(3)
    rng.next_rand()
    clone = rng.copy()
    expected = clone.next_rand()
    assert rng.next_rand() == expected

    clone.next_rand()
    assert clone.state != rng.state
