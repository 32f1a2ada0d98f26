"""Tests for snl_session.rng (seeded generator + die)."""

from snl_session.rng import Mulberry32, RandomSource, roll_die


def test_same_seed_same_sequence():
    a = Mulberry32(12345)
    b = Mulberry32(12345)
    assert [a.next() for _ in range(10_000)] == [b.next() for _ in range(10_000)]


def test_different_seeds_diverge():
    a = Mulberry32(1)
    b = Mulberry32(2)
    assert [a.next() for _ in range(10)] != [b.next() for _ in range(10)]


def test_values_in_unit_interval():
    rng = Mulberry32(7)
    for _ in range(10_000):
        v = rng.next()
        assert 0.0 <= v < 1.0


def test_seed_is_masked_to_32_bits():
    a = Mulberry32(2**32 + 99)
    b = Mulberry32(99)
    assert a.seed == 99
    assert [a.next() for _ in range(50)] == [b.next() for _ in range(50)]


def test_zero_seed_still_produces_values():
    rng = Mulberry32(0)
    values = {rng.next() for _ in range(100)}
    assert len(values) > 90


def test_satisfies_random_source_protocol():
    assert isinstance(Mulberry32(1), RandomSource)


# ── dice ─────────────────────────────────────────────────────────────

def test_dice_in_range_and_every_face_seen():
    rng = Mulberry32(2024)
    seen = set()
    for _ in range(100_000):
        v = roll_die(rng)
        assert isinstance(v, int)
        assert 1 <= v <= 6
        seen.add(v)
    assert seen == {1, 2, 3, 4, 5, 6}


class _Scripted:
    def __init__(self, values):
        self.values = list(values)

    def next(self) -> float:
        return self.values.pop(0)


def test_dice_mapping_edges():
    assert roll_die(_Scripted([0.0])) == 1
    assert roll_die(_Scripted([0.1666])) == 1
    assert roll_die(_Scripted([0.5])) == 4
    assert roll_die(_Scripted([0.9999999])) == 6


def test_die_consumes_one_value():
    rng = _Scripted([0.0, 0.5])
    roll_die(rng)
    assert rng.values == [0.5]
