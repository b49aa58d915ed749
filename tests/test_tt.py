import pytest

from ucicore.tt import (
    DEPTH_OFFSET,
    GENERATION_DELTA,
    GENERATION_MASK,
    Bound,
    TranspositionTable,
    mul_hi64,
)

MB = 1
CLUSTERS = MB * 1024 * 1024 // 32
SHIFT = 64 - (CLUSTERS.bit_length() - 1)


def cluster_key(index, low=0):
    return (index << SHIFT) | low


def test_mul_hi64_values():
    assert mul_hi64(1 << 63, 4) == 2
    assert mul_hi64(5, 7) == 0
    assert mul_hi64((1 << 64) - 1, (1 << 64) - 1) == (1 << 64) - 2


@pytest.mark.parametrize("key", [0, 1, 12345678901234, (1 << 64) - 1, 0xDEADBEEFCAFEBABE])
def test_mul_hi64_stays_in_range(key):
    assert 0 <= mul_hi64(key, CLUSTERS) < CLUSTERS


def test_cluster_key_maps_to_its_cluster():
    assert mul_hi64(cluster_key(999, 5), CLUSTERS) == 999


def test_probe_empty_table():
    tt = TranspositionTable(MB, 1)
    found, entry = tt.probe(0x1234)
    assert found is False
    assert entry.depth8 == 0


def test_probe_before_resize_raises():
    with pytest.raises(RuntimeError):
        TranspositionTable().probe(1)


def test_resize_zero_raises():
    with pytest.raises(ValueError):
        TranspositionTable().resize(0, 1)


def test_save_and_probe_round_trip():
    tt = TranspositionTable(MB, 1)
    key = 0xABCDEF0123456789
    _, entry = tt.probe(key)
    entry.save(key, 150, True, Bound.LOWER, 12, 777, -40, tt.generation)

    found, again = tt.probe(key)
    assert found is True
    assert again is entry
    assert again.value == 150
    assert again.eval == -40
    assert again.depth == 12
    assert again.bound is Bound.LOWER
    assert again.is_pv is True
    assert again.move == 777


def test_save_keeps_move_for_same_position():
    tt = TranspositionTable(MB, 1)
    key = 42
    _, entry = tt.probe(key)
    entry.save(key, 10, False, Bound.EXACT, 5, 321, 0, tt.generation)
    entry.save(key, 20, False, Bound.EXACT, 6, 0, 0, tt.generation)
    assert entry.move == 321
    assert entry.value == 20


def test_shallow_bound_does_not_replace_deep_entry():
    tt = TranspositionTable(MB, 1)
    key = 99
    _, entry = tt.probe(key)
    entry.save(key, 100, False, Bound.EXACT, 20, 5, 0, tt.generation)
    entry.save(key, -100, False, Bound.UPPER, 2, 0, 0, tt.generation)
    assert entry.value == 100
    assert entry.depth == 20


def test_save_rejects_depth_out_of_range():
    tt = TranspositionTable(MB, 1)
    _, entry = tt.probe(7)
    with pytest.raises(ValueError):
        entry.save(7, 0, False, Bound.EXACT, DEPTH_OFFSET, 0, 0, tt.generation)
    with pytest.raises(ValueError):
        entry.save(7, 0, False, Bound.EXACT, 256 + DEPTH_OFFSET, 0, 0, tt.generation)


def test_values_stay_sixteen_bit():
    tt = TranspositionTable(MB, 1)
    _, entry = tt.probe(11)
    entry.save(11, 100000, False, Bound.EXACT, 3, 0, -100000, tt.generation)
    assert -32768 <= entry.value < 32768
    assert -32768 <= entry.eval < 32768


def fill(tt, clusters):
    for index in range(clusters):
        for low in range(3):
            key = cluster_key(index, low + 1)
            _, entry = tt.probe(key)
            entry.save(key, 0, False, Bound.EXACT, 4, 0, 0, tt.generation)


def test_hashfull_counts_current_generation():
    tt = TranspositionTable(MB, 1)
    assert tt.hashfull() == 0
    fill(tt, 1000)
    assert tt.hashfull() == 1000
    tt.new_search()
    assert tt.hashfull() == 0


def test_clear_empties_table():
    tt = TranspositionTable(MB, 1)
    fill(tt, 10)
    tt.clear(2)
    assert tt.hashfull() == 0
    found, _ = tt.probe(cluster_key(3, 1))
    assert found is False


def test_generation_steps_and_wraps():
    tt = TranspositionTable(MB, 1)
    tt.new_search()
    assert tt.generation == GENERATION_DELTA
    for _ in range(256 // GENERATION_DELTA - 1):
        tt.new_search()
    assert tt.generation == 0


def test_probe_refreshes_generation():
    tt = TranspositionTable(MB, 1)
    key = cluster_key(5, 9)
    _, entry = tt.probe(key)
    entry.save(key, 1, True, Bound.UPPER, 8, 0, 0, tt.generation)
    tt.new_search()
    found, again = tt.probe(key)
    assert found is True
    assert again.gen_bound8 & GENERATION_MASK == tt.generation
    assert again.bound is Bound.UPPER
    assert again.is_pv is True


def test_replaces_shallowest_entry_of_full_cluster():
    tt = TranspositionTable(MB, 1)
    depths = [10, 3, 7]
    for low, depth in enumerate(depths, start=1):
        key = cluster_key(20, low)
        _, entry = tt.probe(key)
        entry.save(key, 0, False, Bound.EXACT, depth, 0, 0, tt.generation)

    found, victim = tt.probe(cluster_key(20, 50))
    assert found is False
    assert victim.depth == min(depths)
    assert victim is tt.first_entry(cluster_key(20))[1]


def test_older_entries_are_replaced_first():
    tt = TranspositionTable(MB, 1)
    key_old = cluster_key(30, 1)
    _, old = tt.probe(key_old)
    old.save(key_old, 0, False, Bound.EXACT, 6, 0, 0, tt.generation)
    for _ in range(4):
        tt.new_search()
    for low in (2, 3):
        key = cluster_key(30, low)
        _, entry = tt.probe(key)
        entry.save(key, 0, False, Bound.EXACT, 6, 0, 0, tt.generation)

    found, victim = tt.probe(cluster_key(30, 77))
    assert found is False
    assert victim is old