import pytest

from mythcombat.core.engine.rng import (
    SeededValueSource,
    hash32,
    hash_line,
    pick,
    pick_without_immediate_repeat,
    roll_range,
    stable_float,
    stable_int,
    weighted_pick_without_immediate_repeat,
)
from mythcombat.core.errors import EmptyPoolError


def test_hash32_matches_fnv1a_vectors():
    assert hash32("") == 0x811C9DC5
    assert hash32("a") == 0xE40C292C
    assert hash32("foobar") == 0xBF9CF968


def test_stable_int_joins_key_and_salt():
    assert stable_int("a", "b") == hash32("a::b")
    assert stable_int("a") == hash32("a::")


def test_stable_float_range_and_determinism():
    values = [stable_float("seed", f"salt:{i}") for i in range(200)]
    assert all(0.0 <= v < 1.0 for v in values)
    assert values == [stable_float("seed", f"salt:{i}") for i in range(200)]


def test_roll_range_is_inclusive():
    seen = {roll_range("k", f"s{i}", 3, 5) for i in range(300)}
    assert seen == {3, 4, 5}
    assert roll_range("k", "s", 5, 3) in (3, 4, 5)


def test_pick_on_empty_pool_raises():
    with pytest.raises(EmptyPoolError):
        pick([], "k", "s")
    with pytest.raises(EmptyPoolError):
        weighted_pick_without_immediate_repeat({}, "k")


def test_pick_without_immediate_repeat_avoids_last():
    pool = ["a", "b", "c"]
    for i in range(50):
        assert pick_without_immediate_repeat(pool, f"k{i}", last="b") != "b"
    assert pick_without_immediate_repeat(["only"], "k", last="only") == "only"


def test_weighted_pick_avoids_last_and_floors_weights():
    weights = {"tactical": 1.0, "mythic": 0.0, "brutal": 2.0}
    for i in range(50):
        assert weighted_pick_without_immediate_repeat(weights, f"k{i}", "brutal") == "tactical"

    # every weight <= 0: all keys stay eligible
    picks = {
        weighted_pick_without_immediate_repeat({"x": 0, "y": -1}, f"k{i}") for i in range(50)
    }
    assert picks <= {"x", "y"}


def test_hash_line_ignores_case_and_spacing():
    assert hash_line("Aria  strikes") == hash_line("aria strikes ")
    assert len(hash_line("x")) == 8


def test_seeded_value_source_binds_key():
    src = SeededValueSource(42)
    assert src.value("x") == stable_int("42", "x")
    assert src.between("r", 1, 6) == roll_range("42", "r", 1, 6)
    assert src.derive("child").key == "42:child"
    assert src.pick(("a", "b"), "p") == pick(("a", "b"), "42", "p")
