# tests/test_engine.py
"""
Chain search, best-chain tracking and reconstruction.

Run: pytest -v
"""

from __future__ import annotations

import random
from functools import lru_cache

import pytest

from dbchain import APPLY
from dbchain.bigint import BigInt, capacity_for
from dbchain.chain import BestChain, Term
from dbchain.engine import ChainSearch, SearchPolicy, max_columns, optimal_chain
from dbchain.reconstruct import reconstruct
from dbchain.trace import TraceTable
from dbchain.utility import CapacityExceeded, InconsistentTrace, UserInputError, chain_value

POLICIES = [SearchPolicy.PRUNED, SearchPolicy.CONSTANT_TIME]
POLICY_IDS = [p.value for p in POLICIES]

# 256-bit scalar, hex and decimal spellings of the same value
SCALAR_HEX = "b518b0217e7f9c3701b8d6bc3d8757c8b961d1b2acb3355ca833c9d5d538b0e0"
SCALAR_DEC = str(int(SCALAR_HEX, 16))


# ---------- helpers -----------------------------------------------------------

@lru_cache(maxsize=None)
def _lightest(v: int) -> int:
    """
    Independent reference: fewest terms for a remaining value v when each
    doubling or tripling step may add or subtract one unit.
    """
    if v <= 1:
        return v
    options = []
    if v % 2 == 0:
        options.append(_lightest(v // 2))
    else:
        options.append(1 + _lightest((v - 1) // 2))
        options.append(1 + _lightest((v + 1) // 2))
    r = v % 3
    if r == 0:
        options.append(_lightest(v // 3))
    elif r == 1:
        options.append(1 + _lightest((v - 1) // 3))
    else:
        options.append(1 + _lightest((v + 1) // 3))
    return min(options)


def _assert_valid(result, n: int) -> None:
    assert result.n == n
    assert len(result.terms) == result.weight
    assert chain_value(result.terms) == n
    assert result.value == n
    for t in result.terms:
        assert t.sign in (1, -1)
        assert t.i >= 0 and t.j >= 0


# ---------- scenarios ---------------------------------------------------------

SCENARIOS = [
    (0, 0, []),
    (1, 1, [Term(1, 0, 0)]),
    (2, 1, [Term(1, 1, 0)]),
    (3, 1, [Term(1, 0, 1)]),
    (6, 1, [Term(1, 1, 1)]),
    (9, 1, [Term(1, 0, 2)]),
    (5, 2, None),
    (7, 2, None),
]


@pytest.mark.parametrize("policy", POLICIES, ids=POLICY_IDS)
@pytest.mark.parametrize("n,weight,terms", SCENARIOS, ids=[f"n={n}" for n, _, _ in SCENARIOS])
def test_small_scenarios(n, weight, terms, policy):
    result = optimal_chain(n, width=16, policy=policy)
    assert result.weight == weight
    _assert_valid(result, n)
    if terms is not None:
        assert list(result.terms) == terms


# ---------- round trip, optimality, policy equivalence ------------------------

@pytest.mark.parametrize("policy", POLICIES, ids=POLICY_IDS)
def test_round_trip_and_optimal_for_small_n(policy):
    for n in range(0, 600):
        result = optimal_chain(n, width=12, policy=policy)
        _assert_valid(result, n)
        assert result.weight == _lightest(n), f"n={n}"


def test_policies_agree_on_every_12_bit_value():
    mismatches = []
    for n in range(4096):
        pruned = optimal_chain(n, width=12, policy="pruned")
        ct = optimal_chain(n, width=12, policy="constant-time")
        if pruned.weight != ct.weight:
            mismatches.append((n, pruned.weight, ct.weight))
    assert mismatches == []


@pytest.mark.parametrize("policy", POLICIES, ids=POLICY_IDS)
@pytest.mark.parametrize("n", [242, 725, 726, 728, 2178], ids=lambda n: f"n={n}")
def test_chain_closed_in_the_zero_column(n, policy):
    # 242 = 3^5 - 1: the last term is only reachable after a / 3^j hits zero
    result = optimal_chain(n, width=12, policy=policy)
    _assert_valid(result, n)
    assert result.weight == _lightest(n)


def test_pruned_242_uses_the_power_of_three():
    result = optimal_chain(242, width=12, policy="pruned")
    assert result.weight == 2
    assert sorted(t.value for t in result.terms) == [-1, 243]


def test_zero_terminal_cell_per_policy():
    pruned = optimal_chain(0, width=16, policy="pruned")
    ct = optimal_chain(0, width=16, policy="constant-time")
    assert (pruned.weight, pruned.row, pruned.column, pruned.terms) == (0, 0, 0, ())
    # constant-time only reads its fixed terminal rows
    assert (ct.weight, ct.row, ct.column, ct.terms) == (0, 16 + 2, 0, ())


def test_policies_agree_on_random_64_bit_values():
    rng = random.Random(7)
    for _ in range(12):
        n = rng.getrandbits(64) | 1
        pruned = optimal_chain(n, width=64, policy="pruned")
        ct = optimal_chain(n, width=64, policy="constant-time")
        _assert_valid(pruned, n)
        _assert_valid(ct, n)
        assert pruned.weight == ct.weight
        assert pruned.weight == _lightest(n)


def test_256_bit_scalar_policies_and_encodings_agree():
    hex_pruned = optimal_chain(SCALAR_HEX, width=256, policy="pruned", base=16)
    dec_pruned = optimal_chain(SCALAR_DEC, width=256, policy="pruned", base=10)
    hex_ct = optimal_chain(SCALAR_HEX, width=256, policy="constant-time", base=16)

    n = int(SCALAR_HEX, 16)
    for r in (hex_pruned, dec_pruned, hex_ct):
        _assert_valid(r, n)
    assert hex_pruned.weight == dec_pruned.weight == hex_ct.weight
    assert hex_pruned.terms == dec_pruned.terms
    # far below the binary weight; each term stands for a curve addition
    assert hex_pruned.weight < bin(n).count("1")


def test_pruning_saves_work():
    n = int(SCALAR_HEX[:16], 16)
    pruned = optimal_chain(n, width=64, policy="pruned")
    ct = optimal_chain(n, width=64, policy="constant-time")
    assert pruned.stats.skipped > 0
    assert pruned.stats.evaluations < ct.stats.evaluations
    assert ct.stats.skipped == 0


# ---------- constant-time property --------------------------------------------

def test_constant_time_work_depends_on_width_only():
    width = 32
    values = [0, 1, 2**31 + 5, 0xDEADBEEF, 12345, 2**32 - 1]
    stats = [optimal_chain(v, width=width, policy="constant-time").stats for v in values]

    columns = max_columns(width) + 1
    rows = width + 2
    for s in stats:
        assert s.columns == columns
        assert s.rows == columns * rows
        assert s.evaluations == 2 * columns * rows
        assert s.skipped == 0


def test_pruned_work_depends_on_value():
    a = optimal_chain(2**31 + 5, width=32, policy="pruned").stats
    b = optimal_chain(0xDEADBEEF, width=32, policy="pruned").stats
    assert (a.columns, a.evaluations) != (b.columns, b.evaluations)


# ---------- engine API --------------------------------------------------------

def test_max_columns():
    assert max_columns(0) == 0
    assert max_columns(1) == 1
    assert max_columns(2) == 2
    assert max_columns(8) == 6
    assert max_columns(256) == 162


@pytest.mark.parametrize("text,expected", [
    ("pruned", SearchPolicy.PRUNED),
    ("constant-time", SearchPolicy.CONSTANT_TIME),
    ("Constant_Time", SearchPolicy.CONSTANT_TIME),
    (SearchPolicy.PRUNED, SearchPolicy.PRUNED),
])
def test_policy_parse(text, expected):
    assert SearchPolicy.parse(text) is expected


def test_policy_parse_rejects_unknown():
    for text in ("fastest", "ct", "bnb"):
        with pytest.raises(UserInputError):
            SearchPolicy.parse(text)


def test_search_rejects_bad_width_and_capacity_mismatch():
    with pytest.raises(UserInputError):
        ChainSearch(0)
    search = ChainSearch(16)
    with pytest.raises(ValueError):
        search.run(BigInt.from_int(5, capacity_for(32)))


def test_capacity_exceeded_before_search():
    with pytest.raises(CapacityExceeded):
        optimal_chain(2**20, width=16)
    with pytest.raises(CapacityExceeded):
        optimal_chain("1" * 10, width=16, base=16)


def test_defaults_come_from_runtime_settings():
    APPLY({"SEARCH": {"BITS": 24, "POLICY": "constant-time"}, "INPUT": {"BASE": 10}})
    result = optimal_chain("100")
    assert result.width == 24
    assert result.policy == "constant-time"
    assert result.n == 100
    _assert_valid(result, 100)


def test_progress_hook_sees_every_column():
    calls = []
    optimal_chain(1000, width=16, policy="constant-time", progress=lambda d, t: calls.append((d, t)))
    total = max_columns(16) + 1
    assert calls == [(k, total) for k in range(1, total + 1)]

    calls.clear()
    result = optimal_chain(1000, width=16, policy="pruned", progress=lambda d, t: calls.append((d, t)))
    assert [d for d, _ in calls] == list(range(1, result.stats.columns + 1))


def test_search_instance_can_be_rerun():
    search = ChainSearch(16, "pruned")
    assert search.trace is None
    first = search.run(BigInt.from_int(1000, search.capacity))
    first_trace = search.trace
    w1 = first.weight
    search.run(BigInt.from_int(1, search.capacity))
    assert search.trace is not first_trace
    assert search.best.weight == 1
    again = search.run(BigInt.from_int(1000, search.capacity))
    assert again.weight == w1


# ---------- reconstruction ----------------------------------------------------

def test_reconstruct_terms_come_out_largest_first():
    result = optimal_chain(int(SCALAR_HEX[:20], 16), width=80)
    values = [abs(t.value) for t in result.terms]
    assert values == sorted(values, reverse=True)


def test_reconstruct_zero_weight_is_empty():
    assert reconstruct(TraceTable(2, 8), BestChain(0, 3, 1)) == []


def test_reconstruct_detects_walk_off_the_table():
    # an all-zero table only holds "row step, no term" records
    with pytest.raises(InconsistentTrace):
        reconstruct(TraceTable(2, 8), BestChain(3, 1, 0))


def test_reconstruct_rejects_bad_best_chain():
    with pytest.raises(InconsistentTrace):
        reconstruct(TraceTable(2, 8), BestChain(7, 1, 0))    # infeasible weight
    with pytest.raises(InconsistentTrace):
        reconstruct(TraceTable(2, 8), BestChain(1, 9, 0))    # outside the table
