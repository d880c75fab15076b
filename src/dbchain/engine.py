# src/dbchain/engine.py
"""
Dynamic-programming search for a minimum-weight double-base chain.

Column j holds a = floor(n / 3^j); row i looks at floor(a / 2^i). For every
cell the engine keeps the lightest chain that still has to add the remaining
value (positive chain, P) and the lightest that overshot by one unit and has
to subtract (negative chain, N). A column is processed bottom-up:

  - row-advance (doubling) moves i -> i+1 inside the current generation and
    depends on bit i of a;
  - column-advance (tripling) moves j -> j+1 into the next generation and
    depends on floor(a / 2^i) mod 3, read off bits i, i+1 of a and b = a/3.

Rows must be visited in increasing order: the column-advance at row i reads
the current generation at row i only after every row-advance into it.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum

from sympy import integer_log

from dbchain.bigint import BigInt, capacity_for
from dbchain.chain import BestChain, ChainResult, SearchStats
from dbchain.reconstruct import reconstruct
from dbchain.runtime import CFG
from dbchain.trace import (
    COL_NEG_ADD,
    COL_NEG_NONE,
    COL_NEG_SUB,
    COL_POS_ADD,
    COL_POS_NONE,
    COL_POS_SUB,
    ROW_NEG_ADD,
    ROW_NEG_NONE,
    ROW_NEG_SUB,
    ROW_POS_ADD,
    ROW_POS_NONE,
    ROW_POS_SUB,
    Move,
    Sign,
    TraceTable,
)
from dbchain.utility import InconsistentTrace, UserInputError
from dbchain.weights import WeightTables

P, N = Sign.POS, Sign.NEG

ProgressFn = Callable[[int, int], None]


class SearchPolicy(str, Enum):
    PRUNED = "pruned"                  # branch-and-bound, data-dependent work
    CONSTANT_TIME = "constant-time"    # work depends on the width only

    @classmethod
    def parse(cls, value: SearchPolicy | str) -> SearchPolicy:
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace("_", "-")
        for member in cls:
            if member.value == key:
                return member
        choices = ", ".join(m.value for m in cls)
        raise UserInputError(f"unknown search policy '{value}' (choose from: {choices}).")


def max_columns(width: int) -> int:
    """Number of divisions by 3 that take any width-bit value to zero."""
    if width <= 0:
        return 0
    e, _ = integer_log(2 ** width - 1, 3)
    return int(e) + 1


class ChainSearch:
    """
    One search over one scalar. Owns its weight tables, trace table and
    best-chain tracker; build a new instance per search.
    """

    def __init__(self, width: int, policy: SearchPolicy | str = SearchPolicy.PRUNED):
        if width < 1:
            raise UserInputError(f"bit width must be positive, got {width}.")
        self.width = int(width)
        self.policy = SearchPolicy.parse(policy)
        self.capacity = capacity_for(self.width)
        # +1: the constant-time loop runs one padding column past the last
        # division that can still be non-zero, so its next generation gets a
        # full row sweep as well.
        self.total_columns = max_columns(self.width) + 1
        self.tables = WeightTables(self.capacity)
        self.trace: TraceTable | None = None    # allocated per run
        self.best = BestChain(self.tables.infeasible)
        self.stats = SearchStats()

    # --- public --------------------------------------------------------------

    def run(self, value: BigInt, progress: ProgressFn | None = None) -> BestChain:
        if value.capacity != self.capacity:
            raise ValueError(
                f"BigInt capacity {value.capacity} does not match search capacity {self.capacity}"
            )
        self.tables.seed()
        self.trace = TraceTable(self.total_columns + 1, self.capacity + 1)
        self.best = BestChain(self.tables.infeasible)
        self.stats = SearchStats()

        if self.policy is SearchPolicy.CONSTANT_TIME:
            self._run_constant_time(value, progress)
        else:
            self._run_pruned(value, progress)

        if self.best.weight >= self.tables.infeasible:
            raise InconsistentTrace(f"no feasible chain found for {int(value)}")
        return self.best

    # --- policies ------------------------------------------------------------

    def _run_pruned(self, a: BigInt, progress: ProgressFn | None) -> None:
        # one more column than divisions: the zero column closes N chains
        total = max_columns(a.bit_length) + 1
        if a.is_zero:
            self._offer(0, 0, 0)
            return
        j, curr, nxt = 0, 0, 1
        size = 0
        while not a.is_zero:
            b = a.divide_by_3()
            size = a.bit_length
            skipped = self._sweep(a, b, j, curr, nxt, size, prune=True)

            self._offer_terminal(curr, size, j)
            self._offer_terminal(nxt, b.bit_length, j + 1)
            if progress:
                progress(j + 1, total)

            # every row is at least as heavy as the incumbent: nothing left to find
            if skipped > size:
                return
            a = b
            j += 1
            curr, nxt = nxt, curr

        # column of a = 0: N entries left by a remainder-2 step only finish
        # through a row-advance, so sweep it with the last non-zero row range
        self._sweep(a, a, j, curr, nxt, size, prune=True)
        self._offer_terminal(curr, size, j)
        if progress:
            progress(j + 1, total)

    def _run_constant_time(self, a: BigInt, progress: ProgressFn | None) -> None:
        bound = self.width + 1
        curr, nxt = 0, 1
        for j in range(self.total_columns):
            b = a.divide_by_3()
            self._sweep(a, b, j, curr, nxt, bound, prune=False)
            self._offer_terminal(curr, bound, j)
            if progress:
                progress(j + 1, self.total_columns)
            a = b
            curr, nxt = nxt, curr

    # --- one column ----------------------------------------------------------

    def _sweep(self, a: BigInt, b: BigInt, j: int, curr: int, nxt: int, size: int, *, prune: bool) -> int:
        """Rows 0..size of column j; returns the number of pruned rows."""
        t = self.tables
        t.reset(nxt)
        skipped = 0
        for i in range(size + 1):
            self.stats.rows += 1
            if prune and t.get(curr, P, i) >= self.best.weight and t.get(curr, N, i) >= self.best.weight:
                skipped += 1
                continue
            self._row_advance(a, j, curr, i)
            self._column_advance(a, b, j, curr, nxt, i)
            self.stats.evaluations += 2
        self.stats.columns += 1
        self.stats.skipped += skipped
        return skipped

    def _step(self, candidate: int, gen: int, sign: Sign, column: int, row: int, move: Move) -> None:
        if self.tables.relax(gen, sign, row, candidate):
            self.trace.record(column, row, sign, move)

    def _row_advance(self, a: BigInt, j: int, gen: int, i: int) -> None:
        p = self.tables.get(gen, P, i)
        n = self.tables.get(gen, N, i)
        if a.test(i):
            self._step(n, gen, N, j, i + 1, ROW_NEG_NONE)
            self._step(p + 1, gen, P, j, i + 1, ROW_POS_ADD)
            self._step(p + 1, gen, N, j, i + 1, ROW_POS_SUB)
        else:
            self._step(p, gen, P, j, i + 1, ROW_POS_NONE)
            self._step(n + 1, gen, N, j, i + 1, ROW_NEG_SUB)
            self._step(n + 1, gen, P, j, i + 1, ROW_NEG_ADD)

    def _column_advance(self, a: BigInt, b: BigInt, j: int, curr: int, nxt: int, i: int) -> None:
        t = self.tables
        p = t.get(curr, P, i)
        n = t.get(curr, N, i)
        x, y = a.test(i), a.test(i + 1)
        z, z0 = b.test(i + 1), b.test(i)

        if x != z0:
            # floor(a / 2^i) = 1 mod 3: both chains absorb one term
            t.assign(nxt, P, i, p + 1)
            t.assign(nxt, N, i, n + 1)
            self.trace.record_both(j + 1, i, COL_POS_ADD, COL_NEG_SUB)
        elif x ^ y ^ z:
            # = 2 mod 3: only a negative chain continues
            t.assign(nxt, P, i, t.infeasible)
            t.assign(nxt, N, i, p + 1)
            self.trace.record_both(j + 1, i, COL_POS_NONE, COL_POS_SUB)
            self._step(n, nxt, N, j + 1, i, COL_NEG_NONE)
        else:
            # = 0 mod 3: only a positive chain continues
            t.assign(nxt, N, i, t.infeasible)
            t.assign(nxt, P, i, p)
            self.trace.record_both(j + 1, i, COL_POS_NONE, COL_NEG_NONE)
            self._step(n + 1, nxt, P, j + 1, i, COL_NEG_ADD)

    # --- best chain ----------------------------------------------------------

    def _offer(self, weight: int, row: int, column: int) -> None:
        if self.best.offer(weight, row, column):
            self.stats.improvements += 1

    def _offer_terminal(self, gen: int, size: int, column: int) -> None:
        # rows above the top bit: nothing left to resolve
        for row in (size + 1, size + 2):
            self._offer(self.tables.get(gen, P, row), row, column)


def optimal_chain(
    n: int | str | BigInt,
    *,
    width: int | None = None,
    policy: SearchPolicy | str | None = None,
    base: int | None = None,
    progress: ProgressFn | None = None,
) -> ChainResult:
    """
    Search and reconstruct the minimum-weight chain for n.

    Options left as None come from the active profile: SEARCH.BITS,
    SEARCH.POLICY and (for text input) INPUT.BASE.
    """
    width = int(width if width is not None else CFG("SEARCH.BITS", 256))
    pol = SearchPolicy.parse(policy if policy is not None else CFG("SEARCH.POLICY", "pruned"))
    capacity = capacity_for(width)

    if isinstance(n, BigInt):
        value = n
    elif isinstance(n, str):
        b = int(base if base is not None else CFG("INPUT.BASE", 16))
        value = BigInt.parse(n, b, capacity)
    else:
        value = BigInt.from_int(n, capacity)

    search = ChainSearch(width, pol)
    best = search.run(value, progress=progress)
    terms = reconstruct(search.trace, best)
    return ChainResult(
        n=int(value),
        weight=best.weight,
        terms=tuple(terms),
        row=best.row,
        column=best.column,
        policy=pol.value,
        width=width,
        stats=search.stats,
    )
