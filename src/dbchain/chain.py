from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Term:
    sign: int   # +1 or -1
    i: int      # exponent of 2 (row)
    j: int      # exponent of 3 (column)

    @property
    def value(self) -> int:
        return self.sign * (1 << self.i) * 3 ** self.j

    def __str__(self) -> str:
        return f"{'+' if self.sign > 0 else '-'} 2^({self.i})*3^({self.j})"


@dataclass
class BestChain:
    # --- terminal cell of the lightest chain seen so far ---
    weight: int
    row: int = 0
    column: int = 0

    def offer(self, weight: int, row: int, column: int) -> bool:
        """Keep (weight, row, column) if strictly lighter than the incumbent."""
        if weight < self.weight:
            self.weight = weight
            self.row = row
            self.column = column
            return True
        return False


@dataclass
class SearchStats:
    columns: int = 0        # columns processed
    rows: int = 0           # row sweeps started (pruned rows included)
    evaluations: int = 0    # row-advance + column-advance evaluations
    skipped: int = 0        # rows pruned by the incumbent bound
    improvements: int = 0   # times the best chain improved


@dataclass(frozen=True)
class ChainResult:
    n: int
    weight: int
    terms: tuple[Term, ...]
    row: int
    column: int
    policy: str
    width: int
    stats: SearchStats = field(default_factory=SearchStats)

    @property
    def value(self) -> int:
        return sum(t.value for t in self.terms)
