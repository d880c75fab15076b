# src/dbchain/weights.py
"""
Rolling minimum-weight tables.

Two generations (current column, next column) of positive-chain and
negative-chain weights, indexed by row. Weights saturate at the capacity,
which doubles as the "infeasible" sentinel: no chain for a value that fits
the tables can use that many terms.
"""

from __future__ import annotations

from dbchain.trace import Sign


class WeightTables:
    def __init__(self, capacity: int):
        self.capacity = capacity
        self.infeasible = capacity
        self.rows = capacity + 1
        self._w = {
            Sign.POS: [[capacity] * self.rows, [capacity] * self.rows],
            Sign.NEG: [[capacity] * self.rows, [capacity] * self.rows],
        }

    def reset(self, gen: int) -> None:
        for sign in (Sign.POS, Sign.NEG):
            col = self._w[sign][gen]
            for i in range(self.rows):
                col[i] = self.infeasible

    def seed(self) -> None:
        """Both generations infeasible except the base case P[0][0] = 0."""
        self.reset(0)
        self.reset(1)
        self._w[Sign.POS][0][0] = 0

    def get(self, gen: int, sign: Sign, row: int) -> int:
        return self._w[sign][gen][row]

    def column(self, gen: int, sign: Sign) -> list[int]:
        """Read-only snapshot of one generation."""
        return list(self._w[sign][gen])

    def assign(self, gen: int, sign: Sign, row: int, weight: int) -> None:
        self._w[sign][gen][row] = min(weight, self.infeasible)

    def relax(self, gen: int, sign: Sign, row: int, candidate: int) -> bool:
        """Store candidate if it is strictly better; ties keep the incumbent."""
        col = self._w[sign][gen]
        if candidate < col[row]:
            col[row] = candidate
            return True
        return False

    def is_feasible(self, gen: int, sign: Sign, row: int) -> bool:
        return self._w[sign][gen][row] < self.infeasible
