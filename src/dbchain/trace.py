# src/dbchain/trace.py
"""
Per-cell backtracking records.

Every cell (column j, row i) keeps one byte: the low nibble says how the
positive chain at that cell was reached, the high nibble the same for the
negative chain. A nibble packs

    bit 3     step kind        0 = row (doubling), 1 = column (tripling)
    bit 2     predecessor sign 0 = positive, 1 = negative
    bits 1-0  term action      00 = none, 01 = add, 11 = subtract
"""

from __future__ import annotations

from enum import IntEnum
from typing import NamedTuple


class Sign(IntEnum):
    POS = 0
    NEG = 1


class StepKind(IntEnum):
    ROW = 0
    COLUMN = 1


class TermAction(IntEnum):
    NONE = 0b00
    ADD = 0b01
    SUBTRACT = 0b11

    @property
    def sign(self) -> int:
        return {TermAction.NONE: 0, TermAction.ADD: 1, TermAction.SUBTRACT: -1}[self]


class Move(NamedTuple):
    step: StepKind
    predecessor: Sign
    action: TermAction

    def pack(self) -> int:
        return (self.step << 3) | (self.predecessor << 2) | self.action

    @classmethod
    def unpack(cls, nibble: int) -> Move:
        action = nibble & 0b11
        if action == 0b10:
            raise ValueError(f"invalid term action in trace nibble {nibble:#06b}")
        return cls(StepKind((nibble >> 3) & 1), Sign((nibble >> 2) & 1), TermAction(action))


# The twelve moves the search can record, named (step, predecessor, action).
ROW_POS_NONE = Move(StepKind.ROW, Sign.POS, TermAction.NONE)
ROW_POS_ADD = Move(StepKind.ROW, Sign.POS, TermAction.ADD)
ROW_POS_SUB = Move(StepKind.ROW, Sign.POS, TermAction.SUBTRACT)
ROW_NEG_NONE = Move(StepKind.ROW, Sign.NEG, TermAction.NONE)
ROW_NEG_ADD = Move(StepKind.ROW, Sign.NEG, TermAction.ADD)
ROW_NEG_SUB = Move(StepKind.ROW, Sign.NEG, TermAction.SUBTRACT)
COL_POS_NONE = Move(StepKind.COLUMN, Sign.POS, TermAction.NONE)
COL_POS_ADD = Move(StepKind.COLUMN, Sign.POS, TermAction.ADD)
COL_POS_SUB = Move(StepKind.COLUMN, Sign.POS, TermAction.SUBTRACT)
COL_NEG_NONE = Move(StepKind.COLUMN, Sign.NEG, TermAction.NONE)
COL_NEG_ADD = Move(StepKind.COLUMN, Sign.NEG, TermAction.ADD)
COL_NEG_SUB = Move(StepKind.COLUMN, Sign.NEG, TermAction.SUBTRACT)


class TraceTable:
    """columns x rows bytes, one bytearray per column."""

    def __init__(self, columns: int, rows: int):
        self.columns = columns
        self.rows = rows
        self._cells = [bytearray(rows) for _ in range(columns)]

    def record(self, column: int, row: int, sign: Sign, move: Move) -> None:
        """Overwrite the half of T[column][row] that belongs to `sign`."""
        shift = 4 * sign
        cell = self._cells[column]
        cell[row] = (cell[row] & (0xF0 >> shift)) | (move.pack() << shift)

    def record_both(self, column: int, row: int, pos: Move, neg: Move) -> None:
        self._cells[column][row] = pos.pack() | (neg.pack() << 4)

    def lookup(self, column: int, row: int, sign: Sign) -> Move:
        return Move.unpack((self._cells[column][row] >> (4 * sign)) & 0xF)

    def raw(self, column: int, row: int) -> int:
        return self._cells[column][row]

    def contains(self, column: int, row: int) -> bool:
        return 0 <= column < self.columns and 0 <= row < self.rows
