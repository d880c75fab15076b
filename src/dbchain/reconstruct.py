from __future__ import annotations

from dbchain.chain import BestChain, Term
from dbchain.trace import Sign, StepKind, TermAction, TraceTable
from dbchain.utility import InconsistentTrace


def reconstruct(trace: TraceTable, best: BestChain) -> list[Term]:
    """
    Walk the trace table back from the best cell and collect the terms.

    The walk starts on the positive record of T[column][row]. Each record
    names the step that led into the cell; undoing it lands on the
    predecessor, where a term (if any) was emitted at the predecessor's
    coordinates. Terms come out largest first. Stops once `best.weight`
    terms have been collected.
    """
    if best.weight < 0 or not trace.contains(best.column, best.row):
        raise InconsistentTrace(f"best chain points outside the trace table: {best}")
    if best.weight >= trace.rows - 1:
        raise InconsistentTrace(f"best chain is infeasible: {best}")

    terms: list[Term] = []
    i, j = best.row, best.column
    remaining = best.weight
    move = trace.lookup(j, i, Sign.POS)

    while remaining > 0:
        if move.step is StepKind.COLUMN:
            j -= 1
        else:
            i -= 1
        if i < 0 or j < 0:
            raise InconsistentTrace(
                f"backtrack left the table at row {i}, column {j} with {remaining} term(s) unresolved"
            )
        if move.action is not TermAction.NONE:
            terms.append(Term(move.action.sign, i, j))
            remaining -= 1
        move = trace.lookup(j, i, move.predecessor)

    return terms
