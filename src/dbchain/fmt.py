# src/dbchain/fmt.py
from __future__ import annotations

import re
from collections.abc import Sequence

from colorama import Fore, Style

from dbchain.chain import SearchStats, Term

# Single source of truth for ANSI stripping
ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


def strip_ansi(s: str) -> str:
    return ANSI_RE.sub("", s)


def abbr_int_fast(n: int, head: int = 10, tail: int = 10, threshold: int = 35, ellipsis: str = "…") -> str:
    """Abbreviate very large ints as first<head>…last<tail>."""
    if not isinstance(n, int):
        return str(n)
    sign = "-" if n < 0 else ""
    s = str(abs(n))
    if len(s) <= threshold or head + tail >= len(s):
        return sign + s
    return f"{sign}{s[:head]}{ellipsis}{s[-tail:]}"


def order_terms(terms: Sequence[Term], order: str = "emission") -> list[Term]:
    """
    'emission' keeps the backtracking order (largest term first);
    'reversed' lists the oldest term, the one nearest 2^0*3^0, first.
    """
    o = str(order).strip().lower()
    if o == "reversed":
        return list(reversed(terms))
    if o == "emission":
        return list(terms)
    raise ValueError(f"unknown term order: {order!r}")


def format_terms(terms: Sequence[Term], order: str = "emission") -> str:
    """Space-separated ' + 2^(i)*3^(j)' tokens, the classic chain printout."""
    return "".join(f" {t}" for t in order_terms(terms, order))


def format_stats(stats: SearchStats, *, policy: str, width: int) -> list[str]:
    label = f"{Fore.CYAN}[debug]{Style.RESET_ALL}"
    return [
        f"{label} policy={policy} width={width}",
        f"{label} columns={stats.columns} rows={stats.rows} "
        f"evaluations={stats.evaluations} skipped={stats.skipped} improvements={stats.improvements}",
    ]
