# -----------------------------------------------------------------------------
#  Utility functions
# -----------------------------------------------------------------------------

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

import gmpy2

if TYPE_CHECKING:
    from dbchain.chain import Term


class UserInputError(Exception):
    pass


class InvalidDigit(UserInputError):
    """A scalar literal contains a character outside its base's alphabet."""

    def __init__(self, text: str, position: int | None, base: int):
        self.text = text
        self.position = position
        self.base = base
        if position is None:
            msg = f"Invalid input: '{text}' is not a base-{base} integer."
        else:
            ch = text[position]
            msg = f"Invalid input: character {ch!r} at position {position} is not a base-{base} digit."
        super().__init__(msg)


class CapacityExceeded(UserInputError):
    def __init__(self, bit_length: int, width: int):
        self.bit_length = bit_length
        self.width = width
        super().__init__(
            f"scalar has {bit_length} bits but the configured width is {width} bits. "
            "Raise SEARCH.BITS in the profile or pass --bits."
        )


class InconsistentTrace(RuntimeError):
    """Backtracking left the trace table before the chain weight was used up."""


def chain_value(terms: Iterable[Term]) -> int:
    """Sum of sign * 2^i * 3^j over all terms, computed with gmpy2."""
    total = gmpy2.mpz(0)
    two, three = gmpy2.mpz(2), gmpy2.mpz(3)
    for t in terms:
        total += t.sign * (two ** t.i) * (three ** t.j)
    return int(total)


def verify_chain(n: int, terms: list[Term]) -> None:
    """Raise InconsistentTrace unless the terms add up to n."""
    got = chain_value(terms)
    if got != n:
        raise InconsistentTrace(f"chain sums to {got}, expected {n}")


def typename(v: object) -> str:
    return type(v).__name__


def flatten_dotted(d: dict, prefix: str = "") -> dict[str, object]:
    out: dict[str, object] = {}
    for k, v in (d or {}).items():
        key = f"{prefix}.{k}" if prefix else str(k)
        if isinstance(v, dict):
            out.update(flatten_dotted(v, key))
        else:
            out[key] = v
    return out
