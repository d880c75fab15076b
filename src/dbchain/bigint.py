# src/dbchain/bigint.py
"""
Fixed-capacity binary integers.

A BigInt is a little-endian bit vector of a fixed capacity plus the index
of its highest set bit. The only arithmetic it offers is exact division by
three, done bit-serially from the top so the search engine can walk the
columns n, n/3, n/9, ... without a general big-number library.
"""

from __future__ import annotations

from dbchain.utility import CapacityExceeded, InvalidDigit

# Rows the search touches above the highest bit of the scalar.
MARGIN = 4

_DIGITS = {
    10: frozenset("0123456789"),
    16: frozenset("0123456789abcdefABCDEF"),
}


def capacity_for(width: int) -> int:
    return int(width) + MARGIN


class BigInt:
    __slots__ = ("_bits", "_msb")

    def __init__(self, bits: bytearray, msb: int):
        self._bits = bits
        self._msb = msb

    # --- construction --------------------------------------------------------

    @classmethod
    def zero(cls, capacity: int) -> BigInt:
        return cls(bytearray(capacity), -1)

    @classmethod
    def from_int(cls, value: int, capacity: int) -> BigInt:
        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeError(f"expected int, got {type(value).__name__}")
        if value < 0:
            raise InvalidDigit(str(value), 0, 10)
        width = capacity - MARGIN
        nbits = value.bit_length()
        if nbits > width:
            raise CapacityExceeded(nbits, width)
        bits = bytearray(capacity)
        for k in range(nbits):
            bits[k] = (value >> k) & 1
        return cls(bits, nbits - 1)

    @classmethod
    def parse(cls, text: str, base: int, capacity: int) -> BigInt:
        """
        Decode a decimal or hexadecimal literal.

        Whitespace around the literal, '_' separators and (base 16 only) a
        0x prefix are accepted. Anything else outside the base's alphabet
        raises InvalidDigit with the offending position.
        """
        if base not in _DIGITS:
            raise ValueError(f"unsupported base: {base}")
        alphabet = _DIGITS[base]

        raw = text
        start = len(raw) - len(raw.lstrip())
        body = raw.strip()
        if base == 16 and body[:2] in ("0x", "0X"):
            body = body[2:]
            start += 2

        seen_digit = False
        for k, ch in enumerate(body):
            if ch in alphabet:
                seen_digit = True
            elif ch == "_" and 0 < k < len(body) - 1 and body[k - 1] != "_":
                continue
            else:
                raise InvalidDigit(raw, start + k, base)
        if not seen_digit:
            raise InvalidDigit(raw, None, base)

        digits = body.replace("_", "").lstrip("0")
        if base == 10 and digits:
            # 10^(d-1) >= 2^(3(d-1)); reject before int() hits its str-digit guard
            lower = 3 * (len(digits) - 1) + 1
            if lower > capacity - MARGIN:
                raise CapacityExceeded(lower, capacity - MARGIN)

        return cls.from_int(int(digits or "0", base), capacity)

    # --- inspection ----------------------------------------------------------

    @property
    def capacity(self) -> int:
        return len(self._bits)

    @property
    def msb(self) -> int:
        """Index of the highest set bit, -1 for zero."""
        return self._msb

    @property
    def is_zero(self) -> bool:
        return self._msb < 0

    @property
    def bit_length(self) -> int:
        return self._msb + 1

    def test(self, i: int) -> bool:
        if 0 <= i < len(self._bits):
            return self._bits[i] == 1
        return False

    def __int__(self) -> int:
        value = 0
        for k in range(self._msb, -1, -1):
            value = (value << 1) | self._bits[k]
        return value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BigInt):
            return NotImplemented
        return self._msb == other._msb and self._bits[: self._msb + 1] == other._bits[: other._msb + 1]

    def __hash__(self) -> int:
        return hash((self._msb, bytes(self._bits[: self._msb + 1])))

    def __repr__(self) -> str:
        return f"BigInt({int(self):#x}, capacity={self.capacity})"

    # --- arithmetic ----------------------------------------------------------

    def divide_by_3(self) -> BigInt:
        """
        Floor division by 3, one bit at a time from the top.

        The remainder r in {0, 1, 2} of the prefix read so far is carried
        down; bringing in the next bit gives 2r + bit, which is at most 5, so
        the quotient bit is (2r + bit >= 3).
        """
        out = bytearray(len(self._bits))
        msb = -1
        r = 0
        for k in range(self._msb, -1, -1):
            partial = 2 * r + self._bits[k]
            if partial >= 3:
                out[k] = 1
                partial -= 3
                if msb < 0:
                    msb = k
            r = partial
        return BigInt(out, msb)
