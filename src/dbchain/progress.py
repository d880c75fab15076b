# src/dbchain/progress.py
from __future__ import annotations

import sys
import time


class Progress:
    """Per-column progress bar on stderr; pass `update` as the search's progress hook."""

    def __init__(self, total: int, *, enabled: bool = True, stream=None):
        self.total = max(1, int(total))
        self.enabled = enabled
        self.stream = stream or sys.stderr
        self.last_draw = 0.0
        self.spin = "|/-\\"
        self.i = 0

    def update(self, done: int, total: int | None = None, label: str = "column"):
        THROTTLE = 0.05
        if not self.enabled:
            return
        if total:
            self.total = max(1, int(total))
        now = time.perf_counter()
        if now - self.last_draw < THROTTLE:  # throttle to avoid flicker
            return
        self.last_draw = now
        self.i = (self.i + 1) % len(self.spin)
        frac = min(max(done / self.total, 0.0), 1.0)
        pct = int(frac * 100)
        bar_len = 24
        fill = int(frac * bar_len)
        bar = "#" * fill + "-" * (bar_len - fill)
        self.stream.write(f"\r[{self.spin[self.i]}] [{bar}] {pct:3d}%  {label} {done}/{self.total}")
        self.stream.flush()

    def done(self):
        if not self.enabled:
            return
        self.stream.write("\r" + " " * 80 + "\r")
        self.stream.flush()
