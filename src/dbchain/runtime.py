# runtime.py
from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass, field
from importlib.util import find_spec
from typing import Any

from colorama import Fore, Style

# Fallbacks when no profile is applied
DEFAULTS: dict[str, Any] = {
    "SEARCH": {"BITS": 256, "POLICY": "pruned"},
    "INPUT": {"BASE": 16},
    "OUTPUT": {"ORDER": "emission", "VERIFY": False},
    "BEHAVIOUR": {"DEBUG": False},
}


@dataclass
class Runtime:
    profile_name: str = "default"
    settings: dict[str, Any] = field(default_factory=dict)
    debug: bool = False  # controls verbosity / tracebacks

    def apply(self, settings: Any) -> None:
        self.profile_name = getattr(settings, "name", None) or "default"

        # config.Settings or a plain {"SECTION": {"KEY": ...}} dict
        cfg = settings.as_dict() if hasattr(settings, "as_dict") else settings
        if not isinstance(cfg, dict):
            raise TypeError(f"settings must be a dict or Settings, got {type(settings).__name__}")
        self.settings = dict(cfg)

        dbg = self.get("BEHAVIOUR.DEBUG", None)
        if isinstance(dbg, bool):
            self.debug = dbg

    def get(self, key: str, default: Any = None) -> Any:
        """Dotted lookup ('SEARCH.BITS'); falls back to DEFAULTS, then `default`."""
        if not key:
            return default
        for source in (self.settings, DEFAULTS):
            cur: Any = source
            for part in key.split("."):
                if isinstance(cur, dict) and part in cur:
                    cur = cur[part]
                else:
                    break
            else:
                return cur
        return default


# --- Context management ---

_current_runtime: ContextVar[Runtime | None] = ContextVar("dbchain_runtime", default=None)


def current() -> Runtime:
    rt = _current_runtime.get()
    if rt is None:
        rt = Runtime()
        _current_runtime.set(rt)
    return rt


def reset() -> None:
    _current_runtime.set(None)


def APPLY(settings: Any) -> None:
    current().apply(settings)


def CFG(key: str, default: Any = None) -> Any:
    return current().get(key, default)


# ---- Dependency check --------------------------------------------------------

def ensure_runtime_deps(strict: bool = True) -> bool:
    """
    Verify core runtime deps are available without importing them here.
    If strict=True, prints a friendly error and returns False when missing.
    """
    required = ("sympy", "gmpy2")
    missing = [name for name in required if find_spec(name) is None]

    if not missing:
        return True

    msg = (
        f"{Fore.RED}{Style.BRIGHT}\nMissing dependencies:{Style.RESET_ALL} "
        + ", ".join(missing)
        + "\nInstall with: "
        + f"{Fore.YELLOW}pip install " + " ".join(missing) + f"{Style.RESET_ALL}"
    )
    print(msg)
    return not strict
