from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import tomllib as toml  # py311+

from dbchain.utility import UserInputError
from dbchain.workspace import ensure_workspace_seeded, workspace_dir

POLICIES = ("pruned", "constant-time")
BASES = (10, 16)
ORDERS = ("emission", "reversed")


@dataclass
class Settings:
    """
    Wrap the full TOML dict (without the [PROFILE] section).
    .as_dict() feeds runtime.apply().

      - name:        resolved profile name (file stem if not given in [PROFILE])
      - description: one-line description from [PROFILE] or "(no description)"
    """
    data: dict[str, Any]
    name: str
    description: str
    _source: Path | None = None

    def as_dict(self) -> dict[str, Any]:
        return self.data


# --- Paths -----------------------------------------------------------------

def _profiles_dir() -> Path:
    return workspace_dir() / "profiles"


def _profile_path(name: str) -> Path:
    return _profiles_dir() / f"{name}.toml"


# --- I/O -------------------------------------------------------------------


def _load_toml(path: Path) -> dict[str, object]:
    try:
        with path.open("rb") as f:
            return toml.load(f)
    except Exception as e:
        lineno = getattr(e, "lineno", None)
        colno = getattr(e, "colno", None)
        msg = getattr(e, "msg", str(e))
        where = []
        if lineno is not None:
            where.append(f"line {lineno}")
        if colno is not None:
            where.append(f"column {colno}")
        loc = f" (at {', '.join(where)})" if where else ""
        # No traceback chaining
        raise UserInputError(f"reading {path.name}: {msg}{loc}.") from None


# --- Metadata handling -----------------------------------------------------


def _sanitize_oneline(s: str) -> str:
    return " ".join(str(s).split()) or "(no description)"


def _split_profile_data(raw: dict[str, Any], fallback_name: str) -> tuple[dict[str, Any], str, str]:
    """
    Extract [PROFILE] meta (name, description) and return:
      (settings_without_profile, resolved_name, resolved_description)
    """
    meta = raw.get("PROFILE") or {}
    data = {k: v for k, v in raw.items() if k != "PROFILE"}

    name = str(meta.get("name") or fallback_name)
    description = _sanitize_oneline(str(meta.get("description") or ""))

    return data, name, description


def _validate(data: dict[str, Any], source: str) -> None:
    """Reject values the search cannot run with; unknown keys are left alone."""
    search = data.get("SEARCH", {}) or {}
    bits = search.get("BITS")
    if bits is not None and (isinstance(bits, bool) or not isinstance(bits, int) or bits < 1):
        raise UserInputError(f"{source}: SEARCH.BITS must be a positive integer, got {bits!r}.")
    policy = search.get("POLICY")
    if policy is not None and str(policy).lower() not in POLICIES:
        raise UserInputError(f"{source}: SEARCH.POLICY must be one of {', '.join(POLICIES)}, got {policy!r}.")

    base = (data.get("INPUT", {}) or {}).get("BASE")
    if base is not None and base not in BASES:
        raise UserInputError(f"{source}: INPUT.BASE must be 10 or 16, got {base!r}.")

    order = (data.get("OUTPUT", {}) or {}).get("ORDER")
    if order is not None and str(order).lower() not in ORDERS:
        raise UserInputError(f"{source}: OUTPUT.ORDER must be one of {', '.join(ORDERS)}, got {order!r}.")


# --- Public API ------------------------------------------------------------


def list_all_profiles() -> list[str]:
    """Return the available profile *names* (filename stems)."""
    ensure_workspace_seeded()
    pdir = _profiles_dir()
    if not pdir.exists():
        return []
    return sorted(p.stem for p in pdir.glob("*.toml"))


def list_profiles_with_descriptions() -> list[tuple[str, str]]:
    """
    Return [(name, description), ...] for all profiles.
    Profiles lacking [PROFILE] get "(no description)".
    """
    ensure_workspace_seeded()
    items: list[tuple[str, str]] = []
    for p in _profiles_dir().glob("*.toml"):
        try:
            raw = _load_toml(p)
            _, nm, desc = _split_profile_data(raw, p.stem)
            items.append((nm, desc))
        except UserInputError:
            # Listing stays usable with a broken file; loading it reports the error
            items.append((p.stem, "(unreadable profile)"))
    return sorted(items, key=lambda t: t[0].lower())


def has_profile(name: str) -> bool:
    ensure_workspace_seeded()
    return _profile_path(name).exists()


def load_settings(name: str | None) -> Settings:
    """
    Load a profile by name (default 'default'), strip the [PROFILE] metadata,
    validate the search settings and return Settings(data=..., _source=path).
    """
    if not name:
        name = "default"
    ensure_workspace_seeded()

    path = _profile_path(name)
    if not path.exists():
        raise UserInputError(f"Unknown profile '{name}' (looked in {_profiles_dir()}).")

    raw = _load_toml(path)
    data, resolved_name, description = _split_profile_data(raw, path.stem)
    _validate(data, path.name)

    return Settings(
        data=data,
        name=resolved_name,
        description=description,
        _source=path,
    )
