# src/dbchain/cli.py

"""
dbchain - minimum-weight double-base chains

Description:
    Converts a scalar n into the shortest signed sum of terms 2^i*3^j that a
    doubling/tripling scalar multiplication can consume, and prints the
    search time, the number of terms and the terms themselves.

usage: see dbchain -h
"""

from __future__ import annotations

import argparse
import faulthandler
import sys
import textwrap
import time
import traceback

from colorama import Fore, Style
from colorama import init as colorama_init

from dbchain import __version__ as _ver
from dbchain.config import (
    ORDERS,
    POLICIES,
    has_profile,
    list_profiles_with_descriptions,
    load_settings,
)
from dbchain.engine import max_columns, optimal_chain
from dbchain.fmt import abbr_int_fast, format_stats, format_terms
from dbchain.progress import Progress
from dbchain.runtime import APPLY, CFG, ensure_runtime_deps
from dbchain.runtime import current as _rt_current
from dbchain.runtime import reset as _rt_reset
from dbchain.utility import UserInputError, flatten_dotted, typename, verify_chain
from dbchain.workspace import ensure_workspace_seeded, workspace_dir

USAGE = "dbchain [--profile NAME] [--hex | --dec] [--policy POLICY] [--bits N] [--order ORDER] [--verify] SCALAR"


def _install_loud_error_handlers(debug: bool) -> None:
    if not debug:
        return
    try:
        faulthandler.enable()
    except (AttributeError, ValueError, OSError):
        pass  # stderr has no file descriptor (captured or redirected)

    def _excepthook(exc_type, exc, tb):
        sys.stderr.write("\n[UNCAUGHT EXCEPTION]\n")
        traceback.print_exception(exc_type, exc, tb, file=sys.stderr)
        sys.stderr.flush()
    sys.excepthook = _excepthook


def _print_user_error(msg: str) -> None:
    """Uniform, one-line friendly error."""
    prefix = f"{Fore.RED}Error:{Style.RESET_ALL}"
    if msg.startswith("Invalid input:"):
        msg = msg.replace("Invalid input:", f"{Fore.RED}Invalid input:{Style.RESET_ALL}", 1)
    elif not msg.startswith("Error:"):
        msg = f"{prefix} {msg}"
    print(msg, file=sys.stderr)


# ---- argparse ----
def _build_parser() -> argparse.ArgumentParser:

    epilog = textwrap.dedent("""\
    commands:
      profiles
          List the available profiles with their descriptions.

      where
          Show the workspace and profile paths.

    Settings not given on the command line come from the profile
    (SEARCH.BITS, SEARCH.POLICY, INPUT.BASE, OUTPUT.ORDER, OUTPUT.VERIFY).
    """)

    p = argparse.ArgumentParser(
        prog="dbchain",
        description="Minimum-weight double-base chains for scalar multiplication",
        usage=USAGE,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=epilog,
    )
    p.add_argument("items", nargs="*", metavar="SCALAR",
                   help="the scalar to convert, or a command (profiles, where)")
    p.add_argument("--profile", default=None, help="profile name (default: 'default')")
    base = p.add_mutually_exclusive_group()
    base.add_argument("--hex", dest="base", action="store_const", const=16, help="read SCALAR as hexadecimal")
    base.add_argument("--dec", dest="base", action="store_const", const=10, help="read SCALAR as decimal")
    p.add_argument("--policy", choices=POLICIES, default=None,
                   help="pruned (fastest) or constant-time (for secret scalars)")
    p.add_argument("--bits", type=int, default=None, help="bit width bound; sizes all tables")
    p.add_argument("--order", choices=ORDERS, default=None, help="term order of the printed chain")
    p.add_argument("--verify", action="store_true", default=None, help="check that the terms add up to SCALAR")
    p.add_argument("--quiet", action="store_true", help="print only the weight and the terms")
    p.add_argument("--debug", action="store_true", help="show profile, settings and search statistics")
    p.add_argument("--version", action="version", version=f"%(prog)s {_ver}")

    return p


def main(argv=None) -> int:
    """Thin wrapper: catch friendly errors, hide tracebacks unless debug."""
    try:
        return _main_impl(argv)
    except UserInputError as e:
        _print_user_error(str(e))
        return 2
    except KeyboardInterrupt:
        print("Aborted by user.", file=sys.stderr)
        return 130
    except Exception as e:
        debug = "--debug" in (argv if argv is not None else sys.argv)
        if debug:
            raise
        print(f"Unexpected error: {e.__class__.__name__}: {e}", file=sys.stderr)
        print("Run with --debug for a full traceback.", file=sys.stderr)
        return 1


def _apply_profile(name: str, explicit: bool, debug: bool) -> None:
    if not has_profile(name):
        if explicit:
            raise UserInputError(f"Unknown profile: '{name}'. Run 'dbchain profiles' to list them.")
        return  # defaults from runtime.DEFAULTS
    selected = load_settings(name)
    APPLY(selected)

    if debug:
        print(f"[debug] active profile: {selected.name}", file=sys.stderr)
        if selected._source:
            print(f"[debug] profile file: {selected._source}", file=sys.stderr)
        print("[debug] profile keys (runtime value/type):", file=sys.stderr)
        flat = flatten_dotted(selected.as_dict())
        for k in sorted(flat.keys(), key=str.lower):
            v = CFG(k, None)
            print(f"        {k:.<40} {v!r} ({typename(v)})", file=sys.stderr)


# ---- main ----
def _main_impl(argv=None) -> int:

    colorama_init(autoreset=True)
    _rt_reset()

    parser = _build_parser()
    args = parser.parse_args(argv)
    _install_loud_error_handlers(args.debug)

    if len(args.items) != 1:
        print(f"\nUsage: {USAGE}\n", file=sys.stderr)
        return 1

    if not ensure_runtime_deps(strict=True):
        return 1

    ensure_workspace_seeded()
    item = args.items[0]

    if item == "profiles":
        for name, desc in list_profiles_with_descriptions():
            print(f"{Fore.YELLOW}{name:<16}{Style.RESET_ALL} {desc}")
        return 0
    if item == "where":
        print(f"Workspace: {workspace_dir()}")
        print(f"Profiles:  {workspace_dir() / 'profiles'}")
        return 0

    _apply_profile(args.profile or "default", explicit=bool(args.profile), debug=args.debug)
    rt = _rt_current()
    if args.debug:
        rt.debug = True

    # --- CLI flags override the profile ---
    width = args.bits if args.bits is not None else int(CFG("SEARCH.BITS", 256))
    if width < 1:
        raise UserInputError(f"--bits must be positive, got {width}.")
    policy = args.policy or str(CFG("SEARCH.POLICY", "pruned"))
    base = args.base or int(CFG("INPUT.BASE", 16))
    order = args.order or str(CFG("OUTPUT.ORDER", "emission"))
    verify = args.verify if args.verify is not None else bool(CFG("OUTPUT.VERIFY", False))

    progress = Progress(max_columns(width) + 1, enabled=not args.quiet and sys.stderr.isatty())
    start = time.perf_counter_ns()
    try:
        result = optimal_chain(item, width=width, policy=policy, base=base, progress=progress.update)
    finally:
        progress.done()
    elapsed_us = (time.perf_counter_ns() - start) // 1000

    if verify:
        verify_chain(result.n, list(result.terms))

    if not args.quiet:
        print(f"# Time: {elapsed_us} microseconds")
    print(f"# Minimum of {result.weight}")
    print(format_terms(result.terms, order))
    if verify and not args.quiet:
        print("# Verified: sum of terms equals n")

    if rt.debug:
        print(f"[debug] n = {abbr_int_fast(result.n)} ({result.n.bit_length()} bits, base {base})", file=sys.stderr)
        print(f"[debug] terminal cell: row {result.row}, column {result.column}", file=sys.stderr)
        for line in format_stats(result.stats, policy=result.policy, width=result.width):
            print(line, file=sys.stderr)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
