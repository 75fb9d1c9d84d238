# listing_watch/cli.py
"""
Command-line entrypoints.

Subcommands
-----------
serve [--sites PATH] [--kwargs k=v ...]
    - Polls every configured site until SIGINT/SIGTERM via main.run()

run-once [--sites PATH] [--kwargs k=v ...]
    - Runs a single scrape/diff/notify cycle and exits

validate-config [--sites PATH]
    - Builds Settings from env + sites file; nonzero exit on error

list-sites [--sites PATH]
    - Prints the configured sites
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import time
from collections.abc import Iterable
from typing import Any

from dotenv import load_dotenv

from . import logging_utils as L
from . import main as _main
from .lib.config import ConfigError, Settings
from .lib.scrapers import registry
from .lib.utils import now_iso

LOG = logging.getLogger("listing_watch.cli")


# ----------------------------- Logging setup ---------------------------------
def _ensure_logging() -> None:
    """Initialize a reasonable logging setup if none exists yet."""
    root = logging.getLogger()
    if not root.handlers:
        level = os.getenv("LOG_LEVEL", "INFO").upper()
        logging.basicConfig(
            level=getattr(logging, level, logging.INFO),
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )


# -------------------------- Utility / glue code ------------------------------
def _parse_kv_pairs(pairs: Iterable[str]) -> dict[str, Any]:
    """
    Parse key=value strings into a dict.
    - Values that look like JSON (true/false/null/number/object/array) are parsed.
    - Otherwise keep as raw strings.
    """
    out: dict[str, Any] = {}
    for raw in pairs:
        if "=" not in raw:
            raise argparse.ArgumentTypeError(f"--kwargs item must be key=value (got {raw!r})")
        k, v = raw.split("=", 1)
        k = k.strip()
        v = v.strip()
        if not k:
            raise argparse.ArgumentTypeError(f"Invalid key in --kwargs item {raw!r}")
        try:
            out[k] = json.loads(v)
        except ValueError:
            out[k] = v
    return out


def _collect_kwargs(args: argparse.Namespace) -> dict[str, Any]:
    kwargs = _parse_kv_pairs(getattr(args, "kwargs", None) or [])
    if args.sites:
        kwargs["sites_path"] = args.sites
    return kwargs


def _print_table(rows: Iterable[tuple[str, ...]], headers: tuple[str, ...]) -> None:
    """Plain fixed-width table printer."""
    rows = list(rows)
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))
    sep = "+-" + "-+-".join("-" * w for w in widths) + "-+"
    print(sep)
    print("| " + " | ".join(h.ljust(w) for h, w in zip(headers, widths)) + " |")
    print(sep)
    for row in rows:
        print("| " + " | ".join(c.ljust(w) for c, w in zip(row, widths)) + " |")
    print(sep)


# ------------------------------ Subcommands ----------------------------------
def cmd_serve(args: argparse.Namespace) -> int:
    """Poll until a termination signal arrives; the browser is torn down on the way out."""
    return _run(args, once=False)


def cmd_run_once(args: argparse.Namespace) -> int:
    return _run(args, once=True)


def _run(args: argparse.Namespace, *, once: bool) -> int:
    start = time.monotonic()
    event = "run_once" if once else "serve"
    try:
        kwargs = _collect_kwargs(args)
        snapshot = _main.run(once=once, **kwargs)
        L.write_activity_log({
            "ts": now_iso(),
            "event": f"cli_{event}",
            "listings": len(snapshot),
            "duration_ms": int((time.monotonic() - start) * 1000),
        })
        if once:
            print(f"DONE: {len(snapshot)} listing(s) tracked.")
        return 0
    except KeyboardInterrupt:
        return 130
    except (ConfigError, argparse.ArgumentTypeError) as e:
        print(f"ERROR: configuration invalid: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        LOG.exception("Fatal error in %s: %s", event, e)
        print(f"FAILURE: {e}", file=sys.stderr)
        L.write_error_log({
            "ts": now_iso(),
            "where": f"cli.{event}",
            "error": repr(e),
            "duration_ms": int((time.monotonic() - start) * 1000),
        })
        return 1


def cmd_validate_config(args: argparse.Namespace) -> int:
    try:
        settings = Settings.from_env_and_kwargs(_collect_kwargs(args))
        missing = registry.unknown_kinds(settings.sites)
        if missing:
            raise ConfigError(f"No scraper registered for kind(s): {', '.join(missing)}")
        if not settings.webhook_url:
            print("WARNING: NOTIFICATION_WEBHOOK is not set; notifications will only be logged.")
        print(f"OK: configuration is valid ({len(settings.sites)} site(s)).")
        return 0
    except KeyboardInterrupt:
        return 130
    except (ConfigError, argparse.ArgumentTypeError) as e:
        print(f"ERROR: configuration invalid: {e}", file=sys.stderr)
        return 1


def cmd_list_sites(args: argparse.Namespace) -> int:
    try:
        settings = Settings.from_env_and_kwargs(_collect_kwargs(args))
    except (ConfigError, argparse.ArgumentTypeError) as e:
        print(f"ERROR: configuration invalid: {e}", file=sys.stderr)
        return 1
    rows = [(s.company.value, s.kind, s.url or "-") for s in settings.sites]
    _print_table(rows, headers=("COMPANY", "KIND", "URL"))
    return 0


# ------------------------------- Argparse ------------------------------------
def _add_common(sp: argparse.ArgumentParser, *, with_kwargs: bool = True) -> None:
    sp.add_argument(
        "--sites",
        metavar="PATH",
        help="JSON/YAML sites file (fallbacks to SITES_PATH env or the built-in sites).",
    )
    if with_kwargs:
        sp.add_argument(
            "--kwargs",
            metavar="k=v",
            nargs="*",
            help="Settings overrides, e.g. refresh_minutes=5 (JSON values supported).",
        )


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="listing-watch",
        description="Watch career pages and post new job listings to a webhook.",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    sp = sub.add_parser("serve", help="Poll all sites until interrupted.")
    _add_common(sp)
    sp.set_defaults(func=cmd_serve)

    sp = sub.add_parser("run-once", help="Run one scrape/diff/notify cycle and exit.")
    _add_common(sp)
    sp.set_defaults(func=cmd_run_once)

    sp = sub.add_parser("validate-config", help="Verify configuration correctness.")
    _add_common(sp)
    sp.set_defaults(func=cmd_validate_config)

    sp = sub.add_parser("list-sites", help="Print the configured sites.")
    _add_common(sp, with_kwargs=False)
    sp.set_defaults(func=cmd_list_sites)

    return p


# --------------------------------- Main --------------------------------------
def main(argv: Iterable[str] | None = None) -> int:
    load_dotenv()
    _ensure_logging()
    parser = _build_parser()
    args = parser.parse_args(args=list(argv) if argv is not None else None)
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
