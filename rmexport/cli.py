"""Command-line front door for rmexport.

Parses CLI options, merges them over the persisted config, and dispatches
into the interactive browse session.
"""

from __future__ import annotations

import argparse
from dataclasses import replace

from .app import install_signal_handlers, run_browser
from .config import load_settings


def _positive_float(value: str) -> float:
    """argparse type for positive numeric values."""
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be > 0")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rmexport",
        description=(
            "Browse reMarkable collections and documents from a cached metadata snapshot "
            "and export selected documents to PDF."
        ),
    )
    parser.add_argument(
        "-r",
        "--refresh",
        action="store_true",
        help="Force a metadata refresh from the device before browsing.",
    )
    parser.add_argument("--host", default=None, help="ssh host of the device (default from config: remarkable-usb).")
    parser.add_argument(
        "--ttl",
        type=_positive_float,
        default=None,
        help="Cache lifetime in seconds before metadata is refetched (default from config: 1200).",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and run the interactive browser.

    Exits non-zero only when the metadata cannot be loaded or the picker
    cannot run.
    """
    args = build_parser().parse_args(argv)

    install_signal_handlers()
    try:
        settings = load_settings()
    except KeyboardInterrupt:
        return
    if args.host:
        settings = replace(settings, ssh_host=args.host)
    if args.ttl is not None:
        settings = replace(settings, cache_ttl_seconds=args.ttl)

    exit_code = run_browser(settings, force_refresh=args.refresh)
    if exit_code:
        raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
