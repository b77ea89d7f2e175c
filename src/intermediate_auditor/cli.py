from __future__ import annotations

import argparse
import csv
import logging
import sys

from . import __version__
from .hostnames import collect_hostnames
from .models import DEFAULT_TARGET_IDENTITY, AuditConfig
from .probe import DEFAULT_PORT, DEFAULT_TIMEOUT
from .scheduler import DEFAULT_WORKERS, audit_hostnames


DONE_MARKER = "Done"

USAGE_ERROR = "You must supply at least one hostname as an argument or via --stats-tsv-file"


def _print_finding(subject_cn: str) -> None:
    print(subject_cn, flush=True)


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="intermediate-auditor",
        description=(
            "Find TLS servers whose leaf certificate names an intermediate "
            "as issuer without serving that intermediate."
        ),
    )
    p.add_argument("hostnames", nargs="*", help="Hostnames to audit (e.g., example.com)")
    p.add_argument(
        "--stats-tsv-file",
        help="Path to a stats-exporter TSV file; its first column holds label-reversed hostnames",
    )
    p.add_argument("--debug", action="store_true", help="Print full audit output for every hostname")
    p.add_argument(
        "--target-identity",
        default=DEFAULT_TARGET_IDENTITY,
        help=f"Intermediate subject CN to check for (default: {DEFAULT_TARGET_IDENTITY})",
    )
    p.add_argument(
        "--workers",
        type=int,
        default=DEFAULT_WORKERS,
        help=f"Number of concurrent probes (default: {DEFAULT_WORKERS})",
    )
    p.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help=f"Connect/handshake timeout seconds (default: {DEFAULT_TIMEOUT})",
    )
    p.add_argument("--port", type=int, default=DEFAULT_PORT, help=f"TLS port (default: {DEFAULT_PORT})")
    p.add_argument("--version", action="store_true", help="Print version and exit")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)

    if args.version:
        print(__version__)
        return 0

    _configure_logging(args.debug)

    if args.workers < 1:
        print("Error: --workers must be at least 1", file=sys.stderr)
        return 1
    if not (1 <= args.port <= 65535):
        print("Error: port out of range", file=sys.stderr)
        return 1

    try:
        hostnames = collect_hostnames(args.hostnames, args.stats_tsv_file)
    except (OSError, csv.Error) as e:
        print(f"Error: couldn't read the tsv file: {e}", file=sys.stderr)
        return 1

    if not hostnames:
        print(USAGE_ERROR, file=sys.stderr)
        return 1

    config = AuditConfig(target_identity=args.target_identity, diagnostics=args.debug)
    audit_hostnames(
        hostnames,
        config,
        workers=args.workers,
        port=args.port,
        timeout=args.timeout,
        report=_print_finding,
    )
    print(DONE_MARKER)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
