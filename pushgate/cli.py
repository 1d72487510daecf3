"""Command-line entry point for the git update and pre-receive hooks."""

import argparse
import logging
import sys
from typing import Optional, TextIO

from . import __version__
from .config import LOG_LEVEL
from .errors import MalformedRevision, PushGateError
from .gate import RefUpdateGate
from .output import log_error, log_success


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    p = argparse.ArgumentParser(
        prog="pushgate",
        description="Accept or reject a ref update by signature and branch policy",
    )
    p.add_argument("--version", "-v", action="version", version=f"pushgate {__version__}")
    p.add_argument(
        "--pre-receive", action="store_true",
        help="Read 'OLD NEW REF' lines from stdin instead of positional arguments",
    )
    p.add_argument("ref", nargs="?", help="Full ref name, e.g. refs/heads/master")
    p.add_argument("old", nargs="?", help="Old revision (all zeros if the ref is new)")
    p.add_argument("new", nargs="?", help="New revision (all zeros to delete the ref)")

    args = p.parse_args(argv)
    if not args.pre_receive and args.new is None:
        p.error("REF, OLD and NEW are required unless --pre-receive is given")
    return args


def read_updates(stream: TextIO) -> list[tuple[str, str, str]]:
    """Parse pre-receive input into (ref, old, new) triples."""
    updates = []
    for line in stream:
        line = line.strip()
        if not line:
            continue
        parts = line.split()
        if len(parts) != 3:
            raise MalformedRevision(f"cannot parse hook input line: {line!r}")
        old, new, ref = parts
        updates.append((ref, old, new))
    return updates


def run(args: argparse.Namespace, stdin: TextIO = sys.stdin) -> int:
    """Evaluate the requested updates. Returns the process exit code."""
    gate = RefUpdateGate.load()

    if args.pre_receive:
        updates = read_updates(stdin)
    else:
        updates = [(args.ref, args.old, args.new)]

    for ref, old, new in updates:
        verdict = gate.evaluate(ref, old, new)
        if not verdict.accepted:
            log_error(f"push to {ref} rejected: {verdict.reason}")
            return 1
        log_success(f"{ref}: {verdict.reason}")
    return 0


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point."""
    args = parse_args(argv)
    logging.basicConfig(
        level=LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(message)s",
    )

    try:
        sys.exit(run(args))
    except PushGateError as e:
        log_error(str(e))
        sys.exit(1)
