# ruff: noqa: T201

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from signal import SIGINT, getsignal, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from mindrift.adapters.text import METRICS
from mindrift.app import (
    DEFAULT_METRIC,
    change_destination,
    change_source,
    check,
    edit,
    history,
    list_tracked,
    reconcile_texts,
    remove,
    show,
    track,
)
from mindrift.config import configure_logging
from mindrift.domain.model import Side, StaleRevisionError
from mindrift.domain.pair_sync import DuplicatePairError, PairNotFoundError
from mindrift.domain.reconciliation import ReconciliationCancelledError, ReconciliationError

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import FrameType

    from mindrift.domain.model import TrackedPair
    from mindrift.domain.pair_sync import PairChangeResult

log = logging.getLogger(__name__)

EXIT_VALIDATION = 2
EXIT_RECONCILIATION_FAILED = 3
EXIT_FATAL = 1
EXIT_INTERRUPTED = 130


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Keep source/destination artifacts consistent with minimal drift",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    reconcile = subparsers.add_parser(
        "reconcile",
        help="Repair a source after its destination was edited",
    )
    reconcile.add_argument("--source", required=True, help="Current source (text or @file)")
    reconcile.add_argument(
        "--old-destination",
        required=True,
        help="Destination the source is consistent with (text or @file)",
    )
    reconcile.add_argument(
        "--new-destination",
        required=True,
        help="Edited destination (text or @file)",
    )
    reconcile.add_argument("--source-domain", type=str, help="Label for the source, e.g. English")
    reconcile.add_argument(
        "--destination-domain",
        type=str,
        help="Label for the destination, e.g. Japanese",
    )
    reconcile.add_argument(
        "--tolerance",
        type=float,
        help="Warn when the minimal diff exceeds this value (defaults to config)",
    )
    _add_metric_argument(reconcile)

    pair = subparsers.add_parser("pair", help="Tracked pair commands")
    pair_sub = pair.add_subparsers(dest="pair_command", required=True)

    pair_track = pair_sub.add_parser("track", help="Start tracking an aligned pair")
    pair_track.add_argument("name", help="Unique pair name")
    pair_track.add_argument("--source", required=True, help="Source text or @file")
    pair_track.add_argument("--destination", required=True, help="Destination text or @file")
    pair_track.add_argument("--source-domain", type=str, help="Label for the source")
    pair_track.add_argument("--destination-domain", type=str, help="Label for the destination")

    for command, side in (("update-destination", "destination"), ("update-source", "source")):
        update = pair_sub.add_parser(
            command,
            help=f"Edit the {side} and reconcile the other side",
        )
        update.add_argument("name", help="Pair name")
        update.add_argument("value", help=f"New {side} text or @file")
        update.add_argument(
            "--expected-revision",
            type=int,
            help="Abort if the pair moved past this revision",
        )
        update.add_argument(
            "--no-reconcile",
            action="store_true",
            help="Store the edit only; the pair is re-checked by `pair check`",
        )
        _add_metric_argument(update)

    for command, help_text in (
        ("show", "Show a tracked pair"),
        ("remove", "Stop tracking a pair"),
        ("history", "Show reconciliation history of a pair"),
        ("check", "Report whether a pair is consistent, asking the model if unknown"),
    ):
        sub = pair_sub.add_parser(command, help=help_text)
        sub.add_argument("name", help="Pair name")

    pair_sub.add_parser("list", help="List tracked pairs")

    return parser.parse_args(list(argv))


def _add_metric_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--metric",
        choices=sorted(METRICS),
        default=DEFAULT_METRIC,
        help="Diff metric used to rank candidates (default: %(default)s)",
    )


def _read_value(value: str) -> str:
    """Return ``value`` or, for ``@path``, the contents of that file."""

    if not value.startswith("@"):
        return value
    path = Path(value[1:]).expanduser()
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ValueError(f"Cannot read {path}: {exc.strerror or exc}") from exc


def _resolve_values(args: argparse.Namespace) -> None:
    for attribute in ("source", "old_destination", "new_destination", "destination", "value"):
        raw = getattr(args, attribute, None)
        if raw is not None:
            setattr(args, attribute, _read_value(raw))
    tolerance = getattr(args, "tolerance", None)
    if tolerance is not None and not tolerance >= 0:
        raise ValueError("Tolerance must be non-negative")


def _print_pair(pair: TrackedPair) -> None:
    print(f"name:        {pair.name}")
    print(f"id:          {pair.id}")
    print(f"revision:    {pair.revision}")
    print(f"consistent:  {pair.consistent}")
    print(f"updated:     {pair.updated_at.isoformat()}")
    print(f"source ({pair.source.domain or '-'}):")
    print(pair.source.payload)
    print(f"destination ({pair.destination.domain or '-'}):")
    print(pair.destination.payload)


def _print_change(result: PairChangeResult) -> None:
    if result.needs_review:
        log.warning("Pair %s flagged for review (diff=%.4f)", result.name, result.diff)
    print(result.reconciled)


def _run_update(args: argparse.Namespace, side: Side, cancel: asyncio.Event) -> None:
    if args.no_reconcile:
        pair = edit(
            name=args.name,
            side=side,
            payload=args.value,
            expected_revision=args.expected_revision,
        )
        log.info("Stored %s of %s; consistency is unknown until checked", side, pair.name)
        return
    change = change_destination if side is Side.DESTINATION else change_source
    _print_change(
        change(
            name=args.name,
            payload=args.value,
            expected_revision=args.expected_revision,
            metric=args.metric,
            cancel=cancel,
        )
    )


def _run_pair_command(args: argparse.Namespace, cancel: asyncio.Event) -> None:
    command = args.pair_command
    if command == "track":
        pair = track(
            name=args.name,
            source=args.source,
            destination=args.destination,
            source_domain=args.source_domain,
            destination_domain=args.destination_domain,
        )
        log.info("Tracking pair %s (%s)", pair.name, pair.id)
    elif command == "update-destination":
        _run_update(args, Side.DESTINATION, cancel)
    elif command == "update-source":
        _run_update(args, Side.SOURCE, cancel)
    elif command == "show":
        _print_pair(show(name=args.name))
    elif command == "check":
        print("consistent" if check(name=args.name) else "inconsistent")
    elif command == "list":
        for pair in list_tracked():
            print(f"{pair.name}\trevision={pair.revision}\tconsistent={pair.consistent}")
    elif command == "remove":
        remove(name=args.name)
        log.info("Stopped tracking %s", args.name)
    elif command == "history":
        for record in history(name=args.name):
            diff = "-" if record.diff is None else f"{record.diff:.4f}"
            review = " needs-review" if record.needs_review else ""
            print(
                f"{record.created_at.isoformat()}\t{record.changed_side}\t"
                f"{record.outcome}\tdiff={diff}{review}"
            )
    else:
        raise ValueError(f"Unsupported pair command: {command}")


def _run_command(args: argparse.Namespace, cancel: asyncio.Event) -> None:
    if args.command == "reconcile":
        result = reconcile_texts(
            args.source,
            args.old_destination,
            args.new_destination,
            source_label=args.source_domain or "source",
            destination_label=args.destination_domain or "destination",
            metric=args.metric,
            tolerance=args.tolerance,
            cancel=cancel,
        )
        print(result.source)
    elif args.command == "pair":
        _run_pair_command(args, cancel)
    else:
        raise ValueError(f"Unsupported command: {args.command}")


def interrupt_handler(cancel: asyncio.Event) -> Callable[[int, FrameType | None], None]:
    """SIGINT handler cancelling the running reconciliation through ``cancel``.

    Outside an event loop there is nothing to cancel and the process exits.
    """

    def handler(_signal_received: int, _frame: FrameType | None) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            log.info("Closed by user (Ctrl+C)")
            sys.exit(EXIT_INTERRUPTED)
        log.warning("Interrupted by user (Ctrl+C), cancelling reconciliation")
        loop.call_soon_threadsafe(cancel.set)

    return handler


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)
    try:
        _resolve_values(parsed_args)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(EXIT_VALIDATION)

    cancel = asyncio.Event()
    previous_handler = getsignal(SIGINT)
    signal(SIGINT, interrupt_handler(cancel))
    try:
        _run_command(parsed_args, cancel)
    except ReconciliationCancelledError as exc:
        log.error("Reconciliation cancelled, no changes were applied: %s", exc)  # noqa: TRY400
        sys.exit(EXIT_RECONCILIATION_FAILED)
    except ReconciliationError as exc:
        log.error(  # noqa: TRY400
            "Could not reconcile automatically, manual intervention required: %s", exc
        )
        sys.exit(EXIT_RECONCILIATION_FAILED)
    except (PairNotFoundError, DuplicatePairError, StaleRevisionError) as exc:
        log.error("%s", exc)  # noqa: TRY400
        sys.exit(EXIT_VALIDATION)
    except Exception:
        log.exception("Fatal error")
        sys.exit(EXIT_FATAL)
    finally:
        signal(SIGINT, previous_handler)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    main()


if __name__ == "__main__":
    run()
