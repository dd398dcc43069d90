# ruff: noqa: T201

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict, is_dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from dotenv import load_dotenv

from profilesync.adapters.inbound import parse_bulk_items
from profilesync.app import open_engine, submit_insights, submit_payloads
from profilesync.config import configure_logging
from profilesync.domain.errors import ValidationError
from profilesync.domain.schema import resolve_domain, resolve_field_alias

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence
    from types import FrameType

    from profilesync.domain.sync import ProfileSyncEngine

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Synchronise and reconcile entity profiles")
    subparsers = parser.add_subparsers(dest="command", required=True)

    submit = subparsers.add_parser("submit", help="Apply proposals from a JSON-lines file")
    submit.add_argument(
        "--file",
        type=Path,
        required=True,
        help="JSON-lines file; each line is an update payload or an insight batch",
    )

    conflicts = subparsers.add_parser("conflicts", help="List pending conflicts")
    conflicts.add_argument("--entity", type=str, help="Restrict to one entity id")
    conflicts.add_argument("--limit", type=int, help="Maximum number of conflicts to list")

    resolve = subparsers.add_parser("resolve", help="Resolve one pending conflict")
    resolve.add_argument("--conflict-id", type=str, required=True)
    resolve.add_argument(
        "--value", type=str, required=True, help="Selected value, encoded as JSON"
    )
    resolve.add_argument("--reason", type=str)
    resolve.add_argument("--by", type=str, required=True, help="Name of the resolving user")

    bulk = subparsers.add_parser("resolve-bulk", help="Resolve conflicts listed in a JSON file")
    bulk.add_argument(
        "--file",
        type=Path,
        required=True,
        help="JSON array of {conflictId, selectedValue, reason} objects",
    )
    bulk.add_argument("--by", type=str, required=True, help="Name of the resolving user")

    correct = subparsers.add_parser("correct", help="Manually correct one profile field")
    correct.add_argument("--entity", type=str, required=True)
    correct.add_argument("--domain", type=str, required=True)
    correct.add_argument("--field", type=str, required=True)
    correct.add_argument(
        "--value", type=str, required=True, help="Corrected value, encoded as JSON"
    )
    correct.add_argument("--reason", type=str, required=True)
    correct.add_argument("--by", type=str, required=True, help="Name of the correcting user")

    undo = subparsers.add_parser("undo", help="Revert one audit log entry")
    undo.add_argument("--entity", type=str, required=True)
    undo.add_argument("--log-id", type=str, required=True)
    undo.add_argument("--by", type=str, required=True, help="Name of the user performing the undo")

    history = subparsers.add_parser("history", help="Show the audit history of an entity")
    history.add_argument("--entity", type=str, required=True)
    history.add_argument("--limit", type=int, default=50)
    history.add_argument(
        "--corrections",
        action="store_true",
        help="Only list manual corrections",
    )

    identity = subparsers.add_parser("identity", help="Show the unified identity of an entity")
    identity.add_argument("--entity", type=str, required=True)

    stats = subparsers.add_parser("stats", help="Show audit and execution statistics")
    stats.add_argument("--entity", type=str, help="Restrict audit statistics to one entity id")

    delete = subparsers.add_parser("delete", help="Remove every stored record of an entity")
    delete.add_argument("--entity", type=str, required=True)

    return parser.parse_args(list(argv))


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValueError(f"Invalid UUID: {value}") from exc


def _parse_json_value(value: str) -> Any:  # noqa: ANN401
    try:
        return json.loads(value)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON value: {value}") from exc


def _read_json_lines(path: Path) -> Iterator[dict[str, Any]]:
    with path.open(encoding="utf-8") as handle:
        for number, line in enumerate(handle, start=1):
            stripped = line.strip()
            if not stripped:
                continue
            try:
                document = json.loads(stripped)
            except json.JSONDecodeError as exc:
                raise ValueError(f"{path}:{number}: invalid JSON") from exc
            if not isinstance(document, dict):
                raise ValueError(f"{path}:{number}: expected a JSON object")
            yield document


def _json_default(value: object) -> object:
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    return str(value)


def _emit(payload: object) -> None:
    print(json.dumps(payload, default=_json_default, indent=2, sort_keys=True))


def _run_submit(engine: ProfileSyncEngine, path: Path) -> None:
    documents = list(_read_json_lines(path))
    updates = [document for document in documents if "field" in document]
    batches = [document for document in documents if "field" not in document]

    results = submit_payloads(engine, updates)
    for batch in batches:
        results.extend(submit_insights(engine, batch))

    applied = sum(1 for result in results if result is not None and result.applied)
    conflicts = sum(1 for result in results if result is not None and result.conflict_id)
    failed = sum(1 for result in results if result is None)
    log.info(
        "Submitted %s proposals: applied=%s, conflicts=%s, failed=%s",
        len(results),
        applied,
        conflicts,
        failed,
    )
    _emit({"results": results, "applied": applied, "conflicts": conflicts, "failed": failed})


def _dispatch(engine: ProfileSyncEngine, args: argparse.Namespace) -> None:  # noqa: C901
    if args.command == "submit":
        _run_submit(engine, args.file)
    elif args.command == "conflicts":
        _emit(engine.get_pending_conflicts(args.entity, limit=args.limit))
    elif args.command == "resolve":
        _emit(
            engine.resolve_conflict_manually(
                _parse_uuid(args.conflict_id),
                _parse_json_value(args.value),
                args.reason,
                args.by,
            )
        )
    elif args.command == "resolve-bulk":
        raw_items = json.loads(args.file.read_text(encoding="utf-8"))
        if not isinstance(raw_items, list):
            raise ValidationError("Bulk resolution file must contain a JSON array")
        _emit(engine.bulk_resolve_conflicts(parse_bulk_items(raw_items), args.by))
    elif args.command == "correct":
        domain = resolve_domain(args.domain)
        field = resolve_field_alias(domain, args.field) or args.field
        _emit(
            engine.correct_field(
                args.entity, domain, field, _parse_json_value(args.value), args.reason, args.by
            )
        )
    elif args.command == "undo":
        _emit(engine.undo(args.entity, _parse_uuid(args.log_id), args.by))
    elif args.command == "history":
        if args.corrections:
            _emit(engine.get_correction_history(args.entity, args.limit))
        else:
            _emit(engine.get_audit_history(args.entity, args.limit))
    elif args.command == "identity":
        _emit(engine.get_unified_identity(args.entity))
    elif args.command == "stats":
        _emit({"audit": engine.get_sync_statistics(args.entity), "async": engine.get_async_stats()})
    elif args.command == "delete":
        engine.delete_entity(args.entity)
    else:
        raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        engine = open_engine()
    except Exception:
        log.exception("Failed to open the profile sync engine")
        sys.exit(1)

    try:
        _dispatch(engine, parsed_args)
    except ValueError:
        # domain ValidationError is a ValueError as well
        log.exception("CLI validation error")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error while running %s", parsed_args.command)
        sys.exit(1)
    finally:
        engine.close()


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
