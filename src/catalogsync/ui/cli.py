from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING, cast

from dotenv import load_dotenv

from catalogsync.app import (
    discard_all_changes,
    discard_change,
    get_status,
    list_entities,
    publish_changes,
    stage_entity,
)
from catalogsync.config import configure_logging
from catalogsync.domain.model import KINDS, ChangeKind

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Stage and publish catalog edits")
    parser.add_argument(
        "--kind",
        choices=sorted(KINDS),
        default="products",
        help="Catalog to work on (default: %(default)s)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("status", help="Show staged changes")

    listing = subparsers.add_parser("list", help="List records of the remote document")
    listing.add_argument("--search", type=str, help="Substring to look for")
    listing.add_argument("--category", type=str, help="Only records of this category")

    stage = subparsers.add_parser("stage", help="Stage a new, modify or delete change")
    stage.add_argument("change_kind", choices=[kind.value for kind in ChangeKind])
    stage.add_argument(
        "--data",
        type=Path,
        required=True,
        help="JSON file with the record, using field names or document keys",
    )
    stage.add_argument("--image", type=Path, help="Image to attach to the record")

    discard = subparsers.add_parser("discard", help="Drop one staged change")
    discard.add_argument("change_id", type=str)

    subparsers.add_parser("discard-all", help="Drop every staged change and image")
    subparsers.add_parser("publish", help="Commit staged changes to the remote document")

    return parser.parse_args(list(argv))


def _read_entity_data(path: Path) -> Mapping[str, object]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ValueError(f"Could not read {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object")
    return cast(dict[str, object], data)


def _report_progress(percent: int | None, message: str) -> None:
    if percent is None:
        log.info("  %s", message)
    else:
        log.info("[%3d%%] %s", percent, message)


def _run(args: argparse.Namespace, entity_data: Mapping[str, object] | None) -> None:
    kind: str = args.kind
    if args.command == "status":
        report = get_status(kind)
        stats = report.stats
        log.info(
            "%s staged changes (new=%s, modify=%s, delete=%s, images=%s)%s",
            stats.total,
            stats.new,
            stats.modify,
            stats.delete,
            stats.with_assets,
            "" if report.configured else "; no token configured, publishing disabled",
        )
        for change in report.changes:
            log.info("  %s %-6s %s", change.change_id, change.kind, change.snapshot_name)
    elif args.command == "list":
        for entity in list_entities(kind, search=args.search, category=args.category):
            log.info(
                "  %-5s %-30s %-15s %10.2f",
                entity.id,
                entity.name,
                entity.category,
                entity.final_price,
            )
    elif args.command == "stage":
        assert entity_data is not None
        change = stage_entity(kind, args.change_kind, entity_data, image_path=args.image)
        log.info("Staged %s", change.change_id)
    elif args.command == "discard":
        discard_change(kind, args.change_id)
        log.info("Discarded %s", args.change_id)
    elif args.command == "discard-all":
        discard_all_changes(kind)
    elif args.command == "publish":
        result = publish_changes(kind, progress=_report_progress)
        log.info(result.message)
    else:
        raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    entity_data: Mapping[str, object] | None = None
    try:
        parsed_args = _parse_args(args_list)
        configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)
        if parsed_args.command == "stage":
            entity_data = _read_entity_data(parsed_args.data)
            if parsed_args.image is not None and not parsed_args.image.is_file():
                raise ValueError(f"Image not found: {parsed_args.image}")
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        _run(parsed_args, entity_data)
    except Exception:
        log.exception("Command %s failed", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
