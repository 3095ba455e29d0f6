"""Command-line entrypoints for the event authoring core."""
from __future__ import annotations

import argparse
import asyncio
import json
import os
from datetime import tzinfo
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
import structlog
import tomllib
from dateutil import tz as dateutil_tz
from dotenv import load_dotenv

from authoring.clients.api import AuthClient, EventApiClient
from authoring.clients.session import ApiSession, create_api_session
from authoring.clients.storage import ImageStorageClient
from authoring.domain.errors import AuthoringError
from authoring.form.drafts import apply_draft, clear_draft, load_draft, save_draft
from authoring.form.fields import FormFieldState
from authoring.form.guard import require_role
from authoring.form.images import ImageFile
from authoring.form.session import AuthoringSession
from authoring.form.slots import TimeSlotEditor
from authoring.observability.log import configure_logging
from authoring.observability.metrics import MetricsRegistry
from authoring.quality.schema import SchemaRegistry
from authoring.quality.validate import validate

LOGGER = structlog.get_logger(__name__)


def load_settings(path: Path) -> Dict[str, Any]:
    """Read the TOML configuration file."""
    with path.open("rb") as handle:
        return tomllib.load(handle)


def resolve_timezone(name: str) -> tzinfo:
    zone = dateutil_tz.gettz(name)
    if zone is None:
        raise ValueError(f"Unknown timezone: {name}")
    return zone


def build_arg_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(prog="authoring", description="Event authoring for coaches")
    sub = parser.add_subparsers(dest="command", required=True)

    pull = sub.add_parser("pull", help="Load an existing event into a local draft")
    pull.add_argument("event_id", help="Event to open for editing")
    pull.add_argument("--name", help="Draft name (defaults to the event id)")

    check = sub.add_parser("validate", help="Check a local draft against the submission rules")
    check.add_argument("name", help="Draft name")

    submit = sub.add_parser("submit", help="Upload images and save or publish a local draft")
    submit.add_argument("name", help="Draft name")
    submit.add_argument("--status", choices=["draft", "published"], default="draft")
    submit.add_argument("--cover", type=Path, help="Cover image to upload")
    submit.add_argument("--gallery", type=Path, nargs="*", default=[], help="Gallery images to upload")

    delete = sub.add_parser("delete", help="Delete an existing event")
    delete.add_argument("event_id", help="Event to delete")
    delete.add_argument("--yes", action="store_true", help="Confirm the deletion")

    return parser


def _api_settings(settings: Dict[str, Any]) -> Dict[str, Any]:
    api = settings.get("api", {})
    return {
        "base_url": os.getenv("AUTHORING_API_BASE_URL") or api.get("base_url", ""),
        "token": os.getenv("AUTHORING_API_TOKEN"),
        "user_agent": api.get("user_agent", "ecoevents-authoring"),
        "timeout": float(api.get("timeout_seconds", 15)),
    }


async def _open_session(
    http: ApiSession,
    settings: Dict[str, Any],
    metrics: MetricsRegistry,
    *,
    event_id: Optional[str] = None,
    load: bool = False,
    **extra: Any,
) -> AuthoringSession:
    auth = AuthClient(http.api)
    identity = require_role(await auth.get_current_caller_identity(), "coach")
    options = dict(
        identity=identity,
        api=EventApiClient(http.api),
        storage=ImageStorageClient(http.api, http.uploads),
        auth=auth,
        tz=resolve_timezone(settings["app"].get("timezone", "UTC")),
        listing_path=settings["app"].get("listing_path", "/my-events"),
        metrics=metrics,
        **extra,
    )
    if load:
        return await AuthoringSession.open(event_id, **options)
    return AuthoringSession(event_id=event_id, **options)


def _report(session: AuthoringSession) -> List[Dict[str, str]]:
    return [
        {"variant": notice.variant, "title": notice.title, "description": notice.description}
        for notice in session.notices.notices
    ]


async def run_pull(
    args: argparse.Namespace,
    settings: Dict[str, Any],
    metrics: MetricsRegistry,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, Any]:
    drafts = Path(settings["app"]["drafts_dir"])
    async with create_api_session(**_api_settings(settings), transport=transport) as http:
        session = await _open_session(http, settings, metrics, event_id=args.event_id, load=True)
    path = save_draft(drafts, args.name or args.event_id, session.to_draft())
    LOGGER.info("draft_pulled", event_id=args.event_id, path=str(path))
    return {"event_id": args.event_id, "draft": str(path)}


def run_validate(args: argparse.Namespace, settings: Dict[str, Any]) -> List[Dict[str, Any]]:
    registry = SchemaRegistry(Path(settings["app"]["schemas_dir"]))
    payload = load_draft(Path(settings["app"]["drafts_dir"]), args.name, registry)
    if payload is None:
        raise FileNotFoundError(f"No draft named {args.name}")
    fields = FormFieldState()
    slots = TimeSlotEditor(fields, tz=resolve_timezone(settings["app"].get("timezone", "UTC")))
    apply_draft(payload, fields=fields, slots=slots)
    return [
        {"rule": violation.rule.value, "message": violation.message, "slot_index": violation.slot_index}
        for violation in validate(fields.draft, slots.slots)
    ]


async def run_submit(
    args: argparse.Namespace,
    settings: Dict[str, Any],
    metrics: MetricsRegistry,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, Any]:
    drafts = Path(settings["app"]["drafts_dir"])
    registry = SchemaRegistry(Path(settings["app"]["schemas_dir"]))
    payload = load_draft(drafts, args.name, registry)
    if payload is None:
        raise FileNotFoundError(f"No draft named {args.name}")

    async with create_api_session(**_api_settings(settings), transport=transport) as http:
        session = await _open_session(
            http,
            settings,
            metrics,
            event_id=payload.get("event_id"),
            on_success=lambda: clear_draft(drafts, args.name),
        )
        session.apply_draft(payload)
        if args.cover:
            await session.images.upload_cover(ImageFile.from_path(args.cover))
        if args.gallery:
            await session.images.upload_gallery_images([ImageFile.from_path(path) for path in args.gallery])
        result = await session.submit(args.status)

    if not result.ok:
        # Keep uploaded images so a retry does not upload them again.
        save_draft(drafts, args.name, session.to_draft())
    return {
        "ok": result.ok,
        "state": result.state.value,
        "mode": session.mode,
        "violations": [violation.message for violation in result.violations],
        "error": str(result.error) if result.error else None,
        "notices": _report(session),
        "location": session.navigator.location,
    }


async def run_delete(
    args: argparse.Namespace,
    settings: Dict[str, Any],
    metrics: MetricsRegistry,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, Any]:
    async with create_api_session(**_api_settings(settings), transport=transport) as http:
        session = await _open_session(http, settings, metrics, event_id=args.event_id)
        result = await session.delete(confirmed=args.yes)
    return {
        "ok": result.ok,
        "error": str(result.error) if result.error else None,
        "notices": _report(session),
        "location": session.navigator.location,
    }


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the CLI."""
    load_dotenv()
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    settings = load_settings(Path("config/settings.toml"))
    configure_logging(Path("config/logging.yaml"))
    metrics = MetricsRegistry()

    try:
        if args.command == "validate":
            report = run_validate(args, settings)
            print(json.dumps(report, indent=2))
            if report:
                raise SystemExit(1)
            return

        if args.command == "pull":
            print(json.dumps(asyncio.run(run_pull(args, settings, metrics)), indent=2))
            return

        if args.command == "submit":
            outcome = asyncio.run(run_submit(args, settings, metrics))
            print(json.dumps(outcome, indent=2))
            if not outcome["ok"]:
                raise SystemExit(1)
            return

        if args.command == "delete":
            outcome = asyncio.run(run_delete(args, settings, metrics))
            print(json.dumps(outcome, indent=2))
            if not outcome["ok"]:
                raise SystemExit(1)
    except (AuthoringError, FileNotFoundError, ValueError, httpx.HTTPError) as exc:
        LOGGER.error("command_failed", command=args.command, error=str(exc))
        print(json.dumps({"ok": False, "error": str(exc)}, indent=2))
        raise SystemExit(1) from exc
    finally:
        metrics.log_snapshot(command=args.command)


if __name__ == "__main__":
    main()
