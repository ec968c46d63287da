#!/usr/bin/env python3
"""Main CLI entry point for sitedeploy."""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config.parser import load_config
from ..deploy.factory import build_orchestrator, build_snapshot_store, build_version_service
from ..deploy.orchestrator import PublishOptions
from ..exceptions import SiteDeployError
from ..logging import configure_logging
from ..remote.object_store import ObjectStoreClient
from ..storage.records import DeploymentRecordStore
from ..validation.gate import ValidationGate, format_validation_errors


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Versioned site publishing over the GitHub API")
    parser.add_argument("--version", action="version", version="sitedeploy 0.1.0")
    parser.add_argument("-c", "--config", type=str, help="Path to config.yaml")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Set logging level (default: WARNING)",
    )
    parser.add_argument(
        "--log-format",
        choices=["json", "console"],
        default="json",
        help="Log line format on stderr (default: json)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    validate_parser = subparsers.add_parser("validate", help="Validate a site-state file")
    validate_parser.add_argument("site_file", help="Path to the site-state JSON file")

    publish_parser = subparsers.add_parser("publish", help="Publish a site-state file")
    publish_parser.add_argument("site_file", help="Path to the site-state JSON file")
    publish_parser.add_argument("--dry-run", action="store_true", help="Run without remote writes")
    publish_parser.add_argument("--skip-review", action="store_true", help="Skip the code review stage")
    publish_parser.add_argument("--skip-live-wait", action="store_true", help="Do not wait for the live deployment")
    publish_parser.add_argument("-m", "--message", type=str, help="Commit message")

    snapshots_parser = subparsers.add_parser("snapshots", help="Production snapshots")
    snapshots_sub = snapshots_parser.add_subparsers(dest="snapshots_command")
    snapshots_sub.add_parser("list", help="List snapshots, newest first")
    get_parser = snapshots_sub.add_parser("get", help="Show one snapshot")
    get_parser.add_argument("snapshot_version", type=int, help="Snapshot version number")
    restore_parser = snapshots_sub.add_parser("restore", help="Regenerate published files from a snapshot")
    restore_parser.add_argument("snapshot_version", type=int, help="Snapshot version number")
    restore_parser.add_argument("--dry-run", action="store_true", help="Run without remote writes")

    versions_parser = subparsers.add_parser("versions", help="Saved versions on the working branch")
    versions_sub = versions_parser.add_subparsers(dest="versions_command")
    list_parser = versions_sub.add_parser("list", help="List saved versions")
    list_parser.add_argument("--per-page", type=int, default=100)
    save_parser = versions_sub.add_parser("save", help="Commit a site-state file as a new version")
    save_parser.add_argument("site_file", help="Path to the site-state JSON file")
    save_parser.add_argument("-m", "--message", required=True, help="Commit message")
    load_parser = versions_sub.add_parser("load", help="Print the site state of a version")
    target = load_parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--version", "--number", type=int, dest="version_number", help="Version number")
    target.add_argument("--sha", type=str, dest="commit_sha", help="Commit SHA")

    history_parser = subparsers.add_parser("history", help="Deployment records")
    history_parser.add_argument("--project", type=str, help="Filter by project id")
    history_parser.add_argument("--limit", type=int, default=20)

    return parser


def _read_site_file(path: str) -> Dict[str, Any]:
    site_path = Path(path)
    if not site_path.is_file():
        raise SiteDeployError(f"Site file does not exist: {site_path}")
    try:
        return json.loads(site_path.read_text(encoding="utf-8"))
    except ValueError as e:
        raise SiteDeployError(f"Site file is not valid JSON: {e}") from e


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI function."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    configure_logging(args.log_level, json_output=args.log_format == "json")

    try:
        if args.command == "validate":
            return validate_site(args)
        elif args.command == "publish":
            return publish_site(args)
        elif args.command == "snapshots":
            return snapshots_command(args, parser)
        elif args.command == "versions":
            return versions_command(args, parser)
        elif args.command == "history":
            return history_command(args)
    except SiteDeployError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    parser.print_help()
    return 1


def validate_site(args) -> int:
    """Validate without any configuration or network access."""
    result = ValidationGate().validate(_read_site_file(args.site_file))
    _print_json(result.to_dict())
    if not result.valid or result.warnings:
        print(format_validation_errors(result), file=sys.stderr)
    return 0 if result.valid else 1


def publish_site(args) -> int:
    config, _ = load_config(args.config)
    site_state = _read_site_file(args.site_file)
    options = PublishOptions(
        dry_run=args.dry_run,
        skip_review=args.skip_review,
        skip_live_wait=args.skip_live_wait,
        commit_message=args.message,
    )

    orchestrator = build_orchestrator(config)
    try:
        report = orchestrator.publish(site_state, options)
    finally:
        if orchestrator.channel is not None:
            orchestrator.channel.flush()

    _print_json(report.to_dict())
    return 0 if report.success else 1


def snapshots_command(args, parser) -> int:
    config, _ = load_config(args.config)
    store = build_snapshot_store(config, ObjectStoreClient(config))

    if args.snapshots_command == "list":
        snapshots = store.list()
        _print_json({
            "snapshots": [s.model_dump() for s in snapshots],
            "count": len(snapshots),
            "isFirstDeploy": not snapshots,
        })
        return 0
    if args.snapshots_command == "get":
        _print_json(store.get(args.snapshot_version).to_document())
        return 0
    if args.snapshots_command == "restore":
        orchestrator = build_orchestrator(config)
        try:
            result = orchestrator.restore_snapshot(args.snapshot_version, dry_run=args.dry_run)
        finally:
            if orchestrator.channel is not None:
                orchestrator.channel.flush()
        _print_json(result.model_dump())
        return 0

    parser.print_help()
    return 1


def versions_command(args, parser) -> int:
    config, _ = load_config(args.config)
    service = build_version_service(config)

    if args.versions_command == "list":
        versions = service.list_versions(per_page=args.per_page)
        _print_json({"versions": [v.model_dump() for v in versions], "total": len(versions)})
        return 0
    if args.versions_command == "save":
        result = service.save_version(_read_site_file(args.site_file), args.message)
        _print_json(result.model_dump())
        return 0
    if args.versions_command == "load":
        loaded = service.load_version(
            commit_sha=args.commit_sha, version_number=args.version_number
        )
        _print_json(loaded.model_dump())
        return 0

    parser.print_help()
    return 1


def history_command(args) -> int:
    config, _ = load_config(args.config, require_credentials=False)
    store = DeploymentRecordStore(config.layout.records_db)
    records = store.list(project_id=args.project, limit=args.limit)
    _print_json([r.model_dump(mode="json") for r in records])
    return 0


if __name__ == "__main__":
    sys.exit(main())
