"""Command-line entry point for zonesync."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .cloudflare import CloudflareClient, fetch_live_records
from .config import AppConfig, load_config, parse_zone_mappings
from .controller import PlanResult, ZoneSyncController, configure_logging, log_sync_summary, overall_failed
from .exporter import (
    diff_to_dict,
    live_records_to_json,
    live_records_to_yaml,
    write_manifest_skeletons,
    write_output,
)
from .models import ConfigError, ZoneMapping, ZoneSyncError
from .validator import validate_manifests


def _build_parser() -> argparse.ArgumentParser:
    """Create the CLI parser."""
    parser = argparse.ArgumentParser(description="Synchronise Cloudflare DNS zones with record manifests.")
    parser.add_argument("--log-level", help="Override log level (default from config).")

    subparsers = parser.add_subparsers(dest="command", required=True)
    sync_parser = subparsers.add_parser("sync", help="Apply manifests to their zones.")
    _register_zone_arguments(sync_parser)
    sync_parser.add_argument("--dry-run", action="store_true", help="Log the operations without calling the API.")

    plan_parser = subparsers.add_parser("plan", help="Show pending changes per zone.")
    _register_zone_arguments(plan_parser)
    plan_parser.add_argument("--json", help="Optional path to write the diff JSON.")

    validate_parser = subparsers.add_parser("validate", help="Validate manifest files.")
    validate_parser.add_argument("paths", nargs="+", help="Manifest files or directories to check.")

    pull_parser = subparsers.add_parser("pull", help="Export the managed records of a zone.")
    pull_parser.add_argument("credential", help="Cloudflare API token.")
    pull_parser.add_argument("zone_id", help="Zone identifier to export.")
    destination = pull_parser.add_mutually_exclusive_group()
    destination.add_argument("--output", help="Path to write the exported records (default stdout).")
    destination.add_argument("--output-dir", help="Write one manifest skeleton per record into this directory.")
    pull_parser.add_argument(
        "--format",
        choices=["yaml", "json"],
        default="yaml",
        help="Serialization format for the exported records.",
    )

    return parser


def _register_zone_arguments(subparser: argparse.ArgumentParser) -> None:
    """Register arguments shared by sync/plan."""
    subparser.add_argument("credential", help="Cloudflare API token.")
    subparser.add_argument(
        "mappings",
        nargs="+",
        metavar="DOMAIN_DIR=ZONE_ID",
        help="Manifest directory and the zone it describes. Can be repeated.",
    )


def _require_credential(value: str) -> str:
    """Reject an empty API token."""
    if not value.strip():
        raise ConfigError("Cloudflare token must be provided as the first argument.")
    return value.strip()


def _emit_plan(plan: PlanResult) -> None:
    """Print a human-friendly diff for one zone."""
    diff = plan.diff
    print(f"Zone: {plan.label} ({plan.mapping.zone_id})")
    if plan.skipped:
        print(f"No manifest files found in {plan.label}. Skipping.")
        return
    print(f"Create: {len(diff.create)}")
    for record in diff.create:
        print(f" + {record.type} {record.name} -> {record.content} (ttl {record.ttl}, from {record.source_file})")
    print(f"Update: {len(diff.update)}")
    for change in diff.update:
        before, after = change.existing, change.desired
        print(f" ~ {after.type} {after.name} {before.content} -> {after.content} (from {after.source_file})")
    print(f"Delete: {len(diff.delete)}")
    for record in diff.delete:
        print(f" - {record.type} {record.name} -> {record.content}")
    for record in diff.duplicates:
        print(f" ! duplicate {record.type} {record.name} ({record.id}) left untouched")
    for error in plan.errors:
        print(f" ! skipped manifest {error}")
    if not diff.has_changes():
        print("No changes detected.")


def _run_sync(config: AppConfig, mappings: list[ZoneMapping], args: argparse.Namespace) -> int:
    """Execute the sync command."""
    client = CloudflareClient.from_config(args.credential, config)
    controller = ZoneSyncController(
        config,
        client,
        client_factory=lambda: CloudflareClient.from_config(args.credential, config),
    )
    reports = controller.sync_all(mappings, dry_run=args.dry_run)
    log_sync_summary(reports)
    return 1 if overall_failed(reports) else 0


def _run_plan(config: AppConfig, mappings: list[ZoneMapping], args: argparse.Namespace) -> int:
    """Execute the plan command."""
    client = CloudflareClient.from_config(args.credential, config)
    controller = ZoneSyncController(config, client)
    payload = []
    status = 0
    for mapping in mappings:
        try:
            plan = controller.plan(mapping)
        except ZoneSyncError as exc:
            print(f"Zone: {mapping.directory} ({mapping.zone_id})")
            print(f"Error: {exc}", file=sys.stderr)
            status = 1
            continue
        _emit_plan(plan)
        entry = diff_to_dict(plan.label, mapping.zone_id, plan.diff)
        entry["skipped"] = plan.skipped
        payload.append(entry)
    if args.json:
        write_output(Path(args.json), json.dumps(payload, indent=2))
        print(f"Wrote diff JSON to {args.json}")
    return status


def _run_validate(config: AppConfig, args: argparse.Namespace) -> int:
    """Execute the validate command."""
    paths = [Path(value) for value in args.paths]
    missing = [str(path) for path in paths if not path.exists()]
    if missing:
        raise ConfigError(f"Paths not found: {', '.join(missing)}")
    report = validate_manifests(
        paths,
        root=config.manifest_root,
        pattern=config.manifest_glob,
        templating=config.templating,
    )
    if report.checked == 0:
        print("No manifest files found.")
        return 0
    if report.ok:
        print(f"All manifests valid ({report.checked} files checked).")
        return 0
    print("Validation failed:")
    for error in report.errors:
        print(f"  - {error}")
    return 1


def _run_pull(config: AppConfig, args: argparse.Namespace) -> int:
    """Execute the pull command."""
    client = CloudflareClient.from_config(_require_credential(args.credential), config)
    records = fetch_live_records(client, args.zone_id, config)
    if args.output_dir:
        written = write_manifest_skeletons(Path(args.output_dir), records)
        print(f"Wrote {len(written)} manifest skeletons to {args.output_dir}")
        return 0
    if args.format == "json":
        content = live_records_to_json(args.zone_id, records)
    else:
        content = live_records_to_yaml(args.zone_id, records)
    if args.output:
        write_output(Path(args.output), content)
        print(f"Wrote {len(records)} records to {args.output}")
    else:
        print(content)
    return 0


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        mappings: list[ZoneMapping] = []
        if args.command in {"sync", "plan"}:
            args.credential = _require_credential(args.credential)
            mappings = parse_zone_mappings(args.mappings)
        config = load_config()
        configure_logging(args.log_level or config.log_level)
        if args.command == "sync":
            code = _run_sync(config, mappings, args)
        elif args.command == "plan":
            code = _run_plan(config, mappings, args)
        elif args.command == "validate":
            code = _run_validate(config, args)
        elif args.command == "pull":
            code = _run_pull(config, args)
        else:  # pragma: no cover - argparse ensures we never reach here
            parser.error(f"Unsupported command {args.command}")
    except ZoneSyncError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    except Exception as exc:  # noqa: BLE001
        print(f"Unexpected error: {exc}", file=sys.stderr)
        sys.exit(3)
    sys.exit(code)


if __name__ == "__main__":
    main()
