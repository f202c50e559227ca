"""High-level orchestration for zonesync."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Iterable

from .applier import apply_diff
from .cloudflare import CloudflareClient, fetch_live_records
from .config import AppConfig
from .diffing import diff_records
from .gitops import relative_to_root, resolve_manifest_dir
from .models import (
    ApplyError,
    DiffResult,
    LiveRecord,
    ManifestError,
    SyncReport,
    ZoneMapping,
    ZoneSyncError,
)
from .yaml_loader import LoadResult, load_manifests

LOG = logging.getLogger("zonesync")


@dataclass
class PlanResult:
    """Holds everything needed to apply a change to one zone."""

    mapping: ZoneMapping
    label: str
    manifests: LoadResult
    live: list[LiveRecord]
    diff: DiffResult
    skipped: bool = False

    @property
    def errors(self) -> list[ManifestError]:
        """Manifests that were skipped while loading."""
        return self.manifests.errors


class ZoneSyncController:
    """Coordinates plan/sync operations across zones.

    ``client_factory`` builds a fresh provider client per zone when zones run
    in parallel; without it ``sync_all`` stays sequential on ``client``.
    """

    def __init__(
        self,
        config: AppConfig,
        client: CloudflareClient,
        client_factory: Callable[[], CloudflareClient] | None = None,
    ):
        """Store configuration and the provider client for subsequent runs."""
        self.config = config
        self.client = client
        self.client_factory = client_factory

    def label_for(self, mapping: ZoneMapping) -> str:
        """Return a display label for a mapping's manifest directory."""
        directory = resolve_manifest_dir(mapping.directory, self.config.manifest_root)
        return relative_to_root(directory, self.config.manifest_root)

    def load(self, mapping: ZoneMapping) -> LoadResult:
        """Load the desired records for a mapping."""
        directory = resolve_manifest_dir(mapping.directory, self.config.manifest_root)
        if not directory.is_dir():
            raise ZoneSyncError(f"Manifest directory '{mapping.directory}' not found.")
        return load_manifests(directory, self.config)

    def plan(
        self,
        mapping: ZoneMapping,
        manifests: LoadResult | None = None,
        client: CloudflareClient | None = None,
    ) -> PlanResult:
        """Compute the diff between the manifests and the live zone.

        A directory without usable manifests yields a skipped, empty plan and
        the live zone is not fetched.
        """
        if manifests is None:
            manifests = self.load(mapping)
        label = self.label_for(mapping)
        if not manifests.records:
            LOG.info("No manifest files found in %s. Skipping.", label)
            return PlanResult(mapping=mapping, label=label, manifests=manifests, live=[], diff=DiffResult(), skipped=True)

        live = fetch_live_records(client or self.client, mapping.zone_id, self.config)
        diff = diff_records(manifests.records, live, duplicate_policy=self.config.duplicate_policy)
        return PlanResult(mapping=mapping, label=label, manifests=manifests, live=live, diff=diff)

    def sync_zone(
        self,
        mapping: ZoneMapping,
        dry_run: bool = False,
        client: CloudflareClient | None = None,
    ) -> SyncReport:
        """Reconcile one zone, capturing any failure in the report."""
        client = client or self.client
        report = SyncReport(zone_label=self.label_for(mapping), zone_id=mapping.zone_id)
        try:
            plan = self.plan(mapping, client=client)
            if plan.skipped:
                report.skipped = True
                return report
            log_plan_summary(plan)
            counts = apply_diff(client, mapping.zone_id, plan.diff, dry_run=dry_run)
        except ApplyError as exc:
            report.deleted = exc.counts.deleted
            report.updated = exc.counts.updated
            report.created = exc.counts.created
            return _mark_failed(report, exc)
        except ZoneSyncError as exc:
            return _mark_failed(report, exc)

        report.deleted = counts.deleted
        report.updated = counts.updated
        report.created = counts.created
        LOG.info("Finished syncing %s.", report.zone_label)
        return report

    def sync_all(self, mappings: Iterable[ZoneMapping], dry_run: bool = False) -> list[SyncReport]:
        """Reconcile every mapping independently, preserving input order."""
        mappings = list(mappings)
        workers = max(1, min(self.config.max_workers, len(mappings) or 1))
        if workers > 1 and self.client_factory is None:
            LOG.debug("No client factory configured; syncing %s zones sequentially.", len(mappings))
            workers = 1
        if workers == 1:
            return [self.sync_zone(mapping, dry_run=dry_run) for mapping in mappings]

        def _sync(mapping: ZoneMapping) -> SyncReport:
            return self.sync_zone(mapping, dry_run=dry_run, client=self.client_factory())

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="zonesync") as pool:
            return list(pool.map(_sync, mappings))


def configure_logging(level: str) -> None:
    """Configure logging output."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def log_plan_summary(plan: PlanResult) -> None:
    """Log the per-zone operation counts before anything is mutated."""
    diff = plan.diff
    LOG.info("== Syncing %s (zone: %s) ==", plan.label, plan.mapping.zone_id)
    LOG.info(" - to create: %s", len(diff.create))
    LOG.info(" - to update: %s", len(diff.update))
    LOG.info(" - to delete: %s", len(diff.delete))


def overall_failed(reports: Iterable[SyncReport]) -> bool:
    """Return True if at least one zone failed."""
    return any(report.failed for report in reports)


def log_sync_summary(reports: list[SyncReport]) -> None:
    """Log one line per zone plus the aggregated outcome."""
    for report in reports:
        if report.failed:
            status = "FAILED"
        elif report.skipped:
            status = "skipped"
        else:
            status = "ok"
        LOG.info(
            "%s (zone %s): %s, created=%s updated=%s deleted=%s",
            report.zone_label,
            report.zone_id,
            status,
            report.created,
            report.updated,
            report.deleted,
        )
    if overall_failed(reports):
        LOG.error("Some domains failed to sync.")
    else:
        LOG.info("All domains synced successfully.")


def _mark_failed(report: SyncReport, exc: Exception) -> SyncReport:
    """Record a zone-level failure."""
    LOG.error("[%s] %s", report.zone_label, exc)
    report.failed = True
    report.error = str(exc)
    return report

