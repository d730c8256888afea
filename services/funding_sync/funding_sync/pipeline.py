"""One synchronization run: fetch, extract, aggregate, validate, diff, persist, publish."""

from __future__ import annotations

import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

import structlog

from .aggregator import aggregate
from .config import AppConfig
from .differ import diff
from .errors import PipelineError, PublishError
from .extractor import RecordExtractor
from .fetcher import SourceFetcher
from .logging import get_logger
from .models import ChangeReport, RegionRecord, RunResult, Snapshot, Stats
from .publisher import GitPublisher
from .storage import SnapshotStore
from .validator import validate

logger = get_logger(__name__)


class RunLock:
    """Serializes runs that write the same snapshot file within this process."""

    _registry: Dict[str, threading.Lock] = {}
    _registry_guard = threading.Lock()

    def __init__(self, data_path: Path) -> None:
        self.key = str(Path(data_path).resolve())
        with self._registry_guard:
            self._lock = self._registry.setdefault(self.key, threading.Lock())

    def locked(self) -> bool:
        return self._lock.locked()

    def __enter__(self) -> "RunLock":
        if not self._lock.acquire(blocking=False):
            logger.info("run_lock_wait", path=self.key)
            self._lock.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._lock.release()


class SyncPipeline:
    def __init__(
        self,
        config: AppConfig,
        fetcher: SourceFetcher,
        extractor: RecordExtractor,
        store: SnapshotStore,
        publisher: GitPublisher,
    ) -> None:
        self.config = config
        self.fetcher = fetcher
        self.extractor = extractor
        self.store = store
        self.publisher = publisher
        self.run_lock = RunLock(store.data_path)

    def run(self, trigger: str = "manual") -> RunResult:
        if not self.config.update_enabled:
            logger.info("update_disabled", trigger=trigger)
            return RunResult(
                success=False,
                timestamp=_now(),
                trigger=trigger,
                error="Updates disabled",
                error_code="UPDATES_DISABLED",
            )

        with self.run_lock, structlog.contextvars.bound_contextvars(
            run_id=uuid.uuid4().hex[:12], trigger=trigger
        ):
            logger.info("run_start", source=self.config.source_url)
            result = self._run_locked(trigger)
            if result.success:
                logger.info("run_done", committed=result.committed, publish_error=result.publish_error)
            else:
                logger.error("run_failed", error=result.error, error_code=result.error_code)
            return result

    def _run_locked(self, trigger: str) -> RunResult:
        try:
            previous = self.store.load()
            document = self.fetcher.fetch(self.config.source_url)
            extracted = self.extractor.extract(document)
            regions, stats = aggregate(extracted)
            validate(stats, regions, self.config.thresholds)
            changes = diff(previous, regions, self.config.diff_noise_threshold)

            backup_path = None
            if previous is not None and _snapshots_equal(previous, regions, self.config.source_url):
                logger.info("snapshot_up_to_date", last_updated=previous.retrieved_at.isoformat())
            else:
                snapshot = Snapshot(
                    retrieved_at=_now(),
                    source=self.config.source_url,
                    stats=stats,
                    regions=regions,
                )
                backup_path = self.store.persist(snapshot)
        except PipelineError as exc:
            return RunResult(
                success=False,
                timestamp=_now(),
                trigger=trigger,
                error=str(exc),
                error_code=exc.error_code,
            )
        except Exception as exc:
            logger.exception("run_unexpected_error", error=str(exc))
            return RunResult(
                success=False,
                timestamp=_now(),
                trigger=trigger,
                error=str(exc),
                error_code="UNEXPECTED_ERROR",
            )

        committed, publish_error = self._publish(stats, changes)
        return RunResult(
            success=True,
            timestamp=_now(),
            trigger=trigger,
            stats=stats,
            changes=changes,
            committed=committed,
            publish_error=publish_error,
            backup=str(backup_path) if backup_path else None,
        )

    def _publish(self, stats: Stats, changes: ChangeReport) -> tuple[bool, Optional[str]]:
        try:
            return self.publisher.publish(stats, changes), None
        except PublishError as exc:
            logger.warning("publish_failed", error=str(exc))
            return False, str(exc)


def _snapshots_equal(previous: Snapshot, regions: Dict[str, RegionRecord], source: str) -> bool:
    if previous.source != source:
        return False
    return _canonical_regions(previous.regions) == _canonical_regions(regions)


def _canonical_regions(regions: Dict[str, RegionRecord]) -> dict:
    return {
        state: (
            region.total_amount,
            sorted((record.to_dict() for record in region.records), key=lambda item: (item["name"], item["position"])),
        )
        for state, region in regions.items()
    }


def _now() -> datetime:
    return datetime.now(timezone.utc)
