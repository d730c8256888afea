"""Change detection between the published snapshot and a new extraction."""

from __future__ import annotations

from typing import Dict, Optional

from .logging import get_logger
from .models import AmountChange, ChangeReport, RecordChange, RegionRecord, Snapshot

logger = get_logger(__name__)


def diff(
    old: Optional[Snapshot],
    new_regions: Dict[str, RegionRecord],
    noise_threshold: int = 1000,
) -> ChangeReport:
    """Report added/removed records and material per-state amount changes.

    A first run (no previous snapshot) yields an empty report.
    """
    report = ChangeReport()
    if old is None:
        logger.info("diff_skipped", reason="no_previous_snapshot")
        return report

    for state, new_region in new_regions.items():
        old_region = old.regions.get(state)
        if old_region is None:
            report.new_records.extend(RecordChange(state, name) for name in _ordered_names(new_region))
            continue

        delta = new_region.total_amount - old_region.total_amount
        if abs(delta) > noise_threshold:
            report.amount_changes.append(
                AmountChange(state, old_amount=old_region.total_amount, new_amount=new_region.total_amount)
            )

        old_names = old_region.names()
        new_names = new_region.names()
        report.new_records.extend(
            RecordChange(state, name) for name in _ordered_names(new_region) if name not in old_names
        )
        report.removed_records.extend(
            RecordChange(state, name) for name in _ordered_names(old_region) if name not in new_names
        )

    for state, old_region in old.regions.items():
        if state not in new_regions:
            report.removed_records.extend(RecordChange(state, name) for name in _ordered_names(old_region))

    if report.is_empty():
        logger.info("diff_no_changes")
    else:
        logger.info(
            "diff_changes_detected",
            new=len(report.new_records),
            removed=len(report.removed_records),
            amount_changes=len(report.amount_changes),
            total_delta=report.total_delta,
        )
    return report


def _ordered_names(region: RegionRecord) -> list[str]:
    return list(dict.fromkeys(record.name for record in region.records))
