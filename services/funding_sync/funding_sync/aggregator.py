"""Recompute authoritative totals from extracted records."""

from __future__ import annotations

from typing import Dict

from .models import RegionRecord, Stats


def aggregate(regions: Dict[str, RegionRecord]) -> tuple[Dict[str, RegionRecord], Stats]:
    """Return copies of ``regions`` with corrected totals, plus top-level stats.

    Totals supplied upstream are never trusted.
    """
    corrected: Dict[str, RegionRecord] = {}
    record_count = 0
    total_amount = 0
    for name, region in regions.items():
        region_total = sum(record.lobby_total for record in region.records)
        corrected[name] = RegionRecord(records=list(region.records), total_amount=region_total)
        record_count += len(region.records)
        total_amount += region_total

    stats = Stats(
        region_count=len(corrected),
        record_count=record_count,
        total_amount=total_amount,
    )
    return corrected, stats
