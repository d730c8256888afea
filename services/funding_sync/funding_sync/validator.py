"""Plausibility gate run before anything is written."""

from __future__ import annotations

from typing import Dict

from .config import Thresholds
from .errors import ValidationError
from .logging import get_logger
from .models import PARTIES, POSITION_PATTERN, RegionRecord, Stats

logger = get_logger(__name__)


def validate(stats: Stats, regions: Dict[str, RegionRecord], thresholds: Thresholds) -> None:
    """Raise ValidationError naming the first failed check."""
    logger.info("validate_start", **stats.to_dict())

    if stats.region_count < thresholds.min_regions:
        _fail("region_count", stats.region_count, f">= {thresholds.min_regions}")
    if stats.record_count < thresholds.min_records:
        _fail("record_count", stats.record_count, f">= {thresholds.min_records}")
    if stats.total_amount < thresholds.min_total:
        _fail("total_amount", stats.total_amount, f">= {thresholds.min_total}")

    for state, region in regions.items():
        for record in region.records:
            if not record.name.strip():
                _fail("record_name", f"{state}: empty", "non-empty name")
            if not POSITION_PATTERN.match(record.position):
                _fail("position_code", f"{state}/{record.name}: {record.position!r}", "XX-SEN or XX-##")
            if record.party not in PARTIES:
                _fail("party", f"{state}/{record.name}: {record.party!r}", "R or D")
            if record.lobby_total < 0:
                _fail("lobby_total", f"{state}/{record.name}: {record.lobby_total}", ">= 0")

    logger.info("validate_passed")


def _fail(check: str, observed, expected) -> None:
    error = ValidationError(check, observed, expected)
    logger.error("validate_failed", check=check, observed=str(observed), expected=str(expected))
    raise error
