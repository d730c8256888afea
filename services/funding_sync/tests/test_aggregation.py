import pytest

from funding_sync.aggregator import aggregate
from funding_sync.config import Thresholds
from funding_sync.errors import ValidationError
from funding_sync.extractor import normalize_regions
from funding_sync.models import PersonRecord, RegionRecord
from funding_sync.validator import validate

from conftest import build_payload


def _region(*amounts, total=0):
    return RegionRecord(
        records=[
            PersonRecord(name=f"Member {i}", position=f"CA-{i + 1:02d}", party="D", lobby_total=amount)
            for i, amount in enumerate(amounts)
        ],
        total_amount=total,
    )


def test_aggregate_recomputes_region_and_overall_totals():
    regions = {"California": _region(100, 250, total=5), "Nevada": _region(1_000, total=999_999)}

    corrected, stats = aggregate(regions)

    assert corrected["California"].total_amount == 350
    assert corrected["Nevada"].total_amount == 1_000
    assert stats.region_count == 2
    assert stats.record_count == 3
    assert stats.total_amount == 1_350
    assert stats.total_amount == sum(region.total_amount for region in corrected.values())
    # inputs are left untouched
    assert regions["California"].total_amount == 5


def test_validate_accepts_plausible_dataset():
    regions, stats = aggregate(normalize_regions(build_payload()))
    validate(stats, regions, Thresholds())


@pytest.mark.parametrize(
    "payload_args, check",
    [
        ({"states": 10, "per_state": 45}, "region_count"),
        ({"states": 45, "per_state": 8}, "record_count"),
        ({"states": 50, "per_state": 9, "amount": 1_000}, "total_amount"),
    ],
)
def test_validate_names_failed_check(payload_args, check):
    regions, stats = aggregate(normalize_regions(build_payload(**payload_args)))

    with pytest.raises(ValidationError) as excinfo:
        validate(stats, regions, Thresholds())

    assert excinfo.value.check == check
    assert check in str(excinfo.value)


def test_validate_rejects_malformed_position_codes():
    regions = {"California": _region(200_000_000)}
    regions["California"].records[0].position = "California-12"
    regions, stats = aggregate(regions)

    with pytest.raises(ValidationError) as excinfo:
        validate(stats, regions, Thresholds(min_regions=1, min_records=1, min_total=1))

    assert excinfo.value.check == "position_code"


def test_thresholds_are_configurable():
    regions, stats = aggregate({"California": _region(10)})
    validate(stats, regions, Thresholds(min_regions=1, min_records=1, min_total=10))
