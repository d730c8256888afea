from datetime import datetime, timezone

from funding_sync.aggregator import aggregate
from funding_sync.differ import diff
from funding_sync.models import PersonRecord, RegionRecord, Snapshot


def _person(name, amount, position="NY-10"):
    return PersonRecord(name=name, position=position, party="D", lobby_total=amount)


def _snapshot(regions):
    regions, stats = aggregate(regions)
    return Snapshot(
        retrieved_at=datetime(2024, 10, 20, 3, tzinfo=timezone.utc),
        source="https://source.test",
        stats=stats,
        regions=regions,
    )


def test_first_run_yields_empty_report():
    regions, _ = aggregate({"New York": RegionRecord(records=[_person("A", 10)])})
    report = diff(None, regions)
    assert report.is_empty()
    assert report.total_delta == 0


def test_amount_noise_is_suppressed():
    old = _snapshot({"New York": RegionRecord(records=[_person("A", 1_000_000)])})

    small, _ = aggregate({"New York": RegionRecord(records=[_person("A", 1_000_500)])})
    assert diff(old, small, noise_threshold=1000).amount_changes == []

    large, _ = aggregate({"New York": RegionRecord(records=[_person("A", 1_002_000)])})
    report = diff(old, large, noise_threshold=1000)
    assert len(report.amount_changes) == 1
    change = report.amount_changes[0]
    assert (change.state, change.old_amount, change.new_amount, change.delta) == (
        "New York",
        1_000_000,
        1_002_000,
        2_000,
    )
    assert report.total_delta == 2_000


def test_added_and_removed_records_by_name():
    old = _snapshot(
        {
            "New York": RegionRecord(records=[_person("A", 10), _person("B", 10, "NY-11")]),
            "Vermont": RegionRecord(records=[_person("V", 5, "VT-SEN")]),
        }
    )
    new, _ = aggregate(
        {
            "New York": RegionRecord(records=[_person("A", 10), _person("C", 10, "NY-12")]),
            "Maine": RegionRecord(records=[_person("M", 5, "ME-01")]),
        }
    )

    report = diff(old, new)

    assert {(c.state, c.name) for c in report.new_records} == {("New York", "C"), ("Maine", "M")}
    assert {(c.state, c.name) for c in report.removed_records} == {("New York", "B"), ("Vermont", "V")}
    assert report.amount_changes == []


def test_report_serializes_with_published_keys():
    old = _snapshot({"New York": RegionRecord(records=[_person("A", 0)])})
    new, _ = aggregate({"New York": RegionRecord(records=[_person("A", 5_000)])})

    payload = diff(old, new).to_dict()

    assert payload["amountChanges"] == [
        {"state": "New York", "oldAmount": 0, "newAmount": 5_000, "delta": 5_000}
    ]
    assert payload["newCongresspeople"] == []
    assert payload["removedCongresspeople"] == []
    assert payload["totalDelta"] == 5_000
