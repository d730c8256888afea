import json

import pytest

from conftest import FakeAnthropic, build_payload, reply_for
from funding_sync.errors import ExtractionError
from funding_sync.extractor import ExtractionFailure, ExtractionOk, RecordExtractor, interpret_reply


def test_extract_submits_bounded_prefix_with_deterministic_sampling():
    client = FakeAnthropic(reply_for(build_payload(states=2, per_state=3)))
    extractor = RecordExtractor(api_key=None, model="test-model", max_chars=50, client=client)

    regions = extractor.extract("A" * 40 + "B" * 500)

    call = client.messages.calls[0]
    assert call["temperature"] == 0
    assert call["model"] == "test-model"
    prompt = call["messages"][0]["content"]
    assert prompt.endswith("A" * 40 + "B" * 10)
    assert "B" * 11 not in prompt
    assert set(regions) == {"Alabama", "Alaska"}
    assert len(regions["Alabama"].records) == 3


def test_extract_discards_extracted_totals():
    payload = build_payload(states=1, per_state=2, amount=1000)
    payload["Alabama"]["totalAmount"] = 999_999_999
    extractor = RecordExtractor(api_key=None, model="m", client=FakeAnthropic(reply_for(payload)))

    regions = extractor.extract("<html/>")

    assert regions["Alabama"].total_amount == 0


def test_extract_without_json_raises():
    extractor = RecordExtractor(api_key=None, model="m", client=FakeAnthropic("I could not find any data."))
    with pytest.raises(ExtractionError):
        extractor.extract("<html/>")


def test_extract_without_api_key_raises_before_calling_service():
    extractor = RecordExtractor(api_key=None, model="m")
    with pytest.raises(ExtractionError, match="ANTHROPIC_API_KEY"):
        extractor.extract("<html/>")


def test_interpret_reply_reports_invalid_json():
    result = interpret_reply("prefix {not json} suffix")
    assert isinstance(result, ExtractionFailure)
    assert "not valid JSON" in result.reason


def test_interpret_reply_rejects_non_object():
    result = interpret_reply("[1, 2]")
    assert isinstance(result, ExtractionFailure)


def test_normalization_excludes_malformed_records():
    payload = {
        "Texas": {
            "totalAmount": 10,
            "congresspeople": [
                {"name": "Good Senator", "position": "tx-sen", "party": "Republican", "lobbyTotal": "$1.5M"},
                {"name": "Bad Position", "position": "TX-1", "party": "R", "lobbyTotal": 100},
                {"name": "Bad Party", "position": "TX-02", "party": "I", "lobbyTotal": 100},
                {"name": "", "position": "TX-03", "party": "D", "lobbyTotal": 100},
                {"name": "Negative", "position": "TX-04", "party": "D", "lobbyTotal": -5},
                {
                    "name": "Good Rep",
                    "position": "TX-05",
                    "party": "D",
                    "lobbyTotal": "25K",
                    "organizations": "AIPAC, DMFI",
                    "nextElection": "Nov 2026",
                },
            ],
        },
        "Puerto Rico": {"congresspeople": [{"name": "X", "position": "PR-01", "party": "D"}]},
        "Ohio": "not an object",
    }

    result = interpret_reply(json.dumps(payload))

    assert isinstance(result, ExtractionOk)
    assert set(result.regions) == {"Texas"}
    records = {record.name: record for record in result.regions["Texas"].records}
    assert set(records) == {"Good Senator", "Good Rep"}
    assert records["Good Senator"].position == "TX-SEN"
    assert records["Good Senator"].party == "R"
    assert records["Good Senator"].lobby_total == 1_500_000
    assert records["Good Rep"].organizations == frozenset({"AIPAC", "DMFI"})
    assert records["Good Rep"].next_election == "2026"


def test_normalization_deduplicates_by_name_and_position():
    payload = {
        "Iowa": {
            "congresspeople": [
                {"name": "Same Person", "position": "IA-01", "party": "R", "lobbyTotal": 100},
                {"name": "Same Person", "position": "IA-01", "party": "R", "lobbyTotal": 250},
                {"name": "Same Person", "position": "IA-SEN", "party": "R", "lobbyTotal": 50},
            ]
        }
    }

    result = interpret_reply(json.dumps(payload))

    records = result.regions["Iowa"].records
    assert len(records) == 2
    assert {(r.position, r.lobby_total) for r in records} == {("IA-01", 250), ("IA-SEN", 50)}


def test_normalization_skips_records_with_unusable_organizations():
    payload = {
        "Ohio": {
            "congresspeople": [
                {"name": "Numeric Orgs", "position": "OH-01", "party": "R", "lobbyTotal": 100, "organizations": 5},
                {"name": "Listed Orgs", "position": "OH-02", "party": "D", "lobbyTotal": 200, "organizations": ["AIPAC"]},
            ]
        }
    }

    result = interpret_reply(json.dumps(payload))

    assert isinstance(result, ExtractionOk)
    assert [record.name for record in result.regions["Ohio"].records] == ["Listed Orgs"]


@pytest.mark.parametrize("congresspeople", [5, "Jane Doe, John Roe", {"name": "Jane Doe"}])
def test_normalization_skips_states_whose_congresspeople_is_not_a_list(congresspeople):
    payload = {
        "Ohio": {"congresspeople": congresspeople},
        "Utah": {"congresspeople": [{"name": "Kept", "position": "UT-01", "party": "R", "lobbyTotal": 10}]},
    }

    result = interpret_reply(json.dumps(payload))

    assert isinstance(result, ExtractionOk)
    assert set(result.regions) == {"Utah"}
