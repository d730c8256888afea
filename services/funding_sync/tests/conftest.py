import json
from dataclasses import replace
from types import SimpleNamespace

import httpx
import pytest

from funding_sync.config import load_config
from funding_sync.extractor import RecordExtractor
from funding_sync.fetcher import SourceFetcher
from funding_sync.pipeline import SyncPipeline
from funding_sync.publisher import GitPublisher
from funding_sync.regions import STATE_CODES
from funding_sync.storage import SnapshotStore

SOURCE_URL = "https://source.test/congress"
SOURCE_HTML = "<html><body><div data-current-context='{}'>congress</div></body></html>"

_ENV_KEYS = [
    "DATA_PATH",
    "BACKUP_DIR",
    "SOURCE_URL",
    "UPDATE_ENABLED",
    "UPDATE_CRON",
    "UPDATE_ON_STARTUP",
    "UPDATE_API_KEY",
    "PUBLISH_ENABLED",
    "GITHUB_TOKEN",
    "GITHUB_REPO",
    "GIT_PUSH_URL",
    "GIT_REPO_PATH",
    "ANTHROPIC_API_KEY",
    "VALIDATION_MIN_REGIONS",
    "VALIDATION_MIN_RECORDS",
    "VALIDATION_MIN_TOTAL",
    "DIFF_NOISE_THRESHOLD",
    "HTTP_TIMEOUT_SECONDS",
    "HTTP_USER_AGENT",
    "ANTHROPIC_MODEL",
    "ANTHROPIC_MAX_TOKENS",
    "EXTRACT_MAX_CHARS",
    "GITHUB_BRANCH",
    "GIT_AUTHOR_NAME",
    "GIT_AUTHOR_EMAIL",
    "LOG_LEVEL",
]


def build_payload(states=50, per_state=9, amount=250_000):
    """Completion-style payload: ``states`` states with ``per_state`` members each."""
    payload = {}
    for state, code in list(STATE_CODES.items())[:states]:
        people = []
        for index in range(per_state):
            position = f"{code}-SEN" if index < 2 else f"{code}-{index:02d}"
            people.append(
                {
                    "name": f"{state} Member {index}",
                    "photo": None,
                    "position": position,
                    "party": "R" if index % 2 else "D",
                    "lobbyTotal": amount,
                    "organizations": ["AIPAC"],
                    "nextElection": "2026",
                    "runningFor": None,
                }
            )
        payload[state] = {"totalAmount": 1, "congresspeople": people}
    return payload


def reply_for(payload):
    return "Here is the extracted data:\n" + json.dumps(payload) + "\nLet me know if you need more."


class FakeMessages:
    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        text = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        return SimpleNamespace(
            content=[SimpleNamespace(type="text", text=text)],
            model=kwargs["model"],
            stop_reason="end_turn",
        )


class FakeAnthropic:
    def __init__(self, *replies):
        self.messages = FakeMessages(replies)


@pytest.fixture()
def config(tmp_path, monkeypatch):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("DATA_PATH", str(tmp_path / "data" / "congressData.json"))
    monkeypatch.setenv("BACKUP_DIR", str(tmp_path / "backups"))
    monkeypatch.setenv("SOURCE_URL", SOURCE_URL)
    monkeypatch.setenv("PUBLISH_ENABLED", "false")
    monkeypatch.setenv("UPDATE_API_KEY", "s3cret")
    return load_config()


def make_fetcher(body=SOURCE_HTML, status_code=200):
    def handler(request):
        return httpx.Response(status_code, text=body)

    return SourceFetcher(timeout=5.0, user_agent="pytest", transport=httpx.MockTransport(handler))


def make_pipeline(config, *replies, fetcher=None, publisher=None, **overrides):
    cfg = replace(config, **overrides) if overrides else config
    extractor = RecordExtractor(
        api_key=None,
        model=cfg.anthropic_model,
        client=FakeAnthropic(*(replies or (reply_for(build_payload()),))),
    )
    store = SnapshotStore(cfg.data_path, cfg.backup_dir)
    publisher = publisher or GitPublisher(
        repo_path=cfg.git_repo_path,
        data_path=cfg.data_path,
        token=None,
        repo=None,
        enabled=cfg.publish_enabled,
    )
    return SyncPipeline(cfg, fetcher or make_fetcher(), extractor, store, publisher)
