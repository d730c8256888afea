"""Configuration loader for the funding sync service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .cron import CronExpression
from .errors import ConfigError


def _get_env(key: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(key)
    if value is not None:
        value = value.strip()
        if value == "":
            return default
        return value
    return default


def _get_int(key: str, default: int) -> int:
    value = _get_env(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigError(f"Environment variable {key} must be an integer") from exc


def _get_float(key: str, default: float) -> float:
    value = _get_env(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ConfigError(f"Environment variable {key} must be a number") from exc


def _get_bool(key: str, default: bool) -> bool:
    value = _get_env(key)
    if value is None:
        return default
    value_lower = value.lower()
    if value_lower in {"1", "true", "t", "yes", "y", "on"}:
        return True
    if value_lower in {"0", "false", "f", "no", "n", "off"}:
        return False
    raise ConfigError(f"Environment variable {key} must be a boolean")


@dataclass(slots=True)
class Thresholds:
    min_regions: int = 40
    min_records: int = 400
    min_total: int = 100_000_000


@dataclass(slots=True)
class AppConfig:
    source_url: str
    data_path: Path
    backup_dir: Path
    http_timeout: float
    http_user_agent: str
    anthropic_api_key: Optional[str]
    anthropic_model: str
    anthropic_max_tokens: int
    extract_max_chars: int
    thresholds: Thresholds
    diff_noise_threshold: int
    update_enabled: bool
    update_cron: CronExpression
    update_on_startup: bool
    update_api_key: Optional[str]
    publish_enabled: bool
    git_repo_path: Path
    github_token: Optional[str]
    github_repo: Optional[str]
    github_branch: str
    git_push_url: Optional[str]
    git_author_name: str
    git_author_email: str
    log_level: str


DEFAULT_SOURCE_URL = "https://www.trackaipac.com/congress"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

DEFAULT_MODEL = "claude-3-5-haiku-20241022"


def load_config() -> AppConfig:
    data_path = Path(_get_env("DATA_PATH", "src/data/congressData.json"))
    backup_dir = Path(_get_env("BACKUP_DIR", str(data_path.parent / "backups")))

    cron_text = _get_env("UPDATE_CRON", "0 3 * * 0")
    try:
        update_cron = CronExpression.parse(cron_text)
        update_cron.next_after(datetime.now(timezone.utc))
    except ValueError as exc:
        raise ConfigError(f"Environment variable UPDATE_CRON is invalid: {exc}") from exc

    thresholds = Thresholds(
        min_regions=max(0, _get_int("VALIDATION_MIN_REGIONS", 40)),
        min_records=max(0, _get_int("VALIDATION_MIN_RECORDS", 400)),
        min_total=max(0, _get_int("VALIDATION_MIN_TOTAL", 100_000_000)),
    )

    return AppConfig(
        source_url=_get_env("SOURCE_URL", DEFAULT_SOURCE_URL),
        data_path=data_path,
        backup_dir=backup_dir,
        http_timeout=_get_float("HTTP_TIMEOUT_SECONDS", 30.0),
        http_user_agent=_get_env("HTTP_USER_AGENT", DEFAULT_USER_AGENT),
        anthropic_api_key=_get_env("ANTHROPIC_API_KEY"),
        anthropic_model=_get_env("ANTHROPIC_MODEL", DEFAULT_MODEL),
        anthropic_max_tokens=max(1, _get_int("ANTHROPIC_MAX_TOKENS", 8000)),
        extract_max_chars=max(1, _get_int("EXTRACT_MAX_CHARS", 100_000)),
        thresholds=thresholds,
        diff_noise_threshold=max(0, _get_int("DIFF_NOISE_THRESHOLD", 1000)),
        update_enabled=_get_bool("UPDATE_ENABLED", True),
        update_cron=update_cron,
        update_on_startup=_get_bool("UPDATE_ON_STARTUP", False),
        update_api_key=_get_env("UPDATE_API_KEY"),
        publish_enabled=_get_bool("PUBLISH_ENABLED", True),
        git_repo_path=Path(_get_env("GIT_REPO_PATH", ".")),
        github_token=_get_env("GITHUB_TOKEN"),
        github_repo=_get_env("GITHUB_REPO"),
        github_branch=_get_env("GITHUB_BRANCH", "main"),
        git_push_url=_get_env("GIT_PUSH_URL"),
        git_author_name=_get_env("GIT_AUTHOR_NAME", "Auto-Update Bot"),
        git_author_email=_get_env("GIT_AUTHOR_EMAIL", "funding-sync-bot@users.noreply.github.com"),
        log_level=_get_env("LOG_LEVEL", "INFO").upper(),
    )
