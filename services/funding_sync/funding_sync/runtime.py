"""Runtime wiring for CLI and service entrypoints."""

from __future__ import annotations

from dataclasses import dataclass

from .config import AppConfig, load_config
from .extractor import RecordExtractor
from .fetcher import SourceFetcher
from .logging import configure_logging
from .pipeline import SyncPipeline
from .publisher import GitPublisher
from .scheduler import Scheduler
from .storage import SnapshotStore


@dataclass(slots=True)
class Runtime:
    config: AppConfig
    fetcher: SourceFetcher
    extractor: RecordExtractor
    store: SnapshotStore
    publisher: GitPublisher
    pipeline: SyncPipeline
    scheduler: Scheduler

    def close(self) -> None:
        self.fetcher.close()


def build_runtime(config: AppConfig | None = None) -> Runtime:
    cfg = config or load_config()
    configure_logging(cfg.log_level)

    fetcher = SourceFetcher(timeout=cfg.http_timeout, user_agent=cfg.http_user_agent)
    extractor = RecordExtractor(
        api_key=cfg.anthropic_api_key,
        model=cfg.anthropic_model,
        max_tokens=cfg.anthropic_max_tokens,
        max_chars=cfg.extract_max_chars,
    )
    store = SnapshotStore(cfg.data_path, cfg.backup_dir)
    publisher = GitPublisher(
        repo_path=cfg.git_repo_path,
        data_path=cfg.data_path,
        token=cfg.github_token,
        repo=cfg.github_repo,
        branch=cfg.github_branch,
        author_name=cfg.git_author_name,
        author_email=cfg.git_author_email,
        enabled=cfg.publish_enabled,
        remote_url=cfg.git_push_url,
    )

    pipeline = SyncPipeline(cfg, fetcher, extractor, store, publisher)
    scheduler = Scheduler(cfg, pipeline)

    return Runtime(
        config=cfg,
        fetcher=fetcher,
        extractor=extractor,
        store=store,
        publisher=publisher,
        pipeline=pipeline,
        scheduler=scheduler,
    )
