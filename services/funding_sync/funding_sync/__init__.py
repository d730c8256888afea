"""Core package for the congressional funding data sync service."""

__all__ = [
    "config",
    "models",
    "fetcher",
    "extractor",
    "aggregator",
    "validator",
    "differ",
    "storage",
    "publisher",
    "pipeline",
    "scheduler",
    "cli",
]
