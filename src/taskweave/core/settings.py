"""Environment-driven defaults for taskweave.

``TaskweaveSettings`` holds the knobs that are not passed per call: logging
setup and the defaults used when a caller builds options from settings
(:meth:`taskweave.execution.retry.RetryOptions.from_settings`).

Every field can be set from a ``TASKWEAVE_``-prefixed environment variable or
a ``.env`` file::

    TASKWEAVE_LOG_LEVEL=DEBUG
    TASKWEAVE_LOG_FORMAT=json
    TASKWEAVE_RETRY_TIMES=5
    TASKWEAVE_RETRY_DELAY=0.5
    TASKWEAVE_PARALLEL_LIMIT=8

Tags:
    settings, configuration, pydantic, environment, taskweave
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TaskweaveSettings(BaseSettings):
    """Validated settings shared by every taskweave primitive.

    Fields
    ──────
    log_level      : Structlog log level
    log_format     : ``console`` for development, ``json`` for aggregation
    service_name   : ``service.name`` attached to every log event
    retry_times    : Default attempt count for retry (>= 1)
    retry_delay    : Default fixed wait between attempts, seconds (>= 0)
    parallel_limit : Default worker count for parallel (>= 1)
    """

    model_config = SettingsConfigDict(
        env_prefix="TASKWEAVE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["console", "json"] = "console"
    service_name: str = "taskweave"

    # ── Execution defaults ───────────────────────────────────────
    retry_times: int = Field(default=3, ge=1)
    retry_delay: float | None = Field(default=None, ge=0)
    parallel_limit: int = Field(default=10, ge=1)


_settings: TaskweaveSettings | None = None


def get_settings(*, force_reload: bool = False) -> TaskweaveSettings:
    """Load and cache a :class:`TaskweaveSettings` instance."""
    global _settings
    if _settings is None or force_reload:
        _settings = TaskweaveSettings()
    return _settings


__all__ = ["TaskweaveSettings", "get_settings"]
