"""Settings for bulkrun.

``BulkRunSettings`` reads configuration from ``BULKRUN_*`` environment
variables and an optional ``.env`` file. It is only consulted at the edges
(the CLI and :func:`bulkrun.ops.context.make_context`); the pipeline
components receive an explicit :class:`RunConfig` instead of reading
settings themselves.

Fields
──────
database       : SQLite file holding records and the durable queue
chunk_size     : Records per inline chunk (one progress update each)
queue_name     : Durable queue that receives work items in queue mode
display_limit  : Max literal IDs shown by the confirmation summary
query_engine   : Registered query engine used for filtered selections
lease_seconds  : How long a claimed work item stays invisible to others
log_level      : structlog log level
json_logs      : Force JSON log output (``None`` = auto-detect tty)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CHUNK_SIZE = 10
DEFAULT_DISPLAY_LIMIT = 20
DEFAULT_QUEUE_NAME = "bulkrun_callbacks"
DEFAULT_QUERY_ENGINE = "sqlite"


class BulkRunSettings(BaseSettings):
    """Environment-driven settings."""

    model_config = SettingsConfigDict(
        env_prefix="BULKRUN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Storage ──────────────────────────────────────────────────
    database: Path = Field(
        default_factory=lambda: Path.home() / ".bulkrun" / "bulkrun.db",
        description="SQLite database with records and queue tables",
    )

    # ── Execution ────────────────────────────────────────────────
    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, ge=1)
    queue_name: str = DEFAULT_QUEUE_NAME
    display_limit: int = Field(default=DEFAULT_DISPLAY_LIMIT, ge=1)
    query_engine: str = DEFAULT_QUERY_ENGINE
    lease_seconds: int = Field(default=300, ge=1)

    # ── Observability ────────────────────────────────────────────
    log_level: str = "WARNING"
    json_logs: bool | None = None


@dataclass(frozen=True, slots=True)
class RunConfig:
    """Explicit configuration handed to Selector, Batcher and QueueSink."""

    chunk_size: int = DEFAULT_CHUNK_SIZE
    queue_name: str = DEFAULT_QUEUE_NAME
    display_limit: int = DEFAULT_DISPLAY_LIMIT
    query_engine: str = DEFAULT_QUERY_ENGINE
    lease_seconds: int = 300

    def __post_init__(self) -> None:
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {self.chunk_size}")
        if self.display_limit < 1:
            raise ValueError(f"display_limit must be >= 1, got {self.display_limit}")

    @classmethod
    def from_settings(cls, settings: BulkRunSettings) -> RunConfig:
        return cls(
            chunk_size=settings.chunk_size,
            queue_name=settings.queue_name,
            display_limit=settings.display_limit,
            query_engine=settings.query_engine,
            lease_seconds=settings.lease_seconds,
        )
