"""
Configuration schema (``ledger_config.schema``).

Frozen dataclasses describing every setting the ledger reads at runtime.
Instances are produced only by ``ledger_config.loader`` and are immutable
once built.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_DATABASE_URL = "sqlite:///ledger.db"

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


@dataclass(frozen=True)
class LedgerSettings:
    """
    Runtime settings for the ledger.

    Guarantees:
        - Retry counts and offsets are non-negative integers.
        - log_level is one of LOG_LEVELS.
    """

    database_url: str = DEFAULT_DATABASE_URL
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    log_level: str = "INFO"

    # Whole-operation retries after a display-id uniqueness violation
    display_id_max_retries: int = 3

    # Retries of transient storage failures, with exponential backoff
    storage_max_retries: int = 3
    storage_backoff_seconds: float = 0.05

    # Days before period end used for the target close date
    target_close_offset_days: int = 7

    def __post_init__(self) -> None:
        if not self.database_url:
            raise ValueError("database_url must not be empty")
        if self.log_level not in LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {', '.join(LOG_LEVELS)}, got {self.log_level!r}"
            )
        for name in (
            "pool_size",
            "max_overflow",
            "display_id_max_retries",
            "storage_max_retries",
            "target_close_offset_days",
        ):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValueError(f"{name} must be a non-negative integer, got {value!r}")
        if self.storage_backoff_seconds < 0:
            raise ValueError(
                f"storage_backoff_seconds must be >= 0, got {self.storage_backoff_seconds!r}"
            )
