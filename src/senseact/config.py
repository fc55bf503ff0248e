"""Engine configuration loaded from environment variables and .env files."""

from __future__ import annotations

import logging
from enum import StrEnum
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class MessageMode(StrEnum):
    """How diagnostic message logs store repeated messages.

    ALL keeps everything. COMPACT merges a message identical to the newest one.
    UNIQUE removes an older identical message before adding it again.
    """

    ALL = "all"
    COMPACT = "compact"
    UNIQUE = "unique"


class EngineConfig(BaseSettings):
    """Settings for the agent manager and its navigation layer.

    Environment Variables:
        SENSEACT_MAX_MESSAGES: Messages kept per agent and globally (default: 100)
        SENSEACT_MESSAGE_MODE: all, compact or unique (default: compact)
        SENSEACT_MAX_AGENTS_PER_TICK: Agents stepped per tick, 0 for all (default: 0)
        SENSEACT_DEFAULT_DELTA_TIME: Seconds per tick when none is given (default: 1/30)
        SENSEACT_SEEK_ACCEPTABLE_DISTANCE: Distance at which a waypoint counts
            as reached (default: 0.1)
        SENSEACT_LOOKUP_TABLE_PATH: JSON file to reuse/write the lookup table
        SENSEACT_BUILD_LOOKUP_ON_START: Build a table when none can be loaded
            (default: true)

    Example:
        >>> config = EngineConfig(max_agents_per_tick=5)
    """

    model_config = SettingsConfigDict(
        env_prefix="SENSEACT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_messages: int = Field(
        default=100,
        ge=1,
        le=10000,
        description="Maximum diagnostic messages retained per log",
    )
    message_mode: MessageMode = Field(
        default=MessageMode.COMPACT,
        description="How repeated diagnostic messages are stored",
    )
    max_agents_per_tick: int = Field(
        default=0,
        ge=0,
        description="Agents stepped per tick in round-robin order (0 = all)",
    )
    default_delta_time: float = Field(
        default=1.0 / 30.0,
        gt=0,
        description="Seconds simulated by one tick when no delta is supplied",
    )
    seek_acceptable_distance: float = Field(
        default=0.1,
        ge=0,
        description="Distance within which a path waypoint is considered reached",
    )
    lookup_table_path: Path | None = Field(
        default=None,
        description="Where the navigation lookup table is persisted",
    )
    build_lookup_on_start: bool = Field(
        default=True,
        description="Build the lookup table when no matching file exists",
    )

    @field_validator("message_mode", mode="before")
    @classmethod
    def normalize_message_mode(cls, v: Any) -> MessageMode:
        """Accept message modes in any case."""
        if isinstance(v, str):
            return MessageMode(v.lower())
        return v


@lru_cache
def get_engine_config() -> EngineConfig:
    """Get cached engine configuration singleton.

    To reload configuration, call get_engine_config.cache_clear() first.
    """
    config = EngineConfig()
    logger.info("Loaded engine configuration: %r", config)
    return config
