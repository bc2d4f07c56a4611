"""Selector runtime configuration using pydantic-settings."""

import logging
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings

OverlapPolicy = Literal["commit_all", "latest_wins"]


class SelectorSettings(BaseSettings):
    """Tunables shared by every selector instance built from them.

    All settings can be configured via environment variables with the
    SELECTORSYNC_ prefix. For example:
    - SELECTORSYNC_LOG_LEVEL=INFO
    - SELECTORSYNC_OVERLAP_POLICY=latest_wins

    Attributes:
        log_level: Level used for lifecycle records (instance creation,
            resolution start, commit and discard, upstream detach).
            Case-insensitive.
        overlap_policy: How resolutions that overlap are committed.
            "commit_all" commits every resolution in the order it settles,
            so an older resolution that settles last wins. "latest_wins"
            drops a resolution once a newer one has committed.
        task_name_prefix: Prefix for the asyncio task names of background
            resolutions.

    Example:
        >>> settings = SelectorSettings(overlap_policy="latest_wins")
        >>> binding = SelectorBinding(store.subscribe, settings)
    """

    log_level: str = "DEBUG"
    overlap_policy: OverlapPolicy = "commit_all"
    task_name_prefix: str = "selectorsync-resolution"

    model_config = {"env_prefix": "SELECTORSYNC_"}

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        if not isinstance(logging.getLevelName(value.upper()), int):
            raise ValueError(f"unknown log level: {value}")
        return value.upper()

    @property
    def level(self) -> int:
        """Numeric logging level for ``log_level``."""
        return getattr(logging, self.log_level)
