"""Configuration helpers for the handicap engine."""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from golfindex.calculations.esc import (
    DEFAULT_UNKNOWN_HANDICAP_POLICY,
    UnknownHandicapPolicy,
)


class RecomputeStrategy(str, Enum):
    FULL = "full"
    INCREMENTAL = "incremental"


DEFAULT_STARTING_INDEX: float = 20.0


class _Settings(BaseSettings):
    default_starting_index: float = Field(
        default=DEFAULT_STARTING_INDEX,
        validation_alias=AliasChoices(
            "HANDICAP_DEFAULT_STARTING_INDEX", "default_starting_index"
        ),
    )
    unknown_handicap_policy: UnknownHandicapPolicy = Field(
        default=DEFAULT_UNKNOWN_HANDICAP_POLICY,
        validation_alias=AliasChoices(
            "HANDICAP_UNKNOWN_POLICY", "unknown_handicap_policy"
        ),
    )
    apply_exceptional_scores: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "HANDICAP_APPLY_EXCEPTIONAL", "apply_exceptional_scores"
        ),
    )
    recompute_strategy: RecomputeStrategy = Field(
        default=RecomputeStrategy.INCREMENTAL,
        validation_alias=AliasChoices(
            "HANDICAP_RECOMPUTE_STRATEGY", "recompute_strategy"
        ),
    )
    recompute_workers: int = Field(
        default=4,
        ge=1,
        validation_alias=AliasChoices(
            "HANDICAP_RECOMPUTE_WORKERS", "recompute_workers"
        ),
    )
    rounds_dir: str = Field(
        default="data/rounds",
        validation_alias=AliasChoices("GOLFINDEX_ROUNDS_DIR", "rounds_dir"),
    )
    history_dir: str = Field(
        default="data/handicap_history",
        validation_alias=AliasChoices("GOLFINDEX_HISTORY_DIR", "history_dir"),
    )
    cors_allow_origins: str = Field(
        default="http://localhost,http://127.0.0.1",
        validation_alias=AliasChoices("CORS_ALLOW_ORIGINS", "cors_allow_origins"),
    )
    require_api_key: bool = Field(
        default=False,
        validation_alias=AliasChoices("REQUIRE_API_KEY", "require_api_key"),
    )
    api_keys: str = Field(
        default="",
        validation_alias=AliasChoices("API_KEYS", "api_keys"),
    )

    model_config = SettingsConfigDict(
        env_file=".env", extra="ignore", populate_by_name=True
    )

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_allow_origins.split(",") if o.strip()]

    @property
    def allowed_api_keys(self) -> set[str]:
        return {k.strip() for k in self.api_keys.split(",") if k.strip()}


Settings = _Settings


@lru_cache(maxsize=1)
def get_settings() -> _Settings:
    """Return cached application settings."""

    return _Settings()  # type: ignore[call-arg]


def reset_settings_cache() -> None:
    """Clear cached settings (primarily for tests)."""

    get_settings.cache_clear()


__all__ = [
    "DEFAULT_STARTING_INDEX",
    "RecomputeStrategy",
    "Settings",
    "get_settings",
    "reset_settings_cache",
]
