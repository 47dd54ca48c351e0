"""Runtime settings loaded once from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path


ENV_PREFIX = "CNC_"

DEFAULT_TIER_ZONE_CLASSES: dict[str, str] = {
    "High": "Priority",
    "Medium": "Standard",
    "Low": "Economy",
}


def _env(name: str, default: str) -> str:
    return os.getenv(f"{ENV_PREFIX}{name}", default)


def _parse_tier_routing(raw: str | None) -> dict[str, str]:
    """Parse ``High=Priority,Medium=Standard`` style routing overrides."""
    if not raw:
        return dict(DEFAULT_TIER_ZONE_CLASSES)
    routing: dict[str, str] = {}
    for chunk in raw.split(","):
        if not chunk.strip():
            continue
        tier, _, zone_class = chunk.partition("=")
        routing[tier.strip()] = zone_class.strip()
    return routing


@dataclass(frozen=True)
class Settings:
    app_name: str = "Click & Collect Allocation Engine"
    app_version: str = "1.0.0"
    database_path: Path = Path("data/click_and_collect.db")
    log_level: str = "INFO"
    slot_default_capacity: int = 10
    slot_day_start_hour: int = 8
    slot_day_end_hour: int = 18
    tier_zone_classes: dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_TIER_ZONE_CLASSES)
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(
        app_name=_env("APP_NAME", Settings.app_name),
        app_version=_env("APP_VERSION", Settings.app_version),
        database_path=Path(_env("DATABASE_PATH", str(Settings.database_path))),
        log_level=_env("LOG_LEVEL", Settings.log_level),
        slot_default_capacity=int(
            _env("SLOT_DEFAULT_CAPACITY", str(Settings.slot_default_capacity))
        ),
        slot_day_start_hour=int(
            _env("SLOT_DAY_START_HOUR", str(Settings.slot_day_start_hour))
        ),
        slot_day_end_hour=int(_env("SLOT_DAY_END_HOUR", str(Settings.slot_day_end_hour))),
        tier_zone_classes=_parse_tier_routing(os.getenv(f"{ENV_PREFIX}TIER_ZONE_CLASSES")),
    )
