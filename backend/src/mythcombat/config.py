from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./mythcombat.sqlite3"
    default_board_seed: int = 12345
    profile_cache_ttl: float = 30.0
    profile_cache_size: int = 256
    reward_cache_ttl: float = 300.0
    reward_cache_size: int = 1024
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.environ.get(
                "MYTHCOMBAT_DATABASE_URL", cls.database_url
            ),
            default_board_seed=_env_int(
                "MYTHCOMBAT_DEFAULT_BOARD_SEED", cls.default_board_seed
            ),
            profile_cache_ttl=_env_float(
                "MYTHCOMBAT_PROFILE_CACHE_TTL", cls.profile_cache_ttl
            ),
            profile_cache_size=_env_int(
                "MYTHCOMBAT_PROFILE_CACHE_SIZE", cls.profile_cache_size
            ),
            reward_cache_ttl=_env_float(
                "MYTHCOMBAT_REWARD_CACHE_TTL", cls.reward_cache_ttl
            ),
            reward_cache_size=_env_int(
                "MYTHCOMBAT_REWARD_CACHE_SIZE", cls.reward_cache_size
            ),
            log_level=os.environ.get("MYTHCOMBAT_LOG_LEVEL", cls.log_level).upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
