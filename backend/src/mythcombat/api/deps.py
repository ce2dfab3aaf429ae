from __future__ import annotations

from fastapi import Request

from mythcombat.core.cache import TTLCache


def get_profile_cache(request: Request) -> TTLCache:
    return request.app.state.profile_cache


def get_reward_cache(request: Request) -> TTLCache:
    return request.app.state.reward_cache
