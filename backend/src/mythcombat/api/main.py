import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from mythcombat.api.errors import register_error_handlers
from mythcombat.api.routers.campaigns import router as campaigns_router
from mythcombat.api.routers.characters import router as characters_router
from mythcombat.api.routers.combat import router as combat_router
from mythcombat.api.routers.presentation import router as presentation_router
from mythcombat.api.routers.rewards import router as rewards_router
from mythcombat.config import get_settings
from mythcombat.core.cache import TTLCache
from mythcombat.db.init_db import init_db


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)
    app.state.profile_cache = TTLCache(
        ttl=settings.profile_cache_ttl, max_entries=settings.profile_cache_size
    )
    app.state.reward_cache = TTLCache(
        ttl=settings.reward_cache_ttl, max_entries=settings.reward_cache_size
    )
    init_db()
    yield


app = FastAPI(title="Mythcombat", lifespan=lifespan)
register_error_handlers(app)


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(campaigns_router)
app.include_router(characters_router)
app.include_router(combat_router)
app.include_router(rewards_router)
app.include_router(presentation_router)
