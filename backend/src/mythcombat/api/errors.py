from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from mythcombat.core.errors import CombatError

logger = logging.getLogger(__name__)


async def combat_error_handler(request: Request, exc: CombatError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("api.error path=%s code=%s", request.url.path, exc.code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CombatError, combat_error_handler)
