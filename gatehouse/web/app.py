from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from gatehouse.core.errors import GatehouseError
from gatehouse.core.logger import get_logger
from gatehouse.session.service import SessionService
from gatehouse.web.middleware import SessionMiddleware


_STATUS_BY_CODE = {
    "validation_error": 400,
    "session_not_started": 500,
    "session_store_error": 503,
    "config_error": 500,
}


def install_sessions(app: FastAPI, service: SessionService) -> FastAPI:
    """Attach session middleware and the error handler for gatehouse errors."""
    logger = get_logger("web")
    service.bootstrap()
    app.middleware("http")(SessionMiddleware(service=service))

    @app.exception_handler(GatehouseError)
    async def gatehouse_error_handler(request: Request, exc: GatehouseError):
        trace_id = getattr(getattr(request, "state", None), "trace_id", "web")
        logger.error(f"[{trace_id}] {exc.code}: {exc.user_message}")
        code = _STATUS_BY_CODE.get(exc.code, 500)
        return JSONResponse(status_code=code, content={"detail": exc.user_message, "code": exc.code})

    return app
