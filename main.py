from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import Settings, load_settings
from database import create_db_engine, init_db
from errors import AuthError
from routers.admin import router as admin_router
from routers.auth import body_error_for, router as auth_router
from routers.profile import router as profile_router
from utils.brevo_email import OtpDispatcher, build_dispatcher

logger = logging.getLogger(__name__)


def _redis_client(url: Optional[str]):
    if not url:
        return None
    import redis

    return redis.Redis.from_url(url, decode_responses=True)


def create_app(
    settings: Optional[Settings] = None,
    *,
    dispatcher: Optional[OtpDispatcher] = None,
    redis_client=None,
) -> FastAPI:
    settings = settings or load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="BGMI Tournament Auth")
    app.state.settings = settings
    app.state.dispatcher = dispatcher or build_dispatcher(settings)
    app.state.redis = redis_client if redis_client is not None else _redis_client(settings.redis_url)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )

    app.include_router(auth_router)
    app.include_router(profile_router)
    app.include_router(admin_router)

    @app.exception_handler(AuthError)
    async def _auth_error(request: Request, exc: AuthError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def _bad_body(request: Request, exc: RequestValidationError):
        err = body_error_for(request.url.path)
        return JSONResponse(status_code=err.status_code, content={"error": err.message})

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.on_event("startup")
    def _init_storage():
        init_db(create_db_engine(settings.database_url))
        logger.info("%s started (mail=%s, redis=%s)", settings.service_name,
                    type(app.state.dispatcher).__name__, app.state.redis is not None)

    @app.get("/")
    def root():
        return {"status": "Backend running", "service": settings.service_name}

    return app


app = create_app()
