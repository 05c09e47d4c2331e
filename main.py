"""
Chat backend — application entry point.
"""

from __future__ import annotations

import logging
import sys

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.messages import router as messages_router
from api.middleware import register_exception_handlers, register_middleware
from api.users import router as users_router
from auth.routes import router as auth_router
from config.settings import config
from database.session import create_tables

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    stream=sys.stdout,
)
for _noisy in ("sqlalchemy.engine", "httpx", "httpcore", "aiosqlite"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title="Chat Backend",
        version="1.0.0",
        description="Token-authenticated direct messaging API.",
    )

    # CORS (credentials allowed so the session cookie is sent)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_middleware(app)
    register_exception_handlers(app)

    # Routes
    app.include_router(auth_router, prefix="/api/auth")
    app.include_router(messages_router, prefix="/api/messages")
    app.include_router(users_router, prefix="/api/users")

    @app.get("/health", tags=["health"])
    async def health_check() -> dict:
        return {"status": "ok"}

    @app.on_event("startup")
    async def on_startup():
        if config.create_tables_on_startup:
            logger.info("Ensuring database tables exist…")
            await create_tables()
        logger.info("Application ready to accept requests.")

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
    )
