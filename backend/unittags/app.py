from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, cast

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
import slowapi.extension as slowapi_extension
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from .api import router as aliases_router
from .config import AppConfig
from .store import UnitTagStore

# Work around slowapi using deprecated asyncio.iscoroutinefunction on Python 3.14+.
slowapi_asyncio = cast(Any, getattr(slowapi_extension, "asyncio", None))
if slowapi_asyncio is not None:
    slowapi_asyncio.iscoroutinefunction = inspect.iscoroutinefunction

logger = logging.getLogger(__name__)


def create_app(config: AppConfig | None = None, store: UnitTagStore | None = None) -> FastAPI:
    """Build the FastAPI application around one UnitTagStore.

    Without an explicit ``store`` the rule file and learned log named in
    ``config.unit_tags`` are loaded here.
    """
    config = config or AppConfig()

    app = FastAPI(title="unittags", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Configure rate limiting
    limiter = Limiter(key_func=get_remote_address, default_limits=[config.server.rate_limit])
    app.state.limiter = limiter
    rate_limit_handler = cast(Callable[[Request, Exception], Response], _rate_limit_exceeded_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)

    if store is None:
        store = UnitTagStore.from_config(config.unit_tags)
    app.state.tag_store = store
    logger.info(
        f"Unit tag store ready: mode={store.get_mode().value} "
        f"rules={store.rule_count()} learned={len(store.learned_aliases())}"
    )

    app.include_router(aliases_router, prefix="/api/v1")

    @app.get("/health")
    @limiter.limit("30/minute")
    def health(request: Request) -> dict[str, str]:
        return {"status": "ok"}

    return app
