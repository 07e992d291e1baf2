from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.requests import HTTPConnection
from strawberry.fastapi import GraphQLRouter

from . import __version__, config
from .schema import schema
from .services import Services

LOGGER = logging.getLogger("friendchat.app")


def create_app(services: Optional[Services] = None) -> FastAPI:
    """Build the HTTP/WebSocket app.

    Indexes are ensured in the lifespan, before any request is served. Pass
    ``services`` to run against an existing store (tests do).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        svc = services or Services.from_config()
        await svc.start()
        app.state.services = svc
        LOGGER.info("ready | db=%s graphql=%s", config.MONGO_DB, config.GRAPHQL_PATH)
        try:
            yield
        finally:
            svc.close()
            LOGGER.info("stopped")

    app = FastAPI(title="friendchat", version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    async def get_context(conn: HTTPConnection):
        # a WebSocket for subscriptions, a Request otherwise
        return {"services": conn.app.state.services}

    app.include_router(GraphQLRouter(schema, context_getter=get_context), prefix=config.GRAPHQL_PATH)

    @app.get("/health")
    async def health(request: Request):
        store = request.app.state.services.store
        db_ok = await store.ping()
        return {
            "backend": "running",
            "database": "connected" if db_ok else "unavailable",
            "subscribers": request.app.state.services.bus.subscriber_count,
        }

    return app


def main() -> None:
    import uvicorn

    logging.basicConfig(level=config.LOG_LEVEL, format="[%(name)s] %(levelname)s %(message)s")
    uvicorn.run(create_app(), host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    main()
