# api/main.py
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.concurrency import run_in_threadpool

from ingestor.pipeline import UnderstandingHandler
from storage.base import StorageBackend, StorageInitError
from storage.factory import get_storage_backend

# ----- config -----
DB_PATH = "understanding.db"
HOST = "0.0.0.0"
PORT = 8088

# ----- logging -----
logger = logging.getLogger(__name__)


def create_app(backend: StorageBackend) -> FastAPI:
    """
    Build the collector app around an already constructed backend.
    The caller owns the backend; the lifespan only makes sure it is open
    while serving and releases it on shutdown.
    """
    handler = UnderstandingHandler(backend)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        backend.connect()
        yield
        # Shutdown
        backend.close()
        logger.info("Store closed")

    app = FastAPI(
        title="Understanding Collector",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.backend = backend
    app.state.handler = handler

    # Always 200/OK: failures stay in the server log.
    async def understanding(request: Request):
        try:
            body = b"" if request.method != "POST" else await request.body()
            await run_in_threadpool(
                handler.handle, request.method, request.headers, request.client, body
            )
        except Exception:
            logger.exception("Unhandled error while ingesting %s %s", request.method, request.url.path)
        return PlainTextResponse("OK")

    # methods=None: every verb, custom ones included, lands here
    app.router.add_route("/{path:path}", understanding)

    return app


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    backend = get_storage_backend("sqlite", db_path=DB_PATH)
    try:
        backend.connect()
    except StorageInitError as e:
        logger.critical("Failed to initialize database: %s", e)
        raise SystemExit(1)

    try:
        logger.info("Server starting on :%d", PORT)
        uvicorn.run(create_app(backend), host=HOST, port=PORT)
    finally:
        backend.close()


if __name__ == "__main__":
    main()
