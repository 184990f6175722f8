import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from core import config, db
from core.errors import ProductError
from products import router as products_router
from products.storage import PUBLIC_PREFIX, BlobStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # One pool per process, handed to routes via Depends.
    app.state.blob_store.ensure_root()
    app.state.db_pool = await db.create_pool()
    try:
        yield
    finally:
        await db.close_pool(app.state.db_pool)
        app.state.db_pool = None


def create_app() -> FastAPI:
    app = FastAPI(lifespan=lifespan)

    blobs = BlobStore(config.upload_dir(), log=logging.getLogger("products.storage"))
    app.state.blob_store = blobs

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_allow_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ProductError)
    async def product_error_handler(request: Request, exc: ProductError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "request_failed method=%s path=%s error=%s",
                request.method,
                request.url.path,
                exc.message,
                exc_info=exc.__cause__ or exc,
            )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    app.include_router(products_router.router, prefix="/api/products", tags=["products"])
    app.mount(PUBLIC_PREFIX, StaticFiles(directory=blobs.root, check_dir=False), name="uploads")

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()


def run() -> None:
    uvicorn.run("main:app", host=config.host(), port=config.port())


if __name__ == "__main__":
    run()
