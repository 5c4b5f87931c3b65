import logging

from fastapi import FastAPI

from fulfillment.app.api.v1.router import router as v1_router
from fulfillment.app.core.config import LOG_LEVEL


def create_app() -> FastAPI:
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = FastAPI(title="PO Fulfillment", version="0.1.0")
    app.include_router(v1_router, prefix="/v1")
    return app


app = create_app()
