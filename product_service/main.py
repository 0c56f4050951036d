import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import make_asgi_app

from . import api, models
from .database import engine

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.info("Product service starting up... Creating database tables.")
    models.Base.metadata.create_all(bind=engine)
    logging.info("Startup complete.")
    yield
    logging.info("Product service shutting down...")


app = FastAPI(
    title="Product Service",
    description="Owns the product catalog and stock levels.",
    lifespan=lifespan,
)

app.include_router(api.product_router)
app.include_router(api.monitoring_router)

metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)
