import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import make_asgi_app

from . import api, models
from .config import get_settings
from .database import engine
from .product_client import ProductServiceClient

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.info("Application starting up... Creating database tables.")
    models.Base.metadata.create_all(bind=engine)
    app.state.product_client = ProductServiceClient.from_settings(get_settings())
    logging.info("Startup complete.")
    yield
    logging.info("Application shutting down...")
    app.state.product_client.close()


app = FastAPI(
    title="Order Service",
    description="Places orders against the product catalog and serves order history.",
    lifespan=lifespan,
)

app.include_router(api.order_router)
app.include_router(api.monitoring_router)

metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)
