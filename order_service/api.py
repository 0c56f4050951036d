import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import text
from sqlalchemy.orm import Session

from common.auth import ROLE_ADMIN, ROLE_CLIENT, CurrentUser, require_roles

from . import order_processing, schema
from .database import get_db
from .exceptions import (
    DownstreamUnavailableError,
    InsufficientStockError,
    NotFoundError,
    OrderValidationError,
    PersistenceError,
)
from .product_client import ProductServiceClient

logger = logging.getLogger(__name__)

order_router = APIRouter(prefix="/orders", tags=["Order Management"])

Client = Annotated[CurrentUser, Depends(require_roles(ROLE_CLIENT))]
Admin = Annotated[CurrentUser, Depends(require_roles(ROLE_ADMIN))]
ClientOrAdmin = Annotated[CurrentUser, Depends(require_roles(ROLE_CLIENT, ROLE_ADMIN))]


def get_product_client(request: Request) -> ProductServiceClient:
    return request.app.state.product_client


"""
    To create an order
    validate items locally -> no network
    check stock for each item -> Call product service with the caller's token
    Create order with status pending
    reduce stock for each item -> Call product service with the caller's token
"""


@order_router.post("", response_model=schema.Order, status_code=status.HTTP_201_CREATED)
def create_order(
    order_create: schema.OrderCreate,
    db: Annotated[Session, Depends(get_db)],
    current_user: Client,
    product_client: Annotated[ProductServiceClient, Depends(get_product_client)],
) -> schema.Order:
    logger.info("User %s creating order", current_user.username)
    try:
        return order_processing.place_order(db, order_create, current_user, product_client)

    except OrderValidationError as e:
        logger.warning("Rejected invalid order from user %s: %s", current_user.username, e)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    except InsufficientStockError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": str(e), "product_id": e.product_id},
        ) from e

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e

    except DownstreamUnavailableError as e:
        logger.error("Error creating order for user %s: %s", current_user.username, e)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)) from e

    except PersistenceError as e:
        logger.error("Error creating order for user %s: %s", current_user.username, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Order could not be saved.",
        ) from e


def _read_failed(e: PersistenceError) -> HTTPException:
    logger.error("Error reading orders: %s", e)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Orders could not be read.",
    )


@order_router.get("", response_model=list[schema.Order])
def retrieve_my_orders(
    db: Annotated[Session, Depends(get_db)],
    current_user: Client,
) -> list[schema.Order]:
    try:
        return order_processing.list_orders_for_user(db, current_user.username)
    except PersistenceError as e:
        raise _read_failed(e) from e


@order_router.get("/all", response_model=list[schema.Order], tags=["Order Management", "Admin"])
def retrieve_all_orders(
    db: Annotated[Session, Depends(get_db)],
    current_user: Admin,
) -> list[schema.Order]:
    logger.info("Admin %s fetching all orders", current_user.username)
    try:
        return order_processing.list_all_orders(db)
    except PersistenceError as e:
        raise _read_failed(e) from e


@order_router.get("/{order_id}", response_model=schema.Order)
def retrieve_order(
    order_id: int,
    db: Annotated[Session, Depends(get_db)],
    current_user: ClientOrAdmin,
) -> schema.Order:
    logger.info("User %s fetching order %s", current_user.username, order_id)
    try:
        db_order = order_processing.get_order_by_id(db, order_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except PersistenceError as e:
        raise _read_failed(e) from e

    if not current_user.has_any_role(ROLE_ADMIN) and db_order.user_id != current_user.username:
        logger.warning("User %s denied access to order %s", current_user.username, order_id)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to view this order")
    return db_order


monitoring_router = APIRouter(tags=["Monitoring"])


@monitoring_router.get("/health", status_code=status.HTTP_200_OK)
def health_check(db: Annotated[Session, Depends(get_db)]) -> dict:
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.exception("Health check failed: Database connection error")
        raise HTTPException(
            status_code=503,
            detail={"status": "DOWN", "database": "disconnected"},
        ) from e
    else:
        return {"status": "UP", "database": "connected"}
