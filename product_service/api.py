import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import text
from sqlalchemy.orm import Session

from common.auth import ROLE_ADMIN, ROLE_CLIENT, CurrentUser, require_roles

from . import crud, schema
from .database import get_db
from .exceptions import InsufficientStockError, ProductNotFoundError

logger = logging.getLogger(__name__)

product_router = APIRouter(prefix="/products", tags=["Product Catalog"])

AnyUser = Annotated[CurrentUser, Depends(require_roles(ROLE_ADMIN, ROLE_CLIENT))]
Admin = Annotated[CurrentUser, Depends(require_roles(ROLE_ADMIN))]
StockQuantity = Annotated[int, Query(gt=0)]


def _not_found(e: ProductNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@product_router.get("", response_model=list[schema.Product])
def list_products(
    db: Annotated[Session, Depends(get_db)],
    current_user: AnyUser,
) -> list[schema.Product]:
    logger.info("User %s requested all products", current_user.username)
    return crud.list_products(db)


@product_router.get("/{product_id}", response_model=schema.Product)
def retrieve_product(
    product_id: int,
    db: Annotated[Session, Depends(get_db)],
    current_user: AnyUser,
) -> schema.Product:
    logger.info("User %s requested product %s", current_user.username, product_id)
    try:
        return crud.get_product(db, product_id)
    except ProductNotFoundError as e:
        raise _not_found(e) from e


@product_router.post("", response_model=schema.Product, status_code=status.HTTP_201_CREATED)
def create_product(
    product: schema.ProductCreate,
    db: Annotated[Session, Depends(get_db)],
    current_user: Admin,
) -> schema.Product:
    logger.info("User %s adding product %s", current_user.username, product.name)
    return crud.create_product(db, product)


@product_router.put("/{product_id}", response_model=schema.Product)
def update_product(
    product_id: int,
    product: schema.ProductUpdate,
    db: Annotated[Session, Depends(get_db)],
    current_user: Admin,
) -> schema.Product:
    logger.info("User %s updating product %s", current_user.username, product_id)
    try:
        return crud.update_product(db, product_id, product)
    except ProductNotFoundError as e:
        raise _not_found(e) from e


@product_router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    product_id: int,
    db: Annotated[Session, Depends(get_db)],
    current_user: Admin,
) -> Response:
    logger.info("User %s deleting product %s", current_user.username, product_id)
    try:
        crud.delete_product(db, product_id)
    except ProductNotFoundError as e:
        raise _not_found(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@product_router.get("/{product_id}/stock", response_model=bool)
def check_stock(
    product_id: int,
    quantity: StockQuantity,
    db: Annotated[Session, Depends(get_db)],
    current_user: AnyUser,
) -> bool:
    logger.debug(
        "User %s checking stock for product %s quantity %s",
        current_user.username,
        product_id,
        quantity,
    )
    try:
        return crud.check_stock(db, product_id, quantity)
    except ProductNotFoundError as e:
        raise _not_found(e) from e


@product_router.put("/{product_id}/reduce-stock", status_code=status.HTTP_200_OK)
def reduce_stock(
    product_id: int,
    quantity: StockQuantity,
    db: Annotated[Session, Depends(get_db)],
    current_user: AnyUser,
) -> Response:
    logger.info(
        "User %s reducing stock for product %s by %s",
        current_user.username,
        product_id,
        quantity,
    )
    try:
        crud.reduce_stock(db, product_id, quantity)
    except ProductNotFoundError as e:
        raise _not_found(e) from e
    except InsufficientStockError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    return Response(status_code=status.HTTP_200_OK)


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
