import logging
from decimal import Decimal

from prometheus_client import Counter
from sqlalchemy.orm import Session

from common.auth import CurrentUser

from . import crud, models, schema
from .exceptions import (
    InsufficientStockError,
    OrderNotFoundError,
    OrderServiceError,
    OrderValidationError,
)
from .product_client import ProductServiceClient

ORDERS_PLACED_TOTAL = Counter(
    "order_service_orders_placed_total",
    "Total number of orders successfully placed",
)
ORDER_PLACEMENT_FAILURES_TOTAL = Counter(
    "order_service_order_placement_failures_total",
    "Total number of failed order placements",
    ["reason"],
)

logger = logging.getLogger(__name__)


def validate_order(items: list[schema.LineItemCreate]) -> None:
    if not items:
        raise OrderValidationError("Order must contain at least one product")
    for item in items:
        if item.product_id is None:
            raise OrderValidationError("Product ID cannot be null")
        if item.quantity <= 0:
            raise OrderValidationError("Quantity must be positive")
        if item.unit_price <= 0:
            raise OrderValidationError("Price must be positive")


def calculate_total(items: list[schema.LineItemCreate]) -> Decimal:
    return sum((item.unit_price * item.quantity for item in items), Decimal("0"))


def place_order(
    db: Session,
    order_request: schema.OrderCreate,
    caller: CurrentUser,
    product_client: ProductServiceClient,
) -> models.Order:
    """
    Place an order on behalf of ``caller``.

    Validate the items locally, check stock for every item, persist the order
    as PENDING, then reduce stock for every item. Calls are sequential and the
    caller's bearer token is forwarded on each of them.

    Stock checks reserve nothing, and a failed reduction is not compensated:
    the persisted order and any reductions already applied are kept.
    """
    try:
        return _place_order(db, order_request.items, caller, product_client)
    except OrderServiceError as e:
        ORDER_PLACEMENT_FAILURES_TOTAL.labels(reason=type(e).__name__).inc()
        raise


def _place_order(
    db: Session,
    items: list[schema.LineItemCreate],
    caller: CurrentUser,
    product_client: ProductServiceClient,
) -> models.Order:
    validate_order(items)
    logger.info("User %s creating order with %d items", caller.username, len(items))

    for item in items:
        available = product_client.check_stock(item.product_id, item.quantity, caller.token)
        if available is not True:
            logger.error(
                "Insufficient stock for product %s requested by user %s",
                item.product_id,
                caller.username,
            )
            raise InsufficientStockError(item.product_id)

    total = calculate_total(items)
    db_order = crud.create_order(db, items, user_id=caller.username, amount=total)
    logger.info("Order %s created for user %s", db_order.id, caller.username)

    for reduced, item in enumerate(items):
        try:
            product_client.reduce_stock(item.product_id, item.quantity, caller.token)
        except OrderServiceError as e:
            logger.critical(
                "Order %s persisted but stock reduction failed for product %s "
                "after %d of %d items were reduced: %s. Manual reconciliation required.",
                db_order.id,
                item.product_id,
                reduced,
                len(items),
                e,
            )
            raise
        logger.debug(
            "Reduced stock for product %s by %s for order %s",
            item.product_id,
            item.quantity,
            db_order.id,
        )

    ORDERS_PLACED_TOTAL.inc()
    return db_order


def list_orders_for_user(db: Session, username: str) -> list[models.Order]:
    logger.info("Fetching orders for user %s", username)
    return crud.get_orders_by_user(db, user_id=username)


def list_all_orders(db: Session) -> list[models.Order]:
    logger.info("Fetching all orders")
    return crud.get_all_orders(db)


def get_order_by_id(db: Session, order_id: int) -> models.Order:
    logger.info("Fetching order %s", order_id)
    db_order = crud.get_order(db, order_id=order_id)
    if db_order is None:
        logger.error("Order not found with id: %s", order_id)
        raise OrderNotFoundError(order_id)
    return db_order
