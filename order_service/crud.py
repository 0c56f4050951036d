import datetime
import logging
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models, schema
from .exceptions import PersistenceError

logger = logging.getLogger(__name__)


# Implements CQRS by having separate functions for writes (commands) and reads (queries)

# --- COMMANDS (Write Operations) ---
def create_order(
    db: Session,
    items: list[schema.LineItemCreate],
    user_id: str,
    amount: Decimal,
) -> models.Order:
    db_order = models.Order(
        date=datetime.date.today(),
        status=models.OrderStatusEnum.PENDING,
        amount=amount,
        user_id=user_id,
        items=[
            models.OrderItem(
                position=position,
                product_id=item.product_id,
                quantity=item.quantity,
                unit_price=item.unit_price,
            )
            for position, item in enumerate(items)
        ],
    )
    try:
        db.add(db_order)
        db.commit()
        db.refresh(db_order)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Failed to persist order for user %s", user_id)
        raise PersistenceError(f"Failed to persist order: {e}") from e

    logger.info("Created order %s with status PENDING.", db_order.id)
    return db_order


# --- QUERIES (Read Operations) ---
def _read(description: str, query):
    try:
        return query()
    except SQLAlchemyError as e:
        logger.exception("Failed to read %s", description)
        raise PersistenceError(f"Failed to read {description}: {e}") from e


def get_order(db: Session, order_id: int) -> models.Order | None:
    return _read(
        f"order {order_id}",
        db.query(models.Order).filter(models.Order.id == order_id).first,
    )


def get_orders_by_user(db: Session, user_id: str) -> list[models.Order]:
    return _read(
        f"orders of user {user_id}",
        db.query(models.Order).filter(models.Order.user_id == user_id).order_by(models.Order.id).all,
    )


def get_all_orders(db: Session) -> list[models.Order]:
    return _read("all orders", db.query(models.Order).order_by(models.Order.id).all)
