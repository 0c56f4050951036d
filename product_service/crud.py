import logging

from prometheus_client import Counter
from sqlalchemy.orm import Session

from . import models, schema
from .exceptions import InsufficientStockError, ProductNotFoundError

STOCK_REDUCTIONS_TOTAL = Counter(
    "product_service_stock_reductions_total",
    "Total number of stock reduction attempts",
    ["outcome"],
)

logger = logging.getLogger(__name__)


# --- QUERIES (Read Operations) ---
def list_products(db: Session) -> list[models.Product]:
    logger.info("Fetching all products")
    return db.query(models.Product).order_by(models.Product.id).all()


def get_product(db: Session, product_id: int) -> models.Product:
    logger.info("Fetching product with id: %s", product_id)
    db_product = db.query(models.Product).filter(models.Product.id == product_id).first()
    if db_product is None:
        logger.error("Product not found with id: %s", product_id)
        raise ProductNotFoundError(product_id)
    return db_product


def check_stock(db: Session, product_id: int, quantity: int) -> bool:
    logger.debug("Checking stock for product %s with quantity %s", product_id, quantity)
    db_product = get_product(db, product_id)
    return db_product.quantity >= quantity


# --- COMMANDS (Write Operations) ---
def create_product(db: Session, product: schema.ProductCreate) -> models.Product:
    logger.info("Adding new product: %s", product.name)
    db_product = models.Product(**product.model_dump())
    db.add(db_product)
    db.commit()
    db.refresh(db_product)
    return db_product


def update_product(db: Session, product_id: int, product: schema.ProductUpdate) -> models.Product:
    logger.info("Updating product with id: %s", product_id)
    db_product = get_product(db, product_id)
    for field, value in product.model_dump().items():
        setattr(db_product, field, value)
    db.commit()
    db.refresh(db_product)
    return db_product


def delete_product(db: Session, product_id: int) -> None:
    logger.info("Deleting product with id: %s", product_id)
    db_product = get_product(db, product_id)
    db.delete(db_product)
    db.commit()


def reduce_stock(db: Session, product_id: int, quantity: int) -> models.Product:
    """Decrement stock for one product, failing if not enough is on hand.

    The decrement is a single conditional UPDATE so two concurrent reducers on
    the same row can never both pass the availability check.
    """
    logger.info("Reducing stock for product %s by %s", product_id, quantity)
    db_product = get_product(db, product_id)

    updated = (
        db.query(models.Product)
        .filter(models.Product.id == product_id, models.Product.quantity >= quantity)
        .update(
            {models.Product.quantity: models.Product.quantity - quantity},
            synchronize_session=False,
        )
    )
    if not updated:
        db.rollback()
        db.refresh(db_product)
        logger.error(
            "Insufficient stock for product %s: requested %s, available %s",
            product_id,
            quantity,
            db_product.quantity,
        )
        STOCK_REDUCTIONS_TOTAL.labels(outcome="insufficient").inc()
        raise InsufficientStockError(product_id, quantity, db_product.quantity)

    db.commit()
    db.refresh(db_product)
    STOCK_REDUCTIONS_TOTAL.labels(outcome="reduced").inc()
    return db_product
