import enum

from sqlalchemy import Column, Date, ForeignKey, Integer, Numeric, String
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import relationship

from .database import Base


class OrderStatusEnum(str, enum.Enum):
    PENDING = "PENDING"


class Order(Base):
    __tablename__ = "customer_orders"
    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False)
    status = Column(
        SQLAlchemyEnum(OrderStatusEnum),
        nullable=False,
        default=OrderStatusEnum.PENDING,
    )
    amount = Column(Numeric(12, 2), nullable=False)
    user_id = Column(String(255), nullable=False, index=True)
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
    )


class OrderItem(Base):
    __tablename__ = "order_product_items"
    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("customer_orders.id"), nullable=False)
    position = Column(Integer, nullable=False)
    product_id = Column(Integer, nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    order = relationship("Order", back_populates="items")
