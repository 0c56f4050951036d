import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from .models import OrderStatusEnum


# --- Item Schemas ---
class LineItemBase(BaseModel):
    product_id: int | None = None
    quantity: int
    unit_price: Decimal = Field(max_digits=12, decimal_places=2)


class LineItemCreate(LineItemBase):
    pass


class LineItem(LineItemBase):
    product_id: int

    model_config = ConfigDict(from_attributes=True)


# --- Order Schemas ---
class OrderCreate(BaseModel):
    items: list[LineItemCreate] = []


class Order(BaseModel):
    id: int
    date: datetime.date
    status: OrderStatusEnum
    amount: Decimal
    user_id: str
    items: list[LineItem] = []

    model_config = ConfigDict(from_attributes=True)
