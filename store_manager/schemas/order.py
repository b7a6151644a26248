from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class OrderItemIn(BaseModel):
    product_id: int = Field(gt=0)
    quantity: int = Field(gt=0)
    price: float = Field(ge=0)


class OrderCreate(BaseModel):
    items: list[OrderItemIn] = Field(min_length=1)

    model_config = {
        "json_schema_extra": {
            "example": {"items": [{"product_id": 1, "quantity": 12, "price": 9.5}]}
        }
    }


class OrderStatusUpdate(BaseModel):
    # Checked against OrderStatus by the order lifecycle so bad values
    # surface as ``invalid_status`` rather than a schema error.
    status: str = Field(min_length=1)


class OrderItemOut(BaseModel):
    id: int
    product_id: int
    product_name: Optional[str] = None
    barcode: Optional[str] = None
    quantity: int
    price_at_order: float
    subtotal: float

    model_config = {"from_attributes": True}


class OrderOut(BaseModel):
    id: int
    user_id: Optional[int]
    user_name: Optional[str] = None
    status: str
    total: float
    created_at: str
    updated_at: str

    model_config = {"from_attributes": True}


class OrderDetail(OrderOut):
    items: list[OrderItemOut] = Field(default_factory=list)
