from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

from ..models.sale import PaymentMethod


class SaleCreate(BaseModel):
    product_id: int = Field(gt=0)
    quantity: int = Field(gt=0)
    payment_method: PaymentMethod


class SaleBatchItem(BaseModel):
    product_id: int = Field(gt=0)
    quantity: int = Field(gt=0)


class SaleBatchCreate(BaseModel):
    items: list[SaleBatchItem] = Field(min_length=1)
    payment_method: PaymentMethod

    model_config = {
        "json_schema_extra": {
            "example": {
                "items": [{"product_id": 1, "quantity": 2}, {"product_id": 7, "quantity": 1}],
                "payment_method": "card",
            }
        }
    }


class SaleOut(BaseModel):
    id: int
    product_id: int
    product_name: Optional[str] = None
    user_id: Optional[int]
    quantity: int
    total: float
    payment_method: str
    timestamp: str

    model_config = {"from_attributes": True}


class SaleBatchResultItem(BaseModel):
    product_id: Optional[int]
    status: Literal["success", "error"]
    sale_id: Optional[int] = None
    code: Optional[str] = None
    message: Optional[str] = None


class SaleBatchOut(BaseModel):
    outcome: Literal["success", "partial", "failed"]
    results: list[SaleBatchResultItem]


class DailySalesSummary(BaseModel):
    date: str
    total_sales: float
    transaction_count: int
