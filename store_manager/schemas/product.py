from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    category: str = Field(min_length=1, max_length=100)
    buy_price: float = Field(ge=0)
    sell_price: float = Field(ge=0)
    quantity: int = Field(default=0, ge=0)
    barcode: str = Field(min_length=1, max_length=64)
    description: str = ""

    model_config = {
        "json_schema_extra": {
            "example": {
                "name": "Espresso beans 1kg",
                "category": "Coffee",
                "buy_price": 9.5,
                "sell_price": 17.0,
                "quantity": 24,
                "barcode": "0123456789012",
                "description": "",
            }
        }
    }


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    buy_price: Optional[float] = Field(default=None, ge=0)
    sell_price: Optional[float] = Field(default=None, ge=0)
    quantity: Optional[int] = Field(default=None, ge=0)
    barcode: Optional[str] = Field(default=None, min_length=1, max_length=64)
    description: Optional[str] = None


class ProductOut(BaseModel):
    id: int
    name: str
    category: str
    buy_price: float
    sell_price: float
    quantity: int
    barcode: str
    description: str
    created_at: str
    updated_at: str

    model_config = {"from_attributes": True}
