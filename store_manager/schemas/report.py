from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class CategorySales(BaseModel):
    category: str
    total_sales: float
    transaction_count: int
    quantity: int


class DailyReport(BaseModel):
    date: str
    total_sales: float
    transaction_count: int
    categories: list[CategorySales]


class DayTotal(BaseModel):
    date: str
    total_sales: float
    transaction_count: int


class TopProduct(BaseModel):
    id: int
    name: str
    category: str
    total_quantity: int
    total_sales: float


class ProfitReport(BaseModel):
    start_date: str
    end_date: str
    total_sales: float
    total_cost: float
    net_profit: float
    profit_margin: float
    transaction_count: int
    products_sold: int
    stock_value: float


class InventoryCategory(BaseModel):
    category: str
    product_count: int
    total_quantity: int
    cost_value: float
    retail_value: float


class PerformanceOut(BaseModel):
    user_id: int
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[str] = None
    sales_count: int
    sales_total: float
    avg_sale_value: float
    products_added: int
    orders_processed: int
    period_type: str
    period_start: Optional[str] = None
    period_end: Optional[str] = None


class TeamPerformanceOut(BaseModel):
    user_count: int
    total_sales_count: int
    total_sales_value: float
    avg_sale_value: float
    total_products_added: int
    total_orders_processed: int
    period_type: str
    period_start: Optional[str] = None
    period_end: Optional[str] = None
