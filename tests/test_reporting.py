import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from store_manager.core.errors import ValidationError
from store_manager.core.money import money
from store_manager.crud.products import create_product
from store_manager.db.session import Base
from store_manager.models.sale import Sale
from store_manager.services.reporting import (
    daily_report,
    inventory_report,
    monthly_report,
    profit_report,
    top_products,
    weekly_report,
)

from store_manager.models import order as order_model  # noqa: F401
from store_manager.models import user as user_model  # noqa: F401


@pytest.fixture()
def db_session():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def ledger(db_session):
    coffee = create_product(
        db_session,
        {"name": "Coffee", "category": "Drinks", "buy_price": 1.0, "sell_price": 2.5, "quantity": 40, "barcode": "C-1"},
    )
    bagel = create_product(
        db_session,
        {"name": "Bagel", "category": "Bakery", "buy_price": 0.4, "sell_price": 1.2, "quantity": 10, "barcode": "B-1"},
    )
    db_session.add_all(
        [
            Sale(product_id=coffee.id, quantity=2, total=5.0, payment_method="cash", timestamp="2024-05-06T08:00:00Z"),
            Sale(product_id=bagel.id, quantity=3, total=3.6, payment_method="card", timestamp="2024-05-06T08:05:00Z"),
            Sale(product_id=coffee.id, quantity=1, total=2.5, payment_method="card", timestamp="2024-05-08T12:00:00Z"),
            Sale(product_id=coffee.id, quantity=4, total=10.0, payment_method="cash", timestamp="2024-06-01T09:00:00Z"),
        ]
    )
    db_session.commit()
    return coffee, bagel


def test_money_rounds_half_up():
    assert money(2.675) == 2.68
    assert money(None) == 0.0
    assert money("1.005") == 1.01


def test_daily_report_breaks_down_by_category(db_session, ledger):
    report = daily_report(db_session, "2024-05-06")

    assert report["date"] == "2024-05-06"
    assert report["total_sales"] == pytest.approx(8.6)
    assert report["transaction_count"] == 2
    assert report["categories"] == [
        {"category": "Drinks", "total_sales": 5.0, "transaction_count": 1, "quantity": 2},
        {"category": "Bakery", "total_sales": 3.6, "transaction_count": 1, "quantity": 3},
    ]
    assert daily_report(db_session, "2024-05-07")["categories"] == []


def test_weekly_report_zero_fills_days(db_session, ledger):
    days = weekly_report(db_session, "2024-05-06", "2024-05-12")

    assert [day["date"] for day in days][:3] == ["2024-05-06", "2024-05-07", "2024-05-08"]
    assert len(days) == 7
    assert days[0]["total_sales"] == pytest.approx(8.6)
    assert days[1] == {"date": "2024-05-07", "total_sales": 0.0, "transaction_count": 0}
    assert days[2]["transaction_count"] == 1


def test_report_ranges_are_validated(db_session):
    with pytest.raises(ValidationError):
        weekly_report(db_session, "2024-05-10", "2024-05-01")
    with pytest.raises(ValidationError):
        weekly_report(db_session, "2024-01-01", "2025-06-01")
    with pytest.raises(ValidationError):
        daily_report(db_session, "yesterday")
    with pytest.raises(ValidationError):
        monthly_report(db_session, 2024, 13)


def test_monthly_report_covers_the_whole_month(db_session, ledger):
    may = monthly_report(db_session, 2024, 5)
    assert len(may) == 31
    assert sum(day["transaction_count"] for day in may) == 3
    assert len(monthly_report(db_session, 2024, 2)) == 29


def test_top_products_by_quantity(db_session, ledger):
    ranked = top_products(db_session, limit=5)

    assert [row["name"] for row in ranked] == ["Coffee", "Bagel"]
    assert ranked[0]["total_quantity"] == 7
    assert ranked[0]["total_sales"] == pytest.approx(17.5)
    assert len(top_products(db_session, limit=1)) == 1


def test_profit_report(db_session, ledger):
    report = profit_report(db_session, "2024-05-01", "2024-05-31")

    assert report["total_sales"] == pytest.approx(11.1)
    # 3 coffees at 1.0 and 3 bagels at 0.4
    assert report["total_cost"] == pytest.approx(4.2)
    assert report["net_profit"] == pytest.approx(6.9)
    assert report["profit_margin"] == pytest.approx(62.16)
    assert report["transaction_count"] == 3
    assert report["products_sold"] == 2
    assert report["stock_value"] == pytest.approx(44.0)

    empty = profit_report(db_session, "2023-01-01", "2023-01-31")
    assert empty["total_sales"] == 0.0
    assert empty["profit_margin"] == 0.0


def test_inventory_report(db_session, ledger):
    rows = {row["category"]: row for row in inventory_report(db_session)}

    assert rows["Drinks"] == {
        "category": "Drinks",
        "product_count": 1,
        "total_quantity": 40,
        "cost_value": 40.0,
        "retail_value": 100.0,
    }
    assert rows["Bakery"]["retail_value"] == pytest.approx(12.0)
