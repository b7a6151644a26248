import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from store_manager.core.errors import InsufficientStock, InternalError, NotFound, ValidationError
from store_manager.crud.products import create_product
from store_manager.crud.sales import (
    daily_sales_summary,
    list_sales,
    list_sales_by_date_range,
    list_sales_by_product,
    record_sale,
    record_sale_batch,
)
from store_manager.crud.users import create_user
from store_manager.db.session import Base
from store_manager.models.product import Product
from store_manager.models.sale import Sale

# Ensure models are imported so metadata is populated
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
def cashier(db_session):
    return create_user(db_session, {"username": "cashier", "password": "secret1", "role": "employee"})


def _product(db, barcode, quantity=10, sell_price=500.0, buy_price=300.0, name=None, category="General"):
    return create_product(
        db,
        {
            "name": name or f"Item {barcode}",
            "category": category,
            "buy_price": buy_price,
            "sell_price": sell_price,
            "quantity": quantity,
            "barcode": barcode,
        },
    )


def _sale_count(db):
    return db.execute(select(func.count(Sale.id))).scalar()


def _stock(db, product_id):
    return db.execute(select(Product.quantity).where(Product.id == product_id)).scalar()


def test_sale_then_oversell_keeps_remaining_stock(db_session, cashier):
    product = _product(db_session, "A-1", quantity=10, sell_price=500.0)

    sale = record_sale(db_session, product_id=product.id, user_id=cashier.id, quantity=4, payment_method="cash")

    assert sale.quantity == 4
    assert sale.total == pytest.approx(2000.0)
    assert sale.payment_method == "cash"
    assert _stock(db_session, product.id) == 6

    with pytest.raises(InsufficientStock) as excinfo:
        record_sale(db_session, product_id=product.id, user_id=cashier.id, quantity=10, payment_method="cash")

    assert excinfo.value.details["available_quantity"] == 6
    assert _stock(db_session, product.id) == 6
    assert _sale_count(db_session) == 1


@pytest.mark.parametrize("quantity", [1, 3, 7])
def test_sale_decrements_stock_by_exactly_quantity(db_session, cashier, quantity):
    product = _product(db_session, "Q-1", quantity=7, sell_price=12.5)

    sale = record_sale(db_session, product_id=product.id, user_id=cashier.id, quantity=quantity, payment_method="card")

    assert _stock(db_session, product.id) == 7 - quantity
    assert sale.total == pytest.approx(quantity * 12.5)
    assert _sale_count(db_session) == 1


def test_oversell_writes_nothing(db_session, cashier):
    product = _product(db_session, "O-1", quantity=2)

    with pytest.raises(InsufficientStock):
        record_sale(db_session, product_id=product.id, user_id=cashier.id, quantity=3, payment_method="cash")

    assert _stock(db_session, product.id) == 2
    assert _sale_count(db_session) == 0


def test_selling_the_last_unit_leaves_zero(db_session, cashier):
    product = _product(db_session, "Z-1", quantity=1)

    record_sale(db_session, product_id=product.id, user_id=cashier.id, quantity=1, payment_method="mobile")

    assert _stock(db_session, product.id) == 0
    with pytest.raises(InsufficientStock):
        record_sale(db_session, product_id=product.id, user_id=cashier.id, quantity=1, payment_method="mobile")


def test_unknown_product_raises_not_found(db_session, cashier):
    with pytest.raises(NotFound):
        record_sale(db_session, product_id=999, user_id=cashier.id, quantity=1, payment_method="cash")
    assert _sale_count(db_session) == 0


def test_rejects_bad_quantity_and_payment_method(db_session, cashier):
    product = _product(db_session, "V-1")

    with pytest.raises(ValidationError):
        record_sale(db_session, product_id=product.id, user_id=cashier.id, quantity=0, payment_method="cash")
    with pytest.raises(ValidationError):
        record_sale(db_session, product_id=product.id, user_id=cashier.id, quantity=1, payment_method="cheque")

    assert _stock(db_session, product.id) == 10


def test_total_uses_price_at_time_of_sale(db_session, cashier):
    product = _product(db_session, "P-1", quantity=5, sell_price=10.0)
    first = record_sale(db_session, product_id=product.id, user_id=cashier.id, quantity=1, payment_method="cash")

    product.sell_price = 15.0
    db_session.commit()
    second = record_sale(db_session, product_id=product.id, user_id=cashier.id, quantity=1, payment_method="cash")

    db_session.refresh(first)
    assert first.total == pytest.approx(10.0)
    assert second.total == pytest.approx(15.0)


def test_batch_with_short_middle_item_is_partial(db_session, cashier):
    first = _product(db_session, "B-1", quantity=5, sell_price=2.0)
    second = _product(db_session, "B-2", quantity=1, sell_price=3.0)
    third = _product(db_session, "B-3", quantity=4, sell_price=4.0)

    result = record_sale_batch(
        db_session,
        user_id=cashier.id,
        items=[
            {"product_id": first.id, "quantity": 2},
            {"product_id": second.id, "quantity": 5},
            {"product_id": third.id, "quantity": 1},
        ],
        payment_method="card",
    )

    assert result.outcome == "partial"
    assert [item.status for item in result.results] == ["success", "error", "success"]
    assert result.results[1].code == "insufficient_stock"
    assert result.results[1].product_id == second.id
    assert _stock(db_session, first.id) == 3
    assert _stock(db_session, second.id) == 1
    assert _stock(db_session, third.id) == 3
    assert _sale_count(db_session) == 2


def test_batch_outcomes(db_session, cashier):
    product = _product(db_session, "B-9", quantity=3)

    ok = record_sale_batch(
        db_session,
        user_id=cashier.id,
        items=[{"product_id": product.id, "quantity": 1}, {"product_id": product.id, "quantity": 1}],
        payment_method="cash",
    )
    failed = record_sale_batch(
        db_session,
        user_id=cashier.id,
        items=[{"product_id": product.id, "quantity": 5}, {"product_id": 12345, "quantity": 1}],
        payment_method="cash",
    )

    assert ok.outcome == "success"
    assert failed.outcome == "failed"
    assert [item.code for item in failed.results] == ["insufficient_stock", "not_found"]
    assert _stock(db_session, product.id) == 1


def test_batch_requires_items(db_session, cashier):
    with pytest.raises(ValidationError):
        record_sale_batch(db_session, user_id=cashier.id, items=[], payment_method="cash")


def test_sale_listings_and_daily_summary(db_session, cashier):
    product = _product(db_session, "L-1", quantity=50, sell_price=5.0)
    other = _product(db_session, "L-2", quantity=50, sell_price=1.0)
    db_session.add_all(
        [
            Sale(product_id=product.id, user_id=cashier.id, quantity=2, total=10.0, payment_method="cash", timestamp="2024-03-01T09:00:00Z"),
            Sale(product_id=product.id, user_id=cashier.id, quantity=1, total=5.0, payment_method="card", timestamp="2024-03-02T10:00:00Z"),
            Sale(product_id=other.id, user_id=cashier.id, quantity=3, total=3.0, payment_method="cash", timestamp="2024-03-02T18:30:00Z"),
        ]
    )
    db_session.commit()

    newest_first = list_sales(db_session)
    assert [sale.timestamp for sale in newest_first] == [
        "2024-03-02T18:30:00Z",
        "2024-03-02T10:00:00Z",
        "2024-03-01T09:00:00Z",
    ]
    assert newest_first[0].product_name == "Item L-2"

    assert len(list_sales_by_date_range(db_session, "2024-03-02", "2024-03-02")) == 2
    assert len(list_sales_by_date_range(db_session, "2024-03-01", "2024-03-31")) == 3
    assert [sale.quantity for sale in list_sales_by_product(db_session, product.id)] == [1, 2]

    summary = daily_sales_summary(db_session, "2024-03-02")
    assert summary == {"date": "2024-03-02", "total_sales": pytest.approx(8.0), "transaction_count": 2}
    assert daily_sales_summary(db_session, "2024-04-01")["transaction_count"] == 0


def test_failure_after_stock_decrement_rolls_back_the_sale(db_session, cashier, monkeypatch):
    product = _product(db_session, "F-1", quantity=10)

    def failing_flush(*args, **kwargs):
        raise OperationalError("INSERT INTO sales", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db_session, "flush", failing_flush)

    with pytest.raises(InternalError):
        record_sale(db_session, product_id=product.id, user_id=cashier.id, quantity=3, payment_method="cash")

    monkeypatch.undo()
    assert _stock(db_session, product.id) == 10
    assert _sale_count(db_session) == 0
