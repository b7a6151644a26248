from __future__ import annotations

from sqlalchemy import asc, exists, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.barcodes import barcode_aliases, normalize_barcode
from ..core.errors import Conflict, InvalidState, NotFound, ValidationError
from ..models.order import RestockOrderItem
from ..models.product import Product
from ..models.sale import Sale
from ..time_utils import utcnow_iso

EDITABLE_FIELDS = ("name", "category", "buy_price", "sell_price", "quantity", "barcode", "description")


def list_products(db: Session, *, category: str | None = None, search: str | None = None) -> list[Product]:
    """Return the catalog ordered by name, optionally filtered."""

    stmt = select(Product).order_by(asc(Product.name), asc(Product.id))
    if category:
        stmt = stmt.where(Product.category == category)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(or_(Product.name.ilike(pattern), Product.barcode.ilike(pattern)))
    return list(db.execute(stmt).scalars().all())


def get_product(db: Session, product_id: int) -> Product | None:
    return db.get(Product, product_id)


def get_product_by_barcode(db: Session, barcode: str) -> Product | None:
    for candidate in barcode_aliases(barcode):
        product = db.execute(select(Product).where(Product.barcode == candidate)).scalars().first()
        if product:
            return product
    return None


def list_low_stock(db: Session, threshold: int) -> list[Product]:
    """Products whose stock is strictly below ``threshold``, emptiest first."""

    stmt = (
        select(Product)
        .where(Product.quantity < threshold)
        .order_by(asc(Product.quantity), asc(Product.name))
    )
    return list(db.execute(stmt).scalars().all())


def _clean(data: dict) -> dict:
    cleaned = {key: value for key, value in data.items() if key in EDITABLE_FIELDS}
    for key in ("name", "category", "description"):
        if isinstance(cleaned.get(key), str):
            cleaned[key] = cleaned[key].strip()
    if "barcode" in cleaned:
        barcode = normalize_barcode(cleaned["barcode"])
        if not barcode:
            raise ValidationError("barcode is required")
        cleaned["barcode"] = barcode
    for key in ("name", "category"):
        if key in cleaned and not cleaned[key]:
            raise ValidationError(f"{key} is required")
    for key in ("buy_price", "sell_price", "quantity"):
        if key in cleaned and (cleaned[key] is None or cleaned[key] < 0):
            raise ValidationError(f"{key} must be zero or greater")
    if cleaned.get("description") is None and "description" in cleaned:
        cleaned["description"] = ""
    return cleaned


def _ensure_barcode_free(db: Session, barcode: str, exclude_id: int | None = None) -> None:
    stmt = select(Product.id).where(Product.barcode == barcode)
    if exclude_id is not None:
        stmt = stmt.where(Product.id != exclude_id)
    if db.execute(stmt).first():
        raise Conflict(f"Barcode {barcode} is already assigned to another product")


def create_product(db: Session, payload: dict) -> Product:
    data = _clean(payload)
    missing = [key for key in ("name", "category", "barcode") if not data.get(key)]
    if missing:
        raise ValidationError("Missing required fields", details={"fields": missing})
    _ensure_barcode_free(db, data["barcode"])
    now = utcnow_iso()
    product = Product(
        name=data["name"],
        category=data["category"],
        buy_price=data.get("buy_price", 0.0),
        sell_price=data.get("sell_price", 0.0),
        quantity=data.get("quantity", 0),
        barcode=data["barcode"],
        description=data.get("description", ""),
        created_at=now,
        updated_at=now,
    )
    db.add(product)
    _commit_unique(db, product.barcode)
    db.refresh(product)
    return product


def update_product(db: Session, product: Product, payload: dict) -> Product:
    """Apply a partial update. Setting ``quantity`` here is a direct stock edit."""

    data = _clean(payload)
    if "barcode" in data and data["barcode"] != product.barcode:
        _ensure_barcode_free(db, data["barcode"], exclude_id=product.id)
    for key, value in data.items():
        setattr(product, key, value)
    product.updated_at = utcnow_iso()
    _commit_unique(db, product.barcode)
    db.refresh(product)
    return product


def delete_product(db: Session, product: Product) -> None:
    referenced = db.execute(
        select(
            or_(
                exists().where(Sale.product_id == product.id),
                exists().where(RestockOrderItem.product_id == product.id),
            )
        )
    ).scalar()
    if referenced:
        raise InvalidState("Product has sales or restock orders and cannot be deleted")
    db.delete(product)
    db.commit()


def require_product(db: Session, product_id: int) -> Product:
    product = get_product(db, product_id)
    if product is None:
        raise NotFound(f"Product {product_id} not found")
    return product


def _commit_unique(db: Session, barcode: str) -> None:
    # A concurrent insert can still win the race past _ensure_barcode_free.
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict(f"Barcode {barcode} is already assigned to another product") from exc
