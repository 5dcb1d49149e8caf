"""Read-only catalog queries.

Products leave this module as frozen ``CatalogProduct`` values so the cart
can keep them across requests without holding ORM rows.
"""
from dataclasses import dataclass, asdict
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from models import db
from models.product import Product
from app.exceptions import ProductNotFound

TWOPLACES = Decimal("0.01")


def to_money(value) -> Decimal:
    d = Decimal(str(value))
    return d.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class CatalogProduct:
    id: str
    name: str
    price: Decimal
    unit: str
    category: str
    in_stock: bool = True
    rating: float = 0.0
    original_price: Optional[Decimal] = None
    image_url: Optional[str] = None
    description: Optional[str] = None

    @classmethod
    def from_model(cls, row: Product) -> "CatalogProduct":
        return cls(
            id=row.id,
            name=row.name,
            price=to_money(row.price),
            unit=row.unit,
            category=row.category,
            in_stock=bool(row.in_stock),
            rating=float(row.rating or 0),
            original_price=to_money(row.original_price) if row.original_price is not None else None,
            image_url=row.image_url,
            description=row.description,
        )

    @property
    def savings(self) -> Decimal:
        if self.original_price is not None and self.original_price > self.price:
            return self.original_price - self.price
        return Decimal("0.00")

    def to_dict(self):
        data = asdict(self)
        data["price"] = float(self.price)
        data["original_price"] = float(self.original_price) if self.original_price is not None else None
        return data


def list_products(category: str = None) -> List[CatalogProduct]:
    query = Product.query.filter_by(in_stock=True)
    if category:
        query = query.filter_by(category=category)
    return [CatalogProduct.from_model(p) for p in query.order_by(Product.name.asc()).all()]


def get_product(product_id: str) -> CatalogProduct:
    row = db.session.get(Product, product_id) if product_id else None
    if row is None:
        raise ProductNotFound()
    return CatalogProduct.from_model(row)


def list_categories() -> List[str]:
    rows = (
        db.session.query(Product.category)
        .filter(Product.in_stock.is_(True))
        .distinct()
        .order_by(Product.category.asc())
        .all()
    )
    return [r[0] for r in rows]
