from decimal import Decimal
from typing import Optional

from reservations.db.base import Product as DbProduct
from reservations.domain.entities import Product
from reservations.domain.interfaces import IProductRepository
from reservations.utils.money import TENTH, optional_decimal, to_decimal


class ProductRepository(IProductRepository):
    def __init__(self, db_session) -> None:
        self.db = db_session

    def add(self, product: Product) -> Product:
        db_product = DbProduct(
            vendor_id=product.vendor_id,
            name=product.name,
            price=product.price,
            stock_qty=product.stock_qty,
            category=product.category,
            avg_rating=None,
        )
        self.db.add(db_product)
        self.db.flush()
        return self._to_domain(db_product)

    def get_by_id(self, product_id: int) -> Optional[Product]:
        db_product = self.db.get(DbProduct, product_id)
        return self._to_domain(db_product) if db_product else None

    def get_for_update(self, product_id: int) -> Optional[Product]:
        db_product = (
            self.db.query(DbProduct)
            .filter(DbProduct.id == product_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        return self._to_domain(db_product) if db_product else None

    def change_stock(self, product_id: int, delta: int) -> Product:
        db_product = self._get_row(product_id)
        current_qty = db_product.stock_qty or 0
        if current_qty + delta < 0:
            raise ValueError("Stock quantity cannot become negative")
        db_product.stock_qty = current_qty + delta
        self.db.flush()
        return self._to_domain(db_product)

    def update(self, product: Product) -> Product:
        db_product = self._get_row(product.id)
        db_product.name = product.name
        db_product.price = product.price
        db_product.stock_qty = product.stock_qty
        db_product.category = product.category
        self.db.flush()
        return self._to_domain(db_product)

    def set_avg_rating(self, product_id: int, avg_rating: Optional[Decimal]) -> None:
        db_product = self._get_row(product_id)
        db_product.avg_rating = avg_rating
        self.db.flush()

    def _get_row(self, product_id: Optional[int]) -> DbProduct:
        db_product = self.db.get(DbProduct, product_id) if product_id else None
        if not db_product:
            raise ValueError("Product not found")
        return db_product

    def _to_domain(self, db_product: DbProduct) -> Product:
        return Product(
            id=db_product.id,
            vendor_id=db_product.vendor_id,
            name=db_product.name,
            price=to_decimal(db_product.price),
            stock_qty=db_product.stock_qty or 0,
            category=db_product.category,
            avg_rating=optional_decimal(db_product.avg_rating, TENTH),
        )
