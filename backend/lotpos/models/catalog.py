from __future__ import annotations

from ..extensions import db
from lotpos.money import format_amount
from lotpos.time_utils import to_utc_z


PRODUCT_TYPES = (
    "standard",
    "compound",
    "raw_tracked",
    "manufactured_virtual",
    "variable",
)


class Product(db.Model):
    """
    Sellable or consumable item.

    WHY manufactured_virtual: such products never hold stock of their own.
    Selling one consumes the raw product named by its Recipe.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("sale_price >= 0", name="ck_products_sale_price_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=True, unique=True, index=True)

    type = db.Column(db.String(32), nullable=False, default="standard")  # see PRODUCT_TYPES
    manage_stock = db.Column(db.Boolean, nullable=False, default=True)
    sale_price = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    unit = db.Column(db.String(16), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def is_manufactured(self) -> bool:
        return self.type == "manufactured_virtual"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "type": self.type,
            "manage_stock": self.manage_stock,
            "sale_price": format_amount(self.sale_price),
            "unit": self.unit,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class ProductBranch(db.Model):
    """
    Branch availability for a product.

    A product without any rows here is stocked everywhere; once a row
    exists the product is sold only at the listed branches.
    """
    __tablename__ = "product_branches"
    __table_args__ = (
        db.UniqueConstraint("product_id", "branch_id", name="uq_product_branches"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)

    product = db.relationship("Product", backref=db.backref("branch_links", lazy=True))


class Recipe(db.Model):
    """One recipe per manufactured virtual product."""
    __tablename__ = "recipes"
    __table_args__ = (
        db.CheckConstraint("conversion_factor > 0", name="ck_recipes_factor_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    virtual_product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, unique=True)
    raw_product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    # Raw units consumed per unit of virtual product sold
    conversion_factor = db.Column(db.Numeric(15, 3), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    virtual_product = db.relationship("Product", foreign_keys=[virtual_product_id])
    raw_product = db.relationship("Product", foreign_keys=[raw_product_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "virtual_product_id": self.virtual_product_id,
            "raw_product_id": self.raw_product_id,
            "conversion_factor": format_amount(self.conversion_factor),
        }
