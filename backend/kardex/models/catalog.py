from __future__ import annotations

from ..extensions import db
from ..decimal_utils import money_str, quantity_str
from ..time_utils import to_utc_z


class Category(db.Model):
    """Menu category. Maintained by the catalog collaborator; read-only here."""
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    column_identifier = db.Column(db.String(50), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    header_image = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(50), nullable=False, default="active")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "column_identifier": self.column_identifier,
            "title": self.title,
            "header_image": self.header_image,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Uom(db.Model):
    """Unit of measure (pz, kg, lt, ...)."""
    __tablename__ = "uoms"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), nullable=False)
    abbreviation = db.Column(db.String(10), nullable=False, unique=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "abbreviation": self.abbreviation,
        }


class Product(db.Model):
    """
    Product master data.

    product_type drives nothing inside the ledger engine; it is carried so
    raw materials (recipe inputs) and finished goods can be told apart by the
    catalog and by reports.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("category_id", "name", name="uq_products_category_name"),
        db.Index("ix_products_type", "product_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id", ondelete="CASCADE"), nullable=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    detail = db.Column(db.Text, nullable=True)
    product_type = db.Column(db.String(32), nullable=False, default="finished")
    uom_id = db.Column(db.Integer, db.ForeignKey("uoms.id"), nullable=True)
    digital_data = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(50), nullable=False, default="active")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    category = db.relationship("Category", backref=db.backref("products", lazy=True))
    uom = db.relationship("Uom")
    price = db.relationship("ProductPrice", back_populates="product", uselist=False)
    components = db.relationship(
        "ProductComponent",
        foreign_keys="ProductComponent.parent_product_id",
        back_populates="parent",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} type={self.product_type}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category_id": self.category_id,
            "name": self.name,
            "description": self.description,
            "product_type": self.product_type,
            "uom_id": self.uom_id,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ProductPrice(db.Model):
    """
    Current selling prices plus the cached stock aggregate.

    stock_quantity is a materialization of SUM(inventory_ledger.quantity) for
    the product. The ledger is the source of truth; the cache is rewritten by
    full re-aggregation in the same transaction as every ledger write and can
    be rebuilt at any time (flask inventory rebuild-cache).
    """
    __tablename__ = "product_prices"
    __table_args__ = (
        db.UniqueConstraint("product_id", name="uq_product_prices_product"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    sku = db.Column(db.String(100), nullable=True)
    internal_code = db.Column(db.String(100), nullable=True)

    purchase_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    store_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    public_price = db.Column(db.Numeric(12, 2), nullable=False)
    published_price = db.Column(db.Numeric(12, 2), nullable=True)

    stock_quantity = db.Column(db.Numeric(14, 4), nullable=False, default=0)
    is_backorder = db.Column(db.Boolean, nullable=False, default=False)
    min_stock_level = db.Column(db.Integer, nullable=False, default=5)
    reorder_point = db.Column(db.Integer, nullable=False, default=10)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product", back_populates="price")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "sku": self.sku,
            "purchase_price": money_str(self.purchase_price),
            "store_price": money_str(self.store_price),
            "public_price": money_str(self.public_price),
            "published_price": money_str(self.published_price),
            "stock_quantity": quantity_str(self.stock_quantity),
            "is_backorder": self.is_backorder,
            "min_stock_level": self.min_stock_level,
            "reorder_point": self.reorder_point,
            "updated_at": to_utc_z(self.updated_at),
        }


class ProductComponent(db.Model):
    """
    Bill-of-materials edge: producing one unit of parent consumes
    quantity_required units of child (e.g. 0.150 kg of meat per burger).

    Edges form a DAG by convention; cycles are not checked here.
    """
    __tablename__ = "product_components"
    __table_args__ = (
        db.UniqueConstraint("parent_product_id", "child_product_id", name="uq_product_components_edge"),
        db.CheckConstraint("quantity_required > 0", name="ck_product_components_qty_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    parent_product_id = db.Column(
        db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    child_product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity_required = db.Column(db.Numeric(14, 4), nullable=False)

    parent = db.relationship("Product", foreign_keys=[parent_product_id], back_populates="components")
    child = db.relationship("Product", foreign_keys=[child_product_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "parent_product_id": self.parent_product_id,
            "child_product_id": self.child_product_id,
            "quantity_required": quantity_str(self.quantity_required),
        }


class Location(db.Model):
    """Physical or virtual stock location. Seeded once by `flask system init`."""
    __tablename__ = "locations"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_locations_name"),
        db.Index("ix_locations_type", "type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    type = db.Column(db.String(32), nullable=False)
    address = db.Column(db.Text, nullable=True)
    is_virtual = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Location id={self.id} name={self.name!r} type={self.type}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "address": self.address,
            "is_virtual": self.is_virtual,
            "created_at": to_utc_z(self.created_at),
        }
