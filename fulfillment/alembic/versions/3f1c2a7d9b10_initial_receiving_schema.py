"""initial receiving schema

Revision ID: 3f1c2a7d9b10
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f1c2a7d9b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

PO_STATUS = sa.Enum(
    "draft",
    "submitted",
    "approved",
    "partially_received",
    "fully_received",
    "cancelled",
    name="po_status",
)
LOCATION_TYPE = sa.Enum("warehouse", "zone", "dock", "quarantine", "store", name="location_type")
INVENTORY_STATUS = sa.Enum("active", "inactive", name="inventory_status")
TRANSACTION_TYPE = sa.Enum("receipt", name="transaction_type")


def _qty():
    return sa.Numeric(14, 3)


def _money():
    return sa.Numeric(14, 2)


def _user_fk(name: str) -> sa.Column:
    return sa.Column(name, sa.BigInteger(), sa.ForeignKey("users.id", ondelete="SET NULL"))


def _org_fk() -> sa.Column:
    return sa.Column(
        "organization_id",
        sa.BigInteger(),
        sa.ForeignKey("organizations.id", ondelete="RESTRICT"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "organizations",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False, unique=True),
        sa.Column("active", sa.Boolean(), nullable=False),
    )
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        _org_fk(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        "vendors",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        _org_fk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.UniqueConstraint("organization_id", "name", name="uq_vendor_org_name"),
    )
    op.create_table(
        "locations",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        _org_fk(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("type", LOCATION_TYPE, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.UniqueConstraint("organization_id", "name", name="uq_location_org_name"),
    )
    op.create_table(
        "products",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        _org_fk(),
        sa.Column("sku", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("stock_unit", sa.String(32), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.UniqueConstraint("organization_id", "sku", name="uq_product_org_sku"),
    )

    # ---------- PROCUREMENT ----------
    op.create_table(
        "purchase_orders",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        _org_fk(),
        sa.Column("order_number", sa.String(64), nullable=False),
        sa.Column("vendor_id", sa.BigInteger(), sa.ForeignKey("vendors.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("order_date", sa.Date(), nullable=False),
        sa.Column("status", PO_STATUS, nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("subtotal", _money(), nullable=False),
        sa.Column("tax_amount", _money(), nullable=False),
        sa.Column("shipping_amount", _money(), nullable=False),
        sa.Column("discount_amount", _money(), nullable=False),
        sa.Column("total_amount", _money(), nullable=False),
        _user_fk("created_by"),
        _user_fk("updated_by"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.UniqueConstraint("organization_id", "order_number", name="uq_po_org_order_number"),
        sa.CheckConstraint("shipping_amount >= 0", name="ck_po_shipping_nonneg"),
        sa.CheckConstraint("discount_amount >= 0", name="ck_po_discount_nonneg"),
    )
    op.create_index("ix_purchase_orders_organization_id", "purchase_orders", ["organization_id"])

    op.create_table(
        "purchase_order_lines",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column(
            "po_id",
            sa.BigInteger(),
            sa.ForeignKey("purchase_orders.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("product_id", sa.BigInteger(), sa.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("quantity", _qty(), nullable=False),
        sa.Column("unit_price", _money()),
        sa.Column("tax_rate", sa.Numeric(6, 3), nullable=False),
        sa.Column("discount_amount", _money(), nullable=False),
        sa.Column("line_total", _money(), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_po_line_qty_pos"),
        sa.CheckConstraint("unit_price IS NULL OR unit_price >= 0", name="ck_po_line_unit_price_nonneg"),
        sa.CheckConstraint("tax_rate >= 0", name="ck_po_line_tax_rate_nonneg"),
    )
    op.create_index("ix_purchase_order_lines_po_id", "purchase_order_lines", ["po_id"])

    op.create_table(
        "goods_receipts",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        _org_fk(),
        sa.Column(
            "po_id",
            sa.BigInteger(),
            sa.ForeignKey("purchase_orders.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("receipt_number", sa.String(64), nullable=False),
        sa.Column("receipt_date", sa.Date(), nullable=False),
        sa.Column("notes", sa.Text()),
        _user_fk("received_by"),
        _user_fk("created_by"),
        _user_fk("updated_by"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("organization_id", "receipt_number", name="uq_gr_org_receipt_number"),
    )
    op.create_index("ix_goods_receipts_po_id", "goods_receipts", ["po_id"])

    op.create_table(
        "goods_receipt_lines",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        _org_fk(),
        sa.Column(
            "receipt_id",
            sa.BigInteger(),
            sa.ForeignKey("goods_receipts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "po_line_id",
            sa.BigInteger(),
            sa.ForeignKey("purchase_order_lines.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("quantity", _qty(), nullable=False),
        sa.Column("location_id", sa.BigInteger(), sa.ForeignKey("locations.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("notes", sa.Text()),
        _user_fk("created_by"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_gr_line_qty_pos"),
    )
    op.create_index("ix_goods_receipt_lines_receipt_id", "goods_receipt_lines", ["receipt_id"])
    op.create_index("ix_goods_receipt_lines_po_line_id", "goods_receipt_lines", ["po_line_id"])

    # ---------- INVENTORY ----------
    op.create_table(
        "inventories",
        sa.Column("product_id", sa.BigInteger(), sa.ForeignKey("products.id", ondelete="RESTRICT"), primary_key=True),
        sa.Column("location_id", sa.BigInteger(), sa.ForeignKey("locations.id", ondelete="RESTRICT"), primary_key=True),
        _org_fk(),
        sa.Column("current_stock", _qty(), nullable=False),
        sa.Column("committed_stock", _qty(), nullable=False),
        sa.Column("shelf_location", sa.String(64), nullable=False),
        sa.Column("status", INVENTORY_STATUS, nullable=False),
        sa.Column("last_count_date", sa.DateTime(timezone=True)),
        _user_fk("created_by"),
        _user_fk("updated_by"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.CheckConstraint("current_stock >= 0", name="ck_inventory_current_nonneg"),
        sa.CheckConstraint("committed_stock >= 0", name="ck_inventory_committed_nonneg"),
    )
    op.create_index("ix_inventories_organization_id", "inventories", ["organization_id"])

    op.create_table(
        "inventory_transactions",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        _org_fk(),
        sa.Column("product_id", sa.BigInteger(), sa.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("location_id", sa.BigInteger(), sa.ForeignKey("locations.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("transaction_type", TRANSACTION_TYPE, nullable=False),
        sa.Column("quantity", _qty(), nullable=False),
        sa.Column("unit_cost", _money(), nullable=False),
        sa.Column("total_cost", _money(), nullable=False),
        sa.Column("reference_type", sa.String(32), nullable=False),
        sa.Column("reference_id", sa.BigInteger(), nullable=False),
        sa.Column("notes", sa.Text()),
        _user_fk("created_by"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_inventory_tx_qty_pos"),
    )
    op.create_index("ix_inventory_transactions_product_id", "inventory_transactions", ["product_id"])
    op.create_index("ix_inventory_tx_reference", "inventory_transactions", ["reference_type", "reference_id"])
    op.create_index("ix_inventory_tx_product_location", "inventory_transactions", ["product_id", "location_id"])


def downgrade() -> None:
    op.drop_table("inventory_transactions")
    op.drop_table("inventories")
    op.drop_table("goods_receipt_lines")
    op.drop_table("goods_receipts")
    op.drop_table("purchase_order_lines")
    op.drop_table("purchase_orders")
    op.drop_table("products")
    op.drop_table("locations")
    op.drop_table("vendors")
    op.drop_table("users")
    op.drop_table("organizations")

    bind = op.get_bind()
    for enum_type in (TRANSACTION_TYPE, INVENTORY_STATUS, LOCATION_TYPE, PO_STATUS):
        enum_type.drop(bind, checkfirst=True)
