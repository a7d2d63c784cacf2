"""Initial LeaseKeeper schema."""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


ENUMS = {
    "resourcetype": ("document", "employee", "stockItem", "purchaseOrder"),
    "leasestatus": ("active", "completed", "expired", "cancelled"),
    "ledgerentrytype": (
        "stock_in",
        "stock_out",
        "transfer",
        "adjustment",
        "payment",
        "status_change",
    ),
    "ledgerstatus": ("pending", "completed", "cancelled", "reversed"),
    "stockitemstatus": (
        "active",
        "discontinued",
        "damaged",
        "lost",
        "stolen",
        "expired",
        "recalled",
    ),
    "purchaseorderstatus": ("draft", "pending", "approved", "received", "completed", "cancelled"),
    "purchaseorderlinestatus": ("open", "partially_received", "received"),
    "documentstatus": (
        "draft",
        "pending",
        "approved",
        "partially_paid",
        "paid",
        "overdue",
        "cancelled",
        "void",
        "refunded",
    ),
    "employeestatus": (
        "active",
        "on_leave",
        "suspended",
        "resigned",
        "terminated",
        "retired",
        "deceased",
    ),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def upgrade() -> None:
    """Create tables, enums and the active-lease uniqueness index."""
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        "leases",
        sa.Column("lease_id", sa.Uuid(), primary_key=True),
        sa.Column("resource_type", _enum("resourcetype"), nullable=False),
        sa.Column("resource_id", sa.Uuid(), nullable=False),
        sa.Column("holder", sa.String(length=255), nullable=False),
        sa.Column("operation", sa.String(length=50), nullable=False),
        sa.Column("details", postgresql.JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("token", sa.String(length=128), nullable=False),
        sa.Column("status", _enum("leasestatus"), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
    )
    # At most one active lease per resource
    op.create_index(
        "uq_leases_active_resource",
        "leases",
        ["resource_type", "resource_id"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
    )
    op.create_index("uq_leases_token", "leases", ["token"], unique=True)
    op.create_index("idx_leases_status_expires", "leases", ["status", "expires_at"])
    op.create_index("idx_leases_holder", "leases", ["holder"])

    op.create_table(
        "ledger_entries",
        sa.Column("entry_id", sa.Uuid(), primary_key=True),
        sa.Column("reference", sa.String(length=64), nullable=False, unique=True),
        sa.Column("resource_type", _enum("resourcetype"), nullable=False),
        sa.Column("resource_id", sa.Uuid(), nullable=False),
        sa.Column("lease_id", sa.Uuid(), sa.ForeignKey("leases.lease_id"), nullable=True),
        sa.Column("entry_type", _enum("ledgerentrytype"), nullable=False),
        sa.Column("stock_item_id", sa.Uuid(), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=True),
        sa.Column("amount", sa.Numeric(14, 2), nullable=True),
        sa.Column("source", sa.String(length=255), nullable=True),
        sa.Column("destination", sa.String(length=255), nullable=True),
        sa.Column("details", postgresql.JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("status", _enum("ledgerstatus"), nullable=False),
        sa.Column("created_by", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "idx_ledger_resource",
        "ledger_entries",
        ["resource_type", "resource_id", "created_at"],
    )
    op.create_index("idx_ledger_lease", "ledger_entries", ["lease_id"])
    op.create_index("idx_ledger_stock_item", "ledger_entries", ["stock_item_id", "created_at"])

    op.create_table(
        "stock_items",
        sa.Column("item_id", sa.Uuid(), primary_key=True),
        sa.Column("sku", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("location", sa.String(length=255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", _enum("stockitemstatus"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("quantity >= 0", name="ck_stock_items_quantity_non_negative"),
    )
    op.create_index("uq_stock_items_sku_location", "stock_items", ["sku", "location"], unique=True)

    op.create_table(
        "purchase_orders",
        sa.Column("order_id", sa.Uuid(), primary_key=True),
        sa.Column("supplier", sa.String(length=255), nullable=False),
        sa.Column("status", _enum("purchaseorderstatus"), nullable=False),
        sa.Column("total", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("received_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_purchase_orders_status", "purchase_orders", ["status", "created_at"])

    op.create_table(
        "purchase_order_lines",
        sa.Column("line_id", sa.Uuid(), primary_key=True),
        sa.Column(
            "order_id",
            sa.Uuid(),
            sa.ForeignKey("purchase_orders.order_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("stock_item_id", sa.Uuid(), sa.ForeignKey("stock_items.item_id"), nullable=False),
        sa.Column("quantity_ordered", sa.Integer(), nullable=False),
        sa.Column("quantity_received", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("unit_price", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("status", _enum("purchaseorderlinestatus"), nullable=False),
        sa.CheckConstraint("quantity_ordered > 0", name="ck_po_lines_quantity_positive"),
        sa.CheckConstraint(
            "quantity_received >= 0 AND quantity_received <= quantity_ordered",
            name="ck_po_lines_received_within_ordered",
        ),
    )
    op.create_index(
        "uq_po_lines_order_item",
        "purchase_order_lines",
        ["order_id", "stock_item_id"],
        unique=True,
    )

    op.create_table(
        "financial_documents",
        sa.Column("document_id", sa.Uuid(), primary_key=True),
        sa.Column("number", sa.String(length=64), nullable=False, unique=True),
        sa.Column("total", sa.Numeric(14, 2), nullable=False),
        sa.Column("amount_paid", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("status", _enum("documentstatus"), nullable=False),
        sa.Column("payment_method", sa.String(length=32), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_by", sa.String(length=255), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount_paid >= 0", name="ck_documents_amount_paid_non_negative"),
    )
    op.create_index("idx_documents_status", "financial_documents", ["status", "created_at"])

    op.create_table(
        "employees",
        sa.Column("employee_id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("status", _enum("employeestatus"), nullable=False),
        sa.Column("status_reason", sa.Text(), nullable=True),
        sa.Column("assets", postgresql.JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column(
            "approved_leave_requests",
            postgresql.JSONB,
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_employees_status", "employees", ["status"])


def downgrade() -> None:
    """Drop all tables and enums."""
    op.drop_index("idx_employees_status", table_name="employees")
    op.drop_table("employees")

    op.drop_index("idx_documents_status", table_name="financial_documents")
    op.drop_table("financial_documents")

    op.drop_index("uq_po_lines_order_item", table_name="purchase_order_lines")
    op.drop_table("purchase_order_lines")

    op.drop_index("idx_purchase_orders_status", table_name="purchase_orders")
    op.drop_table("purchase_orders")

    op.drop_index("uq_stock_items_sku_location", table_name="stock_items")
    op.drop_table("stock_items")

    op.drop_index("idx_ledger_stock_item", table_name="ledger_entries")
    op.drop_index("idx_ledger_lease", table_name="ledger_entries")
    op.drop_index("idx_ledger_resource", table_name="ledger_entries")
    op.drop_table("ledger_entries")

    op.drop_index("idx_leases_holder", table_name="leases")
    op.drop_index("idx_leases_status_expires", table_name="leases")
    op.drop_index("uq_leases_token", table_name="leases")
    op.drop_index("uq_leases_active_resource", table_name="leases")
    op.drop_table("leases")

    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
