# ledger/db/schema.py

from sqlalchemy import (
    JSON, MetaData, Table, Column, Integer, String,
    Numeric, Date, DateTime, ForeignKey, CheckConstraint, Text, func
)

metadata = MetaData()

# All money columns hold integer cents.

customers = Table(
    "customers",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String, nullable=False),
    Column("email", String, nullable=True),
    Column("phone", String, nullable=True),
    Column("company_name", String, nullable=True),
    Column("created_at", DateTime, server_default=func.now(), nullable=False),
)

orders = Table(
    "orders",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("customer_id", Integer, ForeignKey("customers.id"), nullable=False),
    Column("job_title", Text, nullable=False),
    Column("order_value_cents", Integer, nullable=False, default=0),
    Column("paid_cents", Integer, nullable=False, default=0),
    Column("payment_status", String(16), nullable=False, default="unpaid"),
    Column("status", String(32), nullable=False, default="pending"),
    Column("designer_id", Integer),
    Column("print_operator_id", Integer),
    Column("salesperson_id", Integer),
    Column("created_at", DateTime, server_default=func.now(), nullable=False),
    CheckConstraint("paid_cents >= 0", name="ck_orders_paid_nonneg"),
)

invoices = Table(
    "invoices",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("invoice_number", Text, unique=True, nullable=False),
    Column("customer_id", Integer, ForeignKey("customers.id"), nullable=False),
    Column("order_id", Integer, ForeignKey("orders.id"), nullable=True),
    Column("invoice_date", Date, nullable=False),
    Column("due_date", Date, nullable=True),
    Column("subtotal_cents", Integer, nullable=False),
    Column("tax_cents", Integer, nullable=False),
    Column("total_cents", Integer, nullable=False),
    Column("paid_cents", Integer, nullable=False, default=0),
    Column("status", String(16), nullable=False, default="draft"),
    Column("project_name", Text),
    Column("notes", Text),
    Column("terms", Text),
    Column("created_at", DateTime, server_default=func.now(), nullable=False),
    Column("updated_at", DateTime, server_default=func.now(), onupdate=func.now(), nullable=False),
    CheckConstraint("total_cents >= 0", name="ck_invoices_total_nonneg"),
    CheckConstraint("paid_cents >= 0", name="ck_invoices_paid_nonneg"),
    CheckConstraint("paid_cents <= total_cents", name="ck_invoices_paid_le_total"),
    CheckConstraint(
        "status IN ('draft', 'unpaid', 'partial', 'paid')",
        name="ck_invoices_status",
    ),
)

invoice_items = Table(
    "invoice_items",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("invoice_id", Integer, ForeignKey("invoices.id"), nullable=False),
    Column("description", Text, nullable=False),
    Column("quantity", Numeric(12, 3), nullable=False),
    Column("unit_price_cents", Integer, nullable=False),
    Column("amount_cents", Integer, nullable=False),
    Column("product_id", Integer, nullable=True),
    # area-based pricing and other advanced fields, kept as-is
    Column("pricing", JSON, nullable=True),
)

payments = Table(
    "payments",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("customer_id", Integer, ForeignKey("customers.id"), nullable=True),
    Column("invoice_id", Integer, ForeignKey("invoices.id"), nullable=True),
    Column("order_id", Integer, ForeignKey("orders.id"), nullable=True),
    Column("parent_payment_id", Integer, ForeignKey("payments.id"), nullable=True),
    Column("amount_cents", Integer, nullable=False),
    Column("method", String(32), nullable=False),
    Column("reference_number", Text),
    Column("notes", Text),
    Column("origin", String(32), nullable=False, default="manual"),
    Column("payment_date", Date, nullable=False),
    Column("created_at", DateTime, server_default=func.now(), nullable=False),
    CheckConstraint("amount_cents >= 0", name="ck_payments_amount_nonneg"),
    CheckConstraint(
        "origin IN ('manual', 'allocation', 'auto_status_toggle')",
        name="ck_payments_origin",
    ),
)

commissions = Table(
    "commissions",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("user_id", Integer, nullable=False),
    Column("order_id", Integer, ForeignKey("orders.id"), nullable=False),
    Column("commission_type", String(32), nullable=False),
    Column("commission_percentage", Numeric(5, 2), nullable=False),
    Column("commission_amount_cents", Integer, nullable=False),
    Column("created_at", DateTime, server_default=func.now(), nullable=False),
)

# Order collaborators owned by other parts of the shop system. The ledger
# only ever deletes from these by order id.

order_files = Table(
    "order_files",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("order_id", Integer, ForeignKey("orders.id"), nullable=False),
    Column("file_name", Text, nullable=False),
    Column("file_url", Text),
)

order_comments = Table(
    "order_comments",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("order_id", Integer, ForeignKey("orders.id"), nullable=False),
    Column("user_id", Integer),
    Column("comment", Text, nullable=False),
)

order_history = Table(
    "order_history",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("order_id", Integer, ForeignKey("orders.id"), nullable=False),
    Column("user_id", Integer),
    Column("action", Text, nullable=False),
    Column("details", JSON),
)

notifications = Table(
    "notifications",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("order_id", Integer, ForeignKey("orders.id"), nullable=False),
    Column("recipient_id", Integer),
    Column("notification_type", String(32), nullable=False),
    Column("message", Text, nullable=False),
    Column("status", String(16), nullable=False, default="pending"),
)

INVOICE_STATUSES = ("draft", "unpaid", "partial", "paid")
PAYMENT_METHODS = ("cash", "bank_transfer", "mobile_money", "cheque", "card")
PAYMENT_ORIGINS = ("manual", "allocation", "auto_status_toggle")
