from sqlalchemy import (
    Table, Column, String, Integer, Numeric, Boolean, Enum, DateTime, JSON, MetaData, UniqueConstraint
)
from sqlalchemy.sql import func

from stoq.domain.models import ApprovalStatus, DiscountType, Grade, OrderStatus, PriceChange, UserRole

metadata = MetaData()


def _enum(enum_cls, name: str) -> Enum:
    # В БД хранятся значения ("pending"), а не имена членов
    return Enum(enum_cls, name=name, values_callable=lambda e: [m.value for m in e])


inventory_tbl = Table(
    "inventory",
    metadata,
    Column("id", String, primary_key=True),
    Column("device_name", String, nullable=False, index=True),
    Column("brand", String, nullable=False, default=""),
    Column("grade", _enum(Grade, "inventory_grade"), nullable=False),
    Column("storage", String, nullable=False),
    Column("quantity", Integer, nullable=False, default=0),
    Column("price_per_unit", Numeric(12, 2), nullable=False, default=0),
    Column("selling_price", Numeric(12, 2), nullable=True),
    Column("price_change", _enum(PriceChange, "price_change"), nullable=True),
    Column("last_updated", String, nullable=True),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
)


orders_tbl = Table(
    "orders",
    metadata,
    Column("id", String, primary_key=True),
    Column("user_id", String, nullable=False, index=True),
    Column("items", JSON, nullable=False),
    Column("subtotal", Numeric(12, 2), nullable=False, default=0),
    Column("tax_rate", Numeric(6, 4), nullable=True),
    Column("tax_amount", Numeric(12, 2), nullable=True),
    Column("total_price", Numeric(12, 2), nullable=False),
    Column("status", _enum(OrderStatus, "order_status"), default=OrderStatus.PENDING, index=True),
    Column("rejection_reason", String, nullable=True),
    Column("rejection_comment", String, nullable=True),
    Column("shipping_address", String, nullable=True),
    Column("billing_address", String, nullable=True),
    Column("discount_amount", Numeric(12, 2), nullable=False, default=0),
    Column("discount_type", _enum(DiscountType, "discount_type"), nullable=False, default=DiscountType.CAD),
    Column("shipping_amount", Numeric(12, 2), nullable=False, default=0),
    Column("invoice_number", String, nullable=True),
    Column("invoice_date", String, nullable=True),
    Column("po_number", String, nullable=True),
    Column("payment_terms", String, nullable=True),
    Column("due_date", String, nullable=True),
    Column("hst_number", String, nullable=True),
    Column("invoice_notes", String, nullable=True),
    Column("invoice_terms", String, nullable=True),
    Column("invoice_confirmed", Boolean, nullable=False, default=False),
    Column("invoice_confirmed_at", DateTime(timezone=True), nullable=True),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
)


user_profiles_tbl = Table(
    "user_profiles",
    metadata,
    Column("id", String, primary_key=True),
    Column("user_id", String, nullable=False, unique=True, index=True),
    Column("role", _enum(UserRole, "user_role"), nullable=False, default=UserRole.USER),
    Column("approval_status", _enum(ApprovalStatus, "approval_status"), nullable=False, default=ApprovalStatus.PENDING),
    Column("approval_status_updated_at", DateTime(timezone=True), nullable=True),
    Column("first_name", String, nullable=True),
    Column("last_name", String, nullable=True),
    Column("phone", String, nullable=True),
    Column("business_name", String, nullable=True),
    Column("business_address", String, nullable=True),
    Column("business_state", String, nullable=True),
    Column("business_city", String, nullable=True),
    Column("business_country", String, nullable=True),
    Column("business_years", Integer, nullable=True),
    Column("business_website", String, nullable=True),
    Column("business_email", String, nullable=True),
    Column("shipping_address", String, nullable=True),
    Column("billing_address", String, nullable=True),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
)


carts_tbl = Table(
    "carts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", String, nullable=False, index=True),
    Column("item_id", String, nullable=False),
    Column("quantity", Integer, nullable=False),
    UniqueConstraint("user_id", "item_id", name="uq_carts_user_item")
)


wishlists_tbl = Table(
    "wishlists",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", String, nullable=False, index=True),
    Column("item_id", String, nullable=False),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    UniqueConstraint("user_id", "item_id", name="uq_wishlists_user_item")
)


tax_rates_tbl = Table(
    "tax_rates",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("country", String, nullable=False),
    Column("state_province", String, nullable=False),
    Column("city", String, nullable=True),
    Column("tax_rate", Numeric(6, 3), nullable=False),
    Column("tax_type", String, nullable=True),
    Column("effective_date", DateTime(timezone=True), server_default=func.now())
)


outbox_events_tbl = Table(
    "outbox_events",
    metadata,
    Column("id", String, primary_key=True),
    Column("event_type", String, nullable=False),
    Column("event_data", JSON, nullable=False),
    Column("record_id", String, nullable=False),
    Column("status", String, default="pending"),
    Column("created_at", DateTime(timezone=True), server_default=func.now())
)
