from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class Grade(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"


class PriceChange(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class OrderStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    CAD = "cad"


# Разрешенные переходы статусов заказа
ORDER_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.APPROVED, OrderStatus.REJECTED},
    OrderStatus.APPROVED: {OrderStatus.COMPLETED},
    OrderStatus.REJECTED: set(),
    OrderStatus.COMPLETED: set(),
}


class InventoryItem(BaseModel):
    """Value Object - позиция склада"""
    id: str
    device_name: str
    brand: str = ""
    grade: Grade
    storage: str
    quantity: int = Field(default=0, ge=0)
    price_per_unit: Decimal = Field(default=Decimal("0"), ge=0)
    selling_price: Optional[Decimal] = None
    price_change: Optional[PriceChange] = None
    last_updated: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def unit_price(self) -> Decimal:
        """Цена для покупателя: selling_price, если задана, иначе price_per_unit"""
        return self.selling_price if self.selling_price is not None else self.price_per_unit


class CartEntry(BaseModel):
    item: InventoryItem
    quantity: int = Field(gt=0)


class OrderItem(BaseModel):
    item: InventoryItem
    quantity: int = Field(gt=0)


class Order(BaseModel):
    """Domain Entity - заказ"""
    id: str
    user_id: str
    items: list[OrderItem]
    subtotal: Decimal = Decimal("0")
    tax_rate: Optional[Decimal] = None
    tax_amount: Optional[Decimal] = None
    total_price: Decimal
    status: OrderStatus
    created_at: datetime
    updated_at: datetime
    rejection_reason: Optional[str] = None
    rejection_comment: Optional[str] = None
    shipping_address: Optional[str] = None
    billing_address: Optional[str] = None
    discount_amount: Decimal = Decimal("0")
    discount_type: DiscountType = DiscountType.CAD
    shipping_amount: Decimal = Decimal("0")
    invoice_number: Optional[str] = None
    invoice_date: Optional[str] = None
    po_number: Optional[str] = None
    payment_terms: Optional[str] = None
    due_date: Optional[str] = None
    hst_number: Optional[str] = None
    invoice_notes: Optional[str] = None
    invoice_terms: Optional[str] = None
    invoice_confirmed: bool = False
    invoice_confirmed_at: Optional[datetime] = None

    def can_transition_to(self, status: OrderStatus) -> bool:
        """Бизнес-правило: pending -> approved/rejected, approved -> completed"""
        return status in ORDER_TRANSITIONS[self.status]

    def reserves_inventory(self) -> bool:
        """Только pending заказ держит резерв"""
        return self.status == OrderStatus.PENDING


class StoredWishlistItem(BaseModel):
    item_id: str
    added_at: Optional[datetime] = None


class StoredCartItem(BaseModel):
    item_id: str
    quantity: int = Field(gt=0)


class UserProfile(BaseModel):
    id: str
    user_id: str
    role: UserRole = UserRole.USER
    approval_status: ApprovalStatus = ApprovalStatus.PENDING
    approval_status_updated_at: Optional[datetime] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    business_name: Optional[str] = None
    business_address: Optional[str] = None
    business_state: Optional[str] = None
    business_city: Optional[str] = None
    business_country: Optional[str] = None
    business_years: Optional[int] = None
    business_website: Optional[str] = None
    business_email: Optional[str] = None
    shipping_address: Optional[str] = None
    billing_address: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    def can_place_orders(self) -> bool:
        return self.approval_status == ApprovalStatus.APPROVED


class TaxInfo(BaseModel):
    tax_rate: Decimal = Decimal("0")
    tax_type: str = "Tax"

    @property
    def tax_rate_percent(self) -> Decimal:
        return self.tax_rate * 100


class InsufficientStockItem(BaseModel):
    item_id: str
    device_name: str
    requested_qty: int
    available_qty: int


class Page(BaseModel):
    data: list
    count: int
