from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from stoq.application.invoice import PaymentMethod
from stoq.domain.models import (
    CartEntry, DiscountType, Grade, InventoryItem, OrderItem, OrderStatus, StoredCartItem, StoredWishlistItem,
    UserProfile
)


class CreateOrderRequest(BaseModel):
    user_id: str
    shipping_address: Optional[str] = None
    billing_address: Optional[str] = None


class OrderResponse(BaseModel):
    id: str
    user_id: str
    items: list[OrderItem]
    subtotal: Decimal
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

    @classmethod
    def from_domain(cls, order):
        return cls(**order.model_dump())


class OrdersPageResponse(BaseModel):
    data: list[OrderResponse]
    count: int


class UpdateOrderStatusRequest(BaseModel):
    status: OrderStatus
    rejection_reason: Optional[str] = None
    rejection_comment: Optional[str] = None
    discount_amount: Optional[Decimal] = Field(default=None, ge=0)
    force: bool = False


class InvoiceRequest(BaseModel):
    invoice_number: str
    invoice_date: str
    po_number: str = ""
    payment_terms: PaymentMethod = "CHQ"
    due_date: str
    hst_number: str = ""
    invoice_notes: Optional[str] = None
    invoice_terms: Optional[str] = None
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0)
    discount_type: DiscountType = DiscountType.CAD
    shipping_amount: Decimal = Field(default=Decimal("0"), ge=0)


class InventoryPageResponse(BaseModel):
    data: list[InventoryItem]
    count: int


class UpdateProductRequest(BaseModel):
    device_name: Optional[str] = None
    brand: Optional[str] = None
    grade: Optional[Grade] = None
    storage: Optional[str] = None
    quantity: Optional[int] = Field(default=None, ge=0)
    price_per_unit: Optional[Decimal] = Field(default=None, ge=0)
    selling_price: Optional[Decimal] = Field(default=None, ge=0)


class NewProduct(BaseModel):
    device_name: str
    brand: str = ""
    grade: Grade
    storage: str
    quantity: int = Field(default=0, ge=0)
    price_per_unit: Decimal = Field(default=Decimal("0"), ge=0)
    selling_price: Optional[Decimal] = Field(default=None, ge=0)


class BulkInsertRequest(BaseModel):
    products: list[NewProduct]


class AvailabilityRequest(BaseModel):
    user_id: Optional[str] = None
    guest_cart: list[StoredCartItem] = []


class AvailabilityResponse(BaseModel):
    item_id: str
    available: int


class AddToCartRequest(BaseModel):
    item_id: str
    quantity: int = 1


class UpdateCartItemRequest(BaseModel):
    quantity: int


class CartResponse(BaseModel):
    items: list[CartEntry]
    total_items: int
    unique_items: int
    subtotal: Decimal

    @classmethod
    def from_store(cls, cart):
        return cls(
            items=cart.entries,
            total_items=cart.total_items(),
            unique_items=cart.unique_items(),
            subtotal=cart.subtotal()
        )


class ReconcileCartRequest(BaseModel):
    items: list[StoredCartItem] = []


class ReconcileCartResponse(BaseModel):
    items: list[StoredCartItem]


class AddToWishlistRequest(BaseModel):
    item_id: str


class ReconcileWishlistRequest(BaseModel):
    items: list[StoredWishlistItem] = []


class ReconcileWishlistResponse(BaseModel):
    items: list[StoredWishlistItem]


# Эндпоинты профиля принимают camelCase, как и клиент
class CreateProfileRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(default=None, alias="userId")
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    phone: Optional[str] = None
    business_name: Optional[str] = Field(default=None, alias="businessName")
    business_address: Optional[str] = Field(default=None, alias="businessAddress")
    business_state: Optional[str] = Field(default=None, alias="businessState")
    business_city: Optional[str] = Field(default=None, alias="businessCity")
    business_country: Optional[str] = Field(default=None, alias="businessCountry")
    business_years: Optional[int] = Field(default=None, alias="businessYears")
    business_website: Optional[str] = Field(default=None, alias="businessWebsite")
    business_email: Optional[str] = Field(default=None, alias="businessEmail")


class UpdateApprovalStatusRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(default=None, alias="userId")
    status: Optional[str] = None


class UpdateAddressesRequest(BaseModel):
    shipping_address: Optional[str] = None
    billing_address: Optional[str] = None


class ProfileResponse(BaseModel):
    profile: UserProfile


class UserEmailsRequest(BaseModel):
    user_ids: Any = Field(default=None, alias="userIds")


class UserEmailsResponse(BaseModel):
    emails: dict[str, str]


class ErrorResponse(BaseModel):
    error: str
