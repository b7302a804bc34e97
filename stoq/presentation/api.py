import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from stoq.database import get_db
from stoq.presentation.schemas import (
    AddToCartRequest, AddToWishlistRequest, AvailabilityRequest, AvailabilityResponse, BulkInsertRequest,
    CartResponse, CreateOrderRequest, CreateProfileRequest, ErrorResponse, InventoryPageResponse, InvoiceRequest,
    OrderResponse, OrdersPageResponse, ProfileResponse, ReconcileCartRequest, ReconcileCartResponse,
    ReconcileWishlistRequest, ReconcileWishlistResponse, UpdateAddressesRequest, UpdateApprovalStatusRequest,
    UpdateCartItemRequest, UpdateOrderStatusRequest, UpdateProductRequest, UserEmailsRequest, UserEmailsResponse
)
from stoq.application.create_order import CreateOrderUseCase, CreateOrderDTO
from stoq.application.get_availability import GetAvailabilityUseCase
from stoq.application.get_order import GetOrderUseCase, ListOrdersUseCase
from stoq.application.inventory import (
    BulkInsertProductsUseCase, BulkInsertResult, ExportInventoryUseCase, InventoryFilters, ListInventoryUseCase,
    UpdateProductUseCase
)
from stoq.application.invoice import ConfirmInvoiceUseCase, InvoiceDTO, UpdateInvoiceUseCase
from stoq.application.manage_cart import (
    AddToCartUseCase, ClearCartUseCase, GetCartUseCase, ReconcileCartUseCase, RemoveFromCartUseCase,
    UpdateCartItemUseCase
)
from stoq.application.resolve_user_emails import ResolveUserEmailsUseCase
from stoq.application.update_order_status import UpdateOrderStatusUseCase, UpdateOrderStatusDTO
from stoq.application.user_profiles import (
    CreateProfileDTO, CreateProfileUseCase, GetProfileUseCase, UpdateAddressesUseCase, UpdateApprovalStatusUseCase
)
from stoq.application.wishlist import (
    AddToWishlistUseCase, GetWishlistUseCase, ReconcileWishlistUseCase, RemoveFromWishlistUseCase
)
from stoq.domain.exceptions import (
    EmptyOrderError, InsufficientStockError, InvalidStatusTransitionError, ItemNotFoundError, MissingAddressError,
    OrderNotFoundError, OutOfStockError, ProfileNotApprovedError, StockWarningError, UserProfileNotFoundError
)
from stoq.domain.models import ApprovalStatus, InventoryItem, OrderStatus
from stoq.infrastructure.unit_of_work import UnitOfWork
from stoq.infrastructure.http_clients import HTTPAuthAdminClient
from stoq.infrastructure.list_stores import DatabaseCartStore, DatabaseWishlistStore, InMemoryListStore
from stoq.config import settings

logger = logging.getLogger(__name__)

router = APIRouter()


# Фабрики для создания use cases
def get_uow(db: AsyncSession = Depends(get_db)):
    return UnitOfWork(lambda: db)


def get_inventory_store(request: Request):
    return request.app.state.inventory_store


def get_orders_store(request: Request):
    return request.app.state.orders_store


def get_auth_admin():
    return HTTPAuthAdminClient(settings.AUTH_BASE_URL, settings.AUTH_SERVICE_ROLE_KEY)


def get_availability_use_case(
    uow=Depends(get_uow), inventory=Depends(get_inventory_store), orders=Depends(get_orders_store)
):
    return GetAvailabilityUseCase(uow, inventory, orders)


def get_bulk_insert_use_case(uow=Depends(get_uow)):
    return BulkInsertProductsUseCase(uow, settings.BULK_INSERT_BATCH_SIZE)


def get_wishlist_use_case(uow=Depends(get_uow), inventory=Depends(get_inventory_store)):
    return GetWishlistUseCase(uow, inventory)


def get_resolve_emails_use_case(auth=Depends(get_auth_admin)):
    return ResolveUserEmailsUseCase(auth)


def filters_from_query(
    search: str = "",
    brand: Optional[str] = None,
    grade: Optional[str] = None,
    storage: Optional[str] = None,
    stock_status: Optional[str] = None
) -> InventoryFilters:
    return InventoryFilters(search=search, brand=brand, grade=grade, storage=storage, stock_status=stock_status)


ERRORS = {400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


# ---------- Склад ----------

@router.get("/inventory", response_model=InventoryPageResponse)
async def list_inventory(
    filters: InventoryFilters = Depends(filters_from_query),
    offset: int = Query(0, ge=0),
    limit: int = Query(25, ge=1, le=500),
    uow=Depends(get_uow)
):
    """Постраничный список склада с фильтрами"""
    page = await ListInventoryUseCase(uow)(filters, offset, limit)
    return InventoryPageResponse(data=page.data, count=page.count)


@router.get("/inventory/export.csv")
async def export_inventory(filters: InventoryFilters = Depends(filters_from_query), uow=Depends(get_uow)):
    content = await ExportInventoryUseCase(uow)(filters)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="inventory.csv"'}
    )


@router.post("/inventory/{item_id}/availability", response_model=AvailabilityResponse, responses=ERRORS)
async def get_availability(
    item_id: str,
    request: AvailabilityRequest,
    use_case: GetAvailabilityUseCase = Depends(get_availability_use_case)
):
    """Сколько единиц пользователь еще может добавить в корзину"""
    try:
        available = await use_case(item_id, request.user_id, request.guest_cart)
        return AvailabilityResponse(item_id=item_id, available=available)
    except ItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/inventory/{item_id}", response_model=InventoryItem, responses=ERRORS)
async def update_product(item_id: str, request: UpdateProductRequest, uow=Depends(get_uow)):
    try:
        return await UpdateProductUseCase(uow)(item_id, request.model_dump(exclude_unset=True))
    except ItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/inventory/bulk", response_model=BulkInsertResult, status_code=status.HTTP_201_CREATED)
async def bulk_insert_products(
    request: BulkInsertRequest,
    use_case: BulkInsertProductsUseCase = Depends(get_bulk_insert_use_case)
):
    """Загрузка уже разобранных позиций (разбор Excel на клиенте)"""
    return await use_case([p.model_dump() for p in request.products])


# ---------- Корзина ----------

@router.get("/cart/{user_id}", response_model=CartResponse)
async def get_cart(user_id: str, uow=Depends(get_uow)):
    cart = await GetCartUseCase(uow)(user_id)
    return CartResponse.from_store(cart)


@router.post("/cart/{user_id}/items", response_model=CartResponse, responses=ERRORS)
async def add_to_cart(user_id: str, request: AddToCartRequest, uow=Depends(get_uow)):
    try:
        cart = await AddToCartUseCase(uow)(user_id, request.item_id, request.quantity)
        return CartResponse.from_store(cart)
    except ItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (InsufficientStockError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch("/cart/{user_id}/items/{item_id}", response_model=CartResponse, responses=ERRORS)
async def update_cart_item(user_id: str, item_id: str, request: UpdateCartItemRequest, uow=Depends(get_uow)):
    try:
        cart = await UpdateCartItemUseCase(uow)(user_id, item_id, request.quantity)
        return CartResponse.from_store(cart)
    except ItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InsufficientStockError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/cart/{user_id}/items/{item_id}", response_model=CartResponse)
async def remove_from_cart(user_id: str, item_id: str, uow=Depends(get_uow)):
    cart = await RemoveFromCartUseCase(uow)(user_id, item_id)
    return CartResponse.from_store(cart)


@router.delete("/cart/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def clear_cart(user_id: str, uow=Depends(get_uow)):
    await ClearCartUseCase(uow)(user_id)


@router.post("/cart/{user_id}/reconcile", response_model=ReconcileCartResponse)
async def reconcile_cart(user_id: str, request: ReconcileCartRequest, uow=Depends(get_uow)):
    """Слияние гостевой корзины с сохраненной при входе"""
    local = InMemoryListStore(request.items)
    items = await ReconcileCartUseCase(local, DatabaseCartStore(uow, user_id), uow, user_id)()
    return ReconcileCartResponse(items=items)


# ---------- Список желаний ----------

@router.get("/wishlist/{user_id}", response_model=list[InventoryItem])
async def get_wishlist(user_id: str, use_case: GetWishlistUseCase = Depends(get_wishlist_use_case)):
    return await use_case(user_id)


@router.post("/wishlist/{user_id}/items", response_model=ReconcileWishlistResponse)
async def add_to_wishlist(user_id: str, request: AddToWishlistRequest, uow=Depends(get_uow)):
    items = await AddToWishlistUseCase(uow)(user_id, request.item_id)
    return ReconcileWishlistResponse(items=items)


@router.delete("/wishlist/{user_id}/items/{item_id}", response_model=ReconcileWishlistResponse)
async def remove_from_wishlist(user_id: str, item_id: str, uow=Depends(get_uow)):
    items = await RemoveFromWishlistUseCase(uow)(user_id, item_id)
    return ReconcileWishlistResponse(items=items)


@router.post("/wishlist/{user_id}/reconcile", response_model=ReconcileWishlistResponse)
async def reconcile_wishlist(user_id: str, request: ReconcileWishlistRequest, uow=Depends(get_uow)):
    """Слияние локального списка желаний с сохраненным. Ошибки БД не ломают ответ"""
    local = InMemoryListStore(request.items)
    items = await ReconcileWishlistUseCase(local, DatabaseWishlistStore(uow, user_id))()
    return ReconcileWishlistResponse(items=items)


# ---------- Заказы ----------

@router.post(
    "/orders",
    response_model=OrderResponse,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    status_code=status.HTTP_201_CREATED
)
async def create_order(request: CreateOrderRequest, uow=Depends(get_uow)):
    """Оформить заказ из корзины"""
    try:
        dto = CreateOrderDTO(
            user_id=request.user_id,
            shipping_address=request.shipping_address,
            billing_address=request.billing_address
        )
        order = await CreateOrderUseCase(uow)(dto)
        return OrderResponse.from_domain(order)

    except (EmptyOrderError, ProfileNotApprovedError, MissingAddressError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (OutOfStockError, InsufficientStockError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Ошибка оформления заказа: {e}", exc_info=True)
        raise HTTPException(status_code=503, detail=f"Service unavailable: {str(e)}")


@router.get("/orders", response_model=OrdersPageResponse)
async def list_orders(
    user_id: Optional[str] = None,
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    search: str = "",
    offset: int = Query(0, ge=0),
    limit: int = Query(25, ge=1, le=500),
    uow=Depends(get_uow)
):
    page = await ListOrdersUseCase(uow)(user_id, status_filter, search, offset, limit)
    return OrdersPageResponse(data=[OrderResponse.from_domain(o) for o in page.data], count=page.count)


@router.get("/orders/{order_id}", response_model=OrderResponse, responses={404: {"model": ErrorResponse}})
async def get_order(order_id: str, uow=Depends(get_uow)):
    """Получить заказ по ID"""
    try:
        order = await GetOrderUseCase(uow)(order_id)
        return OrderResponse.from_domain(order)
    except OrderNotFoundError:
        raise HTTPException(status_code=404, detail="Заказ не найден")


@router.patch(
    "/orders/{order_id}/status",
    response_model=OrderResponse,
    responses={**ERRORS, 409: {"model": ErrorResponse}}
)
async def update_order_status(order_id: str, request: UpdateOrderStatusRequest, uow=Depends(get_uow)):
    """Одобрить, отклонить или завершить заказ"""
    try:
        dto = UpdateOrderStatusDTO(order_id=order_id, **request.model_dump())
        order = await UpdateOrderStatusUseCase(uow)(dto)
        return OrderResponse.from_domain(order)
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidStatusTransitionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StockWarningError as e:
        # Клиент показывает предупреждение и может повторить запрос с force=true
        return JSONResponse(
            status_code=409,
            content={"error": str(e), "items": jsonable_encoder(e.items)}
        )


@router.put("/orders/{order_id}/invoice", response_model=OrderResponse, responses=ERRORS)
async def update_invoice(order_id: str, request: InvoiceRequest, uow=Depends(get_uow)):
    try:
        order = await UpdateInvoiceUseCase(uow)(order_id, InvoiceDTO(**request.model_dump()))
        return OrderResponse.from_domain(order)
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/orders/{order_id}/invoice/confirm", response_model=OrderResponse, responses=ERRORS)
async def confirm_invoice(order_id: str, uow=Depends(get_uow)):
    try:
        order = await ConfirmInvoiceUseCase(uow)(order_id)
        return OrderResponse.from_domain(order)
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ---------- Профили и пользователи ----------

@router.post(
    "/user-profile/create",
    response_model=ProfileResponse,
    responses=ERRORS,
    status_code=status.HTTP_201_CREATED
)
async def create_profile(request: CreateProfileRequest, uow=Depends(get_uow)):
    if not request.user_id:
        raise HTTPException(status_code=400, detail="userId is required")
    try:
        dto = CreateProfileDTO(**request.model_dump())
        profile = await CreateProfileUseCase(uow)(dto)
        return ProfileResponse(profile=profile)
    except Exception as e:
        logger.error(f"Ошибка создания профиля {request.user_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/user-profile/update-approval-status", response_model=ProfileResponse, responses=ERRORS)
async def update_approval_status(request: UpdateApprovalStatusRequest, uow=Depends(get_uow)):
    if not request.user_id or not request.status:
        raise HTTPException(status_code=400, detail="userId and status are required")
    try:
        approval_status = ApprovalStatus(request.status)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid status: {request.status}")

    try:
        profile = await UpdateApprovalStatusUseCase(uow)(request.user_id, approval_status)
        return ProfileResponse(profile=profile)
    except UserProfileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Ошибка обновления статуса профиля {request.user_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/user-profile/{user_id}", response_model=ProfileResponse, responses=ERRORS)
async def get_profile(user_id: str, uow=Depends(get_uow)):
    try:
        return ProfileResponse(profile=await GetProfileUseCase(uow)(user_id))
    except UserProfileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/user-profile/{user_id}/addresses", response_model=ProfileResponse, responses=ERRORS)
async def update_addresses(user_id: str, request: UpdateAddressesRequest, uow=Depends(get_uow)):
    try:
        profile = await UpdateAddressesUseCase(uow)(user_id, request.shipping_address, request.billing_address)
        return ProfileResponse(profile=profile)
    except UserProfileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/users/emails", response_model=UserEmailsResponse, responses={500: {"model": ErrorResponse}})
async def get_user_emails(
    request: UserEmailsRequest,
    use_case: ResolveUserEmailsUseCase = Depends(get_resolve_emails_use_case)
):
    """Email пользователей для админки. Пустой или некорректный список - пустой ответ"""
    if not isinstance(request.user_ids, list) or not request.user_ids:
        return UserEmailsResponse(emails={})
    try:
        emails = await use_case([str(user_id) for user_id in request.user_ids])
        return UserEmailsResponse(emails=emails)
    except Exception as e:
        logger.error(f"Ошибка получения email пользователей: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))
