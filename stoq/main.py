import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from stoq.presentation.api import router
from stoq.presentation.change_feed_consumer import change_feed_consumer
from stoq.application.state import ChangeNotifier, InventoryStore, OrdersStore
from stoq.database import AsyncSessionLocal
from stoq.infrastructure.unit_of_work import UnitOfWork
from stoq.config import settings

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


async def load_inventory():
    async with UnitOfWork(AsyncSessionLocal)() as uow:
        return await uow.inventory.list_all()


async def load_orders():
    async with UnitOfWork(AsyncSessionLocal)() as uow:
        return await uow.orders.list_all()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Управление жизненным циклом приложения"""
    # 1. Кэши склада и заказов, общие для всех запросов
    notifier = ChangeNotifier()
    app.state.notifier = notifier
    app.state.inventory_store = InventoryStore(load_inventory, notifier, settings.REFRESH_DEBOUNCE_SECONDS)
    app.state.orders_store = OrdersStore(load_orders, notifier, settings.REFRESH_DEBOUNCE_SECONDS)

    # 2. Лента изменений в фоне
    feed_task = asyncio.create_task(change_feed_consumer(notifier))
    logger.info("Change feed consumer запущен")

    yield

    logger.info("Приложение останавливается...")
    feed_task.cancel()
    try:
        await feed_task
    except asyncio.CancelledError:
        pass
    await app.state.inventory_store.close()
    await app.state.orders_store.close()


app = FastAPI(
    title="Stoq",
    description="Оптовая витрина устройств: склад, корзина, заказы",
    version="1.0.0",
    lifespan=lifespan
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": str(exc.errors())})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Необработанная ошибка {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    return {"message": "Stoq работает"}


@app.get("/health")
async def health():
    return {"status": "healthy"}
