import csv
import io
import logging
from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel

from stoq.application.changes import record_change
from stoq.application.state import INVENTORY
from stoq.domain.exceptions import ItemNotFoundError
from stoq.domain.models import Page, PriceChange

logger = logging.getLogger(__name__)

STOCK_STATUSES = ("in-stock", "low-stock", "critical", "out-of-stock")
EXPORT_COLUMNS = ("device_name", "brand", "grade", "storage", "quantity", "price_per_unit", "selling_price")


class InventoryFilters(BaseModel):
    search: str = ""
    brand: Optional[str] = None
    grade: Optional[str] = None
    storage: Optional[str] = None
    stock_status: Optional[str] = None

    def as_dict(self) -> dict:
        return {k: v for k, v in self.model_dump().items() if v not in (None, "", "all")}


class BulkInsertResult(BaseModel):
    success: int = 0
    failed: int = 0
    errors: list[str] = []


class ListInventoryUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, filters: InventoryFilters, offset: int = 0, limit: int = 25) -> Page:
        async with self._uow() as uow:
            items, count = await uow.inventory.fetch_page(filters.as_dict(), offset, limit)
            return Page(data=items, count=count)


class ExportInventoryUseCase:
    """Выгрузка склада в CSV с теми же фильтрами, что и список"""

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, filters: InventoryFilters) -> str:
        async with self._uow() as uow:
            items = await uow.inventory.list_filtered(filters.as_dict())

        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(EXPORT_COLUMNS)
        for item in items:
            writer.writerow([
                item.device_name, item.brand, item.grade.value, item.storage, item.quantity,
                item.price_per_unit, item.unit_price,
            ])
        logger.info(f"Экспортировано {len(items)} позиций склада")
        return buffer.getvalue()


class UpdateProductUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, item_id: str, updates: dict):
        async with self._uow() as uow:
            item = await uow.inventory.get_by_id(item_id)
            if not item:
                raise ItemNotFoundError(f"Товар {item_id} не найден")

            values = {k: v for k, v in updates.items() if v is not None}
            # Сравниваем с прежним значением того же поля
            if "selling_price" in values:
                new_price, old_price = values["selling_price"], item.unit_price
            else:
                new_price, old_price = values.get("price_per_unit"), item.price_per_unit
            if new_price is not None and new_price != old_price:
                values["price_change"] = PriceChange.UP if new_price > old_price else PriceChange.DOWN
            values["last_updated"] = "Just now"
            values["updated_at"] = datetime.now(timezone.utc)

            await uow.inventory.update(item_id, values)
            await record_change(uow, INVENTORY, "UPDATE", item_id)
            await uow.commit()

        logger.info(f"Товар {item_id} обновлен: {sorted(updates)}")
        return item.model_copy(update=values)


class BulkInsertProductsUseCase:
    """Загрузка уже разобранных позиций пачками; если пачка не прошла, позиции вставляются по одной"""

    def __init__(self, unit_of_work, batch_size: int = 50):
        self._uow = unit_of_work
        self._batch_size = batch_size

    async def __call__(self, products: list[dict]) -> BulkInsertResult:
        result = BulkInsertResult()
        for start in range(0, len(products), self._batch_size):
            batch = products[start:start + self._batch_size]
            try:
                await self._insert(batch)
                result.success += len(batch)
                continue
            except Exception as e:
                logger.warning(f"Пачка {start // self._batch_size + 1} не вставлена: {e}")

            for product in batch:
                try:
                    await self._insert([product])
                    result.success += 1
                except Exception as e:
                    result.failed += 1
                    result.errors.append(f"{product.get('device_name')} {product.get('storage')}: {e}")

        logger.info(f"Загрузка завершена: успешно {result.success}, ошибок {result.failed}")
        return result

    async def _insert(self, batch: list[dict]) -> None:
        async with self._uow() as uow:
            await uow.inventory.create_many(batch)
            await record_change(uow, INVENTORY, "INSERT", batch[0].get("id", "bulk"))
            await uow.commit()
