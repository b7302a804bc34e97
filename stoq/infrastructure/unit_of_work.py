from contextlib import asynccontextmanager
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from stoq.infrastructure.repositories import (
    SQLAlchemyInventoryRepository,
    SQLAlchemyOrderRepository,
    SQLAlchemyUserProfileRepository,
    SQLAlchemyCartRepository,
    SQLAlchemyWishlistRepository,
    SQLAlchemyTaxRateRepository,
    SQLAlchemyOutboxRepository
)


class UnitOfWork:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def __call__(self):
        async with self._session_factory() as session:
            try:
                uow_impl = _UnitOfWorkImpl(session)
                yield uow_impl
                # Если commit не вызван, rollback
                await session.rollback()
            except Exception:
                await session.rollback()
                raise


class _UnitOfWorkImpl:
    def __init__(self, session: AsyncSession):
        self._session = session
        self.inventory = SQLAlchemyInventoryRepository(session)
        self.orders = SQLAlchemyOrderRepository(session)
        self.profiles = SQLAlchemyUserProfileRepository(session)
        self.carts = SQLAlchemyCartRepository(session)
        self.wishlists = SQLAlchemyWishlistRepository(session)
        self.tax_rates = SQLAlchemyTaxRateRepository(session)
        self.outbox = SQLAlchemyOutboxRepository(session)

    async def commit(self):
        await self._session.commit()

    async def rollback(self):
        await self._session.rollback()
