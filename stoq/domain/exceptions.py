class DomainException(Exception):
    pass


class AuthServiceError(DomainException):
    pass


class ItemNotFoundError(DomainException):
    pass


class OrderNotFoundError(DomainException):
    pass


class UserProfileNotFoundError(DomainException):
    pass


class EmptyOrderError(DomainException):
    pass


class ProfileNotApprovedError(DomainException):
    pass


class MissingAddressError(DomainException):
    pass


class InvalidStatusTransitionError(DomainException):
    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Недопустимый переход статуса: {current} -> {requested}")


class InsufficientStockError(DomainException):
    def __init__(self, available: int, required: int, item_name: str | None = None):
        self.available = available
        self.required = required
        self.item_name = item_name
        prefix = f"{item_name}: " if item_name else ""
        super().__init__(f"{prefix}Недостаточно товара. Доступно: {available}, требуется: {required}")


class OutOfStockError(DomainException):
    def __init__(self, item_names: list[str]):
        self.item_names = item_names
        super().__init__(f"Нет в наличии: {', '.join(item_names)}")


class StockWarningError(DomainException):
    """Одобрение заказа превышает текущий остаток"""

    def __init__(self, items):
        self.items = items
        details = ", ".join(
            f"{i.device_name} (запрошено: {i.requested_qty}, доступно: {i.available_qty})" for i in items
        )
        super().__init__(f"Недостаточно товара для одобрения заказа: {details}")
