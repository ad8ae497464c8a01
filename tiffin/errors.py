# tiffin/errors.py

"""Ошибки жизненного цикла заказа."""


class TiffinError(Exception):
    """Базовое исключение сервиса."""

    # сообщение, которое можно показать клиенту
    public_message = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.public_message)

    @property
    def client_message(self) -> str:
        return str(self)


class ValidationError(TiffinError):
    """Некорректные или отсутствующие входные данные."""

    public_message = "Invalid request"


class GatewayError(TiffinError):
    """Платёжный шлюз не смог создать транзакцию."""

    public_message = "Order creation failed"

    @property
    def client_message(self) -> str:
        # детали ответа шлюза клиенту не отдаём
        return self.public_message


class NotFoundError(TiffinError):
    """Заказ (или позиция меню) с таким кодом не существует."""

    public_message = "Order not found"

    def __init__(self, code: str | int | None = None, what: str = "Order"):
        self.code = code
        if code is None:
            super().__init__(f"{what} not found")
        else:
            super().__init__(f"{what} not found: {code}")


class ConflictError(TiffinError):
    """Повторная вставка заказа с уже существующим кодом."""

    public_message = "Order already exists"

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Order already exists: {code}")


class AdminKeyError(TiffinError):
    """Неверный или отсутствующий ключ администратора."""

    public_message = "Access denied"

    def __init__(self):
        super().__init__(self.public_message)
