"""
Основные доменные типы и утилиты общего ядра.
"""

from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Union
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

# Идентификаторы книг, пользователей и бронирований назначаются снаружи
# (каталог, хранилище), поэтому это целые числа, а не UUID.
EntityId = int

# Точность денежных сумм: два знака после запятой.
CENTS = Decimal("0.01")


class Money(BaseModel):
    """Денежная сумма с валютой."""

    model_config = ConfigDict(frozen=True)

    amount: Decimal = Field(..., ge=0, description="Сумма денег")
    currency: str = Field(
        default="USD", max_length=3, description="Код валюты (ISO 4217)"
    )

    @classmethod
    def zero(cls, currency: str = "USD") -> "Money":
        return cls(amount=Decimal("0.00"), currency=currency)

    def rounded(self) -> "Money":
        """Округляет сумму до копеек по правилу half-up."""
        return Money(
            amount=self.amount.quantize(CENTS, rounding=ROUND_HALF_UP),
            currency=self.currency,
        )

    def __add__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            raise TypeError("Можно складывать только объекты Money")
        if self.currency != other.currency:
            raise ValueError("Нельзя складывать разные валюты")
        return Money(amount=self.amount + other.amount, currency=self.currency)

    def __sub__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            raise TypeError("Можно вычитать только объекты Money")
        if self.currency != other.currency:
            raise ValueError("Нельзя вычитать разные валюты")
        if self.amount < other.amount:
            raise ValueError("Результат не может быть отрицательным")
        return Money(amount=self.amount - other.amount, currency=self.currency)

    def __mul__(self, multiplier: Union[int, Decimal]) -> "Money":
        # float намеренно не принимаем: двоичная арифметика портит копейки
        if isinstance(multiplier, bool) or not isinstance(multiplier, (int, Decimal)):
            raise TypeError("Множитель должен быть int или Decimal")
        if multiplier < 0:
            raise ValueError("Множитель не может быть отрицательным")
        return Money(amount=self.amount * multiplier, currency=self.currency)

    def __str__(self) -> str:
        return f"{self.amount} {self.currency}"


class DomainEvent(BaseModel):
    """Базовый класс для всех доменных событий."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    event_id: UUID = Field(default_factory=uuid4)
    occurred_on: datetime = Field(default_factory=lambda: now())


# Общие исключения
class DomainException(Exception):
    """Базовое исключение для доменных ошибок."""

    pass


class NotFoundException(DomainException):
    """Запрошенная сущность не существует."""

    def __init__(self, entity: str, entity_id: object):
        super().__init__(f"{entity} с ID {entity_id} не найден(а)")
        self.entity = entity
        self.entity_id = entity_id


class ConcurrencyException(DomainException):
    """Исключение при конфликте версий."""

    pass


class BusinessRuleValidationException(DomainException):
    """Исключение при нарушении бизнес-правил."""

    pass


class InvalidArgumentException(DomainException, ValueError):
    """Некорректные входные данные запроса."""

    pass


# Общие утилиты
def now() -> datetime:
    """Возвращает текущую дату и время (UTC)."""
    return datetime.now(timezone.utc)


def today() -> date:
    """Возвращает текущую дату."""
    return date.today()
