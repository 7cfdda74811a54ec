"""
Доменная модель контекста бронирований.

Содержит агрегат Reservation, политику бронирования и расчет стоимости
аренды и пени за просрочку.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from catalog.domain import Book, User
from pydantic import BaseModel, Field, PrivateAttr
from shared_kernel import (
    BusinessRuleValidationException,
    DomainEvent,
    EntityId,
    InvalidArgumentException,
    Money,
    now,
)


class ReservationStatus(str, Enum):
    """Статусы бронирования.

    "Просрочено" — не статус, а признак активного бронирования, у которого
    прошла ожидаемая дата возврата (см. Reservation.is_overdue).
    """

    ACTIVE = "active"
    RETURNED = "returned"


class InvalidStateTransitionException(BusinessRuleValidationException):
    """Недопустимый переход состояния бронирования."""

    pass


class ReservationCreated(DomainEvent):
    """Событие создания бронирования."""

    reservation_id: EntityId
    user_id: EntityId
    book_id: EntityId
    expected_return_date: date
    total_fee: Money


class BookReturned(DomainEvent):
    """Событие возврата книги."""

    reservation_id: EntityId
    book_id: EntityId
    actual_return_date: date
    late_days: int
    late_fee: Money


class ReservationPolicy(BaseModel):
    """Политики и бизнес-правила для бронирований."""

    late_fee_rate: Decimal = Field(Decimal("0.15"), ge=0)
    currency: str = Field("USD", max_length=3)

    def validate_rental_days(self, rental_days: int) -> None:
        if rental_days <= 0:
            raise InvalidArgumentException(
                "Срок аренды должен быть положительным числом дней"
            )

    def validate_currency(self, price: Money) -> None:
        if price.currency != self.currency:
            raise BusinessRuleValidationException(
                f"Цена книги указана в {price.currency}, "
                f"а бронирования оформляются в {self.currency}"
            )

    def validate_return_date(self, start_date: date, return_date: date) -> None:
        if return_date < start_date:
            raise InvalidArgumentException(
                f"Дата возврата {return_date} раньше даты начала аренды {start_date}"
            )


class RentalFeeCalculator:
    """Расчет стоимости аренды и пени за просрочку."""

    def __init__(self, policy: Optional[ReservationPolicy] = None):
        self.policy = policy or ReservationPolicy()

    def base_fee(self, daily_rate: Money, rental_days: int) -> Money:
        return (daily_rate * rental_days).rounded()

    @staticmethod
    def late_days(expected_return_date: date, actual_return_date: date) -> int:
        return max(0, (actual_return_date - expected_return_date).days)

    def daily_late_rate(self, daily_rate: Money) -> Money:
        """Суточная пеня: процент от суточной ставки, округленный до копеек."""
        return (daily_rate * self.policy.late_fee_rate).rounded()

    def late_fee(self, daily_rate: Money, late_days: int) -> Money:
        """Пеня за просрочку.

        Округляется суточная пеня, затем она умножается на число дней;
        произведение повторно не округляется. Пример: ставка 15.99,
        3 дня просрочки -> 2.40 * 3 = 7.20.
        """
        if late_days <= 0:
            return Money.zero(daily_rate.currency)
        return self.daily_late_rate(daily_rate) * late_days


class Reservation(BaseModel):
    """Бронирование экземпляра книги читателем на ограниченный срок."""

    id: Optional[EntityId] = None
    user_id: EntityId
    book_id: EntityId
    book_title: str
    rental_days: int = Field(..., gt=0)
    start_date: date
    expected_return_date: date
    actual_return_date: Optional[date] = None
    daily_rate: Money
    total_fee: Money
    late_fee: Money
    status: ReservationStatus = ReservationStatus.ACTIVE
    created_at: datetime = Field(default_factory=now)
    updated_at: datetime = Field(default_factory=now)
    version: int = 0
    _domain_events: List[DomainEvent] = PrivateAttr(default_factory=list)

    @classmethod
    def open(
        cls,
        user: User,
        book: Book,
        rental_days: int,
        start_date: date,
        calculator: RentalFeeCalculator,
    ) -> "Reservation":
        """Создает активное бронирование.

        Суточная ставка фиксируется на момент создания: последующие
        изменения цены книги на бронирование не влияют.
        """
        calculator.policy.validate_rental_days(rental_days)
        calculator.policy.validate_currency(book.price)

        daily_rate = book.price
        return cls(
            user_id=user.id,
            book_id=book.id,
            book_title=book.title,
            rental_days=rental_days,
            start_date=start_date,
            expected_return_date=start_date + timedelta(days=rental_days),
            daily_rate=daily_rate,
            total_fee=calculator.base_fee(daily_rate, rental_days),
            late_fee=Money.zero(daily_rate.currency),
        )

    def record_created(self) -> None:
        """Регистрирует событие создания, когда хранилище присвоило ID."""
        self._domain_events.append(
            ReservationCreated(
                reservation_id=self.id,
                user_id=self.user_id,
                book_id=self.book_id,
                expected_return_date=self.expected_return_date,
                total_fee=self.total_fee,
            )
        )

    def check_can_return(self, actual_return_date: date, policy: ReservationPolicy) -> None:
        """Проверяет возврат без изменения состояния."""
        if self.status != ReservationStatus.ACTIVE:
            raise InvalidStateTransitionException(
                f"Невозможно вернуть книгу по бронированию в статусе {self.status.value}"
            )
        policy.validate_return_date(self.start_date, actual_return_date)

    def mark_returned(
        self, actual_return_date: date, calculator: RentalFeeCalculator
    ) -> None:
        """Завершает бронирование, начисляя пеню за просрочку."""
        self.check_can_return(actual_return_date, calculator.policy)

        late_days = calculator.late_days(self.expected_return_date, actual_return_date)
        self.late_fee = calculator.late_fee(self.daily_rate, late_days)
        self.total_fee = self.total_fee + self.late_fee
        self.actual_return_date = actual_return_date
        self.status = ReservationStatus.RETURNED
        self.updated_at = now()
        self.version += 1

        self._domain_events.append(
            BookReturned(
                reservation_id=self.id,
                book_id=self.book_id,
                actual_return_date=actual_return_date,
                late_days=late_days,
                late_fee=self.late_fee,
            )
        )

    def is_overdue(self, on_date: date) -> bool:
        return (
            self.status == ReservationStatus.ACTIVE
            and self.expected_return_date < on_date
        )

    def pull_domain_events(self) -> List[DomainEvent]:
        events = list(self._domain_events)
        self._domain_events.clear()
        return events
