"""
Прикладной слой контекста бронирований.

Содержит сервис приложения, который координирует поиск читателя и книги,
резервирование экземпляра через InventoryLedger, расчет стоимости и
сохранение бронирования.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from catalog.domain import Book, InventoryLedger, User
from pydantic import BaseModel
from shared_kernel import EntityId, NotFoundException, today

from . import interfaces as ports
from .domain import (
    RentalFeeCalculator,
    Reservation,
    ReservationPolicy,
    ReservationStatus,
)

# DTO (Data Transfer Objects) для входящих данных


class CreateReservationRequest(BaseModel):
    """Запрос на создание бронирования."""

    user_id: EntityId
    book_id: EntityId
    # Проверяется политикой бронирования, а не схемой: ошибка должна быть
    # доменной (InvalidArgumentException), а не ошибкой валидации pydantic
    rental_days: int
    start_date: Optional[date] = None


class ReturnBookRequest(BaseModel):
    """Запрос на возврат книги."""

    return_date: Optional[date] = None


# DTO для исходящих данных


class ReservationDTO(BaseModel):
    """DTO для представления бронирования."""

    id: EntityId
    user_id: EntityId
    book_id: EntityId
    book_title: str
    rental_days: int
    start_date: date
    expected_return_date: date
    actual_return_date: Optional[date]
    daily_rate: Decimal
    total_fee: Decimal
    late_fee: Decimal
    currency: str
    status: ReservationStatus
    created_at: datetime

    @classmethod
    def from_domain(cls, reservation: Reservation) -> "ReservationDTO":
        """Создает DTO из доменной модели."""
        return cls(
            id=reservation.id,
            user_id=reservation.user_id,
            book_id=reservation.book_id,
            book_title=reservation.book_title,
            rental_days=reservation.rental_days,
            start_date=reservation.start_date,
            expected_return_date=reservation.expected_return_date,
            actual_return_date=reservation.actual_return_date,
            daily_rate=reservation.daily_rate.amount,
            total_fee=reservation.total_fee.amount,
            late_fee=reservation.late_fee.amount,
            currency=reservation.daily_rate.currency,
            status=reservation.status,
            created_at=reservation.created_at,
        )


# Сервисы приложения


class ReservationApplicationService:
    """Сервис приложения для работы с бронированиями."""

    def __init__(
        self,
        uow: ports.IReservationUnitOfWork,
        policy: Optional[ReservationPolicy] = None,
        ledger: Optional[InventoryLedger] = None,
    ):
        """Инициализирует сервис."""
        self._uow = uow
        self._policy = policy or ReservationPolicy()
        self._calculator = RentalFeeCalculator(self._policy)
        self._ledger = ledger or InventoryLedger(uow.books, uow.logger)

    @property
    def uow(self) -> ports.IReservationUnitOfWork:
        return self._uow

    def create_reservation(self, request: CreateReservationRequest) -> ReservationDTO:
        """Создает новое бронирование и списывает один экземпляр книги."""
        try:
            self._policy.validate_rental_days(request.rental_days)

            user = self._get_user(request.user_id)
            book = self._get_book(request.book_id)
            self._policy.validate_currency(book.price)

            book = self._ledger.reserve_one(book)
            try:
                reservation = Reservation.open(
                    user=user,
                    book=book,
                    rental_days=request.rental_days,
                    start_date=request.start_date or today(),
                    calculator=self._calculator,
                )
                self._uow.reservations.save(reservation)
            except Exception:
                # Экземпляр уже списан, а бронирования нет: возвращаем экземпляр
                try:
                    self._ledger.release_reserved(book)
                except Exception as e:
                    self._uow.logger.error(
                        "Не удалось вернуть списанный экземпляр",
                        book_id=book.id,
                        user_id=user.id,
                        error=str(e),
                    )
                raise

            reservation.record_created()
            self._uow.commit()

        except Exception:
            self._uow.rollback()
            raise

        self._uow.logger.info(
            "Бронирование создано",
            reservation_id=reservation.id,
            user_id=reservation.user_id,
            book_id=reservation.book_id,
            total_fee=str(reservation.total_fee),
        )
        self._publish_events(reservation)
        return ReservationDTO.from_domain(reservation)

    def return_book(
        self, reservation_id: EntityId, request: ReturnBookRequest
    ) -> ReservationDTO:
        """Принимает книгу, начисляет пеню за просрочку и возвращает экземпляр."""
        try:
            reservation = self._get_reservation(reservation_id)
            book = self._get_book(reservation.book_id)
            original = reservation.model_copy(deep=True)

            reservation.mark_returned(
                request.return_date or today(), self._calculator
            )

            # Сохранение с ожидаемой версией закрепляет переход ACTIVE -> RETURNED
            # за одним запросом; второй параллельный возврат получит конфликт
            # и не вернет экземпляр повторно.
            self._uow.reservations.save(reservation, expected_version=original.version)
            try:
                self._ledger.release_one(book)
            except Exception:
                try:
                    self._uow.reservations.save(
                        original, expected_version=reservation.version
                    )
                except Exception as e:
                    self._uow.logger.error(
                        "Не удалось восстановить бронирование",
                        reservation_id=reservation.id,
                        book_id=book.id,
                        error=str(e),
                    )
                raise

            self._uow.commit()

        except Exception:
            self._uow.rollback()
            raise

        self._uow.logger.info(
            "Книга возвращена",
            reservation_id=reservation.id,
            book_id=reservation.book_id,
            late_fee=str(reservation.late_fee),
        )
        self._publish_events(reservation)
        return ReservationDTO.from_domain(reservation)

    def get_reservation(self, reservation_id: EntityId) -> ReservationDTO:
        """Возвращает информацию о бронировании."""
        return ReservationDTO.from_domain(self._get_reservation(reservation_id))

    def list_reservations(self) -> List[ReservationDTO]:
        return self._to_dtos(self._uow.reservations.list_all())

    def list_reservations_by_user(self, user_id: EntityId) -> List[ReservationDTO]:
        return self._to_dtos(self._uow.reservations.find_by_user(user_id))

    def list_reservations_by_status(
        self, status: ReservationStatus
    ) -> List[ReservationDTO]:
        return self._to_dtos(self._uow.reservations.find_by_status(status))

    def list_active_reservations(self) -> List[ReservationDTO]:
        return self.list_reservations_by_status(ReservationStatus.ACTIVE)

    def list_overdue_reservations(
        self, on_date: Optional[date] = None
    ) -> List[ReservationDTO]:
        """Активные бронирования, ожидаемая дата возврата которых уже прошла."""
        return self._to_dtos(
            self._uow.reservations.find_overdue(
                ReservationStatus.ACTIVE, on_date or today()
            )
        )

    def _get_user(self, user_id: EntityId) -> User:
        user = self._uow.users.get_by_id(user_id)
        if user is None:
            raise NotFoundException("Читатель", user_id)
        return user

    def _get_book(self, book_id: EntityId) -> Book:
        book = self._uow.books.get_by_id(book_id)
        if book is None:
            raise NotFoundException("Книга", book_id)
        return book

    def _get_reservation(self, reservation_id: EntityId) -> Reservation:
        reservation = self._uow.reservations.get_by_id(reservation_id)
        if reservation is None:
            raise NotFoundException("Бронирование", reservation_id)
        return reservation

    def _publish_events(self, reservation: Reservation) -> None:
        for event in reservation.pull_domain_events():
            self._uow.event_bus.publish(event)

    @staticmethod
    def _to_dtos(reservations: List[Reservation]) -> List[ReservationDTO]:
        return [ReservationDTO.from_domain(reservation) for reservation in reservations]
