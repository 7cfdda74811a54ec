"""
Инфраструктурный слой контекста бронирований.

Содержит реализации репозиториев и Unit of Work в памяти.
"""

import itertools
import threading
from datetime import date
from typing import Dict, List, Optional

from catalog import interfaces as catalog_ports
from catalog.infrastructure import InMemoryBookRepository, InMemoryUserRepository
from shared_kernel import (
    ConcurrencyException,
    ConsoleLogger,
    EntityId,
    IEventBus,
    ILogger,
    InMemoryEventBus,
    NotFoundException,
)

from . import interfaces as ports
from .domain import Reservation, ReservationStatus


class InMemoryReservationRepository(ports.IReservationRepository):
    """Реализация репозитория бронирований в памяти."""

    def __init__(self) -> None:
        self._reservations: Dict[EntityId, Reservation] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def save(
        self, reservation: Reservation, expected_version: Optional[int] = None
    ) -> Reservation:
        with self._lock:
            if reservation.id is None:
                # Первое сохранение: хранилище назначает идентификатор
                reservation.id = next(self._ids)
            elif expected_version is not None:
                stored = self._reservations.get(reservation.id)
                if stored is None:
                    raise NotFoundException("Бронирование", reservation.id)
                if stored.version != expected_version:
                    raise ConcurrencyException(
                        f"Reservation {reservation.id}: expected version "
                        f"{expected_version}, found {stored.version}"
                    )

            snapshot = reservation.model_copy(deep=True)
            snapshot.pull_domain_events()
            self._reservations[reservation.id] = snapshot
            return reservation

    def get_by_id(self, reservation_id: EntityId) -> Optional[Reservation]:
        with self._lock:
            reservation = self._reservations.get(reservation_id)
            return reservation.model_copy(deep=True) if reservation else None

    def list_all(self) -> List[Reservation]:
        return self._select(lambda r: True)

    def find_by_user(self, user_id: EntityId) -> List[Reservation]:
        return self._select(lambda r: r.user_id == user_id)

    def find_by_status(self, status: ReservationStatus) -> List[Reservation]:
        return self._select(lambda r: r.status == status)

    def find_overdue(self, status: ReservationStatus, today: date) -> List[Reservation]:
        return self._select(
            lambda r: r.status == status and r.expected_return_date < today
        )

    def _select(self, predicate) -> List[Reservation]:
        with self._lock:
            return [
                reservation.model_copy(deep=True)
                for _, reservation in sorted(self._reservations.items())
                if predicate(reservation)
            ]


class ReservationUnitOfWork(ports.IReservationUnitOfWork):
    """Единица работы для контекста бронирований."""

    def __init__(
        self,
        reservations_repo: Optional[ports.IReservationRepository] = None,
        books_repo: Optional[catalog_ports.IBookRepository] = None,
        users_repo: Optional[catalog_ports.IUserRepository] = None,
        event_bus: Optional[IEventBus] = None,
        logger: Optional[ILogger] = None,
    ):
        self._logger = logger or ConsoleLogger()
        self._reservations = reservations_repo or InMemoryReservationRepository()
        self._books = books_repo or InMemoryBookRepository()
        self._users = users_repo or InMemoryUserRepository()
        self._event_bus = event_bus or InMemoryEventBus(self._logger)
        self._committed = False

    @property
    def reservations(self) -> ports.IReservationRepository:
        return self._reservations

    @property
    def books(self) -> catalog_ports.IBookRepository:
        return self._books

    @property
    def users(self) -> catalog_ports.IUserRepository:
        return self._users

    @property
    def event_bus(self) -> IEventBus:
        return self._event_bus

    @property
    def logger(self) -> ILogger:
        return self._logger

    def commit(self) -> None:
        """Фиксирует все изменения."""
        # Репозитории в памяти пишут сразу; здесь была бы фиксация транзакции
        self._committed = True
        self._logger.debug("ReservationUnitOfWork committed")

    def rollback(self) -> None:
        """Откатывает все изменения."""
        self._committed = False
        self._logger.warning("ReservationUnitOfWork rolled back")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
        return False  # Пробрасываем исключение дальше, если оно было
