"""
Интерфейсы (порты) для контекста бронирований.
"""

from __future__ import annotations

from datetime import date
from typing import Any, List, Optional, Protocol

from catalog.interfaces import IBookRepository, IUserRepository
from shared_kernel import EntityId, IEventBus, ILogger

from .domain import Reservation, ReservationStatus


class IReservationRepository(Protocol):
    """Интерфейс репозитория для бронирований."""

    def save(
        self, reservation: Reservation, expected_version: Optional[int] = None
    ) -> Reservation: ...
    def get_by_id(self, reservation_id: EntityId) -> Optional[Reservation]: ...
    def list_all(self) -> List[Reservation]: ...
    def find_by_user(self, user_id: EntityId) -> List[Reservation]: ...
    def find_by_status(self, status: ReservationStatus) -> List[Reservation]: ...
    def find_overdue(
        self, status: ReservationStatus, today: date
    ) -> List[Reservation]: ...


class IReservationUnitOfWork(Protocol):
    """Интерфейс Unit of Work для контекста бронирований."""

    @property
    def reservations(self) -> IReservationRepository: ...
    @property
    def books(self) -> IBookRepository: ...
    @property
    def users(self) -> IUserRepository: ...
    @property
    def event_bus(self) -> IEventBus: ...
    @property
    def logger(self) -> ILogger: ...

    def __enter__(self) -> IReservationUnitOfWork: ...
    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...
