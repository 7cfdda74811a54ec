from typing import Iterable, Optional

from catalog.domain import Book, InventoryLedger, User
from catalog.infrastructure import InMemoryBookRepository, InMemoryUserRepository
from reservations.application import ReservationApplicationService
from reservations.domain import ReservationPolicy
from reservations.infrastructure import (
    InMemoryReservationRepository,
    ReservationUnitOfWork,
)
from shared_kernel import ConsoleLogger, ILogger, InMemoryEventBus


def bootstrap_app(
    books: Optional[Iterable[Book]] = None,
    users: Optional[Iterable[User]] = None,
    policy: Optional[ReservationPolicy] = None,
    logger: Optional[ILogger] = None,
):
    """Создает и настраивает все компоненты приложения."""
    # 1. Общие зависимости
    logger = logger or ConsoleLogger()
    event_bus = InMemoryEventBus(logger)

    # 2. Внешние коллабораторы: каталог и читатели
    book_repo = InMemoryBookRepository(books)
    user_repo = InMemoryUserRepository(users)

    # 3. Unit of Work и учет экземпляров
    uow = ReservationUnitOfWork(
        reservations_repo=InMemoryReservationRepository(),
        books_repo=book_repo,
        users_repo=user_repo,
        event_bus=event_bus,
        logger=logger,
    )
    ledger = InventoryLedger(book_repo, logger)

    # 4. Сервис приложения
    reservation_service = ReservationApplicationService(
        uow, policy=policy, ledger=ledger
    )

    return {
        "uow": uow,
        "event_bus": event_bus,
        "ledger": ledger,
        "reservation_service": reservation_service,
    }
