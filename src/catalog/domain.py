"""
Доменная модель каталога.

Содержит книги с конечным количеством экземпляров, читателей и доменный
сервис учета экземпляров (InventoryLedger) — единственное место, где
меняется количество доступных экземпляров книги.
"""

from __future__ import annotations

import itertools
from typing import TYPE_CHECKING, Callable, Optional

from pydantic import BaseModel, Field, model_validator
from shared_kernel import (
    BusinessRuleValidationException,
    ConcurrencyException,
    ConsoleLogger,
    EntityId,
    ILogger,
    InvalidArgumentException,
    Money,
    NotFoundException,
)

if TYPE_CHECKING:
    from .interfaces import IBookRepository


class BookUnavailableException(BusinessRuleValidationException):
    """Все экземпляры книги уже выданы."""

    MESSAGE = "Нет доступных экземпляров книги"

    def __init__(self, book_id: EntityId):
        super().__init__(self.MESSAGE)
        self.book_id = book_id


class User(BaseModel):
    """Читатель."""

    id: EntityId
    name: str
    email: str


class Book(BaseModel):
    """Книга в каталоге.

    ``price`` используется как суточная ставка аренды. ``version`` —
    счетчик для оптимистичной блокировки при изменении остатка.
    """

    id: EntityId
    title: str
    price: Money
    stock_quantity: int = Field(..., ge=0)
    available_quantity: int = Field(..., ge=0)
    version: int = 0

    @model_validator(mode="after")
    def available_within_stock(self) -> "Book":
        if self.available_quantity > self.stock_quantity:
            raise ValueError(
                "Доступных экземпляров не может быть больше, чем всего на складе"
            )
        return self

    def is_available(self) -> bool:
        return self.available_quantity > 0

    def take_copy(self) -> None:
        """Забирает один экземпляр из доступных."""
        if not self.is_available():
            raise BookUnavailableException(self.id)
        self.available_quantity -= 1
        self.version += 1

    def put_back_copy(self) -> None:
        """Возвращает один экземпляр в доступные."""
        if self.available_quantity >= self.stock_quantity:
            raise BusinessRuleValidationException(
                f"Все {self.stock_quantity} экземпляров книги {self.id} уже на месте"
            )
        self.available_quantity += 1
        self.version += 1


class InventoryLedger:
    """Доменный сервис учета экземпляров книг.

    Каждое изменение остатка — это цикл "прочитать, изменить копию,
    сохранить с ожидаемой версией". Если между чтением и записью книгу
    изменил кто-то другой, репозиторий бросает ConcurrencyException,
    и попытка повторяется со свежего чтения.
    """

    MAX_ATTEMPTS = 5

    def __init__(
        self,
        books: IBookRepository,
        logger: Optional[ILogger] = None,
        max_attempts: Optional[int] = None,
    ):
        self._books = books
        self._logger = logger or ConsoleLogger()
        if max_attempts is None:
            max_attempts = self.MAX_ATTEMPTS
        if max_attempts < 1:
            raise InvalidArgumentException("Число попыток должно быть не меньше 1")
        self._max_attempts = max_attempts

    def reserve_one(self, book: Book) -> Book:
        """Резервирует один экземпляр. Бросает BookUnavailableException, если их нет."""
        updated = self._apply(book.id, Book.take_copy)
        self._logger.debug(
            "Экземпляр зарезервирован",
            book_id=updated.id,
            available_quantity=updated.available_quantity,
        )
        return updated

    def release_one(self, book: Book) -> Book:
        """Возвращает один экземпляр в пул доступных."""
        updated = self._apply(book.id, Book.put_back_copy)
        self._logger.debug(
            "Экземпляр возвращен",
            book_id=updated.id,
            available_quantity=updated.available_quantity,
        )
        return updated

    def release_reserved(self, book: Book) -> Book:
        """Возвращает экземпляр, списанный незавершенной операцией.

        В отличие от release_one, конфликт версий не ограничен числом
        попыток: экземпляр уже списан, и отказ означал бы его потерю.
        Бизнес-ошибки (остаток уже полный, книги нет) не повторяются.
        """
        updated = self._apply(book.id, Book.put_back_copy, bounded=False)
        self._logger.debug(
            "Списанный экземпляр возвращен",
            book_id=updated.id,
            available_quantity=updated.available_quantity,
        )
        return updated

    def _apply(
        self,
        book_id: EntityId,
        change: Callable[[Book], None],
        bounded: bool = True,
    ) -> Book:
        attempts = range(1, self._max_attempts + 1) if bounded else itertools.count(1)
        for attempt in attempts:
            current = self._books.get_by_id(book_id)
            if current is None:
                raise NotFoundException("Книга", book_id)

            candidate = current.model_copy(deep=True)
            change(candidate)

            try:
                return self._books.save(candidate, expected_version=current.version)
            except ConcurrencyException:
                self._logger.warning(
                    "Конфликт версий при изменении остатка книги",
                    book_id=book_id,
                    attempt=attempt,
                )

        raise ConcurrencyException(
            f"Не удалось изменить остаток книги {book_id} "
            f"за {self._max_attempts} попыток"
        )
