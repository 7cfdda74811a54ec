"""
Инфраструктурный слой контекста каталога.

Реализации репозиториев в памяти. Сущности хранятся копиями, чтобы
изменения объекта вне репозитория не попадали в "хранилище" без save().
"""

import threading
from typing import Dict, Iterable, List, Optional

from shared_kernel import ConcurrencyException, EntityId, NotFoundException

from . import interfaces as ports
from .domain import Book, User


class InMemoryUserRepository(ports.IUserRepository):
    """Реализация репозитория читателей в памяти."""

    def __init__(self, users: Optional[Iterable[User]] = None):
        self._users: Dict[EntityId, User] = {}
        for user in users or []:
            self.add(user)

    def add(self, user: User) -> None:
        if user.id in self._users:
            raise ValueError(f"User with id {user.id} already exists")
        self._users[user.id] = user.model_copy()

    def get_by_id(self, user_id: EntityId) -> Optional[User]:
        user = self._users.get(user_id)
        return user.model_copy() if user is not None else None

    def list_all(self) -> List[User]:
        return [user.model_copy() for user in self._users.values()]


class InMemoryBookRepository(ports.IBookRepository):
    """Реализация репозитория книг в памяти.

    Проверка версии и запись выполняются под одной блокировкой — аналог
    ``UPDATE ... WHERE version = :expected`` в реляционной БД.
    """

    def __init__(self, books: Optional[Iterable[Book]] = None):
        self._books: Dict[EntityId, Book] = {}
        self._lock = threading.Lock()
        for book in books or []:
            self.save(book)

    def get_by_id(self, book_id: EntityId) -> Optional[Book]:
        with self._lock:
            book = self._books.get(book_id)
            return book.model_copy(deep=True) if book is not None else None

    def save(self, book: Book, expected_version: Optional[int] = None) -> Book:
        with self._lock:
            if expected_version is not None:
                stored = self._books.get(book.id)
                if stored is None:
                    raise NotFoundException("Книга", book.id)
                if stored.version != expected_version:
                    raise ConcurrencyException(
                        f"Book {book.id}: expected version {expected_version}, "
                        f"found {stored.version}"
                    )
            self._books[book.id] = book.model_copy(deep=True)
            return book

    def list_all(self) -> List[Book]:
        with self._lock:
            return [book.model_copy(deep=True) for book in self._books.values()]
