"""
Интерфейсы (порты) для контекста каталога.
"""

from __future__ import annotations

from typing import List, Optional, Protocol

from shared_kernel import EntityId

from .domain import Book, User


class IUserRepository(Protocol):
    """Интерфейс репозитория для читателей."""

    def add(self, user: User) -> None: ...
    def get_by_id(self, user_id: EntityId) -> Optional[User]: ...


class IBookRepository(Protocol):
    """Интерфейс репозитория для книг.

    ``save`` с ``expected_version`` записывает книгу, только если сохраненная
    версия совпадает с ожидаемой, иначе бросает ConcurrencyException.
    """

    def get_by_id(self, book_id: EntityId) -> Optional[Book]: ...
    def save(self, book: Book, expected_version: Optional[int] = None) -> Book: ...
    def list_all(self) -> List[Book]: ...
