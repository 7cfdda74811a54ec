"""
Конфигурация тестов для pytest.
Добавляет каталог src в PYTHONPATH и объявляет общие фикстуры.
"""
import sys
from decimal import Decimal
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Добавляем каталог с исходниками в PYTHONPATH
root_dir = str(Path(__file__).parent.parent / "src")
if root_dir not in sys.path:
    sys.path.insert(0, root_dir)

from bootstrap import bootstrap_app  # noqa: E402
from catalog.domain import Book, User  # noqa: E402
from shared_kernel import ConsoleLogger, Money  # noqa: E402


@pytest.fixture
def logger() -> MagicMock:
    """Фикстура для мокированного логгера."""
    return MagicMock(spec=ConsoleLogger)


@pytest.fixture
def reader() -> User:
    return User(id=1, name="Juan Pérez", email="juan@example.com")


@pytest.fixture
def other_reader() -> User:
    return User(id=2, name="Ana García", email="ana@example.com")


@pytest.fixture
def book() -> Book:
    return Book(
        id=258027,
        title="The Lord of the Rings",
        price=Money(amount=Decimal("15.99")),
        stock_quantity=10,
        available_quantity=5,
    )


@pytest.fixture
def components(book: Book, reader: User, other_reader: User, logger: MagicMock):
    """Полностью собранное приложение на репозиториях в памяти."""
    return bootstrap_app(books=[book], users=[reader, other_reader], logger=logger)


@pytest.fixture
def service(components):
    return components["reservation_service"]


@pytest.fixture
def uow(components):
    return components["uow"]
