"""
Общее ядро (Shared Kernel) для системы аренды книг.

Содержит общие типы данных и утилиты, используемые в различных ограниченных контекстах.
"""

from .domain import (
    CENTS,
    BusinessRuleValidationException,
    ConcurrencyException,
    DomainEvent,
    # Исключения
    DomainException,
    # Базовые типы
    EntityId,
    InvalidArgumentException,
    # Основные классы
    Money,
    NotFoundException,
    # Утилиты
    now,
    today,
)
from .infrastructure import ConsoleLogger, InMemoryEventBus
from .interfaces import IEventBus, ILogger

__all__ = [
    # Базовые типы
    "EntityId",
    "CENTS",
    # Основные классы
    "Money",
    "DomainEvent",
    # Исключения
    "DomainException",
    "NotFoundException",
    "ConcurrencyException",
    "BusinessRuleValidationException",
    "InvalidArgumentException",
    # Порты и адаптеры
    "ILogger",
    "IEventBus",
    "ConsoleLogger",
    "InMemoryEventBus",
    # Утилиты
    "now",
    "today",
]
