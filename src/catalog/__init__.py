"""
Модуль контекста каталога (Catalog Context).

Отвечает за:
- Книги и количество их экземпляров
- Читателей (только чтение со стороны бронирований)
- Атомарное резервирование и возврат экземпляров (InventoryLedger)
"""

from . import domain, infrastructure, interfaces

__all__ = [
    "domain",
    "infrastructure",
    "interfaces",
]
