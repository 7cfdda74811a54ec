"""
Модуль контекста бронирований (Reservations Context).

Отвечает за жизненный цикл бронирования книги:
- Создание бронирования с резервированием экземпляра
- Возврат книги с расчетом пени за просрочку
- Выборки бронирований, в том числе просроченных
"""

from . import application, domain, infrastructure, interfaces

__all__ = [
    "domain",
    "application",
    "infrastructure",
    "interfaces",
]
