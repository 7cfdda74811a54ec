"""
Тесты для контекста каталога: инварианты книги, репозиторий книг и
учет экземпляров (InventoryLedger).
"""

import threading
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from catalog.domain import Book, BookUnavailableException, InventoryLedger
from catalog.infrastructure import InMemoryBookRepository, InMemoryUserRepository
from catalog.interfaces import IBookRepository
from pydantic import ValidationError
from shared_kernel import (
    BusinessRuleValidationException,
    ConcurrencyException,
    InvalidArgumentException,
    Money,
    NotFoundException,
)


def make_book(available: int = 1, stock: int = 3, book_id: int = 7) -> Book:
    return Book(
        id=book_id,
        title="Dune",
        price=Money(amount=Decimal("9.50")),
        stock_quantity=stock,
        available_quantity=available,
    )


class CompetingWriterBookRepository(InMemoryBookRepository):
    """Репозиторий, в котором перед версионной записью успевает вклиниться
    другой запрос и забрать экземпляр той же книги."""

    def __init__(self, books, interruptions: int = 1):
        super().__init__(books)
        self.interruptions = interruptions

    def save(self, book, expected_version=None):
        if expected_version is not None and self.interruptions > 0:
            self.interruptions -= 1
            competitor = super().get_by_id(book.id)
            competitor.take_copy()
            super().save(competitor)
        return super().save(book, expected_version=expected_version)


class TestBook:
    """Тесты для сущности Book."""

    def test_available_cannot_exceed_stock(self):
        with pytest.raises(ValidationError):
            make_book(available=4, stock=3)

    def test_negative_quantities_are_rejected(self):
        with pytest.raises(ValidationError):
            make_book(available=-1)

    def test_take_copy_decrements_and_bumps_version(self):
        book = make_book(available=2)
        book.take_copy()
        assert book.available_quantity == 1
        assert book.version == 1

    def test_take_copy_when_nothing_left(self):
        book = make_book(available=0)
        with pytest.raises(BookUnavailableException) as exc_info:
            book.take_copy()
        assert str(exc_info.value) == BookUnavailableException.MESSAGE
        assert book.available_quantity == 0
        assert book.version == 0

    def test_put_back_copy_cannot_overflow_stock(self):
        book = make_book(available=3, stock=3)
        with pytest.raises(BusinessRuleValidationException):
            book.put_back_copy()
        assert book.available_quantity == 3


class TestInMemoryBookRepository:
    def test_returns_copies(self):
        repo = InMemoryBookRepository([make_book(available=2)])

        loaded = repo.get_by_id(7)
        loaded.take_copy()

        assert repo.get_by_id(7).available_quantity == 2

    def test_versioned_save_detects_conflict(self):
        repo = InMemoryBookRepository([make_book(available=2)])
        first = repo.get_by_id(7)
        second = repo.get_by_id(7)

        first.take_copy()
        repo.save(first, expected_version=0)

        second.take_copy()
        with pytest.raises(ConcurrencyException):
            repo.save(second, expected_version=0)
        assert repo.get_by_id(7).available_quantity == 1

    def test_versioned_save_of_unknown_book(self):
        repo = InMemoryBookRepository()
        with pytest.raises(NotFoundException):
            repo.save(make_book(), expected_version=0)

    def test_missing_book_is_none(self):
        assert InMemoryBookRepository().get_by_id(1) is None


class TestInMemoryUserRepository:
    def test_add_and_get(self, reader):
        repo = InMemoryUserRepository([reader])
        assert repo.get_by_id(reader.id) == reader
        assert repo.get_by_id(999) is None

    def test_duplicate_id_is_rejected(self, reader):
        repo = InMemoryUserRepository([reader])
        with pytest.raises(ValueError):
            repo.add(reader)


class TestInventoryLedger:
    """Тесты для доменного сервиса учета экземпляров."""

    def test_reserve_one_decrements_by_exactly_one(self, logger):
        repo = InMemoryBookRepository([make_book(available=2)])
        ledger = InventoryLedger(repo, logger)

        updated = ledger.reserve_one(repo.get_by_id(7))

        assert updated.available_quantity == 1
        assert repo.get_by_id(7).available_quantity == 1

    def test_reserve_one_uses_current_state_not_callers_copy(self, logger):
        repo = InMemoryBookRepository([make_book(available=1)])
        ledger = InventoryLedger(repo, logger)
        stale = repo.get_by_id(7)

        ledger.reserve_one(stale)

        with pytest.raises(BookUnavailableException):
            ledger.reserve_one(stale)
        assert repo.get_by_id(7).available_quantity == 0

    def test_release_one_increments_by_exactly_one(self, logger):
        repo = InMemoryBookRepository([make_book(available=1)])
        ledger = InventoryLedger(repo, logger)

        ledger.release_one(repo.get_by_id(7))

        assert repo.get_by_id(7).available_quantity == 2

    def test_release_one_never_exceeds_stock(self, logger):
        repo = InMemoryBookRepository([make_book(available=3, stock=3)])
        ledger = InventoryLedger(repo, logger)

        with pytest.raises(BusinessRuleValidationException):
            ledger.release_one(repo.get_by_id(7))
        assert repo.get_by_id(7).available_quantity == 3

    def test_unknown_book(self, logger):
        ledger = InventoryLedger(InMemoryBookRepository(), logger)
        with pytest.raises(NotFoundException):
            ledger.reserve_one(make_book())

    def test_conflict_is_retried_from_fresh_state(self, logger):
        repo = CompetingWriterBookRepository([make_book(available=2)])
        ledger = InventoryLedger(repo, logger)

        ledger.reserve_one(repo.get_by_id(7))

        # Один экземпляр забрал конкурент, второй — мы
        assert repo.get_by_id(7).available_quantity == 0
        logger.warning.assert_called_once()

    def test_conflict_on_last_copy_ends_unavailable(self, logger):
        repo = CompetingWriterBookRepository([make_book(available=1)])
        ledger = InventoryLedger(repo, logger)

        with pytest.raises(BookUnavailableException):
            ledger.reserve_one(repo.get_by_id(7))
        assert repo.get_by_id(7).available_quantity == 0

    def test_gives_up_after_max_attempts(self, logger):
        repo = MagicMock(spec=IBookRepository)
        repo.get_by_id.side_effect = lambda book_id: make_book(available=2)
        repo.save.side_effect = ConcurrencyException("conflict")
        ledger = InventoryLedger(repo, logger, max_attempts=3)

        with pytest.raises(ConcurrencyException):
            ledger.reserve_one(make_book())
        assert repo.save.call_count == 3

    @pytest.mark.parametrize("max_attempts", [0, -1])
    def test_max_attempts_below_one_is_rejected(self, logger, max_attempts):
        with pytest.raises(InvalidArgumentException):
            InventoryLedger(InMemoryBookRepository(), logger, max_attempts=max_attempts)

    def test_max_attempts_defaults_to_class_limit(self, logger):
        repo = MagicMock(spec=IBookRepository)
        repo.get_by_id.side_effect = lambda book_id: make_book(available=2)
        repo.save.side_effect = ConcurrencyException("conflict")
        ledger = InventoryLedger(repo, logger)

        with pytest.raises(ConcurrencyException):
            ledger.reserve_one(make_book())
        assert repo.save.call_count == InventoryLedger.MAX_ATTEMPTS

    def test_release_reserved_retries_past_max_attempts(self, logger):
        saved = make_book(available=3)
        repo = MagicMock(spec=IBookRepository)
        repo.get_by_id.side_effect = lambda book_id: make_book(available=2)
        repo.save.side_effect = [ConcurrencyException("conflict")] * 7 + [saved]
        ledger = InventoryLedger(repo, logger, max_attempts=3)

        assert ledger.release_reserved(make_book()) is saved
        assert repo.save.call_count == 8
        assert logger.warning.call_count == 7

    def test_release_reserved_does_not_retry_business_rules(self, logger):
        repo = InMemoryBookRepository([make_book(available=3, stock=3)])
        ledger = InventoryLedger(repo, logger)

        with pytest.raises(BusinessRuleValidationException):
            ledger.release_reserved(repo.get_by_id(7))
        logger.warning.assert_not_called()

    def test_parallel_reservations_never_oversell(self, logger):
        repo = InMemoryBookRepository([make_book(available=3, stock=3)])
        ledger = InventoryLedger(repo, logger, max_attempts=50)
        barrier = threading.Barrier(6)
        successes, failures = [], []

        def attempt():
            barrier.wait()
            try:
                successes.append(ledger.reserve_one(make_book()))
            except BookUnavailableException as e:
                failures.append(e)

        threads = [threading.Thread(target=attempt) for _ in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(successes) == 3
        assert len(failures) == 3
        assert repo.get_by_id(7).available_quantity == 0
