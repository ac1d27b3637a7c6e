"""Tests for page slicing over filtered transactions."""

from datetime import datetime, timedelta, timezone

import pytest

from backend.repositories.transactions_repository import InMemoryTransactionsRepository
from backend.services.pagination import page_count, paginate
from backend.services.transaction_filters import build_transaction_filter
from tests.fakes import OWNER_A, OWNER_B, make_record, record_id


_BASE_DATE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _seed(repository: InMemoryTransactionsRepository, count: int) -> None:
    for index in range(count):
        repository.insert_transaction(
            make_record(record_id=record_id(index), date=_BASE_DATE + timedelta(days=index))
        )


@pytest.mark.parametrize(
    ("total", "limit", "expected"),
    [(0, 10, 0), (1, 10, 1), (10, 10, 1), (11, 10, 2), (25, 10, 3)],
)
def test_page_count_rounds_up(total: int, limit: int, expected: int) -> None:
    assert page_count(total, limit) == expected


def test_first_page_is_newest_first() -> None:
    repository = InMemoryTransactionsRepository()
    _seed(repository, 25)

    page = paginate(repository, build_transaction_filter(OWNER_A), page=1, limit=10)

    assert len(page.items) == 10
    assert page.items[0].date == _BASE_DATE + timedelta(days=24)
    assert [item.date for item in page.items] == sorted((item.date for item in page.items), reverse=True)
    assert (page.page, page.limit, page.total, page.pages) == (1, 10, 25, 3)


def test_last_page_holds_remainder() -> None:
    repository = InMemoryTransactionsRepository()
    _seed(repository, 25)

    page = paginate(repository, build_transaction_filter(OWNER_A), page=3, limit=10)

    assert len(page.items) == 5
    assert page.total == 25


def test_page_past_end_is_empty_with_full_total() -> None:
    repository = InMemoryTransactionsRepository()
    _seed(repository, 5)

    page = paginate(repository, build_transaction_filter(OWNER_A), page=4, limit=10)

    assert page.items == []
    assert page.total == 5
    assert page.pages == 1


def test_no_matches_yields_zero_pages() -> None:
    repository = InMemoryTransactionsRepository()
    _seed(repository, 3)

    page = paginate(repository, build_transaction_filter(OWNER_B), page=1, limit=10)

    assert page.items == []
    assert (page.total, page.pages) == (0, 0)


def test_equal_dates_break_ties_by_id_descending() -> None:
    repository = InMemoryTransactionsRepository()
    for index in range(3):
        repository.insert_transaction(make_record(record_id=record_id(index), date=_BASE_DATE))

    page = paginate(repository, build_transaction_filter(OWNER_A), page=1, limit=10)

    assert [str(item.id) for item in page.items] == [record_id(2), record_id(1), record_id(0)]


@pytest.mark.parametrize(("page", "limit"), [(0, 10), (1, 0)])
def test_invalid_page_or_limit_is_rejected(page: int, limit: int) -> None:
    with pytest.raises(ValueError):
        paginate(InMemoryTransactionsRepository(), build_transaction_filter(OWNER_A), page=page, limit=limit)


@pytest.mark.parametrize(("count", "limit"), [(23, 5), (20, 5), (7, 50), (1, 1)])
def test_walking_all_pages_visits_each_record_once(count: int, limit: int) -> None:
    repository = InMemoryTransactionsRepository()
    _seed(repository, count)
    filters = build_transaction_filter(OWNER_A)

    first = paginate(repository, filters, page=1, limit=limit)
    seen = list(first.items)
    for page_number in range(2, first.pages + 1):
        seen.extend(paginate(repository, filters, page=page_number, limit=limit).items)

    assert len(seen) == count
    assert len({item.id for item in seen}) == count
    assert [item.date for item in seen] == sorted((item.date for item in seen), reverse=True)
