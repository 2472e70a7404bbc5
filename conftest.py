from datetime import datetime, timezone

import pytest

from library_desk.catalog import CatalogStore
from library_desk.ledger import LoanLedger
from library_desk.library import Library
from library_desk.ids import SequentialIds
from library_desk.main import LibraryManager

# Reference time for tests: a week after the demo loans fell due.
NOW = datetime(2024, 1, 31, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def lib(now):
    # A fresh, empty session with a fixed clock for every test
    lib = Library(
        catalog=CatalogStore(id_factory=SequentialIds()),
        ledger=LoanLedger(id_factory=SequentialIds()),
        clock=lambda: now,
    )
    LibraryManager.reset(lib)
    yield lib
    LibraryManager.reset()


@pytest.fixture
def gatsby(lib):
    return lib.create_book("The Great Gatsby", "F. Scott Fitzgerald", "Literature",
                           isbn="978-0-7432-7356-5", published_year=1925)
