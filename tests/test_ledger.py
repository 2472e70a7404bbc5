from datetime import datetime, timedelta, timezone

import pytest

from library_desk.book import Book
from library_desk.borrow_record import LoanStatus
from library_desk.errors import ConflictError, NotFoundError, ValidationError
from library_desk.ids import SequentialIds
from library_desk.ledger import LoanLedger

D = datetime(2024, 1, 10, 14, 30, tzinfo=timezone.utc)


@pytest.fixture
def ledger():
    return LoanLedger(id_factory=SequentialIds())


def test_open_sets_dates(ledger):
    record = ledger.open("1", "Alice", "S1", D)
    assert record.id == "1"
    assert record.borrow_date == D
    assert record.due_date == D + timedelta(days=14)
    assert record.return_date is None
    assert record.status is LoanStatus.OPEN


def test_open_uses_configured_loan_period():
    ledger = LoanLedger(loan_days=7)
    record = ledger.open("1", "Alice", "S1", D)
    assert record.due_date == D + timedelta(days=7)


@pytest.mark.parametrize("book_id, name, student_id", [
    ("", "Alice", "S1"),
    ("1", "", "S1"),
    ("1", "Alice", "  "),
])
def test_open_requires_all_fields(ledger, book_id, name, student_id):
    with pytest.raises(ValidationError, match="required fields"):
        ledger.open(book_id, name, student_id, D)
    assert len(ledger) == 0


def test_second_open_record_for_same_book_conflicts(ledger):
    ledger.open("1", "Alice", "S1", D)
    with pytest.raises(ConflictError):
        ledger.open("1", "Bob", "S2", D)
    assert len(ledger) == 1


def test_close_sets_return_date_once(ledger):
    record = ledger.open("1", "Alice", "S1", D)
    returned_at = D + timedelta(days=3)

    closed = ledger.close(record.id, returned_at)
    assert closed.return_date == returned_at
    assert closed.status is LoanStatus.CLOSED

    with pytest.raises(ConflictError, match="already returned"):
        ledger.close(record.id, returned_at + timedelta(days=1))
    assert record.return_date == returned_at


def test_close_unknown_record(ledger):
    with pytest.raises(NotFoundError):
        ledger.close("42", D)


def test_book_can_be_lent_again_after_return(ledger):
    first = ledger.open("1", "Alice", "S1", D)
    ledger.close(first.id, D + timedelta(days=1))
    second = ledger.open("1", "Bob", "S2", D + timedelta(days=2))

    assert ledger.open_record_for("1") is second
    assert [r.id for r in ledger.history("1")] == [first.id, second.id]


def test_open_records_excludes_closed(ledger):
    a = ledger.open("1", "Alice", "S1", D)
    b = ledger.open("2", "Bob", "S2", D)
    open_records = ledger.open_records()
    assert [r.id for r in open_records] == [a.id, b.id]

    ledger.close(a.id, D + timedelta(days=1))
    assert [r.id for r in open_records] == [b.id]  # same selection, re-evaluated


def test_find_by_query(ledger):
    books = {
        "1": Book("1", "To Kill a Mockingbird", "Harper Lee", "Literature"),
        "2": Book("2", "The Catcher in the Rye", "J.D. Salinger", "Literature"),
    }
    alice = ledger.open("1", "Alice Johnson", "STU001", D)
    bob = ledger.open("2", "Bob Smith", "STU002", D)

    def search(text):
        return [r.id for r in ledger.find_by_query(text, books.get)]

    assert search("alice") == [alice.id]
    assert search("stu002") == [bob.id]
    assert search("MOCKINGBIRD") == [alice.id]
    assert search("salinger") == [bob.id]
    assert search("") == [alice.id, bob.id]
    assert search("tolkien") == []

    ledger.close(alice.id, D)
    assert search("alice") == []


def test_find_by_query_tolerates_missing_book(ledger):
    ledger.open("9", "Carol", "S3", D)
    assert list(ledger.find_by_query("gatsby", lambda book_id: None)) == []
    assert len(list(ledger.find_by_query("carol", lambda book_id: None))) == 1


def test_open_converts_student_fields_to_text(ledger):
    record = ledger.open("1", "  Alice ", 42, D)
    assert record.student_name == "Alice"
    assert record.student_id == "42"

    with pytest.raises(ValidationError, match="student_id"):
        ledger.open("2", "Bob", None, D)
    assert len(ledger) == 1
