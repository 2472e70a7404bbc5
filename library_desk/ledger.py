import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterator, Optional

from library_desk.book import Book
from library_desk.borrow_record import BorrowRecord
from library_desk.errors import ConflictError, NotFoundError, ValidationError
from library_desk.ids import SequentialIds
from library_desk.query import Selection

logger = logging.getLogger(__name__)

DEFAULT_LOAN_DAYS = 14


class LoanLedger:
    """In-memory log of borrow transactions.

    Records are only ever appended and closed, never deleted. At most one
    record per book is open at any time.
    """

    def __init__(self, id_factory: Optional[Callable[[], str]] = None,
                 loan_days: int = DEFAULT_LOAN_DAYS) -> None:
        self._records: Dict[str, BorrowRecord] = {}
        self._next_id = id_factory or SequentialIds()
        self.loan_period = timedelta(days=loan_days)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[BorrowRecord]:
        return iter(list(self._records.values()))

    def open(self, book_id: str, student_name: str, student_id: str, now: datetime) -> BorrowRecord:
        fields = {
            "book_id": book_id,
            "student_name": "" if student_name is None else str(student_name).strip(),
            "student_id": "" if student_id is None else str(student_id).strip(),
        }
        missing = [name for name, value in fields.items() if not value or not str(value).strip()]
        if missing:
            raise ValidationError(f"Please fill in all required fields: {', '.join(missing)}.")

        existing = self.open_record_for(book_id)
        if existing is not None:
            raise ConflictError(f"Book {book_id} already has an open loan (record {existing.id}).")

        record = BorrowRecord(
            id=self._next_id(),
            book_id=book_id,
            student_name=fields["student_name"],
            student_id=fields["student_id"],
            borrow_date=now,
            due_date=now + self.loan_period,
        )
        self._records[record.id] = record
        logger.debug(f"Ledger: opened record {record.id} for book {book_id}")
        return record

    def close(self, record_id: str, now: datetime) -> BorrowRecord:
        record = self.get(record_id)
        if not record.is_open:
            raise ConflictError(f"Borrow record {record_id} was already returned.")
        record.return_date = now
        logger.debug(f"Ledger: closed record {record_id}")
        return record

    def get(self, record_id: str) -> BorrowRecord:
        record = self._records.get(record_id)
        if record is None:
            raise NotFoundError(f"Borrow record {record_id} not found.")
        return record

    def open_record_for(self, book_id: str) -> Optional[BorrowRecord]:
        return Selection(self._snapshot, lambda r: r.is_open and r.book_id == book_id).first()

    # ------------------------- Queries ------------------------- #
    def open_records(self) -> Selection[BorrowRecord]:
        return Selection(self._snapshot, lambda r: r.is_open)

    def history(self, book_id: Optional[str] = None) -> Selection[BorrowRecord]:
        return Selection(self._snapshot, lambda r: book_id is None or r.book_id == book_id)

    def find_by_query(self, text: str, resolve_book: Callable[[str], Optional[Book]]) -> Selection[BorrowRecord]:
        """Open records whose student name or id, or whose book's title or
        author, contains ``text`` (case-insensitive)."""
        needle = (text or "").strip().lower()

        def matches(record: BorrowRecord) -> bool:
            if not record.is_open:
                return False
            if not needle:
                return True
            if needle in record.student_name.lower() or needle in record.student_id.lower():
                return True
            book = resolve_book(record.book_id)
            return book is not None and (needle in book.title.lower() or needle in book.author.lower())

        return Selection(self._snapshot, matches)

    def _snapshot(self):
        return list(self._records.values())
