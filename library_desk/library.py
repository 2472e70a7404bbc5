import logging
import math
from datetime import datetime, timedelta, timezone
from threading import RLock
from typing import Any, Callable, Dict, List, Optional

from library_desk.book import Book, BookStatus
from library_desk.borrow_record import BorrowRecord
from library_desk.catalog import CatalogStore
from library_desk.config import Settings, settings
from library_desk.demo import DEFAULT_CATEGORIES, seed_demo_data
from library_desk.errors import ConflictError, LibraryError, NotFoundError, ValidationError
from library_desk.ids import make_id_factory
from library_desk.ledger import LoanLedger

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Library:
    """One library session: the catalog, the loan ledger and the workflow
    that keeps them consistent.

    Every change to a book's status or to a record's return date goes
    through ``borrow`` and ``return_book``; both run under the session lock
    so a book is borrowed exactly when one open record points at it.
    """

    def __init__(self, catalog: Optional[CatalogStore] = None, ledger: Optional[LoanLedger] = None,
                 clock: Callable[[], datetime] = utc_now, late_fee_per_day: float = 0.50,
                 recent_activity_limit: int = 5) -> None:
        self.catalog = catalog if catalog is not None else CatalogStore()
        self.ledger = ledger if ledger is not None else LoanLedger()
        self.clock = clock
        self.late_fee_per_day = late_fee_per_day
        self.recent_activity_limit = recent_activity_limit
        self._lock = RLock()

    @classmethod
    def from_settings(cls, config: Settings = settings, clock: Callable[[], datetime] = utc_now) -> "Library":
        """Build a session from configuration, seeding the demo collection if enabled."""
        library = cls(
            catalog=CatalogStore(id_factory=make_id_factory(config.id_strategy)),
            ledger=LoanLedger(id_factory=make_id_factory(config.id_strategy), loan_days=config.loan_period_days),
            clock=clock,
            late_fee_per_day=config.late_fee_per_day,
            recent_activity_limit=config.recent_activity_limit,
        )
        if config.seed_demo_data:
            seed_demo_data(library)
        return library

    def _now(self, now: Optional[datetime]) -> datetime:
        """Reference time for an operation; naive datetimes are taken as UTC."""
        now = now if now is not None else self.clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now

    # ------------------------- Catalog intents ------------------------- #
    def create_book(self, title: str, author: str, category: str, isbn: Optional[str] = None,
                    published_year: Optional[int] = None) -> Book:
        with self._lock:
            try:
                book = self.catalog.add(title, author, category, isbn=isbn, published_year=published_year)
            except LibraryError as e:
                logger.warning(f"Rejected new book: {e}")
                raise
        logger.info(f"Book added: {book.id} '{book.title}' by {book.author}")
        return book

    def update_book(self, book_id: str, **fields: Any) -> Book:
        with self._lock:
            try:
                book = self.catalog.update(book_id, fields)
            except LibraryError as e:
                logger.warning(f"Rejected update of book {book_id}: {e}")
                raise
        logger.info(f"Book updated: {book_id} ({', '.join(sorted(fields)) or 'no fields'})")
        return book

    def delete_book(self, book_id: str) -> Book:
        """Remove a book from the catalog. Books out on loan cannot be removed."""
        with self._lock:
            try:
                book = self.catalog.get(book_id)
                open_record = self.ledger.open_record_for(book_id)
                if open_record is not None:
                    raise ConflictError(
                        f"'{book.title}' is currently borrowed by {open_record.student_name}; "
                        "return it before deleting."
                    )
                self.catalog.remove(book_id)
            except LibraryError as e:
                logger.warning(f"Refused to delete book {book_id}: {e}")
                raise
        logger.info(f"Book removed: {book_id} '{book.title}'")
        return book

    def get_book(self, book_id: str) -> Book:
        return self.catalog.get(book_id)

    def find_book(self, book_id: str) -> Optional[Book]:
        try:
            return self.catalog.get(book_id)
        except NotFoundError:
            return None

    # ------------------------- Loan workflow ------------------------- #
    def borrow(self, book_id: str, student_name: str, student_id: str,
               now: Optional[datetime] = None) -> BorrowRecord:
        """Lend an available book to a student for the loan period."""
        now = self._now(now)
        with self._lock:
            try:
                if not book_id or not str(book_id).strip():
                    raise ValidationError("Please select a book to borrow.")
                book = self.catalog.get(book_id)
                if book.status is not BookStatus.AVAILABLE:
                    raise ConflictError(f"'{book.title}' is already borrowed.")
                # The ledger is the only step that can fail; the status flip follows it.
                record = self.ledger.open(book_id, student_name, student_id, now)
            except LibraryError as e:
                logger.warning(f"Borrow refused for book {book_id}: {e}")
                raise
            book.status = BookStatus.BORROWED
        logger.info(f"Loan opened: record {record.id}, book {book_id} to {record.student_name} "
                    f"({record.student_id}), due {record.due_date.isoformat()}")
        return record

    def return_book(self, record_id: str, now: Optional[datetime] = None) -> BorrowRecord:
        """Close an open loan and put the book back on the shelf."""
        now = self._now(now)
        with self._lock:
            try:
                record = self.ledger.close(record_id, now)
            except LibraryError as e:
                logger.warning(f"Return refused for record {record_id}: {e}")
                raise
            book = self.find_book(record.book_id)
            if book is not None:
                book.status = BookStatus.AVAILABLE
            else:
                logger.warning(f"Returned record {record_id} references missing book {record.book_id}")
            days = self.days_overdue(record, now)
        logger.info(f"Loan closed: record {record_id}, book {record.book_id}, "
                    f"{days} day(s) overdue, fee {self.late_fee(days):.2f}")
        return record

    def days_overdue(self, record: BorrowRecord, now: Optional[datetime] = None) -> int:
        """Started days past the due date; 0 while the record is not yet due."""
        elapsed = self._now(now) - record.due_date
        if elapsed <= timedelta(0):
            return 0
        return math.ceil(elapsed / ONE_DAY)

    def late_fee(self, days_overdue: int) -> float:
        return round(max(days_overdue, 0) * self.late_fee_per_day, 2)

    def is_overdue(self, record: BorrowRecord, now: Optional[datetime] = None) -> bool:
        return record.is_open and record.due_date < self._now(now)

    # ------------------------- Queries ------------------------- #
    def list_books(self) -> List[Book]:
        return list(self.catalog)

    def search_books(self, text: str = "", category: Optional[str] = None) -> List[Book]:
        return self.catalog.find(text, category).to_list()

    def available_books(self, text: str = "") -> List[Book]:
        """Books that can be borrowed right now, filtered by title or author."""
        needle = (text or "").strip().lower()
        return [
            book for book in self.catalog.with_status(BookStatus.AVAILABLE)
            if not needle or needle in book.title.lower() or needle in book.author.lower()
        ]

    def categories(self) -> List[str]:
        """The standard category choices, followed by any others in use."""
        extra = [c for c in self.catalog.categories() if c not in DEFAULT_CATEGORIES]
        return DEFAULT_CATEGORIES + extra

    def get_loan(self, record_id: str) -> BorrowRecord:
        return self.ledger.get(record_id)

    def open_loans(self) -> List[BorrowRecord]:
        return self.ledger.open_records().to_list()

    def search_open_loans(self, text: str = "") -> List[BorrowRecord]:
        return self.ledger.find_by_query(text, self.find_book).to_list()

    def overdue_loans(self, now: Optional[datetime] = None) -> List[BorrowRecord]:
        now = self._now(now)
        return [record for record in self.ledger.open_records() if self.is_overdue(record, now)]

    def describe_loan(self, record: BorrowRecord, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Loan row for display: the record plus its book and fee status."""
        now = self._now(now)
        book = self.find_book(record.book_id)
        days = self.days_overdue(record, now) if record.is_open else self.days_overdue(record, record.return_date)
        row = record.to_dict()
        row.update({
            "book_title": book.title if book else None,
            "book_author": book.author if book else None,
            "is_overdue": self.is_overdue(record, now),
            "days_overdue": days,
            "late_fee": self.late_fee(days),
        })
        return row

    def get_statistics(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Dashboard aggregates for the current session."""
        now = self._now(now)
        with self._lock:
            books = list(self.catalog)
            open_records = self.ledger.open_records().to_list()

        borrowed = sum(1 for book in books if book.status is BookStatus.BORROWED)
        recent = sorted(open_records, key=lambda r: r.borrow_date, reverse=True)[:self.recent_activity_limit]
        outstanding = sum(self.late_fee(self.days_overdue(r, now)) for r in open_records)
        return {
            "total_books": len(books),
            "available_books": len(books) - borrowed,
            "borrowed_books": borrowed,
            "overdue_books": sum(1 for r in open_records if self.is_overdue(r, now)),
            "recent_borrowings": recent,
            "outstanding_fees": round(outstanding, 2),
        }
