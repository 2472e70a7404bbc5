from __future__ import annotations

from datetime import datetime
from enum import Enum


class LoanStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class BorrowRecord:
    """One borrow transaction of a book by a student.

    ``return_date`` is None while the loan is open. It is set exactly once,
    by the loan workflow's return operation.
    """

    def __init__(self, id: str, book_id: str, student_name: str, student_id: str,
                 borrow_date: datetime, due_date: datetime, return_date: datetime | None = None) -> None:
        self.id = id
        self.book_id = book_id
        self.student_name = student_name
        self.student_id = student_id
        self.borrow_date = borrow_date
        self.due_date = due_date
        self.return_date = return_date

    def __repr__(self) -> str:  # pragma: no cover
        return (f"BorrowRecord(id={self.id!r}, book_id={self.book_id!r}, "
                f"student_id={self.student_id!r}, status={self.status.value!r})")

    @property
    def is_open(self) -> bool:
        return self.return_date is None

    @property
    def status(self) -> LoanStatus:
        return LoanStatus.OPEN if self.is_open else LoanStatus.CLOSED

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "book_id": self.book_id,
            "student_name": self.student_name,
            "student_id": self.student_id,
            "borrow_date": self.borrow_date.isoformat(),
            "due_date": self.due_date.isoformat(),
            "return_date": self.return_date.isoformat() if self.return_date else None,
            "status": self.status.value,
        }
