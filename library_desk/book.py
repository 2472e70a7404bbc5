from __future__ import annotations

from datetime import date
from enum import Enum


class BookStatus(str, Enum):
    AVAILABLE = "available"
    BORROWED = "borrowed"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class Book:
    """A single title held by the library."""

    # Fields a caller may change through the catalog's update path.
    EDITABLE_FIELDS = ("title", "author", "category", "isbn", "published_year")
    REQUIRED_FIELDS = ("title", "author", "category")

    def __init__(self, id: str, title: str, author: str, category: str, isbn: str | None = None,
                 published_year: int | None = None, status: BookStatus = BookStatus.AVAILABLE) -> None:
        self.id = id
        self.title = title.strip()
        self.author = author.strip()
        self.category = category.strip()
        self.isbn = (isbn or "").strip()
        self.published_year = int(published_year) if published_year is not None else date.today().year
        self.status = BookStatus(status)

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} by {self.author} (ISBN: {self.isbn})"

    def __repr__(self) -> str:  # pragma: no cover
        return f"Book(id={self.id!r}, title={self.title!r}, status={self.status.value!r})"

    @property
    def is_available(self) -> bool:
        return self.status is BookStatus.AVAILABLE

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "category": self.category,
            "isbn": self.isbn,
            "published_year": self.published_year,
            "status": self.status.value,
        }

    @staticmethod
    def from_dict(data: dict) -> "Book":
        return Book(
            id=str(data["id"]),
            title=data["title"],
            author=data["author"],
            category=data["category"],
            isbn=data.get("isbn"),
            published_year=data.get("published_year"),
            status=BookStatus(data.get("status", BookStatus.AVAILABLE)),
        )
