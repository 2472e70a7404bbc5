import logging
from typing import Any, Callable, Dict, Iterator, List, Optional

from library_desk.book import Book, BookStatus
from library_desk.errors import NotFoundError, ValidationError
from library_desk.ids import SequentialIds
from library_desk.query import Selection

logger = logging.getLogger(__name__)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class CatalogStore:
    """In-memory collection of Book records, keyed by id.

    Book status is owned by the loan workflow: nothing here changes it after
    creation.
    """

    def __init__(self, id_factory: Optional[Callable[[], str]] = None) -> None:
        self._books: Dict[str, Book] = {}
        self._next_id = id_factory or SequentialIds()

    def __len__(self) -> int:
        return len(self._books)

    def __iter__(self) -> Iterator[Book]:
        return iter(list(self._books.values()))

    def __contains__(self, book_id: object) -> bool:
        return book_id in self._books

    # ------------------------- Core operations ------------------------- #
    def add(self, title: str, author: str, category: str, isbn: Optional[str] = None,
            published_year: Optional[int] = None) -> Book:
        """Create an available Book. Title, author and category are required."""
        missing = [name for name, value in (("title", title), ("author", author), ("category", category))
                   if _is_blank(value)]
        if missing:
            raise ValidationError(f"Missing required field(s): {', '.join(missing)}.")

        book = Book(id=self._next_id(), title=title, author=author, category=category,
                    isbn=isbn, published_year=published_year, status=BookStatus.AVAILABLE)
        self._books[book.id] = book
        logger.debug(f"Catalog: added book {book.id} ({book.title})")
        return book

    def get(self, book_id: str) -> Book:
        book = self._books.get(book_id)
        if book is None:
            raise NotFoundError(f"Book {book_id} not found.")
        return book

    def update(self, book_id: str, fields: Dict[str, Any]) -> Book:
        """Merge ``fields`` into an existing Book and return it.

        ``id`` and ``status`` cannot be set here, and required text fields
        cannot be blanked.
        """
        book = self.get(book_id)

        locked = sorted(set(fields) & {"id", "status"})
        if locked:
            raise ValidationError(f"Field(s) cannot be updated: {', '.join(locked)}.")
        unknown = sorted(set(fields) - set(Book.EDITABLE_FIELDS))
        if unknown:
            raise ValidationError(f"Unknown field(s): {', '.join(unknown)}.")
        blanked = [name for name in Book.REQUIRED_FIELDS if name in fields and _is_blank(fields[name])]
        if blanked:
            raise ValidationError(f"Required field(s) cannot be empty: {', '.join(blanked)}.")

        normalized = {}
        for name, value in fields.items():
            if name == "published_year":
                try:
                    value = int(value)
                except (TypeError, ValueError) as e:
                    raise ValidationError(f"Published year must be a number, got {value!r}.") from e
            elif name == "isbn":
                value = (value or "").strip()
            else:
                value = value.strip()
            normalized[name] = value

        for name, value in normalized.items():
            setattr(book, name, value)
        return book

    def remove(self, book_id: str) -> Book:
        book = self.get(book_id)
        del self._books[book_id]
        return book

    # ------------------------- Queries ------------------------- #
    def find(self, query: str = "", category: Optional[str] = None) -> Selection[Book]:
        """Books whose title or author contains ``query`` (case-insensitive)
        or whose ISBN contains it literally, optionally limited to one
        category (exact match)."""
        needle = (query or "").strip()
        lowered = needle.lower()

        def matches(book: Book) -> bool:
            if category and book.category != category:
                return False
            if not needle:
                return True
            return lowered in book.title.lower() or lowered in book.author.lower() or needle in book.isbn

        return Selection(lambda: list(self._books.values()), matches)

    def with_status(self, status: BookStatus) -> Selection[Book]:
        return Selection(lambda: list(self._books.values()), lambda book: book.status is status)

    def categories(self) -> List[str]:
        return sorted({book.category for book in self._books.values()})
