"""Sample collection loaded into new sessions when ``SEED_DEMO_DATA`` is on."""
from datetime import datetime, timezone

DEFAULT_CATEGORIES = [
    "Fiction", "Non-Fiction", "Science", "History",
    "Biography", "Technology", "Art", "Literature",
]

DEMO_BOOKS = [
    {"title": "The Great Gatsby", "author": "F. Scott Fitzgerald", "category": "Literature",
     "isbn": "978-0-7432-7356-5", "published_year": 1925},
    {"title": "To Kill a Mockingbird", "author": "Harper Lee", "category": "Literature",
     "isbn": "978-0-06-112008-4", "published_year": 1960},
    {"title": "1984", "author": "George Orwell", "category": "Fiction",
     "isbn": "978-0-452-28423-4", "published_year": 1949},
    {"title": "Pride and Prejudice", "author": "Jane Austen", "category": "Literature",
     "isbn": "978-0-14-143951-8", "published_year": 1813},
    {"title": "The Catcher in the Rye", "author": "J.D. Salinger", "category": "Literature",
     "isbn": "978-0-316-76948-0", "published_year": 1951},
]

# (index into DEMO_BOOKS, student name, student id, borrow date)
DEMO_LOANS = [
    (1, "Alice Johnson", "STU001", datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)),
    (4, "Bob Smith", "STU002", datetime(2024, 1, 10, 14, 30, tzinfo=timezone.utc)),
]


def seed_demo_data(library) -> None:
    books = [library.create_book(**fields) for fields in DEMO_BOOKS]
    for index, student_name, student_id, borrowed_at in DEMO_LOANS:
        library.borrow(books[index].id, student_name, student_id, now=borrowed_at)
