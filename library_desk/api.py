import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from library_desk.book import Book
from library_desk.config import settings
from library_desk.errors import ConflictError, LibraryError, NotFoundError, ValidationError
from library_desk.library import Library

logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
logger = logging.getLogger(__name__)

# One session per server process; state is lost when the server stops.
library = Library.from_settings()

app = FastAPI(title=f"{settings.app_name} API", version=settings.app_version, debug=settings.debug)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_STATUS = {
    ValidationError: 400,
    NotFoundError: 404,
    ConflictError: 409,
}


@app.exception_handler(LibraryError)
async def library_error_handler(request: Request, exc: LibraryError):
    status_code = ERROR_STATUS.get(type(exc), 400)
    logger.info(f"{request.method} {request.url.path} -> {status_code}: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


# --- Models ---
class BookModel(BaseModel):
    id: str
    title: str
    author: str
    category: str
    isbn: str = ""
    published_year: int
    status: str
    status_label: str


class BookCreateModel(BaseModel):
    title: str = Field(default="", description="Required")
    author: str = Field(default="", description="Required")
    category: str = Field(default="", description="Required")
    isbn: Optional[str] = None
    published_year: Optional[int] = Field(default=None, description="Defaults to the current year")


class UpdateBookModel(BaseModel):
    title: Optional[str] = None
    author: Optional[str] = None
    category: Optional[str] = None
    isbn: Optional[str] = None
    published_year: Optional[int] = None


class BorrowRequest(BaseModel):
    book_id: str = ""
    student_name: str = ""
    student_id: str = ""


class LoanModel(BaseModel):
    """Borrow record with its book and fee status, as shown on the return desk."""
    id: str
    book_id: str
    book_title: Optional[str] = None
    book_author: Optional[str] = None
    student_name: str
    student_id: str
    borrow_date: str
    due_date: str
    return_date: Optional[str] = None
    status: str
    is_overdue: bool
    days_overdue: int
    late_fee: float


class StatsModel(BaseModel):
    total_books: int
    available_books: int
    borrowed_books: int
    overdue_books: int
    outstanding_fees: float
    recent_borrowings: List[LoanModel]


# --- Helpers ---
def _book_model(book: Book) -> BookModel:
    return BookModel(**book.to_dict(), status_label=book.status.label)


def _loan_model(record, now: Optional[datetime] = None) -> LoanModel:
    return LoanModel(**library.describe_loan(record, now))


# --- Health ---
@app.get("/health")
def health() -> Dict[str, Any]:
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "total_books": len(library.catalog),
        "open_loans": len(library.open_loans()),
    }


# --- Books ---
@app.get("/books", response_model=List[BookModel])
def list_books(
    q: Optional[str] = Query(None, description="Title, author or ISBN"),
    category: Optional[str] = Query(None, description="Exact category"),
):
    return [_book_model(book) for book in library.search_books(q or "", category)]


@app.get("/books/available", response_model=List[BookModel])
def list_available_books(q: Optional[str] = Query(None, description="Title or author")):
    return [_book_model(book) for book in library.available_books(q or "")]


@app.get("/books/{book_id}", response_model=BookModel)
def get_book(book_id: str):
    return _book_model(library.get_book(book_id))


@app.post("/books", response_model=BookModel, status_code=201)
def create_book(payload: BookCreateModel):
    book = library.create_book(**payload.model_dump())
    return _book_model(book)


@app.put("/books/{book_id}", response_model=BookModel)
def update_book(book_id: str, payload: UpdateBookModel):
    fields = payload.model_dump(exclude_unset=True)
    if not fields:
        raise ValidationError("Provide at least one field to update.")
    return _book_model(library.update_book(book_id, **fields))


@app.delete("/books/{book_id}")
def delete_book(book_id: str):
    book = library.delete_book(book_id)
    return {"message": f"'{book.title}' deleted.", "id": book.id}


@app.get("/categories", response_model=List[str])
def list_categories():
    return library.categories()


# --- Loans ---
@app.get("/loans", response_model=List[LoanModel])
def list_open_loans(q: Optional[str] = Query(None, description="Student name or ID, book title or author")):
    now = library.clock()
    return [_loan_model(record, now) for record in library.search_open_loans(q or "")]


@app.get("/loans/overdue", response_model=List[LoanModel])
def list_overdue_loans():
    now = library.clock()
    return [_loan_model(record, now) for record in library.overdue_loans(now)]


@app.post("/loans", response_model=LoanModel, status_code=201)
def borrow_book(payload: BorrowRequest):
    record = library.borrow(payload.book_id, payload.student_name, payload.student_id)
    return _loan_model(record)


@app.post("/loans/{record_id}/return", response_model=LoanModel)
def return_book(record_id: str):
    record = library.return_book(record_id)
    return _loan_model(record)


# --- Dashboard ---
@app.get("/stats", response_model=StatsModel)
def get_stats():
    now = library.clock()
    stats = library.get_statistics(now)
    stats["recent_borrowings"] = [_loan_model(record, now) for record in stats["recent_borrowings"]]
    return StatsModel(**stats)
