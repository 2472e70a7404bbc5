from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

import library_desk.api as api_module

D = datetime(2024, 1, 10, 14, 30, tzinfo=timezone.utc)


@pytest.fixture
def client(lib, monkeypatch):
    # Point the API at the per-test session
    monkeypatch.setattr(api_module, "library", lib)
    return TestClient(api_module.app)


def test_health(client, gatsby):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["total_books"] == 1


def test_get_books(client, lib, gatsby):
    lib.create_book("1984", "George Orwell", "Fiction", isbn="978-0-452-28423-4")

    response = client.get("/books")
    assert response.status_code == 200
    assert [b["title"] for b in response.json()] == ["The Great Gatsby", "1984"]
    assert response.json()[0]["status_label"] == "Available"

    assert [b["id"] for b in client.get("/books", params={"q": "0-452"}).json()] == ["2"]
    assert [b["id"] for b in client.get("/books", params={"category": "Literature"}).json()] == ["1"]


def test_create_book(client, lib):
    response = client.post("/books", json={"title": "Dune", "author": "Frank Herbert",
                                           "category": "Fiction", "published_year": 1965})
    assert response.status_code == 201
    body = response.json()
    assert body["id"] == "1"
    assert body["status"] == "available"
    assert lib.get_book("1").title == "Dune"


def test_create_book_missing_fields(client, lib):
    response = client.post("/books", json={"title": "Dune"})
    assert response.status_code == 400
    assert "author" in response.json()["detail"]
    assert lib.list_books() == []


def test_get_book_not_found(client):
    response = client.get("/books/42")
    assert response.status_code == 404
    assert response.json()["detail"] == "Book 42 not found."


def test_update_book(client, gatsby):
    response = client.put(f"/books/{gatsby.id}", json={"category": "Fiction"})
    assert response.status_code == 200
    assert response.json()["category"] == "Fiction"
    assert response.json()["title"] == "The Great Gatsby"

    assert client.put(f"/books/{gatsby.id}", json={}).status_code == 400
    assert client.put("/books/42", json={"title": "x"}).status_code == 404


def test_delete_book(client, lib, gatsby):
    lib.borrow(gatsby.id, "Alice", "S1")
    assert client.delete(f"/books/{gatsby.id}").status_code == 409

    lib.return_book(lib.open_loans()[0].id)
    response = client.delete(f"/books/{gatsby.id}")
    assert response.status_code == 200
    assert lib.find_book(gatsby.id) is None


def test_borrow_and_return_flow(client, lib, gatsby):
    response = client.post("/loans", json={"book_id": gatsby.id, "student_name": "Alice", "student_id": "S1"})
    assert response.status_code == 201
    loan = response.json()
    assert loan["book_title"] == "The Great Gatsby"
    assert loan["due_date"].startswith("2024-02-14")
    assert loan["is_overdue"] is False
    assert client.get("/books/available").json() == []

    again = client.post("/loans", json={"book_id": gatsby.id, "student_name": "Bob", "student_id": "S2"})
    assert again.status_code == 409

    response = client.post(f"/loans/{loan['id']}/return")
    assert response.status_code == 200
    assert response.json()["status"] == "closed"
    assert client.get(f"/books/{gatsby.id}").json()["status"] == "available"

    assert client.post(f"/loans/{loan['id']}/return").status_code == 409
    assert client.post("/loans/99/return").status_code == 404


def test_borrow_validation(client, gatsby):
    response = client.post("/loans", json={"book_id": gatsby.id, "student_name": "", "student_id": "S1"})
    assert response.status_code == 400
    assert client.get(f"/books/{gatsby.id}").json()["status"] == "available"


def test_open_and_overdue_loans(client, lib, gatsby):
    other = lib.create_book("1984", "George Orwell", "Fiction")
    lib.borrow(gatsby.id, "Alice Johnson", "STU001", now=D)
    lib.borrow(other.id, "Bob Smith", "STU002")

    loans = client.get("/loans").json()
    assert len(loans) == 2
    overdue = [loan for loan in loans if loan["is_overdue"]]
    assert overdue[0]["days_overdue"] == 7
    assert overdue[0]["late_fee"] == 3.5

    assert [loan["student_id"] for loan in client.get("/loans", params={"q": "orwell"}).json()] == ["STU002"]
    assert [loan["book_id"] for loan in client.get("/loans/overdue").json()] == [gatsby.id]


def test_stats(client, lib, gatsby):
    lib.create_book("1984", "George Orwell", "Fiction")
    lib.borrow(gatsby.id, "Alice", "S1", now=D)

    stats = client.get("/stats").json()
    assert stats["total_books"] == 2
    assert stats["available_books"] == 1
    assert stats["borrowed_books"] == 1
    assert stats["overdue_books"] == 1
    assert stats["outstanding_fees"] == 3.5
    assert stats["recent_borrowings"][0]["student_name"] == "Alice"


def test_categories(client):
    assert "Technology" in client.get("/categories").json()
