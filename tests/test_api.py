import pytest
from fastapi.testclient import TestClient

from api import create_app
from database import DocumentStore

ADMIN = ("admin", "admin")


@pytest.fixture
def client(tmp_path):
    store = DocumentStore(data_dir=str(tmp_path / "api_data"), admin_password="admin")
    with TestClient(create_app(store)) as test_client:
        yield test_client


@pytest.fixture
def alice(client):
    response = client.post("/auth/register", json={"user_name": "alice", "password": "wonderland"})
    assert response.status_code == 201
    return ("alice", "wonderland")


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["total_books"] == 2
    assert response.json()["timestamp"].endswith("+00:00")


def test_get_books_sorted_and_filtered(client):
    response = client.get("/books")
    assert response.status_code == 200
    assert [b["title"] for b in response.json()] == ["Cien años de soledad", "El Quijote"]

    response = client.get("/books", params={"search": "cervantes"})
    assert [b["id"] for b in response.json()] == [1]


def test_get_book_not_found(client):
    assert client.get("/books/99").status_code == 404


def test_add_book_requires_admin(client, alice):
    payload = {"title": "Dune", "author": "Frank Herbert", "category": "Science Fiction"}

    assert client.post("/books", json=payload).status_code == 401
    assert client.post("/books", json=payload, auth=alice).status_code == 403

    response = client.post("/books", json=payload, auth=ADMIN)
    assert response.status_code == 201
    assert response.json()["id"] == 3
    assert client.get("/books/3").json()["title"] == "Dune"


def test_add_book_rejects_blank_title(client):
    response = client.post("/books", json={"title": "  ", "author": "Someone"}, auth=ADMIN)
    assert response.status_code == 422


def test_categories(client):
    assert client.get("/categories").json() == ["Clásico", "Realismo mágico"]


def test_register_duplicate_returns_conflict(client, alice):
    response = client.post("/auth/register", json={"user_name": "ALICE", "password": "another"})
    assert response.status_code == 409


def test_register_rejects_invalid_user_name(client):
    response = client.post("/auth/register", json={"user_name": "a b", "password": "password"})
    assert response.status_code == 422


def test_login_failures_are_indistinguishable(client, alice):
    unknown = client.post("/auth/login", json={"user_name": "nobody", "password": "wonderland"})
    wrong = client.post("/auth/login", json={"user_name": "alice", "password": "nope"})
    assert unknown.status_code == wrong.status_code == 401
    assert unknown.json() == wrong.json()


def test_login_success(client, alice):
    response = client.post("/auth/login", json={"user_name": "Alice", "password": "wonderland"})
    assert response.status_code == 200
    assert response.json() == {"id": 2, "user_name": "alice", "is_admin": False}


def test_review_lifecycle(client, alice):
    response = client.post("/books/1/reviews", json={"rating": 4, "comment": "Classic"}, auth=alice)
    assert response.status_code == 201
    review = response.json()
    assert review["user_name"] == "alice"
    assert review["book_id"] == 1

    listed = client.get("/books/1/reviews").json()
    assert [r["id"] for r in listed] == [review["id"]]

    response = client.put(f"/reviews/{review['id']}", json={"rating": 5, "comment": "Even better"}, auth=alice)
    assert response.status_code == 200
    updated = response.json()
    assert updated["rating"] == 5
    assert updated["created_at"] == review["created_at"]

    assert client.get("/books/1/rating").json() == {"book_id": 1, "average_rating": 5.0, "review_count": 1}
    assert [r["id"] for r in client.get("/users/ALICE/reviews").json()] == [review["id"]]

    assert client.delete(f"/reviews/{review['id']}", auth=alice).status_code == 200
    assert client.get(f"/reviews/{review['id']}").status_code == 404
    assert client.delete(f"/reviews/{review['id']}", auth=alice).status_code == 404


def test_review_rating_out_of_range(client, alice):
    response = client.post("/books/1/reviews", json={"rating": 6}, auth=alice)
    assert response.status_code == 422


def test_review_on_unknown_book(client, alice):
    response = client.post("/books/42/reviews", json={"rating": 3}, auth=alice)
    assert response.status_code == 404


def test_only_owner_or_admin_can_modify_review(client, alice):
    client.post("/auth/register", json={"user_name": "bob", "password": "builder"})
    review = client.post("/books/2/reviews", json={"rating": 2}, auth=alice).json()

    response = client.put(f"/reviews/{review['id']}", json={"rating": 1}, auth=("bob", "builder"))
    assert response.status_code == 403
    assert client.delete(f"/reviews/{review['id']}", auth=("bob", "builder")).status_code == 403

    assert client.delete(f"/reviews/{review['id']}", auth=ADMIN).status_code == 200


def test_malformed_store_returns_server_error(client, tmp_path):
    (tmp_path / "api_data" / "books.json").write_text("[]", encoding="utf-8")
    response = client.get("/books")
    assert response.status_code == 500
    assert response.json() == {"detail": "Catalog data is unreadable."}


def test_stats(client):
    assert client.get("/stats").json() == {
        "total_books": 2,
        "unique_authors": 2,
        "total_categories": 2,
        "total_reviews": 0,
    }
