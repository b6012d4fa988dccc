"""HTTP tests for the shop and admin blueprints."""
import catalog


def test_health_check(client):
    res = client.get("/health-check")
    assert res.status_code == 200
    body = res.get_json()
    assert body["success"] is True
    assert "timestamp" in body["data"]


def test_config_defaults_are_loaded(app):
    assert app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] is False
    assert app.config["LOG_LEVEL"]
    assert app.config["SEED_DEMO_DATA"] is False


def test_unknown_route_is_json_404(client):
    res = client.get("/nowhere")
    assert res.status_code == 404
    assert res.get_json()["success"] is False


def test_list_and_get_books(client, shop):
    res = client.get("/books")
    assert res.status_code == 200
    books = res.get_json()["data"]
    assert [b["title"] for b in books] == ["Clean Code", "Refactoring", "SQL Antipatterns"]
    assert books[0]["price"] == 30.0
    assert books[0]["genre"] == {"name": "Programming"}

    res = client.get(f"/books/{shop.sql_id}")
    assert res.get_json()["data"]["stockQuantity"] == 3

    res = client.get(f"/books/genre/{shop.databases_id}")
    assert [b["title"] for b in res.get_json()["data"]] == ["SQL Antipatterns"]


def test_missing_book_is_404(client, shop):
    res = client.get("/books/no-such-book")
    assert res.status_code == 404
    body = res.get_json()
    assert body["success"] is False
    assert body["error"]["kind"] == "NotFound"
    assert body["data"] is None


def test_create_transaction(client, shop):
    res = client.post("/transactions", json={
        "userId": shop.user_id,
        "items": [
            {"bookId": shop.clean_code_id, "quantity": 2},
            {"bookId": shop.sql_id, "quantity": 1},
        ],
    })

    assert res.status_code == 201
    data = res.get_json()["data"]
    assert data["totalQuantity"] == 3
    assert data["totalPrice"] == 85.5
    assert catalog.stock_of(shop.clean_code_id) == 8

    res = client.get(f"/transactions/{data['orderId']}")
    assert res.status_code == 200
    detail = res.get_json()["data"]
    assert detail["totalPrice"] == 85.5
    assert detail["user"] == {"username": "alice"}
    assert [i["bookTitle"] for i in detail["items"]] == ["Clean Code", "SQL Antipatterns"]


def test_create_transaction_with_empty_items(client, shop):
    res = client.post("/transactions", json={"userId": shop.user_id, "items": []})
    assert res.status_code == 400
    assert res.get_json()["error"]["kind"] == "InvalidRequest"


def test_create_transaction_without_json_body(client, shop):
    res = client.post("/transactions", data="userId=1", content_type="application/x-www-form-urlencoded")
    assert res.status_code == 400
    assert res.get_json()["error"]["kind"] == "InvalidRequest"


def test_create_transaction_with_too_many_copies(client, shop):
    res = client.post("/transactions", json={
        "userId": shop.user_id,
        "items": [{"bookId": shop.sql_id, "quantity": 9}],
    })

    assert res.status_code == 400
    error = res.get_json()["error"]
    assert error == {"kind": "InsufficientStock", "bookId": shop.sql_id, "requested": 9, "available": 3}
    assert catalog.stock_of(shop.sql_id) == 3


def test_list_transactions_and_statistics(client, shop):
    client.post("/transactions", json={
        "userId": shop.user_id,
        "items": [{"bookId": shop.refactoring_id, "quantity": 5}],
    })
    client.post("/transactions", json={
        "userId": shop.user_id,
        "items": [{"bookId": shop.sql_id, "quantity": 2}],
    })

    listed = client.get("/transactions").get_json()["data"]
    assert len(listed) == 2

    stats = client.get("/transactions/statistics").get_json()["data"]
    assert stats["totalTransactions"] == 2
    assert stats["averageItemsPerOrder"] == 3.5
    assert stats["mostSoldGenre"] == {"name": "Programming", "totalItemsSold": 5}
    assert stats["leastSoldGenre"] == {"name": "Databases", "totalItemsSold": 2}


def test_unknown_transaction_is_404(client, shop):
    res = client.get("/transactions/no-such-order")
    assert res.status_code == 404


def test_book_management(client, shop):
    res = client.post("/books", json={
        "title": "Effective Python",
        "writer": "Brett Slatkin",
        "publisher": "Addison-Wesley",
        "price": 39.99,
        "stockQuantity": 7,
        "genreId": shop.programming_id,
    })
    assert res.status_code == 201
    book_id = res.get_json()["data"]["id"]

    res = client.post("/books", json={
        "title": "Effective Python",
        "writer": "Someone Else",
        "publisher": "Elsewhere",
        "price": 10,
        "stockQuantity": 1,
        "genreId": shop.programming_id,
    })
    assert res.status_code == 409

    res = client.patch(f"/books/{book_id}", json={"stockQuantity": 12})
    assert res.status_code == 200
    assert res.get_json()["data"]["stockQuantity"] == 12

    res = client.delete(f"/books/{book_id}")
    assert res.status_code == 200
    assert client.get(f"/books/{book_id}").status_code == 404


def test_create_book_with_non_text_description_is_400(client, shop):
    res = client.post("/books", json={
        "title": "Effective Python",
        "writer": "Brett Slatkin",
        "publisher": "Addison-Wesley",
        "price": 39.99,
        "stockQuantity": 7,
        "genreId": shop.programming_id,
        "description": {"a": 1},
    })
    assert res.status_code == 400
    assert res.get_json()["error"]["kind"] == "InvalidRequest"

    res = client.patch(f"/books/{shop.sql_id}", json={"price": 1, "description": ["x"]})
    assert res.status_code == 400
    assert client.get(f"/books/{shop.sql_id}").get_json()["data"]["price"] == 25.5


def test_genre_management(client, shop):
    res = client.post("/genre", json={"name": "Security"})
    assert res.status_code == 201
    genre_id = res.get_json()["data"]["id"]

    res = client.patch(f"/genre/{genre_id}", json={"name": "InfoSec"})
    assert res.get_json()["data"]["name"] == "InfoSec"

    names = [g["name"] for g in client.get("/genre").get_json()["data"]]
    assert names == ["Databases", "InfoSec", "Programming"]

    assert client.delete(f"/genre/{shop.databases_id}").status_code == 400
    assert client.delete(f"/genre/{genre_id}").status_code == 200
    assert client.get(f"/genre/{genre_id}").status_code == 404
