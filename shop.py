# shop.py
from datetime import datetime, timezone

from flask import Blueprint

import catalog
import orders
from core import json_body, ok

shop_bp = Blueprint("shop", __name__)


@shop_bp.route("/")
def index():
    return ok(message="Welcome to the IT Literature Shop API!")


@shop_bp.route("/health-check")
def health_check():
    return ok({"timestamp": datetime.now(timezone.utc)}, "API is healthy and running!")


# --- Routes: Catalog ---
@shop_bp.route("/books")
def books():
    return ok([b.to_dict() for b in catalog.list_books()], "Get all books successfully")


@shop_bp.route("/books/<book_id>")
def book_detail(book_id):
    return ok(catalog.get_book(book_id).to_dict(), "Get book detail successfully")


@shop_bp.route("/books/genre/<genre_id>")
def books_by_genre(genre_id):
    books = catalog.list_books(genre_id=genre_id)
    return ok([b.to_dict() for b in books], "Get books by genre successfully")


@shop_bp.route("/genre")
def genres():
    return ok([g.to_dict() for g in catalog.list_genres()], "Get all genre successfully")


@shop_bp.route("/genre/<genre_id>")
def genre_detail(genre_id):
    return ok(catalog.get_genre(genre_id).to_dict(), "Get genre detail successfully")


# --- Routes: Transactions ---
@shop_bp.route("/transactions", methods=["POST"])
def create_transaction():
    body = json_body()
    receipt = orders.create_order(body.get("userId"), body.get("items"))
    return ok(receipt, "Transaction created successfully", 201)


@shop_bp.route("/transactions")
def transactions():
    return ok(orders.list_orders(), "Get all transactions successfully")


@shop_bp.route("/transactions/statistics")
def transaction_statistics():
    return ok(orders.get_sales_statistics(), "Get transactions statistics successfully")


@shop_bp.route("/transactions/<order_id>")
def transaction_detail(order_id):
    return ok(orders.get_order_detail(order_id), "Get transaction detail successfully")
