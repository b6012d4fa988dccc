# admin.py
from flask import Blueprint

import catalog
from core import json_body, ok

admin_bp = Blueprint("admin", __name__)


# --- Books ---
@admin_bp.route("/books", methods=["POST"])
def book_new():
    book = catalog.create_book(json_body())
    return ok(book.to_dict(), "Book created successfully.", 201)


@admin_bp.route("/books/<book_id>", methods=["PATCH"])
def book_edit(book_id):
    book = catalog.update_book(book_id, json_body())
    return ok(book.to_dict(), "Book updated successfully.")


@admin_bp.route("/books/<book_id>", methods=["DELETE"])
def book_delete(book_id):
    catalog.delete_book(book_id)
    return ok(message="Book removed successfully")


# --- Genres ---
@admin_bp.route("/genre", methods=["POST"])
def genre_new():
    genre = catalog.create_genre(json_body())
    return ok(genre.to_dict(), "Genre created successfully.", 201)


@admin_bp.route("/genre/<genre_id>", methods=["PATCH"])
def genre_edit(genre_id):
    genre = catalog.rename_genre(genre_id, json_body())
    return ok(genre.to_dict(), "Genre updated successfully")


@admin_bp.route("/genre/<genre_id>", methods=["DELETE"])
def genre_delete(genre_id):
    catalog.delete_genre(genre_id)
    return ok(message="Genre removed successfully")
