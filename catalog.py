# catalog.py
"""Book and genre data access.

Every read goes through ``Model.active()`` so soft-deleted rows stay hidden.
The order engine only uses ``find_book_by_id``, ``stock_of`` and
``decrement_stock``; the rest backs the catalog management endpoints.
"""
import logging
from decimal import Decimal, InvalidOperation

from sqlalchemy import select, update

from core import db, Book, Genre
from errors import AlreadyExists, InvalidRequest, NotFound

logger = logging.getLogger(__name__)

BOOK_REQUIRED = ("title", "writer", "publisher", "price", "stockQuantity", "genreId")
BOOK_UPDATABLE = ("description", "price", "stockQuantity")


def _is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _to_price(value):
    if not _is_number(value):
        raise InvalidRequest("Price must be a number.")
    try:
        price = Decimal(str(value))
    except InvalidOperation:
        raise InvalidRequest("Price must be a number.")
    if price < 0:
        raise InvalidRequest("Price must not be negative.")
    return price


def _to_stock(value):
    if not _is_int(value) or value < 0:
        raise InvalidRequest("Stock quantity must be a non-negative integer.")
    return value


def _to_description(value):
    if value is not None and not isinstance(value, str):
        raise InvalidRequest("Description must be a string.")
    return value


# --- Books ---
def find_book_by_id(book_id):
    return Book.active().filter_by(id=book_id).first()


def get_book(book_id):
    book = find_book_by_id(book_id)
    if book is None:
        raise NotFound(f"Book with ID {book_id} not found or has been deleted.", bookId=book_id)
    return book


def stock_of(book_id):
    return db.session.scalar(select(Book.stock_quantity).where(Book.id == book_id))


def decrement_stock(book_id, amount):
    """Take ``amount`` off an active book's stock in one conditional UPDATE.

    Returns False, changing nothing, when the row is gone or holds less than
    ``amount``. The check and the write are a single statement, so two
    transactions can never both draw down the same units.
    """
    result = db.session.execute(
        update(Book)
        .where(
            Book.id == book_id,
            Book.active_clause(),
            Book.stock_quantity >= amount,
        )
        .values(stock_quantity=Book.stock_quantity - amount)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def list_books(genre_id=None):
    query = Book.active()
    if genre_id is not None:
        get_genre(genre_id)
        query = query.filter_by(genre_id=genre_id)
    return query.order_by(Book.title).all()


def count_books(genre_id=None):
    query = Book.active()
    if genre_id is not None:
        query = query.filter_by(genre_id=genre_id)
    return query.count()


def create_book(data):
    missing = [key for key in BOOK_REQUIRED if data.get(key) in (None, "")]
    if missing:
        raise InvalidRequest(
            "Required fields (title, writer, publisher, price, stockQuantity, genreId) must be provided.",
            missing=missing,
        )
    if not isinstance(data["genreId"], str):
        raise InvalidRequest("genreId must be a string.")
    year = data.get("publicationYear")
    if year is not None and not _is_int(year):
        raise InvalidRequest("Invalid data type for publicationYear (must be number).")

    title = str(data["title"]).strip()
    if not title:
        raise InvalidRequest("Title must not be empty.")
    if Book.query.filter_by(title=title).first():
        raise AlreadyExists(f"A book with the title '{title}' already exists.")
    genre = get_genre(data["genreId"])

    book = Book(
        title=title,
        writer=str(data["writer"]).strip(),
        publisher=str(data["publisher"]).strip(),
        publication_year=year,
        description=_to_description(data.get("description")),
        price=_to_price(data["price"]),
        stock_quantity=_to_stock(data["stockQuantity"]),
        genre=genre,
    )
    db.session.add(book)
    db.session.commit()
    logger.info("Book created: %s (%s)", book.id, book.title)
    return book


def update_book(book_id, data):
    changes = {key: data[key] for key in BOOK_UPDATABLE if key in data}
    if not changes:
        raise InvalidRequest(
            "No valid fields provided for update (allowed: description, price, stockQuantity)."
        )
    # Validate everything before touching the row.
    values = {}
    if "price" in changes:
        values["price"] = _to_price(changes["price"])
    if "stockQuantity" in changes:
        values["stock_quantity"] = _to_stock(changes["stockQuantity"])
    if "description" in changes:
        values["description"] = _to_description(changes["description"])
    book = get_book(book_id)
    for column, value in values.items():
        setattr(book, column, value)
    db.session.commit()
    return book


def delete_book(book_id):
    book = get_book(book_id)
    book.mark_deleted()
    db.session.commit()
    logger.info("Book soft-deleted: %s", book_id)


# --- Genres ---
def list_genres():
    return Genre.active().order_by(Genre.name).all()


def get_genre(genre_id):
    genre = Genre.active().filter_by(id=genre_id).first()
    if genre is None:
        raise NotFound(f"Genre with ID {genre_id} not found or has been deleted.", genreId=genre_id)
    return genre


def _genre_name(data):
    name = data.get("name")
    if not name or not isinstance(name, str) or not name.strip():
        raise InvalidRequest("Genre name is required and must be a string.")
    return name.strip()


def create_genre(data):
    name = _genre_name(data)
    if Genre.query.filter_by(name=name).first():
        raise AlreadyExists(f"Genre with name '{name}' already exists.")
    genre = Genre(name=name)
    db.session.add(genre)
    db.session.commit()
    return genre


def rename_genre(genre_id, data):
    name = _genre_name(data)
    genre = get_genre(genre_id)
    if name != genre.name and Genre.query.filter_by(name=name).first():
        raise AlreadyExists(f"Genre name '{name}' already exists.")
    genre.name = name
    db.session.commit()
    return genre


def delete_genre(genre_id):
    genre = get_genre(genre_id)
    related = count_books(genre_id)
    if related > 0:
        raise InvalidRequest(
            f"Cannot delete genre with ID {genre_id} because it still has {related} associated book(s).",
            genreId=genre_id,
            activeBooks=related,
        )
    genre.mark_deleted()
    db.session.commit()
    logger.info("Genre soft-deleted: %s", genre_id)
