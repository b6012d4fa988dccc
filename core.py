# core.py
import enum
import logging
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from flask import Flask, jsonify, request
from flask.json.provider import DefaultJSONProvider
from flask_sqlalchemy import SQLAlchemy
from werkzeug.exceptions import HTTPException
from werkzeug.security import generate_password_hash

from config import Config
from errors import InvalidRequest, ShopError

logger = logging.getLogger(__name__)

# --- DB handle (imported by blueprints) ---
db = SQLAlchemy()


def _new_id():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


# --- Soft delete ---
class Lifecycle(enum.Enum):
    ACTIVE = "Active"
    DELETED = "Deleted"


class SoftDeleteMixin:
    """Catalog rows are never removed, only stamped with ``deleted_at``."""

    deleted_at = db.Column(db.DateTime, nullable=True)

    @property
    def lifecycle(self):
        return Lifecycle.ACTIVE if self.deleted_at is None else Lifecycle.DELETED

    def mark_deleted(self):
        self.deleted_at = _utcnow()

    @classmethod
    def active_clause(cls):
        return cls.deleted_at.is_(None)

    @classmethod
    def active(cls):
        return cls.query.filter(cls.active_clause())


# --- Models ---
class User(db.Model):
    __tablename__ = "users"
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    username = db.Column(db.String(80), unique=True, nullable=False)
    email = db.Column(db.String(200), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)


class Genre(SoftDeleteMixin, db.Model):
    __tablename__ = "genres"
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    name = db.Column(db.String(100), unique=True, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    books = db.relationship("Book", back_populates="genre")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


class Book(SoftDeleteMixin, db.Model):
    __tablename__ = "books"
    __table_args__ = (
        db.CheckConstraint("price >= 0", name="books_price_nonneg"),
        db.CheckConstraint("stock_quantity >= 0", name="books_stock_nonneg"),
    )
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    title = db.Column(db.String(200), unique=True, nullable=False)
    writer = db.Column(db.String(120), nullable=False)
    publisher = db.Column(db.String(120), nullable=False)
    publication_year = db.Column(db.Integer, nullable=True)
    description = db.Column(db.Text, nullable=True)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    genre_id = db.Column(db.String(36), db.ForeignKey("genres.id"), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    genre = db.relationship("Genre", back_populates="books")

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "writer": self.writer,
            "publisher": self.publisher,
            "publicationYear": self.publication_year,
            "description": self.description,
            "price": self.price,
            "stockQuantity": self.stock_quantity,
            "genreId": self.genre_id,
            "genre": {"name": self.genre.name},
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


class Order(db.Model):
    __tablename__ = "orders"
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    user = db.relationship("User")
    items = db.relationship("OrderItem", back_populates="order", order_by="OrderItem.position")


class OrderItem(db.Model):
    # No unit price here: order totals always use the book's current price.
    __tablename__ = "order_items"
    __table_args__ = (db.CheckConstraint("quantity > 0", name="order_items_quantity_pos"),)
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    order_id = db.Column(db.String(36), db.ForeignKey("orders.id"), nullable=False)
    book_id = db.Column(db.String(36), db.ForeignKey("books.id"), nullable=False)
    position = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    order = db.relationship("Order", back_populates="items")
    book = db.relationship("Book")


# --- JSON ---
class ShopJSONProvider(DefaultJSONProvider):
    """Money as JSON numbers, timestamps as ISO-8601."""

    @staticmethod
    def default(o):
        if isinstance(o, Decimal):
            return float(o)
        if isinstance(o, (date, datetime)):
            return o.isoformat()
        return DefaultJSONProvider.default(o)


def ok(data=None, message="", status=200):
    return jsonify({"success": True, "message": message, "data": data}), status


def json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidRequest("Request body must be a JSON object.")
    return data


def register_error_handlers(app):
    @app.errorhandler(ShopError)
    def handle_shop_error(err):
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(err):
        return jsonify({"success": False, "message": err.description, "data": None}), err.code

    @app.errorhandler(Exception)
    def handle_unexpected(err):
        logger.exception("Unhandled error")
        db.session.rollback()
        return jsonify({"success": False, "message": "Internal server error", "data": None}), 500


def seed_if_empty():
    """Seed demo genres, books and a demo user on first run."""
    if Genre.query.count() > 0:
        return
    genres = {name: Genre(name=name) for name in ("Programming", "Databases", "Networking")}
    db.session.add_all(genres.values())
    books = [
        # Programming
        {"title": "Clean Code", "writer": "Robert C. Martin", "publisher": "Prentice Hall", "publication_year": 2008, "price": Decimal("32.50"), "stock_quantity": 12, "genre": genres["Programming"]},
        {"title": "Fluent Python", "writer": "Luciano Ramalho", "publisher": "O'Reilly", "publication_year": 2022, "price": Decimal("54.99"), "stock_quantity": 8, "genre": genres["Programming"]},
        # Databases
        {"title": "Designing Data-Intensive Applications", "writer": "Martin Kleppmann", "publisher": "O'Reilly", "publication_year": 2017, "price": Decimal("45.00"), "stock_quantity": 10, "genre": genres["Databases"]},
        {"title": "SQL Performance Explained", "writer": "Markus Winand", "publisher": "Winand", "publication_year": 2012, "price": Decimal("29.95"), "stock_quantity": 5, "genre": genres["Databases"]},
        # Networking
        {"title": "Computer Networking: A Top-Down Approach", "writer": "James Kurose", "publisher": "Pearson", "publication_year": 2020, "price": Decimal("89.00"), "stock_quantity": 4, "genre": genres["Networking"]},
    ]
    for b in books:
        db.session.add(Book(**b))
    demo = User(username="demo", email="demo@example.com")
    demo.set_password("demo1234")
    db.session.add(demo)
    db.session.commit()
    logger.info("Seeded %d genres, %d books and the demo user", len(genres), len(books))


def create_app(overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    app.json = ShopJSONProvider(app)

    db.init_app(app)

    # Register blueprints (import inside to avoid circular imports)
    from shop import shop_bp
    from admin import admin_bp
    app.register_blueprint(shop_bp)
    app.register_blueprint(admin_bp)
    register_error_handlers(app)

    # Ensure tables exist at startup
    with app.app_context():
        db.create_all()
        if app.config["SEED_DEMO_DATA"]:
            seed_if_empty()

    return app
