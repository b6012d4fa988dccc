"""Pytest fixtures: a fresh in-memory shop for every test."""
from decimal import Decimal
from types import SimpleNamespace

import pytest

from core import create_app, db, Book, Genre, User

TEST_CONFIG = {
    "TESTING": True,
    "SQLALCHEMY_DATABASE_URI": "sqlite://",
    "SEED_DEMO_DATA": False,
    "LOG_LEVEL": "WARNING",
}


@pytest.fixture
def make_app():
    def factory(**overrides):
        return create_app({**TEST_CONFIG, **overrides})
    return factory


@pytest.fixture
def app(make_app):
    app = make_app()
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def add_user(username="alice"):
    user = User(username=username, email=f"{username}@example.com")
    user.set_password("secret123")
    db.session.add(user)
    return user


@pytest.fixture
def shop(app):
    programming = Genre(name="Programming")
    databases = Genre(name="Databases")
    db.session.add_all([programming, databases])

    clean_code = Book(title="Clean Code", writer="Robert C. Martin", publisher="Prentice Hall",
                      price=Decimal("30.00"), stock_quantity=10, genre=programming)
    refactoring = Book(title="Refactoring", writer="Martin Fowler", publisher="Addison-Wesley",
                       price=Decimal("40.00"), stock_quantity=5, genre=programming)
    sql = Book(title="SQL Antipatterns", writer="Bill Karwin", publisher="Pragmatic Bookshelf",
               price=Decimal("25.50"), stock_quantity=3, genre=databases)
    db.session.add_all([clean_code, refactoring, sql])

    user = add_user()
    db.session.commit()

    return SimpleNamespace(
        user_id=user.id,
        programming_id=programming.id,
        databases_id=databases.id,
        clean_code_id=clean_code.id,
        refactoring_id=refactoring.id,
        sql_id=sql.id,
    )
