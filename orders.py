# orders.py
"""Order placement, order detail and sales statistics.

Order totals are never stored: they are recomputed from each book's current
price whenever an order is read, so an order's totalPrice follows later price
changes.
"""
import logging
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import selectinload

import catalog
from core import db, Book, Genre, Order, OrderItem, User
from errors import (
    ConcurrencyConflict, InsufficientStock, InternalError, InvalidRequest, NotFound, ShopError
)

logger = logging.getLogger(__name__)


def _parse_items(user_id, items):
    if not user_id or not isinstance(user_id, str) or not isinstance(items, list) or not items:
        raise InvalidRequest("Invalid input: userId and a non-empty items array are required.")
    lines = []
    for item in items:
        if not isinstance(item, dict):
            raise InvalidRequest(f"Invalid item data: {item!r}")
        book_id = item.get("bookId")
        qty = item.get("quantity")
        if not book_id or not isinstance(book_id, str):
            raise InvalidRequest(f"Invalid item data: {item!r}")
        if not isinstance(qty, int) or isinstance(qty, bool) or qty < 1:
            raise InvalidRequest(f"Invalid item data: {item!r}")
        lines.append((book_id, qty))
    return lines


def _price_lines(lines):
    """Resolve each requested line against the catalog and price it.

    Every book is looked up before any stock is compared, so a missing book
    is reported ahead of a short one.
    """
    resolved = []
    for book_id, qty in lines:
        book = catalog.find_book_by_id(book_id)
        if book is None:
            raise NotFound(f"Book with id {book_id} not found", bookId=book_id)
        resolved.append((book, qty))

    priced = []
    subtotal = Decimal("0.00")
    for book, qty in resolved:
        if book.stock_quantity < qty:
            raise InsufficientStock(book.id, qty, book.stock_quantity, title=book.title)
        line_total = Decimal(str(book.price)) * qty
        subtotal += line_total
        priced.append({"book": book, "qty": qty, "line_total": line_total})
    return priced, subtotal


def create_order(user_id, items):
    """Place an order for ``items`` (``[{"bookId": ..., "quantity": ...}]``).

    Stock decrements, the order row and its item rows are committed together
    or not at all. Returns ``{"orderId", "totalQuantity", "totalPrice"}``.
    """
    try:
        lines = _parse_items(user_id, items)
        if db.session.get(User, user_id) is None:
            raise NotFound(f"User with id {user_id} not found", userId=user_id)
        priced, total_price = _price_lines(lines)

        for line in priced:
            book = line["book"]
            # The row may have been drawn down since it was priced.
            if not catalog.decrement_stock(book.id, line["qty"]):
                raise InsufficientStock(
                    book.id, line["qty"], catalog.stock_of(book.id), title=book.title
                )

        order = Order(user_id=user_id)
        db.session.add(order)
        db.session.flush()
        order_id = order.id
        for position, line in enumerate(priced):
            db.session.add(
                OrderItem(
                    order_id=order_id,
                    book_id=line["book"].id,
                    position=position,
                    quantity=line["qty"],
                )
            )
        db.session.commit()
    except ShopError as err:
        db.session.rollback()
        logger.warning("Order rejected for user %s: %s (%s)", user_id, err.message, err.kind)
        raise
    except OperationalError as exc:
        db.session.rollback()
        logger.warning("Order for user %s lost a write race: %s", user_id, exc)
        raise ConcurrencyConflict(
            "The order conflicted with a concurrent update, please try again."
        ) from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Order for user %s could not be saved", user_id)
        raise InternalError("Internal server error") from exc

    total_quantity = sum(line["qty"] for line in priced)
    logger.info(
        "Order %s created for user %s: %d item(s), total %s",
        order_id, user_id, total_quantity, total_price,
    )
    return {
        "orderId": order_id,
        "totalQuantity": total_quantity,
        "totalPrice": total_price,
    }


def _order_to_dict(order):
    items = []
    for item in order.items:
        items.append({
            "bookId": item.book_id,
            "bookTitle": item.book.title,
            "quantity": item.quantity,
            "subtotalPrice": Decimal(str(item.book.price)) * item.quantity,
        })
    return {
        "id": order.id,
        "items": items,
        "totalQuantity": sum(i["quantity"] for i in items),
        "totalPrice": sum((i["subtotalPrice"] for i in items), Decimal("0.00")),
        "user": {"username": order.user.username},
        "createdAt": order.created_at,
        "updatedAt": order.updated_at,
    }


def _with_lines(query):
    return query.options(
        selectinload(Order.user),
        selectinload(Order.items).selectinload(OrderItem.book),
    )


def get_order_detail(order_id):
    order = _with_lines(Order.query).filter_by(id=order_id).first()
    if order is None:
        raise NotFound("Transaction not found", orderId=order_id)
    return _order_to_dict(order)


def list_orders():
    orders = _with_lines(Order.query).order_by(Order.created_at.desc()).all()
    result = []
    for order in orders:
        data = _order_to_dict(order)
        data["userId"] = order.user_id
        result.append(data)
    return result


def get_sales_statistics():
    total_orders = db.session.scalar(select(func.count(Order.id)))
    avg_quantity = db.session.scalar(select(func.avg(OrderItem.quantity)))

    # Deleted books and genres still count: their sales happened.
    rows = db.session.execute(
        select(Genre.name, func.sum(OrderItem.quantity))
        .select_from(OrderItem)
        .join(Book, OrderItem.book_id == Book.id)
        .join(Genre, Book.genre_id == Genre.id)
        .group_by(Genre.id, Genre.name)
        .order_by(Genre.name)
    ).all()

    most_sold = least_sold = None
    for name, sold in rows:
        sold = int(sold or 0)
        if most_sold is None or sold > most_sold["totalItemsSold"]:
            most_sold = {"name": name, "totalItemsSold": sold}
        if least_sold is None or sold < least_sold["totalItemsSold"]:
            least_sold = {"name": name, "totalItemsSold": sold}

    return {
        "totalTransactions": total_orders or 0,
        "averageItemsPerOrder": float(avg_quantity) if avg_quantity is not None else 0,
        "mostSoldGenre": most_sold,
        "leastSoldGenre": least_sold,
    }
