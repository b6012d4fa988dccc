"""Error kinds raised by the catalog and order engine.

The HTTP layer turns any ``ShopError`` into the JSON envelope
``{"success": false, "message": ..., "error": {"kind": ...}, "data": null}``
using the class's ``status_code``.
"""


class ShopError(Exception):
    kind = "Internal"
    status_code = 500

    def __init__(self, message, **detail):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self):
        return {
            "success": False,
            "message": self.message,
            "error": {"kind": self.kind, **self.detail},
            "data": None,
        }


class InvalidRequest(ShopError):
    """Malformed or missing input. The caller must fix the request."""
    kind = "InvalidRequest"
    status_code = 400


class NotFound(ShopError):
    """A referenced user, book, genre or order does not exist (or is deleted)."""
    kind = "NotFound"
    status_code = 404


class AlreadyExists(ShopError):
    kind = "AlreadyExists"
    status_code = 409


class InsufficientStock(ShopError):
    """Requested quantity exceeds what is on hand. Retry with less or after a restock."""
    kind = "InsufficientStock"
    status_code = 400

    def __init__(self, book_id, requested, available, title=None):
        label = title or book_id
        super().__init__(
            f"Not enough stock for book: {label} (Stock: {available})",
            bookId=book_id,
            requested=requested,
            available=available,
        )
        self.book_id = book_id
        self.requested = requested
        self.available = available


class ConcurrencyConflict(ShopError):
    """A concurrent writer won the race. Safe to retry the whole operation once."""
    kind = "ConcurrencyConflict"
    status_code = 409


class InternalError(ShopError):
    kind = "Internal"
    status_code = 500
