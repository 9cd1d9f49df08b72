"""Order domain exceptions.

Raised by the Service Layer; the views translate them into HTTP responses.
Stock shortfalls are not exceptions here: a status change that cannot
deduct stock still commits and reports a warning.
"""

from __future__ import annotations


class OrderNotFound(Exception):
    """The requested order does not exist."""


class InvalidOrderStatus(Exception):
    """The status label is not in the catalog and is not a leasing status."""


class DuplicateOrderCode(Exception):
    """A sales channel supplied an order code that is already taken."""
