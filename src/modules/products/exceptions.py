"""Inventory domain exceptions.

Raised by the Service Layer and the stock resolver when business rules are
violated.  The API layer (Views) catches these and translates them into
appropriate HTTP responses.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from modules.core.exceptions import ExternalCollaboratorError


class ProductAlreadyExists(Exception):
    """A product with the same SKU already exists."""


class ProductNotFound(Exception):
    """The requested product does not exist."""


class InsufficientStock(Exception):
    """Requested quantity exceeds the computed availability.

    A business-rule signal: the caller decides whether to block the sale
    or let it through as a backorder.
    """

    def __init__(
        self,
        product_id: UUID,
        requested: int,
        available: int,
        limiting_component_id: Optional[UUID] = None,
        message: Optional[str] = None,
    ) -> None:
        self.product_id = product_id
        self.requested = requested
        self.available = available
        self.limiting_component_id = limiting_component_id
        if message is None:
            message = (
                f"Product {product_id}: requested {requested}, available {available}."
            )
            if limiting_component_id is not None:
                message += f" Limited by component {limiting_component_id}."
        super().__init__(message)


class UnconfiguredBundle(InsufficientStock):
    """A bundle product has no components, so nothing of it can be sold."""

    def __init__(self, product_id: UUID, requested: int) -> None:
        super().__init__(
            product_id,
            requested,
            0,
            message=f"Bundle {product_id} has no components configured.",
        )


class ConcurrentModification(Exception):
    """A product's stock changed between the snapshot read and the write."""

    def __init__(self, product_id: UUID, expected_version: int) -> None:
        self.product_id = product_id
        self.expected_version = expected_version
        super().__init__(
            f"Product {product_id} was modified concurrently "
            f"(expected version {expected_version})."
        )


class NestedBundleNotAllowed(Exception):
    """A bundle was configured with another bundle as a component."""


class InvalidBundleConfiguration(Exception):
    """Bundle components were given for a product that is not a bundle."""


class CatalogSourceError(ExternalCollaboratorError):
    """The external catalog feed could not be read."""
