"""Shipment domain exceptions.

Collaborator failures share ``ExternalCollaboratorError`` so views can map
them to 502 without knowing which collaborator failed.
"""

from __future__ import annotations

from typing import Optional

from modules.core.exceptions import ExternalCollaboratorError


class CourierGatewayError(ExternalCollaboratorError):
    def __init__(self, courier_code: str, message: str, status_code: Optional[int] = None) -> None:
        self.courier_code = courier_code
        self.status_code = status_code
        super().__init__(f"Courier '{courier_code}': {message}")


class CourierNotFound(Exception):
    """No enabled courier (or no gateway adapter) exists for the code."""


class ActiveShipmentExists(Exception):
    """The order already has an active shipment and multiple are not allowed."""


class ShipmentNotFound(Exception):
    """The requested shipment does not exist."""
