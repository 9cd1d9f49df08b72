"""Courier gateway adapters.

Each courier is reached through an ``ICourierGateway`` selected by the
courier code.  Adapters are registered in ``gateway_registry`` at startup
from ``settings.COURIER_GATEWAYS``::

    COURIER_GATEWAYS = {
        "econt": {
            "class": "modules.shipments.gateways.HttpCourierGateway",
            "base_url": "https://couriers.example.com/econt",
            "api_key": "...",
        },
    }

Gateways are plain blocking calls and are never invoked inside a database
transaction.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional

import requests
import structlog
from django.utils.module_loading import import_string

from modules.shipments.exceptions import CourierGatewayError, CourierNotFound

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ShipmentRequest:
    reference: str
    sender_name: str
    sender_phone: str
    sender_city: str
    sender_address: str
    recipient_name: str
    recipient_phone: str
    recipient_city: str
    recipient_address: str
    recipient_office_code: str
    cod_amount: Decimal
    weight: Decimal
    description: str


@dataclass(frozen=True)
class IssuedWaybill:
    waybill_number: str
    tracking_url: Optional[str] = None
    price: Optional[Decimal] = None


class ICourierGateway(ABC):
    """Courier API operations used by the back-office."""

    @abstractmethod
    def create_shipment(self, request: ShipmentRequest) -> IssuedWaybill:
        """Register a shipment with the courier and return its waybill."""

    @abstractmethod
    def get_label(self, waybill_number: str) -> bytes:
        """Return the printable label (PDF) for a waybill."""

    @abstractmethod
    def calculate_price(self, params: Mapping[str, Any]) -> Decimal:
        """Quote the delivery price for the given parcel parameters."""


class HttpCourierGateway(ICourierGateway):
    """JSON-over-HTTP adapter: ``POST <base_url>`` with ``{"action", "data"}``."""

    def __init__(
        self,
        code: str,
        base_url: str,
        api_key: str = "",
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.code = code
        self._base_url = base_url
        self._timeout = timeout
        self._session = session or requests.Session()
        if api_key:
            self._session.headers["Authorization"] = f"Bearer {api_key}"

    def create_shipment(self, request: ShipmentRequest) -> IssuedWaybill:
        payload = {
            key: str(value) if isinstance(value, Decimal) else value
            for key, value in asdict(request).items()
        }
        body = self._json(self._call("createShipment", payload))
        waybill = body.get("waybill_number") or body.get("waybillNumber")
        if not waybill:
            raise CourierGatewayError(self.code, "response has no waybill number")
        price = body.get("price")
        return IssuedWaybill(
            waybill_number=str(waybill),
            tracking_url=body.get("tracking_url"),
            price=None if price is None else _as_decimal(self.code, price),
        )

    def get_label(self, waybill_number: str) -> bytes:
        return self._call("getLabel", {"waybill_number": waybill_number}).content

    def calculate_price(self, params: Mapping[str, Any]) -> Decimal:
        body = self._json(self._call("calculatePrice", dict(params)))
        return _as_decimal(self.code, body.get("price"))

    def _call(self, action: str, data: Dict[str, Any]) -> requests.Response:
        log = logger.bind(courier=self.code, action=action)
        try:
            response = self._session.post(
                self._base_url,
                json={"action": action, "data": data},
                timeout=self._timeout,
            )
        except requests.exceptions.RequestException as exc:
            log.warning("courier.request_failed", error=str(exc))
            raise CourierGatewayError(self.code, f"{action} failed: {exc}") from exc

        if response.status_code >= 400:
            log.warning("courier.request_rejected", status_code=response.status_code)
            raise CourierGatewayError(
                self.code,
                f"{action} rejected with HTTP {response.status_code}",
                status_code=response.status_code,
            )
        log.info("courier.request_succeeded")
        return response

    def _json(self, response: requests.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError as exc:
            raise CourierGatewayError(self.code, "response is not JSON") from exc
        if not isinstance(body, dict):
            raise CourierGatewayError(self.code, "unexpected response shape")
        return body


def _as_decimal(code: str, value: Any) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise CourierGatewayError(code, f"invalid price {value!r}") from exc


class CourierGatewayRegistry:
    """Maps courier codes to gateway instances."""

    def __init__(self) -> None:
        self._gateways: Dict[str, ICourierGateway] = {}

    def register(self, code: str, gateway: ICourierGateway) -> None:
        self._gateways[code] = gateway
        logger.info("courier.gateway_registered", courier=code)

    def unregister(self, code: str) -> None:
        self._gateways.pop(code, None)

    def get(self, code: str) -> ICourierGateway:
        try:
            return self._gateways[code]
        except KeyError:
            raise CourierNotFound(f"No gateway registered for courier '{code}'.") from None

    def codes(self) -> list[str]:
        return sorted(self._gateways)

    def load(self, config: Mapping[str, Mapping[str, Any]]) -> None:
        """Instantiate and register adapters from ``COURIER_GATEWAYS``."""
        for code, options in config.items():
            options = dict(options)
            gateway_class = import_string(options.pop("class"))
            self.register(code, gateway_class(code=code, **options))


gateway_registry = CourierGatewayRegistry()
