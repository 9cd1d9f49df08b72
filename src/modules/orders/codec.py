"""Packing of order line items into the order's flat fields.

An order stores its line items as four columns: ``product_name`` (names
joined with ``", "``, each suffixed with ``" (xN)"`` when N > 1),
``catalog_number`` (codes joined with ``", "``, positionally aligned with
the names), ``quantity`` (sum) and ``total_price`` (sum).

Known losses, kept on purpose:
- Per-item prices of multi-item orders cannot be recovered; decoded items
  carry ``unit_price = 0``.
- ``encode_line_items`` drops empty catalog numbers, so orders mixing items
  with and without codes do not decode back to the same alignment.
- Re-encoding a single-item order with quantity > 1 adds the ``(xN)``
  marker even if the stored name did not have it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional

import structlog

logger = structlog.get_logger(__name__)

SEPARATOR = ", "
_QUANTITY_MARKER = re.compile(r"\(x(\d+)\)$", re.IGNORECASE)
_TRAILING_MARKER = re.compile(r"\s*\(x\d+\)$", re.IGNORECASE)


class LineItemDecodeError(Exception):
    """Packed fields cannot be split into aligned line items."""


@dataclass(frozen=True)
class LineItem:
    name: str
    catalog_number: str = ""
    quantity: int = 1
    unit_price: Decimal = Decimal("0")
    needs_review: bool = False


@dataclass(frozen=True)
class PackedLineItems:
    product_name: str
    catalog_number: Optional[str]
    quantity: int
    total_price: Decimal


def decode_line_items(
    product_name: Optional[str],
    catalog_number: Optional[str],
    total_quantity: int,
    total_price: Decimal,
) -> List[LineItem]:
    """Split an order's packed fields into line items.

    Never raises for malformed data: an order that cannot be split is
    returned as a single ``needs_review`` item holding the raw strings.
    """
    if not product_name or not product_name.strip():
        return []

    try:
        return _decode(product_name, catalog_number, total_quantity, Decimal(total_price))
    except LineItemDecodeError as exc:
        logger.warning(
            "order.line_items.decode_fallback",
            product_name=product_name,
            catalog_number=catalog_number,
            error=str(exc),
        )
        return [
            LineItem(
                name=product_name,
                catalog_number=catalog_number or "",
                quantity=0,
                unit_price=Decimal("0"),
                needs_review=True,
            )
        ]


def _decode(
    product_name: str,
    catalog_number: Optional[str],
    total_quantity: int,
    total_price: Decimal,
) -> List[LineItem]:
    names = product_name.split(SEPARATOR)

    if len(names) == 1:
        name = _TRAILING_MARKER.sub("", names[0]).strip()
        quantity = total_quantity
        unit_price = total_price / quantity if quantity else total_price
        return [
            LineItem(
                name=name,
                catalog_number=(catalog_number or "").strip(),
                quantity=quantity,
                unit_price=unit_price,
            )
        ]

    codes = catalog_number.split(SEPARATOR) if catalog_number else []
    if len(codes) > len(names):
        raise LineItemDecodeError(
            f"{len(codes)} catalog numbers for {len(names)} product names"
        )
    codes += [""] * (len(names) - len(codes))

    items = []
    for segment, code in zip(names, codes):
        segment = segment.strip()
        quantity = 1
        match = _QUANTITY_MARKER.search(segment)
        if match:
            quantity = int(match.group(1))
            if quantity == 0:
                raise LineItemDecodeError(f"zero quantity marker in {segment!r}")
            segment = segment[: match.start()].rstrip()
        items.append(LineItem(name=segment, catalog_number=code.strip(), quantity=quantity))

    parsed = sum(item.quantity for item in items)
    if parsed != total_quantity:
        logger.warning(
            "order.line_items.quantity_mismatch",
            product_name=product_name,
            parsed_quantity=parsed,
            stored_quantity=total_quantity,
        )
    return items


def encode_line_items(items: Iterable[LineItem]) -> PackedLineItems:
    """Pack line items into an order's flat fields.

    Raises:
        ValueError: an item has a quantity below 1.
    """
    names = []
    codes = []
    quantity = 0
    total = Decimal("0")

    for item in items:
        if item.quantity < 1:
            raise ValueError(
                f"Line item {item.name!r} must have quantity >= 1, got {item.quantity}."
            )
        names.append(f"{item.name} (x{item.quantity})" if item.quantity > 1 else item.name)
        if item.catalog_number:
            codes.append(item.catalog_number)
        quantity += item.quantity
        total += Decimal(item.unit_price) * item.quantity

    return PackedLineItems(
        product_name=SEPARATOR.join(names),
        catalog_number=SEPARATOR.join(codes) if codes else None,
        quantity=quantity,
        total_price=total,
    )
