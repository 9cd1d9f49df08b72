"""Inventory repositories package."""

from modules.products.repositories.django_repository import (
    ProductDjangoRepository,
    StockLedgerDjangoRepository,
)
from modules.products.repositories.interfaces import IProductRepository, IStockLedger

__all__ = [
    "IProductRepository",
    "IStockLedger",
    "ProductDjangoRepository",
    "StockLedgerDjangoRepository",
]
