"""Product service layer (Use Cases).

Orchestrates business logic for the Product aggregate, delegating
persistence to the injected ``IProductRepository`` / ``IStockLedger`` and
stock arithmetic to ``BundleStockResolver``.

Business rules enforced here:
- SKU must be unique.
- Only bundle products carry components; a bundle cannot contain itself.
- Nested bundles are rejected only when ``allow_nested_bundles`` is off.
- Stock only changes through ledger movements (initial stock included).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

import structlog
from django.db import transaction

from modules.core.settings_provider import OperationalSettings
from modules.products.exceptions import (
    InvalidBundleConfiguration,
    NestedBundleNotAllowed,
    ProductAlreadyExists,
    ProductNotFound,
)
from modules.products.models import MovementType, Product
from modules.products.stock import Availability, BundleStockResolver

if TYPE_CHECKING:
    from modules.core.settings_provider import ISettingsProvider
    from modules.products.dtos import (
        ConfigureBundleDTO,
        CreateProductDTO,
        StockAdjustmentDTO,
        UpdateProductDTO,
    )
    from modules.products.models import BundleComponent, StockMovement
    from modules.products.repositories.interfaces import (
        IProductRepository,
        IStockLedger,
    )

logger = structlog.get_logger(__name__)


class ProductService:
    """Application service for Product use-cases.

    Receives its repositories and the settings provider via constructor
    injection (DIP).
    """

    def __init__(
        self,
        repository: IProductRepository,
        ledger: IStockLedger,
        settings_provider: ISettingsProvider,
    ) -> None:
        self._repo = repository
        self._ledger = ledger
        self._settings = settings_provider
        self._resolver = BundleStockResolver(repository, ledger)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_product(self, dto: CreateProductDTO) -> Product:
        """Create a product and book its initial stock as an ``in`` movement.

        Raises:
            ProductAlreadyExists: if SKU is already taken.
        """
        log = logger.bind(sku=dto.sku)

        if self._repo.get_by_sku(dto.sku):
            log.warning("product.duplicate_sku")
            raise ProductAlreadyExists(f"SKU '{dto.sku}' already registered.")

        product = Product(
            sku=dto.sku,
            name=dto.name,
            purchase_price=dto.purchase_price,
            sale_price=dto.sale_price,
            min_stock=dto.min_stock,
            is_bundle=dto.is_bundle,
            external_bundle_type=dto.external_bundle_type,
            external_id=dto.external_id,
        )
        product = self._repo.save(product)

        if dto.current_stock:
            movement = self._resolver.plan_adjustment(
                product.id, MovementType.IN, dto.current_stock, reason="Initial stock"
            )
            self._resolver.apply_movements([movement])
            product = self._repo.get_by_id(product.id) or product

        log.info("product.created", product_id=str(product.id))
        return product

    @transaction.atomic
    def update_product(self, id: UUID, dto: UpdateProductDTO) -> Product:
        """Update an existing product with the supplied fields.

        Raises:
            ProductNotFound: if the product does not exist.
        """
        if not self._repo.get_by_id(id):
            raise ProductNotFound(f"Product {id} not found.")
        product = self._repo.update(id, dto.changes())
        logger.info("product.updated", product_id=str(id))
        return product

    @transaction.atomic
    def deactivate_product(self, id: UUID) -> None:
        """Hide a product from sale; bundles that use it keep counting its stock.

        Raises:
            ProductNotFound: if the product does not exist.
        """
        if not self._repo.get_by_id(id):
            raise ProductNotFound(f"Product {id} not found.")
        self._repo.delete(id)

    @transaction.atomic
    def configure_bundle(
        self, product_id: UUID, dto: ConfigureBundleDTO
    ) -> List[BundleComponent]:
        """Replace a bundle's components wholesale.

        Raises:
            ProductNotFound: the bundle or a component does not exist.
            InvalidBundleConfiguration: the product is not a bundle, or
                lists itself as a component.
            NestedBundleNotAllowed: a component is a bundle and the
                ``allow_nested_bundles`` policy is off.
        """
        bundle = self._repo.get_by_id(product_id)
        if not bundle:
            raise ProductNotFound(f"Product {product_id} not found.")
        if not bundle.is_bundle:
            raise InvalidBundleConfiguration(
                f"Product {bundle.sku} is not a bundle; it cannot have components."
            )

        policy = OperationalSettings.from_provider(self._settings)
        pairs = []
        for item in dto.components:
            if item.component_id == bundle.id:
                raise InvalidBundleConfiguration("A bundle cannot contain itself.")
            component = self._repo.get_by_id(item.component_id)
            if not component:
                raise ProductNotFound(f"Product {item.component_id} not found.")
            if component.is_bundle and not policy.allow_nested_bundles:
                raise NestedBundleNotAllowed(
                    f"Component {component.sku} is itself a bundle."
                )
            pairs.append((component.id, item.quantity))

        components = self._repo.replace_components(bundle.id, pairs)
        logger.info(
            "product.bundle_configured",
            product_id=str(bundle.id),
            component_count=len(components),
        )
        return components

    @transaction.atomic
    def adjust_stock(self, product_id: UUID, dto: StockAdjustmentDTO) -> StockMovement:
        """Book a manual stock movement (delivery or correction).

        Raises:
            ProductNotFound: if the product does not exist.
            InsufficientStock: a decrease would make stock negative.
            ConcurrentModification: stock changed while the movement was computed.
        """
        movement = self._resolver.plan_adjustment(
            product_id,
            dto.movement_type,
            dto.quantity,
            reason=dto.reason,
            unit_price=dto.unit_price,
        )
        (recorded,) = self._resolver.apply_movements([movement])
        logger.info(
            "product.stock_adjusted",
            product_id=str(product_id),
            movement_type=dto.movement_type,
            quantity=dto.quantity,
            stock_after=recorded.stock_after,
        )
        return recorded

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_products(self, filters: Optional[Dict[str, Any]] = None) -> List[Product]:
        """Return a list of products, optionally filtered."""
        return self._repo.list(filters)

    def get_product(self, id: UUID) -> Product:
        """Retrieve a single product by ID.

        Raises:
            ProductNotFound: if the product does not exist.
        """
        product = self._repo.get_by_id(id)
        if not product:
            raise ProductNotFound(f"Product {id} not found.")
        return product

    def get_components(self, id: UUID) -> List[BundleComponent]:
        return self._repo.get_components(self.get_product(id).id)

    def get_availability(self, id: UUID) -> Availability:
        return self._resolver.get_availability(id)

    def list_movements(self, id: UUID) -> List[StockMovement]:
        return self._ledger.list_for_product(self.get_product(id).id)
