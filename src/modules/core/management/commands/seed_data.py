from __future__ import annotations

import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from modules.core.settings_provider import CachedSettingsProvider
from modules.invoices.models import CompanySettings
from modules.orders.constants import OrderStatus
from modules.orders.dtos import CreateOrderDTO, LineItemDTO
from modules.orders.models import Order
from modules.orders.statuses import StatusCatalog
from modules.orders.views import build_order_service
from modules.products.dtos import BundleComponentDTO, ConfigureBundleDTO, CreateProductDTO
from modules.products.models import Product
from modules.products.repositories.django_repository import (
    ProductDjangoRepository,
    StockLedgerDjangoRepository,
)
from modules.products.services import ProductService
from modules.shipments.models import Courier


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users_created = self._seed_users()
        statuses_created = StatusCatalog(CachedSettingsProvider()).seed_defaults()
        couriers = self._seed_couriers()
        self._seed_company()
        products = self._seed_products()
        orders_created = self._seed_orders(products)

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={users_created}, "
                f"statuses={statuses_created}, "
                f"couriers={couriers}, "
                f"products={len(products)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self) -> int:
        User = get_user_model()
        created = 0
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")
            created += 1
        if not User.objects.filter(username="operator").exists():
            User.objects.create_user("operator", password="operator123", is_staff=True)
            created += 1
        return created

    def _seed_couriers(self) -> int:
        self.stdout.write("Creating couriers...")
        couriers = [
            ("econt", "Econt", "https://www.econt.com/services/track-shipment/{waybill}"),
            ("speedy", "Speedy", "https://www.speedy.bg/en/track-shipment?shipmentNumber={waybill}"),
        ]
        created = 0
        for code, name, template in couriers:
            _, was_created = Courier.objects.get_or_create(
                code=code,
                defaults={"name": name, "tracking_url_template": template},
            )
            created += was_created
        self.stdout.write(self.style.SUCCESS("Creating couriers... Done!"))
        return created

    def _seed_company(self) -> None:
        if CompanySettings.objects.exists():
            return
        CompanySettings.objects.create(
            company_name="Demo Trading Ltd",
            company_id_number="204567890",
            registered_address="1 Market Street, Sofia",
            vat_number="BG204567890",
        )

    def _seed_products(self) -> list[Product]:
        self.stdout.write("Creating products...")
        service = ProductService(
            ProductDjangoRepository(),
            StockLedgerDjangoRepository(),
            CachedSettingsProvider(),
        )
        catalog = [
            ("CAM-001", "Action Camera", Decimal("120.00"), Decimal("189.90")),
            ("CAM-002", "Camera Mount", Decimal("8.00"), Decimal("19.90")),
            ("CAM-003", "Memory Card 64GB", Decimal("9.50"), Decimal("24.90")),
            ("PWR-001", "Power Bank", Decimal("14.00"), Decimal("39.90")),
            ("PWR-002", "USB-C Cable", Decimal("1.80"), Decimal("9.90")),
            ("AUD-001", "Wireless Earbuds", Decimal("22.00"), Decimal("59.90")),
        ]
        products: list[Product] = []
        for sku, name, cost, price in catalog:
            product = Product.objects.filter(sku=sku).first()
            if product is None:
                product = service.create_product(
                    CreateProductDTO(
                        sku=sku,
                        name=name,
                        purchase_price=cost,
                        sale_price=price,
                        current_stock=random.randint(10, 80),
                        min_stock=5,
                    )
                )
            products.append(product)

        bundle = Product.objects.filter(sku="KIT-001").first()
        if bundle is None:
            bundle = service.create_product(
                CreateProductDTO(
                    sku="KIT-001",
                    name="Travel Camera Kit",
                    sale_price=Decimal("219.90"),
                    is_bundle=True,
                )
            )
            by_sku = {p.sku: p for p in products}
            service.configure_bundle(
                bundle.id,
                ConfigureBundleDTO(
                    components=[
                        BundleComponentDTO(component_id=by_sku["CAM-001"].id, quantity=1),
                        BundleComponentDTO(component_id=by_sku["CAM-002"].id, quantity=2),
                        BundleComponentDTO(component_id=by_sku["CAM-003"].id, quantity=1),
                    ]
                ),
            )
        products.append(bundle)
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return products

    def _seed_orders(self, products: list[Product]) -> int:
        self.stdout.write("Creating orders...")
        if Order.objects.filter(source="seed").exists():
            self.stdout.write(self.style.WARNING("Skipping orders (already seeded)."))
            return 0

        service = build_order_service()
        customers = [
            ("Maria Ivanova", "+359888100200"),
            ("Georgi Petrov", "+359887300400"),
            ("Elena Dimitrova", "+359889500600"),
            ("Nikolay Stoyanov", "+359886700800"),
        ]
        statuses = [
            OrderStatus.NEW,
            OrderStatus.CONFIRMED,
            OrderStatus.SHIPPED,
            OrderStatus.DELIVERED,
        ]
        created = 0
        for i in range(20):
            name, phone = random.choice(customers)
            picked = random.sample(products, k=random.randint(1, 3))
            order = service.create_order(
                CreateOrderDTO(
                    customer_name=name,
                    phone=phone,
                    delivery_address=f"Seed street {i + 1}",
                    source="seed",
                    items=[
                        LineItemDTO(
                            name=product.name,
                            catalog_number=product.sku,
                            quantity=random.randint(1, 2),
                            unit_price=product.sale_price,
                        )
                        for product in picked
                    ],
                )
            )
            target = random.choice(statuses)
            if target != OrderStatus.NEW:
                service.change_status(order.id, target, notes="Seed data")
            created += 1

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return created
