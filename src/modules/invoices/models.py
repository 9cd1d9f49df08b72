"""Company settings and Invoice models.

Business rules implemented:
- ``CompanySettings`` is a single row: the seller data copied onto every
  invoice and the next invoice number.
- Invoices are immutable snapshots; neither seller nor buyer data follows
  later edits of the company settings or the order.
- ``invoice_number`` is unique; numbers come from the counter, taken and
  advanced in the same transaction.
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from modules.core.models import BaseModel


class CompanySettings(BaseModel):
    company_name = models.CharField(max_length=255)
    company_id_number = models.CharField(max_length=50, blank=True, default="")
    registered_address = models.TextField(blank=True, default="")
    vat_number = models.CharField(max_length=50, blank=True, default="")
    default_vat_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("20.00"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
    )
    next_invoice_number = models.PositiveBigIntegerField(
        default=1, validators=[MinValueValidator(1)]
    )

    class Meta:
        db_table = "company_settings"
        verbose_name_plural = "company settings"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(next_invoice_number__gte=1),
                name="company_settings_next_invoice_gte_1",
            ),
        ]

    def __str__(self) -> str:
        return self.company_name


class Invoice(BaseModel):
    invoice_number = models.PositiveBigIntegerField(unique=True)
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="invoices",
    )

    seller_name = models.CharField(max_length=255)
    seller_id_number = models.CharField(max_length=50, blank=True, default="")
    seller_address = models.TextField(blank=True, default="")
    seller_vat_number = models.CharField(max_length=50, blank=True, default="")

    buyer_name = models.CharField(max_length=255)
    buyer_id_number = models.CharField(max_length=50, blank=True, default="")
    buyer_address = models.TextField(blank=True, default="")
    buyer_vat_number = models.CharField(max_length=50, blank=True, default="")
    buyer_phone = models.CharField(max_length=50, blank=True, default="")
    buyer_email = models.EmailField(blank=True, default="")

    product_description = models.TextField()
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2)
    vat_rate = models.DecimalField(max_digits=5, decimal_places=2)
    vat_amount = models.DecimalField(max_digits=12, decimal_places=2)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    issue_date = models.DateField()
    tax_event_date = models.DateField()
    notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "invoices"
        ordering = ["-invoice_number"]

    def save(self, *args, **kwargs) -> None:
        if not self._state.adding:
            raise ValidationError("Invoices are immutable once issued.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Invoices cannot be deleted.")

    def __str__(self) -> str:
        return f"Invoice {self.invoice_number:010d}"
