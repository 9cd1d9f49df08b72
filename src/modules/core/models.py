"""Base abstract models and shared settings storage for the back-office.

Provides:
- ``TimeStampedModel``: ``created_at`` / ``updated_at`` bookkeeping.
- ``BaseModel``: Extends TimeStampedModel with a UUIDv7 primary key.
- ``AppSetting``: admin-editable key/value operational settings
  (stock deduction trigger, policy flags, leasing statuses).

Design decisions:
- Orders keep the numeric auto-increment id the sales channels know, so
  the timestamp mixin is split from the UUID primary key.
- ``save()`` guard ensures ``updated_at`` is included when ``update_fields``
  is specified (Django skips ``auto_now`` fields otherwise).
"""

from __future__ import annotations

import uuid6
from django.db import models

# ---------------------------------------------------------------------------
# Abstract bases
# ---------------------------------------------------------------------------


class TimeStampedModel(models.Model):
    """Abstract base with creation / modification timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs) -> None:
        """Ensure ``updated_at`` is refreshed even when ``update_fields`` is passed."""
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "updated_at" not in update_fields:
            kwargs["update_fields"] = list(update_fields) + ["updated_at"]
        super().save(*args, **kwargs)


class BaseModel(TimeStampedModel):
    """Abstract base with UUIDv7 PK and timestamp bookkeeping."""

    id = models.UUIDField(
        primary_key=True,
        default=uuid6.uuid7,
        editable=False,
    )

    class Meta:
        abstract = True


# ---------------------------------------------------------------------------
# Operational settings
# ---------------------------------------------------------------------------


class AppSetting(TimeStampedModel):
    """A single runtime setting edited from the admin settings pages.

    Values are stored as text; typing happens in
    ``modules.core.settings_provider.OperationalSettings``.
    """

    setting_key = models.CharField(max_length=100, unique=True)
    setting_value = models.TextField(null=True, blank=True, default=None)  # noqa: DJ01

    class Meta:
        db_table = "app_settings"
        ordering = ["setting_key"]

    def __str__(self) -> str:
        return f"{self.setting_key}={self.setting_value!r}"
