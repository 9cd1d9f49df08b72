"""Invoice domain exceptions."""

from __future__ import annotations


class CompanySettingsMissing(Exception):
    """No company settings row exists, so there is no seller and no counter."""


class InvoiceIssueError(Exception):
    """The invoice cannot be issued for the order in its current state."""


class InvoiceNotFound(Exception):
    """The requested invoice does not exist."""
