"""
Pytest fixtures shared by the ledgercheck tests.
"""

import datetime
from decimal import Decimal

import pytest

from ledgercheck.config import reset_config
from ledgercheck.models import Booking


def booking(document_no, amount, account=4210, posting_date="2024-03-12", **kwargs):
    """Build a booking with sensible defaults for tests.

    ``amount`` may be given as int, float or string; ``posting_date`` as ISO
    string or date.
    """
    if isinstance(posting_date, str):
        posting_date = datetime.date.fromisoformat(posting_date)
    if amount is not None and not isinstance(amount, Decimal):
        amount = Decimal(str(amount))
    return Booking(
        posting_date=posting_date,
        amount=amount,
        account=account,
        document_no=document_no,
        account_name=kwargs.pop('account_name', ''),
        text=kwargs.pop('text', ''),
        **kwargs
    )


@pytest.fixture
def make_booking():
    """Factory fixture for bookings."""
    return booking


@pytest.fixture
def as_of():
    """Fixed reference date so accrual checks do not depend on today."""
    return datetime.date(2024, 4, 30)


@pytest.fixture
def sample_bookings():
    """A small period with one finding of most kinds."""
    return [
        # Duplicate payment to the same vendor
        booking("RE-1001", "1000.00", account=4930, posting_date="2024-03-04", vendor="Papier AG",
                text="Druckerpapier"),
        booking("RE-1002", "1000.00", account=4930, posting_date="2024-03-11", vendor="papier ag",
                text="Druckerpapier"),
        # Rent posted to an office supplies account
        booking("RE-1003", "1850.00", account=4930, posting_date="2024-03-01", vendor="Immo GmbH",
                text="Miete Maerz"),
        # Revenue with the wrong sign
        booking("AR-2001", "250.00", account=8400, posting_date="2024-03-05", customer="Kunde 1",
                text="Erloese"),
        # Weekend
        booking("RE-1004", "89.90", account=4900, posting_date="2024-03-09", text="Porto"),
        # Ordinary
        booking("AR-2002", "-4200.00", account=8400, posting_date="2024-03-06", customer="Kunde 2",
                text="Erloese"),
    ]


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    """Keep the global configuration and LEDGERCHECK_* variables out of tests."""
    import os

    for key in list(os.environ):
        if key.startswith("LEDGERCHECK_"):
            monkeypatch.delenv(key)
    reset_config()
    yield
    reset_config()
