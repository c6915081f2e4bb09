"""
Raw booking row schema.

Rows coming from ledger exports or the analytical store are loosely typed:
dates as strings, amounts with currency symbols, account numbers as floats.
BookingRow coerces them into a Booking without rejecting the row; values that
cannot be parsed become None so the detectors can skip them individually.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Optional
import logging

from pydantic import BaseModel, ConfigDict, field_validator

from ledgercheck.models import Booking
from ledgercheck.utils.common import parse_date, normalize_amount, normalize_account

logger = logging.getLogger(__name__)


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    # NaN and NaT from pandas are the only values unequal to themselves
    try:
        return bool(value != value)
    except (TypeError, ValueError):
        return False


class BookingRow(BaseModel):
    """Lenient schema for one raw ledger row."""

    model_config = ConfigDict(extra='ignore')

    posting_date: Optional[date] = None
    amount: Optional[Decimal] = None
    account: Optional[int] = None
    account_name: str = ""
    cost_center: Optional[str] = None
    profit_center: Optional[str] = None
    vendor: Optional[str] = None
    customer: Optional[str] = None
    document_no: str = ""
    text: str = ""

    @field_validator('posting_date', mode='before')
    @classmethod
    def _coerce_date(cls, value: Any) -> Optional[date]:
        if _is_missing(value):
            return None
        return parse_date(value)

    @field_validator('amount', mode='before')
    @classmethod
    def _coerce_amount(cls, value: Any) -> Optional[Decimal]:
        if _is_missing(value):
            return None
        return normalize_amount(value)

    @field_validator('account', mode='before')
    @classmethod
    def _coerce_account(cls, value: Any) -> Optional[int]:
        if _is_missing(value):
            return None
        return normalize_account(value)

    @field_validator('account_name', 'document_no', 'text', mode='before')
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        if _is_missing(value):
            return ""
        if isinstance(value, float) and value.is_integer():
            # Document numbers read from spreadsheets come back as floats
            return str(int(value))
        return str(value)

    @field_validator('cost_center', 'profit_center', 'vendor', 'customer', mode='before')
    @classmethod
    def _coerce_optional_text(cls, value: Any) -> Optional[str]:
        if _is_missing(value):
            return None
        text = str(value).strip()
        return text or None

    def to_booking(self) -> Booking:
        return Booking(
            posting_date=self.posting_date,
            amount=self.amount,
            account=self.account,
            document_no=self.document_no,
            account_name=self.account_name,
            text=self.text,
            cost_center=self.cost_center,
            profit_center=self.profit_center,
            vendor=self.vendor,
            customer=self.customer,
        )
