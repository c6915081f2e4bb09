"""
Booking loaders.

This module reads the booking rows of a period from a ledger export (CSV or
Excel) or from a table in an analytical database and converts them into
Booking records.
"""

import re
import logging
from pathlib import Path
from typing import Dict, List, Any, Optional, Union

import pandas as pd
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ledgercheck.models import Booking
from ledgercheck.ingest.schema import BookingRow

logger = logging.getLogger(__name__)

# Plain or schema-qualified identifiers only; table names end up in SQL text
_TABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")

# Column names seen in German ledger exports
COLUMN_ALIASES = {
    'buchungsdatum': 'posting_date',
    'datum': 'posting_date',
    'betrag': 'amount',
    'konto': 'account',
    'kontobezeichnung': 'account_name',
    'kostenstelle': 'cost_center',
    'profitcenter': 'profit_center',
    'lieferant': 'vendor',
    'kreditor': 'vendor',
    'kunde': 'customer',
    'debitor': 'customer',
    'belegnummer': 'document_no',
    'belegnr': 'document_no',
    'buchungstext': 'text',
}


class BookingSourceError(Exception):
    """Exception raised when bookings cannot be read from a source."""
    pass


def _normalize_column(name: Any) -> str:
    key = re.sub(r"[\s\-]+", "_", str(name).strip().lower())
    return COLUMN_ALIASES.get(key.replace("_", ""), key)


def rows_to_bookings(rows: List[Dict[str, Any]]) -> List[Booking]:
    """Convert raw rows into bookings.

    Args:
        rows: Mappings of column name to raw value

    Returns:
        List of bookings in row order
    """
    bookings = []
    for row in rows:
        normalized = {_normalize_column(k): v for k, v in row.items()}
        bookings.append(BookingRow.model_validate(normalized).to_booking())

    malformed = sum(1 for b in bookings if b.posting_date is None or b.amount is None or b.account is None)
    if malformed:
        logger.warning(f"{malformed} of {len(bookings)} bookings have unparseable date, amount or account")
    return bookings


def load_bookings_from_file(file_path: Union[str, Path], sheet_name: Optional[str] = None) -> List[Booking]:
    """Load bookings from a CSV or Excel ledger export.

    Args:
        file_path: Path to a ``.csv``, ``.xlsx`` or ``.xls`` file
        sheet_name: Excel sheet to read (defaults to the first sheet)

    Returns:
        List of bookings

    Raises:
        BookingSourceError: If the file cannot be read
    """
    if isinstance(file_path, str):
        file_path = Path(file_path)

    if not file_path.exists():
        raise BookingSourceError(f"Booking file not found: {file_path}")

    logger.info(f"Loading bookings from {file_path}")
    suffix = file_path.suffix.lower()

    try:
        if suffix == '.csv':
            # Keep raw strings; BookingRow does the parsing
            df = pd.read_csv(file_path, dtype=str, keep_default_na=False, sep=None, engine='python')
        elif suffix in ('.xlsx', '.xlsm', '.xls'):
            df = pd.read_excel(file_path, sheet_name=sheet_name or 0, dtype=object)
        else:
            raise BookingSourceError(f"Unsupported booking file format: {file_path.suffix}")
    except (OSError, ValueError, pd.errors.ParserError) as e:
        raise BookingSourceError(f"Error reading bookings from {file_path}: {e}") from e

    bookings = rows_to_bookings(df.to_dict(orient='records'))
    logger.info(f"Loaded {len(bookings)} bookings from {file_path}")
    return bookings


def _validate_table_name(table: str) -> str:
    if not table or not _TABLE_NAME.match(table):
        raise BookingSourceError(f"Invalid table name: {table!r}")
    return table


def get_database_engine(database_url: str) -> Engine:
    """Create a SQLAlchemy engine for a booking store.

    Args:
        database_url: SQLAlchemy database URL

    Returns:
        SQLAlchemy engine

    Raises:
        BookingSourceError: If the URL is missing or invalid
    """
    if not database_url:
        raise BookingSourceError("No database URL configured")
    try:
        return create_engine(database_url, future=True)
    except SQLAlchemyError as e:
        raise BookingSourceError(f"Invalid database URL: {e}") from e


def load_bookings_from_table(engine: Union[Engine, str], table: str) -> List[Booking]:
    """Load all bookings from a database table.

    Args:
        engine: SQLAlchemy engine or database URL
        table: Table name, optionally schema-qualified

    Returns:
        List of bookings

    Raises:
        BookingSourceError: If the table name is invalid or the query fails
    """
    table = _validate_table_name(table)
    if isinstance(engine, str):
        engine = get_database_engine(engine)

    logger.info(f"Loading bookings from table {table}")
    try:
        with engine.connect() as connection:
            result = connection.execute(text(f"SELECT * FROM {table}"))
            rows = [dict(row) for row in result.mappings()]
    except SQLAlchemyError as e:
        raise BookingSourceError(f"Table {table} could not be read: {e}") from e

    bookings = rows_to_bookings(rows)
    logger.info(f"Loaded {len(bookings)} bookings from table {table}")
    return bookings


def load_previous_bookings_from_table(engine: Union[Engine, str], table: Optional[str]) -> Optional[List[Booking]]:
    """Load the prior period's bookings, tolerating a missing table.

    Args:
        engine: SQLAlchemy engine or database URL
        table: Table name of the prior period

    Returns:
        List of bookings, or None if there is no (non-empty) previous table
    """
    if not table:
        return None

    try:
        bookings = load_bookings_from_table(engine, table)
    except BookingSourceError as e:
        logger.info(f"Previous table {table} not available, continuing without it: {e}")
        return None

    return bookings or None
