# utils/helpers.py
"""
Helper functions for the schedule upload pipeline
Cell cleaning, cedula normalisation, date header resolution and pay periods
"""

import re
from datetime import date, datetime
from typing import Any, Optional

import pandas as pd
from dateutil import parser as date_parser
from openpyxl.utils import get_column_letter

SPANISH_MONTHS = [
    'Enero', 'Febrero', 'Marzo', 'Abril', 'Mayo', 'Junio',
    'Julio', 'Agosto', 'Septiembre', 'Octubre', 'Noviembre', 'Diciembre',
]

# Spanish abbreviations first; English ones cover sheets exported with an English locale
MONTH_ABBREVIATIONS = {
    'ene': 1, 'feb': 2, 'mar': 3, 'abr': 4, 'may': 5, 'jun': 6,
    'jul': 7, 'ago': 8, 'sep': 9, 'oct': 10, 'nov': 11, 'dic': 12,
    'jan': 1, 'apr': 4, 'aug': 8, 'dec': 12,
}

DAY_MONTH_RE = re.compile(r'^(\d{1,2})-([A-Za-z]{3})[A-Za-z.]*$')
ISO_DATE_RE = re.compile(r'^(\d{4})-(\d{2})-(\d{2})')
CEDULA_FORMATTING_RE = re.compile(r'[\s., ]')


def is_empty(value) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and pd.isna(value):
        return True
    return isinstance(value, str) and value.strip() == ''


def clean_cell(value) -> Any:
    """Normalise one raw spreadsheet value: blanks become None, integral floats become ints"""
    if is_empty(value):
        return None
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def cell_text(value) -> str:
    value = clean_cell(value)
    if value is None:
        return ''
    return str(value)


def normalize_cedula(value) -> str:
    """Drop thousands separators and whitespace; anything else is left for validation"""
    value = clean_cell(value)
    if value is None:
        return ''
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, (int, float)):
        return str(int(value))
    return CEDULA_FORMATTING_RE.sub('', str(value))


def digits_only(value) -> str:
    return re.sub(r'[^\d]', '', str(value or ''))


def cell_address(row_index: int, col_index: int) -> str:
    """Spreadsheet reference for zero-based offsets, e.g. (12, 4) -> E13"""
    return f'{get_column_letter(col_index + 1)}{row_index + 1}'


def resolve_date_header(header, year: Optional[int] = None) -> str:
    """
    Resolve a date column header to YYYY-MM-DD.
    Supports native dates, DD-Mon with Spanish month abbreviations and generic
    date strings. When the text carries no year, `year` (default: the current
    year) is used. Anything else is returned as text.
    """
    if year is None:
        year = date.today().year

    if isinstance(header, datetime):
        return header.date().isoformat()
    if isinstance(header, date):
        return header.isoformat()

    text = cell_text(header)
    if not text:
        return text

    match = DAY_MONTH_RE.match(text)
    if match:
        month = MONTH_ABBREVIATIONS.get(match.group(2).lower())
        if month is None:
            return text
        try:
            return date(year, month, int(match.group(1))).isoformat()
        except ValueError:
            return text

    match = ISO_DATE_RE.match(text)
    if match:
        try:
            return date(int(match.group(1)), int(match.group(2)), int(match.group(3))).isoformat()
        except ValueError:
            return text

    if isinstance(header, (int, float)):
        return text

    # Fields missing from the text (usually the year) come from the default
    try:
        parsed = date_parser.parse(text, dayfirst=True, default=datetime(year, 1, 1))
    except (ValueError, OverflowError):
        return text
    return parsed.date().isoformat()


def parse_iso_date(value) -> Optional[date]:
    """Date for a YYYY-MM-DD prefixed value, None when it does not resolve"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    match = ISO_DATE_RE.match(str(value or '').strip())
    if not match:
        return None
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def parse_any_date(value) -> Optional[date]:
    """Best-effort date parsing for free-form cells"""
    if is_empty(value):
        return None
    parsed = parse_iso_date(value)
    if parsed is not None:
        return parsed
    resolved = resolve_date_header(value)
    return parse_iso_date(resolved)


def get_pay_period(today: Optional[date] = None) -> str:
    """
    Pay period (quincena) label, e.g. Q1_Enero_2025.
    Computed from the day the batch is saved, not from the scheduled date.
    """
    today = today or date.today()
    quincena = 'Q1' if today.day <= 15 else 'Q2'
    return f'{quincena}_{SPANISH_MONTHS[today.month - 1]}_{today.year}'


def format_db_timestamp(moment: datetime) -> str:
    return moment.strftime('%Y-%m-%d %H:%M:%S')
