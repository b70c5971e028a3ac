# utils/workbook_reader.py
"""
Workbook Reader
Loads an uploaded spreadsheet, finds the sheet for the declared schedule type
and returns it as a matrix of raw cell values, plus the lunch deduction table
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from io import BytesIO
from typing import Any, List, Optional

from openpyxl import load_workbook

from utils.exceptions import (
    CorruptFileError, EmptyContentError, EmptyWorkbookError,
    ReadTimeoutError, SheetNotFoundError,
)
from utils.helpers import cell_text, clean_cell, is_empty
from utils.schedule_rows import FORMATO, NOVEDADES, LunchDeductionRule

logger = logging.getLogger(__name__)

# Marker contained (case-insensitively) in the sheet title for each schedule type
SHEET_MARKERS = {
    FORMATO: 'formato programación',
    NOVEDADES: 'formato de novedades',
}
SHEET_TITLES = {
    FORMATO: 'Formato programación',
    NOVEDADES: 'Formato de novedades',
}
LUNCH_SHEET = 'almuerzo'
LUNCH_FIRST_ROW = 12

DEFAULT_READ_TIMEOUT = 30


@dataclass
class WorkbookContent:
    sheet_name: str
    matrix: List[List[Any]]
    lunch_rules: List[LunchDeductionRule] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def find_sheet(sheet_names: List[str], schedule_type: str) -> Optional[str]:
    marker = SHEET_MARKERS[schedule_type]
    for name in sheet_names:
        if marker in name.lower():
            return name
    return None


def find_lunch_sheet(sheet_names: List[str]) -> Optional[str]:
    for name in sheet_names:
        if name.strip().lower() == LUNCH_SHEET:
            return name
    return None


def sheet_to_matrix(worksheet) -> List[List[Any]]:
    """Every row from A1 so matrix offsets match spreadsheet coordinates"""
    return [list(row) for row in worksheet.iter_rows(min_row=1, min_col=1, values_only=True)]


def parse_lunch_rules(matrix: List[List[Any]], warnings: Optional[List[str]] = None) -> List[LunchDeductionRule]:
    """Collect (time label, deduction) pairs from row 13 onwards, columns B and C"""
    rules = []
    for i in range(LUNCH_FIRST_ROW, len(matrix)):
        row = matrix[i]
        if len(row) < 3 or is_empty(row[1]) or is_empty(row[2]):
            continue

        label = cell_text(row[1])
        try:
            deduction = float(str(clean_cell(row[2])).replace(',', '.'))
        except ValueError:
            message = f"Lunch row {i + 1}: deduction '{row[2]}' is not numeric, skipped"
            logger.warning(message)
            if warnings is not None:
                warnings.append(message)
            continue

        rules.append(LunchDeductionRule(label, deduction))
    return rules


def _has_content(matrix: List[List[Any]]) -> bool:
    return any(not is_empty(value) for row in matrix for value in row)


def _read(data: bytes, schedule_type: str) -> WorkbookContent:
    try:
        workbook = load_workbook(BytesIO(data), data_only=True)
    except Exception as e:
        logger.error(f"Could not open workbook: {e}")
        raise CorruptFileError('The file is not a valid Excel document or it is damaged')

    try:
        sheet_names = list(workbook.sheetnames)
        if not sheet_names:
            raise EmptyWorkbookError('The Excel file contains no worksheets')

        sheet_name = find_sheet(sheet_names, schedule_type)
        if sheet_name is None:
            raise SheetNotFoundError(SHEET_TITLES[schedule_type])

        warnings = []
        lunch_rules = []
        lunch_sheet = find_lunch_sheet(sheet_names)
        if lunch_sheet:
            lunch_rules = parse_lunch_rules(sheet_to_matrix(workbook[lunch_sheet]), warnings)
            logger.info(f"Loaded {len(lunch_rules)} lunch deduction rules from '{lunch_sheet}'")

        matrix = sheet_to_matrix(workbook[sheet_name])
        if not _has_content(matrix):
            raise EmptyContentError('The worksheet is empty')

        return WorkbookContent(sheet_name, matrix, lunch_rules, warnings)
    finally:
        workbook.close()


def read_workbook(data: bytes, schedule_type: str, timeout: float = DEFAULT_READ_TIMEOUT) -> WorkbookContent:
    """
    Read an uploaded workbook for the given schedule type.
    Raises a structural ScheduleUploadError when the file cannot be used,
    or ReadTimeoutError when reading takes longer than `timeout` seconds.
    """
    if schedule_type not in SHEET_MARKERS:
        raise ValueError(f"Unknown schedule type: {schedule_type}")
    if not data:
        raise EmptyContentError('The uploaded file is empty')

    executor = ThreadPoolExecutor(max_workers=1)
    future = executor.submit(_read, data, schedule_type)
    try:
        content = future.result(timeout=timeout)
    except FutureTimeoutError:
        logger.error(f"Workbook read exceeded {timeout}s")
        raise ReadTimeoutError('The file is too large or complex to process')
    finally:
        executor.shutdown(wait=False)

    logger.info(f"Read sheet '{content.sheet_name}' with {len(content.matrix)} rows")
    return content
