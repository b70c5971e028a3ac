# utils/excel_upload_handler.py
"""
Schedule Grammar Validator
Turns the raw worksheet matrix into named rows and validates it.

Two passes run over "formato" uploads:
  parse()              blocking, reports the first structural or grammar defect
  validate_schedule()  exhaustive, collects every cell error for display
"Novedades" uploads are validated row by row at parse time.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from utils.exceptions import (
    HeaderRowNotFoundError, IncompleteRowError, InvalidCedulaError, InvalidDateError,
    InvalidShiftFormatError, InvalidTimeFormatError, MissingDateColumnsError,
    MissingEmployeeColumnError, MissingHeadersError, MissingMetadataError, NoRecordsError,
)
from utils.helpers import (
    cell_address, cell_text, clean_cell, is_empty, normalize_cedula, parse_any_date,
    resolve_date_header,
)
from utils.schedule_grammar import (
    classify_shift, is_known_novedad_type, is_permissive_shift, is_valid_shift,
)
from utils.schedule_rows import (
    FORMATO, NOVEDADES, EmployeeScheduleRow, NovedadesUpload, NovedadRow, ScheduleUpload,
)
from utils.workbook_reader import WorkbookContent

logger = logging.getLogger(__name__)

# ==========================================
# FORMATO LAYOUT (zero-based matrix offsets)
# ==========================================

RESPONSIBLE_CELL = (8, 2)      # C9
DATE_RANGE_CELL = (9, 2)       # C10
HEADER_ROW = 11                # row 12
FIXED_HEADER_COLUMNS = 4       # A12-D12
FIRST_DATE_COLUMN = 4          # E
LAST_DATE_COLUMN = 10          # K
FIRST_DATA_ROW = 12            # row 13

ID_COLUMN = 1
NAME_COLUMN = 2
POSITION_COLUMN = 3

# ==========================================
# NOVEDADES LAYOUT
# ==========================================

METADATA_SCAN_ROWS = 10
AREA_LABELS = ('ÁREA:', 'AREA:')
RESPONSIBLE_LABEL = 'RESPONSABLE:'

NOVEDADES_HEADERS = [
    'FECHA PROGRAMACION',
    'CEDULA',
    'NOMBRE',
    'TIPO NOVEDAD',
    'FECHA HORA EXTRA',
    'HORA INICIO Y FIN',
    'MOTIVO',
    'NOMBRE DE QUIEN AUTORIZA',
    'CEDULA DE QUIEN AUTORIZA',
]

DIGITS_RE = re.compile(r'^\d+$')
MIN_CEDULA_DIGITS = 6

# Error kinds reported by the exhaustive pass
FORMAT = 'format'
MISSING = 'missing'
INVALID = 'invalid'
DUPLICATE = 'duplicate'


@dataclass
class ValidationError:
    row_index: int
    col_index: int
    value: Any
    kind: str
    message: str
    suggestion: Optional[str] = None

    @property
    def cell(self) -> str:
        return cell_address(self.row_index, self.col_index)

    def to_dict(self):
        return {
            'rowIndex': self.row_index,
            'colIndex': self.col_index,
            'cell': self.cell,
            'value': None if self.value is None else str(self.value),
            'type': self.kind,
            'message': self.message,
            'suggestion': self.suggestion,
        }


def _cell(matrix: List[List[Any]], row: int, col: int):
    if row >= len(matrix) or col >= len(matrix[row]):
        return None
    return matrix[row][col]


def _header_label(value) -> str:
    if isinstance(value, (datetime, date)):
        return resolve_date_header(value)
    return cell_text(value)


class ScheduleUploadValidator:
    """Structural and grammar validation for uploaded schedule sheets"""

    def __init__(self):
        self.errors: List[ValidationError] = []
        self.warnings: List[str] = []

    def parse(self, content: WorkbookContent, schedule_type: str) -> Union[ScheduleUpload, NovedadesUpload]:
        self.warnings = list(content.warnings)
        if schedule_type == FORMATO:
            return self.parse_formato(content)
        if schedule_type == NOVEDADES:
            return self.parse_novedades(content)
        raise ValueError(f"Unknown schedule type: {schedule_type}")

    # ==========================================
    # FORMATO: PARSE-TIME PASS
    # ==========================================

    def parse_formato(self, content: WorkbookContent) -> ScheduleUpload:
        matrix = content.matrix

        responsible = cell_text(_cell(matrix, *RESPONSIBLE_CELL))
        if not responsible:
            raise MissingMetadataError('responsible name', 'cell C9')

        date_range = cell_text(_cell(matrix, *DATE_RANGE_CELL))
        if not date_range:
            raise MissingMetadataError('date range', 'cell C10')

        headers = [cell_text(_cell(matrix, HEADER_ROW, col)) for col in range(FIXED_HEADER_COLUMNS)]
        if not all(headers):
            raise MissingHeadersError('A12-D12')

        date_headers = self._date_headers(matrix)
        date_columns = sorted(date_headers)

        rows = []
        for i in range(FIRST_DATA_ROW, len(matrix)):
            employee_id = normalize_cedula(_cell(matrix, i, ID_COLUMN))
            name = cell_text(_cell(matrix, i, NAME_COLUMN))
            position = cell_text(_cell(matrix, i, POSITION_COLUMN))
            shifts = {col: clean_cell(_cell(matrix, i, col)) for col in date_columns}

            if not (employee_id or name or position or any(v is not None for v in shifts.values())):
                continue

            rows.append(EmployeeScheduleRow(
                row_index=i,
                sheet_row=i + 1,
                employee_id=employee_id,
                name=name,
                position=position,
                shifts=shifts,
            ))

        if not any(row.employee_id for row in rows):
            raise MissingEmployeeColumnError('cedulas', 'B')
        if not any(row.name for row in rows):
            raise MissingEmployeeColumnError('names', 'C')
        if not any(row.position for row in rows):
            raise MissingEmployeeColumnError('positions', 'D')

        for row in rows:
            for col in date_columns:
                value = row.shifts[col]
                if value is not None and not is_permissive_shift(value):
                    raise InvalidShiftFormatError(cell_address(row.row_index, col), value)

        upload = ScheduleUpload(
            responsible=responsible,
            date_range=date_range,
            headers=headers + [_header_label(date_headers[col]) for col in date_columns],
            date_headers=date_headers,
            rows=rows,
            lunch_rules=list(content.lunch_rules),
        )
        logger.info(f"Parsed schedule for {responsible}: {len(rows)} rows, {len(date_columns)} dates")
        return upload

    def _date_headers(self, matrix) -> Dict[int, Any]:
        values = [clean_cell(_cell(matrix, HEADER_ROW, col))
                  for col in range(FIRST_DATE_COLUMN, LAST_DATE_COLUMN + 1)]
        while values and values[-1] is None:
            values.pop()

        if not values or any(value is None for value in values):
            raise MissingDateColumnsError('E12-K12')
        return {FIRST_DATE_COLUMN + offset: value for offset, value in enumerate(values)}

    # ==========================================
    # FORMATO: EXHAUSTIVE PASS
    # ==========================================

    def validate_schedule(self, upload: ScheduleUpload) -> List[ValidationError]:
        """Collect every cell-level error; an empty list means the upload may be saved"""
        self.errors = []
        seen_ids = {}

        for row in upload.rows:
            if row.employee_id:
                self._check_cedula(row)
                if not row.name:
                    self.errors.append(ValidationError(
                        row.row_index, NAME_COLUMN, row.name, MISSING,
                        'Employee name is required',
                        'Enter the name for this cedula',
                    ))
                if not row.position:
                    self.errors.append(ValidationError(
                        row.row_index, POSITION_COLUMN, row.position, MISSING,
                        'Employee position is required',
                        'Enter the position for this cedula',
                    ))

                if row.employee_id in seen_ids:
                    self.errors.append(ValidationError(
                        row.row_index, ID_COLUMN, row.employee_id, DUPLICATE,
                        f'Duplicate cedula, first listed in row {seen_ids[row.employee_id]}',
                        'Each employee may appear only once per schedule',
                    ))
                else:
                    seen_ids[row.employee_id] = row.sheet_row

            for col in upload.date_columns:
                value = row.shifts.get(col)
                if is_empty(value):
                    continue
                self._check_shift(row.row_index, col, value)

        if self.errors:
            logger.info(f"Schedule validation found {len(self.errors)} errors")
        return self.errors

    def _check_cedula(self, row: EmployeeScheduleRow):
        if not DIGITS_RE.match(row.employee_id):
            self.errors.append(ValidationError(
                row.row_index, ID_COLUMN, row.employee_id, FORMAT,
                'Invalid cedula: only digits are allowed',
                'Remove letters and symbols from the cedula',
            ))
        elif len(row.employee_id) < MIN_CEDULA_DIGITS:
            self.errors.append(ValidationError(
                row.row_index, ID_COLUMN, row.employee_id, INVALID,
                f'Invalid cedula: at least {MIN_CEDULA_DIGITS} digits are required',
                'Check the cedula against the employee record',
            ))

    def _check_shift(self, row_index: int, col_index: int, value):
        token = classify_shift(value) if isinstance(value, str) else None
        if token is not None and token.is_valid:
            return

        if token is not None and token.reason == 'hours must have two digits':
            message = 'Hours must have two digits, e.g. 07:00 instead of 7:00'
            suggestion = 'Add a leading zero to single-digit hours'
        else:
            message = 'Invalid shift format'
            suggestion = 'Use "HH:MM - HH:MM", "HH:MM - HH:MM [X.X]" or a special value such as DESCANSO'
        self.errors.append(ValidationError(row_index, col_index, value, FORMAT, message, suggestion))

    # ==========================================
    # NOVEDADES
    # ==========================================

    def parse_novedades(self, content: WorkbookContent) -> NovedadesUpload:
        matrix = content.matrix
        area, responsible = self._novedades_metadata(matrix)

        header_row = self._find_novedades_header(matrix)
        if header_row is None:
            raise HeaderRowNotFoundError('Could not find the header row in the file')

        rows = []
        for i in range(header_row + 1, len(matrix)):
            row = [_cell(matrix, i, col) for col in range(len(NOVEDADES_HEADERS))]
            if is_empty(row[0]) and is_empty(row[1]) and is_empty(row[2]):
                continue
            rows.append(self._novedad_row(i, row))

        if not rows:
            raise NoRecordsError('No valid records were found in the file')

        logger.info(f"Parsed {len(rows)} novedades for area {area}")
        return NovedadesUpload(
            area=area,
            responsible=responsible,
            headers=list(NOVEDADES_HEADERS),
            rows=rows,
            lunch_rules=list(content.lunch_rules),
            warnings=list(self.warnings),
        )

    def _novedades_metadata(self, matrix):
        area = ''
        responsible = ''
        for i in range(min(METADATA_SCAN_ROWS, len(matrix))):
            label = cell_text(_cell(matrix, i, 0)).upper()
            value = cell_text(_cell(matrix, i, 1))
            if not value:
                continue
            if label in AREA_LABELS:
                area = value
            elif label == RESPONSIBLE_LABEL:
                responsible = value

        if not responsible:
            raise MissingMetadataError('responsible name', 'the first 10 rows')
        if not area:
            raise MissingMetadataError('area', 'the first 10 rows')
        return area, responsible

    def _find_novedades_header(self, matrix) -> Optional[int]:
        expected = NOVEDADES_HEADERS[:3]
        for i, row in enumerate(matrix):
            titles = [cell_text(_cell(matrix, i, col)).upper() for col in range(3)]
            if titles == expected:
                return i
        return None

    def _novedad_row(self, i: int, row: List[Any]) -> NovedadRow:
        sheet_row = i + 1
        if any(is_empty(value) for value in row[:4]):
            raise IncompleteRowError(sheet_row)

        fecha = parse_any_date(row[0])
        if fecha is None:
            raise InvalidDateError(sheet_row, row[0])

        cedula = normalize_cedula(row[1])
        if not DIGITS_RE.match(cedula):
            raise InvalidCedulaError(sheet_row, row[1])

        tipo = cell_text(row[3]).upper()
        if not is_known_novedad_type(tipo):
            message = f"Unrecognised novelty type in row {sheet_row}: {tipo}"
            logger.warning(message)
            self.warnings.append(message)

        fecha_extra = None
        if not is_empty(row[4]):
            fecha_extra = parse_any_date(row[4])
            if fecha_extra is None:
                raise InvalidDateError(sheet_row, row[4])

        hora = cell_text(row[5])
        if hora and not is_valid_shift(hora):
            raise InvalidTimeFormatError(sheet_row, hora)

        cedula_autoriza = normalize_cedula(row[8]) if not is_empty(row[8]) else ''

        return NovedadRow(
            row_index=i,
            fecha_programacion=fecha,
            cedula=cedula,
            nombre=cell_text(row[2]),
            tipo_novedad=tipo,
            fecha_hora_extra=fecha_extra,
            hora_inicio_fin=hora,
            motivo=cell_text(row[6]),
            nombre_autoriza=cell_text(row[7]),
            cedula_autoriza=cedula_autoriza,
        )
