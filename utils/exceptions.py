# utils/exceptions.py
"""
Error taxonomy for the schedule upload pipeline

Every error carries a category so callers can decide how to react:
structural and grammar errors never leave the client, temporal and
referential errors block a save until the user acts, transport errors
fail open for reconciliation checks and closed for persistence.
"""

STRUCTURAL = 'structural'
GRAMMAR = 'grammar'
TEMPORAL = 'temporal'
REFERENTIAL = 'referential'
TRANSPORT = 'transport'
PERSISTENCE_CONFLICT = 'persistence_conflict'


class ScheduleUploadError(Exception):
    """Base class for every pipeline failure"""
    category = STRUCTURAL

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        payload = {'error': self.message, 'category': self.category}
        if self.details is not None:
            payload['details'] = self.details
        return payload


# ==========================================
# STRUCTURAL
# ==========================================

class EmptyWorkbookError(ScheduleUploadError):
    pass


class SheetNotFoundError(ScheduleUploadError):
    def __init__(self, sheet_title):
        super().__init__(f'Sheet "{sheet_title}" was not found in the workbook')
        self.sheet_title = sheet_title


class EmptyContentError(ScheduleUploadError):
    pass


class CorruptFileError(ScheduleUploadError):
    pass


class ReadTimeoutError(ScheduleUploadError):
    pass


class MissingMetadataError(ScheduleUploadError):
    def __init__(self, field, location):
        super().__init__(f'Could not find the {field} in {location}')
        self.field = field
        self.location = location


class MissingHeadersError(ScheduleUploadError):
    def __init__(self, cells):
        super().__init__(f'Could not find the expected headers in cells {cells}')
        self.cells = cells


class MissingDateColumnsError(ScheduleUploadError):
    def __init__(self, cells):
        super().__init__(f'Could not find the schedule dates in cells {cells}')
        self.cells = cells


class MissingEmployeeColumnError(ScheduleUploadError):
    def __init__(self, field, column):
        super().__init__(f'No {field} found in column {column}')
        self.field = field
        self.column = column


class HeaderRowNotFoundError(ScheduleUploadError):
    pass


class NoRecordsError(ScheduleUploadError):
    pass


# ==========================================
# GRAMMAR
# ==========================================

class InvalidShiftFormatError(ScheduleUploadError):
    category = GRAMMAR

    def __init__(self, cell_address, value=None):
        super().__init__(
            f'Invalid shift format in cell {cell_address}. Use "HH:MM - HH:MM" '
            f'or a special value such as "DESCANSO" or "VACACIONES"'
        )
        self.cell_address = cell_address
        self.value = value


class IncompleteRowError(ScheduleUploadError):
    category = GRAMMAR

    def __init__(self, row_index):
        super().__init__(
            f'Incomplete data in row {row_index}. Date, cedula, name and novelty type are required.'
        )
        self.row_index = row_index


class InvalidDateError(ScheduleUploadError):
    category = GRAMMAR

    def __init__(self, row_index, value):
        super().__init__(f'Invalid date in row {row_index}: {value}')
        self.row_index = row_index
        self.value = value


class InvalidCedulaError(ScheduleUploadError):
    category = GRAMMAR

    def __init__(self, row_index, value):
        super().__init__(f'Invalid cedula in row {row_index}: {value}')
        self.row_index = row_index
        self.value = value


class InvalidTimeFormatError(ScheduleUploadError):
    category = GRAMMAR

    def __init__(self, row_index, value=None):
        super().__init__(
            f'Invalid time format in row {row_index}. Use "HH:MM - HH:MM" '
            f'or a special value such as "DESCANSO" or "VACACIONES"'
        )
        self.row_index = row_index
        self.value = value


class ValidationFailedError(ScheduleUploadError):
    category = GRAMMAR

    def __init__(self, errors):
        super().__init__(f'Found {len(errors)} errors. Fix them before saving.')
        self.errors = list(errors)


# ==========================================
# TEMPORAL
# ==========================================

class YearMismatchError(ScheduleUploadError):
    category = TEMPORAL

    def __init__(self, offending_dates, year):
        super().__init__(
            f'Dates outside the current year ({year}): {", ".join(offending_dates)}'
        )
        self.offending_dates = list(offending_dates)
        self.year = year


# ==========================================
# REFERENTIAL
# ==========================================

class EmployeesNotFoundError(ScheduleUploadError):
    category = REFERENTIAL

    def __init__(self, invalid_employees):
        super().__init__(f'{len(invalid_employees)} employees were not found in the registry')
        self.invalid_employees = list(invalid_employees)


class DatesAlreadyExistError(ScheduleUploadError):
    category = REFERENTIAL

    def __init__(self, existing_dates, area):
        super().__init__(
            f'Schedules already exist for {area} on: {", ".join(existing_dates)}'
        )
        self.existing_dates = list(existing_dates)
        self.area = area


# ==========================================
# TRANSPORT
# ==========================================

class ApiTransportError(ScheduleUploadError):
    """No usable response: connection refused, DNS failure, timeout"""
    category = TRANSPORT


class ApiServerError(ScheduleUploadError):
    category = TRANSPORT

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message, details=payload)
        self.status_code = status_code
        self.payload = payload


class ApiValidationError(ApiServerError):
    """The backend rejected the batch with HTTP 400"""
    category = TEMPORAL


# ==========================================
# PERSISTENCE CONFLICT
# ==========================================

class DuplicateRecordError(ScheduleUploadError):
    category = PERSISTENCE_CONFLICT


class SaveInProgressError(ScheduleUploadError):
    def __init__(self):
        super().__init__('A save is already in progress')
