# engines/save_orchestrator.py
"""
Save Orchestrator
Sequences validation -> reconciliation -> persistence for one area and
reports the stage history plus a classified outcome.

Stages always run in order: validating (cell grammar and year range),
transferring (employee and date reconciliation, record building), saving
(the persistence call), then complete.
Any failure moves straight to error. The persistence call is made at most
once per save() and is never retried.
"""

import enum
import logging
import threading
import traceback
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from engines.reconciliation_client import ScheduleApiClient
from engines.record_normalizer import RecordNormalizer
from utils.exceptions import (
    ApiServerError, ApiTransportError, ApiValidationError, DatesAlreadyExistError,
    DuplicateRecordError, EmployeesNotFoundError, NoRecordsError, SaveInProgressError,
    ScheduleUploadError, ValidationFailedError, YearMismatchError,
)
from utils.excel_upload_handler import ScheduleUploadValidator
from utils.schedule_rows import NovedadesUpload, ScheduleUpload

logger = logging.getLogger(__name__)


class SaveStage(enum.Enum):
    VALIDATING = 'validating'
    TRANSFERRING = 'transferring'
    SAVING = 'saving'
    COMPLETE = 'complete'
    ERROR = 'error'


class SaveOutcome(enum.Enum):
    SAVED = 'saved'
    VALIDATION_FAILED = 'validation_failed'
    YEAR_MISMATCH = 'year_mismatch'
    EMPLOYEES_NOT_FOUND = 'employees_not_found'
    DATES_EXIST = 'dates_exist'
    DUPLICATE_RECORD = 'duplicate_record'
    SERVER_REJECTED = 'server_rejected'
    TRANSPORT_ERROR = 'transport_error'
    FAILED = 'failed'


@dataclass
class SaveResult:
    outcome: SaveOutcome
    message: str
    stages: List[SaveStage] = field(default_factory=list)
    record_count: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)
    invalid_employees: List[Dict[str, Any]] = field(default_factory=list)
    existing_dates: List[str] = field(default_factory=list)
    offending_dates: List[str] = field(default_factory=list)
    debug: Optional[Dict[str, Any]] = None

    @property
    def success(self) -> bool:
        return self.outcome is SaveOutcome.SAVED

    @property
    def stage(self) -> Optional[SaveStage]:
        return self.stages[-1] if self.stages else None

    def to_dict(self):
        payload = {
            'success': self.success,
            'outcome': self.outcome.value,
            'stage': self.stage.value if self.stage else None,
            'stages': [stage.value for stage in self.stages],
            'message': self.message,
            'recordCount': self.record_count,
        }
        if self.errors:
            payload['errors'] = self.errors
        if self.invalid_employees:
            payload['invalidEmployees'] = self.invalid_employees
        if self.existing_dates:
            payload['existingDates'] = self.existing_dates
        if self.offending_dates:
            payload['offendingDates'] = self.offending_dates
        if self.debug is not None:
            payload['debug'] = self.debug
        return payload


_OUTCOMES = [
    (ValidationFailedError, SaveOutcome.VALIDATION_FAILED),
    (YearMismatchError, SaveOutcome.YEAR_MISMATCH),
    (EmployeesNotFoundError, SaveOutcome.EMPLOYEES_NOT_FOUND),
    (DatesAlreadyExistError, SaveOutcome.DATES_EXIST),
    (DuplicateRecordError, SaveOutcome.DUPLICATE_RECORD),
    (ApiValidationError, SaveOutcome.SERVER_REJECTED),
    (ApiServerError, SaveOutcome.TRANSPORT_ERROR),
    (ApiTransportError, SaveOutcome.TRANSPORT_ERROR),
]


def classify_error(error: Exception) -> SaveOutcome:
    for error_class, outcome in _OUTCOMES:
        if isinstance(error, error_class):
            return outcome
    return SaveOutcome.FAILED


class SaveOrchestrator:
    """Drives one user-initiated save for an area"""

    def __init__(self, area: str, client: ScheduleApiClient,
                 normalizer: Optional[RecordNormalizer] = None,
                 on_stage: Optional[Callable[[SaveStage], None]] = None,
                 debug: bool = False):
        self.area = area
        self.client = client
        self.normalizer = normalizer or RecordNormalizer()
        self.on_stage = on_stage
        self.debug = debug
        self._lock = threading.Lock()
        self._stages: List[SaveStage] = []

    @property
    def in_progress(self) -> bool:
        return self._lock.locked()

    def _enter(self, stage: SaveStage):
        self._stages.append(stage)
        logger.info(f"[{self.area}] save stage: {stage.value}")
        if self.on_stage:
            self.on_stage(stage)

    def _acquire(self):
        if not self._lock.acquire(blocking=False):
            logger.warning(f"[{self.area}] save rejected, another save is in progress")
            raise SaveInProgressError()
        self._stages = []

    # ==========================================
    # SCHEDULES
    # ==========================================

    def save(self, upload: ScheduleUpload, confirm_existing_dates: bool = False) -> SaveResult:
        """
        Validate, reconcile and persist a parsed schedule.
        With confirm_existing_dates the date collision check is skipped; the
        caller has already shown the colliding dates to the user.
        """
        self._acquire()
        try:
            return self._run(lambda: self._save_schedule(upload, confirm_existing_dates))
        finally:
            self._lock.release()

    def _save_schedule(self, upload: ScheduleUpload, confirm_existing_dates: bool) -> SaveResult:
        self._enter(SaveStage.VALIDATING)
        errors = ScheduleUploadValidator().validate_schedule(upload)
        if errors:
            raise ValidationFailedError([error.to_dict() for error in errors])
        self.normalizer.check_year(upload)

        self._enter(SaveStage.TRANSFERRING)
        validation = self.client.validate_employees(upload.employees())
        if not validation['isValid']:
            raise EmployeesNotFoundError(validation['invalidEmployees'])

        if not confirm_existing_dates:
            dates = self.normalizer.record_dates(upload)
            collision = self.client.check_dates(dates, self.area)
            if collision['exists']:
                raise DatesAlreadyExistError(collision['existingDates'], self.area)

        records = self.normalizer.normalize(upload, self.area)
        if not records:
            raise NoRecordsError('There are no schedules to save')

        self._enter(SaveStage.SAVING)
        response = self.client.save_schedule([record.to_payload() for record in records])

        self._enter(SaveStage.COMPLETE)
        return SaveResult(
            outcome=SaveOutcome.SAVED,
            message=response.get('message') or 'Schedules saved',
            stages=list(self._stages),
            record_count=response.get('recordCount', len(records)),
        )

    # ==========================================
    # NOVEDADES
    # ==========================================

    def save_novedades(self, upload: NovedadesUpload) -> SaveResult:
        self._acquire()
        try:
            return self._run(lambda: self._save_novedades(upload))
        finally:
            self._lock.release()

    def _save_novedades(self, upload: NovedadesUpload) -> SaveResult:
        self._enter(SaveStage.VALIDATING)
        # Row-level checks already ran while parsing the sheet
        if not upload.rows:
            raise NoRecordsError('There are no novedades to save')

        self._enter(SaveStage.TRANSFERRING)
        validation = self.client.validate_employees(upload.employees())
        if not validation['isValid']:
            raise EmployeesNotFoundError(validation['invalidEmployees'])

        records = self.normalizer.normalize_novedades(upload, self.area)

        self._enter(SaveStage.SAVING)
        response = self.client.save_novedades([record.to_payload() for record in records])

        self._enter(SaveStage.COMPLETE)
        return SaveResult(
            outcome=SaveOutcome.SAVED,
            message=response.get('message') or 'Novedades saved',
            stages=list(self._stages),
            record_count=response.get('recordCount', len(records)),
        )

    # ==========================================
    # FAILURE HANDLING
    # ==========================================

    def _run(self, step) -> SaveResult:
        try:
            return step()
        except ScheduleUploadError as e:
            return self._failure(e)
        except Exception as e:
            logger.error(f"[{self.area}] unexpected save failure: {e}", exc_info=True)
            return self._failure(e)

    def _failure(self, error: Exception) -> SaveResult:
        self._enter(SaveStage.ERROR)
        outcome = classify_error(error)
        result = SaveResult(
            outcome=outcome,
            message=getattr(error, 'message', None) or 'Unexpected error while saving',
            stages=list(self._stages),
        )

        if isinstance(error, ValidationFailedError):
            result.errors = error.errors
        elif isinstance(error, YearMismatchError):
            result.offending_dates = error.offending_dates
        elif isinstance(error, EmployeesNotFoundError):
            result.invalid_employees = error.invalid_employees
        elif isinstance(error, DatesAlreadyExistError):
            result.existing_dates = error.existing_dates

        if outcome is SaveOutcome.FAILED or outcome is SaveOutcome.TRANSPORT_ERROR:
            logger.error(f"[{self.area}] save failed: {error}")
        else:
            logger.warning(f"[{self.area}] save stopped ({outcome.value}): {error}")

        if self.debug:
            result.debug = {
                'type': type(error).__name__,
                'category': getattr(error, 'category', None),
                'details': getattr(error, 'details', None),
                'trace': traceback.format_exception(type(error), error, error.__traceback__),
            }
        return result
